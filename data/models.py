import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Optional
from core.types import ClientID

_FRACTION_RE = re.compile(r"\.(\d+)")
_ZERO_TIME_PREFIX = "0001-01-01"

def format_timestamp(value: Optional[datetime]) -> str:
    """Render a UTC timestamp as RFC 3339 with a trailing Z."""
    if value is None:
        return _ZERO_TIME_PREFIX + "T00:00:00Z"
    return value.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")

def parse_timestamp(raw: Any) -> Optional[datetime]:
    """Parse an RFC 3339 timestamp; zero or empty values yield None.

    Raises ValueError for values that are present but not timestamps.
    """
    if raw is None:
        return None
    if not isinstance(raw, str):
        raise ValueError(f"timestamp must be a string, got {type(raw).__name__}")
    text = raw.strip()
    if not text or text.startswith(_ZERO_TIME_PREFIX):
        return None
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    text = _FRACTION_RE.sub(lambda m: "." + m.group(1)[:6].ljust(6, "0"), text)
    parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)

@dataclass
class ClientRecord:
    id: ClientID
    name: str
    uuid: str
    config_path: str
    created_at: Optional[datetime]
    address: str = ""
    extra: Dict[str, Any] = field(default_factory=dict)

    @property
    def alias(self) -> str:
        """Display handle; the secret identity stands in when no alias is set."""
        return self.address.strip() or self.uuid

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "id": self.id,
            "name": self.name,
            "uuid": self.uuid,
        }
        if self.address:
            data["address"] = self.address
        data["config_path"] = self.config_path
        data["created_at"] = format_timestamp(self.created_at)
        for key, value in self.extra.items():
            data.setdefault(key, value)
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ClientRecord":
        """Build a record from its JSON form.

        Raises ValueError when a known field holds a non-string value.
        """
        known = ("id", "name", "uuid", "address", "config_path")
        values = {}
        for key in known:
            value = data.get(key)
            if value is None:
                value = ""
            elif not isinstance(value, str):
                raise ValueError(f"field '{key}' must be a string, got {type(value).__name__}")
            values[key] = value
        return cls(
            created_at=parse_timestamp(data.get("created_at")),
            extra={k: v for k, v in data.items() if k not in known and k != "created_at"},
            **values,
        )
