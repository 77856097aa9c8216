import json
from datetime import datetime, timezone
from typing import Callable, Dict, Optional
from config.paths import StatePaths
from core.certificate_manager import generate_client_uuid
from core.exceptions import StateParseError, StorageError
from core.logging_config import LoggerMixin
from core.types import ClientID
from core.file_utils import marshal_pretty, write_secret_file
from .models import ClientRecord

ClientMap = Dict[ClientID, ClientRecord]

class ClientStore(LoggerMixin):
    """Durable client map kept in a single JSON document keyed by client id.

    The store holds no state between calls: every ``load`` reads the file and
    every ``save`` replaces it. Callers are expected to serialize access.
    """

    def __init__(self, paths: StatePaths, uuid_factory: Optional[Callable[[], str]] = None) -> None:
        self.paths = paths
        self.uuid_factory = uuid_factory or generate_client_uuid

    def load(self) -> ClientMap:
        """Read, heal and return the client map.

        A missing or blank file is the first-run case and yields an empty map.
        Healed records are written back before returning.
        """
        path = self.paths.clients_file
        try:
            with open(path, "r", encoding="utf-8") as f:
                raw = f.read()
        except FileNotFoundError:
            return {}
        except OSError as e:
            raise StorageError(f"Failed to read clients state '{path}': {e}")

        if not raw.strip():
            return {}

        try:
            document = json.loads(raw)
        except json.JSONDecodeError as e:
            raise StateParseError(path, str(e))
        if not isinstance(document, dict):
            raise StateParseError(path, "top-level value must be an object")

        clients: ClientMap = {}
        changed = False
        for key, entry in document.items():
            if not isinstance(entry, dict):
                raise StateParseError(path, f"record '{key}' must be an object")
            try:
                record = ClientRecord.from_dict(entry)
            except ValueError as e:
                raise StateParseError(path, f"record '{key}': {e}")
            if self._heal(key, record):
                changed = True
            clients[key] = record

        if changed:
            self.logger.info("Healed client records", path=path, count=len(clients))
            self.save(clients)
        return clients

    def save(self, clients: ClientMap) -> None:
        """Persist the full map, sorted by id, via temp-then-rename."""
        document = {}
        for client_id in sorted(clients):
            record = clients[client_id]
            record.id = client_id
            if not record.config_path.strip():
                record.config_path = self.paths.client_config_file(client_id)
            document[client_id] = record.to_dict()

        try:
            write_secret_file(self.paths.clients_file, marshal_pretty(document))
        except OSError as e:
            raise StorageError(f"Failed to write clients state '{self.paths.clients_file}': {e}")

    def _heal(self, key: ClientID, record: ClientRecord) -> bool:
        """Backfill missing fields in place. Returns True if anything changed."""
        changed = False
        if not record.id.strip():
            record.id = key
            changed = True
        if not record.name.strip():
            record.name = record.id
            changed = True
        if not record.uuid.strip():
            record.uuid = self.uuid_factory()
            changed = True
        if not record.address.strip():
            record.address = record.uuid
            changed = True
        if not record.config_path.strip():
            record.config_path = self.paths.client_config_file(record.id)
            changed = True
        if record.created_at is None:
            record.created_at = datetime.now(timezone.utc)
            changed = True
        return changed
