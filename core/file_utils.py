import json
import os
from typing import Any

def marshal_pretty(payload: Any) -> bytes:
    """Serialize to two-space indented JSON terminated by a newline."""
    raw = json.dumps(payload, indent=2, ensure_ascii=False)
    if not raw.endswith("\n"):
        raw += "\n"
    return raw.encode("utf-8")

def write_secret_file(path: str, content: bytes) -> None:
    """Write ``content`` to ``path`` through a sibling ``.tmp`` file.

    The temp file is created with mode 0600, flushed to disk and renamed over
    the target, so readers see either the old or the new file. OSError is
    propagated to the caller.
    """
    os.makedirs(os.path.dirname(path) or ".", mode=0o700, exist_ok=True)
    tmp_path = path + ".tmp"
    fd = os.open(tmp_path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(content)
            f.flush()
            os.fsync(f.fileno())
        os.chmod(tmp_path, 0o600)
        os.replace(tmp_path, path)
    except OSError:
        if os.path.exists(tmp_path):
            os.remove(tmp_path)
        raise

def file_exists(path: str) -> bool:
    return os.path.isfile(path)
