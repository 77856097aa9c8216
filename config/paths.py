"""
Path management module for the VLESS control plane.
Every persisted file is laid out relative to the configured state directory.
"""
import os
from dataclasses import dataclass

@dataclass(frozen=True)
class StatePaths:
    """Centralized path layout derived from one state root."""
    state_dir: str

    @property
    def clients_dir(self) -> str:
        """Directory holding the client map and per-client documents."""
        return os.path.join(self.state_dir, "clients")

    @property
    def clients_file(self) -> str:
        """Client map path."""
        return os.path.join(self.clients_dir, "clients.json")

    @property
    def server_config_file(self) -> str:
        """Server document consumed by sing-box."""
        return os.path.join(self.state_dir, "server.json")

    @property
    def server_log_file(self) -> str:
        """Append-only sing-box output."""
        return os.path.join(self.state_dir, "sing-box.log")

    def client_config_file(self, client_id: str) -> str:
        """Per-client document path."""
        return os.path.join(self.clients_dir, f"{client_id}.json")
