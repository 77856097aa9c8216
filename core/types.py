"""
Type definitions for the VLESS control plane.
Provides type safety and better IDE support.
"""

from typing import Dict, List, Optional, Any
from dataclasses import dataclass, field, asdict
from enum import Enum

ClientID = str
FilePath = str
ConfigData = str
IPAddress = str
Port = int

class ProcessState(Enum):
    """Lifecycle states of the supervised data-plane process."""
    STOPPED = "stopped"
    STARTING = "starting"
    RUNNING = "running"
    STOPPING = "stopping"

@dataclass
class StatusClient:
    """Client summary returned by the status endpoint."""
    id: ClientID
    name: str
    uuid: str
    address: str
    created_at: str

@dataclass
class StatusResponse:
    """Snapshot of the manager state."""
    running: bool
    interface: str
    listen_port: Port
    protocol: str
    transport: str
    endpoint: str
    clients: List[StatusClient] = field(default_factory=list)
    pid: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        if data["pid"] is None:
            del data["pid"]
        return data


JSONDocument = Dict[str, Any]
