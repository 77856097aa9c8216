"""
State manager for the VLESS control plane.

Owns the client map and the data-plane process. Every public method runs
under a single lock from load to reload, so concurrent API requests observe
operations one at a time, in the order they acquired the lock.
"""

import os
import re
import threading
import time
from datetime import datetime, timezone
from typing import Optional, Tuple
from config.app_config import VlessConfig
from config.constants import VlessConstants
from config.paths import StatePaths
from core.certificate_manager import CertificateManager, generate_client_uuid
from core.config_generator import ConfigGenerator
from core.exceptions import ClientNotFoundError, ProcessError, ReloadError, StorageError
from core.file_utils import marshal_pretty, write_secret_file
from core.logging_config import LoggerMixin, log_performance
from core.process_supervisor import ProcessSupervisor
from core.types import ClientID, ConfigData, StatusClient, StatusResponse
from data.client_store import ClientMap, ClientStore
from data.models import ClientRecord, format_timestamp

_CLIENT_ID_RE = re.compile(r"[^a-z0-9._-]+")

def sanitize_client_id(name: str) -> ClientID:
    """Derive a URL-safe id: lowercase, runs of other characters become '-'."""
    candidate = (name or "").strip().lower()
    if not candidate:
        return VlessConstants.FALLBACK_CLIENT_ID
    candidate = _CLIENT_ID_RE.sub("-", candidate).strip("-_.")
    return candidate or VlessConstants.FALLBACK_CLIENT_ID

def allocate_client_id(name: str, clients: ClientMap) -> ClientID:
    base = sanitize_client_id(name)
    if base not in clients:
        return base
    for i in range(2, VlessConstants.MAX_ID_SUFFIX):
        candidate = f"{base}-{i}"
        if candidate not in clients:
            return candidate
    return f"{base}-{int(time.time())}"

class StateManager(LoggerMixin):
    def __init__(self, config: VlessConfig,
                 store: Optional[ClientStore] = None,
                 supervisor: Optional[ProcessSupervisor] = None,
                 cert_manager: Optional[CertificateManager] = None):
        self.config = config
        self.paths = StatePaths(config.state_dir)
        self.store = store or ClientStore(self.paths)
        self.supervisor = supervisor or ProcessSupervisor(
            config.sing_box_binary,
            self.paths.server_log_file,
            config.stop_grace_seconds,
        )
        self.cert_manager = cert_manager or CertificateManager(config)
        self.generator = ConfigGenerator(config)
        self._lock = threading.Lock()

    # Public operations -------------------------------------------------

    @log_performance
    def initialize_state(self) -> None:
        """Prepare directories, TLS material, the default client and documents.

        Safe to call on every startup.
        """
        with self._lock:
            self._ensure_directories()
            self.cert_manager.ensure_tls_material()

            clients = self.store.load()
            if not clients:
                self._create_client_locked(VlessConstants.DEFAULT_CLIENT_NAME, clients)
                clients = self.store.load()

            self._rewrite_documents_locked(clients)
            self.logger.info("State initialized", state_dir=self.config.state_dir, clients=len(clients))

    @log_performance
    def create_client(self, name: str) -> Tuple[ClientRecord, ConfigData]:
        """Add a client and return it with its client document.

        Raises ReloadError when the record was persisted but the running data
        plane could not be restarted.
        """
        with self._lock:
            clients = self.store.load()
            return self._create_client_locked(name, clients)

    def get_status(self) -> StatusResponse:
        with self._lock:
            clients = self.store.load()
            running = self.supervisor.is_running()
            pid = self.supervisor.pid

        summaries = [
            StatusClient(
                id=c.id,
                name=c.name,
                uuid=c.uuid,
                address=c.alias,
                created_at=format_timestamp(c.created_at),
            )
            for c in sorted(clients.values(), key=lambda c: c.id)
        ]
        return StatusResponse(
            running=running,
            interface=self.config.interface,
            listen_port=self.config.listen_port,
            protocol=VlessConstants.PROTOCOL,
            transport=VlessConstants.TRANSPORT,
            endpoint=self.config.endpoint_host,
            clients=summaries,
            pid=pid,
        )

    def get_client_config(self, client_id: ClientID) -> Tuple[ClientRecord, ConfigData]:
        """Regenerate and return one client's document."""
        with self._lock:
            clients = self.store.load()
            client = clients.get(client_id)
            if client is None:
                raise ClientNotFoundError(client_id)
            return client, self._write_client_config_locked(client)

    def start_interface(self) -> None:
        with self._lock:
            clients = self.store.load()
            self._rewrite_documents_locked(clients)
            if self.supervisor.is_running():
                return
            self.supervisor.start(self.paths.server_config_file)

    def stop_interface(self) -> None:
        with self._lock:
            self.supervisor.stop()

    def is_running(self) -> bool:
        with self._lock:
            return self.supervisor.is_running()

    def client_share_uri(self, client: ClientRecord) -> str:
        return self.generator.share_uri(client)

    # Locked helpers ----------------------------------------------------

    def _create_client_locked(self, name: str, clients: ClientMap) -> Tuple[ClientRecord, ConfigData]:
        client_id = allocate_client_id(name, clients)
        client_uuid = generate_client_uuid()
        client = ClientRecord(
            id=client_id,
            name=(name or "").strip() or client_id,
            uuid=client_uuid,
            address=client_uuid,
            config_path=self.paths.client_config_file(client_id),
            created_at=datetime.now(timezone.utc),
        )

        clients[client_id] = client
        self.store.save(clients)
        self._rewrite_documents_locked(clients)
        self.logger.info("Client created", client_id=client_id)

        if self.supervisor.is_running():
            try:
                self.supervisor.stop()
                self.supervisor.start(self.paths.server_config_file)
            except ProcessError as e:
                raise ReloadError(
                    f"Client '{client_id}' was created but sing-box failed to reload: {e.reason}",
                    output=e.output,
                ) from e

        return client, self._read_client_config(client)

    def _rewrite_documents_locked(self, clients: ClientMap) -> None:
        """Write the server document and every client document."""
        changed = False
        for client_id, client in clients.items():
            if not client.config_path.strip():
                client.config_path = self.paths.client_config_file(client_id)
                changed = True
            if not client.address.strip():
                client.address = client.uuid
                changed = True

        ordered = sorted(clients.values(), key=lambda c: c.id)
        document = self.generator.server_document(ordered).to_dict()
        self._write_document(self.paths.server_config_file, document, "server config")

        for client in ordered:
            self._write_client_config_locked(client)

        if changed:
            self.store.save(clients)

    def _write_client_config_locked(self, client: ClientRecord) -> ConfigData:
        payload = marshal_pretty(self.generator.client_document(client).to_dict())
        self._write_bytes(client.config_path, payload, "client config")
        return payload.decode("utf-8")

    def _read_client_config(self, client: ClientRecord) -> ConfigData:
        try:
            with open(client.config_path, "r", encoding="utf-8") as f:
                return f.read()
        except OSError as e:
            raise StorageError(f"Failed to read generated client config '{client.config_path}': {e}")

    def _write_document(self, path: str, document: dict, label: str) -> None:
        self._write_bytes(path, marshal_pretty(document), label)

    def _write_bytes(self, path: str, payload: bytes, label: str) -> None:
        try:
            write_secret_file(path, payload)
        except OSError as e:
            raise StorageError(f"Failed to write {label} '{path}': {e}")

    def _ensure_directories(self) -> None:
        directories = [
            self.paths.clients_dir,
            os.path.dirname(self.config.tls_cert_path),
            os.path.dirname(self.config.tls_key_path),
        ]
        try:
            for directory in directories:
                if directory:
                    os.makedirs(directory, mode=0o700, exist_ok=True)
            os.chmod(self.config.state_dir, 0o700)
            os.chmod(self.paths.clients_dir, 0o700)
        except OSError as e:
            raise StorageError(f"Failed to prepare state directory '{self.config.state_dir}': {e}")
