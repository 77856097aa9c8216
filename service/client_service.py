import time
from typing import Any, Dict
from core.state_manager import StateManager
from core.types import ClientID, ConfigData
from core.logging_config import LoggerMixin
from data.models import ClientRecord, format_timestamp
from service.qr_service import QRService

class ClientService(LoggerMixin):
    """Shapes state manager results for the HTTP API and CLI."""

    def __init__(self, state_manager: StateManager, qr_service: QRService):
        self.state_manager = state_manager
        self.qr_service = qr_service

    def create_client(self, name: str = "") -> Dict[str, Any]:
        if not (name or "").strip():
            name = f"client-{int(time.time())}"
        client, config_data = self.state_manager.create_client(name)
        response = self._client_payload(client, config_data)
        response["config_path"] = client.config_path
        return response

    def get_client_config(self, client_id: ClientID) -> Dict[str, Any]:
        client, config_data = self.state_manager.get_client_config(client_id)
        return self._client_payload(client, config_data)

    def get_status(self) -> Dict[str, Any]:
        return self.state_manager.get_status().to_dict()

    def start_interface(self) -> Dict[str, str]:
        self.state_manager.start_interface()
        return {"status": "started"}

    def stop_interface(self) -> Dict[str, str]:
        self.state_manager.stop_interface()
        return {"status": "stopped"}

    def _client_payload(self, client: ClientRecord, config_data: ConfigData) -> Dict[str, Any]:
        share_uri = self.state_manager.client_share_uri(client)
        qr_payload = share_uri.strip() or config_data
        return {
            "id": client.id,
            "name": client.name,
            "address": client.address,
            "created_at": format_timestamp(client.created_at),
            "config": config_data,
            "vless_uri": share_uri,
            "qr_base64": self.qr_service.generate_base64(qr_payload),
        }
