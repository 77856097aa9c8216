from typing import Dict, Any, Optional, TypeVar, Callable
from config.app_config import AppConfig
from config.paths import StatePaths
from data.client_store import ClientStore
from core.certificate_manager import CertificateManager
from core.process_supervisor import ProcessSupervisor
from core.state_manager import StateManager
from service.client_service import ClientService
from service.qr_service import QRService
T = TypeVar('T')

class DependencyContainer:
    def __init__(self):
        self._instances: Dict[str, Any] = {}
        self._factories: Dict[str, Callable[[], Any]] = {}
        self._config: Optional[AppConfig] = None

    def register_config(self, config: AppConfig) -> None:
        self._config = config
        self._instances['config'] = config
    def register_singleton(self, name: str, factory: Callable[[], T]) -> None:
        self._factories[name] = factory

    def get(self, name: str) -> T:
        if name in self._instances:
            return self._instances[name]
        if name in self._factories:
            instance = self._factories[name]()
            self._instances[name] = instance
            return instance
        raise KeyError(f"Dependency '{name}' not registered")
    def register_core_dependencies(self) -> None:
        self.register_singleton('client_store', self._create_client_store)
        self.register_singleton('certificate_manager', self._create_certificate_manager)
        self.register_singleton('process_supervisor', self._create_process_supervisor)
        self.register_singleton('state_manager', self._create_state_manager)
    def register_service_dependencies(self) -> None:
        self.register_singleton('qr_service', self._create_qr_service)
        self.register_singleton('client_service', self._create_client_service)
    def _create_client_store(self) -> ClientStore:
        return ClientStore(StatePaths(self._config.vless.state_dir))
    def _create_certificate_manager(self) -> CertificateManager:
        return CertificateManager(self._config.vless)
    def _create_process_supervisor(self) -> ProcessSupervisor:
        vless = self._config.vless
        return ProcessSupervisor(
            vless.sing_box_binary,
            StatePaths(vless.state_dir).server_log_file,
            vless.stop_grace_seconds,
        )
    def _create_state_manager(self) -> StateManager:
        return StateManager(
            self._config.vless,
            store=self.get('client_store'),
            supervisor=self.get('process_supervisor'),
            cert_manager=self.get('certificate_manager'),
        )
    def _create_qr_service(self) -> QRService:
        return QRService()
    def _create_client_service(self) -> ClientService:
        return ClientService(self.get('state_manager'), self.get('qr_service'))
    def cleanup(self) -> None:
        supervisor = self._instances.get('process_supervisor')
        if supervisor:
            supervisor.stop()
        self._instances.clear()
        self._factories.clear()
_container = DependencyContainer()
def get_container() -> DependencyContainer:
    return _container
def initialize_container(config: AppConfig) -> None:
    container = get_container()
    container.register_config(config)
    container.register_core_dependencies()
    container.register_service_dependencies()
def get_service(service_name: str) -> Any:
    return get_container().get(service_name)
def cleanup_container() -> None:
    get_container().cleanup()
