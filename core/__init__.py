# Core module exports
from .types import *
from .exceptions import *

__all__ = [
    'ClientID',
    'ConfigData',
    'ProcessState',
    'StatusClient',
    'StatusResponse',
    'VPNManagerError',
    'ClientNotFoundError',
    'StateParseError',
    'StorageError',
    'ProcessError',
    'ReloadError',
    'CertificateGenerationError',
    'ConfigurationError',
    'ValidationError'
]
