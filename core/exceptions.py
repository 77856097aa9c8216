"""
Custom exception classes for the VLESS control plane.
Provides specific error handling and better debugging.
"""

class VPNManagerError(Exception):
    """Base exception for VPN Manager operations."""
    pass

class ClientNotFoundError(VPNManagerError):
    """Raised when trying to access a non-existent client."""

    def __init__(self, client_id: str):
        self.client_id = client_id
        super().__init__(f"Client '{client_id}' not found")

class StateParseError(VPNManagerError):
    """Raised when a persisted state file is not valid JSON.

    The file is never rewritten in this case; an operator has to repair or
    remove it.
    """

    def __init__(self, path: str, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"Failed to parse state file '{path}': {reason}")

class StorageError(VPNManagerError):
    """Raised when reading or writing state on disk fails."""
    pass

class ProcessError(VPNManagerError):
    """Raised when the data-plane process cannot be spawned or signalled."""

    def __init__(self, message: str, output: str = ""):
        self.reason = message
        self.output = output
        if output:
            message = f"{message}\n--- process output ---\n{output}"
        super().__init__(message)

class ReloadError(ProcessError):
    """Raised when the data plane fails to restart after a state change.

    The state change itself has already been persisted.
    """
    pass

class CertificateGenerationError(VPNManagerError):
    """Raised when TLS certificate generation fails."""

    def __init__(self, common_name: str, reason: str):
        self.common_name = common_name
        self.reason = reason
        super().__init__(f"Certificate generation failed for '{common_name}': {reason}")

class ConfigurationError(VPNManagerError):
    """Raised when configuration is invalid or missing."""
    pass

class ValidationError(VPNManagerError):
    """Raised when input validation fails."""

    def __init__(self, field: str, value: str, reason: str):
        self.field = field
        self.value = value
        self.reason = reason
        super().__init__(f"Validation failed for {field}='{value}': {reason}")
