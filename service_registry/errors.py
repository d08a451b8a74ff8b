from enum import Enum

from service_registry.constants import (
    ERROR_SERVICE_NOT_FOUND,
    ERROR_VERSION_NOT_FOUND,
    ERROR_NO_HEALTHY_INSTANCE,
    ERROR_INSTANCE_NOT_FOUND,
)


class NotFoundKind(Enum):
    SERVICE_UNKNOWN = "service_unknown"
    VERSION_UNKNOWN = "version_unknown"
    NO_HEALTHY_INSTANCE = "no_healthy_instance"
    INSTANCE_UNKNOWN = "instance_unknown"


_NOT_FOUND_MESSAGES = {
    NotFoundKind.SERVICE_UNKNOWN: ERROR_SERVICE_NOT_FOUND,
    NotFoundKind.VERSION_UNKNOWN: ERROR_VERSION_NOT_FOUND,
    NotFoundKind.NO_HEALTHY_INSTANCE: ERROR_NO_HEALTHY_INSTANCE,
    NotFoundKind.INSTANCE_UNKNOWN: ERROR_INSTANCE_NOT_FOUND,
}


class RegistryError(Exception):
    """Base class for errors reported by the registry core"""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(RegistryError):
    """A required field is missing or malformed; nothing was mutated"""


class NotFoundError(RegistryError):
    """The requested service, version or instance is not available"""

    def __init__(self, kind: NotFoundKind, message: str = None):
        super().__init__(message or _NOT_FOUND_MESSAGES[kind])
        self.kind = kind
