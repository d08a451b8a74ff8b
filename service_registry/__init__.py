# Service Registry Package
# Main exports for easy importing

from service_registry.registry import Registry, Reaper
from service_registry.errors import (
    RegistryError,
    ValidationError,
    NotFoundError,
    NotFoundKind,
)
from service_registry.types import (
    ServiceIdentity,
    Instance,
    InstanceStatus,
    ReaperPolicy,
    AddressingMode,
    RegistrationResult,
    SweepResult,
    RegisterRequest,
    UnregisterRequest,
    RegistrationResponse,
    InstanceResponse,
)
from service_registry.client import (
    ServiceRegistryClient,
    register_service_with_registry,
)
from service_registry.api import api_router

__all__ = [
    # Core registry and reaper
    "Registry",
    "Reaper",
    # Errors
    "RegistryError",
    "ValidationError",
    "NotFoundError",
    "NotFoundKind",
    # Types and models
    "ServiceIdentity",
    "Instance",
    "InstanceStatus",
    "ReaperPolicy",
    "AddressingMode",
    "RegistrationResult",
    "SweepResult",
    "RegisterRequest",
    "UnregisterRequest",
    "RegistrationResponse",
    "InstanceResponse",
    # Client
    "ServiceRegistryClient",
    "register_service_with_registry",
    # API
    "api_router",
]
