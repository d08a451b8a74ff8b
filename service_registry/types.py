import time
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from service_registry.constants import (
    STATUS_RUNNING,
    STATUS_DOWN,
    POLICY_MARK_DOWN,
    POLICY_EVICT,
    ADDRESSING_URL,
    ADDRESSING_IP_PORT,
)


class InstanceStatus(Enum):
    RUNNING = STATUS_RUNNING
    DOWN = STATUS_DOWN


class ReaperPolicy(Enum):
    MARK_DOWN = POLICY_MARK_DOWN
    EVICT = POLICY_EVICT


class AddressingMode(Enum):
    URL = ADDRESSING_URL
    IP_PORT = ADDRESSING_IP_PORT


@dataclass(frozen=True)
class ServiceIdentity:
    service_name: str
    version: str

    def __str__(self) -> str:
        return f"{self.service_name}@{self.version}"


@dataclass
class Instance:
    identity: ServiceIdentity
    address: str
    last_heartbeat: float
    status: InstanceStatus = InstanceStatus.RUNNING
    registered_at: float = field(default_factory=time.time)
    metadata: Dict[str, str] = field(default_factory=dict)

    @property
    def service_name(self) -> str:
        return self.identity.service_name

    @property
    def version(self) -> str:
        return self.identity.version

    @property
    def is_running(self) -> bool:
        return self.status == InstanceStatus.RUNNING

    def snapshot(self) -> "Instance":
        """Detached copy that callers may hold without seeing later mutations"""
        return replace(self, metadata=dict(self.metadata))


@dataclass(frozen=True)
class RegistrationResult:
    created: bool
    instance: Instance
    revived: bool = False


@dataclass
class SweepResult:
    marked_down: List[Instance] = field(default_factory=list)
    evicted: List[Instance] = field(default_factory=list)
    errors: int = 0

    @property
    def changed(self) -> int:
        return len(self.marked_down) + len(self.evicted)


# Pydantic models for API validation
class _WireModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, coerce_numbers_to_str=True)


class RegisterRequest(_WireModel):
    """Required fields are checked by the registry so that a missing one is a 400"""

    service_name: Optional[str] = Field(None, alias="serviceName")
    version: Optional[str] = None
    url: Optional[str] = None
    port: Optional[int] = Field(None, ge=1, le=65535)
    metadata: Dict[str, str] = Field(default_factory=dict)


class UnregisterRequest(_WireModel):
    service_name: Optional[str] = Field(None, alias="serviceName")
    version: Optional[str] = None
    url: Optional[str] = None
    port: Optional[int] = Field(None, ge=1, le=65535)


class RegistrationResponse(_WireModel):
    success: bool
    message: str
    created: bool


class UnregistrationResponse(_WireModel):
    success: bool
    message: str


class InstanceResponse(_WireModel):
    service_name: str = Field(..., alias="serviceName")
    version: str
    url: str
    status: str
    timestamp: float
    registered_at: float = Field(..., alias="registeredAt")
    metadata: Dict[str, str] = Field(default_factory=dict)

    @classmethod
    def from_instance(cls, instance: Instance) -> "InstanceResponse":
        return cls(
            service_name=instance.service_name,
            version=instance.version,
            url=instance.address,
            status=instance.status.value,
            timestamp=instance.last_heartbeat,
            registered_at=instance.registered_at,
            metadata=instance.metadata,
        )


ServiceListResponse = Dict[str, Dict[str, List[InstanceResponse]]]
