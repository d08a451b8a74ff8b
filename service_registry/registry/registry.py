import asyncio
import random
import time
from typing import Callable, Dict, List, Optional

from service_registry.constants import (
    ERROR_REGISTER_FIELDS_REQUIRED,
    ERROR_UNREGISTER_FIELDS_REQUIRED,
)
from service_registry.errors import NotFoundError, NotFoundKind, ValidationError
from service_registry.logger_config import (
    RegistryLogger,
    log_instance_registered,
    log_instance_heartbeat,
    log_instance_revived,
    log_instance_marked_down,
    log_instance_evicted,
    log_instance_unregistered,
)
from service_registry.types import (
    Instance,
    InstanceStatus,
    RegistrationResult,
    ReaperPolicy,
    ServiceIdentity,
    SweepResult,
)

logger = RegistryLogger.get_logger(__name__)

# service name -> version -> address -> instance
Buckets = Dict[str, Dict[str, Dict[str, Instance]]]


class Registry:
    """In-memory registry of service instances keyed by name, version and address"""

    def __init__(
        self,
        clock: Callable[[], float] = time.time,
        rng: Optional[random.Random] = None,
    ):
        self._services: Buckets = {}
        self._lock = asyncio.Lock()
        self._clock = clock
        self._random = rng or random.Random()

    async def register(
        self,
        identity: ServiceIdentity,
        address: str,
        metadata: Optional[Dict[str, str]] = None,
    ) -> RegistrationResult:
        """Create an instance, or refresh it if the address is already known"""
        self._require_fields(identity, address, ERROR_REGISTER_FIELDS_REQUIRED)

        async with self._lock:
            now = self._clock()
            versions = self._services.setdefault(identity.service_name, {})
            instances = versions.setdefault(identity.version, {})
            instance = instances.get(address)

            if instance is None:
                instance = Instance(
                    identity=identity,
                    address=address,
                    last_heartbeat=now,
                    registered_at=now,
                    metadata=dict(metadata or {}),
                )
                instances[address] = instance
                log_instance_registered(logger, instance)
                return RegistrationResult(created=True, instance=instance.snapshot())

            revived = instance.status == InstanceStatus.DOWN
            instance.last_heartbeat = now
            instance.status = InstanceStatus.RUNNING
            if metadata:
                instance.metadata = dict(metadata)

            if revived:
                log_instance_revived(logger, instance)
            else:
                log_instance_heartbeat(logger, instance)
            return RegistrationResult(
                created=False, instance=instance.snapshot(), revived=revived
            )

    async def discover(self, identity: ServiceIdentity) -> Instance:
        """Pick one RUNNING instance uniformly at random"""
        async with self._lock:
            instances = self._bucket(identity)
            running = [inst for inst in instances.values() if inst.is_running]
            if not running:
                raise NotFoundError(NotFoundKind.NO_HEALTHY_INSTANCE)
            return self._random.choice(running).snapshot()

    async def unregister(self, identity: ServiceIdentity, address: str) -> bool:
        """Remove an instance whatever its status"""
        self._require_fields(identity, address, ERROR_UNREGISTER_FIELDS_REQUIRED)

        async with self._lock:
            instances = self._bucket(identity)
            instance = instances.pop(address, None)
            if instance is None:
                raise NotFoundError(NotFoundKind.INSTANCE_UNKNOWN)
            self._prune(identity)
            log_instance_unregistered(logger, instance)
            return True

    async def list_all(self) -> Dict[str, Dict[str, List[Instance]]]:
        """Point-in-time copy of every identity and instance, healthy or not"""
        async with self._lock:
            return {
                service_name: {
                    version: [inst.snapshot() for inst in instances.values()]
                    for version, instances in versions.items()
                }
                for service_name, versions in self._services.items()
            }

    async def get_instances(self, identity: ServiceIdentity) -> List[Instance]:
        """All instances of one identity, RUNNING and DOWN

        Inspection helper for tests and embedding code; the HTTP surface
        reads the registry through list_all() and discover().
        """
        async with self._lock:
            return [inst.snapshot() for inst in self._bucket(identity).values()]

    async def stats(self) -> Dict[str, int]:
        async with self._lock:
            all_instances = [
                inst
                for versions in self._services.values()
                for instances in versions.values()
                for inst in instances.values()
            ]
            running = sum(1 for inst in all_instances if inst.is_running)
            return {
                "services": len(self._services),
                "versions": sum(len(v) for v in self._services.values()),
                "instances": len(all_instances),
                "running": running,
                "down": len(all_instances) - running,
            }

    async def sweep(self, timeout_seconds: float, policy: ReaperPolicy) -> SweepResult:
        """Apply the liveness timeout to every RUNNING instance"""
        result = SweepResult()
        async with self._lock:
            now = self._clock()
            for service_name in list(self._services.keys()):
                for version in list(self._services[service_name].keys()):
                    self._sweep_bucket(
                        ServiceIdentity(service_name, version),
                        now,
                        timeout_seconds,
                        policy,
                        result,
                    )
        return result

    def _sweep_bucket(
        self,
        identity: ServiceIdentity,
        now: float,
        timeout_seconds: float,
        policy: ReaperPolicy,
        result: SweepResult,
    ) -> None:
        instances = self._services[identity.service_name][identity.version]
        for address in list(instances.keys()):
            instance = instances[address]
            try:
                if not instance.is_running:
                    continue
                age = now - instance.last_heartbeat
                if age <= timeout_seconds:
                    continue

                if policy == ReaperPolicy.EVICT:
                    del instances[address]
                    result.evicted.append(instance.snapshot())
                    log_instance_evicted(logger, instance, age)
                else:
                    instance.status = InstanceStatus.DOWN
                    result.marked_down.append(instance.snapshot())
                    log_instance_marked_down(logger, instance, age)
            except Exception as e:
                result.errors += 1
                logger.error(
                    f"Error evaluating instance {identity} at {address}: {e}",
                    extra={
                        "service_name": identity.service_name,
                        "version": identity.version,
                        "address": address,
                        "error_type": "sweep_instance_error",
                    },
                )
        self._prune(identity)

    def _bucket(self, identity: ServiceIdentity) -> Dict[str, Instance]:
        versions = self._services.get(identity.service_name)
        if versions is None:
            raise NotFoundError(NotFoundKind.SERVICE_UNKNOWN)
        instances = versions.get(identity.version)
        if instances is None:
            raise NotFoundError(NotFoundKind.VERSION_UNKNOWN)
        return instances

    def _prune(self, identity: ServiceIdentity) -> None:
        """Drop the version and service entries once they hold nothing"""
        versions = self._services.get(identity.service_name)
        if versions is None:
            return
        if identity.version in versions and not versions[identity.version]:
            del versions[identity.version]
        if not versions:
            del self._services[identity.service_name]

    @staticmethod
    def _require_fields(identity: ServiceIdentity, address: str, message: str) -> None:
        required = (identity.service_name, identity.version, address)
        if not all(value and value.strip() for value in required):
            raise ValidationError(message)
