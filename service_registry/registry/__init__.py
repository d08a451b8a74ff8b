from service_registry.registry.registry import Registry
from service_registry.registry.reaper import Reaper

__all__ = ["Registry", "Reaper"]
