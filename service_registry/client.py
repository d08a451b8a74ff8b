import asyncio
import os
from typing import Any, Dict, Optional

import httpx
from pydantic import ValidationError

from service_registry.constants import (
    DEFAULT_CLIENT_TIMEOUT_SECONDS,
    DEFAULT_HEARTBEAT_INTERVAL,
    DEFAULT_REGISTRY_URL,
    DISCOVER_ENDPOINT,
    HEARTBEAT_RETRY_DELAY,
    HTTP_CREATED,
    HTTP_OK,
    LOG_HEARTBEAT_LOOP_STARTED,
    LOG_HEARTBEAT_LOOP_STOPPED,
    REGISTER_ENDPOINT,
    SERVICES_ENDPOINT,
    UNREGISTER_ENDPOINT,
)
from service_registry.logger_config import RegistryLogger
from service_registry.types import RegisterRequest

logger = RegistryLogger.get_logger(__name__)


class ServiceRegistryClient:
    """Client library for interacting with the service registry"""

    def __init__(
        self,
        registry_url: str = None,
        timeout_seconds: float = DEFAULT_CLIENT_TIMEOUT_SECONDS,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.registry_url = (
            registry_url or os.getenv("SERVICE_REGISTRY_URL", DEFAULT_REGISTRY_URL)
        ).rstrip("/")
        self.timeout_seconds = timeout_seconds
        self._transport = transport
        self._heartbeat_task: Optional[asyncio.Task] = None
        self._registration: Optional[Dict[str, Any]] = None

    def _http_client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.registry_url,
            timeout=self.timeout_seconds,
            transport=self._transport,
        )

    async def register(
        self,
        service_name: str,
        version: str,
        url: Optional[str] = None,
        port: Optional[int] = None,
        metadata: Dict[str, str] = None,
    ) -> bool:
        """Register this instance; later heartbeats repeat the same payload"""
        try:
            registration = RegisterRequest(
                service_name=service_name,
                version=version,
                url=url,
                port=port,
                metadata=metadata or {},
            ).model_dump(by_alias=True, exclude_none=True)
        except ValidationError as e:
            logger.error(f"Invalid registration for {service_name}@{version}: {e}")
            return False

        if await self._post_registration(registration):
            self._registration = registration
            logger.info(f"Successfully registered instance: {service_name}@{version}")
            return True
        return False

    async def send_heartbeat(self) -> bool:
        """Renew the registration made by register()"""
        if not self._registration:
            logger.warning("No registered instance to send heartbeat for")
            return False
        return await self._post_registration(self._registration)

    async def _post_registration(self, payload: Dict[str, Any]) -> bool:
        try:
            async with self._http_client() as client:
                response = await client.post(REGISTER_ENDPOINT, json=payload)

            if response.status_code in (HTTP_OK, HTTP_CREATED):
                logger.debug(
                    f"Registry accepted {payload.get('serviceName')}@{payload.get('version')}: "
                    f"{response.json().get('message')}"
                )
                return True

            logger.warning(
                f"Registration failed with status {response.status_code}: {response.text}"
            )
            return False

        except Exception as e:
            logger.error(f"Error registering instance: {e}")
            return False

    async def start_heartbeat_loop(
        self, interval_seconds: float = DEFAULT_HEARTBEAT_INTERVAL
    ):
        """Start periodic heartbeat sending"""
        if self._heartbeat_task and not self._heartbeat_task.done():
            logger.warning("Heartbeat loop already running")
            return

        self._heartbeat_task = asyncio.create_task(
            self._heartbeat_loop(interval_seconds)
        )
        logger.info(LOG_HEARTBEAT_LOOP_STARTED.format(interval_seconds))

    async def stop_heartbeat_loop(self):
        """Stop the heartbeat loop"""
        if self._heartbeat_task:
            self._heartbeat_task.cancel()
            try:
                await self._heartbeat_task
            except asyncio.CancelledError:
                pass
            self._heartbeat_task = None
            logger.info(LOG_HEARTBEAT_LOOP_STOPPED)

    async def _heartbeat_loop(self, interval_seconds: float):
        """Internal heartbeat loop"""
        while True:
            try:
                await asyncio.sleep(interval_seconds)
                await self.send_heartbeat()
            except asyncio.CancelledError:
                break
            except Exception as e:
                logger.error(f"Error in heartbeat loop: {e}")
                await asyncio.sleep(HEARTBEAT_RETRY_DELAY)

    async def unregister(self) -> bool:
        """Unregister this instance"""
        if not self._registration:
            logger.warning("No registered instance to unregister")
            return False

        payload = {
            key: value
            for key, value in self._registration.items()
            if key in ("serviceName", "version", "url", "port")
        }
        try:
            async with self._http_client() as client:
                response = await client.request(
                    "DELETE", UNREGISTER_ENDPOINT, json=payload
                )

            if response.status_code == HTTP_OK:
                logger.info(
                    f"Successfully unregistered instance: "
                    f"{payload['serviceName']}@{payload['version']}"
                )
                self._registration = None
                return True

            logger.error(f"Unregistration failed with status {response.status_code}")
            return False

        except Exception as e:
            logger.error(f"Error unregistering instance: {e}")
            return False

    async def discover(self, service_name: str, version: str) -> Optional[Dict[str, Any]]:
        """Ask the registry for one running instance, or None if there is none"""
        try:
            async with self._http_client() as client:
                response = await client.get(
                    f"{DISCOVER_ENDPOINT}/{service_name}/{version}"
                )

            if response.status_code == HTTP_OK:
                return response.json()

            logger.warning(
                f"Discovery of {service_name}@{version} failed with status "
                f"{response.status_code}: {response.json().get('detail')}"
            )
            return None

        except Exception as e:
            logger.error(f"Error discovering {service_name}@{version}: {e}")
            return None

    async def list_services(self) -> Dict[str, Dict[str, list]]:
        """List all registered instances grouped by service and version"""
        try:
            async with self._http_client() as client:
                response = await client.get(SERVICES_ENDPOINT)

            if response.status_code == HTTP_OK:
                return response.json()

            logger.error(f"Service listing failed with status {response.status_code}")
            return {}

        except Exception as e:
            logger.error(f"Error listing services: {e}")
            return {}


async def register_service_with_registry(
    service_name: str,
    version: str,
    url: Optional[str] = None,
    port: Optional[int] = None,
    metadata: Dict[str, str] = None,
    heartbeat_interval: float = DEFAULT_HEARTBEAT_INTERVAL,
    registry_url: Optional[str] = None,
) -> ServiceRegistryClient:
    """Convenience function to register an instance and start its heartbeat loop"""
    client = ServiceRegistryClient(registry_url=registry_url)

    success = await client.register(
        service_name=service_name,
        version=version,
        url=url,
        port=port,
        metadata=metadata,
    )

    if success:
        await client.start_heartbeat_loop(heartbeat_interval)
        return client
    else:
        raise RuntimeError(f"Failed to register {service_name}@{version} with registry")
