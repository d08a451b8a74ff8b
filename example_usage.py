#!/usr/bin/env python3
"""
Example script showing how an instance uses the Service Registry client

This script:
1. Registers an instance of "search@v1" and keeps it alive with heartbeats
2. Periodically discovers a peer service and prints the registry contents
3. Unregisters on shutdown
"""

import asyncio
import logging
import os
import sys

from service_registry.client import (
    ServiceRegistryClient,
    register_service_with_registry,
)

logging.basicConfig(
    level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


class ExampleService:
    """Example service that registers itself and looks up a peer"""

    def __init__(self, service_name: str, version: str, url: str, peer: tuple):
        self.service_name = service_name
        self.version = version
        self.url = url
        self.peer = peer
        self.registry_client: ServiceRegistryClient = None
        self.running = False

    async def start(self):
        """Register and run until cancelled"""
        logger.info(f"Starting {self.service_name}@{self.version} at {self.url}")

        self.registry_client = await register_service_with_registry(
            service_name=self.service_name,
            version=self.version,
            url=self.url,
            metadata={"environment": "development"},
            heartbeat_interval=5,
            registry_url=os.getenv("SERVICE_REGISTRY_URL", "http://localhost:3009"),
        )
        self.running = True
        logger.info("Instance registered with the service registry")

        await self._service_loop()

    async def _service_loop(self):
        while self.running:
            await self._report()
            await asyncio.sleep(10)

    async def _report(self):
        peer_name, peer_version = self.peer
        peer = await self.registry_client.discover(peer_name, peer_version)
        if peer:
            logger.info(f"Would call {peer_name}@{peer_version} at {peer['url']}")
        else:
            logger.info(f"No running instance of {peer_name}@{peer_version}")

        for service_name, versions in (
            await self.registry_client.list_services()
        ).items():
            for version, instances in versions.items():
                for instance in instances:
                    logger.info(
                        f"  {service_name}@{version} {instance['url']} ({instance['status']})"
                    )

    async def stop(self):
        """Stop heartbeating and unregister"""
        logger.info("Stopping service...")
        self.running = False

        if self.registry_client:
            await self.registry_client.stop_heartbeat_loop()
            await self.registry_client.unregister()

        logger.info("Service stopped")


async def main():
    service = ExampleService(
        service_name="search",
        version="v1",
        url="http://localhost:8080",
        peer=("billing", "v2"),
    )
    try:
        await service.start()
    except asyncio.CancelledError:
        pass
    finally:
        await service.stop()


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        logger.info("Example stopped by user")
    except Exception as e:
        logger.error(f"Example failed: {e}")
        sys.exit(1)
