import random
import time
from contextlib import asynccontextmanager
from typing import Callable, List, Optional

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from service_registry.api import api_router
from service_registry.config import (
    API_PREFIX,
    ADDRESSING_MODE,
    CORS_ALLOW_ORIGINS,
    LOG_LEVEL,
    LOG_FORMAT_TYPE,
    LOG_ENABLE_CONSOLE,
    LOG_ENABLE_FILE,
    LOG_FILE_PATH,
    REAPER_ENABLED,
    REAPER_INTERVAL_SECONDS,
    REAPER_POLICY,
    REGISTRY_TIMEOUT_SECONDS,
    TRUST_PROXY,
)
from service_registry.constants import (
    ERROR_INVALID_REQUEST,
    HEALTH_ENDPOINT,
    HTTP_BAD_REQUEST,
)
from service_registry.logger_config import RegistryLogger
from service_registry.registry import Reaper, Registry
from service_registry.types import AddressingMode, ReaperPolicy

# Configure logging
RegistryLogger.setup_logging(
    level=LOG_LEVEL,
    format_type=LOG_FORMAT_TYPE,
    enable_console=LOG_ENABLE_CONSOLE,
    enable_file=LOG_ENABLE_FILE,
    log_file_path=LOG_FILE_PATH,
)

logger = RegistryLogger.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager"""
    logger.info("Starting Service Registry...")

    await app.state.reaper.start()

    try:
        logger.info("Service Registry started successfully")
        yield
    finally:
        await app.state.reaper.stop()
        logger.info("Service Registry stopped")


async def request_validation_handler(request: Request, exc: RequestValidationError):
    """Malformed bodies are a client error like any missing field"""
    return JSONResponse(
        status_code=HTTP_BAD_REQUEST,
        content={
            "detail": ERROR_INVALID_REQUEST,
            "errors": jsonable_encoder(exc.errors()),
        },
    )


def create_app(
    registry: Optional[Registry] = None,
    clock: Callable[[], float] = time.time,
    rng: Optional[random.Random] = None,
    timeout_seconds: float = REGISTRY_TIMEOUT_SECONDS,
    reaper_interval_seconds: float = REAPER_INTERVAL_SECONDS,
    reaper_policy: str = REAPER_POLICY,
    reaper_enabled: bool = REAPER_ENABLED,
    addressing_mode: str = ADDRESSING_MODE,
    trust_proxy: bool = TRUST_PROXY,
    api_prefix: str = API_PREFIX,
    cors_allow_origins: Optional[List[str]] = None,
) -> FastAPI:
    """Build the application together with the registry and reaper it owns"""
    registry = registry or Registry(clock=clock, rng=rng)
    reaper = Reaper(
        registry,
        interval_seconds=reaper_interval_seconds,
        timeout_seconds=timeout_seconds,
        policy=ReaperPolicy(reaper_policy),
        enabled=reaper_enabled,
    )

    app = FastAPI(
        title="Service Registry",
        description="Registration, heartbeat and discovery of service instances",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.registry = registry
    app.state.reaper = reaper
    app.state.addressing_mode = AddressingMode(addressing_mode)
    app.state.trust_proxy = trust_proxy

    origins = cors_allow_origins if cors_allow_origins is not None else CORS_ALLOW_ORIGINS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(RequestValidationError, request_validation_handler)

    app.include_router(api_router, prefix=api_prefix)

    @app.get("/")
    def root():
        return {"message": "Service Registry is running 🔍"}

    @app.get(HEALTH_ENDPOINT)
    async def health_check():
        """Health check endpoint for the registry itself"""
        counts = await app.state.registry.stats()
        return {
            "status": "healthy",
            "service": "service-registry",
            "reaper_running": app.state.reaper.is_running(),
            "reaper_policy": app.state.reaper.policy.value,
            **counts,
        }

    return app


app = create_app()


def main():
    """Main entry point for the service"""
    import uvicorn
    from service_registry.config import SERVICE_REGISTRY_HOST, SERVICE_REGISTRY_PORT

    uvicorn.run(
        "service_registry.main:app",
        host=SERVICE_REGISTRY_HOST,
        port=SERVICE_REGISTRY_PORT,
        reload=False,
        log_level=LOG_LEVEL.lower(),
    )


if __name__ == "__main__":
    main()
