from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request, Response

from service_registry.addressing import (
    build_identity,
    client_ip_from_headers,
    resolve_address,
)
from service_registry.constants import (
    REGISTER_ENDPOINT,
    DISCOVER_ENDPOINT,
    UNREGISTER_ENDPOINT,
    SERVICES_ENDPOINT,
    FORWARDED_FOR_HEADER,
    SUCCESS_REGISTERED,
    SUCCESS_HEARTBEAT,
    SUCCESS_UNREGISTERED,
    HTTP_OK,
    HTTP_CREATED,
    HTTP_BAD_REQUEST,
    HTTP_NOT_FOUND,
    HTTP_INTERNAL_SERVER_ERROR,
)
from service_registry.errors import NotFoundError, ValidationError
from service_registry.logger_config import RegistryLogger
from service_registry.registry import Registry
from service_registry.types import (
    InstanceResponse,
    RegisterRequest,
    RegistrationResponse,
    ServiceListResponse,
    UnregisterRequest,
    UnregistrationResponse,
)

logger = RegistryLogger.get_logger(__name__)

router = APIRouter()


def get_registry(request: Request) -> Registry:
    """The registry owned by the running application"""
    return request.app.state.registry


def _resolve_request_address(
    request: Request, url: Optional[str], port: Optional[int]
) -> str:
    peer_host = request.client.host if request.client else None
    client_ip = client_ip_from_headers(
        peer_host,
        request.headers.get(FORWARDED_FOR_HEADER),
        request.app.state.trust_proxy,
    )
    return resolve_address(request.app.state.addressing_mode, url, port, client_ip)


@router.post(REGISTER_ENDPOINT, response_model=RegistrationResponse)
async def register_instance(
    body: RegisterRequest,
    request: Request,
    response: Response,
    registry: Registry = Depends(get_registry),
):
    """Register a new instance, or record a heartbeat for a known one"""
    try:
        identity = build_identity(body.service_name, body.version)
        address = _resolve_request_address(request, body.url, body.port)
        result = await registry.register(identity, address, body.metadata)

    except ValidationError as e:
        raise HTTPException(status_code=HTTP_BAD_REQUEST, detail=e.message)
    except Exception as e:
        logger.error(f"Error registering instance: {e}")
        raise HTTPException(
            status_code=HTTP_INTERNAL_SERVER_ERROR,
            detail=f"Registration failed: {str(e)}",
        )

    if result.created:
        response.status_code = HTTP_CREATED
        message = SUCCESS_REGISTERED
    else:
        response.status_code = HTTP_OK
        message = SUCCESS_HEARTBEAT
    return RegistrationResponse(success=True, message=message, created=result.created)


@router.get(
    DISCOVER_ENDPOINT + "/{service_name}/{version}", response_model=InstanceResponse
)
async def discover_instance(
    service_name: str, version: str, registry: Registry = Depends(get_registry)
):
    """Return one running instance of the given service version"""
    try:
        instance = await registry.discover(build_identity(service_name, version))
        return InstanceResponse.from_instance(instance)

    except NotFoundError as e:
        raise HTTPException(status_code=HTTP_NOT_FOUND, detail=e.message)
    except Exception as e:
        logger.error(f"Error discovering {service_name}@{version}: {e}")
        raise HTTPException(
            status_code=HTTP_INTERNAL_SERVER_ERROR,
            detail=f"Discovery failed: {str(e)}",
        )


@router.delete(UNREGISTER_ENDPOINT, response_model=UnregistrationResponse)
async def unregister_instance(
    body: UnregisterRequest,
    request: Request,
    registry: Registry = Depends(get_registry),
):
    """Remove an instance regardless of its status"""
    try:
        identity = build_identity(body.service_name, body.version)
        address = _resolve_request_address(request, body.url, body.port)
        await registry.unregister(identity, address)
        return UnregistrationResponse(success=True, message=SUCCESS_UNREGISTERED)

    except ValidationError as e:
        raise HTTPException(status_code=HTTP_BAD_REQUEST, detail=e.message)
    except NotFoundError as e:
        raise HTTPException(status_code=HTTP_NOT_FOUND, detail=e.message)
    except Exception as e:
        logger.error(f"Error unregistering instance: {e}")
        raise HTTPException(
            status_code=HTTP_INTERNAL_SERVER_ERROR,
            detail=f"Unregistration failed: {str(e)}",
        )


@router.get(SERVICES_ENDPOINT, response_model=ServiceListResponse)
async def list_all_services(registry: Registry = Depends(get_registry)):
    """List every registered instance grouped by service and version"""
    try:
        all_services = await registry.list_all()
        return {
            service_name: {
                version: [InstanceResponse.from_instance(inst) for inst in instances]
                for version, instances in versions.items()
            }
            for service_name, versions in all_services.items()
        }

    except Exception as e:
        logger.error(f"Error listing services: {e}")
        raise HTTPException(
            status_code=HTTP_INTERNAL_SERVER_ERROR,
            detail=f"Failed to list services: {str(e)}",
        )
