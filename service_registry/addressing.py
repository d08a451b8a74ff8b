"""
Derivation of instance addresses from registration requests.

An instance is identified inside its bucket by address alone. Depending on the
deployment the address is either the URL the instance reports about itself, or
``http://<peer ip>:<port>`` built from the connection it registered over.
"""

from typing import Optional
from urllib.parse import urlsplit

from service_registry.constants import (
    ALLOWED_URL_SCHEMES,
    ERROR_INVALID_URL,
    ERROR_PORT_REQUIRED,
    ERROR_CLIENT_ADDRESS_UNKNOWN,
)
from service_registry.errors import ValidationError
from service_registry.types import AddressingMode, ServiceIdentity


def build_identity(service_name: Optional[str], version: Optional[str]) -> ServiceIdentity:
    return ServiceIdentity(
        service_name=(service_name or "").strip(),
        version=(version or "").strip(),
    )


def validate_url(url: str) -> str:
    """Return the stripped URL, or raise ValidationError if it is not absolute http(s)"""
    candidate = url.strip()
    try:
        parts = urlsplit(candidate)
        # Accessing .port validates the port range
        parts.port
    except ValueError:
        raise ValidationError(ERROR_INVALID_URL)
    if parts.scheme.lower() not in ALLOWED_URL_SCHEMES or not parts.hostname:
        raise ValidationError(ERROR_INVALID_URL)
    return candidate


def client_ip_from_headers(
    peer_host: Optional[str], forwarded_for: Optional[str], trust_proxy: bool
) -> Optional[str]:
    """First X-Forwarded-For hop when behind a trusted proxy, else the socket peer"""
    if trust_proxy and forwarded_for:
        first_hop = forwarded_for.split(",")[0].strip()
        if first_hop:
            return first_hop
    return peer_host


def format_ip_port(ip: str, port: int) -> str:
    if ":" in ip and not ip.startswith("["):
        ip = f"[{ip}]"
    return f"http://{ip}:{port}"


def resolve_address(
    mode: AddressingMode,
    url: Optional[str] = None,
    port: Optional[int] = None,
    client_ip: Optional[str] = None,
) -> str:
    """
    Resolve the address an instance is keyed by.

    Returns an empty string when the field the mode needs is absent, so the
    registry reports it together with the other required fields. Raises
    ValidationError when the field is present but unusable.
    """
    if mode == AddressingMode.URL:
        if not url or not url.strip():
            return ""
        return validate_url(url)

    if port is None:
        raise ValidationError(ERROR_PORT_REQUIRED)
    if not client_ip:
        raise ValidationError(ERROR_CLIENT_ADDRESS_UNKNOWN)
    return format_ip_port(client_ip, port)
