import pytest

from service_registry.addressing import (
    build_identity,
    client_ip_from_headers,
    format_ip_port,
    resolve_address,
    validate_url,
)
from service_registry.errors import ValidationError
from service_registry.types import AddressingMode, ServiceIdentity


class TestIdentity:
    def test_strips_and_defaults(self):
        assert build_identity(" search ", "v1 ") == ServiceIdentity("search", "v1")
        assert build_identity(None, None) == ServiceIdentity("", "")

    def test_identity_is_hashable_key(self):
        assert {ServiceIdentity("a", "1"): 1}[ServiceIdentity("a", "1")] == 1
        assert str(ServiceIdentity("search", "v1")) == "search@v1"


class TestUrlAddressing:
    @pytest.mark.parametrize(
        "url",
        ["http://10.0.0.1:8080", "https://search.internal/api", " http://h:1 "],
    )
    def test_valid_urls(self, url):
        assert validate_url(url) == url.strip()

    @pytest.mark.parametrize(
        "url", ["search.internal", "ftp://h/", "http://", "http://h:99999", "//h:80"]
    )
    def test_invalid_urls(self, url):
        with pytest.raises(ValidationError):
            validate_url(url)

    def test_absent_url_is_left_to_required_field_check(self):
        assert resolve_address(AddressingMode.URL, url=None) == ""
        assert resolve_address(AddressingMode.URL, url="  ") == ""


class TestIpPortAddressing:
    def test_peer_address(self):
        assert (
            resolve_address(AddressingMode.IP_PORT, port=8080, client_ip="10.0.0.5")
            == "http://10.0.0.5:8080"
        )

    def test_ipv6_is_bracketed(self):
        assert format_ip_port("::1", 80) == "http://[::1]:80"

    def test_missing_port(self):
        with pytest.raises(ValidationError):
            resolve_address(AddressingMode.IP_PORT, client_ip="10.0.0.5")

    def test_missing_client_ip(self):
        with pytest.raises(ValidationError):
            resolve_address(AddressingMode.IP_PORT, port=8080, client_ip=None)

    def test_forwarded_for_only_when_trusted(self):
        assert client_ip_from_headers("10.0.0.1", "1.2.3.4, 5.6.7.8", True) == "1.2.3.4"
        assert client_ip_from_headers("10.0.0.1", "1.2.3.4", False) == "10.0.0.1"
        assert client_ip_from_headers("10.0.0.1", None, True) == "10.0.0.1"
