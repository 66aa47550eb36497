from unittest.mock import MagicMock, patch

import dns.resolver
import pytest

from mohstats.services.shared import dns as dns_utils
from mohstats.services.shared.errors import ResolutionError


@pytest.fixture(autouse=True)
def clear_dns_cache():
    dns_utils._dns_cache.clear()
    dns_utils._dns_ttl.clear()
    yield


def test_ip_literals_pass_through():
    with patch.object(dns_utils, "_get_resolver") as get_resolver:
        assert dns_utils.resolve_to_ip("84.200.1.2") == "84.200.1.2"
        assert dns_utils.resolve_to_ip(" 2001:db8::1 ") == "2001:db8::1"
    get_resolver.assert_not_called()


def test_hostname_resolved_and_cached():
    resolver = MagicMock()
    resolver.resolve.return_value = ["84.200.1.2"]
    with patch.object(dns_utils, "_get_resolver", return_value=resolver):
        assert dns_utils.resolve_to_ip("Moh.Example.org") == "84.200.1.2"
        assert dns_utils.resolve_to_ip("moh.example.org") == "84.200.1.2"
    resolver.resolve.assert_called_once_with("moh.example.org", "A")


def test_unresolvable_hostname():
    resolver = MagicMock()
    resolver.resolve.side_effect = dns.resolver.NXDOMAIN()
    with patch.object(dns_utils, "_get_resolver", return_value=resolver):
        with pytest.raises(ResolutionError) as exc:
            dns_utils.resolve_to_ip("no.such.host")
    assert exc.value.host == "no.such.host"


def test_empty_host():
    with pytest.raises(ResolutionError):
        dns_utils.resolve_to_ip("  ")
