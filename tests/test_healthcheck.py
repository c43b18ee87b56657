import io
from dataclasses import dataclass

import pytest

from bpcli.healthcheck import HealthCheckConfig, HealthCheckError, HealthChecker

PROXY_URL = "http://proxy.example.com:8080"
VPN_ENDPOINT = "http://vpn-endpoint"
PROXY_ENDPOINT = "http://proxy-endpoint"


@dataclass
class FakeResponse:
    status_code: int


class FakeHTTP:
    def __init__(self, status=200, error=None):
        self.status = status
        self.error = error
        self.calls = []

    def __call__(self, url, proxy=None):
        self.calls.append((url, proxy))
        if self.error is not None:
            raise self.error
        return FakeResponse(self.status)


def make_checker(config=None, interfaces=("tun0",), http=None, check_api=None):
    config = config if config is not None else HealthCheckConfig(
        proxy_url=PROXY_URL,
        proxy_check_endpoint=PROXY_ENDPOINT,
        vpn_check_endpoint=VPN_ENDPOINT,
    )
    return HealthChecker(
        load_config=lambda: config,
        interfaces=lambda: list(interfaces),
        http_get=http if http is not None else FakeHTTP(),
        check_api=check_api,
        out=io.StringIO(),
    )


def failing_config():
    raise RuntimeError("failed to get backplane configuration")


# Proxy connectivity


def test_proxy_not_configured_is_an_error():
    checker = make_checker(HealthCheckConfig(proxy_url=None))
    with pytest.raises(HealthCheckError, match="no proxy URL configured"):
        checker.check_proxy()


def test_proxy_connectivity_passes_and_returns_proxy_url():
    http = FakeHTTP()
    checker = make_checker(http=http)
    assert checker.check_proxy() == PROXY_URL
    assert http.calls == [(PROXY_ENDPOINT, PROXY_URL)]


def test_proxy_connectivity_fails_on_bad_status():
    checker = make_checker(http=FakeHTTP(status=502))
    with pytest.raises(HealthCheckError) as info:
        checker.check_proxy()
    assert str(info.value) == (
        f"Failed to access target endpoint ['{PROXY_ENDPOINT}'] with the proxy: "
        "Unexpected status code: 502"
    )


def test_proxy_test_endpoint_returns_configured_value():
    checker = make_checker(HealthCheckConfig(proxy_check_endpoint=PROXY_ENDPOINT))
    assert checker.proxy_test_endpoint() == PROXY_ENDPOINT


def test_proxy_test_endpoint_missing_is_an_error():
    checker = make_checker(HealthCheckConfig(proxy_check_endpoint=""))
    with pytest.raises(HealthCheckError, match="proxy test endpoint not configured"):
        checker.proxy_test_endpoint()


def test_proxy_test_endpoint_config_error():
    checker = HealthChecker(load_config=failing_config)
    with pytest.raises(HealthCheckError, match="^failed to get backplane configuration"):
        checker.proxy_test_endpoint()


# VPN connectivity


@pytest.mark.parametrize("name", ["tun0", "utun0", "wg0", "ppp1", "tap2"])
def test_vpn_connected(name):
    http = FakeHTTP()
    checker = make_checker(interfaces=("lo", name), http=http)
    checker.check_vpn()
    assert http.calls == [(VPN_ENDPOINT, None)]


@pytest.mark.parametrize("interfaces", [("eth0",), ()])
def test_vpn_not_connected(interfaces):
    http = FakeHTTP()
    checker = make_checker(interfaces=interfaces, http=http)
    with pytest.raises(HealthCheckError) as info:
        checker.check_vpn()
    assert str(info.value) == "No VPN interfaces found: [tun tap ppp wg utun]"
    assert http.calls == []


def test_vpn_endpoint_unreachable():
    checker = make_checker(http=FakeHTTP(error=OSError("connection refused")))
    with pytest.raises(HealthCheckError) as info:
        checker.check_vpn()
    assert str(info.value) == f"Failed to access internal URL {VPN_ENDPOINT}: connection refused"


def test_vpn_interface_listing_error():
    def broken():
        raise OSError("no interfaces")

    checker = HealthChecker(
        load_config=lambda: HealthCheckConfig(vpn_check_endpoint=VPN_ENDPOINT),
        interfaces=broken,
        http_get=FakeHTTP(),
    )
    with pytest.raises(HealthCheckError, match="failed to get network interfaces: no interfaces"):
        checker.check_vpn()


def test_vpn_check_endpoint_returns_configured_value():
    checker = make_checker(HealthCheckConfig(vpn_check_endpoint=VPN_ENDPOINT))
    assert checker.vpn_check_endpoint() == VPN_ENDPOINT


def test_vpn_check_endpoint_missing_is_an_error():
    checker = make_checker(HealthCheckConfig(vpn_check_endpoint=""))
    with pytest.raises(HealthCheckError, match="VPN check endpoint not configured"):
        checker.vpn_check_endpoint()


def test_vpn_check_endpoint_config_error():
    checker = HealthChecker(load_config=failing_config)
    with pytest.raises(HealthCheckError, match="^failed to get backplane configuration"):
        checker.vpn_check_endpoint()


# Running the checks


def test_run_vpn_only_passes():
    checker = make_checker()
    assert checker.run(check_vpn=True) == 0
    output = checker.out.getvalue()
    assert "Checking VPN connectivity..." in output
    assert "VPN connectivity check passed!" in output
    assert "proxy" not in output


def test_run_proxy_requires_vpn():
    checker = make_checker(interfaces=("eth0",))
    assert checker.run(check_proxy=True) == 1
    output = checker.out.getvalue()
    assert "VPN connectivity check failed:" in output
    assert "Proxy connectivity check requires VPN to be connected" in output


def test_run_proxy_passes():
    checker = make_checker()
    assert checker.run(check_proxy=True) == 0
    assert "Proxy connectivity check passed!" in checker.out.getvalue()


def test_run_all_checks_api_with_proxy():
    seen = []
    checker = make_checker(check_api=lambda config: seen.append(config.proxy_url))
    assert checker.run() == 0
    assert seen == [PROXY_URL]
    output = checker.out.getvalue()
    assert "Successfully connected to the backplane API!" in output
    assert "Backplane API connectivity check passed!" in output


def test_run_all_reports_api_failure():
    def broken(config):
        raise ConnectionError("refused")

    checker = make_checker(check_api=broken)
    assert checker.run() == 1
    assert (
        "Backplane API connectivity check failed: failed to access backplane API: refused"
        in checker.out.getvalue()
    )


def test_run_all_stops_at_proxy_failure():
    seen = []
    checker = make_checker(
        HealthCheckConfig(vpn_check_endpoint=VPN_ENDPOINT),
        check_api=seen.append,
    )
    assert checker.run() == 1
    assert seen == []
    assert "Proxy connectivity check failed:" in checker.out.getvalue()