"""Checks of VPN, proxy and backplane API connectivity."""

from __future__ import annotations

import logging
import socket
from dataclasses import dataclass, field
from typing import IO, Any, Callable, Iterable, Optional
from urllib.parse import urlsplit

import requests

logger = logging.getLogger(__name__)

VPN_INTERFACE_PREFIXES = ("tun", "tap", "ppp", "wg", "utun")

_PROXY_NOTE = (
    "Note: Proxy connectivity check requires VPN to be connected. "
    "Please ensure VPN is connected and try again."
)


class HealthCheckError(Exception):
    """A connectivity check failed."""


@dataclass
class HealthCheckConfig:
    """The parts of the backplane configuration the checks use."""

    proxy_url: Optional[str] = None
    proxy_check_endpoint: str = ""
    vpn_check_endpoint: str = ""
    url: str = ""


def list_interface_names() -> list[str]:
    """Return the names of the network interfaces of this host."""
    return [name for _, name in socket.if_nameindex()]


def _http_get(url: str, proxy: Optional[str] = None) -> Any:
    proxies = {"http": proxy, "https": proxy} if proxy else None
    return requests.get(url, proxies=proxies, timeout=30)


@dataclass
class HealthChecker:
    """Runs connectivity checks against the configured endpoints.

    ``http_get(url, proxy)`` returns a response with a ``status_code``.
    ``check_api``, when given, checks the backplane API with the configuration
    and raises on failure.
    """

    load_config: Callable[[], HealthCheckConfig]
    interfaces: Callable[[], Iterable[str]] = list_interface_names
    http_get: Callable[[str, Optional[str]], Any] = _http_get
    check_api: Optional[Callable[[HealthCheckConfig], None]] = None
    out: Optional[IO[str]] = field(default=None, repr=False)

    def _config(self) -> HealthCheckConfig:
        try:
            return self.load_config()
        except Exception as exc:
            logger.error("Failed to get backplane configuration: %s", exc)
            raise HealthCheckError(f"failed to get backplane configuration: {exc}") from exc

    def _test_endpoint(self, url: str, proxy: Optional[str] = None) -> None:
        logger.debug("Making GET request to %s", url)
        try:
            response = self.http_get(url, proxy)
        except (requests.RequestException, OSError, ValueError) as exc:
            logger.error("Failed to get response from test endpoint: %s", exc)
            raise HealthCheckError(str(exc)) from exc
        logger.debug("Received response status code: %s", response.status_code)
        if response.status_code != 200:
            message = f"Unexpected status code: {response.status_code}"
            logger.error(message)
            raise HealthCheckError(message)

    def vpn_check_endpoint(self) -> str:
        """Return the configured endpoint reachable only through the VPN."""
        endpoint = self._config().vpn_check_endpoint
        if not endpoint:
            logger.warning("VPN check endpoint not configured")
            raise HealthCheckError("VPN check endpoint not configured")
        return endpoint

    def proxy_test_endpoint(self) -> str:
        """Return the configured endpoint used to test the proxy."""
        endpoint = self._config().proxy_check_endpoint
        if not endpoint:
            logger.warning("proxy test endpoint not configured")
            raise HealthCheckError("proxy test endpoint not configured")
        return endpoint

    def check_vpn(self) -> None:
        """Check that a VPN interface is up and the VPN endpoint answers."""
        try:
            names = list(self.interfaces())
        except OSError as exc:
            logger.error("Failed to get network interfaces: %s", exc)
            raise HealthCheckError(f"failed to get network interfaces: {exc}") from exc

        if not any(name.startswith(VPN_INTERFACE_PREFIXES) for name in names):
            message = f"No VPN interfaces found: [{' '.join(VPN_INTERFACE_PREFIXES)}]"
            logger.warning(message)
            raise HealthCheckError(message)

        endpoint = self.vpn_check_endpoint()
        try:
            self._test_endpoint(endpoint)
        except HealthCheckError as exc:
            message = f"Failed to access internal URL {endpoint}: {exc}"
            logger.error(message)
            raise HealthCheckError(message) from exc

    def check_proxy(self) -> str:
        """Check the test endpoint through the configured proxy; return the proxy URL."""
        config = self._config()
        proxy_url = config.proxy_url
        if not proxy_url:
            message = "no proxy URL configured in backplane configuration"
            logger.warning(message)
            raise HealthCheckError(message)
        logger.info(
            "Getting the working proxy URL ['%s'] from local backplane configuration.", proxy_url
        )
        try:
            urlsplit(proxy_url)
        except ValueError as exc:
            raise HealthCheckError(f"invalid proxy URL: {exc}") from exc

        endpoint = self.proxy_test_endpoint()
        logger.info(
            "Testing connectivity to the pre-defined test endpoint ['%s'] with the proxy.", endpoint
        )
        try:
            self._test_endpoint(endpoint, proxy_url)
        except HealthCheckError as exc:
            message = f"Failed to access target endpoint ['{endpoint}'] with the proxy: {exc}"
            logger.error(message)
            raise HealthCheckError(message) from exc
        return proxy_url

    def _check_backplane_api(self, proxy_url: str) -> None:
        if self.check_api is None:
            raise HealthCheckError("no backplane API check is configured")
        config = self._config()
        if proxy_url:
            config.proxy_url = proxy_url
        try:
            self.check_api(config)
        except Exception as exc:
            logger.error("Failed to access backplane API: %s", exc)
            raise HealthCheckError(f"failed to access backplane API: {exc}") from exc
        self._print("Successfully connected to the backplane API!")

    def _print(self, *parts: object) -> None:
        print(*parts, file=self.out)

    def run(self, check_vpn: bool = False, check_proxy: bool = False) -> int:
        """Run the selected checks, print the outcome and return an exit code."""
        if check_vpn:
            self._print("Checking VPN connectivity...")
            try:
                self.check_vpn()
            except HealthCheckError as exc:
                self._print("VPN connectivity check failed:", exc)
                return 1
            self._print("VPN connectivity check passed!")
            return 0

        if check_proxy:
            try:
                self.check_vpn()
            except HealthCheckError as exc:
                self._print("VPN connectivity check failed:", exc)
                self._print(_PROXY_NOTE)
                return 1
            self._print("Checking proxy connectivity...")
            try:
                self.check_proxy()
            except HealthCheckError as exc:
                self._print("Proxy connectivity check failed:", exc)
                return 1
            self._print("Proxy connectivity check passed!")
            return 0

        return self._check_all()

    def _check_all(self) -> int:
        self._print("Checking VPN connectivity...")
        try:
            self.check_vpn()
        except HealthCheckError as exc:
            self._print("VPN connectivity check failed:", exc)
            return 1
        self._print("VPN connectivity check passed!")

        self._print("Checking proxy connectivity...")
        try:
            proxy_url = self.check_proxy()
        except HealthCheckError as exc:
            self._print("Proxy connectivity check failed:", exc)
            return 1
        self._print("Proxy connectivity check passed!")

        self._print("Checking backplane API connectivity...")
        try:
            self._check_backplane_api(proxy_url)
        except HealthCheckError as exc:
            self._print("Backplane API connectivity check failed:", exc)
            return 1
        self._print("Backplane API connectivity check passed!")
        return 0