"""Helpers for proxying the monitoring dashboards of a backplane cluster."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Optional
from urllib.parse import urlsplit, urlunsplit

ALERTMANAGER = "alertmanager"
PROMETHEUS = "prometheus"
THANOS = "thanos"
GRAFANA = "grafana"
OPENSHIFT_MONITORING_NS = "openshift-monitoring"

VALID_MONITORING_NAMES = (PROMETHEUS, ALERTMANAGER, THANOS, GRAFANA)

_DEPRECATED_UIS = (PROMETHEUS, ALERTMANAGER, GRAFANA)

_SEMVER = re.compile(
    r"v?([0-9]+)(\.[0-9]+)?(\.[0-9]+)?"
    r"(-([0-9A-Za-z\-]+(\.[0-9A-Za-z\-]+)*))?"
    r"(\+([0-9A-Za-z\-]+(\.[0-9A-Za-z\-]+)*))?"
)


@dataclass
class MonitoringOptions:
    """Options of the monitoring command."""

    namespace: str = OPENSHIFT_MONITORING_NS
    selector: str = ""
    port: str = ""
    origin_url: str = ""
    listen_addr: str = ""
    browser: bool = False
    keep_alive: bool = False


def single_joining_slash(a: str, b: str) -> str:
    """Join two URL paths with exactly one slash between them."""
    a_slash = a.endswith("/")
    b_slash = b.startswith("/")
    if a_slash and b_slash:
        return a + b[1:]
    if not a_slash and not b_slash:
        return a + "/" + b
    return a + b


def backplane_monitoring_url(host: str, monitoring_type: str) -> str:
    """Turn a backplane cluster API URL into the URL of a monitoring UI."""
    if "backplane/cluster" not in host:
        raise ValueError(
            "the api server is not a backplane url, please make sure you login to the "
            "cluster using backplane"
        )
    url = host.replace("backplane/cluster", f"backplane/{monitoring_type}", 1)
    return url[:-1] if url.endswith("/") else url


def _minor_version(version: str) -> int:
    match = _SEMVER.fullmatch(version)
    if match is None:
        raise ValueError("Invalid Semantic Version")
    return int(match.group(2)[1:]) if match.group(2) else 0


def validate_cluster_version(
    monitoring_name: str, namespace: str, cluster_version: Optional[str]
) -> None:
    """Reject UIs deprecated from 4.11 on when the openshift-monitoring namespace is used."""
    if namespace != OPENSHIFT_MONITORING_NS or not cluster_version:
        return
    if _minor_version(cluster_version) >= 11 and monitoring_name in _DEPRECATED_UIS:
        raise ValueError(
            "this cluster's version is 4.11 or greater. "
            "Following version 4.11, Prometheus, AlertManager and Grafana monitoring UIs "
            "are deprecated, please use 'ocm backplane console' and use the observe tab "
            "for the same"
        )


def prepare_proxy_request(
    request_url: str,
    target_url: str,
    user_name: str,
    access_token: str,
    is_grafana: bool,
    options: MonitoringOptions,
) -> tuple[str, dict[str, str]]:
    """Return the upstream URL and headers for a request sent through the proxy."""
    request = urlsplit(request_url)
    target = urlsplit(target_url)
    path = single_joining_slash(target.path, request.path)
    url = urlunsplit(("https", target.netloc, path, request.query, request.fragment))

    # an explicit empty User-Agent keeps any default from being sent
    headers: dict[str, str] = {"User-Agent": ""}
    if is_grafana:
        headers["x-forwarded-user"] = user_name
    if options.namespace:
        headers["x-namespace"] = options.namespace
    if options.selector:
        headers["x-selector"] = options.selector
    if options.port:
        headers["x-port"] = options.port
    headers["Authorization"] = f"Bearer {access_token}"
    return url, headers