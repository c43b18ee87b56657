"""Printing a short summary of a cluster known to OCM."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

logger = logging.getLogger(__name__)

FIELD_WIDTH = 25


@dataclass(frozen=True)
class ClusterInfo:
    """The cluster attributes shown to the user."""

    id: str
    name: str = ""
    state: str = ""
    region: str = ""
    cloud_provider: str = ""
    hypershift_enabled: bool = False
    openshift_version: str = ""
    limited_support_reason_count: int = 0


def _format_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _print_field(name: str, value: Any) -> None:
    print(f"{name:<{FIELD_WIDTH}} {_format_value(value)}")


def print_cluster_info(cluster_id: str, ocm: Any) -> None:
    """Print the basic information of a cluster.

    ``ocm`` needs ``get_cluster_info_by_id(cluster_id)``, ``setup_ocm_connection()``
    and ``is_cluster_access_protection_enabled(connection, cluster_id)``.
    """
    try:
        info = ocm.get_cluster_info_by_id(cluster_id)
    except Exception as exc:
        raise RuntimeError(f"error retrieving cluster info: {exc}") from exc

    _print_field("Cluster ID:", info.id)
    _print_field("Cluster Name:", info.name)
    _print_field("Cluster Status:", info.state)
    _print_field("Cluster Region:", info.region)
    _print_field("Cluster Provider:", info.cloud_provider)
    _print_field("Hypershift Enabled:", info.hypershift_enabled)
    _print_field("Version:", info.openshift_version)
    limited_support_status(cluster_id, ocm)
    access_protection_status(cluster_id, ocm)

    logger.info("Basic cluster information displayed. clusterID=%s", cluster_id)


def access_protection_status(cluster_id: str, ocm: Any) -> str:
    """Print and return "Enabled" or "Disabled", or return a description of the failure."""
    try:
        connection = ocm.setup_ocm_connection()
    except Exception as exc:
        logger.error("Error setting up OCM connection: %s", exc)
        return f"Error setting up OCM connection: {exc}"
    try:
        try:
            enabled = ocm.is_cluster_access_protection_enabled(connection, cluster_id)
        except Exception as exc:
            print("Error retrieving access protection status: ", exc)
            return f"Error retrieving access protection status: {exc}"
    finally:
        if connection is not None:
            connection.close()

    status = "Enabled" if enabled else "Disabled"
    print(f"{'Access Protection:':<{FIELD_WIDTH}} {status}")
    return status


def limited_support_status(cluster_id: str, ocm: Any) -> str:
    """Print whether the cluster is in limited support; return the reason count."""
    try:
        info = ocm.get_cluster_info_by_id(cluster_id)
    except Exception as exc:
        return f"Error retrieving cluster info: {exc}"
    label = "Limited Support Status: "
    if info.limited_support_reason_count != 0:
        print(f"{label:<{FIELD_WIDTH}} Limited Support")
    else:
        print(f"{label:<{FIELD_WIDTH}} Fully Supported")
    return str(info.limited_support_reason_count)