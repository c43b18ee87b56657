"""Locating the backplane cluster from a kubeconfig or a cluster key."""

from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass
from typing import Any, Optional
from urllib.parse import urlsplit

from bpcli.info import BACKPLANE_URL_ENV_NAME
from bpcli.kubeconfig import current_server, default_kubeconfig_path, load_kubeconfig
from bpcli.utils import CLUSTER_ID_REGEXP

logger = logging.getLogger(__name__)

_CLUSTER_ID = re.compile(CLUSTER_ID_REGEXP)


@dataclass(frozen=True)
class BackplaneCluster:
    """A cluster reached through the backplane API."""

    cluster_id: str
    cluster_url: str
    backplane_host: str


def cluster_id_and_host_from_url(cluster_url: str) -> tuple[str, str]:
    """Split a backplane cluster URL into the cluster ID and the https host."""
    parsed = urlsplit(cluster_url)
    host = "https://" + parsed.netloc.rpartition("@")[2]
    match = _CLUSTER_ID.search(parsed.path)
    if match is None:
        raise ValueError("couldn't find cluster-id from the backplane cluster url")
    return match.group(1), host


def backplane_cluster_from_config(path: Optional[str] = None) -> BackplaneCluster:
    """Find the backplane cluster of the current kubeconfig context."""
    logger.debug("Finding target cluster from kube config")
    config = load_kubeconfig(path if path is not None else default_kubeconfig_path())
    server = current_server(config)
    cluster_id, host = cluster_id_and_host_from_url(server)
    cluster = BackplaneCluster(cluster_id=cluster_id, cluster_url=server, backplane_host=host)
    logger.debug("Found target cluster %s", cluster)
    return cluster


def backplane_cluster_from_key(
    cluster_key: str, ocm: Any, backplane_url: Optional[str] = None
) -> BackplaneCluster:
    """Search a cluster by ID, name or external ID and build its backplane URL.

    ``ocm`` needs a ``get_target_cluster(key)`` method returning ``(id, name)``.
    Without ``backplane_url`` the BACKPLANE_URL environment variable is used.
    """
    logger.debug("Finding target cluster for key %s", cluster_key)
    cluster_id, cluster_name = ocm.get_target_cluster(cluster_key)
    url = backplane_url or os.environ.get(BACKPLANE_URL_ENV_NAME, "")
    if not url:
        raise ValueError("can't find backplane url")
    cluster = BackplaneCluster(
        cluster_id=cluster_id,
        cluster_url=f"{url}/backplane/cluster/{cluster_id}",
        backplane_host=url,
    )
    logger.debug("Found target cluster %s named %s", cluster, cluster_name)
    return cluster


def get_backplane_cluster(
    cluster_key: Optional[str] = None,
    ocm: Any = None,
    backplane_url: Optional[str] = None,
    path: Optional[str] = None,
) -> BackplaneCluster:
    """Search by cluster key if given, else read the cluster from the kubeconfig."""
    if cluster_key:
        if ocm is None:
            raise ValueError("an OCM client is needed to search a cluster key")
        return backplane_cluster_from_key(cluster_key, ocm, backplane_url)
    return backplane_cluster_from_config(path)