"""Reading, writing and adjusting kubeconfig files."""

from __future__ import annotations

import copy
import json
import logging
import os
import re
import shutil
import tempfile
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Optional

import yaml

from bpcli.info import BACKPLANE_KUBECONFIG_ENV_NAME
from bpcli.utils import append_unique_non_empty, ask_question_from_prompt

logger = logging.getLogger(__name__)

ELEVATE_EXTENSION_NAME = "ElevateContext"
ELEVATE_EXTENSION_RETENTION_MINUTES = 20
ELEVATION_USER = "backplane-cluster-admin"

_DEFAULT_KUBECONFIG: dict[str, Any] = {
    "apiVersion": "v1",
    "kind": "Config",
    "preferences": {},
    "clusters": [
        {
            "name": "dummy_cluster",
            "cluster": {
                "server": "https://api-backplane.apps.something.com/backplane/cluster/configcluster"
            },
        }
    ],
    "contexts": [
        {
            "name": "default/test123/anonymous",
            "context": {"cluster": "dummy_cluster", "namespace": "default"},
        }
    ],
    "users": [],
    "current-context": "default/test123/anonymous",
}

_temp_kubeconfig_file_name = "config"
_kube_config_base_path = ""

_FRACTION = re.compile(r"\.(\d+)")


def _parse_time(value: Any) -> datetime:
    if isinstance(value, datetime):
        moment = value
    else:
        text = str(value).strip()
        if text[-1:] in ("Z", "z"):
            text = text[:-1] + "+00:00"
        text = _FRACTION.sub(lambda m: "." + m.group(1)[:6].ljust(6, "0"), text, count=1)
        moment = datetime.fromisoformat(text)
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment


@dataclass
class ElevateContext:
    """Elevation reasons stored in a kubeconfig context extension."""

    reasons: list[str] = field(default_factory=list)
    last_used: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> dict[str, Any]:
        """Return the extension body as stored in the kubeconfig."""
        return {"reasons": list(self.reasons), "lastUsed": self.last_used.isoformat()}

    @classmethod
    def from_value(cls, value: Any) -> Optional["ElevateContext"]:
        """Build an ElevateContext from a stored extension, or None if it is not one."""
        if isinstance(value, ElevateContext):
            return value
        if not isinstance(value, dict):
            return None
        reasons = value.get("reasons") or []
        if not isinstance(reasons, list) or not all(isinstance(r, str) for r in reasons):
            return None
        try:
            last_used = _parse_time(value["lastUsed"])
        except (KeyError, TypeError, ValueError):
            return None
        return cls(list(reasons), last_used)


def _empty_config() -> dict[str, Any]:
    return {
        "apiVersion": "v1",
        "kind": "Config",
        "preferences": {},
        "clusters": [],
        "contexts": [],
        "users": [],
        "current-context": "",
    }


def _find(config: dict[str, Any], section: str, name: Any) -> Optional[dict[str, Any]]:
    for entry in config.get(section) or []:
        if isinstance(entry, dict) and entry.get("name") == name:
            return entry
    return None


def _current_context(config: dict[str, Any]) -> Optional[dict[str, Any]]:
    name = config.get("current-context")
    if not name:
        return None
    entry = _find(config, "contexts", name)
    if entry is None:
        return None
    context = entry.get("context")
    if context is None:
        context = entry["context"] = {}
    return context


def default_kubeconfig_path() -> str:
    """Return the kubeconfig file in use: the first KUBECONFIG entry or ~/.kube/config."""
    for entry in os.environ.get(BACKPLANE_KUBECONFIG_ENV_NAME, "").split(os.pathsep):
        if entry:
            return entry
    return os.path.join(os.path.expanduser("~"), ".kube", "config")


def load_kubeconfig(path: str | os.PathLike[str]) -> dict[str, Any]:
    """Load a kubeconfig file into a dictionary."""
    with open(path, encoding="utf-8") as handle:
        data = yaml.safe_load(handle)
    if data is None:
        return _empty_config()
    if not isinstance(data, dict):
        raise ValueError(f"invalid kubeconfig {path}: not a mapping")
    return data


def read_kubeconfig_raw() -> dict[str, Any]:
    """Load the kubeconfig in use, or an empty one if the file is missing."""
    path = default_kubeconfig_path()
    if not os.path.exists(path):
        return _empty_config()
    return load_kubeconfig(path)


def write_kubeconfig(config: dict[str, Any], path: str | os.PathLike[str]) -> None:
    """Write a kubeconfig to a file readable only by its owner."""
    Path(path).parent.mkdir(parents=True, exist_ok=True)
    fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
    with os.fdopen(fd, "w", encoding="utf-8") as handle:
        yaml.safe_dump(config, handle, default_flow_style=False, sort_keys=False)


def default_kubeconfig() -> dict[str, Any]:
    """Return a copy of the placeholder kubeconfig."""
    return copy.deepcopy(_DEFAULT_KUBECONFIG)


def set_temp_kubeconfig_file_name(name: str) -> None:
    """Set the prefix of temporary kubeconfig file names."""
    global _temp_kubeconfig_file_name
    _temp_kubeconfig_file_name = name


def create_temp_kubeconfig(config: Optional[dict[str, Any]] = None) -> str:
    """Write the config to a temporary file and point KUBECONFIG at it."""
    fd, path = tempfile.mkstemp(prefix=_temp_kubeconfig_file_name)
    os.close(fd)
    write_kubeconfig(config if config is not None else default_kubeconfig(), path)
    os.environ[BACKPLANE_KUBECONFIG_ENV_NAME] = path
    return path


def remove_temp_kubeconfig() -> None:
    """Delete the file KUBECONFIG points at, if set."""
    path = os.environ.get(BACKPLANE_KUBECONFIG_ENV_NAME)
    if path is not None:
        try:
            os.remove(path)
        except OSError:
            pass


def current_server(config: dict[str, Any]) -> str:
    """Return the API server of the current context."""
    context = _current_context(config)
    if context is None:
        raise ValueError("invalid configuration: no configuration has been provided")
    cluster_entry = _find(config, "clusters", context.get("cluster")) or {}
    server = (cluster_entry.get("cluster") or {}).get("server")
    if not server:
        raise ValueError(
            f"invalid configuration: no server found for cluster {context.get('cluster')!r}"
        )
    return server


def set_kubeconfig_base_path(path: str | os.PathLike[str]) -> None:
    """Set the directory under which per-cluster kubeconfigs are kept."""
    global _kube_config_base_path
    _kube_config_base_path = os.fspath(path)


def _kubeconfig_base_path() -> str:
    global _kube_config_base_path
    if not _kube_config_base_path:
        _kube_config_base_path = os.path.join(str(Path.home()), ".kube")
    return _kube_config_base_path


def create_cluster_kubeconfig(cluster_id: str, config: dict[str, Any]) -> str:
    """Write a cluster's kubeconfig in its own folder and point KUBECONFIG at it."""
    folder = os.path.join(_kubeconfig_base_path(), cluster_id)
    os.makedirs(folder, exist_ok=True)
    filename = os.path.join(folder, "config")
    write_kubeconfig(config, filename)
    os.environ[BACKPLANE_KUBECONFIG_ENV_NAME] = filename
    return filename


def remove_cluster_kubeconfig(cluster_id: str) -> None:
    """Delete a cluster's kubeconfig folder if it exists."""
    folder = os.path.join(_kubeconfig_base_path(), cluster_id)
    if os.path.exists(folder):
        shutil.rmtree(folder, ignore_errors=True)


def save_kubeconfig(
    cluster_id: str, config: dict[str, Any], is_multi: bool, kube_path: str
) -> None:
    """Save a kubeconfig per cluster, or to the kubeconfig in use."""
    if is_multi:
        if kube_path:
            set_kubeconfig_base_path(kube_path)
        error: Optional[Exception] = None
        path = ""
        try:
            path = create_cluster_kubeconfig(cluster_id, config)
        except OSError as exc:
            error = exc
        if not kube_path:
            print(f"# Execute the following command to log into the cluster {cluster_id} ")
            print(f"export {BACKPLANE_KUBECONFIG_ENV_NAME}={path}")
        if error is not None:
            raise error
    else:
        write_kubeconfig(config, default_kubeconfig_path())
    logger.debug("Wrote Kube configuration")
    logger.debug(json.dumps(config, default=str))


def _elevate_extension(context: dict[str, Any]) -> Any:
    for entry in context.get("extensions") or []:
        if isinstance(entry, dict) and entry.get("name") == ELEVATE_EXTENSION_NAME:
            return entry.get("extension")
    return None


def get_elevate_context_reasons(config: dict[str, Any]) -> list[str]:
    """Return the stored elevation reasons if they were used recently enough."""
    context = _current_context(config)
    if context is None:
        return []
    elevate = ElevateContext.from_value(_elevate_extension(context))
    if elevate is None:
        return []
    age = datetime.now(timezone.utc) - elevate.last_used
    if age <= timedelta(minutes=ELEVATE_EXTENSION_RETENTION_MINUTES):
        return list(elevate.reasons)
    return []


def add_elevation_reasons(config: dict[str, Any], reasons: list[str]) -> None:
    """Make the current user impersonate the cluster admin, with the reasons."""
    logger.debug("Adding reason for backplane-cluster-admin elevation")
    context = _current_context(config)
    if context is None:
        raise ValueError("no current kubeconfig context")
    user_entry = _find(config, "users", context.get("user"))
    if user_entry is None:
        raise ValueError("no current user information")
    user = user_entry.get("user")
    if user is None:
        user = user_entry["user"] = {}
    extra = user.get("as-user-extra")
    if extra is None:
        extra = user["as-user-extra"] = {}
    extra["reason"] = list(reasons)
    user["as"] = ELEVATION_USER


def save_elevate_context_reasons(config: dict[str, Any], reason: str) -> list[str]:
    """Store the elevation reasons in the current context and save the kubeconfig."""
    context = _current_context(config)
    if context is None:
        raise ValueError("no current kubeconfig context")
    reasons = append_unique_non_empty(get_elevate_context_reasons(config), reason)
    if not reasons:
        reasons = append_unique_non_empty(
            reasons,
            ask_question_from_prompt(
                "Please enter a reason for elevation, it will be stored in current context "
                f"for {ELEVATE_EXTENSION_RETENTION_MINUTES} minutes : "
            ),
        )
    if not reasons:
        raise ValueError("please enter a reason for elevation")
    extensions = [
        entry
        for entry in context.get("extensions") or []
        if not (isinstance(entry, dict) and entry.get("name") == ELEVATE_EXTENSION_NAME)
    ]
    extensions.append(
        {"name": ELEVATE_EXTENSION_NAME, "extension": ElevateContext(list(reasons)).to_dict()}
    )
    context["extensions"] = extensions
    write_kubeconfig(config, default_kubeconfig_path())
    return reasons