"""Static information about the backplane CLI and how its version is found."""

from __future__ import annotations

from dataclasses import dataclass, field
from importlib import metadata
from typing import Callable, Optional

# Environment variables
BACKPLANE_URL_ENV_NAME = "BACKPLANE_URL"
BACKPLANE_PROXY_ENV_NAME = "HTTPS_PROXY"
BACKPLANE_CONFIG_PATH_ENV_NAME = "BACKPLANE_CONFIG"
BACKPLANE_KUBECONFIG_ENV_NAME = "KUBECONFIG"

# Configuration
BACKPLANE_CONFIG_DEFAULT_FILE_PATH = ".config/backplane"
BACKPLANE_CONFIG_DEFAULT_FILE_NAME = "config.json"

# Session
BACKPLANE_DEFAULT_SESSION_DIRECTORY = "backplane"

GITHUB_HOST = "github.com"

MONITORING_PLUGIN_NGINX_CONFIG_TEMPLATE = """
	error_log /dev/stdout info;
	events {}
	http {
  	include            /etc/nginx/mime.types;
  	default_type       application/octet-stream;
  	keepalive_timeout  65;
  	server {
    	listen              %s;
    	root                /usr/share/nginx/html;
  	}
	}
	"""

MONITORING_PLUGIN_NGINX_CONFIG_FILENAME = "monitoring-plugin-nginx-%s.conf"

DISTRIBUTION_NAME = "bpcli"

# Set at release time; empty means "work it out from the installed metadata".
VERSION = ""


@dataclass(frozen=True)
class BuildInfo:
    """Version information recorded when the package was built."""

    main_version: str


def default_build_info() -> Optional[BuildInfo]:
    """Return build information from the installed distribution, if any."""
    try:
        return BuildInfo(metadata.version(DISTRIBUTION_NAME))
    except metadata.PackageNotFoundError:
        return None


@dataclass
class InfoService:
    """Works out the version of the running CLI."""

    version: str = VERSION
    build_info: Callable[[], Optional[BuildInfo]] = field(default=default_build_info)

    def get_version(self) -> str:
        """Return the preset version, else the build version, else "unknown"."""
        if self.version:
            return self.version
        info = self.build_info()
        if info is not None:
            return info.main_version.lstrip("v")
        return "unknown"