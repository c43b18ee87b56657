"""Running ``oc`` commands elevated to the backplane cluster admin."""

from __future__ import annotations

import logging
import os
import subprocess
from typing import Any, Callable, Optional, Sequence

from bpcli.info import BACKPLANE_KUBECONFIG_ENV_NAME
from bpcli.kubeconfig import (
    add_elevation_reasons,
    create_temp_kubeconfig,
    read_kubeconfig_raw,
    save_elevate_context_reasons,
)

logger = logging.getLogger(__name__)


def _run_oc(args: Sequence[str]) -> None:
    subprocess.run(list(args), check=True)


def run_elevate(
    argv: Sequence[str],
    read_config: Optional[Callable[[], dict[str, Any]]] = None,
    run_command: Optional[Callable[[Sequence[str]], None]] = None,
) -> None:
    """Record an elevation reason and optionally run an ``oc`` command elevated.

    ``argv[0]`` is the reason, the rest is the ``oc`` command line. With fewer
    than two arguments only the reason is stored in the current context.
    ``run_command`` must raise when the command fails.
    """
    read_config = read_config if read_config is not None else read_kubeconfig_raw
    run_command = run_command if run_command is not None else _run_oc

    logger.debug("Finding target cluster from kubeconfig")
    config = read_config()

    logger.debug("Compute and store reason from/to kubeconfig ElevateContext")
    reason = argv[0] if argv else ""
    reasons = save_elevate_context_reasons(config, reason)

    if len(argv) < 2:
        return

    logger.debug("Adding impersonation RBAC allow permissions to kubeconfig")
    add_elevation_reasons(config, reasons)

    had_kubeconfig = BACKPLANE_KUBECONFIG_ENV_NAME in os.environ
    old_kubeconfig = os.environ.get(BACKPLANE_KUBECONFIG_ENV_NAME, "")
    try:
        temp_path = create_temp_kubeconfig(config)
        try:
            logger.debug("Executing command with temporary kubeconfig as backplane-cluster-admin")
            run_command(["oc", *argv[1:]])
        finally:
            logger.debug("Cleaning up temporary kubeconfig %s", temp_path)
            try:
                os.remove(temp_path)
            except OSError as exc:
                print(exc)
    finally:
        if had_kubeconfig:
            logger.debug("Will set KUBECONFIG variable to original %s", old_kubeconfig)
            os.environ[BACKPLANE_KUBECONFIG_ENV_NAME] = old_kubeconfig
        else:
            logger.debug("Will unset KUBECONFIG variable")
            os.environ.pop(BACKPLANE_KUBECONFIG_ENV_NAME, None)