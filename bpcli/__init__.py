"""Helpers for working with managed OpenShift clusters through a backplane."""

__version__ = "0.1.0"

__all__ = [
    "cluster",
    "cluster_info",
    "elevate",
    "healthcheck",
    "info",
    "jira",
    "kubeconfig",
    "monitoring",
    "pagerduty",
    "rendering",
    "utils",
]