"""Looking up PagerDuty incidents and the clusters their alerts belong to."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Optional

import requests

logger = logging.getLogger(__name__)

# PagerDuty incident statuses
STATUS_TRIGGERED = "triggered"
STATUS_ACKNOWLEDGED = "acknowledged"
STATUS_HIGH = "high"
STATUS_LOW = "low"

API_BASE_URL = "https://api.pagerduty.com"
_ACCEPT = "application/vnd.pagerduty+json;version=2"
_RATE_LIMITED = 429


class PagerDutyError(Exception):
    """An error returned by, or about, the PagerDuty API."""

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code

    @property
    def rate_limited(self) -> bool:
        """True when the API refused the call because of rate limiting."""
        return self.status_code == _RATE_LIMITED


@dataclass
class Alert:
    """The data of an alert, with the cluster it concerns."""

    id: str = ""
    name: str = ""
    incident_id: str = ""
    severity: str = ""
    status: str = ""
    created_at: Optional[datetime] = None
    web_url: str = ""
    cluster_id: str = ""
    cluster_name: str = ""


class PagerDutyClient:
    """A minimal client of the PagerDuty REST API."""

    def __init__(self, auth_token: str, base_url: str = API_BASE_URL, timeout: float = 30) -> None:
        if not auth_token:
            raise PagerDutyError("empty pagerduty token")
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._session = requests.Session()
        self._session.headers.update(
            {
                "Accept": _ACCEPT,
                "Content-Type": "application/json",
                "Authorization": f"Token token={auth_token}",
            }
        )

    def _get(self, path: str, params: Optional[dict[str, Any]] = None) -> dict[str, Any]:
        response = self._session.get(
            f"{self._base_url}{path}", params=params, timeout=self._timeout
        )
        if response.status_code >= 400:
            raise PagerDutyError(
                f"HTTP response failed with status code {response.status_code}",
                response.status_code,
            )
        return response.json()

    def list_incident_alerts(self, incident_id: str) -> list[dict[str, Any]]:
        """Return the alerts of an incident as API objects."""
        return list(self._get(f"/incidents/{incident_id}/alerts").get("alerts") or [])

    def get_service(self, service_id: str) -> dict[str, Any]:
        """Return a service as an API object."""
        return dict(self._get(f"/services/{service_id}").get("service") or {})


def new_with_token(auth_token: str) -> "PagerDuty":
    """Return a PagerDuty connected with the given API token."""
    return PagerDuty(PagerDutyClient(auth_token))


def _sprint(value: Any) -> str:
    """Format a decoded JSON value the way it reads in plain text."""
    if value is None:
        return "<nil>"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (list, tuple)):
        return "[" + " ".join(_sprint(item) for item in value) + "]"
    if isinstance(value, dict):
        inner = " ".join(f"{_sprint(k)}:{_sprint(v)}" for k, v in sorted(value.items()))
        return f"map[{inner}]"
    return str(value)


@dataclass
class PagerDuty:
    """Incident queries on top of a PagerDuty client."""

    client: Any

    def get_incident_alerts(self, incident_id: str) -> list[Alert]:
        """Return all the alerts of an incident."""
        try:
            incident_alerts = self.client.list_incident_alerts(incident_id)
        except PagerDutyError as exc:
            if exc.rate_limited:
                raise PagerDutyError("API rate limited", exc.status_code) from exc
            raise PagerDutyError(
                f"status code: {exc.status_code}, error: {exc}", exc.status_code
            ) from exc
        return [self.format_alert(alert) for alert in incident_alerts]

    def format_alert(self, alert: dict[str, Any]) -> Alert:
        """Turn an API alert object into an Alert with its cluster."""
        formatted = Alert(
            incident_id=(alert.get("incident") or {}).get("id", ""),
            name=alert.get("summary", ""),
            status=alert.get("status", ""),
            web_url=alert.get("html_url", ""),
        )
        details = (alert.get("body") or {}).get("details") or {}

        notes = details.get("notes")
        if notes is not None:
            # "Missing cluster" alerts carry the cluster in their notes
            lines = _sprint(notes).split("\n")
            logger.debug("alert notes: %s", lines)
            formatted.cluster_id = lines[0].replace("cluster_id: ", "", 1)
            formatted.cluster_name = _sprint(details.get("name")).split(".")[0]
        else:
            formatted.cluster_id = _sprint(details.get("cluster_id"))
            service_id = (alert.get("service") or {}).get("id", "")
            try:
                formatted.cluster_name = self.get_cluster_name(service_id)
            except (PagerDutyError, requests.RequestException, ValueError):
                formatted.cluster_name = "N/A"

        if not formatted.cluster_id:
            formatted.cluster_id = "N/A"
        return formatted

    def get_cluster_name(self, service_id: str) -> str:
        """Return the cluster name from the description of a service."""
        service = self.client.get_service(service_id)
        return (service.get("description") or "").split(" ")[0]

    def get_cluster_info_from_incident(self, incident_id: str) -> Alert:
        """Return the alert of an incident, checking all alerts share one cluster."""
        alerts = self.get_incident_alerts(incident_id)
        if not alerts:
            raise PagerDutyError("no alerts found for the given incident ID")
        first_cluster = alerts[0].cluster_id
        if any(alert.cluster_id != first_cluster for alert in alerts):
            raise PagerDutyError("not all alerts have the same cluster ID")
        return alerts[0]