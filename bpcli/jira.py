"""Access to JIRA issues, and to issues of the OHSS project in particular."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Optional

import requests

JIRA_OHSS_PROJECT_KEY = "OHSS"
CUSTOM_FIELD_CLUSTER_ID = "customfield_12316349"


class _JiraIssueService:
    """Issue operations of the JIRA REST API, authenticated by a personal access token."""

    def __init__(self, base_url: str, token: str, timeout: float = 30) -> None:
        self._base_url = base_url.rstrip("/") + "/"
        self._timeout = timeout
        self._session = requests.Session()
        self._session.headers.update(
            {"Authorization": f"Bearer {token}", "Accept": "application/json"}
        )

    def _request(self, method: str, path: str, **kwargs: Any) -> requests.Response:
        response = self._session.request(
            method, self._base_url + path, timeout=self._timeout, **kwargs
        )
        response.raise_for_status()
        return response

    def create(self, issue: dict[str, Any]) -> dict[str, Any]:
        return self._request("POST", "rest/api/2/issue", json=issue).json()

    def get(self, issue_id: str, options: Optional[dict[str, Any]] = None) -> dict[str, Any]:
        return self._request("GET", f"rest/api/2/issue/{issue_id}", params=options).json()

    def update(self, issue: dict[str, Any]) -> dict[str, Any]:
        key = issue.get("key") or issue.get("id")
        if not key:
            raise ValueError("issue has neither a key nor an id")
        self._request("PUT", f"rest/api/2/issue/{key}", json=issue)
        return self.get(key)

    def get_transitions(self, issue_id: str) -> list[dict[str, Any]]:
        response = self._request(
            "GET",
            f"rest/api/2/issue/{issue_id}/transitions",
            params={"expand": "transitions.fields"},
        )
        return list(response.json().get("transitions") or [])

    def do_transition(self, ticket_id: str, transition_id: str) -> requests.Response:
        return self._request(
            "POST",
            f"rest/api/2/issue/{ticket_id}/transitions",
            json={"transition": {"id": transition_id}},
        )


@dataclass
class IssueServiceDecorator:
    """Issue operations on a service that is only created when first needed.

    ``getter`` returns the issue service; without it a JIRA REST service is
    built from ``base_url`` and ``token``.
    """

    getter: Optional[Callable[[], Any]] = None
    base_url: str = ""
    token: str = field(default="", repr=False)
    _service: Any = field(default=None, init=False, repr=False)

    def _issue_service(self) -> Any:
        if self.getter is not None:
            return self.getter()
        if self._service is None:
            if not self.token:
                raise ValueError(
                    "JIRA token is not defined, consider defining it in the backplane configuration"
                )
            self._service = _JiraIssueService(self.base_url, self.token)
        return self._service

    def create(self, issue: dict[str, Any]) -> Any:
        """Create an issue."""
        return self._issue_service().create(issue)

    def get(self, issue_id: str, options: Optional[dict[str, Any]] = None) -> Any:
        """Return an issue by ID or key."""
        return self._issue_service().get(issue_id, options)

    def update(self, issue: dict[str, Any]) -> Any:
        """Update an issue and return it as stored."""
        return self._issue_service().update(issue)

    def get_transitions(self, issue_id: str) -> list[Any]:
        """Return the transitions available to an issue."""
        return self._issue_service().get_transitions(issue_id)

    def do_transition(self, ticket_id: str, transition_id: str) -> Any:
        """Move an issue through a transition."""
        return self._issue_service().do_transition(ticket_id, transition_id)


@dataclass
class OHSSIssue:
    """An issue of the OHSS project."""

    id: str = ""
    key: str = ""
    title: str = ""
    project_key: str = ""
    web_url: str = ""
    cluster_id: str = ""


@dataclass
class OHSSService:
    """Looks up issues of the OHSS project."""

    issue_service: Any

    def get_issue(self, issue_id: str) -> OHSSIssue:
        """Return the OHSS issue with the given ID or key."""
        if not issue_id:
            raise ValueError("empty issue Id")
        issue = self.issue_service.get(issue_id, None)
        if issue is None:
            raise ValueError(f"no matching issue for issueID:{issue_id}")
        fields = issue.get("fields")
        if fields is not None:
            project_key = (fields.get("project") or {}).get("key", "")
            if project_key != JIRA_OHSS_PROJECT_KEY:
                raise ValueError(f"issue {issue_id} is not belongs to OHSS project")
        return self.format_issue(issue)

    def format_issue(self, issue: dict[str, Any]) -> OHSSIssue:
        """Turn a JIRA issue object into an OHSSIssue."""
        formatted = OHSSIssue(id=issue.get("id", ""), key=issue.get("key", ""))
        fields = issue.get("fields")
        if fields is not None:
            if CUSTOM_FIELD_CLUSTER_ID in fields:
                value = fields[CUSTOM_FIELD_CLUSTER_ID]
                formatted.cluster_id = "" if value is None else str(value)
            formatted.project_key = (fields.get("project") or {}).get("key", "")
            formatted.title = fields.get("summary", "") or ""
        self_url = issue.get("self", "")
        if self_url:
            end = self_url.find(".com")
            prefix = self_url[: end + len(".com")] if end >= 0 else self_url
            formatted.web_url = f"{prefix}/browse/{formatted.key}"
        return formatted