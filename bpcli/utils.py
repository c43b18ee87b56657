"""General helpers: ports, health checks, parameters, prompts, JWTs and API errors."""

from __future__ import annotations

import json
import os
import socket
import sys
from typing import Any, Iterable, Optional

import jwt
import requests

CLUSTERS_PAGE_SIZE = 50
BACKPLANE_API_URL_REGEXP = r"(?mi)^https:\/\/api\.(.*)backplane\.(.*)"
CLUSTER_ID_REGEXP = r"/?backplane/cluster/([a-zA-Z0-9]+)/?"


class BackplaneError(Exception):
    """An error reported by the backplane API."""

    def __init__(
        self,
        message: Optional[str] = None,
        status_code: Optional[int] = None,
        *,
        description: Optional[str] = None,
    ) -> None:
        self.message = message
        self.status_code = status_code
        super().__init__(description if description is not None else (message or ""))

    def to_dict(self) -> dict[str, Any]:
        """Return the API error body with only the fields that are set."""
        body: dict[str, Any] = {}
        if self.message is not None:
            body["message"] = self.message
        if self.status_code is not None:
            body["statusCode"] = self.status_code
        return body


def get_free_port() -> int:
    """Ask the operating system for a free TCP port on localhost."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind(("localhost", 0))
        return sock.getsockname()[1]


def check_health(url: str) -> bool:
    """Return True only if a GET on the URL answers with status 200."""
    try:
        response = requests.get(url, timeout=30)
    except (requests.RequestException, ValueError):
        return False
    return response.status_code == 200


def match_base_domain(long_hostname: str, base_domain: str) -> bool:
    """Return True if the hostname ends with every label of the base domain."""
    if not base_domain:
        return True
    host_labels = long_hostname.split(".")
    base_labels = base_domain.split(".")
    if len(host_labels) < len(base_labels):
        return False
    return host_labels[len(host_labels) - len(base_labels):] == base_labels


def parse_params_flag(params: Iterable[str]) -> dict[str, str]:
    """Parse ``key=value`` strings into a mapping; later keys win."""
    result: dict[str, str] = {}
    for item in params:
        key, *rest = item.split("=")
        if not rest:
            raise ValueError(f"error parsing params flag, {item}")
        result[key.strip()] = "".join(rest).strip()
    return result


def append_unique_non_empty(items: list[str], element: str) -> list[str]:
    """Return the list with the element added if it is non-empty and new."""
    if not element or element in items:
        return items
    return [*items, element]


def check_valid_prompt() -> bool:
    """Return True when stdin and stderr are both terminals."""
    try:
        return sys.stdin.isatty() and sys.stderr.isatty()
    except (AttributeError, ValueError):
        return False


def ask_question_from_prompt(question: str) -> str:
    """Ask a question on stderr and read one line of answer, or return ""."""
    if not check_valid_prompt():
        return ""
    sys.stderr.write(question)
    sys.stderr.flush()
    line = sys.stdin.readline()
    return line.rstrip("\r\n")


def _unverified_claims(token: str) -> dict[str, Any]:
    claims = jwt.decode(token, options={"verify_signature": False})
    if not isinstance(claims, dict):
        raise jwt.DecodeError("claims are not an object")
    return claims


def get_string_field_from_jwt(token: str, field: str) -> str:
    """Return a string claim from a token without verifying its signature."""
    try:
        claims = _unverified_claims(token)
    except jwt.PyJWTError as exc:
        raise ValueError("failed to parse jwt") from exc
    if field not in claims:
        raise ValueError(f"no field {field} on given token")
    value = claims[field]
    if not isinstance(value, str):
        raise ValueError(f"field {field} does not contain a string value")
    return value


def get_username_from_jwt(token: str) -> str:
    """Return the ``username`` claim of a token, or "anonymous"."""
    try:
        claims = _unverified_claims(token)
    except jwt.PyJWTError:
        return "anonymous"
    username = claims.get("username")
    return username if isinstance(username, str) else "anonymous"


def get_context_nickname(namespace: str, cluster_nick: str, user_nick: str) -> str:
    """Build a kubeconfig context nickname from its parts."""
    user = user_nick.split("/", 1)[0]
    return f"{namespace}/{cluster_nick}/{user}"


def is_valid_shell(shell_path: str) -> bool:
    """Return True if the shell path exists."""
    try:
        os.stat(shell_path)
    except (OSError, ValueError):
        return False
    return True


def _status_line(response: Any) -> str:
    reason = getattr(response, "reason", "") or ""
    return f"{response.status_code} {reason}".rstrip()


def parse_backplane_api_error(response: Any) -> BackplaneError:
    """Parse the body of an HTTP response into a BackplaneError.

    Raises ValueError when there is no response or the body is not an API error.
    """
    if response is None:
        raise ValueError("parse err provided nil http response")
    raw = response.content or b""
    text = raw.decode("utf-8", errors="replace") if isinstance(raw, bytes) else str(raw)
    try:
        body = json.loads(text)
        if not isinstance(body, dict):
            raise ValueError("response body is not a JSON object")
        message = body.get("message")
        status_code = body.get("statusCode")
        if message is not None and not isinstance(message, str):
            raise ValueError("message is not a string")
        if status_code is not None and (
            isinstance(status_code, bool) or not isinstance(status_code, int)
        ):
            raise ValueError("statusCode is not an integer")
    except ValueError as exc:
        flat = text.replace("\n", " ")
        raise ValueError(
            f"status:'{_status_line(response)}', code:'{response.status_code}'; "
            f"failed to unmarshal response:'{flat}'; {exc}"
        ) from exc
    return BackplaneError(message, status_code)


def formatted_api_error(response: Any) -> BackplaneError:
    """Return a BackplaneError with a readable description of the response."""
    data = parse_backplane_api_error(response)
    if data.message is not None and data.status_code is not None:
        code, message = data.status_code, data.message
    else:
        code, message = response.status_code, _status_line(response)
    description = f"error from backplane: \n Status Code: {code}\n Message: {message}"
    return BackplaneError(data.message, data.status_code, description=description)


def print_api_error(response: Any, raw: bool) -> None:
    """Print the raw API error as JSON, or raise it in readable form."""
    if not raw:
        raise formatted_api_error(response)
    try:
        data = parse_backplane_api_error(response)
    except ValueError as exc:
        raise BackplaneError(
            status_code=response.status_code,
            description=f"unable to parse error from backplane: \n Status Code: {response.status_code}",
        ) from exc
    print(json.dumps(data.to_dict(), indent=2))