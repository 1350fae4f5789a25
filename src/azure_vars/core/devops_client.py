"""Azure DevOps REST client for organizations, projects and variable groups."""

from __future__ import annotations

import logging
from typing import Any

import requests

from azure_vars.core.auth import AuthError, TokenProvider, TokenRefreshInProgress
from azure_vars.core.models import Organization, Project, Variable, VariableGroup

logger = logging.getLogger(__name__)

API_VERSION = "7.1"
DEFAULT_BASE_URL = "https://dev.azure.com"
DEFAULT_VSSPS_URL = "https://app.vssps.visualstudio.com"
CONTINUATION_HEADER = "x-ms-continuationtoken"
DEFAULT_RETRY_AFTER = 5.0


class FetchError(Exception):
    """Per-node, non-fatal failure of a remote call."""

    retryable = False

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)

    @property
    def reason(self) -> str:
        return self.message


class AuthExpired(FetchError):
    retryable = True

    def __init__(self, message: str = "Session token expired") -> None:
        super().__init__(message)


class NotFound(FetchError):
    pass


class RateLimited(FetchError):
    retryable = True

    def __init__(self, retry_after: float = DEFAULT_RETRY_AFTER) -> None:
        self.retry_after = retry_after
        super().__init__(f"Rate limited, retry after {retry_after:g}s")


class NetworkError(FetchError):
    def __init__(self, message: str, transient: bool = True) -> None:
        self.transient = transient
        super().__init__(message)

    @property
    def retryable(self) -> bool:  # type: ignore[override]
        return self.transient


class MalformedResponse(FetchError):
    def __init__(self, detail: str) -> None:
        self.detail = detail
        super().__init__(f"Malformed response: {detail}")


def _retry_after(response: requests.Response) -> float:
    header = response.headers.get("Retry-After")
    try:
        return float(header) if header is not None else DEFAULT_RETRY_AFTER
    except ValueError:
        return DEFAULT_RETRY_AFTER


def raise_for_status(response: requests.Response) -> None:
    """Translate an HTTP response into the FetchError taxonomy."""
    status = response.status_code
    # The service answers 203 with an HTML sign-in page for bad credentials
    if status in (401, 203):
        raise AuthExpired()
    if status in (403, 404):
        raise NotFound(f"{response.url} not found or not accessible ({status})")
    if status == 429:
        raise RateLimited(_retry_after(response))
    if status >= 500:
        raise NetworkError(f"Server error {status}", transient=True)
    if status >= 400:
        raise NetworkError(f"Request failed with status {status}", transient=False)


class AzureDevOpsClient:
    """Typed wrapper around the Azure DevOps REST API.

    Every list call follows continuation tokens and returns the complete
    list, or raises. Pages received before a failure are discarded.
    """

    def __init__(
        self,
        token_provider: TokenProvider,
        session: requests.Session | None = None,
        base_url: str = DEFAULT_BASE_URL,
        vssps_url: str = DEFAULT_VSSPS_URL,
        page_size: int = 100,
        timeout: float = 30.0,
    ) -> None:
        self.token_provider = token_provider
        self.session = session or requests.Session()
        self.base_url = base_url.rstrip("/")
        self.vssps_url = vssps_url.rstrip("/")
        self.page_size = page_size
        self.timeout = timeout

    def _current_token(self, refresh: bool = False):
        try:
            if refresh:
                return self.token_provider.refresh()
            return self.token_provider.token()
        except TokenRefreshInProgress as e:
            raise AuthExpired("Waiting for session token refresh") from e

    def _refresh_pending(self, error: AuthExpired) -> bool:
        """True when another worker owns the token refresh, or just did."""
        return self.token_provider.refreshing or isinstance(
            error.__cause__, TokenRefreshInProgress
        )

    def _send(
        self, url: str, params: dict[str, Any], refresh: bool = False
    ) -> requests.Response:
        token = self._current_token(refresh=refresh)
        headers = {
            "Authorization": token.authorization,
            "Accept": "application/json",
        }
        try:
            response = self.session.get(
                url, params=params, headers=headers, timeout=self.timeout
            )
        except (requests.ConnectionError, requests.Timeout) as e:
            raise NetworkError(f"Network error: {e}", transient=True) from e
        except requests.RequestException as e:
            raise NetworkError(f"Request error: {e}", transient=False) from e
        raise_for_status(response)
        return response

    def _make_request(self, url: str, params: dict[str, Any] | None = None) -> requests.Response:
        """GET ``url``, re-acquiring the token once if it was rejected."""
        query = {"api-version": API_VERSION, **(params or {})}
        logger.debug("GET %s %s", url, query)
        try:
            return self._send(url, query)
        except AuthExpired as e:
            if self._refresh_pending(e):
                raise
            logger.info("Token rejected, re-acquiring once")

        try:
            return self._send(url, query, refresh=True)
        except AuthExpired as e:
            if self._refresh_pending(e):
                raise
            raise AuthError("Access token was rejected after re-authentication") from e

    @staticmethod
    def _json(response: requests.Response) -> dict[str, Any]:
        try:
            data = response.json()
        except ValueError as e:
            raise MalformedResponse("body is not JSON") from e
        if not isinstance(data, dict):
            raise MalformedResponse("expected a JSON object")
        return data

    def get_paginated(self, url: str, params: dict[str, Any] | None = None) -> list[dict[str, Any]]:
        """Collect the ``value`` arrays of every page."""
        items: list[dict[str, Any]] = []
        query = {"$top": self.page_size, **(params or {})}

        while True:
            response = self._make_request(url, query)
            page = self._json(response).get("value")
            if not isinstance(page, list):
                raise MalformedResponse("missing 'value' array")
            items.extend(page)

            continuation = response.headers.get(CONTINUATION_HEADER)
            if not continuation:
                return items
            query = {**query, "continuationToken": continuation}

    def list_organizations(self) -> list[Organization]:
        """Organizations the signed-in identity is a member of."""
        profile = self._json(
            self._make_request(f"{self.vssps_url}/_apis/profile/profiles/me")
        )
        member_id = profile.get("id")
        if not member_id:
            raise MalformedResponse("profile has no id")

        accounts = self.get_paginated(
            f"{self.vssps_url}/_apis/accounts", {"memberId": member_id}
        )
        try:
            orgs = [
                Organization(id=str(a["accountId"]), name=a["accountName"])
                for a in accounts
            ]
        except (KeyError, TypeError) as e:
            raise MalformedResponse(f"account entry missing {e}") from e
        return sorted(orgs, key=lambda o: o.name.lower())

    def list_projects(self, org_name: str) -> list[Project]:
        raw = self.get_paginated(f"{self.base_url}/{org_name}/_apis/projects")
        try:
            projects = [
                Project(
                    id=str(p["id"]),
                    org_name=org_name,
                    name=p["name"],
                    description=p.get("description") or "",
                )
                for p in raw
            ]
        except (KeyError, TypeError) as e:
            raise MalformedResponse(f"project entry missing {e}") from e
        return sorted(projects, key=lambda p: p.name.lower())

    def list_variable_groups(self, org_name: str, project_id: str) -> list[VariableGroup]:
        """Variable groups of a project, each with its variables."""
        raw = self.get_paginated(
            f"{self.base_url}/{org_name}/{project_id}/_apis/distributedtask/variablegroups"
        )
        groups = [parse_variable_group(g, project_id) for g in raw]
        return sorted(groups, key=lambda g: g.name.lower())


def parse_variable_group(data: dict[str, Any], project_id: str) -> VariableGroup:
    try:
        group_id = str(data["id"])
        name = data["name"]
    except (KeyError, TypeError) as e:
        raise MalformedResponse(f"variable group entry missing {e}") from e

    raw_vars = data.get("variables") or {}
    if not isinstance(raw_vars, dict):
        raise MalformedResponse(f"variables of group {name!r} are not an object")

    variables = []
    for key, entry in raw_vars.items():
        entry = entry or {}
        is_secret = bool(entry.get("isSecret", False))
        value = entry.get("value")
        variables.append(
            Variable(
                key=key,
                value=None if value is None else str(value),
                is_secret=is_secret,
            )
        )
    variables.sort(key=lambda v: v.key.lower())

    return VariableGroup(
        id=group_id,
        project_id=project_id,
        name=name,
        description=data.get("description") or "",
        variables=tuple(variables),
    )
