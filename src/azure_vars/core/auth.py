"""Credential acquisition through an external, already-authenticated session."""

from __future__ import annotations

import base64
import json
import logging
import shutil
import subprocess
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from typing import Protocol

logger = logging.getLogger(__name__)

# Application id of Azure DevOps, used as the token audience
AZURE_DEVOPS_RESOURCE = "499b84ac-1321-427f-aa17-267ca6975798"

# Refresh tokens this many seconds before they actually expire
EXPIRY_SKEW = 60.0


class AuthError(Exception):
    """Fatal authentication failure (bridge unavailable or token denied)."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class TokenRefreshInProgress(Exception):
    """Raised when a refresh is requested while another one is running."""


@dataclass(frozen=True)
class AccessToken:
    value: str
    scheme: str = "Bearer"
    expires_at: float | None = None

    def is_expired(self, now: float, skew: float = EXPIRY_SKEW) -> bool:
        if self.expires_at is None:
            return False
        return now >= self.expires_at - skew

    @property
    def authorization(self) -> str:
        """Value for the HTTP Authorization header."""
        return f"{self.scheme} {self.value}"


class AuthBridge(Protocol):
    def get_token(self) -> AccessToken: ...


class AzureCliAuthBridge:
    """Obtain tokens from the Azure CLI's logged-in session."""

    def __init__(self, az_path: str | None = None, timeout: float = 30.0) -> None:
        self.az_path = az_path
        self.timeout = timeout

    def _resolve_az(self) -> str:
        az = self.az_path or shutil.which("az")
        if not az:
            raise AuthError(
                "Azure CLI not found. Install it from https://aka.ms/azure-cli "
                "or set ADO_PAT."
            )
        return az

    def get_token(self) -> AccessToken:
        cmd = [
            self._resolve_az(),
            "account",
            "get-access-token",
            "--resource",
            AZURE_DEVOPS_RESOURCE,
            "-o",
            "json",
        ]
        logger.info("Requesting access token from Azure CLI")
        try:
            result = subprocess.run(
                cmd, capture_output=True, text=True, check=False, timeout=self.timeout
            )
        except FileNotFoundError as e:
            raise AuthError(f"Azure CLI not found: {e}") from e
        except subprocess.TimeoutExpired as e:
            raise AuthError("Azure CLI did not return a token in time") from e

        if result.returncode != 0:
            stderr = result.stderr.strip() or "unknown error"
            raise AuthError(
                f"Azure CLI token request failed. Run 'az login' first. ({stderr})"
            )

        return parse_cli_token(result.stdout)


def parse_cli_token(output: str) -> AccessToken:
    """Parse the JSON printed by ``az account get-access-token``."""
    try:
        data = json.loads(output)
        value = data["accessToken"]
    except (ValueError, KeyError, TypeError) as e:
        raise AuthError("Azure CLI returned an unreadable token") from e

    expires_at: float | None = None
    if data.get("expires_on") is not None:
        try:
            expires_at = float(data["expires_on"])
        except (TypeError, ValueError):
            logger.warning("Could not parse token expiry %r", data["expires_on"])
    elif data.get("expiresOn"):
        try:
            # Older CLI versions only report local time
            expires_at = datetime.fromisoformat(data["expiresOn"]).timestamp()
        except ValueError:
            logger.warning("Could not parse token expiry %r", data["expiresOn"])

    return AccessToken(value=value, scheme=data.get("tokenType", "Bearer"), expires_at=expires_at)


class PatAuthBridge:
    """Personal access token from the environment, sent as Basic auth."""

    def __init__(self, pat: str) -> None:
        if not pat:
            raise AuthError("Personal access token is empty")
        self._encoded = base64.b64encode(f":{pat}".encode()).decode()

    def get_token(self) -> AccessToken:
        return AccessToken(value=self._encoded, scheme="Basic")


class TokenProvider:
    """Process-wide session token with exclusive refresh.

    The in-progress flag only covers the bridge call itself; requests that
    race a refresh fail fast with ``TokenRefreshInProgress`` and are retried
    by the caller.
    """

    def __init__(
        self, bridge: AuthBridge, clock: Callable[[], float] = time.time
    ) -> None:
        self.bridge = bridge
        self.clock = clock
        self._token: AccessToken | None = None
        self._refreshing = False
        self._flag_lock = threading.Lock()

    @property
    def refreshing(self) -> bool:
        return self._refreshing

    def token(self) -> AccessToken:
        """Return the cached token, acquiring a new one if missing or expired."""
        token = self._token
        if token is None or token.is_expired(self.clock()):
            return self.refresh()
        return token

    def refresh(self) -> AccessToken:
        """Acquire a fresh token through the bridge."""
        with self._flag_lock:
            if self._refreshing:
                raise TokenRefreshInProgress()
            self._refreshing = True
        try:
            logger.info("Refreshing session token")
            self._token = self.bridge.get_token()
            return self._token
        finally:
            self._refreshing = False

    def invalidate(self) -> None:
        self._token = None
