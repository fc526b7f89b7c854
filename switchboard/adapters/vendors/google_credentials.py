"""Google credential loading for the Classroom and Cloud adapters.

Two credential sources are supported:

- An OAuth2 *user* token file (Classroom), written by the installed-app
  consent flow in ``run_consent_flow`` and refreshed in place.
- A service-account JSON key (Cloud), scoped to cloud-platform.

google-auth refreshes tokens with blocking ``requests`` calls, so refreshes
run in a worker thread. ``GoogleBearerAuth`` plugs either source into an
httpx.AsyncClient.
"""

import asyncio
import json
import logging
import os
from collections.abc import AsyncGenerator, Sequence
from pathlib import Path
from typing import Any

import httpx
from google.auth.exceptions import GoogleAuthError
from google.auth.transport.requests import Request
from google.oauth2 import service_account
from google.oauth2.credentials import Credentials as UserCredentials

from switchboard.core.errors import NotAuthenticatedError

logger = logging.getLogger(__name__)

CLASSROOM_SCOPES = (
    "https://www.googleapis.com/auth/classroom.courses",
    "https://www.googleapis.com/auth/classroom.announcements",
    "https://www.googleapis.com/auth/classroom.coursework.students",
    "https://www.googleapis.com/auth/classroom.rosters",
)
CLOUD_PLATFORM_SCOPES = ("https://www.googleapis.com/auth/cloud-platform",)

AUTH_HINT = "run `switchboard classroom-auth` to authorize Google Classroom"


class UserTokenCredentials:
    """OAuth2 user credentials backed by a token file."""

    def __init__(
        self,
        token_path: str | os.PathLike[str],
        client_id: str | None = None,
        client_secret: str | None = None,
        scopes: Sequence[str] = CLASSROOM_SCOPES,
    ):
        self.token_path = Path(token_path).expanduser()
        self.client_id = client_id
        self.client_secret = client_secret
        self.scopes = list(scopes)
        self._credentials: UserCredentials | None = None
        self._lock = asyncio.Lock()

    def _load(self) -> UserCredentials:
        if not self.token_path.is_file():
            raise NotAuthenticatedError(f"Not authenticated: no token at {self.token_path}; {AUTH_HINT}")
        try:
            info: dict[str, Any] = json.loads(self.token_path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            raise NotAuthenticatedError(f"Not authenticated: unreadable token file: {e}") from e
        # Older token files may omit the client; fall back to configuration.
        if self.client_id:
            info.setdefault("client_id", self.client_id)
        if self.client_secret:
            info.setdefault("client_secret", self.client_secret)
        try:
            return UserCredentials.from_authorized_user_info(info, self.scopes)
        except ValueError as e:
            raise NotAuthenticatedError(f"Not authenticated: invalid token file: {e}") from e

    def _save(self, credentials: UserCredentials) -> None:
        try:
            self.token_path.write_text(credentials.to_json(), encoding="utf-8")
        except OSError as e:
            logger.warning(f"Could not persist refreshed token to {self.token_path}: {e}")

    async def access_token(self) -> str:
        """Return a valid access token, refreshing it when expired.

        Raises:
            NotAuthenticatedError: If no token exists or it cannot be refreshed.
        """
        async with self._lock:
            if self._credentials is None:
                self._credentials = self._load()
            credentials = self._credentials
            if not credentials.valid:
                if not credentials.refresh_token:
                    raise NotAuthenticatedError(f"Not authenticated: token expired; {AUTH_HINT}")
                try:
                    await asyncio.to_thread(credentials.refresh, Request())
                except GoogleAuthError as e:
                    self._credentials = None
                    raise NotAuthenticatedError(f"Not authenticated: token refresh failed: {e}") from e
                logger.info("Refreshed Google user token", extra={"token_path": str(self.token_path)})
                self._save(credentials)
            return credentials.token


class ServiceAccountCredentials:
    """Service-account credentials scoped to cloud-platform."""

    def __init__(
        self,
        key_path: str | os.PathLike[str],
        project_id: str | None = None,
        scopes: Sequence[str] = CLOUD_PLATFORM_SCOPES,
    ):
        self.key_path = Path(key_path).expanduser()
        self._project_id = project_id
        self.scopes = list(scopes)
        self._credentials: service_account.Credentials | None = None
        self._lock = asyncio.Lock()

    def _load(self) -> service_account.Credentials:
        if not self.key_path.is_file():
            raise NotAuthenticatedError(
                f"Not authenticated: service account key not found at {self.key_path}"
            )
        try:
            return service_account.Credentials.from_service_account_file(
                str(self.key_path), scopes=self.scopes
            )
        except (OSError, ValueError) as e:
            raise NotAuthenticatedError(f"Not authenticated: invalid service account key: {e}") from e

    def _ensure_loaded(self) -> service_account.Credentials:
        if self._credentials is None:
            self._credentials = self._load()
            logger.info(
                "Loaded service account credentials",
                extra={"project_id": self._credentials.project_id},
            )
        return self._credentials

    def project_id(self) -> str:
        """Return the configured project, else the key's own project."""
        if self._project_id:
            return self._project_id
        project_id = self._ensure_loaded().project_id
        if not project_id:
            raise NotAuthenticatedError("Service account key has no project_id; set GCP_PROJECT_ID")
        return project_id

    async def access_token(self) -> str:
        async with self._lock:
            credentials = self._ensure_loaded()
            if not credentials.valid:
                try:
                    await asyncio.to_thread(credentials.refresh, Request())
                except GoogleAuthError as e:
                    raise NotAuthenticatedError(f"Not authenticated: token refresh failed: {e}") from e
            return credentials.token


class GoogleBearerAuth(httpx.Auth):
    """httpx auth flow adding a Google bearer token to each request."""

    def __init__(self, credentials: UserTokenCredentials | ServiceAccountCredentials):
        self.credentials = credentials

    async def async_auth_flow(
        self, request: httpx.Request
    ) -> AsyncGenerator[httpx.Request, httpx.Response]:
        token = await self.credentials.access_token()
        request.headers["Authorization"] = f"Bearer {token}"
        yield request


def run_consent_flow(
    client_id: str,
    client_secret: str,
    token_path: str | os.PathLike[str],
    port: int = 0,
    scopes: Sequence[str] = CLASSROOM_SCOPES,
) -> Path:
    """Run the installed-app OAuth consent flow and write the token file.

    Opens the browser on the consent screen and waits for the redirect on
    a loopback port.

    Returns:
        Path of the written token file.
    """
    from google_auth_oauthlib.flow import InstalledAppFlow

    flow = InstalledAppFlow.from_client_config(
        {
            "installed": {
                "client_id": client_id,
                "client_secret": client_secret,
                "auth_uri": "https://accounts.google.com/o/oauth2/auth",
                "token_uri": "https://oauth2.googleapis.com/token",
                "redirect_uris": ["http://localhost"],
            }
        },
        scopes=list(scopes),
    )
    credentials = flow.run_local_server(port=port, access_type="offline", prompt="consent")

    path = Path(token_path).expanduser()
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(credentials.to_json(), encoding="utf-8")
    logger.info(f"Wrote Google token to {path}")
    return path
