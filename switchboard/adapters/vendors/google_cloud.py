"""Google Cloud adapter.

Implements GoogleCloudPort with service-account credentials against the
Compute Engine, Notebooks, AI Platform Training and Cloud Storage JSON
APIs, and runs the gcloud and terraform command-line tools.
"""

import asyncio
import logging
import subprocess
from collections.abc import Sequence
from typing import Any

import httpx

from switchboard.core.errors import VendorAPIError
from switchboard.core.models import CommandResult
from switchboard.core.ports import GoogleCloudPort

from .google_credentials import GoogleBearerAuth, ServiceAccountCredentials
from .http import json_body, segment, send

logger = logging.getLogger(__name__)

COMPUTE_API = "https://compute.googleapis.com/compute/v1"
NOTEBOOKS_API = "https://notebooks.googleapis.com/v1"
ML_API = "https://ml.googleapis.com/v1"
STORAGE_API = "https://storage.googleapis.com/storage/v1"

_MAX_IMAGE_PAGES = 20


class GoogleCloudAdapter(GoogleCloudPort):
    """Google Cloud REST and command-line client."""

    def __init__(
        self,
        credentials: ServiceAccountCredentials,
        timeout: float = 60.0,
        command_timeout: float = 600.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """Initialize Google Cloud adapter.

        Args:
            credentials: Service-account credentials.
            timeout: HTTP request timeout in seconds.
            command_timeout: Timeout for gcloud and terraform runs in seconds.
            transport: Optional httpx transport (tests use MockTransport).
        """
        self.credentials = credentials
        self.command_timeout = command_timeout
        self.client = httpx.AsyncClient(
            auth=GoogleBearerAuth(credentials),
            timeout=timeout,
            transport=transport,
        )

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.client.aclose()

    async def close(self) -> None:
        await self.client.aclose()

    async def _request(self, method: str, url: str, **kwargs: Any) -> Any:
        response = await send(self.client, method, url, vendor="Google Cloud", **kwargs)
        return json_body(response) or {}

    async def get_project_id(self) -> str:
        return self.credentials.project_id()

    # Compute Engine

    def _instances_url(self, project_id: str, zone: str) -> str:
        return f"{COMPUTE_API}/projects/{segment(project_id)}/zones/{segment(zone)}/instances"

    async def insert_instance(
        self, project_id: str, zone: str, body: dict[str, Any]
    ) -> dict[str, Any]:
        logger.info(
            f"Creating instance {body.get('name')} in {project_id}/{zone}",
            extra={"project_id": project_id, "zone": zone},
        )
        return await self._request("POST", self._instances_url(project_id, zone), json=body)

    async def list_instances(self, project_id: str, zone: str) -> list[dict[str, Any]]:
        body = await self._request("GET", self._instances_url(project_id, zone))
        return body.get("items") or []

    async def list_images(self, project_id: str) -> list[dict[str, Any]]:
        url = f"{COMPUTE_API}/projects/{segment(project_id)}/global/images"
        images: list[dict[str, Any]] = []
        params: dict[str, Any] = {"maxResults": 500}
        for _ in range(_MAX_IMAGE_PAGES):
            body = await self._request("GET", url, params=params)
            images.extend(body.get("items") or [])
            token = body.get("nextPageToken")
            if not token:
                break
            params["pageToken"] = token
        return images

    # Notebooks

    async def create_notebook_instance(
        self,
        project_id: str,
        location: str,
        instance_id: str,
        body: dict[str, Any],
    ) -> dict[str, Any]:
        url = (
            f"{NOTEBOOKS_API}/projects/{segment(project_id)}"
            f"/locations/{segment(location)}/instances"
        )
        return await self._request(
            "POST",
            url,
            params={"instanceId": instance_id},
            json=body,
        )

    # AI Platform Training

    async def submit_training_job(
        self, project_id: str, body: dict[str, Any]
    ) -> dict[str, Any]:
        logger.info(
            f"Submitting training job {body.get('jobId')}",
            extra={"project_id": project_id, "job_id": body.get("jobId")},
        )
        url = f"{ML_API}/projects/{segment(project_id)}/jobs"
        return await self._request("POST", url, json=body)

    async def get_training_job(self, project_id: str, job_id: str) -> dict[str, Any]:
        url = f"{ML_API}/projects/{segment(project_id)}/jobs/{segment(job_id)}"
        return await self._request("GET", url)

    # Cloud Storage

    async def get_bucket_iam_policy(self, bucket: str) -> dict[str, Any]:
        return await self._request("GET", f"{STORAGE_API}/b/{segment(bucket)}/iam")

    async def set_bucket_iam_policy(
        self, bucket: str, policy: dict[str, Any]
    ) -> dict[str, Any]:
        return await self._request("PUT", f"{STORAGE_API}/b/{segment(bucket)}/iam", json=policy)

    # Command-line tools

    async def run_command(self, argv: Sequence[str]) -> CommandResult:
        argv = list(argv)
        timeout = self.command_timeout

        def _run() -> CommandResult:
            """Synchronous wrapper for subprocess call."""
            try:
                completed = subprocess.run(
                    argv,
                    capture_output=True,
                    text=True,
                    timeout=timeout,
                )
            except FileNotFoundError as e:
                raise VendorAPIError(f"Command not found: {argv[0]}") from e
            except subprocess.TimeoutExpired as e:
                raise VendorAPIError(
                    f"Command timed out after {timeout:g} seconds: {argv[0]}"
                ) from e
            return CommandResult(
                argv=tuple(argv),
                returncode=completed.returncode,
                stdout=completed.stdout,
                stderr=completed.stderr,
            )

        logger.info(f"Running {argv[0]}", extra={"argv": argv})
        loop = asyncio.get_running_loop()
        try:
            result = await loop.run_in_executor(None, _run)
        except VendorAPIError as e:
            logger.error(f"Command failed to run: {e}", exc_info=True)
            raise
        if not result.succeeded:
            logger.warning(
                f"{argv[0]} exited with {result.returncode}",
                extra={"argv": argv, "returncode": result.returncode},
            )
        return result
