"""Fake GoogleCloudPort implementation for testing."""

from collections.abc import Sequence
from typing import Any

from switchboard.core.errors import VendorAPIError
from switchboard.core.models import CommandResult
from switchboard.core.ports import GoogleCloudPort


class FakeGoogleCloudPort(GoogleCloudPort):
    """Scripted Google Cloud backend for testing.

    Requests are captured; command runs answer from ``command_results``
    (matched on argv[0] and the first sub-command), defaulting to success.
    """

    def __init__(self, project_id: str = "demo-project"):
        """Initialize with no resources."""
        self.project_id = project_id
        self.inserted: list[tuple[str, str, dict[str, Any]]] = []
        self.instances: list[dict[str, Any]] = []
        self.images: list[dict[str, Any]] = []
        self.image_queries: list[str] = []
        self.notebooks: list[tuple[str, str, str, dict[str, Any]]] = []
        self.training_jobs: dict[str, dict[str, Any]] = {}
        self.submitted_jobs: list[tuple[str, dict[str, Any]]] = []
        self.bucket_policies: dict[str, dict[str, Any]] = {}
        self.set_policies: list[tuple[str, dict[str, Any]]] = []
        self.commands: list[list[str]] = []
        self.command_results: dict[tuple[str, ...], CommandResult] = {}
        self.should_fail: bool = False
        self.fail_message: str = "Permission denied"
        self.fail_status: int | None = 403
        self.closed = False

    def _check(self) -> None:
        if self.should_fail:
            raise VendorAPIError(self.fail_message, status_code=self.fail_status)

    async def get_project_id(self) -> str:
        return self.project_id

    async def insert_instance(
        self, project_id: str, zone: str, body: dict[str, Any]
    ) -> dict[str, Any]:
        self._check()
        self.inserted.append((project_id, zone, body))
        return {
            "id": f"op-{len(self.inserted)}",
            "status": "RUNNING",
            "selfLink": f"https://compute.googleapis.com/operations/op-{len(self.inserted)}",
            "targetLink": f"instances/{body['name']}",
        }

    async def list_instances(self, project_id: str, zone: str) -> list[dict[str, Any]]:
        self._check()
        return list(self.instances)

    async def list_images(self, project_id: str) -> list[dict[str, Any]]:
        self._check()
        self.image_queries.append(project_id)
        return list(self.images)

    async def create_notebook_instance(
        self,
        project_id: str,
        location: str,
        instance_id: str,
        body: dict[str, Any],
    ) -> dict[str, Any]:
        self._check()
        self.notebooks.append((project_id, location, instance_id, body))
        return {"name": f"projects/{project_id}/locations/{location}/operations/nb-1", "done": False}

    async def submit_training_job(
        self, project_id: str, body: dict[str, Any]
    ) -> dict[str, Any]:
        self._check()
        self.submitted_jobs.append((project_id, body))
        job = {**body, "state": "QUEUED", "createTime": "2024-01-01T00:00:00Z"}
        self.training_jobs[body["jobId"]] = job
        return job

    async def get_training_job(self, project_id: str, job_id: str) -> dict[str, Any]:
        self._check()
        if job_id not in self.training_jobs:
            raise VendorAPIError(f"Field: name Error: The specified job {job_id} was not found", 404)
        return self.training_jobs[job_id]

    async def get_bucket_iam_policy(self, bucket: str) -> dict[str, Any]:
        self._check()
        return self.bucket_policies.get(bucket, {"bindings": [], "etag": "CAE="})

    async def set_bucket_iam_policy(
        self, bucket: str, policy: dict[str, Any]
    ) -> dict[str, Any]:
        self._check()
        self.set_policies.append((bucket, policy))
        self.bucket_policies[bucket] = policy
        return policy

    async def run_command(self, argv: Sequence[str]) -> CommandResult:
        argv = list(argv)
        self.commands.append(argv)
        for size in (2, 1):
            scripted = self.command_results.get(tuple(a for a in argv if not a.startswith("-"))[:size])
            if scripted is not None:
                return scripted
        return CommandResult(argv=tuple(argv), returncode=0, stdout="ok\n")

    async def close(self) -> None:
        self.closed = True
