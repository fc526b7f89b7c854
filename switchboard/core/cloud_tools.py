"""Google Cloud tool set for deep learning infrastructure.

Provisions Deep Learning VMs, container VMs and user-managed notebooks,
submits and monitors AI Platform training jobs, shares TensorBoard log
buckets and drives the gcloud and terraform command-line tools.

Replies are indented JSON text. Command-line tools are always run from
an argument vector, never through a shell.
"""

import logging
import re
import shlex
import time
from collections.abc import Callable, Mapping, Sequence
from pathlib import PurePath
from typing import Any

from .errors import ArgumentError, VendorAPIError
from .models import CommandResult
from .ports import GoogleCloudPort
from .toolkit import ToolSet, json_text, tool_spec
from .validation import (
    optional_choice,
    optional_int,
    optional_mapping,
    optional_str,
    require_choice,
    require_str,
    require_str_list,
)

logger = logging.getLogger(__name__)

DEEP_LEARNING_IMAGE_PROJECT = "deeplearning-platform-release"
CONTAINER_OS_IMAGE = "projects/cos-cloud/global/images/family/cos-stable"
DEFAULT_ZONE = "us-central1-a"
DEFAULT_REGION = "us-central1"
TENSORBOARD_ROLE = "roles/storage.objectViewer"

MACHINE_TYPES = ("n1-standard-4", "n1-highmem-8", "a2-highgpu-1g")
ACCELERATORS = ("NVIDIA_TESLA_T4", "NVIDIA_TESLA_V100", "NVIDIA_A100")
NOTEBOOK_ACCELERATORS = ACCELERATORS + ("NONE",)
SCALE_TIERS = ("BASIC", "STANDARD_1", "PREMIUM_1", "BASIC_GPU", "BASIC_TPU", "CUSTOM")
MAX_REPLICAS = 10
MAX_ACCELERATORS = 8

_JOB_ID = re.compile(r"^[A-Za-z][A-Za-z0-9_]*$")
_DEPLOYMENT_NAME = re.compile(r"[^a-z0-9-]+")

_PROJECT_ID = {
    "projectId": {
        "type": "string",
        "description": "Google Cloud project ID (defaults to the service account's project)",
    }
}


# ============================================================================
# CATALOGUE
# ============================================================================

CREATE_DEEP_LEARNING_VM = tool_spec(
    "createdeeplearningvm",
    "Provision VMs with TF Enterprise",
    {
        **_PROJECT_ID,
        "zone": {"type": "string"},
        "vmName": {"type": "string"},
        "machineType": {"type": "string", "enum": list(MACHINE_TYPES)},
        "framework": {
            "type": "string",
            "description": "TensorFlow, TensorFlow Enterprise or PyTorch",
        },
        "accelerator": {"type": "string", "enum": list(ACCELERATORS)},
    },
    required=["zone", "vmName", "machineType", "framework"],
)

DEPLOY_CONTAINER_INSTANCE = tool_spec(
    "deploycontainerinstance",
    "Start TF containers on GCE",
    {
        **_PROJECT_ID,
        "zone": {"type": "string", "default": DEFAULT_ZONE},
        "machineType": {"type": "string", "default": "n1-standard-1"},
        "vmNameBase": {"type": "string", "default": "container-vm"},
        "containerImage": {"type": "string"},
        "replicas": {"type": "number", "default": 1, "minimum": 1, "maximum": MAX_REPLICAS},
    },
    required=["containerImage"],
)

TERRAFORM_APPLY = tool_spec(
    "terraformapply",
    "Infrastructure as code automation",
    {
        "configPath": {
            "type": "string",
            "description": "Directory holding the Terraform configuration",
        },
        "variables": {"type": "object", "description": "Values passed as -var flags"},
    },
    required=["configPath"],
)

CREATE_NOTEBOOK_INSTANCE = tool_spec(
    "createnotebookinstance",
    "Provision AI Platform Notebooks",
    {
        **_PROJECT_ID,
        "instanceName": {"type": "string"},
        "machineType": {"type": "string"},
        "framework": {"type": "string"},
        "zone": {"type": "string", "default": DEFAULT_ZONE},
        "acceleratorType": {
            "type": "string",
            "enum": list(NOTEBOOK_ACCELERATORS),
            "default": "NONE",
        },
        "acceleratorCount": {
            "type": "number",
            "default": 0,
            "minimum": 0,
            "maximum": MAX_ACCELERATORS,
        },
    },
    required=["instanceName", "machineType", "framework", "zone"],
)

SUBMIT_TRAINING_JOB = tool_spec(
    "submittrainingjob",
    "Distributed/managed model training",
    {
        **_PROJECT_ID,
        "jobName": {"type": "string"},
        "datasetUri": {"type": "string"},
        "modelType": {"type": "string"},
        "scaleTier": {"type": "string", "enum": list(SCALE_TIERS)},
        "epochs": {"type": "number"},
        "region": {"type": "string", "description": "Training region (optional)"},
    },
    required=["jobName", "datasetUri", "modelType", "scaleTier"],
)

MONITOR_TRAINING_JOB = tool_spec(
    "monitortrainingjob",
    "Fetch logs/status of jobs",
    {**_PROJECT_ID, "jobId": {"type": "string"}},
    required=["jobId"],
)

SHARE_TENSORBOARD_DASHBOARD = tool_spec(
    "sharetensorboarddashboard",
    "Share TensorBoard metrics",
    {
        **_PROJECT_ID,
        "logDir": {"type": "string", "description": "gs:// location of the TensorBoard logs"},
        "shareWith": {"type": "array", "items": {"type": "string"}},
    },
    required=["logDir", "shareWith"],
)

DEPLOYMENT_MANAGER_APPLY = tool_spec(
    "deploymentmanagerapply",
    "Batch deploy resources",
    {"configPath": {"type": "string", "description": "Deployment Manager YAML config"}},
    required=["configPath"],
)

GCLOUD_COMMAND = tool_spec(
    "gcloudcommand",
    "Run custom gcloud operations",
    {"command": {"type": "string", "description": "Arguments after 'gcloud'"}},
    required=["command"],
)

LIST_AVAILABLE_IMAGES = tool_spec(
    "listavailableimages",
    "Discover TF Enterprise images",
    {
        "framework": {
            "type": "string",
            "description": "Only families containing this text, e.g. 'tf-ent' (optional)",
        }
    },
)

LIST_ACTIVE_INSTANCES = tool_spec(
    "listactiveinstances",
    "Inventory running resources",
    {**_PROJECT_ID, "zone": {"type": "string"}},
    required=["zone"],
)


# ============================================================================
# REQUEST BUILDING
# ============================================================================


def image_family(framework: str, gpu: bool) -> str:
    """Map a framework name to a Deep Learning VM image family.

    Raises:
        ArgumentError: If the framework is not TensorFlow (Enterprise) or PyTorch.
    """
    name = framework.lower()
    if "tensorflow" in name:
        if "enterprise" in name:
            return "tf-ent-latest-gpu" if gpu else "tf-ent-latest-cpu"
        return "tf-2-15-cu122" if gpu else "tf-2-15-cpu"
    if "pytorch" in name:
        return "pytorch-latest-gpu" if gpu else "pytorch-latest-cpu"
    raise ArgumentError(
        f"Unsupported framework: {framework}. Supported: TensorFlow, PyTorch, TensorFlow Enterprise"
    )


def _network() -> list[dict[str, Any]]:
    return [
        {
            "network": "global/networks/default",
            "accessConfigs": [{"type": "ONE_TO_ONE_NAT", "name": "External NAT"}],
        }
    ]


def deep_learning_vm_body(
    name: str,
    zone: str,
    machine_type: str,
    framework: str,
    accelerator: str | None,
) -> dict[str, Any]:
    """Compute Engine instance resource for a Deep Learning VM."""
    family = image_family(framework, gpu=bool(accelerator))
    body: dict[str, Any] = {
        "name": name,
        "machineType": f"zones/{zone}/machineTypes/{machine_type}",
        "disks": [
            {
                "boot": True,
                "autoDelete": True,
                "initializeParams": {
                    "sourceImage": f"projects/{DEEP_LEARNING_IMAGE_PROJECT}/global/images/family/{family}"
                },
            }
        ],
        "networkInterfaces": _network(),
        "labels": {"framework": framework.lower().replace("_", "-").replace(" ", "-")},
    }
    if accelerator:
        body["guestAccelerators"] = [
            {
                "acceleratorType": f"zones/{zone}/acceleratorTypes/{accelerator}",
                "acceleratorCount": 1,
            }
        ]
        # GPU instances cannot live-migrate.
        body["scheduling"] = {"onHostMaintenance": "TERMINATE", "automaticRestart": False}
    return body


def container_vm_body(
    name: str,
    zone: str,
    machine_type: str,
    image: str,
    timestamp_ms: int,
) -> dict[str, Any]:
    """Compute Engine instance resource running one container on COS."""
    declaration = (
        "spec:\n"
        "  containers:\n"
        f"  - name: {name}-container\n"
        f"    image: {image}\n"
        "    stdin: false\n"
        "    tty: false\n"
        "  restartPolicy: Always"
    )
    return {
        "name": name,
        "machineType": f"zones/{zone}/machineTypes/{machine_type}",
        "disks": [
            {
                "boot": True,
                "autoDelete": True,
                "initializeParams": {"sourceImage": CONTAINER_OS_IMAGE},
            }
        ],
        "networkInterfaces": _network(),
        "metadata": {"items": [{"key": "gce-container-declaration", "value": declaration}]},
        "labels": {"deployment": "container-instance", "timestamp": str(timestamp_ms)},
    }


def split_gs_uri(uri: str) -> tuple[str, str]:
    """Split ``gs://bucket/path`` into (bucket, path)."""
    if not uri.startswith("gs://") or len(uri) <= len("gs://"):
        raise ArgumentError(f"'logDir' must be a gs:// URI, got {uri!r}")
    bucket, _, path = uri[len("gs://"):].partition("/")
    if not bucket:
        raise ArgumentError(f"'logDir' must name a bucket, got {uri!r}")
    return bucket, path


def add_viewers(policy: Mapping[str, Any], emails: Sequence[str]) -> tuple[dict[str, Any], list[str]]:
    """Return a copy of a bucket IAM policy granting object read to ``emails``.

    Returns:
        The updated policy and the members that were newly added.
    """
    updated = dict(policy)
    bindings = [dict(b) for b in policy.get("bindings", [])]
    binding = next((b for b in bindings if b.get("role") == TENSORBOARD_ROLE), None)
    if binding is None:
        binding = {"role": TENSORBOARD_ROLE, "members": []}
        bindings.append(binding)
    members = list(binding.get("members", []))
    added = []
    for email in emails:
        member = email if ":" in email else f"user:{email}"
        if member not in members:
            members.append(member)
            added.append(member)
    binding["members"] = members
    updated["bindings"] = bindings
    return updated, added


def deployment_name(config_path: str) -> str:
    """Derive a Deployment Manager deployment name from a config file name."""
    stem = PurePath(config_path).stem.lower().replace("_", "-")
    name = _DEPLOYMENT_NAME.sub("-", stem).strip("-")
    if not name or not name[0].isalpha():
        name = f"deployment-{name}".rstrip("-")
    return name


def _operation_summary(operation: Mapping[str, Any]) -> dict[str, Any]:
    return {
        "operationId": operation.get("id"),
        "status": operation.get("status"),
        "selfLink": operation.get("selfLink"),
        "targetLink": operation.get("targetLink"),
    }


def _check(result: CommandResult, what: str) -> CommandResult:
    if not result.succeeded:
        detail = result.stderr.strip() or "no output"
        raise VendorAPIError(f"{what} exited with code {result.returncode}: {detail}")
    if result.stderr:
        logger.warning(f"[{what} stderr] {result.stderr.strip()}")
    return result


# ============================================================================
# TOOL SET
# ============================================================================


class GoogleCloudToolSet(ToolSet):
    """Tools over a GoogleCloudPort."""

    key = "gcp"
    server_name = "MCP-TFE"
    version = "1.0.0"
    aliases = ("MCP-TFE", "TFE")

    def __init__(
        self,
        client: GoogleCloudPort,
        training_image: str | None = None,
        region: str = DEFAULT_REGION,
        clock: Callable[[], float] = time.time,
    ):
        """Initialize the tool set.

        Args:
            client: GoogleCloudPort implementation.
            training_image: Container image for training jobs; required by
                submittrainingjob.
            region: Default region for training jobs.
            clock: Wall-clock source used to name container VMs.
        """
        super().__init__()
        self.client = client
        self.training_image = training_image
        self.region = region
        self._clock = clock

        for spec, handler in (
            (CREATE_DEEP_LEARNING_VM, self._create_deep_learning_vm),
            (DEPLOY_CONTAINER_INSTANCE, self._deploy_container_instance),
            (TERRAFORM_APPLY, self._terraform_apply),
            (CREATE_NOTEBOOK_INSTANCE, self._create_notebook_instance),
            (SUBMIT_TRAINING_JOB, self._submit_training_job),
            (MONITOR_TRAINING_JOB, self._monitor_training_job),
            (SHARE_TENSORBOARD_DASHBOARD, self._share_tensorboard_dashboard),
            (DEPLOYMENT_MANAGER_APPLY, self._deployment_manager_apply),
            (GCLOUD_COMMAND, self._gcloud_command),
            (LIST_AVAILABLE_IMAGES, self._list_available_images),
            (LIST_ACTIVE_INSTANCES, self._list_active_instances),
        ):
            self.register(spec, handler, failure=f"{spec.name} failed")

    def describe_failure(self, prefix: str, error: VendorAPIError) -> str:
        if error.status_code is None:
            return f"{prefix}: {error.message}"
        return f"{prefix}: GCP Error [{error.status_code}]: {error.message}"

    async def close(self) -> None:
        await self.client.close()

    async def _project(self, args: dict[str, Any]) -> str:
        return optional_str(args, "projectId") or await self.client.get_project_id()

    # Compute Engine

    async def _create_deep_learning_vm(self, args: dict[str, Any]) -> str:
        zone = require_str(args, "zone")
        body = deep_learning_vm_body(
            name=require_str(args, "vmName"),
            zone=zone,
            machine_type=require_choice(args, "machineType", MACHINE_TYPES),
            framework=require_str(args, "framework"),
            accelerator=optional_choice(args, "accelerator", ACCELERATORS),
        )
        project_id = await self._project(args)
        operation = await self.client.insert_instance(project_id, zone, body)
        logger.info(
            f"Deep Learning VM {body['name']} requested",
            extra={"project_id": project_id, "zone": zone},
        )
        return json_text(_operation_summary(operation))

    async def _deploy_container_instance(self, args: dict[str, Any]) -> str:
        image = require_str(args, "containerImage")
        zone = optional_str(args, "zone") or DEFAULT_ZONE
        machine_type = optional_str(args, "machineType") or "n1-standard-1"
        base = optional_str(args, "vmNameBase") or "container-vm"
        replicas = optional_int(args, "replicas", minimum=1, maximum=MAX_REPLICAS) or 1
        project_id = await self._project(args)

        operations = []
        for i in range(replicas):
            now_ms = int(self._clock() * 1000)
            name = f"{base}-{now_ms}-{i}"
            body = container_vm_body(name, zone, machine_type, image, now_ms)
            operation = await self.client.insert_instance(project_id, zone, body)
            operations.append(
                {
                    "vmName": name,
                    "operationId": operation.get("id"),
                    "status": operation.get("status"),
                    "selfLink": operation.get("selfLink"),
                }
            )

        return json_text(
            {
                "message": f"Deployed {replicas} container instance(s)",
                "operations": operations,
                "containerImage": image,
                "serviceEndpoint": f"http://{operations[0]['vmName']}:8501",
            }
        )

    async def _list_available_images(self, args: dict[str, Any]) -> str:
        framework = (optional_str(args, "framework") or "").strip().lower()
        images = await self.client.list_images(DEEP_LEARNING_IMAGE_PROJECT)
        families = sorted(
            {
                image["family"]
                for image in images
                if image.get("family")
                and "deprecated" not in image
                and framework in image["family"].lower()
            }
        )
        return json_text({"project": DEEP_LEARNING_IMAGE_PROJECT, "families": families, "count": len(families)})

    async def _list_active_instances(self, args: dict[str, Any]) -> str:
        zone = require_str(args, "zone")
        project_id = await self._project(args)
        instances = await self.client.list_instances(project_id, zone)
        running = [i for i in instances if i.get("status") == "RUNNING"]
        return json_text(
            {
                "instances": [
                    {
                        "name": i.get("name"),
                        "machineType": str(i.get("machineType", "")).rsplit("/", 1)[-1],
                        "status": i.get("status"),
                        "framework": (i.get("labels") or {}).get("framework", "Unknown"),
                    }
                    for i in running
                ],
                "count": len(running),
            }
        )

    # Notebooks and training

    async def _create_notebook_instance(self, args: dict[str, Any]) -> str:
        instance_name = require_str(args, "instanceName")
        machine_type = require_str(args, "machineType")
        framework = require_str(args, "framework")
        zone = require_str(args, "zone")
        accelerator = optional_choice(args, "acceleratorType", NOTEBOOK_ACCELERATORS) or "NONE"
        count = optional_int(args, "acceleratorCount", minimum=0, maximum=MAX_ACCELERATORS) or 0
        gpu = accelerator != "NONE"

        body: dict[str, Any] = {
            "machineType": machine_type,
            "vmImage": {
                "project": DEEP_LEARNING_IMAGE_PROJECT,
                "imageFamily": image_family(framework, gpu=gpu),
            },
        }
        if gpu:
            body["acceleratorConfig"] = {"type": accelerator, "coreCount": max(count, 1)}
            body["installGpuDriver"] = True

        project_id = await self._project(args)
        operation = await self.client.create_notebook_instance(project_id, zone, instance_name, body)
        return json_text(
            {
                "instanceName": instance_name,
                "operation": operation.get("name"),
                "done": operation.get("done", False),
            }
        )

    async def _submit_training_job(self, args: dict[str, Any]) -> str:
        job_name = require_str(args, "jobName")
        if not _JOB_ID.match(job_name):
            raise ArgumentError(
                "'jobName' must start with a letter and contain only letters, digits and underscores"
            )
        dataset_uri = require_str(args, "datasetUri")
        model_type = require_str(args, "modelType")
        scale_tier = require_choice(args, "scaleTier", SCALE_TIERS)
        epochs = optional_int(args, "epochs", minimum=1)
        region = optional_str(args, "region") or self.region
        if not self.training_image:
            raise ArgumentError(
                "No training container image configured (set GCP_TRAINING_IMAGE)"
            )

        trainer_args = [f"--dataset-uri={dataset_uri}", f"--model-type={model_type}"]
        if epochs is not None:
            trainer_args.append(f"--epochs={epochs}")
        body = {
            "jobId": job_name,
            "trainingInput": {
                "scaleTier": scale_tier,
                "region": region,
                "masterConfig": {"imageUri": self.training_image},
                "args": trainer_args,
            },
        }

        project_id = await self._project(args)
        job = await self.client.submit_training_job(project_id, body)
        logger.info(
            f"Submitted training job {job_name}",
            extra={"project_id": project_id, "scale_tier": scale_tier},
        )
        return json_text(
            {"jobId": job.get("jobId", job_name), "state": job.get("state"), "createTime": job.get("createTime")}
        )

    async def _monitor_training_job(self, args: dict[str, Any]) -> str:
        job_id = require_str(args, "jobId")
        project_id = await self._project(args)
        job = await self.client.get_training_job(project_id, job_id)
        output = job.get("trainingOutput") or {}
        return json_text(
            {
                "jobId": job.get("jobId", job_id),
                "state": job.get("state"),
                "createTime": job.get("createTime"),
                "startTime": job.get("startTime"),
                "endTime": job.get("endTime"),
                "errorMessage": job.get("errorMessage"),
                "consumedMLUnits": output.get("consumedMLUnits"),
                "logsUrl": (
                    "https://console.cloud.google.com/logs/query;query="
                    f"resource.labels.job_id%3D%22{job_id}%22?project={project_id}"
                ),
            }
        )

    async def _share_tensorboard_dashboard(self, args: dict[str, Any]) -> str:
        log_dir = require_str(args, "logDir")
        emails = require_str_list(args, "shareWith")
        bucket, _ = split_gs_uri(log_dir)

        policy = await self.client.get_bucket_iam_policy(bucket)
        updated, added = add_viewers(policy, emails)
        if added:
            await self.client.set_bucket_iam_policy(bucket, updated)
        logger.info(
            f"Shared TensorBoard logs in {bucket} with {len(added)} new member(s)",
            extra={"bucket": bucket},
        )
        return json_text(
            {
                "bucket": bucket,
                "logDir": log_dir,
                "role": TENSORBOARD_ROLE,
                "added": added,
                "tensorboardCommand": f"tensorboard --logdir {log_dir}",
            }
        )

    # Command-line tools

    async def _terraform_apply(self, args: dict[str, Any]) -> str:
        config_path = require_str(args, "configPath")
        variables = optional_mapping(args, "variables") or {}
        chdir = f"-chdir={config_path}"

        _check(
            await self.client.run_command(["terraform", chdir, "init", "-input=false"]),
            "terraform init",
        )
        apply = ["terraform", chdir, "apply", "-auto-approve", "-input=false"]
        for name, value in variables.items():
            rendered = str(value).lower() if isinstance(value, bool) else str(value)
            apply += ["-var", f"{name}={rendered}"]
        result = _check(await self.client.run_command(apply), "terraform apply")
        return json_text({"output": result.stdout, "stderr": result.stderr})

    async def _deployment_manager_apply(self, args: dict[str, Any]) -> str:
        config_path = require_str(args, "configPath")
        name = deployment_name(config_path)
        result = _check(
            await self.client.run_command(
                [
                    "gcloud",
                    "deployment-manager",
                    "deployments",
                    "create",
                    name,
                    "--config",
                    config_path,
                ]
            ),
            "gcloud deployment-manager",
        )
        return json_text({"deployment": name, "output": result.stdout, "stderr": result.stderr})

    async def _gcloud_command(self, args: dict[str, Any]) -> str:
        command = require_str(args, "command")
        try:
            argv = shlex.split(command)
        except ValueError as e:
            raise ArgumentError(f"'command' could not be parsed: {e}") from None
        if argv and argv[0] == "gcloud":
            argv = argv[1:]
        if not argv:
            raise ArgumentError("'command' must contain a gcloud sub-command")

        result = _check(await self.client.run_command(["gcloud", *argv]), "gcloud command")
        return json_text({"output": result.stdout, "stderr": result.stderr})
