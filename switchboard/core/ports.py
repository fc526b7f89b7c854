"""Port interfaces for the Switchboard tool servers.

These abstract base classes define the boundaries between the core tool
sets and external adapters. Implementations live in the adapters/ package.

Port Interface Categories:

1. **Driven Ports** (core calls out to vendor adapters)
   - TodoistPort: tasks, projects, sections, labels, comments
   - WooCommercePort: products and orders of a WooCommerce store
   - SendGridPort: mail send, marketing contacts, lists, templates, stats
   - ClassroomPort: Google Classroom courses, coursework, rosters
   - GoogleCloudPort: Compute Engine, Notebooks, AI Platform, Storage IAM, CLIs

2. **Driving Port** (transports call into core)
   - ToolServerPort: list_tools / call_tool contract exposed over MCP,
     the HTTP gateway and the CLI

Vendor resources are passed through as plain dicts in the vendor's own
field names; the core only reads the fields it formats.
"""

from abc import ABC, abstractmethod
from collections.abc import Sequence
from typing import Any

from .models import CommandResult, Page, ToolResult, ToolSpec


# ============================================================================
# DRIVING PORT (transports call into core)
# ============================================================================


class ToolServerPort(ABC):
    """Port for a catalogue of callable tools.

    Implementations must never raise from call_tool for a bad request;
    every failure is reported inside the returned ToolResult.
    """

    #: Short key used for configuration and server selection, e.g. "todoist".
    key: str = ""
    #: Name announced to MCP clients.
    server_name: str = ""
    version: str = "0.1.0"
    #: Legacy names accepted by the HTTP gateway's server selection.
    aliases: tuple[str, ...] = ()

    @abstractmethod
    def list_tools(self) -> list[ToolSpec]:
        """Return the static tool catalogue in declaration order."""

    @abstractmethod
    async def call_tool(
        self, name: str, arguments: dict[str, Any] | None
    ) -> ToolResult:
        """Execute a tool and return its reply envelope.

        Args:
            name: Tool name from the catalogue.
            arguments: Call arguments (None is treated as empty).

        Returns:
            ToolResult with is_error set for unknown tools, invalid
            arguments and vendor failures.
        """

    @abstractmethod
    async def close(self) -> None:
        """Release vendor clients."""


# ============================================================================
# DRIVEN PORTS (core calls out to vendor adapters)
# ============================================================================


class TodoistPort(ABC):
    """Port for the Todoist REST API.

    Payload dicts use the REST field names (``project_id``, ``due_string``,
    ``is_favorite`` ...). List methods return one Page; ``next_cursor`` is
    passed through untouched.

    All methods raise VendorAPIError on HTTP or transport failure.
    """

    # Tasks

    @abstractmethod
    async def get_tasks(
        self,
        *,
        project_id: str | None = None,
        section_id: str | None = None,
        parent_id: str | None = None,
        label: str | None = None,
        ids: Sequence[str] | None = None,
        cursor: str | None = None,
        limit: int | None = None,
    ) -> Page:
        """Return active tasks matching the given filters."""

    @abstractmethod
    async def filter_tasks(
        self, query: str, *, cursor: str | None = None, limit: int | None = None
    ) -> Page:
        """Return tasks matching a Todoist filter query."""

    @abstractmethod
    async def get_task(self, task_id: str) -> dict[str, Any]:
        """Return a single task."""

    @abstractmethod
    async def add_task(self, data: dict[str, Any]) -> dict[str, Any]:
        """Create a task and return it."""

    @abstractmethod
    async def quick_add_task(self, data: dict[str, Any]) -> dict[str, Any]:
        """Create a task from natural-language Quick Add text."""

    @abstractmethod
    async def update_task(self, task_id: str, data: dict[str, Any]) -> dict[str, Any]:
        """Update a task and return it."""

    @abstractmethod
    async def delete_task(self, task_id: str) -> None:
        """Delete a task."""

    @abstractmethod
    async def close_task(self, task_id: str) -> None:
        """Mark a task complete."""

    @abstractmethod
    async def reopen_task(self, task_id: str) -> None:
        """Reopen a completed task."""

    @abstractmethod
    async def move_task(self, task_id: str, destination: dict[str, str]) -> dict[str, Any]:
        """Move a task (with its subtasks).

        Args:
            task_id: Task to move.
            destination: Exactly one of ``project_id``, ``section_id``, ``parent_id``.

        Returns:
            The vendor's reply body (may be empty).
        """

    # Projects

    @abstractmethod
    async def get_projects(
        self, *, cursor: str | None = None, limit: int | None = None
    ) -> Page:
        """Return active projects."""

    @abstractmethod
    async def get_project(self, project_id: str) -> dict[str, Any]:
        """Return a single project."""

    @abstractmethod
    async def add_project(self, data: dict[str, Any]) -> dict[str, Any]:
        """Create a project."""

    @abstractmethod
    async def update_project(self, project_id: str, data: dict[str, Any]) -> dict[str, Any]:
        """Update a project."""

    @abstractmethod
    async def delete_project(self, project_id: str) -> None:
        """Delete a project."""

    # Sections

    @abstractmethod
    async def get_sections(
        self,
        *,
        project_id: str | None = None,
        cursor: str | None = None,
        limit: int | None = None,
    ) -> Page:
        """Return sections, optionally of one project."""

    @abstractmethod
    async def add_section(self, data: dict[str, Any]) -> dict[str, Any]:
        """Create a section."""

    @abstractmethod
    async def update_section(self, section_id: str, data: dict[str, Any]) -> dict[str, Any]:
        """Update a section."""

    @abstractmethod
    async def delete_section(self, section_id: str) -> None:
        """Delete a section."""

    # Labels

    @abstractmethod
    async def get_labels(
        self, *, cursor: str | None = None, limit: int | None = None
    ) -> Page:
        """Return personal labels."""

    @abstractmethod
    async def get_label(self, label_id: str) -> dict[str, Any]:
        """Return a single label."""

    @abstractmethod
    async def add_label(self, data: dict[str, Any]) -> dict[str, Any]:
        """Create a label."""

    @abstractmethod
    async def update_label(self, label_id: str, data: dict[str, Any]) -> dict[str, Any]:
        """Update a label."""

    @abstractmethod
    async def delete_label(self, label_id: str) -> None:
        """Delete a label."""

    # Comments

    @abstractmethod
    async def get_comments(
        self,
        *,
        task_id: str | None = None,
        project_id: str | None = None,
        cursor: str | None = None,
        limit: int | None = None,
    ) -> Page:
        """Return comments of a task or a project."""

    @abstractmethod
    async def get_comment(self, comment_id: str) -> dict[str, Any]:
        """Return a single comment."""

    @abstractmethod
    async def add_comment(self, data: dict[str, Any]) -> dict[str, Any]:
        """Create a comment."""

    @abstractmethod
    async def update_comment(self, comment_id: str, data: dict[str, Any]) -> dict[str, Any]:
        """Update a comment."""

    @abstractmethod
    async def delete_comment(self, comment_id: str) -> None:
        """Delete a comment."""

    @abstractmethod
    async def close(self) -> None:
        """Close the underlying HTTP client."""


class WooCommercePort(ABC):
    """Port for the WooCommerce REST API (wc/v3).

    List methods return a Page whose ``next_cursor`` is the next page
    number as a string, or None on the last page.
    """

    @abstractmethod
    async def list_products(
        self,
        *,
        page: int = 1,
        per_page: int = 10,
        search: str | None = None,
        status: str | None = None,
    ) -> Page:
        """Return one page of products."""

    @abstractmethod
    async def get_product(self, product_id: int) -> dict[str, Any]:
        """Return a single product."""

    @abstractmethod
    async def create_product(self, data: dict[str, Any]) -> dict[str, Any]:
        """Create a product."""

    @abstractmethod
    async def update_product(self, product_id: int, data: dict[str, Any]) -> dict[str, Any]:
        """Update a product."""

    @abstractmethod
    async def delete_product(self, product_id: int, force: bool = True) -> dict[str, Any]:
        """Delete a product; ``force`` bypasses the trash."""

    @abstractmethod
    async def list_orders(
        self,
        *,
        page: int = 1,
        per_page: int = 10,
        status: str | None = None,
        customer: int | None = None,
    ) -> Page:
        """Return one page of orders."""

    @abstractmethod
    async def get_order(self, order_id: int) -> dict[str, Any]:
        """Return a single order."""

    @abstractmethod
    async def update_order(self, order_id: int, data: dict[str, Any]) -> dict[str, Any]:
        """Update an order."""

    @abstractmethod
    async def close(self) -> None:
        """Close the underlying HTTP client."""


class SendGridPort(ABC):
    """Port for the SendGrid v3 API."""

    @abstractmethod
    async def send_mail(self, payload: dict[str, Any]) -> None:
        """Send a v3 mail-send payload."""

    @abstractmethod
    async def search_contacts(self, query: str) -> list[dict[str, Any]]:
        """Run an SGQL contact search and return matching contacts."""

    @abstractmethod
    async def delete_contacts(self, contact_ids: Sequence[str]) -> None:
        """Delete marketing contacts by id."""

    @abstractmethod
    async def upsert_contacts(
        self,
        contacts: Sequence[dict[str, Any]],
        list_ids: Sequence[str] | None = None,
    ) -> dict[str, Any]:
        """Add or update contacts, optionally adding them to lists."""

    @abstractmethod
    async def list_lists(self) -> list[dict[str, Any]]:
        """Return all contact lists."""

    @abstractmethod
    async def create_list(self, name: str) -> dict[str, Any]:
        """Create a contact list."""

    @abstractmethod
    async def delete_list(self, list_id: str) -> None:
        """Delete a contact list."""

    @abstractmethod
    async def remove_contacts_from_list(
        self, list_id: str, contact_ids: Sequence[str]
    ) -> None:
        """Remove contacts from a list without deleting them."""

    @abstractmethod
    async def create_template(self, name: str, generation: str = "dynamic") -> dict[str, Any]:
        """Create a transactional template."""

    @abstractmethod
    async def create_template_version(
        self, template_id: str, version: dict[str, Any]
    ) -> dict[str, Any]:
        """Create a template version."""

    @abstractmethod
    async def list_templates(self) -> list[dict[str, Any]]:
        """Return dynamic templates."""

    @abstractmethod
    async def get_template(self, template_id: str) -> dict[str, Any]:
        """Return a template with its versions."""

    @abstractmethod
    async def delete_template(self, template_id: str) -> None:
        """Delete a template."""

    @abstractmethod
    async def validate_email(self, email: str) -> dict[str, Any]:
        """Validate an email address."""

    @abstractmethod
    async def get_stats(self, params: dict[str, Any]) -> Any:
        """Return global email statistics."""

    @abstractmethod
    async def create_single_send(self, payload: dict[str, Any]) -> dict[str, Any]:
        """Create a Single Send."""

    @abstractmethod
    async def schedule_single_send(self, single_send_id: str, send_at: str) -> dict[str, Any]:
        """Schedule a Single Send (``send_at`` may be ``"now"``)."""

    @abstractmethod
    async def get_single_send(self, single_send_id: str) -> dict[str, Any]:
        """Return a Single Send."""

    @abstractmethod
    async def list_single_sends(self) -> list[dict[str, Any]]:
        """Return all Single Sends."""

    @abstractmethod
    async def get_suppression_groups(self) -> Any:
        """Return unsubscribe groups."""

    @abstractmethod
    async def get_verified_senders(self) -> Any:
        """Return verified sender identities."""

    @abstractmethod
    async def close(self) -> None:
        """Close the underlying HTTP client."""


class ClassroomPort(ABC):
    """Port for the Google Classroom API v1.

    Raises NotAuthenticatedError when no user token is available.
    """

    @abstractmethod
    async def create_course(self, body: dict[str, Any]) -> dict[str, Any]:
        """Create a course."""

    @abstractmethod
    async def list_courses(self, page_size: int = 50) -> list[dict[str, Any]]:
        """Return courses visible to the user."""

    @abstractmethod
    async def get_course(self, course_id: str) -> dict[str, Any]:
        """Return a course."""

    @abstractmethod
    async def list_announcements(
        self, course_id: str, page_size: int = 20
    ) -> list[dict[str, Any]]:
        """Return announcements of a course."""

    @abstractmethod
    async def create_course_work(
        self, course_id: str, body: dict[str, Any]
    ) -> dict[str, Any]:
        """Create coursework in a course."""

    @abstractmethod
    async def list_students(
        self, course_id: str, page_size: int = 100
    ) -> list[dict[str, Any]]:
        """Return the student roster of a course."""

    @abstractmethod
    async def list_submissions(
        self, course_id: str, course_work_id: str, page_size: int = 100
    ) -> list[dict[str, Any]]:
        """Return student submissions for a coursework item."""

    @abstractmethod
    async def patch_submission(
        self,
        course_id: str,
        course_work_id: str,
        submission_id: str,
        body: dict[str, Any],
        update_mask: str,
    ) -> dict[str, Any]:
        """Patch a student submission."""

    @abstractmethod
    async def close(self) -> None:
        """Close the underlying HTTP client."""


class GoogleCloudPort(ABC):
    """Port for the Google Cloud APIs and command-line tools."""

    @abstractmethod
    async def get_project_id(self) -> str:
        """Return the default project of the configured credentials."""

    @abstractmethod
    async def insert_instance(
        self, project_id: str, zone: str, body: dict[str, Any]
    ) -> dict[str, Any]:
        """Create a Compute Engine instance and return the operation."""

    @abstractmethod
    async def list_instances(self, project_id: str, zone: str) -> list[dict[str, Any]]:
        """Return instances in a zone."""

    @abstractmethod
    async def list_images(self, project_id: str) -> list[dict[str, Any]]:
        """Return images published in a project."""

    @abstractmethod
    async def create_notebook_instance(
        self,
        project_id: str,
        location: str,
        instance_id: str,
        body: dict[str, Any],
    ) -> dict[str, Any]:
        """Create a user-managed notebook instance and return the operation."""

    @abstractmethod
    async def submit_training_job(
        self, project_id: str, body: dict[str, Any]
    ) -> dict[str, Any]:
        """Submit an AI Platform training job."""

    @abstractmethod
    async def get_training_job(self, project_id: str, job_id: str) -> dict[str, Any]:
        """Return an AI Platform training job."""

    @abstractmethod
    async def get_bucket_iam_policy(self, bucket: str) -> dict[str, Any]:
        """Return the IAM policy of a Cloud Storage bucket."""

    @abstractmethod
    async def set_bucket_iam_policy(
        self, bucket: str, policy: dict[str, Any]
    ) -> dict[str, Any]:
        """Replace the IAM policy of a Cloud Storage bucket."""

    @abstractmethod
    async def run_command(self, argv: Sequence[str]) -> CommandResult:
        """Run a command-line tool without a shell.

        Returns:
            CommandResult, including non-zero exits.

        Raises:
            VendorAPIError: If the executable is missing or times out.
        """

    @abstractmethod
    async def close(self) -> None:
        """Close the underlying HTTP client."""
