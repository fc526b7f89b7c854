"""Todoist tool set.

Exposes tasks, projects, sections, labels and comments of a Todoist
account. Tool arguments are camelCase; the payloads handed to the
TodoistPort use the REST API's snake_case field names.

Create tools refuse to create an item whose name (or content) already
exists in the same scope and report the existing item instead.
"""

import logging
from collections.abc import Iterable, Mapping
from typing import Any

from .dedup import RecentSubmissions
from .models import MoveTally, Page, ToolResult
from .ports import TodoistPort
from .toolkit import ToolSet, json_text, tool_spec
from .validation import (
    at_most_one_of,
    exactly_one_of,
    optional_bool,
    optional_choice,
    optional_int,
    optional_mapping,
    optional_str,
    optional_str_list,
    require_str,
    require_str_list,
)

logger = logging.getLogger(__name__)

DESTINATION_KEYS = ("projectId", "sectionId", "parentId")
COMMENT_TARGET_KEYS = ("taskId", "projectId")
PRIORITIES = (1, 2, 3, 4)
VIEW_STYLES = ("list", "board")
MAX_PAGE_SIZE = 200

_SNAKE_KEYS = {
    "projectId": "project_id",
    "sectionId": "section_id",
    "parentId": "parent_id",
    "taskId": "task_id",
    "fileName": "file_name",
    "fileType": "file_type",
    "fileUrl": "file_url",
    "resourceType": "resource_type",
}

_ONE_DESTINATION = "(Optional, use only one of projectId, sectionId, parentId)"
_ONE_TARGET = "(provide either taskId or projectId, not both)"
_CURSOR = {"type": "string", "description": "Pagination cursor for next page (optional)"}


# ============================================================================
# CATALOGUE
# ============================================================================

# Tasks

CREATE_TASK = tool_spec(
    "todoist_create_task",
    "Create a new task in Todoist with comprehensive options including subtasks",
    {
        "content": {"type": "string", "description": "The content/title of the task"},
        "description": {
            "type": "string",
            "description": "Detailed description of the task (optional)",
        },
        "projectId": {
            "type": "string",
            "description": "Project ID to create the task in (optional)",
        },
        "sectionId": {
            "type": "string",
            "description": "Section ID to create the task in (optional)",
        },
        "parentId": {
            "type": "string",
            "description": "Parent task ID to create this as a subtask (optional)",
        },
        "dueString": {
            "type": "string",
            "description": "Natural language due date like 'tomorrow', 'next Monday', 'Jan 23' (optional)",
        },
        "priority": {
            "type": "number",
            "description": "Task priority from 1 (normal) to 4 (urgent) (optional)",
            "enum": list(PRIORITIES),
        },
        "labels": {
            "type": "array",
            "items": {"type": "string"},
            "description": "Array of label names to assign to the task (optional)",
        },
    },
    required=["content"],
)

QUICK_ADD_TASK = tool_spec(
    "todoist_quick_add_task",
    "Create a task using Todoist's Quick Add feature with natural language parsing",
    {
        "text": {
            "type": "string",
            "description": "Natural language text for quick task creation (e.g., 'Buy milk tomorrow at 2pm #shopping')",
        },
        "note": {"type": "string", "description": "Additional note for the task (optional)"},
        "reminder": {"type": "string", "description": "Reminder time (optional)"},
    },
    required=["text"],
)

GET_TASKS = tool_spec(
    "todoist_get_tasks",
    "Get tasks with comprehensive filtering and pagination support",
    {
        "projectId": {"type": "string", "description": "Filter tasks by project ID (optional)"},
        "sectionId": {"type": "string", "description": "Filter tasks by section ID (optional)"},
        "parentId": {
            "type": "string",
            "description": "Filter tasks by parent ID (get subtasks) (optional)",
        },
        "label": {"type": "string", "description": "Filter tasks by label name (optional)"},
        "ids": {
            "type": "array",
            "items": {"type": "string"},
            "description": "Array of task IDs to retrieve (optional)",
        },
        "cursor": _CURSOR,
        "limit": {
            "type": "number",
            "description": "Maximum number of tasks to return (default: 50, max: 200) (optional)",
            "default": 50,
        },
    },
)

GET_TASK = tool_spec(
    "todoist_get_task",
    "Get a specific task by its ID",
    {"taskId": {"type": "string", "description": "The ID of the task to retrieve"}},
    required=["taskId"],
)

UPDATE_TASK = tool_spec(
    "todoist_update_task",
    "Update an existing task by its ID",
    {
        "taskId": {"type": "string", "description": "The ID of the task to update"},
        "content": {"type": "string", "description": "New content/title for the task (optional)"},
        "description": {"type": "string", "description": "New description for the task (optional)"},
        "dueString": {"type": "string", "description": "New due date in natural language (optional)"},
        "priority": {
            "type": "number",
            "description": "New priority level from 1 (normal) to 4 (urgent) (optional)",
            "enum": list(PRIORITIES),
        },
        "labels": {
            "type": "array",
            "items": {"type": "string"},
            "description": "New array of label names (optional)",
        },
    },
    required=["taskId"],
)

DELETE_TASK = tool_spec(
    "todoist_delete_task",
    "Delete a task by its ID",
    {"taskId": {"type": "string", "description": "The ID of the task to delete"}},
    required=["taskId"],
)

COMPLETE_TASK = tool_spec(
    "todoist_complete_task",
    "Mark a task as complete by its ID",
    {"taskId": {"type": "string", "description": "The ID of the task to complete"}},
    required=["taskId"],
)

REOPEN_TASK = tool_spec(
    "todoist_reopen_task",
    "Reopen a completed task by its ID",
    {"taskId": {"type": "string", "description": "The ID of the completed task to reopen"}},
    required=["taskId"],
)

SEARCH_TASKS = tool_spec(
    "todoist_search_tasks",
    "Search for tasks by content/name (fallback for when ID is not known)",
    {
        "query": {"type": "string", "description": "Search query to find tasks by content"},
        "projectId": {
            "type": "string",
            "description": "Limit search to specific project (optional)",
        },
        "limit": {
            "type": "number",
            "description": "Maximum number of results (default: 10) (optional)",
            "default": 10,
        },
    },
    required=["query"],
)

MOVE_TASK = tool_spec(
    "todoist_move_task",
    "Move a single task (and its subtasks, if any) to a different project, section, "
    "or make it a subtask of another task. Provide the taskId and exactly one of: "
    "projectId, sectionId, or parentId.",
    {
        "taskId": {"type": "string", "description": "The ID of the task to move."},
        "projectId": {
            "type": "string",
            "description": f"The ID of the destination project. {_ONE_DESTINATION}",
        },
        "sectionId": {
            "type": "string",
            "description": f"The ID of the destination section. {_ONE_DESTINATION}",
        },
        "parentId": {
            "type": "string",
            "description": f"The ID of the parent task to move this task under. {_ONE_DESTINATION}",
        },
    },
    required=["taskId"],
)

BULK_MOVE_TASKS = tool_spec(
    "todoist_bulk_move_tasks",
    "Move multiple tasks (and their respective subtasks, if any; e.g., up to 10-20 "
    "parent tasks for best performance) to a different project, section, or make "
    "them subtasks of another task. Provide an array of taskIds and exactly one "
    "destination (projectId, sectionId, or parentId).",
    {
        "taskIds": {
            "type": "array",
            "items": {"type": "string"},
            "description": "An array of task IDs to move.",
            "minItems": 1,
        },
        "projectId": {
            "type": "string",
            "description": f"The ID of the destination project. {_ONE_DESTINATION}",
        },
        "sectionId": {
            "type": "string",
            "description": f"The ID of the destination section. {_ONE_DESTINATION}",
        },
        "parentId": {
            "type": "string",
            "description": f"The ID of the parent task to move these tasks under. {_ONE_DESTINATION}",
        },
    },
    required=["taskIds"],
)

# Projects

GET_PROJECTS = tool_spec(
    "todoist_get_projects",
    "Get all active projects with pagination support",
    {
        "cursor": _CURSOR,
        "limit": {
            "type": "number",
            "description": "Maximum number of projects to return (default: 50, max: 200) (optional)",
            "default": 50,
        },
    },
)

GET_PROJECT = tool_spec(
    "todoist_get_project",
    "Get a specific project by its ID",
    {"projectId": {"type": "string", "description": "The ID of the project to retrieve"}},
    required=["projectId"],
)

_PROJECT_FIELDS = {
    "color": {"type": "string", "description": "Project color (optional)"},
    "isFavorite": {"type": "boolean", "description": "Whether to mark as favorite (optional)"},
    "viewStyle": {
        "type": "string",
        "description": "Project view style: 'list' or 'board' (optional)",
        "enum": list(VIEW_STYLES),
    },
}

CREATE_PROJECT = tool_spec(
    "todoist_create_project",
    "Create a new project",
    {
        "name": {"type": "string", "description": "The name of the project"},
        "parentId": {
            "type": "string",
            "description": "Parent project ID for creating a sub-project (optional)",
        },
        **_PROJECT_FIELDS,
    },
    required=["name"],
)

UPDATE_PROJECT = tool_spec(
    "todoist_update_project",
    "Update an existing project",
    {
        "projectId": {"type": "string", "description": "The ID of the project to update"},
        "name": {"type": "string", "description": "New name for the project (optional)"},
        **_PROJECT_FIELDS,
    },
    required=["projectId"],
)

DELETE_PROJECT = tool_spec(
    "todoist_delete_project",
    "Delete a project by its ID",
    {"projectId": {"type": "string", "description": "The ID of the project to delete"}},
    required=["projectId"],
)

# Sections

GET_SECTIONS = tool_spec(
    "todoist_get_sections",
    "Get all sections, or sections for a specific project. Supports pagination.",
    {
        "projectId": {"type": "string", "description": "Filter sections by project ID (optional)."},
        "cursor": _CURSOR,
        "limit": {
            "type": "number",
            "description": "Maximum number of sections to return (default: 50) (optional).",
        },
    },
)

CREATE_SECTION = tool_spec(
    "todoist_create_section",
    "Create a new section in a project",
    {
        "name": {"type": "string", "description": "The name of the section"},
        "projectId": {
            "type": "string",
            "description": "The project ID where the section will be created",
        },
        "order": {"type": "number", "description": "Order of the section (optional)"},
    },
    required=["name", "projectId"],
)

UPDATE_SECTION = tool_spec(
    "todoist_update_section",
    "Update an existing section",
    {
        "sectionId": {"type": "string", "description": "The ID of the section to update"},
        "name": {"type": "string", "description": "New name for the section"},
    },
    required=["sectionId", "name"],
)

DELETE_SECTION = tool_spec(
    "todoist_delete_section",
    "Delete a section by its ID",
    {"sectionId": {"type": "string", "description": "The ID of the section to delete"}},
    required=["sectionId"],
)

# Labels

CREATE_LABEL = tool_spec(
    "todoist_create_label",
    "Create a new label.",
    {
        "name": {"type": "string", "description": "The name of the label."},
        "color": {
            "type": "string",
            "description": "Label color name or code (e.g., 'berry_red', '#FF0000') (optional).",
        },
        "isFavorite": {
            "type": "boolean",
            "description": "Whether the label should be a favorite (optional).",
        },
        "order": {"type": "number", "description": "The order of the label in the list (optional)."},
    },
    required=["name"],
)

GET_LABEL = tool_spec(
    "todoist_get_label",
    "Get a specific label by its ID.",
    {"labelId": {"type": "string", "description": "The ID of the label to retrieve."}},
    required=["labelId"],
)

GET_LABELS = tool_spec(
    "todoist_get_labels",
    "Get all labels. Supports pagination.",
    {
        "cursor": _CURSOR,
        "limit": {
            "type": "number",
            "description": "Maximum number of labels to return (default: 50) (optional).",
        },
    },
)

UPDATE_LABEL = tool_spec(
    "todoist_update_label",
    "Update an existing label by its ID.",
    {
        "labelId": {"type": "string", "description": "The ID of the label to update."},
        "name": {"type": "string", "description": "New name for the label (optional)."},
        "color": {"type": "string", "description": "New color for the label (optional)."},
        "isFavorite": {"type": "boolean", "description": "New favorite status (optional)."},
        "order": {"type": "number", "description": "New order for the label (optional)."},
    },
    required=["labelId"],
)

DELETE_LABEL = tool_spec(
    "todoist_delete_label",
    "Delete a label by its ID.",
    {"labelId": {"type": "string", "description": "The ID of the label to delete."}},
    required=["labelId"],
)

# Comments

CREATE_COMMENT = tool_spec(
    "todoist_create_comment",
    "Create a new comment on a task or project",
    {
        "content": {"type": "string", "description": "The content/text of the comment"},
        "taskId": {"type": "string", "description": f"Task ID to add comment to {_ONE_TARGET}"},
        "projectId": {
            "type": "string",
            "description": f"Project ID to add comment to {_ONE_TARGET}",
        },
        "attachment": {
            "type": "object",
            "description": "Optional file attachment (optional)",
            "properties": {
                "fileName": {"type": "string"},
                "fileType": {"type": "string"},
                "fileUrl": {"type": "string"},
                "resourceType": {"type": "string"},
            },
        },
    },
    required=["content"],
)

GET_COMMENT = tool_spec(
    "todoist_get_comment",
    "Get a specific comment by its ID",
    {"commentId": {"type": "string", "description": "The ID of the comment to retrieve"}},
    required=["commentId"],
)

GET_COMMENTS = tool_spec(
    "todoist_get_comments",
    "Get comments for a task or project with pagination support",
    {
        "taskId": {"type": "string", "description": f"Task ID to get comments for {_ONE_TARGET}"},
        "projectId": {
            "type": "string",
            "description": f"Project ID to get comments for {_ONE_TARGET}",
        },
        "cursor": _CURSOR,
        "limit": {
            "type": "number",
            "description": "Maximum number of comments to return (optional)",
        },
    },
)

UPDATE_COMMENT = tool_spec(
    "todoist_update_comment",
    "Update an existing comment by its ID",
    {
        "commentId": {"type": "string", "description": "The ID of the comment to update"},
        "content": {"type": "string", "description": "New content/text for the comment"},
    },
    required=["commentId", "content"],
)

DELETE_COMMENT = tool_spec(
    "todoist_delete_comment",
    "Delete a comment by its ID",
    {"commentId": {"type": "string", "description": "The ID of the comment to delete"}},
    required=["commentId"],
)


# ============================================================================
# FORMATTING
# ============================================================================


def _field(item: Mapping[str, Any], *keys: str) -> Any:
    """Return the first non-empty value among ``keys``."""
    for key in keys:
        value = item.get(key)
        if value not in (None, "", [], {}):
            return value
    return None


def format_task(task: Mapping[str, Any]) -> str:
    """Render a task as an indented block, omitting empty fields."""
    lines = [f"- ID: {task.get('id')}", f"  Content: {task.get('content')}"]
    if task.get("description"):
        lines.append(f"  Description: {task['description']}")
    due = task.get("due")
    if due:
        lines.append(f"  Due: {due.get('string') or due.get('date')}")
    priority = task.get("priority")
    if isinstance(priority, int) and priority > 1:
        lines.append(f"  Priority: {priority}")
    if task.get("labels"):
        lines.append(f"  Labels: {', '.join(task['labels'])}")
    for label, keys in (
        ("Project ID", ("project_id",)),
        ("Section ID", ("section_id",)),
        ("Parent ID", ("parent_id",)),
        ("URL", ("url",)),
    ):
        value = _field(task, *keys)
        if value:
            lines.append(f"  {label}: {value}")
    comments = _field(task, "note_count", "comment_count")
    if isinstance(comments, int) and comments > 0:
        lines.append(f"  Comments: {comments}")
    created = _field(task, "added_at", "created_at")
    if created:
        lines.append(f"  Created At: {created}")
    creator = _field(task, "added_by_uid", "creator_id")
    if creator:
        lines.append(f"  Creator ID: {creator}")
    return "\n".join(lines)


def format_project(project: Mapping[str, Any]) -> str:
    """Render a project; the ID trails the last line."""
    text = f"- {project.get('name')}"
    if project.get("color"):
        text += f"\n  Color: {project['color']}"
    if project.get("is_favorite"):
        text += "\n  Favorite: Yes"
    if project.get("view_style"):
        text += f"\n  View: {project['view_style']}"
    if project.get("parent_id"):
        text += f"\n  Parent: {project['parent_id']}"
    if project.get("id"):
        text += f" (ID: {project['id']})"
    return text


def format_section(section: Mapping[str, Any]) -> str:
    return (
        f"- {section.get('name')} "
        f"(ID: {section.get('id')}, Project ID: {section.get('project_id')})"
    )


def format_label(label: Mapping[str, Any]) -> str:
    text = f"- {label.get('name')} (ID: {label.get('id')})"
    if label.get("color"):
        text += f"\n  Color: {label['color']}"
    if label.get("is_favorite"):
        text += "\n  Favorite: Yes"
    if label.get("order"):
        text += f"\n  Order: {label['order']}"
    return text


def format_comment(comment: Mapping[str, Any]) -> str:
    lines = [f"- ID: {comment.get('id')}", f"  Content: {comment.get('content')}"]
    posted = comment.get("posted_at")
    if posted:
        lines.append(f"  Posted At: {posted}")
    task_id = _field(comment, "item_id", "task_id")
    if task_id:
        lines.append(f"  Task ID: {task_id}")
    if comment.get("project_id"):
        lines.append(f"  Project ID: {comment['project_id']}")
    attachment = _field(comment, "file_attachment", "attachment")
    if attachment:
        lines.append(
            f"  Attachment: {attachment.get('file_name') or 'File'} "
            f"({attachment.get('file_type')})"
        )
        if attachment.get("file_url"):
            lines.append(f"  File URL: {attachment['file_url']}")
    return "\n".join(lines)


def _listing(
    heading: str,
    page: Page,
    formatter,
    empty: str,
    cursor_label: str = "Next cursor",
    separator: str = "\n\n",
) -> str:
    body = separator.join(formatter(item) for item in page) or empty
    text = f"{heading}:\n{body}"
    if page.next_cursor:
        text += f"\n\n{cursor_label}: {page.next_cursor}"
    return text


def _same_text(a: Any, b: str) -> bool:
    return isinstance(a, str) and a.strip().lower() == b.strip().lower()


def _find_by(items: Iterable[Mapping[str, Any]], key: str, value: str) -> Mapping[str, Any] | None:
    for item in items:
        if _same_text(item.get(key), value):
            return item
    return None


def _snake(key: str) -> str:
    return _SNAKE_KEYS.get(key, key)


# ============================================================================
# TOOL SET
# ============================================================================


class TodoistToolSet(ToolSet):
    """Tools over a TodoistPort."""

    key = "todoist"
    server_name = "todoist-mcp-server-enhanced"
    version = "0.2.0"
    aliases = ("TODOIST",)

    def __init__(
        self,
        client: TodoistPort,
        recent: RecentSubmissions | None = None,
    ):
        """Initialize the tool set.

        Args:
            client: TodoistPort implementation.
            recent: De-duplication cache for task creation; a fresh
                30-second cache when omitted.
        """
        super().__init__()
        self.client = client
        self.recent = recent if recent is not None else RecentSubmissions()

        # Tasks
        self.register(CREATE_TASK, self._create_task)
        self.register(QUICK_ADD_TASK, self._quick_add_task)
        self.register(GET_TASKS, self._get_tasks)
        self.register(GET_TASK, self._get_task)
        self.register(UPDATE_TASK, self._update_task)
        self.register(DELETE_TASK, self._delete_task)
        self.register(COMPLETE_TASK, self._complete_task)
        self.register(REOPEN_TASK, self._reopen_task)
        self.register(SEARCH_TASKS, self._search_tasks)
        self.register(
            MOVE_TASK,
            self._move_task,
            failure="Error moving task",
            invalid="Invalid arguments for move_task",
        )
        self.register(
            BULK_MOVE_TASKS,
            self._bulk_move_tasks,
            failure="Error in bulk moving tasks",
            invalid="Invalid arguments for bulk_move_tasks",
        )
        # Projects
        self.register(GET_PROJECTS, self._get_projects)
        self.register(GET_PROJECT, self._get_project)
        self.register(CREATE_PROJECT, self._create_project)
        self.register(UPDATE_PROJECT, self._update_project)
        self.register(DELETE_PROJECT, self._delete_project)
        # Sections
        self.register(GET_SECTIONS, self._get_sections)
        self.register(CREATE_SECTION, self._create_section)
        self.register(UPDATE_SECTION, self._update_section)
        self.register(DELETE_SECTION, self._delete_section)
        # Labels
        self.register(
            CREATE_LABEL,
            self._create_label,
            failure="Error creating label",
            invalid="Invalid arguments for create_label",
        )
        self.register(
            GET_LABEL,
            self._get_label,
            failure="Error getting label",
            invalid="Invalid arguments for get_label",
        )
        self.register(
            GET_LABELS,
            self._get_labels,
            failure="Error getting labels",
            invalid="Invalid arguments for get_labels",
        )
        self.register(
            UPDATE_LABEL,
            self._update_label,
            failure="Error updating label",
            invalid="Invalid arguments for update_label",
        )
        self.register(
            DELETE_LABEL,
            self._delete_label,
            failure="Error deleting label",
            invalid="Invalid arguments for delete_label",
        )
        # Comments
        self.register(
            CREATE_COMMENT,
            self._create_comment,
            failure="Error creating comment",
            invalid="Invalid arguments for create_comment",
        )
        self.register(
            GET_COMMENT,
            self._get_comment,
            failure="Error getting comment",
            invalid="Invalid arguments for get_comment",
        )
        self.register(
            GET_COMMENTS,
            self._get_comments,
            failure="Error getting comments",
            invalid="Invalid arguments for get_comments",
        )
        self.register(
            UPDATE_COMMENT,
            self._update_comment,
            failure="Error updating comment",
            invalid="Invalid arguments for update_comment",
        )
        self.register(
            DELETE_COMMENT,
            self._delete_comment,
            failure="Error deleting comment",
            invalid="Invalid arguments for delete_comment",
        )

    async def close(self) -> None:
        await self.client.close()

    # ------------------------------------------------------------------
    # Tasks
    # ------------------------------------------------------------------

    async def _create_task(self, args: dict[str, Any]) -> str:
        content = require_str(args, "content")
        description = optional_str(args, "description")
        project_id = optional_str(args, "projectId")
        section_id = optional_str(args, "sectionId")
        parent_id = optional_str(args, "parentId")
        due_string = optional_str(args, "dueString")
        priority = optional_int(args, "priority", choices=PRIORITIES)
        labels = optional_str_list(args, "labels")

        recent_key = RecentSubmissions.key(
            "task", content, project_id, section_id, parent_id
        )
        duplicate = self.recent.get(recent_key)
        if duplicate is None:
            existing = await self.client.get_tasks(
                project_id=project_id or None,
                section_id=section_id or None,
                parent_id=parent_id or None,
                limit=MAX_PAGE_SIZE,
            )
            duplicate = _find_by(existing, "content", content)
        if duplicate is not None:
            logger.info(
                f"Duplicate task suppressed: {content!r}",
                extra={"task_id": duplicate.get("id"), "project_id": project_id},
            )
            return (
                "Duplicate task detected. A task with the same content already exists:\n"
                f"ID: {duplicate.get('id')}\n{format_task(duplicate)}"
            )

        data: dict[str, Any] = {"content": content}
        if description:
            data["description"] = description
        if project_id:
            data["project_id"] = project_id
        if section_id:
            data["section_id"] = section_id
        if parent_id:
            data["parent_id"] = parent_id
        if due_string:
            data["due_string"] = due_string
        if priority:
            data["priority"] = priority
        if labels:
            data["labels"] = labels

        task = await self.client.add_task(data)
        self.recent.remember(recent_key, task)
        logger.info(
            f"Created task {task.get('id')}",
            extra={"task_id": task.get("id"), "project_id": task.get("project_id")},
        )
        return f"Task created successfully:\nID: {task.get('id')}\n{format_task(task)}"

    async def _quick_add_task(self, args: dict[str, Any]) -> str:
        text = require_str(args, "text")
        note = optional_str(args, "note")
        reminder = optional_str(args, "reminder")

        recent_key = RecentSubmissions.key("quick_add", text)
        duplicate = self.recent.get(recent_key)
        if duplicate is None:
            existing = await self.client.get_tasks(limit=MAX_PAGE_SIZE)
            duplicate = _find_by(existing, "content", text)
        if duplicate is not None:
            return (
                "Duplicate task detected. A task with the same content already exists:\n"
                f"ID: {duplicate.get('id')}\n{format_task(duplicate)}"
            )

        data: dict[str, Any] = {"text": text}
        if note:
            data["note"] = note
        if reminder:
            data["reminder"] = reminder

        task = await self.client.quick_add_task(data)
        self.recent.remember(recent_key, task)
        return f"Task created via Quick Add:\n{json_text(task)}"

    async def _get_tasks(self, args: dict[str, Any]) -> str:
        ids = optional_str_list(args, "ids")
        page = await self.client.get_tasks(
            project_id=optional_str(args, "projectId") or None,
            section_id=optional_str(args, "sectionId") or None,
            parent_id=optional_str(args, "parentId") or None,
            label=optional_str(args, "label") or None,
            ids=ids or None,
            cursor=optional_str(args, "cursor") or None,
            limit=optional_int(args, "limit", minimum=1, maximum=MAX_PAGE_SIZE) or 50,
        )
        return _listing("Tasks", page, format_task, "No tasks found")

    async def _get_task(self, args: dict[str, Any]) -> str:
        task = await self.client.get_task(require_str(args, "taskId"))
        return f"Task details:\nID: {task.get('id')}\n{format_task(task)}"

    async def _update_task(self, args: dict[str, Any]) -> str:
        task_id = require_str(args, "taskId")
        data: dict[str, Any] = {}
        for key, field in (
            ("content", "content"),
            ("description", "description"),
            ("dueString", "due_string"),
        ):
            value = optional_str(args, key)
            if value:
                data[field] = value
        priority = optional_int(args, "priority", choices=PRIORITIES)
        if priority:
            data["priority"] = priority
        labels = optional_str_list(args, "labels")
        if labels is not None:
            data["labels"] = labels

        task = await self.client.update_task(task_id, data)
        return f"Task updated successfully:\nID: {task.get('id')}\n{format_task(task)}"

    async def _delete_task(self, args: dict[str, Any]) -> str:
        task_id = require_str(args, "taskId")
        await self.client.delete_task(task_id)
        return f"Task {task_id} deleted successfully"

    async def _complete_task(self, args: dict[str, Any]) -> str:
        task_id = require_str(args, "taskId")
        await self.client.close_task(task_id)
        return f"Task {task_id} completed successfully"

    async def _reopen_task(self, args: dict[str, Any]) -> str:
        task_id = require_str(args, "taskId")
        await self.client.reopen_task(task_id)
        return f"Task {task_id} reopened successfully"

    async def _search_tasks(self, args: dict[str, Any]) -> str:
        query = require_str(args, "query")
        project_id = optional_str(args, "projectId")
        limit = optional_int(args, "limit", minimum=1, maximum=MAX_PAGE_SIZE) or 10

        search = query if query.startswith("search:") else f"search: {query}"
        page = await self.client.filter_tasks(search, limit=limit)
        tasks = list(page)
        scope = ""
        if project_id:
            # Filtering happens after the fetch, so only this page is covered
            scope = (
                f" in project {project_id}"
                f" (filtered from the first {len(tasks)} search result(s))"
            )
            tasks = [t for t in tasks if t.get("project_id") == project_id]

        if not tasks:
            return f'No tasks found matching the filter query "{query}"{scope}'

        project_names: dict[str, str | None] = {}
        blocks = []
        for task in tasks:
            block = format_task(task)
            task_project = task.get("project_id")
            if task_project:
                if task_project not in project_names:
                    project_names[task_project] = await self._project_name(task_project)
                name = project_names[task_project]
                if name:
                    block += f"\n  Project Name: {name}"
            blocks.append(block)

        text = f'Found {len(tasks)} task(s) matching "{query}"{scope}:\n\n' + "\n\n".join(blocks)
        if page.next_cursor and not project_id:
            text += f"\n\nNext cursor for more results: {page.next_cursor}"
        return text

    async def _project_name(self, project_id: str) -> str | None:
        try:
            project = await self.client.get_project(project_id)
        except Exception as e:
            logger.warning(
                f"Error fetching project {project_id} for search result: {e}",
                extra={"project_id": project_id},
            )
            return None
        return project.get("name")

    async def _move_task(self, args: dict[str, Any]) -> str:
        task_id = require_str(args, "taskId")
        key, value = exactly_one_of(args, DESTINATION_KEYS)
        destination = {_snake(key): value}

        await self.client.move_task(task_id, destination)
        moved = await self.client.get_task(task_id)
        logger.info(
            f"Moved task {task_id}",
            extra={"task_id": task_id, "destination": destination},
        )
        return f"Task {task_id} moved successfully.\nNew details:\n{format_task(moved)}"

    async def _bulk_move_tasks(self, args: dict[str, Any]) -> ToolResult:
        task_ids = require_str_list(args, "taskIds")
        key, value = exactly_one_of(args, DESTINATION_KEYS)
        destination = {_snake(key): value}

        logger.debug(
            f"Moving {len(task_ids)} task(s) individually",
            extra={"destination": destination},
        )
        tally = MoveTally()
        for task_id in task_ids:
            try:
                await self.client.move_task(task_id, destination)
            except Exception as e:
                logger.warning(
                    f"Failed to move task {task_id}: {e}",
                    extra={"task_id": task_id},
                )
                tally.failed.append((task_id, str(e)))
            else:
                tally.succeeded.append(task_id)

        summary = f"Bulk move attempt complete for {len(task_ids)} task(s). "
        summary += f"Succeeded: {len(tally.succeeded)}. "
        if tally.succeeded:
            summary += f"Moved IDs: {', '.join(tally.succeeded)}. "
        summary += f"Failed: {len(tally.failed)}."
        if tally.failed:
            summary += " Failed IDs: " + "; ".join(
                f"{task_id} ({error})" for task_id, error in tally.failed
            )
        return ToolResult(texts=(summary,), is_error=tally.all_failed)

    # ------------------------------------------------------------------
    # Projects
    # ------------------------------------------------------------------

    async def _get_projects(self, args: dict[str, Any]) -> str:
        page = await self.client.get_projects(
            cursor=optional_str(args, "cursor") or None,
            limit=optional_int(args, "limit", minimum=1, maximum=MAX_PAGE_SIZE),
        )
        return _listing("Projects", page, format_project, "No projects found")

    async def _get_project(self, args: dict[str, Any]) -> str:
        project = await self.client.get_project(require_str(args, "projectId"))
        return f"Project details:\nID: {project.get('id')}\n{format_project(project)}"

    def _project_payload(self, args: dict[str, Any]) -> dict[str, Any]:
        data: dict[str, Any] = {}
        color = optional_str(args, "color")
        if color:
            data["color"] = color
        is_favorite = optional_bool(args, "isFavorite")
        if is_favorite is not None:
            data["is_favorite"] = is_favorite
        view_style = optional_choice(args, "viewStyle", VIEW_STYLES)
        if view_style:
            data["view_style"] = view_style
        return data

    async def _create_project(self, args: dict[str, Any]) -> str:
        name = require_str(args, "name")
        parent_id = optional_str(args, "parentId")
        data = {"name": name, **self._project_payload(args)}
        if parent_id:
            data["parent_id"] = parent_id

        existing = await self.client.get_projects(limit=MAX_PAGE_SIZE)
        duplicate = _find_by(existing, "name", name)
        if duplicate is not None:
            return (
                "Duplicate project detected. A project with the same name already exists:\n"
                f"ID: {duplicate.get('id')}\n{format_project(duplicate)}"
            )

        project = await self.client.add_project(data)
        return f"Project created successfully:\nID: {project.get('id')}\n{format_project(project)}"

    async def _update_project(self, args: dict[str, Any]) -> str:
        project_id = require_str(args, "projectId")
        data = self._project_payload(args)
        name = optional_str(args, "name")
        if name:
            data["name"] = name

        project = await self.client.update_project(project_id, data)
        return f"Project updated successfully:\nID: {project.get('id')}\n{format_project(project)}"

    async def _delete_project(self, args: dict[str, Any]) -> str:
        project_id = require_str(args, "projectId")
        await self.client.delete_project(project_id)
        return f"Project {project_id} deleted successfully"

    # ------------------------------------------------------------------
    # Sections
    # ------------------------------------------------------------------

    async def _get_sections(self, args: dict[str, Any]) -> str:
        page = await self.client.get_sections(
            project_id=optional_str(args, "projectId") or None,
            cursor=optional_str(args, "cursor") or None,
            limit=optional_int(args, "limit", minimum=1, maximum=MAX_PAGE_SIZE),
        )
        return _listing(
            "Sections",
            page,
            format_section,
            "No sections found",
            cursor_label="Next cursor for more sections",
            separator="\n",
        )

    async def _create_section(self, args: dict[str, Any]) -> str:
        name = require_str(args, "name")
        project_id = require_str(args, "projectId")
        order = optional_int(args, "order")

        existing = await self.client.get_sections(project_id=project_id, limit=MAX_PAGE_SIZE)
        duplicate = _find_by(existing, "name", name)
        if duplicate is not None:
            return (
                "Duplicate section detected. A section with the same name already exists "
                f"in this project:\nID: {duplicate.get('id')}\nName: {duplicate.get('name')}"
            )

        data: dict[str, Any] = {"name": name, "project_id": project_id}
        if order is not None:
            data["order"] = order
        section = await self.client.add_section(data)
        return (
            f"Section created successfully:\nID: {section.get('id')}\n"
            f"Name: {section.get('name')}\nProject: {section.get('project_id')}"
        )

    async def _update_section(self, args: dict[str, Any]) -> str:
        section_id = require_str(args, "sectionId")
        name = require_str(args, "name")
        section = await self.client.update_section(section_id, {"name": name})
        return (
            f"Section updated successfully:\nID: {section.get('id')}\n"
            f"Name: {section.get('name')}"
        )

    async def _delete_section(self, args: dict[str, Any]) -> str:
        section_id = require_str(args, "sectionId")
        await self.client.delete_section(section_id)
        return f"Section {section_id} deleted successfully"

    # ------------------------------------------------------------------
    # Labels
    # ------------------------------------------------------------------

    def _label_payload(self, args: dict[str, Any]) -> dict[str, Any]:
        data: dict[str, Any] = {}
        name = optional_str(args, "name")
        if name:
            data["name"] = name
        color = optional_str(args, "color")
        if color:
            data["color"] = color
        is_favorite = optional_bool(args, "isFavorite")
        if is_favorite is not None:
            data["is_favorite"] = is_favorite
        order = optional_int(args, "order")
        if order is not None:
            data["order"] = order
        return data

    async def _create_label(self, args: dict[str, Any]) -> str:
        name = require_str(args, "name")
        data = self._label_payload(args)

        existing = await self.client.get_labels(limit=MAX_PAGE_SIZE)
        duplicate = _find_by(existing, "name", name)
        if duplicate is not None:
            return (
                "Duplicate label detected. A label with the same name already exists:\n"
                f"ID: {duplicate.get('id')}\n{format_label(duplicate)}"
            )

        label = await self.client.add_label(data)
        return f"Label created:\n{format_label(label)}"

    async def _get_label(self, args: dict[str, Any]) -> str:
        label = await self.client.get_label(require_str(args, "labelId"))
        return f"Label details:\n{format_label(label)}"

    async def _get_labels(self, args: dict[str, Any]) -> str:
        page = await self.client.get_labels(
            cursor=optional_str(args, "cursor") or None,
            limit=optional_int(args, "limit", minimum=1, maximum=MAX_PAGE_SIZE),
        )
        return _listing(
            "Labels",
            page,
            format_label,
            "No labels found",
            cursor_label="Next cursor for more labels",
        )

    async def _update_label(self, args: dict[str, Any]) -> str:
        label_id = require_str(args, "labelId")
        label = await self.client.update_label(label_id, self._label_payload(args))
        return f"Label updated:\n{format_label(label)}"

    async def _delete_label(self, args: dict[str, Any]) -> str:
        label_id = require_str(args, "labelId")
        await self.client.delete_label(label_id)
        return f"Label {label_id} deleted."

    # ------------------------------------------------------------------
    # Comments
    # ------------------------------------------------------------------

    async def _create_comment(self, args: dict[str, Any]) -> str:
        content = require_str(args, "content")
        target_key, target_id = exactly_one_of(args, COMMENT_TARGET_KEYS)
        attachment = optional_mapping(args, "attachment")
        target = {_snake(target_key): target_id}

        existing = await self.client.get_comments(**target, limit=MAX_PAGE_SIZE)
        duplicate = _find_by(existing, "content", content)
        if duplicate is not None:
            return (
                "Duplicate comment detected. A comment with the same content already exists:\n"
                f"ID: {duplicate.get('id')}\n{format_comment(duplicate)}"
            )

        data: dict[str, Any] = {"content": content, **target}
        if attachment:
            data["attachment"] = {_snake(k): v for k, v in attachment.items()}
        comment = await self.client.add_comment(data)
        return f"Comment created:\n{format_comment(comment)}"

    async def _get_comment(self, args: dict[str, Any]) -> str:
        comment = await self.client.get_comment(require_str(args, "commentId"))
        return f"Comment details:\n{format_comment(comment)}"

    async def _get_comments(self, args: dict[str, Any]) -> str:
        target = at_most_one_of(args, COMMENT_TARGET_KEYS)
        filters = {_snake(target[0]): target[1]} if target else {}
        page = await self.client.get_comments(
            **filters,
            cursor=optional_str(args, "cursor") or None,
            limit=optional_int(args, "limit", minimum=1, maximum=MAX_PAGE_SIZE),
        )
        return _listing(
            "Comments",
            page,
            format_comment,
            "No comments found",
            cursor_label="Next cursor for more comments",
        )

    async def _update_comment(self, args: dict[str, Any]) -> str:
        comment_id = require_str(args, "commentId")
        content = require_str(args, "content")
        comment = await self.client.update_comment(comment_id, {"content": content})
        return f"Comment updated:\n{format_comment(comment)}"

    async def _delete_comment(self, args: dict[str, Any]) -> str:
        comment_id = require_str(args, "commentId")
        await self.client.delete_comment(comment_id)
        return f"Comment {comment_id} deleted."
