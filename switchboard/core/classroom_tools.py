"""Google Classroom tool set.

Replies are the compact JSON text of a projected result (only the fields
a caller needs, not the full API resource).
"""

import json
import logging
from datetime import date
from typing import Any

from .errors import ArgumentError
from .ports import ClassroomPort
from .toolkit import ToolSet, tool_spec
from .validation import optional_int, optional_number, optional_str, require_number, require_str

logger = logging.getLogger(__name__)

DEFAULT_MAX_POINTS = 100
GRADE_UPDATE_MASK = "assignedGrade,draftGrade"

_COURSE_ID = {"courseId": {"type": "string", "description": "The ID of the course"}}


# ============================================================================
# CATALOGUE
# ============================================================================

CREATE_CLASSROOM = tool_spec(
    "create_classroom",
    "Create a new Google Classroom course owned by the authenticated user",
    {
        "name": {"type": "string", "description": "Name of the course"},
        "section": {"type": "string", "description": "Section, e.g. 'Period 2' (optional)"},
        "descriptionHeading": {"type": "string", "description": "Description heading (optional)"},
        "description": {"type": "string", "description": "Course description (optional)"},
        "room": {"type": "string", "description": "Room location (optional)"},
    },
    required=["name"],
)

COURSES = tool_spec("courses", "List the courses visible to the authenticated user")

COURSE_DETAILS = tool_spec(
    "course-details",
    "Get the name and section of a course",
    _COURSE_ID,
    required=["courseId"],
)

ANNOUNCEMENTS = tool_spec(
    "announcements",
    "List announcements posted in a course",
    {
        **_COURSE_ID,
        "limit": {
            "type": "number",
            "description": "Maximum number of announcements (default: 20)",
            "default": 20,
        },
    },
    required=["courseId"],
)

CREATE_ASSIGNMENT = tool_spec(
    "create_assignment",
    "Create and publish an assignment in a course",
    {
        **_COURSE_ID,
        "title": {"type": "string", "description": "Assignment title"},
        "description": {"type": "string", "description": "Assignment instructions (optional)"},
        "dueDate": {"type": "string", "description": "Due date in YYYY-MM-DD format (optional)"},
        "points": {
            "type": "number",
            "description": "Maximum points (default: 100)",
            "default": DEFAULT_MAX_POINTS,
        },
    },
    required=["courseId", "title"],
)

ROSTER = tool_spec(
    "roster",
    "List the students enrolled in a course",
    _COURSE_ID,
    required=["courseId"],
)

SUBMISSIONS = tool_spec(
    "submissions",
    "List student submissions for an assignment",
    {
        **_COURSE_ID,
        "assignmentId": {"type": "string", "description": "The ID of the assignment"},
    },
    required=["courseId", "assignmentId"],
)

GRADE_SUBMISSION = tool_spec(
    "grade_submission",
    "Set the assigned and draft grade of a student submission",
    {
        **_COURSE_ID,
        "assignmentId": {"type": "string", "description": "The ID of the assignment"},
        "submissionId": {"type": "string", "description": "The ID of the submission"},
        "grade": {"type": "number", "description": "Grade to assign"},
    },
    required=["courseId", "assignmentId", "submissionId", "grade"],
)


def parse_due_date(value: str) -> dict[str, int]:
    """Convert ``YYYY-MM-DD`` to a Classroom Date message."""
    try:
        due = date.fromisoformat(value.strip())
    except ValueError:
        raise ArgumentError(f"'dueDate' must be a date in YYYY-MM-DD format, got {value!r}") from None
    return {"year": due.year, "month": due.month, "day": due.day}


class ClassroomToolSet(ToolSet):
    """Tools over a ClassroomPort."""

    key = "classroom"
    server_name = "classroom-mcp-server"
    version = "1.0.0"
    aliases = ("GCLS_MCP",)

    def __init__(self, client: ClassroomPort):
        super().__init__()
        self.client = client

        self.register(CREATE_CLASSROOM, self._create_classroom)
        self.register(COURSES, self._courses)
        self.register(COURSE_DETAILS, self._course_details)
        self.register(ANNOUNCEMENTS, self._announcements)
        self.register(CREATE_ASSIGNMENT, self._create_assignment)
        self.register(ROSTER, self._roster)
        self.register(SUBMISSIONS, self._submissions)
        self.register(GRADE_SUBMISSION, self._grade_submission)

    async def close(self) -> None:
        await self.client.close()

    async def _create_classroom(self, args: dict[str, Any]) -> str:
        body = {
            "name": require_str(args, "name"),
            "section": optional_str(args, "section") or "",
            "descriptionHeading": optional_str(args, "descriptionHeading") or "",
            "description": optional_str(args, "description") or "",
            "room": optional_str(args, "room") or "",
            "ownerId": "me",
            "courseState": "PROVISIONED",
        }
        course = await self.client.create_course(body)
        logger.info(f"Created course {course.get('id')}", extra={"course_id": course.get("id")})
        return json.dumps(
            {
                "id": course.get("id"),
                "name": course.get("name"),
                "enrollmentCode": course.get("enrollmentCode"),
            }
        )

    async def _courses(self, args: dict[str, Any]) -> str:
        return json.dumps(await self.client.list_courses(page_size=50))

    async def _course_details(self, args: dict[str, Any]) -> str:
        course = await self.client.get_course(require_str(args, "courseId"))
        return json.dumps(
            {
                "id": course.get("id"),
                "name": course.get("name"),
                "section": course.get("section") or "",
            }
        )

    async def _announcements(self, args: dict[str, Any]) -> str:
        course_id = require_str(args, "courseId")
        limit = optional_int(args, "limit", minimum=1) or 20
        return json.dumps(await self.client.list_announcements(course_id, page_size=limit))

    async def _create_assignment(self, args: dict[str, Any]) -> str:
        course_id = require_str(args, "courseId")
        body: dict[str, Any] = {
            "title": require_str(args, "title"),
            "workType": "ASSIGNMENT",
            "state": "PUBLISHED",
            "maxPoints": optional_number(args, "points") or DEFAULT_MAX_POINTS,
        }
        description = optional_str(args, "description")
        if description:
            body["description"] = description
        due_date = optional_str(args, "dueDate")
        if due_date:
            body["dueDate"] = parse_due_date(due_date)

        work = await self.client.create_course_work(course_id, body)
        return json.dumps(
            {"id": work.get("id"), "title": work.get("title"), "dueDate": work.get("dueDate")}
        )

    async def _roster(self, args: dict[str, Any]) -> str:
        students = await self.client.list_students(require_str(args, "courseId"), page_size=100)
        roster = []
        for student in students:
            profile = student.get("profile") or {}
            roster.append(
                {
                    "userId": student.get("userId"),
                    "fullName": (profile.get("name") or {}).get("fullName"),
                    "email": profile.get("emailAddress"),
                }
            )
        return json.dumps(roster)

    async def _submissions(self, args: dict[str, Any]) -> str:
        submissions = await self.client.list_submissions(
            require_str(args, "courseId"),
            require_str(args, "assignmentId"),
            page_size=100,
        )
        return json.dumps(
            [
                {
                    "id": s.get("id"),
                    "userId": s.get("userId"),
                    "state": s.get("state"),
                    "grade": s.get("assignedGrade"),
                }
                for s in submissions
            ]
        )

    async def _grade_submission(self, args: dict[str, Any]) -> str:
        course_id = require_str(args, "courseId")
        assignment_id = require_str(args, "assignmentId")
        submission_id = require_str(args, "submissionId")
        grade = require_number(args, "grade")

        await self.client.patch_submission(
            course_id,
            assignment_id,
            submission_id,
            {"assignedGrade": grade, "draftGrade": grade},
            update_mask=GRADE_UPDATE_MASK,
        )
        logger.info(
            f"Graded submission {submission_id}",
            extra={"course_id": course_id, "submission_id": submission_id},
        )
        return json.dumps({"success": True, "message": "Submission graded"})
