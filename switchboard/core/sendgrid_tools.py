"""SendGrid tool set: mail send, marketing contacts and lists, templates,
statistics and Single Sends.

Contact lookups go through SendGrid's SGQL search, so email addresses and
list ids are interpolated into quoted query strings. Values containing a
quote or backslash are rejected before any request is made.
"""

import logging
from collections.abc import Iterable, Mapping, Sequence
from typing import Any

from .dedup import RecentSubmissions
from .errors import ArgumentError, VendorAPIError
from .ports import SendGridPort
from .toolkit import ToolSet, json_text, tool_spec
from .validation import (
    is_provided,
    optional_choice,
    optional_int,
    optional_mapping,
    optional_str,
    require_int,
    require_str,
    require_str_list,
)

logger = logging.getLogger(__name__)

AGGREGATIONS = ("day", "week", "month")

_NO_ARGS: dict[str, Any] = {}
_UNSAFE_QUERY_CHARS = ("'", '"', "\\")


# ============================================================================
# CATALOGUE
# ============================================================================

DELETE_CONTACTS = tool_spec(
    "delete_contacts",
    "Delete contacts from your SendGrid account",
    {
        "emails": {
            "type": "array",
            "items": {"type": "string"},
            "description": "Array of email addresses to delete",
        }
    },
    required=["emails"],
)

LIST_CONTACTS = tool_spec(
    "list_contacts", "List all contacts in your SendGrid account", _NO_ARGS
)

SEND_EMAIL = tool_spec(
    "send_email",
    "Send an email using SendGrid",
    {
        "to": {"type": "string", "description": "Recipient email address"},
        "subject": {"type": "string", "description": "Email subject line"},
        "text": {"type": "string", "description": "Plain text content of the email"},
        "html": {"type": "string", "description": "HTML content of the email (optional)"},
        "from": {
            "type": "string",
            "description": "Sender email address (must be verified with SendGrid)",
        },
        "template_id": {"type": "string", "description": "SendGrid template ID (optional)"},
        "dynamic_template_data": {
            "type": "object",
            "description": "Dynamic data for template variables (optional)",
        },
    },
    required=["to", "subject", "text", "from"],
)

ADD_CONTACT = tool_spec(
    "add_contact",
    "Add a contact to your SendGrid marketing contacts",
    {
        "email": {"type": "string", "description": "Contact email address"},
        "first_name": {"type": "string", "description": "Contact first name (optional)"},
        "last_name": {"type": "string", "description": "Contact last name (optional)"},
        "custom_fields": {"type": "object", "description": "Custom field values (optional)"},
    },
    required=["email"],
)

CREATE_CONTACT_LIST = tool_spec(
    "create_contact_list",
    "Create a new contact list in SendGrid",
    {"name": {"type": "string", "description": "Name of the contact list"}},
    required=["name"],
)

ADD_CONTACTS_TO_LIST = tool_spec(
    "add_contacts_to_list",
    "Add contacts to an existing SendGrid list",
    {
        "list_id": {"type": "string", "description": "ID of the contact list"},
        "emails": {
            "type": "array",
            "items": {"type": "string"},
            "description": "Array of email addresses to add to the list",
        },
    },
    required=["list_id", "emails"],
)

CREATE_TEMPLATE = tool_spec(
    "create_template",
    "Create a new email template in SendGrid",
    {
        "name": {"type": "string", "description": "Name of the template"},
        "subject": {"type": "string", "description": "Default subject line for the template"},
        "html_content": {"type": "string", "description": "HTML content of the template"},
        "plain_content": {"type": "string", "description": "Plain text content of the template"},
    },
    required=["name", "subject", "html_content", "plain_content"],
)

GET_TEMPLATE = tool_spec(
    "get_template",
    "Retrieve a SendGrid template by ID",
    {"template_id": {"type": "string", "description": "ID of the template to retrieve"}},
    required=["template_id"],
)

DELETE_TEMPLATE = tool_spec(
    "delete_template",
    "Delete a dynamic template from SendGrid",
    {"template_id": {"type": "string", "description": "ID of the template to delete"}},
    required=["template_id"],
)

VALIDATE_EMAIL = tool_spec(
    "validate_email",
    "Validate an email address using SendGrid",
    {"email": {"type": "string", "description": "Email address to validate"}},
    required=["email"],
)

GET_STATS = tool_spec(
    "get_stats",
    "Get SendGrid email statistics",
    {
        "start_date": {"type": "string", "description": "Start date in YYYY-MM-DD format"},
        "end_date": {
            "type": "string",
            "description": "End date in YYYY-MM-DD format (optional)",
        },
        "aggregated_by": {
            "type": "string",
            "enum": list(AGGREGATIONS),
            "description": "How to aggregate the statistics (optional)",
        },
    },
    required=["start_date"],
)

LIST_TEMPLATES = tool_spec(
    "list_templates", "List all email templates in your SendGrid account", _NO_ARGS
)

DELETE_LIST = tool_spec(
    "delete_list",
    "Delete a contact list from SendGrid",
    {"list_id": {"type": "string", "description": "ID of the contact list to delete"}},
    required=["list_id"],
)

LIST_CONTACT_LISTS = tool_spec(
    "list_contact_lists", "List all contact lists in your SendGrid account", _NO_ARGS
)

GET_CONTACTS_BY_LIST = tool_spec(
    "get_contacts_by_list",
    "Get all contacts in a SendGrid list",
    {"list_id": {"type": "string", "description": "ID of the contact list"}},
    required=["list_id"],
)

LIST_VERIFIED_SENDERS = tool_spec(
    "list_verified_senders",
    "List all verified sender identities in your SendGrid account",
    _NO_ARGS,
)

LIST_SUPPRESSION_GROUPS = tool_spec(
    "list_suppression_groups",
    "List all unsubscribe groups in your SendGrid account",
    _NO_ARGS,
)

SEND_TO_LIST = tool_spec(
    "send_to_list",
    "Send an email to a contact list using SendGrid Single Sends",
    {
        "name": {"type": "string", "description": "Name of the single send"},
        "list_ids": {
            "type": "array",
            "items": {"type": "string"},
            "description": "Array of list IDs to send to",
        },
        "subject": {"type": "string", "description": "Email subject line"},
        "html_content": {"type": "string", "description": "HTML content of the email"},
        "plain_content": {"type": "string", "description": "Plain text content of the email"},
        "sender_id": {"type": "number", "description": "ID of the verified sender"},
        "suppression_group_id": {
            "type": "number",
            "description": "ID of the suppression group for unsubscribes (required if custom_unsubscribe_url not provided)",
        },
        "custom_unsubscribe_url": {
            "type": "string",
            "description": "Custom URL for unsubscribes (required if suppression_group_id not provided)",
        },
    },
    required=["name", "list_ids", "subject", "html_content", "plain_content", "sender_id"],
)

GET_SINGLE_SEND = tool_spec(
    "get_single_send",
    "Get details of a specific single send",
    {"single_send_id": {"type": "string", "description": "ID of the single send to retrieve"}},
    required=["single_send_id"],
)

LIST_SINGLE_SENDS = tool_spec(
    "list_single_sends", "List all single sends in your SendGrid account", _NO_ARGS
)

REMOVE_CONTACTS_FROM_LIST = tool_spec(
    "remove_contacts_from_list",
    "Remove contacts from a SendGrid list without deleting them",
    {
        "list_id": {"type": "string", "description": "ID of the contact list"},
        "emails": {
            "type": "array",
            "items": {"type": "string"},
            "description": "Array of email addresses to remove from the list",
        },
    },
    required=["list_id", "emails"],
)


# ============================================================================
# QUERY BUILDING
# ============================================================================


def _query_literal(value: str, key: str) -> str:
    """Quote a value for an SGQL query."""
    if any(ch in value for ch in _UNSAFE_QUERY_CHARS):
        raise ArgumentError(f"'{key}' contains characters not allowed in a contact query")
    return f"'{value}'"


def emails_query(emails: Sequence[str], list_id: str | None = None) -> str:
    """Build the SGQL query matching ``emails`` (optionally within one list)."""
    literals = ",".join(_query_literal(email, "emails") for email in emails)
    query = f"email IN ({literals})"
    if list_id is not None:
        query += f" AND {list_query(list_id)}"
    return query


def list_query(list_id: str) -> str:
    return f"CONTAINS(list_ids, {_query_literal(list_id, 'list_id')})"


def _contact_summary(contacts: Iterable[Mapping[str, Any]]) -> list[dict[str, Any]]:
    return [
        {
            "email": c.get("email"),
            "first_name": c.get("first_name"),
            "last_name": c.get("last_name"),
        }
        for c in contacts
    ]


def _contact_ids(contacts: Iterable[Mapping[str, Any]]) -> list[str]:
    return [c["id"] for c in contacts if c.get("id")]


# ============================================================================
# TOOL SET
# ============================================================================


class SendGridToolSet(ToolSet):
    """Tools over a SendGridPort."""

    key = "sendgrid"
    server_name = "sendgrid-mcp-server"
    version = "0.2.0"
    aliases = ("SENDGRID", "sendgrid-mcp")

    def __init__(
        self,
        client: SendGridPort,
        recent: RecentSubmissions | None = None,
    ):
        super().__init__()
        self.client = client
        self.recent = recent if recent is not None else RecentSubmissions()

        for spec, handler in (
            (DELETE_CONTACTS, self._delete_contacts),
            (LIST_CONTACTS, self._list_contacts),
            (SEND_EMAIL, self._send_email),
            (ADD_CONTACT, self._add_contact),
            (CREATE_CONTACT_LIST, self._create_contact_list),
            (ADD_CONTACTS_TO_LIST, self._add_contacts_to_list),
            (CREATE_TEMPLATE, self._create_template),
            (GET_TEMPLATE, self._get_template),
            (DELETE_TEMPLATE, self._delete_template),
            (VALIDATE_EMAIL, self._validate_email),
            (GET_STATS, self._get_stats),
            (LIST_TEMPLATES, self._list_templates),
            (DELETE_LIST, self._delete_list),
            (LIST_CONTACT_LISTS, self._list_contact_lists),
            (GET_CONTACTS_BY_LIST, self._get_contacts_by_list),
            (LIST_VERIFIED_SENDERS, self._list_verified_senders),
            (LIST_SUPPRESSION_GROUPS, self._list_suppression_groups),
            (SEND_TO_LIST, self._send_to_list),
            (GET_SINGLE_SEND, self._get_single_send),
            (LIST_SINGLE_SENDS, self._list_single_sends),
            (REMOVE_CONTACTS_FROM_LIST, self._remove_contacts_from_list),
        ):
            self.register(spec, handler)

    def describe_failure(self, prefix: str, error: VendorAPIError) -> str:
        if error.status_code is None:
            return f"{prefix}: {error.message}"
        return f"SendGrid API Error: {error.message}"

    async def close(self) -> None:
        await self.client.close()

    # Contacts

    async def _delete_contacts(self, args: dict[str, Any]) -> str:
        emails = require_str_list(args, "emails")
        contacts = await self.client.search_contacts(emails_query(emails))
        contact_ids = _contact_ids(contacts)
        if contact_ids:
            await self.client.delete_contacts(contact_ids)
        logger.info(
            f"Deleted {len(contact_ids)} of {len(emails)} requested contacts",
            extra={"requested": len(emails), "matched": len(contact_ids)},
        )
        return f"Successfully deleted {len(emails)} contacts"

    async def _list_contacts(self, args: dict[str, Any]) -> str:
        contacts = await self.client.search_contacts("email IS NOT NULL")
        return json_text(_contact_summary(contacts))

    async def _add_contact(self, args: dict[str, Any]) -> str:
        email = require_str(args, "email")
        contact: dict[str, Any] = {"email": email}
        for key in ("first_name", "last_name"):
            value = optional_str(args, key)
            if value:
                contact[key] = value
        custom_fields = optional_mapping(args, "custom_fields")
        if custom_fields:
            contact["custom_fields"] = custom_fields
        await self.client.upsert_contacts([contact])
        return f"Contact {email} added successfully"

    async def _get_contacts_by_list(self, args: dict[str, Any]) -> str:
        list_id = require_str(args, "list_id")
        contacts = await self.client.search_contacts(list_query(list_id))
        return json_text(_contact_summary(contacts))

    # Lists

    async def _create_contact_list(self, args: dict[str, Any]) -> str:
        name = require_str(args, "name")
        created = await self.client.create_list(name)
        return f'Contact list "{name}" created with ID: {created.get("id")}'

    async def _add_contacts_to_list(self, args: dict[str, Any]) -> str:
        list_id = require_str(args, "list_id")
        emails = require_str_list(args, "emails")
        await self.client.upsert_contacts([{"email": e} for e in emails], list_ids=[list_id])
        return f"Added {len(emails)} contacts to list {list_id}"

    async def _remove_contacts_from_list(self, args: dict[str, Any]) -> str:
        list_id = require_str(args, "list_id")
        emails = require_str_list(args, "emails")
        contacts = await self.client.search_contacts(emails_query(emails, list_id=list_id))
        contact_ids = _contact_ids(contacts)
        if contact_ids:
            await self.client.remove_contacts_from_list(list_id, contact_ids)
        return f"Removed {len(emails)} contacts from list {list_id}"

    async def _delete_list(self, args: dict[str, Any]) -> str:
        list_id = require_str(args, "list_id")
        await self.client.delete_list(list_id)
        return f"Contact list {list_id} deleted successfully"

    async def _list_contact_lists(self, args: dict[str, Any]) -> str:
        lists = await self.client.list_lists()
        return json_text(
            [
                {"id": l.get("id"), "name": l.get("name"), "contact_count": l.get("contact_count")}
                for l in lists
            ]
        )

    # Mail

    async def _send_email(self, args: dict[str, Any]) -> str:
        to = require_str(args, "to")
        sender = require_str(args, "from")
        subject = require_str(args, "subject")
        text = require_str(args, "text")
        html = optional_str(args, "html")
        template_id = optional_str(args, "template_id")
        template_data = optional_mapping(args, "dynamic_template_data")

        recent_key = RecentSubmissions.key("email", to, sender, subject, text)
        if self.recent.get(recent_key) is not None:
            logger.info(f"Duplicate email to {to} suppressed", extra={"to": to})
            return (
                f"Duplicate email to {to} suppressed: the same message was sent "
                f"within the last {self.recent.window_seconds:g} seconds"
            )

        personalization: dict[str, Any] = {"to": [{"email": to}]}
        if template_data:
            personalization["dynamic_template_data"] = template_data
        payload: dict[str, Any] = {
            "personalizations": [personalization],
            "from": {"email": sender},
            "subject": subject,
            "content": [{"type": "text/plain", "value": text}],
        }
        if html:
            payload["content"].append({"type": "text/html", "value": html})
        if template_id:
            payload["template_id"] = template_id

        await self.client.send_mail(payload)
        self.recent.remember(recent_key)
        logger.info(f"Email sent to {to}", extra={"to": to, "template_id": template_id})
        return f"Email sent successfully to {to}"

    async def _send_to_list(self, args: dict[str, Any]) -> str:
        name = require_str(args, "name")
        list_ids = require_str_list(args, "list_ids")
        subject = require_str(args, "subject")
        html_content = require_str(args, "html_content")
        plain_content = require_str(args, "plain_content")
        sender_id = require_int(args, "sender_id")
        suppression_group_id = optional_int(args, "suppression_group_id")
        unsubscribe_url = optional_str(args, "custom_unsubscribe_url")
        if not suppression_group_id and not is_provided(unsubscribe_url):
            raise ArgumentError(
                "Either suppression_group_id or custom_unsubscribe_url must be provided"
            )

        recent_key = RecentSubmissions.key("single_send", name, subject, *sorted(list_ids))
        if self.recent.get(recent_key) is not None:
            return (
                f'Duplicate send of "{name}" suppressed: it was sent to the same lists '
                f"within the last {self.recent.window_seconds:g} seconds"
            )

        email_config: dict[str, Any] = {
            "subject": subject,
            "html_content": html_content,
            "plain_content": plain_content,
            "sender_id": sender_id,
        }
        if suppression_group_id:
            email_config["suppression_group_id"] = suppression_group_id
        if is_provided(unsubscribe_url):
            email_config["custom_unsubscribe_url"] = unsubscribe_url

        single_send = await self.client.create_single_send(
            {"name": name, "send_to": {"list_ids": list_ids}, "email_config": email_config}
        )
        await self.client.schedule_single_send(single_send["id"], "now")
        self.recent.remember(recent_key, single_send.get("id"))
        logger.info(
            f"Single send {single_send.get('id')} scheduled",
            extra={"single_send_id": single_send.get("id"), "list_ids": list_ids},
        )
        return f'Email "{name}" has been sent to the specified lists'

    async def _get_single_send(self, args: dict[str, Any]) -> str:
        single_send = await self.client.get_single_send(require_str(args, "single_send_id"))
        send_to = single_send.get("send_to") or {}
        return json_text(
            {
                "id": single_send.get("id"),
                "name": single_send.get("name"),
                "status": single_send.get("status"),
                "send_at": single_send.get("send_at"),
                "list_ids": send_to.get("list_ids"),
            }
        )

    async def _list_single_sends(self, args: dict[str, Any]) -> str:
        single_sends = await self.client.list_single_sends()
        return json_text(
            [
                {
                    "id": s.get("id"),
                    "name": s.get("name"),
                    "status": s.get("status"),
                    "send_at": s.get("send_at"),
                }
                for s in single_sends
            ]
        )

    # Templates

    async def _create_template(self, args: dict[str, Any]) -> str:
        name = require_str(args, "name")
        subject = require_str(args, "subject")
        html_content = require_str(args, "html_content")
        plain_content = require_str(args, "plain_content")

        template = await self.client.create_template(name, generation="dynamic")
        template_id = template["id"]
        await self.client.create_template_version(
            template_id,
            {
                "template_id": template_id,
                "name": f"{name} v1",
                "subject": subject,
                "html_content": html_content,
                "plain_content": plain_content,
                "active": 1,
            },
        )
        return f'Template "{name}" created with ID: {template_id}'

    async def _get_template(self, args: dict[str, Any]) -> str:
        template = await self.client.get_template(require_str(args, "template_id"))
        return json_text(template)

    async def _delete_template(self, args: dict[str, Any]) -> str:
        template_id = require_str(args, "template_id")
        await self.client.delete_template(template_id)
        return f"Template {template_id} deleted successfully"

    async def _list_templates(self, args: dict[str, Any]) -> str:
        templates = await self.client.list_templates()
        return json_text(
            [
                {
                    "id": t.get("id"),
                    "name": t.get("name"),
                    "generation": t.get("generation"),
                    "updated_at": t.get("updated_at"),
                    "versions": len(t.get("versions") or []),
                }
                for t in templates
            ]
        )

    # Account

    async def _validate_email(self, args: dict[str, Any]) -> str:
        return json_text(await self.client.validate_email(require_str(args, "email")))

    async def _get_stats(self, args: dict[str, Any]) -> str:
        params: dict[str, Any] = {"start_date": require_str(args, "start_date")}
        end_date = optional_str(args, "end_date")
        if end_date:
            params["end_date"] = end_date
        aggregated_by = optional_choice(args, "aggregated_by", AGGREGATIONS)
        if aggregated_by:
            params["aggregated_by"] = aggregated_by
        return json_text(await self.client.get_stats(params))

    async def _list_verified_senders(self, args: dict[str, Any]) -> str:
        return json_text(await self.client.get_verified_senders())

    async def _list_suppression_groups(self, args: dict[str, Any]) -> str:
        return json_text(await self.client.get_suppression_groups())
