"""Unit tests for the SendGrid tool set."""

import json

import pytest

from switchboard.core.dedup import RecentSubmissions
from switchboard.core.errors import ArgumentError, VendorAPIError
from switchboard.core.sendgrid_tools import SendGridToolSet, emails_query, list_query
from switchboard.tests.fakes import FakeSendGridPort


# ============================================================================
# Test Fixtures
# ============================================================================


class FakeClock:
    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


@pytest.fixture
def client() -> FakeSendGridPort:
    """Create an empty fake SendGrid account."""
    return FakeSendGridPort()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def toolset(client: FakeSendGridPort, clock: FakeClock) -> SendGridToolSet:
    """Create a tool set with a controllable dedup clock."""
    return SendGridToolSet(client, recent=RecentSubmissions(window_seconds=30, clock=clock))


@pytest.fixture
def email_args() -> dict:
    return {
        "to": "ada@example.com",
        "from": "news@example.com",
        "subject": "Hello",
        "text": "Hi Ada",
    }


@pytest.fixture
def send_to_list_args() -> dict:
    return {
        "name": "October newsletter",
        "list_ids": ["list-a", "list-b"],
        "subject": "News",
        "html_content": "<p>News</p>",
        "plain_content": "News",
        "sender_id": 7,
        "suppression_group_id": 42,
    }


# ============================================================================
# Query building
# ============================================================================


class TestQueries:
    """Tests for SGQL query construction."""

    def test_emails_query(self) -> None:
        assert emails_query(["a@b.co"]) == "email IN ('a@b.co')"

    def test_emails_query_multiple_with_list(self) -> None:
        assert emails_query(["a@b.co", "c@d.co"], list_id="L1") == (
            "email IN ('a@b.co','c@d.co') AND CONTAINS(list_ids, 'L1')"
        )

    def test_list_query(self) -> None:
        assert list_query("abc") == "CONTAINS(list_ids, 'abc')"

    @pytest.mark.parametrize("email", ["o'brien@example.com", 'x"@y.z', "a\\b@c.d"])
    def test_quotes_rejected(self, email: str) -> None:
        with pytest.raises(ArgumentError, match="not allowed in a contact query"):
            emails_query([email])


class TestDescribeFailure:
    def test_http_failure_uses_vendor_wording(self, toolset: SendGridToolSet) -> None:
        error = VendorAPIError("forbidden", status_code=403)
        assert toolset.describe_failure("Error", error) == "SendGrid API Error: forbidden"

    def test_transport_failure_uses_prefix(self, toolset: SendGridToolSet) -> None:
        error = VendorAPIError("Connection refused")
        assert toolset.describe_failure("Error", error) == "Error: Connection refused"


# ============================================================================
# Mail
# ============================================================================


@pytest.mark.asyncio
class TestSendEmail:
    """Tests for send_email."""

    async def test_sends_plain_and_html(
        self, toolset: SendGridToolSet, client: FakeSendGridPort, email_args: dict
    ) -> None:
        result = await toolset.call_tool(
            "send_email", {**email_args, "html": "<p>Hi Ada</p>"}
        )

        assert result.text == "Email sent successfully to ada@example.com"
        assert client.sent_mail == [
            {
                "personalizations": [{"to": [{"email": "ada@example.com"}]}],
                "from": {"email": "news@example.com"},
                "subject": "Hello",
                "content": [
                    {"type": "text/plain", "value": "Hi Ada"},
                    {"type": "text/html", "value": "<p>Hi Ada</p>"},
                ],
            }
        ]

    async def test_template_data_in_personalization(
        self, toolset: SendGridToolSet, client: FakeSendGridPort, email_args: dict
    ) -> None:
        await toolset.call_tool(
            "send_email",
            {**email_args, "template_id": "d-1", "dynamic_template_data": {"name": "Ada"}},
        )

        payload = client.sent_mail[0]
        assert payload["template_id"] == "d-1"
        assert payload["personalizations"][0]["dynamic_template_data"] == {"name": "Ada"}

    async def test_duplicate_within_window_suppressed(
        self,
        toolset: SendGridToolSet,
        client: FakeSendGridPort,
        clock: FakeClock,
        email_args: dict,
    ) -> None:
        await toolset.call_tool("send_email", email_args)
        clock.now = 10

        result = await toolset.call_tool("send_email", email_args)

        assert not result.is_error
        assert result.text == (
            "Duplicate email to ada@example.com suppressed: "
            "the same message was sent within the last 30 seconds"
        )
        assert len(client.sent_mail) == 1

    async def test_resend_after_window(
        self,
        toolset: SendGridToolSet,
        client: FakeSendGridPort,
        clock: FakeClock,
        email_args: dict,
    ) -> None:
        await toolset.call_tool("send_email", email_args)
        clock.now = 31

        result = await toolset.call_tool("send_email", email_args)

        assert result.text.startswith("Email sent successfully")
        assert len(client.sent_mail) == 2

    async def test_failed_send_not_remembered(
        self, toolset: SendGridToolSet, client: FakeSendGridPort, email_args: dict
    ) -> None:
        client.should_fail = True
        failed = await toolset.call_tool("send_email", email_args)
        client.should_fail = False
        retried = await toolset.call_tool("send_email", email_args)

        assert failed.is_error
        assert failed.text == "SendGrid API Error: The provided authorization grant is invalid"
        assert retried.text.startswith("Email sent successfully")

    async def test_missing_subject(
        self, toolset: SendGridToolSet, client: FakeSendGridPort, email_args: dict
    ) -> None:
        del email_args["subject"]

        result = await toolset.call_tool("send_email", email_args)

        assert result.text == "Invalid arguments for send_email: 'subject' is required"
        assert client.call_count == 0


@pytest.mark.asyncio
class TestSendToList:
    """Tests for send_to_list."""

    async def test_creates_and_schedules_now(
        self,
        toolset: SendGridToolSet,
        client: FakeSendGridPort,
        send_to_list_args: dict,
    ) -> None:
        result = await toolset.call_tool("send_to_list", send_to_list_args)

        assert result.text == 'Email "October newsletter" has been sent to the specified lists'
        (single_send,) = client.single_sends.values()
        assert single_send["send_to"] == {"list_ids": ["list-a", "list-b"]}
        assert single_send["email_config"]["suppression_group_id"] == 42
        assert client.schedules == [(single_send["id"], "now")]

    async def test_requires_unsubscribe_option(
        self,
        toolset: SendGridToolSet,
        client: FakeSendGridPort,
        send_to_list_args: dict,
    ) -> None:
        del send_to_list_args["suppression_group_id"]

        result = await toolset.call_tool("send_to_list", send_to_list_args)

        assert result.is_error
        assert result.text == (
            "Invalid arguments for send_to_list: "
            "Either suppression_group_id or custom_unsubscribe_url must be provided"
        )
        assert client.call_count == 0

    async def test_custom_unsubscribe_url_accepted(
        self,
        toolset: SendGridToolSet,
        client: FakeSendGridPort,
        send_to_list_args: dict,
    ) -> None:
        del send_to_list_args["suppression_group_id"]
        send_to_list_args["custom_unsubscribe_url"] = "https://example.com/unsub"

        result = await toolset.call_tool("send_to_list", send_to_list_args)

        assert not result.is_error
        (single_send,) = client.single_sends.values()
        assert single_send["email_config"]["custom_unsubscribe_url"] == "https://example.com/unsub"

    async def test_repeat_send_suppressed(
        self,
        toolset: SendGridToolSet,
        client: FakeSendGridPort,
        send_to_list_args: dict,
    ) -> None:
        await toolset.call_tool("send_to_list", send_to_list_args)
        send_to_list_args["list_ids"] = ["list-b", "list-a"]

        result = await toolset.call_tool("send_to_list", send_to_list_args)

        assert result.text.startswith('Duplicate send of "October newsletter" suppressed')
        assert len(client.schedules) == 1


# ============================================================================
# Contacts and lists
# ============================================================================


@pytest.mark.asyncio
class TestContacts:
    """Tests for contact and list tools."""

    async def test_delete_contacts_resolves_ids(
        self, toolset: SendGridToolSet, client: FakeSendGridPort
    ) -> None:
        client.search_results = [{"id": "c1", "email": "a@b.co"}, {"id": "c2", "email": "c@d.co"}]

        result = await toolset.call_tool("delete_contacts", {"emails": ["a@b.co", "c@d.co"]})

        assert result.text == "Successfully deleted 2 contacts"
        assert client.queries == ["email IN ('a@b.co','c@d.co')"]
        assert client.deleted_contact_ids == [["c1", "c2"]]

    async def test_delete_contacts_no_match_skips_delete(
        self, toolset: SendGridToolSet, client: FakeSendGridPort
    ) -> None:
        await toolset.call_tool("delete_contacts", {"emails": ["a@b.co"]})
        assert client.deleted_contact_ids == []

    async def test_delete_contacts_rejects_quotes_before_request(
        self, toolset: SendGridToolSet, client: FakeSendGridPort
    ) -> None:
        result = await toolset.call_tool("delete_contacts", {"emails": ["x'@y.z"]})

        assert result.is_error
        assert client.call_count == 0

    async def test_list_contacts_summary(
        self, toolset: SendGridToolSet, client: FakeSendGridPort
    ) -> None:
        client.search_results = [
            {"id": "c1", "email": "a@b.co", "first_name": "Ada", "last_name": "L", "city": "X"}
        ]

        result = await toolset.call_tool("list_contacts", {})

        assert json.loads(result.text) == [
            {"email": "a@b.co", "first_name": "Ada", "last_name": "L"}
        ]
        assert client.queries == ["email IS NOT NULL"]

    async def test_add_contact(
        self, toolset: SendGridToolSet, client: FakeSendGridPort
    ) -> None:
        result = await toolset.call_tool(
            "add_contact",
            {"email": "a@b.co", "first_name": "Ada", "custom_fields": {"e1_T": "x"}},
        )

        assert result.text == "Contact a@b.co added successfully"
        assert client.upserts == [
            ([{"email": "a@b.co", "first_name": "Ada", "custom_fields": {"e1_T": "x"}}], None)
        ]

    async def test_list_lifecycle(
        self, toolset: SendGridToolSet, client: FakeSendGridPort
    ) -> None:
        created = await toolset.call_tool("create_contact_list", {"name": "VIP"})
        assert created.text == 'Contact list "VIP" created with ID: list-1'

        added = await toolset.call_tool(
            "add_contacts_to_list", {"list_id": "list-1", "emails": ["a@b.co"]}
        )
        assert added.text == "Added 1 contacts to list list-1"
        assert client.upserts[-1] == ([{"email": "a@b.co"}], ["list-1"])

        listed = await toolset.call_tool("list_contact_lists", {})
        assert json.loads(listed.text) == [{"id": "list-1", "name": "VIP", "contact_count": 0}]

        deleted = await toolset.call_tool("delete_list", {"list_id": "list-1"})
        assert deleted.text == "Contact list list-1 deleted successfully"
        assert client.lists == {}

    async def test_remove_contacts_from_list(
        self, toolset: SendGridToolSet, client: FakeSendGridPort
    ) -> None:
        client.search_results = [{"id": "c1", "email": "a@b.co"}]

        result = await toolset.call_tool(
            "remove_contacts_from_list", {"list_id": "L1", "emails": ["a@b.co"]}
        )

        assert result.text == "Removed 1 contacts from list L1"
        assert client.queries == ["email IN ('a@b.co') AND CONTAINS(list_ids, 'L1')"]
        assert client.removed_from_list == [("L1", ["c1"])]

    async def test_get_contacts_by_list(
        self, toolset: SendGridToolSet, client: FakeSendGridPort
    ) -> None:
        await toolset.call_tool("get_contacts_by_list", {"list_id": "L1"})
        assert client.queries == ["CONTAINS(list_ids, 'L1')"]


# ============================================================================
# Templates, stats and account
# ============================================================================


@pytest.mark.asyncio
class TestTemplatesAndAccount:
    """Tests for template, stats and account tools."""

    async def test_create_template_adds_active_version(
        self, toolset: SendGridToolSet, client: FakeSendGridPort
    ) -> None:
        result = await toolset.call_tool(
            "create_template",
            {
                "name": "Welcome",
                "subject": "Hi {{name}}",
                "html_content": "<p>Hi</p>",
                "plain_content": "Hi",
            },
        )

        assert result.text == 'Template "Welcome" created with ID: d-1'
        template_id, version = client.template_versions[0]
        assert template_id == "d-1"
        assert version["name"] == "Welcome v1"
        assert version["active"] == 1

    async def test_list_templates_counts_versions(
        self, toolset: SendGridToolSet, client: FakeSendGridPort
    ) -> None:
        client.templates["d-9"] = {"id": "d-9", "name": "T", "generation": "dynamic", "versions": [{}, {}]}

        result = await toolset.call_tool("list_templates", {})

        assert json.loads(result.text)[0]["versions"] == 2

    async def test_get_missing_template(self, toolset: SendGridToolSet) -> None:
        result = await toolset.call_tool("get_template", {"template_id": "d-404"})

        assert result.is_error
        assert result.text == "SendGrid API Error: resource not found"

    async def test_get_stats_params(
        self, toolset: SendGridToolSet, client: FakeSendGridPort
    ) -> None:
        await toolset.call_tool(
            "get_stats", {"start_date": "2024-01-01", "aggregated_by": "week"}
        )
        assert client.stats_params == [{"start_date": "2024-01-01", "aggregated_by": "week"}]

    async def test_get_stats_bad_aggregation(
        self, toolset: SendGridToolSet, client: FakeSendGridPort
    ) -> None:
        result = await toolset.call_tool(
            "get_stats", {"start_date": "2024-01-01", "aggregated_by": "year"}
        )
        assert result.is_error
        assert client.call_count == 0

    async def test_validate_email(self, toolset: SendGridToolSet) -> None:
        result = await toolset.call_tool("validate_email", {"email": "a@b.co"})
        assert json.loads(result.text)["result"]["verdict"] == "Valid"

    async def test_suppression_groups_and_senders(self, toolset: SendGridToolSet) -> None:
        groups = await toolset.call_tool("list_suppression_groups", {})
        senders = await toolset.call_tool("list_verified_senders", {})

        assert json.loads(groups.text) == [{"id": 42, "name": "Newsletter"}]
        assert json.loads(senders.text)["results"][0]["id"] == 7

    async def test_single_send_lookup(
        self,
        toolset: SendGridToolSet,
        client: FakeSendGridPort,
        send_to_list_args: dict,
    ) -> None:
        await toolset.call_tool("send_to_list", send_to_list_args)
        (single_send_id,) = client.single_sends

        found = await toolset.call_tool("get_single_send", {"single_send_id": single_send_id})
        listed = await toolset.call_tool("list_single_sends", {})

        assert json.loads(found.text)["list_ids"] == ["list-a", "list-b"]
        assert json.loads(listed.text)[0]["status"] == "scheduled"
