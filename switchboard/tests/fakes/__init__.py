"""Fake implementations of core ports for testing.

These in-memory implementations allow the tool sets to be tested
without network access or vendor credentials:

- FakeTodoistPort: In-memory tasks, projects, sections, labels and comments
- FakeWooCommercePort: In-memory products and orders
- FakeSendGridPort: Captured mail, contact queries, lists and templates
- FakeClassroomPort: In-memory courses with a switchable auth state
- FakeGoogleCloudPort: Captured Cloud requests and scripted command runs
"""

from .classroom import FakeClassroomPort
from .google_cloud import FakeGoogleCloudPort
from .sendgrid import FakeSendGridPort
from .todoist import FakeTodoistPort
from .woocommerce import FakeWooCommercePort

__all__ = [
    "FakeClassroomPort",
    "FakeGoogleCloudPort",
    "FakeSendGridPort",
    "FakeTodoistPort",
    "FakeWooCommercePort",
]
