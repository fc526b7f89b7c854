"""Test suite for the Switchboard tool servers.

Organized into three categories:

1. core/: Unit tests for tool sets, validation and de-duplication
   - No network, fast execution
   - Uses in-memory fakes for ports

2. adapters/: Tests for adapter implementations
   - Vendor clients against httpx.MockTransport
   - Gateway, MCP binding and CLI behavior

3. fakes/: Port implementations for testing
   - In-memory implementations of TodoistPort, SendGridPort, etc.

CLI commands and the composition root are tested at the top level.
"""
