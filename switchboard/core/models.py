"""Domain models for the Switchboard tool servers.

All models in this module use only Python standard library types,
ensuring zero external dependencies in the core domain.
"""

from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any


@dataclass(frozen=True)
class ToolSpec:
    """Static descriptor of a callable tool.

    The canonical catalogue entry, independent of the MCP library's
    own ``Tool`` type. Adapters convert it at the transport boundary.
    """

    name: str
    description: str
    input_schema: Mapping[str, Any]

    def __post_init__(self) -> None:
        """Validate tool descriptor invariants on creation."""
        if not self.name or not self.name.strip():
            raise ValueError("name must be a non-empty string")
        if self.input_schema.get("type") != "object":
            raise ValueError(
                f"input_schema for {self.name} must describe an object"
            )
        if isinstance(self.input_schema, dict):
            object.__setattr__(
                self, "input_schema", MappingProxyType(self.input_schema)
            )

    def to_dict(self) -> dict[str, Any]:
        """Return the wire descriptor (name, description, inputSchema)."""
        return {
            "name": self.name,
            "description": self.description,
            "inputSchema": _thaw(self.input_schema),
        }


@dataclass(frozen=True)
class ToolResult:
    """Uniform reply envelope for a tool call.

    Serializes to ``{"content": [{"type": "text", "text": ...}], "isError": bool}``.
    """

    texts: tuple[str, ...]
    is_error: bool = False

    @classmethod
    def success(cls, text: str) -> "ToolResult":
        """Build a successful single-text result."""
        return cls(texts=(text,), is_error=False)

    @classmethod
    def failure(cls, text: str) -> "ToolResult":
        """Build an error single-text result."""
        return cls(texts=(text,), is_error=True)

    @property
    def text(self) -> str:
        """All text parts joined by newlines."""
        return "\n".join(self.texts)

    def to_dict(self) -> dict[str, Any]:
        """Return the wire envelope."""
        return {
            "content": [{"type": "text", "text": t} for t in self.texts],
            "isError": self.is_error,
        }


@dataclass(frozen=True)
class Page:
    """One page of a vendor collection.

    ``next_cursor`` is an opaque continuation token (a Todoist cursor or
    a WooCommerce page number), or None on the last page.
    """

    results: tuple[dict[str, Any], ...] = ()
    next_cursor: str | None = None

    def __post_init__(self) -> None:
        """Freeze results into a tuple."""
        if not isinstance(self.results, tuple):
            object.__setattr__(self, "results", tuple(self.results))

    def __len__(self) -> int:
        return len(self.results)

    def __iter__(self):
        return iter(self.results)


@dataclass(frozen=True)
class CommandResult:
    """Outcome of an external command-line invocation."""

    argv: tuple[str, ...]
    returncode: int
    stdout: str = ""
    stderr: str = ""

    @property
    def succeeded(self) -> bool:
        return self.returncode == 0


@dataclass
class MoveTally:
    """Per-id outcome of a batch move."""

    succeeded: list[str] = field(default_factory=list)
    failed: list[tuple[str, str]] = field(default_factory=list)

    @property
    def all_failed(self) -> bool:
        return bool(self.failed) and not self.succeeded


def _thaw(value: Any) -> Any:
    """Convert read-only mappings back to plain dicts for serialization."""
    if isinstance(value, Mapping):
        return {k: _thaw(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_thaw(v) for v in value]
    return value
