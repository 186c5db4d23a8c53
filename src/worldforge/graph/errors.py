"""Typed world-graph errors with actionable feedback.

Every failure the graph, the export engine, or the import engine can report
is one of these types. Each carries enough structured detail (which limit,
which identity, which format) for a caller to render a useful message, and
can format itself as Markdown feedback via :meth:`WorldGraphError.to_feedback`.

Nothing in the core retries or swallows these errors.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from difflib import get_close_matches


class WorldGraphError(Exception):
    """Base class for all world-graph failures.

    Subclasses must implement to_feedback() to provide an actionable
    user-facing message.
    """

    def to_feedback(self) -> str:
        """Format error as actionable feedback.

        Returns:
            Markdown text explaining what's wrong and how to fix it.
        """
        raise NotImplementedError


@dataclass
class NotFoundError(WorldGraphError):
    """Raised when a World, Element, or Relationship identity does not exist.

    Attributes:
        kind: Entity kind ("world", "element", "relationship").
        identity: The identity that was referenced.
        context: Description of where the reference occurred.
        available: Identities or titles that could be used instead.
    """

    kind: str
    identity: str
    context: str = ""
    available: list[str] = field(default_factory=list)

    def __post_init__(self) -> None:
        msg = f"{self.kind.capitalize()} '{self.identity}' not found"
        if self.context:
            msg += f" ({self.context})"
        super().__init__(msg)

    def to_feedback(self) -> str:
        """Format as actionable feedback."""
        lines = [
            f"## Not Found: {self.kind.capitalize()}",
            "",
            f"**You referenced**: `{self.identity}`",
        ]
        if self.context:
            lines.append(f"**Context**: {self.context}")
        lines.append("")

        suggestions = get_close_matches(self.identity, self.available, n=3, cutoff=0.6)
        if suggestions:
            lines.append("**Did you mean one of these?**")
            lines.extend(f"  - `{s}`" for s in suggestions)
            lines.append("")

        if self.available:
            lines.append(f"**Available {self.kind}s**:")
            for a in sorted(self.available)[:20]:
                lines.append(f"  - `{a}`")
            if len(self.available) > 20:
                lines.append(f"  - ... and {len(self.available) - 20} more")

        return "\n".join(lines)


@dataclass
class LimitExceededError(WorldGraphError):
    """Raised when a creation would exceed an access-policy ceiling.

    Attributes:
        limit: Which ceiling ("max_worlds" or "max_elements_per_world").
        maximum: The configured ceiling.
        current: The count at the time of the rejected call.
    """

    limit: str
    maximum: int
    current: int

    def __post_init__(self) -> None:
        super().__init__(f"Limit '{self.limit}' reached ({self.current}/{self.maximum})")

    def to_feedback(self) -> str:
        """Format as actionable feedback."""
        noun = "worlds" if self.limit == "max_worlds" else "elements in this world"
        return f"""## Error: Limit Reached

**Limit**: `{self.limit}`
**Current**: {self.current} of {self.maximum} {noun}

**Solutions**:
1. Delete something you no longer need, then try again
2. Switch to a tier with a higher limit
"""


@dataclass
class InvalidRelationshipError(WorldGraphError):
    """Raised for self-referential or cross-world relationship endpoints.

    Attributes:
        reason: What is wrong with the endpoints.
        from_id: Source element identity.
        to_id: Target element identity.
        world_id: The world the relationship was requested in.
    """

    reason: str
    from_id: str
    to_id: str
    world_id: str = ""

    def __post_init__(self) -> None:
        super().__init__(f"Invalid relationship {self.from_id} -> {self.to_id}: {self.reason}")

    def to_feedback(self) -> str:
        """Format as actionable feedback."""
        lines = [
            "## Error: Invalid Relationship",
            "",
            f"**From**: `{self.from_id}`",
            f"**To**: `{self.to_id}`",
        ]
        if self.world_id:
            lines.append(f"**World**: `{self.world_id}`")
        lines.extend(
            [
                "",
                f"**Problem**: {self.reason}",
                "",
                "**Solution**: Relate two different elements that belong to the same world.",
            ]
        )
        return "\n".join(lines)


@dataclass
class FormatUnsupportedError(WorldGraphError):
    """Raised when a format is disallowed by policy or unknown.

    Attributes:
        format_name: The requested format.
        allowed: Formats the caller may use instead.
        reason: Why the format was rejected.
    """

    format_name: str
    allowed: list[str] = field(default_factory=list)
    reason: str = "not allowed by the current access policy"

    def __post_init__(self) -> None:
        super().__init__(f"Format '{self.format_name}' unsupported: {self.reason}")

    def to_feedback(self) -> str:
        """Format as actionable feedback."""
        lines = [
            "## Error: Format Unsupported",
            "",
            f"**Format**: `{self.format_name}`",
            f"**Problem**: {self.reason}",
        ]
        if self.allowed:
            lines.append("")
            lines.append("**Available formats**:")
            lines.extend(f"  - `{a}`" for a in sorted(self.allowed))
        return "\n".join(lines)


@dataclass
class ProviderNotAllowedError(WorldGraphError):
    """Raised when an API key is stored for a provider the policy excludes.

    Attributes:
        provider: The requested provider.
        allowed: Providers the current policy allows.
    """

    provider: str
    allowed: list[str] = field(default_factory=list)

    def __post_init__(self) -> None:
        super().__init__(f"Provider '{self.provider}' is not available on this tier")

    def to_feedback(self) -> str:
        """Format as actionable feedback."""
        lines = ["## Error: Provider Not Available", "", f"**Provider**: `{self.provider}`"]
        if self.allowed:
            lines.append("")
            lines.append("**Available providers**:")
            lines.extend(f"  - `{a}`" for a in sorted(self.allowed))
        return "\n".join(lines)


@dataclass
class DecodeFailureError(WorldGraphError):
    """Raised for malformed or version-incompatible import payloads.

    Attributes:
        reason: What failed to decode.
        location: Where in the document the failure occurred, if known.
    """

    reason: str
    location: str = ""

    def __post_init__(self) -> None:
        msg = f"Could not decode document: {self.reason}"
        if self.location:
            msg += f" (at {self.location})"
        super().__init__(msg)

    def to_feedback(self) -> str:
        """Format as actionable feedback."""
        lines = ["## Error: Import Failed", "", f"**Problem**: {self.reason}"]
        if self.location:
            lines.append(f"**Location**: `{self.location}`")
        lines.extend(
            [
                "",
                "Nothing was imported. Only canonical JSON exports (version 1.x) can be imported.",
            ]
        )
        return "\n".join(lines)


@dataclass(frozen=True)
class WorldConflict:
    """One incoming world that collides with existing data."""

    world_id: str
    title: str
    reason: str


@dataclass
class ImportConflictError(WorldGraphError):
    """Raised when incoming worlds collide with existing identities.

    The caller must choose a resolution (skip or rename) and retry.

    Attributes:
        conflicts: Every conflicting world in the document.
    """

    conflicts: list[WorldConflict]

    def __post_init__(self) -> None:
        super().__init__(f"{len(self.conflicts)} world(s) conflict with existing data")

    def to_feedback(self) -> str:
        """Format as actionable feedback."""
        lines = ["## Import Conflict", "", "**Conflicting worlds**:"]
        for c in self.conflicts:
            lines.append(f"  - `{c.world_id}` {c.title}: {c.reason}")
        lines.extend(
            [
                "",
                "Nothing was imported.",
                "",
                "**Solutions**:",
                "1. Skip the conflicting worlds",
                "2. Import them as copies with new identities",
            ]
        )
        return "\n".join(lines)


@dataclass
class InvalidFieldError(WorldGraphError, ValueError):
    """Raised when a field value is rejected (e.g. an empty title).

    Attributes:
        field_name: The rejected field.
        reason: Why it was rejected.
    """

    field_name: str
    reason: str

    def __post_init__(self) -> None:
        super().__init__(f"Invalid {self.field_name}: {self.reason}")

    def to_feedback(self) -> str:
        """Format as actionable feedback."""
        return f"## Error: Invalid {self.field_name}\n\n**Problem**: {self.reason}"


@dataclass
class GraphCorruptionError(WorldGraphError):
    """Raised when invariant checks find the stored graph inconsistent.

    Unlike the other errors, this indicates a code bug or a corrupt
    persisted blob rather than a bad request.

    Attributes:
        violations: List of invariant violations found.
    """

    violations: list[str]

    def __post_init__(self) -> None:
        super().__init__(f"Graph corruption detected: {len(self.violations)} violation(s)")

    def __str__(self) -> str:
        lines = ["Graph corruption detected:"]
        for v in self.violations[:5]:
            lines.append(f"  - {v}")
        if len(self.violations) > 5:
            lines.append(f"  - ... and {len(self.violations) - 5} more")
        return "\n".join(lines)

    def to_feedback(self) -> str:
        """Format as actionable feedback."""
        return "## Error: Corrupt Data\n\n" + str(self)
