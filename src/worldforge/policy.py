"""Access policy: numeric ceilings and feature flags.

The policy only describes limits. WorldGraph enforces the world and element
ceilings, ExportEngine and ImportEngine enforce the format list, and
ApiKeyRing enforces the provider list.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import StrEnum

from worldforge.models.formats import ExportFormat

FREE_MAX_WORLDS = 3


class AIProvider(StrEnum):
    """AI assistant providers a key can be stored for."""

    OPENAI = "openai"
    ANTHROPIC = "anthropic"
    GOOGLE = "google"
    GROK = "grok"

    @property
    def display_name(self) -> str:
        names = {
            "openai": "OpenAI",
            "anthropic": "Anthropic",
            "google": "Google",
            "grok": "Grok (xAI)",
        }
        return names[self.value]

    @property
    def key_prefix(self) -> str:
        """Prefix every valid API key for this provider starts with."""
        prefixes = {"openai": "sk-", "anthropic": "sk-ant-", "google": "AIza", "grok": "xai-"}
        return prefixes[self.value]


class Tier(StrEnum):
    FREE = "free"
    PREMIUM = "premium"


@dataclass(frozen=True)
class AccessPolicy:
    """Limits consumed by the store, the export engine, and the key ring.

    Attributes:
        tier: Subscription tier the limits came from.
        max_worlds: World ceiling, or None for unlimited.
        max_elements_per_world: Per-world element ceiling, or None for unlimited.
        allowed_export_formats: Formats export and import may use.
        allowed_ai_providers: Providers an API key may be stored for.
    """

    tier: Tier = Tier.FREE
    max_worlds: int | None = FREE_MAX_WORLDS
    max_elements_per_world: int | None = None
    allowed_export_formats: frozenset[ExportFormat] = frozenset(
        {ExportFormat.JSON, ExportFormat.TEXT}
    )
    allowed_ai_providers: frozenset[AIProvider] = frozenset({AIProvider.OPENAI})

    def __post_init__(self) -> None:
        for name in ("max_worlds", "max_elements_per_world"):
            value = getattr(self, name)
            if value is not None and value < 0:
                raise ValueError(f"{name} must be non-negative, got {value}")

    @classmethod
    def free(cls) -> AccessPolicy:
        """Three worlds, JSON and text export, OpenAI only."""
        return cls()

    @classmethod
    def premium(cls) -> AccessPolicy:
        """No ceilings, every format and provider."""
        return cls(
            tier=Tier.PREMIUM,
            max_worlds=None,
            max_elements_per_world=None,
            allowed_export_formats=frozenset(ExportFormat),
            allowed_ai_providers=frozenset(AIProvider),
        )

    @classmethod
    def for_tier(cls, tier: str | Tier) -> AccessPolicy:
        """Build the default policy for *tier*.

        Raises:
            ValueError: If *tier* is not a known tier.
        """
        match Tier(str(tier).strip().lower()):
            case Tier.PREMIUM:
                return cls.premium()
            case Tier.FREE:
                return cls.free()

    def with_limits(
        self,
        *,
        max_worlds: int | None = None,
        max_elements_per_world: int | None = None,
    ) -> AccessPolicy:
        """Return a copy with the given ceilings overridden (None keeps the current one)."""
        changes: dict[str, int] = {}
        if max_worlds is not None:
            changes["max_worlds"] = max_worlds
        if max_elements_per_world is not None:
            changes["max_elements_per_world"] = max_elements_per_world
        return replace(self, **changes)

    def remaining_worlds(self, current: int) -> int | None:
        """How many more worlds may be created, or None when unlimited."""
        if self.max_worlds is None:
            return None
        return max(self.max_worlds - current, 0)

    def allows_format(self, fmt: ExportFormat) -> bool:
        return fmt in self.allowed_export_formats

    def allows_provider(self, provider: AIProvider) -> bool:
        return provider in self.allowed_ai_providers
