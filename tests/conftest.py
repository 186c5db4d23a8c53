"""Pytest configuration and shared fixtures."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from uuid import UUID

import pytest

from worldforge.graph import WorldGraph
from worldforge.policy import AccessPolicy


class TickingClock:
    """Deterministic clock that advances one second per reading."""

    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2024, 1, 1, 12, 0, 0, tzinfo=UTC)

    def __call__(self) -> datetime:
        value = self.now
        self.now += timedelta(seconds=1)
        return value


@dataclass
class SampleWorld:
    """Ids of the populated sample world."""

    world_id: UUID
    hero_id: UUID
    castle_id: UUID
    guild_id: UUID
    located_in_id: UUID
    member_of_id: UUID


@pytest.fixture(autouse=True)
def isolated_env(
    monkeypatch: pytest.MonkeyPatch,
    tmp_path_factory: pytest.TempPathFactory,
) -> None:
    """Keep tests away from the user's real config and environment."""
    for name in (
        "WORLDFORGE_DATA_DIR",
        "WORLDFORGE_TIER",
        "WORLDFORGE_ACTIVITY_CAPACITY",
        "WORLDFORGE_OPENAI_API_KEY",
        "WORLDFORGE_ANTHROPIC_API_KEY",
        "WORLDFORGE_GOOGLE_API_KEY",
        "WORLDFORGE_GROK_API_KEY",
    ):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setattr(
        "worldforge.config._DEFAULT_CONFIG_DIR",
        tmp_path_factory.mktemp("config"),
    )


@pytest.fixture
def clock() -> TickingClock:
    return TickingClock()


@pytest.fixture
def graph(clock: TickingClock) -> WorldGraph:
    """Empty free-tier graph with a deterministic clock."""
    return WorldGraph(AccessPolicy.free(), clock=clock)


@pytest.fixture
def premium_graph(clock: TickingClock) -> WorldGraph:
    """Empty premium graph with a deterministic clock."""
    return WorldGraph(AccessPolicy.premium(), clock=clock)


def populate(graph: WorldGraph) -> SampleWorld:
    """Create a small world: a hero in a castle who belongs to a guild."""
    world_id = graph.create_world("Eldoria", "A realm of old magic")
    castle_id = graph.create_element(world_id, "Location", "Castle", "A fortress on the hill")
    guild_id = graph.create_element(world_id, "Organization", "Guild", tags=["trade", "secret"])
    hero_id = graph.create_element(
        world_id,
        "Character",
        "Hero",
        "lives in @Castle and trades with the @Guild.",
        tags=["protagonist"],
    )
    located_in_id = graph.create_relationship(world_id, hero_id, castle_id, "Located In")
    member_of_id = graph.create_relationship(
        world_id, hero_id, guild_id, "Member Of", description="since childhood"
    )
    return SampleWorld(
        world_id=world_id,
        hero_id=hero_id,
        castle_id=castle_id,
        guild_id=guild_id,
        located_in_id=located_in_id,
        member_of_id=member_of_id,
    )


@pytest.fixture
def sample(premium_graph: WorldGraph) -> SampleWorld:
    """Populated sample world in the premium graph."""
    return populate(premium_graph)


@pytest.fixture
def make_sample() -> Callable[[WorldGraph], SampleWorld]:
    """Factory that populates any graph with the sample world."""
    return populate
