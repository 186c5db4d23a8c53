"""Tests for WorldGraph: CRUD, integrity rules, transactions, and snapshots."""

from __future__ import annotations

from typing import TYPE_CHECKING
from uuid import uuid4

import pytest

from worldforge.graph import (
    ActivityLog,
    GraphCorruptionError,
    GraphEvent,
    GraphSnapshot,
    InvalidFieldError,
    InvalidRelationshipError,
    LimitExceededError,
    NotFoundError,
    WorldGraph,
    WorldSnapshot,
)
from worldforge.models import ActivityType, ElementRelationship, ElementType, RelationshipType
from worldforge.policy import AccessPolicy

if TYPE_CHECKING:
    from collections.abc import Callable

    from conftest import SampleWorld, TickingClock


class TestWorlds:
    def test_create_world(self, graph: WorldGraph) -> None:
        world_id = graph.create_world("  Eldoria  ", "A realm")

        world = graph.get_world(world_id)
        assert world.title == "Eldoria"
        assert world.description == "A realm"
        assert world.created == world.last_modified
        assert graph.world_count() == 1

    def test_create_world_records_activity(self, graph: WorldGraph) -> None:
        world_id = graph.create_world("Eldoria")

        [item] = graph.activity.items()
        assert item.type is ActivityType.WORLD_CREATED
        assert item.world_id == world_id
        assert item.world_title == "Eldoria"

    def test_blank_title_rejected(self, graph: WorldGraph) -> None:
        with pytest.raises(InvalidFieldError, match="title"):
            graph.create_world("   ")
        assert graph.world_count() == 0
        assert len(graph.activity) == 0

    def test_fourth_world_exceeds_free_limit(self, graph: WorldGraph) -> None:
        for n in range(3):
            graph.create_world(f"World {n}")

        with pytest.raises(LimitExceededError) as exc_info:
            graph.create_world("World 4")

        assert exc_info.value.limit == "max_worlds"
        assert exc_info.value.maximum == 3
        assert exc_info.value.current == 3
        assert graph.world_count() == 3
        assert len(graph.activity) == 3

    def test_premium_has_no_world_ceiling(self, premium_graph: WorldGraph) -> None:
        for n in range(10):
            premium_graph.create_world(f"World {n}")
        assert premium_graph.world_count() == 10

    def test_update_world(self, graph: WorldGraph) -> None:
        world_id = graph.create_world("Eldoria")
        before = graph.get_world(world_id)

        graph.update_world(world_id, title="Eldoria Reborn", description="Again")

        after = graph.get_world(world_id)
        assert after.title == "Eldoria Reborn"
        assert after.description == "Again"
        assert after.created == before.created
        assert after.last_modified > before.last_modified
        item = graph.activity.items()[0]
        assert item.type is ActivityType.WORLD_MODIFIED
        assert item.details == "description, title"

    def test_update_missing_world(self, graph: WorldGraph) -> None:
        with pytest.raises(NotFoundError) as exc_info:
            graph.update_world(uuid4(), title="X")
        assert exc_info.value.kind == "world"

    def test_list_worlds_most_recent_first(self, graph: WorldGraph) -> None:
        first = graph.create_world("First")
        second = graph.create_world("Second")
        graph.update_world(first, description="touched")

        assert [w.id for w in graph.list_worlds()] == [first, second]

    def test_delete_world_cascades(self, premium_graph: WorldGraph, sample: SampleWorld) -> None:
        assert premium_graph.delete_world(sample.world_id) is True

        assert not premium_graph.has_world(sample.world_id)
        assert premium_graph.find_element(sample.hero_id) is None
        assert not premium_graph.has_relationship(sample.located_in_id)
        item = premium_graph.activity.items()[0]
        assert item.type is ActivityType.WORLD_DELETED
        assert item.details == "3 element(s), 2 relationship(s) removed"
        assert premium_graph.validate_invariants() == []

    def test_delete_missing_world_is_noop(self, graph: WorldGraph) -> None:
        assert graph.delete_world(uuid4()) is False
        assert len(graph.activity) == 0

    def test_deleting_frees_a_world_slot(self, graph: WorldGraph) -> None:
        ids = [graph.create_world(f"World {n}") for n in range(3)]
        graph.delete_world(ids[0])
        graph.create_world("Replacement")
        assert graph.world_count() == 3


class TestElements:
    def test_create_element(self, graph: WorldGraph) -> None:
        world_id = graph.create_world("Eldoria")
        element_id = graph.create_element(
            world_id, "character", "Hero", "Brave.", tags=["b", "a", "a"]
        )

        element = graph.get_element(world_id, element_id)
        assert element.type is ElementType.CHARACTER
        assert element.world_id == world_id
        assert element.tags == ("a", "b")
        assert element.mentions == ()
        assert graph.get_world(world_id).last_modified == element.created

    def test_create_element_activity(self, graph: WorldGraph) -> None:
        world_id = graph.create_world("Eldoria")
        element_id = graph.create_element(world_id, ElementType.ITEM, "Sword")

        item = graph.activity.items()[0]
        assert item.type is ActivityType.ELEMENT_CREATED
        assert item.element_id == element_id
        assert item.element_title == "Sword"
        assert item.element_type is ElementType.ITEM

    def test_single_tag_string_is_one_tag(self, graph: WorldGraph) -> None:
        world_id = graph.create_world("Eldoria")
        element_id = graph.create_element(world_id, "Item", "Sword", tags="sharp")
        assert graph.get_element(world_id, element_id).tags == ("sharp",)

    def test_unknown_type_rejected(self, graph: WorldGraph) -> None:
        world_id = graph.create_world("Eldoria")
        with pytest.raises(InvalidFieldError, match="element type"):
            graph.create_element(world_id, "Spaceship", "Nostromo")

    def test_create_in_missing_world(self, graph: WorldGraph) -> None:
        with pytest.raises(NotFoundError):
            graph.create_element(uuid4(), "Item", "Sword")

    def test_element_ceiling(self, clock: TickingClock) -> None:
        graph = WorldGraph(AccessPolicy.free().with_limits(max_elements_per_world=2), clock=clock)
        world_id = graph.create_world("Eldoria")
        graph.create_element(world_id, "Item", "A")
        graph.create_element(world_id, "Item", "B")

        with pytest.raises(LimitExceededError) as exc_info:
            graph.create_element(world_id, "Item", "C")

        assert exc_info.value.limit == "max_elements_per_world"
        assert len(graph.list_elements(world_id)) == 2

    def test_list_elements_sorted_by_title(self, graph: WorldGraph) -> None:
        world_id = graph.create_world("Eldoria")
        for title in ("beta", "Alpha", "gamma"):
            graph.create_element(world_id, "Concept", title)
        graph.create_element(world_id, "Item", "Anvil")

        assert [e.title for e in graph.list_elements(world_id)] == [
            "Alpha",
            "Anvil",
            "beta",
            "gamma",
        ]
        assert [e.title for e in graph.list_elements(world_id, "Item")] == ["Anvil"]

    def test_element_counts(self, sample: SampleWorld, premium_graph: WorldGraph) -> None:
        counts = premium_graph.element_counts(sample.world_id)
        assert counts == {
            ElementType.LOCATION: 1,
            ElementType.ORGANIZATION: 1,
            ElementType.CHARACTER: 1,
        }

    def test_get_element_from_wrong_world(
        self, sample: SampleWorld, premium_graph: WorldGraph
    ) -> None:
        other = premium_graph.create_world("Other")
        with pytest.raises(NotFoundError) as exc_info:
            premium_graph.get_element(other, sample.hero_id)
        assert "Other" in exc_info.value.context

    def test_update_element_fields(self, sample: SampleWorld, premium_graph: WorldGraph) -> None:
        premium_graph.update_element(
            sample.world_id,
            sample.guild_id,
            element_type="Culture",
            tags=["open"],
        )

        guild = premium_graph.get_element(sample.world_id, sample.guild_id)
        assert guild.type is ElementType.CULTURE
        assert guild.tags == ("open",)
        item = premium_graph.activity.items()[0]
        assert item.type is ActivityType.ELEMENT_MODIFIED
        assert item.details == "tags, type"

    def test_update_content_rescans_mentions(
        self, sample: SampleWorld, premium_graph: WorldGraph
    ) -> None:
        premium_graph.update_element(
            sample.world_id, sample.hero_id, content="Left @Castle for good."
        )

        hero = premium_graph.get_element(sample.world_id, sample.hero_id)
        assert [(m.element_id, m.start_index, m.length) for m in hero.mentions] == [
            (sample.castle_id, 5, 7)
        ]

    def test_unchanged_span_keeps_mention_id(
        self, sample: SampleWorld, premium_graph: WorldGraph
    ) -> None:
        before = premium_graph.get_element(sample.world_id, sample.hero_id).mentions[0]
        premium_graph.update_element(
            sample.world_id, sample.hero_id, content="lives in @Castle, alone."
        )
        after = premium_graph.get_element(sample.world_id, sample.hero_id).mentions[0]
        assert after.id == before.id

    def test_rename_refreshes_mention_titles(
        self, sample: SampleWorld, premium_graph: WorldGraph
    ) -> None:
        hero_before = premium_graph.get_element(sample.world_id, sample.hero_id)

        premium_graph.update_element(sample.world_id, sample.castle_id, title="Fortress")

        hero = premium_graph.get_element(sample.world_id, sample.hero_id)
        castle_mention = next(m for m in hero.mentions if m.element_id == sample.castle_id)
        assert castle_mention.element_title == "Fortress"
        assert castle_mention.start_index == 9
        assert castle_mention.length == 7
        assert hero.content == hero_before.content
        assert hero.last_modified == hero_before.last_modified

    def test_delete_element_cascades(self, sample: SampleWorld, premium_graph: WorldGraph) -> None:
        assert premium_graph.delete_element(sample.world_id, sample.castle_id) is True

        assert premium_graph.find_element(sample.castle_id) is None
        assert not premium_graph.has_relationship(sample.located_in_id)
        assert premium_graph.has_relationship(sample.member_of_id)
        hero = premium_graph.get_element(sample.world_id, sample.hero_id)
        assert all(m.element_id != sample.castle_id for m in hero.mentions)
        assert premium_graph.validate_invariants() == []

        item = premium_graph.activity.items()[0]
        assert item.type is ActivityType.ELEMENT_DELETED
        assert item.element_title == "Castle"
        assert item.details == "1 relationship(s) removed"

    def test_delete_missing_element_is_noop(
        self, sample: SampleWorld, premium_graph: WorldGraph
    ) -> None:
        before = len(premium_graph.activity)
        assert premium_graph.delete_element(sample.world_id, uuid4()) is False
        assert len(premium_graph.activity) == before

    def test_mention_candidates(self, sample: SampleWorld, premium_graph: WorldGraph) -> None:
        premium_graph.create_element(sample.world_id, "Location", "Castle Gate")

        found = premium_graph.mention_candidates(sample.world_id, "cas")
        assert [e.title for e in found] == ["Castle", "Castle Gate"]

        excluded = premium_graph.mention_candidates(
            sample.world_id, "cas", exclude=sample.castle_id, limit=5
        )
        assert [e.title for e in excluded] == ["Castle Gate"]


class TestMentionIndexing:
    def test_forward_mention_resolves_after_reindex(self, graph: WorldGraph) -> None:
        world_id = graph.create_world("Eldoria")
        hero_id = graph.create_element(world_id, "Character", "Hero", "lives in @Castle")
        assert graph.get_element(world_id, hero_id).mentions == ()

        castle_id = graph.create_element(world_id, "Location", "Castle")
        # creating Castle does not touch Hero
        assert graph.get_element(world_id, hero_id).mentions == ()

        assert graph.reindex_element(world_id, hero_id) is True

        [mention] = graph.get_element(world_id, hero_id).mentions
        assert mention.element_id == castle_id
        assert mention.element_title == "Castle"
        assert mention.start_index == 9
        assert mention.length == 7

    def test_reindex_without_change_records_nothing(
        self, sample: SampleWorld, premium_graph: WorldGraph
    ) -> None:
        before = len(premium_graph.activity)
        assert premium_graph.reindex_element(sample.world_id, sample.hero_id) is False
        assert len(premium_graph.activity) == before

    def test_reindex_world(self, graph: WorldGraph) -> None:
        world_id = graph.create_world("Eldoria")
        graph.create_element(world_id, "Character", "Hero", "@Villain is near")
        graph.create_element(world_id, "Character", "Sidekick", "fears @Villain")
        graph.create_element(world_id, "Character", "Villain")

        assert graph.reindex_world(world_id) == 2
        item = graph.activity.items()[0]
        assert item.type is ActivityType.ELEMENT_MODIFIED
        assert item.details == "mentions"

    def test_self_mention_ignored(self, graph: WorldGraph) -> None:
        world_id = graph.create_world("Eldoria")
        hero_id = graph.create_element(world_id, "Character", "Hero", "@Hero of the story")
        graph.reindex_element(world_id, hero_id)
        assert graph.get_element(world_id, hero_id).mentions == ()

    def test_mentions_are_world_scoped(self, premium_graph: WorldGraph) -> None:
        first = premium_graph.create_world("First")
        second = premium_graph.create_world("Second")
        premium_graph.create_element(first, "Location", "Castle")
        hero_id = premium_graph.create_element(second, "Character", "Hero", "lives in @Castle")
        assert premium_graph.get_element(second, hero_id).mentions == ()


class TestRelationships:
    def test_create_relationship(self, sample: SampleWorld, premium_graph: WorldGraph) -> None:
        relationship = premium_graph.get_relationship(sample.world_id, sample.located_in_id)
        assert relationship.from_element_id == sample.hero_id
        assert relationship.to_element_id == sample.castle_id
        assert relationship.type is RelationshipType.LOCATED_IN

    def test_relationship_activity_details(
        self, sample: SampleWorld, premium_graph: WorldGraph
    ) -> None:
        item = premium_graph.activity.items()[0]
        assert item.type is ActivityType.RELATIONSHIP_CREATED
        assert item.relationship_id == sample.member_of_id
        assert item.details == "Hero Member Of Guild"

    def test_self_relationship_rejected(
        self, sample: SampleWorld, premium_graph: WorldGraph
    ) -> None:
        with pytest.raises(InvalidRelationshipError):
            premium_graph.create_relationship(
                sample.world_id, sample.hero_id, sample.hero_id, "Ally Of"
            )

    def test_cross_world_relationship_rejected(
        self, sample: SampleWorld, premium_graph: WorldGraph
    ) -> None:
        other = premium_graph.create_world("Other")
        stranger = premium_graph.create_element(other, "Character", "Stranger")
        before = len(premium_graph.activity)

        with pytest.raises(InvalidRelationshipError):
            premium_graph.create_relationship(
                sample.world_id, sample.hero_id, stranger, "Enemy Of"
            )

        assert len(premium_graph.activity) == before
        assert len(premium_graph.list_relationships(sample.world_id)) == 2

    def test_missing_endpoint(self, sample: SampleWorld, premium_graph: WorldGraph) -> None:
        with pytest.raises(NotFoundError):
            premium_graph.create_relationship(
                sample.world_id, sample.hero_id, uuid4(), "Related To"
            )

    def test_unknown_relationship_type(
        self, sample: SampleWorld, premium_graph: WorldGraph
    ) -> None:
        with pytest.raises(InvalidFieldError, match="relationship type"):
            premium_graph.create_relationship(
                sample.world_id, sample.hero_id, sample.castle_id, "Haunts"
            )

    def test_cycles_are_allowed(self, sample: SampleWorld, premium_graph: WorldGraph) -> None:
        premium_graph.create_relationship(
            sample.world_id, sample.castle_id, sample.hero_id, "Owned By"
        )
        assert len(premium_graph.relationships_for(sample.world_id, sample.hero_id)) == 3

    def test_delete_relationship(self, sample: SampleWorld, premium_graph: WorldGraph) -> None:
        assert premium_graph.delete_relationship(sample.world_id, sample.located_in_id) is True
        assert premium_graph.delete_relationship(sample.world_id, sample.located_in_id) is False

        item = premium_graph.activity.items()[0]
        assert item.type is ActivityType.RELATIONSHIP_DELETED
        assert item.details == "Hero Located In Castle"

    def test_delete_relationship_from_other_world_is_noop(
        self, sample: SampleWorld, premium_graph: WorldGraph
    ) -> None:
        other = premium_graph.create_world("Other")
        assert premium_graph.delete_relationship(other, sample.located_in_id) is False
        assert premium_graph.has_relationship(sample.located_in_id)


class TestTransactions:
    def test_failed_transaction_rolls_back_everything(self, graph: WorldGraph) -> None:
        events: list[GraphEvent] = []
        graph.events.subscribe(events.append)

        with pytest.raises(RuntimeError, match="boom"), graph.transaction():
            world_id = graph.create_world("Doomed")
            graph.create_element(world_id, "Item", "Sword")
            raise RuntimeError("boom")

        assert graph.world_count() == 0
        assert len(graph.activity) == 0
        assert events == []

    def test_events_published_after_commit(self, graph: WorldGraph) -> None:
        events: list[GraphEvent] = []
        seen_counts: list[int] = []

        def on_event(event: GraphEvent) -> None:
            events.append(event)
            seen_counts.append(graph.world_count())

        graph.events.subscribe(on_event)
        with graph.transaction():
            graph.create_world("A")
            graph.create_world("B")
            assert events == []

        assert [e.kind for e in events] == [ActivityType.WORLD_CREATED] * 2
        assert seen_counts == [2, 2]

    def test_failing_subscriber_does_not_block_others(self, graph: WorldGraph) -> None:
        received: list[GraphEvent] = []

        def broken(event: GraphEvent) -> None:
            raise ValueError("subscriber bug")

        graph.events.subscribe(broken)
        graph.events.subscribe(received.append)

        graph.create_world("A")

        assert len(received) == 1
        assert graph.world_count() == 1

    def test_activity_capacity_evicts_oldest(self, clock: TickingClock) -> None:
        graph = WorldGraph(AccessPolicy.premium(), activity=ActivityLog(capacity=5), clock=clock)
        world_id = graph.create_world("Eldoria")
        for n in range(7):
            graph.create_element(world_id, "Item", f"Item {n}")

        items = graph.activity.items()
        assert len(items) == 5
        assert items[0].element_title == "Item 6"
        assert items[-1].element_title == "Item 2"

    def test_last_modified_never_decreases(
        self, sample: SampleWorld, premium_graph: WorldGraph
    ) -> None:
        stamps = [premium_graph.get_world(sample.world_id).last_modified]
        premium_graph.update_element(sample.world_id, sample.hero_id, content="changed")
        stamps.append(premium_graph.get_world(sample.world_id).last_modified)
        premium_graph.delete_relationship(sample.world_id, sample.member_of_id)
        stamps.append(premium_graph.get_world(sample.world_id).last_modified)
        assert stamps == sorted(stamps)


class TestSnapshots:
    def test_snapshot_is_isolated_from_later_mutations(
        self, sample: SampleWorld, premium_graph: WorldGraph
    ) -> None:
        snapshot = premium_graph.snapshot()

        premium_graph.update_element(sample.world_id, sample.hero_id, title="Villain")
        premium_graph.create_world("Later")

        world = snapshot.world(sample.world_id)
        assert world is not None
        hero = world.element(sample.hero_id)
        assert hero is not None
        assert hero.title == "Hero"
        assert len(snapshot.worlds) == 1

    def test_snapshot_orders_elements_by_title(
        self, sample: SampleWorld, premium_graph: WorldGraph
    ) -> None:
        world = premium_graph.snapshot().worlds[0]
        assert [e.title for e in world.elements] == ["Castle", "Guild", "Hero"]
        assert [r.id for r in world.relationships] == [sample.located_in_id, sample.member_of_id]

    def test_snapshot_subset_filters_activity(
        self, sample: SampleWorld, premium_graph: WorldGraph
    ) -> None:
        other = premium_graph.create_world("Other")
        snapshot = premium_graph.snapshot([other])

        assert [w.id for w in snapshot.worlds] == [other]
        assert {item.world_id for item in snapshot.activity} == {other}

    def test_snapshot_of_missing_world(self, graph: WorldGraph) -> None:
        with pytest.raises(NotFoundError):
            graph.snapshot([uuid4()])


class TestRestoreAndLoad:
    def test_restore_world_keeps_identities(
        self,
        sample: SampleWorld,
        premium_graph: WorldGraph,
        clock: TickingClock,
    ) -> None:
        source = premium_graph.snapshot().worlds[0]
        target = WorldGraph(AccessPolicy.premium(), clock=clock)

        target.restore_world(source.world, source.elements, source.relationships)

        assert target.get_world(sample.world_id) == source.world
        assert target.get_element(sample.world_id, sample.hero_id) == source.element(
            sample.hero_id
        )
        assert target.validate_invariants() == []
        details = {item.details for item in target.activity.items()}
        assert details == {"imported", "Hero Located In Castle", "Hero Member Of Guild"}

    def test_restore_existing_world_rejected(
        self, sample: SampleWorld, premium_graph: WorldGraph
    ) -> None:
        source = premium_graph.snapshot().worlds[0]
        with pytest.raises(InvalidFieldError, match="already exists"):
            premium_graph.restore_world(source.world, source.elements, source.relationships)

    def test_restore_respects_element_ceiling(
        self,
        sample: SampleWorld,
        premium_graph: WorldGraph,
        clock: TickingClock,
    ) -> None:
        source = premium_graph.snapshot().worlds[0]
        target = WorldGraph(AccessPolicy.free().with_limits(max_elements_per_world=2), clock=clock)

        with pytest.raises(LimitExceededError):
            target.restore_world(source.world, source.elements, source.relationships)

        assert target.world_count() == 0
        assert len(target.activity) == 0

    def test_load_replaces_state_without_activity(
        self,
        sample: SampleWorld,
        premium_graph: WorldGraph,
        clock: TickingClock,
    ) -> None:
        snapshot = premium_graph.snapshot()
        target = WorldGraph(AccessPolicy.premium(), clock=clock)
        events: list[GraphEvent] = []
        target.events.subscribe(events.append)

        target.load(snapshot)

        assert target.world_count() == 1
        assert [i.id for i in target.activity.items()] == [i.id for i in snapshot.activity]
        assert events == []

    def test_load_rejects_dangling_relationship(
        self,
        sample: SampleWorld,
        premium_graph: WorldGraph,
        clock: TickingClock,
    ) -> None:
        world = premium_graph.snapshot().worlds[0]
        dangling = ElementRelationship(
            from_element_id=sample.hero_id,
            to_element_id=uuid4(),
            type=RelationshipType.RELATED_TO,
        )
        broken = WorldSnapshot(
            world=world.world,
            elements=world.elements,
            relationships=(*world.relationships, dangling),
        )
        target = WorldGraph(AccessPolicy.premium(), clock=clock)
        target.create_world("Existing")

        with pytest.raises(GraphCorruptionError) as exc_info:
            target.load(GraphSnapshot(taken_at=clock(), worlds=(broken,)))

        assert "outside world" in str(exc_info.value)
        assert [w.title for w in target.list_worlds()] == ["Existing"]


def test_make_sample_on_free_tier(
    graph: WorldGraph,
    make_sample: Callable[[WorldGraph], SampleWorld],
) -> None:
    sample = make_sample(graph)
    assert graph.policy.remaining_worlds(graph.world_count()) == 2
    assert graph.validate_invariants() == []
    assert len(graph.list_relationships(sample.world_id)) == 2
