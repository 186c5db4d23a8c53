"""Tests for the canonical JSON codec."""

from __future__ import annotations

import json
from datetime import UTC, datetime
from typing import TYPE_CHECKING

import pytest

from worldforge.export import CANONICAL_VERSION, ExportDocument, ExportWorld, decode, encode
from worldforge.export.context import build_export_document
from worldforge.graph import DecodeFailureError
from worldforge.models import ElementRelationship, ElementType, RelationshipType, WorldElement

if TYPE_CHECKING:
    from conftest import SampleWorld

    from worldforge.graph import WorldGraph

STAMP = datetime(2024, 6, 1, 9, 30, 15, 123456, tzinfo=UTC)


def _world(**kwargs: object) -> ExportWorld:
    return ExportWorld.model_validate(
        {
            "id": "5b9f6f1c-3f0a-4f55-9df2-0d6b1c1e9a01",
            "title": "Eldoria",
            "created": STAMP,
            "lastModified": STAMP,
            **kwargs,
        }
    )


class TestRoundTrip:
    def test_empty_document(self) -> None:
        document = ExportDocument(export_date=STAMP)
        assert decode(encode(document)) == document

    def test_world_without_elements(self) -> None:
        document = ExportDocument(export_date=STAMP, worlds=(_world(),))
        assert decode(encode(document)) == document

    def test_relationship_cycle(self) -> None:
        base = _world()
        a = WorldElement(world_id=base.id, type=ElementType.CHARACTER, title="A", created=STAMP)
        b = WorldElement(world_id=base.id, type=ElementType.CHARACTER, title="B", created=STAMP)
        forward = ElementRelationship(
            from_element_id=a.id, to_element_id=b.id, type=RelationshipType.ALLY_OF
        )
        back = ElementRelationship(
            from_element_id=b.id, to_element_id=a.id, type=RelationshipType.ENEMY_OF
        )
        world = base.model_copy(update={"elements": (a, b), "relationships": (forward, back)})
        document = ExportDocument(export_date=STAMP, worlds=(world,))

        assert decode(encode(document)) == document

    def test_sample_graph(self, premium_graph: WorldGraph, sample: SampleWorld) -> None:
        document = build_export_document(premium_graph.snapshot())

        restored = decode(encode(document))

        assert restored == document
        hero = next(e for e in restored.worlds[0].elements if e.id == sample.hero_id)
        assert [m.start_index for m in hero.mentions] == [9, 37]


class TestEncoding:
    def test_deterministic_bytes(self, premium_graph: WorldGraph, sample: SampleWorld) -> None:
        document = build_export_document(premium_graph.snapshot())
        assert encode(document) == encode(decode(encode(document)))

    def test_layout(self) -> None:
        payload = encode(ExportDocument(export_date=STAMP, worlds=(_world(),)))
        text = payload.decode("utf-8")
        data = json.loads(text)

        assert list(data) == sorted(data)
        assert data["version"] == CANONICAL_VERSION
        assert data["exportDate"] == "2024-06-01T09:30:15.123456Z"
        assert data["worlds"][0]["lastModified"] == "2024-06-01T09:30:15.123456Z"
        assert text.startswith('{\n  "exportDate"')
        assert text.endswith("\n")

    def test_non_ascii_kept_literal(self) -> None:
        payload = encode(ExportDocument(export_date=STAMP, worlds=(_world(title="Ærendal"),)))
        assert "Ærendal".encode() in payload


class TestDecodeFailures:
    @pytest.mark.parametrize(
        ("payload", "reason"),
        [
            (b"\xff\xfe\x00", "not valid UTF-8"),
            (b"{not json", "not valid JSON"),
            (b"[]", "top level must be an object"),
            (b'{"worlds": [], "exportDate": "2024-01-01T00:00:00.000000Z"}', "missing version"),
            (
                b'{"version": "2.0.0", "worlds": [], "exportDate": "2024-01-01T00:00:00.000000Z"}',
                "unsupported version 2.0.0",
            ),
            (b'{"version": "1.0.0", "exportDate": "2024-01-01T00:00:00Z"}', "'worlds'"),
        ],
    )
    def test_rejects(self, payload: bytes, reason: str) -> None:
        with pytest.raises(DecodeFailureError, match=reason):
            decode(payload)

    def test_schema_error_reports_location(self) -> None:
        payload = {
            "version": "1.0.0",
            "exportDate": "2024-01-01T00:00:00.000000Z",
            "worlds": [{"id": "not-a-uuid", "title": "W", "created": 1, "lastModified": 1}],
        }
        with pytest.raises(DecodeFailureError) as exc_info:
            decode(json.dumps(payload))
        assert exc_info.value.location.startswith("worlds.0")

    def test_minor_version_accepted(self) -> None:
        payload = b'{"version": "1.4.2", "worlds": [], "exportDate": "2024-01-01T00:00:00Z"}'
        assert decode(payload).version == "1.4.2"

    def test_byte_order_mark_accepted(self) -> None:
        payload = "\ufeff" + encode(ExportDocument(export_date=STAMP)).decode("utf-8")
        assert decode(payload.encode("utf-8")).export_date == STAMP
