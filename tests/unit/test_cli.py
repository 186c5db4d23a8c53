"""Test CLI commands."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING
from uuid import UUID

import pytest
from typer.testing import CliRunner

from worldforge import __version__
from worldforge.cli import _pick, app
from worldforge.graph import InvalidFieldError, NotFoundError

if TYPE_CHECKING:
    from pathlib import Path

    from click.testing import Result

runner = CliRunner()


def wf(data_dir: Path, *args: str, input: str | None = None) -> Result:
    return runner.invoke(app, ["--data-dir", str(data_dir), *args], input=input)


@pytest.fixture
def populated(tmp_path: Path) -> Path:
    """A data dir holding Eldoria with a hero located in a castle."""
    data_dir = tmp_path / "data"
    for args in (
        ("world", "create", "Eldoria", "-D", "A realm of old magic"),
        ("element", "add", "Eldoria", "Castle", "-t", "Location"),
        ("element", "add", "Eldoria", "Hero", "-t", "Character", "-c", "lives in @Castle"),
        ("relationship", "add", "Eldoria", "Hero", "Located In", "Castle"),
    ):
        result = wf(data_dir, *args)
        assert result.exit_code == 0, result.stdout
    return data_dir


def test_version_command() -> None:
    """Test wf version command."""
    result = runner.invoke(app, ["version"])
    assert result.exit_code == 0
    assert f"v{__version__}" in result.stdout


# --- World Command Tests ---


def test_world_create_and_list(tmp_path: Path) -> None:
    """Created worlds are saved and listed by later invocations."""
    result = wf(tmp_path, "world", "create", "Eldoria")
    assert result.exit_code == 0
    assert "Created world" in result.stdout
    assert "Worlds remaining on this tier: 2" in result.stdout
    assert (tmp_path / "state" / "worldforge.worlds.json").exists()

    result = wf(tmp_path, "world", "list")
    assert result.exit_code == 0
    assert "Eldoria" in result.stdout


def test_world_list_empty(tmp_path: Path) -> None:
    """An empty data dir lists no worlds."""
    result = wf(tmp_path, "world", "list")
    assert result.exit_code == 0
    assert "No worlds yet" in result.stdout


def test_world_limit_on_free_tier(tmp_path: Path) -> None:
    """The fourth world on the free tier is refused with exit code 1."""
    for title in ("One", "Two", "Three"):
        assert wf(tmp_path, "world", "create", title).exit_code == 0

    result = wf(tmp_path, "world", "create", "Four")

    assert result.exit_code == 1
    assert "Limit Reached" in result.stdout
    listing = wf(tmp_path, "world", "list").stdout
    assert "Four" not in listing


def test_premium_tier_from_environment(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """WORLDFORGE_TIER lifts the world ceiling."""
    monkeypatch.setenv("WORLDFORGE_TIER", "premium")
    for n in range(4):
        assert wf(tmp_path, "world", "create", f"World {n}").exit_code == 0


def test_invalid_configuration(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """A bad configured value stops the command."""
    monkeypatch.setenv("WORLDFORGE_TIER", "gold")
    result = wf(tmp_path, "world", "list")
    assert result.exit_code == 1
    assert "Invalid configuration" in result.stdout


def test_world_update_and_delete(populated: Path) -> None:
    """Worlds can be renamed and deleted by title."""
    result = wf(populated, "world", "update", "Eldoria", "--title", "Westmarch")
    assert result.exit_code == 0
    assert "Westmarch" in result.stdout

    result = wf(populated, "world", "delete", "Westmarch", "--yes")
    assert result.exit_code == 0
    assert "No worlds yet" in wf(populated, "world", "list").stdout


def test_world_delete_can_be_cancelled(populated: Path) -> None:
    """Declining the confirmation keeps the world."""
    result = wf(populated, "world", "delete", "Eldoria", input="n\n")
    assert "Cancelled" in result.stdout
    assert "Eldoria" in wf(populated, "world", "list").stdout


def test_unknown_world(tmp_path: Path) -> None:
    """Referencing a missing world reports Not Found."""
    result = wf(tmp_path, "element", "list", "Nowhere")
    assert result.exit_code == 1
    assert "Not Found" in result.stdout


# --- Element Command Tests ---


def test_element_add_indexes_mentions(populated: Path) -> None:
    """Mentions in content are reported when an element is added."""
    content = "stands at the @Castle gate"
    result = wf(populated, "element", "add", "Eldoria", "Guard", "-t", "Character", "-c", content)
    assert result.exit_code == 0
    assert "Mentions: Castle" in result.stdout


def test_element_add_rejects_unknown_type(populated: Path) -> None:
    """Unknown element types are reported as invalid."""
    result = wf(populated, "element", "add", "Eldoria", "Ship", "-t", "Spaceship")
    assert result.exit_code == 1
    assert "Invalid element type" in result.stdout


def test_element_show(populated: Path) -> None:
    """Showing an element lists mentions and relationships from its side."""
    hero = wf(populated, "element", "show", "Eldoria", "Hero")
    assert hero.exit_code == 0
    assert "@Castle" in hero.stdout
    assert "Located In → Castle" in hero.stdout

    castle = wf(populated, "element", "show", "Eldoria", "castle")
    assert "Contains → Hero" in castle.stdout


def test_element_update_and_reindex(populated: Path) -> None:
    """Renaming keeps mentions attached to the renamed element."""
    result = wf(populated, "element", "update", "Eldoria", "Castle", "--title", "Fortress")
    assert result.exit_code == 0

    hero = wf(populated, "element", "show", "Eldoria", "Hero")
    assert "@Fortress" in hero.stdout

    result = wf(populated, "element", "reindex", "Eldoria")
    assert result.exit_code == 0
    assert "Re-indexed mentions" in result.stdout


def test_element_delete_cascades(populated: Path) -> None:
    """Deleting an element removes its relationships."""
    result = wf(populated, "element", "delete", "Eldoria", "Castle")
    assert result.exit_code == 0

    listing = wf(populated, "relationship", "list", "Eldoria")
    assert "Located In" not in listing.stdout


# --- Relationship, Activity, Search Tests ---


def test_relationship_add_rejects_self_reference(populated: Path) -> None:
    """An element cannot be related to itself."""
    result = wf(populated, "relationship", "add", "Eldoria", "Hero", "Ally Of", "Hero")
    assert result.exit_code == 1
    assert "Invalid Relationship" in result.stdout


def test_relationship_list(populated: Path) -> None:
    """Relationships are listed with their endpoints."""
    result = wf(populated, "relationship", "list", "Eldoria")
    assert result.exit_code == 0
    assert "Located In" in result.stdout


def test_activity(populated: Path) -> None:
    """Recent activity is shown newest first and can be filtered."""
    result = wf(populated, "activity")
    assert result.exit_code == 0
    assert "Created world Eldoria" in result.stdout

    result = wf(populated, "activity", "--type", "element_created")
    assert "Created world" not in result.stdout
    assert "Created location Castle" in result.stdout

    result = wf(populated, "activity", "--type", "bogus")
    assert result.exit_code == 1


def test_search(populated: Path) -> None:
    """Search finds titles and content."""
    result = wf(populated, "search", "castle")
    assert result.exit_code == 0
    assert "Castle" in result.stdout
    assert "Hero" in result.stdout

    assert "No elements match" in wf(populated, "search", "dragon").stdout


def test_providers(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Providers show availability on the tier and key status."""
    monkeypatch.setenv("WORLDFORGE_OPENAI_API_KEY", "sk-test")
    result = wf(tmp_path, "providers")
    assert result.exit_code == 0
    assert "OpenAI" in result.stdout
    assert "configured" in result.stdout
    assert "premium" in result.stdout


# --- Export / Import Tests ---


def test_export_json(populated: Path, tmp_path: Path) -> None:
    """JSON export writes a canonical document."""
    out = tmp_path / "out"
    result = wf(populated, "export", "json", "-o", str(out))
    assert result.exit_code == 0

    [exported] = list(out.glob("worldforge-export-*.json"))
    document = json.loads(exported.read_text(encoding="utf-8"))
    assert document["version"] == "1.0.0"
    assert document["worlds"][0]["title"] == "Eldoria"
    assert document["recentActivity"]


def test_export_default_directory(populated: Path) -> None:
    """Without --output the export lands under the data dir."""
    result = wf(populated, "export", "text", "--no-activity")
    assert result.exit_code == 0
    assert list((populated / "exports").glob("*.txt"))


def test_export_format_not_on_free_tier(populated: Path) -> None:
    """Free tier cannot export CSV."""
    result = wf(populated, "export", "csv")
    assert result.exit_code == 1
    assert "Format Unsupported" in result.stdout


def test_import_round_trip_and_conflicts(populated: Path, tmp_path: Path) -> None:
    """An export imports into a fresh data dir and conflicts on re-import."""
    out = tmp_path / "out"
    wf(populated, "export", "json", "-o", str(out))
    [exported] = list(out.glob("*.json"))
    fresh = tmp_path / "fresh"

    result = wf(fresh, "import", str(exported))
    assert result.exit_code == 0
    assert "Imported 1 world(s), 2 element(s), 1 relationship(s)" in result.stdout

    result = wf(fresh, "import", str(exported))
    assert result.exit_code == 1
    assert "Import Conflict" in result.stdout

    result = wf(fresh, "import", str(exported), "--on-conflict", "rename", "--no-activity")
    assert result.exit_code == 0
    assert "as copies" in result.stdout
    assert wf(fresh, "world", "show", "Eldoria (Imported)").exit_code == 0


def test_import_missing_file(tmp_path: Path) -> None:
    """A missing import file is reported."""
    result = wf(tmp_path, "import", str(tmp_path / "missing.json"))
    assert result.exit_code == 1
    assert "File not found" in result.stdout


# --- Reference Resolution Tests ---


class TestPick:
    """Tests for resolving ids, id prefixes, and titles."""

    items = [
        ("3f2a0000-0000-4000-8000-000000000001", "Castle"),
        ("3f2b0000-0000-4000-8000-000000000002", "castle keep"),
        ("9c000000-0000-4000-8000-000000000003", "Hero"),
    ]

    def _pick(self, reference: str) -> tuple[str, str]:
        return _pick("element", reference, self.items, lambda c: (UUID(c[0]), c[1]))

    def test_full_id(self) -> None:
        assert self._pick("9c000000-0000-4000-8000-000000000003")[1] == "Hero"

    def test_unique_prefix(self) -> None:
        assert self._pick("9c")[1] == "Hero"

    def test_title_case_insensitive(self) -> None:
        assert self._pick("CASTLE")[1] == "Castle"

    def test_ambiguous_prefix(self) -> None:
        with pytest.raises(InvalidFieldError, match="more than one"):
            self._pick("3f2")

    def test_no_match(self) -> None:
        with pytest.raises(NotFoundError) as exc_info:
            self._pick("Dragon")
        assert "Hero" in exc_info.value.available

    def test_title_beats_id_prefix(self) -> None:
        items = [
            ("11111111-0000-4000-8000-000000000001", "Cafe"),
            ("cafe0000-0000-4000-8000-000000000002", "Hero"),
            ("19840000-0000-4000-8000-000000000003", "Market"),
            ("22222222-0000-4000-8000-000000000004", "1984"),
        ]

        def pick(reference: str) -> str:
            return _pick("element", reference, items, lambda c: (UUID(c[0]), c[1]))[1]

        assert pick("Cafe") == "Cafe"
        assert pick("cafe") == "Cafe"
        assert pick("1984") == "1984"
        assert pick("cafe0") == "Hero"
