"""Full-text search over a graph snapshot."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from worldforge.models.world import ElementType

if TYPE_CHECKING:
    from uuid import UUID

    from worldforge.graph.snapshot import GraphSnapshot
    from worldforge.models.world import World, WorldElement

SNIPPET_RADIUS = 30


@dataclass(frozen=True)
class SearchMatch:
    """Where a query matched inside one field of an element.

    Attributes:
        field: "title", "content", or "tags".
        text: A snippet of the field around the match.
        start: Offset of the match in the full field text.
    """

    field: str
    text: str
    start: int


@dataclass(frozen=True)
class SearchResult:
    world: World
    element: WorldElement
    matches: list[SearchMatch] = field(default_factory=list)


def _snippet(text: str, start: int, length: int) -> str:
    lo = max(start - SNIPPET_RADIUS, 0)
    hi = min(start + length + SNIPPET_RADIUS, len(text))
    prefix = "…" if lo > 0 else ""
    suffix = "…" if hi < len(text) else ""
    return prefix + " ".join(text[lo:hi].split()) + suffix


def _casefold_find(text: str, needle: str) -> tuple[int, int]:
    """Find *needle* in *text* ignoring case.

    Returns the match as ``(start, length)`` in *text*, or ``(-1, 0)``.
    Casefolding can change length ("ß" folds to "ss"), so offsets into the
    folded text are mapped back to the original.
    """
    origin: list[int] = []
    folded: list[str] = []
    for index, char in enumerate(text):
        fold = char.casefold()
        folded.append(fold)
        origin.extend([index] * len(fold))
    target = needle.casefold()
    at = "".join(folded).find(target)
    if at == -1:
        return -1, 0
    start = origin[at]
    return start, origin[at + len(target) - 1] + 1 - start


def search_elements(
    snapshot: GraphSnapshot,
    query: str,
    world_id: UUID | None = None,
    element_type: str | ElementType | None = None,
    in_content: bool = True,
    in_tags: bool = True,
    case_sensitive: bool = False,
) -> list[SearchResult]:
    """Find elements whose title, content, or tags contain *query*.

    Args:
        snapshot: Graph snapshot to search.
        query: Text to look for. A blank query matches nothing.
        world_id: Restrict to one world.
        element_type: Restrict to one element type.
        in_content: Also search element content.
        in_tags: Also search tags.
        case_sensitive: Match case exactly.

    Returns:
        Matching elements, most recently modified first.
    """
    needle = query.strip()
    if not needle:
        return []
    kind = ElementType.parse(element_type) if element_type is not None else None

    def find(text: str) -> tuple[int, int]:
        if case_sensitive:
            return text.find(needle), len(needle)
        return _casefold_find(text, needle)

    results: list[SearchResult] = []
    for world_snapshot in snapshot.worlds:
        if world_id is not None and world_snapshot.id != world_id:
            continue
        for element in world_snapshot.elements:
            if kind is not None and element.type != kind:
                continue

            matches: list[SearchMatch] = []
            fields = [("title", element.title)]
            if in_content:
                fields.append(("content", element.content))
            if in_tags:
                fields.extend(("tags", tag) for tag in element.tags)
            for name, text in fields:
                start, length = find(text)
                if start != -1:
                    matches.append(
                        SearchMatch(
                            field=name,
                            text=_snippet(text, start, length),
                            start=start,
                        )
                    )

            if matches:
                results.append(
                    SearchResult(world=world_snapshot.world, element=element, matches=matches)
                )

    results.sort(key=lambda r: r.element.last_modified, reverse=True)
    return results
