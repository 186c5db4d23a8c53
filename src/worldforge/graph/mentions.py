"""Mention indexing for element content.

A mention is an ``@`` followed by the title of another element of the same
world, e.g. ``"lives in @Castle"``. The index records, per element, each
mention's span (offset of the ``@`` and length including it) and the target
element's id and title.

Detection walks the content left to right. At each ``@`` it looks at the
maximal run of non-whitespace characters that follows and tries the world's
titles against it, case-insensitively:

1. A title equal to the whole run wins outright.
2. Otherwise the longest title that the text after ``@`` starts with, and
   that ends on a word boundary, wins. This is how multi-word titles
   (``@Iron Keep``) and trailing punctuation (``@Castle.``) resolve.

Matched spans never overlap; scanning resumes after the end of each match.
Unmatched runs stay plain text.
"""

from __future__ import annotations

from typing import TYPE_CHECKING
from uuid import uuid4

from worldforge.models.world import ElementMention

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping
    from uuid import UUID

MENTION_MARKER = "@"


def _is_word_char(char: str) -> bool:
    return char.isalnum() or char == "_"


def _run_end(content: str, start: int) -> int:
    end = start
    while end < len(content) and not content[end].isspace():
        end += 1
    return end


def _matches_at(content: str, offset: int, title: str) -> bool:
    # Compare in content units so casefold() length changes cannot shift spans.
    return content[offset : offset + len(title)].casefold() == title.casefold()


def _match_title(
    content: str,
    at: int,
    titles: list[tuple[str, UUID]],
) -> tuple[str, UUID] | None:
    """Pick the title mentioned by the ``@`` at *at*, if any."""
    body = at + 1
    run_end = _run_end(content, body)
    if run_end == body:
        return None

    run_length = run_end - body
    for title, element_id in titles:
        if len(title) == run_length and _matches_at(content, body, title):
            return title, element_id

    # titles are sorted longest first, so the first boundary match is the longest
    for title, element_id in titles:
        if not _matches_at(content, body, title):
            continue
        after = body + len(title)
        if after == len(content) or not _is_word_char(content[after]):
            return title, element_id
    return None


def scan_mentions(
    content: str,
    candidates: Mapping[UUID, str],
    previous: Iterable[ElementMention] = (),
    *,
    owner_id: UUID | None = None,
) -> tuple[ElementMention, ...]:
    """Index every mention in *content*.

    Args:
        content: The owning element's full content.
        candidates: Titles of the elements that may be mentioned, by id.
        previous: The element's current mentions. A mention whose span and
            target are unchanged keeps its id.
        owner_id: The owning element, which never mentions itself.

    Returns:
        Mentions in content order.
    """
    titles = sorted(
        (
            (title.strip(), element_id)
            for element_id, title in candidates.items()
            if element_id != owner_id and title.strip()
        ),
        key=lambda pair: (-len(pair[0]), pair[0].casefold(), str(pair[1])),
    )
    if not titles:
        return ()
    known = {(m.start_index, m.length, m.element_id): m.id for m in previous}

    mentions: list[ElementMention] = []
    position = content.find(MENTION_MARKER)
    while position != -1:
        match = _match_title(content, position, titles)
        if match is None:
            position = content.find(MENTION_MARKER, position + 1)
            continue

        title, element_id = match
        length = len(title) + 1
        mentions.append(
            ElementMention(
                id=known.get((position, length, element_id)) or uuid4(),
                element_id=element_id,
                element_title=title,
                start_index=position,
                length=length,
            )
        )
        position = content.find(MENTION_MARKER, position + length)

    return tuple(mentions)


def refresh_titles(
    mentions: Iterable[ElementMention],
    element_id: UUID,
    new_title: str,
) -> tuple[ElementMention, ...]:
    """Rewrite the denormalized title on every mention of *element_id*.

    Spans are left alone; the content still reads as it was written.
    """
    return tuple(
        m.model_copy(update={"element_title": new_title}) if m.element_id == element_id else m
        for m in mentions
    )


def prune_mentions(
    mentions: Iterable[ElementMention],
    element_id: UUID,
) -> tuple[ElementMention, ...]:
    """Drop every mention that targets *element_id*."""
    return tuple(m for m in mentions if m.element_id != element_id)


def pending_query(text: str) -> str | None:
    """Return the partial title being typed after the last ``@``.

    Used by mention pickers while the user types. Returns None when there is
    no ``@`` or when whitespace follows it (the mention was finished).
    """
    at = text.rfind(MENTION_MARKER)
    if at == -1:
        return None
    query = text[at + 1 :]
    if any(c.isspace() for c in query):
        return None
    return query


def insert_mention(text: str, title: str) -> tuple[str, int, int]:
    """Complete the pending ``@query`` at the end of *text* with *title*.

    Returns:
        ``(new_text, start_index, length)`` where the span covers ``@title``.
        A trailing space is appended after the mention.

    Raises:
        ValueError: If *text* has no pending ``@query``.
    """
    if pending_query(text) is None:
        raise ValueError("No pending mention to complete")
    at = text.rfind(MENTION_MARKER)
    mention = f"{MENTION_MARKER}{title}"
    return f"{text[:at]}{mention} ", at, len(mention)
