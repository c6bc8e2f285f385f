"""Convert host note records into transport-safe mappings."""

from collections.abc import Iterable, Mapping, Sequence
from typing import Any

from ankibridge.host import NoteLike


def shape_note(note: NoteLike) -> dict[str, Any]:
    """Shape a note as ``{"id", "fields", "tags"}``.

    Field order is preserved. Tags are deduplicated and sorted so the output
    is stable for the same record.
    """
    return {
        "id": int(note.id),
        "fields": [str(value) for value in note.fields],
        "tags": sorted({str(tag) for tag in note.tags}),
    }


def shape_notes(notes: Iterable[NoteLike] | None) -> list[dict[str, Any]]:
    if not notes:
        return []
    return [shape_note(note) for note in notes]


def shape_duplicate_groups(
    keys: Sequence[str],
    groups: Mapping[int, Iterable[NoteLike] | None] | None,
) -> list[list[dict[str, Any]]]:
    """Align duplicate matches with ``keys`` index-for-index.

    ``groups`` maps the index of a key to its matches and may be sparse;
    every key without matches gets an empty list.
    """
    groups = groups or {}
    return [shape_notes(groups.get(index)) for index in range(len(keys))]
