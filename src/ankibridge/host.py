"""Interfaces of the collaborators the bridge talks to.

None of these are implemented here: the host content engine, the OS
permission subsystem, the URI grant facility and the UI context are all
injected, which keeps the dispatcher testable against fakes.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Protocol

# Value the OS reports in a grant-results slot for an allowed permission
PERMISSION_GRANTED = 0
PERMISSION_DENIED = -1


class HostEngineError(Exception):
    """Raised by a host engine when a call fails on its side."""


class NoteLike(Protocol):
    """Read-only view of a host note."""

    @property
    def id(self) -> int: ...

    @property
    def fields(self) -> Sequence[str]: ...

    @property
    def tags(self) -> set[str] | frozenset[str] | Sequence[str]: ...


@dataclass(frozen=True, slots=True)
class NoteRecord:
    """Plain note value for engines that have no richer type."""

    id: int
    fields: list[str] = field(default_factory=list)
    tags: frozenset[str] = field(default_factory=frozenset)


class HostEngine(Protocol):
    """The host application's content API.

    Lookups return None when the referenced object does not exist; engines
    raise HostEngineError when a write fails outright.
    """

    def add_note(
        self, model_id: int, deck_id: int, fields: list[str], tags: set[str]
    ) -> int | None: ...

    def add_notes(
        self,
        model_id: int,
        deck_id: int,
        fields_list: list[list[str]],
        tags_list: list[set[str]],
    ) -> list[int | None]: ...

    def add_media_from_uri(
        self, uri: str, preferred_name: str, mime_type: str
    ) -> str | None: ...

    def find_duplicate_notes(self, mid: int, key: str) -> list[NoteLike] | None: ...

    def find_duplicate_notes_for_keys(
        self, mid: int, keys: list[str]
    ) -> Mapping[int, list[NoteLike] | None] | None:
        """Return duplicates keyed by the index of the matching key.

        Keys without duplicates may be absent from the mapping.
        """
        ...

    def get_note_count(self, mid: int) -> int: ...

    def update_note_tags(self, note_id: int, tags: set[str]) -> bool: ...

    def update_note_fields(self, note_id: int, fields: list[str]) -> bool: ...

    def get_note(self, note_id: int) -> NoteLike | None: ...

    def preview_new_note(
        self, mid: int, fields: list[str]
    ) -> dict[str, dict[str, str]] | None: ...

    def add_new_basic_model(self, name: str) -> int | None: ...

    def add_new_basic2_model(self, name: str) -> int | None: ...

    def add_new_custom_model(
        self,
        name: str,
        fields: list[str],
        cards: list[str],
        qfmt: list[str],
        afmt: list[str],
        css: str,
        did: int | None,
        sortf: int | None,
    ) -> int | None: ...

    @property
    def current_model_id(self) -> int: ...

    def get_field_list(self, model_id: int) -> list[str] | None: ...

    @property
    def model_list(self) -> dict[int, str]: ...

    def get_model_list(self, min_num_fields: int) -> dict[int, str]: ...

    def get_model_name(self, mid: int) -> str | None: ...

    def add_new_deck(self, deck_name: str) -> int | None: ...

    @property
    def selected_deck_name(self) -> str | None: ...

    @property
    def deck_list(self) -> dict[int, str]: ...

    def get_deck_name(self, did: int) -> str | None: ...

    @property
    def api_host_spec_version(self) -> int: ...


class UiContext(Protocol):
    """Foreground UI able to host a permission prompt."""

    @property
    def name(self) -> str: ...


class OsPermissions(Protocol):
    """The operating system's permission subsystem."""

    def check_self_permission(self, permission: str) -> int:
        """Return PERMISSION_GRANTED or PERMISSION_DENIED."""
        ...

    def request_permissions(
        self, ui: UiContext, permissions: list[str], request_code: int
    ) -> None:
        """Show a prompt; the answer arrives later via a callback."""
        ...


class UriGrants(Protocol):
    """Grants another process read access to a content URI."""

    def grant_read(self, package: str, uri: str) -> None: ...


@dataclass(slots=True)
class HostEnvironment:
    """Everything a server needs from the embedding host."""

    engine: HostEngine
    permissions: OsPermissions
    grants: UriGrants
    ui: UiContext | None = None
