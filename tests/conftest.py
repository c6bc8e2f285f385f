"""Shared test fixtures and fakes."""

from pathlib import Path
from typing import Any

import pytest

from ankibridge.config.models import BridgeConfig, MediaConfig, ServerConfig
from ankibridge.dispatcher import Dispatcher
from ankibridge.host import (
    PERMISSION_DENIED,
    PERMISSION_GRANTED,
    HostEnvironment,
    NoteRecord,
    UiContext,
)
from ankibridge.permissions import PermissionGate
from ankibridge.staging import MediaStager

PERMISSION_NAME = "com.ichi2.anki.permission.READ_WRITE_DATABASE"
REQUEST_CODE = 4321

# =============================================================================
# Host fakes
# =============================================================================


class SpyHostEngine:
    """In-memory host engine that records every call it receives."""

    def __init__(self) -> None:
        self.calls: list[tuple[str, tuple[Any, ...]]] = []
        self.notes: dict[int, NoteRecord] = {}
        self.models: dict[int, str] = {1001: "Basic"}
        self.model_fields: dict[int, list[str]] = {1001: ["Front", "Back"]}
        self.decks: dict[int, str] = {1: "Default"}
        self.duplicates: dict[str, list[NoteRecord]] = {}
        self.media_result: str | None = None
        self.raise_on: dict[str, Exception] = {}
        self._next_id = 1

    def _record(self, name: str, *args: Any) -> None:
        self.calls.append((name, args))
        if name in self.raise_on:
            raise self.raise_on[name]

    def _new_id(self) -> int:
        self._next_id += 1
        return self._next_id

    def add_note(self, model_id, deck_id, fields, tags):  # noqa: ANN001
        self._record("add_note", model_id, deck_id, fields, tags)
        if model_id not in self.models or deck_id not in self.decks:
            return None
        note = NoteRecord(id=self._new_id(), fields=list(fields), tags=frozenset(tags))
        self.notes[note.id] = note
        return note.id

    def add_notes(self, model_id, deck_id, fields_list, tags_list):  # noqa: ANN001
        self._record("add_notes", model_id, deck_id, fields_list, tags_list)
        results: list[int | None] = []
        for fields, tags in zip(fields_list, tags_list, strict=True):
            if not any(fields):
                results.append(None)
                continue
            note = NoteRecord(id=self._new_id(), fields=fields, tags=frozenset(tags))
            self.notes[note.id] = note
            results.append(note.id)
        return results

    def add_media_from_uri(self, uri, preferred_name, mime_type):  # noqa: ANN001
        self._record("add_media_from_uri", uri, preferred_name, mime_type)
        return self.media_result

    def find_duplicate_notes(self, mid, key):  # noqa: ANN001
        self._record("find_duplicate_notes", mid, key)
        return self.duplicates.get(key)

    def find_duplicate_notes_for_keys(self, mid, keys):  # noqa: ANN001
        self._record("find_duplicate_notes_for_keys", mid, keys)
        # Sparse and deliberately in reverse index order
        return {
            index: self.duplicates[key]
            for index, key in reversed(list(enumerate(keys)))
            if key in self.duplicates
        }

    def get_note_count(self, mid):  # noqa: ANN001
        self._record("get_note_count", mid)
        return len(self.notes)

    def update_note_tags(self, note_id, tags):  # noqa: ANN001
        self._record("update_note_tags", note_id, tags)
        note = self.notes.get(note_id)
        if note is None:
            return False
        self.notes[note_id] = NoteRecord(note.id, note.fields, frozenset(tags))
        return True

    def update_note_fields(self, note_id, fields):  # noqa: ANN001
        self._record("update_note_fields", note_id, fields)
        note = self.notes.get(note_id)
        if note is None:
            return False
        self.notes[note_id] = NoteRecord(note.id, list(fields), note.tags)
        return True

    def get_note(self, note_id):  # noqa: ANN001
        self._record("get_note", note_id)
        return self.notes.get(note_id)

    def preview_new_note(self, mid, fields):  # noqa: ANN001
        self._record("preview_new_note", mid, fields)
        if mid not in self.models:
            return None
        return {"Card 1": {"q": fields[0], "a": fields[-1]}}

    def add_new_basic_model(self, name):  # noqa: ANN001
        self._record("add_new_basic_model", name)
        model_id = self._new_id()
        self.models[model_id] = name
        return model_id

    def add_new_basic2_model(self, name):  # noqa: ANN001
        self._record("add_new_basic2_model", name)
        model_id = self._new_id()
        self.models[model_id] = name
        return model_id

    def add_new_custom_model(  # noqa: ANN001
        self, name, fields, cards, qfmt, afmt, css, did, sortf
    ):
        self._record(
            "add_new_custom_model", name, fields, cards, qfmt, afmt, css, did, sortf
        )
        model_id = self._new_id()
        self.models[model_id] = name
        self.model_fields[model_id] = list(fields)
        return model_id

    @property
    def current_model_id(self) -> int:
        self._record("current_model_id")
        return 1001

    def get_field_list(self, model_id):  # noqa: ANN001
        self._record("get_field_list", model_id)
        return self.model_fields.get(model_id)

    @property
    def model_list(self) -> dict[int, str]:
        self._record("model_list")
        return dict(self.models)

    def get_model_list(self, min_num_fields):  # noqa: ANN001
        self._record("get_model_list", min_num_fields)
        return {
            mid: name
            for mid, name in self.models.items()
            if len(self.model_fields.get(mid, [])) >= min_num_fields
        }

    def get_model_name(self, mid):  # noqa: ANN001
        self._record("get_model_name", mid)
        return self.models.get(mid)

    def add_new_deck(self, deck_name):  # noqa: ANN001
        self._record("add_new_deck", deck_name)
        deck_id = self._new_id()
        self.decks[deck_id] = deck_name
        return deck_id

    @property
    def selected_deck_name(self) -> str | None:
        self._record("selected_deck_name")
        return self.decks.get(1)

    @property
    def deck_list(self) -> dict[int, str]:
        self._record("deck_list")
        return dict(self.decks)

    def get_deck_name(self, did):  # noqa: ANN001
        self._record("get_deck_name", did)
        return self.decks.get(did)

    @property
    def api_host_spec_version(self) -> int:
        self._record("api_host_spec_version")
        return 2

    @property
    def call_names(self) -> list[str]:
        return [name for name, _ in self.calls]


class FakeOsPermissions:
    """OS permission subsystem whose answers the test controls."""

    def __init__(self, granted: bool = False) -> None:
        self.granted = granted
        self.requests: list[tuple[str, list[str], int]] = []
        self.fail_request: Exception | None = None

    def check_self_permission(self, permission: str) -> int:
        return PERMISSION_GRANTED if self.granted else PERMISSION_DENIED

    def request_permissions(
        self, ui: UiContext, permissions: list[str], request_code: int
    ) -> None:
        if self.fail_request is not None:
            raise self.fail_request
        self.requests.append((ui.name, list(permissions), request_code))


class RecordingGrants:
    """URI grant facility that records every grant."""

    def __init__(self) -> None:
        self.grants: list[tuple[str, str]] = []

    def grant_read(self, package: str, uri: str) -> None:
        self.grants.append((package, uri))


class FakeUi:
    def __init__(self, name: str = "MainActivity") -> None:
        self.name = name


def spy_environment() -> HostEnvironment:
    """Environment factory used by tests that load hosts by import path."""
    return HostEnvironment(
        engine=SpyHostEngine(),
        permissions=FakeOsPermissions(granted=True),
        grants=RecordingGrants(),
        ui=FakeUi(),
    )


def not_an_environment() -> str:
    return "nope"


# =============================================================================
# Component fixtures
# =============================================================================


@pytest.fixture
def bridge_config(tmp_path: Path) -> BridgeConfig:
    return BridgeConfig(
        media=MediaConfig(staging_dir=tmp_path / "media"),
        server=ServerConfig(socket_path=tmp_path / "bridge.sock"),
    )


@pytest.fixture
def engine() -> SpyHostEngine:
    return SpyHostEngine()


@pytest.fixture
def os_permissions() -> FakeOsPermissions:
    return FakeOsPermissions()


@pytest.fixture
def grants() -> RecordingGrants:
    return RecordingGrants()


@pytest.fixture
def ui() -> FakeUi:
    return FakeUi()


@pytest.fixture
def gate(os_permissions: FakeOsPermissions, bridge_config: BridgeConfig) -> PermissionGate:
    return PermissionGate(os_permissions, bridge_config.permission)


@pytest.fixture
def stager(grants: RecordingGrants, bridge_config: BridgeConfig) -> MediaStager:
    return MediaStager(grants, bridge_config.media)


@pytest.fixture
def dispatcher(
    gate: PermissionGate,
    stager: MediaStager,
    engine: SpyHostEngine,
    ui: FakeUi,
) -> Dispatcher:
    """Dispatcher attached to the spy engine with a UI; permission not granted."""
    dispatcher = Dispatcher(gate, stager)
    dispatcher.attach(engine)
    dispatcher.attach_ui(ui)
    return dispatcher


@pytest.fixture
def granted_dispatcher(
    dispatcher: Dispatcher, os_permissions: FakeOsPermissions
) -> Dispatcher:
    """Dispatcher whose permission has already been granted."""
    os_permissions.granted = True
    return dispatcher


def note(note_id: int, fields: list[str], tags: set[str] | None = None) -> NoteRecord:
    return NoteRecord(id=note_id, fields=fields, tags=frozenset(tags or set()))


# =============================================================================
# CLI Fixtures
# =============================================================================


@pytest.fixture
def cli_runner():
    """Create a Typer CLI test runner with colors disabled."""
    from typer.testing import CliRunner

    return CliRunner(env={"NO_COLOR": "1"})
