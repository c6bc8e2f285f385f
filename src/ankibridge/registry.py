"""Operation registry: the fixed table of host operations.

Each entry binds an operation name to a pydantic argument model, the host
engine call, and an optional result transform. The table is built once at
import time and exposed read-only; there is no runtime registration.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Iterable, Mapping
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, get_origin

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    field_validator,
    model_validator,
)
from pydantic.fields import FieldInfo

from ankibridge.errors import ContractViolation, HostCallFailed, MediaAddFailed
from ankibridge.host import HostEngine, HostEngineError
from ankibridge.shaping import shape_duplicate_groups, shape_note, shape_notes
from ankibridge.staging import MediaStager, sanitize_media_name


TEST_RESPONSE = "Test Successful!"


@dataclass(slots=True)
class OperationContext:
    """Collaborators available to an operation while it runs."""

    engine: HostEngine
    stager: MediaStager


Invoke = Callable[[OperationContext, Any], Awaitable[Any]]


@dataclass(frozen=True, slots=True)
class Operation:
    """One named host operation."""

    name: str
    invoke: Invoke
    args: type[BaseModel] | None = None
    shape: Callable[[Any], Any] | None = None
    description: str = ""

    @property
    def argument_schema(self) -> list[tuple[str, str, bool]]:
        """Ordered ``(key, type, required)`` triples for this operation."""
        if self.args is None:
            return []
        return [
            (_wire_key(name, info), _type_name(info.annotation), info.is_required())
            for name, info in self.args.model_fields.items()
        ]

    def validate(self, params: Mapping[str, Any]) -> BaseModel | None:
        """Validate raw call arguments.

        Raises:
            ContractViolation: If an argument is missing or has the wrong shape.
        """
        if self.args is None:
            return None
        try:
            return self.args.model_validate(dict(params))
        except ValidationError as e:
            raise ContractViolation(self.name, _describe(e)) from e

    async def run(self, context: OperationContext, params: Mapping[str, Any]) -> Any:
        """Validate, invoke and shape. Host-side failures become HostCallFailed."""
        args = self.validate(params)
        try:
            result = await self.invoke(context, args)
        except HostEngineError as e:
            raise HostCallFailed(f"{self.name} failed: {e}") from e
        if self.shape is not None:
            result = self.shape(result)
        return result


def _wire_key(name: str, info: FieldInfo) -> str:
    if info.alias:
        return info.alias
    alias = info.validation_alias
    if isinstance(alias, AliasChoices):
        first = alias.choices[0]
        return first if isinstance(first, str) else name
    if isinstance(alias, str):
        return alias
    return name


def _type_name(annotation: Any) -> str:
    if get_origin(annotation) is None and isinstance(annotation, type):
        return annotation.__name__
    return str(annotation)


def _describe(error: ValidationError) -> str:
    parts = []
    for item in error.errors():
        location = ".".join(str(p) for p in item["loc"]) or "arguments"
        parts.append(f"{location}: {item['msg']}")
    return "; ".join(parts)


def _require(value: Any, message: str) -> Any:
    if value is None:
        raise HostCallFailed(message)
    return value


# =============================================================================
# Argument schemas
# =============================================================================


class _Args(BaseModel):
    model_config = ConfigDict(strict=True, extra="ignore", frozen=True)


class AddNoteArgs(_Args):
    model_id: int = Field(alias="modelId")
    deck_id: int = Field(alias="deckId")
    fields: list[str]
    tags: list[str]


class AddNotesArgs(_Args):
    model_id: int = Field(alias="modelId")
    deck_id: int = Field(alias="deckId")
    fields_list: list[list[str]] = Field(alias="fieldsList")
    tags_list: list[list[str]] = Field(alias="tagsList")

    @model_validator(mode="after")
    def _aligned(self) -> AddNotesArgs:
        if len(self.fields_list) != len(self.tags_list):
            raise ValueError("fieldsList and tagsList must have the same length")
        return self


class AddMediaArgs(_Args):
    data: bytes = Field(alias="bytes")
    preferred_name: str = Field(alias="preferredName")
    mime_type: str = Field(alias="mimeType")

    @field_validator("preferred_name")
    @classmethod
    def _plain_file_name(cls, value: str) -> str:
        name = sanitize_media_name(value)
        if not name or name in (".", "..") or any(c in name for c in "/\\\x00"):
            raise ValueError("preferredName must be a plain file name")
        return value


class DuplicateKeyArgs(_Args):
    mid: int
    key: str


class DuplicateKeysArgs(_Args):
    mid: int
    keys: list[str]


class ModelIdArgs(_Args):
    mid: int


class NoteIdArgs(_Args):
    note_id: int = Field(alias="noteId")


class NoteTagsArgs(NoteIdArgs):
    tags: list[str]


class NoteFieldsArgs(NoteIdArgs):
    fields: list[str]


class PreviewArgs(_Args):
    mid: int
    flds: list[str]


class ModelNameArgs(_Args):
    name: str


class CustomModelArgs(_Args):
    name: str
    fields: list[str]
    cards: list[str]
    qfmt: list[str]
    afmt: list[str]
    css: str
    did: int | None = Field(default=None, validation_alias=AliasChoices("did", "deckId"))
    sortf: int | None = Field(
        default=None, validation_alias=AliasChoices("sortf", "sortField")
    )

    @model_validator(mode="after")
    def _templates_aligned(self) -> CustomModelArgs:
        if not (len(self.cards) == len(self.qfmt) == len(self.afmt)):
            raise ValueError("cards, qfmt and afmt must have the same length")
        return self


class FieldListArgs(_Args):
    model_id: int = Field(alias="modelId")


class ModelListArgs(_Args):
    min_num_fields: int = Field(alias="minNumFields")


class DeckNameArgs(_Args):
    deck_name: str = Field(alias="deckName")


class DeckIdArgs(_Args):
    did: int


# =============================================================================
# Invocations
# =============================================================================


async def _test(context: OperationContext, args: None) -> str:
    return TEST_RESPONSE


async def _add_note(context: OperationContext, args: AddNoteArgs) -> int:
    note_id = context.engine.add_note(
        args.model_id, args.deck_id, list(args.fields), set(args.tags)
    )
    return _require(
        note_id,
        f"Could not add note to model {args.model_id} in deck {args.deck_id}",
    )


async def _add_notes(
    context: OperationContext, args: AddNotesArgs
) -> list[int | None]:
    results = context.engine.add_notes(
        args.model_id,
        args.deck_id,
        [list(fields) for fields in args.fields_list],
        [set(tags) for tags in args.tags_list],
    )
    return list(_require(results, f"Could not add notes to deck {args.deck_id}"))


async def _add_media(context: OperationContext, args: AddMediaArgs) -> str:
    name = sanitize_media_name(args.preferred_name)
    async with context.stager.stage(args.data, args.preferred_name) as media:
        try:
            filename = context.engine.add_media_from_uri(
                media.uri, name, args.mime_type
            )
        except HostEngineError as e:
            raise MediaAddFailed(f"Adding media failed: {e}") from e
    if filename is None:
        raise MediaAddFailed("Adding media failed")
    return filename


async def _find_duplicates(context: OperationContext, args: DuplicateKeyArgs) -> Any:
    return context.engine.find_duplicate_notes(args.mid, args.key)


async def _find_duplicates_for_keys(
    context: OperationContext, args: DuplicateKeysArgs
) -> list[list[dict[str, Any]]]:
    groups = context.engine.find_duplicate_notes_for_keys(args.mid, list(args.keys))
    return shape_duplicate_groups(args.keys, groups)


async def _get_note_count(context: OperationContext, args: ModelIdArgs) -> int:
    return context.engine.get_note_count(args.mid)


async def _update_note_tags(context: OperationContext, args: NoteTagsArgs) -> bool:
    return bool(context.engine.update_note_tags(args.note_id, set(args.tags)))


async def _update_note_fields(
    context: OperationContext, args: NoteFieldsArgs
) -> bool:
    return bool(context.engine.update_note_fields(args.note_id, list(args.fields)))


async def _get_note(context: OperationContext, args: NoteIdArgs) -> Any:
    return _require(
        context.engine.get_note(args.note_id), f"Note {args.note_id} not found"
    )


async def _preview_new_note(
    context: OperationContext, args: PreviewArgs
) -> dict[str, dict[str, str]]:
    return _require(
        context.engine.preview_new_note(args.mid, list(args.flds)),
        f"Could not preview note for model {args.mid}",
    )


async def _add_new_basic_model(context: OperationContext, args: ModelNameArgs) -> int:
    return _require(
        context.engine.add_new_basic_model(args.name),
        f"Could not create model {args.name!r}",
    )


async def _add_new_basic2_model(
    context: OperationContext, args: ModelNameArgs
) -> int:
    return _require(
        context.engine.add_new_basic2_model(args.name),
        f"Could not create model {args.name!r}",
    )


async def _add_new_custom_model(
    context: OperationContext, args: CustomModelArgs
) -> int:
    model_id = context.engine.add_new_custom_model(
        args.name,
        list(args.fields),
        list(args.cards),
        list(args.qfmt),
        list(args.afmt),
        args.css,
        args.did,
        args.sortf,
    )
    return _require(model_id, f"Could not create model {args.name!r}")


async def _current_model_id(context: OperationContext, args: None) -> int:
    return context.engine.current_model_id


async def _get_field_list(context: OperationContext, args: FieldListArgs) -> list[str]:
    fields = _require(
        context.engine.get_field_list(args.model_id),
        f"Model {args.model_id} not found",
    )
    return list(fields)


async def _model_list(context: OperationContext, args: None) -> dict[int, str]:
    return dict(_require(context.engine.model_list, "Could not list models"))


async def _get_model_list(
    context: OperationContext, args: ModelListArgs
) -> dict[int, str]:
    return dict(
        _require(
            context.engine.get_model_list(args.min_num_fields),
            f"Could not list models with {args.min_num_fields} fields",
        )
    )


async def _get_model_name(context: OperationContext, args: ModelIdArgs) -> str:
    return _require(
        context.engine.get_model_name(args.mid), f"Model {args.mid} not found"
    )


async def _add_new_deck(context: OperationContext, args: DeckNameArgs) -> int:
    return _require(
        context.engine.add_new_deck(args.deck_name),
        f"Could not create deck {args.deck_name!r}",
    )


async def _selected_deck_name(context: OperationContext, args: None) -> str | None:
    return context.engine.selected_deck_name


async def _deck_list(context: OperationContext, args: None) -> dict[int, str]:
    return dict(_require(context.engine.deck_list, "Could not list decks"))


async def _get_deck_name(context: OperationContext, args: DeckIdArgs) -> str:
    return _require(
        context.engine.get_deck_name(args.did), f"Deck {args.did} not found"
    )


async def _api_host_spec_version(context: OperationContext, args: None) -> int:
    return context.engine.api_host_spec_version


# =============================================================================
# Table
# =============================================================================


def build_operations(operations: Iterable[Operation]) -> Mapping[str, Operation]:
    """Freeze operations into a read-only name -> Operation mapping."""
    table: dict[str, Operation] = {}
    for operation in operations:
        if operation.name in table:
            raise ValueError(f"duplicate operation name: {operation.name}")
        table[operation.name] = operation
    return MappingProxyType(table)


OPERATIONS: Mapping[str, Operation] = build_operations(
    [
        Operation("test", _test, description="Liveness probe"),
        Operation("addNote", _add_note, AddNoteArgs, description="Add one note"),
        Operation(
            "addNotes", _add_notes, AddNotesArgs, description="Add many notes"
        ),
        Operation(
            "addMedia", _add_media, AddMediaArgs, description="Add a media file"
        ),
        Operation(
            "findDuplicateNotesWithKey",
            _find_duplicates,
            DuplicateKeyArgs,
            shape=shape_notes,
            description="Notes whose first field matches a key",
        ),
        Operation(
            "findDuplicateNotesWithKeys",
            _find_duplicates_for_keys,
            DuplicateKeysArgs,
            description="Duplicate matches aligned with each key",
        ),
        Operation(
            "getNoteCount", _get_note_count, ModelIdArgs, description="Notes in a model"
        ),
        Operation(
            "updateNoteTags",
            _update_note_tags,
            NoteTagsArgs,
            description="Replace a note's tags",
        ),
        Operation(
            "updateNoteFields",
            _update_note_fields,
            NoteFieldsArgs,
            description="Replace a note's fields",
        ),
        Operation(
            "getNote", _get_note, NoteIdArgs, shape=shape_note, description="One note"
        ),
        Operation(
            "previewNewNote",
            _preview_new_note,
            PreviewArgs,
            description="Render cards for unsaved fields",
        ),
        Operation(
            "addNewBasicModel",
            _add_new_basic_model,
            ModelNameArgs,
            description="Create a front/back model",
        ),
        Operation(
            "addNewBasic2Model",
            _add_new_basic2_model,
            ModelNameArgs,
            description="Create a model with reverse card",
        ),
        Operation(
            "addNewCustomModel",
            _add_new_custom_model,
            CustomModelArgs,
            description="Create a model from templates",
        ),
        Operation(
            "currentModelId", _current_model_id, description="Selected model id"
        ),
        Operation(
            "getFieldList",
            _get_field_list,
            FieldListArgs,
            description="Field names of a model",
        ),
        Operation("modelList", _model_list, description="All models"),
        Operation(
            "getModelList",
            _get_model_list,
            ModelListArgs,
            description="Models with at least N fields",
        ),
        Operation(
            "getModelName", _get_model_name, ModelIdArgs, description="Model name"
        ),
        Operation(
            "addNewDeck", _add_new_deck, DeckNameArgs, description="Create a deck"
        ),
        Operation(
            "selectedDeckName", _selected_deck_name, description="Selected deck name"
        ),
        Operation("deckList", _deck_list, description="All decks"),
        Operation("getDeckName", _get_deck_name, DeckIdArgs, description="Deck name"),
        Operation(
            "apiHostSpecVersion",
            _api_host_spec_version,
            description="Host API spec version",
        ),
    ]
)
