"""
Import session state machine.

The state is a tagged union keyed by import subject: an entities import
walks ``upload -> details -> mapping -> review`` while a template import
walks ``upload -> review``. Both commit from ``review``. Transitions are
computed by :func:`transition`, a pure function of (state, event); the
only way back is a cancel, which returns to the initial state.
"""
from dataclasses import dataclass, replace
from enum import Enum
from typing import ClassVar, Optional, Tuple, Union

from entity_import.api.schemas.shared import ImportFormat, ImportSubject
from entity_import.domain.pipeline.errors import InvalidTransition


class EntityStage(str, Enum):
    UPLOAD = "upload"
    DETAILS = "details"
    MAPPING = "mapping"
    REVIEW = "review"


class TemplateStage(str, Enum):
    UPLOAD = "upload"
    REVIEW = "review"


@dataclass(frozen=True)
class _ImportState:
    subject: ClassVar[ImportSubject]
    steps: ClassVar[Tuple[str, ...]]

    stage: Enum
    format: Optional[ImportFormat] = None

    @property
    def is_subject_locked(self) -> bool:
        """Subject selection is frozen once the session has left the upload stage."""
        return self.stage.value != "upload"

    @property
    def active_step(self) -> int:
        return list(type(self.stage)).index(self.stage)

    @property
    def is_final_stage(self) -> bool:
        return self.stage.value == "review"


@dataclass(frozen=True)
class EntityImportState(_ImportState):
    subject: ClassVar[ImportSubject] = ImportSubject.ENTITIES
    steps: ClassVar[Tuple[str, ...]] = ("Upload File", "Setup Entities", "Apply Templates", "Review")

    stage: EntityStage = EntityStage.UPLOAD


@dataclass(frozen=True)
class TemplateImportState(_ImportState):
    subject: ClassVar[ImportSubject] = ImportSubject.TEMPLATE
    steps: ClassVar[Tuple[str, ...]] = ("Upload File", "Review")

    stage: TemplateStage = TemplateStage.UPLOAD


ImportState = Union[EntityImportState, TemplateImportState]

_ENTITY_ORDER = list(EntityStage)


# Events

@dataclass(frozen=True)
class SelectSubject:
    subject: ImportSubject


@dataclass(frozen=True)
class SelectFile:
    format: ImportFormat


@dataclass(frozen=True)
class Advance:
    pass


@dataclass(frozen=True)
class Cancel:
    pass


@dataclass(frozen=True)
class CommitSucceeded:
    pass


ImportEvent = Union[SelectSubject, SelectFile, Advance, Cancel, CommitSucceeded]


def initial_state(subject: ImportSubject = ImportSubject.ENTITIES) -> ImportState:
    if subject is ImportSubject.TEMPLATE:
        return TemplateImportState()
    return EntityImportState()


def transition(state: ImportState, event: ImportEvent) -> ImportState:
    """
    Compute the state that follows ``event``.

    Raises:
        InvalidTransition: If the event is not allowed in ``state``.
    """
    if isinstance(event, Cancel):
        return initial_state()

    if isinstance(event, CommitSucceeded):
        if not state.is_final_stage:
            raise InvalidTransition(f"Cannot commit from stage '{state.stage.value}'")
        return initial_state()

    if isinstance(event, SelectSubject):
        if state.is_subject_locked:
            raise InvalidTransition("Import subject is locked until the session is cancelled")
        # Switching subject discards any staged file.
        return initial_state(event.subject)

    if isinstance(event, SelectFile):
        if state.stage.value != "upload":
            raise InvalidTransition("Files can only be selected during upload")
        if state.format is not None:
            raise InvalidTransition("A file has already been staged for this session")
        if isinstance(state, TemplateImportState) and event.format is not ImportFormat.JSON:
            raise InvalidTransition("Templates can only be imported from JSON")
        return replace(state, format=event.format)

    if isinstance(event, Advance):
        if state.format is None:
            raise InvalidTransition("No file has been staged")
        if state.is_final_stage:
            raise InvalidTransition("Review is the final stage; commit instead")
        if isinstance(state, TemplateImportState):
            return replace(state, stage=TemplateStage.REVIEW)
        return replace(state, stage=_ENTITY_ORDER[_ENTITY_ORDER.index(state.stage) + 1])

    raise InvalidTransition(f"Unknown event {event!r}")


def is_ready(state: ImportState, *, file_staged: bool, name_field: str = "") -> bool:
    """Readiness predicate gating the continue action for the current stage."""
    stage = state.stage.value
    if stage == "upload":
        return file_staged and state.format is not None
    if stage in ("details", "mapping"):
        # CSV imports need a name column until review.
        return state.format is ImportFormat.JSON or bool(name_field)
    return True
