"""
Import session controller.

Owns the session state, the staged file, the resolved columns, the mapping
context and the review records, and is the only place they change. Every
mutation recomputes ``continue_enabled`` before returning, and the continue
action stays disabled while a remote call is in flight.

Cancelling discards the session immediately. Responses to calls that were
in flight at the time are ignored when they arrive: each call remembers the
session generation it started in and drops its result if that generation
has since ended.
"""
import logging
from datetime import datetime, timezone
from typing import List, Optional, Protocol, Sequence, Tuple

from entity_import.api.schemas.shared import (
    AttributeDraft,
    AttributeValue,
    ImportFormat,
    ImportSubject,
    MappingCatalog,
    ReviewRecord,
)
from entity_import.domain.pipeline.columns import resolve_columns
from entity_import.domain.pipeline.commit import commit_import
from entity_import.domain.pipeline.errors import (
    DecodeError,
    InvalidTransition,
    RemoteUnavailable,
    UnsupportedFileType,
)
from entity_import.domain.pipeline.intake import StagedFile, stage_file
from entity_import.domain.pipeline.mapping import BLANK, DraftIdGenerator, FieldMapping, MappingContext
from entity_import.domain.pipeline.notifications import NotificationCenter
from entity_import.domain.pipeline.review import (
    ReviewRow,
    TemplateSummary,
    build_review_rows,
    request_review,
    summarise_templates,
)
from entity_import.domain.pipeline.state import (
    Advance,
    Cancel,
    CommitSucceeded,
    ImportEvent,
    ImportState,
    SelectFile,
    SelectSubject,
    initial_state,
    is_ready,
    transition,
)
from entity_import.integrations.rpc import ImportRpcClient

logger = logging.getLogger(__name__)


class ImportHost(Protocol):
    """The view hosting the import; told to close and reload after a commit."""

    def close(self) -> None: ...

    def reload(self) -> None: ...


def _utcnow() -> str:
    return datetime.now(timezone.utc).isoformat()


class ImportSession:
    def __init__(
        self,
        client: ImportRpcClient,
        identity: str,
        host: Optional[ImportHost] = None,
        notifications: Optional[NotificationCenter] = None,
    ):
        self._client = client
        self.identity = identity
        self.host = host
        self.notifications = notifications or NotificationCenter()

        self._generation = 0
        self.state: ImportState = initial_state()
        self.is_loading = False
        self.continue_enabled = False
        self._reset_data()

    # Read-only views

    @property
    def subject(self) -> ImportSubject:
        return self.state.subject

    @property
    def stage(self) -> str:
        return self.state.stage.value

    @property
    def format(self) -> Optional[ImportFormat]:
        return self.state.format

    @property
    def steps(self) -> Tuple[str, ...]:
        return self.state.steps

    @property
    def active_step(self) -> int:
        return self.state.active_step

    @property
    def is_subject_locked(self) -> bool:
        return self.state.is_subject_locked or self.is_loading

    @property
    def field_mapping(self) -> FieldMapping:
        return self.mapping_context.mapping

    @property
    def attribute_drafts(self) -> List[AttributeDraft]:
        return self.mapping_context.attribute_drafts

    @property
    def value_columns(self) -> Optional[List[str]]:
        return self.mapping_context.value_columns

    @property
    def review_rows(self) -> List[ReviewRow]:
        return build_review_rows(self.review_records)

    @property
    def template_summaries(self) -> List[TemplateSummary]:
        if self.subject is not ImportSubject.TEMPLATE or self.staged_file is None:
            return []
        return summarise_templates(self.staged_file.data)

    # Internal bookkeeping

    def _reset_data(self) -> None:
        self.staged_file: Optional[StagedFile] = None
        self.columns: List[str] = []
        self.catalog = MappingCatalog()
        self._id_generator = DraftIdGenerator()
        self.mapping_context = MappingContext(self.identity, id_generator=self._id_generator)
        self.review_records: List[ReviewRecord] = []
        self._submitted_mapping = None

    def _refresh(self) -> None:
        self.continue_enabled = not self.is_loading and is_ready(
            self.state,
            file_staged=self.staged_file is not None,
            name_field=self.mapping_context.mapping.name_field,
        )

    def _apply(self, event: ImportEvent) -> None:
        previous = self.state
        self.state = transition(self.state, event)
        if previous.stage != self.state.stage or type(previous) is not type(self.state):
            logger.info(
                "Import session %s/%s -> %s/%s",
                previous.subject.value,
                previous.stage.value,
                self.state.subject.value,
                self.state.stage.value,
            )

    def _begin_call(self) -> int:
        self.is_loading = True
        self._refresh()
        return self._generation

    def _end_call(self, generation: int) -> None:
        if generation == self._generation:
            self.is_loading = False
            self._refresh()

    def _is_stale(self, generation: int) -> bool:
        if generation != self._generation:
            logger.info("Discarding response for a cancelled import session")
            return True
        return False

    def _require_stage(self, *stages: str) -> None:
        if self.stage not in stages:
            raise InvalidTransition(f"Not available during stage '{self.stage}'")

    # Upload

    def select_subject(self, subject: ImportSubject) -> bool:
        """Choose what the file contains; refused once the session has moved past upload."""
        if self.is_subject_locked:
            return False
        if subject is self.subject:
            return True
        self._apply(SelectSubject(subject))
        self._reset_data()
        self._refresh()
        return True

    def select_file(self, name: str, mime_type: str, content: bytes) -> bool:
        """
        Stage the selected file.

        Returns False, after raising a notification, when the file is refused.
        """
        if self.stage != "upload" or self.is_loading or self.staged_file is not None:
            self.notifications.warning("Warning", "Cancel the import to choose a different file")
            return False

        try:
            staged = stage_file(self.subject, name, mime_type, content)
        except UnsupportedFileType:
            expected = "a JSON or CSV file" if self.subject is ImportSubject.ENTITIES else "a JSON file"
            self.notifications.warning("Warning", f"Please upload {expected}")
            return False
        except DecodeError as e:
            self.notifications.error("Error", str(e))
            return False

        self._apply(SelectFile(staged.format))
        self.staged_file = staged
        self._refresh()
        return True

    # Details

    def _require_tabular_details(self) -> None:
        self._require_stage("details", "mapping")
        if self.format is not ImportFormat.CSV:
            raise InvalidTransition("Fields are defined by the JSON file")

    def set_name_field(self, column: str) -> None:
        self._require_tabular_details()
        self.mapping_context.set_name_field(column)
        self._refresh()

    def set_description_field(self, column: str) -> None:
        self._require_tabular_details()
        self.mapping_context.set_description_field(column)
        self._refresh()

    def set_project_field(self, project_id: str) -> None:
        self._require_stage("details", "mapping")
        self.mapping_context.set_project_field(project_id)
        self._refresh()

    # Mapping

    def add_attribute(self, source=BLANK) -> str:
        self._require_stage("mapping")
        attribute_id = self.mapping_context.add_attribute(source)
        self._refresh()
        return attribute_id

    def add_template(self, template_id: str) -> Optional[str]:
        self._require_stage("mapping")
        attribute_id = self.mapping_context.add_template(template_id)
        self._refresh()
        return attribute_id

    def update_attribute(
        self,
        attribute_id: str,
        *,
        name: Optional[str] = None,
        description: Optional[str] = None,
        values: Optional[Sequence[AttributeValue]] = None,
    ) -> None:
        self._require_stage("mapping")
        self.mapping_context.update_attribute(attribute_id, name=name, description=description, values=values)
        self._refresh()

    def remove_attribute(self, attribute_id: str) -> None:
        self._require_stage("mapping")
        self.mapping_context.remove_attribute(attribute_id)
        self._refresh()

    # Continue / cancel

    async def advance(self) -> bool:
        """
        Run the continue action for the current stage.

        Returns True when the stage advanced or the import was committed.
        """
        if not self.continue_enabled:
            return False

        stage = self.stage
        if stage == "upload":
            return await self._setup_import()
        if stage == "details":
            self._apply(Advance())
            self._refresh()
            return True
        if stage == "mapping":
            return await self._setup_review()
        return await self._finish_import()

    def cancel(self) -> None:
        """Discard the session and return to a fresh upload stage."""
        self._generation += 1
        self._apply(Cancel())
        self._reset_data()
        self.is_loading = False
        self._refresh()

    async def _setup_import(self) -> bool:
        if self.subject is ImportSubject.TEMPLATE:
            self._apply(Advance())
            self._refresh()
            return True

        staged = self.staged_file
        generation = self._begin_call()
        try:
            columns = None
            if staged.is_tabular:
                try:
                    columns = await resolve_columns(self._client, staged)
                except RemoteUnavailable as e:
                    if not self._is_stale(generation):
                        self.notifications.error("CSV Import Error", f"Error while preparing CSV file: {e.message}")
                    return False
                if self._is_stale(generation):
                    return False

            try:
                catalog = await self._client.fetch_mapping_catalog()
            except RemoteUnavailable as e:
                if not self._is_stale(generation):
                    self.notifications.error("Error", f"Could not retrieve data for mapping: {e.message}")
                return False
            if self._is_stale(generation):
                return False
        finally:
            self._end_call(generation)

        self.columns = list(columns or [])
        self.catalog = catalog
        self.mapping_context = MappingContext(
            self.identity,
            columns=columns,
            catalog=catalog,
            id_generator=self._id_generator,
        )
        self._apply(Advance())
        self._refresh()
        return True

    async def _setup_review(self) -> bool:
        staged = self.staged_file
        mapping = self.mapping_context.to_column_mapping(_utcnow()) if staged.is_tabular else None

        generation = self._begin_call()
        try:
            try:
                records = await request_review(self._client, staged, mapping)
            except RemoteUnavailable as e:
                if self._is_stale(generation):
                    return False
                label = "CSV" if staged.is_tabular else "JSON"
                self.notifications.error(f"{label} Import Error", f"Error while reviewing {label} file: {e.message}")
                records = []
            if self._is_stale(generation):
                return False
        finally:
            self._end_call(generation)

        # The review table always reflects the latest request only.
        self.review_records = records
        self._submitted_mapping = mapping
        self._apply(Advance())
        self._refresh()
        return True

    async def _finish_import(self) -> bool:
        staged = self.staged_file
        generation = self._begin_call()
        try:
            try:
                await commit_import(
                    self._client,
                    self.subject,
                    staged,
                    mapping=self._submitted_mapping,
                    project_id=self.field_mapping.project_field,
                )
            except RemoteUnavailable as e:
                if not self._is_stale(generation):
                    self.notifications.error("Import Error", f"Error while importing {staged.name}: {e.message}")
                return False
            if self._is_stale(generation):
                return False
        finally:
            self._end_call(generation)

        if self.host is not None:
            self.host.close()
        self._generation += 1
        self._apply(CommitSucceeded())
        self._reset_data()
        self._refresh()
        if self.host is not None:
            self.host.reload()
        return True
