"""
Mapping context: field-to-column assignments and attribute drafts.

For CSV imports every field and every attribute value names a column of
the file; the collaborator reads the cell in that column for each row.
JSON files describe their own fields, so only the project and any extra
attribute drafts are collected, and draft values are unrestricted.
"""
import itertools
import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, List, Optional, Sequence, Union

from entity_import.api.schemas.shared import (
    AttributeDraft,
    AttributeValue,
    ColumnMapping,
    MappingCatalog,
)

logger = logging.getLogger(__name__)

BLANK = "blank"


def _utcnow() -> str:
    """Return the current UTC time as an ISO 8601 string."""
    return datetime.now(timezone.utc).isoformat()


class DraftIdGenerator:
    """
    Issues local attribute ids of the form ``a-<nonce>-<counter>``.

    The nonce is fixed per generator (one per session) and the counter only
    increases, so an id is never issued twice within a session.
    """

    def __init__(self, nonce: Optional[str] = None):
        self.nonce = nonce or uuid.uuid4().hex[:6]
        self._counter = itertools.count(1)

    def __call__(self) -> str:
        return f"a-{self.nonce}-{next(self._counter)}"


@dataclass
class FieldMapping:
    owner_field: str
    name_field: str = ""
    description_field: str = ""
    project_field: str = ""
    attribute_drafts: List[AttributeDraft] = field(default_factory=list)


class MappingContext:
    def __init__(
        self,
        owner: str,
        columns: Optional[Sequence[str]] = None,
        catalog: Optional[MappingCatalog] = None,
        id_generator: Optional[Callable[[], str]] = None,
        clock: Callable[[], str] = _utcnow,
    ):
        self.mapping = FieldMapping(owner_field=owner)
        # None means values are unrestricted (JSON imports).
        self.columns = list(columns) if columns is not None else None
        self.catalog = catalog or MappingCatalog()
        self._next_id = id_generator or DraftIdGenerator()
        self._clock = clock

    @property
    def value_columns(self) -> Optional[List[str]]:
        """Columns an attribute value may reference, or None when unrestricted."""
        return list(self.columns) if self.columns is not None else None

    @property
    def attribute_drafts(self) -> List[AttributeDraft]:
        return list(self.mapping.attribute_drafts)

    def _check_column(self, column: str, label: str) -> None:
        if column and self.columns is not None and column not in self.columns:
            raise ValueError(f"{label} column '{column}' is not in the file")

    def _check_value(self, value: AttributeValue) -> None:
        if self.columns is None or value.data in (None, ""):
            return
        if not isinstance(value.data, str) or value.data not in self.columns:
            raise ValueError(f"Value '{value.name}' must reference a column of the file")

    def set_name_field(self, column: str) -> None:
        self._check_column(column, "Name")
        self.mapping.name_field = column

    def set_description_field(self, column: str) -> None:
        self._check_column(column, "Description")
        self.mapping.description_field = column

    def set_project_field(self, project_id: str) -> None:
        if project_id and project_id not in {project.id for project in self.catalog.projects}:
            raise ValueError(f"Unknown project '{project_id}'")
        self.mapping.project_field = project_id

    def add_attribute(self, source: Union[str, AttributeDraft] = BLANK) -> str:
        """
        Append an attribute draft and return its id.

        ``source`` is either ``"blank"`` for an empty draft or a template whose
        name, description and values are copied into the new draft.
        """
        if isinstance(source, AttributeDraft):
            # CSV values start unmapped; the commit fills them from a column.
            reset = {"data": None} if self.columns is not None else {}
            draft = AttributeDraft(
                id=self._next_id(),
                name=source.name,
                description=source.description,
                values=[value.model_copy(update=reset, deep=True) for value in source.values],
                archived=False,
                owner=self.mapping.owner_field,
                timestamp=self._clock(),
            )
        elif source == BLANK:
            draft = AttributeDraft(
                id=self._next_id(),
                owner=self.mapping.owner_field,
                timestamp=self._clock(),
            )
        else:
            raise ValueError(f"Unknown attribute source {source!r}")

        self.mapping.attribute_drafts.append(draft)
        logger.debug("Added attribute draft %s (%s)", draft.id, draft.name or "blank")
        return draft.id

    def add_template(self, template_id: str) -> Optional[str]:
        """Copy the catalog template with ``template_id``; None when there is no such template."""
        for template in self.catalog.templates:
            if template.id == template_id:
                return self.add_attribute(template)
        return None

    def update_attribute(
        self,
        attribute_id: str,
        *,
        name: Optional[str] = None,
        description: Optional[str] = None,
        values: Optional[Sequence[AttributeValue]] = None,
    ) -> None:
        """
        Replace the name, description and/or values of a draft.

        Unknown ids are ignored. For CSV imports each value's ``data`` must name
        one of the file's columns.
        """
        drafts = self.mapping.attribute_drafts
        for index, draft in enumerate(drafts):
            if draft.id != attribute_id:
                continue

            changes = {}
            if name is not None:
                changes["name"] = name
            if description is not None:
                changes["description"] = description
            if values is not None:
                for value in values:
                    self._check_value(value)
                changes["values"] = [value.model_copy(deep=True) for value in values]
            drafts[index] = draft.model_copy(update=changes)
            return

    def remove_attribute(self, attribute_id: str) -> None:
        """Remove the draft with ``attribute_id``; unknown ids are ignored."""
        for index, draft in enumerate(self.mapping.attribute_drafts):
            if draft.id == attribute_id:
                del self.mapping.attribute_drafts[index]
                return

    def to_column_mapping(self, created: Optional[str] = None) -> ColumnMapping:
        """Build the mapping sent with a CSV review or commit."""
        return ColumnMapping(
            name=self.mapping.name_field,
            description=self.mapping.description_field,
            created=created or self._clock(),
            owner=self.mapping.owner_field,
            project=self.mapping.project_field,
            attributes=[draft.model_copy(deep=True) for draft in self.mapping.attribute_drafts],
        )
