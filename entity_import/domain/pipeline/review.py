"""
Review engine: asks the collaborator what committing the import would do.
"""
import logging
from dataclasses import dataclass
from typing import Any, List, Optional

from entity_import.api.schemas.shared import ColumnMapping, ReviewRecord
from entity_import.core.config import settings
from entity_import.domain.pipeline.errors import RemoteUnavailable
from entity_import.domain.pipeline.intake import StagedFile

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ReviewRow:
    name: str
    display_name: str
    action: str


@dataclass(frozen=True)
class TemplateSummary:
    name: str
    description: str
    value_count: int


def truncate(text: str, length: int) -> str:
    if len(text) <= length:
        return text
    return text[: max(length - 3, 0)] + "..."


def build_review_rows(records: List[ReviewRecord], length: Optional[int] = None) -> List[ReviewRow]:
    """Rows for the review table: truncated name and a "Create"/"Update" label."""
    limit = length or settings.review_name_display_length
    return [
        ReviewRow(name=record.name, display_name=truncate(record.name, limit), action=record.disposition.capitalize())
        for record in records
    ]


def summarise_templates(data: Any) -> List[TemplateSummary]:
    """Describe the templates decoded from an uploaded JSON file."""
    items = data if isinstance(data, list) else [data] if isinstance(data, dict) else []
    summaries = []
    for item in items:
        values = item.get("values")
        summaries.append(
            TemplateSummary(
                name=str(item.get("name") or ""),
                description=str(item.get("description") or ""),
                value_count=len(values) if isinstance(values, list) else 0,
            )
        )
    return summaries


async def request_review(
    client,
    staged_file: StagedFile,
    mapping: Optional[ColumnMapping] = None,
) -> List[ReviewRecord]:
    """
    Submit the import for preview and return the prospective records.

    CSV files are reviewed with their column mapping; JSON files describe
    their own fields and are sent alone.

    Raises:
        RemoteUnavailable: If the call fails or the collaborator reports failure.
    """
    if staged_file.is_tabular:
        if mapping is None:
            raise ValueError("A column mapping is required to review a CSV import")
        operation = "review_tabular"
        response = await client.review_tabular(mapping, staged_file)
    else:
        operation = "review_hierarchical"
        response = await client.review_hierarchical(staged_file)

    if not response.success:
        raise RemoteUnavailable(operation, response.message or "Review was not successful")

    logger.info("Review of '%s' returned %d records", staged_file.name, len(response.records))
    return list(response.records)
