"""
Commit engine: submits the reviewed import for the collaborator to apply.

The commit is a single remote request. Its atomicity belongs to the
collaborator; nothing is retried or compensated here.
"""
import logging
from typing import Optional

from entity_import.api.schemas.shared import ColumnMapping, CommitResponse, ImportSubject
from entity_import.domain.pipeline.errors import RemoteUnavailable
from entity_import.domain.pipeline.intake import StagedFile

logger = logging.getLogger(__name__)


async def commit_import(
    client,
    subject: ImportSubject,
    staged_file: StagedFile,
    mapping: Optional[ColumnMapping] = None,
    project_id: Optional[str] = None,
) -> CommitResponse:
    """
    Raises:
        RemoteUnavailable: If the call fails or the collaborator reports failure.
    """
    if subject is ImportSubject.TEMPLATE:
        operation = "commit_templates"
        response = await client.commit_templates(staged_file)
    elif staged_file.is_tabular:
        if mapping is None:
            raise ValueError("A column mapping is required to commit a CSV import")
        operation = "commit_tabular"
        response = await client.commit_tabular(mapping, staged_file)
    else:
        operation = "commit_hierarchical"
        response = await client.commit_hierarchical(staged_file, project_id or None)

    if not response.success:
        raise RemoteUnavailable(operation, response.message or "Import was not successful")

    logger.info("Committed %s import of '%s': %s", subject.value, staged_file.name, response.message)
    return response
