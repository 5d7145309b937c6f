"""
Column resolution for tabular imports.
"""
import logging
from typing import List, Optional, Sequence

from entity_import.core.config import settings
from entity_import.domain.pipeline.errors import RemoteUnavailable
from entity_import.domain.pipeline.intake import StagedFile

logger = logging.getLogger(__name__)


def filter_columns(headers: Sequence[str], prefix: Optional[str] = None) -> List[str]:
    """Drop placeholder headers for unlabeled columns, keeping the order of the rest."""
    token = prefix or settings.empty_header_prefix
    return [header for header in headers if not header.startswith(token)]


async def resolve_columns(client, staged_file: StagedFile) -> List[str]:
    """
    Fetch the header row of a staged CSV file and return its labeled columns.

    Raises:
        RemoteUnavailable: If the remote call fails or yields no usable columns.
    """
    headers = await client.extract_headers(staged_file)
    if not headers:
        raise RemoteUnavailable("extract_headers", "No columns were found in the CSV file")

    columns = filter_columns(headers)
    if not columns:
        raise RemoteUnavailable("extract_headers", "The CSV file has no labeled columns")

    logger.info("Resolved %d of %d columns for '%s'", len(columns), len(headers), staged_file.name)
    return columns
