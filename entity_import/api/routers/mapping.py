"""
Endpoints that prepare an import for mapping: header extraction and lookups.
"""
import logging
from typing import List

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile
from sqlalchemy.orm import Session

from entity_import.api.dependencies import get_current_identity, read_upload
from entity_import.api.schemas.shared import MappingCatalog
from entity_import.db.session import get_db
from entity_import.domain.imports.ingest import get_mapping_catalog
from entity_import.domain.imports.processors.csv_processor import extract_csv_headers

router = APIRouter(tags=["mapping"])

logger = logging.getLogger(__name__)


@router.post("/prepare-csv", response_model=List[str])
async def prepare_csv_endpoint(
    file: UploadFile = File(...),
    identity: str = Depends(get_current_identity),
):
    """
    Extract the header row of an uploaded CSV file.

    Blank headers are returned as ``__EMPTY`` placeholders so the caller can
    decide whether to hide them.

    Parameters:
    - file: The CSV file to inspect

    Returns:
    - Ordered list of header labels
    """
    file_content = await read_upload(file)
    try:
        headers = extract_csv_headers(file_content)
    except ValueError as e:
        logger.warning("Header extraction failed for '%s': %s", file.filename, e)
        raise HTTPException(status_code=400, detail=str(e))

    logger.info("Prepared CSV '%s' for %s with %d headers", file.filename, identity, len(headers))
    return headers


@router.get("/mapping-data", response_model=MappingCatalog)
async def mapping_data_endpoint(
    identity: str = Depends(get_current_identity),
    db: Session = Depends(get_db),
):
    """Return the projects and templates available while mapping an import."""
    catalog = get_mapping_catalog(db)
    logger.debug(
        "Mapping catalog for %s: %d projects, %d templates",
        identity,
        len(catalog.projects),
        len(catalog.templates),
    )
    return catalog
