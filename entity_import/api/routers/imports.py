"""
Review and commit endpoints for entity and template imports.

Review endpoints report, for each record in the file, whether committing
would create a new entity or update an existing one. Commit endpoints
perform the writes. Problems with the file contents are reported as
``success: false`` replies rather than HTTP errors.
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile
from pydantic import ValidationError
from sqlalchemy.orm import Session

from entity_import.api.dependencies import get_current_identity, read_upload
from entity_import.api.schemas.shared import ColumnMapping, CommitResponse, ReviewResponse
from entity_import.db.session import get_db
from entity_import.domain.imports import ingest
from entity_import.domain.imports.processors.csv_processor import process_csv
from entity_import.domain.imports.processors.json_processor import (
    process_entities_json,
    process_templates_json,
)

router = APIRouter(tags=["imports"])

logger = logging.getLogger(__name__)


def _parse_column_mapping(column_mapping: str) -> ColumnMapping:
    try:
        return ColumnMapping.model_validate_json(column_mapping)
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=f"Invalid column mapping: {e.errors()[0]['msg']}")


@router.post("/review-csv", response_model=ReviewResponse)
async def review_csv_endpoint(
    file: UploadFile = File(...),
    column_mapping: str = Form(...),
    identity: str = Depends(get_current_identity),
    db: Session = Depends(get_db),
):
    """
    Preview a CSV import.

    Parameters:
    - file: The CSV file to import
    - column_mapping: JSON string with the column mapping

    Returns:
    - One record per named row with its create/update disposition
    """
    mapping = _parse_column_mapping(column_mapping)
    file_content = await read_upload(file)
    try:
        rows = process_csv(file_content)
        records = ingest.review_csv_rows(db, rows, mapping)
    except ValueError as e:
        logger.warning("CSV review failed for %s: %s", identity, e)
        return ReviewResponse(success=False, message=str(e))

    return ReviewResponse(success=True, message=f"Reviewed {len(records)} entities", records=records)


@router.post("/import-csv", response_model=CommitResponse)
async def import_csv_endpoint(
    file: UploadFile = File(...),
    column_mapping: str = Form(...),
    identity: str = Depends(get_current_identity),
    db: Session = Depends(get_db),
):
    """Create or update one entity per CSV row according to the column mapping."""
    mapping = _parse_column_mapping(column_mapping)
    file_content = await read_upload(file)
    try:
        rows = process_csv(file_content)
        created, updated = ingest.import_csv_rows(db, rows, mapping)
    except ValueError as e:
        logger.warning("CSV import failed for %s: %s", identity, e)
        return CommitResponse(success=False, message=str(e))
    except Exception as e:
        logger.exception("CSV import failed: %s", e)
        raise HTTPException(status_code=500, detail="Import failed")

    return CommitResponse(
        success=True,
        message=f"Imported {created + updated} entities",
        created=created,
        updated=updated,
    )


@router.post("/review-json", response_model=ReviewResponse)
async def review_json_endpoint(
    file: UploadFile = File(...),
    identity: str = Depends(get_current_identity),
    db: Session = Depends(get_db),
):
    """Preview a JSON entities import; names and fields come from the file itself."""
    file_content = await read_upload(file)
    try:
        entities = process_entities_json(file_content)
        records = ingest.review_json_entities(db, entities, identity)
    except ValueError as e:
        logger.warning("JSON review failed for %s: %s", identity, e)
        return ReviewResponse(success=False, message=str(e))

    return ReviewResponse(success=True, message=f"Reviewed {len(records)} entities", records=records)


@router.post("/import-json", response_model=CommitResponse)
async def import_json_endpoint(
    file: UploadFile = File(...),
    project: Optional[str] = Form(default=None),
    identity: str = Depends(get_current_identity),
    db: Session = Depends(get_db),
):
    """
    Create or update the entities defined in a JSON file.

    Parameters:
    - file: The JSON file to import
    - project: Optional project every imported entity is associated with
    """
    file_content = await read_upload(file)
    try:
        entities = process_entities_json(file_content)
        created, updated = ingest.import_json_entities(db, entities, identity, project or None)
    except ValueError as e:
        logger.warning("JSON import failed for %s: %s", identity, e)
        return CommitResponse(success=False, message=str(e))
    except Exception as e:
        logger.exception("JSON import failed: %s", e)
        raise HTTPException(status_code=500, detail="Import failed")

    return CommitResponse(
        success=True,
        message=f"Imported {created + updated} entities",
        created=created,
        updated=updated,
    )


@router.post("/import-templates", response_model=CommitResponse)
async def import_templates_endpoint(
    file: UploadFile = File(...),
    identity: str = Depends(get_current_identity),
    db: Session = Depends(get_db),
):
    """Create or update the templates defined in a JSON file."""
    file_content = await read_upload(file)
    try:
        templates = process_templates_json(file_content)
        created, updated = ingest.import_templates(db, templates, identity)
    except ValueError as e:
        logger.warning("Template import failed for %s: %s", identity, e)
        return CommitResponse(success=False, message=str(e))
    except Exception as e:
        logger.exception("Template import failed: %s", e)
        raise HTTPException(status_code=500, detail="Import failed")

    return CommitResponse(
        success=True,
        message=f"Imported {created + updated} templates",
        created=created,
        updated=updated,
    )
