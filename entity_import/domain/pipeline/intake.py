"""
File intake: validates a selected file against the import subject and stages it.

JSON files are decoded immediately and their object graph is kept with the
staged file. CSV files are staged unparsed; the collaborator reads them.
"""
import json
import logging
from dataclasses import dataclass
from typing import Any, Dict, Tuple

from entity_import.api.schemas.shared import ImportFormat, ImportSubject
from entity_import.domain.pipeline.errors import DecodeError, UnsupportedFileType

logger = logging.getLogger(__name__)

CSV_MIME_TYPE = "text/csv"
JSON_MIME_TYPE = "application/json"

ACCEPTED_MIME_TYPES: Dict[ImportSubject, Tuple[str, ...]] = {
    ImportSubject.ENTITIES: (CSV_MIME_TYPE, JSON_MIME_TYPE),
    ImportSubject.TEMPLATE: (JSON_MIME_TYPE,),
}

_MIME_FORMATS = {
    CSV_MIME_TYPE: ImportFormat.CSV,
    JSON_MIME_TYPE: ImportFormat.JSON,
}


@dataclass(frozen=True)
class StagedFile:
    """A file accepted for the session; never modified once staged."""
    name: str
    mime_type: str
    content: bytes
    format: ImportFormat
    data: Any = None

    @property
    def is_tabular(self) -> bool:
        return self.format is ImportFormat.CSV


def normalise_mime_type(mime_type: str) -> str:
    """Drop parameters such as ``; charset=utf-8`` and lowercase the type."""
    return (mime_type or "").split(";", 1)[0].strip().lower()


def decode_json(content: bytes, subject: ImportSubject) -> Any:
    """
    Decode a JSON upload into its object graph.

    Raises:
        DecodeError: If the bytes are not UTF-8 JSON, or the document has the
            wrong shape for the subject.
    """
    try:
        data = json.loads(content.decode("utf-8-sig"))
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise DecodeError(f"Error while parsing JSON file: {exc}") from exc

    if not isinstance(data, (dict, list)):
        raise DecodeError("JSON file must contain an object or an array")
    if subject is ImportSubject.TEMPLATE:
        items = data if isinstance(data, list) else [data]
        if not all(isinstance(item, dict) for item in items):
            raise DecodeError("Template JSON must contain objects")
    return data


def stage_file(subject: ImportSubject, name: str, mime_type: str, content: bytes) -> StagedFile:
    """
    Validate and stage a selected file.

    Raises:
        UnsupportedFileType: If the MIME type is not accepted for ``subject``.
        DecodeError: If a JSON file cannot be decoded.
    """
    accepted = ACCEPTED_MIME_TYPES[subject]
    normalised = normalise_mime_type(mime_type)
    if normalised not in accepted:
        raise UnsupportedFileType(mime_type, accepted)

    file_format = _MIME_FORMATS[normalised]
    data = decode_json(content, subject) if file_format is ImportFormat.JSON else None

    logger.info("Staged %s file '%s' (%d bytes) for %s import", file_format.value, name, len(content), subject.value)
    return StagedFile(name=name, mime_type=normalised, content=content, format=file_format, data=data)
