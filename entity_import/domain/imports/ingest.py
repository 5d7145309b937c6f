"""
Review and commit services behind the import endpoints.

Review classifies each prospective record as a create or an update by
looking up an existing entity (or template) with the same name and owner.
Commit performs the same lookup and upserts, in a single transaction per
request: either every record in the file is written or none is.
"""
import logging
from typing import Any, Dict, Iterable, List, Optional, Set, Tuple

from pydantic import ValidationError
from sqlalchemy.orm import Session

from entity_import.api.schemas.shared import (
    AttributeDraft,
    AttributeValue,
    ColumnMapping,
    MappingCatalog,
    ProjectSummary,
    ReviewRecord,
)
from entity_import.db.models import Entity, Project, Template

logger = logging.getLogger(__name__)


def get_mapping_catalog(db: Session) -> MappingCatalog:
    """Collect the projects and templates offered while mapping an import."""
    projects = db.query(Project).order_by(Project.name).all()
    templates = (
        db.query(Template)
        .filter(Template.archived.is_(False))
        .order_by(Template.name)
        .all()
    )
    return MappingCatalog(
        projects=[ProjectSummary(id=project.id, name=project.name) for project in projects],
        templates=[
            AttributeDraft(
                id=template.id,
                name=template.name,
                description=template.description,
                values=template.values or [],
                archived=template.archived,
                owner=template.owner,
                timestamp=template.timestamp,
            )
            for template in templates
        ],
    )


def _existing_entity(db: Session, name: str, owner: str) -> Optional[Entity]:
    return db.query(Entity).filter(Entity.name == name, Entity.owner == owner).first()


def _classify(db: Session, names: Iterable[str], owner: str) -> List[ReviewRecord]:
    records: List[ReviewRecord] = []
    seen: Set[str] = set()
    for name in names:
        # A name repeated in the same file updates the record its first row creates.
        exists = name in seen or _existing_entity(db, name, owner) is not None
        records.append(ReviewRecord(name=name, disposition="update" if exists else "create"))
        seen.add(name)
    return records


def _normalise_attributes(attributes: Any) -> List[Dict[str, Any]]:
    if attributes is None:
        return []
    if not isinstance(attributes, list):
        raise ValueError("attributes must be a list")
    try:
        return [AttributeDraft.model_validate(item).model_dump(mode="json") for item in attributes]
    except ValidationError as exc:
        raise ValueError(f"Invalid attribute: {exc.errors()[0]['msg']}") from exc


def _normalise_values(values: Any) -> List[Dict[str, Any]]:
    if values is None:
        return []
    if not isinstance(values, list):
        raise ValueError("values must be a list")
    try:
        return [AttributeValue.model_validate(item).model_dump(mode="json") for item in values]
    except ValidationError as exc:
        raise ValueError(f"Invalid value: {exc.errors()[0]['msg']}") from exc


def apply_column_mapping(row: Dict[str, str], mapping: ColumnMapping) -> Dict[str, Any]:
    """
    Build entity fields from one spreadsheet row.

    Every attribute value's ``data`` names a column; the row's cell in that
    column becomes the stored value.
    """
    attributes = []
    for draft in mapping.attributes:
        values = []
        for value in draft.values:
            column = value.data if isinstance(value.data, str) else ""
            values.append({**value.model_dump(mode="json"), "data": row.get(column, "") if column else None})
        attributes.append({**draft.model_dump(mode="json"), "values": values})

    return {
        "name": row.get(mapping.name, ""),
        "description": row.get(mapping.description, "") if mapping.description else "",
        "created": mapping.created,
        "projects": [mapping.project] if mapping.project else [],
        "attributes": attributes,
    }


def _merge_attributes(existing: List[Dict[str, Any]], incoming: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """
    Overlay ``incoming`` attributes onto ``existing``.

    An incoming attribute replaces the stored one with the same id, or failing
    that the same name; anything unmatched is appended.
    """
    merged = list(existing)
    for attribute in incoming:
        for index, current in enumerate(merged):
            same_id = attribute.get("id") and current.get("id") == attribute.get("id")
            same_name = attribute.get("name") and current.get("name") == attribute.get("name")
            if same_id or same_name:
                merged[index] = attribute
                break
        else:
            merged.append(attribute)
    return merged


def _upsert_entity(db: Session, owner: str, fields: Dict[str, Any]) -> bool:
    """Create or update one entity; return True when it was created."""
    entity = _existing_entity(db, fields["name"], owner)
    if entity is None:
        entity = Entity(
            name=fields["name"],
            owner=owner,
            description=fields.get("description") or "",
            projects=list(fields.get("projects") or []),
            attributes=list(fields.get("attributes") or []),
        )
        if fields.get("created"):
            entity.created = fields["created"]
        db.add(entity)
        # Flush so a later row with the same name finds this one.
        db.flush()
        return True

    if fields.get("description"):
        entity.description = fields["description"]
    entity.projects = sorted(set(entity.projects or []) | set(fields.get("projects") or []))
    entity.attributes = _merge_attributes(entity.attributes or [], fields.get("attributes") or [])
    db.flush()
    return False


def _commit_all(db: Session, owner: str, rows: List[Dict[str, Any]]) -> Tuple[int, int]:
    created = updated = 0
    try:
        for fields in rows:
            if _upsert_entity(db, owner, fields):
                created += 1
            else:
                updated += 1
        db.commit()
    except Exception:
        db.rollback()
        raise
    return created, updated


def review_csv_rows(db: Session, rows: List[Dict[str, str]], mapping: ColumnMapping) -> List[ReviewRecord]:
    if rows and mapping.name not in rows[0]:
        raise ValueError(f"Column '{mapping.name}' not found in file")
    names = [row.get(mapping.name, "") for row in rows]
    return _classify(db, [name for name in names if name], mapping.owner)


def import_csv_rows(db: Session, rows: List[Dict[str, str]], mapping: ColumnMapping) -> Tuple[int, int]:
    if rows and mapping.name not in rows[0]:
        raise ValueError(f"Column '{mapping.name}' not found in file")
    entities = [apply_column_mapping(row, mapping) for row in rows]
    entities = [fields for fields in entities if fields["name"]]
    created, updated = _commit_all(db, mapping.owner, entities)
    logger.info("Imported CSV for owner %s: %d created, %d updated", mapping.owner, created, updated)
    return created, updated


def review_json_entities(db: Session, entities: List[Dict[str, Any]], owner: str) -> List[ReviewRecord]:
    return _classify(db, [str(entity["name"]).strip() for entity in entities], owner)


def import_json_entities(
    db: Session,
    entities: List[Dict[str, Any]],
    owner: str,
    project: Optional[str] = None,
) -> Tuple[int, int]:
    rows = []
    for entity in entities:
        projects = list(entity.get("projects") or [])
        if project and project not in projects:
            projects.append(project)
        rows.append(
            {
                "name": str(entity["name"]).strip(),
                "description": str(entity.get("description") or ""),
                "created": entity.get("created"),
                "projects": projects,
                "attributes": _normalise_attributes(entity.get("attributes")),
            }
        )
    created, updated = _commit_all(db, owner, rows)
    logger.info("Imported JSON for owner %s: %d created, %d updated", owner, created, updated)
    return created, updated


def import_templates(db: Session, templates: List[Dict[str, Any]], owner: str) -> Tuple[int, int]:
    """Upsert templates by name and owner."""
    created = updated = 0
    try:
        for item in templates:
            name = str(item["name"]).strip()
            values = _normalise_values(item.get("values"))
            template = db.query(Template).filter(Template.name == name, Template.owner == owner).first()
            if template is None:
                db.add(
                    Template(
                        name=name,
                        owner=owner,
                        description=str(item.get("description") or ""),
                        values=values,
                    )
                )
                created += 1
            else:
                template.description = str(item.get("description") or template.description)
                template.values = values
                updated += 1
            db.flush()
        db.commit()
    except Exception:
        db.rollback()
        raise

    logger.info("Imported templates for owner %s: %d created, %d updated", owner, created, updated)
    return created, updated
