from enum import Enum
from typing import Any, List, Literal, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator


Disposition = Literal["create", "update"]


class ImportSubject(str, Enum):
    """Kind of object carried by an import file."""
    ENTITIES = "entities"
    TEMPLATE = "template"


class ImportFormat(str, Enum):
    """Source encoding of an import file."""
    CSV = "csv"
    JSON = "json"


class AttributeValue(BaseModel):
    """A single typed value slot within an attribute."""
    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(validation_alias=AliasChoices("id", "_id"))
    name: str = ""
    type: str = "string"
    data: Any = None


class AttributeDraft(BaseModel):
    """
    Attribute being prepared for an import.

    Templates stored by the collaborator share this shape, which is what
    allows a template to be copied into an entity's attributes.
    """
    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(validation_alias=AliasChoices("id", "_id"))
    name: str = ""
    description: str = ""
    values: List[AttributeValue] = Field(default_factory=list)
    archived: bool = False
    owner: str = ""
    timestamp: str = ""


class ProjectSummary(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(validation_alias=AliasChoices("id", "_id"))
    name: str


class MappingCatalog(BaseModel):
    """Lookups offered while mapping: projects to assign and templates to copy."""
    projects: List[ProjectSummary] = Field(default_factory=list)
    templates: List[AttributeDraft] = Field(default_factory=list)


class ColumnMapping(BaseModel):
    """Correspondence between entity fields and spreadsheet columns."""
    name: str
    description: str = ""
    created: str
    owner: str
    project: str = ""
    attributes: List[AttributeDraft] = Field(default_factory=list)

    @field_validator("name")
    def validate_name(cls, value: str) -> str:
        """The name column drives record identity, so it cannot be blank."""
        if not value or not value.strip():
            raise ValueError("name column is required")
        return value


class ReviewRecord(BaseModel):
    """Prospective record and whether committing will create or update it."""
    name: str
    disposition: Disposition


class ReviewResponse(BaseModel):
    success: bool
    message: str
    records: List[ReviewRecord] = Field(default_factory=list)


class CommitResponse(BaseModel):
    success: bool
    message: str
    created: Optional[int] = None
    updated: Optional[int] = None
