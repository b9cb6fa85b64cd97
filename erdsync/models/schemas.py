"""
Pydantic Models and Schemas
===========================

Core data models for the entity/field graph, parse results and model change
events. Names, descriptions and labels are sanitized on write so that they can
always be emitted into diagram text without breaking its delimiters.
"""

from typing import Optional, List, Dict
from enum import Enum
import re
import uuid

from pydantic import BaseModel, Field, field_validator, model_validator


UNRESOLVED_ID = "__unresolved__"
"""Sentinel id for an FK reference that is not linked to an entity/field yet."""

DIAGRAM_HEADER = "erDiagram"


# Enums
class FieldType(str, Enum):
    """Column types supported by the field editor."""
    STRING = "string"
    TEXT = "text"
    INT = "int"
    FLOAT = "float"
    NUMBER = "number"
    DECIMAL = "decimal"
    BOOLEAN = "boolean"
    DATE = "date"
    DATETIME = "datetime"
    TIMESTAMP = "timestamp"
    JSON = "json"
    JSONB = "jsonb"
    UUID = "uuid"
    ENUM = "enum"
    PHONE = "phone"
    EMAIL = "email"


class Cardinality(str, Enum):
    """Relationship multiplicity, read from the FK owner towards its target."""
    ONE_TO_ONE = "one-to-one"
    ONE_TO_MANY = "one-to-many"
    MANY_TO_ONE = "many-to-one"
    MANY_TO_MANY = "many-to-many"


class ParseErrorKind(str, Enum):
    """Reasons a diagram text can be rejected."""
    MISSING_HEADER = "missing_header"
    NO_ENTITIES_FOUND = "no_entities_found"
    DUPLICATE_ENTITY = "duplicate_entity"
    INTERNAL = "internal"


class ChangeSource(str, Enum):
    """Origin of a model mutation."""
    TEXT = "text"
    EDITOR = "editor"
    IMPORT = "import"
    SYSTEM = "system"


# Type normalization
FIELD_TYPE_SYNONYMS: Dict[str, FieldType] = {
    "varchar": FieldType.STRING,
    "nvarchar": FieldType.STRING,
    "char": FieldType.STRING,
    "character": FieldType.STRING,
    "str": FieldType.STRING,
    "longtext": FieldType.TEXT,
    "mediumtext": FieldType.TEXT,
    "clob": FieldType.TEXT,
    "integer": FieldType.INT,
    "bigint": FieldType.INT,
    "smallint": FieldType.INT,
    "tinyint": FieldType.INT,
    "serial": FieldType.INT,
    "bigserial": FieldType.INT,
    "double": FieldType.FLOAT,
    "real": FieldType.FLOAT,
    "float4": FieldType.FLOAT,
    "float8": FieldType.FLOAT,
    "numeric": FieldType.DECIMAL,
    "money": FieldType.DECIMAL,
    "bool": FieldType.BOOLEAN,
    "bit": FieldType.BOOLEAN,
    "time": FieldType.TIMESTAMP,
    "timestamptz": FieldType.TIMESTAMP,
    "guid": FieldType.UUID,
}

_TYPE_SUFFIX = re.compile(r"[\(\[].*$")


def normalize_field_type(raw: object) -> FieldType:
    """
    Map a user or diagram supplied type token onto a FieldType.

    Size and array suffixes are ignored (``varchar(255)`` is ``varchar``),
    synonyms are folded and anything unrecognized becomes ``string``.
    """
    if isinstance(raw, FieldType):
        return raw
    token = _TYPE_SUFFIX.sub("", str(raw or "")).strip().lower()
    try:
        return FieldType(token)
    except ValueError:
        return FIELD_TYPE_SYNONYMS.get(token, FieldType.STRING)


# Sanitizers
_NBSP = "\u00a0"
_BLOCK_DELIMITERS = re.compile(r"[{}|]")
_LINE_BREAKS = re.compile(r"\r\n|\r|\n")


def sanitize_entity_name(value: Optional[str]) -> str:
    """Normalize non-breaking spaces and line breaks, trim, and strip diagram delimiters."""
    name = _LINE_BREAKS.sub(" ", (value or "").replace(_NBSP, " ")).strip()
    name = _BLOCK_DELIMITERS.sub("", name.replace('"', "'"))
    return name.strip()


def sanitize_field_name(value: Optional[str]) -> str:
    """Field names become single tokens: whitespace runs turn into underscores."""
    name = (value or "").replace(_NBSP, " ").strip()
    name = _BLOCK_DELIMITERS.sub("", name.replace('"', ""))
    return re.sub(r"\s+", "_", name)


def sanitize_free_text(value: Optional[str]) -> Optional[str]:
    """Collapse line breaks and swap double quotes for single quotes."""
    if value is None:
        return None
    text = _LINE_BREAKS.sub(" ", value).replace('"', "'")
    return text if text.strip() else None


# Base Models
class BaseIdentified(BaseModel):
    """Base model with ID field."""
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))


# Entity Models
class FKReference(BaseModel):
    """Link from a foreign-key field to the entity/field it points at."""
    target_entity_id: str = Field(UNRESOLVED_ID, description="Target entity id")
    target_field_id: str = Field(UNRESOLVED_ID, description="Target field id")
    cardinality: Cardinality = Field(Cardinality.MANY_TO_ONE, description="Relationship multiplicity")
    relationship_label: Optional[str] = Field(None, description="Label shown on the relationship line")

    @field_validator("relationship_label")
    @classmethod
    def sanitize_label(cls, v: Optional[str]) -> Optional[str]:
        return sanitize_free_text(v)

    @property
    def is_linked(self) -> bool:
        """Whether a target entity has been assigned."""
        return self.target_entity_id != UNRESOLVED_ID


class EntityField(BaseIdentified):
    """A single column of an entity."""
    name: str = Field(..., description="Field name, unique within its entity")
    type: FieldType = Field(FieldType.STRING, description="Column type")
    is_pk: bool = Field(False, description="Primary key marker")
    is_fk: bool = Field(False, description="Foreign key marker")
    description: Optional[str] = Field(None, description="Free-text description")
    fk_reference: Optional[FKReference] = Field(None, description="Present iff is_fk")

    @field_validator("name", mode="before")
    @classmethod
    def sanitize_name(cls, v: Optional[str]) -> str:
        return sanitize_field_name(v)

    @field_validator("type", mode="before")
    @classmethod
    def coerce_type(cls, v: object) -> FieldType:
        return normalize_field_type(v)

    @field_validator("description")
    @classmethod
    def sanitize_description(cls, v: Optional[str]) -> Optional[str]:
        return sanitize_free_text(v)

    @model_validator(mode="after")
    def sync_fk_reference(self) -> "EntityField":
        """Keep fk_reference present exactly when the field is a foreign key."""
        if self.is_fk and self.fk_reference is None:
            self.fk_reference = FKReference()
        elif not self.is_fk:
            self.fk_reference = None
        return self


class Entity(BaseIdentified):
    """An entity (table) with its ordered fields."""
    name: str = Field(..., description="Entity name, unique within a project")
    fields: List[EntityField] = Field(default_factory=list, description="Ordered fields")

    @field_validator("name", mode="before")
    @classmethod
    def sanitize_name(cls, v: Optional[str]) -> str:
        return sanitize_entity_name(v)

    def find_field(self, field_id: str) -> Optional[EntityField]:
        return next((f for f in self.fields if f.id == field_id), None)

    def find_field_by_name(self, name: str) -> Optional[EntityField]:
        """Case-insensitive lookup by field name."""
        wanted = name.lower()
        return next((f for f in self.fields if f.name.lower() == wanted), None)

    def primary_key(self) -> Optional[EntityField]:
        return next((f for f in self.fields if f.is_pk), None)


# Parsing Results
class RelationshipLine(BaseModel):
    """A relationship statement captured from diagram text."""
    from_entity: str = Field(..., description="Entity on the left of the symbol")
    to_entity: str = Field(..., description="Entity on the right of the symbol")
    symbol: str = Field(..., description="Crow's foot symbol as written")
    cardinality: Cardinality = Field(..., description="Cardinality the symbol maps to")
    label: Optional[str] = Field(None, description="Relationship label, if any")
    identifying: bool = Field(True, description="Solid (--) rather than dashed (..) line")
    line_number: Optional[int] = Field(None, description="1-based source line")


class ParseError(BaseModel):
    """Structured reason a diagram text could not be turned into a model."""
    kind: ParseErrorKind = Field(..., description="Error category")
    message: str = Field(..., description="Human readable description")

    @property
    def title(self) -> str:
        """Short heading for user notifications."""
        return {
            ParseErrorKind.MISSING_HEADER: "Invalid diagram",
            ParseErrorKind.NO_ENTITIES_FOUND: "No entities found",
            ParseErrorKind.DUPLICATE_ENTITY: "Duplicate entity names",
            ParseErrorKind.INTERNAL: "Diagram could not be parsed",
        }[self.kind]


class ParseResult(BaseModel):
    """Result of a diagram parsing operation."""
    success: bool = Field(..., description="Whether parsing succeeded")
    entities: List[Entity] = Field(default_factory=list, description="Parsed entities in order")
    relationships: List[RelationshipLine] = Field(
        default_factory=list, description="Relationship lines found in the text"
    )
    error: Optional[ParseError] = Field(None, description="Failure reason when success is False")
    warnings: List[str] = Field(default_factory=list, description="Recoverable problems")
    processing_time: Optional[float] = Field(None, description="Parsing time in seconds")


# Change Events
class ModelChange(BaseModel):
    """Notification emitted by the entity store after each mutation."""
    version: int = Field(..., ge=0, description="Store version after the mutation")
    source: ChangeSource = Field(..., description="Who caused the change")
    operation: str = Field(..., description="Name of the store operation")
