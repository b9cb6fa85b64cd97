"""
Diagram Generator
=================

Convert the entity model into Mermaid ``erDiagram`` text.
Output is deterministic: entities and fields appear in insertion order and
regenerating from an unchanged model always yields the same text.
"""

from typing import Any, Dict, List, NamedTuple, Sequence, Set, Tuple
from abc import ABC, abstractmethod

from erdsync.config.logging import get_logger
from erdsync.core.dsl.notation import DIAGRAM_HEADER, symbol_for
from erdsync.models.schemas import (
    Entity,
    EntityField,
    FieldType,
    sanitize_entity_name,
    sanitize_field_name,
    sanitize_free_text,
)

logger = get_logger(__name__)

ENTITY_INDENT = "  "
FIELD_INDENT = "    "


class Relationship(NamedTuple):
    """A relationship line about to be emitted."""

    from_entity: str
    to_entity: str
    symbol: str
    label: str


class BaseDiagramGenerator(ABC):
    """Abstract base class for diagram generators."""

    @abstractmethod
    def generate(self, entities: Sequence[Entity]) -> str:
        """Generate diagram text from entities."""
        pass


class MermaidERGenerator(BaseDiagramGenerator):
    """Mermaid erDiagram generator."""

    def __init__(self) -> None:
        self.logger: Any = logger.bind(generator="mermaid")  # structlog.BoundLoggerBase

    def generate(self, entities: Sequence[Entity]) -> str:
        """
        Generate erDiagram text.

        Args:
            entities: Entities in display order

        Returns:
            Diagram text; the bare header when there are no entities
        """
        if not entities:
            return DIAGRAM_HEADER

        names = self._display_names(entities)
        lines: List[str] = [DIAGRAM_HEADER]

        for entity in entities:
            lines.append(f'{ENTITY_INDENT}"{names[id(entity)]}" {{')
            for index, field in enumerate(entity.fields or []):
                lines.append(f"{FIELD_INDENT}{self._render_field(field, index)}")
            lines.append(f"{ENTITY_INDENT}}}")
            lines.append("")

        for rel in self._extract_relationships(entities, names):
            lines.append(
                f'{ENTITY_INDENT}"{rel.from_entity}" {rel.symbol} "{rel.to_entity}" : "{rel.label}"'
            )

        self.logger.debug("Generated diagram", entities=len(entities), lines=len(lines))
        return "\n".join(lines)

    def _display_names(self, entities: Sequence[Entity]) -> Dict[int, str]:
        """Entity names as emitted, with placeholders for missing names."""
        names: Dict[int, str] = {}
        for position, entity in enumerate(entities, start=1):
            name = sanitize_entity_name(getattr(entity, "name", None))
            if not name:
                name = f"Entity_{position}"
                self.logger.warning("Entity without a name", position=position)
            names[id(entity)] = name
        return names

    def _render_field(self, field: EntityField, index: int) -> str:
        field_type = getattr(field.type, "value", field.type) or FieldType.STRING.value
        line = f"{field_type} {self._field_name(field, index)}"

        if field.is_pk:
            line += " PK"
        elif field.is_fk:
            line += " FK"

        description = sanitize_free_text(field.description)
        if description:
            line += f' "{description}"'
        return line

    def _extract_relationships(
        self, entities: Sequence[Entity], names: Dict[int, str]
    ) -> List[Relationship]:
        """
        Collect one relationship per linked FK field.

        A relationship whose mirror image (same symbol, entities swapped) was
        already collected is dropped.
        """
        by_id = {entity.id: entity for entity in entities}
        relationships: List[Relationship] = []
        seen: Set[Tuple[str, str, str]] = set()

        for entity in entities:
            for index, field in enumerate(entity.fields or []):
                reference = field.fk_reference
                if not field.is_fk or reference is None:
                    continue
                target = by_id.get(reference.target_entity_id)
                if target is None:
                    continue

                source_name, target_name = names[id(entity)], names[id(target)]
                symbol = symbol_for(reference.cardinality)
                if source_name != target_name and (target_name, source_name, symbol) in seen:
                    self.logger.debug(
                        "Skipping mirrored relationship",
                        from_entity=source_name,
                        to_entity=target_name,
                    )
                    continue
                seen.add((source_name, target_name, symbol))

                label = sanitize_free_text(reference.relationship_label) or self._field_name(field, index)
                relationships.append(Relationship(source_name, target_name, symbol, label))

        return relationships

    @staticmethod
    def _field_name(field: EntityField, index: int) -> str:
        """Field name as emitted; unnamed fields get a positional placeholder."""
        return sanitize_field_name(field.name) or f"field_{index + 1}"


def generate_diagram(entities: Sequence[Entity]) -> str:
    """
    Generate erDiagram text for a list of entities.

    Args:
        entities: Entities in display order

    Returns:
        Diagram text
    """
    return MermaidERGenerator().generate(entities)
