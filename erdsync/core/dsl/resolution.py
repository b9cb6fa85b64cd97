"""
Relationship Resolution
=======================

Strategies that decide which foreign-key field a relationship line refers to.

Diagram text only names the two entities of a relationship, so the owning FK
field has to be inferred. ``NameHeuristicResolver`` matches on field names and
can bind to the wrong field when an entity has several FK columns that look
alike; stricter strategies can be swapped in through the parser.
"""

from typing import List, Optional
from abc import ABC, abstractmethod

from erdsync.models.schemas import Entity, EntityField, FKReference, RelationshipLine, UNRESOLVED_ID


class RelationshipResolver(ABC):
    """Abstract base class for FK resolution strategies."""

    @abstractmethod
    def select_field(
        self, source: Entity, target: Entity, relationship: RelationshipLine
    ) -> Optional[EntityField]:
        """Pick the FK field on ``source`` that the relationship describes."""
        pass

    def link(
        self, source: Entity, target: Entity, relationship: RelationshipLine
    ) -> Optional[EntityField]:
        """
        Resolve a relationship and point the chosen field at ``target``.

        Args:
            source: Entity on the left of the relationship symbol
            target: Entity on the right of the relationship symbol
            relationship: The captured relationship line

        Returns:
            The linked field, or None when no field matched
        """
        field = self.select_field(source, target, relationship)
        if field is None:
            return None

        target_pk = target.primary_key()
        label = relationship.label
        # The generator writes the field name when no label was set.
        if label is not None and label == field.name:
            label = None

        field.fk_reference = FKReference(
            target_entity_id=target.id,
            target_field_id=target_pk.id if target_pk else UNRESOLVED_ID,
            cardinality=relationship.cardinality,
            relationship_label=label,
        )
        return field


class NameHeuristicResolver(RelationshipResolver):
    """
    Match FK fields whose name mentions the target entity or ends in ``id``.

    The first matching field that is not linked yet wins; when every match is
    already linked the first match is relinked.
    """

    def select_field(
        self, source: Entity, target: Entity, relationship: RelationshipLine
    ) -> Optional[EntityField]:
        candidates = self.candidates(source, target)
        if not candidates:
            return None
        unlinked = [f for f in candidates if f.fk_reference is None or not f.fk_reference.is_linked]
        return (unlinked or candidates)[0]

    def candidates(self, source: Entity, target: Entity) -> List[EntityField]:
        return [f for f in source.fields if f.is_fk and self.refers_to(f.name, target.name)]

    @staticmethod
    def refers_to(field_name: str, entity_name: str) -> bool:
        field = field_name.lower()
        entity = entity_name.lower().replace(" ", "_")
        if entity and entity in field:
            return True
        if len(entity) > 1 and entity.endswith("s") and entity[:-1] in field:
            return True
        return field.endswith("id")


class LabelMatchResolver(NameHeuristicResolver):
    """
    Prefer the FK field named exactly like the relationship label.

    Text produced by the generator labels each relationship with its field
    name unless a custom label was set, so this recovers the original field
    whenever the label was left at its default.
    """

    def select_field(
        self, source: Entity, target: Entity, relationship: RelationshipLine
    ) -> Optional[EntityField]:
        if relationship.label:
            named = source.find_field_by_name(relationship.label)
            if named is not None and named.is_fk:
                return named
        return super().select_field(source, target, relationship)
