"""
Entity Store
============

Single source of truth for a project's entity graph.

The store is mutated only through its declared operations. Each mutation bumps
``version`` and notifies subscribers with a ``ModelChange`` naming the source
of the change, which lets the sync controller tell its own echoes apart from
edits made elsewhere. Callers may pass ``expected_version`` to make an
operation conditional on nobody having changed the store in between.
"""

from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Sequence, Set

from erdsync.config.logging import get_logger
from erdsync.config.settings import get_settings
from erdsync.models.schemas import (
    ChangeSource,
    Entity,
    EntityField,
    FieldType,
    FKReference,
    ModelChange,
    UNRESOLVED_ID,
    sanitize_entity_name,
)

logger = get_logger(__name__)

ChangeListener = Callable[[ModelChange], None]


class EntityStoreError(Exception):
    """Base exception for rejected store operations."""

    pass


class EntityNotFoundError(EntityStoreError):
    pass


class FieldNotFoundError(EntityStoreError):
    pass


class InvalidNameError(EntityStoreError):
    pass


class DuplicateNameError(EntityStoreError):
    pass


class StaleVersionError(EntityStoreError):
    """Raised when ``expected_version`` no longer matches the store."""

    def __init__(self, expected: int, actual: int) -> None:
        super().__init__(f"Store changed: expected version {expected}, found {actual}")
        self.expected = expected
        self.actual = actual


class EntityStore:
    """Ordered entity collection with versioned, observable mutations."""

    def __init__(self, entities: Optional[Iterable[Entity]] = None) -> None:
        self.logger: Any = logger.bind(component="store")  # structlog.BoundLoggerBase
        self._entities: List[Entity] = [e.model_copy(deep=True) for e in entities or []]
        self._version = 0
        self._listeners: List[ChangeListener] = []

    @property
    def version(self) -> int:
        return self._version

    @property
    def entities(self) -> List[Entity]:
        """Snapshot of the entities; mutating it does not touch the store."""
        return [e.model_copy(deep=True) for e in self._entities]

    def get_entity(self, entity_id: str) -> Entity:
        return self._entity(entity_id).model_copy(deep=True)

    def find_entity_by_name(self, name: str) -> Optional[Entity]:
        wanted = sanitize_entity_name(name).lower()
        for entity in self._entities:
            if entity.name.lower() == wanted:
                return entity.model_copy(deep=True)
        return None

    def subscribe(self, listener: ChangeListener) -> Callable[[], None]:
        """
        Register a change listener.

        Returns:
            Function removing the listener again
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    # Entity operations

    def add_entity(
        self,
        name: str,
        *,
        source: ChangeSource = ChangeSource.EDITOR,
        expected_version: Optional[int] = None,
    ) -> Entity:
        self._check_version(expected_version)
        entity = Entity(name=self._valid_entity_name(name))
        self._entities.append(entity)
        self._commit("add_entity", source)
        return entity.model_copy(deep=True)

    def rename_entity(
        self,
        entity_id: str,
        name: str,
        *,
        source: ChangeSource = ChangeSource.EDITOR,
        expected_version: Optional[int] = None,
    ) -> Entity:
        self._check_version(expected_version)
        entity = self._entity(entity_id)
        entity.name = self._valid_entity_name(name, exclude_id=entity_id)
        self._commit("rename_entity", source)
        return entity.model_copy(deep=True)

    def delete_entity(
        self,
        entity_id: str,
        *,
        source: ChangeSource = ChangeSource.EDITOR,
        expected_version: Optional[int] = None,
    ) -> None:
        """Remove an entity with its fields; references to it become unresolved."""
        self._check_version(expected_version)
        entity = self._entity(entity_id)
        self._entities.remove(entity)
        for other in self._entities:
            for field in other.fields:
                ref = field.fk_reference
                if ref is not None and ref.target_entity_id == entity_id:
                    field.fk_reference = ref.model_copy(
                        update={"target_entity_id": UNRESOLVED_ID, "target_field_id": UNRESOLVED_ID}
                    )
        self._commit("delete_entity", source)

    # Field operations

    def add_field(
        self,
        entity_id: str,
        name: str,
        field_type: Any = FieldType.STRING,
        is_pk: bool = False,
        is_fk: bool = False,
        description: Optional[str] = None,
        fk_reference: Optional[FKReference] = None,
        *,
        source: ChangeSource = ChangeSource.EDITOR,
        expected_version: Optional[int] = None,
    ) -> EntityField:
        self._check_version(expected_version)
        entity = self._entity(entity_id)
        if is_fk and fk_reference is None:
            fk_reference = FKReference(cardinality=get_settings().default_fk_cardinality)
        field = EntityField(
            name=name,
            type=field_type,
            is_pk=is_pk,
            is_fk=is_fk,
            description=description,
            fk_reference=fk_reference,
        )
        self._check_field(entity, field)
        entity.fields.append(field)
        self._commit("add_field", source)
        return field.model_copy(deep=True)

    def update_field(
        self,
        entity_id: str,
        field_id: str,
        updates: Mapping[str, Any],
        *,
        source: ChangeSource = ChangeSource.EDITOR,
        expected_version: Optional[int] = None,
    ) -> EntityField:
        """
        Apply a partial update to a field.

        Args:
            entity_id: Owning entity
            field_id: Field to update
            updates: Attribute values to overwrite, e.g. ``{"is_fk": True}``

        Returns:
            The updated field
        """
        self._check_version(expected_version)
        entity = self._entity(entity_id)
        current = self._field(entity, field_id)

        unknown = set(updates) - (set(EntityField.model_fields) - {"id"})
        if unknown:
            raise EntityStoreError(f"Unknown field attributes: {sorted(unknown)}")

        data = current.model_dump()
        data.update(updates)
        if data.get("is_fk") and data.get("fk_reference") is None:
            data["fk_reference"] = {"cardinality": get_settings().default_fk_cardinality}
        updated = EntityField.model_validate(data)
        self._check_field(entity, updated, exclude_id=field_id)

        entity.fields[entity.fields.index(current)] = updated
        self._commit("update_field", source)
        return updated.model_copy(deep=True)

    def delete_field(
        self,
        entity_id: str,
        field_id: str,
        *,
        source: ChangeSource = ChangeSource.EDITOR,
        expected_version: Optional[int] = None,
    ) -> None:
        self._check_version(expected_version)
        entity = self._entity(entity_id)
        entity.fields.remove(self._field(entity, field_id))
        for other in self._entities:
            for field in other.fields:
                ref = field.fk_reference
                if ref is not None and ref.target_field_id == field_id:
                    field.fk_reference = ref.model_copy(update={"target_field_id": UNRESOLVED_ID})
        self._commit("delete_field", source)

    # Bulk operations

    def set_entities(
        self,
        entities: Sequence[Entity],
        *,
        source: ChangeSource = ChangeSource.IMPORT,
        expected_version: Optional[int] = None,
    ) -> None:
        """
        Replace every entity; references to entities not in the new set are unlinked.

        Raises:
            InvalidNameError: An entity has an empty name
            DuplicateNameError: Two entity names differ only by case
        """
        self._check_version(expected_version)
        replacement = [e.model_copy(deep=True) for e in entities]
        seen: Dict[str, str] = {}
        for entity in replacement:
            if not entity.name:
                raise InvalidNameError("Entity name cannot be empty")
            key = entity.name.lower()
            if key in seen:
                raise DuplicateNameError(
                    f"Entity names '{seen[key]}' and '{entity.name}' differ only by case"
                )
            seen[key] = entity.name
        known_ids: Set[str] = {e.id for e in replacement}
        for entity in replacement:
            for field in entity.fields:
                ref = field.fk_reference
                if ref is not None and ref.is_linked and ref.target_entity_id not in known_ids:
                    field.fk_reference = ref.model_copy(
                        update={"target_entity_id": UNRESOLVED_ID, "target_field_id": UNRESOLVED_ID}
                    )
        self._entities = replacement
        self._commit("set_entities", source)

    # Internals

    def _check_version(self, expected_version: Optional[int]) -> None:
        if expected_version is not None and expected_version != self._version:
            raise StaleVersionError(expected_version, self._version)

    def _commit(self, operation: str, source: ChangeSource) -> None:
        self._version += 1
        change = ModelChange(version=self._version, source=source, operation=operation)
        self.logger.debug("Store changed", operation=operation, source=source.value, version=self._version)
        for listener in list(self._listeners):
            listener(change)

    def _entity(self, entity_id: str) -> Entity:
        for entity in self._entities:
            if entity.id == entity_id:
                return entity
        raise EntityNotFoundError(f"Entity not found: {entity_id}")

    @staticmethod
    def _field(entity: Entity, field_id: str) -> EntityField:
        field = entity.find_field(field_id)
        if field is None:
            raise FieldNotFoundError(f"Field not found in '{entity.name}': {field_id}")
        return field

    def _valid_entity_name(self, name: str, exclude_id: Optional[str] = None) -> str:
        cleaned = sanitize_entity_name(name)
        if not cleaned:
            raise InvalidNameError("Entity name cannot be empty")
        for entity in self._entities:
            if entity.id != exclude_id and entity.name.lower() == cleaned.lower():
                raise DuplicateNameError(f"An entity named '{entity.name}' already exists")
        return cleaned

    def _check_field(
        self, entity: Entity, field: EntityField, exclude_id: Optional[str] = None
    ) -> None:
        if not field.name:
            raise InvalidNameError("Field name cannot be empty")
        for existing in entity.fields:
            if existing.id != exclude_id and existing.name.lower() == field.name.lower():
                raise DuplicateNameError(
                    f"Field '{existing.name}' already exists in '{entity.name}'"
                )
        ref = field.fk_reference
        if ref is not None and ref.is_linked:
            self._entity(ref.target_entity_id)


def reconcile_entities(current: Sequence[Entity], parsed: Sequence[Entity]) -> List[Entity]:
    """
    Carry existing ids over to freshly parsed entities.

    Entities and fields are matched by case-insensitive name; unmatched ones
    keep their new ids. FK targets are remapped to the surviving ids so the
    result can replace the store contents directly.

    Args:
        current: Entities currently in the store
        parsed: Entities produced by the parser

    Returns:
        Parsed entities with stable ids
    """
    existing: Dict[str, Entity] = {e.name.lower(): e for e in current}
    claimed: Set[str] = set()
    entity_ids: Dict[str, str] = {}
    field_ids: Dict[str, str] = {}
    merged: List[Entity] = []

    for entity in parsed:
        previous = existing.get(entity.name.lower())
        if previous is not None and previous.id in claimed:
            previous = None
        entity_id = previous.id if previous is not None else entity.id
        claimed.add(entity_id)
        entity_ids[entity.id] = entity_id

        fields: List[EntityField] = []
        for field in entity.fields:
            old = previous.find_field_by_name(field.name) if previous is not None else None
            field_id = old.id if old is not None else field.id
            field_ids[field.id] = field_id
            fields.append(field.model_copy(update={"id": field_id}, deep=True))
        merged.append(entity.model_copy(update={"id": entity_id, "fields": fields}))

    for entity in merged:
        for field in entity.fields:
            ref = field.fk_reference
            if ref is not None and ref.is_linked:
                field.fk_reference = ref.model_copy(
                    update={
                        "target_entity_id": entity_ids.get(ref.target_entity_id, ref.target_entity_id),
                        "target_field_id": field_ids.get(ref.target_field_id, ref.target_field_id),
                    }
                )
    return merged
