"""
Test Assertions
===============

Custom assertion helpers for testing diagram translation.
"""

from typing import Dict, List, Optional, Sequence, Tuple

from erdsync.models.schemas import Entity, ParseErrorKind, ParseResult


def assert_successful_parse_result(result: ParseResult) -> None:
    """Assert that a parse result is successful."""
    assert isinstance(result, ParseResult)
    assert result.success is True, f"Parse failed: {result.error}"
    assert result.error is None
    assert len(result.entities) > 0


def assert_failed_parse_result(
    result: ParseResult, kind: ParseErrorKind, expected_message: Optional[str] = None
) -> None:
    """Assert that a parse result failed with the expected error kind."""
    assert isinstance(result, ParseResult)
    assert result.success is False
    assert result.entities == []
    assert result.error is not None
    assert result.error.kind == kind

    if expected_message:
        assert expected_message in result.error.message, \
            f"Expected '{expected_message}' in '{result.error.message}'"


def describe_model(entities: Sequence[Entity]) -> List[Tuple]:
    """
    Id-free description of a model.

    FK references are expressed through entity and field names so that two
    models with different ids can be compared.
    """
    by_id: Dict[str, Entity] = {e.id: e for e in entities}
    described: List[Tuple] = []

    for entity in entities:
        fields = []
        for field in entity.fields:
            link = None
            ref = field.fk_reference
            if ref is not None and ref.target_entity_id in by_id:
                target = by_id[ref.target_entity_id]
                target_field = target.find_field(ref.target_field_id)
                link = (
                    target.name,
                    target_field.name if target_field else None,
                    ref.cardinality.value,
                    ref.relationship_label,
                )
            fields.append(
                (field.name, field.type.value, field.is_pk, field.is_fk, field.description, link)
            )
        described.append((entity.name, fields))

    return described


def assert_models_equivalent(actual: Sequence[Entity], expected: Sequence[Entity]) -> None:
    """Assert two models match up to id renaming."""
    assert describe_model(actual) == describe_model(expected)
