"""
Unit Tests for Diagram Generator
================================

Tests for canonical erDiagram text generation from the entity model.
"""

import pytest

from erdsync.core.dsl.generator import MermaidERGenerator, generate_diagram
from erdsync.core.dsl.notation import CARDINALITY_SYMBOLS
from erdsync.models.schemas import (
    Cardinality,
    Entity,
    EntityField,
    FKReference,
)

from tests.utils.data_generators import ERModelGenerator


class TestMermaidERGenerator:
    """Test MermaidERGenerator output."""

    def test_empty_model_is_bare_header(self, generator):
        assert generator.generate([]) == "erDiagram"

    def test_blog_model(self, blog_store):
        expected = "\n".join(
            [
                "erDiagram",
                '  "Users" {',
                "    int id PK",
                '    email email "Login address"',
                "  }",
                "",
                '  "Posts" {',
                "    int id PK",
                "    string title",
                "    int user_id FK",
                "  }",
                "",
                '  "Posts" }o--|| "Users" : "user_id"',
            ]
        )
        assert generate_diagram(blog_store.entities) == expected

    def test_generation_is_deterministic(self, shop_store):
        entities = shop_store.entities
        assert generate_diagram(entities) == generate_diagram(entities)

    def test_entity_without_fields(self, generator):
        text = generator.generate([Entity(name="Tags")])
        assert text == 'erDiagram\n  "Tags" {\n  }\n'

    def test_pk_takes_precedence_over_fk(self, generator):
        entity = Entity(name="Profiles", fields=[EntityField(name="user_id", type="int", is_pk=True, is_fk=True)])

        text = generator.generate([entity])

        assert "    int user_id PK" in text.splitlines()
        assert " FK" not in text

    def test_description_is_quoted(self, generator):
        entity = Entity(name="Users", fields=[EntityField(name="bio", type="text", description='A "short"\nbio')])
        assert "    text bio \"A 'short' bio\"" in generator.generate([entity]).splitlines()

    def test_explicit_label_is_used(self, blog_store):
        entities = blog_store.entities
        entities[1].fields[2].fk_reference.relationship_label = "written by"

        assert generate_diagram(entities).splitlines()[-1] == '  "Posts" }o--|| "Users" : "written by"'

    def test_unresolved_fk_emits_no_relationship(self, generator):
        entity = Entity(name="Posts", fields=[EntityField(name="user_id", type="int", is_fk=True)])

        text = generator.generate([entity])

        assert "--" not in text
        assert "    int user_id FK" in text.splitlines()

    def test_reference_to_missing_entity_is_skipped(self, generator):
        field = EntityField(
            name="user_id",
            is_fk=True,
            fk_reference=FKReference(target_entity_id="gone"),
        )
        text = generator.generate([Entity(name="Posts", fields=[field])])
        assert '"gone"' not in text
        assert "}o--||" not in text

    def test_missing_names_get_placeholders(self, generator):
        entity = Entity(name="   ", fields=[EntityField(name="")])

        lines = generator.generate([entity]).splitlines()

        assert lines[1] == '  "Entity_1" {'
        assert lines[2] == "    string field_1"

    def test_unnamed_fk_field_label_matches_placeholder(self, generator):
        users = Entity(name="Users", fields=[EntityField(name="id", is_pk=True)])
        posts = Entity(
            name="Posts",
            fields=[
                EntityField(name="id", is_pk=True),
                EntityField(
                    name="",
                    type="int",
                    is_fk=True,
                    fk_reference=FKReference(target_entity_id=users.id),
                ),
            ],
        )

        lines = generator.generate([users, posts]).splitlines()

        assert "    int field_2 FK" in lines
        assert lines[-1] == '  "Posts" }o--|| "Users" : "field_2"'

    def test_malformed_entity_does_not_raise(self, generator):
        entity = Entity.model_construct(id="raw", name=None, fields=None)
        text = generator.generate([entity, Entity(name="Users")])
        assert '"Users" {' in text


class TestCardinalitySymbols:
    """Test the fixed cardinality to symbol mapping."""

    @pytest.mark.parametrize(
        "cardinality, symbol",
        [
            (Cardinality.ONE_TO_ONE, "||--||"),
            (Cardinality.ONE_TO_MANY, "||--o{"),
            (Cardinality.MANY_TO_ONE, "}o--||"),
            (Cardinality.MANY_TO_MANY, "}o--o{"),
        ],
    )
    def test_symbol_per_cardinality(self, cardinality, symbol):
        store = ERModelGenerator.linked_pair(cardinality)

        text = generate_diagram(store.entities)

        assert CARDINALITY_SYMBOLS[cardinality] == symbol
        assert text.splitlines()[-1] == f'  "Child" {symbol} "Parent" : "parent_id"'


class TestRelationshipDeduplication:
    """Test suppression of mirrored relationship lines."""

    @staticmethod
    def _mutual(first: Cardinality, second: Cardinality):
        a = Entity(name="A", fields=[EntityField(name="id", is_pk=True)])
        b = Entity(name="B", fields=[EntityField(name="id", is_pk=True)])
        a.fields.append(
            EntityField(name="b_id", is_fk=True, fk_reference=FKReference(target_entity_id=b.id, cardinality=first))
        )
        b.fields.append(
            EntityField(name="a_id", is_fk=True, fk_reference=FKReference(target_entity_id=a.id, cardinality=second))
        )
        return [a, b]

    def test_mirrored_pair_with_same_symbol_emitted_once(self):
        text = generate_diagram(self._mutual(Cardinality.ONE_TO_ONE, Cardinality.ONE_TO_ONE))

        relationship_lines = [line for line in text.splitlines() if "||--||" in line]

        assert relationship_lines == ['  "A" ||--|| "B" : "b_id"']

    def test_mirrored_pair_with_different_symbols_kept(self):
        text = generate_diagram(self._mutual(Cardinality.MANY_TO_ONE, Cardinality.ONE_TO_MANY))

        assert '  "A" }o--|| "B" : "b_id"' in text.splitlines()
        assert '  "B" ||--o{ "A" : "a_id"' in text.splitlines()

    def test_self_references_are_not_treated_as_mirrors(self):
        node = Entity(name="Employees", fields=[EntityField(name="id", is_pk=True)])
        for name in ("manager_id", "mentor_id"):
            node.fields.append(
                EntityField(name=name, is_fk=True, fk_reference=FKReference(target_entity_id=node.id))
            )

        text = MermaidERGenerator().generate([node])

        assert text.count('"Employees" }o--|| "Employees"') == 2
