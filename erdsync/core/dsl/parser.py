"""
Diagram Parser
==============

Line-oriented parser turning Mermaid ``erDiagram`` text back into entities.

The parser is tolerant: blank lines, comments and malformed fragments are
skipped, relationship lines may reference entities declared further down, and
failures are returned as ``ParseResult`` values instead of being raised.
"""

from typing import Any, Dict, List, Optional, Tuple
from abc import ABC, abstractmethod
import re
import time

from erdsync.config.logging import get_logger
from erdsync.config.settings import get_settings
from erdsync.core.dsl.notation import (
    CARDINALITY_SYMBOLS,
    DIAGRAM_HEADER,
    cardinality_for_symbol,
)
from erdsync.core.dsl.resolution import NameHeuristicResolver, RelationshipResolver
from erdsync.models.schemas import (
    FIELD_TYPE_SYNONYMS,
    Cardinality,
    Entity,
    EntityField,
    FieldType,
    FKReference,
    ParseError,
    ParseErrorKind,
    ParseResult,
    RelationshipLine,
    normalize_field_type,
    sanitize_entity_name,
)

logger = get_logger(__name__)

COMMENT_MARKERS = ("%%", "--")

_NAME = r'(?:"([^"]+)"|([^\s"{}|:]+))'
BLOCK_OPEN_RE = re.compile(rf"^{_NAME}\s*\{{\s*(\}})?$")
BARE_ENTITY_RE = re.compile(r'^(?:"([^"]+)"|([A-Za-z_][\w-]*))$')
RELATIONSHIP_RE = re.compile(
    rf'^{_NAME}\s*([|o}}{{]{{2}}(?:--|\.\.)[|o}}{{]{{2}})\s*{_NAME}'
    r'(?:\s*:\s*(?:"([^"]*)"|(.*?)))?\s*$'
)
SYMBOL_RE = re.compile(r"[|o}{]{2}(?:--|\.\.)[|o}{]{2}")
FIELD_RE = re.compile(r'^([A-Za-z_][^\s"]*)\s+([^\s"]+)(.*)$')
DESCRIPTION_RE = re.compile(r'"([^"]*)"\s*$')


class BaseDiagramParser(ABC):
    """Abstract base class for diagram parsers."""

    @abstractmethod
    def parse(self, content: str) -> ParseResult:
        """Parse diagram text into entities."""
        pass

    @abstractmethod
    def validate_syntax(self, content: str) -> bool:
        """Validate diagram syntax without full parsing."""
        pass


class _ScanState:
    """Mutable state of a single parse run."""

    def __init__(self) -> None:
        self.entities: Dict[str, Entity] = {}
        self.relationships: List[RelationshipLine] = []
        self.warnings: List[str] = []
        self.current: Optional[Entity] = None
        self.opened_at: int = 0

    def entity(self, name: str) -> Entity:
        if name not in self.entities:
            self.entities[name] = Entity(name=name)
        return self.entities[name]


class MermaidERParser(BaseDiagramParser):
    """Mermaid erDiagram parser implementation."""

    def __init__(self, resolver: Optional[RelationshipResolver] = None) -> None:
        self.logger: Any = logger.bind(parser="mermaid")  # structlog.BoundLoggerBase
        self.resolver = resolver or NameHeuristicResolver()
        self.default_cardinality = Cardinality(get_settings().default_fk_cardinality)

    def parse(self, content: str) -> ParseResult:
        """
        Parse erDiagram text into entities.

        Args:
            content: Raw diagram text

        Returns:
            ParseResult containing entities or a structured error
        """
        start_time = time.time()

        if not self.validate_syntax(content):
            return self._failure(
                ParseErrorKind.MISSING_HEADER,
                f"Invalid ER diagram: text must start with '{DIAGRAM_HEADER}'.",
                start_time,
            )

        try:
            self.logger.info("Parsing ER diagram", length=len(content))
            state = self._scan(content)
            self._resolve_relationships(state)
        except Exception as e:
            error_msg = f"Unexpected parsing error: {e}"
            self.logger.error("Parsing failed", error=error_msg, exc_info=True)
            return self._failure(ParseErrorKind.INTERNAL, error_msg, start_time)

        if not state.entities:
            return self._failure(
                ParseErrorKind.NO_ENTITIES_FOUND,
                "The diagram header is present but no entity blocks were found.",
                start_time,
                warnings=state.warnings,
            )

        self.logger.debug(
            "Parsed ER diagram",
            entities=len(state.entities),
            relationships=len(state.relationships),
            warnings=len(state.warnings),
        )
        return ParseResult(
            success=True,
            entities=list(state.entities.values()),
            relationships=state.relationships,
            warnings=state.warnings,
            processing_time=time.time() - start_time,
        )

    def validate_syntax(self, content: str) -> bool:
        """
        Check the header gate.

        Args:
            content: Raw diagram text

        Returns:
            True if the text starts with the diagram header
        """
        return isinstance(content, str) and content.strip().startswith(DIAGRAM_HEADER)

    def _failure(
        self,
        kind: ParseErrorKind,
        message: str,
        start_time: float,
        warnings: Optional[List[str]] = None,
    ) -> ParseResult:
        if kind is not ParseErrorKind.INTERNAL:
            self.logger.info("Diagram rejected", kind=kind.value)
        return ParseResult(
            success=False,
            error=ParseError(kind=kind, message=message),
            warnings=warnings or [],
            processing_time=time.time() - start_time,
        )

    def _scan(self, content: str) -> _ScanState:
        state = _ScanState()
        header_seen = False

        for line_number, raw_line in enumerate(content.splitlines(), start=1):
            line = raw_line.strip()
            if not line or line.startswith(COMMENT_MARKERS):
                continue
            if not header_seen and line.startswith(DIAGRAM_HEADER):
                header_seen = True
                continue

            if state.current is not None:
                self._scan_block_line(state, state.current, line, line_number)
            else:
                self._scan_outside_line(state, line, line_number)

        if state.current is not None:
            state.warnings.append(
                f"Line {state.opened_at}: block for '{state.current.name}' is never closed"
            )
        return state

    def _scan_outside_line(self, state: _ScanState, line: str, line_number: int) -> None:
        block = BLOCK_OPEN_RE.match(line)
        if block:
            name = sanitize_entity_name(block.group(1) or block.group(2))
            if name:
                entity = state.entity(name)
                if block.group(3) is None:
                    state.current = entity
                    state.opened_at = line_number
            return

        relationship = self._match_relationship(line, line_number)
        if relationship is not None:
            state.relationships.append(relationship)
            return

        bare = BARE_ENTITY_RE.match(line)
        if bare:
            name = sanitize_entity_name(bare.group(1) or bare.group(2))
            if name:
                state.entity(name)

    def _scan_block_line(
        self, state: _ScanState, entity: Entity, line: str, line_number: int
    ) -> None:
        if line == "}":
            state.current = None
            return

        if BLOCK_OPEN_RE.match(line):
            state.warnings.append(
                f"Line {state.opened_at}: block for '{entity.name}' is never closed"
            )
            state.current = None
            self._scan_outside_line(state, line, line_number)
            return

        field = self._match_field(line)
        if field is None or not field.name:
            return

        if entity.find_field_by_name(field.name) is not None:
            state.warnings.append(
                f"Line {line_number}: duplicate field '{field.name}' in '{entity.name}' skipped"
            )
            return
        entity.fields.append(field)

    def _match_field(self, line: str) -> Optional[EntityField]:
        match = FIELD_RE.match(line)
        if not match:
            return None

        type_token, name, rest = match.group(1), match.group(2), match.group(3)
        description = None
        described = DESCRIPTION_RE.search(rest)
        if described:
            description = described.group(1)
            rest = rest[: described.start()]

        markers = {token.upper() for token in re.split(r"[\s,]+", rest) if token}
        is_pk = "PK" in markers
        is_fk = "FK" in markers

        return EntityField(
            name=name,
            type=normalize_field_type(type_token),
            is_pk=is_pk,
            is_fk=is_fk,
            description=description,
            fk_reference=FKReference(cardinality=self.default_cardinality) if is_fk else None,
        )

    def _match_relationship(self, line: str, line_number: int) -> Optional[RelationshipLine]:
        match = RELATIONSHIP_RE.match(line)
        if not match:
            return None

        symbol = match.group(3)
        interpreted = cardinality_for_symbol(symbol)
        if interpreted is None:
            return None
        cardinality, identifying = interpreted

        label = match.group(6)
        if label is None and match.group(7):
            label = match.group(7).strip()

        return RelationshipLine(
            from_entity=sanitize_entity_name(match.group(1) or match.group(2)),
            to_entity=sanitize_entity_name(match.group(4) or match.group(5)),
            symbol=symbol,
            cardinality=cardinality,
            label=label,
            identifying=identifying,
            line_number=line_number,
        )

    def _resolve_relationships(self, state: _ScanState) -> None:
        """Link FK fields once every entity block has been read."""
        for relationship in state.relationships:
            source = state.entities.get(relationship.from_entity)
            target = state.entities.get(relationship.to_entity)
            if source is None or target is None:
                missing = relationship.from_entity if source is None else relationship.to_entity
                state.warnings.append(
                    f"Line {relationship.line_number}: relationship references "
                    f"unknown entity '{missing}'"
                )
                continue

            linked = self.resolver.link(source, target, relationship)
            if linked is None:
                state.warnings.append(
                    f"Line {relationship.line_number}: no FK field on '{source.name}' "
                    f"matches '{target.name}'"
                )


def parse_diagram(content: str, resolver: Optional[RelationshipResolver] = None) -> ParseResult:
    """
    Parse erDiagram text.

    Args:
        content: Raw diagram text
        resolver: Optional FK resolution strategy override

    Returns:
        ParseResult containing entities or a structured error
    """
    return MermaidERParser(resolver=resolver).parse(content)


def validate_diagram_syntax(content: str) -> bool:
    """
    Validate diagram syntax without full parsing.

    Args:
        content: Raw diagram text

    Returns:
        True if syntax is valid, False otherwise
    """
    return MermaidERParser().validate_syntax(content)


def get_validation_suggestions(content: str, errors: List[str]) -> List[str]:
    """
    Generate suggestions for fixing a rejected diagram.

    Args:
        content: Raw diagram text
        errors: Error or warning messages from a parse

    Returns:
        List of suggestions for fixing errors
    """
    suggestions: List[str] = []

    for error in errors:
        if DIAGRAM_HEADER in error or "must start with" in error:
            suggestions.append(f"Start the diagram with a '{DIAGRAM_HEADER}' line")
        elif "no entity blocks" in error:
            suggestions.append('Declare an entity block such as: "Users" { int id PK }')
        elif "never closed" in error:
            suggestions.append("Close every entity block with a line holding only '}'")
        elif "unknown entity" in error:
            suggestions.append("Check relationship entity names against the declared blocks")
        elif "no FK field" in error:
            suggestions.append("Mark the referencing field with FK, e.g.: int user_id FK")

    braces = SYMBOL_RE.sub("", content or "")
    if braces.count("{") != braces.count("}"):
        suggestions.append("Check for unmatched curly braces around entity blocks")

    # Remove duplicates while preserving order
    unique_suggestions: List[str] = []
    for suggestion in suggestions:
        if suggestion not in unique_suggestions:
            unique_suggestions.append(suggestion)

    return unique_suggestions[:5]


def get_supported_field_types() -> List[str]:
    """
    Get list of supported field types.

    Returns:
        List of field type strings
    """
    return [t.value for t in FieldType]


def get_dsl_syntax_info() -> Dict[str, Any]:
    """
    Get diagram syntax information for documentation/tooling.

    Returns:
        Dictionary containing syntax information
    """
    symbols: List[Tuple[str, str]] = [(c.value, s) for c, s in CARDINALITY_SYMBOLS.items()]
    return {
        "header": DIAGRAM_HEADER,
        "field_types": get_supported_field_types(),
        "type_synonyms": {k: v.value for k, v in FIELD_TYPE_SYNONYMS.items()},
        "cardinality_symbols": dict(symbols),
        "key_markers": ["PK", "FK"],
        "comment_markers": list(COMMENT_MARKERS),
        "example_minimal": (
            f'{DIAGRAM_HEADER}\n  "Users" {{\n    int id PK\n  }}\n'
        ),
    }
