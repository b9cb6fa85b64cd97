"""
Sync Controller
===============

Keeps diagram text and the entity store synchronized in both directions.

Text edits are debounced before parsing; a successful parse is merged into the
store tagged as a ``TEXT`` change, which the controller itself ignores so the
text being typed is never overwritten. Changes from any other source
regenerate the text. A failed parse leaves the store untouched and is reported
through the notifier, as does a parse whose entity names differ only by case.
"""

from typing import Any, Callable, List, Optional

from erdsync.config.logging import get_logger
from erdsync.config.settings import get_settings
from erdsync.core.dsl.generator import BaseDiagramGenerator, MermaidERGenerator
from erdsync.core.dsl.parser import BaseDiagramParser, MermaidERParser
from erdsync.core.dsl.resolution import LabelMatchResolver
from erdsync.core.sync.debounce import Debouncer
from erdsync.core.sync.store import DuplicateNameError, EntityStore, reconcile_entities
from erdsync.models.schemas import (
    ChangeSource,
    ModelChange,
    ParseError,
    ParseErrorKind,
    ParseResult,
)

logger = get_logger(__name__)

Notifier = Callable[[str, str], None]
TextListener = Callable[[str], None]


class DiagramSyncController:
    """Bidirectional text/model synchronization for one editing session."""

    def __init__(
        self,
        store: EntityStore,
        *,
        debounce_seconds: Optional[float] = None,
        notifier: Optional[Notifier] = None,
        parser: Optional[BaseDiagramParser] = None,
        generator: Optional[BaseDiagramGenerator] = None,
    ) -> None:
        self.logger: Any = logger.bind(component="sync")  # structlog.BoundLoggerBase
        self.store = store
        self.parser = parser or MermaidERParser(resolver=LabelMatchResolver())
        self.generator = generator or MermaidERGenerator()
        self.notifier = notifier or self._log_notification

        if debounce_seconds is None:
            debounce_seconds = get_settings().sync_debounce_seconds
        self._debouncer = Debouncer(debounce_seconds, self._on_debounce)

        self.last_result: Optional[ParseResult] = None
        self.last_error: Optional[ParseError] = None
        self._text_listeners: List[TextListener] = []
        self._edit_generation = 0
        self._parsed_generation = 0
        self._text = self.generator.generate(store.entities)
        self._unsubscribe = store.subscribe(self._on_model_changed)

    @property
    def text(self) -> str:
        """Current diagram text, as typed or as last regenerated."""
        return self._text

    @property
    def has_pending_parse(self) -> bool:
        return self._debouncer.pending

    def on_text_changed(self, listener: TextListener) -> Callable[[], None]:
        """
        Register a listener for regenerated text.

        Returns:
            Function removing the listener again
        """
        self._text_listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._text_listeners:
                self._text_listeners.remove(listener)

        return unsubscribe

    def edit_text(self, text: str) -> None:
        """Record a user edit and (re)schedule the parse."""
        self._text = text
        self._edit_generation += 1
        self._debouncer.trigger()

    def flush(self) -> Optional[ParseResult]:
        """
        Parse a pending edit right away.

        Returns:
            The parse result, or None when nothing was pending
        """
        if self._debouncer.flush():
            return self.last_result
        return None

    def close(self) -> None:
        """Cancel any pending parse and detach from the store."""
        self._debouncer.cancel()
        self._unsubscribe()

    def _on_debounce(self) -> None:
        self._apply_text(self._edit_generation)

    def _apply_text(self, generation: int) -> None:
        if generation != self._edit_generation or generation <= self._parsed_generation:
            self.logger.debug("Discarding stale parse", generation=generation)
            return

        result = self.parser.parse(self._text)
        self.last_result = result
        self._parsed_generation = generation

        if not result.success:
            self._reject(result.error or ParseError(kind=ParseErrorKind.INTERNAL, message="Unknown parse failure"))
            return

        current = self.store.entities
        merged = reconcile_entities(current, result.entities)
        if [e.model_dump() for e in merged] == [e.model_dump() for e in current]:
            self.last_error = None
            self.logger.debug("Text edit did not change the model", generation=generation)
            return

        try:
            self.store.set_entities(merged, source=ChangeSource.TEXT)
        except DuplicateNameError as e:
            self._reject(ParseError(kind=ParseErrorKind.DUPLICATE_ENTITY, message=str(e)))
            return
        self.last_error = None

    def _reject(self, error: ParseError) -> None:
        self.last_error = error
        self.logger.info("Keeping last valid model", kind=error.kind.value)
        self.notifier(error.title, error.message)

    def _on_model_changed(self, change: ModelChange) -> None:
        if change.source is ChangeSource.TEXT:
            return

        # The model changed from elsewhere; an edit still waiting to be parsed is superseded.
        if self._debouncer.pending:
            self.logger.info("Dropping pending text edit", version=change.version)
            self._debouncer.cancel()
            self._parsed_generation = self._edit_generation

        self._text = self.generator.generate(self.store.entities)
        for listener in list(self._text_listeners):
            listener(self._text)

    def _log_notification(self, title: str, description: str) -> None:
        self.logger.warning(title, description=description)
