"""Read-aloud session wiring for one open document.

Responsibilities:
- Turn a newly visible page into aligned sentences appended to the shared index.
- Bind one click-to-seek handler on every element owned by a sentence.
- Expose activation controls and close the session's resources.
"""

from __future__ import annotations

from .alignment.aligner import align_sentences
from .alignment.dom import DomCapability, Renderer
from .alignment.sentence_index import SentenceIndex
from .io.text_source import TextSource
from .models.datatypes import Element, Sentence
from .playback.controller import PlaybackController
from .telemetry.logger import RunLogger, default_run_logger
from .telemetry.usage_meter import UsageMeter
from .text.segmenter import join_fragments, split_sentences
from .tts.cache import AudioCache


class ReadAloudSession:
    """Sentence index, controller, and page processing for one document.

    Pages may be processed in any order as they become visible; sentences are
    appended in processing order and each `(locator, page)` contributes once.
    """

    def __init__(
        self,
        text_source: TextSource,
        dom: DomCapability,
        renderer: Renderer,
        controller: PlaybackController,
        *,
        cache: AudioCache | None = None,
        usage_meter: UsageMeter | None = None,
        run_logger: RunLogger | None = None,
    ) -> None:
        """Initialize collaborators; `controller.index` becomes the session index."""

        self.text_source = text_source
        self.dom = dom
        self.renderer = renderer
        self.controller = controller
        self.cache = cache
        self.usage_meter = usage_meter
        self._logger = run_logger
        self._processed_pages: set[tuple[str, int]] = set()

    @property
    def logger(self) -> RunLogger:
        return self._logger or default_run_logger()

    @property
    def index(self) -> SentenceIndex:
        return self.controller.index

    def is_processed(self, locator: str, page_number: int) -> bool:
        return (locator, page_number) in self._processed_pages

    async def process_page(self, container: object, locator: str, page_number: int) -> int:
        """Align one rendered page and append its sentences to the index.

        Args:
            container: Rendered page container handed to the DOM capability.
            locator: Document locator the page belongs to.
            page_number: 1-based page number.

        Returns:
            Number of sentences appended (0 for empty, failed, or repeated pages).
        """

        page_key = (locator, page_number)
        if page_key in self._processed_pages:
            self.logger.debug("session", "page_skipped", page=page_number)
            return 0

        fragments = await self.text_source.get_fragments(locator, page_number)
        sentence_texts = split_sentences(join_fragments(fragments))
        if not sentence_texts:
            return 0

        elements = self.dom.leaf_elements(container)
        aligned = align_sentences(
            elements,
            sentence_texts,
            start_position=self.index.next_position,
        )
        dropped = len(sentence_texts) - len(aligned)
        if dropped:
            self.logger.debug("align", "sentences_dropped", page=page_number, count=dropped)

        appended = self.index.extend(aligned)
        for sentence in appended:
            self._bind_click_handlers(sentence)
        self._processed_pages.add(page_key)
        self.logger.info(
            "session",
            "page_processed",
            page=page_number,
            sentences=len(appended),
            total=len(self.index),
        )
        return len(appended)

    def _bind_click_handlers(self, sentence: Sentence) -> None:
        """Bind one click handler per element, from its first owning sentence only.

        An element spanning a sentence boundary seeks to the earlier sentence.
        """

        for element in sentence.elements:
            if self.index.position_of(element) == sentence.position:
                self.renderer.on_element_click(element, self._seek_to_owner)

    def _seek_to_owner(self, element: Element) -> None:
        position = self.index.position_of(element)
        if position is not None:
            self.controller.seek(position)

    def activate(self) -> None:
        self.controller.activate()

    def deactivate(self) -> None:
        self.controller.deactivate()

    def toggle(self) -> bool:
        return self.controller.toggle()

    def close(self) -> None:
        """Stop playback, disable controls, and drop cached audio."""

        self.controller.deactivate()
        self.controller.stop()
        if self.cache is not None:
            self.cache.clear()
        self.logger.info("session", "closed", sentences=len(self.index))
