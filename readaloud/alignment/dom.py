"""DOM and rendering capabilities used by alignment and playback.

Responsibilities:
- Define the `DomCapability` (leaf element discovery) and `Renderer` (highlight,
  scroll, click binding) interfaces the core depends on.
- Provide a headless element tree and an in-memory implementation of both
  capabilities, so pages can be aligned and played without a browser.
- Render extracted text fragments into a text layer (one span per fragment).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Iterable, Iterator, Protocol, Sequence

from ..models.datatypes import Element, TextFragment

DEFAULT_HIGHLIGHT_CLASS = "tts-highlight"

ClickHandler = Callable[[Element], None]


class DomCapability(Protocol):
    """Host capability exposing the rendered leaf elements of a page."""

    def leaf_elements(self, container: object) -> Sequence[Element]:
        """Return visible, text-bearing elements without element children, in order."""


class Renderer(Protocol):
    """Host capability applying playback side effects to rendered elements."""

    def highlight(self, elements: Sequence[Element]) -> None:
        """Mark elements as the currently spoken sentence."""

    def clear_highlight(self) -> None:
        """Remove every highlight marker."""

    def scroll_into_view(self, element: Element) -> None:
        """Scroll `element` into centered view."""

    def on_element_click(self, element: Element, handler: ClickHandler) -> None:
        """Register `handler` to run when `element` is clicked."""


@dataclass(eq=False)
class ElementNode:
    """Headless stand-in for a rendered DOM element.

    Attributes:
        tag: Element tag name.
        own_text: Text held directly by this element.
        children: Child elements in document order.
        visible: Whether the element itself is displayed.
        classes: CSS class names currently applied.
    """

    tag: str = "span"
    own_text: str = ""
    children: list[ElementNode] = field(default_factory=list)
    visible: bool = True
    classes: set[str] = field(default_factory=set)

    @property
    def text(self) -> str:
        """Return own text followed by descendant text, like `textContent`."""

        return self.own_text + "".join(child.text for child in self.children)

    def append(self, child: ElementNode) -> ElementNode:
        """Append a child element and return it."""

        self.children.append(child)
        return child

    def iter_descendants(self) -> Iterator[ElementNode]:
        """Yield descendants in document order, skipping hidden subtrees."""

        for child in self.children:
            if not child.visible:
                continue
            yield child
            yield from child.iter_descendants()

    def __repr__(self) -> str:
        preview = self.text[:24]
        return f"ElementNode(tag={self.tag!r}, text={preview!r})"


def is_leaf_element(node: ElementNode) -> bool:
    """Return whether a visible node carries non-whitespace text and has no children."""

    return node.visible and not node.children and bool(node.own_text.strip())


class HeadlessDom:
    """In-memory DOM and renderer over `ElementNode` trees."""

    def __init__(self, highlight_class: str = DEFAULT_HIGHLIGHT_CLASS) -> None:
        self.highlight_class = highlight_class
        self.scrolled_to: list[Element] = []
        self._highlighted: list[ElementNode] = []
        self._click_handlers: dict[int, tuple[Element, list[ClickHandler]]] = {}

    def leaf_elements(self, container: object) -> list[ElementNode]:
        """Collect leaf elements below `container` in document order."""

        if not isinstance(container, ElementNode):
            raise TypeError("HeadlessDom containers must be `ElementNode` instances.")
        if not container.visible:
            return []
        return [node for node in container.iter_descendants() if is_leaf_element(node)]

    def highlight(self, elements: Sequence[Element]) -> None:
        for element in elements:
            if isinstance(element, ElementNode):
                element.classes.add(self.highlight_class)
                self._highlighted.append(element)

    def clear_highlight(self) -> None:
        for element in self._highlighted:
            element.classes.discard(self.highlight_class)
        self._highlighted.clear()

    def scroll_into_view(self, element: Element) -> None:
        self.scrolled_to.append(element)

    def on_element_click(self, element: Element, handler: ClickHandler) -> None:
        _, handlers = self._click_handlers.setdefault(id(element), (element, []))
        handlers.append(handler)

    def click(self, element: Element) -> bool:
        """Dispatch a click to the element's handlers and report whether any ran."""

        entry = self._click_handlers.get(id(element))
        if entry is None:
            return False
        for handler in list(entry[1]):
            handler(element)
        return True

    def highlighted_elements(self) -> list[ElementNode]:
        """Return elements currently carrying the highlight class."""

        return list(self._highlighted)


def build_text_layer(fragments: Iterable[TextFragment]) -> ElementNode:
    """Render fragments into a text-layer container with one span per fragment."""

    container = ElementNode(tag="div", classes={"text-layer"})
    for fragment in fragments:
        container.append(ElementNode(tag="span", own_text=fragment.text))
    return container
