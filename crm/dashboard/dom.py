"""
Headless page model for the admin dashboard.

The dashboard keeps its view state server side: a ``Page`` holds every named
element (tab buttons, tab contents, containers, detail fields) and the
controller mutates classes, text and inner HTML on them exactly the way the
browser shell mirrors them.
"""
import logging
from typing import Dict, Iterable, List, Optional

logger = logging.getLogger(__name__)


class Element:
    def __init__(self, id: str, tag: str = "div", classes: Iterable[str] = (), parent: Optional[str] = None,
                 dataset: Optional[Dict[str, str]] = None):
        self.id = id
        self.tag = tag
        self.classes = set(classes)
        self.parent = parent
        self.dataset = dict(dataset or {})
        self.attributes: Dict[str, str] = {}
        self.style: Dict[str, str] = {}
        self.inner_html = ""
        self.text = ""

    def add_class(self, name: str) -> None:
        self.classes.add(name)

    def remove_class(self, name: str) -> None:
        self.classes.discard(name)

    def toggle_class(self, name: str, force: Optional[bool] = None) -> bool:
        enabled = (name not in self.classes) if force is None else force
        if enabled:
            self.classes.add(name)
        else:
            self.classes.discard(name)
        return enabled

    def has_class(self, name: str) -> bool:
        return name in self.classes

    @property
    def hidden(self) -> bool:
        return "hidden" in self.classes

    def set_html(self, html: str) -> None:
        self.inner_html = html
        self.text = ""

    def set_text(self, text) -> None:
        self.text = "" if text is None else str(text)
        self.inner_html = ""

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "classes": sorted(self.classes),
            "dataset": dict(self.dataset),
            "style": dict(self.style),
            "html": self.inner_html,
            "text": self.text,
        }

    def __repr__(self):
        return f"<Element #{self.id} {sorted(self.classes)}>"


class Page:
    """Element registry plus the body dataset and the document title."""

    def __init__(self, title: str = "Dashboard"):
        self.title = title
        self.body = Element("body", tag="body")
        self._elements: Dict[str, Element] = {}

    def add(self, element: Element) -> Element:
        self._elements[element.id] = element
        return element

    def create(self, id: str, **kwargs) -> Element:
        return self.add(Element(id, **kwargs))

    def remove(self, id: str) -> None:
        self._elements.pop(id, None)

    def get_element_by_id(self, id: str) -> Optional[Element]:
        return self._elements.get(id)

    def query_all(self, class_name: str) -> List[Element]:
        return [e for e in self._elements.values() if class_name in e.classes]

    def query_by_data(self, key: str, value: str) -> List[Element]:
        return [e for e in self._elements.values() if e.dataset.get(key) == value]

    def children_of(self, parent_id: str) -> List[Element]:
        return [e for e in self._elements.values() if e.parent == parent_id]


class DOMCache:
    """Memoized key -> element lookup over a selector table.

    Misses are not cached, so an element added after the first lookup is
    found on the next call.
    """

    def __init__(self, page: Page, selectors: Dict[str, str]):
        self.page = page
        self.selectors = dict(selectors)
        self._cache: Dict[str, Element] = {}

    def get(self, key: str) -> Optional[Element]:
        if key in self._cache:
            return self._cache[key]

        element_id = self.selectors.get(key)
        if element_id is None:
            return None

        element = self.page.get_element_by_id(element_id)
        if element is not None:
            self._cache[key] = element
        return element

    def require(self, key: str) -> Element:
        element = self.get(key)
        if element is None:
            raise KeyError(f"No element for '{key}'")
        return element

    def extend(self, selectors: Dict[str, str]) -> None:
        self.selectors.update(selectors)

    def invalidate(self) -> None:
        self._cache.clear()


def create_dom_cache(page: Page, selectors: Dict[str, str]) -> DOMCache:
    return DOMCache(page, selectors)
