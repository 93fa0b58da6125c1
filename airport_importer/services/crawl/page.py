from __future__ import annotations

from typing import List, Optional

from selectolax.parser import HTMLParser, Node


class Page:
    """A fetched HTML page: its effective URL plus CSS querying via selectolax."""

    def __init__(self, html: str, url: str, *, status_code: Optional[int] = None) -> None:
        self.url = url
        self.status_code = status_code
        self._doc = HTMLParser(html or "")

    @property
    def effective_url(self) -> str:
        return self.url

    def css(self, selector: str) -> List[Node]:
        return self._doc.css(selector) or []

    def css_first(self, selector: str) -> Optional[Node]:
        return self._doc.css_first(selector)

    @staticmethod
    def text(node: Node) -> str:
        return node.text(deep=True) or ""

    @staticmethod
    def attr(node: Optional[Node], name: str) -> Optional[str]:
        if node is None:
            return None
        return node.attributes.get(name)

    @staticmethod
    def parent_link(node: Node) -> Optional[str]:
        """Return the href of the anchor directly enclosing ``node``, if any."""
        parent = node.parent
        if parent is None or parent.tag != "a":
            return None
        return parent.attributes.get("href")

    @classmethod
    def from_file(cls, path: str, url: Optional[str] = None) -> "Page":
        with open(path, "r", encoding="utf-8") as f:
            html = f.read()
        return cls(html, url or path)
