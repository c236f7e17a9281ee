from __future__ import annotations

from collections.abc import Iterable, Iterator, Sequence
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .content import Page


class ArticleCollection(Sequence["Page"]):
    """Ordered article list exposed to templates as ``site.articles``.

    Articles are prepended as they are processed, so with sources supplied
    in chronological order the collection reads newest first.
    """

    def __init__(self, pages: Iterable[Page] = ()):
        self._pages = list(pages)

    def __iter__(self) -> Iterator[Page]:
        return iter(self._pages)

    def __len__(self) -> int:
        return len(self._pages)

    def __getitem__(self, item):
        return self._pages[item]

    def __eq__(self, other) -> bool:
        if isinstance(other, ArticleCollection):
            return self._pages == other._pages
        if isinstance(other, list):
            return self._pages == other
        return NotImplemented

    def prepend(self, page: Page) -> None:
        self._pages.insert(0, page)

    def discard(self, page: Page) -> None:
        self._pages = [p for p in self._pages if p is not page]

    def latest(self, count: int = 5) -> ArticleCollection:
        return ArticleCollection(self._pages[:count])

    def by_year(self) -> list[tuple[str, list[Page]]]:
        """Group articles by the year of their date, keeping collection order.

        Used by archive templates; the year is the first four characters of
        the ISO date.
        """
        groups: dict[str, list[Page]] = {}
        for page in self._pages:
            year = str(page.date)[:4] if page.date else ""
            groups.setdefault(year, []).append(page)
        return list(groups.items())

    def __repr__(self) -> str:  # pragma: no cover - for debugging
        return f"ArticleCollection({len(self._pages)} articles)"
