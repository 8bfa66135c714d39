"""Fetch-until-empty pagination over a page source.

A page source is any callable taking a zero-based page index and returning
that page's items. The first empty page ends the sequence; there is no other
stop condition unless ``max_pages`` is given, in which case it caps the
number of page requests (the terminating empty page included) and running
past it raises PaginationLimitError.
"""
from __future__ import annotations

import asyncio
from typing import Awaitable, Callable, Iterator, Optional, Sequence, TypeVar

from dcm.domain.errors import PaginationLimitError

T = TypeVar("T")

PageSource = Callable[[int], Sequence[T]]
AsyncPageSource = Callable[[int], Awaitable[Sequence[T]]]


def _check_limit(page: int, max_pages: Optional[int]) -> None:
    if max_pages is not None and page >= max_pages:
        raise PaginationLimitError(f"Page source still returning data after {max_pages} pages.")


def iter_pages(fetch_page: PageSource, *, max_pages: Optional[int] = None) -> Iterator[list[T]]:
    """Lazily yield non-empty pages. Each call starts again from page 0."""
    page = 0
    while True:
        _check_limit(page, max_pages)
        items = list(fetch_page(page))
        if not items:
            return
        yield items
        page += 1


def iter_items(fetch_page: PageSource, *, max_pages: Optional[int] = None) -> Iterator[T]:
    for items in iter_pages(fetch_page, max_pages=max_pages):
        yield from items


def fetch_all_pages(fetch_page: PageSource, *, max_pages: Optional[int] = None) -> list[T]:
    """
    Concatenate every page in page order. If ``fetch_page`` raises, the error
    propagates and nothing accumulated so far is returned.
    """
    out: list[T] = []
    for items in iter_pages(fetch_page, max_pages=max_pages):
        out.extend(items)
    return out


async def afetch_all_pages(
    fetch_page: AsyncPageSource,
    *,
    max_pages: Optional[int] = None,
    prefetch: int = 1,
) -> list[T]:
    """
    Async form of fetch_all_pages.

    With prefetch=1 pages are awaited one after another. A larger value
    fetches up to ``prefetch`` pages at once; results are still assembled in
    page order and anything past the first empty page is dropped.
    """
    if prefetch < 1:
        raise ValueError("prefetch must be >= 1")

    out: list[T] = []
    page = 0
    while True:
        _check_limit(page, max_pages)
        window = prefetch if max_pages is None else min(prefetch, max_pages - page)
        results = await asyncio.gather(*(fetch_page(page + i) for i in range(window)))
        for items in results:
            items = list(items)
            if not items:
                return out
            out.extend(items)
        page += window
