import asyncio
from itertools import islice

import pytest

from dcm.domain.errors import PaginationLimitError
from dcm.services.pagination import afetch_all_pages, fetch_all_pages, iter_items, iter_pages


class PageSource:
    """Serves pages of the given sizes, then keeps repeating the last size."""

    def __init__(self, sizes, fail_on=None):
        self.sizes = sizes
        self.fail_on = fail_on
        self.calls = []

    def __call__(self, page):
        self.calls.append(page)
        if page == self.fail_on:
            raise ConnectionError(f"page {page} unavailable")
        size = self.sizes[page] if page < len(self.sizes) else self.sizes[-1]
        return [(page, i) for i in range(size)]


def test_fetch_all_pages_concatenates_in_page_order():
    source = PageSource([50, 50, 50, 0])
    items = fetch_all_pages(source)

    assert len(items) == 150
    assert items == [(p, i) for p in range(3) for i in range(50)]
    assert source.calls == [0, 1, 2, 3]


def test_fetch_all_pages_empty_first_page():
    source = PageSource([0])
    assert fetch_all_pages(source) == []
    assert source.calls == [0]


def test_short_page_does_not_end_iteration():
    source = PageSource([50, 7, 3, 0])
    assert len(fetch_all_pages(source)) == 60


def test_source_that_never_empties_only_stops_at_explicit_cap():
    # Uncapped, this source would be fetched forever; the cap is opt-in.
    source = PageSource([50, 50])
    with pytest.raises(PaginationLimitError):
        fetch_all_pages(source, max_pages=25)
    assert len(source.calls) == 25


def test_cap_counts_the_terminating_empty_page():
    assert len(fetch_all_pages(PageSource([50, 50, 50, 0]), max_pages=4)) == 150
    with pytest.raises(PaginationLimitError):
        fetch_all_pages(PageSource([50, 50, 50, 0]), max_pages=3)


def test_failure_aborts_without_partial_result():
    source = PageSource([50, 50, 50, 0], fail_on=2)
    with pytest.raises(ConnectionError, match="page 2"):
        fetch_all_pages(source)
    assert source.calls == [0, 1, 2]


def test_iter_items_is_lazy_for_prefix_reads():
    source = PageSource([50, 50, 50, 0])
    first = list(islice(iter_items(source), 60))

    assert len(first) == 60
    assert source.calls == [0, 1]


def test_iter_pages_restarts_from_first_page():
    source = PageSource([2, 2, 0])
    assert len(list(iter_pages(source))) == 2
    assert len(list(iter_pages(source))) == 2
    assert source.calls == [0, 1, 2, 0, 1, 2]


def _async(source):
    async def fetch(page):
        await asyncio.sleep(0)
        return source(page)

    return fetch


def test_async_fetch_is_sequential_by_default():
    source = PageSource([50, 50, 50, 0])
    items = asyncio.run(afetch_all_pages(_async(source)))

    assert len(items) == 150
    assert source.calls == [0, 1, 2, 3]


def test_async_prefetch_keeps_page_order_and_drops_pages_after_empty():
    source = PageSource([3, 3, 3, 0, 5])

    async def fetch(page):
        # later pages finish first
        await asyncio.sleep(0.001 * (5 - page))
        return source(page)

    items = asyncio.run(afetch_all_pages(fetch, prefetch=4))

    assert items == [(p, i) for p in range(3) for i in range(3)]


def test_async_failure_propagates():
    source = PageSource([50, 50, 0], fail_on=1)
    with pytest.raises(ConnectionError):
        asyncio.run(afetch_all_pages(_async(source), prefetch=2))


def test_async_rejects_empty_window():
    with pytest.raises(ValueError):
        asyncio.run(afetch_all_pages(_async(PageSource([0])), prefetch=0))


def test_async_prefetch_window_never_requests_past_cap():
    source = PageSource([50, 50, 50, 0])
    items = asyncio.run(afetch_all_pages(_async(source), prefetch=3, max_pages=4))
    assert len(items) == 150
    assert sorted(source.calls) == [0, 1, 2, 3]

    endless = PageSource([50])
    with pytest.raises(PaginationLimitError):
        asyncio.run(afetch_all_pages(_async(endless), prefetch=3, max_pages=4))
    assert sorted(endless.calls) == [0, 1, 2, 3]
