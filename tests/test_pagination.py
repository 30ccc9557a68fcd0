import asyncio

import pytest

from core.pagination import Pager, RequestSequencer


class SlowPages:
    """第 1 頁立即回應，之後的頁面等 release() 才回應"""

    def __init__(self, total_pages=3, prefix="p"):
        self.total_pages = total_pages
        self.prefix = prefix
        self.requested = []
        self.gate = asyncio.Event()

    async def __call__(self, page):
        self.requested.append(page)
        if page > 1:
            await self.gate.wait()
        items = [{"id": f"{self.prefix}{page}-{i}"} for i in range(2)]
        return items, {"page": page, "totalPages": self.total_pages}


def test_sequencer_only_latest_is_current():
    seq = RequestSequencer()
    first = seq.issue()
    second = seq.issue()
    assert not seq.is_current(first)
    assert seq.is_current(second)
    seq.invalidate()
    assert not seq.is_current(second)


@pytest.mark.anyio
async def test_burst_of_scroll_events_fetches_one_page():
    pages = SlowPages()
    pager = Pager(pages)
    await pager.load_first()

    burst = [asyncio.ensure_future(pager.load_more()) for _ in range(5)]
    await asyncio.sleep(0)
    assert pager.loading_more
    pages.gate.set()
    results = await asyncio.gather(*burst)

    assert pages.requested == [1, 2]
    assert results.count(True) == 1
    assert pager.page == 2
    assert len(pager.items) == 4
    assert not pager.loading_more


@pytest.mark.anyio
async def test_stops_on_last_page():
    pages = SlowPages(total_pages=1)
    pages.gate.set()
    pager = Pager(pages)
    await pager.load_first()

    assert pager.has_more is False
    assert await pager.load_more() is False
    assert pages.requested == [1]


@pytest.mark.anyio
async def test_reset_discards_in_flight_page():
    old = SlowPages(prefix="old")
    pager = Pager(old)
    await pager.load_first()

    pending = asyncio.ensure_future(pager.load_more())
    await asyncio.sleep(0)

    new = SlowPages(prefix="new")
    pager.reset(new)
    await pager.load_first()

    old.gate.set()
    assert await pending is False
    assert [item["id"] for item in pager.items] == ["new1-0", "new1-1"]
    assert pager.page == 1


@pytest.mark.anyio
async def test_failed_first_page_clears_items():
    async def broken(page):
        raise RuntimeError("boom")

    pager = Pager(broken)
    with pytest.raises(RuntimeError):
        await pager.load_first()

    assert pager.items == []
    assert pager.has_more is False
    assert pager.loading is False
