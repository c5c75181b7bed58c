import pytest

from learnmongo.utils.pagination import (
    Cursor,
    Page,
    PaginationState,
    drain,
    iter_items,
    iter_pages,
)


class FakeService:
    """Serves ``records`` in pages and keeps the paging position server side."""

    def __init__(self, records, fail_on_fetch=None):
        self.records = list(records)
        self.fail_on_fetch = fail_on_fetch
        self.fetches = 0
        self.cursors_seen = []
        self._positions = {}

    async def fetch_page(self, cursor, size):
        self.fetches += 1
        self.cursors_seen.append(cursor)
        if self.fail_on_fetch == self.fetches:
            raise ConnectionError("server went away")
        start = self._positions[cursor] if cursor is not None else 0
        items = self.records[start : start + size]
        after = None
        if start + size < len(self.records):
            after = Cursor(f"tok-{self.fetches}")
            self._positions[after] = start + size
        return Page(items=items, size=size, after=after)


def records(n):
    return [{"id": i, "balance": i * 10} for i in range(1, n + 1)]


class TestPage:
    def test_has_next_follows_after(self):
        assert Page(items=[1], size=1, after=Cursor("x")).has_next is True
        assert Page(items=[1], size=1).has_next is False

    def test_has_prev_follows_before(self):
        assert Page(items=[], size=1, before=Cursor("x")).has_prev is True


class TestDrain:
    async def test_twenty_items_page_size_eight(self):
        service = FakeService(records(20))
        state = await drain(service.fetch_page, 8)
        assert service.fetches == 3
        assert state.fetches == 3
        assert state.page_sizes == (8, 8, 4)
        assert state.cursor is None
        assert state.done is True
        assert list(state.items) == records(20)

    async def test_empty_result_fetches_once(self):
        service = FakeService([])
        state = await drain(service.fetch_page, 8)
        assert service.fetches == 1
        assert state.items == ()
        assert state.page_sizes == (0,)

    @pytest.mark.parametrize("size", [1, 3, 7, 19, 20, 21, 100])
    async def test_every_item_exactly_once_in_order(self, size):
        service = FakeService(records(20))
        state = await drain(service.fetch_page, size)
        assert [item["id"] for item in state.items] == list(range(1, 21))

    async def test_exact_multiple_of_page_size(self):
        service = FakeService(records(16))
        state = await drain(service.fetch_page, 8)
        assert state.page_sizes == (8, 8)
        assert service.fetches == 2

    async def test_transform_applied_to_every_item(self):
        service = FakeService(records(5))
        state = await drain(service.fetch_page, 2, lambda item: item["balance"])
        assert state.items == (10, 20, 30, 40, 50)

    async def test_starts_without_cursor_and_passes_tokens_back(self):
        service = FakeService(records(20))
        await drain(service.fetch_page, 8)
        assert service.cursors_seen == [None, "tok-1", "tok-2"]

    async def test_rereading_unchanged_data_is_identical(self):
        service = FakeService(records(13))
        first = await drain(service.fetch_page, 4)
        second = await drain(service.fetch_page, 4)
        assert first.items == second.items

    async def test_fetch_error_propagates(self):
        service = FakeService(records(20), fail_on_fetch=2)
        with pytest.raises(ConnectionError):
            await drain(service.fetch_page, 8)
        assert service.fetches == 2

    async def test_invalid_size_raises(self):
        service = FakeService(records(3))
        with pytest.raises(ValueError, match="size must be >= 1"):
            await drain(service.fetch_page, 0)
        assert service.fetches == 0


class TestIterators:
    async def test_iter_pages_stops_at_last_page(self):
        service = FakeService(records(20))
        pages = [page async for page in iter_pages(service.fetch_page, 8)]
        assert [len(page.items) for page in pages] == [8, 8, 4]
        assert pages[-1].after is None
        assert all(page.after is not None for page in pages[:-1])

    async def test_iter_items_streams_transformed(self):
        service = FakeService(records(10))
        ids = [item async for item in iter_items(service.fetch_page, 3, lambda r: r["id"])]
        assert ids == list(range(1, 11))

    async def test_iter_items_keeps_items_yielded_before_failure(self):
        service = FakeService(records(20), fail_on_fetch=3)
        seen = []
        with pytest.raises(ConnectionError):
            async for item in iter_items(service.fetch_page, 8):
                seen.append(item["id"])
        assert seen == list(range(1, 17))

    async def test_iter_pages_invalid_size(self):
        service = FakeService(records(3))
        with pytest.raises(ValueError):
            async for _ in iter_pages(service.fetch_page, -1):
                pass


class TestPaginationState:
    def test_advance_returns_new_state(self):
        start = PaginationState()
        page = Page(items=[1, 2], size=2, after=Cursor("next"))
        state = start.advance(page)
        assert start.items == ()
        assert state.items == (1, 2)
        assert state.cursor == "next"
        assert state.done is False

    def test_advance_after_done_raises(self):
        state = PaginationState().advance(Page(items=[], size=2))
        assert state.done is True
        with pytest.raises(RuntimeError):
            state.advance(Page(items=[1], size=2))

    def test_pages_kept_as_chunks(self):
        state = PaginationState()
        for items, after in (([1, 2], "a"), ([3, 4], "b"), ([5], None)):
            state = state.advance(Page(items=items, size=2, after=after), lambda n: n * 10)
        assert state.chunks == ((10, 20), (30, 40), (50,))
        assert state.items == (10, 20, 30, 40, 50)
        assert state.page_sizes == (2, 2, 1)
