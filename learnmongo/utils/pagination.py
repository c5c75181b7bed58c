"""Cursor pagination primitives.

A ``Page`` is one bounded batch of results plus the opaque continuation
tokens handed out by the query layer. The consumer functions here drain a
paginated query by following ``Page.after`` until a page comes back without
one. They never look inside a cursor.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from functools import cached_property
from itertools import chain
from typing import AsyncIterator, Generic, NewType, Protocol, TypeVar

from learnmongo.utils.types import Transform, identity

T = TypeVar("T")
T_co = TypeVar("T_co", covariant=True)

Cursor = NewType("Cursor", str)


@dataclass(frozen=True)
class Page(Generic[T]):
    """One batch of query results.

    ``after`` continues forward from the last item, ``before`` walks back
    from the first one. A page without ``after`` is the final page.
    """

    items: list[T]
    size: int
    after: Cursor | None = None
    before: Cursor | None = None

    @property
    def has_next(self) -> bool:
        return self.after is not None

    @property
    def has_prev(self) -> bool:
        return self.before is not None


class FetchPage(Protocol[T_co]):
    """Issues exactly one request for the page following ``cursor``."""

    async def __call__(self, cursor: Cursor | None, size: int) -> Page[T_co]: ...


@dataclass(frozen=True)
class PaginationState:
    """Accumulator threaded through a full pagination run.

    Each fold step appends one page's items as a chunk; ``items`` flattens
    them once, on first access.
    """

    chunks: tuple[tuple, ...] = ()
    cursor: Cursor | None = None
    fetches: int = 0
    done: bool = False
    page_sizes: tuple[int, ...] = field(default=())

    @cached_property
    def items(self) -> tuple:
        return tuple(chain.from_iterable(self.chunks))

    def advance(self, page: Page, transform: Transform = identity) -> PaginationState:
        """Fold one fetched page into a new state."""
        if self.done:
            raise RuntimeError("pagination already finished")
        return PaginationState(
            chunks=self.chunks + (tuple(transform(item) for item in page.items),),
            cursor=page.after,
            fetches=self.fetches + 1,
            done=page.after is None,
            page_sizes=self.page_sizes + (len(page.items),),
        )


def _check_size(size: int) -> None:
    if size < 1:
        raise ValueError("size must be >= 1")


async def iter_pages(fetch_page: FetchPage[T], size: int) -> AsyncIterator[Page[T]]:
    """Yield every page of a query, starting from the beginning."""
    _check_size(size)
    cursor: Cursor | None = None
    while True:
        page = await fetch_page(cursor, size)
        yield page
        if page.after is None:
            return
        cursor = page.after


async def iter_items(
    fetch_page: FetchPage[T], size: int, transform: Transform = identity
) -> AsyncIterator:
    """Stream transformed items, holding at most one page in memory."""
    async for page in iter_pages(fetch_page, size):
        for item in page.items:
            yield transform(item)


async def drain(
    fetch_page: FetchPage[T], size: int, transform: Transform = identity
) -> PaginationState:
    """Fetch every page and fold all transformed items into one state.

    Errors raised by ``fetch_page`` abort the run and propagate.
    """
    _check_size(size)
    state = PaginationState()
    while not state.done:
        page = await fetch_page(state.cursor, size)
        state = state.advance(page, transform)
    return state
