"""
Paginated walk over the Yandex Disk flat file list.

The API lists every file on the disk, one offset/limit page at a time,
with no server-side path filter. ListingWalker turns those pages into a
single lazy sequence of entries under one root.
"""

import logging
import threading
from collections.abc import Callable, Iterator
from typing import Protocol

from .yandex_client import ResourceInfo

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 1000


class PageSource(Protocol):
    """Anything that can return one page of the flat file list."""

    def list_files(self, limit: int, offset: int) -> list[ResourceInfo]: ...


class ListingWalker:
    """Walks all pages of the flat file list, filtering to a root prefix."""

    def __init__(
        self,
        source: PageSource,
        page_size: int = DEFAULT_PAGE_SIZE,
        on_error: Callable[[Exception], None] | None = None,
    ):
        self._source = source
        self.page_size = page_size
        self._on_error = on_error

    def list_under(
        self, root_prefix: str, stop_event: threading.Event | None = None
    ) -> Iterator[tuple[str, ResourceInfo]]:
        """
        Yield (name relative to root_prefix, metadata) for every file under it.

        A failing page ends the walk: the error is logged and handed to
        on_error, and entries already yielded stand. The walk also ends
        when a page comes back shorter than the page size, or before the
        next request once stop_event is set.
        """
        offset = 0
        while True:
            if stop_event is not None and stop_event.is_set():
                logger.debug("Listing of %s stopped at offset %d", root_prefix, offset)
                return

            try:
                items = self._source.list_files(limit=self.page_size, offset=offset)
            except OSError as e:
                logger.error("Couldn't list: %s", e)
                if self._on_error is not None:
                    self._on_error(e)
                return

            for item in items:
                if item.path.startswith(root_prefix):
                    yield item.path[len(root_prefix) :], item

            offset += len(items)
            # TODO: stop only on an empty page if the API turns out to return short pages mid-list
            if len(items) < self.page_size:
                logger.debug("Listing of %s finished after %d items", root_prefix, offset)
                return
