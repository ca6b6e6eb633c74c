"""
Yandex Disk filesystem adapter.

YandexFs presents one root on a Yandex Disk as a flat collection of
objects: list them, look one up, upload, download and delete. Writes
create any missing parent directories first through MkdirCache; listings
run in a producer thread and are handed to the caller through a bounded
ObjectStream.
"""

import logging
import queue
import threading
from collections.abc import Callable, Iterator
from datetime import datetime, timedelta
from typing import BinaryIO

from .config import AppConfig, ListingConfig
from .listing import ListingWalker
from .mkdir_cache import MkdirCache
from .yandex_auth import OAuthTokenAuth, get_token_path, load_token
from .yandex_client import ROOT_MARKER, ResourceInfo, YandexDiskClient

logger = logging.getLogger(__name__)

# How often blocked queue operations re-check for a closed stream
_POLL_SECONDS = 0.1

_DONE = object()


class ObjectStream:
    """
    Bounded, single-consumer stream of objects filled by a producer thread.

    Iterate it to receive objects in listing order. The producer blocks
    while the queue is full. close() makes the producer stop before its
    next page, and so does leaving an iteration early. error holds the
    listing error that ended the stream early, if any.
    """

    def __init__(self, maxsize: int):
        self._queue: queue.Queue = queue.Queue(maxsize=maxsize)
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None
        self.error: Exception | None = None

    def _start(self, produce: Callable[[threading.Event], Iterator], name: str) -> None:
        self._thread = threading.Thread(target=self._run, args=(produce,), name=name, daemon=True)
        self._thread.start()

    def _run(self, produce: Callable[[threading.Event], Iterator]) -> None:
        try:
            for item in produce(self._stop):
                if not self._offer(item):
                    break
        except Exception as e:
            logger.exception("Listing producer failed: %s", e)
            self.error = e
        finally:
            self._offer(_DONE)

    def _offer(self, item) -> bool:
        """Put item on the queue, waiting for room. False once closed."""
        while not self._stop.is_set():
            try:
                self._queue.put(item, timeout=_POLL_SECONDS)
                return True
            except queue.Full:
                continue
        return False

    def _set_error(self, error: Exception) -> None:
        self.error = error

    def __iter__(self):
        # Leaving the loop early, by break or error, also stops the producer
        try:
            while not self._stop.is_set():
                try:
                    item = self._queue.get(timeout=_POLL_SECONDS)
                except queue.Empty:
                    continue
                if item is _DONE:
                    return
                yield item
        finally:
            self.close()

    def close(self) -> None:
        """Stop the producer and discard anything not yet consumed."""
        self._stop.set()
        while True:
            try:
                self._queue.get_nowait()
            except queue.Empty:
                break

    def wait(self, timeout: float | None = None) -> bool:
        """Wait for the producer thread to exit. Returns True if it has."""
        if self._thread is None:
            return True
        self._thread.join(timeout)
        return not self._thread.is_alive()

    @property
    def closed(self) -> bool:
        return self._stop.is_set()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()


class YandexObject:
    """
    One remote file.

    Built either with known metadata (from a listing entry or a write) or
    as a bare reference whose metadata is fetched on first use.
    """

    def __init__(
        self,
        fs: "YandexFs",
        remote: str,
        info: ResourceInfo | None = None,
    ):
        self._fs = fs
        self.remote = remote
        self._md5 = ""
        self._bytes = 0
        self._mod_time: datetime | None = None
        self._has_metadata = False
        if info is not None:
            self._set_metadata(info)

    def __str__(self) -> str:
        return self.remote

    def __repr__(self) -> str:
        return f"YandexObject({self.remote!r})"

    @property
    def fs(self) -> "YandexFs":
        return self._fs

    @property
    def has_metadata(self) -> bool:
        return self._has_metadata

    def _set_metadata(self, info: ResourceInfo) -> None:
        self._bytes = info.size
        self._md5 = info.md5
        # A malformed timestamp leaves the modification time unset
        self._mod_time = info.mod_time
        self._has_metadata = True

    def _read_metadata(self) -> None:
        """Fetch metadata for a bare reference. No-op once it is known."""
        if self._has_metadata:
            return
        logger.debug("Fetching metadata for %s", self.remote)
        self._set_metadata(self._fs.client.get_resource(self.remote_path()))

    def remote_path(self) -> str:
        """Full remote path, including the disk root."""
        return self._fs.disk_root + self.remote

    def md5sum(self) -> str:
        """
        MD5 of the content as reported by the server.

        Empty for an object written by put or update: the server computes
        the checksum and it is not fetched back after the upload.
        """
        self._read_metadata()
        return self._md5

    def size(self) -> int:
        self._read_metadata()
        return self._bytes

    def mod_time(self) -> datetime | None:
        self._read_metadata()
        return self._mod_time

    def storable(self) -> bool:
        return True

    def set_mod_time(self, mod_time: datetime) -> None:
        """Not supported by the API; the server keeps its own mtime."""
        logger.debug("Ignoring set_mod_time for %s", self.remote)

    def open(self) -> BinaryIO:
        """Open the object for reading. The caller closes the stream."""
        return self._fs.client.download(self.remote_path())

    def remove(self) -> None:
        """Delete the object permanently (bypassing the trash)."""
        self._fs.client.delete(self.remote_path(), permanently=True)

    def update(self, stream: BinaryIO, mod_time: datetime | None, size: int) -> None:
        """
        Replace the object's content with stream.

        Parent directories are created first; if that fails nothing is
        uploaded. The server assigns its own modification time.
        """
        remote = self.remote_path()
        self._fs.ensure_path(remote)
        self._fs.client.upload(stream, remote, overwrite=True)
        self._bytes = size
        self._mod_time = mod_time
        self._has_metadata = True


class YandexFs:
    """A Yandex Disk root exposed as a collection of YandexObjects."""

    def __init__(
        self,
        name: str,
        root: str,
        client: YandexDiskClient,
        listing_config: ListingConfig | None = None,
    ):
        self.name = name
        self.root = root.strip("/")
        # All paths on the disk start with "disk:/"
        self.disk_root = f"{ROOT_MARKER}{self.root}/" if self.root else ROOT_MARKER
        self.client = client
        self.listing_config = listing_config or ListingConfig()
        self._mkdir_cache = MkdirCache(client)

    def __str__(self) -> str:
        return f"Yandex {self.root}"

    def precision(self) -> timedelta:
        """Modification times are reported to the second."""
        return timedelta(seconds=1)

    def ensure_path(self, full_path: str) -> None:
        """Create every missing parent directory of full_path."""
        self._mkdir_cache.ensure_path(full_path)

    def list(self) -> ObjectStream:
        """
        List every object under the root.

        Returns immediately; objects arrive on the returned stream as the
        pages are fetched.
        """
        stream = ObjectStream(self.listing_config.checkers)
        walker = ListingWalker(
            self.client,
            page_size=self.listing_config.page_size,
            on_error=stream._set_error,
        )

        def produce(stop_event: threading.Event) -> Iterator[YandexObject]:
            for remote, info in walker.list_under(self.disk_root, stop_event):
                yield YandexObject(self, remote, info)

        stream._start(produce, name=f"list-{self.name}")
        return stream

    def list_dir(self) -> ObjectStream:
        """Directory listing is not supported; returns an empty, finished stream."""
        stream = ObjectStream(1)
        stream._queue.put(_DONE)
        return stream

    def new_object(self, remote: str) -> YandexObject:
        """Reference an object by name; its metadata is fetched when first needed."""
        return YandexObject(self, remote)

    def put(
        self, stream: BinaryIO, remote: str, mod_time: datetime | None, size: int
    ) -> YandexObject:
        """
        Upload stream as remote and return the new object.

        Raises:
            OSError: If a parent directory cannot be created or the upload fails.
        """
        obj = YandexObject(self, remote)
        obj.update(stream, mod_time, size)
        return obj

    def mkdir(self) -> None:
        """Make sure the root directory exists."""
        self._mkdir_cache.ensure_path(self.disk_root)

    def rmdir(self) -> None:
        """Removing directories is not supported; does nothing."""
        logger.debug("Ignoring rmdir for %s", self)

    def close(self) -> None:
        self.client.close()


def new_fs(config: AppConfig) -> YandexFs:
    """
    Build a YandexFs from configuration.

    Raises:
        ValueError: If the stored token cannot be decoded.
        FileNotFoundError: If the configured token file is missing.
    """
    creds = load_token(config.yandex)
    auth = OAuthTokenAuth(creds, get_token_path(config.yandex.token_file))
    client = YandexDiskClient(config.connection, auth=auth)
    fs = YandexFs(config.yandex.name, config.yandex.root, client, config.listing)
    logger.info("Opened %s (remote '%s')", fs, fs.name)
    return fs
