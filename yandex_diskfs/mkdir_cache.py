"""
Directory materialization for Yandex Disk.

The API has no "mkdir -p": each directory level must be created with its
own request, and creating an existing directory answers 409 Conflict.
MkdirCache walks a path root-first, creates each missing level once and
remembers every directory confirmed to exist so later writes under the
same subtree skip the network entirely.
"""

import logging
import threading
from typing import Protocol

from .yandex_client import ROOT_MARKER, MkdirStatus

logger = logging.getLogger(__name__)


class DirectoryClient(Protocol):
    """The one remote operation MkdirCache needs."""

    def mkdir(self, path: str) -> MkdirStatus:
        """Create the directory at path; raise on anything but created/exists."""
        ...


def ancestor_directories(full_path: str) -> list[str]:
    """
    List the directories that must exist before full_path can be written.

    The final segment (the file name) is dropped, as is the ``disk:/``
    marker. A path ending in "/" names a directory, so its own last
    segment is kept.

    >>> ancestor_directories("a/b/c/file.txt")
    ['/a/', '/a/b/', '/a/b/c/']
    >>> ancestor_directories("disk:/file.txt")
    []
    """
    path = full_path.replace("\\", "/")
    dir_part = path.rsplit("/", 1)[0] if "/" in path else ""
    if dir_part.startswith(ROOT_MARKER):
        dir_part = dir_part[len(ROOT_MARKER) :]
    elif dir_part + "/" == ROOT_MARKER:
        dir_part = ""

    ancestors = []
    current = "/"
    for segment in dir_part.split("/"):
        if segment:
            current += segment + "/"
            ancestors.append(current)
    return ancestors


class MkdirCache:
    """
    Thread-safe record of remote directories known to exist.

    Entries are only ever added. The lock guards the map and is never held
    across a remote call, so two threads may race to create the same
    directory; one then sees CREATED and the other EXISTS, and the first
    outcome recorded is kept.
    """

    def __init__(self, client: DirectoryClient):
        self._client = client
        self._lock = threading.Lock()
        # Cache: "/a/b/" -> MkdirStatus
        self._cache: dict[str, MkdirStatus] = {}

    def ensure_path(self, full_path: str) -> None:
        """
        Make sure every ancestor directory of full_path exists remotely.

        Raises:
            OSError: The first failure from the directory client. Deeper
                directories are not attempted.
        """
        for directory in ancestor_directories(full_path):
            with self._lock:
                if directory in self._cache:
                    continue

            status = self._client.mkdir(directory)

            with self._lock:
                self._cache.setdefault(directory, status)
            if status is MkdirStatus.CREATED:
                logger.info("Created remote directory %s", directory)

    def status(self, directory: str) -> MkdirStatus | None:
        """Return the recorded outcome for a directory, or None if never seen."""
        with self._lock:
            return self._cache.get(directory)

    def __contains__(self, directory: str) -> bool:
        with self._lock:
            return directory in self._cache

    def __len__(self) -> int:
        with self._lock:
            return len(self._cache)
