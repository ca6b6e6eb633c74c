"""
Shared pytest fixtures for yandex-diskfs tests.
"""

import io
import json
import threading
from collections.abc import Generator
from pathlib import Path

import pytest

from yandex_diskfs.config import (
    AppConfig,
    ConnectionConfig,
    ListingConfig,
    LogConfig,
    YandexConfig,
)
from yandex_diskfs.filesystem import YandexFs
from yandex_diskfs.yandex_client import MkdirStatus, ResourceInfo

SAMPLE_TOKEN = {
    "access_token": "AQAAAAAtest",
    "token_type": "bearer",
    "refresh_token": "1:refresh:test",
    "expiry": "2030-01-01T00:00:00Z",
}


class FakeDiskClient:
    """
    In-memory stand-in for YandexDiskClient.

    Records every call. Directories in ``existing_dirs`` answer EXISTS;
    others are created on first request. ``pages`` is consumed one entry
    per list_files call; an exception entry is raised instead.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self.existing_dirs: set[str] = set()
        self.mkdir_errors: dict[str, Exception] = {}
        self.mkdir_calls: list[str] = []
        self.pages: list = []
        self.list_calls: list[tuple[int, int]] = []
        self.upload_calls: list[tuple[str, bool, bytes]] = []
        self.upload_error: Exception | None = None
        self.files: dict[str, bytes] = {}
        self.resources: dict[str, ResourceInfo] = {}
        self.delete_calls: list[tuple[str, bool]] = []
        self.closed = False

    def mkdir(self, path: str) -> MkdirStatus:
        with self._lock:
            self.mkdir_calls.append(path)
            if path in self.mkdir_errors:
                raise self.mkdir_errors[path]
            if path in self.existing_dirs:
                return MkdirStatus.EXISTS
            self.existing_dirs.add(path)
            return MkdirStatus.CREATED

    def list_files(self, limit: int, offset: int) -> list[ResourceInfo]:
        with self._lock:
            index = len(self.list_calls)
            self.list_calls.append((limit, offset))
        page = self.pages[index] if index < len(self.pages) else []
        if isinstance(page, Exception):
            raise page
        return page

    def get_resource(self, path: str) -> ResourceInfo:
        if path not in self.resources:
            raise FileNotFoundError(f"Not found: get_resource({path})")
        return self.resources[path]

    def upload(self, stream, path: str, overwrite: bool = True) -> None:
        if self.upload_error is not None:
            raise self.upload_error
        data = stream.read()
        self.upload_calls.append((path, overwrite, data))
        self.files[path] = data

    def download(self, path: str):
        if path not in self.files:
            raise FileNotFoundError(f"Not found: download({path})")
        return io.BytesIO(self.files[path])

    def delete(self, path: str, permanently: bool = True) -> None:
        self.delete_calls.append((path, permanently))
        self.files.pop(path, None)

    def close(self) -> None:
        self.closed = True


@pytest.fixture
def fake_client() -> FakeDiskClient:
    """Creates an empty in-memory disk client."""
    return FakeDiskClient()


@pytest.fixture
def listing_config() -> ListingConfig:
    """Small pages so pagination is easy to exercise."""
    return ListingConfig(page_size=3, checkers=2)


@pytest.fixture
def yandex_fs(fake_client: FakeDiskClient, listing_config: ListingConfig) -> YandexFs:
    """Creates a YandexFs rooted at 'remote' over the fake client."""
    return YandexFs("yandex", "remote", fake_client, listing_config)


@pytest.fixture
def conn_config() -> ConnectionConfig:
    """Connection config with no retry delay for tests."""
    return ConnectionConfig(
        timeout_seconds=30,
        retry_attempts=3,
        retry_delay_seconds=0,
    )


@pytest.fixture
def token_file(tmp_path: Path) -> Generator[Path, None, None]:
    """Writes a stored OAuth token to a temporary file."""
    path = tmp_path / "yandex-token.json"
    path.write_text(json.dumps(SAMPLE_TOKEN), encoding="utf-8")
    yield path


@pytest.fixture
def tmp_config_file(tmp_path: Path, token_file: Path) -> Generator[Path, None, None]:
    """
    Creates a temporary INI configuration file for config tests.

    Returns:
        Path to the temporary config file.
    """
    config_content = f"""[yandex]
name = mydisk
root = /backup/photos/
token_file = {token_file}
client_id = test-client-id
client_secret = test-client-secret

[listing]
page_size = 500
checkers = 4

[connection]
timeout_seconds = 45
retry_attempts = 5
retry_delay_seconds = 2

[logging]
level = DEBUG
file = test.log
console = false
"""
    config_path = tmp_path / "test_config.ini"
    config_path.write_text(config_content, encoding="utf-8")
    yield config_path


@pytest.fixture
def minimal_config_file(tmp_path: Path) -> Generator[Path, None, None]:
    """
    Creates a minimal INI configuration file with an inline token only.

    Returns:
        Path to the temporary config file.
    """
    config_content = f"""[yandex]
token = {json.dumps(SAMPLE_TOKEN)}
"""
    config_path = tmp_path / "minimal_config.ini"
    config_path.write_text(config_content, encoding="utf-8")
    yield config_path


@pytest.fixture
def app_config(token_file: Path, conn_config: ConnectionConfig) -> AppConfig:
    """Creates a complete AppConfig for testing."""
    return AppConfig(
        yandex=YandexConfig(name="yandex", root="remote", token_file=str(token_file)),
        listing=ListingConfig(page_size=1000, checkers=8),
        connection=conn_config,
        logging=LogConfig(level="DEBUG", file="", console=False),
    )
