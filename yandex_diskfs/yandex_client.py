"""
Yandex Disk REST API client.

Thin wrapper over the v1 ``/disk/resources`` endpoints used by the
filesystem layer: flat file listing, directory creation, upload,
download, delete and single-resource lookup. HTTP failures are
translated into builtin exceptions so callers never see requests types.
"""

import enum
import logging
import re
import time
from dataclasses import dataclass
from datetime import datetime
from typing import BinaryIO

import requests
from requests.auth import AuthBase

from .config import ConnectionConfig

logger = logging.getLogger(__name__)

API_URL = "https://cloud-api.yandex.net/v1/disk"

# All paths returned by the API start with this marker
ROOT_MARKER = "disk:/"

_FRACTION = re.compile(r"\.(\d+)")


def six_digit_fraction(value: str) -> str:
    """Pad or cut fractional seconds to the six digits fromisoformat accepts."""
    return _FRACTION.sub(lambda m: "." + m.group(1)[:6].ljust(6, "0"), value)


class MkdirStatus(enum.Enum):
    """Outcome of a single create-directory request."""

    CREATED = "created"
    EXISTS = "exists"


class DiskAPIError(OSError):
    """Unexpected response from the Yandex Disk API."""

    def __init__(self, message: str, status_code: int | None = None, body: str = ""):
        super().__init__(message)
        self.status_code = status_code
        self.body = body


def parse_timestamp(value: str | None) -> datetime | None:
    """
    Parse an API timestamp such as ``2014-04-21T14:57:13+04:00``.

    Returns None for empty or malformed values.
    """
    if not value:
        return None
    try:
        return datetime.fromisoformat(six_digit_fraction(value.replace("Z", "+00:00")))
    except ValueError:
        logger.debug("Unparseable timestamp: %r", value)
        return None


@dataclass
class ResourceInfo:
    """Metadata of one remote resource as returned by the API."""

    path: str
    name: str = ""
    size: int = 0
    md5: str = ""
    modified: str = ""
    type: str = "file"
    mime_type: str = ""

    @classmethod
    def from_json(cls, data: dict) -> "ResourceInfo":
        return cls(
            path=data.get("path", ""),
            name=data.get("name", ""),
            size=int(data.get("size", 0) or 0),
            md5=data.get("md5", ""),
            modified=data.get("modified", ""),
            type=data.get("type", "file"),
            mime_type=data.get("mime_type", ""),
        )

    @property
    def mod_time(self) -> datetime | None:
        return parse_timestamp(self.modified)


class YandexDiskClient:
    """
    Yandex Disk client over a shared requests session.

    The session is safe to use from several threads at once, so calls are
    not serialized; concurrency is bounded by the callers.
    """

    def __init__(
        self,
        conn_config: ConnectionConfig,
        auth: AuthBase | None = None,
        session: requests.Session | None = None,
        api_url: str = API_URL,
    ):
        self.conn_config = conn_config
        self.api_url = api_url.rstrip("/")
        self._session = session or requests.Session()
        if auth is not None:
            self._session.auth = auth

    def close(self) -> None:
        """Close the underlying HTTP session."""
        self._session.close()
        logger.debug("Yandex Disk session closed")

    def _request(self, method: str, url: str, **kwargs) -> requests.Response:
        """Send one request, translating transport failures."""
        if "://" not in url:
            url = f"{self.api_url}/{url.lstrip('/')}"
        try:
            return self._session.request(
                method, url, timeout=self.conn_config.timeout_seconds, **kwargs
            )
        except requests.Timeout as e:
            raise TimeoutError(f"{method} {url} timed out: {e}") from e
        except requests.ConnectionError as e:
            raise ConnectionError(f"{method} {url} failed: {e}") from e
        except requests.RequestException as e:
            raise DiskAPIError(f"{method} {url} failed: {e}") from e

    def _raise_for_status(self, resp: requests.Response, operation: str) -> None:
        """Raise the exception matching an unexpected response status."""
        status = resp.status_code
        body = resp.text
        if status == 404:
            raise FileNotFoundError(f"Not found: {operation}")
        if status in (401, 403):
            raise PermissionError(f"Access denied: {operation} [{status}]: {body}")
        raise DiskAPIError(f"{operation} error [{status}]: {body}", status, body)

    def _json(self, resp: requests.Response, operation: str) -> dict:
        try:
            return resp.json()
        except ValueError as e:
            raise DiskAPIError(
                f"{operation}: malformed response body", resp.status_code, resp.text
            ) from e

    def _with_retry(self, operation: str, func, *args, **kwargs):
        """Execute with retry logic and exponential backoff for rate limits."""
        last_exception = None

        for attempt in range(self.conn_config.retry_attempts):
            try:
                return func(*args, **kwargs)
            except FileNotFoundError:
                raise
            except PermissionError:
                raise
            except DiskAPIError as e:
                if e.status_code == 429:
                    # Rate limited -- backoff
                    delay = (2**attempt) * self.conn_config.retry_delay_seconds
                    logger.warning(
                        "%s rate limited (attempt %d/%d), waiting %ds",
                        operation,
                        attempt + 1,
                        self.conn_config.retry_attempts,
                        delay,
                    )
                    time.sleep(delay)
                    last_exception = e
                    continue
                if e.status_code is None or e.status_code < 500:
                    raise

                last_exception = e
                logger.warning(
                    "%s failed (attempt %d/%d): HTTP %d",
                    operation,
                    attempt + 1,
                    self.conn_config.retry_attempts,
                    e.status_code,
                )
            except (TimeoutError, ConnectionError) as e:
                last_exception = e
                logger.warning(
                    "%s failed (attempt %d/%d): %s",
                    operation,
                    attempt + 1,
                    self.conn_config.retry_attempts,
                    e,
                )

            if attempt < self.conn_config.retry_attempts - 1:
                time.sleep(self.conn_config.retry_delay_seconds)

        logger.error("%s failed after %d attempts", operation, self.conn_config.retry_attempts)
        if isinstance(last_exception, TimeoutError):
            raise TimeoutError(f"{operation} timed out: {last_exception}") from last_exception
        raise OSError(f"{operation} failed: {last_exception}") from last_exception

    def mkdir(self, path: str) -> MkdirStatus:
        """
        Create a single directory at an exact path.

        Args:
            path: Absolute remote directory path ending in "/".

        Returns:
            MkdirStatus.CREATED on 201, MkdirStatus.EXISTS on 409.

        Raises:
            DiskAPIError: On any other status (carries status code and body).
        """
        operation = f"mkdir({path})"

        def _mkdir_internal() -> MkdirStatus:
            resp = self._request("PUT", "resources", params={"path": path})
            if resp.status_code == 201:
                logger.debug("Created directory %s", path)
                return MkdirStatus.CREATED
            if resp.status_code == 409:
                logger.debug("Directory already exists: %s", path)
                return MkdirStatus.EXISTS
            self._raise_for_status(resp, operation)

        return self._with_retry(operation, _mkdir_internal)

    def list_files(self, limit: int, offset: int) -> list[ResourceInfo]:
        """Fetch one page of the flat file list."""
        operation = f"list_files(limit={limit}, offset={offset})"

        def _list_files_internal() -> list[ResourceInfo]:
            resp = self._request(
                "GET", "resources/files", params={"limit": limit, "offset": offset}
            )
            if resp.status_code != 200:
                self._raise_for_status(resp, operation)
            data = self._json(resp, operation)
            items = data.get("items")
            if not isinstance(items, list):
                raise DiskAPIError(f"{operation}: response has no items", 200, resp.text)
            return [ResourceInfo.from_json(item) for item in items]

        return self._with_retry(operation, _list_files_internal)

    def get_resource(self, path: str) -> ResourceInfo:
        """Get metadata for a single resource."""
        operation = f"get_resource({path})"

        def _get_resource_internal() -> ResourceInfo:
            resp = self._request("GET", "resources", params={"path": path})
            if resp.status_code != 200:
                self._raise_for_status(resp, operation)
            return ResourceInfo.from_json(self._json(resp, operation))

        return self._with_retry(operation, _get_resource_internal)

    def _get_link(self, endpoint: str, operation: str, **params) -> dict:
        """Request an upload/download link, which is a JSON {href, method}."""

        def _get_link_internal() -> dict:
            resp = self._request("GET", endpoint, params=params)
            if resp.status_code != 200:
                self._raise_for_status(resp, operation)
            link = self._json(resp, operation)
            if not link.get("href"):
                raise DiskAPIError(f"{operation}: response has no href", 200, resp.text)
            return link

        return self._with_retry(operation, _get_link_internal)

    def upload(self, stream: BinaryIO, path: str, overwrite: bool = True) -> None:
        """
        Upload a stream to path.

        The payload itself is sent once; a stream cannot be rewound for
        a retry.
        """
        operation = f"upload({path})"
        logger.debug("Uploading %s (overwrite=%s)", path, overwrite)

        link = self._get_link(
            "resources/upload",
            operation,
            path=path,
            overwrite="true" if overwrite else "false",
        )
        resp = self._request(link.get("method", "PUT"), link["href"], data=stream)
        if resp.status_code not in (200, 201, 202):
            self._raise_for_status(resp, operation)
        logger.debug("Uploaded %s", path)

    def download(self, path: str) -> BinaryIO:
        """Open a remote file for reading. The caller must close the result."""
        operation = f"download({path})"
        logger.debug("Downloading %s", path)

        link = self._get_link("resources/download", operation, path=path)
        resp = self._request(link.get("method", "GET"), link["href"], stream=True)
        if resp.status_code != 200:
            try:
                self._raise_for_status(resp, operation)
            finally:
                resp.close()
        resp.raw.decode_content = True
        return resp.raw

    def delete(self, path: str, permanently: bool = True) -> None:
        """Delete a resource, bypassing the trash when permanently is set."""
        operation = f"delete({path})"

        def _delete_internal() -> None:
            resp = self._request(
                "DELETE",
                "resources",
                params={"path": path, "permanently": "true" if permanently else "false"},
            )
            # 202 means the delete continues as an async operation
            if resp.status_code not in (202, 204):
                self._raise_for_status(resp, operation)
            logger.debug("Deleted %s", path)

        self._with_retry(operation, _delete_internal)
