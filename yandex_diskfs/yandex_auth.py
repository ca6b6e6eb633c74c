"""
Yandex OAuth token handling.

Decodes the stored OAuth token (the JSON blob kept in the config file or a
token file), refreshes it when expired and attaches it to API requests.
Obtaining the first token is not handled here.
"""

import json
import logging
import threading
from datetime import datetime, timezone
from pathlib import Path

from google.auth.exceptions import RefreshError
from google.auth.transport.requests import Request
from google.oauth2.credentials import Credentials
from requests.auth import AuthBase

from .config import YandexConfig
from .yandex_client import six_digit_fraction

logger = logging.getLogger(__name__)

TOKEN_URL = "https://oauth.yandex.com/token"


def get_token_path(token_file: str | None) -> Path | None:
    """Get the token file path, or None when the token lives inline in the config."""
    if token_file:
        return Path(token_file).expanduser()
    return None


def _parse_expiry(value: str | None) -> datetime | None:
    """Parse a token expiry into the naive UTC datetime google-auth expects."""
    if not value or value.startswith("0001-01-01"):
        return None
    value = six_digit_fraction(value.replace("Z", "+00:00"))
    expiry = datetime.fromisoformat(value)
    if expiry.tzinfo is not None:
        expiry = expiry.astimezone(timezone.utc).replace(tzinfo=None)
    return expiry


def decode_token(
    token_json: str,
    client_id: str | None = None,
    client_secret: str | None = None,
) -> Credentials:
    """
    Decode a stored OAuth token into credentials.

    Args:
        token_json: JSON object with access_token and optional
            refresh_token, token_type and expiry.
        client_id: OAuth client id, needed to refresh.
        client_secret: OAuth client secret, needed to refresh.

    Returns:
        Credentials bound to the Yandex token endpoint.

    Raises:
        ValueError: If the token cannot be decoded.
    """
    try:
        data = json.loads(token_json)
    except json.JSONDecodeError as e:
        raise ValueError(f"Stored token is not valid JSON: {e}") from e

    if not isinstance(data, dict) or not data.get("access_token"):
        raise ValueError("Stored token has no access_token")

    try:
        expiry = _parse_expiry(data.get("expiry"))
    except ValueError as e:
        raise ValueError(f"Stored token has an invalid expiry: {data.get('expiry')}") from e

    return Credentials(
        token=data["access_token"],
        refresh_token=data.get("refresh_token") or None,
        token_uri=TOKEN_URL,
        client_id=client_id,
        client_secret=client_secret,
        expiry=expiry,
    )


def encode_token(creds: Credentials) -> str:
    """Encode credentials back into the stored token JSON format."""
    data = {
        "access_token": creds.token,
        "token_type": "bearer",
        "refresh_token": creds.refresh_token or "",
    }
    if creds.expiry is not None:
        data["expiry"] = creds.expiry.replace(tzinfo=timezone.utc).isoformat()
    return json.dumps(data)


def load_token(config: YandexConfig) -> Credentials:
    """
    Load stored credentials from the config's inline token or token file.

    Raises:
        FileNotFoundError: If token_file is set but missing.
        ValueError: If no token is configured or it cannot be decoded.
    """
    if config.token:
        logger.debug("Using inline token for remote '%s'", config.name)
        return decode_token(config.token, config.client_id, config.client_secret)

    token_path = get_token_path(config.token_file)
    if token_path is None:
        raise ValueError(f"No token configured for remote '{config.name}'")
    if not token_path.exists():
        raise FileNotFoundError(f"Token file not found: {token_path}")

    logger.debug("Loading token from %s", token_path)
    return decode_token(
        token_path.read_text(encoding="utf-8"), config.client_id, config.client_secret
    )


def save_credentials(creds: Credentials, token_path: Path) -> None:
    """Save OAuth credentials to disk for future use."""
    token_path.parent.mkdir(parents=True, exist_ok=True)
    token_path.write_text(encode_token(creds), encoding="utf-8")
    logger.info("Saved credentials to %s", token_path)


def refresh_credentials(creds: Credentials) -> Credentials | None:
    """
    Refresh expired credentials using the refresh token.

    Returns refreshed credentials, or None if refresh fails.
    """
    if not creds or not creds.refresh_token:
        return None

    if creds.valid:
        return creds

    if not creds.client_id or not creds.client_secret:
        logger.warning("Token expired but no client_id/client_secret configured to refresh it")
        return None

    try:
        creds.refresh(Request())
        logger.debug("Refreshed access token")
        return creds
    except RefreshError as e:
        logger.warning("Token refresh failed: %s", e)
        return None


class OAuthTokenAuth(AuthBase):
    """
    requests auth hook sending ``Authorization: OAuth <token>``.

    Expired tokens are refreshed before the request is sent and written
    back to token_path when one is given.
    """

    def __init__(self, creds: Credentials, token_path: Path | None = None):
        self.creds = creds
        self.token_path = token_path
        self._lock = threading.Lock()

    def _ensure_fresh(self) -> None:
        with self._lock:
            if not self.creds.expired or not self.creds.refresh_token:
                return
            refreshed = refresh_credentials(self.creds)
            if refreshed is not None and self.token_path is not None:
                save_credentials(refreshed, self.token_path)

    def __call__(self, request):
        self._ensure_fresh()
        request.headers["Authorization"] = f"OAuth {self.creds.token}"
        return request
