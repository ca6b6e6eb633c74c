__version__ = "0.1.0"

# Public API exports
from .config import (
    AppConfig,
    ConnectionConfig,
    ListingConfig,
    LogConfig,
    YandexConfig,
    load_config,
)
from .filesystem import ObjectStream, YandexFs, YandexObject, new_fs
from .listing import ListingWalker
from .mkdir_cache import MkdirCache, ancestor_directories
from .registry import BackendInfo, BackendOption, BackendRegistry
from .yandex_client import DiskAPIError, MkdirStatus, ResourceInfo, YandexDiskClient

BACKEND_INFO = BackendInfo(
    name="yandex",
    description="Yandex Disk",
    new_fs=new_fs,
    options=[
        BackendOption("token", "Stored OAuth token (JSON)."),
        BackendOption("token_file", "Path to a file holding the stored OAuth token."),
        BackendOption("client_id", "Yandex Client Id - leave blank normally."),
        BackendOption("client_secret", "Yandex Client Secret - leave blank normally."),
    ],
)


def register(registry: BackendRegistry) -> None:
    """Register the Yandex Disk backend with a host's registry."""
    registry.register(BACKEND_INFO)


__all__ = [
    "__version__",
    # Configuration
    "AppConfig",
    "YandexConfig",
    "ListingConfig",
    "ConnectionConfig",
    "LogConfig",
    "load_config",
    # Client
    "YandexDiskClient",
    "ResourceInfo",
    "MkdirStatus",
    "DiskAPIError",
    # Directory cache and listing
    "MkdirCache",
    "ancestor_directories",
    "ListingWalker",
    # Filesystem
    "YandexFs",
    "YandexObject",
    "ObjectStream",
    "new_fs",
    # Registry
    "BackendInfo",
    "BackendOption",
    "BackendRegistry",
    "BACKEND_INFO",
    "register",
]
