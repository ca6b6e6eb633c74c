import configparser
from dataclasses import dataclass
from pathlib import Path


@dataclass
class YandexConfig:
    name: str = "yandex"
    root: str = ""
    token: str | None = None  # JSON-encoded OAuth token
    token_file: str | None = None
    client_id: str | None = None
    client_secret: str | None = None


@dataclass
class ListingConfig:
    page_size: int = 1000  # items per flat-list request
    checkers: int = 8  # bound of the listing hand-off queue


@dataclass
class ConnectionConfig:
    timeout_seconds: int = 30
    retry_attempts: int = 3
    retry_delay_seconds: int = 1


@dataclass
class LogConfig:
    level: str = "INFO"
    file: str = "yandex-diskfs.log"
    console: bool = True


@dataclass
class AppConfig:
    yandex: YandexConfig
    listing: ListingConfig
    connection: ConnectionConfig
    logging: LogConfig


def _parse_bool(value: str) -> bool:
    return value.lower() in ("true", "1", "yes")


def _parse_int(section: configparser.SectionProxy, key: str, target: dict) -> None:
    """Copy an integer option into target, raising ValueError on bad input."""
    raw = section.get(key)
    if not raw:
        return
    try:
        target[key] = int(raw)
    except ValueError:
        raise ValueError(f"Invalid {key} value in config: '{raw}' - must be an integer")


def load_config(config_path: str | None = None, **cli_args) -> AppConfig:
    """
    Load configuration from an INI file and/or CLI arguments.
    CLI arguments take precedence over config file.

    Args:
        config_path: Path to the INI configuration file.
        **cli_args: Key-value pairs from command line arguments.

    Returns:
        AppConfig: The populated configuration object.

    Raises:
        FileNotFoundError: If config_path is provided but does not exist.
        ValueError: If no token source is configured or a value is invalid.
    """
    yandex_config = {
        "name": "yandex",
        "root": "",
        "token": None,
        "token_file": None,
        "client_id": None,
        "client_secret": None,
    }
    listing_config = {
        "page_size": 1000,
        "checkers": 8,
    }
    connection_config = {
        "timeout_seconds": 30,
        "retry_attempts": 3,
        "retry_delay_seconds": 1,
    }
    log_config = {
        "level": "INFO",
        "file": "yandex-diskfs.log",
        "console": True,
    }

    if config_path is not None:
        config_file = Path(config_path)
        if not config_file.exists():
            raise FileNotFoundError(f"Configuration file not found: {config_path}")

        # token values are raw JSON, no '%' interpolation
        parser = configparser.ConfigParser(interpolation=None)
        parser.read(config_file, encoding="utf-8")

        if parser.has_section("yandex"):
            yandex_section = parser["yandex"]
            for key in ("name", "root", "token", "token_file", "client_id", "client_secret"):
                if yandex_section.get(key):
                    yandex_config[key] = yandex_section.get(key)

        if parser.has_section("listing"):
            listing_section = parser["listing"]
            _parse_int(listing_section, "page_size", listing_config)
            _parse_int(listing_section, "checkers", listing_config)

        if parser.has_section("connection"):
            conn_section = parser["connection"]
            _parse_int(conn_section, "timeout_seconds", connection_config)
            _parse_int(conn_section, "retry_attempts", connection_config)
            _parse_int(conn_section, "retry_delay_seconds", connection_config)

        if parser.has_section("logging"):
            log_section = parser["logging"]
            if log_section.get("level"):
                log_config["level"] = log_section.get("level")
            if log_section.get("file") is not None:
                log_config["file"] = log_section.get("file")
            if log_section.get("console"):
                log_config["console"] = _parse_bool(log_section.get("console", "false"))

    # Override with CLI arguments (cli_args take precedence)
    for key in ("name", "root", "token", "token_file", "client_id", "client_secret"):
        if cli_args.get(key) is not None:
            yandex_config[key] = cli_args[key]
    if cli_args.get("page_size") is not None:
        listing_config["page_size"] = int(cli_args["page_size"])
    if cli_args.get("checkers") is not None:
        listing_config["checkers"] = int(cli_args["checkers"])
    if cli_args.get("debug"):
        log_config["level"] = "DEBUG"
        log_config["console"] = True

    if not yandex_config["token"] and not yandex_config["token_file"]:
        raise ValueError("Missing required configuration fields: token or token_file")
    if listing_config["page_size"] < 1:
        raise ValueError(f"Invalid page_size: {listing_config['page_size']}. Must be at least 1.")
    if listing_config["checkers"] < 1:
        raise ValueError(f"Invalid checkers: {listing_config['checkers']}. Must be at least 1.")
    if connection_config["retry_attempts"] < 1:
        raise ValueError(
            f"Invalid retry_attempts: {connection_config['retry_attempts']}. Must be at least 1."
        )

    return AppConfig(
        yandex=YandexConfig(
            name=yandex_config["name"],
            root=yandex_config["root"].strip("/"),
            token=yandex_config["token"],
            token_file=yandex_config["token_file"],
            client_id=yandex_config["client_id"],
            client_secret=yandex_config["client_secret"],
        ),
        listing=ListingConfig(
            page_size=listing_config["page_size"],
            checkers=listing_config["checkers"],
        ),
        connection=ConnectionConfig(
            timeout_seconds=connection_config["timeout_seconds"],
            retry_attempts=connection_config["retry_attempts"],
            retry_delay_seconds=connection_config["retry_delay_seconds"],
        ),
        logging=LogConfig(
            level=log_config["level"],
            file=log_config["file"],
            console=log_config["console"],
        ),
    )
