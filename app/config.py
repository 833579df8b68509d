from enum import Enum
import configparser
import re
from os import environ
from os.path import exists
from typing import Any, Optional
import logging

from pydantic import BaseModel, Field, ValidationError, computed_field, field_validator

logger = logging.getLogger(__name__)

_PATH = "app{suffix}.conf"
_CONFIG = None


def _convert_conf_to_sec(value: str) -> int:
    conversion_map = {"s": 1, "m": 60, "h": 3600, "d": 86400}
    match = re.match(r"^(\d+)([smhd])$", value)
    if not match:
        raise ValueError(
            f"Incorrect input {value!r}, must be digits followed by one of {list(conversion_map.keys())}"
        )

    return int(match.group(1)) * conversion_map[match.group(2)]


def _to_bool(v: Any, default: bool) -> bool:
    if v in (None, "", " "):
        return default
    if isinstance(v, str):
        return v.lower() in ("yes", "true", "t", "1")
    return bool(v)


class LogLevel(str, Enum):
    debug = "debug"
    info = "info"
    warning = "warning"
    error = "error"
    critical = "critical"


class ConfigApp(BaseModel):
    loglevel: LogLevel = Field(default=LogLevel.info)


class ConfigDatabase(BaseModel):
    dsn: str
    create_tables: bool = Field(default=False)
    retry_backoff: list[float] = Field(
        default=[0.1, 0.2, 0.4, 0.8, 1.6, 3.2, 4.8, 6.4, 10.0]
    )
    pool_size: int = Field(default=5, ge=0, lt=100)
    max_overflow: int = Field(default=10, ge=0, lt=100)
    pool_pre_ping: bool = Field(default=False)
    pool_recycle: int = Field(default=3600, ge=0)

    @field_validator("create_tables", "pool_pre_ping", mode="before")
    def validate_bools(cls, v: Any) -> bool:
        return _to_bool(v, False)

    @field_validator("retry_backoff", mode="before")
    def validate_retry_backoff(cls, v: Any) -> Any:
        if isinstance(v, str):
            return [float(i) for i in v.split(",") if i.strip() != ""]
        return v

    @field_validator("pool_size", mode="before")
    def validate_pool_size(cls, v: Any) -> int:
        if v in (None, "", " "):
            return 5
        return int(v)

    @field_validator("max_overflow", mode="before")
    def validate_max_overflow(cls, v: Any) -> int:
        if v in (None, "", " "):
            return 10
        return int(v)

    @field_validator("pool_recycle", mode="before")
    def validate_pool_recycle(cls, v: Any) -> int:
        if v in (None, "", " "):
            return 3600
        return int(v)


class ConfigImporter(BaseModel):
    # Directory that receives exactly one SHAKCOMPLETE.TXT or SHAKDELTA.TXT per run
    inbox_path: str
    file_encoding: str = Field(default="iso8859_15")
    # Move a successfully imported file to <processed_path>/<run id>/
    archive_processed: bool = Field(default=False)
    processed_path: str | None = Field(default=None)

    @field_validator("file_encoding", mode="before")
    def validate_file_encoding(cls, v: Any) -> str:
        if v in (None, "", " "):
            return "iso8859_15"
        return str(v)

    @field_validator("archive_processed", mode="before")
    def validate_archive_processed(cls, v: Any) -> bool:
        return _to_bool(v, False)

    @field_validator("processed_path", mode="before")
    def validate_processed_path(cls, v: Any) -> str | None:
        if v in (None, "", " "):
            return None
        return str(v)


class Scheduler(BaseModel):
    delay_input: str = Field(default="5m")
    max_logs_entries: int = Field(default=1000, ge=0)
    # Whether the scheduler should poll the inbox in the background
    automatic_background_import: bool = Field(default=False)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def delay_input_in_sec(self) -> int:
        return _convert_conf_to_sec(self.delay_input)

    @field_validator("delay_input", mode="before")
    def validate_delay_input(cls, v: Any) -> str:
        if v in (None, "", " "):
            return "5m"
        _convert_conf_to_sec(str(v))
        return str(v)

    @field_validator("max_logs_entries", mode="before")
    def validate_max_log_entries(cls, v: Any) -> int:
        if v in (None, "", " "):
            return 1000
        return int(v)

    @field_validator("automatic_background_import", mode="before")
    def validate_automatic_background_import(cls, v: Any) -> bool:
        return _to_bool(v, False)


class ConfigUvicorn(BaseModel):
    swagger_enabled: bool = Field(default=False)
    docs_url: str = Field(default="/docs")
    redoc_url: str = Field(default="/redoc")
    host: str = Field(default="127.0.0.1")
    port: Optional[int] = Field(default=8000, gt=0, lt=65535)
    reload: bool = Field(default=True)
    reload_delay: float = Field(default=1)
    reload_dirs: list[str] = Field(default=["app"])
    use_ssl: bool = Field(default=False)
    ssl_base_dir: str | None = Field(default=None)
    ssl_cert_file: str | None = Field(default=None)
    ssl_key_file: str | None = Field(default=None)

    @field_validator("host", mode="before")
    def validate_host(cls, v: Any) -> str:
        if v in (None, "", " "):
            return "127.0.0.1"
        return str(v)

    @field_validator("port", mode="before")
    def validate_port(cls, v: Any) -> int:
        if v in (None, "", " "):
            return 8000
        return int(v)

    @field_validator("swagger_enabled", "use_ssl", mode="before")
    def validate_disabled_by_default(cls, v: Any) -> bool:
        return _to_bool(v, False)

    @field_validator("reload", mode="before")
    def validate_reload(cls, v: Any) -> bool:
        return _to_bool(v, True)

    @field_validator("reload_delay", mode="before")
    def validate_reload_delay(cls, v: Any) -> float:
        if v in (None, "", " "):
            return 1.0
        return float(v)

    @field_validator("reload_dirs", mode="before")
    def validate_reload_dirs(cls, v: Any) -> list[str]:
        if v in (None, "", " "):
            return ["app"]
        if isinstance(v, str):
            return [d.strip() for d in v.split(",")]
        return v  # type: ignore


class ConfigStats(BaseModel):
    enabled: bool = Field(default=False)
    host: str | None = Field(default=None)
    port: int | None = Field(default=None)
    module_name: str | None = Field(default="sksimporter")

    @field_validator("enabled", mode="before")
    def validate_enabled(cls, v: Any) -> bool:
        return _to_bool(v, False)

    @field_validator("host", "module_name", mode="before")
    def validate_optional_str(cls, v: Any) -> str | None:
        if v in (None, "", " "):
            return None
        return str(v)

    @field_validator("port", mode="before")
    def validate_port(cls, v: Any) -> int | None:
        if v in (None, "", " "):
            return None
        return int(v)


class Config(BaseModel):
    app: ConfigApp
    database: ConfigDatabase
    importer: ConfigImporter
    uvicorn: ConfigUvicorn = Field(default_factory=ConfigUvicorn)
    stats: ConfigStats = Field(default_factory=ConfigStats)
    scheduler: Scheduler = Field(default_factory=Scheduler)


def read_ini_file(path: str) -> Any:
    ini_data = configparser.ConfigParser()
    ini_data.read(path)

    ret = {}
    for section in ini_data.sections():
        ret[section] = dict(ini_data[section])

    return ret


def reset_config() -> None:
    global _CONFIG
    _CONFIG = None


def set_config(config: Config) -> None:
    global _CONFIG
    _CONFIG = config


def get_config(path: str | None = None) -> Config:
    global _CONFIG

    if _CONFIG is not None:
        return _CONFIG

    if path is None:
        suffix = environ.get("APP_ENV", "")
        if suffix:
            suffix = f".{suffix}"
        path = _PATH.replace("{suffix}", suffix)
        logger.info(f"Reading configuration using file: {path}")

    if not exists(path):
        raise FileNotFoundError(f"Config file not found: {path}")

    # INI-type files are not a standard format for pydantic, sections are
    # turned into dicts first and validated per section model.
    ini_data = read_ini_file(path)

    try:
        _CONFIG = Config(**ini_data)
    except ValidationError as e:
        logger.error(f"Configuration validation error: {e}")
        raise e

    return _CONFIG
