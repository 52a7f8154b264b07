from enum import Enum
import configparser
from os import environ
from os.path import exists
from typing import Any, Optional
import logging

from pydantic import BaseModel, Field, ValidationError, field_validator

logger = logging.getLogger(__name__)

_PATH = "app{suffix}.conf"
_CONFIG = None


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
    # Install the row level security policies on startup (PostgreSQL only)
    apply_rls: bool = Field(default=False)
    pool_size: int = Field(default=5, ge=0, lt=100)
    max_overflow: int = Field(default=10, ge=0, lt=100)
    pool_pre_ping: bool = Field(default=False)
    pool_recycle: int = Field(default=3600, ge=0)

    @field_validator("create_tables", "apply_rls", "pool_pre_ping", mode="before")
    def validate_flags(cls, v: Any) -> bool:
        return _to_bool(v, False)

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


class ConfigUvicorn(BaseModel):
    swagger_enabled: bool = Field(default=True)
    docs_url: str = Field(default="/docs")
    host: str = Field(default="127.0.0.1")
    port: Optional[int] = Field(default=8000, gt=0, lt=65535)
    reload: bool = Field(default=True)
    reload_delay: float = Field(default=1)
    reload_dirs: list[str] = Field(default=["nlcore_fhir"])
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

    @field_validator("swagger_enabled", mode="before")
    def validate_swagger_enabled(cls, v: Any) -> bool:
        return _to_bool(v, True)

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
            return ["nlcore_fhir"]
        if isinstance(v, str):
            return [d.strip() for d in v.split(",")]
        return v  # type: ignore

    @field_validator("use_ssl", mode="before")
    def validate_use_ssl(cls, v: Any) -> bool:
        return _to_bool(v, False)


class ConfigGateway(BaseModel):
    url: str = Field(default="https://auth-test-b2c.healthtalk.ai")
    user_info_path: str = Field(default="/api/user/me")
    timeout: int = Field(default=10)
    retries: int = Field(default=1, ge=1)
    backoff: float = Field(default=0.1)

    @field_validator("timeout", mode="before")
    def validate_timeout(cls, v: Any) -> int:
        if v in (None, "", " "):
            return 10
        return int(v)

    @field_validator("retries", mode="before")
    def validate_retries(cls, v: Any) -> int:
        if v in (None, "", " "):
            return 1
        return int(v)

    @field_validator("backoff", mode="before")
    def validate_backoff(cls, v: Any) -> float:
        if v in (None, "", " "):
            return 0.1
        return float(v)


class ConfigFhir(BaseModel):
    default_count: int = Field(default=20, ge=1)
    max_count: int = Field(default=1000, ge=1)
    bsn_hash_salt: str = Field(default="")
    server_name: str = Field(default="MEDrecord FHIR R4 Server")
    publisher: str = Field(default="MEDrecord")
    publisher_url: str = Field(default="https://medrecord.nl")

    @field_validator("default_count", mode="before")
    def validate_default_count(cls, v: Any) -> int:
        if v in (None, "", " "):
            return 20
        return int(v)

    @field_validator("max_count", mode="before")
    def validate_max_count(cls, v: Any) -> int:
        if v in (None, "", " "):
            return 1000
        return int(v)


class ConfigStats(BaseModel):
    enabled: bool = Field(default=False)
    host: str | None = Field(default=None)
    port: int | None = Field(default=None)
    module_name: str | None = Field(default=None)

    @field_validator("enabled", mode="before")
    def validate_enabled(cls, v: Any) -> bool:
        return _to_bool(v, False)

    @field_validator("port", mode="before")
    def validate_port(cls, v: Any) -> int | None:
        if v in (None, "", " "):
            return None
        return int(v)


class Config(BaseModel):
    app: ConfigApp
    database: ConfigDatabase
    uvicorn: ConfigUvicorn
    gateway: ConfigGateway
    fhir: ConfigFhir
    stats: ConfigStats


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
    global _PATH

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

    # INI files keep us in line with the other services; sections that are
    # optional get their pydantic defaults.
    ini_data = read_ini_file(path)
    for section in ("uvicorn", "gateway", "fhir", "stats"):
        ini_data.setdefault(section, {})
    ini_data.setdefault("app", {})

    try:
        _CONFIG = Config(**ini_data)
    except ValidationError as e:
        logger.error(f"Configuration validation error: {e}")
        raise e

    return _CONFIG
