"""
Configuration management for artifact quota reclamation.

Raw inputs are read by :class:`Settings` from the environment the way a
GitHub Action receives them (``INPUT_LIMIT``, ``INPUT_REMOVEDIRECTION``, ...)
and validated into a typed :class:`ReclaimConfig` by :func:`build_config`.
"""

from __future__ import annotations

import re
from typing import Any, List, Optional, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from .errors import ConfigurationError
from .models import Namespace, RemoveDirection

DEFAULT_API_URL = "https://api.github.com"

MIN_COMPRESSION_LEVEL = 0
MAX_COMPRESSION_LEVEL = 9

_SIZE_UNITS = {
    "b": 1,
    "kb": 1 << 10,
    "mb": 1 << 20,
    "gb": 1 << 30,
    "tb": 1 << 40,
    "pb": 1 << 50,
}
_SIZE_PATTERN = re.compile(r"^\s*(\d+(?:\.\d+)?)\s*(b|kb|mb|gb|tb|pb)?\s*$", re.IGNORECASE)


def parse_size(value: Union[str, int]) -> int:
    """
    Parse a human-readable byte size.

    Units are binary (1KB = 1024 bytes) and case-insensitive; a bare number
    is a byte count. Fractional results are floored.

    Examples:
        "1024" -> 1024
        "1.5kb" -> 1536
        "10 MB" -> 10485760
    """
    if isinstance(value, bool):
        raise ConfigurationError(f"Invalid size: {value!r}")
    if isinstance(value, int):
        if value < 0:
            raise ConfigurationError(f"Invalid size: {value}")
        return value

    match = _SIZE_PATTERN.match(value or "")
    if not match:
        raise ConfigurationError(f"Invalid size: '{value}'")

    number, unit = match.groups()
    return int(float(number) * _SIZE_UNITS[(unit or "b").lower()])


def format_size(value: int) -> str:
    """Render a byte count with the largest unit that keeps it >= 1."""
    magnitude = abs(value)
    unit, factor = "B", 1
    for name, size in _SIZE_UNITS.items():
        if magnitude >= size:
            unit, factor = name.upper(), size
    if unit == "B":
        return f"{value}B"
    formatted = f"{value / factor:.2f}".rstrip("0").rstrip(".")
    return f"{formatted}{unit}"


def parse_multiline(raw: Optional[str]) -> List[str]:
    """
    Split a multi-line input into trimmed, non-empty entries.

    Examples:
        "dist\\n\\n  build/out  \\r\\n" -> ["dist", "build/out"]
    """
    if not raw:
        return []
    return [line.strip() for line in re.split(r"\r?\n", raw) if line.strip()]


def validate_compression_level(level: Any) -> int:
    """Return ``level`` as an int in 0-9 or raise ConfigurationError."""
    if isinstance(level, bool):
        raise ConfigurationError(f"Invalid compression level: {level!r}")
    try:
        parsed = int(str(level).strip())
    except (TypeError, ValueError):
        raise ConfigurationError(
            f"Invalid compression level '{level}', must be a number between "
            f"{MIN_COMPRESSION_LEVEL} and {MAX_COMPRESSION_LEVEL}"
        ) from None
    if not MIN_COMPRESSION_LEVEL <= parsed <= MAX_COMPRESSION_LEVEL:
        raise ConfigurationError(
            f"Invalid compression level {parsed}, must be between "
            f"{MIN_COMPRESSION_LEVEL} and {MAX_COMPRESSION_LEVEL}"
        )
    return parsed


class Settings(BaseSettings):
    """Raw inputs, as strings where the user may write units."""

    model_config = SettingsConfigDict(
        env_prefix="INPUT_",
        env_file=".env",
        env_file_encoding="utf-8",
        env_ignore_empty=True,
        populate_by_name=True,
        extra="ignore",
    )

    # Quota
    limit: Optional[str] = None
    request_size: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("request_size", "INPUT_REQUESTSIZE", "INPUT_REQUEST_SIZE"),
    )
    reserved_size: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("reserved_size", "INPUT_RESERVEDSIZE", "INPUT_RESERVED_SIZE"),
    )
    upload_paths: str = Field(
        default="",
        validation_alias=AliasChoices("upload_paths", "INPUT_UPLOADPATHS", "INPUT_UPLOAD_PATHS"),
    )
    remove_direction: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices(
            "remove_direction", "INPUT_REMOVEDIRECTION", "INPUT_REMOVE_DIRECTION"
        ),
    )
    compression_level: str = Field(
        default="0",
        validation_alias=AliasChoices(
            "compression_level", "INPUT_COMPRESSIONLEVEL", "INPUT_COMPRESSION_LEVEL"
        ),
    )
    count_unnamed: bool = Field(
        default=True,
        validation_alias=AliasChoices("count_unnamed", "INPUT_COUNTUNNAMED", "INPUT_COUNT_UNNAMED"),
    )

    # Remote client
    max_retries: int = Field(
        default=5,
        validation_alias=AliasChoices("max_retries", "INPUT_MAXRETRIES", "INPUT_MAX_RETRIES"),
    )
    retries_enabled: bool = Field(
        default=True,
        validation_alias=AliasChoices(
            "retries_enabled", "INPUT_RETRIESENABLED", "INPUT_RETRIES_ENABLED"
        ),
    )
    page_size: int = Field(
        default=50,
        validation_alias=AliasChoices("page_size", "INPUT_PAGESIZE", "INPUT_PAGE_SIZE"),
    )

    # Failure handling
    fail_on_error: bool = Field(
        default=True,
        validation_alias=AliasChoices("fail_on_error", "INPUT_FAILONERROR", "INPUT_FAIL_ON_ERROR"),
    )

    # GitHub
    github_token: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("github_token", "INPUT_TOKEN", "GITHUB_TOKEN"),
    )
    github_repository: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("github_repository", "INPUT_REPOSITORY", "GITHUB_REPOSITORY"),
    )
    github_api_url: str = Field(
        default=DEFAULT_API_URL,
        validation_alias=AliasChoices("github_api_url", "GITHUB_API_URL"),
    )

    # Logging
    log_level: str = Field(
        default="INFO", validation_alias=AliasChoices("log_level", "LOG_LEVEL")
    )
    log_format: str = Field(
        default="console", validation_alias=AliasChoices("log_format", "LOG_FORMAT")
    )


class ReclaimConfig(BaseModel):
    """Validated configuration for one reclamation run."""

    model_config = ConfigDict(frozen=True)

    namespace: Namespace
    token: str = Field(..., min_length=1)
    api_url: str = DEFAULT_API_URL

    limit: int = Field(..., gt=0)
    request_size: Optional[int] = Field(None, ge=0)
    reserved_size: Optional[int] = Field(None, ge=0)
    upload_paths: List[str] = Field(default_factory=list)
    remove_direction: RemoveDirection
    compression_level: int = Field(0, ge=MIN_COMPRESSION_LEVEL, le=MAX_COMPRESSION_LEVEL)
    count_unnamed: bool = True

    max_retries: int = Field(5, ge=0)
    retries_enabled: bool = True
    page_size: int = Field(50, ge=1, le=100)

    fail_on_error: bool = True


def load_settings(**overrides: Any) -> Settings:
    """Read settings from the environment, with keyword overrides on top."""
    try:
        return Settings(**overrides)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid settings: {e}") from e


def build_config(settings: Settings) -> ReclaimConfig:
    """
    Validate raw settings into a ReclaimConfig.

    Raises:
        ConfigurationError: On any invalid or missing input
    """
    if not settings.limit:
        raise ConfigurationError("limit must be provided")
    limit = parse_size(settings.limit)
    if limit <= 0:
        raise ConfigurationError(f"limit must be greater than zero, got '{settings.limit}'")

    request_size = parse_size(settings.request_size) if settings.request_size else None
    reserved_size = parse_size(settings.reserved_size) if settings.reserved_size else None
    upload_paths = parse_multiline(settings.upload_paths)

    if request_size is None and reserved_size is None and not upload_paths:
        raise ConfigurationError("Either requestSize or uploadPaths must be provided")

    try:
        direction = RemoveDirection((settings.remove_direction or "").strip().lower())
    except ValueError:
        raise ConfigurationError(
            "Invalid removeDirection, must be either 'newest' or 'oldest'"
        ) from None

    compression_level = validate_compression_level(settings.compression_level)

    if not settings.github_token:
        raise ConfigurationError("A GitHub token must be provided (GITHUB_TOKEN)")
    if not settings.github_repository:
        raise ConfigurationError("A repository must be provided (GITHUB_REPOSITORY)")
    namespace = Namespace.parse(settings.github_repository)

    try:
        return ReclaimConfig(
            namespace=namespace,
            token=settings.github_token,
            api_url=settings.github_api_url,
            limit=limit,
            request_size=request_size,
            reserved_size=reserved_size,
            upload_paths=upload_paths,
            remove_direction=direction,
            compression_level=compression_level,
            count_unnamed=settings.count_unnamed,
            max_retries=settings.max_retries,
            retries_enabled=settings.retries_enabled,
            page_size=settings.page_size,
            fail_on_error=settings.fail_on_error,
        )
    except ValidationError as e:
        raise ConfigurationError(f"Invalid configuration: {e}") from e
