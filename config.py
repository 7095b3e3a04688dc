"""Configuration management for the Sentinel news intelligence pipeline.

This module provides centralized configuration for all pipeline components.
All settings are loaded from environment variables with sensible defaults.

Environment Variables:
    Required:
        GEMINI_API_KEY: Google Gemini API key (grounded search + generation)
        YOUTUBE_API_KEY: YouTube Data API v3 key (video search)

    Models (PydanticAI format - provider:model):
        SEARCH_MODEL: Model used for grounded news search
        GENERATION_MODEL: Model for deep analysis, report and ideas
        FILTER_MODEL: Model for keyword generation and relevance filtering

    Video Discovery:
        KEYWORD_COUNT: Search keywords requested per run (default: 5)
        RESULTS_PER_KEYWORD: Video results per keyword (default: 3)
        MAX_VIDEOS: Cap on approved videos per report (default: 5)
        VIDEO_MAX_AGE_DAYS: Only search videos newer than this (0 = no filter)
        DESCRIPTION_PREVIEW_CHARS: Description length sent to the filter
        TRANSCRIPT_LANGUAGES: Comma-separated preferred caption languages

    Deep Verification:
        DEEP_SOURCE_LIMIT: Number of sources scraped (default: 3)
        SCRAPE_MAX_CHARS: Max extracted characters per page (default: 15000)
        SCRAPE_MIN_CHARS: Extracts at or below this length are discarded

    Timeouts:
        REQUEST_TIMEOUT_SECONDS: Video search and transcript calls
        SCRAPE_TIMEOUT_SECONDS: Page fetches
        GENERATION_TIMEOUT_SECONDS: Model calls

    Storage:
        DB_PATH: SQLite database file path

    Pipeline Behavior:
        MAX_WORKERS: Maximum concurrent transcript fetches

    Optional Features:
        ENABLE_LOGFIRE: Enable Logfire/OpenTelemetry tracing

    Logging:
        LOG_LEVEL: Logging verbosity (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        LOG_BACKUP_COUNT: Number of rotated log files to keep
        LOG_MAX_BYTES: Max log file size in bytes (0 = time-based rotation)
        LOG_FORMAT: Log format ('text' or 'json' for structured logging)
"""

import os
from dataclasses import dataclass, field
from pathlib import Path


def _env(key: str, default: str = "") -> str:
    """Get string environment variable with optional default.

    Args:
        key: Environment variable name
        default: Value to return if not set

    Returns:
        Environment variable value or default
    """
    return os.environ.get(key, default)


def _env_int(key: str, default: int) -> int:
    """Get integer environment variable with default.

    Args:
        key: Environment variable name
        default: Value to return if not set

    Returns:
        Parsed integer or default value

    Raises:
        ValueError: If value is set but cannot be parsed as integer
    """
    val = os.environ.get(key)
    if not val:
        return default
    try:
        return int(val)
    except ValueError:
        raise ValueError(f"Invalid integer value for {key}: '{val}'")


def _env_float(key: str, default: float) -> float:
    """Get float environment variable with default.

    Raises:
        ValueError: If value is set but cannot be parsed as float
    """
    val = os.environ.get(key)
    if not val:
        return default
    try:
        return float(val)
    except ValueError:
        raise ValueError(f"Invalid float value for {key}: '{val}'")


def _env_bool(key: str, default: bool = False) -> bool:
    """Get boolean environment variable with default.

    Recognizes truthy values: '1', 'true', 'yes', 'on'
    Recognizes falsy values: '0', 'false', 'no', 'off'
    """
    val = os.environ.get(key, "").lower()
    if val in ("1", "true", "yes", "on"):
        return True
    if val in ("0", "false", "no", "off"):
        return False
    return default


def _env_list(key: str, default: list[str]) -> list[str]:
    """Get comma-separated list environment variable with default."""
    val = os.environ.get(key, "")
    items = [item.strip() for item in val.split(",") if item.strip()]
    return items or list(default)


# Region flags accepted on a research request, mapped to search phrases.
# Used to build a topic when the caller does not supply one.
DEFAULT_REGION_KEYWORDS = {
    "pakistan": "Pakistan",
    "palestine": "Palestine/Gaza",
    "worldwide": "Global Muslim Issues",
}

# Topic used when neither a topic nor any region flag is given
DEFAULT_TOPIC = "Global News"

DEFAULT_MODEL = "google-gla:gemini-2.0-flash"

# Hard ceiling on videos per report, whatever MAX_VIDEOS says
MAX_VIDEOS_LIMIT = 5


@dataclass
class Config:
    """Application configuration loaded from environment variables.

    Use Config.load() to create an instance with values from the environment.

    Example:
        >>> config = Config.load()
        >>> if error := config.validate():
        ...     print(f"Config error: {error}")
    """

    # === Required ===
    gemini_api_key: str = ""  # GEMINI_API_KEY - Google AI API key
    youtube_api_key: str = ""  # YOUTUBE_API_KEY - YouTube Data API key

    # === AI Models ===
    # PydanticAI format: provider:model, or openai:<name>@<base_url> for local servers
    search_model: str = DEFAULT_MODEL  # Grounded news search
    generation_model: str = DEFAULT_MODEL  # Deep analysis, report, ideas
    filter_model: str = DEFAULT_MODEL  # Keywords + relevance filter

    # === Video Discovery ===
    keyword_count: int = 5
    results_per_keyword: int = 3
    max_videos: int = 5
    video_max_age_days: int = 30  # 0 disables the publishedAfter filter
    description_preview_chars: int = 150
    transcript_languages: list[str] = field(default_factory=lambda: ["en"])

    # === Deep Verification ===
    deep_source_limit: int = 3
    scrape_max_chars: int = 15000
    scrape_min_chars: int = 500

    # === Timeouts (seconds) ===
    request_timeout: float = 10.0
    scrape_timeout: float = 8.0
    generation_timeout: float = 90.0

    # === Topic defaults ===
    region_keywords: dict[str, str] = field(default_factory=lambda: dict(DEFAULT_REGION_KEYWORDS))

    # === Database ===
    db_path: Path = field(default_factory=lambda: Path("reports.db"))  # DB_PATH

    # === Pipeline Behavior ===
    max_workers: int = 5  # MAX_WORKERS - Concurrent transcript fetches

    # === Output Directories ===
    log_dir: Path = field(default_factory=lambda: Path("log"))  # LOG_DIR

    # === Logging Configuration ===
    log_level: str = "INFO"
    log_backup_count: int = 30
    log_max_bytes: int = 0
    log_format: str = "text"

    # === Optional: Observability ===
    enable_logfire: bool = False  # ENABLE_LOGFIRE - Enable distributed tracing
    logfire_token: str = ""  # LOGFIRE_TOKEN - Authentication token

    @classmethod
    def load(cls) -> "Config":
        """Load configuration from environment variables."""
        return cls(
            gemini_api_key=_env("GEMINI_API_KEY"),
            youtube_api_key=_env("YOUTUBE_API_KEY"),
            search_model=_env("SEARCH_MODEL", DEFAULT_MODEL),
            generation_model=_env("GENERATION_MODEL", DEFAULT_MODEL),
            filter_model=_env("FILTER_MODEL", DEFAULT_MODEL),
            keyword_count=_env_int("KEYWORD_COUNT", 5),
            results_per_keyword=_env_int("RESULTS_PER_KEYWORD", 3),
            max_videos=_env_int("MAX_VIDEOS", 5),
            video_max_age_days=_env_int("VIDEO_MAX_AGE_DAYS", 30),
            description_preview_chars=_env_int("DESCRIPTION_PREVIEW_CHARS", 150),
            transcript_languages=_env_list("TRANSCRIPT_LANGUAGES", ["en"]),
            deep_source_limit=_env_int("DEEP_SOURCE_LIMIT", 3),
            scrape_max_chars=_env_int("SCRAPE_MAX_CHARS", 15000),
            scrape_min_chars=_env_int("SCRAPE_MIN_CHARS", 500),
            request_timeout=_env_float("REQUEST_TIMEOUT_SECONDS", 10.0),
            scrape_timeout=_env_float("SCRAPE_TIMEOUT_SECONDS", 8.0),
            generation_timeout=_env_float("GENERATION_TIMEOUT_SECONDS", 90.0),
            db_path=Path(_env("DB_PATH", "reports.db")),
            max_workers=_env_int("MAX_WORKERS", 5),
            log_dir=Path(_env("LOG_DIR", "log")),
            enable_logfire=_env_bool("ENABLE_LOGFIRE", False),
            logfire_token=_env("LOGFIRE_TOKEN"),
            log_level=_env("LOG_LEVEL", "INFO").upper(),
            log_backup_count=_env_int("LOG_BACKUP_COUNT", 30),
            log_max_bytes=_env_int("LOG_MAX_BYTES", 0),
            log_format=_env("LOG_FORMAT", "text").lower(),
        )

    def missing_credentials(self) -> list[str]:
        """Return the names of required credentials that are not set."""
        missing = []
        if not self.gemini_api_key:
            missing.append("GEMINI_API_KEY")
        if not self.youtube_api_key:
            missing.append("YOUTUBE_API_KEY")
        return missing

    def validate(self) -> str | None:
        """Validate configuration for required fields and valid values.

        Checks:
            - GEMINI_API_KEY and YOUTUBE_API_KEY are set
            - Limits and timeouts are positive
            - Logging settings are recognized

        Returns:
            Error message string if invalid, None if valid.
        """
        if missing := self.missing_credentials():
            return f"Missing required environment variables: {', '.join(missing)}"
        if self.keyword_count <= 0:
            return "KEYWORD_COUNT must be positive"
        if self.results_per_keyword <= 0:
            return "RESULTS_PER_KEYWORD must be positive"
        if not 0 < self.max_videos <= MAX_VIDEOS_LIMIT:
            return f"MAX_VIDEOS must be between 1 and {MAX_VIDEOS_LIMIT}"
        if self.video_max_age_days < 0:
            return "VIDEO_MAX_AGE_DAYS must be non-negative"
        if self.deep_source_limit <= 0:
            return "DEEP_SOURCE_LIMIT must be positive"
        if self.scrape_max_chars <= self.scrape_min_chars:
            return "SCRAPE_MAX_CHARS must be greater than SCRAPE_MIN_CHARS"
        if min(self.request_timeout, self.scrape_timeout, self.generation_timeout) <= 0:
            return "Timeouts must be positive"
        if self.max_workers <= 0:
            return "MAX_WORKERS must be positive"
        if self.log_level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            return f"Invalid LOG_LEVEL '{self.log_level}' - must be DEBUG, INFO, WARNING, ERROR, or CRITICAL"
        if self.log_format not in ("text", "json"):
            return f"Invalid LOG_FORMAT '{self.log_format}' - must be 'text' or 'json'"
        if self.log_backup_count < 0:
            return "LOG_BACKUP_COUNT must be non-negative"
        if self.log_max_bytes < 0:
            return "LOG_MAX_BYTES must be non-negative"
        return None
