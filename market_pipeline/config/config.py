"""Configuration management for the market pipeline service."""

from pathlib import Path
from typing import List

from pydantic_settings import BaseSettings

DEFAULT_DATA_DIR = Path(__file__).resolve().parent.parent / "data"

USASPENDING_SEARCH_URL = "https://api.usaspending.gov/api/v2/search/spending_by_award/"
FPDS_FEED_URL = "https://www.fpds.gov/ezsearch/FEEDS/ATOM"


class Config(BaseSettings):
    """Application configuration from environment variables."""

    # Upstream award search
    usaspending_url: str = USASPENDING_SEARCH_URL
    request_timeout_seconds: float = 30.0
    page_size: int = 100
    page_delay_ms: int = 100
    max_consecutive_failures: int = 3

    # FPDS feed, queried for command-level DoD offices
    fpds_enabled: bool = True
    fpds_url: str = FPDS_FEED_URL
    fpds_max_records: int = 100

    # Aggregation
    min_agencies_target: int = 20
    command_expansion_limit: int = 5

    # Auxiliary datasets
    data_dir: Path = DEFAULT_DATA_DIR
    dataset_reload_minutes: int = 0

    # Service
    log_level: str = "INFO"
    api_host: str = "0.0.0.0"
    api_port: int = 8000
    cors_origins: List[str] = ["*"]

    model_config = {"env_file": ".env", "case_sensitive": False}


def validate_config(config: Config | None = None) -> Config:
    """Load and validate configuration.

    Raises ValueError with a message listing ALL problems found, not
    just the first one.
    """
    config = config or Config()
    problems = []
    if not config.usaspending_url.startswith(("http://", "https://")):
        problems.append(f"USASPENDING_URL must be an http(s) URL, got {config.usaspending_url!r}")
    if config.fpds_enabled and not config.fpds_url.startswith(("http://", "https://")):
        problems.append(f"FPDS_URL must be an http(s) URL, got {config.fpds_url!r}")
    for name in (
        "page_size",
        "max_consecutive_failures",
        "min_agencies_target",
        "command_expansion_limit",
        "fpds_max_records",
    ):
        if getattr(config, name) <= 0:
            problems.append(f"{name.upper()} must be positive")
    if config.request_timeout_seconds <= 0:
        problems.append("REQUEST_TIMEOUT_SECONDS must be positive")
    if config.page_delay_ms < 0 or config.dataset_reload_minutes < 0:
        problems.append("PAGE_DELAY_MS and DATASET_RELOAD_MINUTES must not be negative")
    if not config.data_dir.is_dir():
        problems.append(f"DATA_DIR does not exist: {config.data_dir}")
    if problems:
        raise ValueError(
            "Invalid configuration: " + "; ".join(problems)
            + ". Please fix them in your .env file or environment."
        )
    return config


def load_config() -> Config:
    """Load configuration from environment (startup entry point)."""
    return validate_config()
