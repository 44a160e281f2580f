"""Application settings loader from YAML configuration."""
import os
import yaml
from pathlib import Path
from typing import Any, Dict, List, Optional
from dataclasses import dataclass, field

from mpesa_ledger.utils.exceptions import ConfigError

DEFAULT_SENDER_IDS = ["MPESA", "M-PESA", "SAFARICOM", "MPKWA"]
DEFAULT_KEYWORD_REGEX = "(MPESA|M-PESA|Mpesa|MPKWA|Confirmed|received from)"
DEFAULT_CLASSIFIER_KEYWORDS = [
    "MPKWA2C", "M-PESA", "MPESA", "received from", "paid to",
    "sent to", "paybill", "buy goods", "transaction", "confirmed"
]


@dataclass
class AppSettings:
    """Application-wide settings loaded from config.yaml."""

    # App info
    app_name: str = "M-Pesa Ledger"
    app_version: str = "0.1.0"

    # Logging
    log_level: str = "INFO"
    log_max_file_size_mb: int = 10
    log_backup_count: int = 30
    log_dir: Optional[str] = None

    # Sources
    sender_ids: List[str] = field(default_factory=lambda: list(DEFAULT_SENDER_IDS))
    keyword_regex: str = DEFAULT_KEYWORD_REGEX
    source_timeout_seconds: float = 30.0
    source_max_workers: int = 5

    # Classifier
    classifier_keywords: List[str] = field(default_factory=lambda: list(DEFAULT_CLASSIFIER_KEYWORDS))

    # Retry
    retry_max_retries: int = 3
    retry_backoff_factor: float = 2.0

    @classmethod
    def defaults(cls) -> "AppSettings":
        """Built-in settings used when no config file exists."""
        return cls()

    @classmethod
    def load(cls, config_path: Path = None) -> "AppSettings":
        """Load settings from YAML file."""
        if config_path is None:
            config_path = default_config_path()

        config_path = Path(config_path)
        if not config_path.exists():
            raise FileNotFoundError(f"Configuration file not found: {config_path}")

        try:
            with open(config_path, "r", encoding="utf-8") as f:
                config = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML in {config_path}: {e}")

        return cls.from_dict(config)

    @classmethod
    def from_dict(cls, config: Dict[str, Any]) -> "AppSettings":
        """Build settings from a parsed config mapping; missing keys keep defaults."""
        base = cls()
        app = config.get("app") or {}
        logging_cfg = config.get("logging") or {}
        sources = config.get("sources") or {}
        classifier = config.get("classifier") or {}
        retry = config.get("retry") or {}

        settings = cls(
            app_name=app.get("name", base.app_name),
            app_version=str(app.get("version", base.app_version)),
            log_level=logging_cfg.get("level", base.log_level),
            log_max_file_size_mb=logging_cfg.get("max_file_size_mb", base.log_max_file_size_mb),
            log_backup_count=logging_cfg.get("backup_count", base.log_backup_count),
            log_dir=logging_cfg.get("log_dir", base.log_dir),
            sender_ids=list(sources.get("sender_ids", base.sender_ids)),
            keyword_regex=sources.get("keyword_regex", base.keyword_regex),
            source_timeout_seconds=float(sources.get("timeout_seconds", base.source_timeout_seconds)),
            source_max_workers=sources.get("max_workers", base.source_max_workers),
            classifier_keywords=list(classifier.get("keywords", base.classifier_keywords)),
            retry_max_retries=retry.get("max_retries", base.retry_max_retries),
            retry_backoff_factor=float(retry.get("backoff_factor", base.retry_backoff_factor)),
        )
        settings.validate()
        return settings

    def validate(self) -> None:
        """Raise ConfigError on values the pipeline cannot run with."""
        if self.log_level.upper() not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ConfigError(f"Unknown log level: {self.log_level}")
        if not self.classifier_keywords:
            raise ConfigError("At least one classifier keyword is required")
        if self.source_timeout_seconds <= 0:
            raise ConfigError("Source timeout must be positive")
        if self.source_max_workers < 1:
            raise ConfigError("Max source workers must be at least 1")
        if self.retry_max_retries < 1:
            raise ConfigError("Retry max_retries must be at least 1")


def default_config_path() -> Path:
    """config.yaml in the project root unless MPESA_LEDGER_CONFIG points elsewhere."""
    env_path = os.getenv("MPESA_LEDGER_CONFIG")
    if env_path:
        return Path(env_path)
    return Path(__file__).parent.parent.parent.parent / "config.yaml"


# Global settings instance
_settings: AppSettings = None


def get_settings(config_path: Path = None) -> AppSettings:
    """Get or create global settings instance."""
    global _settings
    if config_path is not None:
        _settings = AppSettings.load(Path(config_path))
    elif _settings is None:
        path = default_config_path()
        _settings = AppSettings.load(path) if path.exists() else AppSettings.defaults()
    return _settings
