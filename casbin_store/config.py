"""
casbin-store configuration loader.

Configuration comes from a YAML file:
- database: connection string and bootstrap behaviour for the adapter
- logging: log level for the command-line tool
"""

from dataclasses import dataclass, field
from pathlib import Path

import yaml


DEFAULT_DATABASE_URL = "sqlite+aiosqlite:///./data/casbin.db"


@dataclass
class DatabaseConfig:
    url: str = DEFAULT_DATABASE_URL
    # False: create and use a database named "casbin" on the server
    db_specified: bool = False
    echo: bool = False


@dataclass
class LoggingConfig:
    level: str = "INFO"


@dataclass
class Config:
    """Static configuration loaded from config.yaml."""
    database: DatabaseConfig = field(default_factory=DatabaseConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


def load_config(config_path: str | Path) -> Config:
    """Load configuration from a YAML file."""
    config_path = Path(config_path)

    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with open(config_path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}

    if not isinstance(data, dict):
        raise ValueError(f"Config file must contain a mapping: {config_path}")

    config = Config()

    # Database
    if "database" in data:
        db_data = data["database"] or {}
        config.database = DatabaseConfig(
            url=db_data.get("url", DEFAULT_DATABASE_URL),
            db_specified=bool(db_data.get("db_specified", False)),
            echo=bool(db_data.get("echo", False)),
        )

    # Logging
    if "logging" in data:
        logging_data = data["logging"] or {}
        config.logging = LoggingConfig(
            level=logging_data.get("level", "INFO"),
        )

    return config
