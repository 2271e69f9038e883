"""
Configuration management for the retention system.

This module handles loading and validation of the YAML retention
configuration and resolution of the database connection string.
"""

import logging
import os
from pathlib import Path
from typing import Dict, Optional

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, StrictInt, ValidationError

from .retention_catalog import DEFAULT_CONN_STR
from .retention_errors import ConfigError

logger = logging.getLogger(__name__)

CONN_STR_ENV = "PARTPRUNE_CONN_STR"


class RetentionSettings(BaseModel):
    """Retention configuration file contents."""
    tables: Dict[str, StrictInt]
    conn_str: str = DEFAULT_CONN_STR
    dry_run: bool = False
    log_dir: str = "logs/retention"
    audit_log: bool = True
    metrics_textfile: Optional[str] = None


class RetentionConfigManager:
    """Loads retention configuration. Any problem with the file is fatal."""

    def __init__(self, config_path: str):
        self.config_path = Path(config_path)
        self.config = self._load_config()

    def _load_config(self) -> RetentionSettings:
        """Load configuration from YAML file."""
        try:
            with open(self.config_path, 'r') as f:
                config_data = yaml.safe_load(f)
        except OSError as e:
            raise ConfigError(self.config_path, f"error opening config: {e}") from e
        except yaml.YAMLError as e:
            raise ConfigError(self.config_path, f"invalid YAML: {e}") from e

        if not isinstance(config_data, dict):
            raise ConfigError(self.config_path, "top level must be a mapping")

        try:
            settings = RetentionSettings(**config_data)
        except ValidationError as e:
            raise ConfigError(self.config_path, str(e)) from e

        logger.info(f"Loaded retention config from {self.config_path} ({len(settings.tables)} tables)")
        return settings

    def get_tables(self) -> Dict[str, int]:
        """Get the table name to retention amount mapping."""
        return dict(self.config.tables)

    def get_conn_str(self, override: Optional[str] = None) -> str:
        return resolve_conn_str(override, self.config.conn_str)


def resolve_conn_str(override: Optional[str] = None, configured: Optional[str] = None) -> str:
    """
    Pick the connection string.

    Precedence: explicit override, then the PARTPRUNE_CONN_STR environment
    variable (a .env file is honoured), then the configured value, then the
    local default.
    """
    if override:
        return override

    load_dotenv()
    from_env = os.getenv(CONN_STR_ENV)
    if from_env:
        return from_env

    return configured or DEFAULT_CONN_STR
