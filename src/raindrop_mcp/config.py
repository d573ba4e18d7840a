import json
import logging
import os
from pathlib import Path
from typing import Optional
from pydantic import BaseModel

logger = logging.getLogger(__name__)


class Config(BaseModel):
    token: Optional[str] = None
    log_level: str = "INFO"


CONFIG_DIR = Path.home() / ".config" / "raindrop-mcp"
CONFIG_FILE = CONFIG_DIR / "config.json"

TOKEN_ENV = "RAINDROP_TOKEN"
LOG_LEVEL_ENV = "RAINDROP_MCP_LOG_LEVEL"


def load_config() -> Config:
    """Load configuration from disk, then apply environment overrides."""
    config = Config()
    if CONFIG_FILE.exists():
        try:
            with open(CONFIG_FILE, "r") as f:
                config = Config.model_validate(json.load(f))
        except (OSError, ValueError) as e:
            logger.warning("Ignoring unreadable config file %s: %s", CONFIG_FILE, e)

    if os.environ.get(TOKEN_ENV):
        config.token = os.environ[TOKEN_ENV]
    if os.environ.get(LOG_LEVEL_ENV):
        config.log_level = os.environ[LOG_LEVEL_ENV].upper()
    return config


def save_config(config: Config) -> None:
    """Save configuration to disk with secure permissions."""
    CONFIG_DIR.mkdir(parents=True, exist_ok=True)
    # Set directory permissions to 700 (drwx------)
    CONFIG_DIR.chmod(0o700)

    # Create file with 600 permissions (rw-------)
    if not CONFIG_FILE.exists():
        CONFIG_FILE.touch(mode=0o600)
    else:
        CONFIG_FILE.chmod(0o600)

    with open(CONFIG_FILE, "w") as f:
        json.dump(config.model_dump(exclude_none=True), f, indent=2)


def delete_config() -> None:
    """Delete the configuration file."""
    if CONFIG_FILE.exists():
        CONFIG_FILE.unlink()
