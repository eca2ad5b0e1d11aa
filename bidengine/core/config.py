"""
Engine configuration parameters for bidengine.

Defines the bidding rule toggles, concurrency limits and storage paths.
Values can be overridden through ``BIDENGINE_*`` environment variables,
optionally loaded from a ``.env`` file.
"""

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import find_dotenv, load_dotenv


ENV_PREFIX = "BIDENGINE_"

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


@dataclass
class EngineConfig:
    """Engine-wide configuration parameters"""

    # Bidding rules
    enforce_sale_liveness: bool = False  # Reject bids on sales whose end time has passed

    # Concurrency
    lock_timeout: float = 5.0  # Seconds to wait for a sale lock before giving up

    # Storage
    data_dir: Path = Path("data")
    db_name: str = "auction.db"

    # Logging
    log_dir: Path = Path("logs")
    log_level: int = logging.INFO
    log_to_file: bool = False

    @property
    def db_path(self) -> Path:
        return self.data_dir / self.db_name


# Global config instance (can be overridden)
config = EngineConfig()


def _parse_bool(name: str, raw: str) -> bool:
    value = raw.strip().lower()
    if value in _TRUE_VALUES:
        return True
    if value in _FALSE_VALUES:
        return False
    raise ValueError(f"{ENV_PREFIX}{name} must be a boolean, got {raw!r}")


def _parse_level(raw: str) -> int:
    value = raw.strip()
    if value.isdigit():
        return int(value)
    level = logging.getLevelName(value.upper())
    if not isinstance(level, int):
        raise ValueError(f"{ENV_PREFIX}LOG_LEVEL is not a logging level: {raw!r}")
    return level


def load_config(env_file: Optional[str] = None) -> EngineConfig:
    """
    Load configuration from the environment.

    Args:
        env_file: Path to a .env file. When None, the nearest .env found
            from the working directory upwards is used, if any. Variables
            already present in the process environment take precedence
            over the file.

    Returns:
        EngineConfig instance
    """
    if env_file is None:
        env_file = find_dotenv(usecwd=True)
    if env_file and Path(env_file).is_file():
        load_dotenv(env_file, override=False)

    cfg = EngineConfig()
    env = os.environ

    raw = env.get(f"{ENV_PREFIX}ENFORCE_SALE_LIVENESS")
    if raw is not None:
        cfg.enforce_sale_liveness = _parse_bool("ENFORCE_SALE_LIVENESS", raw)

    raw = env.get(f"{ENV_PREFIX}LOCK_TIMEOUT")
    if raw is not None:
        cfg.lock_timeout = float(raw)
        if cfg.lock_timeout < 0:
            raise ValueError(f"{ENV_PREFIX}LOCK_TIMEOUT must be >= 0, got {raw!r}")

    raw = env.get(f"{ENV_PREFIX}DATA_DIR")
    if raw:
        cfg.data_dir = Path(raw).expanduser()

    raw = env.get(f"{ENV_PREFIX}DB_NAME")
    if raw:
        cfg.db_name = raw

    raw = env.get(f"{ENV_PREFIX}LOG_DIR")
    if raw:
        cfg.log_dir = Path(raw).expanduser()

    raw = env.get(f"{ENV_PREFIX}LOG_LEVEL")
    if raw:
        cfg.log_level = _parse_level(raw)

    raw = env.get(f"{ENV_PREFIX}LOG_TO_FILE")
    if raw is not None:
        cfg.log_to_file = _parse_bool("LOG_TO_FILE", raw)

    return cfg
