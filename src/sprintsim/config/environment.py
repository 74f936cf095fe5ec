"""
Environment Variable Handling.

Loads `.env` files with python-dotenv and exposes the environment settings
the simulator understands. The loader calls load_environment() before
reading SPRINTSIM_* overrides, so values from `.env` take part in them.
"""

import os
from pathlib import Path

from dotenv import load_dotenv
from pydantic import BaseModel, Field

# EnvironmentConfig field -> environment variable
ENV_VARS = {
    "config_path": "SPRINTSIM_CONFIG",
    "seed": "SPRINTSIM_SEED",
    "log_level": "SPRINTSIM_LOG_LEVEL",
}

_dotenv_loaded: bool = False


def ensure_dotenv_loaded(env_file: str = ".env") -> bool:
    """Load the .env file into os.environ once per process.

    Existing environment variables are never overridden. The file is looked
    up as given, then relative to the working directory.

    Returns:
        True if a .env file was loaded now or earlier, False if none was found
    """
    global _dotenv_loaded
    if _dotenv_loaded:
        return True

    _dotenv_loaded = True
    for candidate in (Path(env_file), Path.cwd() / env_file):
        if candidate.exists():
            load_dotenv(candidate, override=False)
            return True
    return False


class EnvironmentConfig(BaseModel):
    """Environment-provided settings.

    Attributes:
        config_path: Config file named by SPRINTSIM_CONFIG
        seed: Default seed from SPRINTSIM_SEED
        log_level: Default log level from SPRINTSIM_LOG_LEVEL
        env_file: The .env file that was consulted
    """

    config_path: str | None = Field(default=None, description="Config file path")
    seed: int | None = Field(default=None, description="Default random seed")
    log_level: str | None = Field(default=None, description="Default log level")
    env_file: str = Field(default=".env", description="Path to .env file")

    @classmethod
    def from_environ(cls, env_file: str = ".env") -> "EnvironmentConfig":
        values = {key: os.environ.get(var) for key, var in ENV_VARS.items()}
        return cls(env_file=env_file, **{k: v for k, v in values.items() if v})


_config: EnvironmentConfig | None = None


def load_environment(env_file: str = ".env") -> EnvironmentConfig:
    """Load .env and return the environment settings, cached per env file."""
    global _config
    ensure_dotenv_loaded(env_file)
    if _config is None or _config.env_file != env_file:
        _config = EnvironmentConfig.from_environ(env_file)
    return _config


def reset_environment() -> None:
    """Forget cached settings so the next load re-reads .env and os.environ."""
    global _config, _dotenv_loaded
    _config = None
    _dotenv_loaded = False
