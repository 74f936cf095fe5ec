"""
sprintsim - Configuration Management

This module provides configuration management including:
- Pydantic schemas for project, search and logging settings
- YAML configuration loading and validation
- Environment variable handling (.env and SPRINTSIM_* overrides)
"""

from sprintsim.config.environment import (
    EnvironmentConfig,
    ensure_dotenv_loaded,
    load_environment,
    reset_environment,
)
from sprintsim.config.loader import (
    CONFIG_ENV_VAR,
    DEFAULT_CONFIG_PATHS,
    ENV_VAR_OVERRIDES,
    ConfigLoader,
    ConfigurationError,
    create_default_config,
    find_config_file,
    get_config,
    load_config,
    load_config_from_env,
    reset_config,
)
from sprintsim.config.models import (
    FitnessWeights,
    LoggingConfig,
    LogLevel,
    ParameterRange,
    ProjectConfig,
    SearchConfig,
    SimulatorConfig,
)

__all__ = [
    # Config models
    "ProjectConfig",
    "ParameterRange",
    "FitnessWeights",
    "SearchConfig",
    "LogLevel",
    "LoggingConfig",
    "SimulatorConfig",
    # Loader
    "ConfigLoader",
    "ConfigurationError",
    "load_config",
    "load_config_from_env",
    "get_config",
    "reset_config",
    "create_default_config",
    "find_config_file",
    "CONFIG_ENV_VAR",
    "DEFAULT_CONFIG_PATHS",
    "ENV_VAR_OVERRIDES",
    # Environment
    "EnvironmentConfig",
    "load_environment",
    "ensure_dotenv_loaded",
    "reset_environment",
]
