"""
Configuration Loader.

Reads the simulator configuration from YAML, resolves ${VAR} references,
layers SPRINTSIM_* environment overrides on top and validates the result
into a SimulatorConfig.
"""

import os
import re
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from sprintsim.config.environment import load_environment
from sprintsim.config.models import SimulatorConfig

# Searched in order when no explicit path or SPRINTSIM_CONFIG is given
DEFAULT_CONFIG_PATHS = [
    "sprintsim.yaml",
    "sprintsim.yml",
    ".sprintsim.yaml",
    ".sprintsim.yml",
    "config.yaml",
]

CONFIG_ENV_VAR = "SPRINTSIM_CONFIG"

# env var -> dotted path inside the config mapping
ENV_VAR_OVERRIDES = {
    "SPRINTSIM_RUNS": "runs",
    "SPRINTSIM_SEED": "seed",
    "SPRINTSIM_DEBUG": "debug",
    "SPRINTSIM_LOG_LEVEL": "logging.level",
    "SPRINTSIM_LOG_FILE": "logging.file",
    "SPRINTSIM_DEV_EFFORT": "project.dev_effort",
    "SPRINTSIM_TEST_EFFORT": "project.test_effort",
    "SPRINTSIM_FEATURE_COUNT": "project.feature_count",
    "SPRINTSIM_SEARCH_RUNS": "search.simulation_runs",
    "SPRINTSIM_SEARCH_MAX_ITERATIONS": "search.max_iterations",
    "SPRINTSIM_SEARCH_GRID_STEPS": "search.grid_steps",
}

_TRUE_WORDS = {"true", "yes", "on"}
_FALSE_WORDS = {"false", "no", "off"}
_MAX_REPORTED_ERRORS = 5


class ConfigurationError(Exception):
    """Raised when a configuration file cannot be read or validated.

    Attributes:
        errors: Pydantic error dicts, if validation failed
        path: File the configuration came from, if any
    """

    def __init__(
        self,
        message: str,
        errors: list[dict] | None = None,
        path: Path | None = None,
    ) -> None:
        super().__init__(message)
        self.errors = errors or []
        self.path = path

    def __str__(self) -> str:
        lines = [super().__str__() + (f" (file: {self.path})" if self.path else "")]
        for err in self.errors[:_MAX_REPORTED_ERRORS]:
            location = ".".join(str(part) for part in err.get("loc", ()))
            lines.append(f"  - {location}: {err.get('msg', 'Unknown error')}")
        hidden = len(self.errors) - _MAX_REPORTED_ERRORS
        if hidden > 0:
            lines.append(f"  ... and {hidden} more errors")
        return "\n".join(lines)


def find_config_file() -> Path | None:
    """Locate the configuration file to use.

    SPRINTSIM_CONFIG wins and must exist; otherwise the first existing entry
    of DEFAULT_CONFIG_PATHS in the working directory, or None.

    Raises:
        FileNotFoundError: If SPRINTSIM_CONFIG names a missing file
    """
    explicit = os.environ.get(CONFIG_ENV_VAR)
    if explicit:
        path = Path(explicit)
        if not path.exists():
            raise FileNotFoundError(f"Config file specified by {CONFIG_ENV_VAR} not found: {explicit}")
        return path
    return next((Path(p) for p in DEFAULT_CONFIG_PATHS if Path(p).exists()), None)


class ConfigLoader:
    """Builds a SimulatorConfig from an optional YAML file plus the environment.

    Resolution order, later wins:
    1. SimulatorConfig defaults
    2. YAML values, with ${VAR} and ${VAR:-default} resolved
    3. SPRINTSIM_* overrides (see ENV_VAR_OVERRIDES)

    Usage:
        config = ConfigLoader("sprintsim.yaml").load()
        config = ConfigLoader().load_from_env()
    """

    # ${NAME}, ${NAME:-default} or ${NAME:default}
    ENV_PATTERN = re.compile(r"\$\{(\w+)(?::-?([^}]*))?\}")

    def __init__(
        self,
        config_path: str | Path | None = None,
        env_file: str = ".env",
    ) -> None:
        self._config_path = Path(config_path) if config_path else None
        self._env_file = env_file
        self._config: SimulatorConfig | None = None
        self._loaded_from_path: Path | None = None

    @property
    def config_path(self) -> Path | None:
        return self._config_path

    @property
    def loaded_from_path(self) -> Path | None:
        """Path of the file behind the last load, None for pure defaults."""
        return self._loaded_from_path

    @property
    def config(self) -> SimulatorConfig | None:
        return self._config

    def load(self, path: str | Path | None = None) -> SimulatorConfig:
        """Load and validate the configuration.

        Raises:
            ConfigurationError: On unreadable YAML or failed validation
            FileNotFoundError: If the config file does not exist
        """
        if path is not None:
            self._config_path = Path(path)
        load_environment(self._env_file)

        self._loaded_from_path = self._config_path
        raw = self._read_yaml(self._config_path) if self._config_path else {}
        for env_var, dotted in ENV_VAR_OVERRIDES.items():
            value = os.environ.get(env_var)
            if value is not None:
                _assign(raw, dotted, self._coerce_type(value))

        try:
            self._config = SimulatorConfig(**self._resolve(raw))
        except ValidationError as e:
            raise ConfigurationError(
                f"Configuration validation failed: {e.error_count()} errors",
                errors=e.errors(),
                path=self._loaded_from_path,
            ) from e
        return self._config

    def load_from_env(self) -> SimulatorConfig:
        """Load from SPRINTSIM_CONFIG, a default location, or pure defaults."""
        load_environment(self._env_file)
        self._config_path = find_config_file()
        return self.load()

    def save(self, path: str | Path | None = None) -> None:
        """Write the loaded configuration to YAML.

        Raises:
            ValueError: If nothing was loaded or no target path is known
        """
        if self._config is None:
            raise ValueError("No configuration loaded")
        target = Path(path) if path else self._config_path
        if target is None:
            raise ValueError("No path specified for saving")

        with open(target, "w") as f:
            yaml.safe_dump(self._config.to_yaml_dict(), f, default_flow_style=False, sort_keys=False)

    @staticmethod
    def _read_yaml(path: Path) -> dict[str, Any]:
        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")
        try:
            data = yaml.safe_load(path.read_text())
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML: {e}", path=path) from e

        if data is None:
            return {}
        if not isinstance(data, dict):
            raise ConfigurationError("Configuration root must be a mapping", path=path)
        return data

    def _resolve(self, data: Any) -> Any:
        """Resolve ${VAR} references and drop None values, recursively.

        YAML reads an empty section as None; dropping it lets the model
        default apply.
        """
        if isinstance(data, dict):
            resolved = {key: self._resolve(value) for key, value in data.items()}
            return {key: value for key, value in resolved.items() if value is not None}
        if isinstance(data, list):
            return [self._resolve(item) for item in data]
        if isinstance(data, str):
            return self._substitute(data)
        return data

    def _substitute(self, text: str) -> Any:
        # A value that is a single reference gets a typed result
        whole = self.ENV_PATTERN.fullmatch(text)
        if whole:
            value = os.environ.get(whole.group(1), whole.group(2))
            return text if value is None else self._coerce_type(value)

        def lookup(match: re.Match[str]) -> str:
            value = os.environ.get(match.group(1), match.group(2))
            return match.group(0) if value is None else value

        return self.ENV_PATTERN.sub(lookup, text)

    def _coerce_type(self, value: str) -> Any:
        """Interpret an env string as None, bool, int or float when it reads as one."""
        if value == "":
            return None
        word = value.lower()
        if word in _TRUE_WORDS:
            return True
        if word in _FALSE_WORDS:
            return False
        for number in (int, float):
            try:
                return number(value)
            except ValueError:
                continue
        return value


def _assign(mapping: dict[str, Any], dotted: str, value: Any) -> None:
    """Set `mapping[a][b][c] = value` for dotted path "a.b.c", creating levels."""
    *parents, leaf = dotted.split(".")
    for key in parents:
        if not isinstance(mapping.get(key), dict):
            mapping[key] = {}
        mapping = mapping[key]
    mapping[leaf] = value


_global_config: SimulatorConfig | None = None


def load_config(
    config_path: str | Path | None = None,
    env_file: str = ".env",
) -> SimulatorConfig:
    """Load configuration from a file, or defaults plus env when no path is given.

    The result becomes the process-wide config returned by get_config().
    """
    global _global_config
    _global_config = ConfigLoader(config_path, env_file).load()
    return _global_config


def load_config_from_env(env_file: str = ".env") -> SimulatorConfig:
    """Discover and load configuration, see find_config_file()."""
    global _global_config
    _global_config = ConfigLoader(env_file=env_file).load_from_env()
    return _global_config


def get_config() -> SimulatorConfig:
    """Return the process-wide configuration.

    Raises:
        RuntimeError: If no configuration has been loaded yet
    """
    if _global_config is None:
        raise RuntimeError(
            "Configuration not loaded. Call load_config() or load_config_from_env() first."
        )
    return _global_config


def reset_config() -> None:
    """Forget the process-wide configuration."""
    global _global_config
    _global_config = None


def create_default_config() -> SimulatorConfig:
    """Defaults only; ignores files and the environment."""
    return SimulatorConfig()
