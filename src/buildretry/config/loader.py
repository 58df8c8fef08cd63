"""
Configuration file loading.

Loads ``retry.yaml`` (plus an optional ``retry.{env}.yaml`` override) and
resolves environment placeholders.
"""

import os
import re
from collections.abc import Iterator
from pathlib import Path
from typing import Any

import yaml

from buildretry.exceptions import ConfigurationError

CONFIG_FILENAME = "retry.yaml"

_ENV_VAR_RE = re.compile(r"\$\{([^}]+)\}")


class Config:
    """buildretry configuration container with dict-like access."""

    def __init__(self, data: dict[str, Any]):
        self.data = data
        # Convenience properties for common config sections
        self.retry = data.get("retry") or {}
        self.logging = data.get("logging") or {}

    def get(self, key: str, default: Any = None) -> Any:
        """Get configuration value using dot notation."""
        value: Any = self.data
        for k in key.split("."):
            if not isinstance(value, dict):
                return default
            value = value.get(k)
            if value is None:
                return default
        return value

    def __getitem__(self, key: str) -> Any:
        """Dict-like access: config['key'] or config['nested.key']."""
        if "." in key:
            if key not in self:
                raise KeyError(f"Config key '{key}' not found")
            return self.get(key)
        if key in self.data:
            value = self.data[key]
            if isinstance(value, dict):
                return Config(value)
            return value
        raise KeyError(f"Config key '{key}' not found")

    def __contains__(self, key: str) -> bool:
        value: Any = self.data
        for k in key.split("."):
            if not isinstance(value, dict) or k not in value:
                return False
            value = value[k]
        return True

    def __iter__(self) -> Iterator[str]:
        return iter(self.data)

    def keys(self):
        return self.data.keys()

    def items(self):
        return self.data.items()

    def validate(self) -> None:
        """Validate configuration structure."""
        errors = []
        if not isinstance(self.data, dict):
            raise ConfigurationError(f"Configuration must be a mapping, got {type(self.data).__name__}")

        for section in ("retry", "logging"):
            value = self.data.get(section)
            if value is not None and not isinstance(value, dict):
                errors.append(f"Configuration '{section}' must be a mapping, got {type(value).__name__}")

        if errors:
            raise ConfigurationError("\n".join(errors))


def load_config(path: Path | str | None = None, env: str | None = None) -> Config:
    """
    Load buildretry configuration.

    Args:
        path: Config file, or a directory containing ``retry.yaml``
            (default: current directory)
        env: Environment name; ``retry.{env}.yaml`` next to the base file
            overrides it when present

    Returns:
        Validated Config with placeholders resolved

    Raises:
        ConfigurationError: If the file is missing or not valid YAML
    """
    path = Path(path) if path is not None else Path.cwd()
    config_path = path / CONFIG_FILENAME if path.is_dir() else path

    if not config_path.is_file():
        raise ConfigurationError(
            f"Configuration file not found: {config_path}\n"
            f"  Suggestion: Create a {CONFIG_FILENAME} file or pass --config"
        )

    config_data = _read_yaml(config_path)

    if env:
        env_config_path = config_path.with_name(f"{config_path.stem}.{env}{config_path.suffix}")
        if env_config_path.is_file():
            _merge_dict(config_data, _read_yaml(env_config_path))

    config = Config(resolve_config(config_data, env or "dev"))
    config.validate()
    return config


def _read_yaml(config_path: Path) -> dict[str, Any]:
    try:
        with open(config_path) as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        mark = getattr(e, "problem_mark", None)
        where = f" at line {mark.line + 1}, column {mark.column + 1}" if mark is not None else ""
        raise ConfigurationError(
            f"Error parsing {config_path.name}{where}:\n"
            f"  {e}\n"
            f"  Suggestion: Check YAML syntax, ensure proper indentation and quotes"
        ) from e
    except OSError as e:
        raise ConfigurationError(f"Cannot read configuration file {config_path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigurationError(f"Configuration must be a mapping, got {type(data).__name__}")
    return data


def _merge_dict(base: dict, override: dict) -> None:
    """Recursively merge override into base."""
    for key, value in override.items():
        if key in base and isinstance(base[key], dict) and isinstance(value, dict):
            _merge_dict(base[key], value)
        else:
            base[key] = value


def resolve_config(data: Any, env: str = "dev") -> Any:
    """
    Substitute placeholders in every string of ``data``.

    ``${NAME}`` becomes the environment variable NAME (unset variables are
    kept verbatim) and ``{env}`` becomes the environment name, so
    ``logs/retry-{env}.log`` resolves per environment.
    """
    if isinstance(data, dict):
        return {key: resolve_config(value, env) for key, value in data.items()}
    if isinstance(data, list):
        return [resolve_config(item, env) for item in data]
    if not isinstance(data, str):
        return data
    expanded = _ENV_VAR_RE.sub(lambda m: os.environ.get(m.group(1), m.group(0)), data)
    return expanded.replace("{env}", env)
