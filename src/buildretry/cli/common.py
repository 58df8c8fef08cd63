"""
Helpers shared by CLI commands: loading the policy and setting up logging.
"""

from pathlib import Path
from typing import Any

import typer

from buildretry.config import load_config, policy_from_dict
from buildretry.core.decision import RetryPolicy
from buildretry.exceptions import ConfigurationError
from buildretry.utils.logging import setup_logging, setup_logging_from_config


def load_policy(
    config_path: Path | None,
    env: str | None,
    verbose: bool,
    overrides: dict[str, Any] | None = None,
) -> RetryPolicy:
    """
    Load the retry section from ``config_path`` (if given), apply command-line
    overrides and return the policy. Exits with code 2 on configuration errors.
    """
    try:
        if config_path is not None:
            config = load_config(config_path, env=env)
            if verbose:
                setup_logging(level="DEBUG", use_rich=True)
            else:
                project_dir = config_path if config_path.is_dir() else config_path.parent
                setup_logging_from_config(config.data, project_dir=project_dir)
            section = dict(config.retry)
        else:
            setup_logging(level="DEBUG" if verbose else "WARNING")
            section = {}

        for key, value in (overrides or {}).items():
            if value is not None:
                section[key] = value
        return policy_from_dict(section)
    except ConfigurationError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(2) from e
