"""
Building a RetryPolicy from the ``retry`` configuration section.

Keys follow the names the retry options have always had in job
configuration (``regexp_for_rerun``, ``rerun_if_unstable``,
``rerun_matrix_part``, ``check_regexp``, ``max_schedule``), with shorter
aliases accepted.
"""

from typing import Any

from buildretry.config.loader import Config
from buildretry.core.decision import RetryPolicy
from buildretry.delays import delay_from_config
from buildretry.exceptions import ConfigurationError

_ALIASES = {
    "max_retries": ("max_retries", "max_schedule"),
    "gating_pattern": ("regexp_for_rerun", "gating_pattern"),
    "retry_on_instability": ("rerun_if_unstable", "retry_on_instability"),
    "rerun_whole_fanout": ("rerun_matrix_part", "rerun_whole_fanout"),
}


def _lookup(section: dict[str, Any], field_name: str, default: Any) -> Any:
    for key in _ALIASES[field_name]:
        if key in section and section[key] is not None:
            return section[key]
    return default


def _as_bool(value: Any, key: str) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.strip().lower() in ("true", "yes", "on", "1"):
        return True
    if isinstance(value, str) and value.strip().lower() in ("false", "no", "off", "0", ""):
        return False
    raise ConfigurationError(f"retry.{key} must be a boolean, got {value!r}")


def policy_from_dict(section: dict[str, Any] | None) -> RetryPolicy:
    """
    Build a RetryPolicy from a ``retry`` mapping.

    ``check_regexp: false`` keeps ``regexp_for_rerun`` in the file but turns
    the log gate off. A missing ``delay`` gives progressive 5 min / 3 h.

    Raises:
        ConfigurationError: On invalid values, including an invalid pattern
            or combination filter
    """
    section = section or {}
    if not isinstance(section, dict):
        raise ConfigurationError(f"retry must be a mapping, got {type(section).__name__}")

    try:
        max_retries = int(_lookup(section, "max_retries", 0))
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"retry.max_retries must be an integer: {e}") from e

    pattern = _lookup(section, "gating_pattern", None)
    check_regexp = _as_bool(section.get("check_regexp", True), "check_regexp")
    if pattern is not None and not isinstance(pattern, str):
        pattern = str(pattern)

    return RetryPolicy(
        max_retries=max_retries,
        delay=delay_from_config(section.get("delay")),
        rerun_whole_fanout=_as_bool(_lookup(section, "rerun_whole_fanout", False), "rerun_matrix_part"),
        gating_pattern=pattern if check_regexp and pattern else None,
        retry_on_instability=_as_bool(_lookup(section, "retry_on_instability", False), "rerun_if_unstable"),
        combination_filter=section.get("combination_filter") or None,
    )


def policy_from_config(config: Config) -> RetryPolicy:
    """Build the RetryPolicy described by a loaded configuration."""
    return policy_from_dict(config.retry)
