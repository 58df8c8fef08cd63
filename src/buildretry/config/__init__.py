"""
Configuration management.

Configuration file parsing, environment resolution and policy construction.
"""

from buildretry.config.loader import Config, load_config, resolve_config
from buildretry.config.policy import policy_from_config, policy_from_dict

__all__ = [
    "load_config",
    "Config",
    "resolve_config",
    "policy_from_config",
    "policy_from_dict",
]
