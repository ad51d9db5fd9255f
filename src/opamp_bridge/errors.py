from __future__ import annotations


class ConfigError(Exception):
    """Base class for configuration loading failures."""


class ConfigDecodeError(ConfigError):
    """The config file is not a valid YAML mapping of the expected shape."""


class CredentialError(ConfigError):
    """No usable cluster credential could be resolved."""
