"""Exceptions shared across xa modules."""


class XaError(Exception):
    """Base exception for xa errors."""
    pass


class ConfigError(XaError):
    """Configuration directory or file cannot be used."""
    pass
