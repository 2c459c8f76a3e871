"""Utility layer errors."""


class UtilError(Exception):
    """Base error for infrastructure plumbing outside the domain."""

    pass


class ConfigurationError(UtilError):
    """Settings can't be turned into a working component.

    Raised, for example, for a database URL naming an unsupported backend.
    """

    pass
