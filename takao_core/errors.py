"""Exception hierarchy for Takao.

Effect failures are not exceptions: they come back as ``EffectResult`` values
so a failed effect never aborts the turn that produced it.
"""


class TakaoError(Exception):
    """Base class for all Takao errors."""


class ConfigurationError(TakaoError):
    """Static configuration (the action catalog) is missing or unreadable.

    This is fatal at startup: the engine has no valid default catalog.
    """


class PersistenceError(TakaoError):
    """A write to the data directory failed.

    Raised to the caller as-is; retry policy belongs to whoever owns the store.
    """


class TurnSequenceError(TakaoError):
    """A diary entry would break the strictly increasing turn order."""
