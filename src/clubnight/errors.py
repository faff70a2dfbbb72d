"""Exceptions raised by the clubnight engine."""


class ClubnightError(Exception):
    """Base class for every error the engine raises on purpose."""


class InvalidInputError(ClubnightError, ValueError):
    """A precondition on the caller's input was not met."""


class ConfigError(ClubnightError, ValueError):
    """The YAML config could not be turned into catalog or pool data."""


class UnknownMatchError(ClubnightError, KeyError):
    """An event referred to a match, game or round that does not exist."""
