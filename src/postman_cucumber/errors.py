"""Exceptions raised by the converter.

Only fatal conditions are modelled here. Recoverable problems (an unparsable
raw body, a script line no matcher understands) degrade to a fallback and
never raise.
"""


class ConversionError(Exception):
    """Base class for errors that abort a conversion run."""


class InvalidCollectionError(ConversionError):
    """The input document is not a usable Postman collection."""


class AuthResolutionError(ConversionError, LookupError):
    """A bearer placeholder could not be resolved against the environment store."""


class InvalidEnvironmentError(ConversionError):
    """An environment document or environment store is not a readable JSON object."""
