class ShortenerError(Exception):
    """Base class for errors raised by the link store."""


class InvalidUrlError(ShortenerError):
    pass


class InvalidCodeError(ShortenerError):
    pass


class NotFound(ShortenerError):
    pass


class Forbidden(ShortenerError):
    pass


class StorageError(ShortenerError):
    """A write kept conflicting with concurrent writers and was given up."""
