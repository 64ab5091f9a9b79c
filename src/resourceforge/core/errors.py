"""Error taxonomy for resourceforge.

Every public operation either returns a typed result or raises one of the
exceptions below. Callers that only care about "something went wrong with
this resource" can catch ResourceError.
"""


class ResourceError(Exception):
    """Base class for all resourceforge errors."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidConfiguration(ResourceError):
    """A resource schema violates its own invariants."""


class InvalidField(ResourceError):
    """A write field is unknown or fails its validation rule."""

    def __init__(self, message: str, field: str | None = None):
        super().__init__(message)
        self.field = field


class MissingField(InvalidField):
    """A required field was omitted on create."""


class InvalidRequest(ResourceError):
    """Read or list parameters are malformed or out of policy."""


class DoesNotExist(ResourceError):
    """A primary key or related target is absent under current visibility."""


class AlreadyExists(ResourceError):
    """A uniqueness constraint would be violated."""


class UnexpectedException(ResourceError):
    """An internal invariant was broken."""
