"""Shared errors, registries and configuration."""

from resourceforge.core.config import EngineConfig
from resourceforge.core.errors import (
    AlreadyExists,
    DoesNotExist,
    InvalidConfiguration,
    InvalidField,
    InvalidRequest,
    MissingField,
    ResourceError,
    UnexpectedException,
)

__all__ = [
    "AlreadyExists",
    "DoesNotExist",
    "EngineConfig",
    "InvalidConfiguration",
    "InvalidField",
    "InvalidRequest",
    "MissingField",
    "ResourceError",
    "UnexpectedException",
]
