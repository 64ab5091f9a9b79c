"""Named mutator/accessor transforms."""

from resourceforge.transforms.builtins import register_builtin_transforms
from resourceforge.transforms.registry import (
    TransformRegistry,
    apply_transforms,
    resolve_transform,
    transform,
)

__all__ = [
    "TransformRegistry",
    "apply_transforms",
    "register_builtin_transforms",
    "resolve_transform",
    "transform",
]
