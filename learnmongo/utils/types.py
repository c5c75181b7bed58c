from typing import Any, Callable, TypeVar

from bson import ObjectId

# Type aliases for better clarity
DocumentData = dict[str, Any]
FilterSpec = dict[str, Any]
SortSpec = list[tuple[str, int]]
DocumentRef = ObjectId | str

# Generic type variables for documents and transformed items
T = TypeVar("T")
R = TypeVar("R")

Transform = Callable[[Any], Any]


def merge_filters(
    base: FilterSpec | None = None,
    override: FilterSpec | None = None,
    **kwargs: Any
) -> FilterSpec:
    """Merge multiple filter dictionaries with proper precedence.

    Args:
        base: Base filter dict
        override: Override filter dict (takes precedence over base)
        **kwargs: Additional filters (highest precedence)

    Returns:
        Merged filter dictionary
    """
    return {**(base or {}), **(override or {}), **kwargs}


def identity(value: T) -> T:
    return value
