"""
Domain-independent utility functions
"""
from typing import Any


def ownerPrefix(ownerObject: Any) -> str:
    """
    Calls :meth:`__repr__` on the `ownerObject` (if it is not ``None``) and
    returns the result concatenated with '.'.
    If the object is ``None``, an empty string will be returned.
    """
    if ownerObject is None:
        return ''
    return repr(ownerObject) + '.'

def ensureIndex(index: Any, bound: int, name: str, caller: Any = None) -> int:
    """
    Checks that `index` is an integer within ``[0, bound)`` and returns it as
    an :class:`int`. Negative indices are rejected as well, so numpy's
    wraparound indexing never hides an upstream bug.

    Args:
        index: The index to be checked
        bound: The exclusive upper bound
        name: The index' name to be mentioned in the error message
        caller: The object that will be mentioned in the error message

    Raises:
        IndexError: If `index` is not an integer within ``[0, bound)``
    """
    if isinstance(index, bool) or not hasattr(index, "__index__"):
        raise IndexError("{}{} must be an integer, got {!r}".format(ownerPrefix(caller), name, index))
    index = index.__index__()
    if not 0 <= index < bound:
        raise IndexError("{}{} {} out of range [0, {})".format(ownerPrefix(caller), name, index, bound))
    return index
