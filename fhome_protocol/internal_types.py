#
# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""
Type hints used throughout this package. Intended to be imported with "from .internal_types import *".
"""

from __future__ import annotations

from typing import (
    Dict,
    List,
    Optional,
    Set,
    Tuple,
    Union,
    Any,
    Callable,
    Awaitable,
    Coroutine,
    Iterable,
    Iterator,
    AsyncIterator,
    AsyncIterable,
    AsyncContextManager,
    Mapping,
    MutableMapping,
    Sequence,
    Type,
    TypeVar,
    Generic,
    cast,
    overload,
    TYPE_CHECKING,
  )

from types import TracebackType
from typing_extensions import TypeAlias

Jsonable: TypeAlias = Union[str, int, float, bool, None, Dict[str, Any], List[Any]]
"""A value that can be serialized to/from JSON"""

JsonableDict: TypeAlias = Dict[str, Jsonable]
"""A JSON object"""

JsonableTypes = (str, int, float, bool, dict, list)
"""Types accepted by isinstance() checks for non-null Jsonable values"""
