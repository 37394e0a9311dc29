#
# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""
Simple utility functions used by this package
"""

from __future__ import annotations

import os
import json
import hashlib

from fhome_protocol.internal_types import *

from requests.structures import CaseInsensitiveDict

REDACTED_FIELDS = ("password",)
"""Fields of an outgoing or incoming frame that must never appear in logs."""

def full_name_of_type(t: Type[Any]) -> str:
    """Returns the fully qualified name of a type, e.g., "fhome_protocol.config.base.Config"."""
    module = t.__module__
    if module == 'builtins':
        return t.__qualname__
    return f"{module}.{t.__qualname__}"

def full_type(o: Any) -> str:
    """Returns the fully qualified name of the type of an object."""
    return full_name_of_type(type(o))

def hash_pathname(pathname: str) -> str:
    """Returns a stable hex hash of the absolute form of a pathname."""
    result = hashlib.sha1(os.path.abspath(os.path.expanduser(pathname)).encode("utf-8")).hexdigest()
    return result

def redact_json_data(data: Jsonable) -> Jsonable:
    """Returns a copy of a JSON object with credential fields replaced by "****".

    Only top-level fields are redacted; frames in this protocol carry credentials at the top level.
    """
    if not isinstance(data, dict):
        return data
    result = dict(data)
    for field in REDACTED_FIELDS:
        if field in result:
            result[field] = "****"
    return result

def redact_json_text(text: Union[str, bytes]) -> str:
    """Returns a log-safe rendering of a raw JSON frame, with credential fields redacted.

    Text that is not valid JSON is returned unchanged (decoded if necessary)."""
    if isinstance(text, bytes):
        text = text.decode('utf-8', errors='replace')
    try:
        data = json.loads(text)
    except ValueError:
        return text
    return json.dumps(redact_json_data(data), separators=(",", ":"))

def headers_to_dict(headers: Optional[Any]) -> CaseInsensitiveDict[str]:
    """Converts a headers object from the transport library (any mapping or iterable of
       (name, value) pairs) into a CaseInsensitiveDict[str]. Repeated headers are joined with ", "."""
    result: CaseInsensitiveDict[str] = CaseInsensitiveDict()
    if headers is None:
        return result
    items: Iterable[Tuple[str, str]]
    if hasattr(headers, 'raw_items'):
        items = headers.raw_items()
    elif isinstance(headers, Mapping):
        items = headers.items()
    else:
        items = headers
    for name, value in items:
        if name in result:
            result[name] = f"{result[name]}, {value}"
        else:
            result[name] = str(value)
    return result
