"""Input validation for command-line requests.

Turns raw CLI strings into a method, a path and ``Params`` mappings that
``APIClient`` can sign. The client itself performs no validation; this
module only guards the interactive and command-line entry points.
"""

from __future__ import annotations

from typing import Dict, Iterable, List, Optional, Union

VALID_METHODS = ("GET", "POST", "PUT", "PATCH", "DELETE")


class ValidationError(Exception):
    """Raised when user input fails validation."""


def validate_method(method: str) -> str:
    """Return the uppercased method or raise if unsupported."""
    method = method.strip().upper()
    if method not in VALID_METHODS:
        raise ValidationError(f"Invalid method '{method}'. Must be one of {', '.join(VALID_METHODS)}.")
    return method


def validate_path(path: str) -> str:
    """Return *path* without surrounding slashes, or raise if empty."""
    path = path.strip().strip("/")
    if not path:
        raise ValidationError("Path must not be empty (e.g. 'residents').")
    return path


def parse_params(items: Optional[Iterable[str]]) -> Dict[str, Union[str, List[str]]]:
    """Parse ``key=value`` strings into a params mapping.

    A key given more than once collects its values into a list.
    """
    params: Dict[str, Union[str, List[str]]] = {}
    for item in items or ():
        key, sep, value = item.partition("=")
        key = key.strip()
        if not sep:
            raise ValidationError(f"Invalid parameter '{item}'. Expected key=value.")
        if not key:
            raise ValidationError(f"Invalid parameter '{item}'. Key must not be empty.")
        if key in params:
            existing = params[key]
            if isinstance(existing, list):
                existing.append(value)
            else:
                params[key] = [existing, value]
        else:
            params[key] = value
    return params
