"""Canonicalization, signing and nonce helpers for CareHQ requests.

Parameters are flattened into sorted ``(key, value)`` pairs so that the
client and the remote verifier derive the same canonical string from the
same set of fields, regardless of dict ordering or array ordering.
"""

from __future__ import annotations

import base64
import hashlib
import hmac
import math
import secrets
from decimal import Decimal
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple, Union
from urllib.parse import quote, urlencode

Scalar = Union[str, int, float, bool]
ParamValue = Union[Scalar, Sequence[Scalar], None]
Params = Mapping[str, ParamValue]
Pair = Tuple[str, str]


def _float_to_str(value: float) -> str:
    """Render *value* the way JavaScript's ``String(number)`` does."""
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "Infinity" if value > 0 else "-Infinity"
    if value == 0:
        return "0"

    sign = "-" if value < 0 else ""
    # repr() gives the shortest round-tripping digits, same as JS.
    _, digit_tuple, exponent = Decimal(repr(abs(value))).normalize().as_tuple()
    digits = "".join(str(d) for d in digit_tuple)
    k = len(digits)
    n = exponent + k  # position of the decimal point relative to the digits

    if k <= n <= 21:
        return sign + digits + "0" * (n - k)
    if 0 < n <= 21:
        return sign + digits[:n] + "." + digits[n:]
    if -6 < n <= 0:
        return sign + "0." + "0" * -n + digits
    e = n - 1
    mantissa = digits if k == 1 else digits[0] + "." + digits[1:]
    return f"{sign}{mantissa}e{'+' if e >= 0 else '-'}{abs(e)}"


def _scalar_to_str(value: Any) -> str:
    # Match the remote verifier's rendering of booleans and numbers.
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float):
        return _float_to_str(value)
    return str(value)


def ensure_string(value: Any) -> Union[str, List[str]]:
    """Return *value* as a string, or a list of strings for list/tuple values."""
    if isinstance(value, (list, tuple)):
        return [_scalar_to_str(item) for item in value]
    return _scalar_to_str(value)


def filter_and_stringify(params: Optional[Params]) -> Optional[Dict[str, Union[str, List[str]]]]:
    """Drop ``None`` values and stringify the rest.

    Returns ``None`` when *params* itself is ``None`` so that callers can
    tell "no params" from "empty params".
    """
    if params is None:
        return None
    return {key: ensure_string(value) for key, value in params.items() if value is not None}


def flatten_params(params: Optional[Mapping[str, Any]]) -> List[Pair]:
    """Flatten *params* into canonical ``(key, value)`` pairs.

    Keys are sorted lexicographically, and values repeated under one key
    are sorted too, so the output is independent of input ordering.
    """
    params = params or {}
    pairs: List[Pair] = []
    for key in sorted(params, key=str):
        values = params[key]
        if not isinstance(values, (list, tuple)):
            values = [values]
        for value in sorted(_scalar_to_str(v) for v in values):
            pairs.append((str(key), value))
    return pairs


def canonical_params_str_from_pairs(pairs: Sequence[Pair]) -> str:
    """Join pairs as ``key=value`` lines, the signing form of the params."""
    return "\n".join(f"{key}={value}" for key, value in pairs)


def canonical_params_str(params: Optional[Mapping[str, Any]]) -> str:
    return canonical_params_str_from_pairs(flatten_params(params))


def form_urlencode_from_pairs(pairs: Sequence[Pair]) -> str:
    """Encode pairs as ``application/x-www-form-urlencoded`` (spaces as ``%20``)."""
    return urlencode(list(pairs), quote_via=quote, safe="")


def compute_signature(secret: str, message: Union[str, bytes]) -> str:
    """Return the lowercase hex HMAC-SHA256 of *message* keyed by *secret*."""
    if isinstance(message, str):
        message = message.encode("utf-8")
    return hmac.new(secret.encode("utf-8"), message, hashlib.sha256).hexdigest()


def nonce_url_safe(nbytes: int) -> str:
    """Return *nbytes* of secure random data as unpadded URL-safe base64."""
    b64 = base64.b64encode(secrets.token_bytes(nbytes)).decode("ascii")
    return b64.replace("=", "").replace("+", "-").replace("/", "_")
