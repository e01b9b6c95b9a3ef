"""Low-level CareHQ HTTP client.

Handles request signing (HMAC-SHA256 over a canonical signing string),
request construction, rate-limit tracking and error translation.
Requests are logged by method and path only; query strings, bodies and
credentials are never written to the log.
"""

from __future__ import annotations

import logging
import math
import re
import threading
import time
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Callable, Mapping, Optional

import requests
from requests.structures import CaseInsensitiveDict

from carehq.exceptions import exception_for_status
from carehq.utils import (
    Params,
    canonical_params_str_from_pairs,
    compute_signature,
    filter_and_stringify,
    flatten_params,
    form_urlencode_from_pairs,
    nonce_url_safe,
)

logger = logging.getLogger("carehq.client")

# CareHQ production API
API_BASE_URL = "https://api.carehq.co.uk"

SIGNATURE_VERSION = "2.0"
NONCE_BYTES = 16

RATE_LIMIT_HEADER = "X-CareHQ-RateLimit-Limit"
RATE_LIMIT_RESET_HEADER = "X-CareHQ-RateLimit-Reset"
RATE_LIMIT_REMAINING_HEADER = "X-CareHQ-RateLimit-Remaining"

Transport = Callable[..., Any]


@dataclass(frozen=True)
class RateLimitInfo:
    """Rate-limit window reported by the most recent response."""

    limit: Optional[int] = None
    reset: Optional[float] = None
    remaining: Optional[int] = None


@dataclass(frozen=True)
class BuiltRequest:
    """A fully signed request, ready to hand to the transport."""

    url: str
    method: str
    headers: Mapping[str, str]
    body: Optional[str]
    string_to_sign: str
    canonical_str: str


# Leading numeric prefixes, as the API's own clients read these headers.
_INT_PREFIX = re.compile(r"\s*([+-]?[0-9]+)")
_FLOAT_PREFIX = re.compile(r"\s*([+-]?(?:[0-9]+\.?[0-9]*|\.[0-9]+)(?:[eE][+-]?[0-9]+)?)")


def _safe_int(value: Optional[str]) -> Optional[int]:
    """Parse the integer prefix of *value* (``"42abc"`` -> 42), else ``None``."""
    if value is None:
        return None
    match = _INT_PREFIX.match(value)
    return int(match.group(1)) if match else None


def _safe_float(value: Optional[str]) -> Optional[float]:
    """Parse the finite float prefix of *value*, else ``None``."""
    if value is None:
        return None
    match = _FLOAT_PREFIX.match(value)
    if not match:
        return None
    number = float(match.group(1))
    return number if math.isfinite(number) else None


class APIClient:
    """Signed client for the CareHQ REST API.

    Parameters
    ----------
    account_id : str
        CareHQ account identifier.
    api_key : str
        API key tied to the account.
    api_secret : str
        Secret used to sign requests.
    api_base_url : str, optional
        Override the production base URL.
    timeout : float, optional
        Seconds to wait for the transport before giving up. With the
        default ``requests`` transport this bounds the connect and each
        socket read, not the whole call: a server that keeps trickling
        bytes can hold a request open longer than *timeout*.
    transport : callable, optional
        ``transport(method, url, headers=..., data=..., timeout=...)``
        returning an object with ``status_code``, ``headers`` and
        ``json()``. Defaults to a ``requests.Session``.
    """

    def __init__(
        self,
        account_id: str,
        api_key: str,
        api_secret: str,
        api_base_url: str = API_BASE_URL,
        timeout: Optional[float] = None,
        transport: Optional[Transport] = None,
    ) -> None:
        self._account_id = account_id
        self._api_key = api_key
        self._api_secret = api_secret
        self._api_base_url = api_base_url.rstrip("/")
        self._timeout = timeout
        if transport is None:
            self._session = requests.Session()
            transport = self._session.request
        self._transport = transport
        self._rate_limit_lock = threading.Lock()
        self._rate_limit_info = RateLimitInfo()

    # ------------------------------------------------------------------
    # Rate limits
    # ------------------------------------------------------------------

    @property
    def rate_limit(self) -> Optional[int]:
        return self.rate_limit_info.limit

    @property
    def rate_limit_reset(self) -> Optional[float]:
        """Epoch seconds at which the current window resets."""
        return self.rate_limit_info.reset

    @property
    def rate_limit_remaining(self) -> Optional[int]:
        return self.rate_limit_info.remaining

    @property
    def rate_limit_info(self) -> RateLimitInfo:
        with self._rate_limit_lock:
            return self._rate_limit_info

    def _update_rate_limit(self, headers: Mapping[str, str]) -> None:
        """Replace the snapshot if *headers* carry rate-limit information."""
        limit = headers.get(RATE_LIMIT_HEADER)
        if limit is None:
            return
        info = RateLimitInfo(
            limit=_safe_int(limit),
            reset=_safe_float(headers.get(RATE_LIMIT_RESET_HEADER)),
            remaining=_safe_int(headers.get(RATE_LIMIT_REMAINING_HEADER)),
        )
        with self._rate_limit_lock:
            self._rate_limit_info = info
        logger.debug("Rate limit: limit=%s remaining=%s reset=%s", info.limit, info.remaining, info.reset)

    # ------------------------------------------------------------------
    # Request construction
    # ------------------------------------------------------------------

    def build_request(
        self,
        method: str,
        path: str,
        params: Optional[Params] = None,
        data: Optional[Params] = None,
    ) -> BuiltRequest:
        """Build a signed request without sending it.

        GET requests sign and send *params* as the query string; every
        other method signs and sends *data* as a form body. The unused
        mapping is ignored.
        """
        clean_path = str(path).strip("/")
        canonical_path = f"/v1/{clean_path}"
        url = f"{self._api_base_url}{canonical_path}"
        method_upper = method.upper()

        selected = params if method_upper == "GET" else data
        pairs = flatten_params(filter_and_stringify(selected))
        canonical_str = canonical_params_str_from_pairs(pairs)

        timestamp = str(int(time.time()))
        nonce = nonce_url_safe(NONCE_BYTES)
        string_to_sign = "\n".join([timestamp, nonce, method_upper, canonical_path, canonical_str])
        signature = compute_signature(self._api_secret, string_to_sign)

        headers = {
            "Accept": "application/json",
            "X-CareHQ-AccountId": self._account_id,
            "X-CareHQ-APIKey": self._api_key,
            "X-CareHQ-Nonce": nonce,
            "X-CareHQ-Signature": signature,
            "X-CareHQ-Signature-Version": SIGNATURE_VERSION,
            "X-CareHQ-Timestamp": timestamp,
        }

        body = None
        if method_upper == "GET":
            if pairs:
                url = f"{url}?{form_urlencode_from_pairs(pairs)}"
        else:
            body = form_urlencode_from_pairs(pairs)
            headers["Content-Type"] = "application/x-www-form-urlencoded"

        return BuiltRequest(
            url=url,
            method=method_upper,
            headers=MappingProxyType(headers),
            body=body,
            string_to_sign=string_to_sign,
            canonical_str=canonical_str,
        )

    # ------------------------------------------------------------------
    # Sending
    # ------------------------------------------------------------------

    def request(
        self,
        method: str,
        path: str,
        params: Optional[Params] = None,
        data: Optional[Params] = None,
    ) -> Any:
        """Send a signed request and return the decoded JSON payload.

        Returns ``None`` for ``204 No Content``.

        Raises
        ------
        carehq.exceptions.APIException
            A status-specific subclass for any status other than 200/204.
        requests.RequestException
            On network-level failures, including timeouts.
        """
        built = self.build_request(method, path, params=params, data=data)
        log_target = f"/v1/{str(path).strip('/')}"
        logger.debug("REQUEST  %s %s", built.method, log_target)

        response = self._transport(
            built.method,
            built.url,
            headers=dict(built.headers),
            data=built.body,
            timeout=self._timeout,
        )
        status = response.status_code
        logger.debug("RESPONSE %s %s status=%s", built.method, log_target, status)

        self._update_rate_limit(CaseInsensitiveDict(response.headers or {}))

        if status == 204:
            return None
        if status == 200:
            return response.json()

        try:
            payload = response.json()
        except ValueError:
            payload = {}
        if not isinstance(payload, dict):
            payload = {}

        hint = payload.get("hint")
        if hint is None:
            hint = f"{status} calling {built.method} {built.url}"
        error = exception_for_status(status, hint, payload.get("arg_errors"))
        logger.warning("API error %s on %s %s: %s", status, built.method, log_target, error.kind.value)
        raise error
