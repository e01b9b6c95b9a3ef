"""Signed HTTP client for the CareHQ REST API.

Usage example:
    from carehq import APIClient
    client = APIClient(account_id, api_key, api_secret)
    residents = client.request("GET", "residents", params={"per_page": 10})
"""

from carehq import exceptions  # noqa: F401
from carehq.client import API_BASE_URL, APIClient, BuiltRequest, RateLimitInfo  # noqa: F401
from carehq.exceptions import APIException, ErrorKind  # noqa: F401
from carehq.utils import Params  # noqa: F401

__version__ = "1.0.0"
