"""Error taxonomy for CareHQ API failures.

Every non-success HTTP status is translated into one ``APIException``
subclass. All variants carry the same fields; they differ only in their
``kind``, so callers may either catch a specific class or match on
``exc.kind``.
"""

from __future__ import annotations

import enum
from typing import Dict, List, Mapping, Optional, Type, Union

ArgErrors = Mapping[str, Union[List[str], str]]


class ErrorKind(enum.Enum):
    BAD_REQUEST = "bad_request"
    UNAUTHORIZED = "unauthorized"
    FORBIDDEN = "forbidden"
    NOT_FOUND = "not_found"
    UNPROCESSABLE_ENTITY = "unprocessable_entity"
    RATE_LIMITED = "rate_limited"
    SERVER_ERROR = "server_error"
    GENERIC = "generic"

    @classmethod
    def for_status(cls, status_code: int) -> "ErrorKind":
        """Resolve the kind for an HTTP status code."""
        kind = STATUS_KINDS.get(status_code)
        if kind is not None:
            return kind
        if status_code >= 500:
            return cls.SERVER_ERROR
        return cls.GENERIC


STATUS_KINDS: Dict[int, ErrorKind] = {
    400: ErrorKind.BAD_REQUEST,
    401: ErrorKind.UNAUTHORIZED,
    403: ErrorKind.FORBIDDEN,
    404: ErrorKind.NOT_FOUND,
    422: ErrorKind.UNPROCESSABLE_ENTITY,
    429: ErrorKind.RATE_LIMITED,
}


class APIException(Exception):
    """Raised when the CareHQ API returns a non-success status.

    Parameters
    ----------
    status_code : int
        HTTP status code of the response.
    hint : str, optional
        Human-readable explanation, usually from the response body.
    arg_errors : mapping, optional
        Field-level validation errors keyed by argument name.
    """

    kind: ErrorKind = ErrorKind.GENERIC

    def __init__(
        self,
        status_code: int,
        hint: Optional[str] = None,
        arg_errors: Optional[ArgErrors] = None,
    ) -> None:
        self.status_code = status_code
        self.hint = hint
        self.arg_errors = arg_errors
        super().__init__(hint or f"CareHQ API error ({status_code})")

    def __repr__(self) -> str:
        return f"{type(self).__name__}(status_code={self.status_code!r}, hint={self.hint!r})"

    @staticmethod
    def get_class_by_status_code(status_code: int) -> Type["APIException"]:
        """Return the exception class used for *status_code*."""
        return _CLASSES_BY_KIND[ErrorKind.for_status(status_code)]


class BadRequest(APIException):
    kind = ErrorKind.BAD_REQUEST


class Unauthorized(APIException):
    kind = ErrorKind.UNAUTHORIZED


class Forbidden(APIException):
    kind = ErrorKind.FORBIDDEN


class NotFound(APIException):
    kind = ErrorKind.NOT_FOUND


class UnprocessableEntity(APIException):
    kind = ErrorKind.UNPROCESSABLE_ENTITY


class RateLimited(APIException):
    kind = ErrorKind.RATE_LIMITED


class ServerError(APIException):
    kind = ErrorKind.SERVER_ERROR


_CLASSES_BY_KIND: Dict[ErrorKind, Type[APIException]] = {
    ErrorKind.BAD_REQUEST: BadRequest,
    ErrorKind.UNAUTHORIZED: Unauthorized,
    ErrorKind.FORBIDDEN: Forbidden,
    ErrorKind.NOT_FOUND: NotFound,
    ErrorKind.UNPROCESSABLE_ENTITY: UnprocessableEntity,
    ErrorKind.RATE_LIMITED: RateLimited,
    ErrorKind.SERVER_ERROR: ServerError,
    ErrorKind.GENERIC: APIException,
}


def exception_for_status(
    status_code: int,
    hint: Optional[str] = None,
    arg_errors: Optional[ArgErrors] = None,
) -> APIException:
    """Build the exception instance matching *status_code*."""
    cls = APIException.get_class_by_status_code(status_code)
    return cls(status_code, hint, arg_errors)
