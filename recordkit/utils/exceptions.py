"""레코드 서비스 예외 클래스 모듈.

Record service exception classes module.
Provides pre-configured HTTPException subclasses for the error kinds the
service raises, so a transport binding can surface them without mapping
status codes at each call site.

Usage:
    from recordkit.utils.exceptions import NotFoundError, InvalidQueryError
    raise NotFoundError("Book not found.")
    raise InvalidQueryError("Invalid query parameter $foo")
"""

from fastapi import HTTPException, status


class NotFoundError(HTTPException):
    """404 Not Found 예외 — 요청한 레코드를 찾을 수 없을 때 사용.

    404 Not Found exception.
    Raised when no record matches an id/query, or when a batch selector
    matches zero records.

    Args:
        detail: 오류 메시지 (Error message, default: "Resource not found")
    """

    def __init__(self, detail: str = "Resource not found") -> None:
        super().__init__(status_code=status.HTTP_404_NOT_FOUND, detail=detail)


class BadRequestError(HTTPException):
    """400 Bad Request 예외 — 잘못된 호출 시 사용.

    400 Bad Request exception.
    Raised for calls the service cannot serve as given
    (e.g. replacing multiple records with update).

    Args:
        detail: 오류 메시지 (Error message, default: "Bad request")
    """

    def __init__(self, detail: str = "Bad request") -> None:
        super().__init__(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)


class InvalidQueryError(BadRequestError):
    """잘못된 쿼리 예외 — 특수 연산자 값이 형식에 맞지 않을 때 사용.

    Invalid query exception.
    Raised while parsing or translating a caller filter, always before any
    storage call (unknown operator, malformed $sort/$skip/$limit/$select,
    unknown field name).
    """

    def __init__(self, detail: str = "Invalid query") -> None:
        super().__init__(detail=detail)


class MethodNotAllowedError(HTTPException):
    """405 Method Not Allowed 예외 — 다중 처리가 허용되지 않을 때 사용.

    405 Method Not Allowed exception.
    Raised when a batch create/patch/remove is attempted on a service whose
    ``multi`` option does not allow it.
    """

    def __init__(self, detail: str = "Method not allowed") -> None:
        super().__init__(status_code=status.HTTP_405_METHOD_NOT_ALLOWED, detail=detail)


class StorageFailureError(HTTPException):
    """500 저장소 실패 예외 — 분류되지 않은 저장소 오류.

    500 storage failure exception.
    Wraps an error raised by the storage engine that has no more specific
    meaning; the original error is kept as ``__cause__``.
    """

    def __init__(self, detail: str = "Storage failure") -> None:
        super().__init__(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=detail)
