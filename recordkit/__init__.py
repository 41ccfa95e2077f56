"""recordkit — 범용 레코드 접근 서비스.

Generic record-access service over SQLAlchemy async entities.
"""

from recordkit.schemas.service import PaginationConfig, Params, ServiceConfig
from recordkit.services.record_service import RecordService, create_service
from recordkit.session import SessionProvider
from recordkit.utils.exceptions import (
    BadRequestError,
    InvalidQueryError,
    MethodNotAllowedError,
    NotFoundError,
    StorageFailureError,
)
from recordkit.utils.pagination import Page, resolve_pagination
from recordkit.utils.query import parse_query, translate

__all__ = [
    "BadRequestError",
    "InvalidQueryError",
    "MethodNotAllowedError",
    "NotFoundError",
    "Page",
    "PaginationConfig",
    "Params",
    "RecordService",
    "ServiceConfig",
    "SessionProvider",
    "StorageFailureError",
    "create_service",
    "parse_query",
    "resolve_pagination",
    "translate",
]
