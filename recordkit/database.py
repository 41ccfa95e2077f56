"""데이터베이스 엔진 및 세션 팩토리 모듈.

Database engine and session factory module.
Builds the async SQLAlchemy engine and session factory from settings and
provides the ORM base class entity definitions can inherit from.
The engine is created lazily so that importing the package never requires
a reachable database.
"""

import logging

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from recordkit.config import settings

logger = logging.getLogger(__name__)

_engine: AsyncEngine | None = None
_session_factory: async_sessionmaker[AsyncSession] | None = None


class Base(DeclarativeBase):
    """SQLAlchemy 선언적 베이스 클래스.

    Declarative base class for entity models managed by a ``RecordService``.
    """

    pass


def create_engine(database_url: str | None = None, echo: bool | None = None) -> AsyncEngine:
    """비동기 엔진을 생성합니다.

    Create an async engine. Pool sizing and the prepared statement cache
    switch only apply to the asyncpg driver; other drivers (aiosqlite in
    tests) use SQLAlchemy's defaults.

    Args:
        database_url: 연결 문자열, None이면 설정값 사용 (Connection URL; settings if None)
        echo: SQL 로그 출력 여부, None이면 DEBUG 설정 사용 (SQL echo; DEBUG if None)

    Returns:
        AsyncEngine: 생성된 비동기 엔진 (The created async engine)
    """
    url: str = database_url or settings.DATABASE_URL
    kwargs: dict = {
        "echo": settings.DEBUG if echo is None else echo,
        "pool_pre_ping": True,
    }
    if url.startswith("postgresql+asyncpg"):
        kwargs.update(
            pool_size=settings.DB_POOL_SIZE,
            max_overflow=settings.DB_MAX_OVERFLOW,
            # Supavisor(트랜잭션 모드 풀러)에서 prepared statement 비활성화
            # Disable prepared statement caches for transaction-mode poolers
            connect_args={"statement_cache_size": 0},
        )
    logger.info("Creating database engine for driver %s", url.split("://", 1)[0])
    return create_async_engine(url, **kwargs)


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """세션 팩토리를 생성합니다.

    expire_on_commit=False: 커밋 후에도 객체 속성 접근 가능
    (Returned records stay readable as snapshots after the session commits and closes)
    """
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """설정 기반의 전역 세션 팩토리를 반환합니다 (최초 호출 시 생성).

    Return the settings-based session factory, creating the engine on first use.
    """
    global _engine, _session_factory
    if _session_factory is None:
        _engine = create_engine()
        _session_factory = create_session_factory(_engine)
    return _session_factory


async def dispose_engine() -> None:
    """전역 엔진의 커넥션 풀을 정리합니다 — Dispose the global engine's pool."""
    global _engine, _session_factory
    if _engine is not None:
        await _engine.dispose()
    _engine = None
    _session_factory = None
