"""세션 제공자 — 연산마다 독립된 세션과 레포지토리를 생성.

Session provider — One isolated session (and identity map) per operation.
SQLAlchemy keeps an identity map per session; sharing a session between
concurrent operations would let one operation observe another's
uncommitted in-memory state, so every service call opens its own.
"""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from recordkit.database import get_session_factory
from recordkit.repositories.base import ModelType, RecordRepository

logger = logging.getLogger(__name__)


class SessionProvider:
    """연산 단위 레포지토리 제공자.

    Hands out a fresh ``RecordRepository`` bound to a brand-new session for
    each logical operation. The provider itself holds no session.

    Attributes:
        session_factory: 비동기 세션 팩토리, None이면 설정 기반 전역 팩토리 사용
                         (Async session factory; the settings-based one if None)
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession] | None = None) -> None:
        self._session_factory: async_sessionmaker[AsyncSession] | None = session_factory

    @property
    def session_factory(self) -> async_sessionmaker[AsyncSession]:
        if self._session_factory is None:
            self._session_factory = get_session_factory()
        return self._session_factory

    @asynccontextmanager
    async def open(self, model: type[ModelType], id_field: str = "id") -> AsyncIterator[RecordRepository[ModelType]]:
        """새 세션에 묶인 레포지토리를 제공하고 종료 시 세션을 닫습니다.

        Yield a repository on a new session; roll back on error and always
        close the session on exit.

        Yields:
            RecordRepository: 이 연산 전용 레포지토리 (Repository owned by this operation)
        """
        async with self.session_factory() as session:
            logger.debug("Opened session %x for %s", id(session), model.__name__)
            try:
                yield RecordRepository(session, model, id_field)
            except Exception:
                await session.rollback()
                raise
            finally:
                logger.debug("Closing session %x", id(session))
