"""테스트 인프라 — 임시 SQLite DB, 세션 제공자, 서비스 픽스처.

Test infrastructure — Temporary SQLite DB, session provider and service fixtures.
Each test gets its own database file under tmp_path, so no cleanup is needed.
"""

from collections.abc import AsyncGenerator
from pathlib import Path
from typing import Any

import pytest
import pytest_asyncio
from sqlalchemy import inspect
from sqlalchemy.ext.asyncio import AsyncEngine

from recordkit.database import Base, create_engine, create_session_factory
from recordkit.schemas.service import PaginationConfig
from recordkit.services.record_service import RecordService, create_service
from recordkit.session import SessionProvider
from tests.models import Author, Book, Person


# ---------------------------------------------------------------------------
# Function-scoped: 엔진, 세션 제공자
# ---------------------------------------------------------------------------
@pytest_asyncio.fixture
async def engine(tmp_path: Path) -> AsyncGenerator[AsyncEngine, None]:
    """테스트용 async 엔진. 스키마를 생성합니다."""
    eng = create_engine(f"sqlite+aiosqlite:///{tmp_path / 'records.db'}", echo=False)
    async with eng.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield eng
    await eng.dispose()


@pytest.fixture
def sessions(engine: AsyncEngine) -> SessionProvider:
    """연산마다 새 세션을 여는 제공자."""
    return SessionProvider(create_session_factory(engine))


# ---------------------------------------------------------------------------
# 서비스 픽스처
# ---------------------------------------------------------------------------
@pytest.fixture
def book_service(sessions: SessionProvider) -> RecordService:
    return create_service(Book, sessions, id_field="uuid")


@pytest.fixture
def paginated_book_service(sessions: SessionProvider) -> RecordService:
    return create_service(Book, sessions, id_field="uuid", paginate=PaginationConfig(default=10))


@pytest.fixture
def author_service(sessions: SessionProvider) -> RecordService:
    return create_service(Author, sessions)


@pytest.fixture
def person_service(sessions: SessionProvider) -> RecordService:
    return create_service(Person, sessions, events=["testing"])


@pytest_asyncio.fixture
async def people(person_service: RecordService) -> dict[str, Person]:
    """기본 인물 3명을 생성합니다."""
    doug = await person_service.create({"name": "Doug", "age": 32})
    bob = await person_service.create({"name": "Bob", "age": 25})
    alice = await person_service.create({"name": "Alice", "age": 19})
    return {"doug": doug, "bob": bob, "alice": alice}


def as_dict(record: Any) -> dict[str, Any]:
    """레코드의 컬럼 값을 dict로 변환합니다 — Column values of a record."""
    return {attr.key: getattr(record, attr.key) for attr in inspect(type(record)).column_attrs}
