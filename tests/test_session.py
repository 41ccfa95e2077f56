"""세션 제공자 및 레포지토리 테스트.

Session provider and repository tests — per-operation session isolation
and the storage primitives.
"""

import pytest

from recordkit.config import settings
from recordkit.database import dispose_engine, get_session_factory
from recordkit.services.record_service import RecordService
from recordkit.session import SessionProvider
from recordkit.utils.query import StorageOptions
from tests.models import Person


class TestSessionProvider:
    """연산별 세션 격리 테스트."""

    async def test_each_open_uses_a_new_session(self, sessions: SessionProvider):
        """open마다 새 세션 사용."""
        async with sessions.open(Person) as first:
            async with sessions.open(Person) as second:
                assert first.session is not second.session

    async def test_identity_maps_are_isolated(self, sessions: SessionProvider, people):
        """세션별 identity map 격리."""
        doug_id = people["doug"].id
        async with sessions.open(Person) as first, sessions.open(Person) as second:
            a = await first.find_one(Person.id == doug_id)
            b = await second.find_one(Person.id == doug_id)
            assert a is not b
            a.name = "changed in first"
            assert b.name == "Doug"

    async def test_rollback_on_error(self, sessions: SessionProvider):
        """오류 시 롤백."""
        with pytest.raises(RuntimeError):
            async with sessions.open(Person) as repository:
                repository.session.add(Person(name="ghost"))
                await repository.session.flush()
                raise RuntimeError("boom")

        async with sessions.open(Person) as repository:
            assert await repository.count(Person.name == "ghost") == 0


class TestSettingsFactory:
    """설정 기반 전역 세션 팩토리 테스트."""

    async def test_default_factory_is_built_once(self, tmp_path, monkeypatch):
        """기본 세션 팩토리는 한 번만 생성."""
        monkeypatch.setattr(settings, "DATABASE_URL", f"sqlite+aiosqlite:///{tmp_path / 'default.db'}")
        try:
            factory = get_session_factory()
            assert get_session_factory() is factory
            assert SessionProvider().session_factory is factory
        finally:
            await dispose_engine()


class TestRecordRepository:
    """저장소 기본 연산 테스트."""

    async def test_find_and_count(self, sessions: SessionProvider, people):
        """조회와 개수 함께 반환."""
        async with sessions.open(Person) as repository:
            records, total = await repository.find_and_count(
                Person.age > 18, StorageOptions(order_by={"age": "desc"}, limit=2)
            )
        assert total == 3
        assert [p.name for p in records] == ["Doug", "Bob"]

    async def test_offset_without_limit(self, sessions: SessionProvider, people):
        """limit 없이 offset 적용."""
        async with sessions.open(Person) as repository:
            records = await repository.find(Person.age > 0, StorageOptions(order_by={"age": "asc"}, offset=1))
        assert [p.name for p in records] == ["Bob", "Doug"]

    async def test_delete_by_filter(self, sessions: SessionProvider, person_service: RecordService, people):
        """필터로 일괄 삭제."""
        async with sessions.open(Person) as repository:
            deleted = await repository.delete_by_filter(Person.age < 30)
        assert deleted == 2
        remaining = await person_service.find()
        assert [p.name for p in remaining] == ["Doug"]
