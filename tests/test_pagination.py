"""페이지네이션 정책 테스트.

Pagination policy tests — limit resolution and execution mode.
"""

import pytest
from pydantic import ValidationError

from recordkit.schemas.service import PaginationConfig
from recordkit.utils.pagination import Page, PageRequest, merge_pagination, resolve_pagination


class TestResolveLimit:
    """limit 결정 규칙 테스트."""

    @pytest.mark.parametrize("limit, maximum, expected", [
        (5, 2, 2),
        (1, 2, 1),
        (None, 2, 2),
        (0, 2, 0),
    ])
    def test_max_caps_limit(self, limit, maximum, expected):
        """max가 호출자 limit 상한 적용."""
        request = resolve_pagination(limit, None, PaginationConfig(max=maximum))
        assert request.limit == expected

    def test_caller_limit_without_config(self):
        """설정 없이 호출자 limit 사용."""
        assert resolve_pagination(7, None, None) == PageRequest(mode="plain", limit=7, skip=None)

    def test_default_when_no_caller_limit(self):
        """호출자 limit 없으면 기본값 사용."""
        request = resolve_pagination(None, None, PaginationConfig(default=3))
        assert request.limit == 3

    def test_max_wins_over_default(self):
        """max 설정 시 기본값 대신 max 사용."""
        assert resolve_pagination(None, None, PaginationConfig(default=1, max=2)).limit == 2
        assert resolve_pagination(None, None, PaginationConfig(default=5, max=2)).limit == 2
        assert resolve_pagination(5, None, PaginationConfig(default=1, max=2)).limit == 2
        assert resolve_pagination(1, None, PaginationConfig(default=5, max=2)).limit == 1

    def test_zero_max_is_ignored(self):
        """max 0은 미설정으로 처리."""
        assert resolve_pagination(None, None, PaginationConfig(max=0)) == PageRequest(
            mode="plain", limit=None, skip=None
        )
        assert resolve_pagination(None, None, PaginationConfig(default=3, max=0)).limit == 3
        assert resolve_pagination(4, None, PaginationConfig(max=0)).limit == 4

    def test_nothing_requested(self):
        """아무 limit도 없으면 일반 조회."""
        assert resolve_pagination(None, None, None) == PageRequest(mode="plain", limit=None, skip=None)


class TestResolveMode:
    """실행 모드 결정 테스트."""

    def test_zero_limit_is_count_only(self):
        """limit 0은 개수만 조회."""
        assert resolve_pagination(0, None, None) == PageRequest(mode="count_only", limit=0, skip=0)
        assert resolve_pagination(0, 4, PaginationConfig(default=10)).skip == 4

    def test_default_enables_paginated(self):
        """기본값이 있으면 페이지 응답."""
        request = resolve_pagination(2, None, PaginationConfig(default=10))
        assert request == PageRequest(mode="paginated", limit=2, skip=0)

    def test_max_alone_stays_plain(self):
        """max만 있으면 일반 조회 유지."""
        request = resolve_pagination(None, 3, PaginationConfig(max=5))
        assert request == PageRequest(mode="plain", limit=5, skip=3)


class TestMergePagination:
    """서비스/호출 설정 병합 테스트."""

    def test_false_disables(self):
        """False는 페이지네이션 비활성화."""
        assert merge_pagination(PaginationConfig(default=1, max=2), False) is None

    def test_none_keeps_service_config(self):
        """None이면 서비스 설정 유지."""
        config = PaginationConfig(default=1)
        assert merge_pagination(config, None) is config

    def test_call_overrides_per_key(self):
        """호출별 설정이 키 단위로 우선."""
        merged = merge_pagination(PaginationConfig(default=1, max=2), PaginationConfig(default=5))
        assert merged == PaginationConfig(default=5, max=2)

    def test_call_config_without_service_config(self):
        """서비스 설정 없이 호출별 설정 사용."""
        assert merge_pagination(None, PaginationConfig(default=5)) == PaginationConfig(default=5)


class TestPage:
    """페이지 모델 검증 테스트."""

    def test_rejects_negative_values(self):
        """음수 페이지 값 거부."""
        with pytest.raises(ValidationError):
            Page(total=-1, limit=0, skip=0, data=[])

    def test_rejects_negative_config(self):
        """음수 기본값 거부."""
        with pytest.raises(ValidationError):
            PaginationConfig(default=-1)
