"""레포지토리 패키지 — 저장소 접근 계층.

Repository package — Storage access layer.
Contains the session-bound repository that exposes the storage primitives
(find, count, persist, bulk delete) the record service is built on.
"""
