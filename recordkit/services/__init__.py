"""서비스 패키지 — 레코드 접근 파사드 계층.

Service package — Record access facade layer.
Services translate caller queries, resolve pagination and open one session
per operation through the session provider.
"""
