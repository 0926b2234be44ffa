# tests/__init__.py

"""
Bakery Ledger API의 테스트 스위트 패키지입니다.

- `conftest.py`: 테스트 DB(SQLite), 역할별 사용자/매장/품목, 인증 클라이언트 픽스처
- `test_main.py`: 루트, 헬스 체크, ARQ 워커 설정
- `domains/`: 도메인별(usr, rst, inv, rcn, prd) API 통합 테스트
"""

__title__ = "Bakery Ledger API Tests"
__description__ = "Test suite for the Bakery Ledger FastAPI application."
__version__ = "0.1.0"
__all__ = []
