# app/__init__.py

"""
Bakery Ledger FastAPI 애플리케이션의 메인 패키지입니다.

멀티 매장(베이커리/레스토랑) 재고 관리 API로, 다음과 같이 구성됩니다.
- main.py: FastAPI 애플리케이션 진입점 및 ARQ 워커 설정
- core: 설정, 데이터베이스 연결, 보안(인증/권한), 공통 CRUD
- domains: usr(사용자), rst(매장), inv(재고 원장), rcn(재고 실사), prd(생산 기록)
"""

APP_NAME = "Bakery Ledger API"
APP_VERSION = "0.1.0"
API_PREFIX = "/api/v1"  # API 라우트의 공통 접두사 (main.py에서 적용)

__version__ = APP_VERSION
__title__ = APP_NAME
__description__ = "Stock ledger, reconciliation and production logging backend for multi-restaurant bakeries."
__all__ = []
