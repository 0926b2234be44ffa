# app/domains/usr/__init__.py

"""
'usr' 도메인 패키지입니다.

시스템 사용자와 인증(로그인, 토큰), 역할(UserRole)을 관리합니다.

주요 서브모듈:
- `models.py`: users 테이블 SQLModel 정의 및 UserRole Enum
- `schemas.py`: 요청/응답 스키마 (인증 토큰 포함)
- `crud.py`: 사용자 CRUD 및 인증 로직
- `routers.py`: 로그인 및 사용자 관리 API
"""

__all__ = []
