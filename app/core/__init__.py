# app/core/__init__.py

"""
애플리케이션 전반에서 사용하는 핵심 구성 요소 패키지입니다.

- `config.py`: 환경 변수 기반 설정 (Pydantic Settings)
- `database.py`: 비동기 엔진 및 세션 관리 (SQLModel + SQLAlchemy asyncio)
- `crud_base.py`: 도메인 CRUD 클래스가 상속하는 공통 CRUD 기반 클래스
- `security.py`: 비밀번호 해싱, JWT, 역할 기반 권한 의존성
- `dependencies.py`: 라우터에서 사용하는 공통 의존성
- `tasks.py`: ARQ 워커용 공통 백그라운드 태스크
"""

__all__ = []
