# app/core/database.py

"""
애플리케이션의 데이터베이스 연결 및 세션 관리를 담당하는 모듈입니다.

- SQLModel의 비동기 엔진을 설정합니다.
- 요청 단위 세션(get_session)과 태스크용 세션 컨텍스트를 제공합니다.
- 개발 환경에서 테이블을 생성하는 함수를 포함합니다. (운영 환경은 Alembic 사용)
"""

import logging
from typing import Any, AsyncGenerator, Dict
from contextlib import asynccontextmanager

from sqlalchemy.ext.asyncio import create_async_engine, AsyncEngine
from sqlalchemy.orm import sessionmaker

from sqlmodel import SQLModel
from sqlmodel.ext.asyncio.session import AsyncSession

from app.core.config import settings

# =============================================================================
# 모든 도메인 모델 임포트
# =============================================================================
# SQLModel.metadata 및 SQLAlchemy 매퍼가 모든 테이블과 관계를 인식하도록
# 런타임에 한 번 임포트합니다.
from app.domains import models  # noqa: F401

logger = logging.getLogger(__name__)

DATABASE_URL = settings.DATABASE_URL.get_secret_value()

_engine_options: Dict[str, Any] = {
    "echo": settings.DEBUG_MODE,  # 디버그 모드일 때만 SQL 쿼리 출력
    "future": True,
}
if not DATABASE_URL.startswith("sqlite"):
    # 커넥션 풀 설정은 서버형 DB(PostgreSQL)에만 적용합니다.
    _engine_options.update(
        pool_recycle=3600,  # 1시간마다 연결 재활용
        pool_size=10,
        max_overflow=20,
    )

engine: AsyncEngine = create_async_engine(DATABASE_URL, **_engine_options)

# 비동기 세션을 생성하는 '세션 공장'
AsyncSessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine,
    class_=AsyncSession,
    expire_on_commit=False,
)

metadata = SQLModel.metadata


# =============================================================================
# 데이터베이스 초기화 및 테이블 생성 함수
# =============================================================================
async def create_db_and_tables() -> None:
    """
    모든 테이블을 생성합니다. 기존 테이블은 삭제하지 않습니다.
    개발 환경 전용이며, 운영 환경의 스키마 변경은 Alembic 마이그레이션으로 관리합니다.
    """
    logger.info("Creating database tables (development only)...")
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    logger.info("Database tables created (or already exist).")


# =============================================================================
# 비동기 데이터베이스 세션 의존성 주입
# =============================================================================
async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI 의존성 주입을 위한 비동기 데이터베이스 세션 제너레이터입니다.
    요청마다 새로운 세션을 생성하고, 요청 처리 후 세션을 자동으로 닫습니다.
    """
    async with AsyncSessionLocal() as session:
        yield session


@asynccontextmanager
async def get_async_session_context() -> AsyncGenerator[AsyncSession, None]:
    """
    ARQ Task 등 요청 밖의 비동기 컨텍스트에서 사용할
    독립적인 DB 세션을 제공하는 컨텍스트 관리자입니다.
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()
