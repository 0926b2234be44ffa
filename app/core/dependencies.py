# app/core/dependencies.py

"""
FastAPI 애플리케이션의 의존성 주입(Dependency Injection)을 정의하는 모듈입니다.

- 데이터베이스 세션 (get_db_session)
- 현재 인증된 사용자 및 역할별 사용자 (security.py에서 재노출)
- ARQ Redis 풀 획득 (get_arq_pool)
"""

from typing import Any, AsyncGenerator, Optional

from fastapi import Request
from sqlmodel.ext.asyncio.session import AsyncSession

from app.core.database import get_session as get_main_app_session

# flake8: noqa
from app.core.security import (
    create_access_token,
    get_password_hash,
    verify_password,
    oauth2_scheme,
    get_current_user_from_token,
    get_current_active_user,
    get_current_owner_user,
    get_current_stock_manager_user,
    get_current_production_user,
)


async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI 의존성 주입을 위한 비동기 데이터베이스 세션 제너레이터입니다.
    app.core.database.get_session을 래핑하여 사용합니다.
    """
    async for session in get_main_app_session():
        yield session


def get_arq_pool(request: Request) -> Optional[Any]:
    """
    lifespan에서 생성한 ARQ Redis 풀을 반환합니다.
    Redis에 연결하지 못했거나 lifespan이 실행되지 않은 경우(테스트) None을 반환하며,
    호출 측은 태스크를 동기적으로 실행합니다.
    """
    return getattr(request.app.state, "redis", None)
