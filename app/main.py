# app/main.py

"""
FastAPI 애플리케이션 진입점입니다.

- 도메인 라우터 등록 (usr, rst, inv, rcn, prd)
- lifespan: ARQ Redis 풀 생성 및 DB 엔진 정리
- ArqWorkerSettings: `arq app.main.ArqWorkerSettings`로 실행하는 백그라운드 워커 설정
"""

import logging
import math
from typing import Any, AsyncGenerator
from contextlib import asynccontextmanager

from arq import cron
from arq.connections import create_pool, RedisSettings
from sqlalchemy import text
from sqlmodel.ext.asyncio.session import AsyncSession
from fastapi import FastAPI, Depends, HTTPException, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app import API_PREFIX
from app.core.config import settings
from app.core.database import engine, get_session

# 태스크 모듈 임포트
from app.core import tasks as core_tasks
from app.domains.inv import tasks as inv_tasks

# 도메인 라우터 임포트
from app.domains.usr.routers import router as usr_router
from app.domains.rst.routers import router as rst_router
from app.domains.inv.routers import router as inv_router
from app.domains.rcn.routers import router as rcn_router
from app.domains.prd.routers import router as prd_router

logger = logging.getLogger(__name__)

# ARQ 워커가 실행할 태스크 함수 목록
worker_functions = [
    core_tasks.health_check_database_task,
    inv_tasks.send_low_stock_alert,
    inv_tasks.verify_stock_ledger,
]


# ARQ 워커 설정 클래스
class ArqWorkerSettings:
    redis_settings = RedisSettings(host=settings.REDIS_HOST, port=settings.REDIS_PORT)
    functions = worker_functions
    cron_jobs = [
        # 매일 00:00 DB 헬스 체크
        cron(core_tasks.health_check_database_task, hour={0}, minute={0}, timeout=300, keep_result=600),
        # 매일 02:00 전체 매장 재고 원장 검증
        cron(inv_tasks.verify_stock_ledger, hour={2}, minute={0}, timeout=1800, keep_result=3600),
    ]


# -- 애플리케이션 수명 주기 이벤트 핸들러 --
@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    ARQ Redis 커넥션 풀을 생성하여 app.state.redis에 할당합니다.
    Redis에 연결할 수 없으면 None으로 두고, 태스크는 요청 처리 중에 동기적으로 실행됩니다.
    """
    logger.info("Starting %s (%s)...", settings.APP_NAME, settings.APP_ENV)
    try:
        app.state.redis = await create_pool(ArqWorkerSettings.redis_settings)
        logger.info("ARQ Redis pool created.")
    except Exception as e:
        logger.warning("ARQ Redis pool unavailable, background tasks will run inline: %s", e)
        app.state.redis = None

    yield  # 애플리케이션 실행

    logger.info("Shutting down %s...", settings.APP_NAME)
    if app.state.redis is not None:
        await app.state.redis.close()
        logger.info("ARQ Redis pool closed.")
    await engine.dispose()
    logger.info("Database engine disposed.")


app = FastAPI(
    title=settings.APP_NAME,
    description=settings.APP_DESCRIPTION,
    version=settings.APP_VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

# -- CORS 미들웨어 설정 --
# 프로덕션에서는 allow_origins를 실제 프론트엔드 도메인으로 제한해야 합니다.
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# -- 요청 검증 오류 핸들러 --
def _finite_or_str(value: float) -> Any:
    return value if math.isfinite(value) else str(value)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """
    422 응답을 반환합니다. 오류에 포함된 입력값이 NaN/Infinity이면 JSON으로 표현할 수 없으므로 문자열로 바꿉니다.
    """
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={"detail": jsonable_encoder(exc.errors(), custom_encoder={float: _finite_or_str})},
    )


# -- 도메인 라우터 포함 --
app.include_router(usr_router, prefix=f"{API_PREFIX}/usr", tags=["User Management (사용자 관리)"])
app.include_router(rst_router, prefix=f"{API_PREFIX}/rst", tags=["Restaurant Management (매장 관리)"])
app.include_router(inv_router, prefix=f"{API_PREFIX}/inv", tags=["Inventory Management (재고 관리)"])
app.include_router(rcn_router, prefix=f"{API_PREFIX}/rcn", tags=["Stock Reconciliation (재고 실사)"])
app.include_router(prd_router, prefix=f"{API_PREFIX}/prd", tags=["Production (생산 기록)"])


@app.get("/", summary="API Root", response_description="Welcome message and documentation link.")
async def read_root():
    return {"message": f"Welcome to {settings.APP_NAME}. Visit /docs for interactive API documentation."}


@app.get("/health-check", summary="Health Check", response_description="Status of the application and database connection.")
async def health_check(session: AsyncSession = Depends(get_session)):
    """
    데이터베이스 연결을 테스트하여 서비스의 정상 작동 여부를 확인합니다.
    """
    try:
        result = await session.execute(text("SELECT 1"))
        if result.scalar() == 1:
            return {"status": "ok", "database_connection": "successful"}
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Database health check failed: No result from test query"
        )
    except HTTPException:
        raise
    except Exception as e:
        logger.error("Health check failed: %s", e)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Database connection error during health check: {e}"
        )
