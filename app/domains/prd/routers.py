# app/domains/prd/routers.py

"""
'prd' 도메인 (생산 기록)과 관련된 API 엔드포인트를 정의하는 모듈입니다.
"""

from typing import Any, List, Optional
from datetime import date

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from sqlmodel.ext.asyncio.session import AsyncSession

from app.core import dependencies as deps
from app.domains.rst import crud as rst_crud
from app.domains.usr import models as usr_models

from . import crud as prd_crud
from . import models as prd_models
from . import schemas as prd_schemas

router = APIRouter(
    tags=["Production (생산 기록)"],
    responses={404: {"description": "Not found"}},
)


async def _get_log_for_user(
    db: AsyncSession, production_log_id: int, user: usr_models.User
) -> prd_models.ProductionLog:
    db_obj = await prd_crud.production_log.get_with_movements(db, production_log_id)
    if db_obj is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Production log not found")
    await rst_crud.restaurant.ensure_access(db, user=user, restaurant_id=db_obj.restaurant_id)
    return db_obj


@router.post("/production_logs/check_availability", response_model=prd_schemas.AvailabilityCheckResponse)
async def check_ingredient_availability(
    check_in: prd_schemas.AvailabilityCheckRequest,
    db: AsyncSession = Depends(deps.get_db_session),
    current_user: usr_models.User = Depends(deps.get_current_active_user),
):
    """생산 전에 재료 재고가 충분한지와 예상 원가를 확인합니다. 재고는 변경되지 않습니다."""
    await rst_crud.restaurant.ensure_access(db, user=current_user, restaurant_id=check_in.restaurant_id)
    return await prd_crud.production_log.check_availability(db, obj_in=check_in)


@router.post(
    "/production_logs", response_model=prd_schemas.ProductionLogResponse, status_code=status.HTTP_201_CREATED
)
async def create_production_log(
    log_in: prd_schemas.ProductionLogCreate,
    db: AsyncSession = Depends(deps.get_db_session),
    arq_redis_pool: Any = Depends(deps.get_arq_pool),
    current_user: usr_models.User = Depends(deps.get_current_production_user),
):
    """
    생산 기록을 등록합니다.
    매장의 stock_deduction_mode가 immediate이면 재료 재고를 즉시 차감합니다.
    """
    restaurant = await rst_crud.restaurant.ensure_access(db, user=current_user, restaurant_id=log_in.restaurant_id)
    return await prd_crud.production_log.create(
        db, obj_in=log_in, restaurant=restaurant, user=current_user, arq_redis_pool=arq_redis_pool
    )


@router.get("/production_logs", response_model=List[prd_schemas.ProductionLogResponse])
async def read_production_logs(
    restaurant_id: int,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    status_filter: Optional[prd_models.SubmissionStatus] = Query(None, alias="status"),
    preparation_status: Optional[prd_models.PreparationStatus] = None,
    skip: int = 0,
    limit: int = 100,
    db: AsyncSession = Depends(deps.get_db_session),
    current_user: usr_models.User = Depends(deps.get_current_active_user),
):
    await rst_crud.restaurant.ensure_access(db, user=current_user, restaurant_id=restaurant_id)
    return await prd_crud.production_log.get_list(
        db,
        restaurant_id=restaurant_id,
        start_date=start_date,
        end_date=end_date,
        status_filter=status_filter,
        preparation_status=preparation_status,
        skip=skip,
        limit=limit,
    )


@router.get("/production_logs/{production_log_id}", response_model=prd_schemas.ProductionLogResponse)
async def read_production_log(
    production_log_id: int,
    db: AsyncSession = Depends(deps.get_db_session),
    current_user: usr_models.User = Depends(deps.get_current_active_user),
):
    return await _get_log_for_user(db, production_log_id, current_user)


@router.put("/production_logs/{production_log_id}", response_model=prd_schemas.ProductionLogResponse)
async def update_production_log(
    production_log_id: int,
    log_in: prd_schemas.ProductionLogUpdate,
    db: AsyncSession = Depends(deps.get_db_session),
    arq_redis_pool: Any = Depends(deps.get_arq_pool),
    current_user: usr_models.User = Depends(deps.get_current_production_user),
):
    db_obj = await _get_log_for_user(db, production_log_id, current_user)
    return await prd_crud.production_log.update(
        db, db_obj=db_obj, obj_in=log_in, user=current_user, arq_redis_pool=arq_redis_pool
    )


@router.delete("/production_logs/{production_log_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_production_log(
    production_log_id: int,
    db: AsyncSession = Depends(deps.get_db_session),
    current_user: usr_models.User = Depends(deps.get_current_owner_user),
):
    """생산 기록을 삭제합니다. 차감되었던 재료 재고는 보정 이동으로 되돌립니다."""
    db_obj = await _get_log_for_user(db, production_log_id, current_user)
    await prd_crud.production_log.remove(db, db_obj=db_obj, user=current_user)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
