# app/domains/rcn/routers.py

"""
'rcn' 도메인 (재고 실사)과 관련된 API 엔드포인트를 정의하는 모듈입니다.
"""

from typing import Any, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlmodel.ext.asyncio.session import AsyncSession

from app.core import dependencies as deps
from app.domains.rst import crud as rst_crud
from app.domains.usr import models as usr_models

from . import crud as rcn_crud
from . import models as rcn_models
from . import schemas as rcn_schemas

router = APIRouter(
    tags=["Stock Reconciliation (재고 실사)"],
    responses={404: {"description": "Not found"}},
)


async def _get_reconciliation_for_user(
    db: AsyncSession, reconciliation_id: int, user: usr_models.User
) -> rcn_models.StockReconciliation:
    db_obj = await rcn_crud.reconciliation.get_with_items(db, reconciliation_id)
    if db_obj is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Reconciliation not found")
    await rst_crud.restaurant.ensure_access(db, user=user, restaurant_id=db_obj.restaurant_id)
    return db_obj


@router.post(
    "/reconciliations", response_model=rcn_schemas.ReconciliationResponse, status_code=status.HTTP_201_CREATED
)
async def create_reconciliation(
    reconciliation_in: rcn_schemas.ReconciliationCreate,
    db: AsyncSession = Depends(deps.get_db_session),
    current_user: usr_models.User = Depends(deps.get_current_active_user),
):
    """재고 실사 결과를 등록합니다. 승인 전까지 재고는 변경되지 않습니다."""
    await rst_crud.restaurant.ensure_access(db, user=current_user, restaurant_id=reconciliation_in.restaurant_id)
    return await rcn_crud.reconciliation.create(db, obj_in=reconciliation_in, user=current_user)


@router.get("/reconciliations", response_model=List[rcn_schemas.ReconciliationResponse])
async def read_reconciliations(
    restaurant_id: int,
    status_filter: Optional[rcn_models.ReconciliationStatus] = Query(None, alias="status"),
    skip: int = 0,
    limit: int = 100,
    db: AsyncSession = Depends(deps.get_db_session),
    current_user: usr_models.User = Depends(deps.get_current_active_user),
):
    await rst_crud.restaurant.ensure_access(db, user=current_user, restaurant_id=restaurant_id)
    return await rcn_crud.reconciliation.get_list(
        db, restaurant_id=restaurant_id, status_filter=status_filter, skip=skip, limit=limit
    )


@router.get("/reconciliations/{reconciliation_id}", response_model=rcn_schemas.ReconciliationResponse)
async def read_reconciliation(
    reconciliation_id: int,
    db: AsyncSession = Depends(deps.get_db_session),
    current_user: usr_models.User = Depends(deps.get_current_active_user),
):
    return await _get_reconciliation_for_user(db, reconciliation_id, current_user)


@router.put("/reconciliations/{reconciliation_id}", response_model=rcn_schemas.ReconciliationProcessResponse)
async def process_reconciliation(
    reconciliation_id: int,
    process_in: rcn_schemas.ReconciliationProcess,
    db: AsyncSession = Depends(deps.get_db_session),
    arq_redis_pool: Any = Depends(deps.get_arq_pool),
    current_user: usr_models.User = Depends(deps.get_current_owner_user),
):
    """
    실사를 승인(approve) 또는 반려(reject)합니다. 소유자 권한이 필요합니다.
    승인 시 차이가 있는 품목마다 조정 이동이 기록됩니다.
    """
    db_obj = await _get_reconciliation_for_user(db, reconciliation_id, current_user)
    return await rcn_crud.reconciliation.process(
        db, db_obj=db_obj, action=process_in.action, user=current_user, arq_redis_pool=arq_redis_pool
    )
