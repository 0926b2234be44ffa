# app/domains/inv/routers.py

"""
'inv' 도메인 (공급업체, 재고 품목, 재고 이동/원장)과 관련된 API 엔드포인트를 정의하는 모듈입니다.
"""

from typing import Any, List, Optional
from datetime import date

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlmodel.ext.asyncio.session import AsyncSession

from app.core import dependencies as deps
from app.domains.rst import crud as rst_crud
from app.domains.usr import models as usr_models

from . import crud as inv_crud
from . import ledger
from . import models as inv_models
from . import schemas as inv_schemas

router = APIRouter(
    tags=["Inventory Management (재고 관리)"],
    responses={404: {"description": "Not found"}},
)


async def _get_item_or_404(db: AsyncSession, item_id: int) -> inv_models.InventoryItem:
    db_item = await inv_crud.inventory_item.get(db, item_id)
    if db_item is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Inventory item not found")
    return db_item


# =============================================================================
# 1. 공급업체 (suppliers) 엔드포인트
# =============================================================================
@router.get("/suppliers", response_model=List[inv_schemas.SupplierResponse])
async def read_suppliers(
    include_inactive: bool = False,
    db: AsyncSession = Depends(deps.get_db_session),
    current_user: usr_models.User = Depends(deps.get_current_active_user),
):
    return await inv_crud.supplier.get_list(db, include_inactive=include_inactive)


@router.post("/suppliers", response_model=inv_schemas.SupplierResponse, status_code=status.HTTP_201_CREATED)
async def create_supplier(
    supplier_in: inv_schemas.SupplierCreate,
    db: AsyncSession = Depends(deps.get_db_session),
    current_user: usr_models.User = Depends(deps.get_current_owner_user),
):
    """새 공급업체를 등록합니다. 소유자 권한이 필요합니다."""
    return await inv_crud.supplier.create(db, obj_in=supplier_in)


@router.put("/suppliers/{supplier_id}", response_model=inv_schemas.SupplierResponse)
async def update_supplier(
    supplier_id: int,
    supplier_in: inv_schemas.SupplierUpdate,
    db: AsyncSession = Depends(deps.get_db_session),
    current_user: usr_models.User = Depends(deps.get_current_owner_user),
):
    db_supplier = await inv_crud.supplier.get(db, supplier_id)
    if db_supplier is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Supplier not found")
    return await inv_crud.supplier.update(db, db_obj=db_supplier, obj_in=supplier_in)


# =============================================================================
# 2. 재고 품목 (items) 엔드포인트
# =============================================================================
@router.get("/items", response_model=List[inv_schemas.InventoryItemResponse])
async def read_items(
    restaurant_id: int,
    category: Optional[str] = None,
    search: Optional[str] = None,
    low_stock: bool = False,
    db: AsyncSession = Depends(deps.get_db_session),
    current_user: usr_models.User = Depends(deps.get_current_active_user),
):
    """매장의 활성 품목 목록을 조회합니다. low_stock=true이면 부족/위험 품목만 반환합니다."""
    await rst_crud.restaurant.ensure_access(db, user=current_user, restaurant_id=restaurant_id)
    return await inv_crud.inventory_item.get_list(
        db, restaurant_id=restaurant_id, category=category, search=search, low_stock=low_stock
    )


@router.post("/items", response_model=inv_schemas.InventoryItemResponse, status_code=status.HTTP_201_CREATED)
async def create_item(
    item_in: inv_schemas.InventoryItemCreate,
    db: AsyncSession = Depends(deps.get_db_session),
    current_user: usr_models.User = Depends(deps.get_current_owner_user),
):
    await rst_crud.restaurant.ensure_access(db, user=current_user, restaurant_id=item_in.restaurant_id)
    return await inv_crud.inventory_item.create(db, obj_in=item_in, user=current_user)


@router.get("/items/{item_id}", response_model=inv_schemas.InventoryItemDetailResponse)
async def read_item(
    item_id: int,
    db: AsyncSession = Depends(deps.get_db_session),
    current_user: usr_models.User = Depends(deps.get_current_active_user),
):
    """품목 상세 정보와 최근 이동 20건, 유통기한 정보를 조회합니다."""
    db_item = await _get_item_or_404(db, item_id)
    await rst_crud.restaurant.ensure_access(db, user=current_user, restaurant_id=db_item.restaurant_id)

    recent_movements = await inv_crud.stock_movement.get_recent_for_item(db, item_id=item_id, limit=20)
    last_purchases = await ledger.get_last_purchase_dates(db, [item_id])
    expiry = ledger.get_expiry_info(db_item.expiry_days, last_purchases.get(item_id))

    item_data = inv_schemas.InventoryItemResponse.model_validate(db_item).model_dump(exclude={"stock_status"})
    return inv_schemas.InventoryItemDetailResponse(
        **item_data,
        recent_movements=[inv_schemas.StockMovementResponse.model_validate(m) for m in recent_movements],
        expiry=expiry,
    )


@router.put("/items/{item_id}", response_model=inv_schemas.InventoryItemResponse)
async def update_item(
    item_id: int,
    item_in: inv_schemas.InventoryItemUpdate,
    db: AsyncSession = Depends(deps.get_db_session),
    current_user: usr_models.User = Depends(deps.get_current_owner_user),
):
    """품목 정보를 수정합니다. 재고 수량은 수정할 수 없으며 adjust를 사용해야 합니다."""
    db_item = await _get_item_or_404(db, item_id)
    await rst_crud.restaurant.ensure_access(db, user=current_user, restaurant_id=db_item.restaurant_id)
    return await inv_crud.inventory_item.update(db, db_obj=db_item, obj_in=item_in)


@router.delete("/items/{item_id}", response_model=inv_schemas.InventoryItemResponse)
async def delete_item(
    item_id: int,
    db: AsyncSession = Depends(deps.get_db_session),
    current_user: usr_models.User = Depends(deps.get_current_owner_user),
):
    db_item = await _get_item_or_404(db, item_id)
    await rst_crud.restaurant.ensure_access(db, user=current_user, restaurant_id=db_item.restaurant_id)
    return await inv_crud.inventory_item.soft_delete(db, db_obj=db_item)


@router.post("/items/{item_id}/adjust", response_model=inv_schemas.StockAdjustResponse)
async def adjust_item_stock(
    item_id: int,
    adjust_in: inv_schemas.StockAdjustRequest,
    db: AsyncSession = Depends(deps.get_db_session),
    arq_redis_pool: Any = Depends(deps.get_arq_pool),
    current_user: usr_models.User = Depends(deps.get_current_stock_manager_user),
):
    """품목 재고를 입고/사용/폐기/조정합니다. 결과 재고가 음수가 되면 400을 반환합니다."""
    db_item = await _get_item_or_404(db, item_id)
    await rst_crud.restaurant.ensure_access(db, user=current_user, restaurant_id=db_item.restaurant_id)
    movement, item = await inv_crud.stock_movement.apply(
        db, item=db_item, obj_in=adjust_in, user=current_user, arq_redis_pool=arq_redis_pool
    )
    return {"movement": movement, "item": item}


# =============================================================================
# 3. 재고 이동 (stock_movements) 엔드포인트
# =============================================================================
@router.post(
    "/stock_movements", response_model=inv_schemas.StockAdjustResponse, status_code=status.HTTP_201_CREATED
)
async def create_stock_movement(
    movement_in: inv_schemas.StockMovementCreate,
    db: AsyncSession = Depends(deps.get_db_session),
    arq_redis_pool: Any = Depends(deps.get_arq_pool),
    current_user: usr_models.User = Depends(deps.get_current_stock_manager_user),
):
    await rst_crud.restaurant.ensure_access(db, user=current_user, restaurant_id=movement_in.restaurant_id)
    db_item = await _get_item_or_404(db, movement_in.item_id)
    if db_item.restaurant_id != movement_in.restaurant_id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail="Inventory item does not belong to this restaurant"
        )
    movement, item = await inv_crud.stock_movement.apply(
        db, item=db_item, obj_in=movement_in, user=current_user, arq_redis_pool=arq_redis_pool
    )
    return {"movement": movement, "item": item}


@router.get("/stock_movements", response_model=List[inv_schemas.StockMovementWithItemResponse])
async def read_stock_movements(
    restaurant_id: int,
    item_id: Optional[int] = None,
    type: Optional[inv_models.MovementType] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    limit: int = Query(50, ge=1),
    db: AsyncSession = Depends(deps.get_db_session),
    current_user: usr_models.User = Depends(deps.get_current_active_user),
):
    """재고 이동 내역을 최신순으로 조회합니다. limit은 최대 100입니다."""
    await rst_crud.restaurant.ensure_access(db, user=current_user, restaurant_id=restaurant_id)
    return await inv_crud.stock_movement.get_list(
        db,
        restaurant_id=restaurant_id,
        item_id=item_id,
        movement_type=type,
        start_date=start_date,
        end_date=end_date,
        limit=min(limit, 100),
    )


@router.get("/stock_movements/summary", response_model=inv_schemas.StockMovementSummary)
async def read_stock_movement_summary(
    restaurant_id: int,
    item_id: Optional[int] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    db: AsyncSession = Depends(deps.get_db_session),
    current_user: usr_models.User = Depends(deps.get_current_active_user),
):
    await rst_crud.restaurant.ensure_access(db, user=current_user, restaurant_id=restaurant_id)
    return await inv_crud.stock_movement.get_summary(
        db, restaurant_id=restaurant_id, item_id=item_id, start_date=start_date, end_date=end_date
    )


# =============================================================================
# 4. 매장 간 이동 (transfers) 엔드포인트
# =============================================================================
@router.post("/transfers", response_model=inv_schemas.StockTransferResult, status_code=status.HTTP_201_CREATED)
async def create_transfer(
    transfer_in: inv_schemas.StockTransferCreate,
    db: AsyncSession = Depends(deps.get_db_session),
    arq_redis_pool: Any = Depends(deps.get_arq_pool),
    current_user: usr_models.User = Depends(deps.get_current_stock_manager_user),
):
    """
    매장 간 재고를 이동합니다. 두 매장 모두에 소속된 사용자만 요청할 수 있으며,
    출고 매장에는 TransferOut, 입고 매장에는 TransferIn 이동이 기록됩니다.
    """
    if transfer_in.source_restaurant_id == transfer_in.target_restaurant_id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Cannot transfer to the same restaurant")
    await rst_crud.restaurant.ensure_access(db, user=current_user, restaurant_id=transfer_in.source_restaurant_id)
    await rst_crud.restaurant.ensure_access(db, user=current_user, restaurant_id=transfer_in.target_restaurant_id)
    return await inv_crud.stock_transfer.create_transfer(
        db, obj_in=transfer_in, user=current_user, arq_redis_pool=arq_redis_pool
    )


@router.get("/transfers", response_model=List[inv_schemas.StockTransferResponse])
async def read_transfers(
    restaurant_id: int,
    db: AsyncSession = Depends(deps.get_db_session),
    current_user: usr_models.User = Depends(deps.get_current_active_user),
):
    await rst_crud.restaurant.ensure_access(db, user=current_user, restaurant_id=restaurant_id)
    return await inv_crud.stock_transfer.get_for_restaurant(db, restaurant_id=restaurant_id, limit=50)


# =============================================================================
# 5. 재고 평가 / 유통기한 / 원장 검증 엔드포인트
# =============================================================================
@router.get("/valuation", response_model=inv_schemas.InventoryValuation)
async def read_inventory_valuation(
    restaurant_id: int,
    db: AsyncSession = Depends(deps.get_db_session),
    current_user: usr_models.User = Depends(deps.get_current_active_user),
):
    await rst_crud.restaurant.ensure_access(db, user=current_user, restaurant_id=restaurant_id)
    return await inv_crud.inventory_item.get_valuation(db, restaurant_id=restaurant_id)


@router.get("/expiry_status", response_model=inv_schemas.ExpiryStatusResponse)
async def read_expiry_status(
    restaurant_id: int,
    status_filter: Optional[str] = Query(None, alias="status"),
    db: AsyncSession = Depends(deps.get_db_session),
    current_user: usr_models.User = Depends(deps.get_current_active_user),
):
    """유통기한이 있는 품목의 상태(fresh/warning/expired/non-perishable)를 조회합니다."""
    await rst_crud.restaurant.ensure_access(db, user=current_user, restaurant_id=restaurant_id)
    return await inv_crud.inventory_item.get_expiry_status(
        db, restaurant_id=restaurant_id, status_filter=status_filter
    )


@router.get("/ledger_check", response_model=inv_schemas.LedgerCheckResponse)
async def check_stock_ledger(
    restaurant_id: Optional[int] = None,
    db: AsyncSession = Depends(deps.get_db_session),
    current_user: usr_models.User = Depends(deps.get_current_owner_user),
):
    """품목별 current_stock과 이동 원장 합계를 비교하여 불일치 품목을 반환합니다."""
    if restaurant_id is not None:
        await rst_crud.restaurant.ensure_access(db, user=current_user, restaurant_id=restaurant_id)
    return await ledger.compute_ledger_drift(db, restaurant_id=restaurant_id)
