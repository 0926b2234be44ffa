# app/domains/prd/crud.py

"""
'prd' 도메인 (생산 기록)의 CRUD 및 재료 재고 차감 로직 모듈입니다.

- immediate 모드: 생산 기록 시 Usage 이동으로 재료를 차감합니다.
- deferred 모드: preparation_status가 Complete로 바뀔 때 차감합니다.
- 삭제: 차감했던 수량만큼 Adjustment 이동을 추가한 뒤 기록을 삭제합니다.
"""

import logging
from datetime import date, datetime, UTC
from decimal import Decimal
from typing import Any, Dict, List, Optional

from sqlmodel import select
from sqlalchemy import update
from sqlmodel.ext.asyncio.session import AsyncSession
from sqlalchemy.orm import selectinload
from fastapi import HTTPException, status

from app.core.crud_base import CRUDBase
from app.domains.inv import crud as inv_crud
from app.domains.inv import ledger
from app.domains.inv import models as inv_models
from app.domains.rst import models as rst_models
from app.domains.usr import models as usr_models
from . import models as prd_models
from . import schemas as prd_schemas

logger = logging.getLogger(__name__)


async def _load_items(
    db: AsyncSession, *, restaurant_id: int, item_ids: List[int]
) -> Dict[int, inv_models.InventoryItem]:
    """매장의 활성 품목만 조회합니다."""
    if not item_ids:
        return {}
    result = await db.execute(
        select(inv_models.InventoryItem).where(
            inv_models.InventoryItem.id.in_(item_ids),
            inv_models.InventoryItem.restaurant_id == restaurant_id,
            inv_models.InventoryItem.is_active == True,  # noqa: E712
        )
    )
    return {item.id: item for item in result.scalars().all()}


def _required_by_item(details: List[Dict[str, Any]]) -> Dict[int, Decimal]:
    # 같은 품목이 여러 줄에 나올 수 있으므로 품목별로 합산합니다.
    required: Dict[int, Decimal] = {}
    for detail in details:
        required[detail["item_id"]] = required.get(detail["item_id"], Decimal("0")) + ledger.to_decimal(detail["quantity"])
    return required


def _ensure_sufficient_stock(items_by_id: Dict[int, inv_models.InventoryItem], details: List[Dict[str, Any]]) -> None:
    for item_id, needed in _required_by_item(details).items():
        item = items_by_id[item_id]
        if ledger.to_decimal(item.current_stock) < needed:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Insufficient stock for {item.name}: have {float(item.current_stock):g}, need {float(needed):g}",
            )


class ProductionLogCRUD(
    CRUDBase[prd_models.ProductionLog, prd_schemas.ProductionLogCreate, prd_schemas.ProductionLogUpdate]
):

    def _with_movements(self):
        return select(prd_models.ProductionLog).options(
            selectinload(prd_models.ProductionLog.stock_movements).selectinload(inv_models.StockMovement.item)
        )

    async def get_with_movements(self, db: AsyncSession, id: int) -> Optional[prd_models.ProductionLog]:
        query = (
            self._with_movements()
            .where(prd_models.ProductionLog.id == id)
            .execution_options(populate_existing=True)
        )
        result = await db.execute(query)
        return result.scalars().first()

    async def get_list(
        self,
        db: AsyncSession,
        *,
        restaurant_id: int,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        status_filter: Optional[prd_models.SubmissionStatus] = None,
        preparation_status: Optional[prd_models.PreparationStatus] = None,
        skip: int = 0,
        limit: int = 100,
    ) -> List[prd_models.ProductionLog]:
        query = self._with_movements().where(prd_models.ProductionLog.restaurant_id == restaurant_id)
        if start_date is not None:
            query = query.where(prd_models.ProductionLog.date >= start_date)
        if end_date is not None:
            query = query.where(prd_models.ProductionLog.date <= end_date)
        if status_filter is not None:
            query = query.where(prd_models.ProductionLog.status == status_filter)
        if preparation_status is not None:
            query = query.where(prd_models.ProductionLog.preparation_status == preparation_status)
        query = (
            query.order_by(prd_models.ProductionLog.date.desc(), prd_models.ProductionLog.id.desc())
            .offset(skip)
            .limit(limit)
        )
        result = await db.execute(query)
        return result.scalars().all()

    async def check_availability(
        self, db: AsyncSession, *, obj_in: prd_schemas.AvailabilityCheckRequest
    ) -> Dict[str, Any]:
        """
        재료별 현재고로 생산 가능 여부를 확인합니다.
        - insufficient: 생산 후 재고가 음수 (또는 매장에 없는 품목)
        - low: 생산 후 재고가 최소 재고 미만
        """
        items_by_id = await _load_items(
            db, restaurant_id=obj_in.restaurant_id, item_ids=[i.item_id for i in obj_in.ingredients]
        )

        results = []
        all_available = True
        estimated_cost = Decimal("0")
        for ingredient in obj_in.ingredients:
            required = ledger.to_decimal(ingredient.quantity)
            item = items_by_id.get(ingredient.item_id)
            if item is None:
                all_available = False
                results.append({
                    "item_id": ingredient.item_id,
                    "item_name": "Unknown Item",
                    "unit": "",
                    "required": float(required),
                    "current_stock": 0.0,
                    "after_production": float(-required),
                    "unit_cost": 0.0,
                    "status": "insufficient",
                    "shortage": float(required),
                })
                continue

            current = ledger.to_decimal(item.current_stock)
            after_production = current - required
            estimated_cost += required * ledger.to_decimal(item.unit_cost)

            if after_production < 0:
                ingredient_status = "insufficient"
                all_available = False
            elif after_production < ledger.to_decimal(item.min_stock):
                ingredient_status = "low"
            else:
                ingredient_status = "ok"

            results.append({
                "item_id": item.id,
                "item_name": item.name,
                "unit": item.unit,
                "required": float(required),
                "current_stock": float(current),
                "after_production": float(after_production),
                "unit_cost": float(item.unit_cost),
                "status": ingredient_status,
                "shortage": float(max(-after_production, Decimal("0"))),
            })

        return {"available": all_available, "estimated_cost": round(float(estimated_cost), 2), "items": results}

    async def _deduct_ingredients(
        self,
        db: AsyncSession,
        *,
        db_obj: prd_models.ProductionLog,
        items_by_id: Dict[int, inv_models.InventoryItem],
        user: usr_models.User,
    ) -> List[inv_models.InventoryItem]:
        """
        재료마다 Usage 이동을 추가합니다. 재고 검증은 호출 전에 끝나 있어야 합니다.
        stock_deducted를 false에서 true로 바꾼 요청만 차감하며, 이미 차감된 기록이면 빈 목록을 반환합니다.
        """
        deducted_at = datetime.now(UTC)
        claimed = await db.execute(
            update(prd_models.ProductionLog)
            .where(
                prd_models.ProductionLog.id == db_obj.id,
                prd_models.ProductionLog.stock_deducted == False,  # noqa: E712
            )
            .values(stock_deducted=True, stock_deducted_at=deducted_at)
            .execution_options(synchronize_session=False)
        )
        if claimed.rowcount == 0:
            logger.warning("Production log %d stock was already deducted, skipping", db_obj.id)
            return []

        reason = f"Production: {db_obj.product_name} (qty: {float(db_obj.quantity):g})"
        for detail in db_obj.ingredient_details:
            await inv_crud.stock_movement.record(
                db,
                item=items_by_id[detail["item_id"]],
                movement_type=inv_models.MovementType.USAGE,
                quantity=detail["quantity"],
                user=user,
                reason=reason,
                unit_cost=detail["unit_cost"],
                production_log_id=db_obj.id,
            )
        db_obj.stock_deducted = True
        db_obj.stock_deducted_at = deducted_at
        return list(items_by_id.values())

    async def create(
        self,
        db: AsyncSession,
        *,
        obj_in: prd_schemas.ProductionLogCreate,
        restaurant: rst_models.Restaurant,
        user: usr_models.User,
        arq_redis_pool: Any = None,
    ) -> prd_models.ProductionLog:
        """
        생산 기록을 등록합니다. 재료는 매장의 활성 품목이어야 하며,
        immediate 모드이고 deduct_stock이 true이면 재료 재고를 즉시 차감합니다.
        """
        items_by_id = await _load_items(
            db, restaurant_id=restaurant.id, item_ids=[i.item_id for i in obj_in.ingredients]
        )
        details = []
        for ingredient in obj_in.ingredients:
            item = items_by_id.get(ingredient.item_id)
            if item is None:
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST, detail=f"Ingredient not found: {ingredient.item_id}"
                )
            quantity = ledger.to_quantity(ingredient.quantity)
            if quantity <= 0:
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST, detail=f"Ingredient quantity must not be zero: {item.name}"
                )
            details.append({
                "item_id": item.id,
                "item_name": item.name,
                "quantity": float(quantity),
                "unit": item.unit,
                "unit_cost": float(item.unit_cost),
            })

        should_deduct = (
            obj_in.deduct_stock
            and restaurant.stock_deduction_mode == rst_models.StockDeductionMode.IMMEDIATE
            and bool(details)
        )
        if should_deduct:
            _ensure_sufficient_stock(items_by_id, details)

        estimated_cost = sum(
            (ledger.to_decimal(d["quantity"]) * ledger.to_decimal(d["unit_cost"]) for d in details), Decimal("0")
        )
        db_obj = prd_models.ProductionLog(
            restaurant_id=restaurant.id,
            product_name=obj_in.product_name,
            quantity=ledger.to_decimal(obj_in.quantity),
            ingredient_details=details,
            estimated_cost=estimated_cost,
            notes=obj_in.notes,
            created_by=user.id,
            created_by_name=user.display_name,
        )
        if obj_in.date is not None:
            db_obj.date = obj_in.date
        db.add(db_obj)
        await db.flush()

        deducted_items: List[inv_models.InventoryItem] = []
        if should_deduct:
            deducted_items = await self._deduct_ingredients(db, db_obj=db_obj, items_by_id=items_by_id, user=user)
            db.add(db_obj)

        await db.commit()
        logger.info(
            "Production log %d '%s' created (stock_deducted=%s)", db_obj.id, db_obj.product_name, db_obj.stock_deducted
        )
        await inv_crud.stock_movement.notify_low_stock(db, items=deducted_items, arq_redis_pool=arq_redis_pool)
        return await self.get_with_movements(db, db_obj.id)

    async def update(
        self,
        db: AsyncSession,
        *,
        db_obj: prd_models.ProductionLog,
        obj_in: prd_schemas.ProductionLogUpdate,
        user: usr_models.User,
        arq_redis_pool: Any = None,
    ) -> prd_models.ProductionLog:
        """
        생산 기록을 수정합니다.
        승인/반려는 소유자만 할 수 있으며, 재고가 차감되지 않은 기록을 Complete로 바꾸면 차감이 실행됩니다.
        """
        # null로 비울 수 있는 필드는 notes뿐입니다.
        update_data = {
            key: value
            for key, value in obj_in.model_dump(exclude_unset=True).items()
            if value is not None or key == "notes"
        }

        if update_data.get("status") in (prd_models.SubmissionStatus.APPROVED, prd_models.SubmissionStatus.REJECTED):
            if user.role not in usr_models.OWNER_ROLES:
                raise HTTPException(
                    status_code=status.HTTP_403_FORBIDDEN,
                    detail="Only owners can approve or reject production logs",
                )

        needs_deduction = (
            update_data.get("preparation_status") == prd_models.PreparationStatus.COMPLETE
            and db_obj.preparation_status != prd_models.PreparationStatus.COMPLETE
            and not db_obj.stock_deducted
            and bool(db_obj.ingredient_details)
        )
        items_by_id: Dict[int, inv_models.InventoryItem] = {}
        if needs_deduction:
            items_by_id = await _load_items(
                db, restaurant_id=db_obj.restaurant_id, item_ids=[d["item_id"] for d in db_obj.ingredient_details]
            )
            for detail in db_obj.ingredient_details:
                if detail["item_id"] not in items_by_id:
                    raise HTTPException(
                        status_code=status.HTTP_400_BAD_REQUEST,
                        detail=f"Ingredient not found: {detail['item_name']}",
                    )
            _ensure_sufficient_stock(items_by_id, db_obj.ingredient_details)

        for key, value in update_data.items():
            if key == "quantity":
                value = ledger.to_decimal(value)
            setattr(db_obj, key, value)

        deducted_items: List[inv_models.InventoryItem] = []
        if needs_deduction:
            deducted_items = await self._deduct_ingredients(db, db_obj=db_obj, items_by_id=items_by_id, user=user)
            if deducted_items:
                logger.info("Deferred stock deduction executed for production log %d", db_obj.id)

        db.add(db_obj)
        await db.commit()
        await inv_crud.stock_movement.notify_low_stock(db, items=deducted_items, arq_redis_pool=arq_redis_pool)
        return await self.get_with_movements(db, db_obj.id)

    async def remove(self, db: AsyncSession, *, db_obj: prd_models.ProductionLog, user: usr_models.User) -> int:
        """
        생산 기록을 삭제합니다. 원장을 되돌리지 않고 차감 수량만큼 Adjustment 이동을 추가합니다.
        db_obj는 stock_movements(item 포함)가 로드된 상태여야 합니다. 추가한 보정 이동 수를 반환합니다.
        """
        reversals = [m for m in db_obj.stock_movements if ledger.to_decimal(m.quantity) != 0]
        for movement in reversals:
            if ledger.to_decimal(movement.item.current_stock) - ledger.to_decimal(movement.quantity) < 0:
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail=f"Insufficient stock for {movement.item.name}: cannot reverse production movement",
                )

        reason = f"Production deleted: {db_obj.product_name} (log #{db_obj.id})"
        for movement in reversals:
            await inv_crud.stock_movement.record(
                db,
                item=movement.item,
                movement_type=inv_models.MovementType.ADJUSTMENT,
                quantity=-ledger.to_decimal(movement.quantity),
                user=user,
                reason=reason,
                unit_cost=movement.unit_cost,
            )

        log_id = db_obj.id
        await db.delete(db_obj)
        await db.commit()
        logger.info("Production log %d deleted with %d reversal movements", log_id, len(reversals))
        return len(reversals)


production_log = ProductionLogCRUD(prd_models.ProductionLog)
