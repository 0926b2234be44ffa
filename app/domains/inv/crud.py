# app/domains/inv/crud.py

"""
'inv' 도메인 (공급업체, 재고 품목, 재고 원장)의 CRUD 및 비즈니스 로직 모듈입니다.

재고 변경은 모두 StockMovementCRUD.record()를 거치며,
current_stock의 변경과 원장 행 추가가 항상 함께 이루어집니다.
"""

import logging
from typing import Any, Dict, List, Optional, Sequence, Tuple
from datetime import date, datetime, time, timedelta, UTC
from decimal import Decimal

from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession
from sqlalchemy import or_, update
from sqlalchemy.orm import selectinload
from fastapi import HTTPException, status

from app.core.crud_base import CRUDBase
from app.domains.usr import models as usr_models
from . import ledger
from . import models as inv_models
from . import schemas as inv_schemas
from . import tasks as inv_tasks

logger = logging.getLogger(__name__)


def _day_start(value: date) -> datetime:
    return datetime.combine(value, time.min, tzinfo=UTC)


# =============================================================================
# 1. 공급업체 (Supplier) CRUD
# =============================================================================
class SupplierCRUD(CRUDBase[inv_models.Supplier, inv_schemas.SupplierCreate, inv_schemas.SupplierUpdate]):

    async def get_list(self, db: AsyncSession, *, include_inactive: bool = False) -> List[inv_models.Supplier]:
        query = select(inv_models.Supplier).order_by(inv_models.Supplier.name)
        if not include_inactive:
            query = query.where(inv_models.Supplier.is_active == True)  # noqa: E712
        result = await db.execute(query)
        return result.scalars().all()


# =============================================================================
# 2. 재고 품목 (InventoryItem) CRUD
# =============================================================================
class InventoryItemCRUD(
    CRUDBase[inv_models.InventoryItem, inv_schemas.InventoryItemCreate, inv_schemas.InventoryItemUpdate]
):
    """재고 품목 CRUD. current_stock은 이동 기록을 통해서만 변경됩니다."""

    async def _ensure_supplier(self, db: AsyncSession, supplier_id: Optional[int]) -> None:
        if supplier_id is not None and not await db.get(inv_models.Supplier, supplier_id):
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Supplier not found")

    async def get_list(
        self,
        db: AsyncSession,
        *,
        restaurant_id: int,
        category: Optional[str] = None,
        search: Optional[str] = None,
        low_stock: bool = False,
    ) -> List[inv_models.InventoryItem]:
        """매장의 활성 품목을 이름순으로 조회합니다."""
        query = select(inv_models.InventoryItem).where(
            inv_models.InventoryItem.restaurant_id == restaurant_id,
            inv_models.InventoryItem.is_active == True,  # noqa: E712
        )
        if category:
            query = query.where(inv_models.InventoryItem.category == category)
        if search:
            query = query.where(inv_models.InventoryItem.name.ilike(f"%{search}%"))
        query = query.order_by(inv_models.InventoryItem.name, inv_models.InventoryItem.id)

        result = await db.execute(query)
        items = result.scalars().all()
        if low_stock:
            items = [
                item for item in items
                if ledger.get_stock_status(item.current_stock, item.min_stock) != ledger.STOCK_OK
            ]
        return items

    async def get_by_name_and_category(
        self, db: AsyncSession, *, restaurant_id: int, name: str, category: str
    ) -> Optional[inv_models.InventoryItem]:
        query = select(inv_models.InventoryItem).where(
            inv_models.InventoryItem.restaurant_id == restaurant_id,
            inv_models.InventoryItem.name == name,
            inv_models.InventoryItem.category == category,
            inv_models.InventoryItem.is_active == True,  # noqa: E712
        )
        result = await db.execute(query)
        return result.scalars().first()

    async def create(
        self,
        db: AsyncSession,
        *,
        obj_in: inv_schemas.InventoryItemCreate,
        user: Optional[usr_models.User] = None,
    ) -> inv_models.InventoryItem:
        """
        품목을 생성합니다. 초기 재고가 있으면 'Opening balance' 조정 이동을 함께 기록하여
        current_stock이 원장 합계와 일치하도록 합니다.
        """
        await self._ensure_supplier(db, obj_in.supplier_id)

        opening_stock = ledger.to_quantity(obj_in.current_stock)
        db_obj = inv_models.InventoryItem.model_validate(obj_in, update={"current_stock": Decimal("0")})
        db.add(db_obj)
        await db.flush()

        if opening_stock > 0:
            await stock_movement.record(
                db,
                item=db_obj,
                movement_type=inv_models.MovementType.ADJUSTMENT,
                quantity=opening_stock,
                user=user,
                reason="Opening balance",
                unit_cost=db_obj.unit_cost,
            )

        await db.commit()
        await db.refresh(db_obj)
        logger.info("Inventory item '%s' created in restaurant %d", db_obj.name, db_obj.restaurant_id)
        return db_obj

    async def update(
        self, db: AsyncSession, *, db_obj: inv_models.InventoryItem, obj_in: inv_schemas.InventoryItemUpdate
    ) -> inv_models.InventoryItem:
        if "supplier_id" in obj_in.model_fields_set:
            await self._ensure_supplier(db, obj_in.supplier_id)
        return await super().update(db, db_obj=db_obj, obj_in=obj_in)

    async def soft_delete(self, db: AsyncSession, *, db_obj: inv_models.InventoryItem) -> inv_models.InventoryItem:
        """이동 원장이 품목을 참조하므로 행을 지우지 않고 비활성화합니다."""
        db_obj.is_active = False
        db.add(db_obj)
        await db.commit()
        await db.refresh(db_obj)
        return db_obj

    async def get_valuation(self, db: AsyncSession, *, restaurant_id: int) -> Dict[str, Any]:
        """매장 재고 평가액(현재고 x 단가)을 분류별, 공급업체별로 집계합니다."""
        query = (
            select(inv_models.InventoryItem)
            .where(inv_models.InventoryItem.restaurant_id == restaurant_id)
            .options(selectinload(inv_models.InventoryItem.supplier))
        )
        result = await db.execute(query)
        items = result.scalars().all()
        active_items = [item for item in items if item.is_active]

        total_value = Decimal("0")
        by_category: Dict[str, Dict[str, Any]] = {}
        by_supplier: Dict[str, Dict[str, Any]] = {}

        for item in active_items:
            value = ledger.to_decimal(item.current_stock) * ledger.to_decimal(item.unit_cost)
            total_value += value

            category_group = by_category.setdefault(
                item.category, {"key": item.category, "name": item.category, "item_count": 0, "total_value": Decimal("0")}
            )
            category_group["item_count"] += 1
            category_group["total_value"] += value

            if item.supplier is not None:
                supplier_key, supplier_name = str(item.supplier.id), item.supplier.name
            else:
                supplier_key, supplier_name = "none", "No supplier"
            supplier_group = by_supplier.setdefault(
                supplier_key, {"key": supplier_key, "name": supplier_name, "item_count": 0, "total_value": Decimal("0")}
            )
            supplier_group["item_count"] += 1
            supplier_group["total_value"] += value

        def _finalize(groups: Dict[str, Dict[str, Any]]) -> List[Dict[str, Any]]:
            rows = []
            for group in sorted(groups.values(), key=lambda g: g["total_value"], reverse=True):
                percent = (group["total_value"] / total_value * 100) if total_value > 0 else Decimal("0")
                rows.append({
                    **group,
                    "total_value": round(float(group["total_value"]), 2),
                    "percent_of_total": round(float(percent), 2),
                })
            return rows

        return {
            "restaurant_id": restaurant_id,
            "total_value": round(float(total_value), 2),
            "by_category": _finalize(by_category),
            "by_supplier": _finalize(by_supplier),
            "stats": {
                "total_items": len(items),
                "active_items": len(active_items),
                "zero_stock_items": sum(1 for item in active_items if ledger.to_decimal(item.current_stock) <= 0),
            },
        }

    async def get_expiry_status(
        self, db: AsyncSession, *, restaurant_id: int, status_filter: Optional[str] = None
    ) -> Dict[str, Any]:
        """유통기한이 있는 활성 품목의 유통기한 상태를 조회합니다. 임박한 순으로 정렬됩니다."""
        query = select(inv_models.InventoryItem).where(
            inv_models.InventoryItem.restaurant_id == restaurant_id,
            inv_models.InventoryItem.is_active == True,  # noqa: E712
            inv_models.InventoryItem.expiry_days > 0,
        )
        result = await db.execute(query)
        items = result.scalars().all()
        last_purchases = await ledger.get_last_purchase_dates(db, [item.id for item in items])

        rows = []
        counts: Dict[str, int] = {
            ledger.EXPIRY_FRESH: 0,
            ledger.EXPIRY_WARNING: 0,
            ledger.EXPIRY_EXPIRED: 0,
            ledger.EXPIRY_NON_PERISHABLE: 0,
        }
        for item in items:
            last_purchase_at = last_purchases.get(item.id)
            info = ledger.get_expiry_info(item.expiry_days, last_purchase_at)
            counts[info["status"]] += 1
            if status_filter and info["status"] != status_filter:
                continue
            rows.append({
                "item_id": item.id,
                "name": item.name,
                "category": item.category,
                "unit": item.unit,
                "current_stock": float(item.current_stock),
                "expiry_days": item.expiry_days,
                "last_purchase_at": last_purchase_at,
                "expiry": info,
            })

        rows.sort(key=lambda r: (r["expiry"]["days_until_expiry"] is None, r["expiry"]["days_until_expiry"] or 0, r["name"]))
        return {"restaurant_id": restaurant_id, "items": rows, "counts": counts}


# =============================================================================
# 3. 재고 이동 (StockMovement) - 원장
# =============================================================================
class StockMovementCRUD(
    CRUDBase[inv_models.StockMovement, inv_schemas.StockMovementCreate, inv_schemas.StockMovementCreate]
):
    """
    재고 원장 CRUD. 이동 행은 추가만 하며 수정/삭제 메서드를 제공하지 않습니다.
    """

    async def record(
        self,
        db: AsyncSession,
        *,
        item: inv_models.InventoryItem,
        movement_type: inv_models.MovementType,
        quantity: Any,
        user: Optional[usr_models.User] = None,
        reason: Optional[str] = None,
        unit_cost: Any = None,
        production_log_id: Optional[int] = None,
        transfer_id: Optional[int] = None,
    ) -> inv_models.StockMovement:
        """
        부호 규칙에 따라 이동 한 건을 세션에 추가하고 품목의 current_stock을 갱신합니다.
        commit은 호출자가 수행합니다. 결과 재고가 음수가 되면 아무것도 추가하지 않고 400을 반환합니다.

        current_stock은 읽어 온 값이 아니라 DB에서 `current_stock + delta`로 갱신합니다.
        차감은 갱신 시점의 재고가 충분할 때만 적용됩니다.
        """
        delta = ledger.signed_quantity(movement_type, quantity)
        if delta == 0:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Quantity must not be zero")
        if ledger.to_decimal(item.current_stock) + delta < 0:
            raise self._insufficient(item, delta)

        await db.flush()
        stock_update = (
            update(inv_models.InventoryItem)
            .where(inv_models.InventoryItem.id == item.id)
            .values(current_stock=inv_models.InventoryItem.current_stock + delta)
            .execution_options(synchronize_session=False)
        )
        if delta < 0:
            stock_update = stock_update.where(inv_models.InventoryItem.current_stock >= -delta)
        result = await db.execute(stock_update)
        await db.refresh(item, attribute_names=["current_stock", "updated_at"])
        if result.rowcount == 0:
            raise self._insufficient(item, delta)

        movement = inv_models.StockMovement(
            restaurant_id=item.restaurant_id,
            item_id=item.id,
            type=movement_type,
            quantity=delta,
            unit_cost=ledger.to_quantity(unit_cost) if unit_cost is not None else None,
            reason=reason,
            production_log_id=production_log_id,
            transfer_id=transfer_id,
            created_by=user.id if user else None,
            created_by_name=user.display_name if user else None,
        )
        db.add(movement)
        return movement

    @staticmethod
    def _insufficient(item: inv_models.InventoryItem, delta) -> HTTPException:
        return HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Insufficient stock for {item.name}: available {float(item.current_stock)}, "
                   f"requested {float(abs(delta))}",
        )

    async def notify_low_stock(
        self, db: AsyncSession, *, items: Sequence[inv_models.InventoryItem], arq_redis_pool: Any = None
    ) -> None:
        """이동 후 재고가 최소 재고 이하인 품목에 대해 알림 작업을 요청합니다."""
        for item in items:
            alert_type = ledger.low_stock_alert_type(item.current_stock, item.min_stock)
            if alert_type is None:
                continue
            args = (
                item.id, item.name, item.restaurant_id,
                float(item.current_stock), float(item.min_stock), alert_type,
            )
            if arq_redis_pool:
                await arq_redis_pool.enqueue_job("send_low_stock_alert", *args)
            else:
                logger.info("ARQ Redis pool not available, sending low stock alert synchronously.")
                await inv_tasks.send_low_stock_alert({"db": db}, *args)

    async def apply(
        self,
        db: AsyncSession,
        *,
        item: inv_models.InventoryItem,
        obj_in: inv_schemas.StockAdjustRequest,
        user: usr_models.User,
        arq_redis_pool: Any = None,
    ) -> Tuple[inv_models.StockMovement, inv_models.InventoryItem]:
        """수동 재고 이동(입고/사용/폐기/조정)을 기록합니다."""
        if obj_in.type not in inv_models.MANUAL_MOVEMENT_TYPES:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Transfer movements must be created through /inv/transfers",
            )
        if not item.is_active:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Inventory item is inactive")

        movement = await self.record(
            db,
            item=item,
            movement_type=obj_in.type,
            quantity=obj_in.quantity,
            user=user,
            reason=obj_in.reason,
            unit_cost=obj_in.unit_cost if obj_in.unit_cost is not None else item.unit_cost,
        )
        if obj_in.type == inv_models.MovementType.PURCHASE and obj_in.unit_cost is not None:
            item.unit_cost = ledger.to_quantity(obj_in.unit_cost)

        await db.commit()
        await db.refresh(movement)
        await db.refresh(item)
        logger.info(
            "Stock movement %s %s on item %d by '%s'", obj_in.type.value, movement.quantity, item.id, user.username
        )
        await self.notify_low_stock(db, items=[item], arq_redis_pool=arq_redis_pool)
        return movement, item

    def _filtered_query(
        self,
        *,
        restaurant_id: int,
        item_id: Optional[int] = None,
        movement_type: Optional[inv_models.MovementType] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ):
        query = select(inv_models.StockMovement).where(inv_models.StockMovement.restaurant_id == restaurant_id)
        if item_id is not None:
            query = query.where(inv_models.StockMovement.item_id == item_id)
        if movement_type is not None:
            query = query.where(inv_models.StockMovement.type == movement_type)
        if start_date is not None:
            query = query.where(inv_models.StockMovement.created_at >= _day_start(start_date))
        if end_date is not None:
            query = query.where(inv_models.StockMovement.created_at < _day_start(end_date + timedelta(days=1)))
        return query

    async def get_list(
        self,
        db: AsyncSession,
        *,
        restaurant_id: int,
        item_id: Optional[int] = None,
        movement_type: Optional[inv_models.MovementType] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        limit: int = 50,
    ) -> List[inv_models.StockMovement]:
        """이동 내역을 최신순으로 조회합니다. 품목 요약을 위해 item 관계를 함께 로드합니다."""
        query = (
            self._filtered_query(
                restaurant_id=restaurant_id, item_id=item_id, movement_type=movement_type,
                start_date=start_date, end_date=end_date,
            )
            .options(selectinload(inv_models.StockMovement.item))
            .order_by(inv_models.StockMovement.created_at.desc(), inv_models.StockMovement.id.desc())
            .limit(limit)
        )
        result = await db.execute(query)
        return result.scalars().all()

    async def get_recent_for_item(self, db: AsyncSession, *, item_id: int, limit: int = 20) -> List[inv_models.StockMovement]:
        query = (
            select(inv_models.StockMovement)
            .where(inv_models.StockMovement.item_id == item_id)
            .order_by(inv_models.StockMovement.created_at.desc(), inv_models.StockMovement.id.desc())
            .limit(limit)
        )
        result = await db.execute(query)
        return result.scalars().all()

    async def get_summary(
        self,
        db: AsyncSession,
        *,
        restaurant_id: int,
        item_id: Optional[int] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> Dict[str, Any]:
        """
        기간 내 이동을 유형별로 집계합니다.
        유형별 합계는 절대값 합이며, net_change는 부호 있는 수량의 합(= 해당 기간 재고 순증감)입니다.
        """
        query = self._filtered_query(
            restaurant_id=restaurant_id, item_id=item_id, start_date=start_date, end_date=end_date
        )
        result = await db.execute(query)
        movements = result.scalars().all()

        totals = {movement_type: Decimal("0") for movement_type in inv_models.MovementType}
        counts = {movement_type: 0 for movement_type in inv_models.MovementType}
        net_change = Decimal("0")
        cost_quantity = Decimal("0")
        cost_total = Decimal("0")

        for movement in movements:
            quantity = ledger.to_decimal(movement.quantity)
            totals[movement.type] += abs(quantity)
            counts[movement.type] += 1
            net_change += quantity
            if movement.unit_cost is not None:
                cost_quantity += abs(quantity)
                cost_total += abs(quantity) * ledger.to_decimal(movement.unit_cost)

        average_cost = round(float(cost_total / cost_quantity), 2) if cost_quantity > 0 else 0.0
        MovementType = inv_models.MovementType
        return {
            "total_purchases": float(totals[MovementType.PURCHASE]),
            "total_usage": float(totals[MovementType.USAGE]),
            "total_waste": float(totals[MovementType.WASTE]),
            "total_adjustments": float(totals[MovementType.ADJUSTMENT]),
            "total_transfers_in": float(totals[MovementType.TRANSFER_IN]),
            "total_transfers_out": float(totals[MovementType.TRANSFER_OUT]),
            "net_change": float(net_change),
            "average_cost": average_cost,
            "movements_by_type": [
                {"type": movement_type, "count": counts[movement_type], "total_quantity": float(totals[movement_type])}
                for movement_type in MovementType
            ],
            "total_movements": len(movements),
        }


# =============================================================================
# 4. 매장 간 재고 이동 (StockTransfer)
# =============================================================================
class StockTransferCRUD(
    CRUDBase[inv_models.StockTransfer, inv_schemas.StockTransferCreate, inv_schemas.StockTransferCreate]
):

    async def create_transfer(
        self,
        db: AsyncSession,
        *,
        obj_in: inv_schemas.StockTransferCreate,
        user: usr_models.User,
        arq_redis_pool: Any = None,
    ) -> Dict[str, Any]:
        """
        출고 매장 품목에서 입고 매장 품목으로 재고를 이동합니다.
        입고 매장에 같은 (이름, 분류)의 품목이 없으면 재고 0으로 새로 만듭니다.
        """
        source_item = await db.get(inv_models.InventoryItem, obj_in.item_id)
        if not source_item or source_item.restaurant_id != obj_in.source_restaurant_id:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Inventory item not found")
        if not source_item.is_active:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Inventory item is inactive")

        quantity = ledger.to_quantity(obj_in.quantity)
        if quantity <= 0:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Quantity must not be zero")
        if ledger.to_decimal(source_item.current_stock) < quantity:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Insufficient stock for {source_item.name}: available {float(source_item.current_stock)}, "
                       f"requested {float(quantity)}",
            )

        target_item = await inventory_item.get_by_name_and_category(
            db, restaurant_id=obj_in.target_restaurant_id, name=source_item.name, category=source_item.category
        )
        if target_item is None:
            target_item = inv_models.InventoryItem(
                restaurant_id=obj_in.target_restaurant_id,
                name=source_item.name,
                category=source_item.category,
                unit=source_item.unit,
                current_stock=Decimal("0"),
                min_stock=source_item.min_stock,
                reorder_point=source_item.reorder_point,
                unit_cost=source_item.unit_cost,
                supplier_id=source_item.supplier_id,
                expiry_days=source_item.expiry_days,
            )
            db.add(target_item)
            await db.flush()
            logger.info("Created item '%s' in restaurant %d for transfer", target_item.name, target_item.restaurant_id)

        transfer = inv_models.StockTransfer(
            source_restaurant_id=obj_in.source_restaurant_id,
            target_restaurant_id=obj_in.target_restaurant_id,
            source_item_id=source_item.id,
            target_item_id=target_item.id,
            quantity=quantity,
            reason=obj_in.reason,
            created_by=user.id,
            created_by_name=user.display_name,
        )
        db.add(transfer)
        await db.flush()

        reason = obj_in.reason or f"Transfer #{transfer.id}"
        out_movement = await stock_movement.record(
            db, item=source_item, movement_type=inv_models.MovementType.TRANSFER_OUT, quantity=quantity,
            user=user, reason=reason, unit_cost=source_item.unit_cost, transfer_id=transfer.id,
        )
        in_movement = await stock_movement.record(
            db, item=target_item, movement_type=inv_models.MovementType.TRANSFER_IN, quantity=quantity,
            user=user, reason=reason, unit_cost=source_item.unit_cost, transfer_id=transfer.id,
        )
        await db.commit()
        for obj in (transfer, source_item, target_item, out_movement, in_movement):
            await db.refresh(obj)

        await stock_movement.notify_low_stock(db, items=[source_item], arq_redis_pool=arq_redis_pool)
        return {
            "transfer": transfer,
            "source_item": source_item,
            "target_item": target_item,
            "movements": [out_movement, in_movement],
        }

    async def get_for_restaurant(
        self, db: AsyncSession, *, restaurant_id: int, limit: int = 50
    ) -> List[inv_models.StockTransfer]:
        query = (
            select(inv_models.StockTransfer)
            .where(
                or_(
                    inv_models.StockTransfer.source_restaurant_id == restaurant_id,
                    inv_models.StockTransfer.target_restaurant_id == restaurant_id,
                )
            )
            .order_by(inv_models.StockTransfer.created_at.desc(), inv_models.StockTransfer.id.desc())
            .limit(limit)
        )
        result = await db.execute(query)
        return result.scalars().all()


#  각 CRUD 클래스의 인스턴스 생성
supplier = SupplierCRUD(inv_models.Supplier)
inventory_item = InventoryItemCRUD(inv_models.InventoryItem)
stock_movement = StockMovementCRUD(inv_models.StockMovement)
stock_transfer = StockTransferCRUD(inv_models.StockTransfer)
