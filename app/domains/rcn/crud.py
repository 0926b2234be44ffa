# app/domains/rcn/crud.py

"""
'rcn' 도메인 (재고 실사)의 CRUD 및 승인 로직 모듈입니다.

승인 시 재고를 실사 수량으로 덮어쓰지 않고, 차이(variance)를 조정 이동으로 추가합니다.
"""

import logging
from datetime import datetime, UTC
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
from app.domains.usr import models as usr_models
from . import models as rcn_models
from . import schemas as rcn_schemas

logger = logging.getLogger(__name__)


def _format_quantity(value: Any) -> str:
    return f"{float(value):g}"


class ReconciliationCRUD(
    CRUDBase[rcn_models.StockReconciliation, rcn_schemas.ReconciliationCreate, rcn_schemas.ReconciliationProcess]
):

    def _with_items(self):
        return select(rcn_models.StockReconciliation).options(
            selectinload(rcn_models.StockReconciliation.items)
            .selectinload(rcn_models.ReconciliationItem.inventory_item)
        )

    async def get_with_items(self, db: AsyncSession, id: int) -> Optional[rcn_models.StockReconciliation]:
        query = (
            self._with_items()
            .where(rcn_models.StockReconciliation.id == id)
            .execution_options(populate_existing=True)
        )
        result = await db.execute(query)
        return result.scalars().first()

    async def get_list(
        self,
        db: AsyncSession,
        *,
        restaurant_id: int,
        status_filter: Optional[rcn_models.ReconciliationStatus] = None,
        skip: int = 0,
        limit: int = 100,
    ) -> List[rcn_models.StockReconciliation]:
        query = self._with_items().where(rcn_models.StockReconciliation.restaurant_id == restaurant_id)
        if status_filter is not None:
            query = query.where(rcn_models.StockReconciliation.status == status_filter)
        query = (
            query.order_by(rcn_models.StockReconciliation.created_at.desc(), rcn_models.StockReconciliation.id.desc())
            .offset(skip)
            .limit(limit)
        )
        result = await db.execute(query)
        return result.scalars().all()

    async def create(
        self, db: AsyncSession, *, obj_in: rcn_schemas.ReconciliationCreate, user: usr_models.User
    ) -> rcn_models.StockReconciliation:
        """
        실사를 등록합니다. 각 품목의 현재 재고를 system_stock으로 스냅샷하고 차이를 계산합니다.
        품목은 해당 매장의 활성 품목이어야 하며 중복될 수 없습니다.
        """
        item_ids = [line.inventory_item_id for line in obj_in.items]
        if len(set(item_ids)) != len(item_ids):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST, detail="Duplicate inventory item in reconciliation"
            )

        result = await db.execute(
            select(inv_models.InventoryItem).where(inv_models.InventoryItem.id.in_(item_ids))
        )
        items_by_id = {item.id: item for item in result.scalars().all()}
        for item_id in item_ids:
            item = items_by_id.get(item_id)
            if item is None or item.restaurant_id != obj_in.restaurant_id or not item.is_active:
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail=f"Inventory item {item_id} is not an active item of this restaurant",
                )

        reconciliation = rcn_models.StockReconciliation(
            restaurant_id=obj_in.restaurant_id,
            notes=obj_in.notes,
            submitted_by=user.id,
            submitted_by_name=user.display_name,
        )
        if obj_in.date is not None:
            reconciliation.date = obj_in.date
        db.add(reconciliation)
        await db.flush()

        for line in obj_in.items:
            system_stock = ledger.to_decimal(items_by_id[line.inventory_item_id].current_stock)
            physical_count = ledger.to_quantity(line.physical_count)
            db.add(rcn_models.ReconciliationItem(
                reconciliation_id=reconciliation.id,
                inventory_item_id=line.inventory_item_id,
                system_stock=system_stock,
                physical_count=physical_count,
                variance=physical_count - system_stock,
            ))

        await db.commit()
        logger.info(
            "Reconciliation %d submitted for restaurant %d (%d items)",
            reconciliation.id, reconciliation.restaurant_id, len(obj_in.items),
        )
        return await self.get_with_items(db, reconciliation.id)

    async def process(
        self,
        db: AsyncSession,
        *,
        db_obj: rcn_models.StockReconciliation,
        action: rcn_schemas.ReconciliationAction,
        user: usr_models.User,
        arq_redis_pool: Any = None,
    ) -> Dict[str, Any]:
        """
        실사를 승인 또는 반려합니다. Pending 상태에서만 가능합니다.
        승인 시 차이가 있는 품목마다 Adjustment 이동을 추가합니다.

        상태 변경은 `status = 'Pending'` 조건부 UPDATE로 수행하며,
        이 UPDATE가 반영된 요청만 조정 이동을 추가합니다.
        """
        if db_obj.status != rcn_models.ReconciliationStatus.PENDING:
            raise self._already_processed(db_obj)

        approve = action == rcn_schemas.ReconciliationAction.APPROVE
        lines = [line for line in db_obj.items if ledger.to_decimal(line.variance) != 0] if approve else []

        # 실사 이후 이동이 있었을 수 있으므로 모든 조정 결과를 먼저 검증합니다.
        for line in lines:
            item = line.inventory_item
            if ledger.to_decimal(item.current_stock) + ledger.to_decimal(line.variance) < 0:
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail=f"Insufficient stock for {item.name}: stock changed since the count",
                )

        new_status = rcn_models.ReconciliationStatus.APPROVED if approve else rcn_models.ReconciliationStatus.REJECTED
        claimed = await db.execute(
            update(rcn_models.StockReconciliation)
            .where(
                rcn_models.StockReconciliation.id == db_obj.id,
                rcn_models.StockReconciliation.status == rcn_models.ReconciliationStatus.PENDING,
            )
            .values(
                status=new_status,
                approved_by=user.id,
                approved_by_name=user.display_name,
                approved_at=datetime.now(UTC),
            )
            .execution_options(synchronize_session=False)
        )
        if claimed.rowcount == 0:
            await db.refresh(db_obj, attribute_names=["status"])
            raise self._already_processed(db_obj)

        adjusted_items: List[inv_models.InventoryItem] = []
        for line in lines:
            await inv_crud.stock_movement.record(
                db,
                item=line.inventory_item,
                movement_type=inv_models.MovementType.ADJUSTMENT,
                quantity=line.variance,
                user=user,
                reason=(
                    f"Reconciliation: physical count {_format_quantity(line.physical_count)}, "
                    f"system had {_format_quantity(line.system_stock)}"
                ),
                unit_cost=line.inventory_item.unit_cost,
            )
            line.adjustment_applied = True
            db.add(line)
            adjusted_items.append(line.inventory_item)

        await db.commit()
        logger.info(
            "Reconciliation %d %s by '%s' (%d adjustments)",
            db_obj.id, new_status.value, user.username, len(adjusted_items),
        )

        await inv_crud.stock_movement.notify_low_stock(db, items=adjusted_items, arq_redis_pool=arq_redis_pool)
        reconciliation = await self.get_with_items(db, db_obj.id)
        return {
            **rcn_schemas.ReconciliationResponse.model_validate(reconciliation).model_dump(),
            "adjustments_applied": len(adjusted_items),
        }

    @staticmethod
    def _already_processed(db_obj: rcn_models.StockReconciliation) -> HTTPException:
        return HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Reconciliation already {db_obj.status.value.lower()}",
        )


reconciliation = ReconciliationCRUD(rcn_models.StockReconciliation)
