# app/domains/inv/ledger.py

"""
재고 원장 계산 모듈입니다.

- 이동 유형별 부호 규칙 (signed_quantity)
- 재고 상태 판정 (get_stock_status)
- 유통기한 정보 계산 (get_expiry_info)
- 원장 검증: current_stock과 이동 수량 합의 불일치 탐지 (compute_ledger_drift)

DB에 의존하지 않는 함수들은 라우터, CRUD, ARQ 태스크에서 공통으로 사용합니다.
"""

import math
from datetime import datetime, timedelta, UTC
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy import func
from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession

from app.core.config import settings
from . import models as inv_models

QUANTITY_SCALE = Decimal("0.0001")

STOCK_OK = "ok"
STOCK_LOW = "low"
STOCK_CRITICAL = "critical"

EXPIRY_FRESH = "fresh"
EXPIRY_WARNING = "warning"
EXPIRY_EXPIRED = "expired"
EXPIRY_NON_PERISHABLE = "non-perishable"


def to_decimal(value: Any) -> Decimal:
    """float/int/str/Decimal 값을 Decimal로 변환합니다. (float 오차 방지를 위해 str 경유)"""
    if value is None:
        return Decimal("0")
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def to_quantity(value: Any) -> Decimal:
    """원장에 저장되는 자릿수(소수점 4자리)로 반올림한 Decimal을 반환합니다."""
    return to_decimal(value).quantize(QUANTITY_SCALE)


def signed_quantity(movement_type: inv_models.MovementType, quantity: Any) -> Decimal:
    """
    이동 유형에 따라 원장에 기록될 부호 있는 수량을 반환합니다.
    - Purchase, TransferIn: +|q|
    - Usage, Waste, TransferOut: -|q|
    - Adjustment: 입력값 그대로
    """
    qty = to_quantity(quantity)
    if movement_type in (inv_models.MovementType.PURCHASE, inv_models.MovementType.TRANSFER_IN):
        return abs(qty)
    if movement_type in (
        inv_models.MovementType.USAGE,
        inv_models.MovementType.WASTE,
        inv_models.MovementType.TRANSFER_OUT,
    ):
        return -abs(qty)
    return qty


def get_stock_status(current_stock: Any, min_stock: Any) -> str:
    """
    재고 상태를 판정합니다.
    - critical: 재고가 0 이하이거나, 최소 재고의 CRITICAL_STOCK_RATIO 이하
    - low: 최소 재고 미만
    - ok: 그 외
    """
    current = to_decimal(current_stock)
    minimum = to_decimal(min_stock)
    critical_threshold = minimum * to_decimal(settings.CRITICAL_STOCK_RATIO)

    if current <= 0 or (minimum > 0 and current <= critical_threshold):
        return STOCK_CRITICAL
    if current < minimum:
        return STOCK_LOW
    return STOCK_OK


def low_stock_alert_type(current_stock: Any, min_stock: Any) -> Optional[str]:
    """재고 부족 알림 유형을 반환합니다. 알림 대상이 아니면 None."""
    status = get_stock_status(current_stock, min_stock)
    if status == STOCK_CRITICAL:
        return "critical_stock"
    if to_decimal(current_stock) <= to_decimal(min_stock):
        return "low_stock"
    return None


def _as_utc(value: datetime) -> datetime:
    # SQLite는 timezone 정보를 보존하지 않으므로 naive 값은 UTC로 간주합니다.
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


def get_expiry_info(
    expiry_days: Optional[int],
    last_purchase_at: Optional[datetime],
    warning_days: Optional[int] = None,
    now: Optional[datetime] = None,
) -> Dict[str, Any]:
    """
    마지막 입고 시각과 품목의 유통기한(일)으로 유통기한 정보를 계산합니다.

    Returns:
        {"expiry_date", "status", "days_until_expiry", "is_expiring_soon"}
    """
    if warning_days is None:
        warning_days = settings.EXPIRY_WARNING_DAYS

    if not expiry_days or expiry_days <= 0 or last_purchase_at is None:
        return {
            "expiry_date": None,
            "status": EXPIRY_NON_PERISHABLE,
            "days_until_expiry": None,
            "is_expiring_soon": False,
        }

    now = _as_utc(now or datetime.now(UTC))
    expiry_date = _as_utc(last_purchase_at) + timedelta(days=expiry_days)
    days_until_expiry = math.ceil((expiry_date - now).total_seconds() / 86400)

    if days_until_expiry < 0:
        status = EXPIRY_EXPIRED
    elif days_until_expiry <= warning_days:
        status = EXPIRY_WARNING
    else:
        status = EXPIRY_FRESH

    return {
        "expiry_date": expiry_date,
        "status": status,
        "days_until_expiry": days_until_expiry,
        "is_expiring_soon": status in (EXPIRY_WARNING, EXPIRY_EXPIRED),
    }


async def get_last_purchase_dates(db: AsyncSession, item_ids: Iterable[int]) -> Dict[int, datetime]:
    """품목별 마지막 입고(Purchase) 시각을 조회합니다."""
    ids = list(item_ids)
    if not ids:
        return {}
    query = (
        select(inv_models.StockMovement.item_id, func.max(inv_models.StockMovement.created_at))
        .where(
            inv_models.StockMovement.item_id.in_(ids),
            inv_models.StockMovement.type == inv_models.MovementType.PURCHASE,
        )
        .group_by(inv_models.StockMovement.item_id)
    )
    result = await db.execute(query)
    return {item_id: last_at for item_id, last_at in result.all() if last_at is not None}


async def compute_ledger_drift(db: AsyncSession, restaurant_id: Optional[int] = None) -> Dict[str, Any]:
    """
    품목별 current_stock과 이동 원장 수량 합계를 비교합니다.
    비활성 품목도 원장 대상이므로 모두 검사합니다.
    """
    movement_totals = (
        select(
            inv_models.StockMovement.item_id.label("item_id"),
            func.sum(inv_models.StockMovement.quantity).label("total"),
        )
        .group_by(inv_models.StockMovement.item_id)
        .subquery()
    )
    query = (
        select(inv_models.InventoryItem, movement_totals.c.total)
        .outerjoin(movement_totals, movement_totals.c.item_id == inv_models.InventoryItem.id)
        .order_by(inv_models.InventoryItem.id)
        .execution_options(populate_existing=True)
    )
    if restaurant_id is not None:
        query = query.where(inv_models.InventoryItem.restaurant_id == restaurant_id)

    result = await db.execute(query)
    rows = result.all()

    drifted: List[Dict[str, Any]] = []
    for item, total in rows:
        recorded = to_decimal(item.current_stock).quantize(QUANTITY_SCALE)
        ledger_total = to_decimal(total).quantize(QUANTITY_SCALE)
        if recorded != ledger_total:
            drifted.append({
                "item_id": item.id,
                "restaurant_id": item.restaurant_id,
                "name": item.name,
                "current_stock": float(recorded),
                "ledger_stock": float(ledger_total),
                "drift": float(recorded - ledger_total),
            })

    return {
        "restaurant_id": restaurant_id,
        "checked_items": len(rows),
        "drifted_items": drifted,
        "is_consistent": not drifted,
    }
