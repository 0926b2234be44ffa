# app/domains/inv/tasks.py

"""
'inv' 도메인의 ARQ 백그라운드 태스크입니다.
Redis 풀이 없을 때는 CRUD에서 {"db": db} 컨텍스트로 직접 호출합니다.
"""

import logging
from typing import Any, Dict, Optional

from app.core.database import get_async_session_context
from . import ledger

logger = logging.getLogger(__name__)


async def send_low_stock_alert(
    ctx: Dict[str, Any],
    item_id: int,
    item_name: str,
    restaurant_id: int,
    current_stock: float,
    min_stock: float,
    alert_type: str,
) -> Dict[str, Any]:
    """
    재고 부족 알림을 경고 로그로 남깁니다.
    """
    logger.warning(
        "[%s] restaurant=%d item=%d '%s': stock %.4f (min %.4f)",
        alert_type, restaurant_id, item_id, item_name, current_stock, min_stock,
    )
    return {
        "status": "logged",
        "alert_type": alert_type,
        "item_id": item_id,
        "restaurant_id": restaurant_id,
    }


async def verify_stock_ledger(ctx: Dict[str, Any], restaurant_id: Optional[int] = None) -> Dict[str, Any]:
    """
    모든(또는 특정 매장의) 품목에 대해 current_stock이 이동 원장 합계와 일치하는지 검사합니다.
    ARQ cron으로 매일 실행됩니다.
    """
    db = ctx.get("db")
    if db is not None:
        report = await ledger.compute_ledger_drift(db, restaurant_id=restaurant_id)
    else:
        async with get_async_session_context() as session:
            report = await ledger.compute_ledger_drift(session, restaurant_id=restaurant_id)

    if report["drifted_items"]:
        for drift in report["drifted_items"]:
            logger.error(
                "Ledger drift: item=%d '%s' current_stock=%s ledger=%s",
                drift["item_id"], drift["name"], drift["current_stock"], drift["ledger_stock"],
            )
    else:
        logger.info("Ledger check passed for %d items.", report["checked_items"])
    return report
