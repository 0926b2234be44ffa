# app/domains/rcn/models.py

"""
'rcn' 도메인 (재고 실사)의 데이터베이스 ORM 모델을 정의하는 모듈입니다.

- stock_reconciliations: 실사 헤더 (Pending -> Approved | Rejected)
- reconciliation_items: 품목별 시스템 재고 스냅샷과 실사 수량
"""

import datetime as dt
from typing import List, Optional
from decimal import Decimal
from enum import Enum

from sqlmodel import Field, Relationship, SQLModel, Column
from sqlalchemy import ForeignKey, Numeric
from sqlalchemy.sql import func
from sqlalchemy.types import TIMESTAMP

from app.domains.inv.models import InventoryItem


class ReconciliationStatus(str, Enum):
    PENDING = "Pending"
    APPROVED = "Approved"
    REJECTED = "Rejected"


# =============================================================================
# 1. stock_reconciliations 테이블 모델
# =============================================================================
class StockReconciliation(SQLModel, table=True):
    __tablename__ = "stock_reconciliations"

    id: Optional[int] = Field(default=None, primary_key=True)
    restaurant_id: int = Field(
        sa_column=Column(ForeignKey("restaurants.id", ondelete="CASCADE"), nullable=False, index=True),
        description="매장 ID (FK)"
    )
    date: dt.date = Field(default_factory=dt.date.today, description="실사 기준일")
    status: ReconciliationStatus = Field(default=ReconciliationStatus.PENDING, description="승인 상태")
    notes: Optional[str] = Field(default=None, max_length=500)
    submitted_by: Optional[int] = Field(default=None, sa_column=Column(ForeignKey("users.id", ondelete="SET NULL")))
    submitted_by_name: Optional[str] = Field(default=None, max_length=100)
    approved_by: Optional[int] = Field(default=None, sa_column=Column(ForeignKey("users.id", ondelete="SET NULL")))
    approved_by_name: Optional[str] = Field(default=None, max_length=100)
    approved_at: Optional[dt.datetime] = Field(default=None, sa_column=Column(TIMESTAMP(timezone=True)))
    created_at: Optional[dt.datetime] = Field(
        default_factory=lambda: dt.datetime.now(dt.UTC),
        sa_column=Column(TIMESTAMP(timezone=True), server_default=func.now()),
        description="레코드 생성 일시"
    )

    items: List["ReconciliationItem"] = Relationship(
        back_populates="reconciliation",
        sa_relationship_kwargs={"cascade": "all, delete-orphan", "order_by": "ReconciliationItem.id"},
    )


# =============================================================================
# 2. reconciliation_items 테이블 모델
# =============================================================================
class ReconciliationItem(SQLModel, table=True):
    """variance = physical_count - system_stock"""
    __tablename__ = "reconciliation_items"

    id: Optional[int] = Field(default=None, primary_key=True)
    reconciliation_id: int = Field(
        sa_column=Column(ForeignKey("stock_reconciliations.id", ondelete="CASCADE"), nullable=False, index=True)
    )
    inventory_item_id: int = Field(sa_column=Column(ForeignKey("inventory_items.id"), nullable=False))
    system_stock: Decimal = Field(sa_column=Column(Numeric(19, 4), nullable=False))
    physical_count: Decimal = Field(sa_column=Column(Numeric(19, 4), nullable=False))
    variance: Decimal = Field(sa_column=Column(Numeric(19, 4), nullable=False))
    adjustment_applied: bool = Field(default=False)

    reconciliation: Optional[StockReconciliation] = Relationship(back_populates="items")
    inventory_item: Optional[InventoryItem] = Relationship()
