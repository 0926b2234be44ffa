# app/domains/prd/models.py

"""
'prd' 도메인 (생산 기록)의 데이터베이스 ORM 모델을 정의하는 모듈입니다.
"""

import datetime as dt
from typing import Any, Dict, List, Optional
from decimal import Decimal
from enum import Enum

from sqlmodel import Field, Relationship, SQLModel, Column
from sqlalchemy import ForeignKey, Numeric, JSON
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.sql import func
from sqlalchemy.types import TIMESTAMP

from app.domains.inv.models import StockMovement


class PreparationStatus(str, Enum):
    """생산 진행 상태"""
    PLANNING = "Planning"
    READY = "Ready"
    IN_PROGRESS = "InProgress"
    COMPLETE = "Complete"


class SubmissionStatus(str, Enum):
    """생산 기록 승인 상태"""
    PENDING = "Pending"
    APPROVED = "Approved"
    REJECTED = "Rejected"


class ProductionLog(SQLModel, table=True):
    """
    생산 기록. ingredient_details는 기록 시점의 재료 스냅샷입니다.
    [{"item_id", "item_name", "quantity", "unit", "unit_cost"}]
    """
    __tablename__ = "production_logs"

    id: Optional[int] = Field(default=None, primary_key=True)
    restaurant_id: int = Field(
        sa_column=Column(ForeignKey("restaurants.id", ondelete="CASCADE"), nullable=False, index=True),
        description="매장 ID (FK)"
    )
    date: dt.date = Field(default_factory=dt.date.today, description="생산일")
    product_name: str = Field(max_length=100, description="제품명")
    quantity: Decimal = Field(sa_column=Column(Numeric(19, 4), nullable=False), description="생산 수량")
    ingredient_details: List[Dict[str, Any]] = Field(
        default_factory=list,
        sa_column=Column(JSON().with_variant(JSONB, "postgresql"), nullable=False),
        description="사용 재료 스냅샷"
    )
    estimated_cost: Decimal = Field(
        default=Decimal("0"), sa_column=Column(Numeric(19, 4), nullable=False, default=0), description="예상 원가"
    )
    preparation_status: PreparationStatus = Field(default=PreparationStatus.PLANNING)
    status: SubmissionStatus = Field(default=SubmissionStatus.PENDING)
    stock_deducted: bool = Field(default=False, description="재료 재고 차감 여부")
    stock_deducted_at: Optional[dt.datetime] = Field(default=None, sa_column=Column(TIMESTAMP(timezone=True)))
    notes: Optional[str] = Field(default=None, max_length=500)
    created_by: Optional[int] = Field(default=None, sa_column=Column(ForeignKey("users.id", ondelete="SET NULL")))
    created_by_name: Optional[str] = Field(default=None, max_length=100)
    created_at: Optional[dt.datetime] = Field(
        default_factory=lambda: dt.datetime.now(dt.UTC),
        sa_column=Column(TIMESTAMP(timezone=True), server_default=func.now()),
        description="레코드 생성 일시"
    )
    updated_at: Optional[dt.datetime] = Field(
        default_factory=lambda: dt.datetime.now(dt.UTC),
        sa_column=Column(TIMESTAMP(timezone=True), server_default=func.now(), onupdate=func.now()),
        description="레코드 마지막 업데이트 일시"
    )

    # 로그 삭제 시 연결된 이동의 production_log_id는 NULL이 되고 이동 행은 남습니다.
    stock_movements: List[StockMovement] = Relationship(
        sa_relationship_kwargs={"order_by": "StockMovement.id"}
    )
