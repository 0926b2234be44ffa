# app/domains/inv/models.py

"""
'inv' 도메인의 데이터베이스 ORM 모델을 정의하는 모듈입니다.

- suppliers: 공급업체
- inventory_items: 매장별 재고 품목 (current_stock = 이동 수량의 합)
- stock_movements: 재고 이동 원장 (추가 전용)
- stock_transfers: 매장 간 재고 이동 기록
"""

from typing import Optional
from datetime import datetime, UTC
from decimal import Decimal
from enum import Enum

from sqlmodel import Field, Relationship, SQLModel, Column
from sqlalchemy import ForeignKey, Numeric, Index
from sqlalchemy.sql import func
from sqlalchemy.types import TIMESTAMP


class MovementType(str, Enum):
    """재고 이동 유형"""
    PURCHASE = "Purchase"        # 입고 (+)
    USAGE = "Usage"              # 사용 (-)
    WASTE = "Waste"              # 폐기 (-)
    ADJUSTMENT = "Adjustment"    # 조정 (부호 그대로)
    TRANSFER_OUT = "TransferOut"  # 매장 간 이동 출고 (-)
    TRANSFER_IN = "TransferIn"    # 매장 간 이동 입고 (+)


# 수동 조정(adjust) API에서 허용하는 이동 유형
MANUAL_MOVEMENT_TYPES = (
    MovementType.PURCHASE, MovementType.USAGE, MovementType.WASTE, MovementType.ADJUSTMENT,
)


# =============================================================================
# 1. suppliers 테이블 모델
# =============================================================================
class SupplierBase(SQLModel):
    name: str = Field(max_length=100, description="공급업체명")
    phone: Optional[str] = Field(default=None, max_length=50, description="전화번호")
    email: Optional[str] = Field(default=None, max_length=100, description="이메일")
    address: Optional[str] = Field(default=None, max_length=255, description="주소")
    payment_terms: Optional[str] = Field(default=None, max_length=100, description="결제 조건")
    is_active: bool = Field(default=True, description="활성 여부")


class Supplier(SupplierBase, table=True):
    __tablename__ = "suppliers"

    id: Optional[int] = Field(default=None, primary_key=True)
    created_at: Optional[datetime] = Field(
        default_factory=lambda: datetime.now(UTC),
        sa_column=Column(TIMESTAMP(timezone=True), server_default=func.now()),
        description="레코드 생성 일시"
    )
    updated_at: Optional[datetime] = Field(
        default_factory=lambda: datetime.now(UTC),
        sa_column=Column(TIMESTAMP(timezone=True), server_default=func.now(), onupdate=func.now()),
        description="레코드 마지막 업데이트 일시"
    )


# =============================================================================
# 2. inventory_items 테이블 모델
# =============================================================================
class InventoryItemBase(SQLModel):
    restaurant_id: int = Field(
        sa_column=Column(ForeignKey("restaurants.id", ondelete="CASCADE"), nullable=False, index=True),
        description="소속 매장 ID (FK)"
    )
    name: str = Field(max_length=100, description="품목명")
    category: str = Field(max_length=50, description="분류 (예: dry_goods, dairy, packaging)")
    unit: str = Field(max_length=20, description="단위 (kg, L, EA ...)")
    current_stock: Decimal = Field(default=Decimal("0"), sa_column=Column(Numeric(19, 4), nullable=False, default=0))
    min_stock: Decimal = Field(default=Decimal("0"), sa_column=Column(Numeric(19, 4), nullable=False, default=0))
    reorder_point: Decimal = Field(default=Decimal("0"), sa_column=Column(Numeric(19, 4), nullable=False, default=0))
    unit_cost: Decimal = Field(default=Decimal("0"), sa_column=Column(Numeric(19, 4), nullable=False, default=0))
    supplier_id: Optional[int] = Field(
        default=None,
        sa_column=Column(ForeignKey("suppliers.id", ondelete="SET NULL")),
        description="기본 공급업체 ID (FK)"
    )
    expiry_days: Optional[int] = Field(default=None, description="입고 후 유통기한(일). 없으면 비소모성")
    is_active: bool = Field(default=True, description="활성 여부 (삭제 시 False)")


class InventoryItem(InventoryItemBase, table=True):
    __tablename__ = "inventory_items"

    id: Optional[int] = Field(default=None, primary_key=True)
    created_at: Optional[datetime] = Field(
        default_factory=lambda: datetime.now(UTC),
        sa_column=Column(TIMESTAMP(timezone=True), server_default=func.now()),
        description="레코드 생성 일시"
    )
    updated_at: Optional[datetime] = Field(
        default_factory=lambda: datetime.now(UTC),
        sa_column=Column(TIMESTAMP(timezone=True), server_default=func.now(), onupdate=func.now()),
        description="레코드 마지막 업데이트 일시"
    )

    supplier: Optional["Supplier"] = Relationship()


# =============================================================================
# 3. stock_transfers 테이블 모델
# =============================================================================
class StockTransfer(SQLModel, table=True):
    """매장 간 재고 이동 기록. 출고/입고 이동 한 쌍이 transfer_id로 연결됩니다."""
    __tablename__ = "stock_transfers"

    id: Optional[int] = Field(default=None, primary_key=True)
    source_restaurant_id: int = Field(sa_column=Column(ForeignKey("restaurants.id"), nullable=False))
    target_restaurant_id: int = Field(sa_column=Column(ForeignKey("restaurants.id"), nullable=False))
    source_item_id: int = Field(sa_column=Column(ForeignKey("inventory_items.id"), nullable=False))
    target_item_id: int = Field(sa_column=Column(ForeignKey("inventory_items.id"), nullable=False))
    quantity: Decimal = Field(sa_column=Column(Numeric(19, 4), nullable=False))
    reason: Optional[str] = Field(default=None, max_length=255)
    created_by: Optional[int] = Field(default=None, sa_column=Column(ForeignKey("users.id", ondelete="SET NULL")))
    created_by_name: Optional[str] = Field(default=None, max_length=100)
    created_at: Optional[datetime] = Field(
        default_factory=lambda: datetime.now(UTC),
        sa_column=Column(TIMESTAMP(timezone=True), server_default=func.now()),
    )

    source_item: Optional["InventoryItem"] = Relationship(
        sa_relationship_kwargs={"foreign_keys": "StockTransfer.source_item_id"}
    )
    target_item: Optional["InventoryItem"] = Relationship(
        sa_relationship_kwargs={"foreign_keys": "StockTransfer.target_item_id"}
    )


# =============================================================================
# 4. stock_movements 테이블 모델 (재고 원장)
# =============================================================================
class StockMovement(SQLModel, table=True):
    """
    재고 이동 원장. 한 번 기록된 이동의 유형/수량/품목은 변경되지 않으며,
    정정이 필요하면 보정 이동을 새로 추가합니다.
    quantity는 부호가 있는 값입니다. (입고 +, 사용/폐기 -)
    """
    __tablename__ = "stock_movements"
    __table_args__ = (
        Index("ix_stock_movements_restaurant_created", "restaurant_id", "created_at"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    restaurant_id: int = Field(sa_column=Column(ForeignKey("restaurants.id", ondelete="CASCADE"), nullable=False))
    item_id: int = Field(sa_column=Column(ForeignKey("inventory_items.id", ondelete="CASCADE"), nullable=False, index=True))
    type: MovementType = Field(description="이동 유형")
    quantity: Decimal = Field(sa_column=Column(Numeric(19, 4), nullable=False))
    unit_cost: Optional[Decimal] = Field(default=None, sa_column=Column(Numeric(19, 4)))
    reason: Optional[str] = Field(default=None, max_length=255)
    production_log_id: Optional[int] = Field(
        default=None, sa_column=Column(ForeignKey("production_logs.id", ondelete="SET NULL"), index=True)
    )
    transfer_id: Optional[int] = Field(
        default=None, sa_column=Column(ForeignKey("stock_transfers.id", ondelete="SET NULL"))
    )
    created_by: Optional[int] = Field(default=None, sa_column=Column(ForeignKey("users.id", ondelete="SET NULL")))
    created_by_name: Optional[str] = Field(default=None, max_length=100)
    created_at: Optional[datetime] = Field(
        default_factory=lambda: datetime.now(UTC),
        sa_column=Column(TIMESTAMP(timezone=True), server_default=func.now()),
        description="이동 일시"
    )

    item: Optional["InventoryItem"] = Relationship()
