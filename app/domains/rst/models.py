# app/domains/rst/models.py

"""
'rst' 도메인의 데이터베이스 ORM 모델을 정의하는 모듈입니다.

- restaurants: 매장 정보 및 재고 차감 방식 설정
- user_restaurants: 사용자와 매장의 소속 관계 (N:M)
"""

from typing import Optional
from datetime import datetime, UTC
from enum import Enum

from sqlmodel import Field, SQLModel, Column
from sqlalchemy import ForeignKey, UniqueConstraint
from sqlalchemy.sql import func
from sqlalchemy.types import TIMESTAMP


class StockDeductionMode(str, Enum):
    """생산 기록 시 재료 재고를 차감하는 시점"""
    IMMEDIATE = "immediate"  # 생산 기록 즉시 차감
    DEFERRED = "deferred"    # 생산 완료(Complete) 시 차감


# =============================================================================
# 1. restaurants 테이블 모델
# =============================================================================
class RestaurantBase(SQLModel):
    """
    restaurants 테이블의 기본 속성을 정의하는 SQLModel Base 클래스입니다.
    """
    id: Optional[int] = Field(default=None, primary_key=True, description="매장 고유 ID")
    name: str = Field(max_length=100, description="매장명")
    location: Optional[str] = Field(default=None, max_length=255, description="위치")
    restaurant_type: str = Field(default="Bakery", max_length=50, description="매장 유형 (Bakery, Cafe, Restaurant ...)")
    inventory_enabled: bool = Field(default=True, description="재고 관리 사용 여부")
    production_enabled: bool = Field(default=True, description="생산 기록 사용 여부")
    stock_deduction_mode: StockDeductionMode = Field(
        default=StockDeductionMode.IMMEDIATE, description="생산 시 재료 재고 차감 시점"
    )
    is_active: bool = Field(default=True, description="매장 활성 여부")

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


class Restaurant(RestaurantBase, table=True):
    __tablename__ = "restaurants"


# =============================================================================
# 2. user_restaurants 테이블 모델 (사용자-매장 소속)
# =============================================================================
class UserRestaurant(SQLModel, table=True):
    """
    사용자와 매장의 소속 관계를 나타내는 연결 테이블입니다.
    소속된 매장의 데이터만 조회/변경할 수 있습니다.
    """
    __tablename__ = "user_restaurants"
    __table_args__ = (UniqueConstraint("user_id", "restaurant_id", name="uq_user_restaurant"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(sa_column=Column(ForeignKey("users.id", ondelete="CASCADE"), nullable=False))
    restaurant_id: int = Field(sa_column=Column(ForeignKey("restaurants.id", ondelete="CASCADE"), nullable=False))
    created_at: Optional[datetime] = Field(
        default_factory=lambda: datetime.now(UTC),
        sa_column=Column(TIMESTAMP(timezone=True), server_default=func.now()),
    )
