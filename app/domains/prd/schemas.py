# app/domains/prd/schemas.py

"""
'prd' 도메인 (생산 기록)의 API 데이터 전송 객체(DTO)를 정의하는 모듈입니다.
"""

import datetime as dt
from typing import List, Optional

from pydantic import BaseModel, Field

from app.domains.inv.schemas import StockMovementWithItemResponse
from . import models as prd_models


# =============================================================================
# 1. 재료 가용성 확인
# =============================================================================
class IngredientInput(BaseModel):
    item_id: int
    quantity: float = Field(..., gt=0, allow_inf_nan=False)


class AvailabilityCheckRequest(BaseModel):
    restaurant_id: int
    ingredients: List[IngredientInput] = Field(..., min_length=1)


class IngredientAvailability(BaseModel):
    item_id: int
    item_name: str
    unit: str
    required: float
    current_stock: float
    after_production: float
    unit_cost: float
    status: str  # ok | low | insufficient
    shortage: float


class AvailabilityCheckResponse(BaseModel):
    available: bool
    estimated_cost: float
    items: List[IngredientAvailability]


# =============================================================================
# 2. 생산 기록
# =============================================================================
class IngredientDetail(BaseModel):
    item_id: int
    item_name: str
    quantity: float
    unit: str
    unit_cost: float


class ProductionLogCreate(BaseModel):
    restaurant_id: int
    date: Optional[dt.date] = None
    product_name: str = Field(..., min_length=1, max_length=100)
    quantity: float = Field(..., gt=0, allow_inf_nan=False)
    ingredients: List[IngredientInput] = []
    notes: Optional[str] = Field(None, max_length=500)
    deduct_stock: bool = Field(True, description="false이면 immediate 모드에서도 즉시 차감하지 않습니다.")


class ProductionLogUpdate(BaseModel):
    """재료 목록은 수정할 수 없습니다. 잘못 기록한 경우 삭제 후 다시 등록합니다."""
    date: Optional[dt.date] = None
    product_name: Optional[str] = Field(None, min_length=1, max_length=100)
    quantity: Optional[float] = Field(None, gt=0, allow_inf_nan=False)
    preparation_status: Optional[prd_models.PreparationStatus] = None
    status: Optional[prd_models.SubmissionStatus] = None
    notes: Optional[str] = Field(None, max_length=500)


class ProductionLogResponse(BaseModel):
    id: int
    restaurant_id: int
    date: dt.date
    product_name: str
    quantity: float
    ingredient_details: List[IngredientDetail] = []
    estimated_cost: float
    preparation_status: prd_models.PreparationStatus
    status: prd_models.SubmissionStatus
    stock_deducted: bool
    stock_deducted_at: Optional[dt.datetime] = None
    notes: Optional[str] = None
    created_by: Optional[int] = None
    created_by_name: Optional[str] = None
    created_at: dt.datetime
    updated_at: dt.datetime
    stock_movements: List[StockMovementWithItemResponse] = []

    class Config:
        from_attributes = True
