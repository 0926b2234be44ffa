# app/domains/rcn/schemas.py

"""
'rcn' 도메인 (재고 실사)의 API 데이터 전송 객체(DTO)를 정의하는 모듈입니다.
"""

import datetime as dt
from typing import List, Optional
from enum import Enum

from pydantic import BaseModel, Field

from app.domains.inv.schemas import InventoryItemBrief
from . import models as rcn_models


class ReconciliationAction(str, Enum):
    APPROVE = "approve"
    REJECT = "reject"


# =============================================================================
# 1. 요청 스키마
# =============================================================================
class ReconciliationItemCreate(BaseModel):
    inventory_item_id: int
    physical_count: float = Field(..., ge=0, allow_inf_nan=False, description="실사 수량")


class ReconciliationCreate(BaseModel):
    restaurant_id: int
    date: Optional[dt.date] = None
    notes: Optional[str] = Field(None, max_length=500)
    items: List[ReconciliationItemCreate] = Field(..., min_length=1)


class ReconciliationProcess(BaseModel):
    action: ReconciliationAction


# =============================================================================
# 2. 응답 스키마
# =============================================================================
class ReconciliationItemResponse(BaseModel):
    id: int
    inventory_item_id: int
    system_stock: float
    physical_count: float
    variance: float
    adjustment_applied: bool
    inventory_item: Optional[InventoryItemBrief] = None

    class Config:
        from_attributes = True


class ReconciliationResponse(BaseModel):
    id: int
    restaurant_id: int
    date: dt.date
    status: rcn_models.ReconciliationStatus
    notes: Optional[str] = None
    submitted_by: Optional[int] = None
    submitted_by_name: Optional[str] = None
    approved_by: Optional[int] = None
    approved_by_name: Optional[str] = None
    approved_at: Optional[dt.datetime] = None
    created_at: dt.datetime
    items: List[ReconciliationItemResponse] = []

    class Config:
        from_attributes = True


class ReconciliationProcessResponse(ReconciliationResponse):
    adjustments_applied: int = 0
