# app/domains/rst/schemas.py

"""
'rst' 도메인 (매장 및 소속 관리)의 API 데이터 전송 객체(DTO)를 정의하는 모듈입니다.
"""

from typing import Optional
from datetime import datetime
from sqlmodel import SQLModel, Field

from . import models as rst_models


# =============================================================================
# 1. 매장 (Restaurant) 스키마
# =============================================================================
class RestaurantBase(SQLModel):
    name: str = Field(..., min_length=1, max_length=100)
    location: Optional[str] = Field(None, max_length=255)
    restaurant_type: str = Field("Bakery", max_length=50)
    inventory_enabled: bool = True
    production_enabled: bool = True
    stock_deduction_mode: rst_models.StockDeductionMode = rst_models.StockDeductionMode.IMMEDIATE
    is_active: bool = True


class RestaurantCreate(RestaurantBase):
    pass


class RestaurantUpdate(SQLModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    location: Optional[str] = Field(None, max_length=255)
    restaurant_type: Optional[str] = Field(None, max_length=50)
    inventory_enabled: Optional[bool] = None
    production_enabled: Optional[bool] = None
    stock_deduction_mode: Optional[rst_models.StockDeductionMode] = None
    is_active: Optional[bool] = None


class RestaurantResponse(RestaurantBase):
    id: int
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


# =============================================================================
# 2. 매장 소속 (UserRestaurant) 스키마
# =============================================================================
class RestaurantMemberCreate(SQLModel):
    user_id: int


class RestaurantMemberResponse(SQLModel):
    """매장 소속 사용자 정보"""
    user_id: int
    username: str
    full_name: Optional[str] = None
    role: int
    is_active: bool
