# app/domains/inv/schemas.py

"""
'inv' 도메인 (재고 품목 및 재고 원장)의 API 데이터 전송 객체(DTO)를 정의하는 모듈입니다.
"""

from typing import Dict, List, Optional
from datetime import datetime

from pydantic import BaseModel, EmailStr, Field, computed_field

from . import ledger
from . import models as inv_models


# =============================================================================
# 1. 공급업체 (Supplier) 스키마
# =============================================================================
class SupplierBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    phone: Optional[str] = Field(None, max_length=50)
    email: Optional[EmailStr] = None
    address: Optional[str] = Field(None, max_length=255)
    payment_terms: Optional[str] = Field(None, max_length=100)


class SupplierCreate(SupplierBase):
    pass


class SupplierUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    phone: Optional[str] = Field(None, max_length=50)
    email: Optional[EmailStr] = None
    address: Optional[str] = Field(None, max_length=255)
    payment_terms: Optional[str] = Field(None, max_length=100)
    is_active: Optional[bool] = None


class SupplierResponse(SupplierBase):
    id: int
    email: Optional[str] = None
    is_active: bool
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


# =============================================================================
# 2. 재고 품목 (InventoryItem) 스키마
# =============================================================================
class InventoryItemBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    category: str = Field(..., min_length=1, max_length=50)
    unit: str = Field(..., min_length=1, max_length=20)
    min_stock: float = Field(0, ge=0, allow_inf_nan=False)
    reorder_point: float = Field(0, ge=0, allow_inf_nan=False)
    unit_cost: float = Field(0, ge=0, allow_inf_nan=False)
    supplier_id: Optional[int] = None
    expiry_days: Optional[int] = Field(None, ge=0)


class InventoryItemCreate(InventoryItemBase):
    restaurant_id: int
    current_stock: float = Field(0, ge=0, allow_inf_nan=False, description="초기 재고. 0보다 크면 기초 재고 조정 이동이 기록됩니다.")


class InventoryItemUpdate(BaseModel):
    """current_stock은 수정할 수 없습니다. 재고 변경은 반드시 이동(adjust)으로 기록합니다."""
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    category: Optional[str] = Field(None, min_length=1, max_length=50)
    unit: Optional[str] = Field(None, min_length=1, max_length=20)
    min_stock: Optional[float] = Field(None, ge=0, allow_inf_nan=False)
    reorder_point: Optional[float] = Field(None, ge=0, allow_inf_nan=False)
    unit_cost: Optional[float] = Field(None, ge=0, allow_inf_nan=False)
    supplier_id: Optional[int] = None
    expiry_days: Optional[int] = Field(None, ge=0)
    is_active: Optional[bool] = None


class InventoryItemResponse(InventoryItemBase):
    id: int
    restaurant_id: int
    current_stock: float
    is_active: bool
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True

    @computed_field
    @property
    def stock_status(self) -> str:
        return ledger.get_stock_status(self.current_stock, self.min_stock)


class InventoryItemBrief(BaseModel):
    """이동/실사 응답에 포함되는 품목 요약 정보"""
    id: int
    name: str
    unit: str
    category: str

    class Config:
        from_attributes = True


class ExpiryInfo(BaseModel):
    expiry_date: Optional[datetime] = None
    status: str
    days_until_expiry: Optional[int] = None
    is_expiring_soon: bool = False


# =============================================================================
# 3. 재고 이동 (StockMovement) 스키마
# =============================================================================
class StockAdjustRequest(BaseModel):
    """품목 재고 조정 요청. quantity의 부호는 유형에 따라 정규화됩니다. (Adjustment 제외)"""
    type: inv_models.MovementType
    quantity: float = Field(..., allow_inf_nan=False)
    reason: Optional[str] = Field(None, max_length=255)
    unit_cost: Optional[float] = Field(None, ge=0, allow_inf_nan=False)


class StockMovementCreate(StockAdjustRequest):
    restaurant_id: int
    item_id: int


class StockMovementResponse(BaseModel):
    id: int
    restaurant_id: int
    item_id: int
    type: inv_models.MovementType
    quantity: float
    unit_cost: Optional[float] = None
    reason: Optional[str] = None
    production_log_id: Optional[int] = None
    transfer_id: Optional[int] = None
    created_by: Optional[int] = None
    created_by_name: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True


class StockMovementWithItemResponse(StockMovementResponse):
    """품목 요약 정보를 포함한 이동 응답 (item 관계가 로드된 경우에만 사용)"""
    item: Optional[InventoryItemBrief] = None


class StockAdjustResponse(BaseModel):
    movement: StockMovementResponse
    item: InventoryItemResponse


class InventoryItemDetailResponse(InventoryItemResponse):
    recent_movements: List[StockMovementResponse] = []
    expiry: Optional[ExpiryInfo] = None


class MovementTypeSummary(BaseModel):
    type: inv_models.MovementType
    count: int
    total_quantity: float


class StockMovementSummary(BaseModel):
    total_purchases: float
    total_usage: float
    total_waste: float
    total_adjustments: float
    total_transfers_in: float
    total_transfers_out: float
    net_change: float
    average_cost: float
    movements_by_type: List[MovementTypeSummary]
    total_movements: int


# =============================================================================
# 4. 매장 간 재고 이동 (StockTransfer) 스키마
# =============================================================================
class StockTransferCreate(BaseModel):
    source_restaurant_id: int
    target_restaurant_id: int
    item_id: int = Field(..., description="출고 매장의 품목 ID")
    quantity: float = Field(..., gt=0, allow_inf_nan=False)
    reason: Optional[str] = Field(None, max_length=255)


class StockTransferResponse(BaseModel):
    id: int
    source_restaurant_id: int
    target_restaurant_id: int
    source_item_id: int
    target_item_id: int
    quantity: float
    reason: Optional[str] = None
    created_by: Optional[int] = None
    created_by_name: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True


class StockTransferResult(BaseModel):
    transfer: StockTransferResponse
    source_item: InventoryItemResponse
    target_item: InventoryItemResponse
    movements: List[StockMovementResponse]


# =============================================================================
# 5. 재고 평가 / 유통기한 / 원장 검증 스키마
# =============================================================================
class ValuationGroup(BaseModel):
    key: str
    name: str
    item_count: int
    total_value: float
    percent_of_total: float


class ValuationStats(BaseModel):
    total_items: int
    active_items: int
    zero_stock_items: int


class InventoryValuation(BaseModel):
    restaurant_id: int
    total_value: float
    by_category: List[ValuationGroup]
    by_supplier: List[ValuationGroup]
    stats: ValuationStats


class ExpiryStatusItem(BaseModel):
    item_id: int
    name: str
    category: str
    unit: str
    current_stock: float
    expiry_days: Optional[int] = None
    last_purchase_at: Optional[datetime] = None
    expiry: ExpiryInfo


class ExpiryStatusResponse(BaseModel):
    restaurant_id: int
    items: List[ExpiryStatusItem]
    counts: Dict[str, int]


class LedgerDrift(BaseModel):
    item_id: int
    restaurant_id: int
    name: str
    current_stock: float
    ledger_stock: float
    drift: float


class LedgerCheckResponse(BaseModel):
    restaurant_id: Optional[int] = None
    checked_items: int
    drifted_items: List[LedgerDrift]
    is_consistent: bool
