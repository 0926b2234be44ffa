# app/domains/models/__init__.py

"""
이 파일은 모든 도메인의 SQLModel 모델들을 한 곳에서 중앙 관리하여,
다른 모듈에서 쉽게 임포트할 수 있도록 하는 역할을 합니다.
SQLModel.metadata가 모든 테이블을 인식하도록 보장합니다. (Alembic, 테스트 테이블 생성)
"""

# usr (User, UserRole)
from app.domains.usr.models import User, UserRole

# rst (Restaurant, UserRestaurant)
from app.domains.rst.models import Restaurant, UserRestaurant, StockDeductionMode

# inv (Supplier, InventoryItem, StockMovement, StockTransfer)
from app.domains.inv.models import Supplier, InventoryItem, StockMovement, StockTransfer, MovementType

# rcn (StockReconciliation, ReconciliationItem)
from app.domains.rcn.models import StockReconciliation, ReconciliationItem, ReconciliationStatus

# prd (ProductionLog)
from app.domains.prd.models import ProductionLog, PreparationStatus, SubmissionStatus


#  `from app.domains.models import *` 구문으로 임포트될 모델 목록 정의
__all__ = [
    # usr
    "User", "UserRole",
    # rst
    "Restaurant", "UserRestaurant", "StockDeductionMode",
    # inv
    "Supplier", "InventoryItem", "StockMovement", "StockTransfer", "MovementType",
    # rcn
    "StockReconciliation", "ReconciliationItem", "ReconciliationStatus",
    # prd
    "ProductionLog", "PreparationStatus", "SubmissionStatus",
]
