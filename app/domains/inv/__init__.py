# app/domains/inv/__init__.py

"""
'inv' 도메인 패키지입니다.

재고 품목(InventoryItem), 공급업체(Supplier), 재고 이동 원장(StockMovement),
매장 간 재고 이동(StockTransfer)을 관리합니다.

품목의 현재 재고(current_stock)는 항상 해당 품목 재고 이동 수량의 합과 같아야 하며,
모든 재고 변경은 이동 원장에 한 줄씩 추가되는 방식으로만 이루어집니다.

주요 서브모듈:
- `models.py`, `schemas.py`, `crud.py`, `routers.py`
- `ledger.py`: 부호 규칙, 재고 상태, 유통기한 계산, 원장 검증
- `tasks.py`: 재고 부족 알림, 원장 검증 ARQ 태스크
"""

__all__ = []
