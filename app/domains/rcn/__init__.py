# app/domains/rcn/__init__.py

"""
'rcn' 도메인 패키지입니다.

재고 실사(StockReconciliation)를 관리합니다.
실사 등록 시 시스템 재고를 스냅샷으로 저장하고 차이(variance)를 계산하며,
소유자가 승인하면 차이만큼 조정(Adjustment) 이동을 원장에 추가합니다.
상태 전이: Pending → Approved | Rejected
"""

__all__ = []
