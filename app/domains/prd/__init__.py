# app/domains/prd/__init__.py

"""
'prd' 도메인 패키지입니다.

생산 기록(ProductionLog)과 재료 가용성 확인을 관리합니다.
매장의 stock_deduction_mode 설정에 따라 재료 재고를 생산 기록 시점(immediate)
또는 생산 완료 시점(deferred)에 사용(Usage) 이동으로 차감합니다.
"""

__all__ = []
