# tests/domains/__init__.py

"""
도메인별 테스트 모듈 패키지입니다.

- `test_usr_n.py`: 인증, 사용자 관리
- `test_rst_n.py`: 매장, 매장 소속
- `test_inv_n.py`: 공급업체, 재고 품목, 재고 원장, 매장 간 이동, 재고 평가
- `test_inv_ledger.py`: 원장 계산 함수 단위 테스트
- `test_rcn_n.py`: 재고 실사 등록/승인/반려
- `test_prd_n.py`: 생산 기록과 재료 재고 차감
"""

__title__ = "Bakery Ledger Domain Tests"
__version__ = "0.1.0"
__all__ = []
