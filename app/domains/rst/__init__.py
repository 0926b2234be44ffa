# app/domains/rst/__init__.py

"""
'rst' 도메인 패키지입니다.

매장(베이커리/레스토랑)과 사용자의 매장 소속(user_restaurants)을 관리합니다.
다른 도메인의 모든 재고 데이터는 매장 단위로 분리되며,
조회 권한은 매장 소속 여부로 판단합니다.
"""

__all__ = []
