# app/domains/usr/models.py

"""
'usr' 도메인의 데이터베이스 ORM 모델을 정의하는 모듈입니다.

시스템 사용자(users) 테이블과 역할(UserRole) Enum을 포함합니다.
매장 소속 관계(user_restaurants)는 'rst' 도메인에서 관리합니다.
"""

from typing import Optional
from datetime import datetime, UTC
from enum import IntEnum

from sqlmodel import Field, SQLModel, Column
from sqlalchemy import ForeignKey
from sqlalchemy.sql import func
from sqlalchemy.types import TIMESTAMP


# =============================================================================
# 사용자 역할(RBAC) Enum
# =============================================================================
class UserRole(IntEnum):
    """
    사용자 역할을 정의하는 정수형 Enum 클래스입니다.
    값이 작을수록 높은 권한을 의미합니다.
    """
    OWNER = 10               # 소유자: 모든 매장 관리, 승인 권한
    RESTAURANT_MANAGER = 20  # 매장 관리자: 재고 조정, 이동
    BAKER = 50               # 제빵사: 생산 기록
    PASTRY_CHEF = 55         # 파티시에: 생산 기록
    CASHIER = 70             # 계산원: 조회 전용 (재고 관점)


# 권한 그룹 (security.py의 역할 의존성에서 사용)
OWNER_ROLES = frozenset({UserRole.OWNER})
STOCK_MANAGER_ROLES = frozenset({UserRole.OWNER, UserRole.RESTAURANT_MANAGER})
PRODUCTION_ROLES = frozenset({
    UserRole.OWNER, UserRole.RESTAURANT_MANAGER, UserRole.BAKER, UserRole.PASTRY_CHEF,
})


# =============================================================================
# 1. users 테이블 모델
# =============================================================================
class UserBase(SQLModel):
    """
    users 테이블의 기본 속성을 정의하는 SQLModel Base 클래스입니다.
    """
    id: Optional[int] = Field(default=None, primary_key=True, description="사용자 고유 ID")
    username: str = Field(max_length=50, sa_column_kwargs={"unique": True}, description="로그인 사용자명")
    password_hash: str = Field(max_length=255, description="해싱된 비밀번호")
    email: Optional[str] = Field(default=None, max_length=100, sa_column_kwargs={"unique": True}, description="사용자 이메일")
    full_name: Optional[str] = Field(default=None, max_length=100, description="사용자 전체 이름")
    role: UserRole = Field(default=UserRole.CASHIER, description="사용자 역할 (권한)")
    default_restaurant_id: Optional[int] = Field(
        default=None,
        sa_column=Column(ForeignKey("restaurants.id", ondelete="SET NULL")),
        description="기본 매장 ID (FK)"
    )
    is_active: bool = Field(default=True, description="계정 활성 여부")

    created_at: Optional[datetime] = Field(
        default_factory=lambda: datetime.now(UTC),
        sa_column=Column(TIMESTAMP(timezone=True), server_default=func.now()),
        description="레코드 생성 일시"
    )
    updated_at: Optional[datetime] = Field(
        default_factory=lambda: datetime.now(UTC),
        sa_column=Column(TIMESTAMP(timezone=True), server_default=func.now(), onupdate=func.now()),
        description="레코드 마지막 업데이트 일시"
    )


class User(UserBase, table=True):
    """
    users 테이블에 매핑되는 SQLModel ORM 클래스입니다.
    """
    __tablename__ = "users"

    @property
    def display_name(self) -> str:
        """감사 기록(created_by_name 등)에 남길 사용자 표시 이름"""
        return self.full_name or self.email or self.username
