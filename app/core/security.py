# app/core/security.py

"""
애플리케이션의 보안 관련 유틸리티 함수 및 의존성 주입을 정의하는 모듈입니다.

- 비밀번호 해싱 및 검증 (passlib, bcrypt)
- JWT(JSON Web Token) 생성 및 검증 (python-jose)
- OAuth2 Password Bearer 스키마를 사용하여 현재 사용자 획득
- 사용자 역할(role) 기반 권한 부여 의존성
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Iterable, Optional

from jose import jwt, JWTError
from passlib.context import CryptContext
from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession

from app import API_PREFIX
from app.core.config import settings
from app.core.database import get_session
from app.domains.usr import models as usr_models

logger = logging.getLogger(__name__)

# --- 비밀번호 해싱 설정 ---
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """일반 텍스트 비밀번호와 해싱된 비밀번호가 일치하는지 확인합니다."""
    return pwd_context.verify(plain_password, hashed_password)


def get_password_hash(password: str) -> str:
    """주어진 비밀번호를 해싱합니다."""
    return pwd_context.hash(password)


# --- OAuth2 스키마 설정 ---
# Swagger UI가 올바른 경로를 찾도록 API_PREFIX를 포함합니다.
oauth2_scheme = OAuth2PasswordBearer(tokenUrl=f"{API_PREFIX}/usr/auth/token")


# --- JWT 토큰 생성 및 검증 ---
def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """
    Access Token을 생성합니다.
    """
    to_encode = data.copy()
    if expires_delta:
        expire = datetime.now(timezone.utc) + expires_delta
    else:
        expire = datetime.now(timezone.utc) + timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, settings.SECRET_KEY.get_secret_value(), algorithm=settings.ALGORITHM)


async def get_current_user_from_token(
    token: str = Depends(oauth2_scheme),
    db: AsyncSession = Depends(get_session),
) -> usr_models.User:
    """
    JWT 토큰을 디코딩하고 검증하여 현재 사용자를 데이터베이스에서 가져옵니다.
    """
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )
    try:
        payload = jwt.decode(token, settings.SECRET_KEY.get_secret_value(), algorithms=[settings.ALGORITHM])
        username: Optional[str] = payload.get("sub")
        if username is None:
            raise credentials_exception
    except JWTError as e:
        logger.debug("JWT decode failed: %s", e)
        raise credentials_exception

    statement = select(usr_models.User).where(usr_models.User.username == username)
    result = await db.execute(statement)
    user = result.scalars().one_or_none()
    if user is None:
        raise credentials_exception
    return user


# --- 역할 기반 권한 부여 의존성 ---

def get_current_active_user(
    current_user: usr_models.User = Depends(get_current_user_from_token),
) -> usr_models.User:
    """
    현재 인증된 활성 사용자를 반환합니다.
    계정이 비활성화된 경우 400 Bad Request를 발생시킵니다.
    """
    if not current_user.is_active:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Inactive user")
    return current_user


def _require_roles(
    current_user: usr_models.User,
    allowed_roles: Iterable[usr_models.UserRole],
    detail: str,
) -> usr_models.User:
    if current_user.role not in allowed_roles:
        logger.info("User '%s' (%s) denied: %s", current_user.username, current_user.role.name, detail)
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=detail)
    return current_user


def get_current_owner_user(
    current_user: usr_models.User = Depends(get_current_active_user),
) -> usr_models.User:
    """
    소유자(Owner) 사용자를 반환합니다.
    품목/공급업체/매장 관리, 재고 실사 승인, 생산 기록 승인에 필요합니다.
    """
    return _require_roles(
        current_user,
        usr_models.OWNER_ROLES,
        "Not enough permissions. Owner role required.",
    )


def get_current_stock_manager_user(
    current_user: usr_models.User = Depends(get_current_active_user),
) -> usr_models.User:
    """
    재고를 직접 조정할 수 있는 사용자(Owner, RestaurantManager)를 반환합니다.
    """
    return _require_roles(
        current_user,
        usr_models.STOCK_MANAGER_ROLES,
        "Not enough permissions. Owner or restaurant manager role required.",
    )


def get_current_production_user(
    current_user: usr_models.User = Depends(get_current_active_user),
) -> usr_models.User:
    """
    생산 기록을 작성할 수 있는 사용자(Owner, RestaurantManager, Baker, PastryChef)를 반환합니다.
    """
    return _require_roles(
        current_user,
        usr_models.PRODUCTION_ROLES,
        "Not enough permissions. Production role required.",
    )
