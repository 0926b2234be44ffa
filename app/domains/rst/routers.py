# app/domains/rst/routers.py

"""
'rst' 도메인 (매장 및 소속 관리)과 관련된 API 엔드포인트를 정의하는 모듈입니다.
"""

from typing import List

from fastapi import APIRouter, Depends, HTTPException, Response, status
from sqlmodel.ext.asyncio.session import AsyncSession

from app.core import dependencies as deps
from app.domains.usr import models as usr_models

from . import crud as rst_crud
from . import schemas as rst_schemas


router = APIRouter(
    tags=["Restaurant Management (매장 관리)"],
    responses={404: {"description": "Not found"}},
)


def _to_member(user: usr_models.User) -> rst_schemas.RestaurantMemberResponse:
    return rst_schemas.RestaurantMemberResponse(
        user_id=user.id,
        username=user.username,
        full_name=user.full_name,
        role=int(user.role),
        is_active=user.is_active,
    )


# =============================================================================
# 1. 매장 (Restaurant) 엔드포인트
# =============================================================================
@router.post("/restaurants", response_model=rst_schemas.RestaurantResponse, status_code=status.HTTP_201_CREATED)
async def create_restaurant(
    restaurant_in: rst_schemas.RestaurantCreate,
    db: AsyncSession = Depends(deps.get_db_session),
    current_user: usr_models.User = Depends(deps.get_current_owner_user),
):
    """새 매장을 생성합니다. 생성한 소유자는 자동으로 매장에 소속됩니다."""
    return await rst_crud.restaurant.create_with_owner(db, obj_in=restaurant_in, owner=current_user)


@router.get("/restaurants/my", response_model=List[rst_schemas.RestaurantResponse])
async def read_my_restaurants(
    db: AsyncSession = Depends(deps.get_db_session),
    current_user: usr_models.User = Depends(deps.get_current_active_user),
):
    """현재 사용자가 소속된 매장 목록을 조회합니다."""
    return await rst_crud.restaurant.get_for_user(db, user_id=current_user.id)


@router.get("/restaurants/{restaurant_id}", response_model=rst_schemas.RestaurantResponse)
async def read_restaurant(
    restaurant_id: int,
    db: AsyncSession = Depends(deps.get_db_session),
    current_user: usr_models.User = Depends(deps.get_current_active_user),
):
    return await rst_crud.restaurant.ensure_access(db, user=current_user, restaurant_id=restaurant_id)


@router.put("/restaurants/{restaurant_id}", response_model=rst_schemas.RestaurantResponse)
async def update_restaurant(
    restaurant_id: int,
    restaurant_in: rst_schemas.RestaurantUpdate,
    db: AsyncSession = Depends(deps.get_db_session),
    current_user: usr_models.User = Depends(deps.get_current_owner_user),
):
    """매장 정보 및 재고 차감 방식(stock_deduction_mode)을 수정합니다."""
    db_restaurant = await rst_crud.restaurant.ensure_access(db, user=current_user, restaurant_id=restaurant_id)
    return await rst_crud.restaurant.update(db, db_obj=db_restaurant, obj_in=restaurant_in)


# =============================================================================
# 2. 매장 소속 (Membership) 엔드포인트
# =============================================================================
@router.get("/restaurants/{restaurant_id}/users", response_model=List[rst_schemas.RestaurantMemberResponse])
async def read_restaurant_members(
    restaurant_id: int,
    db: AsyncSession = Depends(deps.get_db_session),
    current_user: usr_models.User = Depends(deps.get_current_active_user),
):
    await rst_crud.restaurant.ensure_access(db, user=current_user, restaurant_id=restaurant_id)
    members = await rst_crud.restaurant.get_members(db, restaurant_id=restaurant_id)
    return [_to_member(m) for m in members]


@router.post(
    "/restaurants/{restaurant_id}/users",
    response_model=rst_schemas.RestaurantMemberResponse,
    status_code=status.HTTP_201_CREATED,
)
async def add_restaurant_member(
    restaurant_id: int,
    member_in: rst_schemas.RestaurantMemberCreate,
    db: AsyncSession = Depends(deps.get_db_session),
    current_user: usr_models.User = Depends(deps.get_current_owner_user),
):
    await rst_crud.restaurant.ensure_access(db, user=current_user, restaurant_id=restaurant_id)
    member = await rst_crud.restaurant.add_member(db, restaurant_id=restaurant_id, user_id=member_in.user_id)
    return _to_member(member)


@router.delete("/restaurants/{restaurant_id}/users/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_restaurant_member(
    restaurant_id: int,
    user_id: int,
    db: AsyncSession = Depends(deps.get_db_session),
    current_user: usr_models.User = Depends(deps.get_current_owner_user),
):
    await rst_crud.restaurant.ensure_access(db, user=current_user, restaurant_id=restaurant_id)
    if user_id == current_user.id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Cannot remove yourself from the restaurant")
    await rst_crud.restaurant.remove_member(db, restaurant_id=restaurant_id, user_id=user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
