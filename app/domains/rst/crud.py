# app/domains/rst/crud.py

"""
'rst' 도메인의 CRUD 작업을 담당하는 모듈입니다.
매장 소속 확인(ensure_access)은 다른 모든 도메인 라우터에서 사용됩니다.
"""

import logging
from typing import List, Optional

from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession
from fastapi import HTTPException, status

from app.core.crud_base import CRUDBase
from app.domains.usr import models as usr_models
from . import models as rst_models
from . import schemas as rst_schemas

logger = logging.getLogger(__name__)


class CRUDRestaurant(CRUDBase[rst_models.Restaurant, rst_schemas.RestaurantCreate, rst_schemas.RestaurantUpdate]):
    def __init__(self):
        super().__init__(model=rst_models.Restaurant)

    async def create_with_owner(
        self, db: AsyncSession, *, obj_in: rst_schemas.RestaurantCreate, owner: usr_models.User
    ) -> rst_models.Restaurant:
        """매장을 생성하고 생성한 사용자를 매장에 소속시킵니다."""
        db_obj = rst_models.Restaurant.model_validate(obj_in)
        db.add(db_obj)
        await db.flush()
        db.add(rst_models.UserRestaurant(user_id=owner.id, restaurant_id=db_obj.id))
        # 인증 의존성의 세션과 다를 수 있으므로 현재 세션에서 사용자를 다시 조회합니다.
        db_owner = await db.get(usr_models.User, owner.id)
        if db_owner is not None and db_owner.default_restaurant_id is None:
            db_owner.default_restaurant_id = db_obj.id
            db.add(db_owner)
        await db.commit()
        await db.refresh(db_obj)
        if db_owner is not None:
            await db.refresh(db_owner)
        return db_obj

    async def get_for_user(self, db: AsyncSession, *, user_id: int) -> List[rst_models.Restaurant]:
        """사용자가 소속된 매장 목록을 이름순으로 조회합니다."""
        query = (
            select(rst_models.Restaurant)
            .join(rst_models.UserRestaurant, rst_models.UserRestaurant.restaurant_id == rst_models.Restaurant.id)
            .where(rst_models.UserRestaurant.user_id == user_id)
            .order_by(rst_models.Restaurant.name)
        )
        result = await db.execute(query)
        return result.scalars().all()

    async def get_membership(
        self, db: AsyncSession, *, user_id: int, restaurant_id: int
    ) -> Optional[rst_models.UserRestaurant]:
        query = select(rst_models.UserRestaurant).where(
            rst_models.UserRestaurant.user_id == user_id,
            rst_models.UserRestaurant.restaurant_id == restaurant_id,
        )
        result = await db.execute(query)
        return result.scalars().first()

    async def ensure_access(
        self, db: AsyncSession, *, user: usr_models.User, restaurant_id: int
    ) -> rst_models.Restaurant:
        """
        사용자가 매장에 소속되어 있는지 확인하고 매장을 반환합니다.
        - 매장이 없으면 404
        - 소속되어 있지 않으면 403
        """
        restaurant = await self.get(db, restaurant_id)
        if not restaurant:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Restaurant not found")
        if not await self.get_membership(db, user_id=user.id, restaurant_id=restaurant_id):
            logger.info("User '%s' is not a member of restaurant %d", user.username, restaurant_id)
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Forbidden")
        return restaurant

    async def get_members(self, db: AsyncSession, *, restaurant_id: int) -> List[usr_models.User]:
        query = (
            select(usr_models.User)
            .join(rst_models.UserRestaurant, rst_models.UserRestaurant.user_id == usr_models.User.id)
            .where(rst_models.UserRestaurant.restaurant_id == restaurant_id)
            .order_by(usr_models.User.username)
        )
        result = await db.execute(query)
        return result.scalars().all()

    async def add_member(self, db: AsyncSession, *, restaurant_id: int, user_id: int) -> usr_models.User:
        """사용자를 매장에 소속시킵니다. 이미 소속된 경우 400을 반환합니다."""
        member = await db.get(usr_models.User, user_id)
        if not member:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
        if await self.get_membership(db, user_id=user_id, restaurant_id=restaurant_id):
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="User is already a member of this restaurant")

        db.add(rst_models.UserRestaurant(user_id=user_id, restaurant_id=restaurant_id))
        await db.commit()
        return member

    async def remove_member(self, db: AsyncSession, *, restaurant_id: int, user_id: int) -> None:
        membership = await self.get_membership(db, user_id=user_id, restaurant_id=restaurant_id)
        if not membership:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Membership not found")
        await db.delete(membership)
        await db.commit()


restaurant = CRUDRestaurant()
