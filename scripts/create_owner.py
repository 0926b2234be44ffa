# flake8: noqa
# scripts/create_owner.py

import asyncio
from typing import Optional

import typer
from fastapi import HTTPException

from app.core.database import AsyncSessionLocal, create_db_and_tables
from app.domains.rst import crud as rst_crud
from app.domains.rst import schemas as rst_schemas
from app.domains.usr import crud as usr_crud
from app.domains.usr import schemas as usr_schemas
from app.domains.usr.models import UserRole

cli = typer.Typer()


async def create_owner_user(
    user_in: usr_schemas.UserCreate,
    restaurant_name: Optional[str] = None,
    create_tables: bool = False,
) -> None:
    """
    소유자(Owner) 계정을 생성하고, 매장 이름이 주어지면 첫 매장도 함께 생성합니다.
    """
    if create_tables:
        await create_db_and_tables()

    async with AsyncSessionLocal() as db:
        try:
            owner = await usr_crud.user.create(db, obj_in=user_in)
        except HTTPException as e:
            typer.echo(f"오류: {e.detail}")
            raise typer.Exit(code=1)
        typer.echo(f"소유자 계정이 생성되었습니다: {owner.username} (id={owner.id})")

        if restaurant_name:
            restaurant = await rst_crud.restaurant.create_with_owner(
                db, obj_in=rst_schemas.RestaurantCreate(name=restaurant_name), owner=owner
            )
            typer.echo(f"매장이 생성되었습니다: {restaurant.name} (id={restaurant.id})")


@cli.command()
def main(
    username: str = typer.Option(
        ..., '--username', '-u',
        prompt="소유자 사용자명(ID)을 입력하세요",
        help="로그인 시 사용할 사용자명(ID)입니다."
    ),
    password: str = typer.Option(
        ..., '--password', '-p',
        prompt="비밀번호를 입력하세요",
        hide_input=True,
        confirmation_prompt=True,
        help="비밀번호 (최소 8자 이상)"
    ),
    email: Optional[str] = typer.Option(None, '--email', '-e', help="이메일 주소"),
    full_name: str = typer.Option("Owner", '--name', '-n', help="소유자 이름"),
    restaurant: Optional[str] = typer.Option(None, '--restaurant', '-r', help="함께 생성할 첫 매장 이름"),
    create_tables: bool = typer.Option(False, '--create-tables', help="개발용: 테이블이 없으면 먼저 생성합니다."),
):
    """
    Bakery Ledger의 첫 소유자(Owner) 계정을 생성합니다.
    """
    if len(password) < 8:
        typer.echo("오류: 비밀번호는 최소 8자 이상이어야 합니다.")
        raise typer.Abort()

    user_data = usr_schemas.UserCreate(
        username=username,
        email=email,
        password=password,
        full_name=full_name,
        role=UserRole.OWNER,
    )
    asyncio.run(create_owner_user(user_data, restaurant_name=restaurant, create_tables=create_tables))


if __name__ == "__main__":
    cli()
