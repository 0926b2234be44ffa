# tests/conftest.py

import os
from decimal import Decimal
from typing import AsyncGenerator, Callable, Awaitable
from contextlib import asynccontextmanager

# --- 테스트 환경 변수 ---
# app 모듈을 임포트하기 전에 설정해야 Settings()가 테스트 DB를 사용합니다.
TEST_DATABASE_FILE = os.path.abspath(os.path.join(os.path.dirname(__file__), "test_bakery.db"))
TEST_DATABASE_URL = f"sqlite+aiosqlite:///{TEST_DATABASE_FILE}"
os.environ["DATABASE_URL"] = TEST_DATABASE_URL
os.environ.setdefault("SECRET_KEY", "test-secret-key-for-bakery-ledger")

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from httpx import AsyncClient, ASGITransport  # noqa: E402

from sqlalchemy.ext.asyncio import create_async_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import NullPool  # noqa: E402
from sqlmodel import SQLModel  # noqa: E402
from sqlmodel.ext.asyncio.session import AsyncSession  # noqa: E402

from app.main import app as main_app  # noqa: E402
from app.core import dependencies as deps  # noqa: E402
from app.core.database import get_session  # noqa: E402
from app.core.security import get_password_hash  # noqa: E402

# SQLModel.metadata.create_all()이 모든 테이블을 인식하도록 모든 모델을 임포트합니다.
from app.domains.models import *  # noqa: F401, F403, E402

from app.domains.usr import models as usr_models  # noqa: E402
from app.domains.rst import models as rst_models  # noqa: E402
from app.domains.inv import models as inv_models  # noqa: E402


# --- 테스트용 데이터베이스 설정 ---
test_engine = create_async_engine(
    TEST_DATABASE_URL,
    echo=False,             # 테스트 시 SQL 쿼리 출력하지 않음
    future=True,
    poolclass=NullPool,     # 각 연결이 독립적으로 사용되고 바로 닫히도록 함
)

TestingSessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=test_engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


# --- 데이터베이스 픽스처 ---
@pytest.fixture(scope="session", autouse=True)
def cleanup_database_file():
    """테스트 세션 종료 후 SQLite 파일을 삭제합니다."""
    yield
    if os.path.exists(TEST_DATABASE_FILE):
        os.remove(TEST_DATABASE_FILE)


@pytest_asyncio.fixture(scope="function")
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """
    각 테스트 함수마다 모든 테이블을 다시 만들어 테스트 간의 격리를 보장하는
    비동기 데이터베이스 세션을 제공합니다.
    API 요청과 테스트 코드가 같은 세션을 공유합니다.
    """
    async with test_engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.drop_all)
        await conn.run_sync(SQLModel.metadata.create_all)

    session = TestingSessionLocal()
    try:
        yield session
    finally:
        await session.close()


@pytest_asyncio.fixture(scope="function")
async def second_session(db_session: AsyncSession) -> AsyncGenerator[AsyncSession, None]:
    """
    db_session과 별도의 연결을 사용하는 두 번째 세션입니다.
    같은 행을 먼저 읽어 둔 다른 요청을 재현할 때 사용합니다.
    """
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        await session.close()


# --- 역할별 사용자 픽스처 (팩토리 사용으로 간결화) ---
@pytest_asyncio.fixture(scope="function")
def user_factory(db_session: AsyncSession) -> Callable[..., Awaitable[usr_models.User]]:
    """
    역할과 속성을 지정하여 테스트 사용자를 생성하는 팩토리 함수를 반환합니다.
    """
    async def _create_user(
        username: str,
        password: str,
        role: usr_models.UserRole,
        is_active: bool = True,
        **kwargs,
    ) -> usr_models.User:
        user = usr_models.User(
            username=username,
            password_hash=get_password_hash(password),
            email=f"{username}@example.com",
            role=role,
            is_active=is_active,
            **kwargs,
        )
        db_session.add(user)
        await db_session.commit()
        await db_session.refresh(user)
        return user
    return _create_user


@pytest_asyncio.fixture(scope="function")
async def test_owner(user_factory: Callable) -> usr_models.User:
    """소유자(OWNER) 사용자를 생성합니다."""
    return await user_factory("owner", "ownerpass123", role=usr_models.UserRole.OWNER, full_name="Test Owner")


@pytest_asyncio.fixture(scope="function")
async def test_manager(user_factory: Callable) -> usr_models.User:
    """매장 관리자(RESTAURANT_MANAGER)를 생성합니다."""
    return await user_factory(
        "manager", "managerpass123", role=usr_models.UserRole.RESTAURANT_MANAGER, full_name="Test Manager"
    )


@pytest_asyncio.fixture(scope="function")
async def test_baker(user_factory: Callable) -> usr_models.User:
    """제빵사(BAKER)를 생성합니다."""
    return await user_factory("baker", "bakerpass123", role=usr_models.UserRole.BAKER, full_name="Test Baker")


@pytest_asyncio.fixture(scope="function")
async def test_cashier(user_factory: Callable) -> usr_models.User:
    """계산원(CASHIER)을 생성합니다."""
    return await user_factory("cashier", "cashierpass123", role=usr_models.UserRole.CASHIER)


@pytest_asyncio.fixture(scope="function")
async def test_outsider(user_factory: Callable) -> usr_models.User:
    """어느 매장에도 소속되지 않은 관리자를 생성합니다."""
    return await user_factory("outsider", "outsiderpass123", role=usr_models.UserRole.RESTAURANT_MANAGER)


# --- 매장 / 소속 픽스처 ---
@pytest_asyncio.fixture(scope="function")
def restaurant_factory(db_session: AsyncSession) -> Callable[..., Awaitable[rst_models.Restaurant]]:
    """매장을 생성하고 주어진 사용자들을 소속시키는 팩토리 함수를 반환합니다."""
    async def _create_restaurant(name: str, members: list, **kwargs) -> rst_models.Restaurant:
        restaurant = rst_models.Restaurant(name=name, **kwargs)
        db_session.add(restaurant)
        await db_session.flush()
        for member in members:
            db_session.add(rst_models.UserRestaurant(user_id=member.id, restaurant_id=restaurant.id))
        await db_session.commit()
        await db_session.refresh(restaurant)
        return restaurant
    return _create_restaurant


@pytest_asyncio.fixture(scope="function")
async def test_restaurant(
    restaurant_factory: Callable,
    test_owner: usr_models.User,
    test_manager: usr_models.User,
    test_baker: usr_models.User,
    test_cashier: usr_models.User,
) -> rst_models.Restaurant:
    """소유자, 관리자, 제빵사, 계산원이 소속된 기본 매장 (immediate 차감 모드)"""
    return await restaurant_factory(
        "Main Bakery", [test_owner, test_manager, test_baker, test_cashier], location="Downtown"
    )


@pytest_asyncio.fixture(scope="function")
async def test_restaurant_b(
    restaurant_factory: Callable,
    test_owner: usr_models.User,
    test_manager: usr_models.User,
) -> rst_models.Restaurant:
    """소유자와 관리자만 소속된 두 번째 매장"""
    return await restaurant_factory("Branch Bakery", [test_owner, test_manager], location="Uptown")


# --- 재고 픽스처 ---
@pytest_asyncio.fixture(scope="function")
def item_factory(db_session: AsyncSession) -> Callable[..., Awaitable[inv_models.InventoryItem]]:
    """
    재고 품목을 생성합니다. stock이 0보다 크면 기초 재고 조정 이동도 함께 기록하여
    current_stock과 원장 합계가 일치하도록 합니다.
    """
    async def _create_item(
        restaurant: rst_models.Restaurant,
        name: str,
        stock: str = "0",
        min_stock: str = "0",
        unit_cost: str = "0",
        category: str = "dry_goods",
        unit: str = "kg",
        **kwargs,
    ) -> inv_models.InventoryItem:
        item = inv_models.InventoryItem(
            restaurant_id=restaurant.id,
            name=name,
            category=category,
            unit=unit,
            current_stock=Decimal(stock),
            min_stock=Decimal(min_stock),
            unit_cost=Decimal(unit_cost),
            **kwargs,
        )
        db_session.add(item)
        await db_session.flush()
        if Decimal(stock) != 0:
            db_session.add(inv_models.StockMovement(
                restaurant_id=restaurant.id,
                item_id=item.id,
                type=inv_models.MovementType.ADJUSTMENT,
                quantity=Decimal(stock),
                unit_cost=Decimal(unit_cost),
                reason="Opening balance",
            ))
        await db_session.commit()
        await db_session.refresh(item)
        return item
    return _create_item


@pytest_asyncio.fixture(scope="function")
async def test_flour(item_factory: Callable, test_restaurant: rst_models.Restaurant) -> inv_models.InventoryItem:
    """밀가루 50kg, 최소 재고 10kg, 단가 2.5"""
    return await item_factory(test_restaurant, "Flour", stock="50", min_stock="10", unit_cost="2.5")


@pytest_asyncio.fixture(scope="function")
async def test_butter(item_factory: Callable, test_restaurant: rst_models.Restaurant) -> inv_models.InventoryItem:
    """버터 20kg, 최소 재고 5kg, 단가 8, 유통기한 14일"""
    return await item_factory(
        test_restaurant, "Butter", stock="20", min_stock="5", unit_cost="8", category="dairy", expiry_days=14
    )


# --- 역할별 인증 클라이언트 픽스처 ---
@pytest_asyncio.fixture(scope="function")
def authorized_client_factory(db_session: AsyncSession):
    """
    특정 사용자로 로그인된 AsyncClient를 생성하는 팩토리 함수를 반환합니다.
    세션 의존성만 오버라이드하고 사용자는 발급받은 토큰으로 인증되므로,
    한 테스트에서 여러 역할의 클라이언트를 함께 사용할 수 있습니다.
    """
    @asynccontextmanager
    async def _create_client_context(user: usr_models.User, password: str) -> AsyncGenerator[AsyncClient, None]:
        async def override_get_session():
            yield db_session

        original_overrides = main_app.dependency_overrides.copy()
        try:
            main_app.dependency_overrides.update({
                get_session: override_get_session,
                deps.get_db_session: override_get_session,
            })

            transport = ASGITransport(app=main_app)
            async with AsyncClient(transport=transport, base_url="http://test") as client:
                login_data = {"username": user.username, "password": password}
                res = await client.post("/api/v1/usr/auth/token", data=login_data)
                if res.status_code != 200:
                    pytest.fail(f"Login failed for {user.username}: {res.text}")

                token = res.json()["access_token"]
                client.headers["Authorization"] = f"Bearer {token}"
                yield client
        finally:
            main_app.dependency_overrides.clear()
            main_app.dependency_overrides.update(original_overrides)

    return _create_client_context


@pytest_asyncio.fixture(scope="function")
async def owner_client(authorized_client_factory, test_owner: usr_models.User) -> AsyncGenerator[AsyncClient, None]:
    async with authorized_client_factory(test_owner, "ownerpass123") as client:
        yield client


@pytest_asyncio.fixture(scope="function")
async def manager_client(authorized_client_factory, test_manager: usr_models.User) -> AsyncGenerator[AsyncClient, None]:
    async with authorized_client_factory(test_manager, "managerpass123") as client:
        yield client


@pytest_asyncio.fixture(scope="function")
async def baker_client(authorized_client_factory, test_baker: usr_models.User) -> AsyncGenerator[AsyncClient, None]:
    async with authorized_client_factory(test_baker, "bakerpass123") as client:
        yield client


@pytest_asyncio.fixture(scope="function")
async def cashier_client(authorized_client_factory, test_cashier: usr_models.User) -> AsyncGenerator[AsyncClient, None]:
    async with authorized_client_factory(test_cashier, "cashierpass123") as client:
        yield client


@pytest_asyncio.fixture(scope="function")
async def outsider_client(authorized_client_factory, test_outsider: usr_models.User) -> AsyncGenerator[AsyncClient, None]:
    async with authorized_client_factory(test_outsider, "outsiderpass123") as client:
        yield client


@pytest_asyncio.fixture(scope="function")
async def client(db_session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """인증되지 않은 클라이언트 (세션만 오버라이드)"""
    async def override_get_session():
        yield db_session

    original_overrides = main_app.dependency_overrides.copy()
    try:
        main_app.dependency_overrides.update({
            get_session: override_get_session,
            deps.get_db_session: override_get_session,
        })
        transport = ASGITransport(app=main_app)
        async with AsyncClient(transport=transport, base_url="http://test") as ac:
            yield ac
    finally:
        main_app.dependency_overrides.clear()
        main_app.dependency_overrides.update(original_overrides)
