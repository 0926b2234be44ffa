# tests/domains/test_inv_n.py

"""
'inv' 도메인 (공급업체, 재고 품목, 재고 원장, 매장 간 이동) 관련 API 엔드포인트에 대한 통합 테스트 모듈입니다.
"""

from decimal import Decimal

import pytest
from httpx import AsyncClient
from fastapi import HTTPException
from sqlmodel.ext.asyncio.session import AsyncSession

from app.domains.inv import crud as inv_crud
from app.domains.inv import ledger
from app.domains.inv import models as inv_models
from app.domains.inv import schemas as inv_schemas
from app.domains.inv import tasks as inv_tasks
from app.domains.rst import models as rst_models
from app.domains.usr import models as usr_models


# =============================================================================
# 1. 공급업체 (Supplier) 테스트
# =============================================================================
@pytest.mark.asyncio
async def test_create_and_list_suppliers(owner_client: AsyncClient, manager_client: AsyncClient):
    response = await owner_client.post(
        "/api/v1/inv/suppliers",
        json={"name": "Mill & Co", "phone": "010-1234-5678", "email": "sales@mill.example.com", "payment_terms": "Net 30"},
    )
    assert response.status_code == 201
    supplier = response.json()
    assert supplier["name"] == "Mill & Co"
    assert supplier["is_active"] is True

    listed = await manager_client.get("/api/v1/inv/suppliers")
    assert listed.status_code == 200
    assert [s["name"] for s in listed.json()] == ["Mill & Co"]


@pytest.mark.asyncio
async def test_create_supplier_forbidden_for_manager(manager_client: AsyncClient):
    response = await manager_client.post("/api/v1/inv/suppliers", json={"name": "Shady Supplies"})
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_deactivated_supplier_hidden_by_default(owner_client: AsyncClient):
    created = (await owner_client.post("/api/v1/inv/suppliers", json={"name": "Old Dairy"})).json()
    updated = await owner_client.put(f"/api/v1/inv/suppliers/{created['id']}", json={"is_active": False})
    assert updated.status_code == 200

    assert (await owner_client.get("/api/v1/inv/suppliers")).json() == []
    with_inactive = await owner_client.get("/api/v1/inv/suppliers", params={"include_inactive": True})
    assert len(with_inactive.json()) == 1


# =============================================================================
# 2. 재고 품목 (InventoryItem) 테스트
# =============================================================================
@pytest.mark.asyncio
async def test_create_item_records_opening_balance(
    owner_client: AsyncClient, test_restaurant: rst_models.Restaurant
):
    response = await owner_client.post(
        "/api/v1/inv/items",
        json={
            "restaurant_id": test_restaurant.id,
            "name": "Yeast",
            "category": "dry_goods",
            "unit": "g",
            "current_stock": 500,
            "min_stock": 100,
            "unit_cost": 0.02,
        },
    )
    assert response.status_code == 201
    item = response.json()
    assert item["current_stock"] == 500
    assert item["stock_status"] == "ok"

    movements = await owner_client.get(
        "/api/v1/inv/stock_movements", params={"restaurant_id": test_restaurant.id, "item_id": item["id"]}
    )
    assert movements.status_code == 200
    rows = movements.json()
    assert len(rows) == 1
    assert rows[0]["type"] == "Adjustment"
    assert rows[0]["quantity"] == 500
    assert rows[0]["reason"] == "Opening balance"
    assert rows[0]["created_by_name"] == "Test Owner"


@pytest.mark.asyncio
async def test_create_item_without_stock_has_no_movement(
    owner_client: AsyncClient, test_restaurant: rst_models.Restaurant
):
    response = await owner_client.post(
        "/api/v1/inv/items",
        json={"restaurant_id": test_restaurant.id, "name": "Cocoa", "category": "dry_goods", "unit": "kg"},
    )
    assert response.status_code == 201
    item = response.json()
    assert item["current_stock"] == 0
    assert item["stock_status"] == "critical"

    movements = await owner_client.get(
        "/api/v1/inv/stock_movements", params={"restaurant_id": test_restaurant.id, "item_id": item["id"]}
    )
    assert movements.json() == []


@pytest.mark.asyncio
async def test_create_item_unknown_supplier(owner_client: AsyncClient, test_restaurant: rst_models.Restaurant):
    response = await owner_client.post(
        "/api/v1/inv/items",
        json={
            "restaurant_id": test_restaurant.id, "name": "Milk", "category": "dairy", "unit": "l", "supplier_id": 9999,
        },
    )
    assert response.status_code == 404
    assert response.json()["detail"] == "Supplier not found"


@pytest.mark.asyncio
async def test_create_item_negative_stock_rejected(owner_client: AsyncClient, test_restaurant: rst_models.Restaurant):
    response = await owner_client.post(
        "/api/v1/inv/items",
        json={"restaurant_id": test_restaurant.id, "name": "Salt", "category": "dry_goods", "unit": "kg", "current_stock": -1},
    )
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_create_item_requires_owner_and_membership(
    manager_client: AsyncClient,
    owner_client: AsyncClient,
    restaurant_factory,
    test_manager,
    test_restaurant: rst_models.Restaurant,
):
    item_data = {"restaurant_id": test_restaurant.id, "name": "Eggs", "category": "dairy", "unit": "ea"}
    assert (await manager_client.post("/api/v1/inv/items", json=item_data)).status_code == 403

    foreign = await restaurant_factory("Rival Bakery", [test_manager])
    foreign_item = {**item_data, "restaurant_id": foreign.id}
    assert (await owner_client.post("/api/v1/inv/items", json=foreign_item)).status_code == 403


@pytest.mark.asyncio
async def test_list_items_filters(
    baker_client: AsyncClient,
    item_factory,
    test_restaurant: rst_models.Restaurant,
    test_flour: inv_models.InventoryItem,
    test_butter: inv_models.InventoryItem,
):
    await item_factory(test_restaurant, "Sugar", stock="3", min_stock="10", unit_cost="1.2")

    all_items = await baker_client.get("/api/v1/inv/items", params={"restaurant_id": test_restaurant.id})
    assert all_items.status_code == 200
    assert [i["name"] for i in all_items.json()] == ["Butter", "Flour", "Sugar"]

    low = await baker_client.get("/api/v1/inv/items", params={"restaurant_id": test_restaurant.id, "low_stock": True})
    assert [(i["name"], i["stock_status"]) for i in low.json()] == [("Sugar", "low")]

    dairy = await baker_client.get("/api/v1/inv/items", params={"restaurant_id": test_restaurant.id, "category": "dairy"})
    assert [i["name"] for i in dairy.json()] == ["Butter"]

    search = await baker_client.get("/api/v1/inv/items", params={"restaurant_id": test_restaurant.id, "search": "flo"})
    assert [i["name"] for i in search.json()] == ["Flour"]


@pytest.mark.asyncio
async def test_list_items_forbidden_for_outsider(outsider_client: AsyncClient, test_restaurant: rst_models.Restaurant):
    response = await outsider_client.get("/api/v1/inv/items", params={"restaurant_id": test_restaurant.id})
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_read_item_detail(cashier_client: AsyncClient, test_butter: inv_models.InventoryItem):
    response = await cashier_client.get(f"/api/v1/inv/items/{test_butter.id}")
    assert response.status_code == 200
    detail = response.json()
    assert detail["name"] == "Butter"
    assert detail["stock_status"] == "ok"
    assert len(detail["recent_movements"]) == 1
    # 입고 이력이 없으면 유통기한을 계산할 수 없습니다.
    assert detail["expiry"]["status"] == "non-perishable"
    assert detail["expiry"]["expiry_date"] is None


@pytest.mark.asyncio
async def test_read_item_not_found(owner_client: AsyncClient):
    response = await owner_client.get("/api/v1/inv/items/9999")
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_update_item_does_not_touch_stock(owner_client: AsyncClient, test_flour: inv_models.InventoryItem):
    response = await owner_client.put(
        f"/api/v1/inv/items/{test_flour.id}", json={"min_stock": 60, "current_stock": 999}
    )
    assert response.status_code == 200
    item = response.json()
    assert item["min_stock"] == 60
    assert item["current_stock"] == 50
    assert item["stock_status"] == "low"


@pytest.mark.asyncio
async def test_soft_delete_item(
    owner_client: AsyncClient,
    manager_client: AsyncClient,
    test_restaurant: rst_models.Restaurant,
    test_flour: inv_models.InventoryItem,
):
    response = await owner_client.delete(f"/api/v1/inv/items/{test_flour.id}")
    assert response.status_code == 200
    assert response.json()["is_active"] is False

    listed = await owner_client.get("/api/v1/inv/items", params={"restaurant_id": test_restaurant.id})
    assert listed.json() == []

    adjust = await manager_client.post(
        f"/api/v1/inv/items/{test_flour.id}/adjust", json={"type": "Usage", "quantity": 1}
    )
    assert adjust.status_code == 400
    assert adjust.json()["detail"] == "Inventory item is inactive"


# =============================================================================
# 3. 재고 조정 / 원장 (StockMovement) 테스트
# =============================================================================
@pytest.mark.asyncio
async def test_adjust_purchase_updates_stock_and_cost(
    manager_client: AsyncClient, test_flour: inv_models.InventoryItem
):
    response = await manager_client.post(
        f"/api/v1/inv/items/{test_flour.id}/adjust",
        json={"type": "Purchase", "quantity": 10, "unit_cost": 3, "reason": "Weekly delivery"},
    )
    assert response.status_code == 200
    body = response.json()
    assert body["movement"]["type"] == "Purchase"
    assert body["movement"]["quantity"] == 10
    assert body["movement"]["unit_cost"] == 3
    assert body["item"]["current_stock"] == 60
    assert body["item"]["unit_cost"] == 3


@pytest.mark.asyncio
async def test_adjust_usage_stores_negative_quantity(
    manager_client: AsyncClient, test_flour: inv_models.InventoryItem
):
    # 사용량은 양수로 보내도 원장에는 음수로 기록됩니다.
    response = await manager_client.post(
        f"/api/v1/inv/items/{test_flour.id}/adjust", json={"type": "Usage", "quantity": 5}
    )
    assert response.status_code == 200
    body = response.json()
    assert body["movement"]["quantity"] == -5
    assert body["item"]["current_stock"] == 45


@pytest.mark.asyncio
async def test_adjust_insufficient_stock_leaves_item_unchanged(
    manager_client: AsyncClient, test_restaurant: rst_models.Restaurant, test_flour: inv_models.InventoryItem
):
    response = await manager_client.post(
        f"/api/v1/inv/items/{test_flour.id}/adjust", json={"type": "Waste", "quantity": 100}
    )
    assert response.status_code == 400
    assert response.json()["detail"].startswith("Insufficient stock for Flour")

    item = (await manager_client.get(f"/api/v1/inv/items/{test_flour.id}")).json()
    assert item["current_stock"] == 50
    movements = await manager_client.get(
        "/api/v1/inv/stock_movements", params={"restaurant_id": test_restaurant.id, "item_id": test_flour.id}
    )
    assert len(movements.json()) == 1


@pytest.mark.asyncio
async def test_adjust_signed_adjustment(manager_client: AsyncClient, test_flour: inv_models.InventoryItem):
    negative = await manager_client.post(
        f"/api/v1/inv/items/{test_flour.id}/adjust", json={"type": "Adjustment", "quantity": -7.5}
    )
    assert negative.status_code == 200
    assert negative.json()["item"]["current_stock"] == 42.5

    too_far = await manager_client.post(
        f"/api/v1/inv/items/{test_flour.id}/adjust", json={"type": "Adjustment", "quantity": -50}
    )
    assert too_far.status_code == 400


@pytest.mark.asyncio
async def test_adjust_rejects_transfer_type_and_zero(manager_client: AsyncClient, test_flour: inv_models.InventoryItem):
    transfer = await manager_client.post(
        f"/api/v1/inv/items/{test_flour.id}/adjust", json={"type": "TransferOut", "quantity": 1}
    )
    assert transfer.status_code == 400
    assert transfer.json()["detail"] == "Transfer movements must be created through /inv/transfers"

    zero = await manager_client.post(
        f"/api/v1/inv/items/{test_flour.id}/adjust", json={"type": "Purchase", "quantity": 0}
    )
    assert zero.status_code == 400
    assert zero.json()["detail"] == "Quantity must not be zero"


@pytest.mark.asyncio
async def test_adjust_rejects_non_finite_numbers(manager_client: AsyncClient, test_flour: inv_models.InventoryItem):
    url = f"/api/v1/inv/items/{test_flour.id}/adjust"
    for body in (
        '{"type": "Adjustment", "quantity": NaN}',
        '{"type": "Purchase", "quantity": Infinity}',
        '{"type": "Purchase", "quantity": 1, "unit_cost": Infinity}',
    ):
        response = await manager_client.post(url, content=body, headers={"Content-Type": "application/json"})
        assert response.status_code == 422, body

    nan_response = await manager_client.post(
        url, content='{"type": "Adjustment", "quantity": NaN}', headers={"Content-Type": "application/json"}
    )
    assert nan_response.json()["detail"][0]["input"] == "nan"

    item = (await manager_client.get(f"/api/v1/inv/items/{test_flour.id}")).json()
    assert item["current_stock"] == 50
    assert len(item["recent_movements"]) == 1


@pytest.mark.asyncio
async def test_adjust_rounds_quantity_to_ledger_scale(
    owner_client: AsyncClient, manager_client: AsyncClient, test_flour: inv_models.InventoryItem
):
    response = await manager_client.post(
        f"/api/v1/inv/items/{test_flour.id}/adjust", json={"type": "Purchase", "quantity": 1.23456}
    )
    assert response.status_code == 200
    assert response.json()["movement"]["quantity"] == 1.2346
    assert response.json()["item"]["current_stock"] == 51.2346

    below_scale = await manager_client.post(
        f"/api/v1/inv/items/{test_flour.id}/adjust", json={"type": "Purchase", "quantity": 0.00004}
    )
    assert below_scale.status_code == 400
    assert below_scale.json()["detail"] == "Quantity must not be zero"

    ledger_report = (await owner_client.get("/api/v1/inv/ledger_check")).json()
    assert ledger_report["is_consistent"] is True


@pytest.mark.asyncio
async def test_movements_from_stale_sessions_apply_both_deltas(
    db_session: AsyncSession,
    second_session: AsyncSession,
    test_manager: usr_models.User,
    test_restaurant: rst_models.Restaurant,
    test_flour: inv_models.InventoryItem,
):
    # 두 세션이 같은 재고(50)를 읽은 뒤 차례로 사용 처리합니다.
    first_view = await db_session.get(inv_models.InventoryItem, test_flour.id)
    second_view = await second_session.get(inv_models.InventoryItem, test_flour.id)
    assert first_view.current_stock == second_view.current_stock == Decimal("50")

    await inv_crud.stock_movement.apply(
        db_session, item=first_view, obj_in=inv_schemas.StockAdjustRequest(type="Usage", quantity=10), user=test_manager
    )
    _, item = await inv_crud.stock_movement.apply(
        second_session, item=second_view, obj_in=inv_schemas.StockAdjustRequest(type="Usage", quantity=5), user=test_manager
    )
    assert item.current_stock == Decimal("35")

    report = await ledger.compute_ledger_drift(db_session, restaurant_id=test_restaurant.id)
    assert report["is_consistent"] is True
    assert report["drifted_items"] == []


@pytest.mark.asyncio
async def test_stale_session_cannot_oversell(
    db_session: AsyncSession,
    second_session: AsyncSession,
    test_manager: usr_models.User,
    test_restaurant: rst_models.Restaurant,
    test_flour: inv_models.InventoryItem,
):
    first_view = await db_session.get(inv_models.InventoryItem, test_flour.id)
    second_view = await second_session.get(inv_models.InventoryItem, test_flour.id)

    await inv_crud.stock_movement.apply(
        db_session, item=first_view, obj_in=inv_schemas.StockAdjustRequest(type="Usage", quantity=40), user=test_manager
    )

    # 두 번째 세션은 아직 50으로 알고 있지만 실제 재고는 10입니다.
    with pytest.raises(HTTPException) as exc_info:
        await inv_crud.stock_movement.apply(
            second_session,
            item=second_view,
            obj_in=inv_schemas.StockAdjustRequest(type="Usage", quantity=20),
            user=test_manager,
        )
    await second_session.rollback()
    assert exc_info.value.status_code == 400
    assert exc_info.value.detail.startswith("Insufficient stock for Flour")

    report = await ledger.compute_ledger_drift(db_session, restaurant_id=test_restaurant.id)
    assert report["is_consistent"] is True
    await db_session.refresh(first_view)
    assert first_view.current_stock == Decimal("10")


@pytest.mark.asyncio
async def test_adjust_forbidden_for_baker_and_cashier(
    baker_client: AsyncClient, cashier_client: AsyncClient, test_flour: inv_models.InventoryItem
):
    payload = {"type": "Usage", "quantity": 1}
    assert (await baker_client.post(f"/api/v1/inv/items/{test_flour.id}/adjust", json=payload)).status_code == 403
    assert (await cashier_client.post(f"/api/v1/inv/items/{test_flour.id}/adjust", json=payload)).status_code == 403


@pytest.mark.asyncio
async def test_low_stock_alert_sent_inline(
    manager_client: AsyncClient, test_flour: inv_models.InventoryItem, monkeypatch
):
    sent = []

    async def fake_alert(ctx, item_id, item_name, restaurant_id, current_stock, min_stock, alert_type):
        sent.append((item_name, current_stock, alert_type))
        return {"status": "logged"}

    monkeypatch.setattr(inv_tasks, "send_low_stock_alert", fake_alert)

    await manager_client.post(f"/api/v1/inv/items/{test_flour.id}/adjust", json={"type": "Usage", "quantity": 20})
    assert sent == []

    await manager_client.post(f"/api/v1/inv/items/{test_flour.id}/adjust", json={"type": "Usage", "quantity": 22})
    assert sent == [("Flour", 8.0, "low_stock")]


@pytest.mark.asyncio
async def test_create_stock_movement_endpoint(
    manager_client: AsyncClient,
    test_restaurant: rst_models.Restaurant,
    test_restaurant_b: rst_models.Restaurant,
    test_flour: inv_models.InventoryItem,
):
    created = await manager_client.post(
        "/api/v1/inv/stock_movements",
        json={"restaurant_id": test_restaurant.id, "item_id": test_flour.id, "type": "Waste", "quantity": 2},
    )
    assert created.status_code == 201
    assert created.json()["item"]["current_stock"] == 48

    wrong_restaurant = await manager_client.post(
        "/api/v1/inv/stock_movements",
        json={"restaurant_id": test_restaurant_b.id, "item_id": test_flour.id, "type": "Waste", "quantity": 2},
    )
    assert wrong_restaurant.status_code == 400
    assert wrong_restaurant.json()["detail"] == "Inventory item does not belong to this restaurant"


@pytest.mark.asyncio
async def test_list_stock_movements_by_type(
    manager_client: AsyncClient,
    test_restaurant: rst_models.Restaurant,
    test_flour: inv_models.InventoryItem,
    test_butter: inv_models.InventoryItem,
):
    await manager_client.post(f"/api/v1/inv/items/{test_flour.id}/adjust", json={"type": "Usage", "quantity": 3})
    await manager_client.post(f"/api/v1/inv/items/{test_butter.id}/adjust", json={"type": "Usage", "quantity": 1})

    response = await manager_client.get(
        "/api/v1/inv/stock_movements", params={"restaurant_id": test_restaurant.id, "type": "Usage"}
    )
    assert response.status_code == 200
    rows = response.json()
    assert [r["item"]["name"] for r in rows] == ["Butter", "Flour"]
    assert all(r["type"] == "Usage" for r in rows)

    limited = await manager_client.get(
        "/api/v1/inv/stock_movements", params={"restaurant_id": test_restaurant.id, "limit": 2}
    )
    assert len(limited.json()) == 2


@pytest.mark.asyncio
async def test_list_stock_movements_limit_capped(
    manager_client: AsyncClient,
    db_session: AsyncSession,
    test_restaurant: rst_models.Restaurant,
    test_flour: inv_models.InventoryItem,
):
    db_session.add_all([
        inv_models.StockMovement(
            restaurant_id=test_restaurant.id,
            item_id=test_flour.id,
            type=inv_models.MovementType.PURCHASE,
            quantity=Decimal("1"),
            reason=f"Delivery {i}",
        )
        for i in range(110)
    ])
    await db_session.commit()

    params = {"restaurant_id": test_restaurant.id}
    default_page = await manager_client.get("/api/v1/inv/stock_movements", params=params)
    assert len(default_page.json()) == 50

    capped = await manager_client.get("/api/v1/inv/stock_movements", params={**params, "limit": 500})
    assert capped.status_code == 200
    assert len(capped.json()) == 100


@pytest.mark.asyncio
async def test_stock_movement_summary(
    manager_client: AsyncClient, test_restaurant: rst_models.Restaurant, test_flour: inv_models.InventoryItem
):
    for payload in (
        {"type": "Purchase", "quantity": 10, "unit_cost": 2.5},
        {"type": "Usage", "quantity": 4},
        {"type": "Waste", "quantity": 1},
    ):
        response = await manager_client.post(f"/api/v1/inv/items/{test_flour.id}/adjust", json=payload)
        assert response.status_code == 200

    summary = await manager_client.get(
        "/api/v1/inv/stock_movements/summary",
        params={"restaurant_id": test_restaurant.id, "item_id": test_flour.id},
    )
    assert summary.status_code == 200
    data = summary.json()
    assert data["total_purchases"] == 10
    assert data["total_usage"] == 4
    assert data["total_waste"] == 1
    assert data["total_adjustments"] == 50
    assert data["net_change"] == 55
    assert data["average_cost"] == 2.5
    assert data["total_movements"] == 4

    by_type = {row["type"]: row for row in data["movements_by_type"]}
    assert len(by_type) == 6
    assert by_type["Usage"]["count"] == 1
    assert by_type["TransferIn"]["count"] == 0


# =============================================================================
# 4. 매장 간 이동 (StockTransfer) 테스트
# =============================================================================
@pytest.mark.asyncio
async def test_transfer_creates_target_item_and_paired_movements(
    manager_client: AsyncClient,
    test_restaurant: rst_models.Restaurant,
    test_restaurant_b: rst_models.Restaurant,
    test_flour: inv_models.InventoryItem,
):
    response = await manager_client.post(
        "/api/v1/inv/transfers",
        json={
            "source_restaurant_id": test_restaurant.id,
            "target_restaurant_id": test_restaurant_b.id,
            "item_id": test_flour.id,
            "quantity": 15,
        },
    )
    assert response.status_code == 201
    result = response.json()
    transfer_id = result["transfer"]["id"]

    assert result["source_item"]["current_stock"] == 35
    target = result["target_item"]
    assert target["restaurant_id"] == test_restaurant_b.id
    assert target["name"] == "Flour"
    assert target["current_stock"] == 15
    assert target["unit_cost"] == 2.5

    out_movement, in_movement = result["movements"]
    assert (out_movement["type"], out_movement["quantity"]) == ("TransferOut", -15)
    assert (in_movement["type"], in_movement["quantity"]) == ("TransferIn", 15)
    assert out_movement["transfer_id"] == in_movement["transfer_id"] == transfer_id
    assert out_movement["reason"] == f"Transfer #{transfer_id}"

    # 같은 이름/분류의 품목이 있으면 재사용합니다.
    again = await manager_client.post(
        "/api/v1/inv/transfers",
        json={
            "source_restaurant_id": test_restaurant.id,
            "target_restaurant_id": test_restaurant_b.id,
            "item_id": test_flour.id,
            "quantity": 5,
            "reason": "Weekend rush",
        },
    )
    assert again.status_code == 201
    assert again.json()["target_item"]["id"] == target["id"]
    assert again.json()["target_item"]["current_stock"] == 20

    history = await manager_client.get("/api/v1/inv/transfers", params={"restaurant_id": test_restaurant_b.id})
    assert history.status_code == 200
    assert [t["quantity"] for t in history.json()] == [5, 15]


@pytest.mark.asyncio
async def test_transfer_validation_errors(
    manager_client: AsyncClient,
    test_restaurant: rst_models.Restaurant,
    test_restaurant_b: rst_models.Restaurant,
    test_flour: inv_models.InventoryItem,
):
    base = {
        "source_restaurant_id": test_restaurant.id,
        "target_restaurant_id": test_restaurant_b.id,
        "item_id": test_flour.id,
    }

    same = await manager_client.post(
        "/api/v1/inv/transfers", json={**base, "target_restaurant_id": test_restaurant.id, "quantity": 1}
    )
    assert same.status_code == 400
    assert same.json()["detail"] == "Cannot transfer to the same restaurant"

    zero = await manager_client.post("/api/v1/inv/transfers", json={**base, "quantity": 0})
    assert zero.status_code == 422

    too_much = await manager_client.post("/api/v1/inv/transfers", json={**base, "quantity": 51})
    assert too_much.status_code == 400
    assert too_much.json()["detail"].startswith("Insufficient stock for Flour")

    wrong_source = await manager_client.post(
        "/api/v1/inv/transfers",
        json={**base, "source_restaurant_id": test_restaurant_b.id, "target_restaurant_id": test_restaurant.id, "quantity": 1},
    )
    assert wrong_source.status_code == 404

    flour = (await manager_client.get(f"/api/v1/inv/items/{test_flour.id}")).json()
    assert flour["current_stock"] == 50


@pytest.mark.asyncio
async def test_transfer_requires_membership_in_both_restaurants(
    manager_client: AsyncClient,
    restaurant_factory,
    test_owner,
    test_restaurant: rst_models.Restaurant,
    test_flour: inv_models.InventoryItem,
):
    owner_only = await restaurant_factory("Owner Kitchen", [test_owner])
    response = await manager_client.post(
        "/api/v1/inv/transfers",
        json={
            "source_restaurant_id": test_restaurant.id,
            "target_restaurant_id": owner_only.id,
            "item_id": test_flour.id,
            "quantity": 1,
        },
    )
    assert response.status_code == 403


# =============================================================================
# 5. 재고 평가 / 유통기한 / 원장 검증 테스트
# =============================================================================
@pytest.mark.asyncio
async def test_inventory_valuation(
    cashier_client: AsyncClient,
    test_restaurant: rst_models.Restaurant,
    test_flour: inv_models.InventoryItem,
    test_butter: inv_models.InventoryItem,
):
    response = await cashier_client.get("/api/v1/inv/valuation", params={"restaurant_id": test_restaurant.id})
    assert response.status_code == 200
    valuation = response.json()
    assert valuation["total_value"] == 285.0

    categories = [(g["key"], g["total_value"], g["percent_of_total"]) for g in valuation["by_category"]]
    assert categories == [("dairy", 160.0, 56.14), ("dry_goods", 125.0, 43.86)]

    assert valuation["by_supplier"] == [
        {"key": "none", "name": "No supplier", "item_count": 2, "total_value": 285.0, "percent_of_total": 100.0}
    ]
    assert valuation["stats"] == {"total_items": 2, "active_items": 2, "zero_stock_items": 0}


@pytest.mark.asyncio
async def test_expiry_status_after_purchase(
    manager_client: AsyncClient,
    test_restaurant: rst_models.Restaurant,
    test_flour: inv_models.InventoryItem,
    test_butter: inv_models.InventoryItem,
):
    before = await manager_client.get("/api/v1/inv/expiry_status", params={"restaurant_id": test_restaurant.id})
    assert before.status_code == 200
    assert before.json()["counts"]["non-perishable"] == 1

    await manager_client.post(f"/api/v1/inv/items/{test_butter.id}/adjust", json={"type": "Purchase", "quantity": 5})

    after = (await manager_client.get("/api/v1/inv/expiry_status", params={"restaurant_id": test_restaurant.id})).json()
    # 유통기한이 없는 밀가루는 대상이 아닙니다.
    assert [row["name"] for row in after["items"]] == ["Butter"]
    butter = after["items"][0]
    assert butter["expiry"]["status"] == "fresh"
    assert butter["expiry"]["days_until_expiry"] == 14
    assert after["counts"]["fresh"] == 1

    expired_only = await manager_client.get(
        "/api/v1/inv/expiry_status", params={"restaurant_id": test_restaurant.id, "status": "expired"}
    )
    assert expired_only.json()["items"] == []
    assert expired_only.json()["counts"]["fresh"] == 1


@pytest.mark.asyncio
async def test_ledger_check_consistent_after_operations(
    owner_client: AsyncClient,
    manager_client: AsyncClient,
    test_restaurant: rst_models.Restaurant,
    test_restaurant_b: rst_models.Restaurant,
    test_flour: inv_models.InventoryItem,
    test_butter: inv_models.InventoryItem,
):
    await manager_client.post(f"/api/v1/inv/items/{test_flour.id}/adjust", json={"type": "Usage", "quantity": 12.5})
    await manager_client.post(f"/api/v1/inv/items/{test_butter.id}/adjust", json={"type": "Waste", "quantity": 2})
    await manager_client.post(
        "/api/v1/inv/transfers",
        json={
            "source_restaurant_id": test_restaurant.id,
            "target_restaurant_id": test_restaurant_b.id,
            "item_id": test_flour.id,
            "quantity": 7.25,
        },
    )

    response = await owner_client.get("/api/v1/inv/ledger_check")
    assert response.status_code == 200
    report = response.json()
    assert report["is_consistent"] is True
    assert report["checked_items"] == 3
    assert report["drifted_items"] == []


@pytest.mark.asyncio
async def test_ledger_check_reports_drift(
    owner_client: AsyncClient,
    db_session: AsyncSession,
    test_restaurant: rst_models.Restaurant,
    test_flour: inv_models.InventoryItem,
):
    # 원장을 거치지 않은 직접 수정은 불일치로 탐지되어야 합니다.
    test_flour.current_stock = Decimal("53")
    db_session.add(test_flour)
    await db_session.commit()

    response = await owner_client.get("/api/v1/inv/ledger_check", params={"restaurant_id": test_restaurant.id})
    report = response.json()
    assert report["is_consistent"] is False
    assert report["drifted_items"] == [
        {
            "item_id": test_flour.id,
            "restaurant_id": test_restaurant.id,
            "name": "Flour",
            "current_stock": 53.0,
            "ledger_stock": 50.0,
            "drift": 3.0,
        }
    ]


@pytest.mark.asyncio
async def test_ledger_check_owner_only(manager_client: AsyncClient, test_restaurant: rst_models.Restaurant):
    response = await manager_client.get("/api/v1/inv/ledger_check", params={"restaurant_id": test_restaurant.id})
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_verify_stock_ledger_task(
    db_session: AsyncSession, test_flour: inv_models.InventoryItem, test_butter: inv_models.InventoryItem
):
    report = await inv_tasks.verify_stock_ledger({"db": db_session})
    assert report["is_consistent"] is True
    assert report["checked_items"] == 2
