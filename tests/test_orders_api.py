import pytest

from pizzeria.core.config import get_settings
from pizzeria.models import Role
from pizzeria.services.notifications import (
    NEW_ORDER,
    NEW_ORDER_ALERT,
    ORDER_CANCELLED,
    PREPARATION_GROUP,
    STATUS_UPDATED,
)


def order_payload(product_id, size="grande", quantity=1, **item):
    return {
        "customer": {
            "name": "João Silva",
            "phone": "(11) 99999-1111",
            "address": {"street": "Rua das Flores", "number": "123", "district": "Centro"},
        },
        "order_type": "delivery",
        "channel": "phone",
        "items": [{"product_id": product_id, "size": size, "quantity": quantity, **item}],
        "payment": {"method": "cash", "change_due": 4.10},
    }


@pytest.fixture
def staff(seed):
    """Counter, cook, driver and manager accounts with their auth headers."""
    return {
        role: seed.headers(seed.account(role))
        for role in (Role.COUNTER_STAFF, Role.COOK, Role.DRIVER, Role.MANAGER)
    }


@pytest.fixture
def pizza(seed):
    return seed.product()


def create(client, staff, pizza, **kwargs):
    response = client.post("/orders", json=order_payload(pizza.id, **kwargs), headers=staff[Role.COUNTER_STAFF])
    assert response.status_code == 201, response.text
    return response.json()["order"]


def set_status(client, headers, order_id, status):
    return client.put(f"/orders/{order_id}/status", json={"status": status}, headers=headers)


class TestCreateOrder:
    def test_prices_come_from_the_catalog(self, client, staff, pizza):
        payload = order_payload(pizza.id, crust={"name": "catupiry", "price": 0.01})

        response = client.post("/orders", json=payload, headers=staff[Role.COUNTER_STAFF])

        assert response.status_code == 201
        body = response.json()
        assert body["message"] == "Order created successfully"
        order = body["order"]
        assert order["number"] == "001"
        assert order["status"] == "awaiting_preparation"
        assert order["items"][0]["product_name"] == "Pizza Margherita"
        assert order["items"][0]["crust"] == {"name": "catupiry", "price": 5.0}
        assert order["items"][0]["price"] == 50.9
        assert order["payment"]["total"] == 50.9
        assert order["customer"]["address"]["street"] == "Rua das Flores"
        assert order["timestamps"]["preparation_started_at"] is None

    def test_numbers_increase(self, client, staff, pizza):
        first = create(client, staff, pizza)
        second = create(client, staff, pizza, quantity=2)

        assert (first["number"], second["number"]) == ("001", "002")
        assert second["payment"]["total"] == 91.8

    def test_unavailable_size_rejects_the_whole_order(self, client, staff, pizza):
        response = client.post(
            "/orders", json=order_payload(pizza.id, size="gigante"), headers=staff[Role.COUNTER_STAFF]
        )

        assert response.status_code == 400
        assert response.json()["success"] is False
        listing = client.get("/orders", headers=staff[Role.COUNTER_STAFF]).json()
        assert listing["total"] == 0

    def test_unknown_product(self, client, staff):
        response = client.post("/orders", json=order_payload(999), headers=staff[Role.COUNTER_STAFF])
        assert response.status_code == 400

    def test_empty_items_are_invalid(self, client, staff, pizza):
        payload = order_payload(pizza.id)
        payload["items"] = []

        response = client.post("/orders", json=payload, headers=staff[Role.COUNTER_STAFF])

        assert response.status_code == 400

    def test_cook_cannot_take_orders(self, client, staff, pizza):
        response = client.post("/orders", json=order_payload(pizza.id), headers=staff[Role.COOK])
        assert response.status_code == 403

    def test_anonymous_cannot_take_orders(self, client, pizza):
        assert client.post("/orders", json=order_payload(pizza.id)).status_code == 401

    def test_new_order_is_broadcast(self, client, staff, pizza, broadcaster):
        order = create(client, staff, pizza)

        assert broadcaster.events() == [NEW_ORDER]
        assert broadcaster.events(PREPARATION_GROUP) == [NEW_ORDER_ALERT]
        message, _ = broadcaster.messages[0]
        assert message["order_id"] == order["id"]
        assert message["data"]["number"] == "001"


class TestStatus:
    def test_cook_starts_preparation(self, client, staff, pizza, broadcaster):
        order = create(client, staff, pizza)

        response = set_status(client, staff[Role.COOK], order["id"], "in_preparation")

        assert response.status_code == 200
        updated = response.json()["order"]
        assert updated["status"] == "in_preparation"
        assert updated["timestamps"]["preparation_started_at"] is not None
        assert broadcaster.events() == [NEW_ORDER, STATUS_UPDATED]
        assert broadcaster.events("preparation") == [NEW_ORDER_ALERT, STATUS_UPDATED]

    def test_cook_cannot_dispatch(self, client, staff, pizza):
        order = create(client, staff, pizza)

        response = set_status(client, staff[Role.COOK], order["id"], "dispatched")

        assert response.status_code == 403
        assert response.json()["message"] == "Permission denied: update_delivery_status required"

    def test_full_lifecycle_stamps_every_phase(self, client, staff, pizza, broadcaster):
        order_id = create(client, staff, pizza)["id"]
        set_status(client, staff[Role.COOK], order_id, "in_preparation")
        set_status(client, staff[Role.COOK], order_id, "ready")
        set_status(client, staff[Role.DRIVER], order_id, "dispatched")
        response = set_status(client, staff[Role.DRIVER], order_id, "delivered")

        timestamps = response.json()["order"]["timestamps"]
        assert all(timestamps[field] for field in (
            "preparation_started_at", "preparation_finished_at", "dispatched_at", "delivered_at"
        ))
        assert broadcaster.events("expedition") == [STATUS_UPDATED]
        assert broadcaster.events("delivery") == [STATUS_UPDATED]

    def test_status_cancelled_deactivates(self, client, staff, pizza, broadcaster):
        order_id = create(client, staff, pizza)["id"]

        response = set_status(client, staff[Role.MANAGER], order_id, "cancelled")

        assert response.json()["order"]["status"] == "cancelled"
        assert response.json()["order"]["active"] is False
        assert broadcaster.events() == [NEW_ORDER, ORDER_CANCELLED]

    def test_permissive_mode_allows_going_back(self, client, staff, pizza):
        order_id = create(client, staff, pizza)["id"]
        set_status(client, staff[Role.COOK], order_id, "ready")

        response = set_status(client, staff[Role.COOK], order_id, "in_preparation")

        assert response.status_code == 200

    def test_forward_only_mode_rejects_going_back(self, client, staff, pizza, monkeypatch):
        order_id = create(client, staff, pizza)["id"]
        set_status(client, staff[Role.COOK], order_id, "ready")
        monkeypatch.setenv("ENFORCE_FORWARD_TRANSITIONS", "true")
        get_settings.cache_clear()

        response = set_status(client, staff[Role.COOK], order_id, "in_preparation")

        assert response.status_code == 400
        assert "back" in response.json()["message"]

    def test_unknown_status_is_invalid(self, client, staff, pizza):
        order_id = create(client, staff, pizza)["id"]
        assert set_status(client, staff[Role.COOK], order_id, "burnt").status_code == 400

    def test_unknown_order(self, client, staff):
        response = set_status(client, staff[Role.COOK], 404, "ready")
        assert response.status_code == 404
        assert response.json()["message"] == "Order not found"


class TestCancelAndEdit:
    def test_delete_soft_cancels(self, client, staff, pizza):
        order_id = create(client, staff, pizza)["id"]

        response = client.delete(f"/orders/{order_id}", headers=staff[Role.MANAGER])

        assert response.status_code == 200
        assert response.json()["message"] == "Order cancelled successfully"
        listing = client.get("/orders", headers=staff[Role.MANAGER]).json()
        assert listing["orders"] == []
        archived = client.get("/orders?active=false", headers=staff[Role.MANAGER]).json()
        assert [o["id"] for o in archived["orders"]] == [order_id]
        stored = client.get(f"/orders/{order_id}", headers=staff[Role.MANAGER]).json()["order"]
        assert stored["status"] == "cancelled"

    def test_counter_staff_cannot_cancel(self, client, staff, pizza):
        order_id = create(client, staff, pizza)["id"]
        assert client.delete(f"/orders/{order_id}", headers=staff[Role.COUNTER_STAFF]).status_code == 403

    def test_edit_while_awaiting_preparation(self, client, staff, pizza):
        order_id = create(client, staff, pizza)["id"]

        response = client.put(
            f"/orders/{order_id}",
            json={"customer": {"name": "Ana Costa", "phone": "(11) 98888-2222"}, "notes": "ring twice"},
            headers=staff[Role.COUNTER_STAFF],
        )

        assert response.status_code == 200
        order = response.json()["order"]
        assert order["customer"]["name"] == "Ana Costa"
        assert order["customer"]["address"] is None
        assert order["notes"] == "ring twice"

    def test_edit_after_preparation_started_is_rejected(self, client, staff, pizza):
        order_id = create(client, staff, pizza)["id"]
        set_status(client, staff[Role.COOK], order_id, "in_preparation")

        response = client.put(f"/orders/{order_id}", json={"notes": "late"}, headers=staff[Role.COUNTER_STAFF])

        assert response.status_code == 400
        assert response.json()["message"] == "Orders can only be edited while awaiting preparation"


class TestListing:
    def test_newest_first_with_limit(self, client, staff, pizza):
        ids = [create(client, staff, pizza)["id"] for _ in range(3)]

        listing = client.get("/orders?limit=2", headers=staff[Role.COOK]).json()

        assert listing["total"] == 3
        assert [o["id"] for o in listing["orders"]] == [ids[2], ids[1]]

    def test_filter_by_status_and_type(self, client, staff, pizza):
        first = create(client, staff, pizza)["id"]
        create(client, staff, pizza)
        set_status(client, staff[Role.COOK], first, "in_preparation")

        in_preparation = client.get("/orders?status=in_preparation", headers=staff[Role.COOK]).json()
        pickups = client.get("/orders?type=pickup", headers=staff[Role.COOK]).json()

        assert [o["id"] for o in in_preparation["orders"]] == [first]
        assert pickups["total"] == 0

    def test_reversed_date_range_is_rejected(self, client, staff):
        response = client.get("/orders?date_from=2026-03-15&date_to=2026-03-14", headers=staff[Role.COOK])
        assert response.status_code == 400

    def test_listing_requires_login(self, client):
        assert client.get("/orders").status_code == 401


class TestKitchen:
    def test_sectors_split_open_orders(self, client, staff, pizza):
        waiting = create(client, staff, pizza)["id"]
        cooking = create(client, staff, pizza)["id"]
        ready = create(client, staff, pizza)["id"]
        out = create(client, staff, pizza)["id"]
        done = create(client, staff, pizza)["id"]
        set_status(client, staff[Role.COOK], cooking, "in_preparation")
        set_status(client, staff[Role.COOK], ready, "ready")
        set_status(client, staff[Role.DRIVER], out, "dispatched")
        set_status(client, staff[Role.DRIVER], done, "delivered")

        def sector(name):
            response = client.get(f"/orders/kitchen?sector={name}", headers=staff[Role.COOK])
            assert response.status_code == 200
            return [o["id"] for o in response.json()["orders"]]

        assert sector("preparation") == [waiting, cooking]
        assert sector("expedition") == [ready, out]
        assert sector("delivery") == [out]

        everything = client.get("/orders/kitchen", headers=staff[Role.COOK]).json()["orders"]
        assert [o["id"] for o in everything] == [waiting, cooking, ready, out]
        assert all(o["elapsed_minutes"] == 0 for o in everything)

    def test_unknown_sector(self, client, staff):
        assert client.get("/orders/kitchen?sector=bar", headers=staff[Role.COOK]).status_code == 400
