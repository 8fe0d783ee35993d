"""HTTP flows through the FastAPI app on the in-memory backend."""
from uuid import uuid4

import pytest
from fastapi.testclient import TestClient

from studio_booking.app.main import app


@pytest.fixture(scope="module")
def client():
    return TestClient(app)


def unique(name):
    return f"{name} {uuid4().hex[:8]}"


@pytest.fixture
def room(client):
    response = client.post(
        "/rooms", json={"name": unique("Room"), "hourlyRate": "100.00", "validFrom": "2024-01-01T00:00:00"}
    )
    assert response.status_code == 201
    return response.json()


@pytest.fixture
def provider(client):
    response = client.post("/providers", json={"name": unique("Provider")})
    assert response.status_code == 201
    return response.json()


@pytest.fixture
def upgrade(client):
    response = client.post(
        "/upgrades", json={"name": unique("Towels"), "price": "20.00", "validFrom": "2024-01-01T00:00:00"}
    )
    assert response.status_code == 201
    return response.json()


def create_booking(client, provider, room, start, minutes=60, upgrades=()):
    response = client.post(
        "/bookings",
        json={
            "providerId": provider["providerId"],
            "roomId": room["roomId"],
            "startTime": start,
            "durationMinutes": minutes,
            "upgrades": [{"upgradeId": u["upgradeId"], "quantity": q} for u, q in upgrades],
        },
    )
    assert response.status_code == 201, response.text
    return response.json()


def bill(client, *bookings):
    return client.post(
        "/billings",
        json={
            "bookingIds": [b["bookingId"] for b in bookings],
            "periodStart": "2024-03-01T00:00:00",
            "periodEnd": "2024-04-01T00:00:00",
        },
    )


class TestHealth:
    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json() == {"status": "ok", "configVersion": "v1"}


class TestPricesApi:
    def test_rate_update_and_history(self, client, room):
        room_id = room["roomId"]
        response = client.post(f"/rooms/{room_id}/prices", json={"price": "120", "validFrom": "2024-02-01T00:00:00"})
        assert response.status_code == 200
        assert response.json()["price"] == "120.00"

        history = client.get(f"/rooms/{room_id}/prices").json()
        assert [p["price"] for p in history] == ["120.00", "100.00"]
        assert history[1]["validTo"] == "2024-02-01T00:00:00"

        at = client.get(f"/rooms/{room_id}/prices/at", params={"timestamp": "2024-01-15T12:00:00"})
        assert at.json()["price"] == "100.00"
        assert client.get(f"/rooms/{room_id}/prices/current").json()["price"] == "120.00"

    def test_out_of_order_update_is_400(self, client, room):
        response = client.post(
            f"/rooms/{room['roomId']}/prices", json={"price": "120", "validFrom": "2023-01-01T00:00:00"}
        )
        assert response.status_code == 400

    def test_no_price_at_timestamp_is_404(self, client, room):
        response = client.get(f"/rooms/{room['roomId']}/prices/at", params={"timestamp": "2020-01-01T00:00:00"})
        assert response.status_code == 404

    def test_tiers_and_preview(self, client, room):
        price_id = client.get(f"/rooms/{room['roomId']}/prices/current").json()["priceId"]
        base = f"/rooms/{room['roomId']}/prices/{price_id}"

        fixed = client.post(f"{base}/tiers", json={"fromMinutes": 0, "toMinutes": 30, "priceType": "FIXED", "price": "75"})
        assert fixed.status_code == 201
        hourly = client.post(f"{base}/tiers", json={"fromMinutes": 30, "priceType": "HOURLY", "price": "120"})
        assert hourly.status_code == 201
        overlap = client.post(f"{base}/tiers", json={"fromMinutes": 10, "toMinutes": 40, "priceType": "FIXED", "price": "5"})
        assert overlap.status_code == 409

        preview = client.get(f"{base}/preview").json()
        assert preview["prices"]["90"] == "195.00"
        assert preview["prices"]["15"] == "75.00"

        tier_id = fixed.json()["tierId"]
        assert client.delete(f"{base}/tiers/{tier_id}").status_code == 204
        assert len(client.get(f"{base}/tiers").json()) == 1

    def test_tier_under_foreign_room_is_404(self, client, room):
        other = client.post("/rooms", json={"name": unique("Room"), "hourlyRate": "50"}).json()
        price_id = client.get(f"/rooms/{room['roomId']}/prices/current").json()["priceId"]
        response = client.get(f"/rooms/{other['roomId']}/prices/{price_id}/tiers")
        assert response.status_code == 404

    def test_tier_of_another_room_cannot_be_changed(self, client, room):
        other = client.post("/rooms", json={"name": unique("Room"), "hourlyRate": "50"}).json()
        own_price = client.get(f"/rooms/{room['roomId']}/prices/current").json()["priceId"]
        other_price = client.get(f"/rooms/{other['roomId']}/prices/current").json()["priceId"]
        other_base = f"/rooms/{other['roomId']}/prices/{other_price}"
        tier = client.post(
            f"{other_base}/tiers", json={"fromMinutes": 0, "toMinutes": 30, "priceType": "FIXED", "price": "40"}
        ).json()

        own_base = f"/rooms/{room['roomId']}/prices/{own_price}"
        assert client.delete(f"{own_base}/tiers/{tier['tierId']}").status_code == 404
        response = client.put(
            f"{own_base}/tiers/{tier['tierId']}",
            json={"fromMinutes": 0, "toMinutes": 60, "priceType": "FIXED", "price": "1"},
        )
        assert response.status_code == 404

        [kept] = client.get(f"{other_base}/tiers").json()
        assert (kept["toMinutes"], kept["price"]) == (30, "40.00")

    def test_invalid_payload_is_422(self, client, room):
        price_id = client.get(f"/rooms/{room['roomId']}/prices/current").json()["priceId"]
        response = client.post(
            f"/rooms/{room['roomId']}/prices/{price_id}/tiers",
            json={"fromMinutes": 0, "priceType": "WEEKLY", "price": "5"},
        )
        assert response.status_code == 422


class TestBillingApi:
    def test_generate_and_fetch(self, client, room, provider, upgrade):
        booking = create_booking(client, provider, room, "2024-03-04T10:00:00", 90, upgrades=[(upgrade, 2)])

        response = bill(client, booking)
        assert response.status_code == 201
        [billing] = response.json()
        assert billing["totalAmount"] == "190.00"
        [item] = billing["items"]
        assert item["subtotalRoom"] == "150.00"
        assert item["upgrades"][0] == {
            "upgradeName": upgrade["name"],
            "quantity": 2,
            "unitPrice": "20.00",
            "totalAmount": "40.00",
        }

        fetched = client.get(f"/billings/{billing['billingId']}").json()
        assert fetched["items"][0]["bookingId"] == booking["bookingId"]
        items = client.get(f"/billings/{billing['billingId']}/items").json()
        assert len(items) == 1
        listed = client.get("/billings", params={"providerId": provider["providerId"]}).json()
        assert [b["billingId"] for b in listed] == [billing["billingId"]]

    def test_already_billed_is_409_with_ids(self, client, room, provider):
        billed = create_booking(client, provider, room, "2024-03-05T10:00:00")
        fresh = create_booking(client, provider, room, "2024-03-05T12:00:00")
        assert bill(client, billed).status_code == 201

        response = bill(client, billed, fresh)
        assert response.status_code == 409
        assert response.json()["bookingIds"] == [billed["bookingId"]]
        assert client.delete(f"/bookings/{billed['bookingId']}").status_code == 409
        assert client.delete(f"/bookings/{fresh['bookingId']}").status_code == 204

    def test_unknown_bookings_is_404(self, client):
        response = bill(client, {"bookingId": "missing"})
        assert response.status_code == 404

    def test_missing_room_price_is_500(self, client, room, provider):
        early = create_booking(client, provider, room, "2023-06-01T10:00:00")
        response = bill(client, early)
        assert response.status_code == 500
        assert "No room price" in response.json()["detail"]

    def test_unknown_billing_is_404(self, client):
        assert client.get("/billings/missing").status_code == 404


class TestCatalogApi:
    def test_duplicate_name_is_409(self, client, provider):
        response = client.post("/providers", json={"name": provider["name"].upper()})
        assert response.status_code == 409

    def test_bad_color_is_400(self, client):
        response = client.post("/providers", json={"name": unique("Provider"), "color": "blue"})
        assert response.status_code == 400

    def test_overlapping_booking_is_409(self, client, room, provider):
        create_booking(client, provider, room, "2024-03-06T10:00:00")
        response = client.post(
            "/bookings",
            json={
                "providerId": provider["providerId"],
                "roomId": room["roomId"],
                "startTime": "2024-03-06T10:30:00",
                "durationMinutes": 60,
            },
        )
        assert response.status_code == 409

    def test_delete_unused_room(self, client, room):
        assert client.delete(f"/rooms/{room['roomId']}").status_code == 204
        assert client.get(f"/rooms/{room['roomId']}").status_code == 404

    def test_delete_with_past_booking_deactivates(self, client, room, provider):
        create_booking(client, provider, room, "2024-03-07T10:00:00")
        assert client.delete(f"/rooms/{room['roomId']}").status_code == 204
        assert client.get(f"/rooms/{room['roomId']}").json()["active"] is False

    def test_delete_with_future_booking_is_409(self, client, room, provider, upgrade):
        create_booking(client, provider, room, "2099-03-07T10:00:00", upgrades=[(upgrade, 1)])
        assert client.delete(f"/rooms/{room['roomId']}").status_code == 409
        assert client.delete(f"/providers/{provider['providerId']}").status_code == 409
        assert client.delete(f"/upgrades/{upgrade['upgradeId']}").status_code == 409


class TestBookingsApi:
    def test_repeated_upgrade_ids_add_up(self, client, room, provider, upgrade):
        booking = create_booking(client, provider, room, "2024-03-08T10:00:00", upgrades=[(upgrade, 1), (upgrade, 2)])
        assert booking["upgrades"] == [{"upgradeId": upgrade["upgradeId"], "quantity": 3}]

    def test_update_and_search(self, client, room, provider, upgrade):
        booking = create_booking(client, provider, room, "2024-03-08T10:00:00")
        response = client.put(
            f"/bookings/{booking['bookingId']}",
            json={
                "providerId": provider["providerId"],
                "roomId": room["roomId"],
                "startTime": "2024-03-08T14:00:00",
                "durationMinutes": 60,
                "clientAlias": "Mara",
                "upgrades": [{"upgradeId": upgrade["upgradeId"]}, {"upgradeId": upgrade["upgradeId"], "quantity": 2}],
            },
        )
        assert response.status_code == 200, response.text
        assert response.json()["upgrades"] == [{"upgradeId": upgrade["upgradeId"], "quantity": 3}]

        found = client.get("/bookings/search", params={"roomId": room["roomId"], "clientSearch": "mar"}).json()
        [item] = found["content"]
        assert item["bookingId"] == booking["bookingId"]
        assert item["startTime"] == "2024-03-08T14:00:00"
        assert item["status"] == "PAST"
        assert item["totalPrice"] == "160.00"
        assert item["room"]["name"] == room["name"]
        assert found["page"]["totalElements"] == 1

    def test_search_by_status(self, client, room, provider):
        create_booking(client, provider, room, "2024-03-09T10:00:00")
        future = create_booking(client, provider, room, "2099-03-09T10:00:00")
        found = client.get("/bookings/search", params={"roomId": room["roomId"], "status": "upcoming"}).json()
        assert [item["bookingId"] for item in found["content"]] == [future["bookingId"]]

    def test_unknown_status_is_400(self, client):
        assert client.get("/bookings/search", params={"status": "SOON"}).status_code == 400

    def test_billed_booking_update_is_409(self, client, room, provider):
        booking = create_booking(client, provider, room, "2024-03-10T10:00:00")
        assert bill(client, booking).status_code == 201
        response = client.put(
            f"/bookings/{booking['bookingId']}",
            json={
                "providerId": provider["providerId"],
                "roomId": room["roomId"],
                "startTime": "2024-03-10T12:00:00",
                "durationMinutes": 60,
            },
        )
        assert response.status_code == 409


class TestDurationOptionsApi:
    def test_crud_keeps_one_active_option(self, client):
        wide = client.post(
            "/duration-options",
            json={"label": "Any", "isVariable": True, "minMinutes": 1, "maxMinutes": 480, "stepMinutes": 1},
        )
        assert wide.status_code == 201
        wide_id = wide.json()["durationOptionId"]

        hour = client.post("/duration-options", json={"label": "Hour", "minutes": 60}).json()
        renamed = client.put(
            f"/duration-options/{hour['durationOptionId']}",
            json={"label": "Full hour", "minutes": 60, "sortOrder": hour["sortOrder"]},
        )
        assert renamed.json()["label"] == "Full hour"
        assert client.post("/duration-options", json={"label": "Bad", "minutes": 0}).status_code == 400

        for option in client.get("/duration-options").json():
            if option["durationOptionId"] != wide_id:
                assert client.delete(f"/duration-options/{option['durationOptionId']}").status_code == 204
        assert client.delete(f"/duration-options/{wide_id}").status_code == 409
        assert [o["durationOptionId"] for o in client.get("/duration-options").json()] == [wide_id]
        assert client.get("/duration-options/missing").status_code == 404
