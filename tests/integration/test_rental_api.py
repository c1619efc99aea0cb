"""Integration tests for the rental API over the in-memory backend."""

import pytest
import pytest_asyncio
from dataclasses import replace
from datetime import date
from decimal import Decimal
from uuid import NAMESPACE_URL, UUID, uuid4, uuid5

from httpx import ASGITransport, AsyncClient

from src.vehicle_rental.application.services.booking_wizard import BookingDraft, WizardStep
from src.vehicle_rental.infrastructure.services import InMemoryServiceFactory, get_service_factory
from src.vehicle_rental.presentation.api.main import create_app

VEHICLES = "/api/v1/vehicles"
BOOKINGS = "/api/v1/bookings"

VEHICLE_PAYLOAD = {
    "make": "Toyota",
    "model": "Corolla",
    "year": 2023,
    "category": "ECONOMY",
    "daily_rate": "50.00",
    "seats": 5,
    "transmission": "AUTOMATIC",
    "fuel_type": "GASOLINE",
    "mileage": 12000,
    "license_plate": "ABC123",
}

CUSTOMER_PAYLOAD = {
    "first_name": "Ada",
    "last_name": "Lovelace",
    "email": "Ada@Example.com",
    "phone": "+1 555 0100",
    "drivers_license": "dl-12345",
}


class TestRentalAPI:
    """Integration tests for vehicle and booking endpoints."""

    @pytest.fixture
    def factory(self):
        return InMemoryServiceFactory(today_provider=lambda: date(2025, 6, 1))

    @pytest.fixture
    def app(self, factory):
        """Create the application wired to an in-memory factory."""
        app = create_app()
        app.dependency_overrides[get_service_factory] = lambda: factory
        return app

    @pytest_asyncio.fixture
    async def client(self, app):
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
            yield client

    async def register_vehicle(self, client, **overrides):
        response = await client.post(f"{VEHICLES}/", json={**VEHICLE_PAYLOAD, **overrides})
        assert response.status_code == 201, response.text
        return response.json()

    async def book(self, client, vehicle_id, start, end, extras=()):
        return await client.post(f"{BOOKINGS}/", json={
            "vehicle_id": vehicle_id,
            "start_date": start,
            "end_date": end,
            "extras": list(extras),
            "customer": CUSTOMER_PAYLOAD,
        })

    @pytest.mark.asyncio
    async def test_health_check(self, client):
        """Test health endpoint."""
        response = await client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    @pytest.mark.asyncio
    async def test_create_booking(self, client):
        """Test creating a booking returns the priced PENDING booking."""
        vehicle = await self.register_vehicle(client)

        response = await self.book(client, vehicle["id"], "2025-07-01", "2025-07-04", ["INSURANCE"])

        assert response.status_code == 201
        body = response.json()
        assert body["status"] == "PENDING"
        assert body["days"] == 3
        assert Decimal(str(body["total_amount"])) == Decimal("225.00")
        assert body["extras"] == ["INSURANCE"]
        assert body["customer_email"] == "ada@example.com"
        assert body["customer_id"] == str(uuid5(NAMESPACE_URL, "mailto:ada@example.com"))
        assert "X-Correlation-ID" in response.headers

    @pytest.mark.asyncio
    async def test_overlapping_booking_conflict(self, client):
        """Test overlap and same-day handover return 409."""
        vehicle = await self.register_vehicle(client)
        await self.book(client, vehicle["id"], "2025-07-01", "2025-07-04")

        overlap = await self.book(client, vehicle["id"], "2025-07-03", "2025-07-06")
        handover = await self.book(client, vehicle["id"], "2025-07-04", "2025-07-06")
        disjoint = await self.book(client, vehicle["id"], "2025-07-05", "2025-07-08")

        assert overlap.status_code == 409
        assert overlap.json()["type"] == "vehicle_unavailable"
        assert handover.status_code == 409
        assert disjoint.status_code == 201

    @pytest.mark.asyncio
    async def test_invalid_dates(self, client):
        """Test inverted and past ranges return 422."""
        vehicle = await self.register_vehicle(client)

        inverted = await self.book(client, vehicle["id"], "2025-07-04", "2025-07-01")
        past = await self.book(client, vehicle["id"], "2025-05-01", "2025-05-04")

        assert inverted.status_code == 422
        assert inverted.json()["type"] == "invalid_date_range"
        assert past.status_code == 422

    @pytest.mark.asyncio
    async def test_booking_lifecycle(self, client):
        """Test pay, pick up, return and an illegal transition afterwards."""
        vehicle = await self.register_vehicle(client)
        booking = (await self.book(client, vehicle["id"], "2025-07-01", "2025-07-04")).json()
        booking_url = f"{BOOKINGS}/{booking['id']}"

        paid = await client.post(f"{booking_url}/payment")
        assert paid.status_code == 200
        assert paid.json()["status"] == "CONFIRMED"

        active = await client.patch(f"{booking_url}/status", json={"status": "ACTIVE"})
        assert active.json()["status"] == "ACTIVE"

        fleet = await client.get(f"{VEHICLES}/{vehicle['id']}/fleet-status")
        assert fleet.json()["display_status"] == "RENTED"
        assert fleet.json()["admin_status"] == "AVAILABLE"

        completed = await client.patch(f"{booking_url}/status", json={"status": "COMPLETED"})
        assert completed.json()["status"] == "COMPLETED"

        illegal = await client.patch(f"{booking_url}/status", json={"status": "ACTIVE"})
        assert illegal.status_code == 422
        assert illegal.json()["type"] == "illegal_transition"

    @pytest.mark.asyncio
    async def test_cancel_and_rebook(self, client):
        """Test cancellation frees the dates and a second cancel conflicts."""
        vehicle = await self.register_vehicle(client)
        booking = (await self.book(client, vehicle["id"], "2025-06-01", "2025-06-05")).json()

        cancelled = await client.post(f"{BOOKINGS}/{booking['id']}/cancel")
        assert cancelled.json()["status"] == "CANCELLED"

        again = await client.post(f"{BOOKINGS}/{booking['id']}/cancel")
        assert again.status_code == 409
        assert again.json()["type"] == "already_cancelled"

        availability = await client.get(
            f"{VEHICLES}/{vehicle['id']}/availability",
            params={"start_date": "2025-06-01", "end_date": "2025-06-05"}
        )
        assert availability.json()["is_available"] is True

        rebooked = await self.book(client, vehicle["id"], "2025-06-01", "2025-06-05")
        assert rebooked.status_code == 201

    @pytest.mark.asyncio
    async def test_declined_payment(self, client, factory):
        """Test a declined payment returns 402 and keeps the booking pending."""
        vehicle = await self.register_vehicle(client)
        booking = (await self.book(client, vehicle["id"], "2025-07-01", "2025-07-04")).json()
        factory.payment_gateway.decline(UUID(booking["id"]))

        response = await client.post(f"{BOOKINGS}/{booking['id']}/payment")

        assert response.status_code == 402
        current = await client.get(f"{BOOKINGS}/{booking['id']}")
        assert current.json()["status"] == "PENDING"

    @pytest.mark.asyncio
    async def test_booking_not_found(self, client):
        """Test unknown booking returns 404."""
        response = await client.get(f"{BOOKINGS}/{uuid4()}")

        assert response.status_code == 404
        assert response.json()["type"] == "not_found"

    @pytest.mark.asyncio
    async def test_bulk_status_partial_failure(self, client):
        """Test bulk status change reports each booking."""
        vehicle = await self.register_vehicle(client)
        first = (await self.book(client, vehicle["id"], "2025-07-01", "2025-07-02")).json()
        second = (await self.book(client, vehicle["id"], "2025-07-10", "2025-07-12")).json()
        await client.post(f"{BOOKINGS}/{second['id']}/cancel")

        response = await client.post(f"{BOOKINGS}/bulk-status", json={
            "booking_ids": [first["id"], second["id"]],
            "status": "CONFIRMED"
        })

        body = response.json()
        assert response.status_code == 200
        assert body["succeeded"] == 1
        assert body["failed"] == 1
        assert body["results"][1]["error_type"] == "illegal_transition"

    @pytest.mark.asyncio
    async def test_list_bookings_by_status(self, client):
        """Test booking listing with a status filter."""
        vehicle = await self.register_vehicle(client)
        await self.book(client, vehicle["id"], "2025-07-01", "2025-07-02")
        cancelled = (await self.book(client, vehicle["id"], "2025-07-10", "2025-07-12")).json()
        await client.post(f"{BOOKINGS}/{cancelled['id']}/cancel")

        response = await client.get(f"{BOOKINGS}/", params={"status": "PENDING"})

        body = response.json()
        assert body["total"] == 1
        assert body["bookings"][0]["status"] == "PENDING"

    @pytest.mark.asyncio
    async def test_reschedule(self, client):
        """Test moving a booking reprices it."""
        vehicle = await self.register_vehicle(client)
        booking = (await self.book(client, vehicle["id"], "2025-07-01", "2025-07-04")).json()

        response = await client.patch(f"{BOOKINGS}/{booking['id']}", json={
            "start_date": "2025-07-02",
            "end_date": "2025-07-04",
            "extras": ["GPS"]
        })

        assert response.status_code == 200
        assert Decimal(str(response.json()["total_amount"])) == Decimal("120.00")

    async def start_rental(self, client, vehicle_id, start, end):
        booking = (await self.book(client, vehicle_id, start, end)).json()
        await client.post(f"{BOOKINGS}/{booking['id']}/payment")
        active = await client.patch(f"{BOOKINGS}/{booking['id']}/status", json={"status": "ACTIVE"})
        assert active.json()["status"] == "ACTIVE"
        return booking

    @pytest.mark.asyncio
    async def test_extension_preview_and_extend(self, client):
        """Test an active rental can be quoted and pushed back to a free return day."""
        vehicle = await self.register_vehicle(client)
        booking = await self.start_rental(client, vehicle["id"], "2025-07-01", "2025-07-04")
        booking_url = f"{BOOKINGS}/{booking['id']}"

        preview = await client.post(f"{booking_url}/extend/preview", json={"new_end_date": "2025-07-06"})
        assert preview.status_code == 200
        quote = preview.json()
        assert quote["available"] is True
        assert quote["additional_days"] == 2
        assert Decimal(str(quote["additional_amount"])) == Decimal("100.00")
        assert Decimal(str(quote["new_total"])) == Decimal("250.00")

        extended = await client.post(f"{booking_url}/extend", json={"new_end_date": "2025-07-06"})
        assert extended.status_code == 200
        assert extended.json()["end_date"] == "2025-07-06"
        assert Decimal(str(extended.json()["total_amount"])) == Decimal("250.00")

    @pytest.mark.asyncio
    async def test_extension_conflicts(self, client):
        """Test extending into the next booking or extending a pending booking returns 409."""
        vehicle = await self.register_vehicle(client)
        booking = await self.start_rental(client, vehicle["id"], "2025-07-01", "2025-07-04")
        pending = (await self.book(client, vehicle["id"], "2025-07-08", "2025-07-10")).json()

        preview = await client.post(
            f"{BOOKINGS}/{booking['id']}/extend/preview", json={"new_end_date": "2025-07-09"}
        )
        blocked = await client.post(f"{BOOKINGS}/{booking['id']}/extend", json={"new_end_date": "2025-07-09"})
        not_active = await client.post(f"{BOOKINGS}/{pending['id']}/extend", json={"new_end_date": "2025-07-12"})

        assert preview.json()["available"] is False
        assert blocked.status_code == 409
        assert blocked.json()["type"] == "vehicle_unavailable"
        assert not_active.status_code == 409
        assert not_active.json()["type"] == "booking_not_modifiable"

    @pytest.mark.asyncio
    async def test_draft_documents(self, client):
        """Test license sides are tracked per draft reference."""
        documents_url = f"{BOOKINGS}/drafts/{uuid4()}/documents"

        front = await client.put(f"{documents_url}/license_front")
        back = await client.put(f"{documents_url}/license_back")
        unknown = await client.put(f"{documents_url}/passport")
        removed = await client.delete(f"{documents_url}/license_back")

        assert front.json()["complete"] is False
        assert back.json()["complete"] is True
        assert unknown.status_code == 400
        assert removed.json()["complete"] is False
        assert (await client.get(documents_url)).json()["complete"] is False

    @pytest.mark.asyncio
    async def test_wizard_uses_uploaded_documents(self, client, factory):
        """Test uploads made through the API satisfy the wizard's document step."""
        vehicle = await self.register_vehicle(client)
        draft = BookingDraft.start(UUID(vehicle["id"]), uuid4())
        draft = draft.with_dates(date(2025, 7, 1), date(2025, 7, 4)).with_customer(**CUSTOMER_PAYLOAD)
        draft = replace(
            draft.mark_document_uploaded("license_front").mark_document_uploaded("license_back"),
            step=WizardStep.DOCUMENTS
        )

        async with factory.get_booking_wizard() as wizard:
            blocked = await wizard.advance(draft)
        assert not blocked.advanced
        assert "documents" in blocked.errors

        for side in ("license_front", "license_back"):
            await client.put(f"{BOOKINGS}/drafts/{draft.reference_id}/documents/{side}")
        async with factory.get_booking_wizard() as wizard:
            outcome = await wizard.advance(draft)

        assert outcome.advanced, outcome.errors
        assert outcome.draft.step == WizardStep.PAYMENT
        held = await client.get(f"{BOOKINGS}/{outcome.draft.booking_id}")
        assert held.json()["status"] == "PENDING"


class TestVehicleAPI:
    """Integration tests for fleet management endpoints."""

    @pytest.fixture
    def app(self):
        app = create_app()
        factory = InMemoryServiceFactory(today_provider=lambda: date(2025, 6, 1))
        app.dependency_overrides[get_service_factory] = lambda: factory
        return app

    @pytest_asyncio.fixture
    async def client(self, app):
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
            yield client

    async def register_vehicle(self, client, **overrides):
        response = await client.post(f"{VEHICLES}/", json={**VEHICLE_PAYLOAD, **overrides})
        assert response.status_code == 201, response.text
        return response.json()

    @pytest.mark.asyncio
    async def test_register_and_get(self, client):
        """Test registering and reading a vehicle."""
        vehicle = await self.register_vehicle(client, license_plate="abc 123")

        response = await client.get(f"{VEHICLES}/{vehicle['id']}")

        assert response.status_code == 200
        assert response.json()["license_plate"] == "ABC 123"
        assert response.json()["display_name"] == "2023 Toyota Corolla"

    @pytest.mark.asyncio
    async def test_duplicate_plate(self, client):
        """Test duplicate plates return 400."""
        await self.register_vehicle(client)

        response = await client.post(f"{VEHICLES}/", json=VEHICLE_PAYLOAD)

        assert response.status_code == 400
        assert "already registered" in response.json()["detail"]

    @pytest.mark.asyncio
    async def test_list_with_filters(self, client):
        """Test listing with category filter."""
        await self.register_vehicle(client)
        await self.register_vehicle(client, license_plate="SUV001", category="SUV", daily_rate="90.00")

        response = await client.get(f"{VEHICLES}/", params={"category": "SUV"})

        body = response.json()
        assert body["total"] == 1
        assert body["vehicles"][0]["license_plate"] == "SUV001"

    @pytest.mark.asyncio
    async def test_update_vehicle(self, client):
        """Test editing catalog attributes."""
        vehicle = await self.register_vehicle(client)

        response = await client.put(f"{VEHICLES}/{vehicle['id']}", json={"daily_rate": "55.00", "color": "Red"})

        assert response.status_code == 200
        assert Decimal(str(response.json()["daily_rate"])) == Decimal("55.00")
        assert response.json()["color"] == "Red"

    @pytest.mark.asyncio
    async def test_delete_guards(self, client):
        """Test delete is refused with bookings and allowed without."""
        booked = await self.register_vehicle(client)
        spare = await self.register_vehicle(client, license_plate="SPARE1")
        await client.post(f"{BOOKINGS}/", json={
            "vehicle_id": booked["id"],
            "start_date": "2025-07-01",
            "end_date": "2025-07-03",
            "customer": CUSTOMER_PAYLOAD,
        })

        refused = await client.delete(f"{VEHICLES}/{booked['id']}")
        flags = await client.get(f"{VEHICLES}/{booked['id']}/booking-flags")
        deleted = await client.delete(f"{VEHICLES}/{spare['id']}")

        assert refused.status_code == 409
        assert refused.json()["type"] == "vehicle_has_active_bookings"
        assert flags.json()["has_non_terminal_bookings"] is True
        assert deleted.status_code == 204
        assert (await client.get(f"{VEHICLES}/{spare['id']}")).status_code == 404

    @pytest.mark.asyncio
    async def test_maintenance_cycle(self, client):
        """Test maintenance blocks bookings until completed."""
        vehicle = await self.register_vehicle(client)

        scheduled = await client.post(f"{VEHICLES}/{vehicle['id']}/maintenance", json={
            "scheduled_date": "2025-06-10",
            "maintenance_type": "OIL_CHANGE"
        })
        assert scheduled.status_code == 201

        availability = await client.get(
            f"{VEHICLES}/{vehicle['id']}/availability",
            params={"start_date": "2025-07-01", "end_date": "2025-07-03"}
        )
        assert availability.json()["is_available"] is False
        assert availability.json()["vehicle_status"] == "MAINTENANCE"

        completed = await client.post(f"{VEHICLES}/{vehicle['id']}/maintenance/complete")
        assert completed.json()["status"] == "AVAILABLE"

        history = await client.get(f"{VEHICLES}/{vehicle['id']}/maintenance")
        assert [item["status"] for item in history.json()] == ["COMPLETED"]

    @pytest.mark.asyncio
    async def test_retirement_toggle(self, client):
        """Test retiring a vehicle and bringing it back."""
        vehicle = await self.register_vehicle(client)

        retired = await client.post(f"{VEHICLES}/{vehicle['id']}/retirement")
        restored = await client.post(f"{VEHICLES}/{vehicle['id']}/retirement")

        assert retired.json()["status"] == "RETIRED"
        assert restored.json()["status"] == "AVAILABLE"

    @pytest.mark.asyncio
    async def test_bulk_availability(self, client):
        """Test checking several vehicles skips unknown IDs."""
        free = await self.register_vehicle(client)
        retired = await self.register_vehicle(client, license_plate="OLD001", status="RETIRED")

        response = await client.post(f"{VEHICLES}/availability-bulk", json={
            "vehicle_ids": [free["id"], retired["id"], str(uuid4())],
            "start_date": "2025-07-01",
            "end_date": "2025-07-03"
        })

        body = response.json()
        assert response.status_code == 200
        assert len(body["results"]) == 2
        assert body["available_count"] == 1

    @pytest.mark.asyncio
    async def test_bulk_vehicle_status(self, client):
        """Test bulk status override."""
        first = await self.register_vehicle(client)
        second = await self.register_vehicle(client, license_plate="XYZ789")

        response = await client.post(f"{VEHICLES}/bulk-status", json={
            "vehicle_ids": [first["id"], second["id"]],
            "status": "MAINTENANCE"
        })

        assert response.json()["succeeded"] == 2
