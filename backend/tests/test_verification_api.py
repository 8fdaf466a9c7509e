"""
Unit Tests for the Verification and Participant API

Runs the routers in a FastAPI TestClient with the registry dependency
overridden by an in-memory repository.

Tests:
- POST /api/verification/verify-payments (success, validation, read errors, 413, 500)
- GET /api/verification/results
- PUT /api/verification/verify|unverify/{participant_id}
- DELETE /api/verification/delete
- /api/participants CRUD and attendance

Run with: pytest tests/test_verification_api.py -v
"""

from unittest.mock import MagicMock, patch

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from reconciliation import reconciliation_router
from reconciliation.services.reconciliation_service import ReconciliationService
from registry import participants_router
from registry.dependencies import get_participant_repository


STATEMENT_TEXT = """12/03/2024 Received from Asha UTR No. UTR999 CREDIT ₹500.00
13/03/2024 Received from Vikram UTR No. UTR777 CREDIT ₹450.00
"""

ROSTER_CSV = (
    "Name,Email,Phone,UTR\n"
    "Asha Rao,asha@example.com,9876543210,UTR999\n"
    "Vikram Shah,vikram@example.com,9123456780,UTR777\n"
).encode("utf-8")

PDF_STUB = b"%PDF-1.4 stub"


@pytest.fixture
def client(repository):
    app = FastAPI()
    app.include_router(reconciliation_router, prefix="/api")
    app.include_router(participants_router, prefix="/api")
    app.dependency_overrides[get_participant_repository] = lambda: repository
    return TestClient(app)


def upload(client, statement=PDF_STUB, roster=ROSTER_CSV, amount="500"):
    files = {}
    if statement is not None:
        files["statement_file"] = ("statement.pdf", statement, "application/pdf")
    if roster is not None:
        files["participants_file"] = ("participants.csv", roster, "text/csv")
    return client.post(
        "/api/verification/verify-payments",
        files=files,
        data={"expected_amount": amount} if amount is not None else None,
    )


@pytest.fixture
def statement_text():
    with patch(
        "reconciliation.services.reconciliation_service.read_statement_text",
        return_value=STATEMENT_TEXT
    ):
        yield


@pytest.fixture
def verified_client(client, statement_text):
    """Client whose registry already holds one verification run."""
    assert upload(client).status_code == 200
    return client


def participant_id(client, email):
    participants = client.get("/api/participants").json()["participants"]
    return next(p["id"] for p in participants if p["email"] == email)


class TestVerifyPayments:

    def test_success(self, client, statement_text):
        response = upload(client)

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["verified_count"] == 1
        assert data["total_count"] == 2
        assert data["pending"] == 1
        assert data["extraction_strategy"] == "primary"
        assert {p["email"]: p["verified"] for p in data["participants"]} == {
            "asha@example.com": True,
            "vikram@example.com": False,
        }

    def test_rerun_is_idempotent(self, client, statement_text):
        first = upload(client).json()
        second = upload(client).json()

        assert [p["id"] for p in first["participants"]] == [p["id"] for p in second["participants"]]
        assert client.get("/api/verification/results").json()["total_count"] == 2

    def test_missing_statement(self, client):
        response = upload(client, statement=None)

        assert response.status_code == 400
        detail = response.json()["detail"]
        assert detail["error"] == "missing_parameter"
        assert detail["parameter"] == "statement_file"

    def test_missing_amount(self, client):
        response = upload(client, amount=None)

        assert response.status_code == 400
        assert response.json()["detail"]["parameter"] == "expected_amount"

    @pytest.mark.parametrize("amount", ["abc", "0", "-100"])
    def test_invalid_amount(self, client, amount):
        response = upload(client, amount=amount)

        assert response.status_code == 400
        detail = response.json()["detail"]
        assert detail["error"] == "invalid_parameter"
        assert detail["parameter"] == "expected_amount"

    def test_statement_not_pdf(self, client, repository):
        response = upload(client, statement=b"this is not a pdf")

        assert response.status_code == 400
        detail = response.json()["detail"]
        assert detail["error"] == "read_error"
        assert detail["parameter"] == "statement_file"

    def test_roster_not_utf8(self, client, statement_text):
        response = upload(client, roster=b"Name\n\xff\xfe\xfa\n")

        assert response.status_code == 400
        assert response.json()["detail"]["parameter"] == "participants_file"

    def test_upload_too_large(self, client):
        settings = MagicMock(upload_max_bytes=8)
        with patch("reconciliation.endpoints.reconciliation_api.get_settings", return_value=settings):
            response = upload(client, statement=b"%PDF-1.4 larger than eight bytes")

        assert response.status_code == 413
        assert response.json()["detail"]["parameter"] == "statement_file"

    def test_unexpected_failure(self, client):
        with patch.object(ReconciliationService, "verify_payments", side_effect=RuntimeError("boom")):
            response = upload(client)

        assert response.status_code == 500
        assert response.json()["detail"] == "Verification processing failed"

    def test_no_transactions_message(self, client):
        with patch(
            "reconciliation.services.reconciliation_service.read_statement_text",
            return_value="Opening balance ₹0"
        ):
            response = upload(client)

        assert response.status_code == 200
        assert response.json()["message"] == "No transactions found in statement"


class TestResults:

    def test_counts_and_participants(self, verified_client):
        data = verified_client.get("/api/verification/results").json()

        assert data["verified_count"] == 1
        assert data["total_count"] == 2
        assert data["pending"] == 1
        assert {p["email"] for p in data["participants"]} == {"asha@example.com", "vikram@example.com"}

    def test_filter_and_sort(self, verified_client):
        pending = verified_client.get("/api/verification/results", params={"verified": "false"}).json()
        assert [p["email"] for p in pending["participants"]] == ["vikram@example.com"]

        by_name = verified_client.get(
            "/api/verification/results", params={"sort_by": "name", "sort_order": "desc"}
        ).json()
        assert [p["name"] for p in by_name["participants"]] == ["Vikram Shah", "Asha Rao"]

    def test_search(self, verified_client):
        data = verified_client.get("/api/verification/results", params={"search": "utr777"}).json()

        assert [p["email"] for p in data["participants"]] == ["vikram@example.com"]

    def test_invalid_sort_order_without_field(self, client):
        response = client.get("/api/verification/results", params={"sort_order": "bogus"})

        assert response.status_code == 400
        assert response.json()["detail"]["parameter"] == "sort_order"

    def test_sort_order_without_field_orders_by_creation(self, verified_client):
        oldest_first = verified_client.get(
            "/api/verification/results", params={"sort_order": "asc"}
        ).json()

        assert [p["email"] for p in oldest_first["participants"]] == [
            "asha@example.com", "vikram@example.com"
        ]

    def test_invalid_sort_field(self, client):
        response = client.get("/api/verification/results", params={"sort_by": "password"})

        assert response.status_code == 400
        assert response.json()["detail"]["parameter"] == "sort_by"


class TestManualOverride:

    def test_verify_and_unverify(self, verified_client):
        vikram = participant_id(verified_client, "vikram@example.com")

        response = verified_client.put(f"/api/verification/verify/{vikram}")
        assert response.status_code == 200
        assert response.json()["verified"] is True

        response = verified_client.put(f"/api/verification/unverify/{vikram}")
        assert response.status_code == 200
        assert response.json()["verified"] is False

    def test_unverify_keeps_attendance(self, verified_client):
        asha = participant_id(verified_client, "asha@example.com")
        verified_client.post(f"/api/participants/{asha}/attend")

        data = verified_client.put(f"/api/verification/unverify/{asha}").json()

        assert data["participant"]["attended"] is True
        assert data["participant"]["verified"] is False

    @pytest.mark.parametrize("action", ["verify", "unverify"])
    def test_unknown_participant(self, client, action):
        response = client.put(f"/api/verification/{action}/does-not-exist")

        assert response.status_code == 404
        assert response.json()["detail"]["error"] == "not_found"

    def test_delete_all(self, verified_client):
        response = verified_client.delete("/api/verification/delete")

        assert response.status_code == 200
        assert response.json() == {"success": True, "deleted_count": 2}
        assert verified_client.get("/api/verification/results").json()["total_count"] == 0


class TestParticipantsApi:

    def test_create_and_get(self, client):
        response = client.post("/api/participants", json={
            "name": "Meera Nair", "phone_number": "9000000000", "email": "meera@example.com"
        })

        assert response.status_code == 201
        created = response.json()
        assert created["verified"] is False

        fetched = client.get(f"/api/participants/{created['id']}")
        assert fetched.status_code == 200
        assert fetched.json()["email"] == "meera@example.com"

    def test_duplicate_email(self, client):
        body = {"name": "Meera", "phone_number": "1", "email": "meera@example.com"}
        client.post("/api/participants", json=body)

        response = client.post("/api/participants", json=body)

        assert response.status_code == 409

    def test_invalid_email(self, client):
        response = client.post("/api/participants", json={
            "name": "Meera", "phone_number": "1", "email": "not-an-email"
        })

        assert response.status_code == 422

    def test_get_unknown(self, client):
        assert client.get("/api/participants/does-not-exist").status_code == 404

    def test_attend_is_idempotent(self, client):
        created = client.post("/api/participants", json={
            "name": "Meera", "phone_number": "1", "email": "meera@example.com"
        }).json()

        first = client.post(f"/api/participants/{created['id']}/attend").json()["participant"]
        second = client.post(f"/api/participants/{created['id']}/attend").json()["participant"]

        assert first["attended"] is True
        assert second["attended_at"] == first["attended_at"]

    def test_attend_unknown(self, client):
        assert client.post("/api/participants/does-not-exist/attend").status_code == 404

    def test_delete(self, client):
        created = client.post("/api/participants", json={
            "name": "Meera", "phone_number": "1", "email": "meera@example.com"
        }).json()

        assert client.delete(f"/api/participants/{created['id']}").status_code == 200
        assert client.delete(f"/api/participants/{created['id']}").status_code == 404

    def test_list_count(self, verified_client):
        data = verified_client.get("/api/participants", params={"attended": "false"}).json()

        assert data["count"] == 2
