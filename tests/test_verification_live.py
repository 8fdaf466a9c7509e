"""
Verification API Tests against a running deployment

Tests for the verification and participant endpoints:
- GET /api/verification/status - Module status
- POST /api/verification/verify-payments - Run verification
- GET /api/verification/results - Registry listing
- PUT /api/verification/verify|unverify/{participant_id} - Manual override
- POST /api/participants/{participant_id}/attend - Check-in

Requires REACT_APP_BACKEND_URL; skipped otherwise. These tests write to the
target registry, so point them at a disposable environment.
"""

import io
import os
import uuid

import pytest
import requests
from pypdf import PdfWriter

# Get BASE_URL from environment
BASE_URL = os.environ.get('REACT_APP_BACKEND_URL', '').rstrip('/')

pytestmark = pytest.mark.skipif(not BASE_URL, reason="REACT_APP_BACKEND_URL not set")


@pytest.fixture
def api_client():
    """Shared requests session."""
    return requests.Session()


@pytest.fixture
def blank_pdf():
    writer = PdfWriter()
    writer.add_blank_page(width=200, height=200)
    buffer = io.BytesIO()
    writer.write(buffer)
    return buffer.getvalue()


@pytest.fixture
def test_email():
    return f"test-{uuid.uuid4().hex[:8]}@example.com"


def run_verification(api_client, pdf_bytes, roster, amount="500"):
    return api_client.post(
        f"{BASE_URL}/api/verification/verify-payments",
        files={
            "statement_file": ("statement.pdf", pdf_bytes, "application/pdf"),
            "participants_file": ("participants.csv", roster, "text/csv"),
        },
        data={"expected_amount": amount},
    )


class TestHealth:

    def test_health(self, api_client):
        response = api_client.get(f"{BASE_URL}/api/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    def test_status(self, api_client):
        response = api_client.get(f"{BASE_URL}/api/verification/status")

        assert response.status_code == 200
        data = response.json()
        assert data["module"] == "verification"
        assert "primary" in data["extraction_strategies"]


class TestVerificationFlow:

    def test_statement_without_text(self, api_client, blank_pdf, test_email):
        roster = f"Name,Email,Phone,UTR\nLive Test,{test_email},9000000000,UTRLIVE1\n".encode("utf-8")

        response = run_verification(api_client, blank_pdf, roster)

        assert response.status_code == 200
        data = response.json()
        assert data["message"] == "No transactions found in statement"
        assert data["participants"][0]["email"] == test_email
        assert data["participants"][0]["verified"] is False

    def test_manual_override_and_attendance(self, api_client, blank_pdf, test_email):
        roster = f"Name,Email,UTR\nLive Test,{test_email},UTRLIVE2\n".encode("utf-8")
        participant_id = run_verification(api_client, blank_pdf, roster).json()["participants"][0]["id"]

        verified = api_client.put(f"{BASE_URL}/api/verification/verify/{participant_id}")
        assert verified.status_code == 200
        assert verified.json()["verified"] is True

        attended = api_client.post(f"{BASE_URL}/api/participants/{participant_id}/attend")
        assert attended.status_code == 200
        assert attended.json()["participant"]["attended"] is True

        undone = api_client.put(f"{BASE_URL}/api/verification/unverify/{participant_id}")
        assert undone.json()["participant"]["attended"] is True

        api_client.delete(f"{BASE_URL}/api/participants/{participant_id}")

    def test_search_results(self, api_client, blank_pdf, test_email):
        roster = f"Name,Email,UTR\nLive Test,{test_email},UTRLIVE3\n".encode("utf-8")
        participant_id = run_verification(api_client, blank_pdf, roster).json()["participants"][0]["id"]

        response = api_client.get(f"{BASE_URL}/api/verification/results", params={"search": test_email})

        assert response.status_code == 200
        assert [p["id"] for p in response.json()["participants"]] == [participant_id]

        api_client.delete(f"{BASE_URL}/api/participants/{participant_id}")


class TestValidation:

    def test_missing_amount(self, api_client, blank_pdf):
        response = api_client.post(
            f"{BASE_URL}/api/verification/verify-payments",
            files={
                "statement_file": ("statement.pdf", blank_pdf, "application/pdf"),
                "participants_file": ("participants.csv", b"Name,Email\n", "text/csv"),
            },
        )

        assert response.status_code == 400
        assert response.json()["detail"]["parameter"] == "expected_amount"

    def test_unknown_participant(self, api_client):
        response = api_client.put(f"{BASE_URL}/api/verification/verify/{uuid.uuid4()}")

        assert response.status_code == 404

    def test_invalid_sort(self, api_client):
        response = api_client.get(f"{BASE_URL}/api/verification/results", params={"sort_by": "password"})

        assert response.status_code == 400
