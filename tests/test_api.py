import io

import pytest
from fastapi.testclient import TestClient
from PIL import Image

from medscan.api.routes import get_agent
from medscan.core.agent import MedicineAgent
from medscan.main import app

from conftest import FakeModel, medicine_json


@pytest.fixture
def client(service):
    app.dependency_overrides[get_agent] = lambda: MedicineAgent(service=service)
    yield TestClient(app)
    app.dependency_overrides.clear()


def _jpeg_upload():
    buffer = io.BytesIO()
    Image.new("RGB", (40, 30), (250, 250, 250)).save(buffer, format="JPEG")
    return {"file": ("box.jpg", buffer.getvalue(), "image/jpeg")}


def test_health(client):
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "ok"


def test_identify_returns_record_with_photo(client):
    response = client.post("/api/v1/identify", files=_jpeg_upload())

    body = response.json()
    assert response.status_code == 200
    assert body["success"] is True
    assert body["record"]["brandName"] == "Panadol"
    assert body["record"]["imageUrl"].startswith("data:image/jpeg;base64,")


def test_identify_reports_rejection(client, service):
    service.model = FakeModel(medicine_json(isMedicine=False, brandName=""))

    body = client.post("/api/v1/identify", files=_jpeg_upload()).json()

    assert body["success"] is False
    assert body["record"] is None
    assert "does not appear to be a medicine" in body["error"]


def test_identify_rejects_non_images(client):
    response = client.post("/api/v1/identify", files={"file": ("notes.txt", b"hello", "text/plain")})

    assert response.status_code == 400


def test_lookup(client):
    response = client.post("/api/v1/lookup", json={"name": "Panadol"})

    body = response.json()
    assert body["success"] is True
    assert body["record"]["genericName"] == "Paracetamol"
    assert body["record"]["imageUrl"] is None


def test_lookup_requires_name(client):
    assert client.post("/api/v1/lookup", json={"name": "  "}).status_code == 400


def test_suggest(client, service):
    service.model = FakeModel('["Ibuprofen", "Ibuflam"]')

    body = client.get("/api/v1/suggest", params={"q": "ibu"}).json()

    assert body == {"query": "ibu", "suggestions": ["Ibuprofen", "Ibuflam"]}
