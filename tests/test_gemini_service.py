import json

import pytest

from medscan.core.config import Config
from medscan.core.errors import BackendError, NotAMedicine, NotFound, SchemaViolation
from medscan.core.gemini_service import MEDICINE_SCHEMA, SUGGESTION_SCHEMA

from conftest import FakeModel, FakeResponse, image_part, medicine_json, run


def test_analyze_image_attaches_captured_photo(service, payload):
    record = run(service.analyze_image(payload))

    assert record.is_medicine
    assert record.brand_name == "Panadol"
    assert record.ingredients == ["Paracetamol 500 mg"]
    assert record.image_url == payload.to_data_uri()
    assert record.image_url.startswith("data:image/jpeg;base64,")

    contents, _ = service.model.calls[0]
    assert contents[0] == {"mime_type": "image/jpeg", "data": payload.data}


def test_analyze_image_rejects_non_medicine(service, payload):
    service.model = FakeModel(medicine_json(isMedicine=False, brandName=""))

    with pytest.raises(NotAMedicine) as exc:
        run(service.analyze_image(payload))
    assert "does not appear to be a medicine" in exc.value.message


def test_missing_and_null_lists_normalize_to_empty(service, payload):
    data = json.loads(medicine_json(sideEffects=None))
    del data["relatedMedicines"]
    del data["reasonsForUse"]
    service.model = FakeModel(json.dumps(data))

    record = run(service.analyze_image(payload))

    assert record.side_effects == []
    assert record.related_medicines == []
    assert record.reasons_for_use == []


def test_unparsable_response_is_schema_violation(service, payload):
    service.model = FakeModel("I am not sure what this is.")

    with pytest.raises(SchemaViolation):
        run(service.analyze_image(payload))

    debug_dir = Config.LOG_DIR / "debug"
    assert any(debug_dir.glob("*_error.json"))


def test_missing_discriminator_is_schema_violation(service, payload):
    data = json.loads(medicine_json())
    del data["isMedicine"]
    service.model = FakeModel(json.dumps(data))

    with pytest.raises(SchemaViolation):
        run(service.analyze_image(payload))


def test_blank_brand_name_for_medicine_is_schema_violation(service, payload):
    service.model = FakeModel(medicine_json(brandName="  "))

    with pytest.raises(SchemaViolation):
        run(service.analyze_image(payload))


def test_fenced_and_chatty_json_is_recovered(service, payload):
    service.model = FakeModel("```json\n" + medicine_json() + "\n```")
    assert run(service.analyze_image(payload)).brand_name == "Panadol"

    service.model = FakeModel("Here you go: " + medicine_json() + " Hope this helps!")
    assert run(service.analyze_image(payload)).brand_name == "Panadol"


def test_transport_failure_is_backend_error(service, payload):
    service.model = FakeModel(ConnectionError("connection reset"))

    with pytest.raises(BackendError):
        run(service.analyze_image(payload))


def test_blocked_response_is_backend_error(service, payload):
    service.model = FakeModel(FakeResponse(text=None))

    with pytest.raises(BackendError):
        run(service.analyze_image(payload))


def test_retries_transport_failures_when_configured(service, payload):
    service.max_retries = 1
    service.retry_backoff = 0
    service.model = FakeModel(TimeoutError("deadline exceeded"), medicine_json())

    record = run(service.analyze_image(payload))

    assert record.brand_name == "Panadol"
    assert len(service.model.calls) == 2


def test_both_record_operations_share_one_schema(service, payload):
    run(service.analyze_image(payload))
    run(service.lookup_by_name("Panadol"))

    schemas = [kwargs["generation_config"].response_schema for _, kwargs in service.model.calls]
    assert schemas == [MEDICINE_SCHEMA, MEDICINE_SCHEMA]
    assert schemas[0] is schemas[1]


def test_lookup_attaches_generated_illustration(service):
    service.image_model = FakeModel(FakeResponse(parts=[image_part(b"png-bytes")]))

    record = run(service.lookup_by_name("Panadol"))

    assert record.image_url == "data:image/png;base64,cG5nLWJ5dGVz"
    prompt, _ = service.image_model.calls[0]
    assert "Panadol" in prompt


def test_lookup_survives_illustration_failure(service):
    record = run(service.lookup_by_name("Paracetamol"))

    assert record.brand_name == "Panadol"
    assert record.image_url is None


def test_lookup_ignores_image_url_from_text_model(service):
    service.model = FakeModel(medicine_json(imageUrl="data:image/png;base64,bogus"))
    service.image_model = FakeModel(FakeResponse(parts=[]))

    record = run(service.lookup_by_name("Panadol"))

    assert record.image_url is None


def test_lookup_not_a_medicine_is_not_found(service):
    service.model = FakeModel(medicine_json(isMedicine=False, brandName=""))

    with pytest.raises(NotFound) as exc:
        run(service.lookup_by_name("Banana"))
    assert '"Banana"' in exc.value.message
    assert service.image_model.calls == []


def test_lookup_requires_a_name(service):
    with pytest.raises(ValueError):
        run(service.lookup_by_name("   "))
    assert service.model.calls == []


def test_suggest_returns_names(service):
    service.model = FakeModel('["Aspirin", " Aspirin Cardio ", ""]')

    assert run(service.suggest("asp")) == ["Aspirin", "Aspirin Cardio"]
    _, kwargs = service.model.calls[0]
    assert kwargs["generation_config"].response_schema is SUGGESTION_SCHEMA


def test_suggest_skips_short_queries(service):
    assert run(service.suggest("a")) == []
    assert run(service.suggest(" ")) == []
    assert service.model.calls == []


@pytest.mark.parametrize("response", [
    "not json at all",
    '{"names": ["Aspirin"]}',
    "[1, 2, 3]",
    ConnectionError("offline"),
])
def test_suggest_never_fails(service, response):
    service.model = FakeModel(response)

    assert run(service.suggest("asp")) == []
