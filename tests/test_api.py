"""Tests for the HTTP API."""

from fastapi.testclient import TestClient

from object_recognition.api.app import create_app
from object_recognition.domain.priority import RecognitionMethod
from object_recognition.domain.user_ai import AiApiType
from object_recognition.services.cache import InMemoryCache

ADMIN_HEADERS = {"X-Admin-Token": "admin-token"}


def test_health(container) -> None:
    client = TestClient(create_app(container))

    response = client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_recognize_returns_canonical_result(container) -> None:
    client = TestClient(create_app(container))

    response = client.post("/recognize", content=b"image-bytes")

    assert response.status_code == 200
    result = response.json()["result"]
    assert result["name"] == "键盘"
    assert result["source"] == "FREE_API"
    assert result["category"] == "商品-数码产品"
    assert 0.0 <= result["confidence"] <= 1.0

    state = client.get("/recognition/state").json()
    assert state["state"] == "succeeded"
    assert state["result"]["id"] == result["id"]


def test_recognize_rejects_empty_body(container) -> None:
    client = TestClient(create_app(container))

    response = client.post("/recognize", content=b"")

    assert response.status_code == 400


def test_recognize_reports_exhausted_tiers(container) -> None:
    container.priority_manager.set_method_enabled(RecognitionMethod.FREE_API, False)
    client = TestClient(create_app(container))

    response = client.post("/recognize", content=b"image-bytes")

    assert response.status_code == 422
    detail = response.json()["detail"]
    assert [attempt["method"] for attempt in detail["attempts"]] == [
        "LOCAL_CLASSIFIER",
        "USER_AI",
    ]
    assert detail["attempts"][0]["reason"] == "no prediction"
    assert detail["attempts"][1]["reason"] == "not configured"

    state = client.get("/recognition/state").json()
    assert state["state"] == "failed"
    assert len(state["attempts"]) == 2

    reset = client.post("/recognition/reset").json()
    assert reset == {"state": "idle"}


def test_priority_requires_admin_token(container) -> None:
    client = TestClient(create_app(container))

    response = client.post("/priority/reset")

    assert response.status_code == 401


def test_priority_update_and_reset(container) -> None:
    client = TestClient(create_app(container))
    payload = {
        "methods": [
            {"method": "USER_AI", "enabled": True},
            {"method": "FREE_API", "enabled": False},
            {"method": "LOCAL_CLASSIFIER", "enabled": True},
        ]
    }

    response = client.put("/priority", json=payload, headers=ADMIN_HEADERS)

    assert response.status_code == 200
    assert response.json() == payload
    assert client.get("/priority").json() == payload

    reset = client.post("/priority/reset", headers=ADMIN_HEADERS)
    assert [item["method"] for item in reset.json()["methods"]] == [
        "LOCAL_CLASSIFIER",
        "FREE_API",
        "USER_AI",
    ]


def test_priority_update_rejects_duplicates(container) -> None:
    client = TestClient(create_app(container))
    payload = {
        "methods": [
            {"method": "USER_AI"},
            {"method": "USER_AI"},
            {"method": "FREE_API"},
        ]
    }

    response = client.put("/priority", json=payload, headers=ADMIN_HEADERS)

    assert response.status_code == 422
    assert "duplicate methods: USER_AI" in response.json()["detail"]


def test_quota_and_provider_status(container) -> None:
    client = TestClient(create_app(container))
    client.post("/recognize", content=b"image-bytes")

    quotas = client.get("/quotas").json()["quotas"]
    providers = client.get("/providers/status").json()["providers"]

    assert quotas[0]["provider"] == "BAIDU_API"
    assert quotas[0]["daily_used"] == 1
    assert providers[0]["name"] == "BAIDU_API"
    assert providers[0]["remaining_quota"] == 9
    assert providers[0]["is_available"]


def test_threshold_endpoint(container) -> None:
    client = TestClient(create_app(container))

    response = client.get("/recognition/threshold")

    assert response.json() == {"confidence_threshold": 0.5}


def test_threshold_update_requires_admin_and_applies(container) -> None:
    client = TestClient(create_app(container))

    denied = client.put("/recognition/threshold", json={"confidence_threshold": 0.8})
    response = client.put(
        "/recognition/threshold",
        json={"confidence_threshold": 0.8},
        headers=ADMIN_HEADERS,
    )
    out_of_range = client.put(
        "/recognition/threshold",
        json={"confidence_threshold": 1.5},
        headers=ADMIN_HEADERS,
    )

    assert denied.status_code == 401
    assert response.json() == {"confidence_threshold": 0.8}
    assert container.orchestrator.get_confidence_threshold() == 0.8
    assert out_of_range.status_code == 422
    assert client.get("/recognition/threshold").json() == {
        "confidence_threshold": 0.8
    }


def test_cache_clear_forces_a_fresh_recognition(container, kit) -> None:
    container.orchestrator.cache = InMemoryCache()
    client = TestClient(create_app(container))

    client.post("/recognize", content=b"image-bytes")
    client.post("/recognize", content=b"image-bytes")
    cleared = client.post("/recognition/cache/clear", headers=ADMIN_HEADERS)
    client.post("/recognize", content=b"image-bytes")

    assert cleared.json() == {"status": "cleared"}
    assert kit.provider_client.calls == ["BAIDU_API", "BAIDU_API"]


def test_method_toggle_and_reorder(container) -> None:
    client = TestClient(create_app(container))

    toggled = client.put(
        "/priority/methods/FREE_API", json={"enabled": False}, headers=ADMIN_HEADERS
    )
    reordered = client.put(
        "/priority/order",
        json={"methods": ["USER_AI", "FREE_API", "LOCAL_CLASSIFIER"]},
        headers=ADMIN_HEADERS,
    )

    assert {"method": "FREE_API", "enabled": False} in toggled.json()["methods"]
    assert reordered.json() == {
        "methods": [
            {"method": "USER_AI", "enabled": True},
            {"method": "FREE_API", "enabled": False},
            {"method": "LOCAL_CLASSIFIER", "enabled": True},
        ]
    }
    assert container.priority_manager.get_enabled_methods_in_order() == [
        RecognitionMethod.USER_AI,
        RecognitionMethod.LOCAL_CLASSIFIER,
    ]


def test_reorder_rejects_missing_methods(container) -> None:
    client = TestClient(create_app(container))

    response = client.put(
        "/priority/order", json={"methods": ["USER_AI"]}, headers=ADMIN_HEADERS
    )
    unknown = client.put(
        "/priority/methods/CLOUD", json={"enabled": True}, headers=ADMIN_HEADERS
    )

    assert response.status_code == 422
    assert "missing methods: FREE_API, LOCAL_CLASSIFIER" in response.json()["detail"]
    assert unknown.status_code == 422


def test_user_ai_config_lifecycle(container) -> None:
    client = TestClient(create_app(container))
    first = {
        "api_type": "OPENAI_COMPATIBLE",
        "api_key": "sk-first-secret",
        "model_name": "gpt-4o-mini",
        "name": "Primary",
    }
    second = {**first, "api_key": "sk-second-secret", "name": "Backup"}

    assert client.get("/user-ai/configs").status_code == 401
    created = client.post("/user-ai/configs", json=first, headers=ADMIN_HEADERS)
    listing = client.post("/user-ai/configs", json=second, headers=ADMIN_HEADERS)

    assert created.status_code == 201
    configs = listing.json()["configs"]
    first_id, second_id = configs[0]["id"], configs[1]["id"]
    assert listing.json()["active_config_id"] == first_id
    assert configs[0]["api_key_hint"] == "****cret"
    assert configs[0]["api_url"] == "https://api.openai.com/v1"
    assert "sk-first-secret" not in listing.text

    activated = client.post(
        f"/user-ai/configs/{second_id}/activate", headers=ADMIN_HEADERS
    )
    assert activated.json()["active_config_id"] == second_id

    updated = client.put(
        f"/user-ai/configs/{second_id}",
        json={**second, "model_name": "gpt-4o"},
        headers=ADMIN_HEADERS,
    )
    assert updated.json()["configs"][1]["model_name"] == "gpt-4o"
    assert container.user_ai_service.get_config().model_name == "gpt-4o"

    deleted = client.delete(f"/user-ai/configs/{second_id}", headers=ADMIN_HEADERS)
    assert deleted.json()["active_config_id"] == first_id
    assert [config["id"] for config in deleted.json()["configs"]] == [first_id]

    cleared = client.delete("/user-ai/configs", headers=ADMIN_HEADERS)
    assert cleared.json() == {"configs": [], "active_config_id": None}


def test_user_ai_unknown_config_is_not_found(container) -> None:
    client = TestClient(create_app(container))

    response = client.post("/user-ai/configs/missing/activate", headers=ADMIN_HEADERS)

    assert response.status_code == 404


def test_user_ai_config_validation(container) -> None:
    vision = container.user_ai_service.clients[AiApiType.OPENAI_COMPATIBLE]
    client = TestClient(create_app(container))
    payload = {
        "api_type": "OPENAI_COMPATIBLE",
        "api_key": "sk-test",
        "model_name": "gpt-4o-mini",
    }

    accepted = client.post(
        "/user-ai/configs/validate", json=payload, headers=ADMIN_HEADERS
    )
    vision.valid = False
    rejected = client.post(
        "/user-ai/configs/validate", json=payload, headers=ADMIN_HEADERS
    )
    unsupported = client.post(
        "/user-ai/configs/validate",
        json={**payload, "api_type": "GOOGLE_GEMINI"},
        headers=ADMIN_HEADERS,
    )

    assert accepted.json() == {"valid": True}
    assert rejected.json() == {"valid": False}
    assert unsupported.json() == {"valid": False}
    assert container.user_ai_service.list_configs().configs == ()
