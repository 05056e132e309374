import json

from fastapi.testclient import TestClient

from glimpse.main import app
from glimpse.models import AnalyzeRequest


TEXT = """\
<template>
  <p>{{ count }} {{ label }}</p>
</template>

<script setup>
import { ref } from 'vue'
const count = ref(0)
const label = 'x'
</script>
"""


def _client() -> TestClient:
    return TestClient(app)


def test_api_status() -> None:
    resp = _client().get("/api-status")
    assert resp.status_code == 200
    assert "running" in resp.json()["message"]


def test_analyze_returns_camel_case_result() -> None:
    client = _client()
    resp = client.post("/api/analysis", json={"documentId": "api-analyze.vue", "version": 1, "text": TEXT})

    assert resp.status_code == 200
    body = resp.json()
    assert body["status"] == "ok"
    assert body["error"] is None

    result = body["result"]
    assert [r["name"] for r in result["refRanges"]] == ["count"]
    assert [r["name"] for r in result["localStateRanges"]] == ["label"]
    assert result["refRanges"][0]["startPosition"] == {"line": 1, "character": 8}
    assert result["scriptIdentifiers"]["ref"]["count"]["definition"] == "const count = ref(0)"
    assert "label" in result["scriptIdentifiers"]["localState"]


def test_analyze_reports_stale_on_broken_edit() -> None:
    client = _client()
    client.post("/api/analysis", json={"documentId": "api-stale.vue", "version": 1, "text": TEXT})
    broken = TEXT.replace("const label = 'x'", "const = ;")

    body = client.post(
        "/api/analysis", json={"documentId": "api-stale.vue", "version": 2, "text": broken}
    ).json()

    assert body["status"] == "stale"
    assert body["error"].startswith("ScriptCompileError")
    assert [r["name"] for r in body["result"]["refRanges"]] == ["count"]


def test_hover() -> None:
    client = _client()
    payload = {"documentId": "api-hover.vue", "version": 1, "text": TEXT}

    resp = client.post("/api/analysis/hover", json={**payload, "offset": TEXT.index("count")})
    assert resp.status_code == 200
    assert resp.json()["category"] == "ref"
    assert resp.json()["label"] == "Ref"

    resp = client.post("/api/analysis/hover", json={**payload, "offset": 0})
    assert resp.status_code == 404

    resp = client.post("/api/analysis/hover", json={**payload, "offset": len(TEXT) + 1})
    assert resp.status_code == 400


def test_remove_document_and_clear_cache() -> None:
    client = _client()
    client.post("/api/analysis", json={"documentId": "api-remove.vue", "version": 1, "text": TEXT})

    resp = client.delete("/api/analysis/documents", params={"documentId": "api-remove.vue"})
    assert resp.status_code == 200
    assert resp.json() == {"removed": "api-remove.vue"}

    resp = client.delete("/api/analysis/cache")
    assert resp.json() == {"cleared": True}


def test_categories_in_priority_order() -> None:
    resp = _client().get("/api/analysis/categories", params={"icons": json.dumps({"ref": "R"})})

    assert resp.status_code == 200
    categories = resp.json()
    assert [c["key"] for c in categories][:3] == ["emits", "passthrough", "props"]
    assert [c["priority"] for c in categories] == list(range(11))
    ref = next(c for c in categories if c["key"] == "ref")
    assert ref["icon"] == "R"
    assert ref["label"] == "Ref"


def test_categories_reject_invalid_overrides() -> None:
    client = _client()
    assert client.get("/api/analysis/categories", params={"icons": "{not json"}).status_code == 400
    assert client.get("/api/analysis/categories", params={"colors": "[1]"}).status_code == 400


def test_analyze_request_accepts_wire_and_field_names() -> None:
    by_alias = AnalyzeRequest.model_validate({"documentId": "a.vue", "version": 1, "text": ""})
    by_name = AnalyzeRequest(document_id="a.vue", version=1, text="")

    assert by_alias == by_name
    assert by_alias.model_dump(by_alias=True)["documentId"] == "a.vue"
