USER_HEADERS = {"X-User-Id": "user-1"}


def _create(client, results, report_date="2025-01-01"):
    response = client.post("/api/reports", json={"report_date": report_date, "results": results}, headers=USER_HEADERS)
    assert response.status_code == 201
    return response.json()["data"]


HBA1C_HIGH = {"test_name": "HbA1c", "value": 6.1, "unit": "%", "reference_range": "4.0 - 5.6"}
GLUCOSE_OK = {"test_name": "Glucose", "value": 90, "unit": "mg/dL", "reference_range": "70 - 100"}


def test_abnormal_lists_newest_report_first(client):
    _create(client, [HBA1C_HIGH, GLUCOSE_OK], "2025-01-01")
    _create(client, [{**GLUCOSE_OK, "value": 60}], "2025-03-01")

    response = client.get("/api/biomarkers/abnormal", headers=USER_HEADERS)
    assert response.status_code == 200
    rows = response.json()
    assert [(r["test_name"], r["status"]) for r in rows] == [("Glucose", "LOW"), ("HbA1c", "HIGH")]
    assert rows[0]["report_date"] == "2025-03-01"


def test_details_include_knowledge_for_abnormal_results(client, seeded_knowledge):
    report = _create(client, [HBA1C_HIGH, GLUCOSE_OK])

    response = client.get(
        "/api/biomarkers/details",
        params={"test_name": "hba1c", "report_id": report["id"]},
        headers=USER_HEADERS,
    )
    assert response.status_code == 200
    payload = response.json()
    assert payload["biomarker"]["status"] == "HIGH"
    context = payload["knowledge_context"]
    assert context["source"] == "retrieval"
    assert "HbA1c" in context["biomarker_info"]

    normal = client.get(
        "/api/biomarkers/details",
        params={"test_name": "Glucose", "report_id": report["id"]},
        headers=USER_HEADERS,
    ).json()
    assert normal["knowledge_context"] is None


def test_details_use_sample_context_when_store_is_empty(client):
    report = _create(client, [HBA1C_HIGH])
    payload = client.get(
        "/api/biomarkers/details",
        params={"test_name": "HbA1c", "report_id": report["id"]},
        headers=USER_HEADERS,
    ).json()
    assert payload["knowledge_context"]["source"] == "sample"


def test_details_not_found(client):
    report = _create(client, [GLUCOSE_OK])
    missing_report = client.get(
        "/api/biomarkers/details", params={"test_name": "Glucose", "report_id": "nope"}, headers=USER_HEADERS
    )
    assert missing_report.status_code == 404
    missing_test = client.get(
        "/api/biomarkers/details", params={"test_name": "LDL", "report_id": report["id"]}, headers=USER_HEADERS
    )
    assert missing_test.status_code == 404
    assert missing_test.json()["message"] == "Biomarker not found in report"


def test_knowledge_query_returns_ranked_matches_from_one_namespace(client, seeded_knowledge):
    response = client.post(
        "/api/knowledge/query",
        json={"text": "how do I lower my LDL cholesterol", "namespace": "nutrition_guidelines", "top_k": 3},
    )
    assert response.status_code == 200
    matches = response.json()
    assert len(matches) == 3
    assert all(m["namespace"] == "nutrition_guidelines" for m in matches)
    assert matches[0]["id"] == "ldl_lower_diet"
    scores = [m["score"] for m in matches]
    assert scores == sorted(scores, reverse=True)


def test_knowledge_query_unknown_namespace_is_empty(client, seeded_knowledge):
    response = client.post("/api/knowledge/query", json={"text": "ldl", "namespace": "recipes"})
    assert response.status_code == 200
    assert response.json() == []
