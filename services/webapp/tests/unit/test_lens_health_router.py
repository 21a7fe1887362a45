# =============================================================================
# Lens Health Router Unit Tests
# =============================================================================


def test_health_by_index_model(client, lens):
    lens.migrations.record_migration("topic_help_center", 1, 0, schema_map={})

    response = client.get("/lens-health/topic_help_center")

    assert response.status_code == 200
    data = response.json()
    assert data["title"] == "Topic Health"
    assert data["model_status"]["status"] == "ok"
    assert data["qualified_name"] == "Modules\\HelpCenter\\Topic"


def test_health_by_short_name(client, lens):
    response = client.get("/lens-health/Article")

    assert response.status_code == 200
    data = response.json()
    assert data["index_model"] == "article_help_center"
    # no base model declared
    assert data["overall"] == "critical"


def test_ambiguous_short_name(client, lens):
    response = client.get("/lens-health/Topic")

    assert response.status_code == 409
    detail = response.json()["detail"]
    assert sorted(detail["matches"]) == ["Modules\\Faq\\Topic", "Modules\\HelpCenter\\Topic"]


def test_unknown_model(client, lens):
    response = client.get("/lens-health/Ticket")
    assert response.status_code == 404


def test_service_health(client, lens):
    assert client.get("/health").json()["status"] == "healthy"
    assert client.get("/ready").json() == {"status": "ready", "services": {"mongodb": "ok"}}
