import json

from httpx import ASGITransport, AsyncClient

from portfolio_backend.config import get_settings
from portfolio_backend.main import app


async def test_health_reports_liveness(api_client) -> None:
    resp = await api_client.get("/health")
    assert resp.status_code == 200
    payload = resp.json()
    assert payload["success"] is True
    assert payload["status"] == "healthy"
    assert payload["environment"] == "test"
    assert payload["pod"] == "test-pod"
    assert payload["uptime"] >= 0


async def test_ready_reports_simulated_database_and_store_state(api_client) -> None:
    resp = await api_client.get("/ready")
    assert resp.status_code == 200
    payload = resp.json()
    assert payload["success"] is True
    assert payload["status"] == "ready"
    assert payload["database"] == {"host": "localhost", "database": "portfolio_db", "status": "simulated_connected"}
    assert payload["store"] == {"state": "defaulted", "revision": 1}


async def test_index_lists_endpoints(api_client) -> None:
    resp = await api_client.get("/")
    assert resp.status_code == 200
    payload = resp.json()
    assert payload["service"] == "Portfolio Backend"
    assert payload["endpoints"]["projects"] == "/api/projects"


async def test_list_projects_returns_envelope_with_count(api_client) -> None:
    resp = await api_client.get("/api/projects")
    assert resp.status_code == 200
    payload = resp.json()
    assert payload["success"] is True
    assert payload["count"] == 2
    assert [p["id"] for p in payload["data"]] == [1, 2]
    assert payload["pod"] == "test-pod"


async def test_get_project_by_id(api_client) -> None:
    resp = await api_client.get("/api/projects/1")
    assert resp.status_code == 200
    assert resp.json()["data"]["title"] == "Kubernetes Portfolio"


async def test_missing_project_returns_404_envelope(api_client) -> None:
    resp = await api_client.get("/api/projects/999")
    assert resp.status_code == 404
    assert resp.json() == {"success": False, "pod": "test-pod", "error": "Project not found"}


async def test_non_integer_project_id_is_a_validation_error(api_client) -> None:
    resp = await api_client.get("/api/projects/abc")
    assert resp.status_code == 400
    payload = resp.json()
    assert payload["success"] is False
    assert payload["error"]


async def test_create_project_persists_and_assigns_next_id(api_client) -> None:
    resp = await api_client.post(
        "/api/projects",
        json={
            "title": "Observability Stack",
            "description": "Prometheus and Grafana",
            "technologies": ["Prometheus", "Grafana", "Prometheus"],
            "github_url": "https://github.com/portfolio/observability",
        },
    )
    assert resp.status_code == 201
    created = resp.json()["data"]
    assert created["id"] == 3
    assert created["featured"] is False
    assert created["technologies"] == ["Prometheus", "Grafana"]

    on_disk = json.loads(get_settings().portfolio_path.read_text(encoding="utf-8"))
    assert [p["id"] for p in on_disk["projects"]] == [1, 2, 3]

    listed = (await api_client.get("/api/projects")).json()
    assert listed["count"] == 3


async def test_create_project_requires_title(api_client) -> None:
    resp = await api_client.post("/api/projects", json={"description": "no title"})
    assert resp.status_code == 400
    payload = resp.json()
    assert payload["success"] is False
    assert "title" in payload["error"]


async def test_skills_and_stats(api_client) -> None:
    skills = (await api_client.get("/api/skills")).json()
    assert skills["count"] == 5

    resp = await api_client.get("/api/stats")
    assert resp.status_code == 200
    stats = resp.json()["data"]
    assert stats["total_projects"] == 2
    assert stats["featured_projects"] == 1
    assert stats["total_skills"] == 5
    assert stats["categories"] == ["devops", "backend", "frontend", "database"]
    assert stats["runtime"]["hostname"] == "test-pod"
    assert stats["max_rss_kb"] > 0


async def test_data_save_and_read_back(api_client) -> None:
    resp = await api_client.post("/api/data/save", json={"key": "visitor-count", "value": {"count": 42}})
    assert resp.status_code == 200
    payload = resp.json()
    assert payload["success"] is True
    assert "visitor-count.json" in payload["message"]

    read = await api_client.get("/api/data/visitor-count")
    assert read.status_code == 200
    assert read.json()["data"] == {"count": 42}


async def test_data_missing_key_returns_404(api_client) -> None:
    resp = await api_client.get("/api/data/never-saved")
    assert resp.status_code == 404
    assert resp.json()["error"] == "Data not found"


async def test_data_rejects_path_like_keys(api_client) -> None:
    resp = await api_client.post("/api/data/save", json={"key": "../escape", "value": 1})
    assert resp.status_code == 400
    assert resp.json()["success"] is False

    resp = await api_client.get("/api/data/.hidden")
    assert resp.status_code == 400


async def test_storage_lists_data_and_log_directories(api_client) -> None:
    await api_client.get("/api/projects")
    await api_client.post("/api/data/save", json={"key": "notes", "value": "hello"})

    resp = await api_client.get("/api/storage")
    assert resp.status_code == 200
    directories = {d["label"]: d for d in resp.json()["data"]}
    assert set(directories) == {"data", "logs"}

    data_files = {f["name"]: f for f in directories["data"]["files"]}
    assert "portfolio.json" in data_files
    assert "kv/notes.json" in data_files
    assert data_files["kv/notes.json"]["size"] > 0

    log_files = [f["name"] for f in directories["logs"]["files"]]
    assert any(name.startswith("app-") and name.endswith(".log") for name in log_files)


async def test_logs_endpoint_returns_last_entries(api_client) -> None:
    for key in ("a", "b", "c"):
        await api_client.post("/api/data/save", json={"key": key, "value": key})

    resp = await api_client.get("/api/logs", params={"lines": 2})
    assert resp.status_code == 200
    payload = resp.json()
    assert payload["count"] == 2
    assert [e["data"]["key"] for e in payload["data"]] == ["b", "c"]
    assert payload["file"].startswith("app-")
    assert all(e["hostname"] == "test-pod" for e in payload["data"])


async def test_logs_endpoint_validates_line_count(api_client) -> None:
    resp = await api_client.get("/api/logs", params={"lines": 0})
    assert resp.status_code == 400


async def test_unknown_endpoint_uses_error_envelope(api_client) -> None:
    resp = await api_client.get("/api/nothing-here")
    assert resp.status_code == 404
    payload = resp.json()
    assert payload["success"] is False
    assert payload["pod"] == "test-pod"


async def test_unhandled_exception_returns_500_envelope(monkeypatch) -> None:
    from portfolio_backend.services.portfolio_store import PortfolioStore

    def _explode(self):
        raise RuntimeError("boom")

    monkeypatch.setattr(PortfolioStore, "list_skills", _explode)

    transport = ASGITransport(app=app, raise_app_exceptions=False)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        resp = await client.get("/api/skills")

    assert resp.status_code == 500
    assert resp.json() == {"success": False, "pod": "test-pod", "error": "Internal server error"}


async def test_create_project_recovers_after_another_writer_updates_the_file(api_client) -> None:
    from portfolio_backend.models.schemas import ProjectCreate
    from portfolio_backend.services.portfolio_store import PortfolioStore

    assert (await api_client.get("/api/projects")).json()["count"] == 2

    other_replica = PortfolioStore(get_settings().portfolio_path)
    await other_replica.load()
    await other_replica.add_project(ProjectCreate(title="from another replica"))

    first = await api_client.post("/api/projects", json={"title": "after conflict"})
    second = await api_client.post("/api/projects", json={"title": "and again"})

    assert [first.status_code, second.status_code] == [201, 201]
    assert [first.json()["data"]["id"], second.json()["data"]["id"]] == [4, 5]

    listed = (await api_client.get("/api/projects")).json()
    assert listed["count"] == 5
    assert "from another replica" in [p["title"] for p in listed["data"]]


async def test_logs_endpoint_skips_undecodable_lines(api_client) -> None:
    await api_client.post("/api/data/save", json={"key": "before", "value": 1})
    log_file = next(get_settings().log_path.glob("app-*.log"))
    with log_file.open("ab") as fh:
        fh.write(b"\xff\xfe garbage\n")
    await api_client.post("/api/data/save", json={"key": "after", "value": 2})

    resp = await api_client.get("/api/logs")
    assert resp.status_code == 200
    payload = resp.json()
    assert [e["data"]["key"] for e in payload["data"]] == ["before", "after"]


async def test_data_with_undecodable_bytes_is_a_storage_error(api_client) -> None:
    kv_dir = get_settings().kv_path
    kv_dir.mkdir(parents=True, exist_ok=True)
    (kv_dir / "bad.json").write_bytes(b"\xff\xfe")

    resp = await api_client.get("/api/data/bad")
    assert resp.status_code == 500
    payload = resp.json()
    assert payload["success"] is False
    assert "not valid UTF-8" in payload["error"]
