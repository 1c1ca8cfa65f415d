import pytest

from taxcalc.api import create_app
from taxcalc.config import Settings


@pytest.fixture
def app(tmp_path):
    settings = Settings(data_dir=str(tmp_path / "data"), backup_db=str(tmp_path / "remote" / "backups.sqlite"))
    return create_app(settings)


@pytest.fixture
def client(app):
    return app.test_client()


def test_health_and_schema(client):
    assert client.get("/api/health").get_json() == {"status": "ok"}

    schema = client.get("/api/schema").get_json()

    assert schema["rateDefaults"] == {"withholdingVatPercent": 5.0, "incomeTaxPercent": 25.0, "withholdingItPercent": 2.0}
    assert "abc" in [col["field"] for col in schema["columns"]]


def test_calculate_does_not_persist(client, tmp_path):
    response = client.post("/api/calculate", json={"abc": "112000"})

    body = response.get_json()
    assert response.status_code == 200
    assert body["results"]["totalTaxesPayable"] == pytest.approx(33000)
    assert body["inputs"]["withholdingVatPercent"] == 5.0
    assert not (tmp_path / "data" / "inputs.json").exists()


def test_calculate_coerces_oversized_numbers(client):
    response = client.post(
        "/api/calculate",
        data="{\"abc\": 1" + "0" * 400 + "}",
        content_type="application/json",
    )

    assert response.status_code == 200
    assert response.get_json()["results"]["abc"] == 0


def test_inputs_are_persisted_and_reloaded(client, tmp_path):
    client.post("/api/inputs", json={"abc": 112000, "projectName": "Bridge"})
    client.post("/api/inputs", json={"expensesNonVat": 100})

    body = client.get("/api/inputs").get_json()

    assert body["inputs"]["abc"] == 112000
    assert body["inputs"]["expensesNonVat"] == 100
    assert body["inputs"]["projectName"] == "Bridge"
    assert (tmp_path / "data" / "inputs.json").exists()

    replaced = client.post("/api/inputs?replace=true", json={"abc": 5}).get_json()
    assert replaced["inputs"]["projectName"] == ""


def test_history_lifecycle(client):
    client.post("/api/inputs", json={"abc": 112000})
    saved = client.post("/api/history", json={})
    assert saved.status_code == 201
    entry_id = saved.get_json()["entry"]["id"]

    other = client.post("/api/history", json={"inputs": {"abc": 5000}}).get_json()
    assert [row["id"] for row in other["history"]][1] == entry_id

    client.post("/api/inputs", json={"abc": 1})
    loaded = client.post(f"/api/history/{entry_id}/load").get_json()
    assert loaded["inputs"]["abc"] == 112000

    assert client.delete(f"/api/history/{entry_id}").status_code == 200
    assert client.delete(f"/api/history/{entry_id}").status_code == 404
    assert client.post("/api/history/123/load").status_code == 404

    assert client.delete("/api/history").status_code == 400
    cleared = client.delete("/api/history?confirm=true")
    assert cleared.status_code == 200
    assert client.get("/api/history").get_json()["history"] == []


def test_projects_and_unassigned_grouping(client):
    assert client.post("/api/projects", json={"name": "  "}).status_code == 400
    project = client.post("/api/projects", json={"name": "P1"}).get_json()["project"]
    client.post("/api/history", json={"inputs": {"abc": 1000, "projectId": project["id"]}})

    groups = client.get("/api/history").get_json()["groups"]
    assert [g["name"] for g in groups] == ["P1"]

    deleted = client.delete(f"/api/projects/{project['id']}")
    assert deleted.status_code == 200
    body = deleted.get_json()
    assert body["projects"] == []
    assert [g["name"] for g in body["groups"]] == ["Unassigned"]
    assert body["history"][0]["inputs"]["projectId"] == str(project["id"])
    assert client.delete(f"/api/projects/{project['id']}").status_code == 404


def test_history_summary(client):
    client.post("/api/history", json={"inputs": {"abc": 112000}})

    summary = client.get("/api/history/summary").get_json()["summary"]

    assert summary[0]["Project"] == "Unassigned"
    assert summary[0]["Calculations"] == 1


def test_backup_round_trip_between_sessions(tmp_path):
    remote = str(tmp_path / "remote" / "backups.sqlite")
    first = create_app(Settings(data_dir=str(tmp_path / "a"), backup_db=remote)).test_client()
    second = create_app(Settings(data_dir=str(tmp_path / "b"), backup_db=remote)).test_client()

    first.post("/api/projects", json={"name": "Bridge"})
    first.post("/api/history", json={"inputs": {"abc": 112000}})
    saved = first.post("/api/backups/save", json={"name": "office", "password": "secret1"})
    assert saved.status_code == 200
    assert saved.get_json()["isNewBackup"] is True

    assert second.post("/api/backups/import", json={"name": "office", "password": "wrong-pw"}).status_code == 401
    assert second.get("/api/history").get_json()["history"] == []

    imported = second.post("/api/backups/import", json={"name": "office", "password": "secret1"}).get_json()
    assert imported["counts"] == {"projectsAdded": 1, "calculationsAdded": 1}
    assert "Calculations added: 1" in imported["message"]

    again = second.post("/api/backups/import", json={"name": "office", "password": "secret1"}).get_json()
    assert again["counts"] == {"projectsAdded": 0, "calculationsAdded": 0}

    listed = second.get("/api/backups").get_json()["backups"]
    assert [row["name"] for row in listed] == ["office"]


def test_backup_error_statuses(client):
    assert client.post("/api/backups/save", json={"name": "x", "password": "123"}).status_code == 400
    assert client.post("/api/backups/import", json={"name": "ghost", "password": "secret1"}).status_code == 404
    client.post("/api/backups/save", json={"name": "office", "password": "secret1"})
    assert client.post("/api/backups/save", json={"name": "office", "password": "other-pw"}).status_code == 401
    assert client.delete("/api/backups/office", json={"password": "other-pw"}).status_code == 401
    assert client.delete("/api/backups/office", json={"password": "secret1"}).status_code == 200


def test_exports_are_attachments(client):
    client.post("/api/inputs", json={"abc": 112000})
    client.post("/api/history", json={})

    report = client.get("/api/export/calculation")
    history = client.get("/api/export/history")
    csv_export = client.get("/api/export/history?format=csv")

    assert report.mimetype == "text/plain"
    assert "attachment; filename=\"Tax_Calculation_" in report.headers["Content-Disposition"]
    assert "=== SUMMARY ===" in report.get_data(as_text=True)
    assert "Total Calculations: 1" in history.get_data(as_text=True)
    assert csv_export.mimetype == "text/csv"
    assert csv_export.get_data(as_text=True).startswith("id,timestamp")
