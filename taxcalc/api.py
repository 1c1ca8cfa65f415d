"""REST backend for the contract tax calculator."""

from __future__ import annotations

import logging
from typing import Any, Dict, Tuple

from flask import Blueprint, Flask, Response, current_app, jsonify, request

from .backup import BackupStore
from .config import Settings
from .data_model import RATE_DEFAULTS, CalculationEntry, InputTableModel, Project, TaxInputs
from .engine import JsonKeyValueStore, SessionState, derive
from .engine.history import group_history, project_summary
from .engine.report import calculation_report, history_csv, history_report, report_filename
from .logging_setup import configure_logging

logger = logging.getLogger(__name__)

INPUT_MODEL = InputTableModel()

STATUS_BY_CODE = {
    "invalid": 400,
    "unauthorized": 401,
    "not_found": 404,
    "conflict": 409,
    "busy": 409,
    "error": 500,
}

api = Blueprint("api", __name__, url_prefix="/api")


def _session() -> SessionState:
    return current_app.extensions["taxcalc.session"]


def _backups() -> BackupStore:
    return current_app.extensions["taxcalc.backups"]


def _payload() -> Dict[str, Any]:
    payload = request.get_json(silent=True)
    return payload if isinstance(payload, dict) else {}


def _extract_payload_value(payload: dict, *keys: str, default=None):
    for key in keys:
        if key in payload and payload[key] is not None:
            return payload[key]
    return default


def _is_truthy(value: Any) -> bool:
    return str(value).strip().lower() in {"1", "true", "yes", "on"}


def _backup_failure(result: Dict[str, Any]) -> Tuple[Response, int]:
    status = STATUS_BY_CODE.get(result.get("code", "error"), 500)
    return jsonify({"error": result.get("error", "Backup operation failed."), "code": result.get("code")}), status


def _history_payload() -> Dict[str, Any]:
    session = _session()
    return {
        "history": [entry.to_dict() for entry in session.history],
        "groups": [group.to_dict() for group in group_history(session.history, session.projects)],
    }


def _attachment(body: str, filename: str, mimetype: str = "text/plain") -> Response:
    return Response(
        body,
        mimetype=mimetype,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@api.after_request
def apply_cors_headers(response):
    response.headers["Access-Control-Allow-Origin"] = "*"
    response.headers["Access-Control-Allow-Methods"] = "GET,POST,DELETE,OPTIONS"
    response.headers["Access-Control-Allow-Headers"] = "Content-Type"
    return response


@api.get("/health")
def healthcheck():
    return jsonify({"status": "ok"})


@api.get("/schema")
def get_schema():
    return jsonify(
        {
            "name": INPUT_MODEL.name,
            "columns": [col.to_payload() for col in INPUT_MODEL.columns],
            "defaults": INPUT_MODEL.default_values(),
            "rateDefaults": RATE_DEFAULTS,
        }
    )


@api.post("/calculate")
def calculate():
    inputs = TaxInputs.from_dict(_payload())
    return jsonify({"inputs": inputs.to_dict(), "results": derive(inputs).to_dict()})


@api.get("/inputs")
def get_inputs():
    session = _session()
    return jsonify({"inputs": session.inputs.to_dict(), "results": session.calculate().to_dict()})


@api.post("/inputs")
def update_inputs():
    payload = _payload()
    session = _session()
    session.update_inputs(payload, replace=_is_truthy(request.args.get("replace", "false")))
    return jsonify({"inputs": session.inputs.to_dict(), "results": session.calculate().to_dict()})


@api.get("/history")
def list_history():
    return jsonify(_history_payload())


@api.post("/history")
def save_calculation():
    payload = _payload()
    session = _session()
    inputs = TaxInputs.from_dict(payload["inputs"]) if isinstance(payload.get("inputs"), dict) else None
    entry = session.save_calculation(inputs)
    return jsonify({"message": "Calculation saved successfully!", "entry": entry.to_dict(), **_history_payload()}), 201


@api.delete("/history/<entry_id>")
def delete_calculation(entry_id: str):
    if not _session().delete_calculation(entry_id):
        return jsonify({"error": "Calculation not found."}), 404
    return jsonify({"message": "Calculation deleted.", **_history_payload()})


@api.post("/history/<entry_id>/load")
def load_calculation(entry_id: str):
    session = _session()
    inputs = session.load_calculation(entry_id)
    if inputs is None:
        return jsonify({"error": "Calculation not found."}), 404
    return jsonify({"inputs": inputs.to_dict(), "results": session.calculate().to_dict()})


@api.delete("/history")
def clear_history():
    confirmed = _is_truthy(request.args.get("confirm", "")) or _is_truthy(_payload().get("confirm", ""))
    if not _session().clear_history(confirmed=confirmed):
        return jsonify({"error": "Clearing history requires confirmation."}), 400
    return jsonify({"message": "History cleared.", "history": [], "groups": []})


@api.get("/history/summary")
def history_summary():
    session = _session()
    summary = project_summary(session.history, session.projects)
    return jsonify({"summary": summary.to_dict(orient="records")})


@api.get("/projects")
def list_projects():
    return jsonify({"projects": [project.to_dict() for project in _session().projects]})


@api.post("/projects")
def add_project():
    name = str(_extract_payload_value(_payload(), "name", "projectName", default=""))
    try:
        project = _session().add_project(name)
    except ValueError as exc:
        return jsonify({"error": str(exc)}), 400
    return jsonify({"project": project.to_dict(), "projects": [p.to_dict() for p in _session().projects]}), 201


@api.delete("/projects/<project_id>")
def delete_project(project_id: str):
    session = _session()
    if not session.delete_project(project_id):
        return jsonify({"error": "Project not found."}), 404
    return jsonify(
        {
            "message": "Project deleted. Its calculations remain but are unassigned.",
            "projects": [p.to_dict() for p in session.projects],
            **_history_payload(),
        }
    )


@api.get("/backups")
def list_backups():
    result = _backups().list_backups()
    if not result["success"]:
        return _backup_failure(result)
    return jsonify({"backups": result["data"]})


@api.post("/backups/save")
def save_backup():
    payload = _payload()
    session = _session()
    result = _backups().save(
        str(_extract_payload_value(payload, "name", "backupName", default="")),
        str(payload.get("password") or ""),
        session.history,
        session.projects,
    )
    if not result["success"]:
        return _backup_failure(result)
    return jsonify(result)


@api.post("/backups/import")
def import_backup():
    payload = _payload()
    result = _backups().import_backup(
        str(_extract_payload_value(payload, "name", "backupName", default="")),
        str(payload.get("password") or ""),
    )
    if not result["success"]:
        return _backup_failure(result)

    data = result["data"]
    projects = [Project.from_dict(row) for row in data["projects"]]
    history = [CalculationEntry.from_dict(row) for row in data["history"]]
    counts = _session().apply_snapshot(projects, history)
    info = data["backupInfo"]
    message = (
        "Data imported successfully!\n"
        f"Projects added: {counts.projects_added}\n"
        f"Calculations added: {counts.calculations_added}\n"
        f"Backup: {info['name']}\n"
        f"Last updated: {info['updatedAt']}"
    )
    return jsonify({"message": message, "counts": counts.to_dict(), "backupInfo": info, **_history_payload()})


@api.delete("/backups/<backup_name>")
def delete_backup(backup_name: str):
    result = _backups().delete(backup_name, str(_payload().get("password") or ""))
    if not result["success"]:
        return _backup_failure(result)
    return jsonify(result)


@api.get("/export/calculation")
def export_calculation():
    session = _session()
    body = calculation_report(session.inputs, session.calculate())
    return _attachment(body, report_filename("Tax_Calculation"))


@api.get("/export/history")
def export_history():
    history = _session().history
    if (request.args.get("format") or "txt").lower() == "csv":
        return _attachment(history_csv(history), report_filename("Tax_History", extension="csv"), "text/csv")
    return _attachment(history_report(history), report_filename("Tax_History"))


def create_app(settings: Settings | None = None) -> Flask:
    settings = settings or Settings.from_env()
    app = Flask(__name__)
    app.config["TAXCALC_SETTINGS"] = settings
    app.extensions["taxcalc.session"] = SessionState(JsonKeyValueStore(settings.data_dir))
    app.extensions["taxcalc.backups"] = BackupStore(settings.backup_db, settings.min_password_length)
    app.register_blueprint(api)
    return app


def main() -> None:
    settings = Settings.from_env()
    configure_logging(settings.log_level)
    app = create_app(settings)
    logger.info("Serving tax calculator API on port %d", settings.port)
    app.run(debug=False, port=settings.port)


if __name__ == "__main__":
    main()
