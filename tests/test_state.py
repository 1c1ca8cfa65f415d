import json
import threading

import pytest

from taxcalc.data_model import IdGenerator
from taxcalc.engine.history import group_history
from taxcalc.engine.state import SessionState
from taxcalc.engine.storage import JsonKeyValueStore


def _session(tmp_path, start=1700000000.0):
    return SessionState(JsonKeyValueStore(str(tmp_path)), id_generator=IdGenerator(clock=lambda: start))


def test_fresh_session_uses_defaults(tmp_path):
    session = _session(tmp_path)

    assert session.history == []
    assert session.projects == []
    assert session.inputs.abc == 0
    assert session.inputs.income_tax_percent == 25


def test_corrupt_store_does_not_break_startup(tmp_path):
    (tmp_path / "history.json").write_text("[{broken", encoding="utf-8")
    (tmp_path / "projects.json").write_text('[{"name": "no id"}, "junk", {"id": 5, "name": "ok"}]', encoding="utf-8")

    session = _session(tmp_path)

    assert session.history == []
    assert [p.id for p in session.projects] == [5]


def test_wrongly_shaped_entries_and_bad_bytes_do_not_break_startup(tmp_path):
    (tmp_path / "history.json").write_text('[{"id": 1, "inputs": "junk", "results": []}]', encoding="utf-8")
    (tmp_path / "projects.json").write_bytes(b"[\xff\xfe]")

    session = _session(tmp_path)

    assert [entry.id for entry in session.history] == [1]
    assert session.history[0].inputs.abc == 0
    assert session.projects == []


def test_update_inputs_persists_and_recalculates(tmp_path):
    session = _session(tmp_path)

    session.update_inputs({"abc": "112000"})

    stored = json.loads((tmp_path / "inputs.json").read_text(encoding="utf-8"))
    assert stored["abc"] == 112000.0
    assert round(session.calculate().total_taxes_payable, 6) == 33000.0
    assert _session(tmp_path).inputs.abc == 112000.0


def test_save_calculation_prepends_snapshot(tmp_path):
    session = _session(tmp_path)
    session.update_inputs({"abc": 1000})
    first = session.save_calculation()
    session.update_inputs({"abc": 2000})
    second = session.save_calculation()

    assert [entry.id for entry in session.history] == [second.id, first.id]
    assert first.inputs.abc == 1000
    assert first.results.abc == 1000
    assert len(_session(tmp_path).history) == 2


def test_load_and_delete_calculation(tmp_path):
    session = _session(tmp_path)
    session.update_inputs({"abc": 5000, "projectName": "Roof"})
    entry = session.save_calculation()
    session.update_inputs({"abc": 1}, replace=True)

    loaded = session.load_calculation(str(entry.id))

    assert loaded.abc == 5000
    assert session.inputs.project_name == "Roof"
    assert session.load_calculation(123) is None
    assert session.delete_calculation(entry.id) is True
    assert session.delete_calculation(entry.id) is False
    assert session.history == []


def test_clear_history_requires_confirmation(tmp_path):
    session = _session(tmp_path)
    session.save_calculation()

    assert session.clear_history() is False
    assert len(session.history) == 1
    assert session.clear_history(confirmed=True) is True
    assert session.history == []


def test_add_project_validates_and_generates_ids(tmp_path):
    session = _session(tmp_path)

    first = session.add_project("  Bridge ")
    second = session.add_project("Road")

    assert first.name == "Bridge"
    assert second.id == first.id + 1
    assert first.created_at
    with pytest.raises(ValueError, match="required"):
        session.add_project("   ")


def test_deleting_project_leaves_calculations_unassigned(tmp_path):
    session = _session(tmp_path)
    project = session.add_project("P1")
    session.update_inputs({"abc": 1000, "projectId": project.id})
    entry = session.save_calculation()

    assert session.delete_project(project.id) is True

    reloaded = _session(tmp_path)
    assert reloaded.projects == []
    assert reloaded.history[0].id == entry.id
    assert reloaded.history[0].inputs.project_id == str(project.id)
    groups = group_history(reloaded.history, reloaded.projects)
    assert [group.name for group in groups] == ["Unassigned"]


def test_apply_snapshot_merges_and_persists(tmp_path):
    session = _session(tmp_path)
    local = session.save_calculation()
    other = _session(tmp_path / "other", start=1800000000.0)
    remote_project = other.add_project("Remote")
    remote_entry = other.save_calculation()

    counts = session.apply_snapshot(other.projects, [remote_entry, local])

    assert counts.projects_added == 1
    assert counts.calculations_added == 1
    reloaded = _session(tmp_path)
    assert [e.id for e in reloaded.history] == [local.id, remote_entry.id]
    assert [p.id for p in reloaded.projects] == [remote_project.id]


def test_concurrent_saves_and_deletes_keep_every_write(tmp_path):
    session = SessionState(JsonKeyValueStore(str(tmp_path)))
    doomed = [session.save_calculation() for _ in range(20)]

    def save_many():
        for _ in range(25):
            session.save_calculation()

    def delete_many():
        for entry in doomed:
            session.delete_calculation(entry.id)

    workers = [threading.Thread(target=save_many) for _ in range(4)] + [threading.Thread(target=delete_many)]
    for worker in workers:
        worker.start()
    for worker in workers:
        worker.join()

    assert len(session.history) == 100
    assert len({entry.id for entry in session.history}) == 100
    assert len(_session(tmp_path).history) == 100
