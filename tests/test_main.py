from __future__ import annotations

import json

from main import main


def _write(tmp_path, data):
    path = tmp_path / "snapshot.json"
    path.write_text(json.dumps(data), encoding="utf-8")
    return str(path)


def test_next_step_is_printed(tmp_path, capsys):
    path = _write(tmp_path, [{"id": "T1"}, {"id": "T2"}, {"id": "T3", "dependencies": ["T1"]}])

    assert main([path]) == 0
    out = capsys.readouterr().out
    assert "T1" in out and "T2" in out
    assert "concurrently, not sequentially" in out


def test_full_plan_from_tasks_document(tmp_path, capsys):
    path = _write(tmp_path, {"tasks": [{"id": "T1"}, {"id": "T2", "dependencies": ["T1"]}]})

    assert main([path, "--full"]) == 0
    out = capsys.readouterr().out
    assert "PHASE 1 (1 item):" in out
    assert "PHASE 2 (1 item):" in out


def test_json_report(tmp_path, capsys):
    path = _write(tmp_path, [{"id": "T1", "dependencies": ["T2"]}, {"id": "T2", "dependencies": ["T1"]}])

    assert main([path, "--json"]) == 0
    data = json.loads(capsys.readouterr().out)
    assert data["phases"] == []
    assert [b["id"] for b in data["blocked"]] == ["T1", "T2"]


def test_analysis_mode(tmp_path, capsys):
    path = _write(tmp_path, [{"id": "T1"}])

    assert main([path, "--analysis"]) == 0
    assert '1 work item is ready to run: "T1".' in capsys.readouterr().out


def test_missing_file_and_bad_snapshot_exit_with_1(tmp_path, capsys):
    assert main([str(tmp_path / "nope.json")]) == 1

    path = _write(tmp_path, [{"id": "A"}, {"id": "A"}])
    assert main([path]) == 1
    assert "Duplicate work item id" in capsys.readouterr().err


def test_single_record_instead_of_a_document_exits_with_1(tmp_path, capsys):
    path = _write(tmp_path, {"id": "T1", "status": "pending"})

    assert main([path]) == 1
    assert "Snapshot document needs one of" in capsys.readouterr().err
