from __future__ import annotations

from fastapi.testclient import TestClient

from planning_server.server import app

client = TestClient(app)

ITEMS = [
    {"id": "T1", "dependencies": []},
    {"id": "T2", "dependencies": []},
    {"id": "T3", "dependencies": ["T1", "T2"]},
]


def _invoke(tool, args):
    resp = client.post("/mcp/invoke", json={"tool": tool, "args": args})
    assert resp.status_code == 200
    return resp.json()


def test_root_and_tool_listing():
    assert client.get("/mcp").json() == {"ok": True, "service": "mcp"}

    tools = client.get("/mcp/tools").json()["tools"]
    assert [t["name"] for t in tools] == ["schedule", "analyze_group", "scan_conflicts", "render_plan"]
    assert all(t["input_schema"]["required"] == ["items"] for t in tools)


def test_schedule_tool_returns_phases():
    data = _invoke("schedule", {"items": ITEMS})

    assert data["ok"] is True
    assert data["result"]["runnableNow"] == ["T1", "T2"]
    assert [p["items"] for p in data["result"]["phases"]] == [["T1", "T2"], ["T3"]]
    assert data["result"]["blocked"] == []


def test_analyze_group_tool_judges_selected_ids():
    items = [
        {"id": "A", "touchedFiles": [{"path": "src/pages/Home.tsx", "changeKind": "NEW"}]},
        {"id": "B", "touchedFiles": [{"path": "db/migrations/003.sql", "changeKind": "NEW"}]},
    ]

    only_a = _invoke("analyze_group", {"items": items, "group": ["A"]})
    assert only_a["result"]["allowed"] is True
    assert only_a["result"]["confidence"] == 95

    both = _invoke("analyze_group", {"items": items})
    assert both["result"]["allowed"] is False
    assert both["result"]["riskFactors"]


def test_analyze_group_rejects_unknown_ids():
    data = _invoke("analyze_group", {"items": ITEMS, "group": ["T1", "nope"]})
    assert data["ok"] is False
    assert data["error"]["type"] == "VALIDATION_ERROR"


def test_scan_conflicts_tool():
    items = [
        {"id": "A", "files": [{"path": "src/app.py", "type": "MODIFY"}]},
        {"id": "B", "files": [{"path": "src/app.py", "type": "MODIFY"}]},
        {"id": "C", "status": "done", "files": [{"path": "src/app.py", "type": "MODIFY"}]},
    ]
    data = _invoke("scan_conflicts", {"items": items})

    assert data["result"]["conflicts"] == [
        {
            "type": "file_conflict",
            "filePath": "src/app.py",
            "items": ["A", "B"],
            "severity": "high",
            "reason": "Multiple items modify the same file",
        }
    ]


def test_render_plan_modes():
    full = _invoke("render_plan", {"items": ITEMS, "mode": "full"})
    assert "PHASE 2 (1 item):" in full["result"]["text"]

    nxt = _invoke("render_plan", {"items": ITEMS})
    assert "concurrently, not sequentially" in nxt["result"]["text"]

    bad = _invoke("render_plan", {"items": ITEMS, "mode": "pdf"})
    assert bad["ok"] is False
    assert bad["error"]["type"] == "VALIDATION_ERROR"


def test_render_plan_follows_the_group_verdict():
    items = [
        {"id": "A", "touchedFiles": [{"path": "src/billing/invoice.py", "changeKind": "MODIFY"}]},
        {"id": "B", "touchedFiles": [{"path": "src/search/index.py", "changeKind": "MODIFY"}]},
    ]
    full = _invoke("render_plan", {"items": items, "mode": "full"})["result"]["text"]
    assert "Execution phases: 2" in full
    assert "simultaneously" not in full

    analysis = _invoke("render_plan", {"items": items, "mode": "analysis"})["result"]["text"]
    assert analysis == '1 work item is ready to run: "A".'


def test_invalid_snapshot_is_a_validation_error():
    data = _invoke("schedule", {"items": [{"id": "A"}, {"id": "A"}]})
    assert data["ok"] is False
    assert data["error"]["type"] == "VALIDATION_ERROR"

    data = _invoke("schedule", {"items": "not-a-list"})
    assert data["error"]["type"] == "VALIDATION_ERROR"


def test_unknown_tool():
    data = _invoke("explode", {})
    assert data == {
        "ok": False,
        "error": {"type": "TOOL_NOT_FOUND", "message": "Unknown tool: explode", "details": {}},
    }
