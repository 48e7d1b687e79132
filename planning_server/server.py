from __future__ import annotations

from fastapi import FastAPI
from pydantic import BaseModel, Field
from typing import Any, Dict, List

from planning.conflicts import analyze_group, scan_conflicts
from planning.planner import Planner
from planning.scheduler import schedule
from planning.snapshot import SnapshotError, load_snapshot

app = FastAPI(title="Phase Planner Server", version="0.1")


# ---- MCP models ----

class ToolDef(BaseModel):
    name: str
    description: str = ""
    input_schema: Dict[str, Any]


class ToolsResponse(BaseModel):
    tools: List[ToolDef]


class InvokeRequest(BaseModel):
    tool: str = Field(..., description="Server-local tool name")
    args: Dict[str, Any] = Field(default_factory=dict)


class InvokeOk(BaseModel):
    ok: bool = True
    result: Dict[str, Any]


class InvokeErr(BaseModel):
    ok: bool = False
    error: Dict[str, Any]


# ---- Tool definitions ----

ITEMS_PROPERTY = {
    "type": "array",
    "description": "Work-item snapshot: {id, status, dependencies, touchedFiles, assignedWorker}",
    "items": {"type": "object"},
}

SCHEDULE_SCHEMA = {
    "type": "object",
    "additionalProperties": False,
    "properties": {"items": ITEMS_PROPERTY},
    "required": ["items"],
}

ANALYZE_SCHEMA = {
    "type": "object",
    "additionalProperties": False,
    "properties": {
        "items": ITEMS_PROPERTY,
        "group": {"type": "array", "items": {"type": "string"}},
    },
    "required": ["items"],
}

SCAN_SCHEMA = SCHEDULE_SCHEMA

RENDER_SCHEMA = {
    "type": "object",
    "additionalProperties": False,
    "properties": {
        "items": ITEMS_PROPERTY,
        "mode": {"type": "string", "enum": ["next", "full", "analysis"]},
    },
    "required": ["items"],
}

TOOLS = [
    ToolDef(
        name="schedule",
        description="Partition pending work items into ordered concurrent phases and report blocked items.",
        input_schema=SCHEDULE_SCHEMA,
    ),
    ToolDef(
        name="analyze_group",
        description="Judge whether a group of work items can safely run at the same time.",
        input_schema=ANALYZE_SCHEMA,
    ),
    ToolDef(
        name="scan_conflicts",
        description="Find files touched by several work items where concurrent edits would collide.",
        input_schema=SCAN_SCHEMA,
    ),
    ToolDef(
        name="render_plan",
        description="Render the next step, the full phased plan, or a runnable-now analysis as text.",
        input_schema=RENDER_SCHEMA,
    ),
]


@app.get("/mcp/tools", response_model=ToolsResponse)
def list_tools() -> ToolsResponse:
    return ToolsResponse(tools=TOOLS)


@app.get("/mcp")
def mcp_root():
    return {"ok": True, "service": "mcp"}


@app.post("/mcp/invoke", response_model=InvokeOk | InvokeErr)
def invoke(req: InvokeRequest):
    tool = req.tool
    args = req.args or {}

    try:
        if tool == "schedule":
            items = load_snapshot(_items_arg(args))
            return InvokeOk(ok=True, result=schedule(items).as_dict())

        if tool == "analyze_group":
            items = load_snapshot(_items_arg(args))
            group = args.get("group")
            if group is not None:
                if not isinstance(group, list):
                    return _validation_error("Field 'group' must be a list of work item ids", args)
                by_id = {wi.id: wi for wi in items}
                unknown = [g for g in group if g not in by_id]
                if unknown:
                    return _validation_error(f"Unknown work item ids in group: {unknown}", args)
                items = tuple(by_id[g] for g in group)
            return InvokeOk(ok=True, result=analyze_group(items).as_dict())

        if tool == "scan_conflicts":
            items = load_snapshot(_items_arg(args))
            pending = [wi for wi in items if not wi.is_completed]
            return InvokeOk(ok=True, result={"conflicts": [c.as_dict() for c in scan_conflicts(pending)]})

        if tool == "render_plan":
            items = load_snapshot(_items_arg(args))
            mode = args.get("mode", "next")
            planner = Planner()
            if mode == "full":
                text = planner.plan(items).text
            elif mode == "analysis":
                text = planner.describe(items)
            elif mode == "next":
                text = planner.plan(items, full=False).text
            else:
                return _validation_error(f"Unknown render mode: {mode!r}", args)
            return InvokeOk(ok=True, result={"text": text})

        return InvokeErr(
            ok=False,
            error={
                "type": "TOOL_NOT_FOUND",
                "message": f"Unknown tool: {tool}",
                "details": {},
            },
        )

    except SnapshotError as e:
        return _validation_error(str(e), args)

    except Exception as e:
        return InvokeErr(
            ok=False,
            error={
                "type": "TOOL_ERROR",
                "message": f"Unexpected error: {e!r}",
                "details": {},
            },
        )


def _items_arg(args: Dict[str, Any]) -> List[Any]:
    items = args.get("items")
    if not isinstance(items, list):
        raise SnapshotError("Field 'items' must be a list of work item records")
    return items


def _validation_error(message: str, args: Dict[str, Any]) -> InvokeErr:
    return InvokeErr(
        ok=False,
        error={
            "type": "VALIDATION_ERROR",
            "message": message,
            "details": {"args": args},
        },
    )
