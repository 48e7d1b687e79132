# config.py
from __future__ import annotations

# ---------------------------
# Tracing
# ---------------------------
PLAN_TRACE = False  # print "[PLAN] ..." lines from the Planner facade / CLI

# ---------------------------
# Snapshot normalization
# ---------------------------
STATUS_ALIASES = {
    "pending": "pending",
    "todo": "pending",
    "open": "pending",
    "": "pending",
    "in_progress": "in_progress",
    "in-progress": "in_progress",
    "doing": "in_progress",
    "active": "in_progress",
    "completed": "completed",
    "complete": "completed",
    "done": "completed",
}

# Field names a dependency descriptor may carry its target id under (first hit wins)
DEPENDENCY_ID_FIELDS = ("taskId", "task_id", "id", "dependsOn")

CHANGE_KIND_ALIASES = {
    "NEW": "NEW",
    "CREATE": "NEW",
    "MODIFY": "MODIFY",
    "TO_MODIFY": "MODIFY",
    "UPDATE": "MODIFY",
    "DELETE": "MODIFY",
}

# ---------------------------
# Worker assignment (Plan Formatter)
# ---------------------------
WORKER_CATEGORIES = (
    ("api-integration.md", ("api", "endpoint", "backend")),
    ("react-components.md", ("component", "ui", "react", "frontend")),
    ("testing-specialist.md", ("test", "tests", "spec")),
)
DEFAULT_WORKER = "fullstack.md"
AGENTS_DIR = ".claude/agents"

# ---------------------------
# Module independence
# ---------------------------
INDEPENDENT_MODULE_ROOTS = (
    "src/components",
    "src/pages",
    "tools",
    "docs",
    "test",
    "tests",
    "__tests__",
)
MODULE_DEPTH = 2

# ---------------------------
# Conflict rules (regexes, matched case-insensitively against "/"-separated paths)
# ---------------------------
DATABASE_PATTERNS = (
    r"migration",
    r"schema",
    r"database",
    r"(^|/)db(/|$)",
    r"\.sql$",
)
SHARED_PATTERNS = (
    r"(^|/)(shared|common|core|utils?|libs?)(/|$)",
)
CONFIG_PATTERNS = (
    r"config",
    r"(^|/)\.env",
    r"\.(json|ya?ml|toml|ini|cfg)$",
    r"(^|/)(requirements[^/]*\.txt|dockerfile)$",
)
API_PATTERNS = (
    r"(^|[/_.-])api([/_.-]|$)",
    r"routes?",
    r"controllers?",
    r"endpoints?",
    r"interfaces?",
    r"\.d\.ts$",
)
TEST_DOC_PATTERNS = (
    r"(^|/)(tests?|__tests__|specs?)(/|$)",
    r"(^|/)test_[^/]*$",
    r"_test\.[^/]+$",
    r"\.(test|spec)\.[^/]+$",
    r"(^|/)docs?(/|$)",
    r"\.(md|rst)$",
)

CONFIDENCE_ALL_NEW = 95
CONFIDENCE_TEST_DOC_ONLY = 85
CONFIDENCE_INDEPENDENT_MODULE = 90
CONFIDENCE_SINGLE_MODULE = 80
CONFIDENCE_INDEPENDENT_MODULES = 75
