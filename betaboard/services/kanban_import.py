"""
Kanban importer: CSV in, in-memory board, Excel out.

Imported rows are never persisted. The browser owns the board state and posts
it back with each action; everything here is a pure function of that state.
"""
import copy
import io
import re
import time
from datetime import datetime, timezone
from openpyxl import Workbook
from openpyxl.utils import get_column_letter

from betaboard.models.feedback import BOARD_COLUMNS, DEFAULT_FEEDBACK_STATUS

REQUIRED_HEADERS = ("type", "module", "title", "description", "status")

SAMPLE_ROWS = [
    ["Type", "Module", "Title", "Description", "Status"],
    ["bug_report", "Authentication", "Login fails with special characters",
     "Users cannot login when password contains special characters like @#$", "to_discuss"],
    ["suggestion", "UI/UX", "Add dark mode toggle",
     "Users would like a dark mode option in the settings menu", "low"],
    ["general_comment", "Performance", "Page loads slowly",
     "The dashboard takes more than 5 seconds to load on mobile devices", "high"],
    ["bug_report", "Database", "Data not saving correctly",
     "User profile changes are not being persisted to the database", "to_implement"],
]
SAMPLE_FILENAME = "sample-feedback.csv"
EXPORT_FILENAME = "Imported-Feedback-Kanban.xlsx"

MAX_COLUMN_WIDTH = 50
_SHEET_TITLE_BAD = re.compile(r"[\[\]\:\*\?\/\\]")


class CsvImportError(ValueError):
    """User-facing import failure; str(e) is shown as-is."""


def default_columns() -> list[dict]:
    return [{"id": cid, "title": title} for cid, title in BOARD_COLUMNS]


def _map_type(value: str) -> str:
    if "bug" in value:
        return "bug_report"
    if "suggestion" in value:
        return "suggestion"
    return "general_comment"


def _map_status(value: str) -> str:
    if "low" in value:
        return "low"
    if "high" in value:
        return "high"
    if "implement" in value:
        return "to_implement"
    return DEFAULT_FEEDBACK_STATUS


def _cell(value: str) -> str:
    value = value.strip()
    if value.startswith('"'):
        value = value[1:]
    if value.endswith('"'):
        value = value[:-1]
    return value


def parse_feedback_csv(filename: str, content_type: str, text: str) -> list[dict]:
    """
    Parse an uploaded feedback CSV into board rows.

    Splits on plain commas (no quoted-comma support). Header columns are
    located by case-insensitive substring, so "Feedback Type" matches "type".
    """
    if content_type != "text/csv" and not (filename or "").endswith(".csv"):
        raise CsvImportError("Please select a valid CSV file.")

    lines = [line for line in (text or "").split("\n") if line.strip()]
    if len(lines) < 2:
        raise CsvImportError("CSV file must contain at least a header row and one data row.")

    headers = [h.strip().lower() for h in lines[0].split(",")]
    missing = [req for req in REQUIRED_HEADERS if not any(req in h for h in headers)]
    if missing:
        raise CsvImportError(f"Missing required columns: {', '.join(missing)}")

    index = {req: next(i for i, h in enumerate(headers) if req in h) for req in REQUIRED_HEADERS}

    stamp = int(time.time() * 1000)
    created_at = datetime.now(timezone.utc).isoformat()
    rows = []
    for lineno, line in enumerate(lines[1:], start=1):
        values = [_cell(v) for v in line.split(",")]
        if len(values) < len(REQUIRED_HEADERS):
            continue

        def _get(name):
            i = index[name]
            return values[i] if i < len(values) else ""

        rows.append({
            "id": f"imported-{stamp}-{lineno}",
            "type": _map_type(_get("type").lower()),
            "module": _get("module") or "Unknown",
            "title": _get("title") or "Untitled",
            "description": _get("description") or "No description",
            "status": _map_status(_get("status").lower()),
            "development_estimate": 0,
            "created_at": created_at,
        })

    if not rows:
        raise CsvImportError("No valid feedback entries found in the CSV file.")
    return rows


def sample_csv() -> str:
    return "\n".join(",".join(f'"{cell}"' for cell in row) for row in SAMPLE_ROWS)


class ImportedBoard:
    """Columns plus imported rows. Every mutator returns self for chaining."""

    def __init__(self, columns=None, items=None):
        self.columns = copy.deepcopy(columns) if columns else default_columns()
        self.items = copy.deepcopy(items) if items else []

    @classmethod
    def from_dict(cls, data: dict) -> "ImportedBoard":
        data = data or {}
        columns = [
            {"id": str(c.get("id")), "title": str(c.get("title") or c.get("id"))}
            for c in (data.get("columns") or [])
            if isinstance(c, dict) and c.get("id")
        ]
        items = [i for i in (data.get("items") or []) if isinstance(i, dict) and i.get("id")]
        return cls(columns or None, items)

    def to_dict(self) -> dict:
        return {
            "columns": [
                {**c, "count": len(self.items_in(c["id"]))} for c in self.columns
            ],
            "items": self.items,
            "total_hours": self.total_hours(),
        }

    def _column_ids(self):
        return [c["id"] for c in self.columns]

    def _item(self, item_id):
        return next((i for i in self.items if i.get("id") == item_id), None)

    def items_in(self, column_id: str) -> list[dict]:
        return [i for i in self.items if i.get("status") == column_id]

    def move(self, item_id: str, status: str) -> "ImportedBoard":
        item = self._item(item_id)
        if item is not None and status in self._column_ids() and item.get("status") != status:
            item["status"] = status
        return self

    def set_estimate(self, item_id: str, hours) -> "ImportedBoard":
        item = self._item(item_id)
        if item is not None:
            try:
                item["development_estimate"] = max(0, int(hours))
            except (TypeError, ValueError):
                pass
        return self

    def rename_column(self, column_id: str, title: str) -> "ImportedBoard":
        title = (title or "").strip()
        for col in self.columns:
            if col["id"] == column_id and title:
                col["title"] = title
        return self

    def delete_column(self, column_id: str) -> "ImportedBoard":
        if column_id not in self._column_ids():
            return self
        for item in self.items:
            if item.get("status") == column_id:
                item["status"] = DEFAULT_FEEDBACK_STATUS
        self.columns = [c for c in self.columns if c["id"] != column_id]
        return self

    def total_hours(self) -> int:
        return sum(int(i.get("development_estimate") or 0) for i in self.items_in("to_implement"))

    def apply(self, action: str, payload: dict) -> "ImportedBoard":
        """Dispatch one client action; unknown actions raise ValueError."""
        payload = payload or {}
        if action == "move":
            return self.move(payload.get("item_id"), payload.get("status"))
        if action == "set_estimate":
            return self.set_estimate(payload.get("item_id"), payload.get("estimate"))
        if action == "rename_column":
            return self.rename_column(payload.get("column_id"), payload.get("title"))
        if action == "delete_column":
            return self.delete_column(payload.get("column_id"))
        if action == "reset":
            self.columns, self.items = default_columns(), []
            return self
        raise ValueError(f"Unknown action: {action}")


def _export_date(value) -> str:
    if not value:
        return ""
    try:
        return datetime.fromisoformat(str(value).replace("Z", "+00:00")).strftime("%Y-%m-%d")
    except ValueError:
        return str(value)


def _sheet_title(title: str, used: set) -> str:
    base = _SHEET_TITLE_BAD.sub(" ", title or "Sheet").strip()[:31] or "Sheet"
    candidate, n = base, 2
    while candidate.lower() in used:
        suffix = f" ({n})"
        candidate = base[: 31 - len(suffix)] + suffix
        n += 1
    used.add(candidate.lower())
    return candidate


def export_workbook(board: ImportedBoard) -> io.BytesIO:
    """One sheet per board column; the To Implement sheet carries hour estimates."""
    output = io.BytesIO()
    wb = Workbook()
    wb.remove(wb.active)
    used_titles = set()

    for column in board.columns:
        with_estimate = column["id"] == "to_implement"
        headers = ["Type", "Module", "Title", "Description", "Status", "Created Date"]
        if with_estimate:
            headers.insert(-1, "Development Estimate")

        rows = []
        for item in board.items_in(column["id"]):
            row = [
                str(item.get("type", "")).replace("_", " "),
                item.get("module", ""),
                item.get("title", ""),
                item.get("description", ""),
                str(item.get("status", "")).replace("_", " "),
                _export_date(item.get("created_at")),
            ]
            if with_estimate:
                row.insert(-1, f"{item.get('development_estimate') or 0} hours")
            rows.append(row)

        ws = wb.create_sheet(_sheet_title(column["title"], used_titles))
        ws.append(headers)
        for r in rows:
            ws.append(r)

        for idx, header in enumerate(headers, start=1):
            longest = max([len(header)] + [len(str(r[idx - 1] or "")) for r in rows])
            ws.column_dimensions[get_column_letter(idx)].width = min(longest + 2, MAX_COLUMN_WIDTH)

    if not wb.sheetnames:
        wb.create_sheet("Board")
    wb.save(output)
    output.seek(0)
    return output
