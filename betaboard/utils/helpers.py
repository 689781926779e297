import math
from typing import Any, Sequence


def safe_int(value: Any, default: int = 0) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return int(default)


def paginate(items: Sequence, page: Any, per_page: int) -> dict:
    """
    Slice an already-filtered list the way the dashboards page it:
    clamp the page into range, report "Showing a-b of n" bounds.
    """
    total = len(items)
    pages = max(1, math.ceil(total / per_page)) if per_page else 1
    page = min(max(1, safe_int(page, 1)), pages)
    start = (page - 1) * per_page
    end = min(start + per_page, total)
    return {
        "items": list(items[start:end]),
        "page": page,
        "pages": pages,
        "total": total,
        "first": start + 1 if total else 0,
        "last": end,
        "window": page_window(page, pages),
    }


def page_window(current: int, total_pages: int, size: int = 5) -> list[int]:
    """Up to `size` page numbers centred on the current page."""
    if total_pages <= size:
        return list(range(1, total_pages + 1))
    half = size // 2
    if current <= half + 1:
        start = 1
    elif current >= total_pages - half:
        start = total_pages - size + 1
    else:
        start = current - half
    return list(range(start, start + size))


def parse_id_list(raw) -> list[int]:
    """Accept [1, "2"] from JSON or "1,2" from a query string; drop junk, keep order."""
    if raw is None:
        return []
    if isinstance(raw, str):
        raw = raw.split(",")
    ids = []
    for v in raw:
        try:
            i = int(str(v).strip())
        except (TypeError, ValueError):
            continue
        if i not in ids:
            ids.append(i)
    return ids
