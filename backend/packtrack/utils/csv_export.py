"""CSV rendering for report exports."""

import csv
import io
from dataclasses import dataclass
from datetime import date, datetime, time
from typing import Any, Callable

from fastapi.responses import StreamingResponse


@dataclass
class Column:
    """One exported column: header text and how to read it from a row dict."""
    header: str
    key: str
    fmt: Callable[[Any], str] | None = None


def _format(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "yes" if value else "no"
    if isinstance(value, datetime):
        return value.strftime("%Y-%m-%d %H:%M:%S")
    if isinstance(value, (date, time)):
        return value.isoformat()
    return str(value)


def label(value: Any) -> str:
    """Enum-style values for people: ``on_time`` becomes ``on time``."""
    return _format(value).replace("_", " ")


def render_csv(rows: list[dict[str, Any]], columns: list[Column]) -> str:
    buf = io.StringIO()
    writer = csv.writer(buf)
    writer.writerow([c.header for c in columns])
    for row in rows:
        writer.writerow([
            (c.fmt or _format)(row.get(c.key)) for c in columns
        ])
    return buf.getvalue()


def csv_response(csv_text: str, filename: str) -> StreamingResponse:
    return StreamingResponse(
        iter([csv_text]),
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
