from datetime import datetime, timezone
from io import BytesIO
from typing import Any, Dict, List, Sequence
import pandas as pd
from reportlab.lib.pagesizes import A4
from reportlab.pdfgen import canvas


def rows_to_csv(rows: List[Dict[str, Any]], columns: Sequence[str]) -> str:
    """Render rows as CSV with a fixed header, also for an empty report."""
    df = pd.DataFrame(rows, columns=list(columns))
    return df.to_csv(index=False)


def rows_to_pdf(title: str, rows: List[Dict[str, Any]], columns: Sequence[str]) -> bytes:
    buf = BytesIO()
    c = canvas.Canvas(buf, pagesize=A4)
    width, height = A4

    c.setFont("Helvetica-Bold", 16)
    c.drawString(40, height - 60, title)

    c.setFont("Helvetica", 10)
    c.drawString(40, height - 80, f"Generated: {datetime.now(timezone.utc):%Y-%m-%d %H:%M} UTC")

    y = height - 115
    column_width = (width - 80) / max(len(columns), 1)

    def draw_header(y):
        c.setFont("Helvetica-Bold", 11)
        for i, column in enumerate(columns):
            c.drawString(40 + i * column_width, y, column)
        c.setFont("Helvetica", 11)
        return y - 18

    y = draw_header(y)

    if not rows:
        c.drawString(40, y, "- No data.")

    for row in rows:
        if y < 60:
            c.showPage()
            y = draw_header(height - 60)
        for i, column in enumerate(columns):
            c.drawString(40 + i * column_width, y, _format_cell(row.get(column)))
        y -= 16

    c.save()
    pdf = buf.getvalue()
    buf.close()
    return pdf


def _format_cell(value: Any) -> str:
    if value is None:
        return "-"
    if isinstance(value, float):
        return f"{value:.2f}"
    return str(value)
