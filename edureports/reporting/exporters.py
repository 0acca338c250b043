"""
Report Exporters

Renders a `ReportTable` into an Excel workbook (openpyxl) or a PDF document
(reportlab). Both renderers build the whole file in memory and return its
bytes, so nothing is sent to the client until the file is complete.
"""

import io
from typing import Callable, Dict, Tuple

import structlog
from openpyxl import Workbook
from openpyxl.styles import Alignment, Font, PatternFill
from openpyxl.utils import get_column_letter
from reportlab.lib import colors
from reportlab.lib.pagesizes import A4, landscape
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import cm
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from edureports.reporting.errors import UnsupportedExportError
from edureports.reporting.formatter import ReportTable

logger = structlog.get_logger(__name__)

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
PDF_MEDIA_TYPE = "application/pdf"

HEADER_COLOR = "4472C4"
TOTALS_COLOR = "FFF2CC"


def render_xlsx(table: ReportTable) -> bytes:
    """Render a report table as an .xlsx workbook"""
    wb = Workbook()
    ws = wb.active
    ws.title = table.title[:31]

    last_column = get_column_letter(len(table.columns))
    center = Alignment(horizontal="center", vertical="center")

    # Title and metadata rows
    ws.merge_cells(f"A1:{last_column}1")
    ws["A1"] = table.title
    ws["A1"].font = Font(bold=True, size=14)
    ws["A1"].alignment = center

    meta_lines = [f"Generated: {table.cell_text(table.generated_at)}"] + table.filters + table.summary
    row_idx = 2
    for line in meta_lines:
        ws.merge_cells(f"A{row_idx}:{last_column}{row_idx}")
        ws.cell(row=row_idx, column=1, value=line)
        row_idx += 1

    # Header
    header_row = row_idx + 1
    header_font = Font(bold=True, color="FFFFFF")
    header_fill = PatternFill(start_color=HEADER_COLOR, end_color=HEADER_COLOR, fill_type="solid")
    for col_idx, column in enumerate(table.columns, 1):
        cell = ws.cell(row=header_row, column=col_idx, value=column.header)
        cell.font = header_font
        cell.fill = header_fill
        cell.alignment = center
        ws.column_dimensions[get_column_letter(col_idx)].width = column.width

    # Data rows keep native types so spreadsheet formulas work on them
    current = header_row + 1
    for values in table.rows:
        for col_idx, value in enumerate(values, 1):
            cell = ws.cell(row=current, column=col_idx, value=value)
            if table.columns[col_idx - 1].numeric and isinstance(value, float):
                cell.number_format = "#,##0.00"
        current += 1

    if not table.rows:
        ws.cell(row=current, column=1, value=table.empty_message)
        current += 1

    if table.totals is not None:
        current += 1
        totals_fill = PatternFill(start_color=TOTALS_COLOR, end_color=TOTALS_COLOR, fill_type="solid")
        for col_idx, value in enumerate(table.totals, 1):
            cell = ws.cell(row=current, column=col_idx, value=value)
            cell.font = Font(bold=True)
            cell.fill = totals_fill
            if isinstance(value, float):
                cell.number_format = "#,##0.00"

    ws.freeze_panes = ws.cell(row=header_row + 1, column=1)

    output = io.BytesIO()
    wb.save(output)
    return output.getvalue()


def render_pdf(table: ReportTable) -> bytes:
    """Render a report table as a landscape A4 PDF"""
    output = io.BytesIO()
    doc = SimpleDocTemplate(
        output,
        pagesize=landscape(A4),
        leftMargin=1.5 * cm,
        rightMargin=1.5 * cm,
        topMargin=1.5 * cm,
        bottomMargin=1.5 * cm,
        title=table.title,
    )
    styles = getSampleStyleSheet()
    title_style = ParagraphStyle(
        "ReportTitle",
        parent=styles["Heading1"],
        fontSize=18,
        spaceAfter=12,
        alignment=1,
        textColor=colors.HexColor("#1e3a8a"),
    )
    cell_style = ParagraphStyle("Cell", parent=styles["Normal"], fontSize=8, leading=10)

    elements = [Paragraph(table.title, title_style)]
    meta_lines = [f"Generated: {table.cell_text(table.generated_at)}"] + table.filters + table.summary
    elements.append(Paragraph("<br/>".join(_escape(line) for line in meta_lines), styles["Normal"]))
    elements.append(Spacer(1, 0.6 * cm))

    if not table.rows:
        elements.append(Paragraph(_escape(table.empty_message), styles["Normal"]))
    else:
        data = [[column.header for column in table.columns]]
        for values in table.rows:
            data.append([Paragraph(_escape(table.cell_text(v)), cell_style) for v in values])
        if table.totals is not None:
            data.append([table.cell_text(v) for v in table.totals])

        total_width = sum(column.width for column in table.columns)
        usable = doc.width
        col_widths = [usable * column.width / total_width for column in table.columns]

        style = [
            ("BACKGROUND", (0, 0), (-1, 0), colors.HexColor("#" + HEADER_COLOR)),
            ("TEXTCOLOR", (0, 0), (-1, 0), colors.white),
            ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
            ("FONTSIZE", (0, 0), (-1, -1), 8),
            ("VALIGN", (0, 0), (-1, -1), "MIDDLE"),
            ("ROWBACKGROUNDS", (0, 1), (-1, -1), [colors.white, colors.HexColor("#f8fafc")]),
            ("GRID", (0, 0), (-1, -1), 0.25, colors.HexColor("#cbd5e1")),
        ]
        for col_idx, column in enumerate(table.columns):
            if column.numeric:
                style.append(("ALIGN", (col_idx, 1), (col_idx, -1), "RIGHT"))
        if table.totals is not None:
            style += [
                ("BACKGROUND", (0, -1), (-1, -1), colors.HexColor("#" + TOTALS_COLOR)),
                ("FONTNAME", (0, -1), (-1, -1), "Helvetica-Bold"),
            ]

        grid = Table(data, colWidths=col_widths, repeatRows=1)
        grid.setStyle(TableStyle(style))
        elements.append(grid)

    footer = f"Generated by the reports module - {table.cell_text(table.generated_at)}"

    def _draw_footer(canvas, document):
        canvas.saveState()
        canvas.setFont("Helvetica", 7)
        canvas.setFillColor(colors.HexColor("#6b7280"))
        canvas.drawCentredString(document.pagesize[0] / 2, 0.8 * cm, f"{footer} - page {canvas.getPageNumber()}")
        canvas.restoreState()

    doc.build(elements, onFirstPage=_draw_footer, onLaterPages=_draw_footer)
    return output.getvalue()


def _escape(text: str) -> str:
    """Escape markup characters for reportlab paragraphs"""
    return text.replace("&", "&amp;").replace("<", "&lt;").replace(">", "&gt;")


# format -> (renderer, media type, file extension)
RENDERERS: Dict[str, Tuple[Callable[[ReportTable], bytes], str, str]] = {
    "excel": (render_xlsx, XLSX_MEDIA_TYPE, "xlsx"),
    "pdf": (render_pdf, PDF_MEDIA_TYPE, "pdf"),
}


def render(table: ReportTable, fmt: str) -> Tuple[bytes, str, str]:
    """
    Render a table in the requested format.

    Returns:
        (content bytes, media type, filename)
    """
    if fmt not in RENDERERS:
        raise UnsupportedExportError(f"Unsupported export format: {fmt}")
    renderer, media_type, extension = RENDERERS[fmt]

    content = renderer(table)
    filename = f"{table.slug}-{table.generated_at.strftime('%Y-%m-%d')}.{extension}"
    logger.info("Report rendered", report=table.slug, format=fmt, size_bytes=len(content))
    return content, media_type, filename
