# utils/exports.py

"""
Tabular exports shared by the students, educators, fees and reports screens.

Each builder takes a title, column headers, rows (lists of plain values)
and an optional summary mapping, and returns a download HttpResponse.
"""

from datetime import datetime
from io import BytesIO
from xml.sax.saxutils import escape
import logging

from django.http import HttpResponse

# Excel imports
from openpyxl import Workbook
from openpyxl.styles import Font, PatternFill, Alignment, Border, Side
from openpyxl.utils import get_column_letter

# PDF imports
from reportlab.lib import colors
from reportlab.lib.enums import TA_CENTER
from reportlab.lib.pagesizes import A4, landscape
from reportlab.lib.styles import getSampleStyleSheet, ParagraphStyle
from reportlab.lib.units import inch
from reportlab.platypus import SimpleDocTemplate, Table, TableStyle, Paragraph, Spacer

logger = logging.getLogger(__name__)

HEADER_COLOR = "4472C4"


def _timestamped(filename_prefix, extension):
    return f"{filename_prefix}_{datetime.now().strftime('%Y%m%d_%H%M%S')}.{extension}"


def _cell(value):
    if value is None:
        return ''
    if isinstance(value, (int, float, str)):
        return value
    return str(value)


# =============================================================================
# EXCEL
# =============================================================================

def build_excel_workbook(title, headers, rows, subtitle=None, summary=None):
    """Build an openpyxl Workbook with a styled header row and optional summary block."""
    wb = Workbook()
    ws = wb.active
    ws.title = title[:31]

    last_column = get_column_letter(max(len(headers), 1))

    header_fill = PatternFill(start_color=HEADER_COLOR, end_color=HEADER_COLOR, fill_type="solid")
    header_font = Font(bold=True, color="FFFFFF", size=12)
    header_alignment = Alignment(horizontal="center", vertical="center", wrap_text=True)

    border_style = Border(
        left=Side(style='thin', color='000000'),
        right=Side(style='thin', color='000000'),
        top=Side(style='thin', color='000000'),
        bottom=Side(style='thin', color='000000')
    )

    # Title row
    ws.merge_cells(f'A1:{last_column}1')
    title_cell = ws['A1']
    title_cell.value = title
    title_cell.font = Font(bold=True, size=16, color=HEADER_COLOR)
    title_cell.alignment = Alignment(horizontal="center", vertical="center")

    # Subtitle with date and filters
    ws.merge_cells(f'A2:{last_column}2')
    subtitle_cell = ws['A2']
    subtitle_text = f"Generated on: {datetime.now().strftime('%Y-%m-%d %H:%M')}"
    if subtitle:
        subtitle_text += f" | {subtitle}"
    subtitle_cell.value = subtitle_text
    subtitle_cell.font = Font(size=10, italic=True)
    subtitle_cell.alignment = Alignment(horizontal="center")

    ws.append([])

    ws.append(list(headers))
    for cell in ws[4]:
        cell.fill = header_fill
        cell.font = header_font
        cell.alignment = header_alignment
        cell.border = border_style

    for row in rows:
        ws.append([_cell(value) for value in row])
        for cell in ws[ws.max_row]:
            cell.border = border_style
            cell.alignment = Alignment(vertical="center", wrap_text=True)

    for index, header in enumerate(headers, start=1):
        ws.column_dimensions[get_column_letter(index)].width = max(12, len(str(header)) + 4)

    if summary:
        summary_row = ws.max_row + 2
        for offset, (label, value) in enumerate(summary.items()):
            ws[f'A{summary_row + offset}'] = f"{label}:"
            ws[f'B{summary_row + offset}'] = _cell(value)
            ws[f'A{summary_row + offset}'].font = Font(bold=True)

    ws.freeze_panes = 'A5'
    return wb


def build_excel_response(title, headers, rows, filename_prefix, subtitle=None, summary=None):
    wb = build_excel_workbook(title, headers, rows, subtitle=subtitle, summary=summary)

    response = HttpResponse(
        content_type='application/vnd.openxmlformats-officedocument.spreadsheetml.sheet'
    )
    response['Content-Disposition'] = f'attachment; filename="{_timestamped(filename_prefix, "xlsx")}"'
    wb.save(response)
    return response


# =============================================================================
# PDF
# =============================================================================

def build_pdf_bytes(title, headers, rows, subtitle=None, summary=None):
    """Render a landscape A4 table report with reportlab."""
    buffer = BytesIO()
    doc = SimpleDocTemplate(
        buffer,
        pagesize=landscape(A4),
        rightMargin=0.5 * inch,
        leftMargin=0.5 * inch,
        topMargin=0.5 * inch,
        bottomMargin=0.5 * inch,
    )

    styles = getSampleStyleSheet()
    title_style = ParagraphStyle(
        'ReportTitle',
        parent=styles['Heading1'],
        fontSize=18,
        textColor=colors.HexColor(f'#{HEADER_COLOR}'),
        spaceAfter=12,
        alignment=TA_CENTER,
    )
    subtitle_style = ParagraphStyle(
        'ReportSubtitle',
        parent=styles['Normal'],
        fontSize=10,
        textColor=colors.grey,
        spaceAfter=20,
        alignment=TA_CENTER,
    )

    elements = [Paragraph(title, title_style)]

    subtitle_text = f"Generated on: {datetime.now().strftime('%Y-%m-%d %H:%M')}"
    if subtitle:
        subtitle_text += f" | {subtitle}"
    elements.append(Paragraph(escape(subtitle_text), subtitle_style))
    elements.append(Spacer(1, 0.2 * inch))

    data = [['#'] + list(headers)]
    for idx, row in enumerate(rows, start=1):
        data.append([str(idx)] + [str(_cell(value))[:30] for value in row])

    table = Table(data, repeatRows=1)
    table.setStyle(TableStyle([
        # Header
        ('BACKGROUND', (0, 0), (-1, 0), colors.HexColor(f'#{HEADER_COLOR}')),
        ('TEXTCOLOR', (0, 0), (-1, 0), colors.whitesmoke),
        ('ALIGN', (0, 0), (-1, 0), 'CENTER'),
        ('FONTNAME', (0, 0), (-1, 0), 'Helvetica-Bold'),
        ('FONTSIZE', (0, 0), (-1, 0), 10),
        ('BOTTOMPADDING', (0, 0), (-1, 0), 12),

        # Data rows
        ('FONTNAME', (0, 1), (-1, -1), 'Helvetica'),
        ('FONTSIZE', (0, 1), (-1, -1), 8),
        ('ALIGN', (0, 1), (0, -1), 'CENTER'),
        ('VALIGN', (0, 0), (-1, -1), 'MIDDLE'),
        ('ROWBACKGROUNDS', (0, 1), (-1, -1), [colors.white, colors.HexColor('#F5F5F5')]),

        # Grid
        ('GRID', (0, 0), (-1, -1), 0.5, colors.grey),
    ]))
    elements.append(table)

    if summary:
        elements.append(Spacer(1, 0.3 * inch))
        lines = '<br/>'.join(escape(f"{label}: {_cell(value)}") for label, value in summary.items())
        elements.append(Paragraph(f"<b>Summary:</b><br/>{lines}", styles['Normal']))

    doc.build(elements)
    pdf = buffer.getvalue()
    buffer.close()
    return pdf


def build_pdf_response(title, headers, rows, filename_prefix, subtitle=None, summary=None):
    pdf = build_pdf_bytes(title, headers, rows, subtitle=subtitle, summary=summary)

    response = HttpResponse(content_type='application/pdf')
    response['Content-Disposition'] = f'attachment; filename="{_timestamped(filename_prefix, "pdf")}"'
    response.write(pdf)
    return response
