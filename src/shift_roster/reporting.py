"""
Reporting and Export Module for the Shift Roster

Snapshots the roster grid into a printable document definition and renders
it to PDF, and exports the same month matrix to Excel and CSV.
"""

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional
from xml.sax.saxutils import escape

import pandas as pd
from reportlab.lib import colors
from reportlab.lib.pagesizes import A4, landscape
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import inch
from reportlab.pdfbase import pdfmetrics
from reportlab.pdfbase.cidfonts import UnicodeCIDFont
from reportlab.platypus import Paragraph, SimpleDocTemplate, Table, TableStyle

from .grid import EMPTY_SHIFT, ShiftGrid
from .shift_types import lighten_color


logger = logging.getLogger(__name__)

JAPANESE_FONT = "HeiseiKakuGo-W5"
DEFAULT_TEXT_COLOR = "#000000"
MUTED_TEXT_COLOR = "#666666"
# Roughly a 0x10 alpha tint of the type color over white.
PDF_FILL_FACTOR = 0.94
NAME_COLUMN_WIDTH = 80
LEGEND_TITLE = "勤務地一覧"

FILE_EXTENSIONS = {"pdf": "pdf", "excel": "xlsx", "csv": "csv"}


def _register_fonts():
    if JAPANESE_FONT not in pdfmetrics.getRegisteredFontNames():
        pdfmetrics.registerFont(UnicodeCIDFont(JAPANESE_FONT))
        # No bold face ships with the CID font; <b> maps back to the regular face.
        pdfmetrics.registerFontFamily(JAPANESE_FONT, normal=JAPANESE_FONT, bold=JAPANESE_FONT,
                                      italic=JAPANESE_FONT, boldItalic=JAPANESE_FONT)


def build_document_definition(grid: ShiftGrid,
                              created_at: Optional[datetime] = None) -> Dict[str, Any]:
    """Snapshot the grid's current month as plain data for printing"""
    created_at = created_at or datetime.now()
    registry = grid.registry
    days = grid.header()

    def shift_color(code: str) -> str:
        shift_type = registry.find(code)
        return shift_type.color if shift_type else DEFAULT_TEXT_COLOR

    table_header = [{"text": "担当者", "style": "tableHeader", "alignment": "center"}]
    for day in days:
        table_header.append({
            "text": day.day_label,
            "weekday": f"({day.weekday_label})",
            "style": "tableHeader",
            "alignment": "center",
        })

    table_body = []
    for employee in grid.display_employees:
        row = [{"text": employee.display_name, "style": "employeeName"}]
        for day in days:
            shift = grid.get_shift_value(employee.id, day.date)
            color = shift_color(shift)
            row.append({
                "text": shift,
                "alignment": "center",
                "color": color,
                "fill_color": lighten_color(color, PDF_FILL_FACTOR) if shift != EMPTY_SHIFT else None,
            })
        table_body.append(row)

    legend_items = [
        {"code": t.code, "label": t.label, "color": t.color, "hours": t.hours or ""}
        for t in registry
    ]
    split_at = (len(legend_items) + 1) // 2

    return {
        "page_size": "A4",
        "page_orientation": "landscape",
        "header": {
            "text": f"{grid.current_year}年 {grid.current_month}月度 シフト表",
            "alignment": "center",
            "font_size": 18,
            "bold": True,
        },
        "footer": {
            "text": f"作成日: {created_at.strftime('%Y/%m/%d %H:%M')}",
            "alignment": "right",
            "font_size": 8,
            "color": MUTED_TEXT_COLOR,
        },
        "table": {
            "header_rows": 1,
            "widths": [NAME_COLUMN_WIDTH] + ["*"] * len(days),
            "body": [table_header] + table_body,
        },
        "legend": {
            "title": LEGEND_TITLE,
            "columns": [legend_items[:split_at], legend_items[split_at:]],
        },
    }


class ReportGenerator:
    """Renders roster snapshots to PDF, Excel and CSV"""

    def __init__(self, grid: ShiftGrid):
        self.grid = grid
        _register_fonts()
        self.styles = getSampleStyleSheet()
        self._setup_custom_styles()

    def _setup_custom_styles(self):
        """Setup custom report styles"""
        self.styles.add(ParagraphStyle(
            name='RosterCell',
            parent=self.styles['Normal'],
            fontName=JAPANESE_FONT,
            fontSize=8,
            leading=10,
            alignment=1
        ))

        self.styles.add(ParagraphStyle(
            name='RosterName',
            parent=self.styles['Normal'],
            fontName=JAPANESE_FONT,
            fontSize=10,
            leading=12
        ))

        self.styles.add(ParagraphStyle(
            name='LegendHeading',
            parent=self.styles['Heading2'],
            fontName=JAPANESE_FONT,
            fontSize=12,
            spaceBefore=20,
            spaceAfter=10
        ))

    def export_calendar_pdf(self, output_path: str,
                            created_at: Optional[datetime] = None) -> bool:
        """Export the current month to a landscape A4 PDF"""
        try:
            definition = build_document_definition(self.grid, created_at)
            doc = SimpleDocTemplate(
                output_path,
                pagesize=landscape(A4),
                rightMargin=0.5*inch,
                leftMargin=0.5*inch,
                topMargin=0.9*inch,
                bottomMargin=0.6*inch,
                title=definition["header"]["text"]
            )

            story = [
                self._create_roster_table(definition["table"], doc.width),
                Paragraph(definition["legend"]["title"], self.styles['LegendHeading']),
                self._create_legend(definition["legend"]["columns"], doc.width),
            ]

            def decorate(canvas, document):
                self._draw_page_frame(canvas, document, definition)

            doc.build(story, onFirstPage=decorate, onLaterPages=decorate)
            logger.info(f"Exported roster PDF to {output_path}")
            return True

        except Exception as e:
            logger.error(f"Error creating PDF: {e}", exc_info=True)
            return False

    def _draw_page_frame(self, canvas, doc, definition: Dict[str, Any]):
        page_width, page_height = doc.pagesize
        header = definition["header"]
        footer = definition["footer"]

        canvas.saveState()
        canvas.setFont(JAPANESE_FONT, header["font_size"])
        canvas.drawCentredString(page_width / 2, page_height - 0.55*inch, header["text"])

        canvas.setFont(JAPANESE_FONT, footer["font_size"])
        canvas.setFillColor(colors.HexColor(footer["color"]))
        canvas.drawRightString(page_width - 40, 20, footer["text"])
        canvas.restoreState()

    def _create_roster_table(self, table_def: Dict[str, Any], available_width: float) -> Table:
        """Create the employee x day table"""
        header_row, *body_rows = table_def["body"]
        day_count = len(header_row) - 1
        day_width = (available_width - NAME_COLUMN_WIDTH) / max(day_count, 1)

        data = [[Paragraph(f"<b>{header_row[0]['text']}</b>", self.styles['RosterCell'])]]
        for cell in header_row[1:]:
            data[0].append(Paragraph(
                f"<b>{cell['text']}</b><br/>"
                f"<font size=6 color='{MUTED_TEXT_COLOR}'>{cell['weekday']}</font>",
                self.styles['RosterCell']
            ))

        style_commands = [
            ('FONTNAME', (0, 0), (-1, -1), JAPANESE_FONT),
            ('FONTSIZE', (0, 1), (-1, -1), 9),
            ('ALIGN', (1, 0), (-1, -1), 'CENTER'),
            ('VALIGN', (0, 0), (-1, -1), 'MIDDLE'),
            ('LINEBELOW', (0, 0), (-1, 0), 1, colors.black),
            ('LINEBELOW', (0, 1), (-1, -1), 0.5, colors.lightgrey),
            ('LEFTPADDING', (1, 0), (-1, -1), 1),
            ('RIGHTPADDING', (1, 0), (-1, -1), 1),
        ]

        for row_index, row in enumerate(body_rows, start=1):
            data.append([Paragraph(escape(row[0]["text"]), self.styles['RosterName'])] +
                        [cell["text"] for cell in row[1:]])
            for col_index, cell in enumerate(row[1:], start=1):
                style_commands.append(
                    ('TEXTCOLOR', (col_index, row_index), (col_index, row_index),
                     colors.HexColor(cell["color"]))
                )
                if cell["fill_color"]:
                    style_commands.append(
                        ('BACKGROUND', (col_index, row_index), (col_index, row_index),
                         colors.HexColor(cell["fill_color"]))
                    )

        table = Table(data, colWidths=[NAME_COLUMN_WIDTH] + [day_width] * day_count,
                      repeatRows=table_def["header_rows"])
        table.setStyle(TableStyle(style_commands))
        return table

    def _create_legend(self, columns: List[List[Dict[str, str]]], available_width: float) -> Table:
        """Create the two-column shift type legend"""
        rendered_columns = []
        for items in columns:
            lines = [
                Paragraph(
                    f"<font color='{item['color']}'><b>{escape(item['code'])}</b>"
                    f"&nbsp;&nbsp;{escape(item['label'])}</font>"
                    f"&nbsp;&nbsp;<font size=8 color='{MUTED_TEXT_COLOR}'>{item['hours']}</font>",
                    self.styles['RosterName']
                )
                for item in items
            ]
            rendered_columns.append(lines)

        row_count = max((len(c) for c in rendered_columns), default=0)
        data = []
        for i in range(row_count):
            data.append([c[i] if i < len(c) else "" for c in rendered_columns])
        if not data:
            data = [["", ""]]

        legend_table = Table(data, colWidths=[available_width / 2] * 2)
        legend_table.setStyle(TableStyle([
            ('VALIGN', (0, 0), (-1, -1), 'TOP'),
            ('TOPPADDING', (0, 0), (-1, -1), 2),
            ('BOTTOMPADDING', (0, 0), (-1, -1), 2),
        ]))
        return legend_table

    def create_schedule_dataframe(self) -> pd.DataFrame:
        """Employee x day matrix of resolved shift codes"""
        days = self.grid.days
        data = []
        for employee in self.grid.display_employees:
            row = {"担当者": employee.display_name}
            for day in days:
                row[str(day.day)] = self.grid.get_shift_value(employee.id, day)
            data.append(row)
        columns = ["担当者"] + [str(day.day) for day in days]
        return pd.DataFrame(data, columns=columns)

    def create_legend_dataframe(self) -> pd.DataFrame:
        return pd.DataFrame(
            [{"記号": t.code, "勤務地名": t.label, "色": t.color, "勤務時間": t.hours or ""}
             for t in self.grid.registry],
            columns=["記号", "勤務地名", "色", "勤務時間"]
        )

    def export_schedule_excel(self, output_path: str) -> bool:
        """Export the month matrix and the legend to an Excel workbook"""
        try:
            with pd.ExcelWriter(output_path, engine='openpyxl') as writer:
                self.create_schedule_dataframe().to_excel(writer, sheet_name='シフト表', index=False)
                self.create_legend_dataframe().to_excel(writer, sheet_name=LEGEND_TITLE, index=False)
                self._format_excel_worksheets(writer)
            logger.info(f"Exported roster workbook to {output_path}")
            return True

        except Exception as e:
            logger.error(f"Error exporting to Excel: {e}", exc_info=True)
            return False

    def _format_excel_worksheets(self, writer):
        """Header styling, shift colors and column widths"""
        from openpyxl.styles import Font, PatternFill

        worksheet = writer.sheets['シフト表']
        header_fill = PatternFill(start_color="366092", end_color="366092", fill_type="solid")
        header_font = Font(color="FFFFFF", bold=True)

        for cell in worksheet[1]:
            cell.fill = header_fill
            cell.font = header_font

        for row in worksheet.iter_rows(min_row=2, min_col=2):
            for cell in row:
                shift_type = self.grid.registry.find(cell.value) if cell.value else None
                if shift_type is None:
                    continue
                fill = lighten_color(shift_type.color, 0.75).lstrip("#").upper()
                cell.fill = PatternFill(start_color=fill, end_color=fill, fill_type="solid")
                cell.font = Font(color=shift_type.color.lstrip("#").upper(), bold=True)

        worksheet.column_dimensions['A'].width = 14
        for column in worksheet.iter_cols(min_col=2, max_row=1):
            worksheet.column_dimensions[column[0].column_letter].width = 4

    def export_schedule_csv(self, output_path: str) -> bool:
        """Export the month matrix to CSV"""
        try:
            self.create_schedule_dataframe().to_csv(output_path, index=False, encoding="utf-8-sig")
            return True

        except Exception as e:
            logger.error(f"Error exporting to CSV: {e}", exc_info=True)
            return False


class ExportManager:
    """Manager class for handling all export operations"""

    def __init__(self, grid: ShiftGrid):
        self.grid = grid
        self.report_generator = ReportGenerator(grid)

    def export_calendar(self, format_type: str, output_path: str) -> bool:
        """Export the grid's current month in the given format"""
        if format_type.lower() == 'pdf':
            return self.report_generator.export_calendar_pdf(output_path)
        elif format_type.lower() == 'excel':
            return self.report_generator.export_schedule_excel(output_path)
        elif format_type.lower() == 'csv':
            return self.report_generator.export_schedule_csv(output_path)
        else:
            raise ValueError(f"Unsupported format: {format_type}")

    def get_default_filename(self, format_type: str = "pdf") -> str:
        extension = FILE_EXTENSIONS.get(format_type.lower())
        if extension is None:
            raise ValueError(f"Unsupported format: {format_type}")
        return f"シフト表_{self.grid.current_year}年{self.grid.current_month}月.{extension}"
