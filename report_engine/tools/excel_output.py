"""
Report Excel Output

Writes a MatrixGrid to an .xlsx workbook with openpyxl: header band,
merge ranges, bold summary and total rows, indented labels and number
formats per column.
"""
import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union

import openpyxl
from openpyxl.styles import Alignment, Border, Font, PatternFill, Side
from openpyxl.utils import get_column_letter

from config.export_styles import get_export_style
from report_engine.core.period_calendar import ALL_PERIODS
from report_engine.tools.matrix_builder import CellRole, MatrixGrid, MatrixRow, NumberFormat, RowKind

logger = logging.getLogger(__name__)


@dataclass
class ExcelOutput:
    """Container for Excel output."""
    file_path: str
    sheet_name: str
    row_count: int
    merge_count: int


def _safe_part(value: str) -> str:
    return re.sub(r"[^A-Za-z0-9._-]+", "_", str(value).strip()) or "All"


def suggested_file_name(report_name: str, year: Union[str, int, None], operating_unit: Optional[str]) -> str:
    """{ReportName}_{Year}_{OperatingUnit}.xlsx with filesystem-safe parts."""
    year_part = ALL_PERIODS if year in (None, "") else year
    ou_part = operating_unit or "All"
    return f"{_safe_part(report_name)}_{_safe_part(year_part)}_{_safe_part(ou_part)}.xlsx"


class ExcelGenerator:
    """
    Write report matrices to styled workbooks.
    """

    def __init__(self, output_dir: str = ".outputs"):
        self.output_dir = Path(output_dir)
        self.output_dir.mkdir(parents=True, exist_ok=True)
        self.style = get_export_style()

        # Define reusable styles
        self._setup_styles()

    def _setup_styles(self):
        """Create fonts, fills and formats for each cell role."""
        typography = self.style.typography
        fills = self.style.fill_for_role()

        self.header_fill = PatternFill(start_color=fills["header"], end_color=fills["header"], fill_type="solid")
        self.summary_fill = PatternFill(start_color=fills["summary"], end_color=fills["summary"], fill_type="solid")
        self.total_fill = PatternFill(start_color=fills["total"], end_color=fills["total"], fill_type="solid")

        self.header_font = Font(
            name=typography.family,
            size=typography.header_size,
            bold=True,
            color=self.style.colors.header_text.lstrip('#'),
        )
        self.data_font = Font(name=typography.family, size=typography.body_size)
        self.data_font_bold = Font(name=typography.family, size=typography.body_size, bold=True)
        self.no_data_font = Font(
            name=typography.family,
            size=typography.body_size,
            italic=True,
            color=self.style.colors.no_data_text.lstrip('#'),
        )

        thin = Side(style='thin', color=self.style.colors.border.lstrip('#'))
        self.cell_border = Border(left=thin, right=thin, top=thin, bottom=thin)

        formats = self.style.number_formats
        self.number_formats = {
            NumberFormat.COUNT: formats.count,
            NumberFormat.CURRENCY: formats.currency,
            NumberFormat.PERCENT: formats.percent,
        }

    def write(self, grid: MatrixGrid, file_name: str, sheet_name: str = "Report") -> ExcelOutput:
        """
        Write a grid to output_dir/file_name.

        Args:
            grid: Built report matrix
            file_name: Workbook file name (see suggested_file_name)
            sheet_name: Worksheet title (Excel limits it to 31 characters)

        Returns:
            ExcelOutput with file path and counts
        """
        wb = openpyxl.Workbook()
        ws = wb.active
        ws.title = sheet_name[:31]

        for row in grid.rows:
            for cell in row.cells:
                target = ws.cell(row=cell.row + 1, column=cell.column + 1, value=cell.value)
                target.border = self.cell_border
                self._style_cell(target, cell.role, row, cell.column, grid)

        for merge in grid.merges:
            ws.merge_cells(
                start_row=merge.start_row + 1,
                start_column=merge.start_col + 1,
                end_row=merge.end_row + 1,
                end_column=merge.end_col + 1,
            )

        ws.column_dimensions[get_column_letter(1)].width = self.style.label_column_width
        for col_idx in range(2, grid.column_count + 1):
            ws.column_dimensions[get_column_letter(col_idx)].width = self.style.value_column_width
        ws.freeze_panes = ws.cell(row=len(grid.header) + 1, column=2)

        file_path = self.output_dir / file_name
        wb.save(file_path)
        logger.info(f"Wrote {len(grid.body)} rows to {file_path}")

        return ExcelOutput(
            file_path=str(file_path),
            sheet_name=ws.title,
            row_count=len(grid.rows),
            merge_count=len(grid.merges),
        )

    def _style_cell(self, target, role: CellRole, row: MatrixRow, column: int, grid: MatrixGrid):
        kind = row.kind
        if role == CellRole.HEADER:
            target.font = self.header_font
            target.fill = self.header_fill
            target.alignment = Alignment(horizontal='center', vertical='center', wrap_text=True)
            return

        if role == CellRole.NO_DATA:
            target.font = self.no_data_font
            target.alignment = Alignment(horizontal='center')
        elif kind == RowKind.ITEM:
            target.font = self.data_font
        else:
            target.font = self.data_font_bold

        if kind in (RowKind.GROUP, RowKind.PACKAGE):
            target.fill = self.summary_fill
        elif kind == RowKind.GRAND_TOTAL:
            target.fill = self.total_fill

        if role == CellRole.LABEL:
            target.alignment = Alignment(indent=row.depth * self.style.indent_width)
            return

        number_format = self.number_formats.get(grid.number_formats[column]) if column < len(grid.number_formats) else None
        if number_format and isinstance(target.value, (int, float)):
            target.number_format = number_format


def get_excel_generator(output_dir: str = None) -> ExcelGenerator:
    """Get an Excel generator writing to output_dir (or the configured default)."""
    if output_dir is None:
        from config.settings import get_config
        output_dir = get_config().export.output_dir
    return ExcelGenerator(output_dir)
