"""
Report Export Styling

Centralized look of exported report workbooks. Only the writer in
report_engine.tools.excel_output reads this; the engine itself produces
unstyled cells with role tags.
"""
from dataclasses import dataclass, field
from typing import Dict, Optional


@dataclass
class ColorPalette:
    """Fill and font colors keyed by cell role."""
    header_bg: str = "#E5E7EB"         # Gray header band
    header_text: str = "#111827"
    summary_bg: str = "#F3F4F6"        # Component / package summary rows
    total_bg: str = "#D1D5DB"          # Grand total row
    no_data_text: str = "#6B7280"      # Italic "no data" marker
    border: str = "#D1D5DB"


@dataclass
class Typography:
    """Font configuration."""
    family: str = "Arial Narrow"
    header_size: int = 10
    body_size: int = 9


@dataclass
class NumberFormats:
    """Excel number formats by measure kind."""
    count: str = "#,##0"
    currency: str = "#,##0.00"
    percent: str = '0.00"%"'


@dataclass
class ExportStyle:
    """Complete export configuration."""
    colors: ColorPalette = field(default_factory=ColorPalette)
    typography: Typography = field(default_factory=Typography)
    number_formats: NumberFormats = field(default_factory=NumberFormats)

    label_column_width: int = 48
    value_column_width: int = 12
    indent_width: int = 2  # Spaces per hierarchy level in the label column

    def fill_for_role(self) -> Dict[str, str]:
        """Background color (RRGGBB, no '#') for each cell role that is filled."""
        return {
            "header": self.colors.header_bg.lstrip('#'),
            "summary": self.colors.summary_bg.lstrip('#'),
            "total": self.colors.total_bg.lstrip('#'),
        }


# Global instance
_export_style: Optional[ExportStyle] = None

def get_export_style() -> ExportStyle:
    """Get the global export style."""
    global _export_style
    if _export_style is None:
        _export_style = ExportStyle()
    return _export_style
