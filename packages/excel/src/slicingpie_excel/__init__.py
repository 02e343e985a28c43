"""Excel export for Slicing Pie equity reports."""

from .equity_workbook_renderer import EquityWorkbookRenderer, render_equity_workbook

__all__ = ["EquityWorkbookRenderer", "render_equity_workbook"]
