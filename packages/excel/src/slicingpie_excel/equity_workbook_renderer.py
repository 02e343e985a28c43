"""Equity report renderer: one workbook with Summary, Contributions, Vesting,
Equity Values and Activity sheets.

Contributions are written as values (slices are frozen per contribution);
totals and percentages on the Summary and Equity Values sheets are Excel
formulas over those values, so the workbook stays live if rows are edited.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Dict, List, Optional

import pandas as pd
from openpyxl import Workbook
from openpyxl.comments import Comment
from openpyxl.styles import Alignment, Border, Font, PatternFill, Side
from openpyxl.utils import get_column_letter
from openpyxl.worksheet.worksheet import Worksheet

from slicingpie_domain.blocks import (
    BlockContext,
    BlockExecutor,
    EquityBlock,
    EquityValueBlock,
    VestingBlock,
)
from slicingpie_domain.schemas import EquityWorkbookCFG
from slicingpie_domain.valuation import CONFIDENCE_LABELS, DISCLAIMER

VESTING_STATE_LABELS = {
    "none": "No Vesting",
    "preCliff": "Pre-Cliff",
    "vesting": "Vesting",
    "fullyVested": "Fully Vested",
}

# Contributions sheet columns
CONTRIB_HEADERS = [
    "Date", "Contributor ID", "Contributor", "Type", "Value",
    "Multiplier", "Slices", "Description", "Status",
]
COL_CONTRIBUTOR_ID = "B"
COL_SLICES = "G"
COL_STATUS = "I"

# Summary!B4, the active slice total every percentage divides by
SUMMARY_TOTAL_SLICES = "Summary!$B$4"


def exact_match_criterion(text: str) -> str:
    """Quoted SUMIFS criterion that matches ``text`` exactly.

    Wildcards (* ? ~) are escaped with ~ and quotes are doubled. The leading
    "=" keeps values such as ">5" from being read as comparisons.
    """
    escaped = text.replace("~", "~~").replace("*", "~*").replace("?", "~?")
    return '"=' + escaped.replace('"', '""') + '"'


class EquityWorkbookRenderer:
    """Render an EquityWorkbookCFG to an .xlsx workbook.

    Example:
        config = EquityWorkbookCFG(portfolio=store.export_portfolio(), valuation=Decimal("500000"))
        EquityWorkbookRenderer(config).render("equity.xlsx")
    """

    def __init__(self, config: EquityWorkbookCFG):
        self.config = config

        self.blue_font = Font(color="0000FF")  # Inputs
        self.bold_font = Font(bold=True)
        self.title_font = Font(bold=True, size=14)
        self.note_font = Font(italic=True, size=9, color="595959")

        self.header_font = Font(bold=True, color="FFFFFF")
        self.header_fill = PatternFill(start_color="1F4E78", end_color="1F4E78", fill_type="solid")
        self.total_fill = PatternFill(start_color="E7E6E6", end_color="E7E6E6", fill_type="solid")
        self.input_cell_fill = PatternFill(start_color="CCE5FF", end_color="CCE5FF", fill_type="solid")
        self.deleted_font = Font(italic=True, color="808080")

        self.thin_border = Border(
            left=Side(style='thin'),
            right=Side(style='thin'),
            top=Side(style='thin'),
            bottom=Side(style='thin'),
        )
        self.top_border = Border(top=Side(style='medium'))
        self.center_align = Alignment(horizontal='center', vertical='center')

        self._tables: Dict[str, pd.DataFrame] = {}
        # Contributions!G/I data range, used by the Summary formulas
        self._contrib_last_row = 1

    def render(self, output_path: str) -> str:
        wb = self.build_workbook()
        wb.save(output_path)
        return output_path

    def build_workbook(self) -> Workbook:
        self._tables = self._compute_tables()

        wb = Workbook()
        wb.remove(wb.active)

        summary = wb.create_sheet("Summary")
        self._render_contributions(wb.create_sheet("Contributions"))
        self._render_summary(summary)

        if self.config.include_vesting:
            self._render_vesting(wb.create_sheet("Vesting"))

        if self.config.valuation is not None:
            self._render_equity_values(wb.create_sheet("Equity Values"))

        if self.config.include_activity and self.config.activity:
            self._render_activity(wb.create_sheet("Activity"))

        return wb

    # ------------------------------------------------------------------ #
    # Data
    # ------------------------------------------------------------------ #

    def _compute_tables(self) -> Dict[str, pd.DataFrame]:
        blocks = [EquityBlock(include_deleted=self.config.include_deleted)]
        if self.config.include_vesting:
            blocks.append(VestingBlock())
        blocks.append(EquityValueBlock(include_vesting=self.config.include_vesting))

        context = BlockContext()
        context.set("portfolio", self.config.portfolio)
        context.set("as_of_date", self.config.as_of_date)
        context.set("valuation", self.config.valuation)
        BlockExecutor(blocks).execute(context)

        keys = ["equity_table", "contributions_table", "slices_by_type", "equity_summary", "equity_values"]
        if self.config.include_vesting:
            keys += ["vesting_table", "vesting_summary"]
        return {key: context.get(key) for key in keys}

    # ------------------------------------------------------------------ #
    # Sheet helpers
    # ------------------------------------------------------------------ #

    def _write_header_row(self, sheet: Worksheet, row: int, headers: List[str]) -> None:
        for col, header in enumerate(headers, start=1):
            cell = sheet.cell(row=row, column=col, value=header)
            cell.font = self.header_font
            cell.fill = self.header_fill
            cell.alignment = self.center_align
            cell.border = self.thin_border

    def _set_widths(self, sheet: Worksheet, widths: List[int]) -> None:
        for col, width in enumerate(widths, start=1):
            sheet.column_dimensions[get_column_letter(col)].width = width

    @staticmethod
    def _excel_datetime(value: datetime) -> datetime:
        # Excel has no timezone support
        if value.tzinfo is not None:
            value = value.astimezone(timezone.utc).replace(tzinfo=None)
        return value

    # ------------------------------------------------------------------ #
    # Contributions
    # ------------------------------------------------------------------ #

    def _render_contributions(self, sheet: Worksheet) -> None:
        table = self._tables["contributions_table"]
        self._write_header_row(sheet, 1, CONTRIB_HEADERS)

        row = 2
        for record in table.to_dict("records"):
            values = [
                record["date"],
                record["contributor_id"],
                record["contributor_name"],
                record["type_label"],
                float(record["value"]),
                float(record["multiplier"]),
                float(record["slices"]),
                record["description"],
                record["status"],
            ]
            for col, value in enumerate(values, start=1):
                cell = sheet.cell(row=row, column=col, value=value)
                cell.border = self.thin_border
                if record["status"] != "active":
                    cell.font = self.deleted_font

            sheet.cell(row=row, column=1).number_format = 'yyyy-mm-dd'
            value_cell = sheet.cell(row=row, column=5)
            value_cell.number_format = '#,##0.0' if record["type"] == "time" else '$#,##0'
            if record["type"] == "time":
                value_cell.comment = Comment("Hours worked", "System")
            sheet.cell(row=row, column=6).number_format = '0"x"'
            sheet.cell(row=row, column=7).number_format = '#,##0'
            row += 1

        self._contrib_last_row = max(row - 1, 2)
        sheet.freeze_panes = "A2"
        self._set_widths(sheet, [12, 16, 22, 22, 12, 11, 12, 44, 20])

    def _active_slices_formula(self, contributor_id: Optional[str] = None) -> str:
        last = self._contrib_last_row
        slices = f"Contributions!${COL_SLICES}$2:${COL_SLICES}${last}"
        status = f"Contributions!${COL_STATUS}$2:${COL_STATUS}${last}"
        if contributor_id is None:
            return f'=SUMIF({status},"active",{slices})'
        ids = f"Contributions!${COL_CONTRIBUTOR_ID}$2:${COL_CONTRIBUTOR_ID}${last}"
        return f'=SUMIFS({slices},{ids},{exact_match_criterion(contributor_id)},{status},"active")'

    # ------------------------------------------------------------------ #
    # Summary
    # ------------------------------------------------------------------ #

    def _render_summary(self, sheet: Worksheet) -> None:
        cfg = self.config
        equity = self._tables["equity_table"]

        sheet["A1"] = cfg.report_title
        sheet["A1"].font = self.title_font

        sheet["A2"] = "Company"
        sheet["B2"] = cfg.portfolio.company.name
        sheet["A3"] = "As of"
        sheet["B3"] = cfg.as_of_date
        sheet["B3"].number_format = 'yyyy-mm-dd'
        sheet["A4"] = "Total Slices"
        sheet["B4"] = self._active_slices_formula()
        sheet["B4"].number_format = '#,##0'
        sheet["B4"].font = self.bold_font
        for label in ("A2", "A3", "A4"):
            sheet[label].font = self.bold_font

        header_row = 6
        headers = ["Contributor", "Contributor ID", "Slices", "Equity %"]
        if cfg.include_vesting:
            headers += ["Vested Slices", "Vested %"]
        self._write_header_row(sheet, header_row, headers)

        vested = {}
        if cfg.include_vesting:
            vested = {
                r["contributor_id"]: r["vested_slices"]
                for r in self._tables["vesting_table"].to_dict("records")
            }

        row = header_row + 1
        first = row
        for record in equity.to_dict("records"):
            sheet.cell(row=row, column=1, value=record["name"])
            sheet.cell(row=row, column=2, value=record["contributor_id"])

            slices = sheet.cell(row=row, column=3, value=self._active_slices_formula(record["contributor_id"]))
            slices.number_format = '#,##0'
            pct = sheet.cell(row=row, column=4, value=f"=IF($B$4=0,0,C{row}/$B$4)")
            pct.number_format = '0.0%'

            if cfg.include_vesting:
                vested_cell = sheet.cell(row=row, column=5, value=float(vested.get(record["contributor_id"], 0.0)))
                vested_cell.number_format = '#,##0'
                vested_pct = sheet.cell(row=row, column=6, value=f"=IF(C{row}=0,0,E{row}/C{row})")
                vested_pct.number_format = '0.0%'

            for col in range(1, len(headers) + 1):
                sheet.cell(row=row, column=col).border = self.thin_border
            row += 1
        last = row - 1

        sheet.cell(row=row, column=1, value="Total").font = self.bold_font
        if last >= first:
            sheet.cell(row=row, column=3, value=f"=SUM(C{first}:C{last})")
            sheet.cell(row=row, column=4, value=f"=SUM(D{first}:D{last})")
            if cfg.include_vesting:
                sheet.cell(row=row, column=5, value=f"=SUM(E{first}:E{last})")
        else:
            sheet.cell(row=row, column=3, value=0)
            sheet.cell(row=row, column=4, value=0)
        sheet.cell(row=row, column=3).number_format = '#,##0'
        sheet.cell(row=row, column=4).number_format = '0.0%'
        if cfg.include_vesting:
            sheet.cell(row=row, column=5).number_format = '#,##0'
        for col in range(1, len(headers) + 1):
            cell = sheet.cell(row=row, column=col)
            cell.fill = self.total_fill
            cell.border = self.top_border

        self._render_type_breakdown(sheet, row + 2)
        sheet.freeze_panes = f"A{header_row + 1}"
        self._set_widths(sheet, [26, 18, 14, 12, 14, 12])

    def _render_type_breakdown(self, sheet: Worksheet, start_row: int) -> None:
        self._write_header_row(sheet, start_row, ["Contribution Type", "Count", "Slices", "% of Slices"])
        row = start_row + 1
        for record in self._tables["slices_by_type"].to_dict("records"):
            sheet.cell(row=row, column=1, value=record["label"])
            sheet.cell(row=row, column=2, value=int(record["count"]))
            sheet.cell(row=row, column=3, value=float(record["slices"])).number_format = '#,##0'
            sheet.cell(row=row, column=4, value=f"=IF($B$4=0,0,C{row}/$B$4)").number_format = '0.0%'
            row += 1

    # ------------------------------------------------------------------ #
    # Vesting
    # ------------------------------------------------------------------ #

    def _render_vesting(self, sheet: Worksheet) -> None:
        table = self._tables["vesting_table"]

        sheet["A1"] = f"Vesting as of {self.config.as_of_date.isoformat()}"
        sheet["A1"].font = self.title_font

        headers = [
            "Contributor", "State", "Start", "Cliff", "Full Vest",
            "Slices", "% Vested", "Vested Slices", "Unvested Slices",
        ]
        self._write_header_row(sheet, 3, headers)

        row = 4
        for record in table.to_dict("records"):
            values = [
                record["name"],
                VESTING_STATE_LABELS[record["state"]],
                record["start_date"],
                record["cliff_date"],
                record["full_vest_date"],
                float(record["slices"]),
                float(record["percent_vested"]) / 100,
                float(record["vested_slices"]),
                f"=F{row}-H{row}",
            ]
            for col, value in enumerate(values, start=1):
                cell = sheet.cell(row=row, column=col, value=value)
                cell.border = self.thin_border
            for col in (3, 4, 5):
                sheet.cell(row=row, column=col).number_format = 'yyyy-mm-dd'
            for col in (6, 8, 9):
                sheet.cell(row=row, column=col).number_format = '#,##0'
            sheet.cell(row=row, column=7).number_format = '0.0%'
            row += 1

        summary = self._tables["vesting_summary"].to_dict("records")[0]
        row += 1
        sheet.cell(row=row, column=1, value="Overall % Vested").font = self.bold_font
        sheet.cell(row=row, column=2, value=float(summary["overall_percent_vested"]) / 100).number_format = '0.0%'
        if summary["next_cliff_date"] is not None:
            row += 1
            sheet.cell(row=row, column=1, value="Next Cliff").font = self.bold_font
            sheet.cell(row=row, column=2, value=summary["next_cliff_date"]).number_format = 'yyyy-mm-dd'
        if summary["next_full_vest_date"] is not None:
            row += 1
            sheet.cell(row=row, column=1, value="Next Full Vest").font = self.bold_font
            sheet.cell(row=row, column=2, value=summary["next_full_vest_date"]).number_format = 'yyyy-mm-dd'

        self._set_widths(sheet, [26, 14, 12, 12, 12, 12, 10, 14, 16])

    # ------------------------------------------------------------------ #
    # Equity Values
    # ------------------------------------------------------------------ #

    def _render_equity_values(self, sheet: Worksheet) -> None:
        cfg = self.config
        table = self._tables["equity_values"]

        sheet["A1"] = "Estimated Valuation" if cfg.valuation_mode == "auto" else "Valuation"
        sheet["A1"].font = self.bold_font
        valuation = sheet["B1"]
        valuation.value = float(cfg.valuation)
        valuation.number_format = '$#,##0'
        valuation.font = self.blue_font
        valuation.fill = self.input_cell_fill
        valuation.comment = Comment("Edit to revalue every contributor", "System")

        if cfg.valuation_confidence is not None:
            sheet["A2"] = "Confidence"
            sheet["A2"].font = self.bold_font
            sheet["B2"] = CONFIDENCE_LABELS[cfg.valuation_confidence]

        headers = ["Contributor", "Slices", "Equity %", "Dollar Value"]
        if cfg.include_vesting:
            headers += ["Vested Slices", "Vested Value"]
        header_row = 4
        self._write_header_row(sheet, header_row, headers)

        first = header_row + 1
        total_row = first + len(table)
        row = first
        for record in table.to_dict("records"):
            sheet.cell(row=row, column=1, value=record["name"])
            sheet.cell(row=row, column=2, value=float(record["slices"])).number_format = '#,##0'
            sheet.cell(
                row=row, column=3,
                value=f"=IF({SUMMARY_TOTAL_SLICES}=0,0,B{row}/{SUMMARY_TOTAL_SLICES})",
            ).number_format = '0.0%'
            sheet.cell(row=row, column=4, value=f"=C{row}*$B$1").number_format = '$#,##0.00'
            if cfg.include_vesting:
                sheet.cell(row=row, column=5, value=float(record["vested_slices"])).number_format = '#,##0'
                sheet.cell(
                    row=row, column=6,
                    value=f"=IF({SUMMARY_TOTAL_SLICES}=0,0,E{row}/{SUMMARY_TOTAL_SLICES}*$B$1)",
                ).number_format = '$#,##0.00'
            for col in range(1, len(headers) + 1):
                sheet.cell(row=row, column=col).border = self.thin_border
            row += 1

        sheet.cell(row=total_row, column=1, value="Total").font = self.bold_font
        if len(table):
            sheet.cell(row=total_row, column=2, value=f"=SUM(B{first}:B{total_row - 1})")
            sheet.cell(row=total_row, column=4, value=f"=SUM(D{first}:D{total_row - 1})")
        else:
            sheet.cell(row=total_row, column=2, value=0)
            sheet.cell(row=total_row, column=4, value=0)
        sheet.cell(row=total_row, column=2).number_format = '#,##0'
        sheet.cell(row=total_row, column=4).number_format = '$#,##0.00'
        for col in range(1, len(headers) + 1):
            cell = sheet.cell(row=total_row, column=col)
            cell.fill = self.total_fill
            cell.border = self.top_border

        note = sheet.cell(row=total_row + 2, column=1, value=DISCLAIMER)
        note.font = self.note_font
        self._set_widths(sheet, [26, 14, 12, 16, 14, 16])

    # ------------------------------------------------------------------ #
    # Activity
    # ------------------------------------------------------------------ #

    def _render_activity(self, sheet: Worksheet) -> None:
        headers = ["Timestamp", "Action", "Entity Type", "Name", "Slices Affected", "Cascade Count"]
        self._write_header_row(sheet, 1, headers)

        row = 2
        for event in self.config.activity:
            values = [
                self._excel_datetime(event.timestamp),
                event.type.capitalize(),
                event.entity_type,
                event.entity_name,
                float(event.slices_affected),
                event.cascade_count,
            ]
            for col, value in enumerate(values, start=1):
                sheet.cell(row=row, column=col, value=value).border = self.thin_border
            sheet.cell(row=row, column=1).number_format = 'yyyy-mm-dd hh:mm'
            sheet.cell(row=row, column=5).number_format = '#,##0'
            row += 1

        sheet.freeze_panes = "A2"
        self._set_widths(sheet, [18, 10, 14, 36, 16, 14])


def render_equity_workbook(config: EquityWorkbookCFG, output_path: str) -> str:
    """Convenience wrapper around EquityWorkbookRenderer.render."""
    return EquityWorkbookRenderer(config).render(output_path)
