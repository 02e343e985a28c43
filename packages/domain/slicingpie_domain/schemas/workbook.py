"""Workbook configuration - top-level entry point for Excel export.

The EquityWorkbookCFG is the root configuration object that ties together:
- The portfolio to report on (company, contributors, contributions)
- The evaluation date for vesting
- An optional valuation for the equity value sheet
- Display options (sheets to include)

This is what gets passed to the Excel renderer to generate the workbook.
"""

from typing import List, Optional
from datetime import date
from pydantic import Field, model_validator

from .base import DomainModel, MoneyAmount
from .activity import ActivityEvent
from .portfolio import PortfolioDocument
from .valuation import ConfidenceLevel, ValuationMode


class EquityWorkbookCFG(DomainModel):
    """Top-level configuration for Excel workbook generation.

    Example:
        Year-end equity report with vesting and a $500K manual valuation:

        EquityWorkbookCFG(
            portfolio=store.export_portfolio(),
            as_of_date=date(2024, 12, 31),
            valuation=Decimal("500000"),
            activity=store.activity.events,
        )
    """

    portfolio: PortfolioDocument = Field(
        description="Portfolio to render (deleted records are filtered out for equity sheets)"
    )

    title: Optional[str] = Field(
        default=None,
        description="Report title. None = '<company name> Equity Report'"
    )

    as_of_date: date = Field(
        default_factory=date.today,
        description="Date vesting is evaluated at"
    )

    valuation: Optional[MoneyAmount] = Field(
        default=None,
        description="Company valuation in dollars for the equity values sheet. None = skip sheet"
    )

    valuation_mode: ValuationMode = Field(
        default="manual",
        description="How the valuation was obtained. 'auto' estimates need a confidence level"
    )

    valuation_confidence: Optional[ConfidenceLevel] = Field(
        default=None,
        description="Confidence of an estimated valuation, printed next to the value"
    )

    activity: List[ActivityEvent] = Field(
        default_factory=list,
        description="Activity log entries (newest first) for the activity sheet"
    )

    include_vesting: bool = Field(
        default=True,
        description="Include the Vesting sheet and vested columns"
    )

    include_deleted: bool = Field(
        default=False,
        description="Also list soft-deleted contributions on the Contributions sheet"
    )

    include_activity: bool = Field(
        default=True,
        description="Include the Activity sheet (only rendered when there are events)"
    )

    @model_validator(mode='after')
    def validate_valuation_fields(self):
        if self.valuation_confidence is not None and self.valuation is None:
            raise ValueError("valuation_confidence given without a valuation")
        if self.valuation_mode == "auto" and self.valuation is not None and self.valuation_confidence is None:
            raise ValueError("an estimated valuation needs a valuation_confidence")
        return self

    @property
    def report_title(self) -> str:
        return self.title or f"{self.portfolio.company.name} Equity Report"
