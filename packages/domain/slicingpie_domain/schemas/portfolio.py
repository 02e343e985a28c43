"""Import/export document: the full portfolio as one JSON file.

Wire format (camelCase keys):

    {
      "version": "1.0",
      "exportedAt": "2024-06-01T12:00:00+00:00",
      "company": {"name": "Acme Startup", "description": ""},
      "contributors": [{"id": "...", "name": "...", "hourlyRate": 150, ...}],
      "contributions": [{"id": "...", "contributorId": "...", "type": "time",
                         "value": 40, "slices": 12000, "deletedAt": null, ...}]
    }
"""

from typing import Any, Dict, List
from datetime import datetime
from pydantic import Field

from .base import DomainModel, utc_now
from .contributors import Company, Contributor
from .contributions import Contribution


PORTFOLIO_FORMAT_VERSION = "1.0"


class PortfolioDocument(DomainModel):
    """Everything needed to rebuild a pie."""

    version: str = Field(
        default=PORTFOLIO_FORMAT_VERSION,
        min_length=1,
        description="File format version"
    )

    exported_at: datetime = Field(default_factory=utc_now)

    company: Company = Field(default_factory=Company)

    contributors: List[Contributor] = Field(default_factory=list)

    contributions: List[Contribution] = Field(default_factory=list)

    def to_record(self) -> Dict[str, Any]:
        """JSON-ready dict in the export file format."""
        record = self.model_dump(
            mode="json",
            by_alias=True,
            exclude={"contributions"},
        )
        record["contributions"] = [c.to_record() for c in self.contributions]
        return record
