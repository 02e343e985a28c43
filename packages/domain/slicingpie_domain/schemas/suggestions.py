"""Draft contributions proposed by an AI assistant.

A suggestion is only a draft. It never touches the pie until a person accepts
it, and acceptance goes through the normal ``PieStore.add_contribution`` path
(see ``PieStore.accept_suggestion``).
"""

from typing import Literal, Optional
from pydantic import Field

from .base import DomainModel, MoneyAmount
from .contributions import ContributionType


class ContributionSuggestion(DomainModel):
    """Contribution-shaped proposal returned by the suggestion service."""

    type: ContributionType

    value: MoneyAmount = Field(
        gt=0,
        description="Proposed raw value: hours for time, dollars otherwise"
    )

    dollar_value: Optional[MoneyAmount] = Field(
        default=None,
        description="Dollar equivalent for ideas/relationships, informational only"
    )

    reasoning: str = Field(
        description="Why the assistant proposed this value"
    )

    confidence: Literal["low", "medium", "high"]
