"""Demo pie for onboarding: Acme Startup with three contributors.

Total slices: 48,500

    Alice Developer   40 + 20 hrs @ $150/hr x 2 = 18,000 + idea 2,000  -> 20,000 (41.2%)
    Bob Designer      30 hrs @ $125/hr x 2 = 7,500 + laptop $500 x 2   ->  8,500 (17.5%)
    Carol Investor    $5,000 cash x 4                                  -> 20,000 (41.2%)
"""

from datetime import date, datetime, timezone
from decimal import Decimal

from .schemas import Company, Contribution, Contributor, PortfolioDocument


SAMPLE_CONTRIBUTOR_IDS = frozenset({"sample-alice", "sample-bob", "sample-carol"})


def _at(year: int, month: int, day: int) -> datetime:
    return datetime(year, month, day, tzinfo=timezone.utc)


def _contributor(contributor_id, name, email, hourly_rate, created):
    return Contributor(
        id=contributor_id,
        name=name,
        email=email,
        hourly_rate=Decimal(hourly_rate),
        created_at=created,
        updated_at=created,
    )


def _contribution(contribution_id, contributor_id, contribution_type, value,
                  description, on, multiplier, slices):
    created = _at(on.year, on.month, on.day)
    return Contribution(
        id=contribution_id,
        contributor_id=contributor_id,
        type=contribution_type,
        value=Decimal(value),
        description=description,
        date=on,
        multiplier=Decimal(multiplier),
        slices=Decimal(slices),
        created_at=created,
        updated_at=created,
    )


def sample_portfolio() -> PortfolioDocument:
    """Fresh copy of the demo pie."""
    return PortfolioDocument(
        company=Company(
            name="Acme Startup",
            description="A sample company for demonstration purposes",
        ),
        contributors=[
            _contributor("sample-alice", "Alice Developer", "alice@example.com", 150, _at(2024, 1, 1)),
            _contributor("sample-bob", "Bob Designer", "bob@example.com", 125, _at(2024, 1, 15)),
            _contributor("sample-carol", "Carol Investor", "carol@example.com", 0, _at(2024, 2, 1)),
        ],
        contributions=[
            _contribution("contrib-1", "sample-alice", "time", 40,
                          "Initial product development and architecture", date(2024, 1, 15), 2, 12000),
            _contribution("contrib-2", "sample-alice", "time", 20,
                          "MVP feature implementation", date(2024, 2, 1), 2, 6000),
            _contribution("contrib-3", "sample-bob", "time", 30,
                          "UI/UX design and branding", date(2024, 1, 20), 2, 7500),
            _contribution("contrib-4", "sample-bob", "non-cash", 500,
                          "Personal laptop contributed to project", date(2024, 1, 25), 2, 1000),
            _contribution("contrib-5", "sample-carol", "cash", 5000,
                          "Seed investment for initial operations", date(2024, 2, 1), 4, 20000),
            _contribution("contrib-6", "sample-alice", "idea", 2000,
                          "Original product concept and business model", date(2024, 1, 1), 1, 2000),
        ],
    )
