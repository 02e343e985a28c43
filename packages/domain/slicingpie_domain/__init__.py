"""Slicing Pie Domain Engine

Dynamic equity split for bootstrapped startups: slices from contributions,
equity percentages, cliff/linear vesting, soft deletion with cascade and a
rough valuation estimate.
"""

__version__ = "0.1.0"

from .schemas import *  # noqa: F401,F403
from .exceptions import (
    DeletedRecordError,
    SlicingPieError,
    UnknownContributionError,
    UnknownContributorError,
)
from .settings import EngineSettings, configure_logging
from .slicing import (
    ContributorEquity,
    MULTIPLIERS,
    calculate_all_equity,
    calculate_equity_percentage,
    calculate_slices,
    get_multiplier,
    get_total_slices,
    preview_slices,
)
from .vesting import calculate_vesting_status, get_vesting_summary
from .activity import ActivityRecorder
from .valuation import ValuationBook, calculate_equity_value, calculate_valuation
from .store import PieStore
from .importing import (
    InvalidImport,
    ValidImport,
    dump_portfolio_json,
    load_portfolio_json,
    validate_portfolio,
)
from .persistence import (
    InMemoryKeyValueStore,
    JsonFileKeyValueStore,
    PersistenceAdapter,
    key_value_store_for,
)
