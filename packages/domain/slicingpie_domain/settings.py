"""Engine settings and logging setup.

Settings come from code (``EngineSettings(...)``) or the environment
(``EngineSettings.from_env()``):

    SLICINGPIE_ACTIVITY_LOG_LIMIT      activity log capacity (default 100)
    SLICINGPIE_VALUATION_HISTORY_LIMIT saved valuations kept (default 20)
    SLICINGPIE_BASE_MULTIPLE           profit multiple for estimates (default 3.0)
    SLICINGPIE_STORAGE_DIR             directory for JSON file persistence
    SLICINGPIE_LOG_LEVEL               logging level name (default INFO)
"""

import logging
import os
from decimal import Decimal
from pathlib import Path
from typing import Literal, Optional
from pydantic import Field

from .schemas.base import DomainModel
from .schemas.valuation import BASE_MULTIPLE, MAX_HISTORY_ENTRIES

ENV_PREFIX = "SLICINGPIE_"

DEFAULT_ACTIVITY_LOG_LIMIT = 100

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


class EngineSettings(DomainModel):
    """Tunable limits and constants for the engine."""

    activity_log_limit: int = Field(
        default=DEFAULT_ACTIVITY_LOG_LIMIT,
        gt=0,
        description="Maximum activity events kept (oldest evicted first)"
    )

    valuation_history_limit: int = Field(
        default=MAX_HISTORY_ENTRIES,
        gt=0,
        description="Maximum saved valuation snapshots kept"
    )

    base_multiple: Decimal = Field(
        default=BASE_MULTIPLE,
        gt=0,
        description="Profit multiple used by the valuation estimator"
    )

    storage_dir: Optional[Path] = Field(
        default=None,
        description="Directory for JsonFileKeyValueStore. None = in-memory only"
    )

    log_level: LogLevel = "INFO"

    @classmethod
    def from_env(cls, environ: Optional[dict] = None) -> "EngineSettings":
        """Build settings from ``SLICINGPIE_*`` environment variables."""
        env = os.environ if environ is None else environ
        values = {}
        for field_name in cls.model_fields:
            raw = env.get(ENV_PREFIX + field_name.upper(), "").strip()
            if raw:
                values[field_name] = raw.upper() if field_name == "log_level" else raw
        return cls(**values)


def configure_logging(settings: Optional[EngineSettings] = None) -> None:
    """Basic stderr logging for applications embedding the engine.

    The engine's loggers are set to ``settings.log_level``.
    """
    level = (settings or EngineSettings()).log_level
    logging.basicConfig(format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    logging.getLogger(__package__).setLevel(level)
