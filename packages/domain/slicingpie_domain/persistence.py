"""Key-value persistence for a PieStore, decoupled from the engine.

The engine never writes anything itself. A ``PersistenceAdapter`` subscribes
to store changes, remembers which state areas are dirty and writes whole
arrays under fixed keys when flushed:

    slicingPie_company             company object
    slicingPie_contributors        contributor array (deleted included)
    slicingPie_contributions       contribution array (flat deletedAt/deletedWithParent)
    slicingPie_activityLog         activity events, newest first
    slicingPie_valuationConfig     valuation config object
    slicingPie_valuationHistory    saved valuations, newest first

A failed write is logged and the area stays dirty, so the next flush retries
it. Calculation state is never affected by storage failures.
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, FrozenSet, Optional, Protocol, Set

from .schemas import (
    ActivityEvent,
    Company,
    Contribution,
    Contributor,
    ValuationConfig,
    ValuationHistoryEntry,
)
from .store import (
    CHANGE_ACTIVITY,
    CHANGE_COMPANY,
    CHANGE_CONTRIBUTIONS,
    CHANGE_CONTRIBUTORS,
    PieStore,
)
from .settings import EngineSettings
from .valuation import ValuationBook

log = logging.getLogger(__name__)

KEY_COMPANY = "slicingPie_company"
KEY_CONTRIBUTORS = "slicingPie_contributors"
KEY_CONTRIBUTIONS = "slicingPie_contributions"
KEY_ACTIVITY_LOG = "slicingPie_activityLog"
KEY_VALUATION_CONFIG = "slicingPie_valuationConfig"
KEY_VALUATION_HISTORY = "slicingPie_valuationHistory"

CHANGE_VALUATION = "valuation"


# =============================================================================
# Key-Value Stores
# =============================================================================

class KeyValueStore(Protocol):
    """Anything that can hold JSON-compatible values by string key."""

    def get(self, key: str, default: Any = None) -> Any:
        ...

    def set(self, key: str, value: Any) -> None:
        ...


class InMemoryKeyValueStore:
    """Dict-backed store. Values are JSON round-tripped like a real backend."""

    def __init__(self):
        self._data: Dict[str, str] = {}

    def get(self, key: str, default: Any = None) -> Any:
        if key not in self._data:
            return default
        return json.loads(self._data[key])

    def set(self, key: str, value: Any) -> None:
        self._data[key] = json.dumps(value)

    def keys(self):
        return list(self._data)


class JsonFileKeyValueStore:
    """One ``<key>.json`` file per key in a directory."""

    def __init__(self, directory: Path):
        self.directory = Path(directory)

    def _path(self, key: str) -> Path:
        return self.directory / f"{key}.json"

    def get(self, key: str, default: Any = None) -> Any:
        path = self._path(key)
        if not path.exists():
            return default
        return json.loads(path.read_text(encoding="utf-8"))

    def set(self, key: str, value: Any) -> None:
        self.directory.mkdir(parents=True, exist_ok=True)
        path = self._path(key)
        tmp = path.with_suffix(".json.tmp")
        tmp.write_text(json.dumps(value, indent=2), encoding="utf-8")
        tmp.replace(path)


def key_value_store_for(settings: EngineSettings) -> KeyValueStore:
    """JSON files under ``settings.storage_dir``, or memory when it is unset."""
    if settings.storage_dir is None:
        return InMemoryKeyValueStore()
    return JsonFileKeyValueStore(settings.storage_dir)


# =============================================================================
# Adapter
# =============================================================================

class PersistenceAdapter:
    """Writes a PieStore (and optionally a ValuationBook) to a KeyValueStore.

    Example:
        kv = JsonFileKeyValueStore(Path("~/.slicingpie").expanduser())
        store = PieStore()
        adapter = PersistenceAdapter(store, kv)
        adapter.load()
        store.add_contributor("Alice")
        adapter.flush()
    """

    def __init__(
        self,
        store: PieStore,
        kv: KeyValueStore,
        valuation: Optional[ValuationBook] = None,
        autoflush: bool = False,
    ):
        self.store = store
        self.kv = kv
        self.valuation = valuation
        self.autoflush = autoflush
        self._dirty: Set[str] = set()
        self._unsubscribe = store.subscribe(self._on_change)

    @classmethod
    def from_settings(
        cls,
        store: PieStore,
        valuation: Optional[ValuationBook] = None,
        autoflush: bool = False,
    ) -> "PersistenceAdapter":
        """Adapter over the key-value store named by ``store.settings``."""
        return cls(store, key_value_store_for(store.settings), valuation, autoflush)

    @property
    def dirty(self) -> FrozenSet[str]:
        return frozenset(self._dirty)

    @property
    def is_dirty(self) -> bool:
        return bool(self._dirty)

    def _on_change(self, areas: FrozenSet[str]) -> None:
        self._dirty |= areas
        if self.autoflush:
            self.flush()

    def valuation_changed(self) -> None:
        """Mark valuation state dirty (ValuationBook has no change notifications)."""
        self._on_change(frozenset({CHANGE_VALUATION}))

    def close(self) -> None:
        """Stop listening to the store. Pending changes are not written."""
        self._unsubscribe()

    def _serialize(self, area: str) -> Dict[str, Any]:
        store = self.store
        if area == CHANGE_COMPANY:
            return {KEY_COMPANY: store.company.model_dump(mode="json", by_alias=True)}
        if area == CHANGE_CONTRIBUTORS:
            return {KEY_CONTRIBUTORS: [c.model_dump(mode="json", by_alias=True) for c in store.contributors]}
        if area == CHANGE_CONTRIBUTIONS:
            return {KEY_CONTRIBUTIONS: [c.to_record() for c in store.contributions]}
        if area == CHANGE_ACTIVITY:
            return {KEY_ACTIVITY_LOG: [e.model_dump(mode="json", by_alias=True) for e in store.activity]}
        if area == CHANGE_VALUATION:
            if self.valuation is None:
                return {}
            return {
                KEY_VALUATION_CONFIG: self.valuation.config.model_dump(mode="json", by_alias=True),
                KEY_VALUATION_HISTORY: [
                    h.model_dump(mode="json", by_alias=True) for h in self.valuation.history
                ],
            }
        raise ValueError(f"Unknown state area: {area}")

    def flush(self) -> bool:
        """Write every dirty area.

        Returns:
            True when nothing is left dirty
        """
        for area in sorted(self._dirty):
            try:
                for key, value in self._serialize(area).items():
                    self.kv.set(key, value)
            except (OSError, TypeError) as exc:
                log.warning("Failed to persist %s: %s", area, exc)
                continue
            self._dirty.discard(area)
        return not self._dirty

    def load(self) -> None:
        """Hydrate the store (and valuation book) from the key-value store.

        Missing keys keep the current in-memory defaults. Stored data that no
        longer validates is logged and skipped.
        """
        store = self.store

        company = self._read(KEY_COMPANY, lambda raw: Company.model_validate(raw))
        contributors = self._read(KEY_CONTRIBUTORS, lambda raw: [Contributor.model_validate(r) for r in raw])
        contributions = self._read(KEY_CONTRIBUTIONS, lambda raw: [Contribution.model_validate(r) for r in raw])
        events = self._read(KEY_ACTIVITY_LOG, lambda raw: [ActivityEvent.model_validate(r) for r in raw])

        if company is not None:
            store.company = company
        if contributors is not None:
            store.contributors = contributors
        if contributions is not None:
            store.contributions = contributions
        if events is not None:
            store.activity.replace(events)

        if self.valuation is not None:
            config = self._read(KEY_VALUATION_CONFIG, lambda raw: ValuationConfig.model_validate(raw))
            history = self._read(
                KEY_VALUATION_HISTORY,
                lambda raw: [ValuationHistoryEntry.model_validate(r) for r in raw],
            )
            if config is not None:
                self.valuation.config = config
            if history is not None:
                self.valuation.history = history[: self.valuation.settings.valuation_history_limit]

        store.invalidate()
        self._dirty.clear()
        log.info(
            "Loaded %d contributors and %d contributions",
            len(store.contributors), len(store.contributions),
        )

    def _read(self, key: str, parse):
        try:
            raw = self.kv.get(key)
            if raw is None:
                return None
            return parse(raw)
        except (ValueError, TypeError, OSError) as exc:
            log.warning("Ignoring stored %s: %s", key, exc)
            return None
