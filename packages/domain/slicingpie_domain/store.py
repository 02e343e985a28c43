"""In-memory pie state with soft-delete cascade and change notifications.

``PieStore`` owns the company, contributors, contributions and the activity
log. Callers hold a reference to a store and go through its methods; nothing
here is global.

Soft-delete rules:

    delete contributor     contributor.deleted_at set; every *active*
                           contribution of theirs -> DeletedViaParent(contributor)
    delete contribution    Active -> DeletedDirect
    restore contributor    contributor.deleted_at cleared; only contributions
                           DeletedViaParent(that contributor) -> Active
    restore contribution   any deleted state -> Active
    hard delete            record removed for good; a contributor takes all of
                           their contributions (active or deleted) with them

Operations that find nothing to change return False, record nothing and
notify nobody. Every successful delete/restore records exactly one
ActivityEvent.

Listeners receive the set of state areas a mutation touched
(``"company"``, ``"contributors"``, ``"contributions"``, ``"activity"``);
``persistence.PersistenceAdapter`` is one such listener.
"""

import logging
from datetime import date
from decimal import Decimal
from typing import Any, Callable, Dict, FrozenSet, List, Optional

from .activity import ActivityRecorder
from .exceptions import (
    DeletedRecordError,
    UnknownContributionError,
    UnknownContributorError,
)
from .schemas import (
    Active,
    Company,
    Contribution,
    ContributionSuggestion,
    ContributionType,
    Contributor,
    DeletedDirect,
    DeletedViaParent,
    EquityValueRow,
    PortfolioDocument,
    VestingConfig,
    VestingStatus,
    VestingSummary,
    utc_now,
)
from .sample_data import SAMPLE_CONTRIBUTOR_IDS, sample_portfolio
from .settings import EngineSettings
from .slicing import (
    ContributorEquity,
    calculate_all_equity,
    calculate_slices,
    get_multiplier,
    get_total_slices,
    slices_by_contributor,
)
from .valuation import calculate_equity_values
from .vesting import calculate_vesting_status, get_vesting_summary

log = logging.getLogger(__name__)

ZERO = Decimal("0")

CHANGE_COMPANY = "company"
CHANGE_CONTRIBUTORS = "contributors"
CHANGE_CONTRIBUTIONS = "contributions"
CHANGE_ACTIVITY = "activity"
ALL_CHANGES = frozenset({CHANGE_COMPANY, CHANGE_CONTRIBUTORS, CHANGE_CONTRIBUTIONS, CHANGE_ACTIVITY})

Listener = Callable[[FrozenSet[str]], None]

_EDITABLE_CONTRIBUTOR_FIELDS = frozenset({"name", "email", "hourly_rate", "active", "vesting"})
_EDITABLE_CONTRIBUTION_FIELDS = frozenset({"type", "value", "date", "description"})


def contribution_display_name(contribution: Contribution, contributor: Optional[Contributor]) -> str:
    """'cash contribution (Carol)', or just 'cash contribution' for an unknown contributor."""
    name = f"{contribution.type} contribution"
    if contributor is not None:
        name += f" ({contributor.name})"
    return name


class PieStore:
    """State store for one pie.

    Example:
        store = PieStore()
        alice = store.add_contributor("Alice", hourly_rate=Decimal("100"))
        store.add_contribution(alice.id, "time", Decimal("10"), date(2024, 1, 15))
        store.total_slices()                    # Decimal('2000')
        store.soft_delete_contributor(alice.id) # True, contribution cascades
        store.restore_contributor(alice.id)     # True, contribution comes back
    """

    def __init__(
        self,
        company: Optional[Company] = None,
        contributors: Optional[List[Contributor]] = None,
        contributions: Optional[List[Contribution]] = None,
        settings: Optional[EngineSettings] = None,
        activity: Optional[ActivityRecorder] = None,
    ):
        self.settings = settings or EngineSettings()
        self.company = company or Company()
        self.contributors: List[Contributor] = list(contributors or [])
        self.contributions: List[Contribution] = list(contributions or [])
        self.activity = activity or ActivityRecorder(limit=self.settings.activity_log_limit)

        self._listeners: List[Listener] = []
        self._equity_cache: Optional[List[ContributorEquity]] = None

    # =========================================================================
    # Change Notification
    # =========================================================================

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a change listener. Returns a callable that unsubscribes it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def invalidate(self) -> None:
        """Drop memoized equity after state was replaced without notification."""
        self._equity_cache = None

    def _changed(self, *areas: str) -> None:
        self._equity_cache = None
        changed = frozenset(areas)
        for listener in list(self._listeners):
            listener(changed)

    # =========================================================================
    # Queries
    # =========================================================================

    def active_contributors(self) -> List[Contributor]:
        return [c for c in self.contributors if not c.is_deleted]

    def deleted_contributors(self) -> List[Contributor]:
        return [c for c in self.contributors if c.is_deleted]

    def active_contributions(self) -> List[Contribution]:
        return [c for c in self.contributions if not c.is_deleted]

    def deleted_contributions(self) -> List[Contribution]:
        return [c for c in self.contributions if c.is_deleted]

    def get_contributor(self, contributor_id: str) -> Optional[Contributor]:
        """Contributor by id, deleted or not."""
        return next((c for c in self.contributors if c.id == contributor_id), None)

    def get_contribution(self, contribution_id: str) -> Optional[Contribution]:
        """Contribution by id, deleted or not."""
        return next((c for c in self.contributions if c.id == contribution_id), None)

    def contributions_for(self, contributor_id: str, include_deleted: bool = False) -> List[Contribution]:
        return [
            c for c in self.contributions
            if c.contributor_id == contributor_id and (include_deleted or not c.is_deleted)
        ]

    def total_slices(self) -> Decimal:
        """Slices across all active contributions."""
        return get_total_slices(self.active_contributions())

    def contributor_slices(self) -> Dict[str, Decimal]:
        """Active slices per contributor id."""
        return slices_by_contributor(self.active_contributions())

    def equity(self) -> List[ContributorEquity]:
        """Equity for every active contributor, recomputed only after a mutation."""
        if self._equity_cache is None:
            log.debug("Recomputing equity for %d contributors", len(self.contributors))
            self._equity_cache = calculate_all_equity(
                self.active_contributors(), self.active_contributions()
            )
        return list(self._equity_cache)

    def vesting_status(self, contributor_id: str, as_of_date: Optional[date] = None) -> VestingStatus:
        contributor = self.get_contributor(contributor_id)
        if contributor is None:
            raise UnknownContributorError(contributor_id)
        total = self.contributor_slices().get(contributor_id, ZERO)
        return calculate_vesting_status(contributor.vesting, total, as_of_date)

    def vesting_summary(self, as_of_date: Optional[date] = None) -> VestingSummary:
        return get_vesting_summary(self.active_contributors(), self.contributor_slices(), as_of_date)

    def equity_values(
        self,
        valuation: Optional[Decimal],
        as_of_date: Optional[date] = None,
        include_vesting: bool = True,
    ) -> List[EquityValueRow]:
        return calculate_equity_values(
            self.equity(), valuation, as_of_date, include_vesting, total_slices=self.total_slices()
        )

    @property
    def has_data(self) -> bool:
        return bool(self.contributors or self.contributions)

    # =========================================================================
    # Company and Contributors
    # =========================================================================

    def update_company(self, name: Optional[str] = None, description: Optional[str] = None) -> Company:
        if name is not None:
            self.company.name = name
        if description is not None:
            self.company.description = description
        self._changed(CHANGE_COMPANY)
        return self.company

    def add_contributor(
        self,
        name: str,
        hourly_rate: Decimal = ZERO,
        email: Optional[str] = None,
        vesting: Optional[VestingConfig] = None,
        active: bool = True,
    ) -> Contributor:
        contributor = Contributor(
            name=name,
            hourly_rate=hourly_rate,
            email=email,
            vesting=vesting,
            active=active,
        )
        self.contributors.append(contributor)
        log.info("Added contributor %s (%s)", contributor.name, contributor.id)
        self._changed(CHANGE_CONTRIBUTORS)
        return contributor

    def update_contributor(self, contributor_id: str, **changes: Any) -> Contributor:
        """Edit name/email/hourly_rate/active/vesting.

        A new hourly rate only affects time contributions recorded afterwards.

        Raises:
            UnknownContributorError: no such contributor
            DeletedRecordError: contributor is soft-deleted
            ValueError: a field that cannot be edited was passed
            pydantic.ValidationError: the edited contributor is invalid
        """
        contributor = self._require_contributor(contributor_id)
        _check_editable(changes, _EDITABLE_CONTRIBUTOR_FIELDS)

        updated = Contributor.model_validate(
            {**contributor.model_dump(), **changes, "updated_at": utc_now()}
        )
        self.contributors[self.contributors.index(contributor)] = updated
        self._changed(CHANGE_CONTRIBUTORS)
        return updated

    # =========================================================================
    # Contributions
    # =========================================================================

    def add_contribution(
        self,
        contributor_id: str,
        contribution_type: ContributionType,
        value: Decimal,
        contribution_date: Optional[date] = None,
        description: Optional[str] = None,
    ) -> Contribution:
        """Record a contribution with slices frozen at the contributor's current rate.

        Raises:
            UnknownContributorError: no such contributor
            DeletedRecordError: contributor is soft-deleted
            pydantic.ValidationError: value is not positive, type is unknown, ...
        """
        contributor = self._require_contributor(contributor_id)

        contribution = Contribution(
            contributor_id=contributor.id,
            type=contribution_type,
            value=value,
            date=contribution_date or date.today(),
            description=description,
            multiplier=get_multiplier(contribution_type),
            slices=calculate_slices(contribution_type, value, contributor.hourly_rate),
        )
        self.contributions.append(contribution)
        log.info(
            "Added %s contribution %s for %s: %s slices",
            contribution.type, contribution.id, contributor.name, contribution.slices,
        )
        self._changed(CHANGE_CONTRIBUTIONS)
        return contribution

    def update_contribution(self, contribution_id: str, **changes: Any) -> Contribution:
        """Edit type/value/date/description.

        Slices are recomputed, at the contributor's current rate, only when
        the type or value changes. Date and description edits keep the
        recorded slices.

        Raises:
            UnknownContributionError: no such contribution
            DeletedRecordError: contribution is soft-deleted
            ValueError: a field that cannot be edited was passed
            pydantic.ValidationError: the edited contribution is invalid
        """
        contribution = self.get_contribution(contribution_id)
        if contribution is None:
            raise UnknownContributionError(contribution_id)
        if contribution.is_deleted:
            raise DeletedRecordError(f"Contribution is deleted: {contribution_id}")
        _check_editable(changes, _EDITABLE_CONTRIBUTION_FIELDS)

        values = {**contribution.model_dump(), **changes, "updated_at": utc_now()}

        recompute = any(
            field in changes and changes[field] != getattr(contribution, field)
            for field in ("type", "value")
        )
        if recompute:
            contributor = self.get_contributor(contribution.contributor_id)
            rate = contributor.hourly_rate if contributor is not None else None
            values["multiplier"] = get_multiplier(values["type"])
            values["slices"] = calculate_slices(values["type"], values["value"], rate)
            log.debug("Recomputed slices for %s: %s", contribution_id, values["slices"])

        updated = Contribution.model_validate(values)
        self.contributions[self.contributions.index(contribution)] = updated
        self._changed(CHANGE_CONTRIBUTIONS)
        return updated

    def accept_suggestion(
        self,
        contributor_id: str,
        suggestion: ContributionSuggestion,
        contribution_date: Optional[date] = None,
        description: Optional[str] = None,
    ) -> Contribution:
        """Turn an accepted AI suggestion into a normal contribution."""
        return self.add_contribution(
            contributor_id,
            suggestion.type,
            suggestion.value,
            contribution_date,
            description if description is not None else suggestion.reasoning,
        )

    # =========================================================================
    # Soft Delete / Restore
    # =========================================================================

    def soft_delete_contributor(self, contributor_id: str) -> bool:
        """Delete a contributor and cascade to their active contributions.

        Contributions that were already deleted on their own keep their
        DeletedDirect state and are not counted in the cascade.
        """
        contributor = self.get_contributor(contributor_id)
        if contributor is None or contributor.is_deleted:
            log.debug("soft_delete_contributor(%s): nothing to delete", contributor_id)
            return False

        now = utc_now()
        contributor.deleted_at = now
        contributor.touch()

        cascaded = self.contributions_for(contributor_id)
        for contribution in cascaded:
            contribution.deletion = DeletedViaParent(deleted_at=now, parent_id=contributor_id)
            contribution.touch()

        slices = get_total_slices(cascaded)
        self.activity.record(
            "deleted", "contributor", contributor.id, contributor.name,
            slices, cascade_count=len(cascaded),
        )
        log.info(
            "Deleted contributor %s with %d contributions (%s slices)",
            contributor.name, len(cascaded), slices,
        )
        self._changed(CHANGE_CONTRIBUTORS, CHANGE_CONTRIBUTIONS, CHANGE_ACTIVITY)
        return True

    def soft_delete_contribution(self, contribution_id: str) -> bool:
        contribution = self.get_contribution(contribution_id)
        if contribution is None or contribution.is_deleted:
            log.debug("soft_delete_contribution(%s): nothing to delete", contribution_id)
            return False

        contribution.deletion = DeletedDirect()
        contribution.touch()

        name = contribution_display_name(contribution, self.get_contributor(contribution.contributor_id))
        self.activity.record(
            "deleted", "contribution", contribution.id, name,
            contribution.slices, cascade_count=0,
        )
        log.info("Deleted %s (%s slices)", name, contribution.slices)
        self._changed(CHANGE_CONTRIBUTIONS, CHANGE_ACTIVITY)
        return True

    def restore_contributor(self, contributor_id: str) -> bool:
        """Restore a contributor and only the contributions their deletion swept up."""
        contributor = self.get_contributor(contributor_id)
        if contributor is None or not contributor.is_deleted:
            log.debug("restore_contributor(%s): nothing to restore", contributor_id)
            return False

        contributor.deleted_at = None
        contributor.touch()

        restored = [
            c for c in self.contributions
            if c.contributor_id == contributor_id and c.deleted_with_parent == contributor_id
        ]
        for contribution in restored:
            contribution.deletion = Active()
            contribution.touch()

        slices = get_total_slices(restored)
        self.activity.record(
            "restored", "contributor", contributor.id, contributor.name,
            slices, cascade_count=len(restored),
        )
        log.info(
            "Restored contributor %s with %d contributions (%s slices)",
            contributor.name, len(restored), slices,
        )
        self._changed(CHANGE_CONTRIBUTORS, CHANGE_CONTRIBUTIONS, CHANGE_ACTIVITY)
        return True

    def restore_contribution(self, contribution_id: str) -> bool:
        """Restore a contribution whatever the reason it was deleted."""
        contribution = self.get_contribution(contribution_id)
        if contribution is None or not contribution.is_deleted:
            log.debug("restore_contribution(%s): nothing to restore", contribution_id)
            return False

        contribution.deletion = Active()
        contribution.touch()

        name = contribution_display_name(contribution, self.get_contributor(contribution.contributor_id))
        self.activity.record(
            "restored", "contribution", contribution.id, name,
            contribution.slices, cascade_count=0,
        )
        log.info("Restored %s (%s slices)", name, contribution.slices)
        self._changed(CHANGE_CONTRIBUTIONS, CHANGE_ACTIVITY)
        return True

    def hard_delete(self, record_id: str) -> bool:
        """Permanently remove a contributor (with all their contributions) or a contribution."""
        contributor = self.get_contributor(record_id)
        if contributor is not None:
            removed = self.contributions_for(record_id, include_deleted=True)
            self.contributors.remove(contributor)
            self.contributions = [c for c in self.contributions if c.contributor_id != record_id]
            log.info(
                "Permanently deleted contributor %s and %d contributions",
                contributor.name, len(removed),
            )
            self._changed(CHANGE_CONTRIBUTORS, CHANGE_CONTRIBUTIONS)
            return True

        contribution = self.get_contribution(record_id)
        if contribution is not None:
            self.contributions.remove(contribution)
            log.info("Permanently deleted contribution %s", record_id)
            self._changed(CHANGE_CONTRIBUTIONS)
            return True

        log.debug("hard_delete(%s): no such record", record_id)
        return False

    # =========================================================================
    # Bulk Operations
    # =========================================================================

    def export_portfolio(self) -> PortfolioDocument:
        """Snapshot of company, contributors and contributions (deleted included)."""
        return PortfolioDocument(
            company=self.company.model_copy(deep=True),
            contributors=[c.model_copy(deep=True) for c in self.contributors],
            contributions=[c.model_copy(deep=True) for c in self.contributions],
        )

    def import_portfolio(self, document: PortfolioDocument) -> None:
        """Replace all company/contributor/contribution state in one step.

        Deletion states are taken as-is; no cascade runs and no activity is
        recorded. Validate untrusted input with ``importing.validate_portfolio``
        first.
        """
        self.company = document.company.model_copy(deep=True)
        self.contributors = [c.model_copy(deep=True) for c in document.contributors]
        self.contributions = [c.model_copy(deep=True) for c in document.contributions]
        log.info(
            "Imported %d contributors and %d contributions",
            len(self.contributors), len(self.contributions),
        )
        self._changed(CHANGE_COMPANY, CHANGE_CONTRIBUTORS, CHANGE_CONTRIBUTIONS)

    def clear_all(self) -> None:
        """Reset company, contributors and contributions. The activity log is kept."""
        self.company = Company()
        self.contributors = []
        self.contributions = []
        log.info("Cleared all pie data")
        self._changed(CHANGE_COMPANY, CHANGE_CONTRIBUTORS, CHANGE_CONTRIBUTIONS)

    def load_sample_data(self) -> None:
        """Replace current data with the Acme Startup demo pie."""
        self.import_portfolio(sample_portfolio())

    def has_sample_data(self) -> bool:
        return any(c.id in SAMPLE_CONTRIBUTOR_IDS for c in self.contributors)

    # =========================================================================
    # Helpers
    # =========================================================================

    def _require_contributor(self, contributor_id: str) -> Contributor:
        contributor = self.get_contributor(contributor_id)
        if contributor is None:
            raise UnknownContributorError(contributor_id)
        if contributor.is_deleted:
            raise DeletedRecordError(f"Contributor is deleted: {contributor_id}")
        return contributor


def _check_editable(changes: Dict[str, Any], editable: FrozenSet[str]) -> None:
    not_editable = set(changes) - editable
    if not_editable:
        raise ValueError(f"Fields cannot be edited: {sorted(not_editable)}")
