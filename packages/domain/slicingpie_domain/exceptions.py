"""Engine errors.

Input validation failures surface as pydantic ``ValidationError`` from the
schema models. The classes here cover the few conditions the store itself
rejects.
"""


class SlicingPieError(Exception):
    """Base class for engine errors."""
    pass


class UnknownContributorError(SlicingPieError, LookupError):
    """Raised when a new contribution references a contributor that does not exist."""

    def __init__(self, contributor_id: str):
        self.contributor_id = contributor_id
        super().__init__(f"Contributor not found: {contributor_id}")


class UnknownContributionError(SlicingPieError, LookupError):
    """Raised when updating a contribution that does not exist."""

    def __init__(self, contribution_id: str):
        self.contribution_id = contribution_id
        super().__init__(f"Contribution not found: {contribution_id}")


class DeletedRecordError(SlicingPieError):
    """Raised when adding contributions to, or editing, a soft-deleted record."""
    pass
