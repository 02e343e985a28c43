"""Validation of portfolio files before they reach a PieStore.

Untrusted input (a JSON backup picked by a user) is checked in two passes:

1. Shape: an object with a string ``version``, a ``company`` object with a
   string ``name``, and ``contributors`` / ``contributions`` arrays.
2. Records: every contributor and contribution is validated against the
   schema models, and ids must be unique.

The outcome is either ``ValidImport`` (document plus non-fatal warnings) or
``InvalidImport`` (reasons). Only a ValidImport document should be handed to
``PieStore.import_portfolio``.

Contributions whose contributor is missing from the file are accepted with a
warning; they count towards the pie as an unknown contributor.
"""

import json
import logging
from dataclasses import dataclass, field
from typing import Any, List, Union

from pydantic import ValidationError

from .schemas import PortfolioDocument

log = logging.getLogger(__name__)


@dataclass
class ValidImport:
    document: PortfolioDocument
    warnings: List[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return True


@dataclass
class InvalidImport:
    reasons: List[str]

    @property
    def ok(self) -> bool:
        return False


ImportResult = Union[ValidImport, InvalidImport]


def _shape_errors(data: Any) -> List[str]:
    if not isinstance(data, dict):
        return ["File must contain a JSON object"]

    reasons = []
    if not isinstance(data.get("version"), str) or not data.get("version"):
        reasons.append("Missing or invalid 'version'")

    company = data.get("company")
    if not isinstance(company, dict):
        reasons.append("Missing or invalid 'company'")
    elif not isinstance(company.get("name"), str):
        reasons.append("Company 'name' must be a string")

    for key in ("contributors", "contributions"):
        if not isinstance(data.get(key), list):
            reasons.append(f"'{key}' must be an array")
    return reasons


def _format_validation_error(exc: ValidationError) -> List[str]:
    reasons = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error["loc"])
        reasons.append(f"{location}: {error['msg']}")
    return reasons


def _duplicates(ids: List[str]) -> List[str]:
    seen, duplicates = set(), []
    for record_id in ids:
        if record_id in seen and record_id not in duplicates:
            duplicates.append(record_id)
        seen.add(record_id)
    return duplicates


def validate_portfolio(data: Any) -> ImportResult:
    """Validate parsed JSON data as a portfolio document.

    Args:
        data: Result of ``json.loads`` on an exported file

    Returns:
        ValidImport or InvalidImport

    Example:
        result = validate_portfolio(json.loads(text))
        if isinstance(result, ValidImport):
            store.import_portfolio(result.document)
        else:
            show(result.reasons)
    """
    reasons = _shape_errors(data)
    if reasons:
        log.info("Rejected import: %s", "; ".join(reasons))
        return InvalidImport(reasons)

    try:
        document = PortfolioDocument.model_validate(data)
    except ValidationError as exc:
        reasons = _format_validation_error(exc)
        log.info("Rejected import with %d invalid fields", len(reasons))
        return InvalidImport(reasons)

    for label, records in (("contributor", document.contributors), ("contribution", document.contributions)):
        for record_id in _duplicates([r.id for r in records]):
            reasons.append(f"Duplicate {label} id: {record_id}")
    if reasons:
        log.info("Rejected import: %s", "; ".join(reasons))
        return InvalidImport(reasons)

    contributor_ids = {c.id for c in document.contributors}
    warnings = [
        f"Contribution {c.id} references unknown contributor {c.contributor_id}"
        for c in document.contributions
        if c.contributor_id not in contributor_ids
    ]
    warnings.extend(
        f"Contribution {c.id} is marked deleted with contributor {c.deleted_with_parent}, "
        f"but belongs to {c.contributor_id}"
        for c in document.contributions
        if c.deleted_with_parent is not None and c.deleted_with_parent != c.contributor_id
    )
    return ValidImport(document, warnings)


def load_portfolio_json(text: str) -> ImportResult:
    """Parse and validate a JSON backup. Malformed JSON is an InvalidImport."""
    try:
        data = json.loads(text)
    except json.JSONDecodeError as exc:
        log.info("Rejected import: malformed JSON (%s)", exc)
        return InvalidImport([f"Malformed JSON: {exc.msg} (line {exc.lineno})"])
    return validate_portfolio(data)


def dump_portfolio_json(document: PortfolioDocument, indent: int = 2) -> str:
    """Serialize a portfolio in the export file format."""
    return json.dumps(document.to_record(), indent=indent)
