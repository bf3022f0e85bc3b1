"""Failure kinds for proficiency operations.

All derive from ValueError so callers that already guard engine calls with
``except ValueError`` keep working. Allocation checks also hand these back
as plain values (see ``OptionalAllocationTracker.check_selection``) when a
wizard wants to show the reason without raising.
"""


class ProficiencyError(ValueError):
    """Base class. ``category`` is a stable tag for UI diagnostics."""

    category = "proficiency"


class ValidationFailure(ProficiencyError):
    """Missing/empty type, name, or source, or an unknown type/origin."""

    category = "validation"


class NotConfiguredFailure(ProficiencyError):
    """Allocation operation on an origin with no configuration."""

    category = "not_configured"


class LimitExceededFailure(ProficiencyError):
    """Selection beyond the origin's allowed count."""

    category = "limit_exceeded"


class NotAvailableFailure(ProficiencyError):
    """Selecting a name outside the options, or deselecting one never chosen."""

    category = "not_available"
