"""
Audit Module Invariants
"""

from eventsync_finance.kernel.errors import EntityAlreadyInvalidated, ReasonTooShort


def validate_reason(reason: str | None, minimum: int) -> str:
    """
    Destructive actions need a reason of at least `minimum` characters

    Length is measured after trimming, so padding with spaces does not help.

    Returns:
        The trimmed reason

    Raises:
        ReasonTooShort: If the trimmed reason is shorter than minimum
    """
    trimmed = (reason or "").strip()
    if len(trimmed) < minimum:
        raise ReasonTooShort(len(trimmed), minimum)
    return trimmed


def validate_not_already_invalidated(
    invalidated: set[tuple[str, str]], entity_type: str, entity_id: str
) -> None:
    if (entity_type, entity_id) in invalidated:
        raise EntityAlreadyInvalidated(entity_type, entity_id)
