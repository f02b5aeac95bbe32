"""Reading-state machine and progress validation.

All functions here are pure: they take a ``BookRecord`` and return a new
one, leaving the input untouched. Persisting the result is the ledger's job.
"""

from datetime import datetime, timezone
from typing import Any, Optional

from ..db.schemas import BookPatch, BookRecord, ReadingState
from ..errors import InvalidTransition, OutOfRangeProgress

# Allowed next states for each reading state
TRANSITIONS: dict[ReadingState, frozenset[ReadingState]] = {
    ReadingState.NOT_STARTED: frozenset({ReadingState.IN_PROGRESS}),
    ReadingState.IN_PROGRESS: frozenset({ReadingState.FINISHED}),
    ReadingState.FINISHED: frozenset(),
}


def _now(now: Optional[datetime]) -> datetime:
    return now or datetime.now(timezone.utc)


def allowed_next_states(state: ReadingState) -> frozenset[ReadingState]:
    """States reachable from ``state`` in one transition."""
    return TRANSITIONS.get(ReadingState(state), frozenset())


def can_transition(current: ReadingState, target: ReadingState) -> bool:
    """Check whether ``current -> target`` is in the transition table."""
    return ReadingState(target) in allowed_next_states(current)


def check_page(page: int, total_pages: int) -> None:
    """Raise OutOfRangeProgress unless ``0 <= page <= total_pages``.

    A total of 0 means the page count is unknown, so only the lower bound
    applies.
    """
    if page < 0 or (total_pages > 0 and page > total_pages):
        raise OutOfRangeProgress(page, total_pages)


def apply(
    book: BookRecord,
    target_state: ReadingState,
    now: Optional[datetime] = None,
) -> BookRecord:
    """Move a book to ``target_state``.

    Args:
        book: Current book
        target_state: Requested state
        now: Timestamp to record (default: current UTC time)

    Returns:
        Updated copy of the book

    Raises:
        InvalidTransition: If the transition table does not allow it
    """
    target_state = ReadingState(target_state)
    if not can_transition(book.state, target_state):
        raise InvalidTransition(book.state.value, target_state.value)

    now = _now(now)
    update: dict[str, Any] = {"state": target_state, "updated_at": now}

    if (
        book.state == ReadingState.NOT_STARTED
        and target_state == ReadingState.IN_PROGRESS
        and book.started_at is None
    ):
        update["started_at"] = now
    if target_state == ReadingState.FINISHED and book.finished_at is None:
        update["finished_at"] = now

    return book.model_copy(update=update)


def apply_progress(
    book: BookRecord,
    new_page: int,
    now: Optional[datetime] = None,
) -> BookRecord:
    """Set the current page of a book.

    Raises:
        OutOfRangeProgress: If the page is negative or past the last page
    """
    check_page(new_page, book.total_pages)
    return book.model_copy(update={"current_page": new_page, "updated_at": _now(now)})


def manual_update(
    book: BookRecord,
    patch: BookPatch,
    now: Optional[datetime] = None,
) -> BookRecord:
    """Apply a user correction without transition validation.

    Any state may be set. Data integrity still holds: page bounds are
    checked, and text/rating constraints come from ``BookPatch``. Timestamps
    follow the state that is set:

    - not_started clears started_at and finished_at
    - in_progress sets started_at when leaving not_started and clears
      finished_at when leaving finished
    - finished fills in whichever of started_at/finished_at is missing

    Raises:
        OutOfRangeProgress: If the resulting page falls outside the book
    """
    now = _now(now)
    changes = patch.model_dump(exclude_unset=True)

    # Required fields cannot be cleared
    for field in ("title", "author", "is_owned", "state"):
        if field in changes and changes[field] is None:
            del changes[field]

    if "genre" in changes and isinstance(changes["genre"], str):
        changes["genre"] = changes["genre"].strip() or None

    total_pages = changes.get("total_pages", book.total_pages)
    current_page = changes.get("current_page", book.current_page)
    if total_pages is None or total_pages < 0:
        raise OutOfRangeProgress(total_pages if total_pages is not None else -1)
    if current_page is None:
        raise OutOfRangeProgress(-1, total_pages)
    check_page(current_page, total_pages)

    new_state = changes.get("state")
    if new_state is not None and new_state != book.state:
        if new_state == ReadingState.NOT_STARTED:
            changes["started_at"] = None
            changes["finished_at"] = None
        elif new_state == ReadingState.IN_PROGRESS:
            if book.state == ReadingState.NOT_STARTED:
                changes["started_at"] = now
            if book.state == ReadingState.FINISHED:
                changes["finished_at"] = None
        elif new_state == ReadingState.FINISHED:
            if book.finished_at is None:
                changes["finished_at"] = now
            if book.started_at is None:
                changes["started_at"] = now

    changes["updated_at"] = now
    return book.model_copy(update=changes)


def changed_fields(before: BookRecord, after: BookRecord) -> dict[str, Any]:
    """Fields whose values differ between two versions of a book."""
    old = before.model_dump()
    new = after.model_dump()
    return {field: value for field, value in new.items() if old.get(field) != value}


def progress_percent(book: BookRecord) -> int:
    """Reading progress as a whole percentage."""
    if book.state == ReadingState.FINISHED:
        return 100
    if book.state == ReadingState.NOT_STARTED:
        return 0
    if not book.total_pages or not book.current_page:
        return 0
    return min(100, round(book.current_page / book.total_pages * 100))
