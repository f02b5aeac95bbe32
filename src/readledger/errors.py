"""Exceptions raised by the reading ledger."""

from typing import Optional


class ReadLedgerError(Exception):
    """Base exception for readledger errors."""

    pass


class InvalidTransition(ReadLedgerError):
    """Requested state change is not in the allowed-next-states table."""

    def __init__(self, current: str, target: str):
        self.current = current
        self.target = target
        super().__init__(f"Cannot transition from {current} to {target}")


class OutOfRangeProgress(ReadLedgerError):
    """Page is negative or exceeds the book's total pages."""

    def __init__(self, page: int, total_pages: Optional[int] = None):
        self.page = page
        self.total_pages = total_pages
        if page < 0:
            message = f"Page cannot be negative: {page}"
        else:
            message = f"Page {page} exceeds total pages ({total_pages})"
        super().__init__(message)


class RatingNotAllowed(ReadLedgerError):
    """Only finished books can be rated."""

    def __init__(self, book_id: str, state: str):
        self.book_id = book_id
        self.state = state
        super().__init__(f"Can only rate finished books (book {book_id} is {state})")


class BookNotFound(ReadLedgerError):
    """No book with the given ID exists for this user."""

    def __init__(self, book_id: str):
        self.book_id = book_id
        super().__init__(f"Book not found: {book_id}")


class LedgerWriteFailure(ReadLedgerError):
    """The atomic book + event batch failed at the storage layer.

    The original storage exception is available as ``__cause__``. No retry is
    attempted here.
    """

    pass
