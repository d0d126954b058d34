"""Exception types raised by the ledger engine.

Every failure the store or the workflow can report is a subclass of
:class:`LedgerError` so callers may catch the whole family at once, while
the concrete type tells them what went wrong.
"""

from __future__ import annotations


class LedgerError(Exception):
    """Base class for all ledger failures."""


class NotFound(LedgerError):
    """A referenced user or request id does not exist."""


class Conflict(LedgerError):
    """The target record is in a state that forbids the operation."""


class InvalidArgument(LedgerError):
    """An argument is malformed, e.g. a non-positive amount or empty field."""


class PersistenceFailure(LedgerError):
    """The snapshot could not be written to disk.

    The in-memory ledger is still valid; the mutation that triggered the
    write was not applied.
    """


class LedgerClosed(LedgerError):
    """An operation was attempted on a store that is not open."""


class Forbidden(InvalidArgument):
    """The acting user lacks the role the operation needs."""
