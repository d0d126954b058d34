"""JSON-backed ledger store.

The store is the only place the four collections are held mutably. Every
change goes through :meth:`LedgerStore.transaction`, which serialises the
read-validate-modify-persist sequence behind a lock, writes the resulting
snapshot atomically and then hands it to the subscribers.
"""

from __future__ import annotations

import datetime
import logging
import os
import threading
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from pathlib import Path

from ..notify import Callback, Publisher, Subscription
from .errors import (
    Conflict,
    InvalidArgument,
    LedgerClosed,
    NotFound,
    PersistenceFailure,
)
from .models import (
    COLLECTIONS,
    FinancialRequest,
    LedgerSnapshot,
    User,
    utcnow,
)
from .seed import default_seed

log = logging.getLogger(__name__)

APPEND_ONLY = frozenset({"donations", "admin_logs"})


def _collection_for(record: object) -> tuple[str, str]:
    for name, (model, id_field) in COLLECTIONS.items():
        if isinstance(record, model):
            return name, id_field
    raise TypeError(f"{type(record).__name__} is not a ledger record")


def _check_well_formed(snapshot: LedgerSnapshot) -> None:
    """Raise ``ValueError`` if ids or emails are duplicated."""
    for name, (_, id_field) in COLLECTIONS.items():
        ids = [getattr(r, id_field) for r in getattr(snapshot, name)]
        if len(ids) != len(set(ids)):
            raise ValueError(f"duplicate ids in {name}")
    emails = [u.email.casefold() for u in snapshot.users]
    if len(emails) != len(set(emails)):
        raise ValueError("duplicate user emails")


class Transaction:
    """Staged changes against one base snapshot.

    Obtained from :meth:`LedgerStore.transaction`; nothing staged here is
    visible to readers until the surrounding ``with`` block exits cleanly.
    """

    def __init__(self, base: LedgerSnapshot) -> None:
        self.base = base
        self._collections: dict[str, list] = {
            name: list(getattr(base, name)) for name in COLLECTIONS
        }
        self.changed = False

    # ------------------------------------------------------------------
    # Reads (see staged changes)
    # ------------------------------------------------------------------
    def user(self, user_id: str) -> User:
        found = next((u for u in self._collections["users"] if u.user_id == user_id), None)
        if found is None:
            raise NotFound(f"User {user_id} not found.")
        return found

    def request(self, request_id: str) -> FinancialRequest:
        found = next(
            (r for r in self._collections["requests"] if r.request_id == request_id), None
        )
        if found is None:
            raise NotFound(f"Request {request_id} not found.")
        return found

    def find_user_by_email(self, email: str) -> User | None:
        key = email.strip().casefold()
        return next((u for u in self._collections["users"] if u.email.casefold() == key), None)

    def last(self, collection: str):
        items = self._collections[collection]
        return items[-1] if items else None

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------
    def append(self, record) -> None:
        name, id_field = _collection_for(record)
        rid = getattr(record, id_field)
        if any(getattr(r, id_field) == rid for r in self._collections[name]):
            raise Conflict(f"{name} already contains {rid}.")
        self._check_email(record)
        self._collections[name].append(record)
        self.changed = True

    def replace(self, record) -> None:
        name, id_field = _collection_for(record)
        if name in APPEND_ONLY:
            raise Conflict(f"{name} records cannot be modified.")
        rid = getattr(record, id_field)
        items = self._collections[name]
        self._check_email(record)
        for i, existing in enumerate(items):
            if getattr(existing, id_field) == rid:
                items[i] = record
                self.changed = True
                return
        raise NotFound(f"{rid} not found in {name}.")

    def _check_email(self, record) -> None:
        if not isinstance(record, User):
            return
        key = record.email.casefold()
        for other in self._collections["users"]:
            if other.user_id != record.user_id and other.email.casefold() == key:
                raise Conflict(f"Email {record.email} is already used by {other.user_id}.")

    def upsert(self, record) -> None:
        name, id_field = _collection_for(record)
        rid = getattr(record, id_field)
        if any(getattr(r, id_field) == rid for r in self._collections[name]):
            self.replace(record)
        else:
            self.append(record)

    def result(self, version: int) -> LedgerSnapshot:
        return LedgerSnapshot(
            users=tuple(self._collections["users"]),
            requests=tuple(self._collections["requests"]),
            donations=tuple(self._collections["donations"]),
            admin_logs=tuple(self._collections["admin_logs"]),
            version=version,
        )


class LedgerStore:
    """Authoritative holder of the ledger snapshot.

    Construct it, :meth:`open` it (or use it as a context manager) and pass
    it to the workflow. Tests can supply their own ``seed`` and ``clock``.
    """

    def __init__(
        self,
        path: str | os.PathLike[str] = "aid_ledger_data.json",
        seed: LedgerSnapshot | None = None,
        clock: Callable[[], datetime.datetime] = utcnow,
    ) -> None:
        self.path = Path(path)
        self.seed = seed if seed is not None else default_seed()
        self.clock = clock
        self._lock = threading.RLock()
        self._snapshot: LedgerSnapshot | None = None
        self._publisher = Publisher(self.get_snapshot)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    def open(self) -> LedgerStore:
        with self._lock:
            if self._snapshot is None:
                self._snapshot = self.load()
                log.info(
                    "Opened ledger %s (%d users, %d requests)",
                    self.path,
                    len(self._snapshot.users),
                    len(self._snapshot.requests),
                )
        return self

    def close(self) -> None:
        with self._lock:
            self._publisher.clear()
            self._snapshot = None

    @property
    def is_open(self) -> bool:
        return self._snapshot is not None

    def __enter__(self) -> LedgerStore:
        return self.open()

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Persistence helpers
    # ------------------------------------------------------------------
    def load(self) -> LedgerSnapshot:
        """Return the persisted snapshot, or the seed if there is none usable."""
        if not self.path.exists():
            return self.seed
        try:
            snapshot = LedgerSnapshot.model_validate_json(
                self.path.read_text(encoding="utf-8")
            )
            _check_well_formed(snapshot)
        except (OSError, ValueError) as exc:
            log.warning("Ignoring unreadable ledger at %s: %s", self.path, exc)
            return self.seed
        return snapshot

    def _write(self, snapshot: LedgerSnapshot) -> None:
        """Persist ``snapshot`` atomically."""
        tmp = self.path.with_name(self.path.name + ".tmp")
        tmp.write_text(snapshot.model_dump_json(indent=2), encoding="utf-8")
        os.replace(tmp, self.path)

    def _commit(self, snapshot: LedgerSnapshot) -> None:
        # Never persist anything load() would reject.
        try:
            _check_well_formed(
                LedgerSnapshot.model_validate_json(snapshot.model_dump_json())
            )
        except ValueError as exc:
            raise InvalidArgument(f"Ledger would not load back: {exc}") from exc
        try:
            self._write(snapshot)
        except OSError as exc:
            log.error("Failed to persist ledger version %d: %s", snapshot.version, exc)
            raise PersistenceFailure(f"Could not write ledger to {self.path}: {exc}") from exc
        self._snapshot = snapshot
        log.debug("Committed ledger version %d", snapshot.version)
        self._publisher.publish(snapshot)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------
    def get_snapshot(self) -> LedgerSnapshot:
        with self._lock:
            if self._snapshot is None:
                raise LedgerClosed("The ledger store is not open.")
            return self._snapshot

    def find_user_by_email(self, email: str) -> User | None:
        key = email.strip().casefold()
        return next(
            (u for u in self.get_snapshot().users if u.email.casefold() == key), None
        )

    def find_user(self, user_id: str) -> User | None:
        return self.get_snapshot().user(user_id)

    def find_request(self, request_id: str) -> FinancialRequest | None:
        return self.get_snapshot().request(request_id)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------
    @contextmanager
    def transaction(self) -> Iterator[Transaction]:
        """Stage changes and commit them as one snapshot.

        An exception inside the block discards everything staged.
        """
        with self._lock:
            txn = Transaction(self.get_snapshot())
            yield txn
            if txn.changed:
                self._commit(txn.result(txn.base.version + 1))

    def mutate(self, record) -> LedgerSnapshot:
        """Replace the record with the same id, or append it if new."""
        with self.transaction() as txn:
            txn.upsert(record)
        return self.get_snapshot()

    # ------------------------------------------------------------------
    # Change notification
    # ------------------------------------------------------------------
    def subscribe(self, callback: Callback) -> Subscription:
        # Held so the first delivery cannot interleave with a commit.
        with self._lock:
            return self._publisher.subscribe(callback)

    @property
    def subscriber_count(self) -> int:
        return self._publisher.subscriber_count
