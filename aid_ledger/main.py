from __future__ import annotations

from .config import load_settings
from .core.storage import LedgerStore
from .logging_config import setup_logging
from .views import display_name, funding_progress, public_feed


def main() -> int:
    settings = load_settings()
    log = setup_logging(settings.log_level)

    with LedgerStore(path=settings.data_path) as store:
        sub = store.subscribe(
            lambda snap: log.info(
                "Ledger version %d: %d users, %d requests, %d donations",
                snap.version,
                len(snap.users),
                len(snap.requests),
                len(snap.donations),
            )
        )
        feed = public_feed(store.get_snapshot())
        if not feed:
            print("No approved requests yet.")
        for req in feed:
            print(
                f"{req.request_id:<14} {display_name(req):<18} "
                f"{funding_progress(req):5.1f}%  {req.title}"
            )
        sub.cancel()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
