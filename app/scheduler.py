from __future__ import annotations

import logging
import threading
import time

from config import Config
from utils import ApiError

log = logging.getLogger("scheduler")


def maybe_start_scheduler(svc, cfg: Config) -> threading.Thread | None:
    """
    In-process sweep that repairs job applicant counters every
    RECONCILE_INTERVAL_MINUTES. Off unless ENABLE_SCHEDULER=1.

    With several gunicorn workers each one runs its own sweep; the sweep is
    idempotent, so for larger deployments prefer a single external cron calling
    `POST /api/v1/maintenance/reconcile-applicant-counts` instead.
    """
    if not cfg.ENABLE_SCHEDULER:
        return None

    interval = max(1, int(cfg.RECONCILE_INTERVAL_MINUTES)) * 60

    def _loop():
        while True:
            time.sleep(interval)
            try:
                changed = svc.reconcile_applicant_counts("system")
                log.info("RECONCILE_APPLICANT_COUNTS ok changed=%s", len(changed))
            except ApiError as e:
                log.warning("RECONCILE_APPLICANT_COUNTS failed: %s", e.message)
            except Exception:
                log.exception("RECONCILE_APPLICANT_COUNTS failed")

    t = threading.Thread(target=_loop, name="scheduler", daemon=True)
    t.start()
    log.info("scheduler started interval_minutes=%s", interval // 60)
    return t
