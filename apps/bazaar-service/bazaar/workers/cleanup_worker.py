"""
Cleanup worker for ThuluBazaar.

Expires paid ad promotions and lapsed seller verifications. Meant to run
periodically from cron.

Usage:
    python -m bazaar.workers.cleanup_worker

Configuration:
    - PROMOTION_CLEANUP_ENABLED: expire promotions (default: true)
    - VERIFICATION_CLEANUP_ENABLED: expire verifications (default: true)
"""

import logging
import os
from typing import Any, Callable, Dict, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from bazaar.db import database
from bazaar.services.promotion_service import deactivate_expired_promotions
from bazaar.services.verification_service import expire_verifications

logger = logging.getLogger(__name__)


def _enabled(env_name: str) -> bool:
    return os.getenv(env_name, "true").strip().lower() not in {"0", "false", "no", "off"}


def _run_task(db: Session, name: str, task: Callable[[Session], Dict[str, int]]) -> Dict[str, Any]:
    try:
        result = task(db)
    except SQLAlchemyError as exc:
        db.rollback()
        logger.error("cleanup_task_failed task=%s err=%s", name, exc)
        return {"ok": False, "error": str(exc)}
    logger.info("cleanup_task_done task=%s result=%s", name, result)
    return dict(result, ok=True)


def run_cleanup(session_factory: Optional[Callable[[], Session]] = None) -> Dict[str, Any]:
    """Run every enabled cleanup task in one session and return a summary."""
    # Resolve SessionLocal at call time so rebinding in tests is respected
    factory = session_factory or database.SessionLocal
    summary: Dict[str, Any] = {"promotions": None, "verifications": None}
    logger.info("Starting cleanup run")
    db = factory()
    try:
        if _enabled("PROMOTION_CLEANUP_ENABLED"):
            summary["promotions"] = _run_task(db, "promotions", deactivate_expired_promotions)
        else:
            logger.info("Promotion cleanup disabled")
        if _enabled("VERIFICATION_CLEANUP_ENABLED"):
            summary["verifications"] = _run_task(db, "verifications", expire_verifications)
        else:
            logger.info("Verification cleanup disabled")
    finally:
        db.close()
    logger.info("Completed cleanup run: %s", summary)
    return summary


if __name__ == "__main__":
    logging.basicConfig(
        level=getattr(logging, os.getenv("LOG_LEVEL", "INFO").upper(), logging.INFO),
        format='%(asctime)s - %(levelname)s - %(message)s',
    )
    run_cleanup()
