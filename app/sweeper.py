"""Background deactivation of slots whose time has passed."""
import asyncio
import logging
from datetime import datetime
from typing import Optional

from sqlalchemy.orm import sessionmaker

from app.slot_store import SlotStore

logger = logging.getLogger(__name__)


def run_sweep_once(session_factory: sessionmaker, now: Optional[datetime] = None) -> int:
    """
    Deactivate every expired slot and return how many flipped.

    A failed cycle is logged and reported as 0; the next cycle retries.
    """
    db = session_factory()
    try:
        flipped = SlotStore(db).deactivate_expired(now)
        db.commit()
        if flipped:
            logger.info(f"Expiry sweep deactivated {flipped} slots")
        return flipped
    except Exception:
        db.rollback()
        logger.exception("Expiry sweep failed")
        return 0
    finally:
        db.close()


async def sweep_periodically(session_factory: sessionmaker, interval: float):
    """Run one sweep immediately, then one every `interval` seconds until cancelled."""
    while True:
        await asyncio.to_thread(run_sweep_once, session_factory)
        await asyncio.sleep(interval)
