from apscheduler.schedulers.background import BackgroundScheduler

from cart_service.config import CartPolicy, Settings
from cart_service.exceptions import CartServiceException
from cart_service.services.abandonment import AbandonmentSweeper, ExpiredCartPurger
from cart_service.utils.logging import get_logger

log = get_logger(__name__)


def build_scheduler(session_factory, s: Settings) -> BackgroundScheduler:
    """Background jobs: abandonment sweep and physical purge of expired carts."""
    policy = CartPolicy.from_settings(s)
    scheduler = BackgroundScheduler(timezone="UTC")

    def abandon_job():
        db = session_factory()
        try:
            AbandonmentSweeper(db, policy=policy).sweep()
        except CartServiceException as e:
            log.error(f"Abandonment sweep failed: {e}")
        finally:
            db.close()

    def purge_job():
        db = session_factory()
        try:
            ExpiredCartPurger(db).purge_expired()
        except CartServiceException as e:
            log.error(f"Expired cart purge failed: {e}")
        finally:
            db.close()

    scheduler.add_job(
        abandon_job,
        "interval",
        seconds=s.CART_SWEEP_INTERVAL_SECONDS,
        id="abandon_stale_carts",
        max_instances=1,
        coalesce=True,
    )
    scheduler.add_job(
        purge_job,
        "interval",
        seconds=s.CART_PURGE_INTERVAL_SECONDS,
        id="purge_expired_carts",
        max_instances=1,
        coalesce=True,
    )
    return scheduler
