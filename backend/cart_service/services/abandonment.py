import os
import tempfile
from datetime import datetime
from typing import Callable, Optional

from filelock import FileLock, Timeout
from sqlalchemy.orm import Session

from cart_service.config import CartPolicy
from cart_service.repositories.cart_repo import CartRepository
from cart_service.services.cart_service import utcnow
from cart_service.utils.logging import get_logger

log = get_logger(__name__)


def _lockfile(name: str) -> str:
    locks_dir = os.path.join(tempfile.gettempdir(), "cart_service_locks")
    os.makedirs(locks_dir, exist_ok=True)
    return os.path.join(locks_dir, f"{name}.lock")


class AbandonmentSweeper:
    """
    Demote active carts nobody has touched for policy.abandon_after.

    One bulk update per run; processing/completed carts and all timestamps
    are left as they are. Every worker process schedules the sweep, the file
    lock lets only one of them run it at a time.
    """

    def __init__(
        self,
        db: Session,
        policy: Optional[CartPolicy] = None,
        clock: Callable[[], datetime] = utcnow,
        lock_timeout: float = 0,
    ):
        self.repo = CartRepository(db)
        self.policy = policy or CartPolicy()
        self.clock = clock
        self.lock = FileLock(_lockfile("abandon_sweep"))
        self.lock_timeout = lock_timeout

    def sweep(self) -> int:
        cutoff = self.clock() - self.policy.abandon_after
        try:
            with self.lock.acquire(timeout=self.lock_timeout):
                count = self.repo.update_many_abandon(cutoff)
        except Timeout:
            log.info("Abandonment sweep already running in another worker, skipping")
            return 0
        log.info(f"Marked {count} carts abandoned (idle since before {cutoff.isoformat()})")
        return count


class ExpiredCartPurger:
    """Physically remove documents past expiresAt, like a TTL index would."""

    def __init__(self, db: Session, clock: Callable[[], datetime] = utcnow):
        self.repo = CartRepository(db)
        self.clock = clock

    def purge_expired(self) -> int:
        count = self.repo.delete_expired(self.clock())
        if count:
            log.info(f"Purged {count} expired carts")
        return count
