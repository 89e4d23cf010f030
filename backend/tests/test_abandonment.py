from decimal import Decimal

from filelock import FileLock

from cart_service.schemas.cart_schema import CartStatus
from cart_service.services.abandonment import AbandonmentSweeper, ExpiredCartPurger, _lockfile


def _add(service, cart_id):
    return service.add_item(cart_id, product_id="p1", title="P1", price=Decimal("3.00"), quantity=1)


def test_sweep_marks_only_stale_active_carts(db, service, policy, clock):
    stale = service.create(user_id="u1")
    _add(service, stale.id)
    checked_out = service.create(user_id="u2")
    _add(service, checked_out.id)
    service.checkout(checked_out.id)
    clock.advance(hours=2)
    fresh = service.create(user_id="u3")
    clock.advance(hours=23)

    before = service.get(stale.id)
    count = AbandonmentSweeper(db, policy=policy, clock=clock).sweep()

    assert count == 1
    after = service.get(stale.id)
    assert after.status == CartStatus.ABANDONED
    assert after.updated_at == before.updated_at
    assert after.expires_at == before.expires_at
    assert after.version == before.version + 1
    assert service.get(fresh.id).status == CartStatus.ACTIVE
    assert service.get(checked_out.id).status == CartStatus.PROCESSING


def test_sweep_is_idempotent(db, service, policy, clock):
    service.create()
    clock.advance(hours=30)
    sweeper = AbandonmentSweeper(db, policy=policy, clock=clock)
    assert sweeper.sweep() == 1
    assert sweeper.sweep() == 0


def test_abandoned_cart_no_longer_owned_as_active(db, service, policy, clock):
    cart = service.create(user_id="u1")
    clock.advance(hours=25)
    AbandonmentSweeper(db, policy=policy, clock=clock).sweep()
    assert service.get(cart.id).status == CartStatus.ABANDONED
    assert service.repo.find_active_by_owner("u1") is None


def test_sweep_skips_when_another_worker_holds_the_lock(db, service, policy, clock):
    service.create()
    clock.advance(hours=30)
    with FileLock(_lockfile("abandon_sweep")):
        # FileLock is re-entrant per instance only, so a second instance times out
        assert AbandonmentSweeper(db, policy=policy, clock=clock).sweep() == 0
    assert AbandonmentSweeper(db, policy=policy, clock=clock).sweep() == 1


def test_purge_removes_only_expired_documents(db, service, clock):
    old = service.create()
    clock.advance(hours=10)
    young = service.create()
    clock.advance(hours=63)

    assert ExpiredCartPurger(db, clock=clock).purge_expired() == 1
    assert service.repo.find_one(old.id) is None
    assert service.repo.find_one(young.id) is not None
