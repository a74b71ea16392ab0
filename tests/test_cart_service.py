"""Tests for the cart identity & merge manager"""
import uuid
from collections import Counter

import pytest
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.orm.exc import StaleDataError
from sqlmodel import Session

from storefront.core.errors import NotFoundError, TransientError, ValidationError
from storefront.repositories.cart_repo import CartRepository
from storefront.repositories.product_repo import ProductRepository
from storefront.schemas.cart import OwnerKey
from storefront.services.cart_cache import CartCache
from storefront.services.cart_service import CartService, resolve_owner_key


SESSION = OwnerKey.for_session("sess-abc123")
USER_ID = uuid.UUID("8b7c3d1e-5f0a-4c2b-9d6e-1a2b3c4d5e6f")
USER = OwnerKey.for_user(USER_ID)


def quantities(items):
    return {it.product_id: it.quantity for it in items}


# ---- resolve_owner_key ----


def test_resolve_owner_key_prefers_user():
    owner = resolve_owner_key(USER_ID, "sess-abc123")
    assert owner == USER
    assert owner.kind == "user"
    assert owner.value == str(USER_ID)


def test_resolve_owner_key_falls_back_to_session():
    assert resolve_owner_key(None, "sess-abc123") == SESSION


def test_resolve_owner_key_requires_some_identity():
    with pytest.raises(ValidationError):
        resolve_owner_key(None, None)


# ---- get_cart ----


def test_get_cart_for_unknown_owner_is_empty(session, cart_service):
    assert cart_service.get_cart(session, OwnerKey.for_session("never-seen")) == []


# ---- add_item ----


def test_add_item_creates_row(session, products, cart_service):
    item = cart_service.add_item(session, SESSION, "P1", 2)
    assert item.product_id == "P1"
    assert item.quantity == 2
    assert item.owner_kind == "session"
    assert item.owner_key == "sess-abc123"


def test_add_item_sums_repeated_adds(session, products, cart_service):
    for qty in (1, 3, 2):
        cart_service.add_item(session, SESSION, "P1", qty)

    items = cart_service.get_cart(session, SESSION)
    assert len(items) == 1
    assert items[0].quantity == 6


def test_add_item_keeps_same_row_id(session, products, cart_service):
    first = cart_service.add_item(session, SESSION, "P2", 1)
    second = cart_service.add_item(session, SESSION, "P2", 4)
    assert first.id == second.id
    assert second.quantity == 5


def test_add_item_zero_quantity_rejected(session, products, cart_service):
    with pytest.raises(ValidationError):
        cart_service.add_item(session, SESSION, "P3", 0)
    assert cart_service.get_cart(session, SESSION) == []


def test_add_item_negative_quantity_rejected(session, products, cart_service):
    with pytest.raises(ValidationError):
        cart_service.add_item(session, SESSION, "P1", -2)


def test_add_item_unknown_product_rejected(session, products, cart_service):
    with pytest.raises(ValidationError, match="not found"):
        cart_service.add_item(session, SESSION, "NOPE", 1)


def test_add_item_inactive_product_rejected(session, products, cart_service):
    with pytest.raises(ValidationError, match="inactive"):
        cart_service.add_item(session, SESSION, "P4", 1)


def test_add_item_out_of_stock_rejected(session, products, cart_service):
    with pytest.raises(ValidationError, match="out of stock"):
        cart_service.add_item(session, SESSION, "P5", 1)


def test_add_item_by_tracking_id(session, products, cart_service):
    item = cart_service.add_item(session, SESSION, None, 1, tracking_id="SAR-P2")
    assert item.product_id == "P2"


def test_add_item_keeps_owners_apart(session, products, cart_service):
    cart_service.add_item(session, SESSION, "P1", 1)
    cart_service.add_item(session, USER, "P1", 7)

    assert quantities(cart_service.get_cart(session, SESSION)) == {"P1": 1}
    assert quantities(cart_service.get_cart(session, USER)) == {"P1": 7}


# ---- update_quantity ----


def test_update_quantity_overwrites(session, products, cart_service):
    item = cart_service.add_item(session, SESSION, "P1", 2)
    updated = cart_service.update_quantity(session, SESSION, item.id, 9)
    assert updated.quantity == 9
    assert quantities(cart_service.get_cart(session, SESSION)) == {"P1": 9}


@pytest.mark.parametrize("quantity", [0, -1])
def test_update_quantity_below_one_rejected(session, products, cart_service, quantity):
    item = cart_service.add_item(session, SESSION, "P1", 2)
    with pytest.raises(ValidationError):
        cart_service.update_quantity(session, SESSION, item.id, quantity)
    assert quantities(cart_service.get_cart(session, SESSION)) == {"P1": 2}


def test_update_quantity_unknown_item(session, products, cart_service):
    with pytest.raises(NotFoundError):
        cart_service.update_quantity(session, SESSION, "missing-id", 2)


def test_update_quantity_of_another_owners_row_is_not_found(session, products, cart_service):
    item = cart_service.add_item(session, SESSION, "P1", 2)
    stranger = OwnerKey.for_session("someone-else")

    with pytest.raises(NotFoundError):
        cart_service.update_quantity(session, stranger, item.id, 9)

    assert quantities(cart_service.get_cart(session, SESSION)) == {"P1": 2}


def test_update_quantity_after_removal_elsewhere_is_not_found(engine, products, cart_service):
    with Session(engine) as first, Session(engine) as second:
        item = cart_service.add_item(first, SESSION, "P1", 2)
        cart_service.remove_item(second, SESSION, item.id)

        with pytest.raises(NotFoundError):
            cart_service.update_quantity(first, SESSION, item.id, 5)


# ---- remove_item ----


def test_remove_item_is_idempotent(session, products, cart_service):
    item = cart_service.add_item(session, SESSION, "P1", 2)

    cart_service.remove_item(session, SESSION, item.id)
    cart_service.remove_item(session, SESSION, item.id)

    assert cart_service.get_cart(session, SESSION) == []


def test_remove_nonexistent_item_succeeds(session, cart_service):
    assert cart_service.remove_item(session, SESSION, "nonexistent-id") is None


def test_remove_another_owners_row_is_a_no_op(session, products, cart_service):
    item = cart_service.add_item(session, SESSION, "P1", 2)

    cart_service.remove_item(session, OwnerKey.for_session("someone-else"), item.id)
    cart_service.remove_item(session, USER, item.id)

    assert quantities(cart_service.get_cart(session, SESSION)) == {"P1": 2}


def test_clear_cart(session, products, cart_service):
    cart_service.add_item(session, SESSION, "P1", 1)
    cart_service.add_item(session, SESSION, "P2", 1)
    cart_service.add_item(session, USER, "P3", 1)

    cart_service.clear_cart(session, SESSION)

    assert cart_service.get_cart(session, SESSION) == []
    assert quantities(cart_service.get_cart(session, USER)) == {"P3": 1}


# ---- summary ----


def test_cart_summary_totals(session, products, cart_service):
    cart_service.add_item(session, SESSION, "P1", 2)
    cart_service.add_item(session, SESSION, "P2", 1)

    summary = cart_service.get_cart_summary(session, SESSION)

    assert summary.owner_kind == "session"
    assert summary.total_quantity == 3
    assert summary.total_price == pytest.approx(2 * 12500.0 + 2400.0)
    lines = {line.product_id: line for line in summary.items}
    assert lines["P1"].line_total == pytest.approx(25000.0)
    assert lines["P1"].tracking_id == "SAR-P1"


def test_cart_summary_skips_vanished_products(session, products, cart_service):
    cart_service.add_item(session, SESSION, "P1", 1)
    cart_service.add_item(session, SESSION, "P2", 1)
    session.delete(ProductRepository().get_by_id(session, "P2"))
    session.commit()

    summary = cart_service.get_cart_summary(session, SESSION)

    assert [line.product_id for line in summary.items] == ["P1"]
    assert summary.total_quantity == 1


# ---- merge_on_login ----


def test_merge_scenario_a_pure_transfer(session, products, cart_service):
    cart_service.add_item(session, SESSION, "P1", 2)

    merged = cart_service.merge_on_login(session, SESSION.value, USER_ID)

    assert quantities(merged) == {"P1": 2}
    assert all(it.owner_kind == "user" for it in merged)
    assert cart_service.get_cart(session, SESSION) == []


def test_merge_transfer_keeps_row_id(session, products, cart_service):
    original = cart_service.add_item(session, SESSION, "P1", 2)
    merged = cart_service.merge_on_login(session, SESSION.value, USER_ID)
    assert merged[0].id == original.id


def test_merge_scenario_b_sums_quantities(session, products, cart_service):
    cart_service.add_item(session, SESSION, "P1", 2)
    cart_service.add_item(session, USER, "P1", 3)

    merged = cart_service.merge_on_login(session, SESSION.value, USER_ID)

    assert quantities(merged) == {"P1": 5}
    assert cart_service.get_cart(session, SESSION) == []


def test_merge_scenario_c_empty_session_cart(session, products, cart_service):
    cart_service.add_item(session, USER, "P2", 1)
    before = cart_service.get_cart(session, USER)

    merged = cart_service.merge_on_login(session, SESSION.value, USER_ID)

    assert merged == before
    assert quantities(merged) == {"P2": 1}


def test_merge_both_empty(session, cart_service):
    assert cart_service.merge_on_login(session, SESSION.value, USER_ID) == []


def test_merge_preserves_quantities_and_leaves_no_residue(session, products, cart_service):
    cart_service.add_item(session, SESSION, "P1", 2)
    cart_service.add_item(session, SESSION, "P2", 1)
    cart_service.add_item(session, SESSION, "P3", 3)
    cart_service.add_item(session, USER, "P1", 4)
    cart_service.add_item(session, USER, "P3", 1)

    expected = Counter(quantities(cart_service.get_cart(session, SESSION)))
    expected.update(quantities(cart_service.get_cart(session, USER)))

    merged = cart_service.merge_on_login(session, SESSION.value, USER_ID)

    assert quantities(merged) == dict(expected)
    assert len(merged) == len({it.product_id for it in merged})
    assert CartRepository().list_for_owner(session, SESSION) == []


def test_merge_is_idempotent(session, products, cart_service):
    cart_service.add_item(session, SESSION, "P1", 2)
    cart_service.add_item(session, USER, "P1", 3)
    cart_service.add_item(session, USER, "P2", 1)

    first = cart_service.merge_on_login(session, SESSION.value, USER_ID)
    second = cart_service.merge_on_login(session, SESSION.value, USER_ID)

    assert [(it.id, it.product_id, it.quantity) for it in first] == [
        (it.id, it.product_id, it.quantity) for it in second
    ]


def test_merge_requires_session_id(session, cart_service):
    with pytest.raises(ValidationError):
        cart_service.merge_on_login(session, "", USER_ID)


def test_merge_refreshes_cached_carts(session, products, cart_service):
    cart_service.add_item(session, SESSION, "P1", 2)
    # warm both cache entries
    assert quantities(cart_service.get_cart(session, SESSION)) == {"P1": 2}
    assert cart_service.get_cart(session, USER) == []

    cart_service.merge_on_login(session, SESSION.value, USER_ID)

    assert cart_service.get_cart(session, SESSION) == []
    assert quantities(cart_service.get_cart(session, USER)) == {"P1": 2}


def make_worker(fake_redis):
    return CartService(CartRepository(), ProductRepository(), CartCache(fake_redis, ttl_seconds=30))


def test_write_on_one_worker_refreshes_another_workers_read(session, products, fake_redis):
    worker_a = make_worker(fake_redis)
    worker_b = make_worker(fake_redis)

    assert worker_b.get_cart(session, SESSION) == []
    worker_a.add_item(session, SESSION, "P1", 2)

    assert quantities(worker_b.get_cart(session, SESSION)) == {"P1": 2}


def test_merge_on_one_worker_refreshes_both_carts_on_another(session, products, fake_redis):
    worker_a = make_worker(fake_redis)
    worker_b = make_worker(fake_redis)
    worker_a.add_item(session, SESSION, "P1", 2)
    assert quantities(worker_b.get_cart(session, SESSION)) == {"P1": 2}
    assert worker_b.get_cart(session, USER) == []

    worker_a.merge_on_login(session, SESSION.value, USER_ID)

    assert worker_b.get_cart(session, SESSION) == []
    assert quantities(worker_b.get_cart(session, USER)) == {"P1": 2}


def test_new_anonymous_activity_after_logout_is_merged_next_login(
    session, products, cart_service
):
    cart_service.add_item(session, SESSION, "P1", 1)
    cart_service.merge_on_login(session, SESSION.value, USER_ID)

    # logged out, same session id retained
    cart_service.add_item(session, SESSION, "P1", 2)
    merged = cart_service.merge_on_login(session, SESSION.value, USER_ID)

    assert quantities(merged) == {"P1": 3}


# ---- storage failures ----


class FlakyDeleteRepository(CartRepository):
    """Fails the first delete, as if the connection dropped mid-merge"""

    def __init__(self):
        self.failures_left = 1

    def delete(self, session, item):
        if self.failures_left:
            self.failures_left -= 1
            raise OperationalError("DELETE FROM cart_items", {}, Exception("connection lost"))
        super().delete(session, item)


def test_failed_merge_rolls_back_and_retry_does_not_double_count(session, products, fake_redis):
    service = CartService(FlakyDeleteRepository(), ProductRepository(), CartCache(fake_redis, ttl_seconds=30))
    service.add_item(session, SESSION, "P1", 2)
    service.add_item(session, SESSION, "P2", 1)
    service.add_item(session, USER, "P1", 3)

    with pytest.raises(TransientError):
        service.merge_on_login(session, SESSION.value, USER_ID)

    # nothing half-applied
    assert quantities(service.get_cart(session, SESSION)) == {"P1": 2, "P2": 1}
    assert quantities(service.get_cart(session, USER)) == {"P1": 3}

    merged = service.merge_on_login(session, SESSION.value, USER_ID)
    assert quantities(merged) == {"P1": 5, "P2": 1}
    assert service.get_cart(session, SESSION) == []


class BrokenListRepository(CartRepository):
    def list_for_owner(self, session, owner):
        raise OperationalError("SELECT", {}, Exception("timeout"))


def test_read_failure_is_transient(session, fake_redis):
    service = CartService(BrokenListRepository(), ProductRepository(), CartCache(fake_redis, ttl_seconds=30))
    with pytest.raises(TransientError):
        service.get_cart(session, SESSION)


class RacingUpsertRepository(CartRepository):
    def upsert(self, session, owner, product_id, quantity):
        raise IntegrityError("INSERT INTO cart_items", {}, Exception("duplicate key"))


def test_insert_race_is_transient(session, products, fake_redis):
    service = CartService(RacingUpsertRepository(), ProductRepository(), CartCache(fake_redis, ttl_seconds=30))
    with pytest.raises(TransientError):
        service.add_item(session, SESSION, "P1", 1)


class VanishingRowRepository(CartRepository):
    """The row is deleted by another process between read and write"""

    def set_quantity(self, session, item, quantity):
        raise StaleDataError("UPDATE statement on table 'cart_items' expected to update 1 row(s); 0 were matched.")


def test_row_deleted_mid_update_is_transient(session, products, fake_redis):
    service = CartService(VanishingRowRepository(), ProductRepository(), CartCache(fake_redis, ttl_seconds=30))
    item = service.add_item(session, SESSION, "P1", 1)

    with pytest.raises(TransientError):
        service.update_quantity(session, SESSION, item.id, 3)
