"""Tests for CartStore — line merging, ordering rules, totals and persistence."""

from decimal import Decimal

import pytest
from ordering.cart.cart import ProductSelection, ShoppingCart
from ordering.cart.events import CartCleared, CartItemAdded, CartQuantityUpdated
from ordering.cart.storage import InMemoryCartStorage
from ordering.cart.store import CartStore
from ordering.coupon.coupon import Coupon, DiscountType
from protean.exceptions import ValidationError


def _pouch(**overrides):
    defaults = {
        "product_id": "doypack-12x18",
        "name": "Stand-up pouch 12x18",
        "unit_price": Decimal("10"),
        "min_order": 50,
        "order_increment": 50,
    }
    defaults.update(overrides)
    return ProductSelection(**defaults)


@pytest.fixture()
def storage():
    return InMemoryCartStorage()


@pytest.fixture()
def store(storage):
    return CartStore(storage)


class TestAddItem:
    def test_new_line_defaults_to_minimum_order(self, store):
        line = store.add_item(_pouch())
        assert line.quantity == 50
        assert store.get_item_count() == 1

    def test_total_for_single_line(self, store):
        store.add_item(_pouch(), 50)
        assert store.get_total() == Decimal("500")

    def test_same_product_and_options_grows_existing_line(self, store):
        store.add_item(_pouch(options={"material": "kraft"}), 50)
        store.add_item(_pouch(options={"material": "kraft"}), 100)
        assert store.get_item_count() == 1
        assert store.items[0].quantity == 150

    def test_option_order_does_not_split_lines(self, store):
        store.add_item(_pouch(options={"material": "kraft", "print": "1-color"}))
        store.add_item(_pouch(options={"print": "1-color", "material": "kraft"}))
        assert store.get_item_count() == 1
        assert store.items[0].quantity == 100

    def test_different_options_create_separate_lines(self, store):
        store.add_item(_pouch(options={"material": "kraft"}))
        store.add_item(_pouch(options={"material": "alu"}))
        assert store.get_item_count() == 2
        assert store.get_count() == 100

    def test_quantity_below_minimum_is_clamped_up(self, store):
        line = store.add_item(_pouch(min_order=100, order_increment=50), 50)
        assert line.quantity == 100

    def test_quantity_rounded_up_to_increment(self, store):
        line = store.add_item(_pouch(), 70)
        assert line.quantity == 100

    def test_quantity_capped_at_maximum_order(self, store):
        line = store.add_item(_pouch(max_order=200), 500)
        assert line.quantity == 200

    @pytest.mark.parametrize("quantity", [0, -5, 2.5, True])
    def test_invalid_quantity_is_rejected(self, store, quantity):
        with pytest.raises(ValidationError):
            store.add_item(_pouch(), quantity)
        assert store.get_item_count() == 0

    def test_add_raises_event(self):
        cart = ShoppingCart.create()
        cart.add_item(_pouch())
        events = [e for e in cart._events if isinstance(e, CartItemAdded)]
        assert len(events) == 1
        assert events[0].line_quantity == 50

    def test_store_does_not_accumulate_events(self, store):
        line = store.add_item(_pouch())
        store.update_quantity(line.id, 100)
        store.set_coupon(Coupon(code="SAVE10", discount_type=DiscountType.PERCENTAGE, value=10))
        store.clear()
        assert store.cart._events == []


class TestProductSelection:
    def test_minimum_must_be_multiple_of_increment(self):
        with pytest.raises(ValidationError) as exc:
            _pouch(min_order=75, order_increment=50)
        assert "min_order" in exc.value.messages

    def test_negative_price_rejected(self):
        with pytest.raises(ValidationError):
            _pouch(unit_price=Decimal("-1"))

    def test_maximum_below_minimum_rejected(self):
        with pytest.raises(ValidationError):
            _pouch(max_order=10)

    def test_increment_defaults_to_minimum_order(self):
        product = ProductSelection(product_id="doypack-12x18", name="Stand-up pouch", unit_price=10, min_order=50)
        assert product.order_increment == 50


class TestUpdateQuantity:
    def test_valid_quantity_is_set(self, store):
        line = store.add_item(_pouch())
        assert store.update_quantity(line.id, 200) is True
        assert store.get_item(line.id).quantity == 200
        assert store.get_total() == Decimal("2000")

    def test_below_minimum_is_a_no_op(self, store, storage):
        line = store.add_item(_pouch(), 100)
        before = storage.load()
        saves = storage.saves

        assert store.update_quantity(line.id, 40) is False
        assert store.get_item(line.id).quantity == 100
        assert storage.load() == before
        assert storage.saves == saves

    def test_not_a_multiple_of_increment_is_a_no_op(self, store):
        line = store.add_item(_pouch(), 100)
        assert store.update_quantity(line.id, 120) is False
        assert store.get_item(line.id).quantity == 100

    def test_above_maximum_is_clamped(self, store):
        line = store.add_item(_pouch(max_order=300))
        assert store.update_quantity(line.id, 1000) is True
        assert store.get_item(line.id).quantity == 300

    def test_minimum_order_alone_keeps_lines_on_its_multiples(self, store):
        product = ProductSelection(product_id="doypack-12x18", name="Stand-up pouch", unit_price=10, min_order=50)
        line = store.add_item(product)

        assert store.update_quantity(line.id, 75) is False
        assert store.get_item(line.id).quantity == 50

        store.add_item(product, 1)
        assert store.get_item(line.id).quantity == 100
        assert store.update_quantity(line.id, 150) is True

    def test_unknown_line_returns_false(self, store):
        store.add_item(_pouch())
        assert store.update_quantity("no-such-line", 100) is False

    def test_update_raises_event(self):
        cart = ShoppingCart.create()
        line = cart.add_item(_pouch())
        cart._events.clear()
        cart.update_item_quantity(line.id, 150)
        event = cart._events[0]
        assert isinstance(event, CartQuantityUpdated)
        assert event.previous_quantity == 50
        assert event.new_quantity == 150


class TestRemoveAndClear:
    def test_remove_item(self, store):
        line = store.add_item(_pouch())
        store.add_item(_pouch(product_id="flat-8x13", unit_price=Decimal("0.45")), 500)
        store.remove_item(line.id)
        assert store.get_item_count() == 1
        assert store.get_total() == Decimal("225.00")
        assert not store.is_in_cart("doypack-12x18")

    def test_remove_unknown_line_raises(self, store):
        with pytest.raises(ValidationError):
            store.remove_item("missing")

    def test_clear_drops_lines_and_coupon(self, store):
        store.add_item(_pouch())
        store.set_coupon(Coupon(code="SAVE10", discount_type=DiscountType.PERCENTAGE, value=10))
        store.clear()
        assert store.get_item_count() == 0
        assert store.get_total() == Decimal("0")
        assert store.applied_coupon is None

    def test_clear_raises_event(self):
        cart = ShoppingCart.create()
        cart.add_item(_pouch())
        cart.clear()
        assert isinstance(cart._events[-1], CartCleared)
        assert cart._events[-1].lines_removed == 1


class TestNotes:
    def test_notes_are_saved(self, store, storage):
        line = store.add_item(_pouch())
        store.update_notes(line.id, "Logo on front only")
        assert storage.load()["items"][0]["notes"] == "Logo on front only"


class TestCounts:
    def test_count_is_sum_of_quantities(self, store):
        store.add_item(_pouch(), 100)
        store.add_item(_pouch(product_id="flat-8x13", min_order=1, order_increment=1), 3)
        assert store.get_count() == 103
        assert store.get_item_count() == 2

    def test_total_tracks_every_mutation(self, store):
        a = store.add_item(_pouch(), 50)
        b = store.add_item(_pouch(product_id="box", unit_price=Decimal("2.35"), min_order=1, order_increment=1), 3)
        store.update_quantity(a.id, 100)
        store.remove_item(b.id)
        expected = sum((Decimal(str(i.unit_price)) * i.quantity for i in store.items), Decimal("0"))
        assert store.get_total() == expected == Decimal("1000")


class TestPersistence:
    def test_every_mutation_is_saved(self, store, storage):
        line = store.add_item(_pouch())
        store.update_quantity(line.id, 100)
        store.remove_item(line.id)
        assert storage.saves == 3

    def test_cart_survives_reload(self, storage):
        first = CartStore(storage)
        first.add_item(_pouch(options={"material": "kraft"}), 150)
        first.set_coupon(Coupon(code="SAVE10", discount_type=DiscountType.PERCENTAGE, value=10))

        reloaded = CartStore(storage)
        assert reloaded.get_total() == Decimal("1500")
        assert reloaded.items[0].option_values == {"material": "kraft"}
        assert reloaded.applied_coupon.code == "SAVE10"
        assert str(reloaded.cart.id) == str(first.cart.id)

    def test_corrupt_snapshot_starts_empty(self):
        storage = InMemoryCartStorage({"version": 2, "cart_id": "c-1", "items": [{"id": "x"}]})
        store = CartStore(storage)
        assert store.get_item_count() == 0

    def test_old_snapshot_version_starts_empty(self):
        storage = InMemoryCartStorage({"version": 1, "cart_id": "c-1", "items": []})
        assert CartStore(storage).get_item_count() == 0


class TestSnapshot:
    def test_snapshot_round_trip_keeps_line_rules(self):
        cart = ShoppingCart.create(session_id="sess-1")
        cart.add_item(_pouch(max_order=400), 100)
        restored = ShoppingCart.from_snapshot(cart.to_snapshot())
        line = restored.items[0]
        assert (line.min_order, line.order_increment, line.max_order) == (50, 50, 400)
        assert restored.session_id == "sess-1"
