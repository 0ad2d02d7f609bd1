from decimal import Decimal

import pytest
from sqlalchemy import func, select

from shopcart.core.errors import CartConflict, StoreUnavailable
from shopcart.db.models import Cart
from shopcart.schemas.cart import CartItemAdd
from shopcart.services.cart_store import CartStore


def payload(product, qty=1):
    return CartItemAdd(
        product_id=product.id,
        name=product.name,
        slug=product.slug,
        price=Decimal(product.price),
        qty=qty,
    )


def totals(cart):
    return (cart.items_price, cart.shipping_price, cart.tax_price, cart.total_price)


class RacingStore(CartStore):
    """Lets another writer land the same change just before each of our first ``races`` updates."""

    def __init__(self, db, races=1):
        super().__init__(db)
        self.races = races

    async def update(self, cart_id, patch, expected_version):
        if self.races:
            self.races -= 1
            await super().update(cart_id, patch, expected_version)
        return await super().update(cart_id, patch, expected_version)


class ConcurrentCreateStore(CartStore):
    """Another request in the same session inserts the anonymous cart just before our first insert."""

    def __init__(self, db):
        super().__init__(db)
        self.raced = False

    async def create(self, record):
        if not self.raced:
            self.raced = True
            await super().create(record)
        return await super().create(record)


class BrokenStore(CartStore):
    async def find_by_token(self, session_cart_id):
        raise StoreUnavailable()

    async def find_by_user(self, user_id):
        raise StoreUnavailable()


class TestAddItemToCart:
    @pytest.mark.asyncio
    async def test_anonymous_add_scenario(self, make_service, shoe, notifier):
        service = make_service(session_token="S1")

        first = await service.add_item_to_cart(payload(shoe))
        cart = await service.get_current_cart()

        assert first.success
        assert first.message == "Runner Shoe added to cart successfully"
        assert cart.session_cart_id == "S1"
        assert cart.owner_user_id is None
        assert [(ci.product_id, ci.qty) for ci in cart.items] == [(shoe.id, 1)]
        assert totals(cart) == ("60.00", "10.00", "9.00", "79.00")

        second = await service.add_item_to_cart(payload(shoe))
        cart = await service.get_current_cart()

        assert second.success
        assert second.message == "Runner Shoe updated in cart successfully"
        assert cart.items[0].qty == 2
        assert totals(cart) == ("120.00", "0.00", "18.00", "138.00")
        assert notifier.slugs == ["runner-shoe", "runner-shoe"]

    @pytest.mark.asyncio
    async def test_payload_quantity_does_not_add_more_than_one(self, make_service, shoe):
        service = make_service()

        await service.add_item_to_cart(payload(shoe, qty=5))

        assert (await service.get_current_cart()).items[0].qty == 1

    @pytest.mark.asyncio
    async def test_catalog_price_is_used(self, make_service, shoe):
        service = make_service()
        tampered = payload(shoe).model_copy(update={"price": Decimal("0.01")})

        await service.add_item_to_cart(tampered)

        assert (await service.get_current_cart()).items_price == "60.00"

    @pytest.mark.asyncio
    async def test_no_stock_headroom_leaves_cart_unchanged(self, make_service, make_product, notifier):
        last_one = await make_product(name="Last One", slug="last-one", price="25.00", stock=1)
        service = make_service()
        await service.add_item_to_cart(payload(last_one))
        before = await service.get_current_cart()

        result = await service.add_item_to_cart(payload(last_one))
        after = await service.get_current_cart()

        assert not result.success
        assert result.message == "Not enough stock"
        assert after == before
        assert notifier.slugs == ["last-one"]

    @pytest.mark.asyncio
    async def test_failed_first_add_does_not_create_cart(self, make_service, make_product):
        sold_out = await make_product(name="Sold Out", slug="sold-out", stock=0)
        service = make_service()

        result = await service.add_item_to_cart(payload(sold_out))

        assert not result.success
        assert await service.get_current_cart() is None

    @pytest.mark.asyncio
    async def test_unknown_product(self, make_service, shoe, notifier):
        missing = payload(shoe).model_copy(update={"product_id": "00000000-0000-4000-8000-000000000000"})

        result = await make_service().add_item_to_cart(missing)

        assert not result.success
        assert result.message == "Product not found"
        assert notifier.slugs == []

    @pytest.mark.asyncio
    async def test_no_session_context(self, make_service, shoe):
        result = await make_service(session_token=None).add_item_to_cart(payload(shoe))

        assert not result.success
        assert result.message == "Cart session not found"

    @pytest.mark.asyncio
    async def test_authenticated_first_add_creates_user_cart(self, make_service, shoe):
        service = make_service(session_token="S9", user_id="U1")

        result = await service.add_item_to_cart(payload(shoe))
        cart = await service.get_current_cart()

        assert result.success
        assert cart.owner_user_id == "U1"
        assert cart.items[0].qty == 1


class TestRemoveItemFromCart:
    @pytest.mark.asyncio
    async def test_remove_decrements_then_deletes(self, make_service, shoe):
        service = make_service()
        await service.add_item_to_cart(payload(shoe))
        await service.add_item_to_cart(payload(shoe))

        first = await service.remove_item_from_cart(shoe.id)
        cart = await service.get_current_cart()
        assert first.message == "Runner Shoe updated in cart successfully"
        assert cart.items[0].qty == 1
        assert totals(cart) == ("60.00", "10.00", "9.00", "79.00")

        second = await service.remove_item_from_cart(shoe.id)
        cart = await service.get_current_cart()
        assert second.message == "Runner Shoe removed from cart successfully"
        assert cart.items == []
        assert totals(cart) == ("0.00", "10.00", "0.00", "10.00")

        third = await service.remove_item_from_cart(shoe.id)
        assert not third.success
        assert third.message == "Item not found"

    @pytest.mark.asyncio
    async def test_remove_without_cart(self, make_service, shoe):
        result = await make_service().remove_item_from_cart(shoe.id)

        assert not result.success
        assert result.message == "Cart not found"

    @pytest.mark.asyncio
    async def test_remove_unknown_product(self, make_service):
        result = await make_service().remove_item_from_cart("not-a-product")

        assert result.message == "Product not found"

    @pytest.mark.asyncio
    async def test_remove_keeps_other_lines_in_order(self, make_service, shoe, make_product):
        cap = await make_product(name="Cap", slug="cap", price="15.00")
        sock = await make_product(name="Sock", slug="sock", price="5.00")
        service = make_service()
        for product in (shoe, cap, cap, sock):
            await service.add_item_to_cart(payload(product))

        await service.remove_item_from_cart(cap.id)

        cart = await service.get_current_cart()
        assert [(ci.slug, ci.qty) for ci in cart.items] == [("runner-shoe", 1), ("cap", 1), ("sock", 1)]


class TestCartIdentity:
    @pytest.mark.asyncio
    async def test_login_merges_anonymous_cart(self, make_service, shoe):
        anonymous = make_service(session_token="S1")
        await anonymous.add_item_to_cart(payload(shoe))
        before = await anonymous.get_current_cart()

        cart = await make_service(session_token="S1", user_id="U1").get_current_cart()

        assert cart.id == before.id
        assert cart.owner_user_id == "U1"
        assert cart.items == before.items
        assert totals(cart) == totals(before)

    @pytest.mark.asyncio
    async def test_merged_cart_resolves_to_same_id(self, make_service, shoe):
        await make_service(session_token="S1").add_item_to_cart(payload(shoe))
        signed_in = make_service(session_token="S1", user_id="U1")

        first = await signed_in.get_current_cart()
        second = await signed_in.get_current_cart()

        assert first.id == second.id

    @pytest.mark.asyncio
    async def test_existing_user_cart_wins_and_session_cart_is_orphaned(self, make_service, shoe, make_product, store):
        cap = await make_product(name="Cap", slug="cap", price="15.00")
        await make_service(session_token="S-old", user_id="U1").add_item_to_cart(payload(cap))
        await make_service(session_token="S1").add_item_to_cart(payload(shoe))

        cart = await make_service(session_token="S1", user_id="U1").get_current_cart()

        assert [ci.slug for ci in cart.items] == ["cap"]
        orphan = await store.find_by_token("S1")
        assert orphan.owner_user_id is None
        assert [ci.slug for ci in orphan.items] == ["runner-shoe"]

    @pytest.mark.asyncio
    async def test_add_after_login_goes_to_merged_cart(self, make_service, shoe):
        await make_service(session_token="S1").add_item_to_cart(payload(shoe))
        signed_in = make_service(session_token="S1", user_id="U1")

        await signed_in.add_item_to_cart(payload(shoe))

        cart = await signed_in.get_current_cart()
        assert cart.owner_user_id == "U1"
        assert cart.items[0].qty == 2


class TestConcurrentWrites:
    @pytest.mark.asyncio
    async def test_lost_update_is_replayed(self, make_service, shoe, db_session):
        service = make_service(store=RacingStore(db_session))
        await service.add_item_to_cart(payload(shoe))

        result = await service.add_item_to_cart(payload(shoe))

        assert result.success
        # The competing write and ours both count
        assert (await service.get_current_cart()).items[0].qty == 3

    @pytest.mark.asyncio
    async def test_gives_up_when_retries_are_exhausted(self, make_service, shoe, db_session):
        service = make_service(store=RacingStore(db_session, races=5), conflict_retries=1)
        await service.add_item_to_cart(payload(shoe))

        result = await service.add_item_to_cart(payload(shoe))

        assert not result.success
        assert result.message == CartConflict.default_message


class TestStoreFailures:
    @pytest.mark.asyncio
    async def test_add_reports_store_outage(self, make_service, shoe, db_session):
        result = await make_service(store=BrokenStore(db_session)).add_item_to_cart(payload(shoe))

        assert not result.success
        assert result.message == "Cart storage is unavailable"

    @pytest.mark.asyncio
    async def test_get_current_cart_degrades_to_none(self, make_service, db_session):
        assert await make_service(store=BrokenStore(db_session)).get_current_cart() is None

    @pytest.mark.asyncio
    async def test_missing_session_context_reads_as_no_cart(self, make_service):
        assert await make_service(session_token=None).get_current_cart() is None


class TestConcurrentFirstAdd:
    @pytest.mark.asyncio
    async def test_second_anonymous_cart_is_refused_and_add_replayed(self, make_service, shoe, db_session):
        service = make_service(session_token="S1", store=ConcurrentCreateStore(db_session))

        result = await service.add_item_to_cart(payload(shoe))

        assert result.success
        count = await db_session.execute(select(func.count()).select_from(Cart).where(Cart.session_cart_id == "S1"))
        assert count.scalar() == 1
        # Both first adds land on the one cart
        assert (await service.get_current_cart()).items[0].qty == 2

    @pytest.mark.asyncio
    async def test_negative_retry_setting_still_makes_one_attempt(self, make_service, shoe):
        service = make_service(conflict_retries=-1)

        result = await service.add_item_to_cart(payload(shoe))

        assert result.success
        assert service.conflict_retries == 0


class TestCorruptStoredCart:
    @pytest.fixture
    async def corrupt_cart(self, db_session):
        cart = Cart(
            session_cart_id="S1",
            items=[{"product_id": "x", "qty": 0}],
            items_price=Decimal("0"),
            shipping_price=Decimal("0"),
            tax_price=Decimal("0"),
            total_price=Decimal("0"),
        )
        db_session.add(cart)
        await db_session.commit()
        return cart

    @pytest.mark.asyncio
    async def test_get_current_cart_reads_as_no_cart(self, make_service, corrupt_cart):
        assert await make_service(session_token="S1").get_current_cart() is None

    @pytest.mark.asyncio
    async def test_add_reports_store_failure(self, make_service, shoe, corrupt_cart):
        result = await make_service(session_token="S1").add_item_to_cart(payload(shoe))

        assert not result.success
        assert result.message == "Cart storage is unavailable"

    @pytest.mark.asyncio
    async def test_remove_reports_store_failure(self, make_service, shoe, corrupt_cart):
        result = await make_service(session_token="S1").remove_item_from_cart(shoe.id)

        assert not result.success
        assert result.message == "Cart storage is unavailable"
