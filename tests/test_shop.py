import pytest

from ledgerforge.domain.exceptions import InsufficientFunds, InvalidAmount, ItemNotFound, OutOfStock
from ledgerforge.storage.base import ShopItemRecord
from ledgerforge.testing import ShopItemFactory
from ledgerforge.testing.fixtures import app_fixture

GUILD = "guild"


class RecordingGranter:
    def __init__(self, fail: bool = False) -> None:
        self.fail = fail
        self.calls = []

    async def grant(self, guild_id, user_id, capability):
        self.calls.append((guild_id, user_id, capability))
        if self.fail:
            raise RuntimeError("platform refused")


async def add_item(app, item_id="potion", *, price=100, stock=-1, **kwargs):
    item = ShopItemRecord(
        guild_id=GUILD, item_id=item_id, name=item_id.title(), price=price, stock=stock, **kwargs
    )
    await app.shop_store.put_item(item)
    return item


@pytest.mark.asyncio()
async def test_list_items_sorted_by_price_and_active_only(memory_app):
    factory = ShopItemFactory(guild_id=GUILD)
    for price in (300, 50, 120):
        await memory_app.shop_store.put_item(factory.build(price=price))
    await memory_app.shop_store.put_item(factory.build(price=10, is_active=False))

    items = await memory_app.shop.list_items(GUILD)
    assert [item.price for item in items] == [50, 120, 300]


@pytest.mark.asyncio()
async def test_purchase_decrements_finite_stock(memory_app):
    await add_item(memory_app, stock=5)
    result = await memory_app.shop.purchase(GUILD, "1", "potion", 2)

    assert result.total_price == 200
    assert result.new_balance == 800
    assert result.inventory.quantity == 2
    assert (await memory_app.shop_store.get_item(GUILD, "potion")).stock == 3

    again = await memory_app.shop.purchase(GUILD, "1", "potion")
    assert again.inventory.quantity == 3
    entries = await memory_app.shop.inventory(GUILD, "1")
    assert [(entry.item_id, entry.quantity) for entry in entries] == [("potion", 3)]


@pytest.mark.asyncio()
async def test_unlimited_stock_stays_unlimited(memory_app):
    await add_item(memory_app)
    await memory_app.shop.purchase(GUILD, "1", "potion", 3)
    assert (await memory_app.shop_store.get_item(GUILD, "potion")).stock == -1


@pytest.mark.asyncio()
async def test_out_of_stock_changes_nothing(memory_app):
    await add_item(memory_app, stock=1)
    with pytest.raises(OutOfStock) as excinfo:
        await memory_app.shop.purchase(GUILD, "1", "potion", 2)
    assert excinfo.value.available == 1
    assert (await memory_app.shop_store.get_item(GUILD, "potion")).stock == 1
    assert (await memory_app.ledger.get_balance(GUILD, "1")).wallet == 1000
    assert await memory_app.shop.inventory(GUILD, "1") == []


@pytest.mark.asyncio()
async def test_insufficient_funds_changes_nothing(memory_app):
    await add_item(memory_app, price=600, stock=3)
    with pytest.raises(InsufficientFunds):
        await memory_app.shop.purchase(GUILD, "1", "potion", 2)
    assert (await memory_app.shop_store.get_item(GUILD, "potion")).stock == 3
    assert (await memory_app.ledger.get_balance(GUILD, "1")).wallet == 1000


@pytest.mark.asyncio()
async def test_missing_inactive_and_bad_quantity(memory_app):
    await add_item(memory_app, "retired", is_active=False)
    with pytest.raises(ItemNotFound):
        await memory_app.shop.purchase(GUILD, "1", "nothing")
    with pytest.raises(ItemNotFound):
        await memory_app.shop.purchase(GUILD, "1", "retired")
    with pytest.raises(ItemNotFound):
        await memory_app.shop.get_item(GUILD, "retired")
    with pytest.raises(InvalidAmount):
        await memory_app.shop.purchase(GUILD, "1", "retired", 0)


@pytest.mark.asyncio()
async def test_purchase_is_journaled(memory_app):
    await add_item(memory_app, price=75)
    await memory_app.shop.purchase(GUILD, "1", "potion")
    record = (await memory_app.ledger.transactions(GUILD, "1"))[0]
    assert record.kind == "purchase"
    assert record.amount == -75


@pytest.mark.asyncio()
async def test_capability_granted_after_commit():
    granter = RecordingGranter()
    app = app_fixture(granter=granter)
    await add_item(app, "vip", capability="chat-42")
    result = await app.shop.purchase(GUILD, "1", "vip")
    assert result.capability_granted is True
    assert granter.calls == [(GUILD, "1", "chat-42")]


@pytest.mark.asyncio()
async def test_failed_grant_keeps_purchase():
    app = app_fixture(granter=RecordingGranter(fail=True))
    await add_item(app, "vip", capability="chat-42")
    result = await app.shop.purchase(GUILD, "1", "vip")
    assert result.capability_granted is False
    assert (await app.ledger.get_balance(GUILD, "1")).wallet == 900
    assert (await app.shop.inventory(GUILD, "1"))[0].quantity == 1


@pytest.mark.asyncio()
async def test_capability_without_granter_reports_false(memory_app):
    await add_item(memory_app, "vip", capability="chat-42")
    result = await memory_app.shop.purchase(GUILD, "1", "vip")
    assert result.capability_granted is False

    granter = RecordingGranter()
    memory_app.shop.attach_granter(granter)
    result = await memory_app.shop.purchase(GUILD, "1", "vip")
    assert result.capability_granted is True
