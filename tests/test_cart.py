from decimal import Decimal

from cart import CartStore, cart_total, format_currency, normalize_cart
from client_store import CART_KEY, ClientStore


def product(pid, price, name=None, stock=10):
    return {"_id": pid, "name": name or pid, "price": price, "quantity": stock}


def test_duplicates_collapse_into_one_line():
    raw = [product("a", 5, name="first"), product("b", 7), product("a", 99, name="second"), product("a", 5)]
    lines = normalize_cart(raw)
    assert [line["id"] for line in lines] == ["a", "b"]
    assert lines[0]["quantity"] == 3
    assert lines[0]["name"] == "first"
    assert lines[0]["price"] == 5
    assert lines[1]["quantity"] == 1


def test_stock_quantity_is_not_cart_quantity():
    lines = normalize_cart([product("a", 5, stock=42)])
    assert lines[0]["quantity"] == 1


def test_falsy_and_id_less_entries_dropped():
    raw = [None, {}, {"name": "no id", "price": 1}, product("a", 1), {"id": "b", "price": 2}]
    assert [line["id"] for line in normalize_cart(raw)] == ["a", "b"]


def test_non_list_input():
    assert normalize_cart(None) == []
    assert normalize_cart({"_id": "a"}) == []


def test_normalize_does_not_mutate_input():
    raw = [product("a", 5), product("a", 5)]
    normalize_cart(raw)
    assert raw[0]["quantity"] == 10
    assert "id" not in raw[0]


def test_total_and_formatting():
    lines = normalize_cart([product("a", 100), product("b", 200), product("b", 200), product("c", 0.1)])
    assert cart_total(lines) == Decimal("500.1")
    assert format_currency(cart_total(lines)) == "$500.10"
    assert format_currency(Decimal("1234.5")) == "$1,234.50"
    assert format_currency(cart_total([])) == "$0.00"


def test_cart_store_persists_every_mutation():
    store = ClientStore()
    cart = CartStore(store)
    cart.add(product("a", 100))
    cart.add(product("a", 100))
    cart.add(product("b", 200))
    assert len(store.read(CART_KEY)) == 3

    reloaded = CartStore(store)
    assert [(line["id"], line["quantity"]) for line in reloaded.lines] == [("a", 2), ("b", 1)]
    assert reloaded.formatted_total() == "$400.00"

    reloaded.remove("a")
    assert [line["id"] for line in CartStore(store).lines] == ["b"]


def test_cart_store_replace():
    store = ClientStore()
    cart = CartStore(store)
    cart.add(product("a", 1))
    cart.replace([product("c", 3), product("c", 3)])
    assert [(line["id"], line["quantity"]) for line in cart.lines] == [("c", 2)]


def test_clear_removes_key():
    store = ClientStore()
    cart = CartStore(store)
    cart.add(product("a", 1))
    cart.clear()
    assert CART_KEY not in store
    assert cart.lines == []


def test_file_backed_store(tmp_path):
    path = str(tmp_path / "storage.json")
    store = ClientStore(path)
    store.write("auth", {"token": "t"})
    CartStore(store).add(product("a", 1))

    reopened = ClientStore(path)
    assert reopened.read("auth") == {"token": "t"}
    assert CartStore(reopened).lines[0]["id"] == "a"
    reopened.clear("auth")
    assert "auth" not in ClientStore(path)


def test_unreadable_cart_value_starts_empty():
    store = ClientStore()
    store.write(CART_KEY, {"not": "a list"})
    assert CartStore(store).lines == []


def test_corrupted_prices_count_as_zero():
    store = ClientStore()
    store.write(CART_KEY, [
        {"_id": "a", "price": None},
        {"_id": "b", "price": "abc"},
        {"_id": "c"},
        {"_id": "d", "price": "NaN"},
        product("e", 12.5),
    ])
    cart = CartStore(store)
    assert len(cart.lines) == 5
    assert cart.total() == Decimal("12.5")
    assert cart.formatted_total() == "$12.50"
