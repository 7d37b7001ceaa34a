from conftest import add_item
from email_templates import low_stock_alert
from inventory import check_low_stock, decrement_ingredient, find_low_stock


def test_low_stock_scan_threshold(db):
    add_item(db, "cheese", "Feta", quantity=5, threshold=10)
    add_item(db, "cheese", "Cheddar", quantity=11, threshold=10)
    add_item(db, "cheese", "Parmesan", quantity=10, threshold=10)
    names = [item["name"] for item in find_low_stock(db)]
    assert names == ["Feta", "Parmesan"]


def test_check_low_stock_sends_one_aggregated_alert(db, mailer):
    add_item(db, "meat", "Bacon", quantity=2, threshold=10)
    add_item(db, "veggie", "Corn", quantity=3, threshold=10)
    add_item(db, "veggie", "Onions", quantity=80, threshold=10)

    low = check_low_stock(db, mailer, admin_email="ops@example.com")

    assert len(low) == 2
    assert len(mailer.sent) == 1
    assert mailer.sent[0]["to"] == "ops@example.com"
    assert "Bacon" in mailer.sent[0]["html"]
    assert "Corn" in mailer.sent[0]["html"]
    assert "Onions" not in mailer.sent[0]["html"]


def test_check_low_stock_repeats_every_run(db, mailer):
    add_item(db, "meat", "Bacon", quantity=2, threshold=10)
    check_low_stock(db, mailer)
    check_low_stock(db, mailer)
    assert len(mailer.sent) == 2


def test_check_low_stock_quiet_when_all_stocked(db, mailer):
    add_item(db, "meat", "Bacon", quantity=50, threshold=10)
    assert check_low_stock(db, mailer) == []
    assert mailer.sent == []


def test_check_low_stock_swallows_mail_failure(db, mailer):
    add_item(db, "meat", "Bacon", quantity=2, threshold=10)
    mailer.fail = True
    assert len(check_low_stock(db, mailer)) == 1


def test_decrement_missing_item_reports_failure(db):
    assert decrement_ingredient(db, "meat", "Unicorn") is False


def test_decrement_has_no_floor(db):
    add_item(db, "sauce", "Pesto", quantity=0)
    assert decrement_ingredient(db, "sauce", "Pesto") is True
    assert db["inventory"].find_one({"name": "Pesto"})["quantity"] == -1


def test_alert_template_escapes_names():
    html = low_stock_alert([{"name": "<b>Olives</b>", "category": "veggie", "quantity": 1, "threshold": 5}])
    assert "&lt;b&gt;Olives&lt;/b&gt;" in html
    assert "<b>Olives</b>" not in html


def test_available_groups_in_stock_items(client, menu, user_headers):
    res = client.get("/api/inventory/available", headers=user_headers)
    assert res.status_code == 200
    body = res.json()
    assert set(body) == {"bases", "sauces", "cheeses", "veggies", "meats"}
    assert [v["name"] for v in body["veggies"]] == ["Corn"]
    assert [m["name"] for m in body["meats"]] == ["Ham"]


def test_list_inventory_sorted(client, menu, user_headers):
    items = client.get("/api/inventory", headers=user_headers).json()
    keys = [(i["category"], i["name"]) for i in items]
    assert keys == sorted(keys)
    assert all("id" in i for i in items)


def test_inventory_requires_login(client, menu):
    assert client.get("/api/inventory").status_code == 401


def test_admin_creates_item(client, db, admin_headers):
    res = client.post("/api/inventory", json={"category": "sauce", "name": "Pesto", "price": 40},
                      headers=admin_headers)
    assert res.status_code == 201
    body = res.json()
    assert body["quantity"] == 100
    assert body["threshold"] == 20
    assert db["inventory"].count_documents({"name": "Pesto"}) == 1


def test_create_rejects_duplicate_and_bad_category(client, admin_headers):
    item = {"category": "sauce", "name": "Pesto", "price": 40}
    client.post("/api/inventory", json=item, headers=admin_headers)
    dup = client.post("/api/inventory", json=item, headers=admin_headers)
    assert dup.status_code == 400
    assert dup.json()["detail"] == "Item already exists"

    bad = client.post("/api/inventory", json={**item, "category": "dessert"}, headers=admin_headers)
    assert bad.status_code == 400


def test_customer_cannot_manage_inventory(client, user_headers):
    res = client.post("/api/inventory", json={"category": "sauce", "name": "Pesto", "price": 40},
                      headers=user_headers)
    assert res.status_code == 403


def test_update_stamps_restock_only_on_increase(client, db, admin_headers):
    created = client.post("/api/inventory",
                          json={"category": "meat", "name": "Beef", "price": 75, "quantity": 10},
                          headers=admin_headers).json()
    db["inventory"].update_one({"name": "Beef"}, {"$set": {"last_restocked": None}})

    lower = client.put(f"/api/inventory/{created['id']}", json={"quantity": 5, "price": 80},
                       headers=admin_headers).json()
    assert lower["quantity"] == 5
    assert lower["price"] == 80
    assert lower["last_restocked"] is None

    higher = client.put(f"/api/inventory/{created['id']}", json={"quantity": 40},
                        headers=admin_headers).json()
    assert higher["quantity"] == 40
    assert higher["last_restocked"] is not None


def test_update_and_delete_unknown_item(client, admin_headers):
    missing = "0123456789abcdef01234567"
    assert client.put(f"/api/inventory/{missing}", json={"quantity": 1},
                      headers=admin_headers).status_code == 404
    assert client.delete(f"/api/inventory/{missing}", headers=admin_headers).status_code == 404
    assert client.delete("/api/inventory/nope", headers=admin_headers).status_code == 400


def test_delete_item(client, db, admin_headers):
    created = client.post("/api/inventory", json={"category": "meat", "name": "Ham", "price": 60},
                          headers=admin_headers).json()
    res = client.delete(f"/api/inventory/{created['id']}", headers=admin_headers)
    assert res.status_code == 200
    assert db["inventory"].count_documents({}) == 0


def test_low_stock_list_does_not_email(client, mailer, menu, admin_headers, user_headers):
    res = client.get("/api/inventory/low-stock/list", headers=admin_headers)
    assert res.status_code == 200
    assert {i["name"] for i in res.json()} == {"Olives", "Ham"}
    assert mailer.sent == []
    assert client.get("/api/inventory/low-stock/list", headers=user_headers).status_code == 403


def test_seed_endpoint_is_idempotent(client, db, admin_headers):
    first = client.post("/api/seed", headers=admin_headers).json()
    second = client.post("/api/seed", headers=admin_headers).json()
    assert first["added"] == 30
    assert second["added"] == 0
    assert db["inventory"].count_documents({"category": "veggie"}) == 9


def test_check_low_stock_tolerates_items_missing_fields(db, mailer):
    db["inventory"].insert_one({"category": "veggie", "name": "Ghost", "price": 1, "threshold": 5})
    low = check_low_stock(db, mailer)
    assert [item["name"] for item in low] == ["Ghost"]
    assert "Ghost" in mailer.sent[0]["html"]
