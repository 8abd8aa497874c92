"""HTTP surface: authentication, error envelope, action endpoints and the main flows."""

import boutique.__main__ as boutique_main
from boutique.core.clock import business_today
from boutique.core.config import settings
from boutique.models.catalog import Size
from boutique.models.sales import PaymentMode, Sale, SaleItem
from boutique.models.user import UserRole


def test_health(client):
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_missing_token_is_401_with_error_body(client):
    response = client.get("/products")

    assert response.status_code == 401
    assert response.json() == {"error": "Missing authorization header"}


def test_garbage_token_is_401(client):
    response = client.get("/products", headers={"Authorization": "Bearer not-a-jwt"})

    assert response.status_code == 401
    assert response.json() == {"error": "Invalid or expired token"}


# ---------------------------------------------------------------------------
# Authentication
# ---------------------------------------------------------------------------


def test_signup_then_login(client):
    signup = client.post(
        "/auth/signup",
        json={"email": "awa@boutique.test", "password": "secret123", "nom_complet": "Awa Diallo", "role": "proprietaire"},
    )
    assert signup.status_code == 201
    assert signup.json()["user"]["role"] == "proprietaire"

    login = client.post("/auth/login", json={"email": "awa@boutique.test", "password": "secret123"})
    assert login.status_code == 200
    token = login.json()["access_token"]

    me = client.get("/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert me.json()["full_name"] == "Awa Diallo"


def test_login_with_wrong_password(client, employee):
    response = client.post("/auth/login", json={"email": "moussa@boutique.test", "password": "nope-nope"})

    assert response.status_code == 401
    assert response.json() == {"error": "Invalid email or password"}


def test_invalid_body_is_400(client):
    response = client.post("/auth/login", json={"email": "awa@boutique.test"})

    assert response.status_code == 400
    assert response.json() == {"error": "Missing or invalid fields: password"}


# ---------------------------------------------------------------------------
# manage-users
# ---------------------------------------------------------------------------


def test_manage_users_preflight(client):
    assert client.options("/functions/manage-users").status_code == 200
    assert client.options("/functions/activity-logs").status_code == 200


def test_manage_users_is_owner_only(client, employee, auth_headers):
    response = client.post("/functions/manage-users", json={"action": "list"}, headers=auth_headers(employee))

    assert response.status_code == 403
    assert response.json() == {"error": "Permission denied. Only proprietaire can manage users."}


def test_manage_users_unknown_action(client, owner, auth_headers):
    response = client.post("/functions/manage-users", json={"action": "ban"}, headers=auth_headers(owner))

    assert response.status_code == 400
    assert response.json() == {"error": "Invalid action"}


def test_manage_users_create_requires_fields(client, owner, auth_headers):
    response = client.post(
        "/functions/manage-users",
        json={"action": "create", "email": "fanta@boutique.test"},
        headers=auth_headers(owner),
    )

    assert response.status_code == 400
    assert response.json()["error"].startswith("Missing or invalid fields:")
    assert "password" in response.json()["error"]


def test_manage_users_create_and_list(client, owner, auth_headers):
    created = client.post(
        "/functions/manage-users",
        json={
            "action": "create",
            "email": "fanta@boutique.test",
            "password": "secret123",
            "nom_complet": "Fanta Bah",
            "role": "employe",
            "telephone": "620000000",
        },
        headers=auth_headers(owner),
    )
    assert created.status_code == 200
    assert created.json()["success"] is True
    assert created.json()["user"]["nom_complet"] == "Fanta Bah"

    listed = client.post("/functions/manage-users", json={"action": "list"}, headers=auth_headers(owner))
    assert sorted(user["email"] for user in listed.json()["users"]) == ["awa@boutique.test", "fanta@boutique.test"]


def test_manage_users_rejects_own_role_change(client, owner, auth_headers):
    response = client.post(
        "/functions/manage-users",
        json={"action": "update_role", "user_id": owner.id, "new_role": UserRole.EMPLOYEE.value},
        headers=auth_headers(owner),
    )

    assert response.status_code == 400
    assert response.json() == {"error": "You cannot change your own role"}


# ---------------------------------------------------------------------------
# activity-logs
# ---------------------------------------------------------------------------


def test_employee_can_log_but_not_read(client, employee, auth_headers):
    logged = client.post(
        "/functions/activity-logs",
        json={"action": "log", "action_type": "product_updated", "entity_type": "product", "entity_name": "Robe"},
        headers=auth_headers(employee),
    )
    assert logged.status_code == 200
    assert logged.json()["log"]["user_name"] == "Moussa Camara"

    fetched = client.post("/functions/activity-logs", json={"action": "fetch"}, headers=auth_headers(employee))
    assert fetched.status_code == 403
    assert fetched.json() == {"error": "Permission denied"}


def test_owner_fetches_and_exports(client, owner, auth_headers):
    client.post(
        "/functions/activity-logs",
        json={"action": "log", "action_type": "login"},
        headers=auth_headers(owner),
    )

    fetched = client.post("/functions/activity-logs", json={"action": "fetch", "limit": 10}, headers=auth_headers(owner))
    body = fetched.json()
    assert (body["total"], body["page"], body["limit"], body["totalPages"]) == (1, 1, 10, 1)

    exported = client.post("/functions/activity-logs", json={"action": "export"}, headers=auth_headers(owner))
    lines = exported.json()["csv"].split("\n")
    assert lines[0] == "Date,Utilisateur,Action,Type entité,Nom entité,Détails"
    assert '"Connexion"' in lines[1]


# ---------------------------------------------------------------------------
# Catalog, checkout and the day's plan
# ---------------------------------------------------------------------------


def test_product_create_and_checkout_flow(client, employee, auth_headers):
    headers = auth_headers(employee)
    created = client.post(
        "/products",
        json={"code": "RB-01", "name": "Robe wax", "unit_price": 150000, "stock": {"M": 3, "3XL": 1}},
        headers=headers,
    )
    assert created.status_code == 201
    product = created.json()
    assert product["total_stock"] == 4

    pos = client.get("/pos/products", headers=headers).json()
    assert [size["size"] for size in pos[0]["sizes"]] == ["M", "3XL"]

    sale = client.post(
        "/sales/checkout",
        json={"lines": [{"product_id": product["id"], "size": "M", "quantity": 2}], "payment_mode": "mobile_money"},
        headers=headers,
    )
    assert sale.status_code == 201
    assert sale.json()["total_amount"] == 300000
    assert sale.json()["seller_name"] == "Moussa Camara"

    refreshed = client.get(f"/products/{product['id']}", headers=headers).json()
    assert {entry["size"]: entry["quantity_current"] for entry in refreshed["stock"]} == {"M": 1, "3XL": 1}

    report = client.get("/reports/sales", headers=headers).json()
    assert (report["total_revenue"], report["sale_count"]) == (300000, 1)


def test_checkout_beyond_stock_is_rejected(client, employee, auth_headers, make_product):
    product = make_product("CH-01", stock={Size.S: 1})

    response = client.post(
        "/sales/checkout",
        json={"lines": [{"product_id": product.id, "size": "S", "quantity": 2}]},
        headers=auth_headers(employee),
    )

    assert response.status_code == 400
    assert "available" in response.json()["error"]


def test_employee_cannot_manage_categories(client, employee, auth_headers):
    response = client.post("/categories", json={"name": "Robes"}, headers=auth_headers(employee))

    assert response.status_code == 403


def test_work_plan_record_and_close(client, employee, auth_headers, make_product):
    headers = auth_headers(employee)
    make_product("CH-01", unit_price=60000, stock={Size.M: 5})
    today = business_today().isoformat()

    plan = client.get(f"/work-plans/{today}", headers=headers).json()
    line = plan["lines"][0]
    assert (line["quantity_initial"], line["quantity_sold"]) == (5, 0)

    updated = client.put(
        f"/work-plans/{plan['id']}/lines/{line['id']}",
        json={"quantity_sold": 2},
        headers=headers,
    ).json()
    assert updated["total_amount"] == 120000

    closed = client.post(f"/work-plans/{plan['id']}/close", json={"lines": []}, headers=headers)
    assert closed.status_code == 200
    body = closed.json()
    assert body["plan"]["closed"] is True
    assert body["sale"]["payment_mode"] == "especes"
    assert body["sale"]["total_amount"] == 120000

    again = client.post(f"/work-plans/{plan['id']}/close", json={"lines": []}, headers=headers)
    assert again.status_code == 409


def test_wrong_current_password_keeps_the_session(client, employee, auth_headers):
    headers = auth_headers(employee)

    response = client.post(
        "/auth/password",
        json={"current_password": "wrong-pass", "new_password": "nouveau123"},
        headers=headers,
    )

    assert response.status_code == 400
    assert response.json() == {"error": "Current password is incorrect"}
    assert "www-authenticate" not in response.headers
    assert client.get("/auth/me", headers=headers).status_code == 200


# ---------------------------------------------------------------------------
# Sales list and reports
# ---------------------------------------------------------------------------


def _sell(db, product, quantity, seller=None):
    sale = Sale(
        payment_mode=PaymentMode.MOBILE_MONEY,
        total_amount=quantity * product.unit_price,
        employee_id=seller.id if seller is not None else None,
        items=[SaleItem(product_id=product.id, size=Size.M, quantity=quantity, unit_price=product.unit_price)],
    )
    db.add(sale)
    db.commit()
    return sale


def test_sales_search_summary_and_export(client, db, employee, auth_headers, make_product):
    headers = auth_headers(employee)
    dress = make_product("RB-01", unit_price=150000, name="Robe wax", stock={Size.M: 5})
    shirt = make_product("CH-01", unit_price=60000, name="Chemise lin", stock={Size.M: 5})
    _sell(db, dress, 1, seller=employee)
    _sell(db, shirt, 3)

    listed = client.get("/sales", params={"search": "robe"}, headers=headers).json()
    assert [sale["total_amount"] for sale in listed] == [150000]

    summary = client.get("/sales/summary", headers=headers).json()
    assert (summary["revenue"], summary["sale_count"], summary["items_sold"]) == (330000, 2, 4)

    exported = client.get("/sales/export", params={"search": "moussa"}, headers=headers)
    assert exported.status_code == 200
    assert exported.headers["content-type"].startswith("text/csv")
    lines = exported.content.decode("utf-8-sig").splitlines()
    assert lines[0] == "Date;Employé;Produit;Taille;Quantité;Prix unitaire;Total;Mode de paiement"
    assert lines[1].endswith(";Moussa Camara;RB-01 - Robe wax;M;1;150000;150000;Mobile Money")
    assert len(lines) == 2


def test_reports_default_to_month_to_date(client, employee, auth_headers):
    report = client.get("/reports/sales", headers=auth_headers(employee)).json()

    today = business_today()
    assert report["date_from"] == today.replace(day=1).isoformat()
    assert report["date_to"] == today.isoformat()


def test_report_export_keeps_top_ten_products(client, db, employee, auth_headers, make_product):
    for rank in range(12):
        product = make_product(f"P{rank:02d}", unit_price=1000 * (rank + 1), stock={Size.M: 1})
        _sell(db, product, 1)

    exported = client.get("/reports/sales/export", headers=auth_headers(employee))

    lines = exported.text.splitlines()
    assert len(lines) == 1 + 10
    assert lines[1] == "P11,Article P11,1,12000"


def test_console_entry_point_serves_the_app(monkeypatch):
    calls = []
    monkeypatch.setattr(boutique_main.uvicorn, "run", lambda app, **options: calls.append((app, options)))

    boutique_main.main()

    options = {"host": settings.host, "port": settings.port, "log_level": settings.log_level.lower()}
    assert calls == [("boutique.main:app", options)]
