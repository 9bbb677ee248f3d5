"""
Authorization tests for the bakeoffice API.

Verifies:
- Unauthenticated requests return 401
- Login / me / logout round trip
- Roles are enforced per restaurant (403) and denials are logged
- An end-to-end sale submit -> review flow over HTTP
"""

import pytest

from bakeoffice.models import BankTransaction, SecurityEvent, SessionToken

from conftest import PASSWORD, auth_headers, get_auth_token


# =============================================================================
# UNAUTHENTICATED ACCESS (401)
# =============================================================================


class TestUnauthenticatedAccess:
    """All protected endpoints return 401 without a token."""

    @pytest.mark.parametrize(
        "method,path",
        [
            ("GET", "/api/auth/me"),
            ("POST", "/api/auth/logout"),
            ("GET", "/api/sales"),
            ("POST", "/api/sales"),
            ("GET", "/api/expenses"),
            ("GET", "/api/customers"),
            ("GET", "/api/debts"),
            ("GET", "/api/bank/balances"),
            ("GET", "/api/bank/transactions"),
            ("GET", "/api/inventory/items"),
            ("POST", "/api/inventory/reconciliations"),
            ("POST", "/api/production/check-availability"),
            ("GET", "/api/admin/reset"),
            ("POST", "/api/admin/reset"),
        ],
    )
    def test_requires_auth(self, client, db_session, method, path):
        resp = getattr(client, method.lower())(path)
        assert resp.status_code == 401, f"{method} {path} returned {resp.status_code}"

    def test_garbage_token(self, client, db_session):
        resp = client.get("/api/auth/me", headers=auth_headers("not-a-token"))
        assert resp.status_code == 401

    def test_health_is_public(self, client, db_session):
        resp = client.get("/health")
        assert resp.status_code == 200
        assert resp.json["checks"]["database"]["status"] == "healthy"


# =============================================================================
# LOGIN / SESSION
# =============================================================================


class TestSession:

    def test_login_lists_memberships(self, client, db_session, owner):
        resp = client.post("/api/auth/login", json={"email": "OWNER@fatou.gn", "password": PASSWORD})

        assert resp.status_code == 200
        assert len(resp.json["token"]) == 64
        assert {r["restaurantName"] for r in resp.json["restaurants"]} == {"Chez Fatou", "Boulangerie Kaloum"}
        # only the hash is stored
        assert db_session.query(SessionToken).filter_by(token_hash=resp.json["token"]).count() == 0

    def test_bad_password(self, client, db_session, owner):
        resp = client.post("/api/auth/login", json={"email": owner.email, "password": "Wrong1234"})

        assert resp.status_code == 401
        assert db_session.query(SecurityEvent).filter_by(event_type="LOGIN_FAILED").count() == 1

    def test_missing_credentials(self, client, db_session):
        assert client.post("/api/auth/login", json={"email": "a@b.gn"}).status_code == 400

    def test_logout_revokes_token(self, client, db_session, cashier):
        headers = auth_headers(get_auth_token(client, cashier.email))

        assert client.get("/api/auth/me", headers=headers).status_code == 200
        assert client.post("/api/auth/logout", headers=headers).status_code == 200
        assert client.get("/api/auth/me", headers=headers).status_code == 401

    def test_deactivated_user_loses_session(self, client, db_session, cashier, login):
        headers = login(cashier)
        cashier.is_active = False
        db_session.commit()

        assert client.get("/api/auth/me", headers=headers).status_code == 401
        assert db_session.query(SessionToken).filter_by(user_id=cashier.id, is_revoked=True).count() == 1


# =============================================================================
# ROLE ENFORCEMENT (403)
# =============================================================================


class TestRoleEnforcement:

    @pytest.mark.parametrize("user_fixture", ["cashier", "manager", "baker"])
    def test_bank_is_owner_only(self, request, client, db_session, restaurant_a, login, user_fixture):
        user = request.getfixturevalue(user_fixture)
        resp = client.get(f"/api/bank/balances?restaurantId={restaurant_a.id}", headers=login(user))
        assert resp.status_code == 403

    def test_denial_is_logged(self, client, db_session, cashier, restaurant_a, login):
        resp = client.post("/api/bank/transactions", json={
            "restaurantId": restaurant_a.id,
            "date": "2026-03-14",
            "amount": 10_000,
            "type": "Deposit",
            "method": "Cash",
            "reason": "Other",
        }, headers=login(cashier))

        assert resp.status_code == 403
        assert resp.json["requiredPermission"] == "can_access_bank"
        event = db_session.query(SecurityEvent).filter_by(event_type="PERMISSION_DENIED").one()
        assert event.user_id == cashier.id
        assert event.restaurant_id == restaurant_a.id
        assert db_session.query(BankTransaction).count() == 0

    def test_baker_cannot_submit_sales(self, client, db_session, baker, restaurant_a, login):
        resp = client.post("/api/sales", json={
            "restaurantId": restaurant_a.id, "date": "2026-03-14", "cashGNF": 10_000,
        }, headers=login(baker))
        assert resp.status_code == 403

    def test_cashier_cannot_reset(self, client, db_session, cashier, restaurant_a, login):
        resp = client.post("/api/admin/reset", json={
            "restaurantId": restaurant_a.id, "types": ["sales"], "confirmationPhrase": "Chez Fatou",
        }, headers=login(cashier))
        assert resp.status_code == 403

    def test_role_is_resolved_per_restaurant(self, client, db_session, owner, restaurant_b, login):
        resp = client.get(f"/api/bank/balances?restaurantId={restaurant_b.id}", headers=login(owner))
        assert resp.status_code == 200


# =============================================================================
# END-TO-END FLOWS
# =============================================================================


class TestSaleFlow:

    def test_submit_and_approve(self, client, db_session, owner, cashier, restaurant_a, login):
        resp = client.post("/api/sales", json={
            "restaurantId": restaurant_a.id,
            "date": "2026-03-14",
            "cashGNF": 1_500_000,
            "orangeMoneyGNF": 250_000,
            "saleItems": [{"productName": "Baguette", "quantity": 500, "unitPriceGNF": 3_000}],
        }, headers=login(cashier))
        assert resp.status_code == 201
        sale_id = resp.json["sale"]["id"]
        assert resp.json["sale"]["status"] == "Pending"
        assert resp.json["sale"]["totalGNF"] == 1_750_000

        owner_headers = login(owner)
        resp = client.post(f"/api/sales/{sale_id}/review", json={"action": "approve"}, headers=owner_headers)
        assert resp.status_code == 200
        assert resp.json["sale"]["status"] == "Approved"

        resp = client.get(f"/api/bank/transactions?restaurantId={restaurant_a.id}", headers=owner_headers)
        assert sorted(t["amount"] for t in resp.json["transactions"]) == [250_000, 1_500_000]
        assert {t["status"] for t in resp.json["transactions"]} == {"Pending"}

    def test_duplicate_date_is_409(self, client, db_session, cashier, restaurant_a, login):
        headers = login(cashier)
        body = {"restaurantId": restaurant_a.id, "date": "2026-03-14", "cashGNF": 10_000}

        first = client.post("/api/sales", json=body, headers=headers)
        second = client.post("/api/sales", json=body, headers=headers)

        assert second.status_code == 409
        assert second.json["existingSaleId"] == first.json["sale"]["id"]

    def test_invalid_amount_is_400(self, client, db_session, cashier, restaurant_a, login):
        resp = client.post("/api/sales", json={
            "restaurantId": restaurant_a.id, "date": "2026-03-14", "cashGNF": 12.5,
        }, headers=login(cashier))
        assert resp.status_code == 400

    def test_cashier_cannot_review(self, client, db_session, cashier, restaurant_a, login):
        headers = login(cashier)
        sale = client.post("/api/sales", json={
            "restaurantId": restaurant_a.id, "date": "2026-03-14", "cashGNF": 10_000,
        }, headers=headers).json["sale"]

        resp = client.post(f"/api/sales/{sale['id']}/review", json={"action": "approve"}, headers=headers)
        assert resp.status_code == 403


class TestExpensePaymentFlow:

    def test_pay_expense_in_two_steps(self, client, db_session, owner, restaurant_a, category, login):
        headers = login(owner)
        expense = client.post("/api/expenses", json={
            "restaurantId": restaurant_a.id,
            "date": "2026-03-01",
            "categoryId": category.id,
            "amountGNF": 500_000,
        }, headers=headers).json["expense"]
        client.post(f"/api/expenses/{expense['id']}/review", json={"action": "approve"}, headers=headers)

        first = client.post(f"/api/expenses/{expense['id']}/payments", json={
            "amount": 200_000, "paymentMethod": "Cash",
        }, headers=headers)
        assert first.status_code == 201
        assert first.json["summary"]["paymentStatus"] == "PartiallyPaid"

        over = client.post(f"/api/expenses/{expense['id']}/payments", json={
            "amount": 300_001, "paymentMethod": "Cash",
        }, headers=headers)
        assert over.status_code == 409
        assert over.json["remainingAmount"] == 300_000
