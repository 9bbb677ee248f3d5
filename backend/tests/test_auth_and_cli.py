# Overview: Pytest coverage for accounts, memberships and the operator CLI.

import pytest

from bakeoffice.errors import ConflictError, NotFoundError, ValidationError
from bakeoffice.models import Restaurant, Sale, User, UserRestaurant
from bakeoffice.permissions.roles import Role
from bakeoffice.services import sales_service
from bakeoffice.services.auth_service import add_membership, authenticate, create_user, verify_password


class TestAccounts:

    @pytest.mark.parametrize("password", ["Short1", "alllowercase1", "ALLUPPERCASE1", "NoDigitsHere"])
    def test_weak_passwords_rejected(self, db_session, password):
        with pytest.raises(ValidationError):
            create_user("new@fatou.gn", password)
        assert db_session.query(User).count() == 0

    def test_email_is_unique_case_insensitive(self, db_session, owner):
        with pytest.raises(ConflictError):
            create_user("Owner@Fatou.gn", "Password123")

    def test_password_is_hashed(self, db_session, cashier):
        assert cashier.password_hash != "Password123"
        assert verify_password("Password123", cashier.password_hash)
        assert not verify_password("Password123", "not-a-bcrypt-hash")

    def test_inactive_user_cannot_authenticate(self, db_session, cashier):
        cashier.is_active = False
        db_session.commit()
        assert authenticate(cashier.email, "Password123") is None

    def test_membership_role_is_updated_in_place(self, db_session, cashier, restaurant_a):
        add_membership(cashier.id, restaurant_a.id, Role.RESTAURANT_MANAGER)
        memberships = db_session.query(UserRestaurant).filter_by(user_id=cashier.id).all()
        assert [m.role for m in memberships] == [Role.RESTAURANT_MANAGER]

    def test_membership_validation(self, db_session, cashier, restaurant_a):
        with pytest.raises(ValidationError):
            add_membership(cashier.id, restaurant_a.id, "Janitor")
        with pytest.raises(NotFoundError):
            add_membership(cashier.id, 99999, Role.CASHIER)


class TestCli:

    def test_system_init_is_idempotent(self, app, db_session):
        runner = app.test_cli_runner()
        args = ["system", "init", "--restaurant", "Chez Fatou", "--owner-email", "boss@fatou.gn"]

        first = runner.invoke(args=args)
        second = runner.invoke(args=args)

        assert first.exit_code == 0, first.output
        assert second.exit_code == 0, second.output
        assert db_session.query(Restaurant).filter_by(name="Chez Fatou").count() == 1
        owner = db_session.query(User).filter_by(email="boss@fatou.gn").one()
        assert owner.memberships[0].role == Role.OWNER

    def test_reset_requires_matching_phrase(self, app, db_session, cashier_ctx, restaurant_a):
        sales_service.submit_sale(cashier_ctx, {"date": "2026-03-14", "cashGNF": 10_000})
        runner = app.test_cli_runner()

        refused = runner.invoke(args=[
            "data", "reset", "--restaurant-id", str(restaurant_a.id), "--type", "sales", "--confirm", "Wrong",
        ])
        assert refused.exit_code != 0
        assert db_session.query(Sale).count() == 1

        done = runner.invoke(args=[
            "data", "reset", "--restaurant-id", str(restaurant_a.id), "--type", "sales", "--confirm", "Chez Fatou",
        ])
        assert done.exit_code == 0, done.output
        assert "DELETE sales: 1" in done.output
        assert db_session.query(Sale).count() == 0

    def test_audit_drift_reports_clean_ledger(self, app, db_session, restaurant_a):
        result = app.test_cli_runner().invoke(args=["audit", "drift"])
        assert result.exit_code == 0, result.output
        assert "PASS 0 drifted value(s)" in result.output
