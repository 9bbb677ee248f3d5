# Overview: Pytest coverage for bank transactions; confirmation lifecycle and balances.

import pytest

from bakeoffice.errors import AlreadyConfirmedError, ForbiddenError, InvalidTransitionError, ValidationError
from bakeoffice.models import BankTransaction
from bakeoffice.services import bank_service


def _tx(ctx, amount, tx_type="Deposit", method="Cash", reason="Other", **extra):
    payload = {"date": "2026-03-14", "amount": amount, "type": tx_type, "method": method, "reason": reason}
    payload.update(extra)
    return bank_service.create_transaction(ctx, payload)


class TestLifecycle:

    def test_manual_transaction_starts_pending(self, db_session, owner_ctx):
        transaction = _tx(owner_ctx, 100_000, reason="CapitalInjection", status="Confirmed")
        assert transaction.status == "Pending"
        assert transaction.confirmed_at is None

    def test_confirm_is_idempotent(self, db_session, owner_ctx):
        transaction = _tx(owner_ctx, 100_000)

        first = bank_service.confirm_transaction(owner_ctx, transaction.id, bank_ref="BNK-1")
        confirmed_at = first.confirmed_at
        second = bank_service.confirm_transaction(owner_ctx, transaction.id, bank_ref="BNK-2")

        assert second.status == "Confirmed"
        assert second.confirmed_at == confirmed_at
        assert second.bank_ref == "BNK-1"

    def test_confirmed_transaction_cannot_be_edited(self, db_session, owner_ctx):
        transaction = _tx(owner_ctx, 100_000)
        bank_service.confirm_transaction(owner_ctx, transaction.id)

        with pytest.raises(AlreadyConfirmedError):
            bank_service.update_transaction(owner_ctx, transaction.id, {"amount": 90_000})
        assert db_session.get(BankTransaction, transaction.id).amount == 100_000

    def test_confirmed_cannot_return_to_pending(self, db_session, owner_ctx):
        transaction = _tx(owner_ctx, 100_000)
        bank_service.confirm_transaction(owner_ctx, transaction.id)
        with pytest.raises(InvalidTransitionError):
            bank_service.update_transaction(owner_ctx, transaction.id, {"status": "Pending"})

    def test_update_pending_then_confirm(self, db_session, owner_ctx):
        transaction = _tx(owner_ctx, 100_000)

        updated = bank_service.update_transaction(owner_ctx, transaction.id, {
            "amount": 95_000, "description": "Corrected", "status": "Confirmed",
        })

        assert updated.amount == 95_000
        assert updated.status == "Confirmed"
        assert updated.confirmed_by_user_id == owner_ctx.user_id

    def test_reason_must_match_type(self, db_session, owner_ctx):
        with pytest.raises(ValidationError):
            _tx(owner_ctx, 10_000, tx_type="Deposit", reason="OwnerWithdrawal")

    def test_only_owner_accesses_bank(self, db_session, cashier_ctx, manager_ctx):
        for ctx in (cashier_ctx, manager_ctx):
            with pytest.raises(ForbiddenError):
                bank_service.balances_for(ctx)
            with pytest.raises(ForbiddenError):
                _tx(ctx, 10_000)


class TestBalances:

    def test_only_confirmed_rows_count(self, db_session, owner_ctx, restaurant_a):
        deposit = _tx(owner_ctx, 1_000_000, reason="CapitalInjection")
        withdrawal = _tx(owner_ctx, 300_000, tx_type="Withdrawal", reason="OwnerWithdrawal")
        om_deposit = _tx(owner_ctx, 250_000, method="OrangeMoney")
        _tx(owner_ctx, 50_000, method="Card")
        _tx(owner_ctx, 20_000, tx_type="Withdrawal", method="Card")

        for transaction in (deposit, withdrawal, om_deposit):
            bank_service.confirm_transaction(owner_ctx, transaction.id)

        balances = bank_service.get_balances(restaurant_a.id)
        assert balances == {"cash": 700_000, "orangeMoney": 250_000, "card": 0, "total": 950_000}

        pending = bank_service.get_pending(restaurant_a.id)
        assert pending == {
            "totalPendingDeposits": 50_000,
            "totalPendingWithdrawals": 20_000,
            "pendingCount": 2,
        }

    def test_balances_are_per_restaurant(self, db_session, owner_ctx, rival_ctx, restaurant_a, restaurant_b):
        mine = _tx(owner_ctx, 100_000)
        theirs = _tx(rival_ctx, 900_000)
        bank_service.confirm_transaction(owner_ctx, mine.id)
        bank_service.confirm_transaction(rival_ctx, theirs.id)

        assert bank_service.get_balances(restaurant_a.id)["total"] == 100_000
        assert bank_service.get_balances(restaurant_b.id)["total"] == 900_000

    def test_list_summary_separates_pending(self, db_session, owner_ctx):
        confirmed = _tx(owner_ctx, 100_000)
        bank_service.confirm_transaction(owner_ctx, confirmed.id)
        _tx(owner_ctx, 40_000, tx_type="Withdrawal")

        result = bank_service.list_transactions(owner_ctx)

        assert len(result["transactions"]) == 2
        assert result["summary"]["cash"] == {"deposits": 100_000, "withdrawals": 0, "pending": -40_000}

        pending_only = bank_service.list_transactions(owner_ctx, {"status": "Pending"})
        assert [t["amount"] for t in pending_only["transactions"]] == [40_000]
