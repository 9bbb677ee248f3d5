# Overview: Pytest coverage for the payment allocator on expenses and debts.

import pytest

from bakeoffice.errors import ConflictError, ForbiddenError, InvalidTransitionError, OverpaymentError, ValidationError
from bakeoffice.models import BankTransaction, Customer, Debt, DebtPayment, Expense
from bakeoffice.models.states import DebtStatus, PaymentStatus
from bakeoffice.services import (
    approval_service,
    audit_service,
    customer_service,
    expense_service,
    payment_service,
    sales_service,
)
from bakeoffice.services.approval_service import KIND_EXPENSE, KIND_SALE


@pytest.fixture
def approved_expense(owner_ctx, cashier_ctx, category):
    expense = expense_service.submit_expense(cashier_ctx, {
        "date": "2026-03-01",
        "categoryId": category.id,
        "amountGNF": 500_000,
        "description": "Flour delivery",
    })
    return approval_service.approve(owner_ctx, KIND_EXPENSE, expense.id)


@pytest.fixture
def customer(owner_ctx):
    return customer_service.create_customer(owner_ctx, {"name": "Hotel Camayenne", "customerType": "Corporate"})


@pytest.fixture
def debt(owner_ctx, customer):
    return customer_service.create_debt(owner_ctx, {"customerId": customer.id, "principalAmount": 200_000})


class TestExpensePayments:

    def test_partial_then_full_then_overpayment(self, db_session, owner_ctx, approved_expense):
        payment_service.record_expense_payment(owner_ctx, approved_expense.id, {
            "amount": 200_000, "paymentMethod": "Cash",
        })
        expense = db_session.get(Expense, approved_expense.id)
        assert expense.payment_status == PaymentStatus.PARTIALLY_PAID
        assert expense.remaining_amount == 300_000

        payment_service.record_expense_payment(owner_ctx, approved_expense.id, {
            "amount": 300_000, "paymentMethod": "OrangeMoney",
        })
        expense = db_session.get(Expense, approved_expense.id)
        assert expense.payment_status == PaymentStatus.PAID
        assert expense.fully_paid_at is not None

        with pytest.raises(OverpaymentError) as exc_info:
            payment_service.record_expense_payment(owner_ctx, approved_expense.id, {
                "amount": 1, "paymentMethod": "Cash",
            })
        assert exc_info.value.details["remainingAmount"] == 0

    def test_each_payment_spawns_pending_withdrawal(self, db_session, owner_ctx, approved_expense):
        payment = payment_service.record_expense_payment(owner_ctx, approved_expense.id, {
            "amount": 125_000, "paymentMethod": "Card",
        })

        transaction = db_session.query(BankTransaction).filter_by(linked_expense_payment_id=payment.id).one()
        assert transaction.type == "Withdrawal"
        assert transaction.reason == "ExpensePayment"
        assert transaction.status == "Pending"
        assert transaction.amount == 125_000
        assert transaction.method == "Card"

    def test_overpayment_leaves_nothing_behind(self, db_session, owner_ctx, approved_expense):
        with pytest.raises(OverpaymentError):
            payment_service.record_expense_payment(owner_ctx, approved_expense.id, {
                "amount": 500_001, "paymentMethod": "Cash",
            })
        assert db_session.get(Expense, approved_expense.id).total_paid_amount == 0
        assert db_session.query(BankTransaction).count() == 0

    def test_pending_expense_cannot_be_paid(self, db_session, owner_ctx, cashier_ctx, category):
        expense = expense_service.submit_expense(cashier_ctx, {
            "date": "2026-03-01", "categoryId": category.id, "amountGNF": 10_000,
        })
        with pytest.raises(ConflictError):
            payment_service.record_expense_payment(owner_ctx, expense.id, {
                "amount": 10_000, "paymentMethod": "Cash",
            })

    def test_cashier_cannot_pay_expenses(self, db_session, cashier_ctx, approved_expense):
        with pytest.raises(ForbiddenError):
            payment_service.record_expense_payment(cashier_ctx, approved_expense.id, {
                "amount": 1_000, "paymentMethod": "Cash",
            })

    @pytest.mark.parametrize("amount", [0, -5, "12.5", 1e6, None])
    def test_invalid_amounts(self, db_session, owner_ctx, approved_expense, amount):
        with pytest.raises(ValidationError):
            payment_service.record_expense_payment(owner_ctx, approved_expense.id, {
                "amount": amount, "paymentMethod": "Cash",
            })

    def test_summary_quick_amounts(self, db_session, owner_ctx, approved_expense):
        payment_service.record_expense_payment(owner_ctx, approved_expense.id, {
            "amount": 100_001, "paymentMethod": "Cash",
        })
        summary = payment_service.expense_payment_summary(owner_ctx, approved_expense.id)["summary"]

        assert summary["remainingAmount"] == 399_999
        assert summary["quickAmounts"][-1] == {"percentage": 100, "amount": 399_999}
        assert summary["quickAmounts"][0] == {"percentage": 25, "amount": 99_999}


class TestDebtPayments:

    def test_partial_and_full_payment(self, db_session, cashier_ctx, customer, debt):
        payment_service.record_debt_payment(cashier_ctx, debt.id, {"amount": 50_000, "paymentMethod": "Cash"})

        stored = db_session.get(Debt, debt.id)
        assert stored.paid_amount == 50_000
        assert stored.remaining_amount == 150_000
        assert stored.status == DebtStatus.ACTIVE
        assert db_session.get(Customer, customer.id).outstanding_debt_gnf == 150_000

        payment_service.record_debt_payment(cashier_ctx, debt.id, {
            "amount": 150_000, "paymentMethod": "OrangeMoney", "transactionId": "OM-7781",
        })
        stored = db_session.get(Debt, debt.id)
        assert stored.status == DebtStatus.PAID_OFF
        assert stored.remaining_amount == 0
        assert db_session.get(Customer, customer.id).outstanding_debt_gnf == 0

    def test_spawns_pending_deposit(self, db_session, cashier_ctx, debt):
        payment = payment_service.record_debt_payment(cashier_ctx, debt.id, {
            "amount": 20_000, "paymentMethod": "Cash",
        })
        transaction = db_session.query(BankTransaction).filter_by(linked_debt_payment_id=payment.id).one()
        assert (transaction.type, transaction.reason, transaction.status) == ("Deposit", "DebtCollection", "Pending")

    @pytest.mark.parametrize("method", ["OrangeMoney", "Card"])
    def test_electronic_payment_needs_transaction_id(self, db_session, cashier_ctx, debt, method):
        with pytest.raises(ValidationError):
            payment_service.record_debt_payment(cashier_ctx, debt.id, {"amount": 10_000, "paymentMethod": method})
        assert db_session.get(Debt, debt.id).paid_amount == 0

    def test_overpayment(self, db_session, cashier_ctx, debt):
        with pytest.raises(OverpaymentError):
            payment_service.record_debt_payment(cashier_ctx, debt.id, {"amount": 200_001, "paymentMethod": "Cash"})

    def test_written_off_debt_refuses_payment(self, db_session, owner_ctx, cashier_ctx, debt):
        customer_service.write_off_debt(owner_ctx, debt.id, "Customer left Conakry")
        with pytest.raises(ConflictError):
            payment_service.record_debt_payment(cashier_ctx, debt.id, {"amount": 1_000, "paymentMethod": "Cash"})

    def test_baker_cannot_collect(self, db_session, baker_ctx, debt):
        with pytest.raises(ForbiddenError):
            payment_service.record_debt_payment(baker_ctx, debt.id, {"amount": 1_000, "paymentMethod": "Cash"})


class TestSaleDebts:
    """Debts created by a credit sale follow the sale's review."""

    @pytest.fixture
    def credit_customer(self, owner_ctx):
        return customer_service.create_customer(owner_ctx, {"name": "Mamadou Diallo", "creditLimit": 1_000_000})

    @pytest.fixture
    def credit_sale(self, cashier_ctx, credit_customer):
        return sales_service.submit_sale(cashier_ctx, {
            "date": "2026-03-14",
            "debts": [{"customerId": credit_customer.id, "amountGNF": 900_000}],
        })

    @pytest.fixture
    def sale_debt(self, db_session, credit_sale):
        return db_session.query(Debt).filter_by(sale_id=credit_sale.id).one()

    def test_pending_sale_debt_refuses_payment(self, db_session, cashier_ctx, credit_sale, sale_debt):
        with pytest.raises(ConflictError) as exc_info:
            payment_service.record_debt_payment(cashier_ctx, sale_debt.id, {
                "amount": 100_000, "paymentMethod": "Cash",
            })

        assert exc_info.value.details["saleId"] == credit_sale.id
        assert exc_info.value.details["saleStatus"] == "Pending"
        assert db_session.get(Debt, sale_debt.id).paid_amount == 0
        assert db_session.query(DebtPayment).count() == 0
        assert db_session.query(BankTransaction).count() == 0

    def test_pending_sale_debt_has_no_quick_amounts(self, db_session, cashier_ctx, sale_debt):
        summary = payment_service.debt_payment_summary(cashier_ctx, sale_debt.id)["summary"]
        assert summary["awaitingSaleApproval"] is True
        assert summary["quickAmounts"] == []

    def test_payment_accepted_once_sale_approved(self, db_session, owner_ctx, cashier_ctx,
                                                 credit_customer, credit_sale, sale_debt):
        approval_service.approve(owner_ctx, KIND_SALE, credit_sale.id)

        payment = payment_service.record_debt_payment(cashier_ctx, sale_debt.id, {
            "amount": 100_000, "paymentMethod": "Cash",
        })

        assert db_session.get(Debt, sale_debt.id).remaining_amount == 800_000
        assert db_session.get(Customer, credit_customer.id).outstanding_debt_gnf == 800_000
        transaction = db_session.query(BankTransaction).filter_by(linked_debt_payment_id=payment.id).one()
        assert transaction.reason == "DebtCollection"

    def test_rejected_sale_cancels_its_debt(self, db_session, owner_ctx, cashier_ctx,
                                            credit_customer, credit_sale, sale_debt):
        approval_service.reject(owner_ctx, KIND_SALE, credit_sale.id, "Customer never took the goods")

        debt = db_session.get(Debt, sale_debt.id)
        assert debt.status == DebtStatus.CANCELLED
        assert debt.remaining_amount == 900_000
        assert db_session.get(Customer, credit_customer.id).outstanding_debt_gnf == 0
        assert customer_service.list_debts(owner_ctx, status="Active") == []
        assert audit_service.find_drift(owner_ctx.restaurant_id) == []

        with pytest.raises(ConflictError):
            payment_service.record_debt_payment(cashier_ctx, sale_debt.id, {
                "amount": 100_000, "paymentMethod": "Cash",
            })
        assert db_session.query(DebtPayment).count() == 0

        customer = customer_service.set_customer_active(owner_ctx, credit_customer.id, False)
        assert customer.is_active is False

    def test_rejection_frees_credit_for_the_next_sale(self, db_session, owner_ctx, cashier_ctx,
                                                      credit_customer, credit_sale):
        approval_service.reject(owner_ctx, KIND_SALE, credit_sale.id)

        sales_service.submit_sale(cashier_ctx, {
            "date": "2026-03-15",
            "debts": [{"customerId": credit_customer.id, "amountGNF": 900_000}],
        })
        assert db_session.get(Customer, credit_customer.id).outstanding_debt_gnf == 900_000

    def test_pending_sale_debt_cannot_be_written_off(self, db_session, owner_ctx, sale_debt):
        with pytest.raises(ConflictError):
            customer_service.write_off_debt(owner_ctx, sale_debt.id)
        assert db_session.get(Debt, sale_debt.id).status == DebtStatus.ACTIVE

    def test_cancelled_debt_cannot_be_written_off(self, db_session, owner_ctx, credit_sale, sale_debt):
        approval_service.reject(owner_ctx, KIND_SALE, credit_sale.id)
        with pytest.raises(InvalidTransitionError):
            customer_service.write_off_debt(owner_ctx, sale_debt.id)

    def test_debt_cannot_join_rejected_sale(self, db_session, owner_ctx, credit_customer, credit_sale):
        approval_service.reject(owner_ctx, KIND_SALE, credit_sale.id)
        with pytest.raises(ConflictError):
            customer_service.create_debt(owner_ctx, {
                "customerId": credit_customer.id, "principalAmount": 10_000, "saleId": credit_sale.id,
            })

    def test_payment_over_http_is_409_until_approved(self, client, db_session, cashier, owner,
                                                     credit_sale, sale_debt, login):
        headers = login(cashier)
        body = {"amount": 100_000, "paymentMethod": "Cash"}

        refused = client.post(f"/api/debts/{sale_debt.id}/payments", json=body, headers=headers)
        assert refused.status_code == 409
        assert refused.json["saleStatus"] == "Pending"

        client.post(f"/api/sales/{credit_sale.id}/review", json={"action": "approve"}, headers=login(owner))
        accepted = client.post(f"/api/debts/{sale_debt.id}/payments", json=body, headers=headers)
        assert accepted.status_code == 201


class TestAllocatePayment:

    def test_dispatches_by_kind(self, db_session, owner_ctx, approved_expense, debt):
        expense_payment = payment_service.allocate_payment(owner_ctx, "expense", approved_expense.id, 1_000, "Cash")
        debt_payment = payment_service.allocate_payment(
            owner_ctx, "debt", debt.id, 1_000, "Card", transactionId="CB-1"
        )
        assert expense_payment.expense_id == approved_expense.id
        assert debt_payment.debt_id == debt.id

    def test_unknown_kind(self, db_session, owner_ctx):
        with pytest.raises(ValidationError):
            payment_service.allocate_payment(owner_ctx, "invoice", 1, 1_000, "Cash")
