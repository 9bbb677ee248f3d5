# Overview: Pytest coverage for sale submission, credit sales and customer credit limits.

"""
Sales and Credit Tests

Credit limit rule: outstanding + new debt <= credit limit, checked against
the debts themselves (not the cached outstanding), aggregated per customer
across one sale. Only an Owner may override, and the debt records it.
"""

import pytest

from bakeoffice.errors import (
    ConflictError,
    CreditLimitExceededError,
    DuplicateSaleDateError,
    ForbiddenError,
    InvalidAmountError,
    InvalidTransitionError,
)
from bakeoffice.models import Customer, Debt, Sale
from bakeoffice.models.states import DebtStatus
from bakeoffice.services import customer_service, payment_service, sales_service


@pytest.fixture
def customer(owner_ctx):
    return customer_service.create_customer(owner_ctx, {"name": "Mamadou Diallo", "creditLimit": 1_000_000})


@pytest.fixture
def indebted_customer(owner_ctx, customer):
    customer_service.create_debt(owner_ctx, {"customerId": customer.id, "principalAmount": 800_000})
    return customer


class TestSubmitSale:

    def test_total_is_payments_plus_credit(self, db_session, cashier_ctx, customer):
        sale = sales_service.submit_sale(cashier_ctx, {
            "date": "2026-03-14",
            "cashGNF": 1_000_000,
            "orangeMoneyGNF": 200_000,
            "debts": [{"customerId": customer.id, "amountGNF": 100_000}],
            "saleItems": [{"productName": "Croissant", "quantity": 40, "unitPriceGNF": 5_000}],
        })

        assert sale.status == "Pending"
        assert sale.credit_total_gnf == 100_000
        assert sale.total_gnf == 1_300_000
        assert sale.items[0].total_gnf == 200_000

        debt = db_session.query(Debt).filter_by(sale_id=sale.id).one()
        assert debt.status == DebtStatus.ACTIVE
        assert debt.description == "Credit sale 2026-03-14"
        assert db_session.get(Customer, customer.id).outstanding_debt_gnf == 100_000

    def test_zero_total_rejected(self, db_session, cashier_ctx):
        with pytest.raises(InvalidAmountError):
            sales_service.submit_sale(cashier_ctx, {"date": "2026-03-14", "cashGNF": 0})

    def test_one_sale_per_date(self, db_session, cashier_ctx):
        first = sales_service.submit_sale(cashier_ctx, {"date": "2026-03-14", "cashGNF": 10_000})

        with pytest.raises(DuplicateSaleDateError) as exc_info:
            sales_service.submit_sale(cashier_ctx, {"date": "2026-03-14", "cardGNF": 5_000})

        assert exc_info.value.details["existingSaleId"] == first.id
        assert db_session.query(Sale).count() == 1

    def test_same_date_allowed_in_other_restaurant(self, db_session, cashier_ctx, rival_ctx):
        sales_service.submit_sale(cashier_ctx, {"date": "2026-03-14", "cashGNF": 10_000})
        sales_service.submit_sale(rival_ctx, {"date": "2026-03-14", "cashGNF": 10_000})
        assert db_session.query(Sale).count() == 2

    def test_baker_cannot_record_sales(self, db_session, baker_ctx):
        with pytest.raises(ForbiddenError):
            sales_service.submit_sale(baker_ctx, {"date": "2026-03-14", "cashGNF": 10_000})

    def test_list_summary(self, db_session, cashier_ctx):
        sales_service.submit_sale(cashier_ctx, {"date": "2026-03-13", "cashGNF": 10_000})
        sales_service.submit_sale(cashier_ctx, {"date": "2026-03-14", "cashGNF": 20_000})

        result = sales_service.list_sales(cashier_ctx, start_date="2026-03-14")

        assert result["summary"]["count"] == 1
        assert result["summary"]["pending"] == 1
        assert result["sales"][0]["date"] == "2026-03-14"


class TestCreditLimit:

    def test_sale_over_limit_rejected(self, db_session, cashier_ctx, indebted_customer):
        with pytest.raises(CreditLimitExceededError) as exc_info:
            sales_service.submit_sale(cashier_ctx, {
                "date": "2026-03-14",
                "debts": [{"customerId": indebted_customer.id, "amountGNF": 300_000}],
            })

        details = exc_info.value.details
        assert details["outstandingDebt"] == 800_000
        assert details["availableCredit"] == 200_000
        assert details["requestedAmount"] == 300_000
        assert db_session.query(Sale).count() == 0
        assert db_session.get(Customer, indebted_customer.id).outstanding_debt_gnf == 800_000

    def test_sale_within_limit_accepted(self, db_session, cashier_ctx, indebted_customer):
        sales_service.submit_sale(cashier_ctx, {
            "date": "2026-03-14",
            "debts": [{"customerId": indebted_customer.id, "amountGNF": 150_000}],
        })
        assert db_session.get(Customer, indebted_customer.id).outstanding_debt_gnf == 950_000

    def test_limit_is_aggregated_per_customer(self, db_session, cashier_ctx, indebted_customer):
        with pytest.raises(CreditLimitExceededError):
            sales_service.submit_sale(cashier_ctx, {
                "date": "2026-03-14",
                "debts": [
                    {"customerId": indebted_customer.id, "amountGNF": 150_000},
                    {"customerId": indebted_customer.id, "amountGNF": 150_000},
                ],
            })

    def test_limit_uses_debts_not_cache(self, db_session, cashier_ctx, indebted_customer):
        customer = db_session.get(Customer, indebted_customer.id)
        customer.outstanding_debt_gnf = 0
        db_session.commit()

        with pytest.raises(CreditLimitExceededError):
            sales_service.submit_sale(cashier_ctx, {
                "date": "2026-03-14",
                "debts": [{"customerId": indebted_customer.id, "amountGNF": 300_000}],
            })

    def test_only_owner_overrides(self, db_session, cashier_ctx, indebted_customer):
        with pytest.raises(ForbiddenError):
            sales_service.submit_sale(cashier_ctx, {
                "date": "2026-03-14",
                "allowCreditOverride": True,
                "debts": [{"customerId": indebted_customer.id, "amountGNF": 300_000}],
            })

    def test_owner_override_is_recorded(self, db_session, owner_ctx, indebted_customer):
        debt = customer_service.create_debt(owner_ctx, {
            "customerId": indebted_customer.id,
            "principalAmount": 300_000,
            "allowCreditOverride": True,
        })
        assert debt.credit_limit_overridden is True
        assert db_session.get(Customer, indebted_customer.id).outstanding_debt_gnf == 1_100_000

    def test_no_limit_means_unlimited(self, db_session, owner_ctx, cashier_ctx):
        customer = customer_service.create_customer(owner_ctx, {"name": "Aissatou Bah"})
        sales_service.submit_sale(cashier_ctx, {
            "date": "2026-03-14",
            "debts": [{"customerId": customer.id, "amountGNF": 50_000_000}],
        })
        assert db_session.get(Customer, customer.id).available_credit is None


class TestCustomers:

    def test_cannot_deactivate_with_outstanding_debt(self, db_session, owner_ctx, indebted_customer):
        with pytest.raises(ConflictError):
            customer_service.set_customer_active(owner_ctx, indebted_customer.id, False)

    def test_deactivate_after_payoff(self, db_session, owner_ctx, indebted_customer):
        debt = db_session.query(Debt).filter_by(customer_id=indebted_customer.id).one()
        payment_service.record_debt_payment(owner_ctx, debt.id, {"amount": 800_000, "paymentMethod": "Cash"})

        customer = customer_service.set_customer_active(owner_ctx, indebted_customer.id, False)

        assert customer.is_active is False
        assert customer_service.list_customers(owner_ctx) == []

    def test_inactive_customer_gets_no_credit(self, db_session, owner_ctx, cashier_ctx, customer):
        customer_service.set_customer_active(owner_ctx, customer.id, False)
        with pytest.raises(ConflictError):
            sales_service.submit_sale(cashier_ctx, {
                "date": "2026-03-14",
                "debts": [{"customerId": customer.id, "amountGNF": 10_000}],
            })

    def test_cashier_cannot_create_customers(self, db_session, cashier_ctx):
        with pytest.raises(ForbiddenError):
            customer_service.create_customer(cashier_ctx, {"name": "Nobody"})


class TestWriteOff:

    def test_write_off_releases_outstanding(self, db_session, owner_ctx, indebted_customer):
        debt = db_session.query(Debt).filter_by(customer_id=indebted_customer.id).one()
        payment_service.record_debt_payment(owner_ctx, debt.id, {"amount": 300_000, "paymentMethod": "Cash"})

        written_off = customer_service.write_off_debt(owner_ctx, debt.id, "Uncollectable")

        assert written_off.status == DebtStatus.WRITTEN_OFF
        assert written_off.remaining_amount == 500_000
        assert db_session.get(Customer, indebted_customer.id).outstanding_debt_gnf == 0

    def test_write_off_twice_is_noop(self, db_session, owner_ctx, indebted_customer):
        debt = db_session.query(Debt).filter_by(customer_id=indebted_customer.id).one()
        first = customer_service.write_off_debt(owner_ctx, debt.id)
        second = customer_service.write_off_debt(owner_ctx, debt.id)
        assert second.written_off_at == first.written_off_at

    def test_paid_off_debt_cannot_be_written_off(self, db_session, owner_ctx, indebted_customer):
        debt = db_session.query(Debt).filter_by(customer_id=indebted_customer.id).one()
        payment_service.record_debt_payment(owner_ctx, debt.id, {"amount": 800_000, "paymentMethod": "Cash"})
        with pytest.raises(InvalidTransitionError):
            customer_service.write_off_debt(owner_ctx, debt.id)
