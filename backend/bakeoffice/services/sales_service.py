# Overview: Service-layer operations for sales; daily sale submission with credit sales and listings.

from __future__ import annotations

from collections import defaultdict

from ..errors import DuplicateSaleDateError, InvalidAmountError, ValidationError
from ..extensions import db
from ..models import Sale, SaleItem
from ..models.states import SubmissionStatus
from ..permissions.roles import can_record_sales
from ..validation import (
    clean_text,
    parse_amount,
    parse_choice,
    parse_date_field,
    parse_int,
    parse_optional_int,
    parse_quantity,
    require_fields,
)
from .concurrency import run_with_retry
from .customer_service import _create_debt_locked, check_credit_limit, lock_customers, resolve_override
from .permission_service import require_role
from .tenant_service import get_scoped, lock_restaurant


def _parse_sale_items(raw_items) -> list[dict]:
    if raw_items is None:
        return []
    if not isinstance(raw_items, list):
        raise ValidationError("saleItems must be a list")
    items = []
    for raw in raw_items:
        if not isinstance(raw, dict):
            raise ValidationError("Each sale item must be an object")
        require_fields(raw, "productName")
        quantity = parse_quantity(raw.get("quantity"), "quantity")
        unit_price = parse_amount(raw.get("unitPriceGNF"), "unitPriceGNF", allow_zero=True)
        items.append({
            "product_name": clean_text(raw.get("productName")),
            "quantity": quantity,
            "unit_price_gnf": unit_price,
            "total_gnf": round(quantity * unit_price),
        })
    return items


def _parse_debts(raw_debts) -> list[dict]:
    if raw_debts is None:
        return []
    if not isinstance(raw_debts, list):
        raise ValidationError("debts must be a list")
    debts = []
    for raw in raw_debts:
        if not isinstance(raw, dict):
            raise ValidationError("Each debt must be an object")
        require_fields(raw, "customerId")
        debts.append({
            "customer_id": parse_int(raw.get("customerId"), "customerId"),
            "amount": parse_amount(raw.get("amountGNF"), "amountGNF"),
            "due_date": parse_date_field(raw.get("dueDate"), "dueDate", required=False),
            "description": clean_text(raw.get("description")),
        })
    return debts


def submit_sale(ctx, payload: dict) -> Sale:
    """
    Record a day of takings as a Pending sale.

    Credit sales create Active debts immediately, after the credit-limit
    check aggregated per customer across the whole sale. The debts reserve
    the customer's credit but accept payments only once the sale is
    approved; rejecting the sale cancels them.
    """
    require_role(ctx, can_record_sales, "record sales")
    sale_date = parse_date_field(payload.get("date"), "date")
    cash = parse_amount(payload.get("cashGNF"), "cashGNF", allow_zero=True)
    orange_money = parse_amount(payload.get("orangeMoneyGNF"), "orangeMoneyGNF", allow_zero=True)
    card = parse_amount(payload.get("cardGNF"), "cardGNF", allow_zero=True)
    items = _parse_sale_items(payload.get("saleItems"))
    debts = _parse_debts(payload.get("debts"))
    override = resolve_override(ctx, payload.get("allowCreditOverride"))

    credit_total = sum(debt["amount"] for debt in debts)
    total = cash + orange_money + card + credit_total
    if total <= 0:
        raise InvalidAmountError("Sale total must be greater than zero")

    per_customer = defaultdict(int)
    for debt in debts:
        per_customer[debt["customer_id"]] += debt["amount"]

    def _op():
        lock_restaurant(ctx.restaurant_id)
        duplicate = db.session.query(Sale.id).filter(
            Sale.restaurant_id == ctx.restaurant_id,
            Sale.date == sale_date,
        ).first()
        if duplicate:
            raise DuplicateSaleDateError(
                f"A sale already exists for {sale_date.isoformat()}",
                existingSaleId=duplicate[0],
            )

        customers = lock_customers(ctx, per_customer)
        overridden = {
            customer_id: check_credit_limit(customers[customer_id], amount, override=override)
            for customer_id, amount in per_customer.items()
        }

        sale = Sale(
            restaurant_id=ctx.restaurant_id,
            date=sale_date,
            cash_gnf=cash,
            orange_money_gnf=orange_money,
            card_gnf=card,
            credit_total_gnf=credit_total,
            total_gnf=total,
            items_count=parse_optional_int(payload.get("itemsCount"), "itemsCount"),
            customers_count=parse_optional_int(payload.get("customersCount"), "customersCount"),
            comments=clean_text(payload.get("comments"), max_length=2000),
            status=SubmissionStatus.PENDING,
            created_by_user_id=ctx.user_id,
        )
        db.session.add(sale)
        db.session.flush()

        for item in items:
            db.session.add(SaleItem(sale_id=sale.id, **item))
        for debt in debts:
            _create_debt_locked(
                ctx, customers[debt["customer_id"]], debt["amount"],
                sale_id=sale.id,
                due_date=debt["due_date"],
                description=debt["description"] or f"Credit sale {sale_date.isoformat()}",
                overridden=overridden[debt["customer_id"]],
            )
        db.session.commit()
        return sale

    return run_with_retry(_op)


def list_sales(ctx, *, status: str | None = None, start_date=None, end_date=None) -> dict:
    query = db.session.query(Sale).filter(Sale.restaurant_id == ctx.restaurant_id)
    if status:
        query = query.filter(Sale.status == parse_choice(status, "status", SubmissionStatus.ALL))
    start = parse_date_field(start_date, "startDate", required=False)
    end = parse_date_field(end_date, "endDate", required=False)
    if start:
        query = query.filter(Sale.date >= start)
    if end:
        query = query.filter(Sale.date <= end)
    sales = query.order_by(Sale.date.desc()).all()

    return {
        "sales": [sale.to_dict() for sale in sales],
        "summary": {
            "count": len(sales),
            "pending": sum(1 for s in sales if s.status == SubmissionStatus.PENDING),
            "approved": sum(1 for s in sales if s.status == SubmissionStatus.APPROVED),
            "rejected": sum(1 for s in sales if s.status == SubmissionStatus.REJECTED),
            "approvedTotalGNF": sum(s.total_gnf for s in sales if s.status == SubmissionStatus.APPROVED),
        },
    }


def get_sale(ctx, sale_id: int) -> Sale:
    return get_scoped(Sale, sale_id, ctx)
