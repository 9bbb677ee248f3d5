# Overview: Pytest coverage for the stock ledger; signed movements, cached stock and transfers.

"""
Stock Ledger Tests

The cached current stock always equals the sum of the item's movements,
whatever mix of movement types produced it.
"""

import pytest

from bakeoffice.errors import ForbiddenError, InsufficientStockError, NotFoundError, ValidationError
from bakeoffice.models import InventoryItem, StockMovement
from bakeoffice.models.states import MovementType
from bakeoffice.services import audit_service, stock_service


class TestSignConvention:

    def test_decreasing_types_are_stored_negative(self):
        assert stock_service.signed_quantity(MovementType.USAGE, 3) == -3
        assert stock_service.signed_quantity(MovementType.WASTE, -2) == -2
        assert stock_service.signed_quantity(MovementType.TRANSFER_OUT, 1.5) == -1.5

    def test_adjustment_keeps_sign(self):
        assert stock_service.signed_quantity(MovementType.ADJUSTMENT, -4) == -4
        assert stock_service.signed_quantity(MovementType.ADJUSTMENT, 4) == 4

    def test_negative_purchase_rejected(self):
        with pytest.raises(ValidationError):
            stock_service.signed_quantity(MovementType.PURCHASE, -1)

    def test_zero_rejected(self):
        with pytest.raises(ValidationError):
            stock_service.signed_quantity(MovementType.USAGE, 0)


class TestLedgerCoherence:

    def test_initial_stock_is_an_adjustment(self, db_session, make_item):
        item = make_item(stock=25)

        movements = db_session.query(StockMovement).filter_by(item_id=item.id).all()
        assert len(movements) == 1
        assert movements[0].type == MovementType.ADJUSTMENT
        assert movements[0].quantity == 25
        assert item.current_stock == 25

    def test_cache_matches_replay_after_mixed_movements(self, db_session, owner_ctx, make_item):
        item = make_item(stock=10)

        stock_service.adjust_stock(owner_ctx, item.id, "Purchase", 5, unit_cost=9000)
        stock_service.adjust_stock(owner_ctx, item.id, "Usage", 3)
        stock_service.adjust_stock(owner_ctx, item.id, "Waste", 0.5)
        stock_service.adjust_stock(owner_ctx, item.id, "Adjustment", -1.25)

        item = db_session.get(InventoryItem, item.id)
        assert item.current_stock == pytest.approx(10.25)
        assert audit_service.replay_stock(item) == pytest.approx(item.current_stock)
        assert item.unit_cost_gnf == 9000

    def test_usage_below_zero_is_stored_and_flagged(self, db_session, owner_ctx, make_item):
        item = make_item(stock=2)

        movement = stock_service.record_movement(owner_ctx, item.id, MovementType.USAGE, 5)

        assert movement.quantity == -5
        assert movement.drives_negative is True
        assert db_session.get(InventoryItem, item.id).current_stock == -3

    def test_usage_above_zero_not_flagged(self, db_session, owner_ctx, make_item):
        item = make_item(stock=10)
        movement = stock_service.record_movement(owner_ctx, item.id, MovementType.USAGE, 4)
        assert movement.drives_negative is False

    def test_movement_summary_groups_by_type(self, db_session, owner_ctx, make_item):
        item = make_item(stock=10)
        stock_service.adjust_stock(owner_ctx, item.id, "Usage", 2)
        stock_service.adjust_stock(owner_ctx, item.id, "Usage", 1)

        summary = stock_service.movement_summary(owner_ctx, item.id)

        assert summary["Usage"] == {"quantity": -3, "count": 2}
        assert summary["Adjustment"]["quantity"] == 10

    def test_transfer_types_not_allowed_manually(self, db_session, owner_ctx, make_item):
        item = make_item(stock=10)
        with pytest.raises(ValidationError):
            stock_service.adjust_stock(owner_ctx, item.id, "TransferOut", 1)

    def test_cashier_cannot_adjust(self, db_session, cashier_ctx, make_item):
        item = make_item(stock=10)
        with pytest.raises(ForbiddenError):
            stock_service.adjust_stock(cashier_ctx, item.id, "Waste", 1)
        assert db_session.query(StockMovement).filter_by(item_id=item.id).count() == 1


class TestAvailability:

    def test_statuses(self, db_session, owner_ctx, make_item):
        flour = make_item("Flour", stock=10, min_stock=5)
        butter = make_item("Butter", stock=3, unit_cost=40000)
        sugar = make_item("Sugar", stock=1)

        result = stock_service.check_availability(owner_ctx, [
            {"itemId": flour.id, "quantity": 6},
            {"itemId": butter.id, "quantity": 1},
            {"itemId": sugar.id, "quantity": 2},
        ])

        statuses = {row["itemName"]: row["status"] for row in result["items"]}
        assert statuses == {"Flour": "low", "Butter": "ok", "Sugar": "insufficient"}
        assert result["available"] is False
        assert result["estimatedCostGNF"] == 6 * 8000 + 40000 + 2 * 8000

    def test_repeated_item_is_aggregated(self, db_session, owner_ctx, make_item):
        flour = make_item("Flour", stock=5)

        result = stock_service.check_availability(owner_ctx, [
            {"itemId": flour.id, "quantity": 3},
            {"itemId": flour.id, "quantity": 3},
        ])

        assert len(result["items"]) == 1
        assert result["items"][0]["required"] == 6
        assert result["available"] is False

    def test_foreign_item_is_not_found(self, db_session, owner_ctx, rival_ctx, make_item):
        foreign = make_item("Flour", stock=5, ctx=rival_ctx)
        with pytest.raises(NotFoundError):
            stock_service.check_availability(owner_ctx, [{"itemId": foreign.id, "quantity": 1}])


class TestTransfers:

    def test_transfer_creates_paired_movements(self, db_session, owner_ctx, restaurant_b, make_item):
        flour = make_item("Flour", stock=10)

        result = stock_service.transfer_stock(owner_ctx, flour.id, restaurant_b.id, 4, "Weekend rush")

        out_movement, in_movement = result["movements"]
        assert out_movement["type"] == "TransferOut" and out_movement["quantity"] == -4
        assert in_movement["type"] == "TransferIn" and in_movement["quantity"] == 4
        assert out_movement["transferRef"] == in_movement["transferRef"]

        target = db_session.get(InventoryItem, result["targetItem"]["id"])
        assert target.restaurant_id == restaurant_b.id
        assert target.current_stock == 4
        assert db_session.get(InventoryItem, flour.id).current_stock == 6

    def test_transfer_refuses_to_go_negative(self, db_session, owner_ctx, restaurant_b, make_item):
        flour = make_item("Flour", stock=3)
        with pytest.raises(InsufficientStockError):
            stock_service.transfer_stock(owner_ctx, flour.id, restaurant_b.id, 4)
        assert db_session.get(InventoryItem, flour.id).current_stock == 3

    def test_transfer_needs_membership_in_target(self, db_session, manager_ctx, restaurant_b, make_item):
        flour = make_item("Flour", stock=10)
        with pytest.raises(NotFoundError):
            stock_service.transfer_stock(manager_ctx, flour.id, restaurant_b.id, 1)
