"""
Tests for the ledger core

Covers:
- Balance projection from entry histories (both domains)
- Status derivation
- Box/unit profit apportionment and refund pricing
- Reconciliation over stored balances, with and without repair
"""

from decimal import Decimal

import pytest

from app.modules.ledger.projector import (
    ZERO, SalePaymentEvent, PurchasePaymentEvent, SaleStatus, PurchaseStatus,
    project, sale_status, purchase_status, to_money
)
from app.modules.ledger.profit import line_profit, sale_totals, refund_per_unit
from app.modules.ledger.service import LedgerReconciliationService, project_sale, reproject_sale
from app.modules.ograi.schemas import PurchaseCreate
from app.modules.ograi.service import OgraiTransactionService
from app.modules.sales.models import PaymentHistory
from app.modules.sales.schemas import SaleCreate, SaleItemCreate, SalePaymentCreate
from app.modules.sales.service import SaleService, SalePaymentService


D = Decimal


# ===== PROJECTION =====

class TestProjection:
    """project() folds a base amount with signed entries"""

    def test_no_entries_leaves_everything_owed(self):
        p = project(D("500"))
        assert p.amount_paid == ZERO
        assert p.remaining_amount == D("500.00")
        assert p.overpaid_amount == ZERO
        assert sale_status(p) == SaleStatus.PENDING

    def test_partial_payment(self):
        p = project(D("500"), entries=[SalePaymentEvent(D("200")), SalePaymentEvent(D("100"))])
        assert p.amount_paid == D("300.00")
        assert p.remaining_amount == D("200.00")
        assert sale_status(p) == SaleStatus.PARTIAL

    def test_refund_entries_subtract(self):
        p = project(D("380"), entries=[SalePaymentEvent(D("500")), SalePaymentEvent(D("-120"))])
        assert p.amount_paid == D("380.00")
        assert p.remaining_amount == ZERO
        assert p.overpaid_amount == ZERO
        assert sale_status(p) == SaleStatus.PAID

    @pytest.mark.parametrize("paid", ["0", "250", "499.99", "500", "750.50"])
    def test_remaining_and_overpaid_never_both_positive(self, paid):
        p = project(D("500"), entries=[SalePaymentEvent(D(paid))])
        assert p.remaining_amount >= ZERO
        assert p.overpaid_amount >= ZERO
        assert p.remaining_amount == ZERO or p.overpaid_amount == ZERO
        assert p.amount_paid - p.overpaid_amount + p.remaining_amount == D("500.00")

    def test_projection_is_deterministic(self):
        entries = [SalePaymentEvent(D("10.10")), SalePaymentEvent(D("20.20"))]
        assert project(D("100"), entries=entries) == project(D("100"), entries=list(entries))

    def test_purchase_pairs_are_independent(self):
        entries = [
            PurchasePaymentEvent(D("300"), D("0")),
            PurchasePaymentEvent(D("0"), D("20")),
        ]
        p = project(D("500"), D("50"), entries)
        assert p.amount_paid == D("300.00")
        assert p.remaining_amount == D("200.00")
        assert p.secondary_paid == D("20.00")
        assert p.secondary_remaining == D("30.00")
        assert purchase_status(p) == PurchaseStatus.PENDING

    def test_purchase_complete_needs_both_pairs_settled(self):
        p = project(D("500"), D("50"), [PurchasePaymentEvent(D("500"), D("0"))])
        assert purchase_status(p) == PurchaseStatus.PENDING

        p = project(D("500"), D("50"), [PurchasePaymentEvent(D("500"), D("50"))])
        assert purchase_status(p) == PurchaseStatus.COMPLETE

    def test_purchase_overpaid(self):
        p = project(D("500"), D("50"), [PurchasePaymentEvent(D("600"), D("0"))])
        assert p.overpaid_amount == D("100.00")
        assert purchase_status(p) == PurchaseStatus.OVERPAID

    def test_overpaid_goods_with_settled_transport_is_complete(self):
        p = project(D("500"), D("50"), [PurchasePaymentEvent(D("600"), D("50"))])
        assert p.overpaid_amount == D("100.00")
        assert purchase_status(p) == PurchaseStatus.COMPLETE

    def test_to_money_rounds_half_up(self):
        assert to_money(D("1.005")) == D("1.01")
        assert to_money(None) == ZERO
        assert to_money(3) == D("3.00")


# ===== PROFIT =====

class TestProfit:
    """Box/unit apportionment, discounts and refund pricing"""

    def test_unit_rate_only(self):
        assert line_profit(23, 10, profit_per_unit=D("5")) == D("115.00")

    def test_box_rate_only_spreads_over_loose_units(self):
        assert line_profit(23, 10, profit_per_box=D("40")) == D("92.00")

    def test_both_rates(self):
        # 2 boxes at 40, 3 loose units at 5
        assert line_profit(23, 10, profit_per_unit=D("5"), profit_per_box=D("40")) == D("95.00")

    def test_zero_rates_count_as_unset(self):
        assert line_profit(23, 10, profit_per_unit=D("0"), profit_per_box=D("0")) == ZERO
        assert line_profit(23, 10, profit_per_unit=D("5"), profit_per_box=D("0")) == D("115.00")

    def test_box_rate_without_box_size_falls_back_to_units(self):
        assert line_profit(4, 0, profit_per_unit=D("2"), profit_per_box=D("40")) == D("8.00")

    def test_discount_comes_out_of_profit(self):
        total, profit = sale_totals(D("1000"), D("200"), D("50"))
        assert total == D("1150.00")
        assert profit == D("150.00")

    def test_discount_larger_than_profit_clamps_profit(self):
        total, profit = sale_totals(D("1000"), D("200"), D("300"))
        assert total == D("900.00")
        assert profit == ZERO

    def test_refund_includes_profit_share(self):
        assert refund_per_unit(D("100"), D("1000"), D("200")) == D("120.00")

    def test_refund_with_zero_subtotal_is_unit_price(self):
        assert refund_per_unit(D("100"), D("0"), D("0")) == D("100.00")


# ===== RECONCILIATION =====

class TestReconciliation:
    """Re-derivation over stored balances"""

    def _sale(self, db_session, admin_user, product, amount_paid=None):
        return SaleService(db_session).create_sale(
            SaleCreate(items=[SaleItemCreate(product_id=product.id, quantity=2)], amount_paid=amount_paid),
            admin_user.id
        )

    def test_consistent_data_reports_no_drift(self, db_session, admin_user, make_product):
        self._sale(db_session, admin_user, make_product(), amount_paid=D("50"))
        OgraiTransactionService(db_session).create_purchase(PurchaseCreate(
            supplier_name="Metro", product_name="Rice", quantity=D("10"), price_per_unit=D("5"),
            amount_paid=D("20"), transport_fee=D("5")
        ), admin_user.id)

        result = LedgerReconciliationService(db_session).reconcile()

        assert result["checked_sales"] == 1
        assert result["checked_purchases"] == 1
        assert result["drifted"] == []
        assert result["repaired"] is False

    def test_reprojection_is_idempotent(self, db_session, admin_user, make_product):
        sale = self._sale(db_session, admin_user, make_product(), amount_paid=D("75"))
        first = reproject_sale(db_session, sale)
        second = reproject_sale(db_session, sale)
        assert first == second
        assert sale.amount_paid == D("75.00")

    def test_deleting_and_re_adding_an_entry_restores_the_balances(self, db_session, admin_user, make_product):
        sale = self._sale(db_session, admin_user, make_product(), amount_paid=D("50"))
        payments = SalePaymentService(db_session)
        payments.record_payment(sale.id, SalePaymentCreate(amount=D("30")), admin_user.id)
        before = (sale.amount_paid, sale.remaining_amount, sale.overpaid_amount, sale.payment_status)
        assert before == (D("80.00"), D("120.00"), D("0.00"), SaleStatus.PARTIAL)

        later = (
            db_session.query(PaymentHistory)
            .filter(PaymentHistory.sale_id == sale.id)
            .order_by(PaymentHistory.id.desc())
            .first()
        )
        payments.delete_payment(later.id)
        assert sale.amount_paid == D("50.00")
        assert sale.remaining_amount == D("150.00")

        payments.record_payment(sale.id, SalePaymentCreate(amount=D("30")), admin_user.id)
        db_session.refresh(sale)
        assert (sale.amount_paid, sale.remaining_amount, sale.overpaid_amount, sale.payment_status) == before
        assert project_sale(db_session, sale).amount_paid == sale.amount_paid

    def test_drift_is_reported_then_repaired(self, db_session, admin_user, make_product):
        sale = self._sale(db_session, admin_user, make_product(), amount_paid=D("50"))
        sale.amount_paid = D("0")
        sale.remaining_amount = D("200")
        sale.payment_status = SaleStatus.PENDING
        db_session.commit()

        report = LedgerReconciliationService(db_session).reconcile(repair=False)
        assert len(report["drifted"]) == 1
        drift = report["drifted"][0]
        assert drift["kind"] == "sale"
        assert drift["id"] == sale.id
        assert drift["changes"]["amount_paid"]["derived"] == D("50.00")
        assert drift["changes"]["payment_status"]["derived"] == SaleStatus.PARTIAL

        db_session.refresh(sale)
        assert sale.amount_paid == D("0.00")

        repaired = LedgerReconciliationService(db_session).reconcile(repair=True)
        assert repaired["repaired"] is True

        db_session.refresh(sale)
        assert sale.amount_paid == D("50.00")
        assert sale.remaining_amount == D("150.00")
        assert sale.payment_status == SaleStatus.PARTIAL
        assert project_sale(db_session, sale).amount_paid == sale.amount_paid

        assert LedgerReconciliationService(db_session).reconcile()["drifted"] == []
