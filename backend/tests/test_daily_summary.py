"""Tests for the daily summary rollup and transaction queries."""

from datetime import timedelta
from decimal import Decimal

import pytest

from stockrecon.core.business_day import business_date, day_window, utcnow
from stockrecon.core.exceptions import ValidationFailed
from stockrecon.models.operations import DailySummary
from stockrecon.models.pos import CalculatedConsumption, PayType, SyncedTransaction
from stockrecon.services.daily_summary_service import DailySummaryService
from stockrecon.services.dispatch_service import DispatchService
from stockrecon.services.reorder_service import ReorderService
from stockrecon.services.transaction_service import TransactionQueryService


def sale(db, tx_id, total, cash="0", card="0", when=None):
    tx = SyncedTransaction(
        pos_transaction_id=str(tx_id),
        transaction_date=when or utcnow(),
        total_amount=Decimal(total),
        payed_cash=Decimal(cash),
        payed_card=Decimal(card),
        pay_type=PayType.CASH if cash != "0" else PayType.CARD,
    )
    db.add(tx)
    db.commit()
    return tx


class TestDailySummary:
    def test_empty_day(self, db_session):
        summary = DailySummaryService(db_session).generate(business_date())

        assert summary.transaction_count == 0
        assert summary.total_sales == Decimal("0")
        assert summary.gross_margin == Decimal("0")

    def test_rollup(self, db_session, ingredients):
        coffee = ingredients["coffee"]
        tx = sale(db_session, 1, "500", cash="500")
        sale(db_session, 2, "300", card="300")
        db_session.add(CalculatedConsumption(
            transaction_id=tx.id, ingredient_id=coffee.id, ingredient_name=coffee.name,
            quantity_consumed=Decimal("36"), unit="g", cost_at_time=Decimal("72"),
        ))
        db_session.commit()
        dispatch = DispatchService(db_session).create_dispatch("Store keeper", [
            {"ingredient_id": coffee.id, "quantity": 100},
        ])
        DispatchService(db_session).confirm_receipt(dispatch.id, "Asha")
        ReorderService(db_session).create_request(coffee.id, 1000, "Asha")

        summary = DailySummaryService(db_session).generate(business_date())

        assert summary.total_sales == Decimal("800")
        assert summary.cash_sales == Decimal("500")
        assert summary.card_sales == Decimal("300")
        assert summary.transaction_count == 2
        assert summary.total_consumption_cost == Decimal("72")
        assert summary.items_consumed == 1
        assert summary.gross_margin == Decimal("728")
        assert summary.dispatches_sent == 1
        assert summary.dispatches_received == 1
        assert summary.reorders_created == 1

    def test_regenerate_updates_the_same_row(self, db_session):
        service = DailySummaryService(db_session)
        service.generate(business_date())
        sale(db_session, 1, "250", cash="250")

        summary = service.generate(business_date())

        assert db_session.query(DailySummary).count() == 1
        assert summary.total_sales == Decimal("250")

    def test_other_days_are_excluded(self, db_session):
        start, _ = day_window(business_date())
        sale(db_session, 1, "999", cash="999", when=start - timedelta(minutes=1))

        summary = DailySummaryService(db_session).generate(business_date())

        assert summary.transaction_count == 0


class TestTransactionQueries:
    def test_list_defaults_to_today_newest_first(self, db_session):
        start, _ = day_window(business_date())
        sale(db_session, "y", "10", cash="10", when=start - timedelta(hours=1))
        sale(db_session, "a", "20", cash="20", when=start + timedelta(minutes=1))
        sale(db_session, "b", "30", cash="30", when=start + timedelta(minutes=2))

        rows, total = TransactionQueryService(db_session).list_transactions()

        assert total == 2
        assert [r.pos_transaction_id for r in rows] == ["b", "a"]

    def test_range_and_paging(self, db_session):
        start, _ = day_window(business_date())
        sale(db_session, "y", "10", cash="10", when=start - timedelta(hours=1))
        sale(db_session, "a", "20", cash="20", when=start + timedelta(minutes=1))

        rows, total = TransactionQueryService(db_session).list_transactions(
            business_date() - timedelta(days=1), business_date(), limit=1, offset=1
        )

        assert total == 2
        assert [r.pos_transaction_id for r in rows] == ["y"]

    def test_inverted_range(self, db_session):
        with pytest.raises(ValidationFailed):
            TransactionQueryService(db_session).list_transactions(
                business_date(), business_date() - timedelta(days=1)
            )

    def test_summary(self, db_session):
        sale(db_session, 1, "500", cash="500")
        sale(db_session, 2, "300", card="300")

        summary = TransactionQueryService(db_session).summary()

        assert summary["transaction_count"] == 2
        assert summary["total_sales"] == Decimal("800")
        assert summary["cash_sales"] == Decimal("500")
