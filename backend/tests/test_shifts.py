"""Tests for the shift lifecycle, operational controls and cash reconciliation."""

from decimal import Decimal

import pytest

from stockrecon.core.business_day import business_date, utcnow
from stockrecon.core.exceptions import ConflictError, ControlGateError, NotFoundError, ValidationFailed
from stockrecon.models.pos import PayType, SyncedTransaction
from stockrecon.models.shift import ShiftStatus
from stockrecon.services.cash_reconciliation_service import CashReconciliationService
from stockrecon.services.daily_summary_service import DailySummaryService
from stockrecon.services.expense_service import ExpenseService
from stockrecon.services.settings_service import SHIFT_CONTROLS, SettingsService
from stockrecon.services.shift_service import ShiftService
from stockrecon.services.stock_count_service import StockCountService


def cash_sale(db, tx_id, cash, card="0"):
    db.add(SyncedTransaction(
        pos_transaction_id=str(tx_id),
        transaction_date=utcnow(),
        total_amount=Decimal(cash) + Decimal(card),
        payed_cash=Decimal(cash),
        payed_card=Decimal(card),
        pay_type=PayType.CASH if card == "0" else PayType.MIXED,
    ))
    db.commit()


@pytest.fixture
def open_shift(db_session):
    return ShiftService(db_session).open_shift("Asha", "1000", staff_on_duty=["Asha", "Ben"])


class TestOpenShift:
    def test_open_shift(self, db_session, open_shift):
        assert open_shift.status == ShiftStatus.OPEN
        assert open_shift.opening_float == Decimal("1000")
        assert open_shift.staff_on_duty == ["Asha", "Ben"]
        assert ShiftService(db_session).get_current_shift().id == open_shift.id

    def test_only_one_shift_may_be_open(self, db_session, open_shift):
        with pytest.raises(ConflictError):
            ShiftService(db_session).open_shift("Ben", "500")

    def test_opening_float_is_required(self, db_session):
        with pytest.raises(ValidationFailed):
            ShiftService(db_session).open_shift("Asha", None)
        with pytest.raises(ValidationFailed):
            ShiftService(db_session).open_shift("Asha", "-1")

    def test_opening_count_required_when_controlled(self, db_session):
        SettingsService(db_session).set(SHIFT_CONTROLS, {"require_opening_count": True})

        with pytest.raises(ControlGateError) as exc_info:
            ShiftService(db_session).open_shift("Asha", "1000")

        assert exc_info.value.code == "COUNT_REQUIRED"
        assert exc_info.value.status_code == 400

    def test_opening_count_is_linked_to_shift(self, db_session):
        SettingsService(db_session).set(SHIFT_CONTROLS, {"require_opening_count": True})
        count = StockCountService.create_count(db_session, "shop", "opening", "Asha")

        shift = ShiftService(db_session).open_shift("Asha", "1000", opening_stock_count_id=count.id)

        db_session.refresh(count)
        assert shift.opening_stock_count_id == count.id
        assert count.shift_id == shift.id

    def test_unknown_opening_count_is_rejected(self, db_session):
        with pytest.raises(ValidationFailed):
            ShiftService(db_session).open_shift("Asha", "1000", opening_stock_count_id=42)


class TestCloseShift:
    def test_close_reconciles_cash_with_closing_cash_fallback(self, db_session, open_shift):
        cash_sale(db_session, 1, "5000", card="300")
        ExpenseService(db_session).create_expense("Milk run", "200")

        shift = ShiftService(db_session).close_shift(open_shift.id, "Asha", "5500")

        assert shift.status == ShiftStatus.CLOSED
        assert shift.pos_cash_total == Decimal("5000")
        assert shift.pos_card_total == Decimal("300")
        assert shift.expenses_total == Decimal("200")
        assert shift.expected_cash == Decimal("5800")
        assert shift.cash_variance == Decimal("-300")

    def test_declared_cash_takes_precedence(self, db_session, open_shift):
        cash_sale(db_session, 1, "5000")

        shift = ShiftService(db_session).close_shift(open_shift.id, "Asha", "5500", cash_declared="6000")

        assert shift.cash_variance == Decimal("0")

    def test_close_generates_daily_summary(self, db_session, open_shift):
        cash_sale(db_session, 1, "5000")

        ShiftService(db_session).close_shift(open_shift.id, "Asha", "5500")

        summary = DailySummaryService(db_session).get(business_date())
        assert summary is not None
        assert summary.cash_variance == Decimal("-500")
        assert summary.shifts_opened == 1
        assert summary.transaction_count == 1

    def test_closing_twice_is_a_conflict(self, db_session, open_shift):
        service = ShiftService(db_session)
        service.close_shift(open_shift.id, "Asha", "1000")

        with pytest.raises(ConflictError):
            service.close_shift(open_shift.id, "Asha", "1000")

    def test_close_unknown_shift(self, db_session):
        with pytest.raises(NotFoundError):
            ShiftService(db_session).close_shift(404, "Asha", "1000")

    @pytest.mark.parametrize("control, code", [
        ("require_closing_count", "COUNT_REQUIRED"),
        ("require_cash_declaration", "DECLARATION_REQUIRED"),
    ])
    def test_close_gates(self, db_session, open_shift, control, code):
        SettingsService(db_session).set(SHIFT_CONTROLS, {control: True})

        with pytest.raises(ControlGateError) as exc_info:
            ShiftService(db_session).close_shift(open_shift.id, "Asha", "1000")

        assert exc_info.value.code == code
        db_session.refresh(open_shift)
        assert open_shift.status == ShiftStatus.OPEN

    def test_new_shift_can_open_after_close(self, db_session, open_shift):
        service = ShiftService(db_session)
        service.close_shift(open_shift.id, "Asha", "1000")

        second = service.open_shift("Ben", "800")

        assert second.id != open_shift.id
        assert [s.id for s in service.list_shifts(status="closed")] == [open_shift.id]


class TestCashReconciliation:
    def test_missing_shift_gives_zeroed_failure(self, db_session):
        result = CashReconciliationService(db_session).calculate(999)

        assert result.success is False
        assert result.expected_cash == Decimal("0")

    def test_open_shift_can_be_previewed(self, db_session, open_shift):
        cash_sale(db_session, 1, "5000")
        ExpenseService(db_session).create_expense("Ice", "200", shift_id=open_shift.id)

        result = CashReconciliationService(db_session).calculate(open_shift.id)

        assert result.success is True
        assert result.expected_cash == Decimal("5800")
        # nothing declared yet
        assert result.variance == Decimal("-5800")
        assert result.to_dict()["expected_cash"] == 5800.0


class TestExpenses:
    def test_expense_attaches_to_open_shift(self, db_session, open_shift):
        expense = ExpenseService(db_session).create_expense("Napkins", "35.50", category="supplies")

        assert expense.shift_id == open_shift.id
        assert expense.amount == Decimal("35.50")
        assert [e.id for e in ExpenseService(db_session).list_for_day()] == [expense.id]

    def test_expense_without_open_shift(self, db_session):
        assert ExpenseService(db_session).create_expense("Napkins", "10").shift_id is None

    @pytest.mark.parametrize("amount", ["0", "-5", "abc"])
    def test_invalid_amount(self, db_session, amount):
        with pytest.raises(ValidationFailed):
            ExpenseService(db_session).create_expense("Napkins", amount)

    def test_unknown_shift(self, db_session):
        with pytest.raises(NotFoundError):
            ExpenseService(db_session).create_expense("Napkins", "10", shift_id=77)


class TestSettings:
    def test_defaults(self, db_session):
        controls = SettingsService(db_session).shift_controls()
        assert controls == {
            "require_opening_count": False,
            "require_closing_count": False,
            "require_cash_declaration": False,
        }

    def test_partial_update_merges_with_defaults(self, db_session):
        service = SettingsService(db_session)

        value = service.set(SHIFT_CONTROLS, {"require_cash_declaration": True})

        assert value["require_cash_declaration"] is True
        assert value["require_opening_count"] is False

    def test_invalid_shift_controls(self, db_session):
        service = SettingsService(db_session)
        with pytest.raises(ValidationFailed):
            service.set(SHIFT_CONTROLS, True)
        with pytest.raises(ValidationFailed):
            service.set(SHIFT_CONTROLS, {"require_everything": True})

    def test_free_form_setting(self, db_session):
        service = SettingsService(db_session)
        service.set("receipt_footer", "Thanks!")

        assert service.get("receipt_footer") == "Thanks!"
        assert service.get_all()["receipt_footer"] == "Thanks!"
