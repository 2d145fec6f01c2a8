"""
Billing ledger tests.

Verifies:
- Bill status from due date (Pending/Overdue)
- Dues move with bill create/pay/delete in the same transaction
- Paying twice never decrements twice
- dues == sum of unpaid bills after any sequence of operations
"""

import re
from datetime import date, timedelta

import pytest

from gymdesk.models import Bill, Member
from gymdesk.services import billing_service
from gymdesk.services.billing_service import BillingError
from gymdesk.validation import NotFoundError, ValidationError


TODAY = date(2026, 10, 19)


def _dues(db_session, member_id):
    db_session.expire_all()
    return db_session.get(Member, member_id).dues_cents


def _bill(member_id, amount_cents=50_000, due=None, **kwargs):
    return billing_service.create_bill(
        member_id=member_id,
        amount_cents=amount_cents,
        description="Monthly fee",
        due_date=due or TODAY + timedelta(days=10),
        today=TODAY,
        **kwargs,
    )


class TestCreateBill:

    def test_overdue_then_paid_scenario(self, db_session, member):
        assert member.dues_cents == 0

        bill = _bill(member.id, 50_000, due=TODAY - timedelta(days=1))
        assert bill.status == "Overdue"
        assert _dues(db_session, member.id) == 50_000

        paid = billing_service.mark_bill_as_paid(bill.id, "Cash", today=TODAY)
        assert paid.status == "Paid"
        assert paid.payment_method == "Cash"
        assert paid.payment_date == TODAY
        assert _dues(db_session, member.id) == 0

    def test_future_due_date_is_pending(self, db_session, member):
        bill = _bill(member.id, due=TODAY + timedelta(days=1))
        assert bill.status == "Pending"

    def test_member_name_is_copied(self, db_session, member):
        bill = _bill(member.id)
        assert bill.member_name == "Ravi Kumar"

    def test_bill_number_format(self, db_session, member):
        bill = _bill(member.id)
        assert re.fullmatch(r"BILL-20261019-\d{4}", bill.bill_number)

    def test_explicit_duplicate_bill_number_rejected(self, db_session, member):
        _bill(member.id, bill_number="BILL-MANUAL-1")
        with pytest.raises(BillingError) as exc:
            _bill(member.id, bill_number="BILL-MANUAL-1")
        assert exc.value.details == {"bill_number": "BILL-MANUAL-1"}
        assert _dues(db_session, member.id) == 50_000

    @pytest.mark.parametrize("bill_number", [123, "   ", "B" * 33])
    def test_malformed_bill_number_rejected(self, db_session, member, bill_number):
        with pytest.raises(ValidationError):
            _bill(member.id, bill_number=bill_number)
        assert db_session.query(Bill).count() == 0
        assert _dues(db_session, member.id) == 0

    def test_bill_number_trimmed(self, db_session, member):
        assert _bill(member.id, bill_number="  BILL-MANUAL-2 ").bill_number == "BILL-MANUAL-2"

    def test_unknown_member(self, db_session):
        with pytest.raises(NotFoundError):
            _bill(9999)
        assert db_session.query(Bill).count() == 0

    @pytest.mark.parametrize("amount", [0, -100, 10.5, "500", True])
    def test_bad_amount_rejected(self, db_session, member, amount):
        with pytest.raises(ValidationError):
            _bill(member.id, amount)

    def test_description_required(self, db_session, member):
        with pytest.raises(ValidationError):
            billing_service.create_bill(
                member_id=member.id, amount_cents=100, description="  ", due_date=TODAY,
            )


class TestPayAndDelete:

    def test_pay_is_idempotent(self, db_session, member):
        first = _bill(member.id, 30_000)
        _bill(member.id, 20_000)
        assert _dues(db_session, member.id) == 50_000

        billing_service.mark_bill_as_paid(first.id, "UPI", today=TODAY)
        again = billing_service.mark_bill_as_paid(first.id, "Card", today=TODAY + timedelta(days=3))

        assert again.payment_method == "UPI"
        assert again.payment_date == TODAY
        assert _dues(db_session, member.id) == 20_000

    def test_unknown_payment_method(self, db_session, member):
        bill = _bill(member.id)
        with pytest.raises(ValidationError):
            billing_service.mark_bill_as_paid(bill.id, "Cheque")
        assert _dues(db_session, member.id) == 50_000

    def test_pay_unknown_bill(self, db_session):
        with pytest.raises(NotFoundError):
            billing_service.mark_bill_as_paid(4242)

    def test_delete_unpaid_bill_reduces_dues(self, db_session, member):
        bill = _bill(member.id, 40_000)
        assert billing_service.delete_bill(bill.id) is True
        assert _dues(db_session, member.id) == 0

    def test_delete_paid_bill_keeps_dues(self, db_session, member):
        paid = _bill(member.id, 40_000)
        _bill(member.id, 10_000)
        billing_service.mark_bill_as_paid(paid.id, today=TODAY)
        billing_service.delete_bill(paid.id)
        assert _dues(db_session, member.id) == 10_000

    def test_delete_missing_bill(self, db_session):
        assert billing_service.delete_bill(4242) is False

    def test_dues_never_negative(self, db_session, member):
        bill = _bill(member.id, 40_000)
        m = db_session.get(Member, member.id)
        m.dues_cents = 10_000
        db_session.commit()

        billing_service.mark_bill_as_paid(bill.id, today=TODAY)
        assert _dues(db_session, member.id) == 0


def test_dues_match_unpaid_bills_after_mixed_sequence(db_session, member):
    bills = [
        _bill(member.id, 10_000),
        _bill(member.id, 25_000, due=TODAY - timedelta(days=5)),
        _bill(member.id, 7_500),
        _bill(member.id, 12_000),
    ]
    billing_service.mark_bill_as_paid(bills[0].id, today=TODAY)
    billing_service.delete_bill(bills[2].id)
    billing_service.mark_bill_as_paid(bills[1].id, today=TODAY)
    billing_service.mark_bill_as_paid(bills[1].id, today=TODAY)
    _bill(member.id, 3_000)
    billing_service.delete_bill(bills[0].id)

    assert _dues(db_session, member.id) == billing_service.unpaid_total_cents(member.id) == 15_000


def test_refresh_overdue_leaves_dues_alone(db_session, member):
    bill = _bill(member.id, 20_000, due=TODAY + timedelta(days=2))
    assert billing_service.refresh_overdue_bills(TODAY) == 0
    assert billing_service.refresh_overdue_bills(TODAY + timedelta(days=3)) == 1

    db_session.expire_all()
    assert db_session.get(Bill, bill.id).status == "Overdue"
    assert _dues(db_session, member.id) == 20_000


def test_list_and_summary(db_session, member, other_member):
    a = _bill(member.id, 10_000)
    _bill(member.id, 20_000, due=TODAY - timedelta(days=1))
    _bill(other_member.id, 5_000)
    billing_service.mark_bill_as_paid(a.id, today=TODAY)

    mine = billing_service.list_bills(member_id=member.id)
    assert len(mine) == 2
    assert [b.status for b in billing_service.list_bills(status="Overdue")] == ["Overdue"]

    summary = billing_service.bill_summary(billing_service.list_bills())
    assert summary == {
        "count": 3,
        "paid_cents": 10_000,
        "pending_cents": 5_000,
        "overdue_cents": 20_000,
        "outstanding_cents": 25_000,
    }

    with pytest.raises(ValidationError):
        billing_service.list_bills(status="Void")
