from datetime import timedelta

from gymdesk.models import FeePackage, Member
from gymdesk.services import billing_service, member_service, package_service, reconciliation_service
from gymdesk.services.status_service import MEMBER_INACTIVE
from gymdesk.time_utils import today


TODAY = today()


def test_refresh_member_statuses(db_session):
    lapsing = member_service.add_member({"first_name": "L", "last_name": "One", "end_date": TODAY})
    parked = member_service.add_member({
        "first_name": "P", "last_name": "Two", "end_date": TODAY - timedelta(days=10), "status": MEMBER_INACTIVE,
    })
    open_ended = member_service.add_member({"first_name": "O", "last_name": "Three"})

    assert reconciliation_service.refresh_member_statuses(TODAY) == 0
    assert reconciliation_service.refresh_member_statuses(TODAY + timedelta(days=1)) == 1

    db_session.expire_all()
    assert db_session.get(Member, lapsing.id).status == "Expired"
    assert db_session.get(Member, parked.id).status == MEMBER_INACTIVE
    assert db_session.get(Member, open_ended.id).status == "Active"


def test_reconcile_member_dues(db_session, member, other_member):
    billing_service.create_bill(member_id=member.id, amount_cents=7_000, description="Fee", due_date=TODAY)
    paid = billing_service.create_bill(member_id=member.id, amount_cents=3_000, description="Locker", due_date=TODAY)
    billing_service.mark_bill_as_paid(paid.id)

    m = db_session.get(Member, member.id)
    m.dues_cents = 99_999
    o = db_session.get(Member, other_member.id)
    o.dues_cents = 500
    db_session.commit()

    corrections = reconciliation_service.reconcile_member_dues()
    assert corrections == [
        {"member_id": member.id, "before_cents": 99_999, "after_cents": 7_000},
        {"member_id": other_member.id, "before_cents": 500, "after_cents": 0},
    ]
    assert reconciliation_service.reconcile_member_dues() == []


def test_run_all(db_session, member):
    billing_service.create_bill(
        member_id=member.id, amount_cents=1_000, description="Fee", due_date=TODAY, today=TODAY,
    )
    package_service.assign_package(member_id=member.id, package_type="basic", start_date=TODAY, today=TODAY)

    result = reconciliation_service.run_all(TODAY + timedelta(days=60))
    assert result == {
        "overdue_bills": 1,
        "expired_packages": 1,
        "member_statuses": 1,
        "dues_corrections": 0,
    }
    db_session.expire_all()
    assert db_session.query(FeePackage).one().status == "Expired"
    assert db_session.get(Member, member.id).dues_cents == 1_000
