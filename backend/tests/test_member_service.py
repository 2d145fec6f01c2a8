import io
from datetime import date, timedelta

import pytest
from werkzeug.datastructures import FileStorage

from gymdesk.models import Bill
from gymdesk.services import billing_service, member_service
from gymdesk.services.status_service import MEMBER_ACTIVE, MEMBER_EXPIRED, MEMBER_INACTIVE
from gymdesk.time_utils import today
from gymdesk.validation import NotFoundError, ValidationError


def test_add_member_derives_status(db_session):
    expired = member_service.add_member({"first_name": "A", "last_name": "B", "end_date": date(2001, 1, 1)})
    open_ended = member_service.add_member({"first_name": "C", "last_name": "D"})
    assert expired.status == MEMBER_EXPIRED
    assert open_ended.status == MEMBER_ACTIVE
    assert open_ended.dues_cents == 0
    assert open_ended.membership_type == "basic"


def test_add_member_rejects_unknown_enums(db_session):
    with pytest.raises(ValidationError):
        member_service.add_member({"first_name": "A", "last_name": "B", "status": "Frozen"})
    with pytest.raises(ValidationError):
        member_service.add_member({"first_name": "A", "last_name": "B", "membership_type": "diamond"})


class TestUpdateMember:

    def test_end_date_change_recomputes_status(self, db_session, member):
        member_service.update_member(member.id, {"end_date": today() - timedelta(days=1)})
        assert member.status == MEMBER_EXPIRED
        member_service.update_member(member.id, {"end_date": today()})
        assert member.status == MEMBER_ACTIVE

    def test_explicit_status_wins(self, db_session, member):
        member_service.update_member(member.id, {
            "end_date": today() + timedelta(days=30),
            "status": MEMBER_INACTIVE,
        })
        assert member.status == MEMBER_INACTIVE

    def test_resent_status_does_not_contradict_end_date(self, db_session, member):
        member_service.update_member(member.id, {
            "end_date": today() - timedelta(days=10),
            "status": MEMBER_ACTIVE,
        })
        assert member.status == MEMBER_EXPIRED

        member_service.update_member(member.id, {"status": MEMBER_ACTIVE})
        assert member.status == MEMBER_EXPIRED

        member_service.update_member(member.id, {
            "end_date": today() + timedelta(days=10),
            "status": MEMBER_EXPIRED,
        })
        assert member.status == MEMBER_ACTIVE

    def test_add_member_ignores_contradicting_status(self, db_session):
        m = member_service.add_member({
            "first_name": "A", "last_name": "B", "end_date": date(2001, 1, 1), "status": MEMBER_ACTIVE,
        })
        assert m.status == MEMBER_EXPIRED

    def test_inactive_survives_end_date_change(self, db_session, member):
        member_service.update_member(member.id, {"status": MEMBER_INACTIVE})
        member_service.update_member(member.id, {"end_date": today() + timedelta(days=30)})
        assert member.status == MEMBER_INACTIVE

    def test_untouched_fields_kept(self, db_session, member):
        member_service.update_member(member.id, {"phone": "9700000000"})
        assert member.email == "ravi@gym.test"
        assert member.first_name == "Ravi"

    def test_missing_member(self, db_session):
        assert member_service.update_member(9999, {"phone": "1"}) is None


def test_delete_member_keeps_bills(db_session, member):
    bill = billing_service.create_bill(
        member_id=member.id, amount_cents=1000, description="Fee", due_date=today(),
    )
    assert member_service.delete_member(member.id) is True
    assert member_service.get_member(member.id) is None
    kept = db_session.get(Bill, bill.id)
    assert kept is not None
    assert kept.member_name == "Ravi Kumar"
    assert member_service.delete_member(member.id) is False


def test_search(db_session, member, other_member):
    assert [m.first_name for m in member_service.search_members("ravi kumar")] == ["Ravi"]
    assert [m.first_name for m in member_service.search_members("MEERA@")] == ["Meera"]
    assert [m.first_name for m in member_service.search_members("98000000")] == ["Meera", "Ravi"]
    assert member_service.search_members("   ") == []


def test_list_by_status(db_session, member, other_member):
    member_service.update_member(other_member.id, {"status": MEMBER_INACTIVE})
    assert [m.id for m in member_service.list_members(status=MEMBER_INACTIVE)] == [other_member.id]
    with pytest.raises(ValidationError):
        member_service.list_members(status="Gone")


def test_find_member_for_account(db_session, member, member_account, user_account):
    assert member_service.find_member_for_account(member_account).id == member.id
    assert member_service.find_member_for_account(user_account) is None


def test_find_member_falls_back_to_email(db_session, user_account):
    by_email = member_service.add_member({"first_name": "Dev", "last_name": "Desk", "email": "DESK@gym.test"})
    assert member_service.find_member_for_account(user_account).id == by_email.id


def test_check_in(db_session, member):
    assert member.last_check_in is None
    member_service.check_in(member.id)
    assert member.last_check_in is not None
    with pytest.raises(NotFoundError):
        member_service.check_in(9999)


class TestPhoto:

    def test_attach_photo(self, app, db_session, member):
        upload = FileStorage(stream=io.BytesIO(b"\x89PNG fake"), filename="../../me pic.png")
        with app.test_request_context():
            updated = member_service.attach_photo(member.id, upload)
        assert updated.photo_url == f"/api/members/photos/{member.id}/me_pic.png"

    def test_disallowed_extension(self, app, db_session, member):
        upload = FileStorage(stream=io.BytesIO(b"MZ"), filename="virus.exe")
        with app.test_request_context():
            with pytest.raises(ValidationError):
                member_service.attach_photo(member.id, upload)
        assert member.photo_url is None

    def test_missing_file(self, app, db_session, member):
        with app.test_request_context():
            with pytest.raises(ValidationError):
                member_service.attach_photo(member.id, None)
