import pytest

from gymdesk.models import Account
from gymdesk.services import account_service, registration_service
from gymdesk.services.account_service import DuplicateEmailError, PasswordValidationError
from gymdesk.services.registration_service import RegistrationError
from gymdesk.validation import NotFoundError, ValidationError

from conftest import make_account


def _submit(email="new@gym.test", role="member", password="signup1"):
    return registration_service.submit_request(
        first_name="Neha",
        last_name="Joshi",
        email=email,
        password=password,
        role=role,
        phone=" 9833333333 ",
    )


class TestSubmit:

    def test_stores_hash_not_password(self, db_session):
        req = _submit()
        assert req.status == "Pending"
        assert req.password_hash != "signup1"
        assert account_service.verify_password("signup1", req.password_hash)
        assert req.phone == "9833333333"
        assert "password_hash" not in req.to_dict()

    def test_existing_account_email_rejected(self, db_session):
        make_account("user", "taken@gym.test")
        with pytest.raises(DuplicateEmailError):
            _submit(email="TAKEN@gym.test")

    def test_second_pending_request_rejected(self, db_session):
        _submit()
        with pytest.raises(DuplicateEmailError):
            _submit(email=" New@Gym.test")

    def test_admin_role_not_self_service(self, db_session):
        with pytest.raises(ValidationError):
            _submit(role="admin")

    def test_weak_password(self, db_session):
        with pytest.raises(PasswordValidationError):
            _submit(password="123")


class TestReview:

    def test_approve_creates_account_with_same_hash(self, db_session):
        req = _submit(role="user")
        approved = registration_service.approve_request(req.id)

        assert approved.status == "Approved"
        assert approved.reviewed_at is not None
        account = db_session.get(Account, approved.account_id)
        assert account.role == "user"
        assert account.account_id.startswith("USR-")
        assert account.password_hash == req.password_hash
        assert account_service.verify_credentials("new@gym.test", "signup1") is not None

    def test_only_pending_can_be_reviewed(self, db_session):
        req = _submit()
        registration_service.reject_request(req.id, "  Incomplete details ")
        assert req.status == "Rejected"
        assert req.rejection_reason == "Incomplete details"
        with pytest.raises(RegistrationError):
            registration_service.approve_request(req.id)
        with pytest.raises(RegistrationError):
            registration_service.reject_request(req.id)

    def test_rejected_email_can_apply_again(self, db_session):
        req = _submit()
        registration_service.reject_request(req.id)
        assert _submit().status == "Pending"

    def test_approve_after_email_taken(self, db_session):
        req = _submit()
        make_account("member", "new@gym.test")
        with pytest.raises(DuplicateEmailError):
            registration_service.approve_request(req.id)
        assert registration_service.get_request(req.id).status == "Pending"

    def test_unknown_request(self, db_session):
        with pytest.raises(NotFoundError):
            registration_service.approve_request(9999)

    def test_list_and_count(self, db_session):
        first = _submit(email="a@gym.test")
        _submit(email="b@gym.test")
        registration_service.reject_request(first.id)
        assert registration_service.pending_count() == 1
        assert [r.email for r in registration_service.list_requests("Rejected")] == ["a@gym.test"]
        with pytest.raises(ValidationError):
            registration_service.list_requests("Archived")
