# Overview: Service-layer operations for self-service signups awaiting admin review.

"""
Registration Requests

- A request holds the applicant's bcrypt hash, never the password.
- An email may have at most one Pending request and must not belong to an
  existing account.
- Only Pending requests can be approved or rejected.
"""

from __future__ import annotations

from ..extensions import db
from ..models import RegistrationRequest
from ..validation import NotFoundError, ValidationError
from . import account_service
from .account_service import DuplicateEmailError, ROLE_MEMBER, ROLE_USER
from gymdesk.time_utils import utcnow


REQUEST_PENDING = "Pending"
REQUEST_APPROVED = "Approved"
REQUEST_REJECTED = "Rejected"
REQUEST_STATUSES = (REQUEST_PENDING, REQUEST_APPROVED, REQUEST_REJECTED)

# Admin accounts are only created by other admins or the CLI
SELF_SERVICE_ROLES = (ROLE_MEMBER, ROLE_USER)


class RegistrationError(Exception):
    """Raised for registration review errors."""
    pass


def _pending_request_for(normalized_email: str) -> RegistrationRequest | None:
    return (
        db.session.query(RegistrationRequest)
        .filter_by(normalized_email=normalized_email, status=REQUEST_PENDING)
        .first()
    )


def submit_request(
    *,
    first_name: str,
    last_name: str,
    email: str,
    password: str,
    role: str = "member",
    phone: str | None = None,
) -> RegistrationRequest:
    """
    Record a signup for admin review.

    Raises:
        DuplicateEmailError: email already has an account or a pending request
        PasswordValidationError / ValidationError: bad input
    """
    role = account_service.validate_role(role)
    if role not in SELF_SERVICE_ROLES:
        raise ValidationError(f"role must be one of: {', '.join(SELF_SERVICE_ROLES)}")

    normalized = account_service.validate_email(email)
    first_name = (first_name or "").strip()
    last_name = (last_name or "").strip()
    if not first_name or not last_name:
        raise ValidationError("first_name and last_name are required")

    if account_service.email_exists(normalized):
        raise DuplicateEmailError()
    if _pending_request_for(normalized):
        raise DuplicateEmailError("A registration request for this email is already pending.")

    req = RegistrationRequest(
        first_name=first_name,
        last_name=last_name,
        email=(email or "").strip(),
        normalized_email=normalized,
        phone=(phone or "").strip() or None,
        role=role,
        password_hash=account_service.hash_password(password or ""),
        status=REQUEST_PENDING,
    )
    db.session.add(req)
    db.session.commit()
    return req


def get_request(request_id: int) -> RegistrationRequest | None:
    return db.session.get(RegistrationRequest, request_id)


def list_requests(status: str | None = None) -> list[RegistrationRequest]:
    q = db.session.query(RegistrationRequest)
    if status:
        if status not in REQUEST_STATUSES:
            raise ValidationError(f"status must be one of: {', '.join(REQUEST_STATUSES)}")
        q = q.filter_by(status=status)
    return q.order_by(RegistrationRequest.requested_at.desc(), RegistrationRequest.id.desc()).all()


def _require_pending(request_id: int) -> RegistrationRequest:
    req = get_request(request_id)
    if not req:
        raise NotFoundError("Registration request not found")
    if req.status != REQUEST_PENDING:
        raise RegistrationError(f"Request already {req.status.lower()}")
    return req


def approve_request(request_id: int) -> RegistrationRequest:
    """
    Turn a pending request into an account carrying the applicant's hash.

    Raises:
        NotFoundError: unknown request
        RegistrationError: request is not Pending
        DuplicateEmailError: an account took the email since submission
    """
    req = _require_pending(request_id)

    account = account_service.create_account(
        first_name=req.first_name,
        last_name=req.last_name,
        email=req.email,
        role=req.role,
        password_hash=req.password_hash,
    )

    req.status = REQUEST_APPROVED
    req.reviewed_at = utcnow()
    req.account_id = account.id
    db.session.commit()
    return req


def reject_request(request_id: int, reason: str | None = None) -> RegistrationRequest:
    req = _require_pending(request_id)
    req.status = REQUEST_REJECTED
    req.reviewed_at = utcnow()
    req.rejection_reason = (reason or "").strip() or None
    db.session.commit()
    return req


def pending_count() -> int:
    return db.session.query(RegistrationRequest).filter_by(status=REQUEST_PENDING).count()
