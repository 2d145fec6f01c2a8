# Overview: Service-layer operations for accounts; encapsulates business logic and database work.

"""
Account Directory

Accounts are identified by normalized email (trim + lower-case). Every account
gets a human-readable account_id made of a role prefix and six random digits
(ADM-004211, MEM-918273, USR-000042).

SECURITY NOTES:
- Passwords hashed with bcrypt (cost factor 12), compared with bcrypt.checkpw
- Minimum 6 characters required
- Email uniqueness is pre-checked for a friendly error and guaranteed by the
  unique index on normalized_email; a lost race surfaces as DuplicateEmailError
"""

from __future__ import annotations

import secrets

import bcrypt
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import Account
from ..validation import ConflictError, NotFoundError, ValidationError
from gymdesk.time_utils import utcnow


ROLE_ADMIN = "admin"
ROLE_MEMBER = "member"
ROLE_USER = "user"
VALID_ROLES = (ROLE_ADMIN, ROLE_MEMBER, ROLE_USER)

ACCOUNT_PREFIX = {
    ROLE_ADMIN: "ADM",
    ROLE_MEMBER: "MEM",
    ROLE_USER: "USR",
}

MIN_PASSWORD_LENGTH = 6
ACCOUNT_ID_ATTEMPTS = 10


class PasswordValidationError(ValidationError):
    """Raised when password doesn't meet strength requirements."""
    pass


class DuplicateEmailError(ConflictError):
    """An account with this (normalized) email already exists."""

    def __init__(self, message: str = "An account with this email already exists."):
        super().__init__(message)


class RoleMismatchError(Exception):
    """Credentials are valid but belong to a different role than the one selected at login."""

    def __init__(self, expected_role: str, actual_role: str):
        super().__init__(f"This account is not registered as {expected_role}.")
        self.expected_role = expected_role
        self.actual_role = actual_role


def normalize_email(email: str) -> str:
    return (email or "").strip().lower()


def validate_role(role: str) -> str:
    role = (role or "").strip().lower()
    if role not in VALID_ROLES:
        raise ValidationError(f"role must be one of: {', '.join(VALID_ROLES)}")
    return role


def validate_email(email: str) -> str:
    normalized = normalize_email(email)
    if not normalized:
        raise ValidationError("email is required")
    local, _, domain = normalized.partition("@")
    if not local or "." not in domain:
        raise ValidationError("email must be a valid email address")
    if len(normalized) > 255:
        raise ValidationError("email exceeds max length 255")
    return normalized


def validate_password_strength(password: str) -> None:
    if not password or len(password) < MIN_PASSWORD_LENGTH:
        raise PasswordValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters long")


def hash_password(password: str) -> str:
    """
    Hash password using bcrypt with cost factor 12.

    Password is validated for strength before hashing.
    """
    validate_password_strength(password)
    salt = bcrypt.gensalt(rounds=12)
    hashed = bcrypt.hashpw(password.encode('utf-8'), salt)
    return hashed.decode('utf-8')  # Store as string in database


def verify_password(password: str, password_hash: str) -> bool:
    """
    Verify password against bcrypt hash.

    bcrypt.checkpw() is constant-time; malformed hashes count as a mismatch.
    """
    if not password or not password_hash:
        return False
    try:
        return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))
    except ValueError:
        return False


def generate_account_id(role: str) -> str:
    prefix = ACCOUNT_PREFIX.get(role, ACCOUNT_PREFIX[ROLE_USER])
    return f"{prefix}-{secrets.randbelow(1_000_000):06d}"


def _unique_account_id(role: str) -> str:
    for _ in range(ACCOUNT_ID_ATTEMPTS):
        candidate = generate_account_id(role)
        if not db.session.query(Account.id).filter_by(account_id=candidate).first():
            return candidate
    raise ConflictError("Could not allocate a unique account id; try again")


def get_account(account_pk: int) -> Account | None:
    return db.session.get(Account, account_pk)


def get_account_by_email(email: str) -> Account | None:
    normalized = normalize_email(email)
    if not normalized:
        return None
    return db.session.query(Account).filter_by(normalized_email=normalized).first()


def email_exists(email: str) -> bool:
    return get_account_by_email(email) is not None


def list_accounts(role: str | None = None) -> list[Account]:
    q = db.session.query(Account)
    if role:
        q = q.filter_by(role=validate_role(role))
    return q.order_by(Account.created_at.desc(), Account.id.desc()).all()


def create_account(
    *,
    first_name: str,
    last_name: str,
    email: str,
    role: str,
    password: str | None = None,
    password_hash: str | None = None,
) -> Account:
    """
    Create a new account.

    Exactly one of password / password_hash is expected; password_hash is used
    when promoting an approved registration request.

    Raises:
        DuplicateEmailError: normalized email already registered
        PasswordValidationError: password too weak
        ValidationError: bad role / email / names
    """
    role = validate_role(role)
    normalized = validate_email(email)
    first_name = (first_name or "").strip()
    last_name = (last_name or "").strip()
    if not first_name or not last_name:
        raise ValidationError("first_name and last_name are required")

    if email_exists(normalized):
        raise DuplicateEmailError()

    if password_hash is None:
        password_hash = hash_password(password or "")

    account = Account(
        account_id=_unique_account_id(role),
        first_name=first_name,
        last_name=last_name,
        email=normalized,
        normalized_email=normalized,
        password_hash=password_hash,
        role=role,
    )
    db.session.add(account)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        if email_exists(normalized):
            raise DuplicateEmailError()
        raise
    return account


def verify_credentials(email: str, password: str) -> Account | None:
    """Return the account only if the password matches."""
    account = get_account_by_email(email)
    if not account:
        return None
    if not verify_password(password, account.password_hash):
        return None
    return account


def authenticate(email: str, password: str, role: str | None = None) -> Account | None:
    """
    Login check used by the auth routes.

    Returns None for bad credentials. Raises RoleMismatchError when the
    credentials are valid but the account holds a different role than the one
    chosen on the login form.
    """
    account = verify_credentials(email, password)
    if account is None:
        return None

    if role:
        expected = validate_role(role)
        if account.role != expected:
            raise RoleMismatchError(expected, account.role)

    account.last_login_at = utcnow()
    db.session.commit()
    return account


def update_account(account_pk: int, updates: dict) -> Account:
    """
    Partial update. Only provided keys change; an empty password is ignored.

    Raises:
        NotFoundError: unknown account
        DuplicateEmailError: new email belongs to another account
    """
    account = get_account(account_pk)
    if not account:
        raise NotFoundError("Account not found")

    for key in ("first_name", "last_name"):
        if updates.get(key) is not None:
            value = str(updates[key]).strip()
            if not value:
                raise ValidationError(f"{key} cannot be blank")
            setattr(account, key, value)

    if updates.get("password"):
        account.password_hash = hash_password(updates["password"])

    if updates.get("role") is not None:
        account.role = validate_role(updates["role"])

    if updates.get("email") is not None:
        normalized = validate_email(updates["email"])
        other = get_account_by_email(normalized)
        if other and other.id != account.id:
            raise DuplicateEmailError()
        account.email = normalized
        account.normalized_email = normalized

    account.updated_at = utcnow()
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise DuplicateEmailError()
    return account


def change_password(account_pk: int, current_password: str, new_password: str) -> Account:
    account = get_account(account_pk)
    if not account:
        raise NotFoundError("Account not found")
    if not verify_password(current_password, account.password_hash):
        raise ValidationError("Current password is incorrect")
    account.password_hash = hash_password(new_password)
    account.updated_at = utcnow()
    db.session.commit()
    return account
