from datetime import timedelta

import pytest

from attendify.core.errors import (
    AccessDeniedError, AuthenticationError, ConflictError, NotFoundError, ValidationError,
)
from attendify.core.security_password import hash_password, verify_password
from attendify.core.tokens import decode_access, decode_refresh
from attendify.models.password_reset import PasswordReset
from attendify.models.pending_user import PendingUser
from attendify.schemas.user import AdminCreateIn, RegisterIn, UserAdminUpdate
from attendify.services import accounts

from tests.conftest import NOW, fake_encoder

PASSWORD = "Str0ng!Pass"


def _register(db, **overrides):
    data = dict(email="ana@campus.edu", password=PASSWORD, first_name="Ana", course="bsit", year_level="3")
    data.update(overrides)
    return RegisterIn(**data)


def test_register_creates_pending_and_sends_code(db, dispatcher, notifier):
    pending = accounts.register(db, _register(db, student_id="2025-0001"), dispatcher=dispatcher,
                                notifier=notifier, now=NOW)

    assert pending.student_id == "2025-0001"
    assert pending.email == "ana@campus.edu"
    assert len(pending.verification_code) == 6 and pending.verification_code.isdigit()
    assert pending.password_hash != PASSWORD
    assert notifier.sent == [("verification", "ana@campus.edu", pending.verification_code)]


def test_register_generates_student_id(db):
    pending = accounts.register(db, _register(db), now=NOW)
    assert pending.student_id.startswith("250310-")


def test_register_rejects_weak_password(db):
    with pytest.raises(ValidationError) as exc:
        accounts.register(db, _register(db, password="weakpass"), now=NOW)
    assert "uppercase" in " ".join(exc.value.details)


def test_register_conflicts(db, make_user):
    make_user("2025-0009", email="taken@campus.edu")
    with pytest.raises(ConflictError, match="email already registered"):
        accounts.register(db, _register(db, email="Taken@Campus.edu"), now=NOW)
    with pytest.raises(ConflictError, match="student_id already exists"):
        accounts.register(db, _register(db, student_id="2025-0009"), now=NOW)

    accounts.register(db, _register(db), now=NOW)
    with pytest.raises(ConflictError, match="pending verification"):
        accounts.register(db, _register(db), now=NOW)


def test_expired_pending_registration_is_purged_on_register(db):
    accounts.register(db, _register(db), now=NOW)
    accounts.register(db, _register(db), now=NOW + timedelta(hours=1))
    assert db.query(PendingUser).count() == 1


def test_verify_creates_student(db):
    pending = accounts.register(db, _register(db, student_id="2025-0001"), now=NOW)
    user = accounts.verify(db, "ANA@campus.edu", pending.verification_code, encoder=fake_encoder,
                           now=NOW + timedelta(minutes=5))

    assert user.role == "student"
    assert user.is_verified is True
    assert user.course == "BSIT"
    assert user.qr_code_data == "qr:student:2025-0001"
    assert user.qr_type == "student_id"
    assert user.active_event_id is None
    assert db.query(PendingUser).count() == 0


def test_verify_wrong_or_expired_code(db):
    pending = accounts.register(db, _register(db), now=NOW)
    wrong = "000000" if pending.verification_code != "000000" else "111111"
    with pytest.raises(ValidationError, match="invalid verification code"):
        accounts.verify(db, "ana@campus.edu", wrong, encoder=fake_encoder, now=NOW)

    with pytest.raises(ValidationError, match="expired"):
        accounts.verify(db, "ana@campus.edu", pending.verification_code, encoder=fake_encoder,
                        now=NOW + timedelta(minutes=31))
    assert db.query(PendingUser).count() == 0

    with pytest.raises(NotFoundError):
        accounts.verify(db, "ana@campus.edu", pending.verification_code, encoder=fake_encoder, now=NOW)


def test_login_by_email_or_student_id(db, make_user):
    make_user("2025-0001", email="ana@campus.edu", password_hash=hash_password(PASSWORD))

    assert accounts.login(db, "ana@campus.edu", PASSWORD).student_id == "2025-0001"
    assert accounts.login(db, " 2025-0001 ", PASSWORD).student_id == "2025-0001"
    with pytest.raises(AuthenticationError):
        accounts.login(db, "ana@campus.edu", "Wrong!Pass1")
    with pytest.raises(AuthenticationError):
        accounts.login(db, "nobody@campus.edu", PASSWORD)


def test_login_unverified_is_denied(db, make_user):
    make_user("2025-0001", password_hash=hash_password(PASSWORD), is_verified=False)
    with pytest.raises(AccessDeniedError):
        accounts.login(db, "2025-0001", PASSWORD)


def test_issue_tokens_and_refresh(db, make_user):
    user = make_user("2025-0001")
    tokens = accounts.issue_tokens(user)

    access = decode_access(tokens["access_token"])
    assert access["student_id"] == "2025-0001"
    assert access["role"] == "student"
    assert decode_access(tokens["refresh_token"]) is None
    assert decode_refresh(tokens["refresh_token"])["email"] == user.email

    assert accounts.refresh(db, tokens["refresh_token"]).student_id == "2025-0001"
    with pytest.raises(AuthenticationError):
        accounts.refresh(db, tokens["access_token"])
    with pytest.raises(AuthenticationError):
        accounts.refresh(db, "garbage")


def test_password_reset_flow(db, make_user, dispatcher, notifier):
    make_user("2025-0001", email="ana@campus.edu", password_hash=hash_password(PASSWORD))

    accounts.forgot_password(db, "ana@campus.edu", dispatcher=dispatcher, notifier=notifier, now=NOW)
    _, email, code = notifier.sent[-1]
    assert email == "ana@campus.edu"

    with pytest.raises(ValidationError):
        accounts.reset_password(db, "ana@campus.edu", code, "short", now=NOW)
    accounts.reset_password(db, "ana@campus.edu", code, "N3w!Password", now=NOW + timedelta(minutes=1))
    assert accounts.login(db, "ana@campus.edu", "N3w!Password")

    with pytest.raises(ValidationError, match="invalid or expired"):
        accounts.reset_password(db, "ana@campus.edu", code, "An0ther!Pass", now=NOW + timedelta(minutes=2))


def test_forgot_password_invalidates_previous_codes(db, make_user, dispatcher, notifier):
    make_user("2025-0001", email="ana@campus.edu")
    accounts.forgot_password(db, "ana@campus.edu", dispatcher=dispatcher, notifier=notifier, now=NOW)
    accounts.forgot_password(db, "ana@campus.edu", dispatcher=dispatcher, notifier=notifier, now=NOW)
    assert db.query(PasswordReset).filter(PasswordReset.used.is_(False)).count() == 1


def test_forgot_password_unknown_email_is_silent(db, dispatcher, notifier):
    accounts.forgot_password(db, "ghost@campus.edu", dispatcher=dispatcher, notifier=notifier, now=NOW)
    assert notifier.sent == []


def test_reset_code_expires(db, make_user, dispatcher, notifier):
    make_user("2025-0001", email="ana@campus.edu")
    accounts.forgot_password(db, "ana@campus.edu", dispatcher=dispatcher, notifier=notifier, now=NOW)
    code = notifier.sent[-1][2]
    with pytest.raises(ValidationError):
        accounts.reset_password(db, "ana@campus.edu", code, "N3w!Password", now=NOW + timedelta(minutes=16))


def test_promote_and_guard_superadmin(db, make_user):
    root = make_user("ROOT", role="superadmin", course=None)
    make_user("2025-0001")

    promoted = accounts.promote(db, "2025-0001", "faculty", root)
    assert promoted.role == "faculty"
    with pytest.raises(ValidationError):
        accounts.promote(db, "2025-0001", "superadmin", root)
    with pytest.raises(AccessDeniedError):
        accounts.promote(db, "ROOT", "student", root)
    with pytest.raises(NotFoundError):
        accounts.promote(db, "NOPE", "admin", root)


def test_create_admin(db, make_user):
    root = make_user("ROOT", role="superadmin", course=None)
    admin = accounts.create_admin(
        db, AdminCreateIn(student_id="adm-01", email="Admin@Campus.edu", password=PASSWORD, first_name="Ad"),
        root, encoder=fake_encoder,
    )
    assert admin.student_id == "ADM-01"
    assert admin.email == "admin@campus.edu"
    assert admin.role == "admin"
    assert admin.is_verified is True
    assert verify_password(PASSWORD, admin.password_hash)

    with pytest.raises(ConflictError):
        accounts.create_admin(db, AdminCreateIn(student_id="ADM-01", email="x@campus.edu", password=PASSWORD),
                              root, encoder=fake_encoder)


def test_update_and_delete_user(db, make_user):
    root = make_user("ROOT", role="superadmin", course=None)
    make_user("2025-0001")
    make_user("2025-0002", email="other@campus.edu")

    user = accounts.update_user(db, "2025-0001", UserAdminUpdate(course="BSCS", section="Section 2"), root)
    assert user.course == "BSCS"
    assert user.section == "Section 2"
    assert user.year_level == "3"

    with pytest.raises(ConflictError):
        accounts.update_user(db, "2025-0001", UserAdminUpdate(email="other@campus.edu"), root)

    accounts.delete_user(db, "2025-0001", root)
    assert [u.student_id for u in accounts.list_users(db, role="student")] == ["2025-0002"]
    with pytest.raises(AccessDeniedError):
        accounts.delete_user(db, "ROOT", root)
