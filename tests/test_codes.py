"""Tests for verification code generation and lifecycle."""

from __future__ import annotations

import secrets
from datetime import timedelta

import pytest

from models import db, utcnow
from models.user import User
from models.verification_code import (
    PURPOSE_RESET_PASSWORD,
    PURPOSE_VERIFY_EMAIL,
    VerificationCode,
)
import services.verification as verification
from services.verification import (
    consume_code,
    generate_verification_code,
    issue_code,
    purge_expired_codes,
)
from utils.errors import InvalidOrExpiredCode, ResendTooSoon


def test_generated_codes_are_fixed_length_digits():
    for _ in range(50):
        code = generate_verification_code()
        assert len(code) == 6
        assert code.isdigit()

    assert len(generate_verification_code(8)) == 8


def test_generated_codes_keep_leading_zeros(monkeypatch):
    monkeypatch.setattr(secrets, "randbelow", lambda upper: 42)

    assert generate_verification_code() == "000042"


def test_generator_rejects_non_positive_length():
    with pytest.raises(ValueError):
        generate_verification_code(0)


def _codes(user_id: int, purpose: str | None = None) -> list[VerificationCode]:
    query = VerificationCode.query.filter_by(user_id=user_id)
    if purpose:
        query = query.filter_by(purpose=purpose)
    return query.all()


def test_issuing_replaces_previous_code_of_same_purpose(app, create_user):
    user_id = create_user("codes@example.com", verified=False)

    with app.app_context():
        user = db.session.get(User, user_id)
        issue_code(user, PURPOSE_VERIFY_EMAIL)
        second = issue_code(user, PURPOSE_VERIFY_EMAIL)

        codes = _codes(user_id, PURPOSE_VERIFY_EMAIL)
        assert [code.code for code in codes] == [second]
        ttl = codes[0].expires_at - codes[0].created_at
        assert ttl == timedelta(minutes=app.config["VERIFICATION_CODE_TTL_MINUTES"])


def test_purposes_do_not_interfere(app, create_user, monkeypatch):
    sequence = iter(["111111", "222222"])
    monkeypatch.setattr(
        verification, "generate_verification_code", lambda length=6: next(sequence)
    )
    user_id = create_user("purposes@example.com")

    with app.app_context():
        user = db.session.get(User, user_id)
        verify_code = issue_code(user, PURPOSE_VERIFY_EMAIL)
        issue_code(user, PURPOSE_RESET_PASSWORD)

        assert len(_codes(user_id)) == 2
        with pytest.raises(InvalidOrExpiredCode):
            consume_code(user, PURPOSE_RESET_PASSWORD, verify_code)
        consume_code(user, PURPOSE_RESET_PASSWORD, "222222")


def test_consuming_a_code_removes_all_user_codes(app, create_user):
    user_id = create_user("consume@example.com", verified=False)

    with app.app_context():
        user = db.session.get(User, user_id)
        code = issue_code(user, PURPOSE_VERIFY_EMAIL)
        issue_code(user, PURPOSE_RESET_PASSWORD)

        consume_code(user, PURPOSE_VERIFY_EMAIL, code)
        db.session.commit()

        assert _codes(user_id) == []
        with pytest.raises(InvalidOrExpiredCode):
            consume_code(user, PURPOSE_VERIFY_EMAIL, code)


def test_wrong_and_expired_codes_are_rejected(app, create_user):
    user_id = create_user("expired@example.com", verified=False)

    with app.app_context():
        user = db.session.get(User, user_id)
        code = issue_code(user, PURPOSE_VERIFY_EMAIL)
        wrong = "000000" if code != "000000" else "111111"

        with pytest.raises(InvalidOrExpiredCode):
            consume_code(user, PURPOSE_VERIFY_EMAIL, wrong)

        stored = _codes(user_id)[0]
        stored.expires_at = utcnow() - timedelta(seconds=1)
        db.session.commit()

        with pytest.raises(InvalidOrExpiredCode):
            consume_code(user, PURPOSE_VERIFY_EMAIL, code)


def test_reissuing_inside_cooldown_is_refused(app, create_user):
    app.config["RESEND_COOLDOWN_SECONDS"] = 60
    user_id = create_user("cooldown@example.com", verified=False)

    with app.app_context():
        user = db.session.get(User, user_id)
        first = issue_code(user, PURPOSE_VERIFY_EMAIL)

        with pytest.raises(ResendTooSoon) as excinfo:
            issue_code(user, PURPOSE_VERIFY_EMAIL)

        assert 1 <= excinfo.value.retry_after_seconds <= 60
        assert [code.code for code in _codes(user_id)] == [first]

        # Other purposes keep their own cooldown.
        issue_code(user, PURPOSE_RESET_PASSWORD)


def test_purge_expired_codes(app, create_user):
    first_id = create_user("purge1@example.com")
    second_id = create_user("purge2@example.com")

    with app.app_context():
        issue_code(db.session.get(User, first_id), PURPOSE_VERIFY_EMAIL)
        issue_code(db.session.get(User, second_id), PURPOSE_VERIFY_EMAIL)
        stale = _codes(first_id)[0]
        stale.expires_at = utcnow() - timedelta(minutes=1)
        db.session.commit()

        assert purge_expired_codes() == 1
        assert _codes(first_id) == []
        assert len(_codes(second_id)) == 1
