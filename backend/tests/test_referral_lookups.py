from __future__ import annotations

import pytest

from darood.errors import FailedPreconditionError, NotFoundError
from darood.referral.models import ReferralCode


def test_get_or_create_code_returns_existing(referral_service, seed_user) -> None:
    seed_user("u1", code="Own00001")

    assert referral_service.get_or_create_code("u1") == "Own00001"


def test_get_or_create_code_creates_once(referral_service, database, seed_user, load_user) -> None:
    seed_user("u1")

    code = referral_service.get_or_create_code("u1")

    assert len(code) == 8
    assert load_user("u1").referral_code == code
    assert referral_service.get_or_create_code("u1") == code
    with database.session() as session:
        rows = session.query(ReferralCode).filter(ReferralCode.user_id == "u1").all()
        assert [row.code for row in rows] == [code]
        assert rows[0].normalized == code.lower()


def test_get_or_create_code_retries_on_collision(referral_service, seed_user, monkeypatch) -> None:
    seed_user("u1")
    seed_user("u2", code="Taken123")
    generated = iter(["Taken123", "Fresh456"])
    monkeypatch.setattr(
        "darood.referral.service.generate_referral_code", lambda length=8: next(generated)
    )

    assert referral_service.get_or_create_code("u1") == "Fresh456"


def test_get_or_create_code_unknown_user(referral_service) -> None:
    with pytest.raises(NotFoundError):
        referral_service.get_or_create_code("ghost")


def test_validate_code_is_case_insensitive(referral_service, seed_user) -> None:
    seed_user("u2", code="Xy9Zqw12")

    assert referral_service.validate_code("Xy9Zqw12").user_id == "u2"
    assert referral_service.validate_code(" XY9ZQW12 ").code == "Xy9Zqw12"
    assert referral_service.validate_code("nope") is None
    assert referral_service.validate_code("") is None
    assert referral_service.validate_code(None) is None


def test_validate_code_without_owner_is_invalid(referral_service, database) -> None:
    with database.session() as session:
        session.add(ReferralCode(code="Orphan01", user_id=None, normalized="orphan01"))

    assert referral_service.validate_code("Orphan01") is None


def test_stats_and_referrer_lookup(referral_service, seed_user) -> None:
    seed_user("ref", code="Xy9Zqw12")
    seed_user("a")
    seed_user("b")

    assert referral_service.apply_referral("a", "Xy9Zqw12", 50).applied is True
    assert referral_service.apply_referral("b", "xy9zqw12", 50).applied is True

    stats = referral_service.get_referral_stats("ref")
    assert stats["code"] == "Xy9Zqw12"
    assert stats["referral_count"] == 2
    assert stats["total_count"] == 100
    assert stats["month_count"] == 100
    assert stats["referred_by"] is None
    assert {r["referred_id"] for r in stats["recent_referrals"]} == {"a", "b"}
    assert all(r["points_awarded"] == 50 for r in stats["recent_referrals"])

    assert referral_service.get_referrer_for_user("a") == "ref"
    assert referral_service.get_referrer_for_user("ref") is None
    assert referral_service.get_referrer_for_user("ghost") is None


def test_create_user_rejects_duplicates(database) -> None:
    from darood.auth.users import UserService

    users = UserService(database)
    user = users.create_user("u1", name="Ayesha")

    assert user.total_count == 0
    assert users.get_user("u1").name == "Ayesha"
    with pytest.raises(FailedPreconditionError):
        users.create_user("u1")


def test_user_table_columns(database) -> None:
    from sqlalchemy import inspect

    columns = {column["name"] for column in inspect(database.engine).get_columns("user_accounts")}

    assert columns == {
        "id",
        "name",
        "email",
        "total_count",
        "month_count",
        "referral_code",
        "referred_by_id",
        "referred_at",
        "referral_count",
        "created_at",
        "updated_at",
    }
