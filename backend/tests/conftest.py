from __future__ import annotations

import os
import tempfile
from datetime import datetime, timezone
from pathlib import Path

import pytest


_TEST_ROOT = Path(tempfile.mkdtemp(prefix="darood_test_"))

os.environ["ENV"] = "test"
os.environ["DATABASE_URL"] = f"sqlite:///{_TEST_ROOT / 'default.db'}"
os.environ["JWT_SECRET_KEY"] = "test-secret"
os.environ["LOG_LEVEL"] = "WARNING"


@pytest.fixture()
def database(tmp_path):
    from darood.storage.db import Database

    db = Database(f"sqlite:///{tmp_path / 'darood_test.db'}", echo=False)
    db.create_tables()
    yield db
    db.dispose()


@pytest.fixture()
def referral_service(database):
    from darood.referral.service import ReferralService
    from darood.settings import Settings

    return ReferralService(database, Settings())


@pytest.fixture()
def seed_user(database):
    """Insert a user, and their referral code row when ``code`` is given."""
    from darood.auth.models import UserAccount
    from darood.referral.models import ReferralCode

    def _seed(
        user_id: str,
        *,
        code: str | None = None,
        created_at: datetime | None = None,
        referral_count: int = 0,
        referred_by: str | None = None,
        total_count: int = 0,
    ) -> None:
        with database.session() as session:
            session.add(
                UserAccount(
                    id=user_id,
                    name=user_id,
                    total_count=total_count,
                    month_count=total_count,
                    referral_code=code,
                    referral_count=referral_count,
                    referred_by_id=referred_by,
                    created_at=created_at or datetime.now(timezone.utc),
                )
            )
            if code:
                session.add(ReferralCode(code=code, user_id=user_id, normalized=code.lower()))

    return _seed


@pytest.fixture()
def load_user(database):
    from darood.auth.models import UserAccount

    def _load(user_id: str):
        with database.session() as session:
            return session.get(UserAccount, user_id)

    return _load


@pytest.fixture()
def referral_events(database):
    from darood.referral.models import ReferralEvent

    def _events():
        with database.session() as session:
            return session.query(ReferralEvent).order_by(ReferralEvent.id).all()

    return _events


@pytest.fixture()
def api_client(database):
    from fastapi.testclient import TestClient

    from darood.api.main import create_app

    return TestClient(create_app(database=database))


@pytest.fixture()
def auth_headers():
    from darood.auth.local import LocalAuthService

    service = LocalAuthService()

    def _headers(user_id: str) -> dict[str, str]:
        return {"Authorization": f"Bearer {service.create_access_token(user_id)}"}

    return _headers
