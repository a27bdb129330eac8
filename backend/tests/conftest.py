"""Pytest configuration and fixtures"""
import os

# Must be set before the application is imported
os.environ["DATABASE_URL"] = "sqlite:///./test.db"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["METRICS_ENABLED"] = "false"
os.environ["SECRET"] = "test-secret"

from typing import Callable, Dict, Generator, List, Optional  # noqa: E402

import fakeredis  # noqa: E402
import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy.orm import Session  # noqa: E402

from vpdb.database import Base, SessionLocal, engine  # noqa: E402
from vpdb.main import app  # noqa: E402
from vpdb.models.game import Game  # noqa: E402
from vpdb.models.user import User  # noqa: E402
from vpdb.utils.auth import generate_id, hash_password  # noqa: E402
from vpdb.utils.cache import ApiCache  # noqa: E402
from vpdb.utils.jwt_utils import create_api_token  # noqa: E402

PASSWORD = "password123"


@pytest.fixture(scope="function")
def db() -> Generator[Session, None, None]:
    """Create a fresh database for each test"""
    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def redis_client() -> fakeredis.FakeRedis:
    return fakeredis.FakeRedis(decode_responses=True)


@pytest.fixture(scope="function")
def client(db: Session, redis_client: fakeredis.FakeRedis) -> Generator[TestClient, None, None]:
    """Test client talking to the test database and an in-memory Redis"""
    config = app.state.api_cache.config
    app.state.redis = redis_client
    app.state.api_cache = ApiCache(redis_client, config)
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def create_user(db: Session) -> Callable[..., User]:
    """Factory for users with a password of ``PASSWORD``"""

    def _create(
        name: str,
        roles: Optional[List[str]] = None,
        plan: str = "free",
        password: Optional[str] = PASSWORD,
        is_active: bool = True,
    ) -> User:
        user = User(
            id=generate_id(),
            name=name.capitalize(),
            username=name,
            email=f"{name}@vpdb.test",
            password_hash=hash_password(password) if password else None,
            roles=roles or ["member"],
            plan=plan,
            is_active=is_active,
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    return _create


@pytest.fixture
def member(create_user) -> User:
    return create_user("member")


@pytest.fixture
def subscriber(create_user) -> User:
    return create_user("subscriber", plan="subscribed")


@pytest.fixture
def contributor(create_user) -> User:
    return create_user("contributor", roles=["contributor"])


@pytest.fixture
def moderator(create_user) -> User:
    return create_user("moderator", roles=["moderator"])


@pytest.fixture
def admin(create_user) -> User:
    return create_user("admin", roles=["admin"])


@pytest.fixture
def root(create_user) -> User:
    return create_user("root", roles=["root"], plan="unlimited")


def bearer(token: str) -> Dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def headers() -> Callable[[User], Dict[str, str]]:
    """Short term JWT headers for a user"""

    def _headers(user: User, scopes: Optional[List[str]] = None) -> Dict[str, str]:
        return bearer(create_api_token(user.id, scopes=scopes))

    return _headers


@pytest.fixture
def game(db: Session) -> Game:
    """A game without releases"""
    game = Game(id="tz", title="The Twilight Zone", year=1993, manufacturer="Midway", game_type="ss")
    db.add(game)
    db.commit()
    db.refresh(game)
    return game
