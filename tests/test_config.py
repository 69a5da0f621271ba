from inoconnect.core.config import Settings
from inoconnect.core.errors import CapacityExceeded, InoConnectError, NotFound
from inoconnect.core.security import create_access_token, verify_token


def test_database_url_is_assembled_from_parts():
    settings = Settings(
        DATABASE_URL=None, DB_USER="app", DB_PASSWORD="secret", DB_HOST="db", DB_PORT="5433", DB_NAME="ino",
    )
    assert settings.DATABASE_URL == "postgresql+asyncpg://app:secret@db:5433/ino"


def test_heroku_style_url_is_normalized():
    settings = Settings(DATABASE_URL="postgres://app:secret@db:5432/ino")
    assert settings.DATABASE_URL == "postgresql+asyncpg://app:secret@db:5432/ino"


def test_cors_origins_parsing():
    assert Settings(CORS_ORIGINS="*").CORS_ORIGINS == ["*"]
    assert Settings(CORS_ORIGINS="http://a.test, http://b.test").CORS_ORIGINS == ["http://a.test", "http://b.test"]


def test_token_round_trip():
    assert verify_token(create_access_token("u1")) == "u1"
    assert verify_token("garbage") is None
    assert verify_token(None) is None


def test_errors_render_status_and_code():
    error = NotFound("Project p1 not found")
    assert isinstance(error, InoConnectError)
    assert error.status_code == 404
    assert error.to_dict() == {"detail": "Project p1 not found", "code": "not_found"}
    assert CapacityExceeded().to_dict()["code"] == "capacity_exceeded"
