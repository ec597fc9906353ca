import sys
from pathlib import Path

import pytest


BACKEND_ROOT = Path(__file__).resolve().parents[1]
if str(BACKEND_ROOT) not in sys.path:
    sys.path.insert(0, str(BACKEND_ROOT))


def _test_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    db_path = tmp_path / "test.db"

    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{db_path.as_posix()}")
    monkeypatch.setenv("UPLOAD_DIR", str(tmp_path / "uploads"))
    monkeypatch.setenv("LOG_LEVEL", "WARNING")
    monkeypatch.setenv("STATE_MAX_AGE_SECONDS", "0")

    # Prevent accidental pollution from any existing env config.
    for name in (
        "APP_ENV",
        "ALLOWED_ORIGINS",
        "FILE_STORAGE_MODE",
        "PUBLIC_BASE_URL",
        "INTERVIEW_METADATA_MODE",
        "ENABLE_SCHEDULER",
        "BOOTSTRAP_TOKEN",
        "RESUME_MAX_BYTES",
    ):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture()
def store(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    _test_env(tmp_path, monkeypatch)

    import db
    from remote_store import SqlTableStore

    db.init_engine(f"sqlite:///{(tmp_path / 'test.db').as_posix()}")
    db.init_schema()
    yield SqlTableStore()
    db.dispose_engine()


@pytest.fixture()
def service(store, tmp_path: Path):
    from actions import HiringService
    from config import Config
    from services.storage import LocalBlobStore

    cfg = Config()
    return HiringService.from_store(store, blob_store=LocalBlobStore(str(tmp_path / "uploads")), cfg=cfg)


@pytest.fixture()
def app_client(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    _test_env(tmp_path, monkeypatch)

    import db
    from app import create_app

    app = create_app()
    app.testing = True

    with app.test_client() as client:
        yield app, client
    db.dispose_engine()


@pytest.fixture()
def login():
    """Create a user with the given role and return (user, auth headers) for it."""
    from app.utils.auth import create_access_token
    from utils import new_uuid

    def _login(app, role: str = "admin", name: str = ""):
        svc = app.extensions["hiring_service"]
        suffix = new_uuid()[:8]
        user = svc.users.create(
            {"name": name or f"{role.title()} {suffix}", "email": f"{role}-{suffix}@example.com", "role": role},
            "test",
        )
        token = create_access_token(app.config["CFG"], user["id"], role)
        return user, {"Authorization": f"Bearer {token}"}

    return _login
