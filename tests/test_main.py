"""
Smoke test for application bootstrap.
"""
import datetime as dt

from giftsync.config import Settings
from giftsync.main import bootstrap
from giftsync.store import SqlStore


class TestBootstrap:
    def test_creates_data_dir_and_schema(self, tmp_path):
        data_dir = tmp_path / "data"
        config = Settings(DATA_DIR=str(data_dir), DATABASE_URL=f"sqlite:///{tmp_path / 'boot.db'}")
        factory = bootstrap(config)
        assert data_dir.is_dir()

        session = factory()
        try:
            tx = SqlStore(session).create_transaction(date=dt.date(2024, 1, 1), amount=5)
            assert tx.id is not None
        finally:
            session.close()
