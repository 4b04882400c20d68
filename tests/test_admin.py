"""
Unit tests for option settings and the admin gate.
"""
import pytest

from giftsync.admin import AdminGate, ExpiringStore
from giftsync.config import Settings
from giftsync.exceptions import AuthenticationError, LockedOutError
from giftsync.options import ADMIN_PASS, EMAIL_PASS, MASK, OptionSettings


class _Clock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


@pytest.fixture()
def clock():
    return _Clock()


@pytest.fixture()
def options(store, codec):
    return OptionSettings(store, codec)


@pytest.fixture()
def org_id(store):
    return store.create_organization(name="Helping Hands").id


@pytest.fixture()
def gate(options, clock):
    config = Settings(
        ADMIN_DEFAULT_PASSWORD="letmein",
        ADMIN_MAX_LOGIN_ATTEMPTS=3,
        ADMIN_LOCKOUT_MINUTES=15,
        ADMIN_SESSION_TIMEOUT_MINUTES=30,
    )
    return AdminGate(
        options,
        sessions=ExpiringStore(30 * 60, clock=clock),
        attempts=ExpiringStore(15 * 60, clock=clock),
        config=config,
    )


# =====================================================================
# Options
# =====================================================================
class TestOptionSettings:
    def test_plain_option_upsert(self, options, org_id):
        options.set(org_id, "EMAIL_HOST", "smtp.example.org")
        options.set(org_id, "EMAIL_HOST", "mail.example.org")
        assert options.get(org_id, "EMAIL_HOST") == "mail.example.org"
        assert options.get(None, "EMAIL_HOST") is None

    def test_secret_encrypted_at_rest(self, options, store, codec):
        options.set(None, EMAIL_PASS, "s3cret")
        raw = store.get_option(None, EMAIL_PASS).value
        assert raw != "s3cret"
        assert codec.decrypt(raw) == "s3cret"
        assert options.get(None, EMAIL_PASS) == "s3cret"
        assert options.all(None) == {EMAIL_PASS: MASK}

    def test_delete(self, options):
        options.set(None, "EMAIL_FROM", "a@b.c")
        assert options.delete(None, "EMAIL_FROM")
        assert options.get(None, "EMAIL_FROM", "fallback") == "fallback"

    def test_email_settings(self, options, org_id):
        options.set(org_id, "EMAIL_USE_CUSTOM", "true")
        options.set(org_id, "EMAIL_HOST", "smtp.example.org")
        options.set(org_id, "EMAIL_PORT", "587")
        options.set(org_id, EMAIL_PASS, "pw")
        email = options.email_settings(org_id)
        assert email.use_custom
        assert email.port == 587
        assert email.has_password
        assert not email.secure


# =====================================================================
# Expiring store
# =====================================================================
class TestExpiringStore:
    def test_expiry_and_sweep(self, clock):
        state = ExpiringStore(10, clock=clock)
        state.set("a", 1)
        state.set("b", 2)
        clock.now = 5
        assert state.touch("a")
        clock.now = 12
        assert state.get("a") == 1
        assert state.get("b") is None
        clock.now = 20
        assert state.sweep() == 1
        assert len(state) == 0

    def test_update_keeps_expiry(self, clock):
        state = ExpiringStore(10, clock=clock)
        state.set("k", 1)
        clock.now = 8
        state.update("k", 2)
        clock.now = 10
        assert state.get("k") is None


# =====================================================================
# Admin gate
# =====================================================================
class TestAdminGate:
    def test_injected_stores_are_kept(self, options):
        sessions = ExpiringStore(60)
        attempts = ExpiringStore(60)
        gate = AdminGate(options, sessions=sessions, attempts=attempts, config=Settings())
        assert gate.sessions is sessions
        assert gate.attempts is attempts

    def test_default_password_seeded_encrypted(self, gate, store, codec):
        gate.ensure_password()
        raw = store.get_option(None, ADMIN_PASS).value
        assert codec.decrypt(raw) == "letmein"

    def test_legacy_plaintext_migrated(self, gate, store, codec):
        store.set_option(None, ADMIN_PASS, "legacy")
        assert gate.verify_password("legacy")
        assert codec.is_encrypted(store.get_option(None, ADMIN_PASS).value)

    def test_login_session_idle_timeout(self, gate, clock):
        token = gate.login("10.0.0.1", "letmein")
        clock.now = 29 * 60
        assert gate.is_authenticated(token)
        clock.now = 29 * 60 + 29 * 60
        assert gate.is_authenticated(token)
        clock.now += 31 * 60
        assert not gate.is_authenticated(token)

    def test_logout(self, gate):
        token = gate.login("10.0.0.1", "letmein")
        gate.logout(token)
        assert not gate.is_authenticated(token)

    def test_lockout(self, gate, clock):
        for _ in range(3):
            with pytest.raises(AuthenticationError):
                gate.login("10.0.0.2", "wrong")
        with pytest.raises(LockedOutError):
            gate.login("10.0.0.2", "letmein")
        gate.login("10.0.0.3", "letmein")

        clock.now = 15 * 60
        assert gate.login("10.0.0.2", "letmein")

    def test_change_password(self, gate):
        with pytest.raises(AuthenticationError):
            gate.change_password("wrong", "new-pass")
        gate.change_password("letmein", "new-pass")
        assert gate.verify_password("new-pass")
        assert not gate.verify_password("letmein")
