"""
PaperDesk Identity Directory Tests
"""

import pytest
from unittest.mock import Mock

from core.errors import InvalidCredentials, UserAlreadyExists
from core.identity import SESSION_KEY, UserDirectory, UserProfile, hash_password, verify_password
from core.models import Holding, TradeSide, Transaction


class TestUserDirectory:
    """Test suite for UserDirectory."""

    @pytest.fixture
    def directory(self, memory_store):
        """Create UserDirectory over the memory store."""
        return UserDirectory(memory_store)

    def test_signup_creates_funded_profile(self, directory):
        """Test signup funds the account and signs the user in."""
        profile = directory.signup("ana@example.com", "s3cret", "ana")

        assert isinstance(profile, UserProfile)
        assert profile.portfolio.cash == 100000.0
        assert profile.portfolio.holdings == {}
        assert profile.portfolio.transactions == []
        assert directory.current_identity() == profile

    def test_profile_carries_no_credential(self, directory):
        """Test the public profile never exposes the password hash."""
        profile = directory.signup("ana@example.com", "s3cret", "ana")

        assert not hasattr(profile, "password_hash")
        assert "s3cret" not in repr(profile)

    def test_stored_record_holds_hash_not_password(self, directory, memory_store):
        """Test only a verifiable hash is stored."""
        directory.signup("ana@example.com", "s3cret", "ana")

        stored = memory_store.get("users:ana@example.com")
        assert stored["password_hash"] != "s3cret"
        assert verify_password("s3cret", stored["password_hash"])

    def test_duplicate_signup_rejected(self, directory):
        """Test signup with a registered email fails case-insensitively."""
        directory.signup("ana@example.com", "pw", "ana")

        with pytest.raises(UserAlreadyExists):
            directory.signup("ANA@example.com", "pw2", "other")

    @pytest.mark.parametrize("email,password,username", [
        ("", "pw", "ana"),
        ("ana@example.com", "pw", "  "),
        ("ana@example.com", "", "ana"),
    ])
    def test_signup_requires_fields(self, directory, email, password, username):
        """Test signup rejects blank fields."""
        with pytest.raises(ValueError):
            directory.signup(email, password, username)

    def test_login_and_wrong_password(self, directory):
        """Test login with bad and good credentials."""
        directory.signup("ana@example.com", "pw", "ana")
        directory.logout()

        with pytest.raises(InvalidCredentials):
            directory.login("ana@example.com", "nope")
        with pytest.raises(InvalidCredentials):
            directory.login("ghost@example.com", "pw")

        profile = directory.login("ana@example.com", "pw")
        assert profile.username == "ana"

    def test_identity_change_handlers(self, directory):
        """Test handlers fire on change until unsubscribed."""
        handler = Mock()
        unsubscribe = directory.on_identity_change(handler)

        profile = directory.signup("ana@example.com", "pw", "ana")
        directory.logout()
        unsubscribe()
        directory.login("ana@example.com", "pw")

        assert [c.args[0] for c in handler.call_args_list] == [profile, None]

    def test_session_restored_from_store(self, directory, memory_store):
        """Test a new directory restores the signed-in user."""
        directory.signup("ana@example.com", "pw", "ana")

        restored = UserDirectory(memory_store)

        assert restored.current_identity().email == "ana@example.com"

    def test_logout_clears_stored_session(self, directory, memory_store):
        """Test logout removes the stored session."""
        directory.signup("ana@example.com", "pw", "ana")
        directory.logout()

        assert memory_store.get(SESSION_KEY) is None
        assert UserDirectory(memory_store).current_identity() is None

    def test_dangling_session_is_cleared(self, memory_store):
        """Test a session for a missing user is discarded."""
        memory_store.set(SESSION_KEY, {"id": "x", "email": "gone@example.com"})

        directory = UserDirectory(memory_store)

        assert directory.current_identity() is None
        assert memory_store.get(SESSION_KEY) is None

    def test_persist_portfolio_round_trips(self, directory, memory_store):
        """Test persisted portfolio survives a reload."""
        profile = directory.signup("ana@example.com", "pw", "ana")
        tx = Transaction(id=1, kind=TradeSide.BUY, symbol="BTC", quantity=1, price=50000.0, total=50000.0)

        directory.persist_portfolio(profile, 50000.0, {"BTC": Holding(1, 50000.0)}, [tx])

        reloaded = UserDirectory(memory_store).current_identity().portfolio
        assert reloaded.cash == 50000.0
        assert reloaded.holdings == {"BTC": Holding(1, 50000.0)}
        assert reloaded.transactions == [tx]
        assert directory.current_identity().portfolio.cash == 50000.0

    def test_persist_for_unknown_identity_fails(self, directory):
        """Test persisting for a mismatched identity is refused."""
        profile = directory.signup("ana@example.com", "pw", "ana")
        impostor = UserProfile(id="other", email=profile.email, username="x", created_at=profile.created_at)

        with pytest.raises(InvalidCredentials):
            directory.persist_portfolio(impostor, 1.0, {}, [])


def test_hash_password_is_salted():
    """Test random salts differ and fixed salts are deterministic."""
    assert hash_password("pw") != hash_password("pw")
    assert hash_password("pw", "00" * 16) == hash_password("pw", "00" * 16)
