"""
PaperDesk Identity Directory

Reference implementation of the identity collaborator: signup, login,
logout, the current identity, change notifications and portfolio
persistence over a ProfileStore.

The stored ``UserRecord`` carries the credential; the session-visible
``UserProfile`` is a separate type that never does.
"""

import hashlib
import hmac
import os
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional

from core.errors import InvalidCredentials, UserAlreadyExists
from core.models import Holding, PortfolioState, Transaction, parse_timestamp, utc_now
from data.storage import ProfileStore
from utils.logger import create_audit_log, identity_logger as logger

USER_KEY_PREFIX = "users"
SESSION_KEY = "session:current"
PBKDF2_ITERATIONS = 100_000

IdentityHandler = Callable[[Optional["UserProfile"]], None]


def hash_password(password: str, salt: Optional[str] = None) -> str:
    """Return ``salt$hexdigest`` for ``password``."""
    salt = salt or os.urandom(16).hex()
    digest = hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), bytes.fromhex(salt), PBKDF2_ITERATIONS)
    return f"{salt}${digest.hex()}"


def verify_password(password: str, stored: str) -> bool:
    salt, _, _ = stored.partition("$")
    return hmac.compare_digest(hash_password(password, salt), stored)


@dataclass(frozen=True)
class UserProfile:
    """Public view of a user, safe to hand to the session and the UI."""
    id: str
    email: str
    username: str
    created_at: datetime
    portfolio: PortfolioState = field(default_factory=PortfolioState)


@dataclass
class UserRecord:
    """Stored user, including the password hash."""
    id: str
    email: str
    username: str
    password_hash: str
    created_at: datetime = field(default_factory=utc_now)
    portfolio: PortfolioState = field(default_factory=PortfolioState)

    def to_profile(self) -> UserProfile:
        return UserProfile(
            id=self.id,
            email=self.email,
            username=self.username,
            created_at=self.created_at,
            portfolio=self.portfolio.copy(),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "email": self.email,
            "username": self.username,
            "password_hash": self.password_hash,
            "created_at": self.created_at.isoformat(),
            **self.portfolio.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "UserRecord":
        return cls(
            id=str(data["id"]),
            email=data["email"],
            username=data["username"],
            password_hash=data["password_hash"],
            created_at=parse_timestamp(data["created_at"]),
            portfolio=PortfolioState.from_dict(data),
        )


class UserDirectory:
    """
    Identity collaborator backed by a key-value store.

    Restores the previously signed-in user from the store on construction.
    """

    def __init__(self, store: ProfileStore, initial_cash: float = 100000.0):
        self.store = store
        self.initial_cash = initial_cash
        self._current: Optional[UserProfile] = None
        self._handlers: List[IdentityHandler] = []
        self._restore_session()

    @staticmethod
    def _user_key(email: str) -> str:
        return f"{USER_KEY_PREFIX}:{email.strip().lower()}"

    def _load_record(self, email: str) -> Optional[UserRecord]:
        data = self.store.get(self._user_key(email))
        return UserRecord.from_dict(data) if data else None

    def _save_record(self, record: UserRecord) -> None:
        self.store.set(self._user_key(record.email), record.to_dict())

    def _restore_session(self) -> None:
        session = self.store.get(SESSION_KEY)
        if not session:
            return
        record = self._load_record(session.get("email", ""))
        if record is None:
            logger.warning("Stored session refers to an unknown user; clearing it")
            self.store.delete(SESSION_KEY)
            return
        self._current = record.to_profile()
        logger.info(f"Restored session for {record.username}")

    def current_identity(self) -> Optional[UserProfile]:
        return self._current

    def on_identity_change(self, handler: IdentityHandler) -> Callable[[], None]:
        """Register ``handler``; returns a function that unregisters it."""
        self._handlers.append(handler)

        def unsubscribe() -> None:
            if handler in self._handlers:
                self._handlers.remove(handler)

        return unsubscribe

    def _set_current(self, profile: Optional[UserProfile]) -> None:
        self._current = profile
        if profile is None:
            self.store.delete(SESSION_KEY)
        else:
            self.store.set(SESSION_KEY, {"id": profile.id, "email": profile.email})
        for handler in list(self._handlers):
            handler(profile)

    def signup(self, email: str, password: str, username: str) -> UserProfile:
        email = (email or "").strip()
        username = (username or "").strip()
        if not email:
            raise ValueError("Email is required")
        if not username:
            raise ValueError("Username is required")
        if not password:
            raise ValueError("Password is required")
        if self._load_record(email) is not None:
            raise UserAlreadyExists("User already exists")

        record = UserRecord(
            id=uuid.uuid4().hex,
            email=email,
            username=username,
            password_hash=hash_password(password),
            portfolio=PortfolioState(cash=self.initial_cash),
        )
        self._save_record(record)
        create_audit_log("signup", "identity", "success", user=username)

        profile = record.to_profile()
        self._set_current(profile)
        return profile

    def login(self, email: str, password: str) -> UserProfile:
        record = self._load_record(email or "")
        if record is None or not verify_password(password or "", record.password_hash):
            create_audit_log("login", "identity", "failure", user=email)
            raise InvalidCredentials("Invalid email or password")

        create_audit_log("login", "identity", "success", user=record.username)
        profile = record.to_profile()
        self._set_current(profile)
        return profile

    def logout(self) -> None:
        if self._current is None:
            return
        create_audit_log("logout", "identity", "success", user=self._current.username)
        self._set_current(None)

    def persist_portfolio(
        self,
        identity: UserProfile,
        cash: float,
        holdings: Mapping[str, Holding],
        transactions: Iterable[Transaction],
    ) -> None:
        """
        Write the full portfolio into the identity's stored record.

        Raises:
            StorageError: The store failed; nothing is retried here
            InvalidCredentials: The identity no longer exists
        """
        record = self._load_record(identity.email)
        if record is None or record.id != identity.id:
            raise InvalidCredentials(f"Unknown identity {identity.email}")

        record.portfolio = PortfolioState(
            cash=cash,
            holdings={s: Holding(h.quantity, h.average_cost) for s, h in holdings.items()},
            transactions=list(transactions),
        )
        self._save_record(record)

        if self._current is not None and self._current.id == identity.id:
            self._current = record.to_profile()
