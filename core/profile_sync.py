"""
PaperDesk Profile Sync

Bridges the ledger to the identity collaborator: reloads the ledger when
the identity changes and writes the full portfolio after every mutation.
"""

from typing import Callable, List, Optional, Protocol

from core.models import Holding, PortfolioState, Transaction
from core.portfolio import PortfolioLedger
from utils.logger import sync_logger as logger

ErrorHandler = Callable[[Exception], None]


class IdentityProvider(Protocol):
    """What ProfileSync needs from the identity collaborator."""

    def current_identity(self): ...

    def on_identity_change(self, handler) -> Callable[[], None]: ...

    def persist_portfolio(self, identity, cash: float, holdings: dict, transactions: list) -> None: ...


class ProfileSync:
    """
    Keeps one ledger in step with the current identity.

    Writes are synchronous and carry a monotonically increasing version, so
    a later state can never be overtaken by an earlier one. Failed writes
    are not retried: they are logged, kept in ``last_error`` and passed to
    the registered error handlers, while the ledger stays authoritative.
    """

    def __init__(self, identity: IdentityProvider, ledger: PortfolioLedger):
        self.identity = identity
        self.ledger = ledger
        self.version = 0
        self.persisted_version = 0
        self.last_error: Optional[Exception] = None
        self._error_handlers: List[ErrorHandler] = []
        self._unsubscribe: Optional[Callable[[], None]] = None

    @property
    def attached(self) -> bool:
        return self._unsubscribe is not None

    def on_error(self, handler: ErrorHandler) -> None:
        self._error_handlers.append(handler)

    def attach(self) -> None:
        if self.attached:
            return
        self._unsubscribe = self.identity.on_identity_change(self._handle_identity_change)
        self.ledger.add_listener(self._handle_mutation)
        self._handle_identity_change(self.identity.current_identity())

    def detach(self) -> None:
        if not self.attached:
            return
        self._unsubscribe()
        self._unsubscribe = None
        self.ledger.remove_listener(self._handle_mutation)

    def _handle_identity_change(self, profile) -> None:
        if profile is None:
            self.ledger.clear()
            logger.info("No identity; ledger cleared")
            return
        self.ledger.load(profile.portfolio)
        logger.info(f"Ledger loaded for {profile.username}", user_id=profile.id)

    def _handle_mutation(self, state: PortfolioState) -> None:
        self.version += 1
        self.persist(state, self.version)

    def persist(self, state: PortfolioState, version: int) -> bool:
        """Write ``state`` for the current identity. Returns False on failure."""
        if version <= self.persisted_version:
            logger.warning(f"Skipping stale write v{version} (persisted v{self.persisted_version})")
            return False

        profile = self.identity.current_identity()
        if profile is None:
            logger.debug("Mutation without identity; nothing persisted")
            return False

        holdings = {s: Holding(h.quantity, h.average_cost) for s, h in state.holdings.items()}
        transactions: List[Transaction] = list(state.transactions)
        try:
            self.identity.persist_portfolio(profile, state.cash, holdings, transactions)
        except Exception as e:
            self.last_error = e
            logger.error(f"Failed to persist portfolio v{version}: {e}", user_id=profile.id)
            for handler in list(self._error_handlers):
                handler(e)
            return False

        self.persisted_version = version
        self.last_error = None
        logger.debug(f"Persisted portfolio v{version}", user_id=profile.id)
        return True
