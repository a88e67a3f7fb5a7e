"""
PaperDesk Logger

Centralized Loguru-based logging with structured output, context binding
and optional file rotation.
"""

import sys
import json
from pathlib import Path
from typing import Optional, Dict, Any
from datetime import datetime, timezone

from loguru import logger

from config.settings import get_settings


def setup_logging(log_level: Optional[str] = None) -> None:
    """
    Configure Loguru logging with console formatting and file rotation.

    Args:
        log_level: Override default log level from settings
    """
    settings = get_settings()

    # Remove default handler
    logger.remove()

    level = log_level or settings.log_level.value

    if settings.log_json_format:
        def json_formatter(record):
            json_record = {
                "timestamp": record["time"].isoformat(),
                "level": record["level"].name,
                "logger": record["name"],
                "function": record["function"],
                "line": record["line"],
                "message": record["message"],
            }
            if record["extra"]:
                json_record.update(record["extra"])
            # Loguru formats the returned string, so braces must be escaped
            return json.dumps(json_record, default=str).replace("{", "{{").replace("}", "}}") + "\n"

        logger.add(
            sys.stderr,
            format=json_formatter,
            level=level,
            backtrace=True,
            diagnose=not settings.is_production()
        )
    else:
        console_format = (
            "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
            "<level>{level: <8}</level> | "
            "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> | "
            "<level>{message}</level>"
        )

        logger.add(
            sys.stderr,
            format=console_format,
            level=level,
            colorize=True,
            backtrace=True,
            diagnose=not settings.is_production()
        )

    if settings.log_to_file:
        log_path = Path(settings.log_file_path)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        file_format = (
            "{time:YYYY-MM-DD HH:mm:ss.SSS} | "
            "{level: <8} | "
            "{name}:{function}:{line} | "
            "{extra} | "
            "{message}"
        )

        logger.add(
            str(log_path),
            format=file_format,
            level=level,
            rotation=settings.log_rotation_size,
            retention=f"{settings.log_retention_days} days",
            compression=settings.log_compression,
            backtrace=True,
            diagnose=not settings.is_production(),
            enqueue=True
        )

    logger.info(f"{settings.app_name} logging initialized - Level: {level}")
    logger.info(f"Environment: {settings.environment.value}")

    if settings.debug:
        logger.debug("Debug mode enabled")


class ContextLogger:
    """
    Context-aware logger for ledger and market data operations.

    Binds a component name to every record and offers helpers that add
    event-type context for rejected trades, feed data and system lifecycle.
    """

    def __init__(self, component: str):
        self.component = component
        self.logger = logger.bind(component=component)

    def rejected(self, message: str, symbol: str = None, **kwargs):
        """Log a rejected trade intent."""
        context = {"event_type": "trade_rejected", "symbol": symbol, **kwargs}
        self.logger.bind(**context).warning(f"REJECTED: {message}")

    def data(self, message: str, data_type: str = None, **kwargs):
        """Log data processing messages."""
        context = {"event_type": "data", "data_type": data_type, **kwargs}
        self.logger.bind(**context).debug(f"DATA: {message}")

    def system(self, message: str, level: str = "INFO", **kwargs):
        """Log system-related messages with system context."""
        context = {"event_type": "system", "system_level": level, **kwargs}
        bound = self.logger.bind(**context)

        if level.upper() == "CRITICAL":
            bound.critical(f"SYSTEM: {message}")
        elif level.upper() == "ERROR":
            bound.error(f"SYSTEM: {message}")
        elif level.upper() == "WARNING":
            bound.warning(f"SYSTEM: {message}")
        else:
            bound.info(f"SYSTEM: {message}")

    def debug(self, message: str, **kwargs):
        """Log debug messages with context."""
        if kwargs:
            self.logger.bind(**kwargs).debug(message)
        else:
            self.logger.debug(message)

    def info(self, message: str, **kwargs):
        """Log info messages with context."""
        if kwargs:
            self.logger.bind(**kwargs).info(message)
        else:
            self.logger.info(message)

    def warning(self, message: str, **kwargs):
        """Log warning messages with context."""
        if kwargs:
            self.logger.bind(**kwargs).warning(message)
        else:
            self.logger.warning(message)

    def error(self, message: str, **kwargs):
        """Log error messages with context."""
        if kwargs:
            self.logger.bind(**kwargs).error(message)
        else:
            self.logger.error(message)

    def exception(self, message: str, **kwargs):
        """Log exception with traceback."""
        if kwargs:
            self.logger.bind(**kwargs).exception(message)
        else:
            self.logger.exception(message)


def log_trade(
    symbol: str,
    side: str,
    quantity: float,
    price: float,
    transaction_id: Any = None,
    cash_after: float = None,
    **kwargs
) -> None:
    """
    Log trade execution with structured data.

    Args:
        symbol: Trading symbol
        side: BUY or SELL
        quantity: Units traded
        price: Execution price
        transaction_id: Ledger transaction identifier
        cash_after: Cash balance once the trade is applied
        **kwargs: Additional context
    """
    context = {
        "event_type": "trade_execution",
        "symbol": symbol,
        "side": side,
        "quantity": quantity,
        "price": price,
        "value": quantity * price,
        "transaction_id": transaction_id,
        "cash_after": cash_after,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        **kwargs
    }

    logger.bind(**context).info(
        f"TRADE EXECUTED: {side} {quantity:,.8g} {symbol} @ ${price:,.2f} "
        f"(Value: ${quantity * price:,.2f})"
    )


def create_audit_log(
    action: str,
    component: str,
    result: str,
    details: Dict[str, Any] = None,
    user: str = None
) -> None:
    """
    Create audit log entry for account-level actions.

    Args:
        action: Action performed
        component: Component affected
        result: Action result
        details: Additional details
        user: User performing action
    """
    audit_context = {
        "event_type": "audit",
        "action": action,
        "component": component,
        "result": result,
        "user": user or "system",
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }

    if details:
        audit_context["details"] = details

    logger.bind(**audit_context).info(f"AUDIT: {user or 'SYSTEM'} {action} {component} - {result}")


# Pre-configured component loggers
ledger_logger = ContextLogger("ledger")
feed_logger = ContextLogger("feed")
sync_logger = ContextLogger("sync")
identity_logger = ContextLogger("identity")
storage_logger = ContextLogger("storage")
session_logger = ContextLogger("session")
