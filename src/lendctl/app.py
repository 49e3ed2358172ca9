"""LendingApp — explicit assembly of the store, dispatcher and services.

Every collaborator is built here and handed to the services that need it.
Nothing lives in module-level state, so two apps (or two tests) never
share a registry or a database handle.

Usage::

    with LendingApp.open(Path("lend.db"), sync=True) as app:
        item = app.inventory.register_item("Dune", 2)
        ...
"""

from __future__ import annotations

import logging
from datetime import timedelta
from pathlib import Path
from types import TracebackType
from typing import TYPE_CHECKING

from lendctl.domain.lifecycle import DEFAULT_LOAN_DAYS, DEFAULT_REMINDER_WINDOW_DAYS
from lendctl.infrastructure.database.engine import init_database
from lendctl.infrastructure.store import DocumentStore
from lendctl.notifications.dispatcher import NotificationDispatcher
from lendctl.notifications.handlers import NotificationHandlers, register_default_handlers
from lendctl.services.directory import UserDirectory
from lendctl.services.inventory import InventoryLedger
from lendctl.services.lending import BorrowLifecycleManager
from lendctl.services.notifications import NotificationService
from lendctl.services.scanner import DEFAULT_SCAN_INTERVAL, DueDateScanner
from lendctl.services.watchlist import WatchlistManager

if TYPE_CHECKING:
    from sqlalchemy.engine import Engine

    from lendctl.config.settings import LendSettings

logger = logging.getLogger(__name__)


class LendingApp:
    """Owns one store, one dispatcher and the services built on them."""

    def __init__(
        self,
        engine: Engine,
        *,
        sync: bool = False,
        loan_days: int = DEFAULT_LOAN_DAYS,
        reminder_window_days: int = DEFAULT_REMINDER_WINDOW_DAYS,
        scan_interval: timedelta = DEFAULT_SCAN_INTERVAL,
        max_workers: int = 4,
        max_retries: int = 3,
        load_plugins: bool = False,
    ) -> None:
        self.store = DocumentStore(engine)
        self.dispatcher = NotificationDispatcher(
            engine,
            sync=sync,
            max_retries=max_retries,
            max_workers=max_workers,
        )

        self.users = UserDirectory(self.store)
        self.inventory = InventoryLedger(self.store)
        self.notifications = NotificationService(self.store)
        self.watchlist = WatchlistManager(self.store, self.dispatcher)
        self.lending = BorrowLifecycleManager(
            self.store,
            self.dispatcher,
            watchlist=self.watchlist,
            loan_days=loan_days,
        )
        self.scanner = DueDateScanner(
            self.store,
            self.dispatcher,
            self.lending,
            reminder_window_days=reminder_window_days,
            interval=scan_interval,
        )

        self.handlers: NotificationHandlers = register_default_handlers(
            self.dispatcher, self.notifications
        )
        if load_plugins:
            self.dispatcher.registry.load_entrypoints()

    @classmethod
    def open(cls, db_path: Path, **kwargs: object) -> LendingApp:
        """Create (if needed) the database at *db_path* and assemble an app on it."""
        engine = init_database(db_path)
        logger.debug("Opened database %s", db_path)
        return cls(engine, **kwargs)  # type: ignore[arg-type]

    @classmethod
    def from_settings(cls, settings: LendSettings) -> LendingApp:
        return cls.open(
            settings.db_path,
            sync=settings.sync,
            loan_days=settings.lending.loan_days,
            reminder_window_days=settings.scanner.reminder_window_days,
            scan_interval=settings.scan_interval,
            max_workers=settings.dispatch.max_workers,
            max_retries=settings.dispatch.max_retries,
            load_plugins=True,
        )

    def close(self) -> None:
        """Stop the scanner, drain the worker pool and release the database."""
        self.scanner.stop()
        self.dispatcher.shutdown()
        self.store.close()

    def __enter__(self) -> LendingApp:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()
