"""Shared state for CLI commands."""

from typing import Optional

import click

from flowdesk.config.settings import FlowDeskConfig
from flowdesk.db.store import PersistenceStore
from flowdesk.services.alert_service import AlertService
from flowdesk.services.billing_engine import BillingEngine


class AppContext:
    """Configuration plus lazily built store and services for one invocation."""

    def __init__(self, config: FlowDeskConfig, debug: bool = False):
        self.config = config
        self.debug = debug
        self._store: Optional[PersistenceStore] = None

    @property
    def store(self) -> PersistenceStore:
        if self._store is None:
            self._store = PersistenceStore.from_config(self.config)
        return self._store

    def billing_engine(self) -> BillingEngine:
        return BillingEngine.from_config(self.store, self.config)

    def alert_service(self) -> AlertService:
        return AlertService.from_config(self.store, self.config)

    def close(self) -> None:
        if self._store is not None:
            self._store.dispose()
            self._store = None


pass_app = click.make_pass_decorator(AppContext)
