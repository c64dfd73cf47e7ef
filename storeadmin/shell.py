# storeadmin/shell.py

"""
The top of the tree: owns the shared state, the refresh key and one
mounted instance of every named view. Routes only talk to the shell.
"""

import asyncio
import logging
from typing import Dict, Optional

from storeadmin import aggregates
from storeadmin.auth import AdminAuth
from storeadmin.config import Config
from storeadmin.date_range import DateRange
from storeadmin.errors import GatewayError
from storeadmin.gateway import DataGateway
from storeadmin.realtime import RealtimeChannel
from storeadmin.state import LocalStateFile, Observable, SharedState
from storeadmin.storage import LocalBucket
from storeadmin.utils.db import create_tables, make_engine
from storeadmin.views import (
    CategoriesView,
    CustomersView,
    DashboardView,
    OrdersView,
    ProductsView,
    SettingsView,
    View,
    ViewContext,
)

logger = logging.getLogger(__name__)

# Sidebar order
VIEW_CLASSES = (DashboardView, OrdersView, ProductsView, CategoriesView, CustomersView, SettingsView)


class AppShell:
    def __init__(
        self,
        gateway: DataGateway,
        state: SharedState,
        auth: AdminAuth,
        channel: RealtimeChannel,
        poll_interval: float = 10.0,
    ):
        self.gateway = gateway
        self.state = state
        self.auth = auth
        self.channel = channel
        self.refresh_key: Observable[int] = Observable("refreshKey", 0)
        ctx = ViewContext(gateway, auth, state, channel, self.refresh_key, poll_interval)
        self.views: Dict[str, View] = {cls.name: cls(ctx) for cls in VIEW_CLASSES}
        self.badges: Dict[str, int] = {}
        self._badge_task: Optional[asyncio.Task] = None
        self._disconnect = []

    @classmethod
    def from_config(cls, config: Config) -> "AppShell":
        engine = make_engine(config.database_url)
        create_tables(engine)
        channel = RealtimeChannel()
        storage = LocalBucket(config.storage_dir, config.storage_public_url, config.storage_bucket)
        gateway = DataGateway(engine, storage, changes=channel)
        state = SharedState(LocalStateFile(config.state_file))
        auth = AdminAuth(state, config.admin_email, config.admin_password)
        return cls(gateway, state, auth, channel, poll_interval=config.poll_interval)

    def view(self, name: str) -> View:
        return self.views[name]

    async def start(self) -> None:
        self._disconnect.append(self.state.authenticated.connect(self._on_authenticated))
        self._disconnect.append(self.state.signed_out.connect(self._on_signed_out))
        for view in self.views.values():
            await view.mount()
        logger.info("Mounted views: %s", ", ".join(self.views))

    async def stop(self) -> None:
        for disconnect in self._disconnect:
            disconnect()
        self._disconnect.clear()
        if self._badge_task is not None:
            self._badge_task.cancel()
            await asyncio.gather(self._badge_task, return_exceptions=True)
        for view in self.views.values():
            await view.unmount()

    async def settle(self) -> None:
        """Wait for every reload (and badge refresh) currently in flight"""
        await asyncio.gather(*(view.coordinator.drain() for view in self.views.values()))
        if self._badge_task is not None:
            await asyncio.gather(self._badge_task, return_exceptions=True)

    def bump(self) -> int:
        key = self.refresh_key.get() + 1
        self.refresh_key.set(key)
        return key

    # --- session ---

    async def sign_in(self, email: str, password: str) -> str:
        user = self.auth.sign_in(email, password)
        self.bump()
        await self.settle()
        return user

    async def sign_out(self) -> None:
        self.auth.sign_out()

    def _on_authenticated(self, **kwargs) -> None:
        # One-shot count refresh for the sidebar badges
        self._badge_task = asyncio.get_running_loop().create_task(self.refresh_badges())

    def _on_signed_out(self, **kwargs) -> None:
        self.badges = {}

    async def refresh_badges(self) -> Dict[str, int]:
        def count():
            return {
                "orders": len(self.gateway.list_orders()),
                "products": len(self.gateway.list_products()),
                "categories": len(self.gateway.list_categories()),
                "customers": len(aggregates.derive_customers(self.gateway.list_order_totals())),
            }

        try:
            self.badges = await asyncio.to_thread(count)
        except GatewayError as e:
            logger.warning("Badge counts unavailable: %s", e)
        return self.badges

    # --- shared settings ---

    async def set_live_updates(self, enabled: bool) -> bool:
        self.state.live_updates.set(enabled)
        logger.info("Live updates %s", "enabled" if enabled else "disabled")
        return self.state.live_updates.get()

    async def set_date_range(self, selected: DateRange) -> DateRange:
        self.state.date_range.set(selected)
        await self.settle()
        return self.state.date_range.get()

    def routes(self) -> list:
        return [
            {"name": name, "title": name.capitalize(), "url": f"/{name}", "badge": self.badges.get(name)}
            for name in self.views
        ]
