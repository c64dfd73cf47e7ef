# storeadmin/views.py

"""
Page controllers for the dashboard.

A view is mounted once by the shell and keeps a read-through copy of the
rows its page shows. Its reload() is the only way data gets in, and the
LiveRefreshCoordinator decides when it runs. Gateway calls block, so they
run in worker threads; the event loop is never held up by the backend.

Render states:
    loading          a fetch is outstanding
    ready            data is current
    error            the last fetch failed, previous data was dropped
    unauthenticated  nobody is signed in ("Please log in")
"""

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import ValidationError

from storeadmin import aggregates, workflow
from storeadmin.auth import AdminAuth
from storeadmin.date_range import window
from storeadmin.errors import GatewayError, StoreAdminError, StorageError, UploadFailed
from storeadmin.gateway import DataGateway
from storeadmin.models import AppSettings, CategoryIn, ImageUpload, OrderStatus, ProductIn
from storeadmin.realtime import RealtimeChannel
from storeadmin.refresh import DEFAULT_POLL_INTERVAL, LiveRefreshCoordinator
from storeadmin.state import Observable, SharedState
from storeadmin.storage import new_object_name

logger = logging.getLogger(__name__)


@dataclass
class ViewContext:
    gateway: DataGateway
    auth: AdminAuth
    state: SharedState
    channel: RealtimeChannel
    refresh_key: Observable[int]
    poll_interval: float = DEFAULT_POLL_INTERVAL


class View:
    name = "view"
    error_message = "Failed to load data"

    def __init__(self, ctx: ViewContext):
        self.ctx = ctx
        self.gateway = ctx.gateway
        self.status = "loading"
        self.error: Optional[str] = None
        self.loaded_at: Optional[datetime] = None
        self.mounted = False
        self.coordinator = LiveRefreshCoordinator(
            self.name,
            self.reload,
            ctx.state,
            ctx.refresh_key,
            ctx.channel,
            interval=ctx.poll_interval,
        )
        self._disconnect = []

    # --- lifecycle ---

    async def mount(self) -> None:
        self.mounted = True
        self._disconnect.append(self.ctx.state.signed_out.connect(self._on_signed_out))
        self._disconnect.append(self.ctx.state.orders_mutated.connect(self._on_orders_mutated))
        self.coordinator.start()
        self.coordinator.trigger("mount")

    async def unmount(self) -> None:
        self.mounted = False
        for disconnect in self._disconnect:
            disconnect()
        self._disconnect.clear()
        await self.coordinator.stop()

    def _on_signed_out(self, **kwargs) -> None:
        self.clear()
        self.error = None
        self.status = "unauthenticated"

    def _on_orders_mutated(self, source: Optional[str] = None, **kwargs) -> None:
        if source != self.name:
            self.coordinator.trigger("orders-mutated")

    # --- data ---

    async def reload(self) -> None:
        if not self.ctx.auth.is_signed_in:
            self.clear()
            self.error = None
            self.status = "unauthenticated"
            return

        self.status = "loading"
        try:
            data = await asyncio.to_thread(self.fetch)
        except StoreAdminError as e:
            logger.warning("%s: %s (%s)", self.name, self.error_message, e)
            # Signed out meanwhile: the view already shows "Please log in"
            if self.mounted and self.ctx.auth.is_signed_in:
                self.clear()
                self.error = self.error_message
                self.status = "error"
            return

        # Unmounted or signed out while the fetch was out
        if not self.mounted or not self.ctx.auth.is_signed_in:
            return
        self.apply(data)
        self.error = None
        self.status = "ready"
        self.loaded_at = datetime.now()

    def fetch(self) -> Any:
        raise NotImplementedError

    def apply(self, data: Any) -> None:
        raise NotImplementedError

    def clear(self) -> None:
        raise NotImplementedError

    def _announce(self) -> None:
        """Tell dependent views that rows they aggregate over have changed"""
        self.ctx.state.orders_mutated.send(source=self.name)

    def _state(self) -> Dict[str, Any]:
        return {
            "view": self.name,
            "status": self.status,
            "error": self.error,
            "loadedAt": self.loaded_at,
            "message": "Please log in" if self.status == "unauthenticated" else None,
        }

    def snapshot(self, **kwargs) -> Dict[str, Any]:
        raise NotImplementedError


class DashboardView(View):
    name = "dashboard"
    error_message = "Failed to load dashboard"

    def __init__(self, ctx: ViewContext):
        super().__init__(ctx)
        self.categories: List[Dict[str, Any]] = []
        self.products: List[Dict[str, Any]] = []
        self.orders: List[Dict[str, Any]] = []

    async def mount(self) -> None:
        await super().mount()
        self._disconnect.append(
            self.ctx.state.date_range.subscribe(lambda _range: self.coordinator.trigger("date-range"))
        )

    def fetch(self):
        return self.gateway.list_categories(), self.gateway.list_products(), self.gateway.list_orders()

    def apply(self, data) -> None:
        self.categories, self.products, self.orders = data

    def clear(self) -> None:
        self.categories, self.products, self.orders = [], [], []

    def snapshot(self, now: Optional[datetime] = None, **kwargs) -> Dict[str, Any]:
        selected = self.ctx.state.date_range.get()
        bounds = window(selected, now)
        return {
            **self._state(),
            "dateRange": selected,
            "window": {"from": bounds[0], "to": bounds[1]} if bounds else None,
            "stats": aggregates.dashboard_stats(self.categories, self.products, self.orders, bounds),
        }


class OrdersView(View):
    name = "orders"
    error_message = "Failed to load orders"

    def __init__(self, ctx: ViewContext):
        super().__init__(ctx)
        self.orders: List[Dict[str, Any]] = []
        self.selected: Optional[Dict[str, Any]] = None

    def fetch(self):
        return self.gateway.list_orders()

    def apply(self, data) -> None:
        self.orders = data
        if self.selected is not None:
            self.selected = next((o for o in data if o.get("id") == self.selected.get("id")), None)

    def clear(self) -> None:
        self.orders = []
        self.selected = None

    def find(self, order_id: int) -> Optional[Dict[str, Any]]:
        return next((o for o in self.orders if o.get("id") == order_id), None)

    def next_status(self, order_id: int) -> Optional[OrderStatus]:
        order = self.find(order_id)
        return workflow.next_status(order.get("status")) if order else None

    async def open_order(self, order_id: int) -> Dict[str, Any]:
        """Drawer for one order; also the target of /orders/{id} deep links"""
        order = await asyncio.to_thread(self.gateway.get_order, order_id)
        self.selected = order
        return self.detail(order)

    @staticmethod
    def detail(order: Dict[str, Any]) -> Dict[str, Any]:
        upcoming = workflow.next_status(order.get("status"))
        cartitems = order.get("cartitems") or []
        return {
            **order,
            "statusDescription": workflow.describe(order.get("status")),
            "nextStatus": upcoming.value if upcoming else None,
            "statusOptions": [s.value for s in workflow.ORDER_FLOW],
            "productCount": len(cartitems),
            "itemCount": sum(item.get("quantity") or 0 for item in cartitems),
            "cartTotal": sum(item.get("totalPrice") or 0 for item in cartitems),
        }

    async def set_status(self, order_id: int, status: str) -> Dict[str, Any]:
        """
        One partial write, then a full reload. Nothing is changed locally
        first: if the write fails the list keeps showing the old status.
        """
        record = await asyncio.to_thread(workflow.transition, self.gateway, order_id, status)
        logger.info("Order %s moved to %s", order_id, record.get("status"))
        await self.reload()
        return record

    async def update_order(self, order_id: int, fields: Dict[str, Any]) -> Dict[str, Any]:
        record = await asyncio.to_thread(self.gateway.update_order, order_id, fields)
        await self.reload()
        return record

    def snapshot(self, **kwargs) -> Dict[str, Any]:
        return {
            **self._state(),
            "summary": aggregates.status_summary(self.orders),
            "orders": [aggregates.order_row(o) for o in self.orders],
            "selected": self.detail(self.selected) if self.selected else None,
        }


class CategoriesView(View):
    name = "categories"
    error_message = "Failed to load categories"
    per_page = 6

    def __init__(self, ctx: ViewContext):
        super().__init__(ctx)
        self.categories: List[Dict[str, Any]] = []

    def fetch(self):
        return self.gateway.list_categories()

    def apply(self, data) -> None:
        self.categories = data

    def clear(self) -> None:
        self.categories = []

    def _upload(self, image: ImageUpload) -> str:
        storage = self.gateway.storage
        try:
            name = storage.upload(new_object_name(image.filename), image.data())
        except (StorageError, ValueError) as e:
            logger.warning("Image upload failed for %s: %s", image.filename, e)
            raise UploadFailed("Image upload failed") from e
        return storage.get_public_url(name)

    def _remove_image(self, url: Optional[str]) -> None:
        path = self.gateway.storage.path_from_public_url(url)
        if path:
            self.gateway.storage.remove([path])

    def _add(self, form: CategoryIn, image: Optional[ImageUpload]) -> Dict[str, Any]:
        if image is not None:
            form = form.model_copy(update={"image_url": self._upload(image)})
        return self.gateway.insert_category(form)

    def _edit(self, category_id: int, form: CategoryIn, image: Optional[ImageUpload]) -> Dict[str, Any]:
        current = self.gateway.get_category(category_id)
        if image is not None:
            form = form.model_copy(update={"image_url": self._upload(image)})
        old_url = current.get("image_url")
        if form.image_url and old_url and form.image_url != old_url:
            self._remove_image(old_url)
        return self.gateway.update_category(category_id, form)

    def _delete(self, category_id: int) -> int:
        category = self.gateway.get_category(category_id)
        detached = self.gateway.detach_category(category["name"])
        self.gateway.delete_category(category_id)
        self._remove_image(category.get("image_url"))
        logger.info("Category %s deleted, %d product(s) detached", category["name"], detached)
        return detached

    async def add(self, form: CategoryIn, image: Optional[ImageUpload] = None) -> Dict[str, Any]:
        """Upload first; a failed upload aborts before anything is inserted"""
        record = await asyncio.to_thread(self._add, form, image)
        await self.reload()
        return record

    async def edit(self, category_id: int, form: CategoryIn, image: Optional[ImageUpload] = None) -> Dict[str, Any]:
        record = await asyncio.to_thread(self._edit, category_id, form, image)
        await self.reload()
        self._announce()
        return record

    async def delete(self, category_id: int) -> int:
        detached = await asyncio.to_thread(self._delete, category_id)
        await self.reload()
        self._announce()
        return detached

    def snapshot(self, page: int = 1, **kwargs) -> Dict[str, Any]:
        return {
            **self._state(),
            "featured": self.categories[:4],
            "page": aggregates.paginate(self.categories, page, self.per_page),
        }


class ProductsView(View):
    name = "products"
    error_message = "Failed to load products"
    per_page = 10
    sort_columns = {"name": "name", "price": "price", "orders": "orderCount"}

    def __init__(self, ctx: ViewContext):
        super().__init__(ctx)
        self.products: List[Dict[str, Any]] = []

    def fetch(self):
        return self.gateway.list_products(), self.gateway.list_order_items()

    def apply(self, data) -> None:
        products, order_items = data
        counts = aggregates.product_order_counts(order_items)
        self.products = [{**p, "orderCount": counts.get(p["id"], 0)} for p in products]

    def clear(self) -> None:
        self.products = []

    def _upload_all(self, images: List[ImageUpload]) -> List[str]:
        # Stops at the first failure; files already uploaded stay in the bucket
        storage = self.gateway.storage
        urls = []
        for image in images:
            try:
                name = storage.upload(new_object_name(image.filename), image.data())
            except (StorageError, ValueError) as e:
                logger.warning("Image upload failed for %s after %d upload(s): %s", image.filename, len(urls), e)
                raise UploadFailed("Image upload failed") from e
            urls.append(storage.get_public_url(name))
        return urls

    def _with_images(self, payload: ProductIn, images: Optional[List[ImageUpload]]) -> ProductIn:
        if images:
            return payload.model_copy(update={"imageUrls": self._upload_all(images)})
        return payload

    async def get(self, product_id: int) -> Dict[str, Any]:
        return await asyncio.to_thread(self.gateway.get_product, product_id)

    async def add(self, payload: ProductIn, images: Optional[List[ImageUpload]] = None) -> Dict[str, Any]:
        record = await asyncio.to_thread(lambda: self.gateway.insert_product(self._with_images(payload, images)))
        await self.reload()
        self._announce()
        return record

    async def edit(self, product_id: int, payload: ProductIn, images: Optional[List[ImageUpload]] = None) -> Dict[str, Any]:
        record = await asyncio.to_thread(
            lambda: self.gateway.update_product(product_id, self._with_images(payload, images))
        )
        await self.reload()
        self._announce()
        return record

    async def set_published(self, product_id: int, published: bool) -> Dict[str, Any]:
        record = await asyncio.to_thread(self.gateway.set_product_published, product_id, published)
        await self.reload()
        return record

    async def delete(self, product_id: int) -> None:
        await asyncio.to_thread(self.gateway.delete_product, product_id)
        await self.reload()
        self._announce()

    def snapshot(self, page: int = 1, query: str = "", sort: str = "orders", direction: str = "desc", **kwargs) -> Dict[str, Any]:
        column = self.sort_columns.get(sort, "orderCount")
        rows = [p for p in self.products if query.lower() in (p.get("name") or "").lower()]
        if column == "name":
            rows.sort(key=lambda p: (p.get("name") or "").lower(), reverse=direction == "desc")
        else:
            rows.sort(key=lambda p: p.get(column) or 0, reverse=direction == "desc")
        top = sorted(self.products, key=lambda p: p.get("orderCount") or 0, reverse=True)[:4]
        return {
            **self._state(),
            "top": top,
            "page": aggregates.paginate(rows, page, self.per_page),
        }


class CustomersView(View):
    name = "customers"
    error_message = "Failed to load orders"
    per_page = 6

    def __init__(self, ctx: ViewContext):
        super().__init__(ctx)
        self.customers: List[Dict[str, Any]] = []

    def fetch(self):
        return aggregates.derive_customers(self.gateway.list_order_totals())

    def apply(self, data) -> None:
        self.customers = data

    def clear(self) -> None:
        self.customers = []

    def snapshot(self, page: int = 1, **kwargs) -> Dict[str, Any]:
        return {**self._state(), "page": aggregates.paginate(self.customers, page, self.per_page)}


class SettingsView(View):
    name = "settings"
    error_message = "Failed to load settings"

    def __init__(self, ctx: ViewContext):
        super().__init__(ctx)
        self.settings: Optional[AppSettings] = None

    def fetch(self):
        data = self.gateway.get_settings()
        try:
            return AppSettings.model_validate(data)
        except ValidationError as e:
            raise GatewayError(f"Stored settings are malformed: {e.error_count()} error(s)") from e

    def apply(self, data) -> None:
        self.settings = data

    def clear(self) -> None:
        self.settings = None

    async def save(self, settings: AppSettings) -> AppSettings:
        saved = await asyncio.to_thread(self.gateway.save_settings, settings.model_dump())
        logger.info("Settings saved")
        await self.reload()
        return AppSettings.model_validate(saved)

    def snapshot(self, **kwargs) -> Dict[str, Any]:
        return {**self._state(), "settings": self.settings}
