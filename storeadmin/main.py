# storeadmin/main.py

"""
Used by FastAPI to handle the Traffic (API endpoints)
This is the entry point for the store admin API
Every page of the dashboard is a mounted view; GET routes render its current
snapshot, mutation routes write through the gateway and wait for the reload.
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, Depends, HTTPException, Request
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
# For Middleware block so browser can access the API
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel

import uvicorn

from storeadmin.config import Config, load_config
from storeadmin.date_range import PRESETS, DateRange
from storeadmin.dependencies import (
    get_shell,
    get_current_user,
    get_dashboard,
    get_orders_view,
    get_categories_view,
    get_products_view,
    get_customers_view,
    get_settings_view,
)
from storeadmin.errors import GatewayError, NotAuthenticated, RowNotFound, StorageError, UploadFailed
from storeadmin.models import AppSettings, CategoryIn, ImageUpload, OrderStatus, ProductIn
from storeadmin.realtime import ChangeEvent
from storeadmin.shell import AppShell
from storeadmin.views import (
    CategoriesView,
    CustomersView,
    DashboardView,
    OrdersView,
    ProductsView,
    SettingsView,
)

logger = logging.getLogger(__name__)


# --- Request Bodies ---

class SignInRequest(BaseModel):
    email: str
    password: str


class LiveUpdatesRequest(BaseModel):
    enabled: bool


class StatusRequest(BaseModel):
    status: OrderStatus


class OrderUpdateRequest(BaseModel):
    status: Optional[OrderStatus] = None
    checkoutdata: Optional[Dict[str, Any]] = None


class CategoryRequest(BaseModel):
    category: CategoryIn
    image: Optional[ImageUpload] = None


class ProductRequest(BaseModel):
    product: ProductIn
    images: List[ImageUpload] = []


class PublishRequest(BaseModel):
    published: bool


def create_app(config: Optional[Config] = None) -> FastAPI:
    config = config or load_config()
    logging.basicConfig(level=config.log_level.upper(), format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        shell = AppShell.from_config(config)
        app.state.shell = shell
        await shell.start()
        yield
        await shell.stop()

    app = FastAPI(title="Store Admin Dashboard API", lifespan=lifespan)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],  # Allows all origins (browser, postman, etc.)
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Public URLs of the image bucket resolve here
    app.mount("/storage/v1/object/public", StaticFiles(directory=config.storage_dir, check_dir=False), name="storage")

    register_error_handlers(app)
    register_routes(app)
    return app


def register_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(NotAuthenticated)
    async def not_authenticated(request: Request, exc: NotAuthenticated):
        return JSONResponse(status_code=401, content={"detail": str(exc)})

    @app.exception_handler(RowNotFound)
    async def row_not_found(request: Request, exc: RowNotFound):
        return JSONResponse(status_code=404, content={"detail": str(exc)})

    @app.exception_handler(UploadFailed)
    async def upload_failed(request: Request, exc: UploadFailed):
        return JSONResponse(status_code=502, content={"detail": "Image upload failed"})

    @app.exception_handler(StorageError)
    async def storage_error(request: Request, exc: StorageError):
        logger.warning("Storage error on %s: %s", request.url.path, exc)
        return JSONResponse(status_code=502, content={"detail": str(exc)})

    @app.exception_handler(GatewayError)
    async def gateway_error(request: Request, exc: GatewayError):
        logger.warning("Backend error on %s: %s", request.url.path, exc)
        return JSONResponse(status_code=500, content={"detail": "Request to the store backend failed"})


def register_routes(app: FastAPI) -> None:

    @app.get("/health")
    def health_check():
        return {"status": "ok"}

    # --- Session ---

    @app.post("/auth/sign-in")
    async def sign_in(body: SignInRequest, shell: AppShell = Depends(get_shell)):
        """
        Sign in, then bump the refresh key so every mounted view reloads.
        Returns once those reloads have finished.
        """
        user = await shell.sign_in(body.email, body.password)
        return {"user": user}

    @app.post("/auth/sign-out")
    async def sign_out(shell: AppShell = Depends(get_shell)):
        await shell.sign_out()
        return {"user": None}

    @app.get("/auth/me")
    async def me(shell: AppShell = Depends(get_shell)):
        return {"user": shell.auth.user}

    # --- Shell ---

    @app.get("/views")
    async def list_views(shell: AppShell = Depends(get_shell)):
        return {"views": shell.routes(), "badges": shell.badges}

    @app.get("/live-updates")
    async def get_live_updates(shell: AppShell = Depends(get_shell)):
        return {"enabled": shell.state.live_updates.get()}

    @app.put("/live-updates")
    async def put_live_updates(body: LiveUpdatesRequest, shell: AppShell = Depends(get_shell)):
        return {"enabled": await shell.set_live_updates(body.enabled)}

    @app.get("/date-range")
    async def get_date_range(shell: AppShell = Depends(get_shell)):
        return {"selected": shell.state.date_range.get(), "presets": PRESETS}

    @app.put("/date-range")
    async def put_date_range(body: DateRange, shell: AppShell = Depends(get_shell)):
        return {"selected": await shell.set_date_range(body)}

    @app.post("/refresh")
    async def refresh(shell: AppShell = Depends(get_shell), user: str = Depends(get_current_user)):
        key = shell.bump()
        await shell.settle()
        return {"refreshKey": key}

    @app.post("/webhooks/realtime")
    async def realtime_webhook(event: ChangeEvent, shell: AppShell = Depends(get_shell)):
        """
        Change notifications pushed by the backend (database webhooks).
        Subscribed views reload right away, independent of the poll timer.
        """
        delivered = shell.channel.publish(event)
        # Let the reloads scheduled by the publish start before waiting on them
        await asyncio.sleep(0)
        await shell.settle()
        return {"delivered": delivered}

    # --- Dashboard ---

    @app.get("/dashboard")
    async def dashboard(view: DashboardView = Depends(get_dashboard), user: str = Depends(get_current_user)):
        return view.snapshot()

    # --- Orders ---

    @app.get("/orders")
    async def list_orders(view: OrdersView = Depends(get_orders_view), user: str = Depends(get_current_user)):
        return view.snapshot()

    @app.get("/orders/{order_id}")
    async def open_order(order_id: int, view: OrdersView = Depends(get_orders_view), user: str = Depends(get_current_user)):
        return await view.open_order(order_id)

    @app.post("/orders/{order_id}/status")
    async def set_order_status(
        order_id: int,
        body: StatusRequest,
        view: OrdersView = Depends(get_orders_view),
        user: str = Depends(get_current_user),
    ):
        await view.set_status(order_id, body.status.value)
        return view.snapshot()

    @app.patch("/orders/{order_id}")
    async def update_order(
        order_id: int,
        body: OrderUpdateRequest,
        view: OrdersView = Depends(get_orders_view),
        user: str = Depends(get_current_user),
    ):
        fields = body.model_dump(exclude_none=True, mode="json")
        if not fields:
            raise HTTPException(status_code=400, detail="Nothing to update")
        record = await view.update_order(order_id, fields)
        return view.detail(record)

    # --- Categories ---

    @app.get("/categories")
    async def list_categories(
        page: int = 1,
        view: CategoriesView = Depends(get_categories_view),
        user: str = Depends(get_current_user),
    ):
        return view.snapshot(page=page)

    @app.post("/categories", status_code=201)
    async def add_category(body: CategoryRequest, view: CategoriesView = Depends(get_categories_view), user: str = Depends(get_current_user)):
        return await view.add(body.category, body.image)

    @app.put("/categories/{category_id}")
    async def edit_category(
        category_id: int,
        body: CategoryRequest,
        view: CategoriesView = Depends(get_categories_view),
        user: str = Depends(get_current_user),
    ):
        return await view.edit(category_id, body.category, body.image)

    @app.delete("/categories/{category_id}")
    async def delete_category(category_id: int, view: CategoriesView = Depends(get_categories_view), user: str = Depends(get_current_user)):
        detached = await view.delete(category_id)
        return {"message": "deleted", "detachedProducts": detached}

    # --- Products ---

    @app.get("/products")
    async def list_products(
        page: int = 1,
        q: str = "",
        sort: str = "orders",
        direction: str = "desc",
        view: ProductsView = Depends(get_products_view),
        user: str = Depends(get_current_user),
    ):
        return view.snapshot(page=page, query=q, sort=sort, direction=direction)

    @app.get("/products/{product_id}")
    async def get_product(product_id: int, view: ProductsView = Depends(get_products_view), user: str = Depends(get_current_user)):
        return await view.get(product_id)

    @app.post("/products", status_code=201)
    async def add_product(body: ProductRequest, view: ProductsView = Depends(get_products_view), user: str = Depends(get_current_user)):
        return await view.add(body.product, body.images)

    @app.put("/products/{product_id}")
    async def edit_product(
        product_id: int,
        body: ProductRequest,
        view: ProductsView = Depends(get_products_view),
        user: str = Depends(get_current_user),
    ):
        return await view.edit(product_id, body.product, body.images)

    @app.post("/products/{product_id}/publish")
    async def publish_product(
        product_id: int,
        body: PublishRequest,
        view: ProductsView = Depends(get_products_view),
        user: str = Depends(get_current_user),
    ):
        return await view.set_published(product_id, body.published)

    @app.delete("/products/{product_id}")
    async def delete_product(product_id: int, view: ProductsView = Depends(get_products_view), user: str = Depends(get_current_user)):
        await view.delete(product_id)
        return {"message": "deleted"}

    # --- Customers ---

    @app.get("/customers")
    async def list_customers(
        page: int = 1,
        view: CustomersView = Depends(get_customers_view),
        user: str = Depends(get_current_user),
    ):
        return view.snapshot(page=page)

    # --- Settings ---

    @app.get("/settings")
    async def get_settings(view: SettingsView = Depends(get_settings_view), user: str = Depends(get_current_user)):
        return view.snapshot()

    @app.put("/settings")
    async def save_settings(body: AppSettings, view: SettingsView = Depends(get_settings_view), user: str = Depends(get_current_user)):
        try:
            saved = await view.save(body)
        except GatewayError as e:
            logger.warning("Failed to save settings: %s", e)
            raise HTTPException(status_code=500, detail="Failed to save settings")
        return {"settings": saved}


app = create_app()


if __name__ == "__main__":
    # If running directly, this allows 'python storeadmin/main.py' to work
    # BUT standard usage is 'uvicorn storeadmin.main:app --reload' from terminal
    uvicorn.run("storeadmin.main:app", host="0.0.0.0", port=8000, reload=True)
