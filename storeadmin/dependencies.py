# storeadmin/dependencies.py
"""
Used by FastAPI for dependency injection - Shell, Views & Auth
Routes never build anything themselves: the shell is created once at
startup and every request borrows it (and the view it renders) from here.
"""

from fastapi import Depends, HTTPException, Request

from storeadmin.shell import AppShell
from storeadmin.views import (
    CategoriesView,
    CustomersView,
    DashboardView,
    OrdersView,
    ProductsView,
    SettingsView,
)


def get_shell(request: Request) -> AppShell:
    return request.app.state.shell


# 1. Authentication
# The signed-in admin is held by the shell; no header or token is checked here
async def get_current_user(shell: AppShell = Depends(get_shell)) -> str:
    if not shell.auth.is_signed_in:
        raise HTTPException(status_code=401, detail="Please log in")
    return shell.auth.user


# 2. Views
# Each route asks for the mounted view it renders
def get_dashboard(shell: AppShell = Depends(get_shell)) -> DashboardView:
    return shell.view("dashboard")


def get_orders_view(shell: AppShell = Depends(get_shell)) -> OrdersView:
    return shell.view("orders")


def get_categories_view(shell: AppShell = Depends(get_shell)) -> CategoriesView:
    return shell.view("categories")


def get_products_view(shell: AppShell = Depends(get_shell)) -> ProductsView:
    return shell.view("products")


def get_customers_view(shell: AppShell = Depends(get_shell)) -> CustomersView:
    return shell.view("customers")


def get_settings_view(shell: AppShell = Depends(get_shell)) -> SettingsView:
    return shell.view("settings")
