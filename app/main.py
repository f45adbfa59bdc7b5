import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager

from app.config import settings
from app.database import create_db_and_tables, engine
from app.routes import (
    auth,
    cart,
    checkout,
    health,
    products,
    user_orders,
    wishlist,
)
from app.services.api_client import StorefrontApiClient
from app.services.kv_store import SqlKeyValueStore
from app.services.payment_gateway import HostedCheckoutGateway
from app.services.session_service import SessionRegistry

logging.basicConfig(level=settings.log_level)


def build_registry() -> SessionRegistry:
    api = StorefrontApiClient(settings.api_base_url, timeout=settings.api_timeout)
    return SessionRegistry(
        store_factory=lambda session_id: SqlKeyValueStore(engine, session_id),
        api=api,
        settings=settings,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Run table creation ONLY in local
    if settings.ENV == "local":
        create_db_and_tables()
    yield


app = FastAPI(title="AutoParts Storefront API", lifespan=lifespan)

app.state.sessions = build_registry()
app.state.gateway = HostedCheckoutGateway(
    settings.gateway_script_url,
    enabled=settings.gateway_probe_enabled,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(auth.router, prefix="/auth", tags=["Authentication"])
app.include_router(cart.router, prefix="/cart", tags=["Cart"])
app.include_router(checkout.router, prefix="/checkout", tags=["Checkout"])
app.include_router(products.router, tags=["Products"])
app.include_router(wishlist.router, prefix="/wishlist", tags=["Wishlist"])
app.include_router(user_orders.router, prefix="/orders", tags=["Orders"])
app.include_router(health.router, prefix="/health", tags=["Health"])


@app.get("/")
def root():
    return {
        "auth_endpoints": [
            "/auth/login", "/auth/register", "/auth/logout",
            "/auth/me", "/auth/profile"
        ],
        "cart": [
            "/cart", "/cart/add", "/cart/update/{id}",
            "/cart/remove/{id}", "/cart/clear"
        ],
        "checkout": [
            "/checkout", "/checkout/cod", "/checkout/online",
            "/checkout/online/verify", "/checkout/online/failed",
            "/checkout/online/dismiss", "/checkout/status"
        ],
        "catalog": [
            "/products/{id}", "/recently-viewed"
        ],
        "wishlist": [
            "/wishlist", "/wishlist/{id}/move-to-cart",
            "/wishlist/remove/{id}", "/wishlist/clear"
        ],
        "orders": [
            "/orders/my-orders", "/orders/confirmation/{id}"
        ]
    }
