"""FastAPI application factory for the checkout service."""

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from checkout.api.errors import register_exception_handlers
from checkout.api.routes import admin_router, cart_router, checkout_router, order_router, product_router
from checkout.domain import checkout
from checkout.services import Services
from checkout.utils.logging import bind_request_context, clear_request_context


def create_app(services: Services) -> FastAPI:
    app = FastAPI(
        title="ShopCheckout API",
        description="Cart, checkout and payment reconciliation",
    )
    app.state.services = services

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def domain_context_middleware(request: Request, call_next):
        """Push the checkout domain context and a fresh logging context for each request."""
        bind_request_context(request.method, request.url.path)
        try:
            with checkout.domain_context():
                return await call_next(request)
        finally:
            clear_request_context()

    register_exception_handlers(app)

    app.include_router(cart_router)
    app.include_router(checkout_router)
    app.include_router(order_router)
    app.include_router(admin_router)
    app.include_router(product_router)

    @app.get("/health")
    async def health():
        return JSONResponse(
            content={
                "status": "ok",
                "domain": checkout.name,
                "gateway": services.gateway.name,
                "environment": services.settings.environment,
            }
        )

    return app


__all__ = ["create_app"]
