"""ShopCheckout FastAPI application.

Serves cart, checkout, payment verification and order routes, processing
commands synchronously per request.

Usage:
    uvicorn app:app --app-dir src --host 0.0.0.0 --port 8000 --reload
"""

# ---------------------------------------------------------------------------
# Domain initialization
# ---------------------------------------------------------------------------
# The domain is initialized at module level so uvicorn workers share it.
from checkout.api import create_app
from checkout.config import get_settings
from checkout.domain import checkout
from checkout.services import build_services

checkout.init()

# Adapters are built once; a misconfigured deployment fails here, at startup
settings = get_settings()
app = create_app(build_services(settings))
