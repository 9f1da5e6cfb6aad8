import os

BACKEND_URL = os.getenv("BACKEND_URL", "http://localhost:8080").rstrip("/")
BACKEND_TIMEOUT = float(os.getenv("BACKEND_TIMEOUT", "10"))
FRONTEND_URL = os.getenv("FRONTEND_URL", "http://localhost:3000").rstrip("/")

DATABASE_URL = os.getenv("DATABASE_URL")
DATABASE_NAME = os.getenv("DATABASE_NAME")

# Five minutes, same as the storefront's data cache stale time
CATALOG_TTL_SECONDS = float(os.getenv("CATALOG_TTL_SECONDS", "300"))
CHECKOUT_REDIRECT_DELAY = float(os.getenv("CHECKOUT_REDIRECT_DELAY", "1.5"))

PORT = int(os.getenv("PORT", 8000))
