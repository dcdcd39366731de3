import os
from pathlib import Path

ROOT_DIR = Path(__file__).resolve().parent

# JWT Config
SECRET_KEY = os.getenv("JWT_SECRET", "dev-secret-change")
ALGORITHM = "HS256"
ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", 60 * 24 * 7))  # 7 days

# Mongo
DATABASE_URL = os.getenv("DATABASE_URL")
DATABASE_NAME = os.getenv("DATABASE_NAME")

# Local fallbacks when no database is configured
DATA_DIR = Path(os.getenv("DATA_DIR", str(ROOT_DIR / "data")))
PRODUCTS_FILE = Path(os.getenv("PRODUCTS_FILE", str(DATA_DIR / "products.json")))

# Pricing
CURRENCY_SYMBOL = os.getenv("CURRENCY_SYMBOL", "₹")
FREE_DELIVERY_THRESHOLD = int(os.getenv("FREE_DELIVERY_THRESHOLD", 1499))
DELIVERY_CHARGE = int(os.getenv("DELIVERY_CHARGE", 99))
LOW_STOCK_THRESHOLD = int(os.getenv("LOW_STOCK_THRESHOLD", 5))

PORT = int(os.getenv("PORT", 8000))
