"""
Travel Agency Back-Office - Configuration
Environment-driven settings, loaded from .env when present.
"""

import os
from dotenv import load_dotenv

load_dotenv()

_base_dir = os.path.abspath(os.path.dirname(__file__))
INSTANCE_DIR = os.path.join(_base_dir, 'instance')

# ==================== FLASK ====================
SECRET_KEY = os.getenv("SECRET_KEY", "your-secret-key-change-in-production")
HOST = os.getenv("HOST", "0.0.0.0")
PORT = int(os.getenv("PORT", "7000"))
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

# ==================== DATABASE ====================
DEFAULT_DATABASE_URL = f"sqlite:///{os.path.join(INSTANCE_DIR, 'app.db')}"
DATABASE_URL = os.getenv("DATABASE_URL", DEFAULT_DATABASE_URL)

# ==================== CORS ====================
# Comma separated list; empty means any origin is accepted
CORS_ORIGINS = [
    o.strip()
    for o in (os.getenv("CORS_ORIGIN") or os.getenv("CLIENT_ORIGIN") or "").split(",")
    if o.strip()
]

# ==================== PDF BRANDING ====================
ORG_NAME = os.getenv("ORG_NAME", "Travel Agency Back Office")
ORG_CONTACT = os.getenv(
    "ORG_CONTACT",
    "support@travel-agency.example  |  +1 555 0100  |  www.travel-agency.example"
)
ORG_BRAND_COLOR = os.getenv("ORG_BRAND_COLOR", "#1F4E79")
