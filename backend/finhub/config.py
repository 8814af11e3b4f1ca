"""
finhub configuration: database, uploads, logging and import constants.

Everything is read from the process environment with local-dev defaults.
"""
import os
from pathlib import Path

# ---------------------------------------------------------------------------
# Database
# ---------------------------------------------------------------------------
DATABASE_URL = os.getenv("FINHUB_DB_URL", "sqlite:///./finhub.db")

# Service-role credential for the hosted database. Used as the connection
# password when DATABASE_URL does not carry one.
SERVICE_ROLE_KEY = os.getenv("FINHUB_SERVICE_ROLE_KEY")

# ---------------------------------------------------------------------------
# HTTP
# ---------------------------------------------------------------------------
CORS_ORIGINS = [
    origin.strip()
    for origin in os.getenv("FINHUB_CORS_ORIGINS", "http://localhost:3000").split(",")
    if origin.strip()
]

LOG_LEVEL = os.getenv("FINHUB_LOG_LEVEL", "INFO").upper()

# ---------------------------------------------------------------------------
# Imports
# ---------------------------------------------------------------------------
# Raw uploads are archived here when set; archiving is skipped otherwise.
_upload_dir = os.getenv("FINHUB_UPLOAD_DIR")
UPLOAD_DIR = Path(_upload_dir) if _upload_dir else None

IMPORT_BATCH_SIZE = int(os.getenv("FINHUB_IMPORT_BATCH_SIZE", "500"))

# ---------------------------------------------------------------------------
# Source discriminators
# ---------------------------------------------------------------------------
SOURCE_BRAINTREE_REVENUE = "braintree-api-revenue"
SOURCE_BRAINTREE_FEES = "braintree-api-fees"
SOURCE_CRAFT_COMMERCE = "craft-commerce"
SOURCE_INVOICE_ORDERS = "invoice-orders"
SOURCE_CHASE_USD = "chase-usd"
SOURCE_BANKINTER_EUR = "bankinter-eur"
SOURCE_SABADELL = "sabadell"
SOURCE_HUBSPOT = "hubspot"

BRAINTREE_SOURCES = (SOURCE_BRAINTREE_REVENUE, SOURCE_BRAINTREE_FEES)

# ---------------------------------------------------------------------------
# Scopes (company views) and the currencies that belong to each
# ---------------------------------------------------------------------------
SCOPE_GLOBAL = "GLOBAL"
SCOPE_CURRENCIES = {
    "ES": ("EUR",),
    "US": ("USD",),
}

# ---------------------------------------------------------------------------
# Data freshness thresholds, in hours
# ---------------------------------------------------------------------------
FRESHNESS_THRESHOLDS = {
    "auto": {"stale": 12, "error": 48},
    "csv": {"stale": 96, "error": 168},
}

# Sources shown on the data-freshness report.
DATA_SOURCES = [
    {"source": SOURCE_BRAINTREE_REVENUE, "display_name": "Braintree Revenue", "type": "csv",
     "upload_path": "/api/csv/braintree-csv"},
    {"source": SOURCE_BRAINTREE_FEES, "display_name": "Braintree Fees", "type": "csv",
     "upload_path": "/api/csv/braintree-csv"},
    {"source": SOURCE_INVOICE_ORDERS, "display_name": "Invoice Orders", "type": "csv",
     "upload_path": "/api/csv/invoice-orders"},
    {"source": SOURCE_CHASE_USD, "display_name": "Chase USD", "type": "csv",
     "upload_path": "/api/csv/chase-usd"},
    {"source": SOURCE_BANKINTER_EUR, "display_name": "Bankinter EUR", "type": "csv",
     "upload_path": "/api/csv/bankinter-eur"},
    {"source": SOURCE_SABADELL, "display_name": "Sabadell EUR", "type": "csv",
     "upload_path": "/api/csv/sabadell"},
    {"source": SOURCE_CRAFT_COMMERCE, "display_name": "Craft Commerce", "type": "csv",
     "upload_path": "/api/csv/craft-commerce"},
    {"source": SOURCE_HUBSPOT, "display_name": "HubSpot", "type": "auto"},
]
