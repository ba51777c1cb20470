"""Server configuration values."""
import os
from pathlib import Path

BASE_DIR = Path(__file__).resolve().parent
DATABASE_URL = os.getenv("NYUMBA_DATABASE_URL", f"sqlite:///{BASE_DIR / 'nyumba_connect.db'}")
UPLOAD_DIR = Path(os.getenv("NYUMBA_UPLOAD_DIR", str(BASE_DIR / "uploads" / "resources")))
LOG_FILE = Path(os.getenv("NYUMBA_SERVER_LOG", str(BASE_DIR / "server.log")))

TOKEN_EXPIRY_MINUTES = 60 * 24
BCRYPT_ROUNDS = 12
MAX_FAILED_LOGINS = 5
LOCKOUT_MINUTES = 10

RESOURCES_PER_PAGE = 12
RESOURCE_SORT_FIELDS = ("title", "created_at", "download_count")
RESOURCE_SORT_ORDERS = ("ASC", "DESC")

SEND_RATE_LIMIT = 10
SEND_RATE_WINDOW_SECONDS = 60

REQUEST_MESSAGE_MIN_LENGTH = 50
REQUEST_MESSAGE_MAX_LENGTH = 1000
REQUEST_RATE_LIMIT = 3
REQUEST_RATE_WINDOW_SECONDS = 60 * 60
