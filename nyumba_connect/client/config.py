"""Client configuration values."""
import os
from pathlib import Path

APP_NAME = "Nyumba Connect"

FOREGROUND_POLL_INTERVAL_MS = 3000
BACKGROUND_POLL_INTERVAL_MS = 10000
REQUEST_TIMEOUT = 10

ICON_DEFAULT = "favicon.ico"
ICON_UNREAD = "favicon-unread.ico"

LOG_FILE = Path(os.getenv("NYUMBA_CLIENT_LOG", str(Path.home() / ".nyumba_connect_client.log")))
