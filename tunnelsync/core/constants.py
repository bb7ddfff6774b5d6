import os
import platform
import tempfile
from pathlib import Path

# Load environment variables from .env file
from dotenv import load_dotenv

# Load .env from project root
_project_root = Path(__file__).parent.parent.parent
load_dotenv(_project_root / ".env")

# Application version from environment
APP_VERSION = os.getenv("APP_VERSION", "0.1.0")
APP_NAME = "tunnelsync"

# Event channel the tunnel supervisor emits status signals on
TUNNEL_STATUS_CHANNEL = os.getenv("TUNNEL_STATUS_CHANNEL", "tunnel_status")

# Outbound commands understood by the tunnel supervisor
START_TUNNEL_COMMAND = os.getenv("START_TUNNEL_COMMAND", "start_tunnel")
END_TUNNEL_COMMAND = os.getenv("END_TUNNEL_COMMAND", "end_tunnel")

# Temporary directory (cross-platform)
if platform.system() == "Windows":
    TMPDIR = os.path.join(tempfile.gettempdir(), APP_NAME)
elif platform.system() == "Darwin":
    TMPDIR = os.path.join(os.path.expanduser("~/Library/Caches"), APP_NAME)
else:
    TMPDIR = os.path.join(os.environ.get("TMPDIR", "/tmp"), APP_NAME)

# Log files
LOG_FILE = os.path.join(TMPDIR, "tunnelsync.log")

# User settings live directly in the home directory, shared with the desktop client
USER_SETTINGS_FILENAME = os.getenv("USER_SETTINGS_FILENAME", "eclo-ssh-client-user-settings.json")
USER_SETTINGS_PATH = os.path.join(os.path.expanduser("~"), USER_SETTINGS_FILENAME)
