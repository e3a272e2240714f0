"""Static configuration for feedrules.

All user-editable settings (database, scheduler, webhook, notifications,
logging) live in a single JSON file for quick edits without touching Python.
Secrets stay in ``.env`` and are read by the app layer via python-dotenv.
"""

import json
import os

PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), "..", ".."))

# FEEDRULES_CONFIG points at another config file, e.g. per deployment.
CONFIG_PATH = os.getenv("FEEDRULES_CONFIG", os.path.join(PROJECT_ROOT, "config.json"))


def _load_json_config() -> dict:
    """Load config.json; a missing file means all defaults."""

    if not os.path.exists(CONFIG_PATH):
        return {}

    with open(CONFIG_PATH, "r", encoding="utf-8") as handle:
        return json.load(handle)


def _resolve_path(path: str) -> str:
    if os.path.isabs(path):
        return path
    return os.path.join(PROJECT_ROOT, path)


_CONFIG = _load_json_config()

# Expose the raw config for modules that need structured access.
CONFIG = _CONFIG

# Where to store the SQLite database (articles, feeds and rules).
_database = _CONFIG.get("database", {})
DB_PATH = _resolve_path(_database.get("path", "feedrules.db"))

# Scheduled scan for rules bound to the "scheduled" event.
# - INTERVAL_SECONDS: hourly by default
# - INITIAL_DELAY_SECONDS: first scan shortly after startup
_scheduler = _CONFIG.get("scheduler", {})
SCHEDULER_ENABLED = bool(_scheduler.get("enabled", True))
SCHEDULER_INTERVAL_SECONDS = float(_scheduler.get("interval_seconds", 60 * 60))
SCHEDULER_INITIAL_DELAY_SECONDS = float(_scheduler.get("initial_delay_seconds", 5))

# Outbound webhooks are bounded so a slow endpoint cannot stall a scan.
_webhook = _CONFIG.get("webhook", {})
WEBHOOK_TIMEOUT_SECONDS = float(_webhook.get("timeout_seconds", 10))

# Notification method switches adapters without changing core logic.
_notifications = _CONFIG.get("notifications", {})
NOTIFICATION_METHOD = _notifications.get("notification_method", "log")
# Bot chat id is only required when notification_method=bot.
BOT_CHAT_ID = _notifications.get("bot_chat_id")

# Logging configuration (optional).
LOGGING = _CONFIG.get("logging", {})
