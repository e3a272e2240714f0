"""Telethon client for Saved Messages notifications.

Only built when ``notification_method`` is ``saved_messages``. The session
file lives next to the database so one deployment keeps one login.
"""

from __future__ import annotations

import logging
import os

from dotenv import load_dotenv
from telethon import TelegramClient

from feedrules import settings

LOGGER = logging.getLogger(__name__)


def _session_path(session_name: str) -> str:
    if os.path.isabs(session_name):
        return session_name
    return os.path.join(os.path.dirname(settings.DB_PATH), session_name)


def build_client() -> TelegramClient:
    """Create a client from ``API_ID``/``API_HASH`` (and optional ``SESSION_NAME``)."""

    load_dotenv()
    api_id = os.getenv("API_ID", "").strip()
    api_hash = os.getenv("API_HASH", "").strip()
    if not api_id or not api_hash:
        raise RuntimeError("API_ID and API_HASH are required for saved_messages notifications")
    if not api_id.isdigit():
        raise RuntimeError("API_ID must be numeric")

    session = _session_path(os.getenv("SESSION_NAME", "feedrules"))
    LOGGER.info("Using Telegram session %s", session)
    return TelegramClient(session, int(api_id), api_hash)
