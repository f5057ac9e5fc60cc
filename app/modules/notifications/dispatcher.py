import logging
from supabase import Client
from app.config import settings
from app.core.realtime import ChangeFeed, change_feed
from typing import Iterable, Optional

logger = logging.getLogger(__name__)

SYSTEM = "system"
SYSTEM_ANNOUNCEMENT = "system_announcement"


class NotificationDispatcher:
    """Writes in-app notification rows; delivery beyond the table is out of scope"""

    def __init__(self, supabase: Client, batch_size: Optional[int] = None, feed: ChangeFeed = change_feed):
        self.supabase = supabase
        self.batch_size = batch_size or settings.notification_batch_size
        self.feed = feed

    def send(
        self,
        user_ids: Iterable[str],
        title: str,
        message: str,
        type: str = SYSTEM,
        related_id: Optional[str] = None
    ) -> int:
        """Insert one unread notification per recipient, in batches. Returns the number sent."""
        rows = [
            {
                "user_id": user_id,
                "title": title,
                "message": message,
                "type": type,
                "related_id": related_id,
                "is_read": False,
            }
            for user_id in dict.fromkeys(user_ids)
        ]
        for start in range(0, len(rows), self.batch_size):
            self.supabase.table("notifications").insert(rows[start:start + self.batch_size]).execute()

        if rows:
            logger.info("Sent %d '%s' notifications", len(rows), type)
            self.feed.notify("notifications")
        return len(rows)
