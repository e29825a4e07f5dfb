# Notification sink
import logging
from collections import deque
from typing import Callable, Deque, Optional, Tuple

logger = logging.getLogger(__name__)

TITLE_PREFIX = "DEMAND+: "
HISTORY_SIZE = 50

Sink = Callable[[str, str], None]


class NotificationService:
    """
    Fire-and-forget notifications sent after create/update/delete/complete.

    A failing sink is logged and ignored: notifications never fail the
    operation that triggered them.
    """

    def __init__(self, sink: Optional[Sink] = None, enabled: bool = True):
        self.sink = sink
        self.enabled = enabled
        self.history: Deque[Tuple[str, str]] = deque(maxlen=HISTORY_SIZE)

    def send(self, title: str, message: str) -> None:
        if not self.enabled:
            return
        full_title = f"{TITLE_PREFIX}{title}"
        self.history.append((full_title, message))
        logger.info(f"{full_title} - {message}")
        if self.sink is None:
            return
        try:
            self.sink(full_title, message)
        except Exception as e:
            logger.error(f"Erro ao disparar notificação '{title}': {e}", exc_info=True)
