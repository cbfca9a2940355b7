"""
Mock Push Provider
==================

In-memory PushProviderInterface for tests and development.
"""

import logging
from typing import Any, Dict, List, Optional

from .interface import PushProviderInterface

logger = logging.getLogger(__name__)


class MockPushProvider(PushProviderInterface):
    def __init__(self):
        self.sent_pushes: List[Dict[str, Any]] = []

    def send(self, user_ids, heading, message, data=None) -> bool:
        logger.info(f"[MOCK PUSH] To: {user_ids}, Heading: {heading}")
        self.sent_pushes.append({"user_ids": list(user_ids), "heading": heading, "message": message, "data": data or {}})
        return True

    def clear(self):
        self.sent_pushes.clear()

    def get_last_push(self) -> Optional[Dict[str, Any]]:
        return self.sent_pushes[-1] if self.sent_pushes else None
