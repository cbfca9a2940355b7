"""
UserPresenceService - who is online right now, kept in Redis.

Each user has one key, presence:{user_id}, holding a small JSON document:

    {"user_id", "is_online", "last_seen", "socket_id", "device_type"}

Online records live for PRESENCE_TTL_SECONDS and are refreshed by
heartbeats; offline records are kept briefly so "last seen" survives a
reconnect. Presence only steers notification routing, so Redis failures are
logged and every lookup falls back to "offline/unknown".
"""

import json
from datetime import datetime
from typing import Dict, Iterable, Optional

import redis
from django.conf import settings
from django.utils import timezone

from notifications.infra.metrics import users_online
from utils.service_base import BaseService

KEY_PREFIX = "presence:"


def _config(key: str, default):
    return getattr(settings, "NOTIFICATIONS", {}).get(key, default)


def presence_key(user_id) -> str:
    return f"{KEY_PREFIX}{user_id}"


class UserPresenceService(BaseService):
    def __init__(self, client=None):
        super().__init__()
        self._client = client
        self.ttl = _config("PRESENCE_TTL_SECONDS", 300)
        self.offline_ttl = _config("OFFLINE_TTL_SECONDS", 60)
        self.offline_threshold = _config("OFFLINE_THRESHOLD_MINUTES", 5)
        self.cleanup_minutes = _config("PRESENCE_CLEANUP_MINUTES", 10)

    @property
    def client(self):
        if self._client is None:
            self._client = redis.from_url(settings.REDIS_URL, decode_responses=True)
        return self._client

    # ===== Helpers =====

    @staticmethod
    def _minutes_since(record: Dict) -> Optional[int]:
        try:
            last_seen = datetime.fromisoformat(record["last_seen"])
        except (KeyError, TypeError, ValueError):
            return None
        return int((timezone.now() - last_seen).total_seconds() // 60)

    def _is_online(self, record: Optional[Dict]) -> bool:
        if not record or not record.get("is_online"):
            return False
        minutes = self._minutes_since(record)
        return minutes is not None and minutes < self.offline_threshold

    def _write(self, user_id, record: Dict, ttl: int):
        self.client.setex(presence_key(user_id), ttl, json.dumps(record))

    @staticmethod
    def _parse(raw) -> Optional[Dict]:
        if not raw:
            return None
        try:
            return json.loads(raw)
        except (TypeError, ValueError):
            return None

    # ===== Updates =====

    def mark_online(self, user_id, socket_id: str = "", device_type: str = "web") -> bool:
        record = {
            "user_id": str(user_id),
            "is_online": True,
            "last_seen": timezone.now().isoformat(),
            "socket_id": socket_id or "",
            "device_type": device_type,
        }
        try:
            self._write(user_id, record, self.ttl)
        except redis.RedisError as e:
            self.logger.error(f"Presence update failed for {user_id}: {e}")
            return False
        self.logger.debug(f"User {user_id} marked online")
        return True

    def mark_offline(self, user_id) -> bool:
        try:
            record = self._parse(self.client.get(presence_key(user_id)))
            if record is None:
                return False
            record["is_online"] = False
            record["last_seen"] = timezone.now().isoformat()
            self._write(user_id, record, self.offline_ttl)
        except redis.RedisError as e:
            self.logger.error(f"Marking {user_id} offline failed: {e}")
            return False
        self.logger.debug(f"User {user_id} marked offline")
        return True

    def heartbeat(self, user_id, socket_id: str = "") -> bool:
        """Refresh last_seen and the TTL; starts a fresh online record when there is none."""
        try:
            record = self._parse(self.client.get(presence_key(user_id)))
        except redis.RedisError as e:
            self.logger.error(f"Heartbeat failed for {user_id}: {e}")
            return False
        if record is None:
            return self.mark_online(user_id, socket_id=socket_id)

        record["is_online"] = True
        record["last_seen"] = timezone.now().isoformat()
        if socket_id:
            record["socket_id"] = socket_id
        try:
            self._write(user_id, record, self.ttl)
        except redis.RedisError as e:
            self.logger.error(f"Heartbeat failed for {user_id}: {e}")
            return False
        return True

    # ===== Lookups =====

    def get_presence(self, user_id) -> Optional[Dict]:
        try:
            return self._parse(self.client.get(presence_key(user_id)))
        except redis.RedisError as e:
            self.logger.error(f"Presence lookup failed for {user_id}: {e}")
            return None

    def bulk_presence(self, user_ids: Iterable) -> Dict[str, Optional[Dict]]:
        user_ids = [str(user_id) for user_id in user_ids]
        if not user_ids:
            return {}
        try:
            raw = self.client.mget([presence_key(user_id) for user_id in user_ids])
        except redis.RedisError as e:
            self.logger.error(f"Bulk presence lookup failed: {e}")
            return {user_id: None for user_id in user_ids}
        return {user_id: self._parse(value) for user_id, value in zip(user_ids, raw)}

    def is_online(self, user_id) -> bool:
        return self._is_online(self.get_presence(user_id))

    def minutes_since_last_seen(self, user_id) -> Optional[int]:
        record = self.get_presence(user_id)
        if record is None:
            return None
        return self._minutes_since(record)

    def _all_records(self):
        for key in self.client.scan_iter(match=f"{KEY_PREFIX}*"):
            yield key, self._parse(self.client.get(key))

    def stats(self) -> Dict[str, int]:
        stats = {"total_online": 0, "recently_offline": 0, "total_tracked": 0}
        try:
            for _, record in self._all_records():
                stats["total_tracked"] += 1
                if record is None:
                    continue
                minutes = self._minutes_since(record)
                if minutes is None or minutes >= self.offline_threshold:
                    continue
                if record.get("is_online"):
                    stats["total_online"] += 1
                else:
                    stats["recently_offline"] += 1
        except redis.RedisError as e:
            self.logger.error(f"Presence stats failed: {e}")
            return {"total_online": 0, "recently_offline": 0, "total_tracked": 0}
        users_online.set(stats["total_online"])
        return stats

    def cleanup(self) -> int:
        """Drop records not seen for PRESENCE_CLEANUP_MINUTES. Returns how many were removed."""
        removed = 0
        try:
            for key, record in list(self._all_records()):
                minutes = self._minutes_since(record) if record else None
                if minutes is None or minutes >= self.cleanup_minutes:
                    self.client.delete(key)
                    removed += 1
        except redis.RedisError as e:
            self.logger.error(f"Presence cleanup failed: {e}")
        if removed:
            self.logger.info(f"Cleaned up {removed} stale presence records")
        return removed
