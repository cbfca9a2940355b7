"""
Shared pytest fixtures.

Every test gets a clean service container with in-memory email and push
backends and an in-process Redis double, so presence and the email job
index never reach a real server.
"""

import fnmatch
import time

import pytest

from infrastructure.container import container


class InMemoryRedis:
    """The handful of Redis commands presence tracking and the dispatcher use."""

    def __init__(self):
        self.values = {}
        self.expiry = {}
        self.sorted_sets = {}

    def _alive(self, key):
        expires = self.expiry.get(key)
        if expires is not None and expires <= time.time():
            self.values.pop(key, None)
            self.expiry.pop(key, None)
        return key in self.values

    def get(self, key):
        return self.values.get(key) if self._alive(key) else None

    def setex(self, key, ttl, value):
        self.values[key] = value
        self.expiry[key] = time.time() + int(ttl)
        return True

    def mget(self, keys):
        return [self.get(key) for key in keys]

    def scan_iter(self, match="*"):
        for key in list(self.values):
            if self._alive(key) and fnmatch.fnmatchcase(key, match):
                yield key

    def delete(self, *keys):
        removed = 0
        for key in keys:
            removed += int(self.values.pop(key, None) is not None)
            removed += int(self.sorted_sets.pop(key, None) is not None)
            self.expiry.pop(key, None)
        return removed

    def zadd(self, key, mapping):
        members = self.sorted_sets.setdefault(key, {})
        added = len(set(mapping) - set(members))
        members.update({member: float(score) for member, score in mapping.items()})
        return added

    def zrem(self, key, *members):
        zset = self.sorted_sets.get(key, {})
        return sum(1 for member in members if zset.pop(member, None) is not None)

    def zcard(self, key):
        return len(self.sorted_sets.get(key, {}))

    def zcount(self, key, low, high):
        low = float("-inf") if low == "-inf" else float(low)
        high = float("inf") if high == "+inf" else float(high)
        return sum(1 for score in self.sorted_sets.get(key, {}).values() if low <= score <= high)

    def zrange(self, key, start, end):
        ordered = [member for member, _ in sorted(self.sorted_sets.get(key, {}).items(), key=lambda item: item[1])]
        return ordered[start:] if end == -1 else ordered[start : end + 1]


@pytest.fixture
def fake_redis():
    return InMemoryRedis()


@pytest.fixture(autouse=True)
def service_container(fake_redis):
    container.configure_for_testing(redis_client=fake_redis)
    yield container
    container.reset()


@pytest.fixture
def sent_emails(service_container):
    return service_container.email().sent_messages


@pytest.fixture
def sent_pushes(service_container):
    return service_container.push().sent_pushes
