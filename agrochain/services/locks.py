"""Per-key asyncio locks for serializing work on a single record."""

from __future__ import annotations

import asyncio
import uuid
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager


class KeyedLocks:
	"""Lazily created ``asyncio.Lock`` per key, dropped when nobody holds or awaits it.

	Guards a record within one process; cross-process exclusion is the
	database row lock's job.
	"""

	def __init__(self) -> None:
		self._locks: dict[uuid.UUID, asyncio.Lock] = {}
		self._users: dict[uuid.UUID, int] = {}

	@asynccontextmanager
	async def hold(self, key: uuid.UUID) -> AsyncIterator[None]:
		lock = self._locks.setdefault(key, asyncio.Lock())
		self._users[key] = self._users.get(key, 0) + 1
		try:
			async with lock:
				yield
		finally:
			self._users[key] -= 1
			if self._users[key] == 0:
				del self._users[key]
				del self._locks[key]

	def __len__(self) -> int:
		return len(self._locks)


crop_locks = KeyedLocks()
