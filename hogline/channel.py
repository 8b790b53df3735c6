import asyncio
import collections

from . import Loggable
from .wake import notify

class Channel(Loggable):
	"""
	Unbounded multi-producer, single-consumer queue of events.

	`send()` may be called from any thread and never blocks. Only the
	dispatcher task calls `recv_batch()`.
	"""

	def __init__(self, loop=None):
		self._loop = loop
		self._queue = collections.deque()
		self._ready = asyncio.Event()
		self._closed = False

	def __len__(self):
		return len(self._queue)

	@property
	def closed(self):
		return self._closed

	def send(self, record):
		"""
		Enqueue a record. Returns False if it was dropped.
		"""

		if self._closed:
			self.log.debug("Channel closed, dropping event")

			return False

		if self._loop is not None and self._loop.is_closed():
			self.log.debug("Event loop gone, dropping event")

			return False

		self._queue.append(record)

		if not notify(self._loop, self._ready):
			# Loop closed between the check and the notify.
			try:
				self._queue.remove(record)

			except ValueError:
				pass

			self.log.debug("Event loop gone, dropping event")

			return False

		return True

	async def recv_batch(self, buffer, max_count):
		"""
		Wait for at least one record, then move up to `max_count` of the
		records already queued into `buffer`.

		Returns the number moved; 0 means closed and empty.
		"""

		if self._loop is None:
			self._loop = asyncio.get_running_loop()

		while not self._queue:
			if self._closed:
				return 0

			self._ready.clear()

			if self._queue or self._closed:
				continue

			await self._ready.wait()

		count = 0

		while count < max_count:
			try:
				buffer.append(self._queue.popleft())

			except IndexError:
				break

			count += 1

		return count

	def close(self):
		"""
		Refuse new records and wake a waiting consumer. Records already
		queued stay available to `recv_batch()`.
		"""

		self._closed = True

		notify(self._loop, self._ready)
