import asyncio

from . import Loggable
from .batch import PROCESS_MAX
from .errors import SerializationError, DeliveryError

class Dispatcher(Loggable):
	"""
	The single background task that turns queued events into batches.

	Each cycle drains at most `process_max` of the events already queued,
	encodes them into one body and POSTs it once. A full cycle means a
	backlog may remain, so the next cycle starts right away; a partial one
	sends the dispatcher back to its idle wait.
	"""

	def __init__(
		self,
		channel,
		wake,
		encoder,
		transport,
		endpoint,
		delay=2.0,
		process_max=PROCESS_MAX,
	):
		self.channel = channel
		self.wake = wake
		self.encoder = encoder
		self.transport = transport
		self.endpoint = endpoint
		self.delay = delay
		self.process_max = process_max
		self.task = None

		self.stats = {
			"batches_sent": 0,
			"events_sent": 0,
			"batches_dropped": 0,
			"events_dropped": 0,
		}

		# Reused for every cycle; owned by the dispatcher task only.
		self._buffer = []

	def start(self):
		if self.task is None:
			self.task = asyncio.create_task(self.run())

		return self.task

	async def run(self):
		self.log.info(f"Running with {self.delay}s delay, endpoint {self.endpoint}")

		while True:
			if len(self.channel) == 0:
				if self.channel.closed:
					break

				await self.wake.wait_or(self.delay)

			# A wake requested while we were busy is served by this cycle.
			self.wake.consume()

			await self.drain()

		self.log.info("Stopped")

	async def drain(self):
		"""
		Run back-to-back cycles until one drains less than its cap.
		"""

		while True:
			max_count = min(len(self.channel), self.process_max)

			if max_count == 0:
				return

			processed = await self.channel.recv_batch(self._buffer, max_count)

			try:
				await self.deliver(self._buffer)

			except Exception:
				self.log.exception(f"Unexpected error delivering batch ({processed} events)")

				self._dropped(processed)

			finally:
				self._buffer.clear()

			if processed < max_count:
				return

	async def deliver(self, events):
		"""
		Encode and POST one batch. Returns False if the batch was dropped.
		"""

		try:
			headers, body = self.encoder.encode(events)

		except SerializationError as e:
			self.log.warning(f"Failed to serialize batch ({len(events)} events): {e}")

			self._dropped(len(events))

			return False

		try:
			await self.transport.post(self.endpoint, body, headers)

		except DeliveryError as e:
			self.log.warning(f"Failed to send batch ({len(events)} events): {e}")

			self._dropped(len(events))

			return False

		self.stats["batches_sent"] += 1
		self.stats["events_sent"] += len(events)

		self.log.info(f"Flushed batch ({len(events)} events)")

		return True

	def _dropped(self, count):
		self.stats["batches_dropped"] += 1
		self.stats["events_dropped"] += count

	async def close(self, timeout=None):
		"""
		Stop accepting events, let the dispatcher drain what is queued and
		wait for it to exit.
		"""

		self.channel.close()
		self.wake.request_wake()

		if self.task is None:
			return

		try:
			await asyncio.wait_for(asyncio.shield(self.task), timeout)

		except asyncio.TimeoutError:
			self.log.warning(f"Did not stop within {timeout}s, cancelling")

			self.task.cancel()

			await asyncio.gather(self.task, return_exceptions=True)
