import asyncio

def notify(loop, event):
	"""
	Set an asyncio.Event from any thread.

	Off the loop thread the set is scheduled with `call_soon_threadsafe`.
	Returns False when the loop has already been closed.
	"""

	if event.is_set():
		return True

	try:
		running = asyncio.get_running_loop()

	except RuntimeError:
		running = None

	if loop is None or running is loop:
		event.set()

		return True

	try:
		loop.call_soon_threadsafe(event.set)

	except RuntimeError:
		return False

	return True

class WakeSignal:
	"""
	Single-permit coalescing signal.

	Any number of `request_wake()` calls before the dispatcher notices
	collapse into one pending wake.
	"""

	def __init__(self, loop=None):
		self._loop = loop
		self._event = asyncio.Event()

	@property
	def pending(self):
		return self._event.is_set()

	def request_wake(self):
		notify(self._loop, self._event)

	def consume(self):
		"""
		Take a pending permit without waiting.
		"""

		if self._event.is_set():
			self._event.clear()

			return True

		return False

	async def wait_or(self, duration):
		"""
		Wait until a wake is requested or `duration` seconds pass.

		Returns True if a wake was consumed, False if the timer fired.
		"""

		if self._loop is None:
			self._loop = asyncio.get_running_loop()

		try:
			await asyncio.wait_for(self._event.wait(), duration)

		except asyncio.TimeoutError:
			return False

		self._event.clear()

		return True
