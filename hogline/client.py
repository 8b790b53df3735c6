import asyncio
import weakref

from datetime import datetime, timezone

from . import LIB_NAME, Loggable, __version__
from .batch import BatchEncoder, PROCESS_MAX
from .channel import Channel
from .dispatch import Dispatcher
from .errors import ConfigError
from .event import Event, NewEvent
from .transport import HTTPTransport, DebugTransport
from .wake import WakeSignal

US_BASE_URL = "https://us.i.posthog.com"
EU_BASE_URL = "https://eu.i.posthog.com"

REGIONS = {
	"us": US_BASE_URL,
	"eu": EU_BASE_URL,
}

class ClientBuilder:
	def __init__(self):
		self.tick = 2.0
		self.api_key = ""
		self.base_url = ""
		self.user_agent = f"{LIB_NAME}/{__version__}"
		self.precise_timings = False
		self.compression_threshold = None
		self.process_max = PROCESS_MAX
		self.transport = None
		self.debug_transport = False

	@classmethod
	def from_config(cls, cfg=None):
		"""
		Builder seeded from the $HOGLINE_CONFIG module (see `hogline.config`).
		"""

		if cfg is None:
			from . import config

			cfg = config()

		builder = cls()

		region = getattr(cfg, "REGION", None)

		if region is not None:
			if region not in REGIONS:
				raise ConfigError(f"Unknown region: {region}")

			builder.with_base_url(REGIONS[region])

		if getattr(cfg, "BASE_URL", None):
			builder.with_base_url(cfg.BASE_URL)

		builder.with_api_key(getattr(cfg, "API_KEY", ""))

		if getattr(cfg, "BATCH_DELAY", None) is not None:
			builder.batch_delay(cfg.BATCH_DELAY)

		if getattr(cfg, "USER_AGENT", None):
			builder.with_user_agent(cfg.USER_AGENT)

		builder.with_precise_timings(getattr(cfg, "PRECISE_TIMINGS", False))
		builder.with_compression_threshold(getattr(cfg, "COMPRESSION_THRESHOLD", None))

		if getattr(cfg, "DEBUG", False):
			builder.debug()

		return builder

	def batch_delay(self, seconds):
		self.tick = float(seconds)

		return self

	def in_official_us_region(self):
		self.base_url = US_BASE_URL

		return self

	def in_official_eu_region(self):
		self.base_url = EU_BASE_URL

		return self

	def with_base_url(self, url):
		self.base_url = str(url).rstrip("/")

		return self

	def with_api_key(self, api_key):
		self.api_key = api_key or ""

		return self

	def with_user_agent(self, user_agent):
		self.user_agent = user_agent

		return self

	def with_precise_timings(self, enabled=True):
		self.precise_timings = bool(enabled)

		return self

	def with_compression_threshold(self, nbytes):
		self.compression_threshold = nbytes

		return self

	def with_transport(self, transport):
		self.transport = transport

		return self

	def debug(self):
		self.debug_transport = True

		return self

	def validate(self):
		if not self.api_key:
			raise ConfigError("Missing API key")

		if not self.base_url:
			raise ConfigError("Missing base URL")

		if self.tick <= 0:
			raise ConfigError(f"Batch delay must be positive, got {self.tick}")

	def drive(self):
		"""
		Start the dispatcher on the running event loop and return the client.
		"""

		self.validate()

		loop = asyncio.get_running_loop()

		if self.transport is not None:
			transport = self.transport

		elif self.debug_transport:
			transport = DebugTransport()

		else:
			transport = HTTPTransport(self.user_agent)

		channel = Channel(loop)
		wake = WakeSignal(loop)

		dispatcher = Dispatcher(
			channel,
			wake,
			BatchEncoder(self.api_key, self.compression_threshold),
			transport,
			f"{self.base_url}/batch",
			delay=self.tick,
			process_max=self.process_max,
		)

		dispatcher.start()

		return Client(channel, wake, dispatcher, transport, self.precise_timings)

class Client(Loggable):
	"""
	Producer-side handle. Every method except `close()` is safe to call
	from any thread and returns immediately.
	"""

	def __init__(self, channel, wake, dispatcher, transport, precise_timings=False):
		self.channel = channel
		self.wake = wake
		self.dispatcher = dispatcher
		self.transport = transport
		self.precise_timings = precise_timings

		# Dropping the last reference closes the channel; the dispatcher
		# drains what is queued and exits. The transport is left open.
		weakref.finalize(self, _release, channel, wake)

	@classmethod
	def builder(cls):
		return ClientBuilder()

	def capture(self, name):
		timestamp = datetime.now(timezone.utc) if self.precise_timings else None

		return NewEvent(self, Event(name=name, timestamp=timestamp))

	def force_process(self):
		self.wake.request_wake()

	def send(self, event):
		self.channel.send(event)

	@property
	def stats(self):
		return {**self.dispatcher.stats, "queued": len(self.channel)}

	async def close(self, timeout=None):
		self.log.info(f"Closing with {len(self.channel)} queued events")

		await self.dispatcher.close(timeout)
		await self.transport.close()

	async def __aenter__(self):
		return self

	async def __aexit__(self, *exc):
		await self.close()

def _release(channel, wake):
	channel.close()
	wake.request_wake()
