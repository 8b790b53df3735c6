import os
import asyncio
import signal
import logging
import json

from . import config, Loggable
from .client import ClientBuilder
from .errors import HoglineError

MAX_PAYLOAD = 1 << 20

READ_TIMEOUT = 5.0

class PayloadTooLarge(HoglineError):
	pass

class Agent(Loggable):
	"""
	Local relay: accepts JSON events on a Unix socket and forwards them
	through a batching client.
	"""

	def __init__(
		self,
		builder=None,
		socket_name=None,
		max_payload=MAX_PAYLOAD,
		read_timeout=READ_TIMEOUT,
	):
		self.builder = builder or ClientBuilder.from_config()
		self.socket_name = socket_name or config().SOCKET_NAME
		self.max_payload = max_payload
		self.read_timeout = read_timeout
		self.client = None
		self.server = None

	def accept(self, item):
		"""
		Enqueue one decoded object. Returns False if it was rejected.
		"""

		if not isinstance(item, dict):
			self.log.warning("Non-object JSON received")

			return False

		name = item.get("event")

		if not isinstance(name, str) or not name:
			self.log.warning("Missing 'event' field")

			return False

		properties = item.get("properties")

		if properties is not None and not isinstance(properties, dict):
			self.log.warning(f"{name}: 'properties' is not an object")

			return False

		distinct_id = item.get("distinct_id")
		event = self.client.capture(name)

		if distinct_id:
			event = event.identify(distinct_id)

		else:
			event = event.anonymous()

		if properties is not None:
			event = event.properties(properties)

		event.enqueue()

		if item.get("flush"):
			self.client.force_process()

		return True

	async def read_payload(self, reader):
		"""
		Read until EOF, refusing more than `max_payload` bytes.
		"""

		data = bytearray()

		while True:
			chunk = await reader.read(4096)

			if not chunk:
				return bytes(data)

			data += chunk

			if len(data) > self.max_payload:
				raise PayloadTooLarge(len(data))

	async def handle_socket(self, reader, writer):
		try:
			try:
				data = await asyncio.wait_for(
					self.read_payload(reader),
					self.read_timeout,
				)

			except asyncio.TimeoutError:
				self.log.warning(f"Socket read timed out after {self.read_timeout}s")

				return

			except PayloadTooLarge:
				self.log.warning(f"Oversized payload (over {self.max_payload} bytes), dropped")

				return

			if not data:
				return

			try:
				payload = json.loads(data.decode())

			except (json.JSONDecodeError, UnicodeDecodeError):
				self.log.warning("Invalid JSON received")

				return

			# Normalize to list
			if not isinstance(payload, list):
				payload = [payload]

			accepted = sum(1 for item in payload if self.accept(item))

			self.log.info(f"Socket payload accepted ({accepted}/{len(payload)} events)")

		except (OSError, asyncio.IncompleteReadError) as e:
			self.log.warning(f"Socket error: {e}")

		finally:
			writer.close()

			await writer.wait_closed()

	async def run(self):
		self.log.info("Running")

		self.client = self.builder.drive()

		if not self.socket_name.startswith("\0"):
			if os.path.exists(self.socket_name):
				os.unlink(self.socket_name)

		self.server = await asyncio.start_unix_server(
			self.handle_socket,
			path=self.socket_name,
		)

		self.log.debug(f"Created socket: {self.socket_name!r}")

		try:
			async with self.server:
				await self.server.serve_forever()

		except asyncio.CancelledError:
			pass

		finally:
			self.log.info("Stopping")

			await self.client.close()

			self.log.info("Stopped")

	def stop(self):
		self.log.info("Stop requested")

		if self.client:
			self.client.force_process()

		if self.server:
			self.server.close()

async def main():
	agent = Agent()
	loop = asyncio.get_running_loop()

	loop.add_signal_handler(signal.SIGTERM, agent.stop)
	loop.add_signal_handler(signal.SIGINT, agent.stop)

	await agent.run()

def cli():
	logging.basicConfig(
		level=logging.DEBUG if getattr(config(), "DEBUG", False) else logging.INFO,
		format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
	)

	asyncio.run(main())

if __name__ == "__main__":
	cli()
