import asyncio
import gzip
import json

from abc import ABC, abstractmethod

import aiohttp

from . import Loggable
from .errors import DeliveryError

class Transport(ABC, Loggable):
	@abstractmethod
	async def post(self, endpoint, body, headers):
		"""
		Send one request body. Raises DeliveryError on failure.
		"""

	async def close(self):
		pass

class HTTPTransport(Transport):
	def __init__(self, user_agent, timeout=10):
		self.user_agent = user_agent
		self.timeout = timeout
		self.session = None

	def _session(self):
		if self.session is None or self.session.closed:
			self.session = aiohttp.ClientSession(
				headers={"User-Agent": self.user_agent},
				timeout=aiohttp.ClientTimeout(total=self.timeout),
			)

			self.log.info(f"Session opened ({self.user_agent})")

		return self.session

	async def post(self, endpoint, body, headers):
		try:
			async with self._session().post(
				endpoint,
				data=body,
				headers=headers,
			) as resp:
				if not 200 <= resp.status < 300:
					raise DeliveryError(
						f"Bad response: {resp.status} {resp.reason}",
						status=resp.status,
					)

				self.log.debug(f"Response {resp.status}")

				return resp.status

		except (aiohttp.ClientError, asyncio.TimeoutError) as e:
			raise DeliveryError(f"{type(e).__name__}: {e}") from e

	async def close(self):
		if self.session is not None:
			await self.session.close()

			self.session = None

			self.log.info("Session closed")

# Simply logs `post/close`, rather than firing them off.
class DebugTransport(Transport):
	async def post(self, endpoint, body, headers):
		if headers.get("Content-Encoding") == "gzip":
			body = gzip.decompress(body)

		self.log.info(f"Would send to {endpoint}: {body.decode()}")

		return 200

	async def close(self):
		self.log.info("Closed")

# Accumulates into the `.sent` member (for use in pytest, etc).
class RecordingTransport(Transport):
	def __init__(self, status=200):
		self.status = status
		self.sent = []

	async def post(self, endpoint, body, headers):
		self.sent.append((endpoint, headers, body))

		if not 200 <= self.status < 300:
			raise DeliveryError(f"Bad response: {self.status}", status=self.status)

		return self.status

	def payloads(self):
		"""
		Decoded JSON bodies, in send order.
		"""

		out = []

		for _, headers, body in self.sent:
			if headers.get("Content-Encoding") == "gzip":
				body = gzip.decompress(body)

			out.append(json.loads(body))

		return out
