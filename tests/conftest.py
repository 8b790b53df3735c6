import asyncio
import time

import pytest

from hogline.batch import BatchEncoder
from hogline.channel import Channel
from hogline.dispatch import Dispatcher
from hogline.event import Event
from hogline.transport import RecordingTransport
from hogline.wake import WakeSignal

ENDPOINT = "http://ingest.test/batch"

@pytest.fixture
def transport():
	return RecordingTransport()

@pytest.fixture
def wait_until():
	async def _wait_until(predicate, timeout=2.0):
		deadline = time.monotonic() + timeout

		while not predicate():
			if time.monotonic() > deadline:
				raise AssertionError("condition not met in time")

			await asyncio.sleep(0.005)

	return _wait_until

@pytest.fixture
def make_dispatcher(transport):
	"""
	Unstarted dispatcher wired to the recording transport.
	"""

	def _make(delay=60.0, compression_threshold=None, process_max=128):
		return Dispatcher(
			Channel(),
			WakeSignal(),
			BatchEncoder("phc_test", compression_threshold),
			transport,
			ENDPOINT,
			delay=delay,
			process_max=process_max,
		)

	return _make

def events(n, prefix="ev"):
	return [Event(name=f"{prefix}{i}", distinct_id=f"user{i}") for i in range(n)]
