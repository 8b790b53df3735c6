import asyncio
import threading
import time

import pytest

from hogline.wake import WakeSignal

@pytest.mark.asyncio
async def test_wait_or_times_out_without_wake():
	wake = WakeSignal()

	start = time.monotonic()

	assert await wake.wait_or(0.05) is False
	assert time.monotonic() - start >= 0.04

@pytest.mark.asyncio
async def test_request_wake_preempts_timer():
	wake = WakeSignal()

	asyncio.get_running_loop().call_later(0.01, wake.request_wake)

	start = time.monotonic()

	assert await wake.wait_or(30) is True
	assert time.monotonic() - start < 5

@pytest.mark.asyncio
async def test_repeated_requests_coalesce_into_one_permit():
	wake = WakeSignal()

	for _ in range(5):
		wake.request_wake()

	assert wake.pending

	assert await wake.wait_or(0.01) is True
	assert await wake.wait_or(0.01) is False

def test_consume_takes_pending_permit():
	wake = WakeSignal()

	assert wake.consume() is False

	wake.request_wake()
	wake.request_wake()

	assert wake.consume() is True
	assert wake.consume() is False

@pytest.mark.asyncio
async def test_request_wake_from_other_thread():
	wake = WakeSignal(asyncio.get_running_loop())

	thread = threading.Timer(0.02, wake.request_wake)
	thread.start()

	try:
		assert await wake.wait_or(30) is True

	finally:
		thread.join()
