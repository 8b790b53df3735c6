import asyncio
import json
import logging

import pytest

from hogline.agent import Agent
from hogline.client import ClientBuilder

def _agent(transport, socket_name="\0hogline-test"):
	builder = (
		ClientBuilder()
		.with_base_url("https://ingest.test")
		.with_api_key("phc_test")
		.batch_delay(60)
		.with_transport(transport)
	)

	return Agent(builder=builder, socket_name=socket_name)

@pytest.mark.asyncio
async def test_accept_validates_objects(transport, caplog):
	agent = _agent(transport)
	agent.client = agent.builder.drive()

	with caplog.at_level(logging.WARNING):
		assert agent.accept({"event": "signup", "distinct_id": "u1", "properties": {"plan": "pro"}})
		assert agent.accept({"event": "anon"})
		assert not agent.accept(["not", "an", "object"])
		assert not agent.accept({"distinct_id": "u1"})
		assert not agent.accept({"event": "bad", "properties": [1, 2]})

	assert "Missing 'event' field" in caplog.text

	await agent.client.close()

	batch = transport.payloads()[0]["batch"]

	assert [r["event"] for r in batch] == ["signup", "anon"]
	assert batch[0]["properties"]["plan"] == "pro"
	assert "distinct_id" not in batch[1]

@pytest.mark.asyncio
async def test_flush_flag_wakes_dispatcher(transport, wait_until):
	agent = _agent(transport)
	agent.client = agent.builder.drive()

	agent.accept({"event": "now", "flush": True})

	await wait_until(lambda: len(transport.sent) == 1)
	await agent.client.close()

@pytest.mark.asyncio
async def test_relays_socket_payloads(transport, wait_until, tmp_path):
	socket_name = str(tmp_path / "hl.sock")
	agent = _agent(transport, socket_name)
	task = asyncio.create_task(agent.run())

	await wait_until(lambda: agent.server is not None)

	async def send(data):
		reader, writer = await asyncio.open_unix_connection(socket_name)

		writer.write(data)
		writer.write_eof()

		await reader.read()

		writer.close()

		await writer.wait_closed()

	await send(json.dumps([{"event": "a"}, {"event": "b", "distinct_id": "u2"}]).encode())
	await send(b"{not json")
	await send(json.dumps({"event": "c", "flush": True}).encode())

	await wait_until(lambda: agent.client.stats["events_sent"] == 3)

	agent.stop()

	await asyncio.wait_for(task, 5)

	events = [r["event"] for p in transport.payloads() for r in p["batch"]]

	assert events == ["a", "b", "c"]

@pytest.mark.asyncio
async def test_oversized_and_stalled_payloads_are_dropped(transport, wait_until, tmp_path, caplog):
	socket_name = str(tmp_path / "hl.sock")
	agent = _agent(transport, socket_name)
	agent.max_payload = 64
	agent.read_timeout = 0.1

	task = asyncio.create_task(agent.run())

	await wait_until(lambda: agent.server is not None)

	with caplog.at_level(logging.WARNING):
		reader, writer = await asyncio.open_unix_connection(socket_name)

		writer.write(json.dumps([{"event": f"big{i}"} for i in range(20)]).encode())
		writer.write_eof()

		await asyncio.wait_for(reader.read(), 2)

		writer.close()

		await writer.wait_closed()

		# Never half-closes; the agent gives up after read_timeout.
		reader, writer = await asyncio.open_unix_connection(socket_name)

		writer.write(b'{"event": "stalled"}')

		await asyncio.wait_for(reader.read(), 2)

		writer.close()

		await writer.wait_closed()

	assert "Oversized payload" in caplog.text
	assert "Socket read timed out" in caplog.text
	assert len(agent.client.channel) == 0

	agent.stop()

	await asyncio.wait_for(task, 5)

	assert transport.sent == []
