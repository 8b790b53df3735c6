import json
import gzip

from collections.abc import Mapping

from . import LIB_NAME, Loggable
from .errors import SerializationError

PROCESS_MAX = 128

MIME_JSON = "application/json"

def shape(event, lib_name=LIB_NAME):
	"""
	Wire representation of a single event.
	"""

	reserved = {
		"$process_person_profile": not event.anonymous,
		"$lib_name": lib_name,
	}

	properties = dict(reserved)

	if event.properties is not None:
		if not isinstance(event.properties, Mapping):
			raise SerializationError(
				f"{event.name}: properties must be a mapping, "
				f"got {type(event.properties).__name__}"
			)

		properties.update(event.properties)

		# Reserved keys always reflect the event itself.
		properties.update(reserved)

	record = {"event": event.name}

	if event.distinct_id:
		record["distinct_id"] = event.distinct_id

	record["properties"] = properties

	if event.timestamp is not None:
		record["timestamp"] = event.timestamp.isoformat()

	return record

class BatchEncoder(Loggable):
	def __init__(self, api_key, compression_threshold=None, lib_name=LIB_NAME):
		self.api_key = api_key
		self.compression_threshold = compression_threshold
		self.lib_name = lib_name

	def encode(self, events):
		"""
		Shape and serialize a whole batch into (headers, body).

		Raises SerializationError if any event in the batch cannot be
		encoded; the batch is then unusable as a whole.
		"""

		payload = {
			"api_key": self.api_key,
			"batch": [shape(ev, self.lib_name) for ev in events],
		}

		try:
			raw_body = json.dumps(
				payload,
				separators=(",", ":"),
				allow_nan=False,
			).encode()

		except (TypeError, ValueError) as e:
			raise SerializationError(str(e), count=len(events)) from e

		headers = {"Content-Type": MIME_JSON}

		if (
			self.compression_threshold is not None
			and len(raw_body) > self.compression_threshold
		):
			body = gzip.compress(raw_body)
			ratio = len(body) / len(raw_body)

			headers["Content-Encoding"] = "gzip"

			self.log.debug(
				f"size: {len(raw_body)} "
				f"compressed: {len(body)} "
				f"ratio: {ratio:.2f}"
			)

		else:
			body = raw_body

			self.log.debug(f"size: {len(raw_body)}")

		return headers, body
