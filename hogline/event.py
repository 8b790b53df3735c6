import collections.abc
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Any, Mapping, Optional

@dataclass(frozen=True)
class Event:
	name: str
	distinct_id: str = ""
	properties: Optional[Mapping[str, Any]] = None
	timestamp: Optional[datetime] = None

	@property
	def anonymous(self) -> bool:
		return not self.distinct_id

class NewEvent:
	"""
	First builder stage returned by `Client.capture()`.

	An identity has to be chosen (`identify()` or `anonymous()`) before
	properties can be attached or the event enqueued.
	"""

	__slots__ = ("_client", "_event")

	def __init__(self, client, event: Event):
		self._client = client
		self._event = event

	def identify(self, distinct_id: str) -> "IdentifiedEvent":
		return IdentifiedEvent(
			self._client,
			replace(self._event, distinct_id=str(distinct_id)),
		)

	def anonymous(self) -> "IdentifiedEvent":
		return IdentifiedEvent(self._client, self._event)

	def __repr__(self) -> str:
		return f"NewEvent({self._event.name!r})"

class IdentifiedEvent:
	__slots__ = ("_client", "_event")

	def __init__(self, client, event: Event):
		self._client = client
		self._event = event

	@property
	def event(self) -> Event:
		return self._event

	def properties(self, properties: Mapping[str, Any]) -> "IdentifiedEvent":
		"""
		Attach a payload. Mappings are copied here so later changes to the
		caller's dict do not reach the queued event.
		"""

		if isinstance(properties, collections.abc.Mapping):
			properties = dict(properties)

		return IdentifiedEvent(
			self._client,
			replace(self._event, properties=properties),
		)

	def enqueue(self) -> None:
		"""
		Hand the event to the client's channel. Never blocks, never raises.
		"""

		self._client.send(self._event)

	def __repr__(self) -> str:
		return f"IdentifiedEvent({self._event.name!r}, {self._event.distinct_id!r})"
