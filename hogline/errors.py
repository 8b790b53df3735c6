class HoglineError(Exception):
	pass

class ConfigError(HoglineError):
	"""
	Missing or unusable configuration; raised before the dispatcher starts.
	"""

class SerializationError(HoglineError):
	"""
	A batch could not be encoded into a request body.
	"""

	def __init__(self, message, count=0):
		super().__init__(message)

		self.count = count

class DeliveryError(HoglineError):
	"""
	The POST failed: transport error or a non-2xx status.
	"""

	def __init__(self, message, status=None):
		super().__init__(message)

		self.status = status
