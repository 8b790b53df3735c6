import os
import logging
import importlib.util
import pathlib

__version__ = "0.1.0"

LIB_NAME = "hogline"

class Loggable:
	def __init_subclass__(cls):
		cls.log = logging.getLogger(f"{cls.__name__}")

_CONFIG = None

def config():
	"""
	Load (once) the Python config module named by $HOGLINE_CONFIG.
	"""

	global _CONFIG

	if _CONFIG is not None:
		return _CONFIG

	from .errors import ConfigError

	path = os.environ.get("HOGLINE_CONFIG")

	if not path:
		raise ConfigError(
			"HOGLINE_CONFIG environment variable not set"
		)

	path = pathlib.Path(path)

	if not path.exists():
		raise ConfigError(f"Config file not found: {path}")

	spec = importlib.util.spec_from_file_location("hogline_user_CONFIG", path)
	module = importlib.util.module_from_spec(spec)
	spec.loader.exec_module(module)

	_CONFIG = module

	return _CONFIG

def reset_config():
	global _CONFIG

	_CONFIG = None

from .client import Client, ClientBuilder  # noqa: E402
from .errors import (  # noqa: E402
	HoglineError,
	ConfigError,
	SerializationError,
	DeliveryError,
)

__all__ = [
	"Client",
	"ClientBuilder",
	"HoglineError",
	"ConfigError",
	"SerializationError",
	"DeliveryError",
	"config",
]
