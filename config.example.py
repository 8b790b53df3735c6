# Point $HOGLINE_CONFIG at a copy of this file.

API_KEY = "phc_xxxxxxxxxxxxxxxxxxxxxxxx"

# Either REGION ("us" or "eu") or an explicit BASE_URL.
REGION = "us"
# BASE_URL = "https://posthog.example.com"

BATCH_DELAY = 2.0
PRECISE_TIMINGS = False

# Bodies above this many bytes are gzip compressed.
COMPRESSION_THRESHOLD = 4096

# Log bodies instead of sending them.
DEBUG = False

# Relay agent only. A leading NUL selects an abstract socket.
SOCKET_NAME = "\0hogline"
