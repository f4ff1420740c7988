# verity_core/constants.py
"""Wire-level contracts and policy limits shared across verity_core."""

import re

# Deep-link / QR payload: https://<ALLOWED_HOST>/t/<token>[/]
ALLOWED_SCHEME = "https"
ALLOWED_HOST = "link.reflectapp.com"
PATH_PREFIX = "/t/"

# Vendor QR generator contract
TOKEN_PATTERN = re.compile(r"qr_[A-Za-z0-9]{20,30}")

# Offline queue policy
QUEUE_CAPACITY = 5
MAX_RETRIES = 3

# Cache
DEFAULT_CACHE_TTL = 86400.0  # seconds

# Remote resolver
DEFAULT_API_URL = "https://api.reflectapp.com/v1"
REQUEST_TIMEOUT = 10
DEFAULT_APP_VERSION = "1.0.0"
DEVICE_HASH_SALT = "reflect_rate_limit_v1"
