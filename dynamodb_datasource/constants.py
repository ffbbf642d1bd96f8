DEFAULT_REGION = "us-east-1"

CACHE_PREFIX_KEY = "sup:"
TTL_SEC = 300

PARTITION_KEY_TYPE = "HASH"
RANGE_KEY_TYPE = "RANGE"
