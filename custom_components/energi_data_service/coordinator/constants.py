"""Constants for coordinator module."""

from datetime import timedelta

# Delay before the first refresh retry while bootstrapping
INITIAL_RETRY_DELAY = timedelta(seconds=15)

# Lower bound for any scheduled refresh
MINIMUM_RETRY_DELAY = timedelta(seconds=1)

# Back-off after transient failures (communication, parse, empty data)
FAILURE_BACKOFF_MINIMUM = timedelta(minutes=1)
FAILURE_BACKOFF_MAXIMUM = timedelta(hours=1)

# Back-off after the API reports too many requests
HTTP_TOO_MANY_REQUESTS = 429
RATE_LIMIT_BACKOFF_MINIMUM = timedelta(minutes=5)

# Configuration errors are retried rarely, never given up
CONFIGURATION_ERROR_RETRY_DELAY = timedelta(hours=6)

# Back-off while tomorrow's spot prices are overdue after the publication anchor
EXPECTED_DATA_BACKOFF_MINIMUM = timedelta(minutes=10)
EXPECTED_DATA_BACKOFF_MAXIMUM = timedelta(hours=1)

# Random spread applied to back-off delays (fraction of the delay)
# Prevents all installations from hitting the API at the same moment
RETRY_JITTER = 0.2

# Hourly republish tick fires this long after the hour boundary
HOURLY_TICK_EPSILON = timedelta(milliseconds=1)

# Retry delay for an hourly tick that fired while a refresh cycle was running
HOURLY_TICK_DEFER_DELAY = timedelta(seconds=1)
