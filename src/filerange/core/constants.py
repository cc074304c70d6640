"""
Defaults shared by the splitter, limiter and reader.
"""

# Split granularity (64 MiB per work item).
DEFAULT_DESIRED_BUNDLE_SIZE_BYTES = 64 * 1024 * 1024

# Randomly reassign work items before reading.
DEFAULT_USES_REDISTRIBUTION = True

# Max concurrently open record sources per process.
DEFAULT_CONCURRENCY_LIMIT = 10

# Reader threads per pipeline; may exceed the concurrency limit.
DEFAULT_MAX_WORKERS = 16

# Records buffered between reader threads and the consumer.
DEFAULT_OUTPUT_BUFFER_SIZE = 1024

# Buffer used when wrapping ranged S3 streams.
DEFAULT_READ_BUFFER_SIZE = 1024 * 1024  # 1 MB

# Poll interval for workers blocked on a full output queue.
QUEUE_POLL_SECONDS = 0.1

S3_SCHEME = "s3://"
