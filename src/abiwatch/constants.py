from __future__ import annotations

# Bounded lookback for historical event queries (blocks).
DEFAULT_LOOKBACK_BLOCKS = 1_000

MIN_INT_BITS = 8
MAX_INT_BITS = 256
MAX_BYTES_SIZE = 32

# JSON-RPC error code most providers use for "query returned too many results".
RPC_LIMIT_EXCEEDED_CODE = -32005
