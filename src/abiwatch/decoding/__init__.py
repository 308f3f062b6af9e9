"""Event decoding for live and historical logs.

This package provides:
- `decode_live`: positional args + log metadata into an `EventLogRecord`
- `decode_log_args` / `decode_raw_log`: raw topics + data via eth_abi
- `decode_historical`: bounded-lookback query through a chain provider
- `merge`: dedupe by id, newest block first
"""

from abiwatch.decoding.decoder import (
    decode_historical,
    decode_live,
    decode_log_args,
    decode_raw_log,
    merge,
)
from abiwatch.decoding.utils import history_window, to_display

__all__ = [
    "decode_historical",
    "decode_live",
    "decode_log_args",
    "decode_raw_log",
    "merge",
    "history_window",
    "to_display",
]
