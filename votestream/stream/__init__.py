# ==============================================
# STREAM
# ==============================================
#
# Everything between the streaming endpoint and the vote queue.
#
# Modules:
# --------
# - connection.py   → the one tracked connection, force-closeable
# - transport.py    → requests session dialing through the manager
# - signer.py       → OAuth1 Authorization header
# - decoder.py      → concatenated JSON objects → StreamRecords
# - reader.py       → retrying read / decode / match loop
# - refresher.py    → periodic forced reconnect
#
# ==============================================

from .connection import ConnectionHandle, ConnectionManager
from .decoder import JSONStreamDecoder, iter_records
from .reader import StreamReader
from .refresher import PeriodicRefresher
from .signer import OAuth1Signer
from .transport import build_session

__all__ = [
    "ConnectionHandle",
    "ConnectionManager",
    "JSONStreamDecoder",
    "iter_records",
    "StreamReader",
    "PeriodicRefresher",
    "OAuth1Signer",
    "build_session"
]
