# ==============================================
# PUBLISHING
# ==============================================
#
# Modules:
# --------
# - vote_queue.py     → closable FIFO between reader and publisher
# - publisher.py      → drains the queue into the sink
# - nsq_producer.py   → nsqd HTTP sink
#
# ==============================================

from .vote_queue import VoteQueue
from .publisher import VotePublisher
from .nsq_producer import NSQProducer

__all__ = [
    "VoteQueue",
    "VotePublisher",
    "NSQProducer"
]
