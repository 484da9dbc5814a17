# ==============================================
# STORAGE
# ==============================================
#
# Where the filter terms come from.
#
# Modules:
# --------
# - mongo_client.py    → poll options stored in MongoDB
#
# ==============================================

from .mongo_client import MongoClient

__all__ = [
    "MongoClient"
]
