# ==============================================
# MongoClient
# ==============================================
#
# PURPOSE:
#   Supplies the filter terms: every option of every poll in the
#   polls collection. Queried once per stream connection attempt, so
#   edits to the polls take effect on the next reconnect.
#
# CLASS: MongoClient
# ------------------
#   Stateful — holds connection to MongoDB.
#
#   Constructor:
#   ------------
#   - __init__(host, port, database, collection, user=None, password=None)
#
#   Methods:
#   --------
#   - connect() -> None
#       Establish connection to MongoDB and ping it.
#
#   - disconnect() -> None
#       Close connection.
#
#   - load_options() -> list[str]
#       Concatenate the `options` array of every poll document.
#       Order follows the cursor; duplicates are kept.
#
#   Context Manager:
#   ----------------
#   - __enter__ / __exit__ for `with MongoClient(...) as db:` usage.
#
# ==============================================

import logging
from typing import List, Optional

from pymongo import MongoClient as PyMongoClient
from pymongo.errors import ConnectionFailure, OperationFailure, PyMongoError

from votestream.config import MongoConfig
from votestream.errors import ProviderError

logger = logging.getLogger(__name__)


class MongoClient:
    def __init__(self, host, port, database, collection="polls", user=None, password=None,
                 server_selection_timeout_ms: int = 5000):
        # Store connection params. Don't connect yet.
        self.host = host
        self.port = port
        self.database = database
        self.collection = collection
        self.user = user
        self.password = password
        self.server_selection_timeout_ms = server_selection_timeout_ms
        self.client: Optional[PyMongoClient] = None

    @classmethod
    def from_config(cls, config: MongoConfig) -> "MongoClient":
        return cls(
            host=config.host,
            port=config.port,
            database=config.database,
            collection=config.collection,
            user=config.user,
            password=config.password
        )

    def connect(self):
        # Establish connection to MongoDB.
        try:
            if self.user and self.password:
                uri = f"mongodb://{self.user}:{self.password}@{self.host}:{self.port}/{self.database}"
            else:
                uri = f"mongodb://{self.host}:{self.port}/{self.database}"
            logger.info("dialing mongodb: %s:%s", self.host, self.port)
            self.client = PyMongoClient(uri, serverSelectionTimeoutMS=self.server_selection_timeout_ms)
            # Test connection
            self.client.admin.command('ping')
            logger.info("✓ Connected to MongoDB")
        except ConnectionFailure as e:
            logger.error("✗ Could not connect to MongoDB: %s", e)
            raise
        except OperationFailure as e:
            logger.error("✗ Authentication failed: %s", e)
            raise

    def disconnect(self):
        # Close connection.
        if self.client:
            self.client.close()
            logger.info("closed database connection")
            self.client = None

    def load_options(self) -> List[str]:
        """
        Load the options of all polls.

        Returns:
            Every option string across all poll documents.

        Raises:
            ProviderError: if not connected or the query fails.
        """
        if not self.client:
            raise ProviderError("Not connected to MongoDB.")
        collection = self.client[self.database][self.collection]
        options: List[str] = []
        try:
            for poll in collection.find({}, {"options": 1}):
                options.extend(str(option) for option in poll.get("options") or [])
        except PyMongoError as e:
            raise ProviderError(f"loading poll options failed: {e}") from e
        return options

    def __enter__(self):
        # For `with MongoClient(...) as db:` usage.
        self.connect()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.disconnect()
