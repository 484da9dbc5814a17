# ==============================================
# NSQProducer
# ==============================================
#
# PURPOSE:
#   Delivers votes to nsqd over its HTTP API:
#     POST http://<nsqd-http-address>/pub?topic=<topic>
#   with the option text as the message body.
#
#   Fire-and-forget from the pipeline's point of view: a failed
#   publish raises PublishError and the caller logs it. Nothing is
#   retried here.
#
# ==============================================

import logging
from typing import Optional

import requests

from votestream.config import NSQConfig
from votestream.errors import PublishError

logger = logging.getLogger(__name__)


class NSQProducer:
    def __init__(self, http_address: str, topic: str = "votes", timeout: float = 5.0,
                 session: Optional[requests.Session] = None):
        self.http_address = http_address
        self.topic = topic
        self.timeout = timeout
        self._session = session or requests.Session()
        self._stopped = False

    @classmethod
    def from_config(cls, config: NSQConfig) -> "NSQProducer":
        return cls(config.http_address, config.topic, config.timeout_seconds)

    @property
    def pub_url(self) -> str:
        return f"http://{self.http_address}/pub"

    def publish(self, message: str) -> None:
        """
        Publish one message to the topic.

        Raises:
            PublishError: if the producer is stopped, nsqd is unreachable
                or it answers with a non-2xx status.
        """
        if self._stopped:
            raise PublishError("producer is stopped")
        try:
            response = self._session.post(
                self.pub_url,
                params={"topic": self.topic},
                data=message.encode("utf-8"),
                timeout=self.timeout
            )
            response.raise_for_status()
        except requests.RequestException as e:
            raise PublishError(f"publish to '{self.topic}' failed: {e}") from e

    def stop(self) -> None:
        if self._stopped:
            return
        self._stopped = True
        self._session.close()
        logger.info("NSQ producer stopped")
