"""
OAuth1 signing of the streaming request.
"""

from typing import Mapping
from urllib.parse import urlencode

from oauthlib.oauth1 import Client, SIGNATURE_HMAC, SIGNATURE_TYPE_AUTH_HEADER

from votestream.config import TwitterConfig

FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"


class OAuth1Signer:
    """Produces the Authorization header for a form-encoded request."""

    def __init__(self, consumer_key: str, consumer_secret: str, access_token: str, access_secret: str):
        self._client = Client(
            consumer_key,
            client_secret=consumer_secret,
            resource_owner_key=access_token,
            resource_owner_secret=access_secret,
            signature_method=SIGNATURE_HMAC,
            signature_type=SIGNATURE_TYPE_AUTH_HEADER,
        )

    @classmethod
    def from_config(cls, config: TwitterConfig) -> "OAuth1Signer":
        return cls(
            config.consumer_key,
            config.consumer_secret,
            config.access_token,
            config.access_secret,
        )

    def authorization_header(self, method: str, url: str, params: Mapping[str, str]) -> str:
        """
        Sign `method url` with the form parameters in the signature base.

        Returns:
            The value for the Authorization header, e.g. 'OAuth oauth_nonce=...'.
        """
        _, headers, _ = self._client.sign(
            url,
            http_method=method,
            body=urlencode(params),
            headers={"Content-Type": FORM_CONTENT_TYPE},
        )
        return headers["Authorization"]
