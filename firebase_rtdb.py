"""
Thin client for the Firebase Realtime Database REST API.

Records for a user live under `{base}/{resource}Owner/{userId}`; every request
authenticates with the user's ID token passed as the `auth` query parameter.
"""
import logging
import re
from dataclasses import dataclass

import requests

from models import FirebaseWeatherForecast

logger = logging.getLogger(__name__)

FIREBASE_RTDB_BASE_URL = "https://weather-forecasts-default-rtdb.firebaseio.com"
DEFAULT_RESOURCE = FirebaseWeatherForecast.__name__
DEFAULT_TIMEOUT = 30.0

# Characters the Realtime Database forbids in keys, plus ASCII control characters.
INVALID_KEY_CHARS = re.compile(r"[.$#\[\]/\x00-\x1f\x7f]")

JSON_HEADERS = {"Content-Type": "application/json"}


@dataclass(frozen=True)
class FirebaseSession:
    """The signed-in Firebase user: local id plus ID token."""
    user_id: str
    id_token: str

    def __repr__(self):
        return f"FirebaseSession(user_id={self.user_id!r}, id_token=***)"


class FirebaseRtdb:
    def __init__(self, session: FirebaseSession, base_url: str | None = None,
                 resource: str = DEFAULT_RESOURCE, timeout: float = DEFAULT_TIMEOUT):
        if not session or not session.user_id:
            raise ValueError("A signed-in Firebase user is required")
        self.session = session
        self.base_url = (base_url or FIREBASE_RTDB_BASE_URL).rstrip("/")
        self.resource = resource
        self.timeout = timeout

    @property
    def owner_path(self):
        return f"{self.base_url}/{self.resource}Owner/{self.session.user_id}"

    @property
    def collection_url(self):
        return f"{self.owner_path}.json"

    def item_url(self, key: str):
        if not key:
            raise ValueError("A record key is required for single-item requests")
        if INVALID_KEY_CHARS.search(key):
            raise ValueError(f"Invalid record key {key!r}")
        return f"{self.owner_path}/{key}.json"

    def _params(self):
        return {"auth": self.session.id_token}

    def fetch_all(self):
        logger.debug("GET %s", self.collection_url)
        return requests.get(self.collection_url, params=self._params(),
                            headers=JSON_HEADERS, timeout=self.timeout)

    def push(self, body: dict):
        logger.debug("POST %s", self.collection_url)
        return requests.post(self.collection_url, params=self._params(), json=body,
                             headers=JSON_HEADERS, timeout=self.timeout)

    def write(self, key: str, body: dict):
        url = self.item_url(key)
        logger.debug("PUT %s", url)
        return requests.put(url, params=self._params(), json=body,
                            headers=JSON_HEADERS, timeout=self.timeout)

    def remove(self, key: str):
        url = self.item_url(key)
        logger.debug("DELETE %s", url)
        return requests.delete(url, params=self._params(),
                               headers=JSON_HEADERS, timeout=self.timeout)


# Converts the {key: record} object returned by a collection GET into records, in response order.
def parse_collection(payload):
    # The database answers `null` when nothing is stored at the path yet.
    if payload is None:
        return []
    if not isinstance(payload, dict):
        raise ValueError(f"Unexpected collection payload of type {type(payload).__name__}")
    return [FirebaseWeatherForecast.from_json(value, name=key) for key, value in payload.items()]
