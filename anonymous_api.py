import logging
import requests
from config import Config

logger = logging.getLogger(__name__)


class APIError(Exception):
    """Error reported by the THI API, in either of its status formats."""

    def __init__(self, status, data):
        super().__init__(f"{data} ({status})")
        self.status = status
        self.data = data


class APIConnectionError(APIError):
    """The THI API could not be reached or sent an unreadable response."""

    def __init__(self, message):
        super().__init__(-1, message)


class ResponseCache:
    """Flat in-memory store for API responses. Lives as long as the session."""

    def __init__(self):
        self._entries = {}

    def get(self, key):
        return self._entries.get(key)

    def set(self, key, value):
        self._entries[key] = value

    def clear(self):
        self._entries.clear()

    def __contains__(self, key):
        return key in self._entries

    def __len__(self):
        return len(self._entries)


class AnonymousAPIClient:
    """
    Client for the parts of the THI API that need no session:
    opening, probing and closing sessions.
    """

    def __init__(self):
        self.url = Config.THI_API_URL
        self.headers = {"User-Agent": Config.USER_AGENT}
        self.cache = ResponseCache()

    def request(self, params):
        """Posts the form parameters to the API and returns the decoded JSON body."""
        try:
            resp = requests.post(
                self.url,
                data=params,
                headers=self.headers,
                timeout=Config.API_TIMEOUT
            )
            resp.raise_for_status()
            return resp.json()
        except requests.exceptions.Timeout:
            logger.error(f"Timeout calling {params.get('service')}/{params.get('method')}")
            raise APIConnectionError("Request timed out")
        except requests.exceptions.RequestException as e:
            logger.error(f"Error calling {params.get('service')}/{params.get('method')}: {e}")
            raise APIConnectionError(str(e))
        except ValueError as e:
            logger.error(f"Invalid JSON from {params.get('service')}/{params.get('method')}: {e}")
            raise APIConnectionError("Invalid response")

    def login(self, username, password):
        """Opens a new session. Returns the session id and whether the user is a student."""
        res = self.request({
            "service": "session",
            "method": "open",
            "format": "json",
            "username": username,
            "passwd": password,
        })
        if res["status"] != 0:
            raise APIError(res["status"], res["data"])

        data = res["data"]
        return {
            "session": data[0],
            "is_student": len(data) > 2 and data[2] == 3,
        }

    def is_alive(self, session):
        res = self.request({
            "service": "session",
            "method": "isalive",
            "format": "json",
            "session": session,
        })
        return res.get("data") == "STATUS_OK"

    def close(self, session):
        res = self.request({
            "service": "session",
            "method": "close",
            "format": "json",
            "session": session,
        })
        return res.get("data") is True
