import logging
import threading
import time
import uuid
from config import Config

logger = logging.getLogger(__name__)


class ClientRegistry:
    """
    Authenticated clients of the HTTP surface, keyed by login token.
    Tokens unused for longer than Config.CLIENT_IDLE_TIMEOUT are dropped.
    """

    def __init__(self, idle_timeout=None, clock=time.time):
        self.idle_timeout = idle_timeout if idle_timeout is not None else Config.CLIENT_IDLE_TIMEOUT
        self.clock = clock
        self._clients = {}  # token -> [client, last used]
        self._lock = threading.Lock()

    def add(self, client, token=None):
        """Registers a client and returns its token. Idle clients are purged first."""
        self.purge_idle()
        token = token or uuid.uuid4().hex
        with self._lock:
            self._clients[token] = [client, self.clock()]
        return token

    def get(self, token):
        """Returns the client of a token and marks it as used, or None."""
        if not token:
            return None
        expired = None
        with self._lock:
            entry = self._clients.get(token)
            if entry is None:
                return None
            if self.clock() - entry[1] > self.idle_timeout:
                expired = self._clients.pop(token)[0]
            else:
                entry[1] = self.clock()
                return entry[0]

        self._close(expired)
        return None

    def remove(self, token):
        """Drops a token without closing its session. Returns the client, if any."""
        with self._lock:
            entry = self._clients.pop(token, None) if token else None
        return entry[0] if entry else None

    def purge_idle(self):
        now = self.clock()
        with self._lock:
            idle = [token for token, (_, last_used) in self._clients.items()
                    if now - last_used > self.idle_timeout]
            expired = [self._clients.pop(token)[0] for token in idle]

        for client in expired:
            self._close(client)
        if expired:
            logger.info(f"Dropped {len(expired)} idle clients")

    def clear(self):
        with self._lock:
            self._clients.clear()

    def _close(self, client):
        # close errors are logged by the session handler
        client.session_handler.forget_session()

    def __contains__(self, token):
        with self._lock:
            return token in self._clients

    def __len__(self):
        with self._lock:
            return len(self._clients)
