import logging
import time
from anonymous_api import APIError
from config import Config

logger = logging.getLogger(__name__)


class NoSessionError(APIError):
    """Raised when a call needs a session and none can be obtained."""

    def __init__(self):
        super().__init__(401, "User is not logged in")


class SessionHandler:
    """
    Keeps the current THI API session for a client and hands it to
    authenticated calls, renewing it from remembered credentials when
    the API no longer accepts it.
    """

    def __init__(self, client, clock=time.time):
        self.client = client
        self.clock = clock
        self.session = None
        self.session_created = None
        self.is_student = None
        self._credentials = None

    def create_session(self, username, password, remember=False):
        """Logs in and stores the new session. Credentials are only kept if remember is set."""
        result = self.client.login(username, password)
        self.session = result["session"]
        self.session_created = self.clock()
        self.is_student = result["is_student"]
        self._credentials = (username, password) if remember else None
        logger.info(f"Opened session for {username} (student: {self.is_student})")
        return result

    def _renew_session(self):
        if not self._credentials:
            self.session = None
            self.session_created = None
            raise NoSessionError()

        logger.info("Session expired, logging in again with stored credentials")
        username, password = self._credentials
        self.create_session(username, password, remember=True)

    def _is_stale(self):
        return self.clock() - self.session_created > Config.SESSION_EXPIRES

    def call_with_session(self, method):
        """Calls method(session) with a valid session."""
        if not self.session:
            self._renew_session()
        elif self._is_stale():
            if self.client.is_alive(self.session):
                self.session_created = self.clock()
            else:
                self._renew_session()

        try:
            return method(self.session)
        except APIError as e:
            if e.data not in Config.SESSION_ERRORS:
                raise
            logger.warning(f"Session rejected by the API ({e})")
            # raises NoSessionError and drops the session without stored credentials
            self._renew_session()
            return method(self.session)

    def forget_session(self):
        """Closes the remote session and drops everything cached for it."""
        if self.session:
            try:
                self.client.close(self.session)
            except APIError as e:
                logger.warning(f"Failed to close session: {e}")

        self.session = None
        self.session_created = None
        self.is_student = None
        self._credentials = None
        self.client.cache.clear()
