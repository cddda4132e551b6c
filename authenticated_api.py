import logging
from anonymous_api import APIError, AnonymousAPIClient
from session_handler import SessionHandler
from config import Config
from companion_data import load_json

logger = logging.getLogger(__name__)

COURSE_SHORT_NAMES = load_json("course_short_names.json")


def _path_segments(url):
    return [x for x in url.split("/") if len(x) > 0]


def extract_faculty_from_personal_data(data, course_short_names=None):
    """Determines the user's faculty (e.g. 'Informatik') from their personal data."""
    if course_short_names is None:
        course_short_names = COURSE_SHORT_NAMES

    if not data or not data.get("persdata"):
        return None
    persdata = data["persdata"]
    if not persdata.get("stg") and not persdata.get("po_url"):
        return None

    faculties = [key for key in course_short_names if key != "_source"]

    # The PO URL is more reliable than the course list, which is not always up to date
    if persdata.get("po_url"):
        segments = _path_segments(persdata["po_url"])
        po_key = segments[-3:][0] if segments else None
        for faculty in faculties:
            if course_short_names[faculty].get("poKey") == po_key:
                return faculty

    short_name = persdata.get("stg")
    for faculty in faculties:
        if short_name in course_short_names[faculty].get("courses", []):
            return faculty

    return None


def extract_spo_from_personal_data(data):
    """Determines the user's SPO version: the last path segment of the PO URL."""
    if not data or not data.get("persdata") or not data["persdata"].get("po_url"):
        return None

    segments = _path_segments(data["persdata"]["po_url"])
    return segments[-1] if segments else None


class AuthenticatedAPIClient(AnonymousAPIClient):
    """
    Client for accessing the THI API as a particular user.

    Responses of read-only calls are memoized in self.cache for as long
    as the session lives.
    """

    def __init__(self):
        super().__init__()
        self.session_handler = SessionHandler(self)

    def request_authenticated(self, params):
        """Performs a request with the current session and unwraps the payload."""
        def call(session):
            res = self.request({"session": session, **params})

            # old status format
            if res["status"] != 0:
                raise APIError(res["status"], res["data"])
            # new status format
            if res["data"][0] != 0:
                raise APIError(res["data"][0], res["data"][1])

            return res["data"][1]

        return self.session_handler.call_with_session(call)

    def request_cached(self, cache_key, params):
        """Performs an authenticated request, answering from the cache when possible."""
        if cache_key in self.cache:
            logger.debug(f"Cache HIT for {cache_key}")
            return self.cache.get(cache_key)

        logger.debug(f"Cache MISS for {cache_key}")
        resp = self.request_authenticated(params)
        self.cache.set(cache_key, resp)
        return resp

    def get_personal_data(self):
        return self.request_cached(Config.KEY_GET_PERSONAL_DATA, {
            "service": "thiapp",
            "method": "persdata",
            "format": "json",
        })

    def get_faculty(self):
        return extract_faculty_from_personal_data(self.get_personal_data())

    def get_spo_name(self):
        return extract_spo_from_personal_data(self.get_personal_data())

    def get_timetable(self, date, detailed=False):
        key = f"{Config.KEY_GET_TIMETABLE}-{date.isoformat()}-{detailed}"
        try:
            res = self.request_cached(key, {
                "service": "thiapp",
                "method": "stpl",
                "format": "json",
                "day": date.day,
                "month": date.month,
                "year": date.year,
                "details": 1 if detailed else 0,
            })
        except APIError as e:
            # Users without any selected classes get one of these instead of an empty list
            if e.data in ("Query not possible", "Time table does not exist"):
                return {"timetable": []}
            raise

        return {
            "semester": res[0],
            "holidays": res[1],
            "timetable": res[2],
        }

    def get_exams(self):
        try:
            return self.request_cached(Config.KEY_GET_EXAMS, {
                "service": "thiapp",
                "method": "exams",
                "format": "json",
                "modus": "1",
            })
        except APIError as e:
            if e.data in ("No exam data available", "Query not possible"):
                return []
            raise

    def get_grades(self):
        return self.request_cached(Config.KEY_GET_GRADES, {
            "service": "thiapp",
            "method": "grades",
            "format": "json",
        })

    def get_mensa_plan(self):
        return self.request_cached(Config.KEY_GET_MENSA_PLAN, {
            "service": "thiapp",
            "method": "mensa",
            "format": "json",
        })

    def get_free_rooms(self, date):
        """Room availability for the given date."""
        key = f"{Config.KEY_GET_FREE_ROOMS}-{date.isoformat()}"
        return self.request_cached(key, {
            "service": "thiapp",
            "method": "rooms",
            "format": "json",
            "day": date.day,
            "month": date.month,
            "year": date.year,
        })

    def get_campus_parking_data(self):
        return self.request_cached(Config.KEY_GET_PARKING_DATA, {
            "service": "thiapp",
            "method": "parking",
            "format": "json",
        })

    def get_personal_lecturers(self):
        return self.request_cached(Config.KEY_GET_PERSONAL_LECTURERS, {
            "service": "thiapp",
            "method": "stpllecturers",
            "format": "json",
        })

    def get_lecturers(self, from_, to):
        """Lists lecturers whose names start between the letters from_ and to."""
        key = f"{Config.KEY_GET_LECTURERS}-{from_}-{to}"
        return self.request_cached(key, {
            "service": "thiapp",
            "method": "lecturers",
            "format": "json",
            "from": from_,
            "to": to,
        })

    def get_imprint(self):
        return self.request_authenticated({
            "service": "thiapp",
            "method": "impressum",
            "format": "json",
        })
