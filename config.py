"""
Configuration constants for the THI campus companion
"""
import os


class Config:
    """Application configuration and constants"""

    # THI API
    THI_API_URL = os.environ.get(
        "THI_API_URL",
        "https://hiplan.thi.de/webservice/zits_s_40_test/index.php"
    )
    USER_AGENT = "neuland.app (+https://neuland.app)"

    # Neuland GraphQL API
    NEULAND_GRAPHQL_ENDPOINT = os.environ.get(
        "NEULAND_GRAPHQL_ENDPOINT",
        "https://api.neuland.app/graphql"
    )

    # API settings
    API_TIMEOUT = 10

    # Sessions are checked with isalive once they are older than this (seconds)
    SESSION_EXPIRES = 3 * 60
    SESSION_ERRORS = ["Wrong credentials", "No Session", "Session is not valid"]

    # Logged-in clients of the HTTP surface are dropped after this much idle time (seconds)
    CLIENT_IDLE_TIMEOUT = 30 * 60

    # Cache keys
    KEY_GET_PERSONAL_DATA = "getPersonalData"
    KEY_GET_TIMETABLE = "getTimetable"
    KEY_GET_EXAMS = "getExams"
    KEY_GET_GRADES = "getGrades"
    KEY_GET_MENSA_PLAN = "getMensaPlan"
    KEY_GET_FREE_ROOMS = "getFreeRooms"
    KEY_GET_PARKING_DATA = "getCampusParkingData"
    KEY_GET_PERSONAL_LECTURERS = "getPersonalLecturers"
    KEY_GET_LECTURERS = "getLecturers"

    # Restaurants served by the food query
    RESTAURANTS = ["IngolstadtMensa", "NeuburgMensa", "Reimanns", "Canisius"]
    DEFAULT_RESTAURANTS = ["IngolstadtMensa", "Reimanns"]

    # User kinds, used to pick a price
    USER_STUDENT = "student"
    USER_EMPLOYEE = "employee"
    USER_GUEST = "guest"
    USER_KINDS = [USER_STUDENT, USER_EMPLOYEE, USER_GUEST]

    # Food languages
    FOOD_LANGUAGES = ["de", "en"]
    DEFAULT_FOOD_LANGUAGE = "default"

    # Meal plan layout
    DAYS_PER_WEEK = 5
    WEEKS_SHOWN = 2

    # Dashboard
    DASHBOARD_EVENT_COUNT = 2
    DASHBOARD_FOOD_COUNT = 3

    # Matrix animation
    MATRIX_COLUMN_WIDTH = 20
    MATRIX_WARM_UP_FRAMES = 300

    # Rate limiting
    RATE_LIMIT_PER_DAY = 2000
    RATE_LIMIT_PER_HOUR = 300
    RATE_LIMIT_PER_MINUTE = 60
