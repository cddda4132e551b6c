import os
from datetime import date
from flask import Flask, request, jsonify
from flask_cors import CORS
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from werkzeug.exceptions import HTTPException
from anonymous_api import APIConnectionError, APIError
from authenticated_api import AuthenticatedAPIClient
from client_registry import ClientRegistry
from config import Config
from dashboard import EventsCard, build_dashboard
from meal_plan import FoodFilter, MealPlanBrowser
from neuland_api import GraphQLQueryError, NeulandAPIClient
from session_handler import NoSessionError
import logging

# --- 1. SETUP THE FLASK APP ---
app = Flask(__name__)
CORS(app)
logging.basicConfig(level=logging.INFO)

# --- 2. CONFIGURE RATE LIMITING ---
limiter = Limiter(
    get_remote_address,
    app=app,
    default_limits=[f"{Config.RATE_LIMIT_PER_DAY} per day", f"{Config.RATE_LIMIT_PER_HOUR} per hour"],
    storage_uri="memory://",
)

limit_minute = f"{Config.RATE_LIMIT_PER_MINUTE} per minute"

# --- 3. CLIENTS ---
neuland_client = NeulandAPIClient()

# login token -> AuthenticatedAPIClient
clients = ClientRegistry()

TOKEN_HEADER = "X-Session-Token"


def get_client():
    """Returns the authenticated client of the request's token."""
    client = clients.get(request.headers.get(TOKEN_HEADER))
    if client is None:
        raise NoSessionError()
    return client


# --- 4. INPUT VALIDATION FUNCTIONS ---

def validate_date(value):
    """Validates a YYYY-MM-DD date parameter."""
    if not value:
        return False, "A date is required."
    try:
        date.fromisoformat(value)
    except ValueError:
        return False, f"Invalid date: {value}. Expected YYYY-MM-DD."
    return True, None


def validate_restaurants(restaurants):
    """Validates the list of selected restaurants."""
    if not restaurants:
        return False, "Please select at least one restaurant."
    for restaurant in restaurants:
        if restaurant not in Config.RESTAURANTS:
            return False, f"Invalid restaurant: {restaurant}"
    return True, None


def validate_lecturer_range(from_, to):
    """Validates the letter range of a lecturer listing."""
    for letter in (from_, to):
        if not letter or len(letter) != 1 or not letter.isalpha():
            return False, "Lecturer ranges must be single letters."
    if from_.lower() > to.lower():
        return False, "The range start must not come after its end."
    return True, None


def validate_user_kind(user_kind):
    if user_kind not in Config.USER_KINDS:
        return False, f"Invalid user kind: {user_kind}"
    return True, None


def parse_week_day(week, day):
    """Parses the week (0 or 1) and optional day (0-4) of the meal plan."""
    try:
        week = int(week)
        day = int(day) if day is not None else None
    except ValueError:
        return None, None, "Week and day must be whole numbers."
    if not 0 <= week < Config.WEEKS_SHOWN:
        return None, None, f"Invalid week: {week}"
    if day is not None and not 0 <= day < Config.DAYS_PER_WEEK:
        return None, None, f"Invalid day: {day}"
    return week, day, None


def _split_param(name):
    value = request.args.get(name, "")
    return [x for x in value.split(",") if x]


def _bool_param(name):
    return request.args.get(name, "").lower() in ("1", "true", "yes")


# --- 5. ERROR HANDLERS ---

@app.errorhandler(NoSessionError)
def handle_no_session(e):
    # the session is gone for good, so is the client holding it
    clients.remove(request.headers.get(TOKEN_HEADER))
    return jsonify({"error": "Please log in first."}), 401


@app.errorhandler(APIError)
def handle_api_error(e):
    app.logger.error(f"THI API error: {e}")
    return jsonify({"error": str(e.data), "status": e.status}), 502


@app.errorhandler(GraphQLQueryError)
def handle_graphql_error(e):
    app.logger.error(f"Neuland API error: {e}")
    return jsonify({"error": "Public data is currently unavailable."}), 502


@app.errorhandler(Exception)
def handle_unexpected_error(e):
    if isinstance(e, HTTPException):
        return e
    app.logger.error(f"Error in {request.path}: {e}")
    return jsonify({"error": "An internal error occurred."}), 500


# --- 6. HEALTH CHECK ROUTE ---
@app.route("/")
def health_check():
    """A simple route to confirm the server is running."""
    return jsonify({"status": "healthy", "message": "THI campus companion API is running."})


# --- 7. SESSION ENDPOINTS ---
@app.route("/api/login", methods=["POST"])
@limiter.limit(limit_minute)
def api_login():
    data = request.get_json(silent=True) or {}
    username = data.get("username")
    password = data.get("password")
    if not username or not password:
        return jsonify({"error": "Username and password are required."}), 400

    client = AuthenticatedAPIClient()
    try:
        result = client.session_handler.create_session(
            username, password, remember=bool(data.get("remember"))
        )
    except APIError as e:
        app.logger.warning(f"Login failed for {username}: {e}")
        if isinstance(e, APIConnectionError):
            return jsonify({"error": "The THI API is currently unavailable."}), 502
        return jsonify({"error": str(e.data)}), 401

    token = clients.add(client)

    return jsonify({"token": token, "is_student": result["is_student"]})


@app.route("/api/logout", methods=["POST"])
def api_logout():
    client = clients.remove(request.headers.get(TOKEN_HEADER))
    if client is not None:
        client.session_handler.forget_session()
    return jsonify({"status": "ok"})


# --- 8. AUTHENTICATED API ENDPOINTS ---
@app.route("/api/personal")
def api_personal():
    client = get_client()
    return jsonify({
        "persdata": client.get_personal_data(),
        "faculty": client.get_faculty(),
        "spo": client.get_spo_name(),
    })


@app.route("/api/timetable")
def api_timetable():
    client = get_client()
    value = request.args.get("date", date.today().isoformat())
    valid, error = validate_date(value)
    if not valid:
        return jsonify({"error": error}), 400
    return jsonify(client.get_timetable(date.fromisoformat(value), _bool_param("detailed")))


@app.route("/api/exams")
def api_exams():
    return jsonify(get_client().get_exams())


@app.route("/api/grades")
def api_grades():
    return jsonify(get_client().get_grades())


@app.route("/api/mensa")
def api_mensa():
    return jsonify(get_client().get_mensa_plan())


@app.route("/api/rooms")
def api_rooms():
    client = get_client()
    value = request.args.get("date", date.today().isoformat())
    valid, error = validate_date(value)
    if not valid:
        return jsonify({"error": error}), 400
    return jsonify(client.get_free_rooms(date.fromisoformat(value)))


@app.route("/api/lecturers")
def api_lecturers():
    client = get_client()
    from_ = request.args.get("from", "a")
    to = request.args.get("to", "z")
    valid, error = validate_lecturer_range(from_, to)
    if not valid:
        return jsonify({"error": error}), 400
    return jsonify(client.get_lecturers(from_, to))


@app.route("/api/lecturers/personal")
def api_personal_lecturers():
    return jsonify(get_client().get_personal_lecturers())


@app.route("/api/parking/campus")
def api_campus_parking():
    return jsonify(get_client().get_campus_parking_data())


@app.route("/api/imprint")
def api_imprint():
    return jsonify(get_client().get_imprint())


# --- 9. PUBLIC DATA ENDPOINTS ---
@app.route("/api/food")
@limiter.limit(limit_minute)
def api_food():
    restaurants = _split_param("restaurants") or Config.DEFAULT_RESTAURANTS
    valid, error = validate_restaurants(restaurants)
    if not valid:
        return jsonify({"error": error}), 400

    user_kind = request.args.get("user_kind", Config.USER_STUDENT)
    valid, error = validate_user_kind(user_kind)
    if not valid:
        return jsonify({"error": error}), 400

    week, day, error = parse_week_day(request.args.get("week", "0"), request.args.get("day"))
    if error:
        return jsonify({"error": error}), 400

    food_filter = FoodFilter(
        restaurants=restaurants,
        language=request.args.get("language", Config.DEFAULT_FOOD_LANGUAGE),
        preferences={flag: True for flag in _split_param("preferences")},
        allergens={allergen: True for allergen in _split_param("allergens")},
        show_static=_bool_param("static"),
        user_kind=user_kind,
        app_locale=request.args.get("locale", "en"),
    )
    browser = MealPlanBrowser(neuland_client, food_filter)
    browser.load()
    browser.select_week(week)
    if day is not None:
        browser.select_day(day)

    return jsonify(browser.render())


@app.route("/api/mobility/bus/<station>")
def api_bus(station):
    return jsonify(neuland_client.get_bus_plan(station))


@app.route("/api/mobility/train/<station>")
def api_train(station):
    return jsonify(neuland_client.get_train_plan(station))


@app.route("/api/parking")
def api_parking():
    return jsonify(neuland_client.get_parking_data())


@app.route("/api/charging")
def api_charging():
    return jsonify(neuland_client.get_charging_station_data())


@app.route("/api/events")
def api_events():
    return jsonify(neuland_client.get_campus_life_events())


@app.route("/api/dashboard")
def api_dashboard():
    return jsonify(build_dashboard(neuland_client, locale=request.args.get("locale", "en")))


@app.route("/api/dashboard/events")
def api_dashboard_events():
    return jsonify(EventsCard(neuland_client).load())


# --- 10. START THE SERVER ---
if __name__ == "__main__":
    app.logger.info("Starting Flask development server...")
    # Use 0.0.0.0 to be accessible on the network
    app.run(host='0.0.0.0', debug=False, port=int(os.environ.get("PORT", 5000)))
