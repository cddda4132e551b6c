import logging
from datetime import date, timedelta
from companion_data import load_json
from config import Config
from date_utils import get_adjusted_day, get_monday_of_week, parse_timestamp

logger = logging.getLogger(__name__)


def _load_localized_map(filename):
    data = load_json(filename)
    # keys starting with an underscore are comments
    return {key: value for key, value in data.items() if not key.startswith("_")}


def load_allergen_map():
    return _load_localized_map("allergens.json")


def load_flag_map():
    return _load_localized_map("mensa_flags.json")


def _is_selected(selection, key):
    if isinstance(selection, dict):
        return bool(selection.get(key))
    return key in selection


def contains_selected_allergen(allergens, allergen_selection):
    """True if any of the meal's allergens was selected by the user."""
    if not allergens:
        return False
    return any(_is_selected(allergen_selection, x) for x in allergens)


def contains_selected_preference(flags, preferences_selection):
    """True if any of the meal's flags is one of the user's preferences."""
    if not flags:
        return False
    return any(_is_selected(preferences_selection, x) for x in flags)


def get_matching_preferences(meal, preferences_selection, flag_map, locale):
    """Localized, sorted names of the meal flags the user prefers."""
    flags = meal.get("flags") or []
    names = [
        flag_map.get(flag, {}).get(locale) or flag
        for flag in flags
        if _is_selected(preferences_selection, flag)
    ]
    return sorted(names)


def format_price(price, locale="de"):
    if price is None:
        return ""
    if locale == "de":
        return f"{price:.2f} €".replace(".", ",")
    return f"€{price:.2f}"


def get_user_specific_price(meal, user_kind, locale="de"):
    """Formats the price the given kind of user pays for a meal."""
    prices = meal.get("prices") or {}
    if user_kind not in Config.USER_KINDS:
        return ""
    return format_price(prices.get(user_kind), locale)


def get_adjusted_food_locale(selected_language, app_locale):
    """Resolves the 'default' food language to the app language (German or English)."""
    if selected_language == Config.DEFAULT_FOOD_LANGUAGE or selected_language not in Config.FOOD_LANGUAGES:
        return "de" if app_locale and app_locale.startswith("de") else "en"
    return selected_language


def load_food_entries(restaurants, show_static, client, today=None):
    """
    Loads the meal plan of the given restaurants and lays it out as the
    weekdays of this week and the next one. Days without data get no meals.
    """
    if today is None:
        today = date.today()

    data = client.get_food_plan(restaurants)
    days_by_date = {}
    for day in (data or {}).get("food") or []:
        meals = day.get("meals") or []
        if not show_static:
            meals = [meal for meal in meals if not meal.get("static")]
        day_date = parse_timestamp(day["timestamp"])
        days_by_date.setdefault(day_date, []).extend(meals)

    monday = get_monday_of_week(get_adjusted_day(today))
    entries = []
    for week in range(Config.WEEKS_SHOWN):
        for weekday in range(Config.DAYS_PER_WEEK):
            day_date = monday + timedelta(days=week * 7 + weekday)
            entries.append({
                "timestamp": day_date.isoformat(),
                "meals": days_by_date.get(day_date, []),
            })

    logger.info(f"Loaded food plan for {restaurants}: {sum(len(e['meals']) for e in entries)} meals")
    return entries
