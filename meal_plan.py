import logging
from datetime import date
from config import Config
from date_utils import get_adjusted_day, get_friendly_week, parse_timestamp, weekday_tab_label
from food_utils import (
    contains_selected_allergen,
    contains_selected_preference,
    get_adjusted_food_locale,
    get_matching_preferences,
    get_user_specific_price,
    load_flag_map,
    load_food_entries,
)

logger = logging.getLogger(__name__)


def _is_soup(meal):
    return "soup" in (meal.get("category") or "")


def _is_salad(meal):
    return "salad" in (meal.get("category") or "")


# restaurant, title, [(group kind, predicate)]
RESTAURANT_SECTIONS = [
    ("IngolstadtMensa", "Mensa", [
        ("meals", lambda meal: not _is_soup(meal)),
        ("soups", _is_soup),
    ]),
    ("NeuburgMensa", "Mensa Neuburg", [
        ("meals", lambda meal: not _is_soup(meal)),
    ]),
    ("Reimanns", "Reimanns", [
        ("meals", lambda meal: not _is_salad(meal)),
        ("salads", _is_salad),
    ]),
    ("Canisius", "Canisiuskonvikt", [
        ("meals", lambda meal: not _is_salad(meal)),
        ("salads", _is_salad),
    ]),
]


class FoodFilter:
    """The user's meal plan filter selection."""

    def __init__(self, restaurants=None, language=Config.DEFAULT_FOOD_LANGUAGE,
                 preferences=None, allergens=None, show_static=False,
                 user_kind=Config.USER_STUDENT, app_locale="en"):
        self.restaurants = list(restaurants) if restaurants else list(Config.DEFAULT_RESTAURANTS)
        self.language = language
        self.preferences = preferences or {}
        self.allergens = allergens or {}
        self.show_static = show_static
        self.user_kind = user_kind
        self.app_locale = app_locale

    @property
    def locale(self):
        return get_adjusted_food_locale(self.language, self.app_locale)


class MealPlanBrowser:
    """
    State of the cafeteria meal plan: two weeks of weekdays, the selected
    week and the selected day within each week.
    """

    def __init__(self, client, food_filter=None, flag_map=None, today=None):
        self.client = client
        self.filter = food_filter or FoodFilter()
        self.flag_map = flag_map if flag_map is not None else load_flag_map()
        self.today = today or date.today()

        self.current_days = None
        self.future_days = None
        self.week = 0
        self.current_day = 0
        self.future_day = 0

    @property
    def ready(self):
        return self.current_days is not None and self.future_days is not None

    def load(self):
        try:
            days = load_food_entries(
                self.filter.restaurants, self.filter.show_static, self.client, self.today
            )
        except Exception as e:
            logger.error(f"Failed to load meal plan: {e}")
            raise

        self.current_days = days[:Config.DAYS_PER_WEEK]
        self.future_days = days[Config.DAYS_PER_WEEK:]
        self.current_day = get_adjusted_day(self.today).weekday()
        self.future_day = 0

    def select_week(self, week):
        if week not in (0, 1):
            raise ValueError(f"Invalid week: {week}")
        self.week = week

    def select_day(self, index):
        """Selects a day of the currently shown week."""
        days = self.current_days if self.week == 0 else self.future_days
        if not days or not 0 <= index < len(days):
            raise ValueError(f"Invalid day: {index}")
        if self.week == 0:
            self.current_day = index
        else:
            self.future_day = index

    def _render_variants(self, meal):
        locale = self.filter.locale
        return [
            {
                "name": variant["name"][locale],
                "price": ("+ " if variant.get("additional") else "")
                + get_user_specific_price(variant, self.filter.user_kind, locale),
            }
            for variant in meal.get("variants") or []
        ]

    def render_meal_entry(self, meal):
        locale = self.filter.locale
        allergens = meal.get("allergens")
        warn = contains_selected_allergen(allergens, self.filter.allergens)
        match = not warn and contains_selected_preference(meal.get("flags"), self.filter.preferences)

        return {
            "id": meal.get("id"),
            "name": meal["name"][locale],
            "price": get_user_specific_price(meal, self.filter.user_kind, locale),
            "warn": warn,
            "match": match,
            "preferences": get_matching_preferences(meal, self.filter.preferences, self.flag_map, locale),
            "allergens": allergens,
            "unknown_ingredients": allergens is None,
            "variants": self._render_variants(meal),
        }

    def render_meal_day(self, day):
        sections = []
        for restaurant, title, groups in RESTAURANT_SECTIONS:
            meals = [meal for meal in day["meals"] if meal.get("restaurant") == restaurant]
            if not meals:
                continue

            rendered_groups = []
            for kind, predicate in groups:
                group_meals = [self.render_meal_entry(meal) for meal in meals if predicate(meal)]
                if group_meals:
                    rendered_groups.append({"kind": kind, "meals": group_meals})

            sections.append({"restaurant": restaurant, "title": title, "groups": rendered_groups})

        return {
            "timestamp": day["timestamp"],
            "sections": sections,
            "no_data": not sections,
        }

    def render(self):
        """Renders the selected week with its day tabs and the selected day."""
        if not self.ready:
            return None

        days = self.current_days if self.week == 0 else self.future_days
        index = self.current_day if self.week == 0 else self.future_day
        locale = self.filter.locale

        week_label = None
        if days:
            week_label = get_friendly_week(parse_timestamp(days[0]["timestamp"]), self.today, locale)

        tabs = [
            {
                "index": idx,
                "label": weekday_tab_label(parse_timestamp(day["timestamp"]), locale),
                "active": idx == index,
                "no_meals": len(day["meals"]) == 0,
            }
            for idx, day in enumerate(days)
        ]

        return {
            "week": self.week,
            "week_label": week_label,
            "tabs": tabs,
            "day": self.render_meal_day(days[index]) if days else None,
        }
