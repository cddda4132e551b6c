import logging
from datetime import date
from config import Config
from food_utils import get_adjusted_food_locale, load_food_entries

logger = logging.getLogger(__name__)


class BaseCard:
    """A dashboard card. Subclasses implement load_items."""

    key = None
    link = None

    def __init__(self, client):
        self.client = client

    def load_items(self):
        raise NotImplementedError

    def load(self):
        # Errors are only logged, the card just stays empty
        try:
            items = self.load_items()
        except Exception as e:
            logger.error(f"Failed to load {self.key} card: {e}")
            items = []
        return {"key": self.key, "link": self.link, "items": items}


class EventsCard(BaseCard):
    """Upcoming Campus Life events."""

    key = "events"
    link = "/events"

    def load_items(self):
        events = self.client.get_campus_life_events()["clEvents"]
        return [
            {"title": event["title"], "organizer": event["organizer"]}
            for event in events[:Config.DASHBOARD_EVENT_COUNT]
        ]


class FoodCard(BaseCard):
    """Today's meals of the default restaurants."""

    key = "food"
    link = "/food"

    def __init__(self, client, restaurants=None, locale="en", today=None):
        super().__init__(client)
        self.restaurants = restaurants or Config.DEFAULT_RESTAURANTS
        self.locale = get_adjusted_food_locale(locale, locale)
        self.today = today or date.today()

    def load_items(self):
        days = load_food_entries(self.restaurants, False, self.client, self.today)
        today_str = self.today.isoformat()
        meals = next((day["meals"] for day in days if day["timestamp"] == today_str), [])
        return [
            {"id": meal.get("id"), "name": meal["name"][self.locale], "restaurant": meal.get("restaurant")}
            for meal in meals[:Config.DASHBOARD_FOOD_COUNT]
        ]


def build_dashboard(client, locale="en", today=None):
    """Loads every dashboard card with the Neuland client."""
    cards = [
        FoodCard(client, locale=locale, today=today),
        EventsCard(client),
    ]
    return [card.load() for card in cards]
