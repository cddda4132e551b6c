import logging
import requests
from config import Config

logger = logging.getLogger(__name__)

NUTRITION_FIELDS = """
        kj
        kcal
        fat
        fatSaturated
        carbs
        sugar
        fiber
        protein
        salt
"""

FOOD_PLAN_QUERY = """
query GetFoodPlan($locations: [String!]!) {
  food(locations: $locations) {
    timestamp
    meals {
      name { de en }
      id
      category
      prices { student employee guest }
      allergens
      flags
      nutrition {%s}
      variants {
        additional
        id
        allergens
        flags
        originalLanguage
        static
        restaurant
        parent { id category }
        name { de en }
        prices { student employee guest }
        nutrition {%s}
      }
      originalLanguage
      static
      restaurant
    }
  }
}
""" % (NUTRITION_FIELDS, NUTRITION_FIELDS)

BUS_PLAN_QUERY = """
query GetBusPlan($station: String!) {
  bus(station: $station) {
    route
    destination
    time
  }
}
"""

TRAIN_PLAN_QUERY = """
query GetTrainPlan($station: String!) {
  train(station: $station) {
    name
    destination
    plannedTime
    actualTime
    canceled
    track
  }
}
"""

PARKING_QUERY = """
query GetParking {
  parking {
    lots { name available total priceLevel }
  }
}
"""

CHARGING_QUERY = """
query GetCharging {
  charging { id name available total }
}
"""

CAMPUS_LIFE_EVENTS_QUERY = """
query GetCampusLifeEvents {
  clEvents { id organizer title begin end }
}
"""


class GraphQLQueryError(Exception):
    """Raised when a query against the Neuland GraphQL API fails."""


class NeulandAPIClient:
    """
    Client for the public Neuland GraphQL API (food, transit, parking, events).
    Nothing is cached and failed queries are not retried.
    """

    def __init__(self, url=None):
        self.url = url or Config.NEULAND_GRAPHQL_ENDPOINT
        self.headers = {"Content-Type": "application/json"}

    def perform_graphql_query(self, query, variables=None):
        """Runs a query and returns its data object."""
        try:
            resp = requests.post(
                self.url,
                json={"query": query, "variables": variables or {}},
                headers=self.headers,
                timeout=Config.API_TIMEOUT
            )
            resp.raise_for_status()
            payload = resp.json()
        except (requests.exceptions.RequestException, ValueError) as e:
            logger.error(f"GraphQL request to {self.url} failed: {e}")
            raise GraphQLQueryError("GraphQL query failed") from e

        if payload.get("errors"):
            logger.error(f"GraphQL query returned errors: {payload['errors']}")
            raise GraphQLQueryError("GraphQL query failed")

        return payload.get("data")

    def get_food_plan(self, locations):
        return self.perform_graphql_query(FOOD_PLAN_QUERY, {"locations": list(locations)})

    def get_bus_plan(self, station):
        return self.perform_graphql_query(BUS_PLAN_QUERY, {"station": station})

    def get_train_plan(self, station):
        return self.perform_graphql_query(TRAIN_PLAN_QUERY, {"station": station})

    def get_parking_data(self):
        return self.perform_graphql_query(PARKING_QUERY)

    def get_charging_station_data(self):
        return self.perform_graphql_query(CHARGING_QUERY)

    def get_campus_life_events(self):
        return self.perform_graphql_query(CAMPUS_LIFE_EVENTS_QUERY)
