"""
Tests for the HTTP endpoints and input validation in app.py
Run with: python -m pytest test_app.py
"""

import time
import unittest
from unittest.mock import Mock, patch
import app as companion_app
from anonymous_api import APIConnectionError, APIError
from authenticated_api import AuthenticatedAPIClient
from client_registry import ClientRegistry
from config import Config
from neuland_api import GraphQLQueryError


class TestInputValidation(unittest.TestCase):
    """Test cases for input validation in app.py"""

    def test_validate_date(self):
        self.assertEqual(companion_app.validate_date("2024-05-13"), (True, None))

        valid, error = companion_app.validate_date("13.05.2024")
        self.assertFalse(valid)
        self.assertIn("Invalid date", error)

        valid, error = companion_app.validate_date("")
        self.assertFalse(valid)

    def test_validate_restaurants(self):
        self.assertEqual(companion_app.validate_restaurants(["IngolstadtMensa", "Canisius"]), (True, None))

        valid, error = companion_app.validate_restaurants([])
        self.assertFalse(valid)
        self.assertIn("at least one", error)

        valid, error = companion_app.validate_restaurants(["Wiley"])
        self.assertFalse(valid)
        self.assertIn("Invalid restaurant", error)

    def test_validate_lecturer_range(self):
        self.assertEqual(companion_app.validate_lecturer_range("a", "z"), (True, None))
        self.assertFalse(companion_app.validate_lecturer_range("ab", "z")[0])
        self.assertFalse(companion_app.validate_lecturer_range("1", "z")[0])
        self.assertFalse(companion_app.validate_lecturer_range("m", "c")[0])

    def test_validate_user_kind(self):
        self.assertTrue(companion_app.validate_user_kind("guest")[0])
        self.assertFalse(companion_app.validate_user_kind("alien")[0])


class TestEndpoints(unittest.TestCase):
    """Test cases for the Flask routes"""

    def setUp(self):
        companion_app.limiter.enabled = False
        self.http = companion_app.app.test_client()
        companion_app.clients.clear()

        self.client = Mock()
        companion_app.clients.add(self.client, token="token-1")
        self.auth = {companion_app.TOKEN_HEADER: "token-1"}

    def tearDown(self):
        companion_app.clients.clear()

    def test_health_check(self):
        resp = self.http.get("/")
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.get_json()["status"], "healthy")

    def test_login_requires_credentials(self):
        resp = self.http.post("/api/login", json={"username": "s123456"})
        self.assertEqual(resp.status_code, 400)

    @patch("app.AuthenticatedAPIClient")
    def test_login(self, mock_client_cls):
        """Test that a login registers a client under a new token"""
        mock_client_cls.return_value.session_handler.create_session.return_value = {
            "session": "abc", "is_student": True
        }

        resp = self.http.post("/api/login", json={"username": "s123456", "password": "secret", "remember": True})

        self.assertEqual(resp.status_code, 200)
        body = resp.get_json()
        self.assertTrue(body["is_student"])
        self.assertIn(body["token"], companion_app.clients)
        mock_client_cls.return_value.session_handler.create_session.assert_called_once_with(
            "s123456", "secret", remember=True
        )

    @patch("app.AuthenticatedAPIClient")
    def test_login_with_wrong_credentials(self, mock_client_cls):
        mock_client_cls.return_value.session_handler.create_session.side_effect = APIError(-1, "Wrong credentials")

        resp = self.http.post("/api/login", json={"username": "s123456", "password": "wrong"})

        self.assertEqual(resp.status_code, 401)
        self.assertEqual(resp.get_json()["error"], "Wrong credentials")

    def test_logout(self):
        resp = self.http.post("/api/logout", headers=self.auth)

        self.assertEqual(resp.status_code, 200)
        self.assertNotIn("token-1", companion_app.clients)
        self.client.session_handler.forget_session.assert_called_once()

    def test_requires_login(self):
        """Test that authenticated routes reject unknown tokens"""
        resp = self.http.get("/api/grades")
        self.assertEqual(resp.status_code, 401)

        resp = self.http.get("/api/grades", headers={companion_app.TOKEN_HEADER: "unknown"})
        self.assertEqual(resp.status_code, 401)

    def test_personal(self):
        self.client.get_personal_data.return_value = {"persdata": {"stg": "INF"}}
        self.client.get_faculty.return_value = "Informatik"
        self.client.get_spo_name.return_value = "20221"

        resp = self.http.get("/api/personal", headers=self.auth)

        self.assertEqual(resp.get_json(), {
            "persdata": {"persdata": {"stg": "INF"}},
            "faculty": "Informatik",
            "spo": "20221",
        })

    def test_timetable(self):
        self.client.get_timetable.return_value = {"timetable": []}

        resp = self.http.get("/api/timetable?date=2024-05-13&detailed=true", headers=self.auth)

        self.assertEqual(resp.status_code, 200)
        args = self.client.get_timetable.call_args[0]
        self.assertEqual(args[0].isoformat(), "2024-05-13")
        self.assertTrue(args[1])

    def test_timetable_invalid_date(self):
        resp = self.http.get("/api/timetable?date=yesterday", headers=self.auth)
        self.assertEqual(resp.status_code, 400)
        self.client.get_timetable.assert_not_called()

    def test_lecturers(self):
        self.client.get_lecturers.return_value = [{"name": "Prof. Dr. Muster"}]

        resp = self.http.get("/api/lecturers?from=a&to=c", headers=self.auth)

        self.assertEqual(resp.status_code, 200)
        self.client.get_lecturers.assert_called_once_with("a", "c")

        resp = self.http.get("/api/lecturers?from=z&to=a", headers=self.auth)
        self.assertEqual(resp.status_code, 400)

    def test_api_error(self):
        """Test that THI API errors are reported as bad gateway"""
        self.client.get_grades.side_effect = APIError(-102, "Service unavailable")

        resp = self.http.get("/api/grades", headers=self.auth)

        self.assertEqual(resp.status_code, 502)
        self.assertEqual(resp.get_json(), {"error": "Service unavailable", "status": -102})

    def test_unexpected_error(self):
        self.client.get_exams.side_effect = RuntimeError("boom")

        resp = self.http.get("/api/exams", headers=self.auth)

        self.assertEqual(resp.status_code, 500)
        self.assertEqual(resp.get_json()["error"], "An internal error occurred.")

    @patch("app.AuthenticatedAPIClient")
    def test_login_with_unreachable_api(self, mock_client_cls):
        """Test that a THI API outage is not reported as bad credentials"""
        mock_client_cls.return_value.session_handler.create_session.side_effect = APIConnectionError("Request timed out")

        resp = self.http.post("/api/login", json={"username": "s123456", "password": "secret"})

        self.assertEqual(resp.status_code, 502)
        self.assertEqual(len(companion_app.clients), 1)

    def test_rejected_session_requires_new_login(self):
        """Test that a session rejected by the THI API answers 401 and drops the token"""
        client = AuthenticatedAPIClient()
        client.session_handler.session = "abc"
        client.session_handler.session_created = time.time()
        client.request = Mock(return_value={"status": -115, "data": "No Session"})
        companion_app.clients.add(client, token="token-2")
        headers = {companion_app.TOKEN_HEADER: "token-2"}

        resp = self.http.get("/api/grades", headers=headers)

        self.assertEqual(resp.status_code, 401)
        self.assertNotIn("token-2", companion_app.clients)
        self.assertIsNone(client.session_handler.session)

        resp = self.http.get("/api/grades", headers=headers)
        self.assertEqual(resp.status_code, 401)
        self.assertEqual(client.request.call_count, 1)

    def test_unknown_route(self):
        self.assertEqual(self.http.get("/api/unknown").status_code, 404)

    @patch.object(companion_app, "neuland_client")
    def test_food(self, mock_neuland):
        """Test the rendered meal plan"""
        mock_neuland.get_food_plan.return_value = {"food": []}

        resp = self.http.get("/api/food?restaurants=IngolstadtMensa,Reimanns&language=en&allergens=Ei")

        self.assertEqual(resp.status_code, 200)
        body = resp.get_json()
        self.assertEqual(body["week"], 0)
        self.assertEqual(len(body["tabs"]), 5)
        self.assertTrue(body["day"]["no_data"])
        mock_neuland.get_food_plan.assert_called_once_with(["IngolstadtMensa", "Reimanns"])

    @patch.object(companion_app, "neuland_client")
    def test_food_invalid_parameters(self, mock_neuland):
        mock_neuland.get_food_plan.return_value = {"food": []}

        self.assertEqual(self.http.get("/api/food?restaurants=Wiley").status_code, 400)
        self.assertEqual(self.http.get("/api/food?user_kind=alien").status_code, 400)
        self.assertEqual(self.http.get("/api/food?week=2").status_code, 400)
        self.assertEqual(self.http.get("/api/food?week=abc").status_code, 400)
        self.assertEqual(self.http.get("/api/food?day=7").status_code, 400)
        self.assertEqual(self.http.get("/api/food?week=1&day=x").status_code, 400)
        mock_neuland.get_food_plan.assert_not_called()

    @patch.object(companion_app, "neuland_client")
    def test_graphql_error(self, mock_neuland):
        mock_neuland.get_parking_data.side_effect = GraphQLQueryError("GraphQL query failed")

        resp = self.http.get("/api/parking")

        self.assertEqual(resp.status_code, 502)

    @patch.object(companion_app, "neuland_client")
    def test_bus_plan(self, mock_neuland):
        mock_neuland.get_bus_plan.return_value = {"bus": [{"route": "10", "destination": "Hbf", "time": "12:00"}]}

        resp = self.http.get("/api/mobility/bus/hochschule")

        self.assertEqual(resp.get_json()["bus"][0]["route"], "10")
        mock_neuland.get_bus_plan.assert_called_once_with("hochschule")

    @patch.object(companion_app, "neuland_client")
    def test_dashboard_survives_failing_cards(self, mock_neuland):
        """Test that a failing card leaves the rest of the dashboard intact"""
        mock_neuland.get_food_plan.return_value = {"food": []}
        mock_neuland.get_campus_life_events.side_effect = GraphQLQueryError("GraphQL query failed")

        resp = self.http.get("/api/dashboard")

        self.assertEqual(resp.status_code, 200)
        cards = resp.get_json()
        self.assertEqual([card["key"] for card in cards], ["food", "events"])
        self.assertEqual(cards[1]["items"], [])


class FakeClock:
    def __init__(self, now=1000.0):
        self.now = now

    def __call__(self):
        return self.now


class TestClientRegistry(unittest.TestCase):
    """Test cases for the login token registry"""

    def setUp(self):
        self.clock = FakeClock()
        self.registry = ClientRegistry(idle_timeout=60, clock=self.clock)

    def test_add_and_get(self):
        client = Mock()
        token = self.registry.add(client)

        self.assertIn(token, self.registry)
        self.assertIs(self.registry.get(token), client)
        self.assertIsNone(self.registry.get("unknown"))
        self.assertIsNone(self.registry.get(None))

    def test_use_keeps_client_alive(self):
        client = Mock()
        token = self.registry.add(client)

        self.clock.now += 50
        self.assertIs(self.registry.get(token), client)
        self.clock.now += 50
        self.assertIs(self.registry.get(token), client)

    def test_idle_client_expires(self):
        """Test that an idle token is dropped and its session closed"""
        client = Mock()
        token = self.registry.add(client)

        self.clock.now += 61

        self.assertIsNone(self.registry.get(token))
        self.assertNotIn(token, self.registry)
        client.session_handler.forget_session.assert_called_once()

    def test_login_purges_idle_clients(self):
        """Test that repeated logins do not grow the registry without bound"""
        old_clients = [Mock() for _ in range(50)]
        for client in old_clients:
            self.registry.add(client)
        self.assertEqual(len(self.registry), 50)

        self.clock.now += 61
        self.registry.add(Mock())

        self.assertEqual(len(self.registry), 1)
        for client in old_clients:
            client.session_handler.forget_session.assert_called_once()

    def test_remove(self):
        client = Mock()
        token = self.registry.add(client)

        self.assertIs(self.registry.remove(token), client)
        self.assertIsNone(self.registry.remove(token))
        client.session_handler.forget_session.assert_not_called()

    def test_default_timeout(self):
        self.assertEqual(ClientRegistry().idle_timeout, Config.CLIENT_IDLE_TIMEOUT)


if __name__ == '__main__':
    unittest.main()
