import unittest
from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock, patch

from fastapi.testclient import TestClient

from events_api.app import create_app
from events_api.config import Settings, get_settings
from events_api.db import InMemoryDbClient
from events_api.dependencies import (
    get_calendar_source,
    get_db_client,
    get_event_sources,
    get_organizing_source,
)
from events_api.errors import SourceUnavailable
from events_api.sources import GoogleCalendarSource, MobilizeSource
from events_api.sources.base import EventSource, NormalizedEvent, SourceKind


def _epoch(*args) -> int:
    return int(datetime(*args, tzinfo=timezone.utc).timestamp())


def _response(payload, status=200):
    response = MagicMock()
    response.status_code = status
    response.json.return_value = payload
    return response


class FakeSource(EventSource):
    def __init__(self, name, kind, events=(), error=None):
        super().__init__()
        self.name = name
        self.kind = kind
        self.events = list(events)
        self.error = error
        self.windows = []

    def _fetch(self, window):
        self.windows.append(window)
        if self.error is not None:
            raise self.error
        return list(self.events)


class EventRoutesTests(unittest.TestCase):
    def setUp(self):
        self.app = create_app()
        self.db = InMemoryDbClient()
        self.app.dependency_overrides[get_db_client] = lambda: self.db
        self.app.dependency_overrides[get_settings] = lambda: Settings(
            _env_file=None, default_window_days=30, source_timeout_seconds=5
        )
        self.client = TestClient(self.app)

    def tearDown(self):
        self.app.dependency_overrides.clear()

    def test_aggregate_keeps_working_when_one_source_throws(self):
        good = FakeSource(
            "calendar",
            SourceKind.CALENDAR,
            [NormalizedEvent(id="calendar:1", summary="Picnic", date="2025-08-01", source=SourceKind.CALENDAR)],
        )
        bad = FakeSource(
            "organizing", SourceKind.ORGANIZING, error=SourceUnavailable("mobilize down")
        )
        self.app.dependency_overrides[get_event_sources] = lambda: [bad, good]

        response = self.client.get("/api/all-events")

        self.assertEqual(response.status_code, 200)
        items = response.json()["items"]
        self.assertEqual(len(items), 1)
        self.assertEqual(items[0]["date"], "2025-08-01")
        self.assertEqual(items[0]["source"], "calendar")

    def test_aggregate_sorts_across_sources_and_uses_camel_case(self):
        organizing = FakeSource(
            "organizing",
            SourceKind.ORGANIZING,
            [
                NormalizedEvent(
                    id="organizing:1:1",
                    summary="Canvass",
                    date="2025-08-10T16:00:00Z",
                    end_date="2025-08-10T18:00:00Z",
                    event_type="CANVASS",
                    source=SourceKind.ORGANIZING,
                )
            ],
        )
        calendar = FakeSource(
            "calendar",
            SourceKind.CALENDAR,
            [
                NormalizedEvent(id="calendar:a", summary="Fair", date="2025-08-03", source=SourceKind.CALENDAR),
                NormalizedEvent(id="calendar:b", summary="Undated", source=SourceKind.CALENDAR),
            ],
        )
        self.app.dependency_overrides[get_event_sources] = lambda: [organizing, calendar]

        response = self.client.get(
            "/api/all-events",
            params={"timeMin": "2025-08-01T00:00:00Z", "timeMax": "2025-09-01T00:00:00Z"},
        )

        self.assertEqual(response.status_code, 200)
        items = response.json()["items"]
        self.assertEqual([i["id"] for i in items], ["calendar:b", "calendar:a", "organizing:1:1"])
        self.assertEqual(items[2]["endDate"], "2025-08-10T18:00:00Z")
        self.assertEqual(items[2]["eventType"], "CANVASS")

    def test_aggregate_returns_500_when_aggregation_breaks(self):
        self.app.dependency_overrides[get_event_sources] = lambda: []
        with patch(
            "events_api.event_routes.aggregate",
            new=AsyncMock(side_effect=RuntimeError("sort exploded")),
        ):
            response = self.client.get("/api/all-events")

        self.assertEqual(response.status_code, 500)
        self.assertEqual(
            response.json(),
            {"error": "Failed to fetch combined events", "details": "sort exploded"},
        )

    def test_aggregate_returns_500_when_every_source_breaks_unexpectedly(self):
        sources = [
            FakeSource(
                "organizing",
                SourceKind.ORGANIZING,
                error=AttributeError("'str' object has no attribute 'get'"),
            ),
            FakeSource("calendar", SourceKind.CALENDAR, error=RuntimeError("bad item")),
        ]
        self.app.dependency_overrides[get_event_sources] = lambda: sources

        response = self.client.get("/api/all-events")

        self.assertEqual(response.status_code, 500)
        self.assertEqual(
            response.json(),
            {
                "error": "Failed to fetch combined events",
                "details": "'str' object has no attribute 'get'",
            },
        )

    def test_openapi_documents_error_payload(self):
        schema = self.client.get("/openapi.json").json()

        error = schema["paths"]["/api/all-events"]["get"]["responses"]["500"]
        ref = error["content"]["application/json"]["schema"]["$ref"]
        self.assertEqual(ref, "#/components/schemas/ErrorResponse")

    def test_aggregate_is_empty_when_every_source_is_unavailable(self):
        sources = [
            FakeSource("organizing", SourceKind.ORGANIZING, error=SourceUnavailable("down")),
            FakeSource("calendar", SourceKind.CALENDAR, error=SourceUnavailable("down")),
        ]
        self.app.dependency_overrides[get_event_sources] = lambda: sources

        response = self.client.get("/api/all-events")

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json(), {"items": []})

    def test_default_window_comes_from_settings(self):
        recorder = FakeSource("calendar", SourceKind.CALENDAR)
        self.app.dependency_overrides[get_settings] = lambda: Settings(
            _env_file=None, default_window_days=7
        )
        self.app.dependency_overrides[get_calendar_source] = lambda: recorder

        response = self.client.get("/api/calendar-events")

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json(), {"items": []})
        (window,) = recorder.windows
        self.assertEqual((window.end - window.start).days, 7)
        self.assertEqual((window.start.hour, window.start.minute), (0, 0))

    def test_invalid_time_min_is_400(self):
        response = self.client.get("/api/all-events", params={"timeMin": "yesterday"})

        self.assertEqual(response.status_code, 400)
        payload = response.json()
        self.assertEqual(payload["error"], "Invalid request")
        self.assertIn("timeMin", payload["details"])

    def test_inverted_window_is_400(self):
        response = self.client.get(
            "/api/organizing-events",
            params={"timeMin": "2025-09-01T00:00:00Z", "timeMax": "2025-08-01T00:00:00Z"},
        )
        self.assertEqual(response.status_code, 400)

    def test_per_source_endpoint_surfaces_upstream_failure(self):
        failing = FakeSource(
            "organizing",
            SourceKind.ORGANIZING,
            error=SourceUnavailable("mobilize responded with HTTP 502", upstream_status=502),
        )
        self.app.dependency_overrides[get_organizing_source] = lambda: failing

        response = self.client.get("/api/organizing-events")

        self.assertEqual(response.status_code, 500)
        self.assertEqual(
            response.json(),
            {
                "error": "Failed to fetch Mobilize events",
                "details": "mobilize responded with HTTP 502",
            },
        )

    def test_per_source_endpoint_reports_unexpected_errors_as_json(self):
        broken = FakeSource(
            "organizing", SourceKind.ORGANIZING, error=RuntimeError("bad timeslot")
        )
        self.app.dependency_overrides[get_organizing_source] = lambda: broken

        response = self.client.get("/api/organizing-events")

        self.assertEqual(response.status_code, 500)
        self.assertEqual(
            response.json(),
            {"error": "Failed to fetch Mobilize events", "details": "bad timeslot"},
        )

    @patch("events_api.sources.http.requests.get")
    def test_malformed_mobilize_payload_is_json_500(self, mock_get):
        mock_get.return_value = _response({"data": ["not-an-event"], "next": None})
        self.app.dependency_overrides[get_organizing_source] = lambda: MobilizeSource()

        response = self.client.get(
            "/api/organizing-events",
            params={"timeMin": "2025-08-01T00:00:00Z", "timeMax": "2025-09-01T00:00:00Z"},
        )

        self.assertEqual(response.status_code, 500)
        self.assertEqual(response.json()["error"], "Failed to fetch Mobilize events")

    @patch("events_api.sources.http.requests.get")
    def test_organizing_events_only_returns_occurrences_in_window(self, mock_get):
        mock_get.return_value = _response(
            {
                "data": [
                    {
                        "id": 77,
                        "title": "Voter registration",
                        "sponsor": {"name": "Utah Mutual Aid"},
                        "browser_url": "https://www.mobilize.us/e/77",
                        "event_type": "VOTER_REG",
                        "timeslots": [
                            {"id": 1, "start_date": _epoch(2025, 8, 15, 10)},
                            {"id": 2, "start_date": _epoch(2025, 9, 5)},
                        ],
                    }
                ],
                "next": None,
            }
        )
        self.app.dependency_overrides[get_organizing_source] = lambda: MobilizeSource()

        response = self.client.get(
            "/api/mobilize-events",
            params={"timeMin": "2025-08-01T00:00:00Z", "timeMax": "2025-09-01T00:00:00Z"},
        )

        self.assertEqual(response.status_code, 200)
        items = response.json()["items"]
        self.assertEqual(len(items), 1)
        self.assertEqual(items[0]["date"], "2025-08-15T10:00:00Z")
        self.assertEqual(items[0]["source"], "organizing")
        self.assertEqual(items[0]["org"], "Utah Mutual Aid")

    @patch("events_api.sources.http.requests.get")
    def test_sponsor_outside_allowlist_is_excluded(self, mock_get):
        timeslots = [{"id": 1, "start_date": _epoch(2025, 8, 15, 10)}]
        mock_get.return_value = _response(
            {
                "data": [
                    {"id": 1, "title": "Ours", "sponsor": {"name": "Connect Utah"}, "timeslots": timeslots},
                    {"id": 2, "title": "Theirs", "sponsor": {"name": "Other Org"}, "timeslots": timeslots},
                ]
            }
        )
        self.app.dependency_overrides[get_organizing_source] = lambda: MobilizeSource(
            sponsor_allowlist=["Connect Utah"]
        )

        response = self.client.get(
            "/api/organizing-events",
            params={"timeMin": "2025-08-01T00:00:00Z", "timeMax": "2025-09-01T00:00:00Z"},
        )

        self.assertEqual([i["summary"] for i in response.json()["items"]], ["Ours"])

    def test_calendar_without_api_key_is_empty_not_an_error(self):
        self.app.dependency_overrides[get_calendar_source] = lambda: GoogleCalendarSource(
            None, "cal@group.calendar.google.com"
        )

        response = self.client.get("/api/google-calendar")

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json(), {"items": []})

    def test_image_events_come_from_the_database(self):
        self.db.add_image(
            "https://img.example/flyer.png",
            "Library",
            datetime(2025, 8, 12, 17, tzinfo=timezone.utc),
        )

        response = self.client.get(
            "/api/image-events",
            params={"timeMin": "2025-08-01T00:00:00Z", "timeMax": "2025-09-01T00:00:00Z"},
        )

        self.assertEqual(response.status_code, 200)
        (item,) = response.json()["items"]
        self.assertEqual(item["source"], "image")
        self.assertEqual(item["date"], "2025-08-12T17:00:00Z")
        self.assertEqual(item["image"], "https://img.example/flyer.png")

    @patch("events_api.sources.http.requests.get")
    def test_raw_calendar_passes_google_payload_through(self, mock_get):
        payload = {"kind": "calendar#events", "items": [{"id": "x"}]}
        mock_get.return_value = _response(payload)
        self.app.dependency_overrides[get_calendar_source] = lambda: GoogleCalendarSource(
            "key", "cal@group.calendar.google.com"
        )

        response = self.client.get("/api/calendar")

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json(), payload)

    def test_raw_calendar_without_api_key_is_500(self):
        self.app.dependency_overrides[get_calendar_source] = lambda: GoogleCalendarSource(
            None, "cal@group.calendar.google.com"
        )

        response = self.client.get("/api/calendar")

        self.assertEqual(response.status_code, 500)
        self.assertEqual(
            response.json(),
            {
                "error": "Failed to fetch events",
                "details": "Google Calendar API key not configured",
            },
        )


if __name__ == "__main__":
    unittest.main()
