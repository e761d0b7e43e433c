import unittest

from fastapi.testclient import TestClient

from parkwatch.config import Settings
from parkwatch.main import create_app
from tests.helpers import FakeSource, attraction_record, live_payload

MK_ENTITY = "75ea578a-adc8-4116-a54d-dccb60765ef9"
EPCOT_ENTITY = "47f90d2c-e191-4239-a466-5892ef59a88b"


class ApiTest(unittest.TestCase):
    def setUp(self) -> None:
        self.source = FakeSource(
            live={
                MK_ENTITY: live_payload(
                    attraction_record("space-mountain", "Space Mountain", wait=25),
                    attraction_record("tron", "TRON Lightcycle / Run", status="DOWN", wait=None),
                ),
                EPCOT_ENTITY: live_payload(attraction_record("test-track", "Test Track", wait=70)),
            }
        )
        cfg = Settings(resorts="walt-disney-world", run_on_startup=False)
        app = create_app(cfg, source=self.source, start_scheduler=False)
        self.client = TestClient(app)
        self.client.__enter__()
        self.addCleanup(self.client.__exit__, None, None, None)

    def test_parks_lists_registry(self) -> None:
        r = self.client.get("/parks")

        self.assertEqual(r.status_code, 200)
        ids = [p["id"] for p in r.json()["parks"]]
        self.assertEqual(ids[0], "wdw-magic-kingdom")
        self.assertEqual(len(ids), 4)

    def test_wait_times_pending_before_first_cycle(self) -> None:
        r = self.client.get("/wait-times")

        self.assertEqual(r.status_code, 200)
        body = r.json()
        self.assertTrue(body["pending"])
        self.assertEqual(body["parks"], [])

    def test_refresh_then_read(self) -> None:
        r = self.client.post("/wait-times/refresh")

        self.assertEqual(r.status_code, 200)
        body = r.json()
        self.assertEqual([p["venue"]["id"] for p in body["parks"]], ["wdw-magic-kingdom", "wdw-epcot"])
        failed = sorted(f["venue_id"] for f in body["failures"])
        self.assertEqual(failed, ["wdw-animal-kingdom", "wdw-hollywood-studios"])

        r = self.client.get("/wait-times")
        self.assertFalse(r.json()["pending"])

        r = self.client.get("/wait-times/wdw-magic-kingdom")
        park = r.json()
        self.assertTrue(park["available"])
        samples = {s["attraction_id"]: s for s in park["wait_samples"]}
        self.assertEqual(samples["space-mountain"]["minutes"], 25)
        self.assertEqual(samples["tron"]["minutes"], -1)
        self.assertEqual(samples["tron"]["status"], "DOWN")

        r = self.client.get("/wait-times/wdw-animal-kingdom")
        self.assertFalse(r.json()["available"])
        self.assertEqual(r.json()["failure"]["error"], "UpstreamUnavailable")

    def test_unknown_park_is_404(self) -> None:
        r = self.client.get("/wait-times/atlantis")

        self.assertEqual(r.status_code, 404)

    def test_alert_crud(self) -> None:
        r = self.client.post("/alerts", json={"attraction_id": "space-mountain", "threshold_minutes": 30})
        self.assertEqual(r.status_code, 201)
        rule_id = r.json()["id"]
        self.assertEqual(rule_id, "space-mountain-30")

        r = self.client.get("/alerts")
        self.assertEqual(r.json()["count"], 1)

        r = self.client.get("/alerts/attraction/space-mountain")
        self.assertEqual(r.json()["rule"]["id"], rule_id)

        r = self.client.patch(f"/alerts/{rule_id}", json={"enabled": False})
        self.assertEqual(r.status_code, 200)
        self.assertFalse(r.json()["rule"]["enabled"])
        self.assertEqual(self.client.get("/alerts").json()["count"], 0)
        self.assertEqual(self.client.get("/alerts", params={"include_disabled": True}).json()["count"], 1)

        r = self.client.delete(f"/alerts/{rule_id}")
        self.assertEqual(r.json(), {"ok": True, "id": rule_id})
        self.assertEqual(self.client.delete(f"/alerts/{rule_id}").status_code, 200)
        self.assertEqual(self.client.patch(f"/alerts/{rule_id}", json={"enabled": True}).status_code, 404)

    def test_invalid_threshold_is_422(self) -> None:
        r = self.client.post("/alerts", json={"attraction_id": "space-mountain", "threshold_minutes": 300})

        self.assertEqual(r.status_code, 422)
        self.assertIn("threshold_minutes", r.json()["detail"])
        self.assertEqual(self.client.get("/alerts", params={"include_disabled": True}).json()["count"], 0)

    def test_alert_fires_into_notifications(self) -> None:
        self.client.post("/alerts", json={"attraction_id": "space-mountain", "threshold_minutes": 30})
        self.client.post("/alerts", json={"attraction_id": "test-track", "threshold_minutes": 30})

        self.client.post("/wait-times/refresh")

        r = self.client.get("/notifications")
        self.assertEqual(r.status_code, 200)
        notes = r.json()["notifications"]
        self.assertEqual(len(notes), 1)
        self.assertEqual(notes[0]["message"], "Space Mountain is now 25 minutes (target: 30 min)")
        self.assertEqual(notes[0]["title"], "Wait Time Alert")

        # still inside the cooldown window
        self.client.post("/wait-times/refresh")
        self.assertEqual(self.client.get("/notifications").json()["count"], 1)

    def test_health(self) -> None:
        self.client.post("/wait-times/refresh")

        r = self.client.get("/health")

        self.assertEqual(r.status_code, 200)
        body = r.json()
        self.assertEqual(body["status"], "ok")
        self.assertEqual(body["state"], "idle")
        self.assertEqual(body["cycles_completed"], 1)
        self.assertEqual(len(body["failed_parks"]), 2)
        self.assertIsNone(body["next_run_time"])


if __name__ == "__main__":  # pragma: no cover
    unittest.main()
