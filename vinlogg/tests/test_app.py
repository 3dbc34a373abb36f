import asyncio
import unittest
from unittest.mock import MagicMock

from testing_utils import auth_header, make_client, make_services

from shared.types import PartnerStatus
from vinlogg.db import WineRecord
from vinlogg.errors import DbError
from vinlogg.storage import StorageError


class BackendApiTests(unittest.TestCase):
    def setUp(self):
        self.services = make_services()
        self.client = make_client(self.services)
        self.db = self.services.db
        self.auth = self.services.auth
        self.alice = self.auth.add_user("alice@example.com", user_id="alice")
        self.bob = self.auth.add_user("bob@example.com", user_id="bob")
        self.wine = self.db.insert_wine(
            WineRecord(
                name="Barolo Classico",
                producer="Cantina Test",
                region="Piemonte",
                article_number="1001",
                food_pairing_tags=["Nöt", "Vilt"],
            )
        )

    def _post_log(self, token, **fields):
        payload = {"wine_id": self.wine.id, "rating": 4}
        payload.update(fields)
        response = self.client.post("/api/logs", json=payload, headers=auth_header(token))
        self.assertEqual(response.status_code, 200, response.text)
        return response.json()["log"]

    def test_health_needs_no_session(self):
        response = self.client.get("/api/health")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["status"], "ok")

    def test_missing_session_is_401_with_error_body(self):
        response = self.client.get("/api/logs")
        self.assertEqual(response.status_code, 401)
        self.assertEqual(response.json(), {"error": "Du måste vara inloggad"})

        response = self.client.get("/api/logs", headers=auth_header("bogus"))
        self.assertEqual(response.status_code, 401)

    def test_session_cookie_is_accepted(self):
        self.client.cookies.set("sb-access-token", self.alice)
        response = self.client.get("/api/logs")
        self.assertEqual(response.status_code, 200)

    def test_malformed_body_is_400_with_error_body(self):
        response = self.client.post(
            "/api/logs",
            json={"rating": "not a number"},
            headers=auth_header(self.alice),
        )
        self.assertEqual(response.status_code, 400)
        self.assertIn("error", response.json())

    def test_create_and_list_logs(self):
        log = self._post_log(self.alice, notes="Mjuk och fin", date="2024-05-01")
        self.assertEqual(log["user_id"], "alice")
        self.assertEqual(log["wine"]["name"], "Barolo Classico")
        self.assertEqual(log["date"], "2024-05-01")

        response = self.client.get("/api/logs", headers=auth_header(self.alice))
        self.assertEqual(response.status_code, 200)
        logs = response.json()["logs"]
        self.assertEqual([item["id"] for item in logs], [log["id"]])

    def test_log_date_defaults_to_today(self):
        log = self._post_log(self.alice)
        self.assertRegex(log["date"], r"^\d{4}-\d{2}-\d{2}$")

    def test_log_rating_out_of_range_is_rejected(self):
        response = self.client.post(
            "/api/logs", json={"rating": 6}, headers=auth_header(self.alice)
        )
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["error"], "Betyget måste vara mellan 1 och 5")

    def test_log_with_unknown_wine_is_rejected(self):
        response = self.client.post(
            "/api/logs", json={"wine_id": "nope"}, headers=auth_header(self.alice)
        )
        self.assertEqual(response.status_code, 400)

    def test_update_log_only_by_owner(self):
        log = self._post_log(self.alice)
        response = self.client.patch(
            "/api/logs",
            json={"id": log["id"], "rating": 5, "notes": "Ännu bättre"},
            headers=auth_header(self.alice),
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["log"]["rating"], 5)
        self.assertEqual(response.json()["log"]["notes"], "Ännu bättre")

        response = self.client.patch(
            "/api/logs",
            json={"id": log["id"], "rating": 1},
            headers=auth_header(self.bob),
        )
        self.assertEqual(response.status_code, 404)
        self.assertEqual(self.db.get_log(log["id"]).rating, 5)

    def test_delete_log(self):
        log = self._post_log(self.alice)

        response = self.client.delete("/api/logs", headers=auth_header(self.alice))
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["error"], "Inget log-ID angavs")

        response = self.client.delete(
            "/api/logs", params={"id": log["id"]}, headers=auth_header(self.bob)
        )
        self.assertEqual(response.status_code, 404)

        response = self.client.delete(
            "/api/logs", params={"id": log["id"]}, headers=auth_header(self.alice)
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json(), {"success": True, "deleted_id": log["id"]})
        self.assertIsNone(self.db.get_log(log["id"]))

    def test_backend_failure_is_500_with_localized_message(self):
        db = MagicMock()
        db.list_partner_links.side_effect = DbError("connection refused")
        services = make_services(db=db)
        token = services.auth.add_user("carol@example.com")
        client = make_client(services)

        response = client.get("/api/logs", headers=auth_header(token))
        self.assertEqual(response.status_code, 500)
        self.assertEqual(response.json(), {"error": "Kunde inte hämta viner"})

    def test_create_wine_deduplicates_by_article_number(self):
        response = self.client.post(
            "/api/wines",
            json={"name": "Barolo (annan etikett)", "article_number": 1001},
            headers=auth_header(self.alice),
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["wine"]["id"], self.wine.id)
        self.assertFalse(response.json()["created"])
        self.assertEqual(len(self.db.wines), 1)

    def test_create_wine_deduplicates_by_name_and_producer(self):
        payload = {"name": "Husets Röda", "producer": "Vingård", "food_pairing_tags": ["Nöt", "Pizza"]}
        first = self.client.post("/api/wines", json=payload, headers=auth_header(self.alice))
        second = self.client.post(
            "/api/wines",
            json={"name": "husets röda", "producer": "VINGÅRD"},
            headers=auth_header(self.bob),
        )
        self.assertTrue(first.json()["created"])
        self.assertEqual(first.json()["wine"]["food_pairing_tags"], ["Nöt"])
        self.assertEqual(second.json()["wine"]["id"], first.json()["wine"]["id"])

    def test_create_wine_requires_name(self):
        response = self.client.post(
            "/api/wines", json={"producer": "X"}, headers=auth_header(self.alice)
        )
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["error"], "Namn krävs")

    def test_get_wine(self):
        response = self.client.get(
            "/api/wines", params={"id": self.wine.id}, headers=auth_header(self.alice)
        )
        self.assertEqual(response.json()["wine"]["article_number"], "1001")
        response = self.client.get(
            "/api/wines", params={"id": "missing"}, headers=auth_header(self.alice)
        )
        self.assertEqual(response.status_code, 404)

    def test_cellar_add_update_and_remove(self):
        headers = auth_header(self.alice)
        response = self.client.post(
            "/api/cellar", json={"wine_id": self.wine.id, "quantity": 2}, headers=headers
        )
        self.assertEqual(response.json()["action"], "created")
        item = response.json()["item"]
        self.assertEqual(item["quantity"], 2)
        self.assertEqual(item["wine"]["name"], "Barolo Classico")

        response = self.client.post(
            "/api/cellar", json={"wine_id": self.wine.id}, headers=headers
        )
        self.assertEqual(response.json()["action"], "updated")
        self.assertEqual(response.json()["item"]["quantity"], 3)

        response = self.client.patch(
            "/api/cellar", json={"id": item["id"], "quantity": 1}, headers=headers
        )
        self.assertEqual(response.json()["item"]["quantity"], 1)

        response = self.client.patch(
            "/api/cellar", json={"id": item["id"], "quantity": 0}, headers=headers
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json(), {"item": None, "action": "removed"})
        self.assertEqual(self.db.cellar, {})

        response = self.client.get("/api/cellar", headers=headers)
        self.assertEqual(response.json()["cellar"], [])

    def test_cellar_negative_quantity_removes_row(self):
        headers = auth_header(self.alice)
        item = self.client.post(
            "/api/cellar", json={"wine_id": self.wine.id}, headers=headers
        ).json()["item"]
        response = self.client.patch(
            "/api/cellar", json={"id": item["id"], "quantity": -4}, headers=headers
        )
        self.assertEqual(response.json()["action"], "removed")
        self.assertNotIn(item["id"], self.db.cellar)

    def test_cellar_validation(self):
        headers = auth_header(self.alice)
        response = self.client.post("/api/cellar", json={}, headers=headers)
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["error"], "wine_id krävs")

        response = self.client.post(
            "/api/cellar", json={"wine_id": self.wine.id, "quantity": 0}, headers=headers
        )
        self.assertEqual(response.status_code, 400)

        response = self.client.patch("/api/cellar", json={"quantity": 2}, headers=headers)
        self.assertEqual(response.status_code, 400)

    def test_cellar_rows_belong_to_owner(self):
        item = self.client.post(
            "/api/cellar", json={"wine_id": self.wine.id}, headers=auth_header(self.alice)
        ).json()["item"]
        response = self.client.patch(
            "/api/cellar",
            json={"id": item["id"], "quantity": 0},
            headers=auth_header(self.bob),
        )
        self.assertEqual(response.status_code, 404)
        response = self.client.delete(
            "/api/cellar", params={"id": item["id"]}, headers=auth_header(self.bob)
        )
        self.assertEqual(response.status_code, 404)
        self.assertIn(item["id"], self.db.cellar)

    def test_invite_pending_then_linked_at_sign_in(self):
        carol_email = "Carol@Example.com "
        response = self.client.post(
            "/api/partners", json={"email": carol_email}, headers=auth_header(self.alice)
        )
        self.assertEqual(response.status_code, 200)
        invite = response.json()["invite"]
        self.assertEqual(invite["status"], PartnerStatus.PENDING)
        self.assertEqual(invite["partner_email"], "carol@example.com")
        self.assertIsNone(invite["partner_user_id"])

        alice_log = self._post_log(self.alice)

        carol = self.auth.add_user("carol@example.com", user_id="carol")
        carol_log = self._post_log(carol, rating=2)

        pending = self.client.get("/api/partners", headers=auth_header(carol)).json()
        self.assertEqual(len(pending["pending_invites"]), 1)
        self.assertEqual(pending["partners"], [])

        response = self.client.post("/api/partners/link", headers=auth_header(carol))
        self.assertEqual(response.json()["linked"], 1)

        for token in (self.alice, carol):
            logs = self.client.get("/api/logs", headers=auth_header(token)).json()["logs"]
            self.assertEqual(
                sorted(log["id"] for log in logs),
                sorted([alice_log["id"], carol_log["id"]]),
            )

        partners = self.client.get("/api/partners", headers=auth_header(carol)).json()
        self.assertEqual(len(partners["partners"]), 1)
        self.assertEqual(partners["pending_invites"], [])

        response = self.client.post("/api/partners/link", headers=auth_header(carol))
        self.assertEqual(response.json()["linked"], 0)

    def test_invite_existing_account_is_accepted_at_once(self):
        response = self.client.post(
            "/api/partners", json={"email": "bob@example.com"}, headers=auth_header(self.alice)
        )
        self.assertEqual(response.json()["invite"]["status"], PartnerStatus.ACCEPTED)
        self.assertEqual(response.json()["invite"]["partner_user_id"], "bob")

    def test_mutual_invites_do_not_duplicate_logs(self):
        self.client.post(
            "/api/partners", json={"email": "bob@example.com"}, headers=auth_header(self.alice)
        )
        self.client.post(
            "/api/partners", json={"email": "alice@example.com"}, headers=auth_header(self.bob)
        )
        self._post_log(self.alice)
        self._post_log(self.bob)

        logs = self.client.get("/api/logs", headers=auth_header(self.alice)).json()["logs"]
        ids = [log["id"] for log in logs]
        self.assertEqual(len(ids), 2)
        self.assertEqual(len(set(ids)), 2)

    def test_partner_sees_shared_cellar(self):
        self.client.post(
            "/api/partners", json={"email": "bob@example.com"}, headers=auth_header(self.alice)
        )
        self.client.post(
            "/api/cellar", json={"wine_id": self.wine.id}, headers=auth_header(self.alice)
        )
        cellar = self.client.get("/api/cellar", headers=auth_header(self.bob)).json()["cellar"]
        self.assertEqual(len(cellar), 1)
        self.assertEqual(cellar[0]["user_id"], "alice")

    def test_invite_validation(self):
        headers = auth_header(self.alice)
        response = self.client.post("/api/partners", json={}, headers=headers)
        self.assertEqual(response.json()["error"], "E-post krävs")

        response = self.client.post(
            "/api/partners", json={"email": "ALICE@example.com"}, headers=headers
        )
        self.assertEqual(response.json()["error"], "Du kan inte bjuda in dig själv")

        self.client.post("/api/partners", json={"email": "x@example.com"}, headers=headers)
        response = self.client.post(
            "/api/partners", json={"email": "x@example.com"}, headers=headers
        )
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["error"], "Denna person är redan inbjuden")

    def test_either_partner_can_remove_link(self):
        invite = self.client.post(
            "/api/partners", json={"email": "bob@example.com"}, headers=auth_header(self.alice)
        ).json()["invite"]
        outsider = self.auth.add_user("eve@example.com")
        response = self.client.delete(
            "/api/partners", params={"id": invite["id"]}, headers=auth_header(outsider)
        )
        self.assertEqual(response.status_code, 404)

        response = self.client.request(
            "DELETE",
            "/api/partners",
            json={"partnerId": invite["id"]},
            headers=auth_header(self.bob),
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(self.db.partners, {})

    def test_stats(self):
        self._post_log(self.alice, rating=5)
        self._post_log(self.alice, rating=3)
        self._post_log(self.alice, rating=None, wine_id=None)

        response = self.client.get("/api/stats", headers=auth_header(self.alice))
        self.assertEqual(response.status_code, 200)
        stats = response.json()
        self.assertEqual(stats["total"], 3)
        self.assertEqual(stats["average_rating"], 4.0)
        self.assertEqual(stats["rating_distribution"], [0, 0, 1, 0, 1])
        self.assertEqual(stats["top_regions"], [{"region": "Piemonte", "count": 2}])
        self.assertEqual(stats["producers"], 1)

    def test_upload_image(self):
        response = self.client.post(
            "/api/images",
            files={"file": ("label.png", b"\x89PNG fake", "image/png")},
            headers=auth_header(self.alice),
        )
        self.assertEqual(response.status_code, 200, response.text)
        payload = response.json()
        self.assertTrue(payload["path"].startswith("alice/"))
        self.assertTrue(payload["path"].endswith(".png"))
        self.assertTrue(payload["url"].endswith(payload["path"]))
        self.assertEqual(
            self.services.storage.get_bytes(payload["path"]), b"\x89PNG fake"
        )

    def test_upload_runs_outside_event_loop(self):
        calls = []

        def upload_bytes(path, data, content_type):
            try:
                asyncio.get_running_loop()
                calls.append("event loop")
            except RuntimeError:
                calls.append("worker thread")

        self.services.storage.upload_bytes = upload_bytes
        response = self.client.post(
            "/api/images",
            files={"file": ("label.jpg", b"jpeg", "image/jpeg")},
            headers=auth_header(self.alice),
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(calls, ["worker thread"])

    def test_upload_storage_failure_is_500(self):
        storage = MagicMock()
        storage.upload_bytes.side_effect = StorageError("bucket missing")
        self.services.storage = storage
        response = self.client.post(
            "/api/images",
            files={"file": ("label.jpg", b"jpeg", "image/jpeg")},
            headers=auth_header(self.alice),
        )
        self.assertEqual(response.status_code, 500)
        self.assertEqual(response.json(), {"error": "Kunde inte ladda upp bilden"})

    def test_upload_rejects_non_images(self):
        response = self.client.post(
            "/api/images",
            files={"file": ("notes.txt", b"hello", "text/plain")},
            headers=auth_header(self.alice),
        )
        self.assertEqual(response.status_code, 400)

    def test_service_worker_script(self):
        response = self.client.get("/sw.js")
        self.assertEqual(response.status_code, 200)
        self.assertIn("application/javascript", response.headers["content-type"])
        self.assertEqual(response.headers["service-worker-allowed"], "/")
        self.assertIn("const CACHE_NAME = 'vinlogg-v7';", response.text)
        self.assertIn('"/manifest.json"', response.text)


if __name__ == "__main__":
    unittest.main()
