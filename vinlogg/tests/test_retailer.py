import unittest
from unittest.mock import MagicMock, patch

import requests

from shared.types import RetailerProduct
from vinlogg.auth import SupabaseAuthClient
from vinlogg.retailer import (
    SYSTEMBOLAGET_SEARCH_URL,
    StaticRetailerClient,
    SystembolagetClient,
    build_search_query,
    parse_product,
)

SEARCH_RESPONSE = {
    "products": [
        {
            "productNumber": "7421",
            "productNameBold": "Barolo",
            "productNameThin": "Fontanafredda",
            "price": 289.0,
            "tapiTasteArray": ["Nöt", "Lamm"],
            "images": [{"imageUrl": "https://example.test/7421.png"}],
        },
        {"productNumber": "9999", "productNameBold": "Annat vin"},
    ]
}


def _response(payload=None, status_code=200):
    response = MagicMock()
    response.status_code = status_code
    response.json.return_value = payload
    if status_code >= 400:
        response.raise_for_status.side_effect = requests.HTTPError(str(status_code))
    return response


class SystembolagetClientTests(unittest.TestCase):
    def test_build_search_query(self):
        self.assertEqual(build_search_query("Barolo ", "Fontanafredda"), "Barolo Fontanafredda")
        self.assertEqual(build_search_query(" Barolo "), "Barolo")
        self.assertEqual(build_search_query("Barolo", "  "), "Barolo")
        self.assertEqual(build_search_query(" Barolo", " Fontanafredda "), "Barolo Fontanafredda")

    def test_parse_product(self):
        product = parse_product(SEARCH_RESPONSE["products"][0])
        self.assertEqual(product.article_number, "7421")
        self.assertEqual(product.name, "Barolo Fontanafredda")
        self.assertEqual(product.url, "https://www.systembolaget.se/produkt/vin/7421")
        self.assertEqual(product.image_url, "https://example.test/7421.png")

        bare = parse_product(SEARCH_RESPONSE["products"][1])
        self.assertEqual(bare.food_pairing_tags, [])
        self.assertIsNone(bare.image_url)
        self.assertIsNone(bare.price)

    @patch("vinlogg.retailer.requests.get")
    def test_first_hit_is_returned(self, mock_get):
        mock_get.return_value = _response(SEARCH_RESPONSE)
        client = SystembolagetClient(api_key="secret", timeout=3)

        product = client.search("Barolo", "Fontanafredda")
        self.assertEqual(product.article_number, "7421")

        args, kwargs = mock_get.call_args
        self.assertEqual(args[0], SYSTEMBOLAGET_SEARCH_URL)
        self.assertEqual(kwargs["params"]["q"], "Barolo Fontanafredda")
        self.assertEqual(kwargs["headers"]["Ocp-Apim-Subscription-Key"], "secret")
        self.assertEqual(kwargs["timeout"], 3)

    @patch("vinlogg.retailer.requests.get")
    def test_no_hits(self, mock_get):
        mock_get.return_value = _response({"products": []})
        self.assertIsNone(SystembolagetClient().search("Okänt"))

    @patch("vinlogg.retailer.requests.get")
    def test_failures_yield_none(self, mock_get):
        mock_get.side_effect = requests.ConnectionError("offline")
        self.assertIsNone(SystembolagetClient().search("Barolo"))

        mock_get.side_effect = None
        mock_get.return_value = _response(status_code=503)
        self.assertIsNone(SystembolagetClient().search("Barolo"))

        broken = _response()
        broken.json.side_effect = ValueError("not json")
        mock_get.return_value = broken
        self.assertIsNone(SystembolagetClient().search("Barolo"))

    def test_static_client_matches_on_name(self):
        product = RetailerProduct(
            article_number="1", name="Chablis Premier Cru", price=None
        )
        client = StaticRetailerClient([product])
        self.assertIs(client.search("chablis"), product)
        self.assertIsNone(client.search("Barolo"))
        self.assertIsNone(client.search("  "))


class SupabaseAuthClientTests(unittest.TestCase):
    def setUp(self):
        self.client = SupabaseAuthClient(
            url="https://project.supabase.co/", anon_key="anon", service_role_key="service"
        )
        self.client._session = MagicMock()

    def test_get_user(self):
        self.client._session.get.return_value = _response(
            {"id": "u1", "email": "Alice@Example.com"}
        )
        user = self.client.get_user("token")
        self.assertEqual(user.id, "u1")
        self.assertEqual(user.email, "alice@example.com")

        args, kwargs = self.client._session.get.call_args
        self.assertEqual(args[0], "https://project.supabase.co/auth/v1/user")
        self.assertEqual(kwargs["headers"]["Authorization"], "Bearer token")

    def test_rejected_token(self):
        self.client._session.get.return_value = _response(status_code=401)
        self.assertIsNone(self.client.get_user("expired"))

    def test_find_user_id_by_email(self):
        self.client._session.get.return_value = _response(
            {"users": [{"id": "u1", "email": "a@x.se"}, {"id": "u2", "email": "B@x.se"}]}
        )
        self.assertEqual(self.client.find_user_id_by_email("b@x.se"), "u2")
        self.assertIsNone(self.client.find_user_id_by_email("c@x.se"))

    def test_lookup_without_service_key(self):
        client = SupabaseAuthClient(url="https://project.supabase.co", anon_key="anon")
        self.assertIsNone(client.find_user_id_by_email("a@x.se"))

    def test_lookup_failure(self):
        self.client._session.get.side_effect = requests.Timeout()
        self.assertIsNone(self.client.find_user_id_by_email("a@x.se"))


if __name__ == "__main__":
    unittest.main()
