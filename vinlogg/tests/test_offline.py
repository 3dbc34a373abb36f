import threading
import unittest

from vinlogg.offline import (
    CachedResponse,
    CachePolicy,
    CacheStorage,
    NetworkError,
    OfflineCache,
    cache_name,
    render_service_worker,
    select_policy,
)

ORIGIN = "https://vinlogg.test"


class FakeNetwork:
    """Serves canned bodies per URL and counts requests."""

    def __init__(self, pages=None):
        self.pages = dict(pages or {})
        self.offline = False
        self.calls = []
        self.gate = None

    def __call__(self, url):
        self.calls.append(url)
        if self.gate is not None:
            self.gate.wait(timeout=5)
        if self.offline:
            raise NetworkError(url)
        if url not in self.pages:
            return CachedResponse(url=url, status=404)
        return CachedResponse(url=url, body=self.pages[url])


def _url(path):
    return f"{ORIGIN}{path}"


def _static_pages(body=b"v1"):
    return {
        _url(path): body
        for path in ("/", "/manifest.json", "/wine-icon-192.png", "/wine-icon-512.png")
    }


class SelectPolicyTests(unittest.TestCase):
    def test_policies(self):
        self.assertEqual(select_policy("POST", _url("/api/logs")), CachePolicy.BYPASS)
        self.assertEqual(select_policy("get", _url("/api/logs")), CachePolicy.NETWORK_FIRST)
        self.assertEqual(
            select_policy("GET", _url("/api/logs?limit=5")), CachePolicy.NETWORK_FIRST
        )
        self.assertEqual(select_policy("GET", _url("/api/cellar")), CachePolicy.BYPASS)
        self.assertEqual(
            select_policy("GET", _url("/manifest.json")), CachePolicy.STALE_WHILE_REVALIDATE
        )
        self.assertEqual(
            select_policy("GET", _url("/wines/123")), CachePolicy.STALE_WHILE_REVALIDATE
        )


class OfflineCacheTests(unittest.TestCase):
    def setUp(self):
        self.network = FakeNetwork(_static_pages())
        self.cache = OfflineCache(self.network, version="v1", origin=ORIGIN)

    def tearDown(self):
        self.cache.close()

    def test_install_precaches_static_assets(self):
        self.cache.install()
        self.network.offline = True
        response = self.cache.handle("GET", _url("/manifest.json"))
        self.assertEqual(response.body, b"v1")
        self.cache.wait_for_revalidation(timeout=5)
        self.assertEqual(self.cache.storage.keys(), ["vinlogg-v1"])

    def test_install_is_all_or_nothing(self):
        del self.network.pages[_url("/wine-icon-512.png")]
        with self.assertRaises(NetworkError):
            self.cache.install()
        self.assertEqual(self.cache.storage.keys(), [])

    def test_activate_sweeps_old_generations(self):
        storage = CacheStorage()
        old = OfflineCache(self.network, version="v1", origin=ORIGIN, storage=storage)
        old.install()
        old.close()

        new = OfflineCache(self.network, version="v2", origin=ORIGIN, storage=storage)
        new.install()
        self.assertEqual(sorted(storage.keys()), ["vinlogg-v1", "vinlogg-v2"])
        self.assertEqual(new.activate(), ["vinlogg-v1"])
        self.assertEqual(storage.keys(), ["vinlogg-v2"])
        self.assertTrue(new.active)
        new.close()

    def test_skip_waiting_message_activates(self):
        self.cache.handle_message("hello")
        self.assertFalse(self.cache.active)
        self.cache.handle_message("skipWaiting")
        self.assertTrue(self.cache.active)

    def test_network_first_falls_back_to_cache(self):
        logs_url = _url("/api/logs")
        self.network.pages[logs_url] = b'{"logs": [1]}'
        self.assertEqual(self.cache.handle("GET", logs_url).body, b'{"logs": [1]}')

        self.network.pages[logs_url] = b'{"logs": [1, 2]}'
        self.assertEqual(self.cache.handle("GET", logs_url).body, b'{"logs": [1, 2]}')

        self.network.offline = True
        self.assertEqual(self.cache.handle("GET", logs_url).body, b'{"logs": [1, 2]}')

    def test_network_first_offline_without_cache(self):
        self.network.offline = True
        self.assertIsNone(self.cache.handle("GET", _url("/api/logs")))

    def test_other_api_routes_are_never_cached(self):
        cellar_url = _url("/api/cellar")
        self.network.pages[cellar_url] = b"[]"
        self.cache.handle("GET", cellar_url)
        self.cache.handle("POST", _url("/api/logs"))
        self.assertIsNone(self.cache.storage.match(cellar_url))
        self.assertIsNone(self.cache.storage.match(_url("/api/logs")))

        self.network.offline = True
        with self.assertRaises(NetworkError):
            self.cache.handle("GET", cellar_url)

    def test_stale_while_revalidate_serves_cache_then_refreshes(self):
        self.cache.install()
        page = _url("/")
        self.network.pages[page] = b"v2"
        self.network.gate = threading.Event()

        first = self.cache.handle("GET", page)
        self.assertEqual(first.body, b"v1")

        self.network.gate.set()
        self.cache.wait_for_revalidation(timeout=5)
        self.assertEqual(self.cache.handle("GET", page).body, b"v2")

    def test_stale_while_revalidate_uncached_goes_to_network(self):
        page = _url("/wines/42")
        self.network.pages[page] = b"wine"
        self.assertEqual(self.cache.handle("GET", page).body, b"wine")
        self.assertEqual(self.cache.storage.match(page).body, b"wine")

    def test_finished_revalidations_are_not_retained(self):
        self.cache.install()
        page = _url("/")
        for _ in range(20):
            self.cache.handle("GET", page)
            self.cache._pending[-1].result(timeout=5)
        self.assertLessEqual(len(self.cache._pending), 1)

    def test_failed_revalidation_does_not_overwrite_cache(self):
        self.cache.install()
        page = _url("/manifest.json")
        self.network.pages.pop(page)
        self.assertEqual(self.cache.handle("GET", page).body, b"v1")
        self.cache.wait_for_revalidation(timeout=5)
        self.assertEqual(self.cache.storage.match(page).body, b"v1")


class ServiceWorkerScriptTests(unittest.TestCase):
    def test_render(self):
        script = render_service_worker("v3", ["/", "/manifest.json"])
        self.assertIn(f"const CACHE_NAME = '{cache_name('v3')}';", script)
        self.assertIn('const STATIC_ASSETS = ["/", "/manifest.json"];', script)
        self.assertIn("const NETWORK_FIRST_PATH = '/api/logs';", script)
        self.assertIn("event.data === 'skipWaiting'", script)
        self.assertNotIn("${", script)


if __name__ == "__main__":
    unittest.main()
