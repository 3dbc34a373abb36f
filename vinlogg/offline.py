"""
Offline cache layer.

The browser service worker is rendered from the policy constants below and
served at `/sw.js`. `OfflineCache` is the same set of policies expressed
against an in-process cache store, used to exercise the behaviour.
"""

from __future__ import annotations

import json
import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor, wait
from dataclasses import dataclass
from enum import StrEnum
from string import Template
from typing import Callable, Dict, List, Optional, Sequence
from urllib.parse import urljoin, urlsplit

from fastapi import APIRouter, Request
from fastapi.responses import Response

logger = logging.getLogger(__name__)

CACHE_PREFIX = "vinlogg"
STATIC_ASSETS = (
    "/",
    "/manifest.json",
    "/wine-icon-192.png",
    "/wine-icon-512.png",
)
NETWORK_FIRST_PATH = "/api/logs"
API_PREFIX = "/api/"
SKIP_WAITING_MESSAGE = "skipWaiting"


class CachePolicy(StrEnum):
    BYPASS = "bypass"
    NETWORK_FIRST = "network-first"
    STALE_WHILE_REVALIDATE = "stale-while-revalidate"


def cache_name(version: str) -> str:
    return f"{CACHE_PREFIX}-{version}"


def select_policy(method: str, url: str) -> CachePolicy:
    """Pick the fetch policy from the request shape alone."""
    if method.upper() != "GET":
        return CachePolicy.BYPASS
    path = urlsplit(url).path or "/"
    if path == NETWORK_FIRST_PATH:
        return CachePolicy.NETWORK_FIRST
    if path.startswith(API_PREFIX):
        return CachePolicy.BYPASS
    return CachePolicy.STALE_WHILE_REVALIDATE


class NetworkError(Exception):
    """The network could not be reached."""


@dataclass(frozen=True)
class CachedResponse:
    url: str
    status: int = 200
    body: bytes = b""
    content_type: str = "text/html"

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300


Fetcher = Callable[[str], CachedResponse]


class CacheStorage:
    """Named caches of responses keyed by full request URL."""

    def __init__(self):
        self._caches: Dict[str, Dict[str, CachedResponse]] = {}
        self._lock = threading.Lock()

    def keys(self) -> List[str]:
        with self._lock:
            return list(self._caches)

    def delete(self, name: str) -> bool:
        with self._lock:
            return self._caches.pop(name, None) is not None

    def put(self, name: str, response: CachedResponse) -> None:
        with self._lock:
            self._caches.setdefault(name, {})[response.url] = response

    def put_all(self, name: str, responses: Sequence[CachedResponse]) -> None:
        with self._lock:
            cache = self._caches.setdefault(name, {})
            for response in responses:
                cache[response.url] = response

    def match(self, url: str) -> Optional[CachedResponse]:
        with self._lock:
            for cache in self._caches.values():
                if url in cache:
                    return cache[url]
        return None


class OfflineCache:
    def __init__(
        self,
        fetch: Fetcher,
        version: str = "v1",
        origin: str = "http://localhost",
        static_assets: Sequence[str] = STATIC_ASSETS,
        storage: Optional[CacheStorage] = None,
    ):
        self._fetch = fetch
        self.name = cache_name(version)
        self.origin = origin
        self.static_assets = tuple(static_assets)
        self.storage = storage or CacheStorage()
        self.active = False
        self._executor = ThreadPoolExecutor(
            max_workers=1, thread_name_prefix="sw-revalidate"
        )
        self._pending: List[Future] = []

    def install(self) -> None:
        """Precache static assets; nothing is stored unless all of them load."""
        responses = [
            self._fetch(urljoin(self.origin, asset)) for asset in self.static_assets
        ]
        failed = [response.url for response in responses if not response.ok]
        if failed:
            raise NetworkError(f"precache failed for {failed}")
        self.storage.put_all(self.name, responses)

    def activate(self) -> List[str]:
        """Drop every cache generation other than the current one."""
        stale = [name for name in self.storage.keys() if name != self.name]
        for name in stale:
            self.storage.delete(name)
        self.active = True
        if stale:
            logger.info("Swept old caches: %s", stale)
        return stale

    def handle_message(self, message: str) -> None:
        if message == SKIP_WAITING_MESSAGE:
            self.activate()

    def handle(self, method: str, url: str) -> Optional[CachedResponse]:
        policy = select_policy(method, url)
        if policy == CachePolicy.BYPASS:
            return self._fetch(url)
        if policy == CachePolicy.NETWORK_FIRST:
            return self._network_first(url)
        return self._stale_while_revalidate(url)

    def _network_first(self, url: str) -> Optional[CachedResponse]:
        try:
            response = self._fetch(url)
        except NetworkError:
            return self.storage.match(url)
        self.storage.put(self.name, response)
        return response

    def _stale_while_revalidate(self, url: str) -> Optional[CachedResponse]:
        cached = self.storage.match(url)
        future = self._executor.submit(self._revalidate, url, cached)
        self._pending = [f for f in self._pending if not f.done()]
        self._pending.append(future)
        if cached is not None:
            return cached
        return future.result()

    def _revalidate(
        self, url: str, cached: Optional[CachedResponse]
    ) -> Optional[CachedResponse]:
        try:
            response = self._fetch(url)
        except NetworkError:
            return cached
        if response.ok:
            self.storage.put(self.name, response)
        return response

    def wait_for_revalidation(self, timeout: Optional[float] = None) -> None:
        pending, self._pending = self._pending, []
        wait(pending, timeout=timeout)

    def close(self) -> None:
        self._executor.shutdown(wait=True)


_SERVICE_WORKER_TEMPLATE = Template(
    """const CACHE_NAME = '${cache_name}';
const STATIC_ASSETS = ${static_assets};
const NETWORK_FIRST_PATH = '${network_first_path}';
const API_PREFIX = '${api_prefix}';

self.addEventListener('install', (event) => {
    event.waitUntil(
        caches.open(CACHE_NAME).then((cache) => cache.addAll(STATIC_ASSETS))
    );
    self.skipWaiting();
});

self.addEventListener('activate', (event) => {
    event.waitUntil(
        caches.keys().then((cacheNames) => Promise.all(
            cacheNames
                .filter((name) => name !== CACHE_NAME)
                .map((name) => caches.delete(name))
        ))
    );
    self.clients.claim();
});

self.addEventListener('fetch', (event) => {
    const { request } = event;
    const url = new URL(request.url);

    if (request.method !== 'GET') return;

    if (url.pathname === NETWORK_FIRST_PATH) {
        event.respondWith(
            fetch(request)
                .then((response) => {
                    const copy = response.clone();
                    caches.open(CACHE_NAME).then((cache) => cache.put(request, copy));
                    return response;
                })
                .catch(() => caches.match(request))
        );
        return;
    }

    if (url.pathname.startsWith(API_PREFIX)) return;

    event.respondWith(
        caches.match(request).then((cached) => {
            const refresh = fetch(request)
                .then((response) => {
                    if (response.ok) {
                        const copy = response.clone();
                        caches.open(CACHE_NAME).then((cache) => cache.put(request, copy));
                    }
                    return response;
                })
                .catch(() => cached);
            return cached || refresh;
        })
    );
});

self.addEventListener('message', (event) => {
    if (event.data === '${skip_waiting}') {
        self.skipWaiting();
    }
});
"""
)


def render_service_worker(
    version: str, static_assets: Sequence[str] = STATIC_ASSETS
) -> str:
    return _SERVICE_WORKER_TEMPLATE.substitute(
        cache_name=cache_name(version),
        static_assets=json.dumps(list(static_assets)),
        network_first_path=NETWORK_FIRST_PATH,
        api_prefix=API_PREFIX,
        skip_waiting=SKIP_WAITING_MESSAGE,
    )


router = APIRouter()


@router.get("/sw.js", include_in_schema=False)
def service_worker(request: Request) -> Response:
    settings = request.app.state.settings
    return Response(
        content=render_service_worker(settings.cache_version),
        media_type="application/javascript",
        headers={"Service-Worker-Allowed": "/", "Cache-Control": "no-cache"},
    )
