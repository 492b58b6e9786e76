"""
Versioned cache of the web app's static assets.

install() downloads the precache list into the current named cache,
activate() drops caches of older versions, fetch() answers from any cache
first and only goes to the origin on a miss.
"""
import os
import time
from typing import Callable, Dict, List, Optional, Tuple

import httpx
from chalice import Response

from chalicelib.constants.status_codes import http200
from chalicelib.utils import exceptions, http as utils_http
from chalicelib.utils.logger import logger

CACHE_NAME = 'apanda-v1'
PRECACHE_URLS = (
    '/',
    '/static/js/bundle.js',
    '/static/css/main.css',
    '/manifest.json',
    '/icon-192.png',
    '/icon-512.png'
)

INSTALL_RETRY_SECONDS = 300

_ASSET_CACHE = None


class CachedAsset:
    def __init__(self, path: str, status_code: int, content_type: str, body: bytes):
        self.path = path
        self.status_code = status_code
        self.content_type = content_type
        self.body = body

    def to_response(self) -> Response:
        body = self.body
        if self.content_type.startswith(('text/', 'application/json', 'application/javascript')):
            body = self.body.decode('utf-8')
        return Response(status_code=self.status_code, body=body, headers={'Content-Type': self.content_type})


class CacheStorage:
    """ Named caches of path -> CachedAsset """

    def __init__(self):
        self._caches: Dict[str, Dict[str, CachedAsset]] = {}

    def open(self, name: str) -> Dict[str, CachedAsset]:
        return self._caches.setdefault(name, {})

    def keys(self) -> List[str]:
        return list(self._caches.keys())

    def delete(self, name: str) -> bool:
        return self._caches.pop(name, None) is not None

    def match(self, path: str) -> Optional[CachedAsset]:
        for cache in self._caches.values():
            if path in cache:
                return cache[path]
        return None


class AssetCache:
    def __init__(self, origin_url: str, storage: Optional[CacheStorage] = None, cache_name: str = CACHE_NAME,
                 precache_urls: Tuple[str, ...] = PRECACHE_URLS,
                 client_factory: Callable[[], httpx.Client] = utils_http.get_http_client):
        self.origin_url = origin_url.rstrip('/')
        self.storage = storage if storage is not None else CacheStorage()
        self.cache_name = cache_name
        self.precache_urls = precache_urls
        self.client_factory = client_factory
        self.installed = False
        self.install_failed_at: Optional[float] = None

    def _fetch_from_network(self, client: httpx.Client, path: str) -> CachedAsset:
        response = client.get(f'{self.origin_url}{path}')
        return CachedAsset(
            path=path,
            status_code=response.status_code,
            content_type=response.headers.get('content-type', 'application/octet-stream'),
            body=response.content
        )

    def install(self) -> int:
        """
        Adds every precache url to the named cache.
        Nothing is cached if any of them can not be downloaded
        """
        try:
            with self.client_factory() as client:
                assets = {path: self._fetch_from_network(client, path) for path in self.precache_urls}
        except httpx.HTTPError as error:
            raise exceptions.AssetFetchError(f'Precache failed: {error}')
        failed = [path for path, asset in assets.items() if asset.status_code >= 400]
        if failed:
            raise exceptions.AssetFetchError(f'Precache failed for {failed}')
        self.storage.open(self.cache_name).update(assets)
        self.installed = True
        logger.info(f'install ::: opened cache {self.cache_name}, {len(assets)} assets cached')
        return len(assets)

    def activate(self) -> List[str]:
        deleted = [name for name in self.storage.keys() if name != self.cache_name]
        for name in deleted:
            logger.info(f'activate ::: deleting old cache {name}')
            self.storage.delete(name)
        return deleted

    def fetch(self, path: str) -> CachedAsset:
        cached = self.storage.match(path)
        if cached is not None:
            logger.debug(f'fetch ::: {path} served from cache')
            return cached
        logger.debug(f'fetch ::: {path} is not cached, going to network')
        try:
            with self.client_factory() as client:
                return self._fetch_from_network(client, path)
        except httpx.HTTPError as error:
            raise exceptions.AssetFetchError(f'Could not fetch {path}: {error}')


def static_origin_url() -> str:
    origin_url = os.environ.get('STATIC_ORIGIN_URL')
    if not origin_url:
        raise exceptions.ConfigurationError('STATIC_ORIGIN_URL is not configured')
    return origin_url


def get_asset_cache() -> AssetCache:
    """
    Cache of this lambda container, installed and activated on first use.
    A failed install is remembered, requests go to the origin until INSTALL_RETRY_SECONDS pass
    """
    global _ASSET_CACHE
    if _ASSET_CACHE is None:
        _ASSET_CACHE = AssetCache(static_origin_url())
    asset_cache = _ASSET_CACHE
    if asset_cache.installed:
        return asset_cache
    if asset_cache.install_failed_at is not None and \
            time.monotonic() - asset_cache.install_failed_at < INSTALL_RETRY_SECONDS:
        return asset_cache
    try:
        asset_cache.install()
    except exceptions.AssetFetchError as error:
        asset_cache.install_failed_at = time.monotonic()
        logger.warning(f'get_asset_cache ::: install failed, serving from origin: {error}')
        return asset_cache
    asset_cache.activate()
    return asset_cache


def asset_path(name: str) -> str:
    """ index or an empty name is the root page, otherwise the precached path with that file name """
    if name in ('', 'index', 'index.html'):
        return '/'
    for path in PRECACHE_URLS:
        if path.rsplit('/', 1)[-1] == name:
            return path
    return f'/{name}'


def endpoint_static_asset(name: str) -> Response:
    asset = get_asset_cache().fetch(asset_path(name))
    logger.info(f'endpoint_static_asset ::: {name=} status={asset.status_code}')
    response = asset.to_response()
    if asset.status_code == http200:
        response.headers['Cache-Control'] = 'public, max-age=3600'
    return response
