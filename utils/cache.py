"""
Cache Module - In-process cache behind the public pages

API data for public blog and project pages is kept here for PAGE_CACHE_TTL
seconds, keyed by page path. Content changes in the dashboard invalidate affected paths.
"""

import threading
import time

from flask import current_app, request


class PageCache:
    def __init__(self, ttl=60, clock=time.monotonic):
        self.ttl = ttl
        self.clock = clock
        self._entries = {}
        self._lock = threading.Lock()

    def get(self, path):
        with self._lock:
            entry = self._entries.get(path)
            if entry is None:
                return None
            stored_at, body = entry
            if self.ttl is not None and self.clock() - stored_at > self.ttl:
                del self._entries[path]
                return None
            return body

    def set(self, path, body):
        if not self.ttl:
            return
        with self._lock:
            self._entries[path] = (self.clock(), body)

    def invalidate(self, path):
        """Drop ``path`` and every cached page below it"""
        prefix = path.rstrip('/') + '/'
        with self._lock:
            stale = [p for p in self._entries if p == path or p.startswith(prefix)]
            for p in stale:
                del self._entries[p]
        return len(stale)

    def clear(self):
        with self._lock:
            self._entries.clear()


def get_page_cache():
    return current_app.extensions['page_cache']


def revalidate_path(path):
    """Fire-and-forget invalidation after a content change; failures are logged"""
    try:
        removed = get_page_cache().invalidate(path)
        current_app.logger.info(f"Revalidated {path} ({removed} cached page(s) dropped)")
        return True
    except Exception as e:
        current_app.logger.warning(f"Revalidation of {path} failed: {str(e)}")
        return False


def cached_fetch(loader, path=None):
    """API data for a public page, cached under the page path"""
    cache = get_page_cache()
    path = path or request.path
    data = cache.get(path)
    if data is None:
        data = loader()
        if data is not None:
            cache.set(path, data)
    return data


__all__ = ['PageCache', 'cached_fetch', 'get_page_cache', 'revalidate_path']
