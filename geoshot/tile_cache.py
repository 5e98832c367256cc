"""
Disk-backed cache of OpenStreetMap tiles.

    cache_dir/
      ├─ {z}_{x}_{y}.png
      └─ ...

A hit returns the local file path without touching the network.  A miss
downloads the tile and writes it verbatim.  Any failure degrades to the
remote tile URL, which callers render just like a local path.
"""
from __future__ import annotations

import asyncio
import logging
import os
from collections import OrderedDict
from pathlib import Path
from typing import Awaitable, Callable

from .api.tiles import download_tile
from .config import DEFAULT_CACHE_DIR
from .const import DEFAULT_TILE_ZOOM, MAX_CACHED_TILES, USER_AGENT
from .projection import project, tile_filename, tile_url
from .request_coalescer import RequestCoalescer

_LOGGER = logging.getLogger(__name__)

Downloader = Callable[[int, int, int], Awaitable[bytes]]


class TileCache:
    """Tile cache rooted at cache_dir, bounded to max_tiles files (least recently used evicted)."""

    def __init__(
        self,
        cache_dir: str | os.PathLike = DEFAULT_CACHE_DIR,
        *,
        user_agent: str = USER_AGENT,
        max_tiles: int | None = MAX_CACHED_TILES,
        downloader: Downloader | None = None,
    ) -> None:
        self.root = Path(cache_dir)
        self.max_tiles = max_tiles
        self._user_agent = user_agent
        self._downloader = downloader
        self._coalescer = RequestCoalescer()
        # Tile filenames, least recently used first; loaded lazily from disk
        self._index: OrderedDict[str, None] | None = None

    # -------- public API --------

    async def async_get_tile(self, lat: float, lon: float, zoom: int = DEFAULT_TILE_ZOOM) -> str:
        """Return a local path or remote URL for the tile under (lat, lon). Never raises."""
        x, y = project(lat, lon, zoom)
        key = (int(zoom), x, y)
        try:
            return await self._coalescer.run(key, lambda: self._async_fetch(*key))
        except Exception as exc:  # noqa: BLE001
            _LOGGER.error("Unexpected tile cache error for %s: %s", key, exc)
            return tile_url(*key)

    def path_for(self, zoom: int, x: int, y: int) -> Path:
        return self.root / tile_filename(zoom, x, y)

    def stats(self) -> dict[str, int]:
        return {"tiles": len(self._cached_files())}

    async def async_shutdown(self) -> None:
        await self._coalescer.shutdown()

    # -------- internals --------

    async def _async_fetch(self, zoom: int, x: int, y: int) -> str:
        url = tile_url(zoom, x, y)
        path = self.path_for(zoom, x, y)

        try:
            await self._async_load_index()
            hit = await asyncio.to_thread(self._lookup, path)
        except OSError as exc:
            _LOGGER.warning("Tile cache lookup failed for %s: %s", path, exc)
            return url
        if hit:
            self._touch(path)
            return str(path)

        try:
            content = await self._download(zoom, x, y)
        except Exception as exc:  # noqa: BLE001
            _LOGGER.warning("Failed to download tile %s: %s", url, exc)
            return url

        try:
            await asyncio.to_thread(self._write, path, content)
        except OSError as exc:
            _LOGGER.warning("Failed to write tile %s: %s", path, exc)
            return url

        self._touch(path)
        await self._async_evict()
        return str(path)

    async def _download(self, zoom: int, x: int, y: int) -> bytes:
        if self._downloader is not None:
            return await self._downloader(zoom, x, y)
        return await download_tile(zoom, x, y, user_agent=self._user_agent)

    def _lookup(self, path: Path) -> bool:
        self.root.mkdir(parents=True, exist_ok=True)
        if not path.is_file():
            return False
        # Refresh mtime so recency survives a restart
        os.utime(path)
        return True

    def _write(self, path: Path, content: bytes) -> None:
        self.root.mkdir(parents=True, exist_ok=True)
        path.write_bytes(content)

    def _cached_files(self) -> list[Path]:
        if not self.root.is_dir():
            return []
        return [p for p in self.root.glob("*.png") if p.is_file()]

    def _scan_by_mtime(self) -> list[str]:
        files = self._cached_files()
        return [p.name for p in sorted(files, key=lambda p: p.stat().st_mtime)]

    async def _async_load_index(self) -> None:
        """Read the directory once; afterwards recency is tracked in memory."""
        if self._index is not None:
            return
        names = await asyncio.to_thread(self._scan_by_mtime)
        if self._index is None:
            self._index = OrderedDict((name, None) for name in names)

    def _touch(self, path: Path) -> None:
        if self._index is None:
            self._index = OrderedDict()
        self._index[path.name] = None
        self._index.move_to_end(path.name)

    async def _async_evict(self) -> None:
        """Delete least recently used tiles beyond max_tiles, never the one just written."""
        if self.max_tiles is None or self._index is None:
            return
        stale: list[Path] = []
        # The tile just written is last in the index, so it is never popped here
        while len(self._index) > self.max_tiles:
            name, _ = self._index.popitem(last=False)
            stale.append(self.root / name)
        if not stale:
            return
        try:
            await asyncio.to_thread(self._unlink_all, stale)
        except OSError as exc:
            _LOGGER.warning("Tile cache eviction failed in %s: %s", self.root, exc)

    @staticmethod
    def _unlink_all(paths: list[Path]) -> None:
        for stale in paths:
            stale.unlink(missing_ok=True)
            _LOGGER.debug("Evicted tile %s", stale.name)


_default_caches: dict[str, TileCache] = {}


async def get_tile(
    lat: float,
    lon: float,
    zoom: int = DEFAULT_TILE_ZOOM,
    cache_dir: str | os.PathLike = DEFAULT_CACHE_DIR,
) -> str:
    """Module-level convenience over a per-directory TileCache."""
    key = str(cache_dir)
    cache = _default_caches.get(key)
    if cache is None:
        cache = _default_caches[key] = TileCache(cache_dir)
    return await cache.async_get_tile(lat, lon, zoom)
