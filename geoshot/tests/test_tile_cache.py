"""
Tests for TileCache: hit/miss behaviour, remote-URL fallback, lazy directory
creation, single-flight downloads and LRU eviction.
"""

from __future__ import annotations

import asyncio
import os
import tempfile
import unittest
from pathlib import Path
from unittest.mock import AsyncMock, patch

from geoshot.projection import project, tile_url
from geoshot.tile_cache import TileCache, get_tile

PNG = b"\x89PNG\r\n\x1a\nfake-tile"
LAT, LON = 48.8584, 2.2945


class TileCacheTestCase(unittest.IsolatedAsyncioTestCase):

    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.root = Path(self._tmp.name) / "tiles"

    def tearDown(self):
        self._tmp.cleanup()


class TestGetTile(TileCacheTestCase):

    async def test_miss_downloads_and_writes_file(self):
        downloader = AsyncMock(return_value=PNG)
        cache = TileCache(self.root, downloader=downloader)

        uri = await cache.async_get_tile(LAT, LON, 15)

        x, y = project(LAT, LON, 15)
        expected = self.root / f"15_{x}_{y}.png"
        self.assertEqual(uri, str(expected))
        self.assertEqual(expected.read_bytes(), PNG)
        downloader.assert_awaited_once_with(15, x, y)

    async def test_second_call_is_cache_hit(self):
        downloader = AsyncMock(return_value=PNG)
        cache = TileCache(self.root, downloader=downloader)

        first = await cache.async_get_tile(LAT, LON, 15)
        second = await cache.async_get_tile(LAT, LON, 15)

        self.assertEqual(first, second)
        self.assertEqual(downloader.await_count, 1)

    async def test_download_failure_returns_remote_url(self):
        downloader = AsyncMock(side_effect=ValueError("HTTP 429"))
        cache = TileCache(self.root, downloader=downloader)

        uri = await cache.async_get_tile(LAT, LON, 15)

        x, y = project(LAT, LON, 15)
        self.assertEqual(uri, tile_url(15, x, y))
        self.assertEqual(list(self.root.glob("*.png")), [])

    async def test_failure_is_not_negatively_cached(self):
        downloader = AsyncMock(side_effect=[asyncio.TimeoutError(), PNG])
        cache = TileCache(self.root, downloader=downloader)

        first = await cache.async_get_tile(LAT, LON, 15)
        second = await cache.async_get_tile(LAT, LON, 15)

        self.assertTrue(first.startswith("https://"))
        self.assertTrue(Path(second).is_file())
        self.assertEqual(downloader.await_count, 2)

    async def test_cache_dir_created_lazily(self):
        cache = TileCache(self.root, downloader=AsyncMock(return_value=PNG))
        self.assertFalse(self.root.exists())

        await cache.async_get_tile(LAT, LON)

        self.assertTrue(self.root.is_dir())

    async def test_unwritable_dir_falls_back_to_url(self):
        blocker = Path(self._tmp.name) / "blocker"
        blocker.write_text("not a directory")
        cache = TileCache(blocker / "tiles", downloader=AsyncMock(return_value=PNG))

        uri = await cache.async_get_tile(LAT, LON, 15)

        self.assertTrue(uri.startswith("https://tile.openstreetmap.org/15/"))

    async def test_concurrent_requests_share_one_download(self):
        release = asyncio.Event()
        calls = 0

        async def slow_download(zoom, x, y):
            nonlocal calls
            calls += 1
            await release.wait()
            return PNG

        cache = TileCache(self.root, downloader=slow_download)

        tasks = [asyncio.ensure_future(cache.async_get_tile(LAT, LON, 15)) for _ in range(3)]
        await asyncio.sleep(0.01)
        release.set()
        results = await asyncio.gather(*tasks)

        self.assertEqual(calls, 1)
        self.assertEqual(len(set(results)), 1)

    async def test_default_downloader_sends_user_agent(self):
        cache = TileCache(self.root, user_agent="geoshot-tests/1.0 (ci)")

        with patch("geoshot.tile_cache.download_tile", new=AsyncMock(return_value=PNG)) as mock_download:
            await cache.async_get_tile(LAT, LON, 15)

        x, y = project(LAT, LON, 15)
        mock_download.assert_awaited_once_with(15, x, y, user_agent="geoshot-tests/1.0 (ci)")


class TestEviction(TileCacheTestCase):

    async def test_oldest_tiles_evicted_beyond_bound(self):
        self.root.mkdir(parents=True)
        for i, name in enumerate(["15_1_1.png", "15_2_2.png"]):
            path = self.root / name
            path.write_bytes(PNG)
            os.utime(path, (1000 + i, 1000 + i))

        cache = TileCache(self.root, max_tiles=2, downloader=AsyncMock(return_value=PNG))
        uri = await cache.async_get_tile(LAT, LON, 15)

        remaining = sorted(p.name for p in self.root.glob("*.png"))
        self.assertEqual(len(remaining), 2)
        self.assertNotIn("15_1_1.png", remaining)
        self.assertIn(Path(uri).name, remaining)

    async def test_hit_refreshes_recency(self):
        self.root.mkdir(parents=True)
        x, y = project(LAT, LON, 15)
        hot = self.root / f"15_{x}_{y}.png"
        hot.write_bytes(PNG)
        os.utime(hot, (1000, 1000))
        cold = self.root / "15_2_2.png"
        cold.write_bytes(PNG)
        os.utime(cold, (2000, 2000))

        cache = TileCache(self.root, max_tiles=2, downloader=AsyncMock(return_value=PNG))
        await cache.async_get_tile(LAT, LON, 15)      # hit: hot becomes most recent
        await cache.async_get_tile(-33.86, 151.2, 15)  # miss: evicts one

        remaining = {p.name for p in self.root.glob("*.png")}
        self.assertIn(hot.name, remaining)
        self.assertNotIn(cold.name, remaining)

    async def test_directory_scanned_once(self):
        cache = TileCache(self.root, max_tiles=2, downloader=AsyncMock(return_value=PNG))

        with patch.object(cache, "_scan_by_mtime", wraps=cache._scan_by_mtime) as scan:
            for lon in (0.0, 10.0, 20.0, 30.0):
                await cache.async_get_tile(LAT, lon, 15)

        self.assertEqual(scan.call_count, 1)
        self.assertEqual(cache.stats(), {"tiles": 2})

    async def test_steady_state_keeps_most_recent(self):
        cache = TileCache(self.root, max_tiles=2, downloader=AsyncMock(return_value=PNG))

        uris = [await cache.async_get_tile(LAT, lon, 15) for lon in (0.0, 10.0, 20.0, 30.0)]

        remaining = {p.name for p in self.root.glob("*.png")}
        self.assertEqual(remaining, {Path(uris[2]).name, Path(uris[3]).name})

    async def test_no_bound_keeps_everything(self):
        cache = TileCache(self.root, max_tiles=None, downloader=AsyncMock(return_value=PNG))

        for lon in (0.0, 10.0, 20.0):
            await cache.async_get_tile(LAT, lon, 15)

        self.assertEqual(cache.stats(), {"tiles": 3})


class TestModuleGetTile(TileCacheTestCase):

    async def test_module_helper_uses_cache_dir(self):
        with patch("geoshot.tile_cache.download_tile", new=AsyncMock(return_value=PNG)):
            uri = await get_tile(LAT, LON, 15, cache_dir=self.root)

        self.assertTrue(uri.startswith(str(self.root)))
