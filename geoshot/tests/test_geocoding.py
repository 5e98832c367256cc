"""
Tests for reverse geocoding: place-name priority and offline fallbacks.
"""

from __future__ import annotations

import asyncio
import unittest
from unittest.mock import AsyncMock, patch

import aiohttp

from geoshot.api.geocoding import fallback_address, parse_address, reverse_geocode
from geoshot.requests import ApiResponseError

LAT, LON = 52.520008, 13.404954


class TestParseAddress(unittest.TestCase):

    def test_city_preferred(self):
        result = parse_address(LAT, LON, {
            "display_name": "Mitte, Berlin, Germany",
            "address": {"city": "Berlin", "town": "Nope", "county": "Nope"},
        })
        self.assertEqual(result.full_address, "Mitte, Berlin, Germany")
        self.assertEqual(result.place_name, "Berlin")

    def test_priority_order(self):
        self.assertEqual(parse_address(LAT, LON, {"address": {"town": "T", "village": "V"}}).place_name, "T")
        self.assertEqual(parse_address(LAT, LON, {"address": {"village": "V", "county": "C"}}).place_name, "V")
        self.assertEqual(parse_address(LAT, LON, {"address": {"county": "C"}}).place_name, "C")

    def test_missing_fields_fall_back(self):
        result = parse_address(LAT, LON, {})
        self.assertEqual(result.full_address, "52.520008, 13.404954")
        self.assertEqual(result.place_name, "Unknown Location")

    def test_fallback_address_six_decimals(self):
        self.assertEqual(fallback_address(-1.5, 100.123456789), "-1.500000, 100.123457")


class TestReverseGeocode(unittest.IsolatedAsyncioTestCase):

    async def test_success_sends_user_agent_and_params(self):
        raw = {"display_name": "Alexanderplatz, Berlin", "address": {"city": "Berlin"}}
        with patch("geoshot.api.geocoding.make_request", new=AsyncMock(return_value=raw)) as mock_req:
            result = await reverse_geocode(LAT, LON, user_agent="geoshot-tests/1.0")

        self.assertEqual(result.place_name, "Berlin")
        self.assertEqual(result.full_address, "Alexanderplatz, Berlin")
        args, kwargs = mock_req.call_args
        self.assertEqual(args[1]["User-Agent"], "geoshot-tests/1.0")
        self.assertEqual(kwargs["params"], {"format": "json", "lat": LAT, "lon": LON, "zoom": 18})

    async def test_failures_return_fallback(self):
        for error in (
            ApiResponseError(403, {"error": "blocked"}),
            ValueError("HTTP 500"),
            asyncio.TimeoutError(),
            aiohttp.ClientConnectionError("offline"),
            RuntimeError("unexpected"),
        ):
            with self.subTest(error=type(error).__name__):
                with patch("geoshot.api.geocoding.make_request", new=AsyncMock(side_effect=error)):
                    result = await reverse_geocode(LAT, LON)
                self.assertEqual(result.full_address, "52.520008, 13.404954")
                self.assertEqual(result.place_name, "Unknown Location")

    async def test_non_dict_body_returns_fallback(self):
        with patch("geoshot.api.geocoding.make_request", new=AsyncMock(return_value=[])):
            result = await reverse_geocode(LAT, LON)

        self.assertEqual(result.place_name, "Unknown Location")
