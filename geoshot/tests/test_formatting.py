"""
Tests for overlay display strings and placeholders.
"""

from __future__ import annotations

import unittest
from datetime import timedelta, timezone

from geoshot.formatting import format_date_time, format_overlay_fields

from .test_common import make_geo_data

IST = timezone(timedelta(hours=5, minutes=30))


class TestFormatOverlayFields(unittest.TestCase):

    def test_full_snapshot(self):
        geo = make_geo_data(speed=10.0, altitude=35.4, magnetic_field=47.6, temperature=12.5)
        fields = format_overlay_fields(geo, tz=timezone.utc)

        self.assertEqual(fields["coordinates"], "Lat 48.858400° Long 2.294500°")
        self.assertEqual(fields["speed"], "36 km/h")
        self.assertEqual(fields["altitude"], "35 m")
        self.assertEqual(fields["magnetic_field"], "48 µT")
        self.assertEqual(fields["weather"], "13°C Partly Cloudy")
        self.assertEqual(fields["place_name"], "Paris")
        self.assertEqual(
            fields["address"],
            "48.8584N 2.2945E, Tour Eiffel, Avenue Gustave Eiffel, Paris, France",
        )

    def test_missing_values_render_placeholders(self):
        geo = make_geo_data(speed=None, altitude=None, magnetic_field=None,
                            temperature=None, weather_condition="Unknown")
        fields = format_overlay_fields(geo, tz=timezone.utc)

        self.assertEqual(fields["speed"], "0 km/h")
        self.assertEqual(fields["altitude"], "0 m")
        self.assertEqual(fields["magnetic_field"], "0 µT")
        self.assertEqual(fields["weather"], "--°C Unknown")

    def test_zero_temperature_is_shown(self):
        fields = format_overlay_fields(make_geo_data(temperature=0.0), tz=timezone.utc)
        self.assertEqual(fields["weather"], "0°C Partly Cloudy")


class TestFormatDateTime(unittest.TestCase):

    def test_with_offset(self):
        self.assertEqual(
            format_date_time("2025-11-18T21:54:00.000Z", tz=IST),
            "Wednesday, 19/11/2025 03:24 AM GMT +05:30",
        )

    def test_utc(self):
        self.assertEqual(
            format_date_time("2025-11-19T15:05:00.000Z", tz=timezone.utc),
            "Wednesday, 19/11/2025 03:05 PM GMT +00:00",
        )

    def test_negative_offset(self):
        self.assertTrue(
            format_date_time("2025-11-19T15:05:00.000Z", tz=timezone(timedelta(hours=-3))).endswith("GMT -03:00")
        )
