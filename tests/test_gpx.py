from __future__ import annotations

import gpxpy

from biketrain.services.gpx import haversine_m, trail_distance_m, trail_to_gpx


def test_haversine_known_distance():
    # One degree of latitude is roughly 111 km.
    assert 110_000 < haversine_m(39.0, -75.0, 40.0, -75.0) < 112_000


def test_trail_distance_sums_segments():
    trail = [
        {"lat": 39.95, "lng": -75.16},
        {"lat": 39.96, "lng": -75.16},
        {"lat": 39.97, "lng": -75.16},
    ]
    expected = round(
        haversine_m(39.95, -75.16, 39.96, -75.16) + haversine_m(39.96, -75.16, 39.97, -75.16)
    )
    assert trail_distance_m(trail) == expected
    assert trail_distance_m(trail[:1]) == 0
    assert trail_distance_m([]) == 0


def test_trail_to_gpx_round_trips_points_and_times():
    trail = [
        {"lat": 39.95, "lng": -75.16, "timestamp": 1_760_000_000_000},
        {"lat": 39.96, "lng": -75.17, "timestamp": None},
    ]
    parsed = gpxpy.parse(trail_to_gpx(trail, name="ABCD 2026-10-19"))

    [track] = parsed.tracks
    assert track.name == "ABCD 2026-10-19"
    points = track.segments[0].points
    assert [(p.latitude, p.longitude) for p in points] == [(39.95, -75.16), (39.96, -75.17)]
    assert points[0].time.timestamp() == 1_760_000_000
    assert points[1].time is None
