from __future__ import annotations

import math

from services.segmenter import (
    group_by_node,
    passes_temperature_filter,
    segment_episodes,
    segment_node,
)
from tests.helpers import reading


def test_temperature_filter_admits_plausible_readings() -> None:
    assert passes_temperature_filter(reading(5000, 1000, upstream=20.0, downstream=19.5))


def test_temperature_filter_rejects_out_of_range_upstream() -> None:
    assert not passes_temperature_filter(reading(5000, 1000, upstream=-0.5))
    assert not passes_temperature_filter(reading(5000, 1000, upstream=40.0))
    assert not passes_temperature_filter(reading(5000, 1000, upstream=math.nan))


def test_temperature_filter_rejects_negative_zero_or_nan_downstream() -> None:
    assert not passes_temperature_filter(reading(5000, 1000, downstream=-1.0))
    assert not passes_temperature_filter(reading(5000, 1000, downstream=0.0))
    assert not passes_temperature_filter(reading(5000, 1000, downstream=math.nan))


def test_temperature_filter_leaves_downstream_unbounded_by_default() -> None:
    hot = reading(5000, 1000, downstream=100.0)

    assert passes_temperature_filter(hot)
    assert not passes_temperature_filter(hot, downstream_temp_limit=40.0)
    assert passes_temperature_filter(reading(5000, 1000, downstream=39.9), downstream_temp_limit=40.0)


def test_group_by_node_keeps_first_appearance_order() -> None:
    rows = [
        reading(1000, 1, node_id="b"),
        reading(1000, 1, node_id="a"),
        reading(2000, 2, node_id="b"),
    ]

    groups = group_by_node(rows)

    assert list(groups) == ["b", "a"]
    assert groups["b"] == (rows[0], rows[2])


def test_segment_node_single_row_is_one_episode() -> None:
    only = reading(5000, 1000)

    episodes = segment_node("1", [only])

    assert len(episodes) == 1
    assert episodes[0].index == 0
    assert episodes[0].readings == (only,)


def test_segment_node_empty_input_has_no_episodes() -> None:
    assert segment_node("1", []) == ()


def test_segment_node_splits_on_reference_timer_wraparound() -> None:
    timers = [1000, 5000, 30000, 30000, 2000, 6000, 500, 700]
    rows = [reading(t, i, timestamp=i) for i, t in enumerate(timers)]

    episodes = segment_node("1", rows)

    assert [e.index for e in episodes] == [0, 1, 2]
    assert [[r.millis_since_reference_temp for r in e.readings] for e in episodes] == [
        [1000, 5000, 30000, 30000],
        [2000, 6000],
        [500, 700],
    ]
    rebuilt = [r for e in episodes for r in e.readings]
    assert rebuilt == rows
    for e in episodes:
        values = [r.millis_since_reference_temp for r in e.readings]
        assert values == sorted(values)


def test_segment_episodes_drops_filtered_rows_before_boundaries() -> None:
    rows = [
        reading(1000, 1, timestamp=1),
        reading(500, 2, upstream=45.0, timestamp=2),
        reading(3000, 3, timestamp=3),
    ]

    episodes = segment_episodes(rows)

    assert len(episodes["1"]) == 1
    assert episodes["1"][0].readings == (rows[0], rows[2])


def test_segment_episodes_per_node_partitions() -> None:
    rows = [
        reading(1000, 1, timestamp=1, node_id="a"),
        reading(9000, 1, timestamp=1, node_id="b"),
        reading(2000, 2, timestamp=2, node_id="a"),
        reading(1000, 2, timestamp=2, node_id="b"),
        reading(1500, 3, timestamp=3, node_id="a"),
    ]

    episodes = segment_episodes(rows)

    assert list(episodes) == ["a", "b"]
    assert [len(e.readings) for e in episodes["a"]] == [2, 1]
    assert [len(e.readings) for e in episodes["b"]] == [1, 1]
    assert all(e.node_id == "b" for e in episodes["b"])


def test_segment_episodes_empty_input() -> None:
    assert segment_episodes([]) == {}


def test_segment_node_numbers_episodes_consecutively() -> None:
    rows = [reading(t, i, timestamp=i) for i, t in enumerate([3000, 1000, 500, 400, 9000])]

    episodes = segment_node("7", rows)

    assert [e.index for e in episodes] == [0, 1, 2, 3]
    assert all(e.node_id == "7" for e in episodes)
