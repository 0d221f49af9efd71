from __future__ import annotations

import logging

import pytest

from services.aggregator import HeatRatioWindow
from services.normalizer import FieldAccessors, ReadingCoercionError
from services.pipeline import HeatRatioOptions, compute_heat_ratios
from settings import Settings
from tests.helpers import row


def _episode_rows(node_id: object, start: float, scale: float = 1.0) -> list[dict]:
    """One heat-pulse cycle whose windowed mean ratio is ``0.625 * scale``."""
    return [
        row(2000, 40000, temp1=20.0, temp2=20.0, timestamp=start, node_id=node_id),
        row(5000, 43000, temp1=20.0, temp2=20.0, timestamp=start + 3, node_id=node_id),
        row(30000, 60000, temp1=22.0, temp2=20.0 + scale, timestamp=start + 28, node_id=node_id),
        row(35000, 65000, temp1=24.0, temp2=20.0 + 3 * scale, timestamp=start + 33, node_id=node_id),
        row(50000, 80000, temp1=30.0, temp2=30.0, timestamp=start + 48, node_id=node_id),
    ]


def test_two_row_scenario_yields_one_undefined_episode() -> None:
    rows = [
        row(5000, 1000, temp1=20, temp2=20, timestamp=1_700_000_000),
        row(30000, 60000, temp1=20, temp2=18, timestamp=1_700_000_010),
    ]

    result = compute_heat_ratios(rows)

    assert result.ids == ("1",)
    (record,) = result.data["1"]
    assert record.mean_heat_ratio is None
    assert record.unix_timestamp == 1_700_000_000 - 15


def test_empty_input_yields_empty_result() -> None:
    result = compute_heat_ratios([])

    assert result.ids == ()
    assert result.data == {}


def test_multiple_nodes_and_episodes() -> None:
    rows = (
        _episode_rows(1, 1000)
        + _episode_rows(2, 1001, scale=2.0)
        + _episode_rows(1, 1100)
    )

    result = compute_heat_ratios(list(reversed(rows)))

    assert result.ids == ("1", "2")
    assert [r.mean_heat_ratio for r in result.data["1"]] == pytest.approx([0.625, 0.625])
    assert [r.mean_heat_ratio for r in result.data["2"]] == pytest.approx([1.25])
    assert [r.unix_timestamp for r in result.data["1"]] == [988, 1088]
    assert [r["node_id"] for r in result.to_rows()] == ["1", "1", "2"]


def test_inversion_is_applied_after_aggregation() -> None:
    options = HeatRatioOptions(invert_heat_ratios=True)

    result = compute_heat_ratios(_episode_rows(1, 1000), options)

    assert result.data["1"][0].mean_heat_ratio == pytest.approx(1.6)


def test_window_option_changes_the_aggregated_rows() -> None:
    options = HeatRatioOptions(window=HeatRatioWindow(75000, 95000))

    result = compute_heat_ratios(_episode_rows(1, 1000), options)

    assert result.data["1"][0].mean_heat_ratio == pytest.approx(1.0)


def test_downstream_limit_option_filters_hot_readings() -> None:
    rows = _episode_rows(1, 1000)
    rows[3]["temp2"] = 100.0

    unbounded = compute_heat_ratios(rows)
    bounded = compute_heat_ratios(rows, HeatRatioOptions(downstream_temp_limit=40.0))

    assert unbounded.data["1"][0].mean_heat_ratio == pytest.approx((0.5 + 80.0 / 4.0) / 2)
    assert bounded.data["1"][0].mean_heat_ratio == pytest.approx(0.5)


def test_accessor_options_are_used_for_mapping_rows() -> None:
    rows = [{"up": r.pop("temp1"), **r} for r in _episode_rows(1, 1000)]
    options = HeatRatioOptions(accessors=FieldAccessors.from_columns(upstream_temp="up"))

    result = compute_heat_ratios(rows, options)

    assert result.data["1"][0].mean_heat_ratio == pytest.approx(0.625)


def test_invalid_rows_raise_coercion_error() -> None:
    rows = _episode_rows(1, 1000)
    rows[0]["temp1"] = "n/a"

    with pytest.raises(ReadingCoercionError):
        compute_heat_ratios(rows)


def test_warns_when_a_node_has_no_heat_ratio(caplog) -> None:
    rows = [row(20000, 60000, temp1=22, temp2=21, node_id="dry")]

    with caplog.at_level(logging.WARNING, logger="services.pipeline"):
        compute_heat_ratios(rows)

    records = [r for r in caplog.records if r.name == "services.pipeline"]
    assert any(getattr(r, "node_id", None) == "dry" for r in records)


def test_options_from_settings() -> None:
    settings = Settings(
        heat_ratio_window_start=75000,
        heat_ratio_window_end=95000,
        invert_heat_ratios=True,
        downstream_temp_limit=40.0,
        log_level="INFO",
    )

    options = HeatRatioOptions.from_settings(settings)

    assert options.window == HeatRatioWindow(75000, 95000)
    assert options.invert_heat_ratios is True
    assert options.downstream_temp_limit == 40.0



def test_out_of_range_timestamp_raises_coercion_error() -> None:
    rows = [row(5000, 1000, timestamp=1e20), row(5000, 1000, timestamp=1_700_000_000, node_id=2)]

    with pytest.raises(ReadingCoercionError, match="timestamp_seconds"):
        compute_heat_ratios(rows)
