from __future__ import annotations

import numpy as np
import pytest

from lambda_core.config import AnalysisConfig
from lambda_core.equations import (
    AxisBoundaries,
    DelayTable,
    assign_buckets,
    build_delay_table,
    detect_grid_delays,
    session_boundaries,
)
from lambda_core.metrics import (
    AccuracyReport,
    TableComparison,
    classify_difference,
    compare_accuracy,
    compare_tables,
    nearest_index,
    summarise_comparisons,
    validate_table,
)
from tests.helpers import BASE_CONFIG, build_store, make_sample, segmented_session


def _linear_nearest(times: np.ndarray, target: float) -> int:
    best = -1
    best_gap = float("inf")
    for index, value in enumerate(times):
        gap = abs(value - target)
        if gap < best_gap:
            best_gap = gap
            best = index
    return best


@pytest.mark.parametrize("seed", [0, 1, 2, 3])
def test_nearest_index_matches_linear_scan(seed: int) -> None:
    rng = np.random.default_rng(seed)
    times = np.sort(np.round(rng.uniform(0.0, 10.0, size=60), 1))
    targets = np.concatenate([rng.uniform(-1.0, 11.0, size=50), times[:10], times[:10] + 0.05])

    for target in targets:
        assert nearest_index(times, float(target)) == _linear_nearest(times, float(target))


def test_nearest_index_prefers_lower_index_on_ties() -> None:
    times = np.array([0.0, 1.0, 1.0, 2.0])

    assert nearest_index(times, 0.5) == 0
    assert nearest_index(times, 1.0) == 1
    assert nearest_index(times, 1.5) == 1
    assert nearest_index(np.array([]), 1.0) == -1


def _single_bucket_store(count: int = 50, step: float = 0.1):
    return build_store(
        make_sample(
            round(index * step, 6),
            rpm=2000.0 + index,
            load=50.0 + index,
            pw=2.0 + (index % 2),
            lam=0.9 if index % 2 else 1.1,
        )
        for index in range(count)
    )


def test_validate_table_collects_lambda_per_bucket() -> None:
    store = _single_bucket_store()
    boundaries = session_boundaries(store, bucket_count=1)
    table = DelayTable.from_rows([[100.0]])

    report = validate_table(store, boundaries, table)

    assert report.resolved_samples == 50
    assert report.buckets_analyzed == 1
    accuracy = report.buckets[(0, 0)]
    assert accuracy.count == 50
    assert accuracy.lambda_mean == pytest.approx(1.0)
    assert accuracy.lambda_std_dev == pytest.approx(0.1)
    assert accuracy.lambda_cv == pytest.approx(10.0)
    assert report.avg_std_dev == pytest.approx(0.1)


def test_validation_without_nearby_history_is_zero() -> None:
    store = build_store(
        make_sample(index * 3.0, rpm=1000.0 + 10 * index, load=20.0 + index, lam=1.0 + 0.01 * index)
        for index in range(40)
    )
    boundaries = session_boundaries(store)
    table = DelayTable.from_rows([[1500.0] * 3 for _ in range(3)])

    report = validate_table(store, boundaries, table)

    assert report.avg_std_dev == 0.0
    assert report.buckets_analyzed == 0
    assert report.resolved_samples == 0


def test_match_exactly_at_tolerance_is_discarded() -> None:
    store = build_store(make_sample(index * 1.0, lam=1.0 + 0.1 * (index % 2)) for index in range(30))
    boundaries = session_boundaries(store, bucket_count=1)

    report = validate_table(store, boundaries, DelayTable.from_rows([[500.0]]))

    assert report.resolved_samples == 0


def test_zero_cell_table_scores_zero() -> None:
    store = build_store(segmented_session())
    boundaries = session_boundaries(store)
    empty = DelayTable.from_rows([[None] * 3 for _ in range(3)])

    report = validate_table(store, boundaries, empty)

    assert report == AccuracyReport()
    assert (report.avg_std_dev, report.buckets_analyzed) == (0.0, 0)


def test_sparse_buckets_are_omitted_from_the_report() -> None:
    store = _single_bucket_store(count=9)
    boundaries = session_boundaries(store, bucket_count=1)

    report = validate_table(store, boundaries, DelayTable.from_rows([[100.0]]))

    assert report.resolved_samples == 9
    assert report.buckets_analyzed == 0


def test_tiny_store_returns_empty_report() -> None:
    store = build_store([make_sample(0.0)])
    boundaries = AxisBoundaries(rpm=(0.0, 5000.0), load=(0.0, 100.0))

    assert validate_table(store, boundaries, DelayTable.from_rows([[100.0]])) == AccuracyReport()


def test_table_size_must_match_boundaries() -> None:
    store = _single_bucket_store()

    with pytest.raises(ValueError):
        validate_table(store, session_boundaries(store), DelayTable.from_rows([[100.0]]))


def test_session_table_scores_a_consistent_session() -> None:
    store = build_store(segmented_session())
    boundaries = session_boundaries(store)
    grid = assign_buckets(store, boundaries)
    detect_grid_delays(grid, BASE_CONFIG)

    report = validate_table(store, boundaries, build_delay_table(grid))

    assert report.buckets_analyzed == 9
    assert report.avg_std_dev > 0.0


@pytest.mark.parametrize(
    ("difference", "expected"),
    [(-4.9, "EXCELLENT"), (5.0, "GOOD"), (-12.0, "MODERATE"), (20.0, "POOR"), (None, "N/A")],
)
def test_classify_difference_bands(difference: float | None, expected: str) -> None:
    assert classify_difference(difference) == expected


def test_compare_accuracy_is_relative_to_own_table() -> None:
    assert compare_accuracy(0.055, 0.05) == pytest.approx(10.0)
    assert compare_accuracy(0.05, 0.0) is None


def test_compare_tables_pairs_master_and_own_reports() -> None:
    store = _single_bucket_store()
    report = validate_table(
        store, session_boundaries(store, bucket_count=1), DelayTable.from_rows([[100.0]])
    )

    comparison = compare_tables(report, report, source="a.msl")

    assert comparison == TableComparison("a.msl", report, report)
    assert comparison.difference_pct == compare_accuracy(
        report.avg_std_dev, report.avg_std_dev
    )
    assert compare_tables(report, report).source == ""


def test_summarise_comparisons_averages_scores() -> None:
    store = _single_bucket_store()
    report = validate_table(
        store, session_boundaries(store, bucket_count=1), DelayTable.from_rows([[100.0]])
    )
    comparisons = [TableComparison("a.msl", report, report), TableComparison("b.msl", report, report)]

    summary = summarise_comparisons(comparisons)

    assert summary.difference_pct == pytest.approx(0.0)
    assert summary.rating == "EXCELLENT"
    assert summarise_comparisons([]).difference_pct is None


def test_config_bucket_count_flows_into_validation() -> None:
    config = AnalysisConfig.from_config({**BASE_CONFIG.as_dict(), "bucket_count": 2})
    store = build_store(segmented_session())

    boundaries = session_boundaries(store, config.bucket_count)

    assert boundaries.bucket_count == 2
    with pytest.raises(ValueError):
        validate_table(store, boundaries, DelayTable.from_rows([[1.0] * 3 for _ in range(3)]))
