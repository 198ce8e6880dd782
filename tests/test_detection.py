from __future__ import annotations

import pytest

from lambda_core.equations import (
    BucketGrid,
    assign_buckets,
    detect_delays,
    detect_grid_delays,
    expected_lambda_direction,
    session_boundaries,
)
from tests.helpers import BASE_CONFIG, build_store, make_sample, segmented_session, step_sequence


def _scenario_b_samples() -> list:
    times = [index * 0.1 for index in range(12)]
    pulsewidths = [2.0] * 5 + [2.3] * 7
    lambdas = [1.0] * 8 + [0.9] * 4
    return step_sequence(times, pulsewidths, lambdas)


@pytest.mark.parametrize(("threshold", "expected"), [(0.2, 1), (0.5, 0)])
def test_pw_step_qualifies_only_above_threshold(threshold: float, expected: int) -> None:
    config = BASE_CONFIG.with_thresholds(threshold, 0.05)

    delays = detect_delays(_scenario_b_samples(), config)

    assert len(delays) == expected


def _scenario_c_samples() -> list:
    times = [9.96, 9.98, 10.0, 10.06, 10.12, 10.18, 10.24, 10.30]
    pulsewidths = [2.0, 2.0, 3.0, 3.0, 3.0, 3.0, 3.0, 3.0]
    lambdas = [1.0, 1.0, 1.0, 1.0, 1.0, 0.97, 0.97, 0.97]
    return step_sequence(times, pulsewidths, lambdas)


def test_lambda_drop_after_pw_rise_measures_delay() -> None:
    config = BASE_CONFIG.with_thresholds(0.5, 0.02)

    delays = detect_delays(_scenario_c_samples(), config)

    assert delays == [pytest.approx(180.0)]


def test_lambda_drop_below_threshold_produces_no_measurement() -> None:
    config = BASE_CONFIG.with_thresholds(0.5, 0.05)

    assert detect_delays(_scenario_c_samples(), config) == []


def test_lambda_moving_with_pw_is_not_a_response() -> None:
    samples = step_sequence(
        [0.0, 0.1, 0.2, 0.3, 0.4],
        [2.0, 3.0, 3.0, 3.0, 3.0],
        [1.0, 1.0, 1.1, 1.2, 1.2],
    )

    assert detect_delays(samples, BASE_CONFIG) == []


def test_first_qualifying_response_wins() -> None:
    samples = step_sequence(
        [0.0, 0.1, 0.2, 0.3, 0.4, 0.5],
        [2.0, 3.0, 3.0, 3.0, 3.0, 3.0],
        [1.0, 1.0, 1.0, 0.93, 0.80, 0.70],
    )

    assert detect_delays(samples, BASE_CONFIG) == [pytest.approx(200.0)]


def test_responses_beyond_max_delay_are_ignored() -> None:
    config = BASE_CONFIG.with_thresholds(0.5, 0.05)
    samples = step_sequence(
        [0.0, 1.0, 2.0, 3.5, 4.0],
        [2.0, 3.0, 3.0, 3.0, 3.0],
        [1.0, 1.0, 1.0, 0.9, 0.9],
    )

    assert detect_delays(samples, config) == []


def test_lookahead_limits_the_forward_scan() -> None:
    times = [index * 0.001 for index in range(150)]
    pulsewidths = [2.0] + [3.0] * 149
    lambdas = [1.0] * 120 + [0.9] * 30

    assert detect_delays(step_sequence(times, pulsewidths, lambdas), BASE_CONFIG) == []
    assert len(detect_delays(step_sequence(times, pulsewidths, lambdas), BASE_CONFIG, lookahead=150)) == 1


def test_non_positive_elapsed_time_is_never_a_delay() -> None:
    samples = step_sequence(
        [0.0, 0.1, 0.1, 0.2],
        [2.0, 3.0, 3.0, 3.0],
        [1.0, 1.0, 0.9, 1.0],
    )

    assert detect_delays(samples, BASE_CONFIG) == []


def test_detected_delays_are_positive_and_bounded() -> None:
    delays = detect_delays(segmented_session(), BASE_CONFIG)

    assert delays
    assert all(0.0 < delay <= BASE_CONFIG.max_delay_ms for delay in delays)



def test_overlapping_steps_can_share_one_response() -> None:
    samples = step_sequence(
        [0.0, 0.1, 0.2, 0.3, 0.4, 0.5],
        [2.0, 3.0, 4.0, 4.0, 4.0, 4.0],
        [1.0, 1.0, 1.0, 1.0, 0.9, 0.9],
    )

    assert detect_delays(samples, BASE_CONFIG) == [pytest.approx(300.0), pytest.approx(200.0)]


def test_step_on_the_last_sample_is_not_measured() -> None:
    samples = step_sequence([0.0, 0.1, 0.2, 0.3], [2.0, 2.0, 2.0, 3.0], [1.0, 1.0, 1.0, 0.9])

    assert detect_delays(samples, BASE_CONFIG) == []


def test_too_few_samples_yield_no_delays() -> None:
    assert detect_delays([], BASE_CONFIG) == []
    assert detect_delays(step_sequence([0.0, 0.1], [2.0, 3.0], [1.0, 0.9]), BASE_CONFIG) == []


def test_step_on_the_second_sample_is_measured() -> None:
    samples = step_sequence([0.0, 0.1, 0.2], [2.0, 3.0, 3.0], [1.0, 1.0, 0.9])

    assert detect_delays(samples, BASE_CONFIG) == [pytest.approx(100.0)]


def test_response_at_exactly_max_delay_is_accepted() -> None:
    samples = step_sequence([0.0, 1.0, 3.0], [2.0, 3.0, 3.0], [1.0, 1.0, 0.9])

    assert BASE_CONFIG.max_delay_ms == 2000.0
    assert detect_delays(samples, BASE_CONFIG) == [2000.0]


@pytest.mark.parametrize(("change", "direction"), [(0.5, -1), (-0.5, 1), (0.0, 0)])
def test_expected_lambda_direction_is_inverse_of_pw(change: float, direction: int) -> None:
    assert expected_lambda_direction(change) == direction


def test_detect_grid_delays_skips_sparse_buckets() -> None:
    store = build_store(segmented_session())
    grid = assign_buckets(store, session_boundaries(store))
    grid[(0, 0)].samples = grid[(0, 0)].samples[:9]

    insufficient = detect_grid_delays(grid, BASE_CONFIG)

    assert insufficient == ((0, 0),)
    assert grid[(0, 0)].delays == []
    for bucket in grid:
        if bucket.key != (0, 0):
            assert bucket.delays == [pytest.approx(200.0)] * 3


def test_detect_grid_delays_on_empty_grid() -> None:
    store = build_store(segmented_session())
    grid = BucketGrid.empty(session_boundaries(store))

    assert len(detect_grid_delays(grid, BASE_CONFIG)) == 9
