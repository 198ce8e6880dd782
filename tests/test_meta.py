from __future__ import annotations

from pathlib import Path

import pytest

from lambda_delay.analysis import discover_logs, meta as meta_module, run_meta_analysis
from tests.helpers import BASE_CONFIG, msl_lines, segmented_session, write_msl, write_session_log


@pytest.fixture
def log_dir(tmp_path: Path) -> Path:
    root = tmp_path / "logs"
    for name, delay in (("a.msl", 8), ("b.msl", 10), ("c.msl", 12)):
        write_session_log(root / name, segmented_session(delay_samples=delay))
    write_msl(
        root / "broken.msl",
        msl_lines(segmented_session(), columns=("Time", "RPM", "FuelLoad", "PW")),
    )
    (root / "notes.txt").write_text("not a log", encoding="utf8")
    return root


def test_discover_logs_is_sorted_and_filtered(log_dir: Path) -> None:
    assert [path.name for path in discover_logs(log_dir)] == ["a.msl", "b.msl", "broken.msl", "c.msl"]
    assert discover_logs(log_dir, "*.csv") == []


def test_discover_logs_requires_directory(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError):
        discover_logs(tmp_path / "missing")


@pytest.mark.parametrize("workers", [1, 2])
def test_failed_log_does_not_abort_meta_analysis(log_dir: Path, workers: int) -> None:
    meta = run_meta_analysis(discover_logs(log_dir), BASE_CONFIG, workers=workers)

    assert [outcome.name for outcome in meta.outcomes] == ["a.msl", "b.msl", "broken.msl", "c.msl"]
    assert [outcome.success for outcome in meta.outcomes] == [True, True, False, True]
    failure = meta.failures[0]
    assert failure.analysis is None
    assert "Lambda" in (failure.error or "")

    report = meta.report
    assert report is not None
    assert report.session_count == 3
    entry = report.statistics[(1, 1)]
    assert entry.mean == pytest.approx(200.0)
    assert entry.std_dev == pytest.approx((3200.0 / 3.0) ** 0.5)
    assert report.master.value(1, 1) == 200.0
    assert report.master.rpm_axis == (2250, 3750, 4500)

    assert len(meta.comparisons) == 3
    assert [comparison.source for comparison in meta.comparisons] == ["a.msl", "b.msl", "c.msl"]
    own_table = meta.comparisons[1]
    assert own_table.master.avg_std_dev == pytest.approx(own_table.own.avg_std_dev)
    assert own_table.rating == "EXCELLENT"


def test_single_worker_and_pool_agree(log_dir: Path) -> None:
    paths = discover_logs(log_dir)

    serial = run_meta_analysis(paths, BASE_CONFIG, workers=1)
    parallel = run_meta_analysis(paths, BASE_CONFIG, workers=3)

    assert serial.report is not None and parallel.report is not None
    assert serial.report.master == parallel.report.master
    assert [entry.difference_pct for entry in serial.comparisons] == pytest.approx(
        [entry.difference_pct for entry in parallel.comparisons]
    )


def test_meta_analysis_with_only_failures(tmp_path: Path) -> None:
    missing = [tmp_path / "gone.msl"]

    meta = run_meta_analysis(missing, BASE_CONFIG, workers=1)

    assert meta.report is None
    assert meta.validations == ()
    assert not meta.outcomes[0].success
    assert meta.summary.difference_pct is None


def test_meta_analysis_of_nothing() -> None:
    meta = run_meta_analysis([], BASE_CONFIG, workers=4)

    assert meta.outcomes == ()
    assert meta.report is None


def test_log_with_infinite_values_is_analysed(tmp_path: Path) -> None:
    lines = msl_lines(segmented_session())
    fields = lines[14].split("\t")
    fields[1] = "inf"
    lines[14] = "\t".join(fields)
    paths = [
        write_session_log(tmp_path / "a.msl", segmented_session(delay_samples=9)),
        write_msl(tmp_path / "b.msl", lines),
    ]

    meta = run_meta_analysis(paths, BASE_CONFIG, workers=1)

    assert [outcome.success for outcome in meta.outcomes] == [True, True]
    assert meta.outcomes[1].analysis.sample_count == 899


def test_unexpected_error_only_fails_its_own_log(
    log_dir: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    analyze = meta_module.analyze_session

    def overflowing(path, config, *, schema=None):
        if Path(path).name == "b.msl":
            raise OverflowError("cannot convert float infinity to integer")
        return analyze(path, config, schema=schema)

    monkeypatch.setattr(meta_module, "analyze_session", overflowing)
    paths = [log_dir / "a.msl", log_dir / "b.msl", log_dir / "c.msl"]

    meta = run_meta_analysis(paths, BASE_CONFIG, workers=1)

    assert [outcome.success for outcome in meta.outcomes] == [True, False, True]
    assert meta.outcomes[1].error == "cannot convert float infinity to integer"
    assert meta.report is not None
    assert meta.report.session_count == 2
    assert [comparison.source for comparison in meta.comparisons] == ["a.msl", "c.msl"]
