"""Plain-text renderers for the report payloads."""

from __future__ import annotations

from typing import Any, Callable, Mapping, Sequence

__all__ = ["render_text"]

RULE = "=" * 100


def _fmt(value: Any, spec: str = ".1f", suffix: str = "") -> str:
    if value is None:
        return "N/A"
    return f"{value:{spec}}{suffix}"


def _signed_pct(value: float | None) -> str:
    if value is None:
        return "N/A"
    return f"{value:+.1f}%"


def _table_lines(rpm_axis: Sequence[int], load_axis: Sequence[int], rows: Sequence[Mapping[str, Any]]) -> list[str]:
    header = "RPM \\ Load".ljust(12) + "".join(str(value).ljust(12) for value in load_axis)
    lines = [header, "-" * max(48, len(header))]
    for rpm, row in zip(rpm_axis, rows):
        cells = "".join(_fmt(value).ljust(12) for value in row["delays"])
        lines.append(str(rpm).ljust(12) + cells)
    return lines


def _render_session(payload: Mapping[str, Any]) -> list[str]:
    metadata = payload["metadata"]
    boundaries = payload["boundaries"]
    lines = [
        f"Source: {metadata['source_file']}",
        f"Loaded {metadata['total_data_points']} valid data points",
        "",
        "RPM boundaries: " + ", ".join(f"{value:.0f}" for value in boundaries["rpm"]),
        "Load boundaries: " + ", ".join(f"{value:.1f}" for value in boundaries["load"]),
        "",
        "Buckets:",
    ]
    for bucket in payload["detailed_buckets"]:
        label = f"RPM[{bucket['rpm_bucket']}] Load[{bucket['load_bucket']}]"
        if not bucket.get("sufficient", True):
            lines.append(f"  {label}: {bucket['data_points']} points, insufficient data")
            continue
        lines.append(
            f"  {label}: {bucket['data_points']} points, "
            f"{bucket['delay_measurements']} delays, median {_fmt(bucket['median_delay'], suffix='ms')}"
            f" (min {_fmt(bucket['min_delay'])}, max {_fmt(bucket['max_delay'])})"
        )
    lines.extend(["", "=== LAMBDA DELAY TABLE (milliseconds) ===", ""])
    lines.extend(_table_lines(payload["rpm_axis"], payload["load_axis"], payload["delay_table"]))
    return lines


def _accuracy_lines(title: str, accuracy: Mapping[str, Any]) -> list[str]:
    lines = [
        f"{title}: avg λ StdDev {accuracy['avg_std_dev']:.4f} "
        f"({accuracy['buckets_analyzed']} buckets, {accuracy['resolved_samples']} samples)"
    ]
    for bucket in accuracy["buckets"]:
        lines.append(
            f"    Bucket {bucket['bucket']}: Mean λ={bucket['lambda_mean']:.3f}, "
            f"StdDev={bucket['lambda_std_dev']:.3f}, CV={_fmt(bucket['lambda_cv'], suffix='%')}, "
            f"PW-λ corr={bucket['pw_correlation']:.3f} (n={bucket['count']})"
        )
    return lines


def _render_validation(payload: Mapping[str, Any]) -> list[str]:
    lines = [f"Validation of {payload['source_file']}", ""]
    lines.extend(_accuracy_lines("  Supplied table", payload["master"]))
    lines.extend(_accuracy_lines("  Own table", payload["own"]))
    lines.extend(
        ["", f"Difference: {_signed_pct(payload['difference_pct'])} => {payload['rating']}"]
    )
    return lines


def _statistics_lines(statistics: Sequence[Mapping[str, Any]], label: str) -> list[str]:
    lines = [
        f"Bucket      {label:>5}  Mean(ms)  StdDev   CV%    Min     Max     Range   Assessment",
        "-" * 100,
    ]
    for entry in statistics:
        lines.append(
            f"{entry['bucket']:<11} {entry['files_with_data']:>5}  "
            f"{entry['mean']:>8.1f}  {entry['std_dev']:>6.1f}  {_fmt(entry['cv']):>5}  "
            f"{entry['min']:>6.1f}  {entry['max']:>6.1f}  {entry['range']:>6.1f}   "
            f"{entry['assessment']}"
        )
    return lines


def _render_meta(payload: Mapping[str, Any]) -> list[str]:
    sessions = payload["sessions"]
    lines = [f"Analysed {len(sessions)} log files in {payload['elapsed']:.1f}s", ""]
    for position, session in enumerate(sessions, start=1):
        prefix = f"[{position}/{len(sessions)}] {session['file']:<30}"
        if session["success"]:
            lines.append(
                f"✓ {prefix} {session['data_points']} points, "
                f"{session['measurements']} delays, "
                f"{session['buckets_with_data']}/{session['bucket_total']} buckets"
            )
        else:
            lines.append(f"✗ {prefix} ERROR: {session['error']}")
    if payload["master"] is None:
        lines.extend(["", "No session produced a delay table."])
        return lines

    lines.extend(["", RULE, "", "Delay value consistency across log files:", ""])
    lines.extend(_statistics_lines(payload["statistics"], "Files"))
    lines.extend(
        [
            "",
            f"Average CV across all buckets: {_fmt(payload['average_cv'], suffix='%')}",
            f"=> {payload['consistency']}",
            "",
            RULE,
            "",
            "Master delay table:",
            "",
        ]
    )
    master = payload["master"]
    lines.extend(_table_lines(master["rpm_axis"], master["load_axis"], master["delay_table"]))
    lines.extend(["", "Firmware format (ms, empty cells as 0):"])
    lines.extend(f"  {row}" for row in master["firmware_table"])
    lines.append(f"  RPM axis: {master['rpm_axis']}")
    lines.append(f"  Load axis: {master['load_axis']}")

    lines.extend(
        [
            "",
            RULE,
            "",
            "Cross-validation (master table vs file-specific tables):",
            "",
            f"{'File':<30} {'Master λ StdDev':>16} {'Own λ StdDev':>14}  Difference",
            "-" * 100,
        ]
    )
    for entry in payload["cross_validation"]:
        mark = "✓" if entry["rating"] in ("EXCELLENT", "GOOD") else "✗"
        lines.append(
            f"{entry['file']:<30} {entry['master_std_dev']:>16.4f} {entry['own_std_dev']:>14.4f}  "
            f"{_signed_pct(entry['difference_pct']):>8}  {mark} {entry['rating']}"
        )
    for entry in payload["cross_validation_errors"]:
        lines.append(f"✗ {entry['file']}: {entry['error']}")
    summary = payload["summary"]
    lines.extend(
        [
            "",
            "Overall:",
            f"  Average λ StdDev with master table: {summary['avg_master_std_dev']:.4f}",
            f"  Average λ StdDev with own table:    {summary['avg_own_std_dev']:.4f}",
            f"  Average difference:                 {_signed_pct(summary['difference_pct'])}",
            f"  => {summary['rating']}",
        ]
    )
    return lines


def _run_line(entry: Mapping[str, Any], bucket_total: int) -> str:
    return (
        f"PW: {entry['pw_threshold']:.2f}, Lambda: {entry['lambda_threshold']:.3f} => "
        f"{entry['total_measurements']:>3} measurements, "
        f"{entry['buckets_with_data']}/{bucket_total} buckets"
    )


def _render_sweep(payload: Mapping[str, Any]) -> list[str]:
    total = payload["bucket_total"]
    lines = ["Threshold sensitivity", RULE]
    lines.extend(_run_line(entry, total) for entry in payload["results"])
    lines.extend(["", "Top by bucket coverage:"])
    lines.extend(
        f"  {rank}. {_run_line(entry, total)}"
        for rank, entry in enumerate(payload["by_coverage"], start=1)
    )
    lines.extend(["", "Top by total measurements:"])
    lines.extend(
        f"  {rank}. {_run_line(entry, total)}"
        for rank, entry in enumerate(payload["by_measurements"], start=1)
    )
    default = payload["default"]
    if default is not None:
        lines.extend(["", f"Configured thresholds: {_run_line(default, total)}"])
        for bucket in default["buckets"]:
            lines.append(
                f"    Bucket {bucket['bucket']}: {bucket['count']} measurements, "
                f"median: {_fmt(bucket['median'], suffix='ms')}"
            )
    lines.extend(
        [
            "",
            f"Max measurements found: {payload['max_measurements']}",
            f"Max bucket coverage: {payload['max_coverage']}/{total}",
        ]
    )
    return lines


def _render_threshold_comparison(payload: Mapping[str, Any]) -> list[str]:
    configurations = payload["configurations"]
    header = "Bucket".ljust(15) + "".join(
        f"PW:{entry['pw_threshold']:.1f} L:{entry['lambda_threshold']:.2f}".ljust(15)
        for entry in configurations
    )
    lines = ["Median delay (ms) by bucket across thresholds", "", header, "-" * len(header)]
    for bucket in payload["buckets"]:
        cells = "".join(
            ("N/A" if median is None else f"{median:>6.1f} ({count:>3})").ljust(15)
            for median, count in zip(bucket["medians"], bucket["counts"])
        )
        lines.append(bucket["bucket"].ljust(15) + cells)
    lines.extend(["", "Buckets ordered by consistency (low CV = more consistent):", ""])
    lines.extend(_statistics_lines(payload["statistics"], "Cfgs"))
    lines.extend(
        [
            "",
            f"Average CV across all buckets: {_fmt(payload['average_cv'], suffix='%')}",
            f"=> {payload['consistency']}",
        ]
    )
    return lines


def _render_threshold_choices(payload: Mapping[str, Any]) -> list[str]:
    lines = ["Delay choice validation", RULE]
    for choice in payload["choices"]:
        title = (
            f"{choice['label']} (PW: {choice['pw_threshold']}, "
            f"Lambda: {choice['lambda_threshold']})"
        )
        lines.extend(["", *_accuracy_lines(title, choice["accuracy"])])
    lines.extend(["", RULE, "", "λ StdDev spread by bucket:"])
    for spread in payload["spreads"]:
        lines.append(f"Bucket {spread['bucket']}:")
        for label, value in spread["std_devs"].items():
            lines.append(f"  {label:<12}: λ StdDev={value:.3f}")
        lines.append(
            f"  Range: {spread['range']:.3f} ({spread['range_pct']:.1f}% of average) "
            f"=> {spread['assessment']}"
        )
    counts = payload["counts"]
    lines.extend(
        [
            "",
            f"Stable (< 10% variation):    {counts['STABLE']} buckets",
            f"Moderate (10-25% variation): {counts['MODERATE']} buckets",
            f"Variable (> 25% variation):  {counts['VARIABLE']} buckets",
        ]
    )
    return lines


_RENDERERS: Mapping[str, Callable[[Mapping[str, Any]], list[str]]] = {
    "session": _render_session,
    "validation": _render_validation,
    "meta": _render_meta,
    "sweep": _render_sweep,
    "threshold-comparison": _render_threshold_comparison,
    "threshold-choices": _render_threshold_choices,
}


def render_text(payload: Mapping[str, Any]) -> str:
    """Render any report payload carrying a known ``report`` key."""

    kind = payload.get("report")
    renderer = _RENDERERS.get(str(kind))
    if renderer is None:
        raise TypeError(f"No text renderer for report type {kind!r}")
    return "\n".join(renderer(payload)) + "\n"
