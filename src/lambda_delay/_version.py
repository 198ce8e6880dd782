"""Package version lookup.

Installed distributions report their metadata version.  Source checkouts
without metadata read ``[project].version`` from the repository
``pyproject.toml`` instead.  Either way the value must be a three part
release such as ``0.3.0``.
"""

from importlib import metadata
from pathlib import Path

from packaging.version import InvalidVersion, Version

try:  # Python 3.11+
    import tomllib  # type: ignore[attr-defined]
except ModuleNotFoundError:  # pragma: no cover - Python < 3.11 fallback
    import tomli as tomllib  # type: ignore

_DISTRIBUTION = "lambda-delay"
_PYPROJECT = Path(__file__).resolve().parents[2] / "pyproject.toml"


def _checkout_version(pyproject: Path = _PYPROJECT) -> str:
    try:
        with pyproject.open("rb") as handle:
            project = tomllib.load(handle).get("project", {})
    except (OSError, tomllib.TOMLDecodeError) as exc:
        raise RuntimeError(
            f"'{_DISTRIBUTION}' is not installed and {pyproject} cannot be read"
        ) from exc
    version = project.get("version") if isinstance(project, dict) else None
    if not isinstance(version, str):
        raise RuntimeError(f"{pyproject} does not declare [project].version")
    return version


def _load_version() -> str:
    try:
        raw = metadata.version(_DISTRIBUTION)
    except metadata.PackageNotFoundError:
        raw = _checkout_version()

    try:
        release = Version(raw).release
    except InvalidVersion as exc:
        raise RuntimeError(f"Invalid '{_DISTRIBUTION}' version {raw!r}") from exc
    if len(release) != 3:
        raise RuntimeError(f"'{_DISTRIBUTION}' version {raw!r} is not MAJOR.MINOR.PATCH")
    return raw


__version__ = _load_version()

__all__ = ["__version__"]
