"""Error reporting for the lambda-delay command line."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Mapping, Optional

from lambda_delay.ingestion import LogFormatError

__all__ = [
    "CliError",
    "ErrorPayload",
    "build_error_payload",
    "error_from_exception",
    "log_cli_error",
]


_CATEGORY_STATUS_CODES: Mapping[str, int] = {
    "runtime": 1,
    "usage": 2,
    "io": 3,
    "not_found": 4,
}

_DEFAULT_CATEGORY = "runtime"
_LOGGER_NAME = "lambda_delay.cli"


@dataclass(frozen=True, slots=True)
class ErrorPayload:
    """What the CLI reports when a command fails."""

    status_code: int
    category: str
    message: str
    context: Mapping[str, Any]

    def as_dict(self) -> dict[str, Any]:
        return {
            "status_code": self.status_code,
            "category": self.category,
            "message": self.message,
            "context": dict(self.context),
        }


def _plain_context(context: Optional[Mapping[str, Any]]) -> dict[str, Any]:
    if not context:
        return {}
    return {
        str(key): value if isinstance(value, (str, int, float, bool)) or value is None else str(value)
        for key, value in context.items()
    }


def build_error_payload(
    message: str,
    *,
    category: str = _DEFAULT_CATEGORY,
    status_code: Optional[int] = None,
    context: Optional[Mapping[str, Any]] = None,
) -> ErrorPayload:
    category = category or _DEFAULT_CATEGORY
    if status_code is None:
        status_code = _CATEGORY_STATUS_CODES.get(category, _CATEGORY_STATUS_CODES[_DEFAULT_CATEGORY])
    return ErrorPayload(
        status_code=status_code,
        category=category,
        message=message,
        context=_plain_context(context),
    )


def log_cli_error(
    payload: ErrorPayload,
    *,
    logger: Optional[logging.Logger] = None,
    exc_info: Optional[BaseException] = None,
) -> None:
    (logger or logging.getLogger(_LOGGER_NAME)).error(
        payload.message,
        extra={
            "event": "cli.error",
            "category": payload.category,
            "status_code": payload.status_code,
            "context": dict(payload.context),
        },
        exc_info=exc_info,
    )


class CliError(RuntimeError):
    """Failure of a CLI command carrying its exit status."""

    __slots__ = ("category", "status_code", "context", "_payload", "logged")

    def __init__(
        self,
        message: str,
        *,
        category: str = _DEFAULT_CATEGORY,
        status_code: Optional[int] = None,
        context: Optional[Mapping[str, Any]] = None,
        logged: bool = False,
    ) -> None:
        super().__init__(message)
        self._payload = build_error_payload(
            message, category=category, status_code=status_code, context=context
        )
        self.category = self._payload.category
        self.status_code = self._payload.status_code
        self.context = dict(self._payload.context)
        self.logged = logged

    @property
    def payload(self) -> ErrorPayload:
        return self._payload


def error_from_exception(
    exc: BaseException, *, context: Optional[Mapping[str, Any]] = None
) -> CliError:
    """Translate a domain exception into a :class:`CliError`.

    Missing inputs map to ``not_found``, unreadable or malformed logs and
    tables to ``io``, bad settings to ``usage``; anything else is ``runtime``.
    """

    if isinstance(exc, CliError):
        return exc
    if isinstance(exc, FileNotFoundError):
        missing = exc.filename or (exc.args[0] if exc.args else "")
        return CliError(f"File not found: {missing}", category="not_found", context=context)
    if isinstance(exc, LogFormatError):
        return CliError(str(exc), category="io", context=context)
    if isinstance(exc, OSError):
        return CliError(f"Cannot read input: {exc}", category="io", context=context)
    if isinstance(exc, KeyError):
        message = exc.args[0] if exc.args else str(exc)
        return CliError(str(message), category="usage", context=context)
    if isinstance(exc, (ValueError, TypeError)):
        return CliError(str(exc), category="usage", context=context)
    return CliError(str(exc) or exc.__class__.__name__, context=context)
