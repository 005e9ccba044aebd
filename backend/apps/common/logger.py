import logging
from typing import Any, Dict, Optional


class AppLogger:
    """Stdlib logger wrapper that carries bound context into every record.

    Context is rendered as ``message | key=value ...`` so log lines stay greppable
    without a structured-logging backend.
    """

    def __init__(
        self,
        name: str,
        context: Optional[Dict[str, Any]] = None,
        _logger: Optional[logging.Logger] = None,
    ):
        self._logger = _logger or logging.getLogger(name)
        self._name = name
        self._context = context or {}

    @property
    def context(self) -> Dict[str, Any]:
        return dict(self._context)

    def bind(self, **extra: Any) -> "AppLogger":
        """Return a new logger with additional context; the receiver is unchanged."""
        merged = {**self._context, **extra}
        return AppLogger(self._name, merged, _logger=self._logger)

    def debug(self, message: str, **context: Any) -> None:
        self._log(logging.DEBUG, message, context)

    def info(self, message: str, **context: Any) -> None:
        self._log(logging.INFO, message, context)

    def warning(self, message: str, **context: Any) -> None:
        self._log(logging.WARNING, message, context)

    def error(self, message: str, **context: Any) -> None:
        self._log(logging.ERROR, message, context)

    def exception(self, message: str, **context: Any) -> None:
        """Log at ERROR level with the active exception's traceback attached."""
        payload = {**self._context, **context}
        self._logger.error(self._format(message, payload), exc_info=True)

    def failure(self, message: str, exc: BaseException, **context: Any) -> None:
        """Record a tolerated failure: the caller carries on after logging it."""
        payload = {
            **context,
            "error": str(exc) or exc.__class__.__name__,
            "error_type": exc.__class__.__name__,
        }
        code = getattr(exc, "code", None)
        if code is not None:
            payload["error_code"] = getattr(code, "value", code)
        self._log(logging.WARNING, message, payload)

    def _log(self, level: int, message: str, context: Dict[str, Any]) -> None:
        if not self._logger.isEnabledFor(level):
            return
        payload = {**self._context, **context} if context else dict(self._context)
        self._logger.log(level, self._format(message, payload))

    @staticmethod
    def _format(message: str, context: Dict[str, Any]) -> str:
        if not context:
            return message
        ctx_str = " ".join(
            f"{key}={AppLogger._stringify(value)}" for key, value in context.items()
        )
        return f"{message} | {ctx_str}"

    @staticmethod
    def _stringify(value: Any) -> str:
        if isinstance(value, (str, int, float, bool)) or value is None:
            return str(value)
        if isinstance(value, (list, tuple, set, frozenset)):
            return "[" + ",".join(AppLogger._stringify(v) for v in value) + "]"
        return repr(value) if not hasattr(value, "key") else str(value.key)


def get_logger(name: str) -> AppLogger:
    return AppLogger(name)
