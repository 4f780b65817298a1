import dataclasses
import json
import logging
import logging.config
import pathlib
from datetime import datetime, timezone
from enum import Enum
from functools import lru_cache
from logging import Logger
from typing import Any

_DEFAULT_CONFIG_PATH = pathlib.Path(__file__).resolve().parents[3] / "configs" / "logging.json"

_DEFAULT_PROFILE: dict[str, Any] = {
    "level": "INFO",
    "debug": {"enabled": False, "modules": []},
    "handlers": {"console": {"enabled": True}},
    "format": {"json": True, "timestamp_utc": True},
}

_CONFIGURED = False
_RUN_ID: str | None = None
_MODE: str | None = None
_DEBUG_ENABLED = False
_DEBUG_MODULES: set[str] = set()
_FALLBACK_LOGGERS: set[str] = set()


def safe_jsonable(value: Any) -> Any:
    """Coerce common python objects into something json.dumps accepts."""
    if isinstance(value, Enum):
        return safe_jsonable(value.value)
    if value is None or isinstance(value, (bool, int, float, str)):
        return value
    if isinstance(value, dict):
        return {str(k): safe_jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [safe_jsonable(v) for v in value]
    if isinstance(value, (set, frozenset)):
        return [safe_jsonable(v) for v in sorted(value, key=repr)]
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, pathlib.PurePath):
        return value.as_posix()
    if isinstance(value, BaseException):
        return f"{type(value).__name__}: {value}"
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return {f.name: safe_jsonable(getattr(value, f.name)) for f in dataclasses.fields(value)}
    return repr(value)


def _debug_module_matches(logger_name: str, module: str) -> bool:
    """True when `module` names the logger itself, a dotted prefix, or a path segment of it."""
    if logger_name == module or logger_name.startswith(module + "."):
        return True
    return module in logger_name.split(".")


class ContextFilter(logging.Filter):
    """Guarantees record.context always exists and carries run_id / mode."""

    def filter(self, record: logging.LogRecord) -> bool:
        context = getattr(record, "context", None)
        if not isinstance(context, dict):
            context = {}
        if _RUN_ID is not None:
            context.setdefault("run_id", _RUN_ID)
        if _MODE is not None:
            context.setdefault("mode", _MODE)
        record.context = context
        return True


class JsonFormatter(logging.Formatter):
    """Structured JSON formatter for deterministic, parseable logs."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "ts_ms": int(record.created * 1000),
            "level": record.levelname,
            "logger": record.name,
            "module": record.module,
            "event": record.getMessage(),
            "msg": record.getMessage(),
        }

        context = dict(getattr(record, "context", None) or {})
        category = context.pop("category", None)
        if category is not None:
            payload["category"] = category
        if context:
            payload["context"] = safe_jsonable(context)
        if record.exc_info:
            payload["exc"] = self.formatException(record.exc_info)

        return json.dumps(payload, ensure_ascii=False)


def _load_logging_config(config_path: str | None) -> dict[str, Any]:
    path = pathlib.Path(config_path) if config_path else _DEFAULT_CONFIG_PATH
    if path.exists():
        with open(path, "r", encoding="utf-8") as f:
            return json.load(f)
    return {"active_profile": "default", "profiles": {"default": _DEFAULT_PROFILE}}


def _resolve_profile(cfg: dict[str, Any], mode: str | None) -> dict[str, Any]:
    profiles = cfg.get("profiles")
    if profiles is None:
        # flat (profile-less) config
        return cfg
    if not isinstance(profiles, dict):
        raise TypeError("logging config 'profiles' must be a dict")
    name = mode or cfg.get("active_profile") or "default"
    if name not in profiles:
        name = cfg.get("active_profile") or "default"
    if name not in profiles:
        raise KeyError(f"logging profile not found: {name}")
    return profiles[name]


def init_logging(
    config_path: str | None = None,
    *,
    run_id: str | None = None,
    mode: str | None = None,
) -> None:
    """Configure the root logger from a logging.json profile."""
    global _CONFIGURED, _RUN_ID, _MODE, _DEBUG_ENABLED, _DEBUG_MODULES

    profile = _resolve_profile(_load_logging_config(config_path), mode)
    level = str(profile.get("level", "INFO")).upper()
    debug_cfg = profile.get("debug", {}) or {}
    handlers_cfg = profile.get("handlers", {}) or {}
    use_json = bool((profile.get("format", {}) or {}).get("json", True))

    handlers: dict[str, dict[str, Any]] = {}
    console = handlers_cfg.get("console", {}) or {}
    if console.get("enabled", True):
        handlers["console"] = {
            "class": "logging.StreamHandler",
            "level": str(console.get("level", level)).upper(),
            "formatter": "json" if use_json else "plain",
            "filters": ["context"],
        }
    file_cfg = handlers_cfg.get("file", {}) or {}
    if file_cfg.get("enabled", False):
        path = pathlib.Path(
            str(file_cfg["path"]).format(run_id=run_id or "default", mode=mode or "default")
        )
        path.parent.mkdir(parents=True, exist_ok=True)
        handlers["file"] = {
            "class": "logging.FileHandler",
            "level": str(file_cfg.get("level", level)).upper(),
            "formatter": "json" if use_json else "plain",
            "filters": ["context"],
            "filename": str(path),
            "encoding": "utf-8",
        }

    logging.config.dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "filters": {"context": {"()": ContextFilter}},
            "formatters": {
                "json": {"()": JsonFormatter},
                "plain": {"format": "%(asctime)s %(levelname)s %(name)s %(message)s"},
            },
            "handlers": handlers,
            "root": {"level": level, "handlers": list(handlers)},
        }
    )

    for name in _FALLBACK_LOGGERS:
        fallback = logging.getLogger(name)
        for handler in list(fallback.handlers):
            fallback.removeHandler(handler)
        fallback.setLevel(logging.NOTSET)
    _FALLBACK_LOGGERS.clear()

    _RUN_ID = run_id
    _MODE = mode
    _DEBUG_ENABLED = bool(debug_cfg.get("enabled", False))
    _DEBUG_MODULES = set(debug_cfg.get("modules", []) or [])
    _CONFIGURED = True


@lru_cache(None)
def get_logger(name: str = "prefetcher") -> Logger:
    logger = logging.getLogger(name)
    if _CONFIGURED or logger.handlers:
        return logger

    # Not configured yet: attach a console handler to the package root only.
    root_name = name.split(".")[0]
    root = logging.getLogger(root_name)
    if not root.handlers:
        handler = logging.StreamHandler()
        handler.addFilter(ContextFilter())
        handler.setFormatter(JsonFormatter())
        root.addHandler(handler)
        root.setLevel(logging.INFO)
        _FALLBACK_LOGGERS.add(root_name)
    return logger


def log_debug(logger: Logger, msg: str, **context):
    if not _DEBUG_ENABLED:
        return
    if _DEBUG_MODULES and not any(_debug_module_matches(logger.name, m) for m in _DEBUG_MODULES):
        return
    logger.debug(msg, extra={"context": context})


def log_info(logger: Logger, msg: str, **context):
    logger.info(msg, extra={"context": context})


def log_warn(logger: Logger, msg: str, **context):
    logger.warning(msg, extra={"context": context})


def log_error(logger: Logger, msg: str, **context):
    logger.error(msg, extra={"context": context})


def log_exception(logger: Logger, msg: str, **context):
    """Like log_error, but attaches the active exception's traceback."""
    logger.error(msg, exc_info=True, extra={"context": context})
