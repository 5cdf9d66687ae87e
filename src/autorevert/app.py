"""Application bootstrap helpers for the autorevert command line tool."""

from __future__ import annotations

import argparse
import asyncio
import contextlib
import json
import logging
import math
import os
import sys
from dataclasses import asdict, dataclass, replace
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Sequence, TextIO, get_args, get_origin, get_type_hints

from .editor.windows import WindowManager
from .editor.workspace import DocumentTab, DocumentWorkspace
from .events import EventBus, SettingsChanged, Subscription
from .live.controller import LiveModeController
from .live.host import WorkspaceHost
from .live.scheduler import TimerFactory, asyncio_timer_factory, qt_timer_factory
from .services.settings import Settings, SettingsStore
from .utils import logging as logging_utils

_TRUE_VALUES = {"1", "true", "yes", "on", "debug"}
_FALSE_VALUES = {"0", "false", "no", "off", "disabled"}
_LOGGER = logging.getLogger(__name__)


@dataclass(slots=True)
class QtRuntime:
    """Container returned by :func:`create_qt_runtime`."""

    app: Any
    loop: asyncio.AbstractEventLoop


@dataclass(slots=True)
class LiveRuntime:
    """Everything wired together by :func:`build_runtime`."""

    event_bus: EventBus
    workspace: DocumentWorkspace
    windows: WindowManager
    host: WorkspaceHost
    controller: LiveModeController


def configure_logging(debug: bool = False, *, log_dir: str | None = None, force: bool = False) -> None:
    """Configure structured logging for the application."""

    level = logging.DEBUG if debug else logging.INFO
    logging_utils.setup_logging(level, log_dir=log_dir, force=force)
    _LOGGER.debug("Logging configured (level=%s)", logging.getLevelName(level))


def follow_debug_logging(bus: EventBus) -> Subscription:
    """Apply ``debug_logging`` from every :class:`SettingsChanged` to the log level."""

    def _apply(event: SettingsChanged) -> None:
        debug = bool(getattr(event.settings, "debug_logging", False))
        logging_utils.set_level(logging.DEBUG if debug else logging.INFO)

    return bus.subscribe(SettingsChanged, _apply)


def load_settings(
    path: Optional[Path] = None,
    *,
    store: SettingsStore | None = None,
    overrides: Mapping[str, Any] | None = None,
) -> Settings:
    """Load persisted settings or fall back to defaults."""

    active_store = store or SettingsStore(path)
    try:
        settings = active_store.load(overrides=overrides)
    except Exception as exc:  # pragma: no cover - defensive path
        _LOGGER.warning("Failed to load settings from %s: %s", active_store.path, exc)
        settings = Settings()
    return settings


def build_runtime(settings: Settings, *, timer_factory: TimerFactory | None = None) -> LiveRuntime:
    """Create the headless editor host and a live-mode controller bound to it."""

    event_bus: EventBus = EventBus()
    workspace = DocumentWorkspace(event_bus=event_bus)
    windows = WindowManager(workspace, event_bus=event_bus)
    host = WorkspaceHost(windows, event_bus)
    controller = LiveModeController(
        host,
        delay=settings.debounce_delay,
        timer_factory=timer_factory,
        event_bus=event_bus,
    )
    controller.bind_settings(event_bus)
    follow_debug_logging(event_bus)
    return LiveRuntime(
        event_bus=event_bus,
        workspace=workspace,
        windows=windows,
        host=host,
        controller=controller,
    )


def open_paths(runtime: LiveRuntime, paths: Sequence[Path | str]) -> list[DocumentTab]:
    """Open ``paths`` and show each one in its own pane of a single window."""

    tabs = [runtime.workspace.open_file(path) for path in paths]
    if not tabs:
        return tabs
    window = runtime.windows.open_window(tab=tabs[0], title="autorevert")
    pane = window.panes[0]
    for tab in tabs[1:]:
        pane = runtime.windows.split_pane(pane.id, tab=tab)
    return tabs


async def run_session(
    runtime: LiveRuntime,
    paths: Sequence[Path | str],
    settings: Settings,
    *,
    stream: TextIO | None = None,
) -> None:
    """Open files, publish ``settings``, wait one quiet period and report status.

    The controller and the log level pick the settings up through their
    :class:`SettingsChanged` subscriptions, the same path a later reload takes.
    """

    open_paths(runtime, paths)
    runtime.event_bus.publish(SettingsChanged(settings=settings))
    await asyncio.sleep(settings.debounce_delay)
    _write_status(runtime, stream or sys.stdout)
    runtime.controller.deactivate()


def create_qt_runtime() -> QtRuntime:
    """Create a qasync-powered QCoreApplication so Qt timers drive the loop."""

    try:  # Local import to avoid mandatory PySide6 dependency at import time.
        from PySide6.QtCore import QCoreApplication
    except ImportError as exc:  # pragma: no cover - depends on desktop stack
        raise RuntimeError("PySide6 must be installed to use the Qt event loop.") from exc

    try:
        from qasync import QEventLoop
    except ImportError as exc:  # pragma: no cover - depends on env setup
        raise RuntimeError("qasync is required to run the async Qt event loop.") from exc

    app = QCoreApplication.instance() or QCoreApplication(sys.argv[:1])
    app.setApplicationName("autorevert")
    loop = QEventLoop(app)
    asyncio.set_event_loop(loop)
    return QtRuntime(app=app, loop=loop)


def main(argv: Sequence[str] | None = None) -> None:
    """Entry point invoked by the `autorevert` console script."""

    args = _parse_cli_args(argv)

    debug = _env_flag("AUTOREVERT_DEBUG", default=False)
    configure_logging(debug)

    settings_path = args.settings_path or os.environ.get("AUTOREVERT_SETTINGS_PATH")
    resolved_path = Path(settings_path).expanduser() if settings_path else None
    settings_store = SettingsStore(resolved_path)
    try:
        cli_overrides = _coerce_cli_overrides(args.overrides or [])
    except ValueError as exc:
        print(f"Invalid --set override: {exc}", file=sys.stderr)
        raise SystemExit(2) from exc

    overrides_mapping: Dict[str, Any] | None = cli_overrides or None
    settings = load_settings(resolved_path, store=settings_store, overrides=overrides_mapping)

    if args.dump_settings:
        _dump_settings(settings, settings_store, overrides=cli_overrides)
        return

    if (settings.debug_logging and not debug) or settings.log_dir:
        debug = debug or settings.debug_logging
        configure_logging(debug, log_dir=settings.log_dir, force=True)
    settings = replace(settings, debug_logging=debug or settings.debug_logging)

    if args.qt:
        qt_runtime = create_qt_runtime()
        loop = qt_runtime.loop
        timer_factory = qt_timer_factory()
    else:
        loop = asyncio.new_event_loop()
        timer_factory = asyncio_timer_factory(loop)

    runtime = build_runtime(settings, timer_factory=timer_factory)
    try:
        loop.run_until_complete(run_session(runtime, args.paths, settings))
    except OSError as exc:
        print(f"Unable to open document: {exc}", file=sys.stderr)
        raise SystemExit(1) from exc
    finally:
        runtime.controller.deactivate()
        with contextlib.suppress(RuntimeError):
            loop.close()


def _write_status(runtime: LiveRuntime, stream: TextIO) -> None:
    payload = {
        "active": runtime.controller.active,
        "debounce_delay": runtime.controller.scheduler.delay,
        "tabs": runtime.workspace.serialize_tabs(),
    }
    json.dump(payload, stream, indent=2)
    stream.write("\n")


def _env_flag(name: str, *, default: bool = False) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in _TRUE_VALUES


def _parse_cli_args(argv: Sequence[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="autorevert",
        add_help=True,
        description="Keep visible file-backed documents in live (auto-reload) mode.",
    )
    parser.add_argument("paths", nargs="*", metavar="PATH", help="Documents to open and display.")
    parser.add_argument(
        "--dump-settings",
        action="store_true",
        help="Print the effective settings payload and exit.",
    )
    parser.add_argument(
        "--settings-path",
        metavar="PATH",
        help="Override the default ~/.autorevert/settings.json path.",
    )
    parser.add_argument(
        "--set",
        dest="overrides",
        metavar="KEY=VALUE",
        action="append",
        default=[],
        help="Override persisted settings before launch (repeatable).",
    )
    parser.add_argument(
        "--qt",
        action="store_true",
        help="Drive timers with a Qt event loop (requires PySide6 and qasync).",
    )
    return parser.parse_args(argv)


def _coerce_cli_overrides(items: Sequence[str]) -> Dict[str, Any]:
    overrides: Dict[str, Any] = {}
    if not items:
        return overrides

    fields = Settings.__dataclass_fields__  # type: ignore[attr-defined]
    type_hints = get_type_hints(Settings)
    for entry in items:
        if "=" not in entry:
            raise ValueError(f"Override '{entry}' must use KEY=VALUE syntax.")
        key, raw_value = entry.split("=", 1)
        key = key.strip()
        if not key:
            raise ValueError("Override is missing a field name.")
        if key not in fields:
            raise ValueError(f"Unknown setting '{key}'.")
        annotation = type_hints.get(key, fields[key].type)
        overrides[key] = _coerce_value(annotation, raw_value.strip())
    return overrides


def _coerce_value(annotation: Any, raw_value: str) -> Any:
    target = _resolve_annotation(annotation)
    normalized = raw_value.strip()

    if normalized.lower() in {"none", "null"} and _is_optional(annotation):
        return None
    if target is str or target is Any:
        return normalized
    if target is bool:
        return _parse_bool(normalized)
    if target is int:
        return int(normalized, 10)
    if target is float:
        value = float(normalized)
        if not math.isfinite(value) or value < 0:
            raise ValueError(f"Expected a finite non-negative number, got '{raw_value}'.")
        return value
    return normalized


def _resolve_annotation(annotation: Any) -> Any:
    origin = get_origin(annotation)
    if origin is None:
        return annotation
    args = [arg for arg in get_args(annotation) if arg is not type(None)]
    if not args:
        return origin
    return args[0]


def _is_optional(annotation: Any) -> bool:
    return type(None) in get_args(annotation)


def _parse_bool(value: str) -> bool:
    lowered = value.strip().lower()
    if lowered in _TRUE_VALUES:
        return True
    if lowered in _FALSE_VALUES:
        return False
    raise ValueError(f"Cannot coerce '{value}' to a boolean.")


def _dump_settings(
    settings: Settings,
    store: SettingsStore,
    *,
    overrides: Mapping[str, Any],
    stream: TextIO | None = None,
) -> None:
    destination = stream or sys.stdout
    metadata = {
        "path": str(store.path),
        "cli_overrides": sorted(overrides.keys()),
        "environment_variables": _active_env_overrides(),
    }
    output = {"settings": asdict(settings), "meta": metadata}
    json.dump(output, destination, indent=2)
    destination.write("\n")


def _active_env_overrides() -> list[str]:
    return sorted(name for name in os.environ if name.startswith("AUTOREVERT_"))
