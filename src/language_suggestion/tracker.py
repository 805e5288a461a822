# SPDX-License-Identifier: MIT
# Copyright (c) 2025-2026 Soroush Yousefpour
"""
Compose box tracking.

Runs the scan -> locate -> position pipeline for the frontmost supported
app and keeps the floating icon next to its compose box.

Scans run on a single background worker. Results are handed back through
the injected dispatch callable (perform_on_main_thread in the app), and
every change to the tracked state happens inside a dispatched function.
Triggers from the poll timer, workspace notifications and manual retry
all go through one debounced entry point.
"""

import threading
import time
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Callable, List, Optional, Union

from .ax import AccessibilityHost, PermissionDeniedError, Point
from .config import Config, get_config
from .locator import LocatedElement, locate
from .placement import OverlayPositioner, PlacementStore
from .scanner import TreeScanner
from .targets import TargetApp, get_target, target_for_bundle
from .utils import log, truncate

Dispatch = Callable[[Callable[[], None]], None]
UpdateCallback = Callable[[Optional[Point], Optional[TargetApp]], None]
ErrorCallback = Callable[[str], None]


def _call_now(func: Callable[[], None]):
    func()


class ComposeTracker:
    """
    Owns the "currently tracked app" state.

    Attributes below are written only inside dispatched functions:
        current_target   TargetApp being tracked, or None
        last_located     most recent LocatedElement, or None
        overlay_point    where the icon is shown (bottom-left origin), or None
        last_error       last user-facing error message, or None
    """

    def __init__(
        self,
        host: AccessibilityHost,
        config: Optional[Config] = None,
        scanner: Optional[TreeScanner] = None,
        positioner: Optional[OverlayPositioner] = None,
        dispatch: Optional[Dispatch] = None,
        on_update: Optional[UpdateCallback] = None,
        on_error: Optional[ErrorCallback] = None,
        executor=None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self._host = host
        self._config = config or get_config()
        self._scanner = scanner or TreeScanner(host)
        self._positioner = positioner or OverlayPositioner(
            PlacementStore(),
            icon_size=self._config.overlay.icon_size,
            padding=self._config.overlay.padding,
        )
        self._dispatch = dispatch or _call_now
        self._on_update = on_update
        self._on_error = on_error
        self._executor = executor or ThreadPoolExecutor(max_workers=1, thread_name_prefix="ax-scan")
        self._sleep = sleep

        self.current_target: Optional[TargetApp] = None
        self.last_located: Optional[LocatedElement] = None
        self.overlay_point: Optional[Point] = None
        self.last_error: Optional[str] = None

        self._debounce_lock = threading.Lock()
        self._debounce_timer: Optional[threading.Timer] = None
        self._pending_force = False
        self._pending_reasons: List[str] = []

        self._poll_timer: Optional[threading.Timer] = None
        self._running = False
        self._permission_reported = False

    @property
    def positioner(self) -> OverlayPositioner:
        return self._positioner

    @property
    def scanner(self) -> TreeScanner:
        return self._scanner

    # ------------------------------------------------------------------
    # Pipeline
    # ------------------------------------------------------------------

    def _resolve(self, target: Union[str, TargetApp]) -> TargetApp:
        if isinstance(target, TargetApp):
            return target
        resolved = get_target(target, self._config)
        if resolved is None:
            raise ValueError(f"Unknown target app: {target}")
        return resolved

    def _find_application(self, target: TargetApp):
        for bundle_id in target.bundle_ids:
            app = self._host.find_running_application(bundle_id)
            if app is not None:
                return app
        return None

    def locate_now(self, target: Union[str, TargetApp]) -> Optional[LocatedElement]:
        """
        Scan the target app and pick its compose box, synchronously.

        Raises PermissionDeniedError if Accessibility is not granted.
        Returns None if the app is not running (last_error is set) or no
        candidate was found.
        """
        target = self._resolve(target)
        if not self._host.is_trusted():
            raise PermissionDeniedError()

        app = self._find_application(target)
        if app is None:
            message = f"{target.name} is not running."
            self._dispatch(lambda: self._set_error(message))
            return None

        elements = self._scanner.scan_application(app, target.max_depth)
        located = locate(elements, target.hints)
        if located is None:
            log(f"{target.name}: no compose box among {len(elements)} elements", "AX")
        return located

    def scan_and_locate(self, target: Union[str, TargetApp]) -> Future:
        """Run locate_now on the scan worker."""
        return self._executor.submit(self.locate_now, target)

    def position_overlay(self, located: Optional[LocatedElement]) -> Optional[Point]:
        """Icon origin for a located element, in bottom-left screen coordinates."""
        if located is None:
            return None
        return self._positioner.position_for(located, self._host.screen_height())

    def _run_pipeline(self, force: bool, reasons: List[str]) -> Optional[Point]:
        try:
            bundle_id = self._host.frontmost_bundle_id()
            target = target_for_bundle(bundle_id, self._config)
            if target is None:
                self._dispatch(lambda: self._apply(None, None, None))
                return None

            attempts = self._config.scan.retry_attempts if force else 1
            located = None
            point = None
            for attempt in range(attempts):
                located = self.locate_now(target)
                point = self.position_overlay(located)
                if point is not None:
                    break
                if attempt < attempts - 1:
                    self._sleep(self._config.scan.retry_delay)

            self._permission_reported = False

            if point is not None:
                found, at = located, point
                self._dispatch(lambda: self._apply(target, found, at, save=True))
                return point

            if force:
                saved = self._positioner.load_placement(target.id)
                if saved is not None:
                    log(f"{target.name}: compose box not found after {attempts} attempts, using saved placement", "WARN")
                    self._dispatch(lambda: self._apply(target, None, saved))
                    return saved
                log(f"{target.name}: compose box not found after {attempts} attempts", "WARN")
                self._dispatch(lambda: self._apply(target, None, None))
                return None

            self._dispatch(lambda: self._keep(target))
            return self.overlay_point
        except PermissionDeniedError as e:
            message = str(e)
            self._dispatch(lambda: self._report_permission(message))
            return None
        except Exception as e:
            log(f"Locate pipeline failed ({', '.join(reasons)}): {type(e).__name__}: {e}", "ERR")
            return None

    # ------------------------------------------------------------------
    # State updates (run via dispatch)
    # ------------------------------------------------------------------

    def _apply(self, target: Optional[TargetApp], located: Optional[LocatedElement],
               point: Optional[Point], save: bool = False):
        changed = (
            point != self.overlay_point
            or (target and target.id) != (self.current_target and self.current_target.id)
        )
        self.current_target = target
        self.last_located = located
        self.overlay_point = point
        if point is not None:
            self.last_error = None
        if save and changed and target is not None and point is not None:
            self._positioner.save_placement(target.id, point)
        if changed:
            if located is not None:
                log(f"{target.name}: {located.strategy} -> {located.element.short_description} "
                    f"at ({point.x:.0f}, {point.y:.0f})", "AX")
            elif target is None:
                log("No supported app in front, overlay hidden", "INFO")
        if self._on_update:
            self._on_update(point, target)

    def _keep(self, target: TargetApp):
        """Unforced miss: keep the previous position for the same app."""
        if self.current_target is not None and self.current_target.id == target.id:
            return
        self._apply(target, None, None)

    def _set_error(self, message: str):
        self.last_error = message
        log(message, "WARN")
        if self._on_error:
            self._on_error(message)

    def _report_permission(self, message: str):
        self.last_error = message
        if self._permission_reported:
            return
        self._permission_reported = True
        log(message, "ERR")
        self._host.prompt_for_trust()
        if self._on_error:
            self._on_error(message)

    # ------------------------------------------------------------------
    # Triggers
    # ------------------------------------------------------------------

    def trigger(self, reason: str, force: bool = False):
        """
        Request a pipeline run.

        Triggers arriving within debounce_window are merged into one run;
        force is kept if any merged trigger asked for it.
        """
        with self._debounce_lock:
            self._pending_force = self._pending_force or force
            self._pending_reasons.append(reason)
            if self._debounce_timer is not None:
                return
            window = self._config.scan.debounce_window
            if window > 0:
                self._debounce_timer = threading.Timer(window, self._fire)
                self._debounce_timer.daemon = True
                self._debounce_timer.start()
                return
        self._fire()

    def flush(self):
        """Run any pending debounced trigger now."""
        with self._debounce_lock:
            timer = self._debounce_timer
            if timer is None and not self._pending_reasons:
                return
        if timer is not None:
            timer.cancel()
        self._fire()

    def _fire(self) -> Optional[Future]:
        with self._debounce_lock:
            force = self._pending_force
            reasons = self._pending_reasons
            self._pending_force = False
            self._pending_reasons = []
            self._debounce_timer = None
        if not reasons:
            return None
        try:
            return self._executor.submit(self._run_pipeline, force, reasons)
        except RuntimeError:
            # Executor already shut down
            return None

    def retry(self):
        self.trigger("retry", force=True)

    def on_app_activated(self, bundle_id: Optional[str]):
        supported = target_for_bundle(bundle_id, self._config) is not None
        self.trigger("activated", force=supported)

    def on_app_launched(self, bundle_id: Optional[str]):
        target = target_for_bundle(bundle_id, self._config)
        if target is None:
            return
        log(f"{target.name} launched", "APP")
        timer = threading.Timer(
            self._config.scan.launch_settle_delay,
            lambda: self.trigger("launched", force=True),
        )
        timer.daemon = True
        timer.start()

    def on_app_terminated(self, bundle_id: Optional[str]):
        target = target_for_bundle(bundle_id, self._config)
        if target is not None:
            log(f"{target.name} terminated", "APP")
        self.trigger("terminated")

    # ------------------------------------------------------------------
    # Poll loop
    # ------------------------------------------------------------------

    def start(self):
        """Start the periodic poll loop."""
        self._running = True
        self.trigger("start", force=True)
        self._schedule_poll()

    def _schedule_poll(self):
        if not self._running:
            return
        self._poll_timer = threading.Timer(self._config.scan.poll_interval, self._poll)
        self._poll_timer.daemon = True
        self._poll_timer.start()

    def _poll(self):
        if not self._running:
            return
        self.trigger("poll")
        self._schedule_poll()

    def stop(self):
        """Stop polling and shut the scan worker down. In-flight scans finish on their own."""
        self._running = False
        if self._poll_timer is not None:
            self._poll_timer.cancel()
            self._poll_timer = None
        with self._debounce_lock:
            if self._debounce_timer is not None:
                self._debounce_timer.cancel()
                self._debounce_timer = None
            self._pending_reasons = []
            self._pending_force = False
        if isinstance(self._executor, ThreadPoolExecutor):
            self._executor.shutdown(wait=False)

    # ------------------------------------------------------------------
    # Text capture
    # ------------------------------------------------------------------

    def capture_text(self, target: Union[str, TargetApp, None] = None) -> Optional[str]:
        """
        Text to send to the provider.

        Uses the system-wide focused element first, then the located
        compose box of the target (or the tracked app).
        """
        if not self._host.is_trusted():
            raise PermissionDeniedError()

        text = self._host.get_focused_text()
        if text and text.strip():
            log(f"Captured focused text: {truncate(text)}", "AX")
            return text

        if target is not None:
            resolved = self._resolve(target)
        else:
            resolved = self.current_target or target_for_bundle(self._host.frontmost_bundle_id(), self._config)
        if resolved is None:
            return None

        located = self.locate_now(resolved)
        if located is None:
            return None
        text = located.element.value
        if not text or not text.strip():
            return None
        log(f"Captured {resolved.name} compose text: {truncate(text)}", "AX")
        return text


__all__ = ["ComposeTracker"]
