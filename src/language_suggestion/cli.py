# SPDX-License-Identifier: MIT
# Copyright (c) 2025-2026 Soroush Yousefpour
"""
CLI service controller for Language Suggestion.

Usage:
    lsg                     Status + help (default)
    lsg status              Running? PID, provider, config path
    lsg start               Launch the service
    lsg stop                Graceful kill (SIGTERM -> SIGKILL)
    lsg restart             Stop + start
    lsg log                 Tail ~/.language-suggestion/service.log
    lsg scan <target>       Dump the accessibility tree of Teams or Notes
    lsg locate <target>     Show which element each strategy picks
    lsg fix "text"          Fix grammar (reads stdin when no text given)
    lsg translate [--to <lang>] "text"
    lsg prompt <name> "text"
    lsg prompts             List custom prompts (add|delete|restore)
    lsg placement           Show saved icon positions (clear [target])
    lsg provider [name]     Show or switch LLM provider
    lsg config [edit|path]  Show config, open it, or print its path
    lsg doctor              Check system health
    lsg version             Show version
"""

import fcntl
import os
import signal
import subprocess
import sys
import time
from pathlib import Path
from typing import Optional

from .config import CONFIG_DIR, CONFIG_FILE, PROVIDERS, get_config, update_config_provider
from .utils import C_BOLD, C_CYAN, C_DIM, C_GREEN, C_RED, C_RESET, C_YELLOW

LOCK_FILE = CONFIG_DIR / "service.lock"
LOG_FILE = CONFIG_DIR / "service.log"


def _is_running() -> tuple:
    """Check if the service is running. Returns (is_running, pid_or_None)."""
    if not LOCK_FILE.exists():
        return False, None
    try:
        lf = open(LOCK_FILE, "r+")
    except FileNotFoundError:
        return False, None
    try:
        fcntl.flock(lf, fcntl.LOCK_EX | fcntl.LOCK_NB)
        # Got lock - service is not running (stale lock)
        fcntl.flock(lf, fcntl.LOCK_UN)
        return False, None
    except OSError:
        # Lock held - service is running, the PID is written into the lock file
        return True, _read_pid(lf)
    finally:
        lf.close()


def _read_pid(lock_file) -> Optional[int]:
    try:
        lock_file.seek(0)
        return int(lock_file.read().strip())
    except (OSError, ValueError):
        return None


def _cleanup_lock():
    """Remove stale lock file after service stops."""
    try:
        os.unlink(LOCK_FILE)
    except OSError:
        pass


def _die(msg: str, usage: str = ""):
    print(f"{C_RED}{msg}{C_RESET}", file=sys.stderr)
    if usage:
        print(f"{C_DIM}Usage: {usage}{C_RESET}", file=sys.stderr)
    sys.exit(1)


# ---------------------------------------------------------------------------
# Service control
# ---------------------------------------------------------------------------

def cmd_status():
    """Show service status."""
    running, pid = _is_running()
    config = get_config()

    if running:
        pid_str = str(pid) if pid else "unknown"
        print(f"  {C_GREEN}{C_BOLD}Running{C_RESET}  pid {C_DIM}{pid_str}{C_RESET}")
    else:
        print(f"  {C_DIM}Stopped{C_RESET}")

    print(f"  {C_DIM}provider:{C_RESET} {config.provider.name}")
    print(f"  {C_DIM}action:  {C_RESET} {config.action.default_action}")
    print(f"  {C_DIM}config:  {C_RESET} {CONFIG_FILE}")


def cmd_start():
    """Launch the service."""
    running, pid = _is_running()
    if running:
        pid_str = str(pid) if pid else "unknown"
        print(f"{C_YELLOW}Already running (pid {pid_str}){C_RESET}")
        return

    lsg_path = str(Path(sys.argv[0]).resolve())
    subprocess.Popen(
        [lsg_path, "_run"],
        stdout=subprocess.DEVNULL,
        stderr=subprocess.DEVNULL,
        start_new_session=True,
    )
    print(f"{C_GREEN}Started{C_RESET}")


def cmd_stop():
    """Graceful kill with SIGTERM -> SIGKILL fallback."""
    running, pid = _is_running()
    if not running:
        print(f"{C_DIM}Not running{C_RESET}")
        return

    if pid is None:
        print(f"{C_YELLOW}Running but PID not found - check Activity Monitor{C_RESET}", file=sys.stderr)
        return

    try:
        os.kill(pid, signal.SIGTERM)
        print(f"{C_DIM}Stopping (pid {pid})...{C_RESET}")

        # Wait up to 5s for graceful exit
        for _ in range(50):
            time.sleep(0.1)
            try:
                os.kill(pid, 0)
            except ProcessLookupError:
                _cleanup_lock()
                print(f"{C_GREEN}Stopped{C_RESET}")
                return

        # Force kill
        try:
            os.kill(pid, signal.SIGKILL)
            _cleanup_lock()
            print(f"{C_YELLOW}Force-killed{C_RESET}")
        except ProcessLookupError:
            _cleanup_lock()
            print(f"{C_GREEN}Stopped{C_RESET}")

    except ProcessLookupError:
        _cleanup_lock()
        print(f"{C_GREEN}Stopped{C_RESET}")
    except PermissionError:
        _die(f"Permission denied to kill pid {pid}")


def cmd_restart():
    """Stop then start."""
    cmd_stop()
    for _ in range(30):
        if not _is_running()[0]:
            break
        time.sleep(0.1)
    cmd_start()


def cmd_log():
    """Tail the service log."""
    if not LOG_FILE.exists():
        print(f"{C_YELLOW}Log not found: {LOG_FILE}{C_RESET}")
        print(f"{C_DIM}Start the service first: lsg start{C_RESET}")
        return
    print(f"{C_DIM}Tailing {LOG_FILE} (Ctrl+C to stop){C_RESET}")
    print()
    try:
        subprocess.run(["tail", "-f", str(LOG_FILE)])
    except KeyboardInterrupt:
        print()


# ---------------------------------------------------------------------------
# Accessibility diagnostics
# ---------------------------------------------------------------------------

def _resolve_target(args: list, usage: str):
    from .targets import get_target, get_targets

    if not args:
        _die("Missing target", usage)
    target = get_target(args[0])
    if target is None:
        names = ", ".join(t.id for t in get_targets())
        _die(f"Unknown target: {args[0]}. Available: {names}")
    return target


def _scan_target(target):
    """Scan the running target app. Exits with a message on failure."""
    from .ax import MacAccessibilityHost
    from .scanner import TreeScanner

    host = MacAccessibilityHost()
    if not host.is_trusted():
        host.prompt_for_trust()
        _die("Accessibility permission required. Grant access in System Settings → "
             "Privacy & Security → Accessibility, then try again.")

    app = None
    for bundle_id in target.bundle_ids:
        app = host.find_running_application(bundle_id)
        if app is not None:
            break
    if app is None:
        _die(f"{target.name} is not running.")
    return TreeScanner(host).scan_application(app, target.max_depth)


def cmd_scan(args: list):
    """Dump the accessibility tree of a target app."""
    from .scanner import dump_tree, role_histogram

    target = _resolve_target(args, "lsg scan <teams|notes>")
    elements = _scan_target(target)
    print(dump_tree(elements))
    print()
    print(f"  {C_BOLD}{len(elements)}{C_RESET} elements, max depth {target.max_depth}")
    for role, count in role_histogram(elements)[:10]:
        print(f"    {C_DIM}{role:<20}{C_RESET} {count}")


def cmd_locate(args: list):
    """Show each strategy's candidate and the final pick."""
    from .locator import explain, locate

    target = _resolve_target(args, "lsg locate <teams|notes>")
    elements = _scan_target(target)
    print()
    for tag, element in explain(elements, target.hints):
        found = element.short_description if element else f"{C_DIM}-{C_RESET}"
        print(f"  {C_CYAN}{tag:<22}{C_RESET} {found}")
    print()
    located = locate(elements, target.hints)
    if located is None:
        print(f"  {C_YELLOW}No compose box found in {target.name}{C_RESET}")
        return
    element = located.element
    print(f"  {C_GREEN}Picked{C_RESET} {element.short_description} via {located.strategy}")
    if element.position is not None and element.size is not None:
        print(f"  {C_DIM}frame:{C_RESET} ({element.position.x:.0f}, {element.position.y:.0f}) "
              f"{element.size.width:.0f}x{element.size.height:.0f}")


# ---------------------------------------------------------------------------
# One-shot text actions
# ---------------------------------------------------------------------------

def _read_text(args: list) -> str:
    text = " ".join(args).strip()
    if not text and not sys.stdin.isatty():
        text = sys.stdin.read().strip()
    return text


def _run_transform(call, text: str):
    from .transformer import Transformer

    if not text:
        _die("No text given")
    try:
        transformer = Transformer()
    except ValueError as e:
        _die(str(e))
    try:
        response, error = call(transformer, text)
    finally:
        transformer.close()
    if error:
        _die(error)
    print(response.processed_text)
    for change in response.changes:
        reason = f" {C_DIM}({change.reason}){C_RESET}" if change.reason else ""
        print(f"  {C_DIM}•{C_RESET} {change.original} → {change.corrected}{reason}", file=sys.stderr)


def cmd_fix(args: list):
    _run_transform(lambda t, text: t.fix(text), _read_text(args))


def cmd_translate(args: list):
    """lsg translate [--to <language>] text"""
    language = None
    if len(args) >= 2 and args[0] == "--to":
        language, args = args[1], args[2:]
    _run_transform(lambda t, text: t.translate(text, language), _read_text(args))


def cmd_prompt(args: list):
    from .prompt_library import PromptLibrary

    if not args:
        _die("Missing prompt name", 'lsg prompt <name> "text"')
    prompt = PromptLibrary().get(args[0])
    if prompt is None:
        _die(f"Unknown prompt: {args[0]}. Run 'lsg prompts' to list them.")
    _run_transform(lambda t, text: t.apply_prompt(text, prompt), _read_text(args[1:]))


def cmd_prompts(args: list):
    """List, add, delete or restore custom prompts."""
    from .prompt_library import PromptLibrary

    library = PromptLibrary()
    usage = 'lsg prompts [add <name> "<prompt>" [key] | delete <name> | restore]'

    if not args or args[0] == "list":
        print()
        for prompt in library.all():
            key = f" {C_DIM}⌘{prompt.key_equivalent}{C_RESET}" if prompt.key_equivalent else ""
            print(f"  {C_CYAN}{prompt.name}{C_RESET}{key}")
            print(f"    {C_DIM}{prompt.prompt}{C_RESET}")
        print()
        print(f"  {C_DIM}{library.path}{C_RESET}")
        return

    sub, rest = args[0], args[1:]
    if sub == "add":
        if len(rest) < 2:
            _die("add needs a name and a prompt", usage)
        try:
            prompt = library.add(rest[0], rest[1], rest[2] if len(rest) > 2 else "")
        except ValueError as e:
            _die(str(e))
        print(f"{C_GREEN}Added{C_RESET} {prompt.name}")
    elif sub == "delete":
        if not rest:
            _die("delete needs a name", usage)
        prompt = library.get(rest[0])
        if prompt is None or not library.delete(prompt.id):
            _die(f"Unknown prompt: {rest[0]}")
        print(f"{C_GREEN}Deleted{C_RESET} {prompt.name}")
    elif sub == "restore":
        library.restore_defaults()
        print(f"{C_GREEN}Restored default prompts{C_RESET}")
    else:
        _die(f"Unknown prompts subcommand: {sub}", usage)


def cmd_placement(args: list):
    """Show or clear saved icon placements."""
    from .placement import PlacementStore

    store = PlacementStore()
    if not args or args[0] == "show":
        placements = store.all()
        if not placements:
            print(f"{C_DIM}No saved placements{C_RESET}")
            return
        for key, point in sorted(placements.items()):
            print(f"  {C_CYAN}{key:<10}{C_RESET} ({point.x:.0f}, {point.y:.0f})")
        return
    if args[0] == "clear":
        key = args[1].lower() if len(args) > 1 else None
        store.clear(key)
        print(f"{C_GREEN}Cleared{C_RESET} {key or 'all placements'}")
        return
    _die(f"Unknown placement subcommand: {args[0]}", "lsg placement [show|clear [target]]")


# ---------------------------------------------------------------------------
# Settings
# ---------------------------------------------------------------------------

def cmd_provider(args: list):
    """Show or switch the LLM provider."""
    from .providers import PROVIDER_REGISTRY

    current = get_config().provider.name
    if not args:
        print()
        for provider_id, info in PROVIDER_REGISTRY.items():
            marker = f"{C_GREEN}●{C_RESET}" if provider_id == current else " "
            print(f"  {marker} {C_CYAN}{provider_id:<12}{C_RESET} {info.name}  {C_DIM}{info.description}{C_RESET}")
        print()
        return

    new_provider = args[0].lower()
    if new_provider not in PROVIDERS:
        _die(f"Unknown provider: {new_provider}. Available: {', '.join(PROVIDERS)}")
    if new_provider == current:
        print(f"{C_DIM}Already using {new_provider}{C_RESET}")
        return
    if not update_config_provider(new_provider):
        _die("Failed to update config")
    print(f"{C_GREEN}Provider set to {new_provider}{C_RESET}")
    if _is_running()[0]:
        cmd_restart()


def cmd_config(args: list):
    """Show, edit, or print path to config."""
    if not args or args[0] == "show":
        config = get_config()

        def _on_off(v):
            return f"{C_GREEN}on{C_RESET}" if v else f"{C_DIM}off{C_RESET}"

        print()
        print(f"  {C_DIM}Provider{C_RESET}    {C_CYAN}{config.provider.name}{C_RESET}")
        print(f"  {C_DIM}Action{C_RESET}      {config.action.default_action}  "
              f"{C_DIM}({config.action.target_language}){C_RESET}")
        print(f"  {C_DIM}Overlay{C_RESET}     {_on_off(config.overlay.enabled)}  "
              f"{C_DIM}{config.overlay.icon_size}px{C_RESET}")
        print(f"  {C_DIM}Scan{C_RESET}        depth {config.scan.max_depth}, every {config.scan.poll_interval}s")
        print(f"  {C_DIM}Hotkey{C_RESET}      {config.hotkey.capture}")
        print()
        print(f"  {C_DIM}{CONFIG_FILE}{C_RESET}")
        print()
        return

    if args[0] == "edit":
        editor = os.environ.get("EDITOR", "open")
        if editor == "open":
            subprocess.run(["open", "-t", str(CONFIG_FILE)])
        else:
            os.execvp(editor, [editor, str(CONFIG_FILE)])
        return

    if args[0] == "path":
        print(CONFIG_FILE)
        return

    _die(f"Unknown config subcommand: {args[0]}", "lsg config [edit|path]")


# ---------------------------------------------------------------------------
# Doctor
# ---------------------------------------------------------------------------

def _doctor_pass(msg: str):
    print(f"  {C_GREEN}✓{C_RESET}  {msg}")

def _doctor_fail(msg: str, hint: str = ""):
    print(f"  {C_RED}✗{C_RESET}  {msg}")
    if hint:
        print(f"      {C_DIM}→ {hint}{C_RESET}")

def _doctor_warn(msg: str, hint: str = ""):
    print(f"  {C_YELLOW}⚠{C_RESET}  {msg}")
    if hint:
        print(f"      {C_DIM}→ {hint}{C_RESET}")


def cmd_doctor():
    """Check system health."""
    from .providers import get_provider_info
    from .targets import get_targets
    from .utils import check_accessibility_trusted

    ok = True
    print()
    print(f"  {C_BOLD}Core{C_RESET}")
    print()

    v = sys.version_info
    if v >= (3, 11):
        _doctor_pass(f"Python {v.major}.{v.minor}.{v.micro}")
    else:
        _doctor_fail(f"Python {v.major}.{v.minor}.{v.micro}", "Python 3.11+ required")
        ok = False

    missing = []
    for pkg in ["requests", "pynput", "ApplicationServices", "AppKit"]:
        try:
            __import__(pkg)
        except ImportError:
            missing.append(pkg)
    if missing:
        _doctor_fail(f"Missing packages: {', '.join(missing)}", "Run: pip install -e .")
        ok = False
    else:
        _doctor_pass("Python packages")

    if check_accessibility_trusted():
        _doctor_pass("Accessibility permission")
    else:
        _doctor_fail("Accessibility permission not granted",
                     "System Settings → Privacy & Security → Accessibility")
        ok = False

    print()
    print(f"  {C_BOLD}Provider{C_RESET}")
    print()

    config = get_config()
    info = get_provider_info(config.provider.name)
    settings = getattr(config, config.provider.name, None)
    name = info.name if info else config.provider.name
    if settings is not None and settings.api_key.strip():
        _doctor_pass(f"{name} API key set ({settings.model})")
    else:
        _doctor_fail(f"{name} API key missing", f"Set api_key under [{config.provider.name}] in {CONFIG_FILE}")
        ok = False

    print()
    print(f"  {C_BOLD}Targets{C_RESET}")
    print()

    try:
        from AppKit import NSRunningApplication
    except ImportError:
        NSRunningApplication = None
    for target in get_targets(config):
        if NSRunningApplication is None:
            _doctor_warn(f"{target.name}: cannot check (AppKit unavailable)")
            continue
        running = any(
            len(NSRunningApplication.runningApplicationsWithBundleIdentifier_(b)) > 0
            for b in target.bundle_ids
        )
        if running:
            _doctor_pass(f"{target.name} running")
        else:
            _doctor_warn(f"{target.name} not running", f"bundle ids: {', '.join(target.bundle_ids)}")

    running, pid = _is_running()
    print()
    if running:
        _doctor_pass(f"Service running (pid {pid or 'unknown'})")
    else:
        _doctor_warn("Service not running", "Run: lsg start")
    print()
    if not ok:
        sys.exit(1)


def cmd_version():
    """Show version."""
    from . import __version__
    print(f"Language Suggestion {__version__}")


def _print_help():
    """Print grouped help listing."""
    groups = [
        ("Service", [
            ("lsg start",              "Launch the service"),
            ("lsg stop",               "Stop the service"),
            ("lsg restart",            "Stop + start"),
            ("lsg log",                "Tail service log"),
        ]),
        ("Text", [
            ("lsg fix \"text\"",         "Fix grammar and spelling"),
            ("lsg translate [--to L]", "Translate (default target language from config)"),
            ("lsg prompt <name>",      "Run a custom prompt"),
            ("lsg prompts",            "List, add, delete or restore custom prompts"),
        ]),
        ("Accessibility", [
            ("lsg scan <target>",      "Dump the element tree of teams or notes"),
            ("lsg locate <target>",    "Show the compose box each strategy finds"),
            ("lsg placement [clear]",  "Show or clear saved icon positions"),
        ]),
        ("Settings", [
            ("lsg provider [name]",    "Show or switch LLM provider"),
            ("lsg config [edit|path]", "Show config, open it, or print its path"),
            ("lsg doctor",             "Check system health"),
        ]),
    ]
    width = max(len(c) for _, cmds in groups for c, _ in cmds)
    for group_name, cmds in groups:
        print(f"  {C_BOLD}{group_name}{C_RESET}")
        for cmd, desc in cmds:
            print(f"    {C_CYAN}{cmd:<{width}}{C_RESET}  {C_DIM}{desc}{C_RESET}")
        print()


def cmd_default():
    """Default: status + help."""
    print()
    print(f"  {C_BOLD}╭────────────────────────────────────────╮{C_RESET}")
    print(f"  {C_BOLD}│{C_RESET}  {C_CYAN}Language Suggestion{C_RESET} · CLI Controller  {C_BOLD}│{C_RESET}")
    print(f"  {C_BOLD}╰────────────────────────────────────────╯{C_RESET}")
    print()
    cmd_status()
    print()
    _print_help()


COMMANDS = {
    "status": lambda rest: cmd_status(),
    "start": lambda rest: cmd_start(),
    "stop": lambda rest: cmd_stop(),
    "restart": lambda rest: cmd_restart(),
    "log": lambda rest: cmd_log(),
    "scan": cmd_scan,
    "locate": cmd_locate,
    "fix": cmd_fix,
    "translate": cmd_translate,
    "prompt": cmd_prompt,
    "prompts": cmd_prompts,
    "placement": cmd_placement,
    "provider": cmd_provider,
    "config": cmd_config,
    "doctor": lambda rest: cmd_doctor(),
    "version": lambda rest: cmd_version(),
}


def cli_main():
    """Entry point for the lsg CLI."""
    args = sys.argv[1:]

    if not args:
        cmd_default()
        return

    cmd = args[0]
    rest = args[1:]

    if cmd == "_run":
        from .app import service_main
        service_main()
    elif cmd in ("-h", "--help", "help"):
        _print_help()
    elif cmd in COMMANDS:
        COMMANDS[cmd](rest)
    else:
        print(f"{C_RED}Unknown command: {cmd}{C_RESET}", file=sys.stderr)
        print(f"{C_DIM}Run 'lsg' for usage.{C_RESET}", file=sys.stderr)
        sys.exit(1)
