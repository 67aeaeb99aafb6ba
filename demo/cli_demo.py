#!/usr/bin/env python3
"""
Interactive CLI demo for Style Studio.

Runs the studio against in-process demo backends so the workflow (analysis,
supersession, back/forward replay, history, bookmarks, sign-out) can be
explored from a terminal.
"""
import asyncio
import sys
import random
import uuid
from datetime import datetime, timezone

# Imports assume PYTHONPATH=src is set (e.g., PYTHONPATH=src python demo/cli_demo.py)
from style_studio.app import StudioApp
from style_studio.backends.auth_backend import SessionCheck
from style_studio.config_loader import load_config_from_env
from style_studio.models import SourceKind
from style_studio.utils.logging_setup import configure_logging


STYLES = ["Minimal", "Street", "Classic", "Workwear", "Resort"]


class DemoAnalysisBackend:
    """Answers after a random delay, so quick successive requests overlap."""

    async def analyze_by_image(self, image):
        await asyncio.sleep(random.uniform(0.5, 2.0))
        return self._payload("upload")

    async def analyze_by_catalog_item(self, item_id):
        await asyncio.sleep(random.uniform(0.5, 2.0))
        if item_id.startswith("fail"):
            return None
        return self._payload(item_id)

    @staticmethod
    def _payload(seed):
        style = random.choice(STYLES)
        return {
            "style": style,
            "internalProducts": [{"productId": f"{seed}-{n}", "name": f"{style} piece {n}"} for n in range(1, 4)],
            "naverProducts": [],
        }


class DemoBookmarkBackend:
    def __init__(self):
        self._saved = {}

    async def fetch_bookmarks(self, token):
        await asyncio.sleep(0.1)
        return list(self._saved.values())

    async def add_bookmark(self, token, product_id, style_name=None):
        await asyncio.sleep(0.1)
        self._saved[product_id] = {
            "productId": product_id,
            "createdAt": datetime.now(timezone.utc).isoformat(),
            "savedStyleName": style_name,
        }
        return True

    async def remove_bookmarks(self, token, product_ids):
        await asyncio.sleep(0.1)
        for product_id in product_ids:
            self._saved.pop(product_id, None)
        return True


class DemoAuthBackend:
    def __init__(self):
        self.revoked = set()

    async def validate_session(self, token):
        return SessionCheck.UNAUTHORIZED if token in self.revoked else SessionCheck.AUTHORIZED

    async def logout(self, session):
        return True


def print_banner():
    """Print welcome banner."""
    print("\n" + "=" * 60)
    print("  Style Studio - Interactive CLI Demo")
    print("=" * 60)
    print("\nCommands:")
    print("  login <name>         sign in (syncs bookmarks)")
    print("  logout | verify      end or check the session")
    print("  revoke               make the backend reject the session")
    print("  analyze <id> [label] analyze a catalog item ('fail...' ids fail)")
    print("  upload <path>        analyze a JPEG/PNG file")
    print("  cancel | idle        stop waiting / back to discovery")
    print("  back | forward       navigate")
    print("  history | open <n>   list or reopen recent analyses")
    print("  save <id> | saved    toggle / list bookmarks")
    print("  clear [ids...]       delete bookmarks")
    print("  status | quit")
    print("-" * 60 + "\n")


def print_status(app):
    """Print formatted workflow state."""
    state = app.workflow
    print(f"📍 Phase: {state.phase.value}  URL: {app.navigation.current.url}")
    if state.source_label:
        print(f"🏷️  Subject: {state.source_label}")
    if state.result is not None:
        payload = state.result.payload
        print(f"👗 Style: {payload.get('style', '?') if isinstance(payload, dict) else payload}")
    if state.error:
        print(f"❌ {state.error}")
    session = app.session
    print(f"👤 {session.display_name if session else 'signed out'}")


def print_notices(app, last_seen):
    """Print notices newer than last_seen. Returns the newest one."""
    notices = app.notifier.notices
    start = 0
    for n, notice in enumerate(notices):
        if notice is last_seen:
            start = n + 1
    for notice in notices[start:]:
        print(f"🔔 [{notice.level.value}] {notice.message}")
    return notices[-1] if notices else last_seen


def print_history(app):
    if not app.history:
        print("No recent analyses.")
    for n, entry in enumerate(app.history, start=1):
        marker = "*" if app.active_history is entry else " "
        print(f"{marker}{n}. {entry.source_label} ({entry.workflow_type.value}, {entry.timestamp:%H:%M:%S})")


async def handle_command(app, auth_backend, command, args):
    """Run one command. Returns False to quit."""
    if command in ("quit", "exit", "q"):
        return False
    if command == "login":
        name = args[0] if args else "guest"
        await app.sign_in(uuid.uuid4().hex, name.lower(), name)
    elif command == "logout":
        await app.logout()
    elif command == "verify":
        print(f"Session valid: {await app.verify_session()}")
    elif command == "revoke" and app.session:
        auth_backend.revoked.add(app.session.token)
    elif command == "analyze" and args:
        app.start_analysis(SourceKind.CATALOG_ITEM, args[0], " ".join(args[1:]) or args[0])
    elif command == "upload" and args:
        await app.start_upload_analysis(args[0], args[0])
    elif command == "cancel":
        app.cancel_analysis()
    elif command == "idle":
        app.return_to_idle()
    elif command == "back":
        app.back()
    elif command == "forward":
        app.forward()
    elif command == "history":
        print_history(app)
    elif command == "open" and args and args[0].isdigit():
        index = int(args[0]) - 1
        if 0 <= index < len(app.history):
            app.activate_history_entry(app.history[index].id)
    elif command == "save" and args:
        state = app.workflow
        style = state.result.payload.get("style") if state.result and isinstance(state.result.payload, dict) else None
        outcome = await app.toggle_bookmark(args[0], style_name=style)
        print(f"Bookmark {args[0]}: {outcome.value}")
    elif command == "saved":
        for item in app.bookmarks:
            print(f"  {item.product_id}  {item.style_name or ''}")
    elif command == "clear":
        await app.clear_bookmarks(args or None)
    elif command != "status":
        print("Unknown command.")
    print_status(app)
    return True


async def run():
    config = load_config_from_env()
    configure_logging(config)

    auth_backend = DemoAuthBackend()
    app = StudioApp(config, DemoAnalysisBackend(), DemoBookmarkBackend(), auth_backend)
    app.initialize()
    app.subscribe(lambda state: print(f"\n⚡ {state.phase.value}" + (f": {state.source_label}" if state.source_label else "")))

    loop = asyncio.get_running_loop()
    last_notice = None
    try:
        while True:
            try:
                line = (await loop.run_in_executor(None, input, "studio> ")).strip()
            except EOFError:
                break
            if not line:
                continue
            command, *args = line.split()
            if not await handle_command(app, auth_backend, command.lower(), args):
                break
            last_notice = print_notices(app, last_notice)
            print("-" * 60)
    finally:
        app.close()


def main():
    """Main CLI entry point."""
    print_banner()
    try:
        asyncio.run(run())
    except KeyboardInterrupt:
        print("\n\n👋 Interrupted. Goodbye!\n")
        return 1
    print("\n👋 Thanks for using Style Studio! Goodbye!\n")
    return 0


if __name__ == "__main__":
    sys.exit(main())
