from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import List

import requests

from .app import ChatTranslator
from .config import PreferenceStore
from .control import RELOAD_SETTINGS, ControlChannel, ControlServer
from .document import SoupDocument
from .exceptions import ConfigurationError
from .settings import Settings
from .translators.base import get_translator


logger = logging.getLogger("chat_translate.cli")


def output_path(args: argparse.Namespace) -> Path:
    page = Path(args.page)
    return Path(args.out) if args.out else page.with_name(f"{page.stem}_translated{page.suffix}")


def open_store(args: argparse.Namespace, settings: Settings) -> PreferenceStore:
    path = Path(args.preferences) if args.preferences else settings.preferences_path
    return PreferenceStore(path)


async def run_translate(args: argparse.Namespace, settings: Settings) -> int:
    if args.language:
        store = PreferenceStore()
        try:
            store.set(targetLanguage=args.language, enabled=True)
        except ConfigurationError as e:
            print(f"Invalid language: {e.message}", file=sys.stderr)
            return 1
    else:
        store = open_store(args, settings)

    document = SoupDocument.from_file(args.page)
    app = ChatTranslator(document, store, get_translator(settings.engine, settings), settings)
    try:
        submitted = await app.translate_once()
    finally:
        await app.close()

    out = output_path(args)
    document.save(out)
    logger.info(
        f"Processed {submitted} candidate messages: {app.pipeline.provider_calls} provider calls, "
        f"{app.cache.hits} cache hits -> {out}"
    )
    return 0


async def run_serve(args: argparse.Namespace, settings: Settings) -> int:
    store = open_store(args, settings)
    document = SoupDocument.from_file(args.page)
    app = ChatTranslator(document, store, get_translator(settings.engine, settings), settings)

    channel = ControlChannel()
    channel.register(RELOAD_SETTINGS, app.reload_settings)
    server = ControlServer(channel, settings.control_host, settings.control_port)

    await app.start()
    await server.start()
    try:
        await asyncio.Event().wait()
    finally:
        await server.stop()
        await app.close()
        out = output_path(args)
        document.save(out)
        logger.info(f"Wrote {out}")
    return 0


def cmd_translate(args: argparse.Namespace, settings: Settings) -> int:
    settings = Settings.immediate(engine=settings.engine, provider_endpoint=settings.provider_endpoint,
                                  provider_timeout=settings.provider_timeout)
    return asyncio.run(run_translate(args, settings))


def cmd_serve(args: argparse.Namespace, settings: Settings) -> int:
    try:
        return asyncio.run(run_serve(args, settings))
    except KeyboardInterrupt:
        return 0


def cmd_prefs_show(args: argparse.Namespace, settings: Settings) -> int:
    store = open_store(args, settings)
    print(json.dumps(store.get().to_storage(), indent=2))
    return 0


def cmd_prefs_set(args: argparse.Namespace, settings: Settings) -> int:
    values = {}
    if args.language is not None:
        values["targetLanguage"] = args.language
    if args.enabled is not None:
        values["enabled"] = args.enabled
    if not values:
        logger.warning("Nothing to set; pass --language, --enable or --disable")
        return 1

    store = open_store(args, settings)
    try:
        updated = store.set(values)
    except ConfigurationError as e:
        print(f"Failed to save preferences: {e.message}", file=sys.stderr)
        return 1
    print(json.dumps(updated.to_storage(), indent=2))
    return 0


def cmd_reload(args: argparse.Namespace, settings: Settings) -> int:
    if args.host:
        settings.control_host = args.host
    if args.port:
        settings.control_port = args.port
    url = settings.control_url
    try:
        resp = requests.post(url, json={"action": RELOAD_SETTINGS}, timeout=5)
    except requests.RequestException as e:
        logger.error(f"Could not reach control server at {url}: {e}")
        return 1
    if resp.status_code != 200 or not resp.json().get("success"):
        logger.error(f"Reload failed: {resp.status_code} {resp.text}")
        return 1
    logger.info("Settings reloaded")
    return 0


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="chat-translate", description="Translate live chat messages in place")
    sub = p.add_subparsers(dest="cmd", required=True)

    p.add_argument("--engine", default=None, help="Translation engine (default: google)")
    p.add_argument("--preferences", default=None, help="Preference file (.json, .yaml or .toml)")
    p.add_argument("--log-level", default=None, help="Logging level (default: INFO)")

    t = sub.add_parser("translate", help="Translate the chat messages of a saved page once")
    t.add_argument("page", help="HTML file")
    t.add_argument("-o", "--out", help="Output file (default: <page>_translated.html)")
    t.add_argument("--language", help="Target language, overriding saved preferences")
    t.set_defaults(func=cmd_translate)

    s = sub.add_parser("serve", help="Keep a page translated and accept control commands")
    s.add_argument("page", help="HTML file")
    s.add_argument("-o", "--out", help="Output file written on exit")
    s.set_defaults(func=cmd_serve)

    prefs = sub.add_parser("prefs", help="Show or change preferences")
    prefs_sub = prefs.add_subparsers(dest="prefs_cmd", required=True)
    show = prefs_sub.add_parser("show", help="Print current preferences")
    show.set_defaults(func=cmd_prefs_show)
    setp = prefs_sub.add_parser("set", help="Change preferences")
    setp.add_argument("--language", help="Target language code")
    toggle = setp.add_mutually_exclusive_group()
    toggle.add_argument("--enable", dest="enabled", action="store_true", default=None)
    toggle.add_argument("--disable", dest="enabled", action="store_false")
    setp.set_defaults(func=cmd_prefs_set, enabled=None)

    r = sub.add_parser("reload", help="Ask a running server to reload its settings")
    r.add_argument("--host", help="Control server host")
    r.add_argument("--port", type=int, help="Control server port")
    r.set_defaults(func=cmd_reload)

    return p


def main(argv: List[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    settings = Settings()
    if args.engine:
        settings.engine = args.engine
    if args.log_level:
        settings.log_level = args.log_level

    logging.basicConfig(level=settings.log_level.upper(), format="%(asctime)s - %(levelname)s - %(message)s")
    return args.func(args, settings)


if __name__ == "__main__":
    raise SystemExit(main())
