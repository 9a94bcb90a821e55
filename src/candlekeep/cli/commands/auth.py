"""``ck auth`` — login, logout, whoami."""

from __future__ import annotations

import argparse
import asyncio

from candlekeep.cli import exit_codes
from candlekeep.cli.commands import client_for, open_client
from candlekeep.cli.console import emit_json, escape, print_success, print_warning
from candlekeep.cli.prompts import ConsoleLoginInteraction
from candlekeep.cli.render import render_whoami
from candlekeep.core.login_service import LoginService
from candlekeep.infra.callback_listener import CallbackListener
from candlekeep.infra.config_store import ConfigStore


def build_login_service(
    store: ConfigStore,
    *,
    open_browser: bool = True,
    callback_timeout: float | None = None,
) -> LoginService:
    """Wire the login service to the real listener, API and terminal."""
    return LoginService(
        store,
        listener_factory=CallbackListener.bind,
        api_factory=lambda api_key: client_for(store, api_key),
        interaction=ConsoleLoginInteraction(open_browser=open_browser),
        callback_timeout=callback_timeout,
    )


def handle_login(args: argparse.Namespace, store: ConfigStore) -> int:
    service = build_login_service(
        store,
        open_browser=not args.no_browser,
        callback_timeout=args.timeout,
    )
    outcome = asyncio.run(service.login())

    if outcome.already_authenticated or outcome.user is None:
        if args.json:
            emit_json({"status": "already_authenticated"})
        else:
            print_warning("Already logged in. Use 'ck auth logout' first to re-authenticate.")
        return exit_codes.SUCCESS

    if args.json:
        emit_json({"status": "logged_in", "source": outcome.source, "user": outcome.user.to_dict()})
    else:
        print_success(
            f"Logged in as [cyan]{escape(outcome.user.email)}[/cyan] ({escape(outcome.user.tier)})"
        )
    return exit_codes.SUCCESS


def handle_logout(args: argparse.Namespace, store: ConfigStore) -> int:
    if not store.is_authenticated:
        if args.json:
            emit_json({"status": "not_logged_in"})
        else:
            print_warning("Not currently logged in.")
        return exit_codes.SUCCESS

    store.clear_api_key()
    if args.json:
        emit_json({"status": "logged_out"})
    else:
        print_success("Logged out successfully.")
    return exit_codes.SUCCESS


def handle_whoami(args: argparse.Namespace, store: ConfigStore) -> int:
    async def _run() -> None:
        async with open_client(store) as api:
            user = await api.whoami()
        if args.json:
            emit_json(user.to_dict())
        else:
            render_whoami(user)

    asyncio.run(_run())
    return exit_codes.SUCCESS
