"""``ck sources`` — saved web sources."""

from __future__ import annotations

import argparse
import asyncio

from candlekeep.cli import exit_codes
from candlekeep.cli.commands import open_client, require_api_key
from candlekeep.cli.console import console, emit_json
from candlekeep.cli.prompts import confirm_deletion
from candlekeep.cli.render import render_deleted, render_sources
from candlekeep.core.range_selector import parse_ids
from candlekeep.exceptions import InvalidInputError
from candlekeep.infra.config_store import ConfigStore

DEFAULT_LIMIT: int = 50


def handle_list(args: argparse.Namespace, store: ConfigStore) -> int:
    limit = DEFAULT_LIMIT if args.limit is None else args.limit
    if limit < 1:
        raise InvalidInputError("--limit must be a positive number.")

    async def _run() -> None:
        async with open_client(store) as api:
            body = await api.list_sources(limit)
        if args.json:
            emit_json(body)
        else:
            render_sources(body)

    asyncio.run(_run())
    return exit_codes.SUCCESS


def handle_delete(args: argparse.Namespace, store: ConfigStore) -> int:
    ids = parse_ids(args.ids)
    require_api_key(store)  # fail before prompting
    if not args.yes and not confirm_deletion("source", ids):
        console.print("[dim]Cancelled.[/dim]")
        return exit_codes.SUCCESS

    async def _run() -> None:
        async with open_client(store) as api:
            body = await api.delete_sources(ids)
        if args.json:
            emit_json(body)
        else:
            render_deleted(body, "source")

    asyncio.run(_run())
    return exit_codes.SUCCESS
