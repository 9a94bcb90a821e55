"""``ck items`` — library items and markdown documents."""

from __future__ import annotations

import argparse
import asyncio
from pathlib import Path

from candlekeep.cli import exit_codes
from candlekeep.cli.commands import open_client, require_api_key
from candlekeep.cli.console import console, emit_json, emit_raw, escape, print_success
from candlekeep.cli.prompts import confirm_deletion
from candlekeep.cli.render import (
    render_content_updated,
    render_created,
    render_deleted,
    render_enriched,
    render_item_content,
    render_items,
    render_toc,
    render_upload_outcome,
)
from candlekeep.core.enrichment import validate_enrichment
from candlekeep.core.range_selector import parse_ids, parse_range_selectors
from candlekeep.core.upload_service import UploadService
from candlekeep.infra.config_store import ConfigStore
from candlekeep.infra.local_files import read_text_content, read_upload_payload
from candlekeep.infra.storage_transport import HttpStorageTransport
from candlekeep.utils.formatting import format_size


def handle_list(args: argparse.Namespace, store: ConfigStore) -> int:
    async def _run() -> None:
        async with open_client(store) as api:
            body = await api.list_items()
        if args.json:
            emit_json(body)
        else:
            render_items(body)

    asyncio.run(_run())
    return exit_codes.SUCCESS


def handle_toc(args: argparse.Namespace, store: ConfigStore) -> int:
    ids = parse_ids(args.ids)

    async def _run() -> None:
        async with open_client(store) as api:
            body = await api.batch_toc(ids)
        if args.json:
            emit_json({"items": body.get("items", []), "notFound": body.get("notFound")})
        else:
            render_toc(body)

    asyncio.run(_run())
    return exit_codes.SUCCESS


def handle_read(args: argparse.Namespace, store: ConfigStore) -> int:
    # Selector errors surface before any request is made.
    requests = parse_range_selectors(args.ids)

    async def _run() -> None:
        async with open_client(store) as api:
            body = await api.batch_read(requests)
        if args.json:
            emit_json({"items": body.get("items", []), "notFound": body.get("notFound")})
        else:
            render_item_content(body)

    asyncio.run(_run())
    return exit_codes.SUCCESS


def handle_add(args: argparse.Namespace, store: ConfigStore) -> int:
    from candlekeep.cli.progress import RichUploadProgress

    require_api_key(store)
    request, data = read_upload_payload(Path(args.file))
    console.print(f"[cyan]Uploading: {escape(request.filename)}[/cyan]")
    console.print(f"[dim]Size: {format_size(request.size)}[/dim]")

    async def _run() -> int:
        async with open_client(store) as api:
            service = UploadService(api, HttpStorageTransport(filename=request.filename))
            with RichUploadProgress(request.filename) as progress:
                outcome = await service.upload(request, data, progress_callback=progress)
        if args.json:
            emit_json({
                "itemId": outcome.item_id,
                "title": outcome.title,
                "jobId": outcome.job_id,
                "jobStatus": outcome.job_status,
            })
        else:
            render_upload_outcome(outcome)
        return exit_codes.SUCCESS

    return asyncio.run(_run())


def handle_remove(args: argparse.Namespace, store: ConfigStore) -> int:
    ids = parse_ids(args.ids)
    require_api_key(store)  # fail before prompting
    if not args.yes and not confirm_deletion("item", ids):
        console.print("[dim]Cancelled.[/dim]")
        return exit_codes.SUCCESS

    async def _run() -> None:
        async with open_client(store) as api:
            body = await api.delete_items(ids)
        if args.json:
            emit_json(body)
        else:
            render_deleted(body, "item")

    asyncio.run(_run())
    return exit_codes.SUCCESS


def handle_enrich(args: argparse.Namespace, store: ConfigStore) -> int:
    toc = validate_enrichment(
        title=args.title,
        author=args.author,
        description=args.description,
        confidence=args.confidence,
        toc=args.toc,
    )

    async def _run() -> None:
        async with open_client(store) as api:
            body = await api.enrich_item(
                args.id,
                title=args.title,
                author=args.author,
                description=args.description,
                confidence=args.confidence,
                toc=toc,
            )
        if args.json:
            emit_json(body)
        else:
            render_enriched(body, len(toc) if toc is not None else None)

    asyncio.run(_run())
    return exit_codes.SUCCESS


def handle_flag(args: argparse.Namespace, store: ConfigStore) -> int:
    async def _run() -> None:
        async with open_client(store) as api:
            body = await api.flag_item(args.id)
        if args.json:
            emit_json(body)
        else:
            item = body.get("item") or {}
            print_success(
                f"Flagged for enrichment: {escape(item.get('title', ''))} "
                f"(ID: [cyan]{escape(item.get('id', args.id))}[/cyan])"
            )

    asyncio.run(_run())
    return exit_codes.SUCCESS


def handle_create(args: argparse.Namespace, store: ConfigStore) -> int:
    async def _run() -> None:
        async with open_client(store) as api:
            body = await api.create_markdown(
                args.title, description=args.description, content=args.content,
            )
        if args.json:
            emit_json(body)
        else:
            render_created(body)

    asyncio.run(_run())
    return exit_codes.SUCCESS


def handle_get(args: argparse.Namespace, store: ConfigStore) -> int:
    async def _run() -> None:
        async with open_client(store) as api:
            body = await api.get_content(args.id)
        if args.json:
            emit_json(body)
        else:
            emit_raw(str(body.get("content", "")))

    asyncio.run(_run())
    return exit_codes.SUCCESS


def handle_put(args: argparse.Namespace, store: ConfigStore) -> int:
    content = read_text_content(Path(args.file) if args.file else None)

    async def _run() -> None:
        async with open_client(store) as api:
            body = await api.put_content(args.id, content)
        if args.json:
            emit_json(body)
        else:
            render_content_updated(body)

    asyncio.run(_run())
    return exit_codes.SUCCESS
