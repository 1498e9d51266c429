from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys

from .catalog import CatalogClient
from .config import AppConfig, config_path, load_config
from .errors import CatalogUnavailable
from .models import SavedRecord, build_key
from .service import SavedItemsService, build_service


def main() -> None:
    parser = argparse.ArgumentParser(prog="saved-items", description="Saved item sync")
    parser.add_argument("--config", help="Path to saved-items.toml")
    parser.add_argument("--verbose", "-v", action="store_true", help="Log at debug level")
    sub = parser.add_subparsers(dest="command", required=True)

    list_cmd = sub.add_parser("list", help="Load and print the saved list")
    list_cmd.add_argument("--json", action="store_true", help="Print records as JSON")

    toggle_cmd = sub.add_parser("toggle", help="Save or unsave an item")
    toggle_cmd.add_argument("region")
    toggle_cmd.add_argument("item_id")

    sub.add_parser("migrate", help="Run the legacy saved-items migration")
    sub.add_parser("keys", help="Print the locally stored saved keys")

    args = parser.parse_args()

    config = load_config(config_path(args.config))
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else config.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    service = build_service(config)

    if args.command == "list":
        _print_list(asyncio.run(service.load_saved_items()), service, as_json=args.json)
    elif args.command == "toggle":
        code = asyncio.run(_toggle(service, config, args.region, args.item_id))
        if code:
            sys.exit(code)
    elif args.command == "migrate":
        print(f"Migrated {service.legacy.migrate()} legacy items.")
    elif args.command == "keys":
        for key in service.key_store.read():
            print(key)


async def _toggle(service: SavedItemsService, config: AppConfig, region: str, item_id: str) -> int:
    key = build_key(region, item_id)
    record = service.cache.get(key)
    if record is None:
        try:
            record = await CatalogClient(config).fetch_record(key)
        except CatalogUnavailable as exc:
            if not service.key_store.contains(key):
                print(f"Cannot save {key}: {exc}", file=sys.stderr)
                return 1
            record = SavedRecord(item_id=item_id, region=region, title="")
    result = await service.toggle_saved_synced(record)
    print(f"{key} {'saved' if result.saved else 'unsaved'}")
    return 0


def _print_list(records: list[SavedRecord], service: SavedItemsService, as_json: bool) -> None:
    if as_json:
        print(json.dumps([record.to_dict() for record in records], indent=2, ensure_ascii=False))
    else:
        for record in records:
            published = record.last_source_published_at or "-"
            print(f"{record.key}\t{published}\t[{record.category or ''}] {record.title}")

    summary = service.last_summary
    if summary.errors or summary.failed:
        print("Warnings:", file=sys.stderr)
        for error in summary.errors:
            print(f"- {error}", file=sys.stderr)
        for key in summary.failed:
            print(f"- unresolved {key}", file=sys.stderr)

    print(
        "Saved items: "
        f"records={len(records)} "
        f"local={summary.local_keys} "
        f"server={summary.server_keys} "
        f"imported={summary.imported} "
        f"hydrated={summary.hydrated} "
        f"migrated={summary.migrated}",
        file=sys.stderr,
    )


if __name__ == "__main__":
    main()
