"""Entry point: python -m convstore <command>

- derive <owner>                       Print the owner's storage address and bump
- create <owner> --description D ...   Add a conversation to the owner's store
- show <owner>                         List the owner's slots
- export <owner> <dest>                Write occupied slots as Markdown
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from convstore.address import derive, format_address, parse_address
from convstore.config import ConvStoreConfig, load_config
from convstore.errors import ProgramError
from convstore.export import export_store, format_timestamp
from convstore.instruction import CreateConversation, encode_instruction
from convstore.ledger import Ledger


def _setup_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="convstore", description="Address-keyed conversation store")
    parser.add_argument("--config", type=Path, default=None, help="path to convstore.toml")
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("derive", help="print the storage address for an owner")
    p.add_argument("owner", type=parse_address)

    p = sub.add_parser("create", help="create a conversation")
    p.add_argument("owner", type=parse_address)
    p.add_argument("--description", required=True)
    p.add_argument("--summary", action="append", default=[], help="content summary line (repeatable)")

    p = sub.add_parser("show", help="list an owner's conversation slots")
    p.add_argument("owner", type=parse_address)

    p = sub.add_parser("export", help="export an owner's conversations as Markdown")
    p.add_argument("owner", type=parse_address)
    p.add_argument("dest", type=Path)
    return parser


def _cmd_derive(config: ConvStoreConfig, args: argparse.Namespace) -> None:
    address, bump = derive(args.owner, config.program.id)
    print(f"{format_address(address)} bump={bump}")


def _cmd_create(config: ConvStoreConfig, args: argparse.Namespace) -> None:
    address, _ = derive(args.owner, config.program.id)
    payload = encode_instruction(
        CreateConversation(owner=args.owner, description=args.description, content_summary=args.summary)
    )
    ledger = Ledger(config.data_dir)
    index = ledger.invoke(config.program.id, address, payload, capacity=config.store.capacity)
    print(f"Created conversation in slot {index}")


def _cmd_show(config: ConvStoreConfig, args: argparse.Namespace) -> None:
    address, _ = derive(args.owner, config.program.id)
    store = Ledger(config.data_dir).load_store(address, config.store.capacity)
    print(f"{format_address(address)}: {store.occupied_count}/{store.capacity} slots occupied")
    for index, slot in enumerate(store.slots):
        if slot is None:
            print(f"  [{index}] (empty)")
            continue
        print(
            f"  [{index}] {slot.description} "
            f"({len(slot.messages)} messages, created {format_timestamp(slot.created_at)})"
        )


def _cmd_export(config: ConvStoreConfig, args: argparse.Namespace) -> None:
    address, _ = derive(args.owner, config.program.id)
    store = Ledger(config.data_dir).load_store(address, config.store.capacity)
    for path in export_store(store, args.dest):
        print(path)


_COMMANDS = {
    "derive": _cmd_derive,
    "create": _cmd_create,
    "show": _cmd_show,
    "export": _cmd_export,
}


def main(argv: list[str] | None = None) -> None:
    args = _build_parser().parse_args(argv)
    try:
        config = load_config(args.config)
    except ValueError as exc:
        print(f"error [invalid_config]: {exc}", file=sys.stderr)
        sys.exit(1)
    _setup_logging(config.log_level)

    try:
        _COMMANDS[args.command](config, args)
    except ProgramError as exc:
        print(f"error [{exc.code}]: {exc}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
