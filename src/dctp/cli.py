from __future__ import annotations

import argparse
import json
import logging
import sys
from dataclasses import replace
from typing import Any, Callable, Dict, List

from .client import FileTransferClient
from .codec import Verb
from .config import ClientConfig
from .errors import FileTransferError

Operation = Callable[[FileTransferClient, argparse.Namespace], Dict[str, Any]]


def op_get(client: FileTransferClient, args: argparse.Namespace) -> Dict[str, Any]:
    target = client.fetch(args.file_name, args.save_dir)
    return {"saved": str(target)}


def op_delete(client: FileTransferClient, args: argparse.Namespace) -> Dict[str, Any]:
    client.delete(args.file_name)
    return {"deleted": args.file_name}


def op_list(client: FileTransferClient, args: argparse.Namespace) -> Dict[str, Any]:
    return {"files": client.list_all()}


def op_list_owned(client: FileTransferClient, args: argparse.Namespace) -> Dict[str, Any]:
    return {"files": client.list_owned()}


def op_create(client: FileTransferClient, args: argparse.Namespace) -> Dict[str, Any]:
    metrics = client.create(args.file_name, args.local_path)
    return {"bytes": metrics.bytes_copied, "chunks": metrics.reads, "seconds": metrics.duration_s}


def op_update(client: FileTransferClient, args: argparse.Namespace) -> Dict[str, Any]:
    metrics = client.update(args.file_name, args.local_path)
    return {"bytes": metrics.bytes_copied, "chunks": metrics.reads, "seconds": metrics.duration_s}


def op_help(client: FileTransferClient, args: argparse.Namespace) -> Dict[str, Any]:
    return {"usage": client.help()}


def run_batch(args: argparse.Namespace, op: Operation) -> int:
    """Run one operation against every requested host, one after another.

    A failing host is reported and the batch moves on to the next one.
    """
    base = ClientConfig.from_env()
    overrides: Dict[str, Any] = {}
    if args.port is not None:
        overrides["port"] = args.port
    if args.chunk_size is not None:
        overrides["chunk_size"] = args.chunk_size
    if args.connect_timeout is not None:
        overrides["connect_timeout"] = args.connect_timeout
    base = replace(base, **overrides)

    hosts: List[str] = args.host or [base.host]
    failures = 0
    for host in hosts:
        client = FileTransferClient.from_config(base.with_host(host))
        try:
            result = op(client, args)
        except (FileTransferError, OSError) as exc:
            failures += 1
            print(f"error: {client.endpoint}: {exc}", file=sys.stderr)
            continue

        payload = {"host": str(client.endpoint), "verb": args.verb, **result}
        print(json.dumps(payload, indent=2) if args.json else _format_plain(payload))

    return 1 if failures else 0


def _format_plain(payload: Dict[str, Any]) -> str:
    for key in ("files", "usage"):
        if key in payload:
            return "\n".join(payload[key])
    return " ".join(f"{k}={v}" for k, v in payload.items())


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="dctp", description="Dual-channel file transfer client.")
    p.add_argument("--log-level", default="WARNING", choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"])
    sub = p.add_subparsers(dest="cmd", required=True)

    def add_common(x: argparse.ArgumentParser) -> None:
        x.add_argument(
            "--host",
            action="append",
            help="server address; repeat to run the same operation against several servers",
        )
        x.add_argument("--port", type=int, default=None, help="command port")
        x.add_argument("--chunk-size", type=int, default=None)
        x.add_argument("--connect-timeout", type=float, default=None)
        x.add_argument("--json", action="store_true")

    def add_verb(name: str, verb: Verb, func: Operation) -> argparse.ArgumentParser:
        x = sub.add_parser(name, help=verb.usage)
        add_common(x)
        x.set_defaults(func=func, verb=verb.value)
        return x

    get = add_verb("get", Verb.GET, op_get)
    get.add_argument("file_name")
    get.add_argument("--save-dir", default=".")

    delete = add_verb("delete", Verb.DELETE, op_delete)
    delete.add_argument("file_name")

    add_verb("list", Verb.LIST, op_list)
    add_verb("list-owned", Verb.LIST_OWNED, op_list_owned)

    create = add_verb("create", Verb.CREATE, op_create)
    create.add_argument("file_name")
    create.add_argument("local_path")

    update = add_verb("update", Verb.UPDATE, op_update)
    update.add_argument("file_name")
    update.add_argument("local_path")

    add_verb("help", Verb.HELP, op_help)

    return p


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(level=getattr(logging, args.log_level), format="%(asctime)s [%(levelname)s] %(message)s")
    try:
        return run_batch(args, args.func)
    except ValueError as exc:
        parser.error(str(exc))
    return 2


if __name__ == "__main__":
    raise SystemExit(main())
