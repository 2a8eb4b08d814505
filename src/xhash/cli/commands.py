"""CLI command registration and handlers for XHash snapshots."""

from __future__ import annotations

import argparse
import json
import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

from xhash.analysis import format_trace_lines, trace_path, verify_tree
from xhash.config import EXPORT_FORMS, AppConfig
from xhash.constructors import xhr
from xhash.contracts.error import BadInputError, Exit, InvariantError, SnapshotIOError
from xhash.core.keys import AS_XHASH, INDEX_KEYS, Ref
from xhash.core.xhash import XHash
from xhash.io.snapshot_header import MAGIC, describe_snapshot

_INT_SEGMENT = re.compile(r"-?[0-9]+")
AUTO_SEGMENT = "[]"
COERCE_SEGMENT = "{}"


@dataclass(frozen=True)
class CLIContext:
    """Runtime hooks supplied by the top-level CLI entrypoint."""

    emit_success: Callable[..., None]
    load: Callable[[str], XHash]
    save: Callable[[XHash, str], Path]
    config: Callable[[], AppConfig]
    logger: logging.Logger
    json_enabled: Callable[[], bool]
    guard: Callable[[Callable[[argparse.Namespace], int]], Callable[[argparse.Namespace], int]]


# --------------------------------------------------------------------
# Argument parsing helpers
# --------------------------------------------------------------------
def parse_segment(raw: str) -> Any:
    """Map one command-line path segment to a key (``[]`` is the auto segment)."""

    if raw == AUTO_SEGMENT:
        return None
    if _INT_SEGMENT.fullmatch(raw):
        return int(raw)
    return raw


def parse_path(raw_segments: List[str]) -> List[Any]:
    segments = list(raw_segments)
    coerce = bool(segments) and segments[-1] == COERCE_SEGMENT
    if coerce:
        segments.pop()
    path = [parse_segment(segment) for segment in segments]
    if coerce:
        path.append(AS_XHASH)
    return path


def parse_value(raw: str) -> Any:
    """Decode ``raw`` as JSON, falling back to the plain string."""

    try:
        return json.loads(raw)
    except json.JSONDecodeError:
        return raw


def _json_default(value: Any) -> Any:
    if isinstance(value, XHash):
        return value.as_pairs(nested=True)
    if isinstance(value, Ref):
        return value.value
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def render_value(value: Any, *, indent: Optional[int] = None) -> str:
    try:
        return json.dumps(value, default=_json_default, indent=indent, ensure_ascii=False)
    except (TypeError, ValueError) as exc:
        raise BadInputError(f"Value cannot be rendered as JSON: {exc}") from exc


def _plain(value: Any) -> Any:
    return json.loads(render_value(value))


# --------------------------------------------------------------------
# Registration
# --------------------------------------------------------------------
def register_subcommands(
    subparsers: argparse._SubParsersAction[argparse.ArgumentParser],
    ctx: CLIContext,
) -> Dict[str, Callable[[argparse.Namespace], int]]:
    """Define CLI subcommands and return their handlers."""

    handlers: Dict[str, Callable[[argparse.Namespace], int]] = {}

    def _register(
        name: str,
        help_text: Optional[str],
        configure: Callable[[argparse.ArgumentParser], Callable[[argparse.Namespace], int]],
    ) -> None:
        parser = subparsers.add_parser(name, help=help_text)
        handler = configure(parser)
        handlers[name] = ctx.guard(handler)

    _register(
        "new",
        "Create a snapshot from a JSON array of items.",
        lambda parser: _configure_new(parser, ctx),
    )
    _register("get", "Fetch the value at a key path.", lambda parser: _configure_get(parser, ctx))
    _register("put", "Store a value at a key path.", lambda parser: _configure_put(parser, ctx))
    _register("del", "Delete the entry at a key path.", lambda parser: _configure_del(parser, ctx))
    _register("keys", "List keys in order.", lambda parser: _configure_keys(parser, ctx))
    _register(
        "export",
        "Export a snapshot as pairs or sequence JSON.",
        lambda parser: _configure_export(parser, ctx),
    )
    _register(
        "renumber",
        "Renumber index keys consecutively.",
        lambda parser: _configure_renumber(parser, ctx),
    )
    _register(
        "reorder",
        "Move keys around a reference key.",
        lambda parser: _configure_reorder(parser, ctx),
    )
    _register(
        "verify-snapshot",
        "Verify ring and index invariants of every container in a snapshot.",
        lambda parser: _configure_verify_snapshot(parser, ctx),
    )
    _register(
        "inspect-snapshot",
        "Show snapshot header metadata and a key preview.",
        lambda parser: _configure_inspect_snapshot(parser, ctx),
    )
    _register(
        "trace-path",
        "Trace how a key path resolves (text/JSON).",
        lambda parser: _configure_trace_path(parser, ctx),
    )
    return handlers


def _add_input(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--in", dest="path", required=True, help="Snapshot file (.json or binary)")


def _add_output(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--out", default=None, help="Write the result here instead of back to --in"
    )


# --------------------------------------------------------------------
# Handlers
# --------------------------------------------------------------------
def _configure_new(
    parser: argparse.ArgumentParser, ctx: CLIContext
) -> Callable[[argparse.Namespace], int]:
    parser.add_argument("--out", required=True, help="Snapshot file to create")
    parser.add_argument(
        "--items",
        default="[]",
        help="JSON array of items: objects add key/value pairs, others get the next index",
    )
    parser.add_argument(
        "--nested", action="store_true", help="Convert objects and arrays into nested containers"
    )

    def handler(args: argparse.Namespace) -> int:
        items = parse_value(args.items)
        container = xhr(items, nested=args.nested)
        target = ctx.save(container, args.out)
        data = {"path": str(target), "size": len(container)}
        ctx.emit_success("new", text=f"Created {target} with {len(container)} keys", data=data)
        return int(Exit.OK)

    return handler


def _configure_get(
    parser: argparse.ArgumentParser, ctx: CLIContext
) -> Callable[[argparse.Namespace], int]:
    _add_input(parser)
    parser.add_argument("segments", nargs="+", metavar="SEGMENT", help="Key path segments")

    def handler(args: argparse.Namespace) -> int:
        container = ctx.load(args.path)
        path = parse_path(args.segments)
        found = container.exists([seg for seg in path if seg is not AS_XHASH])
        value = container.fetch(path)
        data = {"path": args.segments, "found": found, "value": _plain(value)}
        ctx.emit_success("get", text=render_value(value), data=data)
        return int(Exit.OK)

    return handler


def _configure_put(
    parser: argparse.ArgumentParser, ctx: CLIContext
) -> Callable[[argparse.Namespace], int]:
    _add_input(parser)
    _add_output(parser)
    parser.add_argument("--value", required=True, help="Value (JSON, or a plain string)")
    parser.add_argument(
        "--nested", action="store_true", help="Convert objects and arrays into nested containers"
    )
    parser.add_argument(
        "segments",
        nargs="*",
        metavar="SEGMENT",
        help="Key path segments (none or [] stores at the next index)",
    )

    def handler(args: argparse.Namespace) -> int:
        container = ctx.load(args.path)
        path = parse_path(args.segments)
        container.store(path, parse_value(args.value), nested=args.nested)
        target = ctx.save(container, args.out or args.path)
        data = {"path": args.segments, "snapshot": str(target), "size": len(container)}
        ctx.emit_success("put", text="OK", data=data)
        return int(Exit.OK)

    return handler


def _configure_del(
    parser: argparse.ArgumentParser, ctx: CLIContext
) -> Callable[[argparse.Namespace], int]:
    _add_input(parser)
    _add_output(parser)
    parser.add_argument("segments", nargs="+", metavar="SEGMENT", help="Key path segments")

    def handler(args: argparse.Namespace) -> int:
        container = ctx.load(args.path)
        path = parse_path(args.segments)
        deleted = container.exists(path)
        value = container.delete(path)
        if deleted:
            ctx.save(container, args.out or args.path)
        data = {"path": args.segments, "deleted": deleted, "value": _plain(value)}
        ctx.emit_success("del", text="1" if deleted else "0", data=data)
        return int(Exit.OK)

    return handler


def _configure_keys(
    parser: argparse.ArgumentParser, ctx: CLIContext
) -> Callable[[argparse.Namespace], int]:
    _add_input(parser)
    parser.add_argument("--index-only", action="store_true", help="Only integer keys")
    parser.add_argument(
        "--sort", action="store_true", help="Sort integer keys numerically (with --index-only)"
    )
    parser.add_argument(
        "segments", nargs="*", metavar="SEGMENT", help="Path of a nested container to list"
    )

    def handler(args: argparse.Namespace) -> int:
        container = ctx.load(args.path)
        if args.segments:
            container = container.fetch(parse_path(args.segments))
            if not isinstance(container, XHash):
                raise BadInputError(f"Path {args.segments} does not hold a container")
        keys = container.keys(index_only=args.index_only, sort=args.sort)
        text = "\n".join(render_value(key) for key in keys)
        ctx.emit_success("keys", text=text, data={"keys": _plain(keys), "count": len(keys)})
        return int(Exit.OK)

    return handler


def _configure_export(
    parser: argparse.ArgumentParser, ctx: CLIContext
) -> Callable[[argparse.Namespace], int]:
    _add_input(parser)
    parser.add_argument(
        "--form", choices=list(EXPORT_FORMS), default=None, help="Export form (config: export.form)"
    )
    nested = parser.add_mutually_exclusive_group()
    nested.add_argument("--nested", dest="nested", action="store_true", default=None)
    nested.add_argument("--flat", dest="nested", action="store_false")
    parser.add_argument("--out", default=None, help="Write the export to this JSON file")

    def handler(args: argparse.Namespace) -> int:
        policy = ctx.config().export
        form = args.form or policy.form
        expand = policy.nested if args.nested is None else args.nested
        container = ctx.load(args.path)
        if form == "sequence":
            exported = container.as_sequence(nested=expand)
        else:
            exported = container.as_pairs(nested=expand)
        text = render_value(exported, indent=policy.indent or None)
        data: Dict[str, Any] = {"form": form, "nested": expand}
        if args.out:
            out_path = Path(args.out).expanduser()
            out_path.parent.mkdir(parents=True, exist_ok=True)
            out_path.write_text(text + "\n", encoding="utf-8")
            data["out"] = str(out_path)
            ctx.logger.info("Exported %s to %s", form, out_path)
        else:
            data["export"] = _plain(exported)
        ctx.emit_success("export", text=None if args.out else text, data=data)
        return int(Exit.OK)

    return handler


def _configure_renumber(
    parser: argparse.ArgumentParser, ctx: CLIContext
) -> Callable[[argparse.Namespace], int]:
    _add_input(parser)
    _add_output(parser)
    parser.add_argument("--start", type=int, default=0, help="First index (default: %(default)s)")
    parser.add_argument(
        "--sort", action="store_true", help="Number in numeric key order instead of ring order"
    )

    def handler(args: argparse.Namespace) -> int:
        container = ctx.load(args.path)
        container.renumber(start=args.start, sort=args.sort)
        target = ctx.save(container, args.out or args.path)
        keys = container.keys()
        ctx.emit_success(
            "renumber",
            text=" ".join(render_value(key) for key in keys),
            data={"snapshot": str(target), "keys": _plain(keys)},
        )
        return int(Exit.OK)

    return handler


def _configure_reorder(
    parser: argparse.ArgumentParser, ctx: CLIContext
) -> Callable[[argparse.Namespace], int]:
    _add_input(parser)
    _add_output(parser)
    parser.add_argument("ref", metavar="REF", help="Reference key ([] for all index keys)")
    parser.add_argument(
        "keys",
        nargs="*",
        metavar="KEY",
        help="Keys to move; repeat REF to switch from 'before' to 'after'",
    )

    def handler(args: argparse.Namespace) -> int:
        container = ctx.load(args.path)
        keys = [
            INDEX_KEYS if raw == AUTO_SEGMENT else parse_segment(raw)
            for raw in [args.ref, *args.keys]
        ]
        container.reorder(*keys)
        target = ctx.save(container, args.out or args.path)
        order = container.keys()
        ctx.emit_success(
            "reorder",
            text=" ".join(render_value(key) for key in order),
            data={"snapshot": str(target), "keys": _plain(order)},
        )
        return int(Exit.OK)

    return handler


def _configure_verify_snapshot(
    parser: argparse.ArgumentParser, ctx: CLIContext
) -> Callable[[argparse.Namespace], int]:
    _add_input(parser)
    parser.add_argument("--verbose", action="store_true", help="Include per-container details")

    def handler(args: argparse.Namespace) -> int:
        container = ctx.load(args.path)
        ok, messages = verify_tree(container, verbose=args.verbose)
        if not ok:
            raise InvariantError("; ".join(messages) or "Snapshot failed verification")
        ctx.emit_success(
            "verify-snapshot",
            text="\n".join(["OK", *messages]),
            data={"path": args.path, "ok": ok, "messages": messages},
        )
        return int(Exit.OK)

    return handler


def _configure_inspect_snapshot(
    parser: argparse.ArgumentParser, ctx: CLIContext
) -> Callable[[argparse.Namespace], int]:
    _add_input(parser)
    parser.add_argument(
        "--limit", type=int, default=20, help="Preview entry limit (default: %(default)s)"
    )

    def handler(args: argparse.Namespace) -> int:
        path = Path(args.path).expanduser().resolve()
        if not path.exists():
            raise SnapshotIOError(f"Snapshot not found: {path}")

        header_data: Optional[Dict[str, Any]] = None
        with path.open("rb") as stream:
            versioned = stream.read(len(MAGIC)) == MAGIC
        if versioned:
            limit_bytes = ctx.config().snapshot.max_payload_bytes
            descriptor = describe_snapshot(path, max_payload_bytes=limit_bytes)
            header = descriptor.header
            header_data = {
                "version": header.version,
                "compressed": descriptor.compressed,
                "checksum_hex": descriptor.checksum_hex,
                "payload_bytes": header.payload_len,
                "checksum_bytes": header.checksum_len,
            }

        container = ctx.load(str(path))
        preview: List[Dict[str, Any]] = []
        for key, value in container.items():
            if len(preview) >= max(args.limit, 1):
                break
            kind = "xhash" if isinstance(value, XHash) else type(value).__name__
            preview.append({"key": _plain(key), "type": kind})

        data: Dict[str, Any] = {
            "path": str(path),
            "format": "snapshot" if versioned else "json",
            "file_bytes": path.stat().st_size,
            "header": header_data,
            "size": len(container),
            "first_key": _plain(container.first_key()),
            "last_key": _plain(container.last_key()),
            "next_index": container.next_index(),
            "preview": preview,
        }
        lines = [
            f"Snapshot: {path} ({data['format']}, {data['file_bytes']} bytes)",
            f"Keys: {len(container)} | Next index: {data['next_index']}",
        ]
        if header_data is not None:
            lines.append(
                f"Header: v{header_data['version']} compressed={header_data['compressed']} "
                f"payload={header_data['payload_bytes']}B"
            )
        lines.extend(f"  {render_value(item['key'])}: {item['type']}" for item in preview)
        ctx.emit_success("inspect-snapshot", text="\n".join(lines), data=data)
        return int(Exit.OK)

    return handler


def _configure_trace_path(
    parser: argparse.ArgumentParser, ctx: CLIContext
) -> Callable[[argparse.Namespace], int]:
    _add_input(parser)
    parser.add_argument(
        "--operation",
        choices=["fetch", "store", "exists", "delete"],
        default="fetch",
        help="Operation to trace (default: %(default)s)",
    )
    parser.add_argument("--export-json", help="Write the trace payload to a JSON file (indent=2)")
    parser.add_argument("segments", nargs="*", metavar="SEGMENT", help="Key path segments")

    def handler(args: argparse.Namespace) -> int:
        container = ctx.load(args.path)
        trace = trace_path(container, parse_path(args.segments), op=args.operation)

        export_path: Optional[Path] = None
        if args.export_json:
            export_path = Path(args.export_json).expanduser().resolve()
            export_path.parent.mkdir(parents=True, exist_ok=True)
            export_path.write_text(json.dumps(trace, indent=2), encoding="utf-8")

        snapshot_text = str(Path(args.path).expanduser().resolve())
        text_output = "\n".join(
            format_trace_lines(trace, snapshot=snapshot_text, export_path=export_path)
        )
        payload: Dict[str, Any] = {"trace": trace, "snapshot": snapshot_text}
        if export_path is not None:
            payload["export_json"] = str(export_path)
        ctx.emit_success("trace-path", text=text_output, data=payload)
        return int(Exit.OK)

    return handler


__all__ = [
    "CLIContext",
    "parse_path",
    "parse_segment",
    "parse_value",
    "register_subcommands",
    "render_value",
]
