"""Read-only tracing of path resolution through nested XHash containers."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from xhash.core.keys import AS_XHASH
from xhash.core.xhash import XHash

PathTrace = Dict[str, Any]


def trace_path(xh: XHash, path: Any, op: str = "fetch") -> PathTrace:
    """Describe, step by step, what resolving ``path`` for ``op`` would do.

    Nothing is modified: containers that the operation would vivify or coerce
    are followed as empty "virtual" containers.
    """

    segments = list(path) if isinstance(path, list) else [path]
    vivify = False
    want_xhash = False
    if segments and segments[-1] is AS_XHASH:
        if op == "fetch":
            vivify = want_xhash = True
        segments.pop()
    if op == "store":
        vivify = True
    if not segments:
        segments = [None]

    container: Optional[XHash] = xh
    steps: List[Dict[str, Any]] = []
    terminal = "terminal"
    found = False
    for pos, segment in enumerate(segments):
        descend = pos < len(segments) - 1 or want_xhash
        step: Dict[str, Any] = {"step": pos, "segment": repr(segment)}
        if container is None:
            key = 0 if segment is None else segment
            step.update({"state": "virtual", "key_repr": repr(key)})
            found = False
            if not vivify:
                # Coerced container is empty, so the resolver stops here.
                step["action"] = "stop"
                steps.append(step)
                terminal = "stop"
                break
            step["action"] = "vivify" if descend else "terminal"
            steps.append(step)
            continue

        key = container.next_index() if segment is None else segment
        step["key_repr"] = repr(key)
        if segment is None or not container.exists(segment):
            step["state"] = "missing"
            found = False
            if not vivify:
                step["action"] = "stop"
                steps.append(step)
                terminal = "stop"
                break
            step["action"] = "vivify" if descend else "terminal"
            if descend:
                container = None
        else:
            value = container.fetch(key)
            holds_xhash = isinstance(value, XHash)
            step.update({"state": "present", "holds": "xhash" if holds_xhash else "value"})
            found = True
            if descend:
                step["action"] = "descend" if holds_xhash else "coerce"
                container = value if holds_xhash else None
            else:
                step["action"] = "terminal"
        steps.append(step)

    return {
        "operation": op,
        "path_repr": repr(path),
        "vivify": vivify,
        "terminal_container": want_xhash,
        "found": found and terminal != "stop",
        "terminal": terminal,
        "mutates": any(step.get("action") in {"vivify", "coerce"} for step in steps),
        "steps": steps,
    }


def format_trace_lines(
    trace: Dict[str, Any],
    *,
    snapshot: Optional[Union[str, Path]] = None,
    export_path: Optional[Union[str, Path]] = None,
) -> List[str]:
    """Return a human-friendly rendering of a path trace."""

    lines: List[str] = []
    operation = trace.get("operation", "?")
    lines.append(f"Path trace {operation.upper()} path={trace.get('path_repr', '?')}")
    lines.append(
        f"Found: {trace.get('found')} | Terminal: {trace.get('terminal')} | "
        f"Mutates: {trace.get('mutates')}"
    )
    if trace.get("terminal_container"):
        lines.append("Terminal container forced (AS_XHASH)")
    if snapshot:
        lines.append(f"Snapshot: {snapshot}")
    lines.append("Steps:")
    steps = trace.get("steps")
    if not isinstance(steps, list) or not steps:
        lines.append("  (no steps recorded)")
    else:
        for item in steps:
            attrs: List[str] = []
            for key in ("segment", "key_repr", "state", "holds", "action"):
                if key in item and item[key] is not None:
                    attrs.append(f"{key}={item[key]}")
            lines.append(f"  Step {item.get('step', '?')}: " + ", ".join(attrs))
    if export_path:
        lines.append(f"Trace JSON written to: {export_path}")
    return lines


__all__ = ["PathTrace", "format_trace_lines", "trace_path"]
