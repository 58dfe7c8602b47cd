"""Registry of open handles and the ownership graph between them."""

from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import networkx as nx

from ..config import get_settings
from ..constants import JOURNAL_HISTORY_LIMIT, KIND_COLORS
from ..logging_config import get_logger

log = get_logger(__name__)


class HandleRegistry:
    """Track handles by id without keeping the handles alive.

    Nodes carry ``kind``, ``resource`` and ``state`` attributes. An edge
    ``library -> symbol`` records where a symbol was resolved; it is a
    bookkeeping relation only and implies no ownership.
    """

    def __init__(self) -> None:
        self.graph = nx.DiGraph()

    def track(self, handle: Any, parent: str | None = None) -> None:
        self.graph.add_node(
            handle.id,
            kind=handle.kind.value,
            resource=str(handle.resource),
            state="live",
        )
        if parent is not None and parent in self.graph:
            self.graph.add_edge(parent, handle.id, relation="resolves")
        self.record("open", handle.id)

    def mark_released(self, handle_id: str, ok: bool = True) -> None:
        if handle_id not in self.graph:
            return
        self.graph.nodes[handle_id]["state"] = "released"
        self.record("release", handle_id, ok=ok)

    def forget(self, handle_id: str) -> None:
        if handle_id in self.graph:
            self.graph.remove_node(handle_id)

    def live_handles(self, kind: str | None = None) -> list[str]:
        return [
            node
            for node, data in self.graph.nodes(data=True)
            if data["state"] == "live" and (kind is None or data["kind"] == kind)
        ]

    def resolved_from(self, handle_id: str) -> list[str]:
        """Return the ids of symbols resolved from a library handle."""

        if handle_id not in self.graph:
            return []
        return sorted(self.graph.successors(handle_id))

    def snapshot(self) -> dict[str, Any]:
        return {
            "handles": [
                {"id": node, **data} for node, data in sorted(self.graph.nodes(data=True))
            ],
            "edges": [
                {"from": a, "to": b, **data}
                for a, b, data in sorted(self.graph.edges(data=True))
            ],
        }

    def clear(self) -> None:
        self.graph.clear()

    def record(self, event: str, handle_id: str, **detail: Any) -> dict[str, Any] | None:
        """Append an event to the journal when one is configured."""

        path = get_settings().journal_path
        if not path:
            return None
        data = self.graph.nodes.get(handle_id, {})
        entry = {
            "timestamp": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
            "event": event,
            "handle": handle_id,
            "kind": data.get("kind"),
            "resource": data.get("resource"),
        }
        entry.update(detail)
        try:
            with open(path, "a", encoding="utf-8") as f:
                f.write(json.dumps(entry) + "\n")
        except OSError as exc:
            log.warning("Cannot write handle journal %s: %s", path, exc)
            return None
        return entry

    def export_graphviz(self, output_path: str | Path) -> Path:
        """Write the handle graph; ``.dot`` is written raw, other suffixes are rendered."""

        import pydot

        output_path = Path(output_path)
        dot = pydot.Dot(
            "linuxhandles",
            graph_type="digraph",
            rankdir="LR",
            fontname="Helvetica",
        )
        for node, data in sorted(self.graph.nodes(data=True)):
            color_key = data["kind"] if data["state"] == "live" else "released"
            dot.add_node(
                pydot.Node(
                    f'"{node}"',
                    label=f'"{data["kind"]}\\n{_escape(data["resource"])}"',
                    shape="box" if data["kind"] != "symbol" else "ellipse",
                    style="filled",
                    fillcolor=KIND_COLORS.get(color_key, "#B0BEC5"),
                    fontname="Helvetica",
                )
            )
        for src, dst, data in sorted(self.graph.edges(data=True)):
            dot.add_edge(
                pydot.Edge(f'"{src}"', f'"{dst}"', label=data.get("relation", ""), style="dashed")
            )

        if output_path.suffix == ".dot":
            dot.write_raw(str(output_path))
        else:
            dot.write(str(output_path), format=output_path.suffix.lstrip(".") or "svg")
        log.info("Exported handle graph to %s", output_path)
        return output_path


def _escape(text: str) -> str:
    return text.replace("\\", "\\\\").replace('"', '\\"')


HANDLE_REGISTRY = HandleRegistry()


def read_journal(limit: int = JOURNAL_HISTORY_LIMIT) -> list[dict[str, Any]]:
    path = get_settings().journal_path
    if not path:
        return []
    try:
        with open(path, "r", encoding="utf-8") as f:
            lines = f.readlines()
    except FileNotFoundError:
        return []
    return [json.loads(line) for line in lines[-limit:] if line.strip()]


def show_journal(limit: int = JOURNAL_HISTORY_LIMIT) -> list[dict[str, Any]]:
    """Print the most recent journal entries, newest first."""

    entries = read_journal(limit)
    if not entries:
        print("No journal yet.")
        return entries
    print(f"Handle journal, last {len(entries)} entries:")
    for e in reversed(entries):
        print(f"• {e['timestamp']}  {e['event']:<8} {e['handle']}  {e.get('resource')}")
    return entries


__all__ = [
    "HandleRegistry",
    "HANDLE_REGISTRY",
    "read_journal",
    "show_journal",
]
