"""
Static device dependency graph supplied to the engine as an input collaborator, with bounded hop-distance lookups used by the topological correlation strategy.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

from __future__ import annotations

import json
import logging
from collections import defaultdict, deque
from typing import Dict, Iterable, List, Mapping, Optional, Set

from engine.errors import ConfigError

log = logging.getLogger(__name__)


class DependencyGraph:
    def __init__(self) -> None:
        self._forward: Dict[str, Set[str]] = defaultdict(set)
        self._reverse: Dict[str, Set[str]] = defaultdict(set)

    def add_link(self, upstream: str, downstream: str) -> None:
        if upstream == downstream or not upstream or not downstream:
            return
        self._forward[upstream].add(downstream)
        self._reverse[downstream].add(upstream)

    @classmethod
    def from_mapping(cls, connections: Mapping[str, Iterable[str]]) -> DependencyGraph:
        graph = cls()
        for upstream, downstreams in connections.items():
            for downstream in downstreams or ():
                graph.add_link(upstream, downstream)
        return graph

    def __contains__(self, device: str) -> bool:
        return device in self._forward or device in self._reverse

    def neighbours(self, device: str) -> Set[str]:
        return set(self._forward.get(device, set())) | set(self._reverse.get(device, set()))

    def downstream(self, device: str) -> Set[str]:
        return set(self._forward.get(device, set()))

    def upstream(self, device: str) -> Set[str]:
        return set(self._reverse.get(device, set()))

    def hop_distance(self, source: str, target: str, max_hops: int) -> Optional[int]:
        if source == target:
            return 0
        if source not in self or target not in self:
            return None

        seen: Set[str] = {source}
        queue: deque[tuple[str, int]] = deque([(source, 0)])
        while queue:
            node, depth = queue.popleft()
            if depth >= max_hops:
                continue
            for neighbour in self.neighbours(node):
                if neighbour == target:
                    return depth + 1
                if neighbour not in seen:
                    seen.add(neighbour)
                    queue.append((neighbour, depth + 1))
        return None

    def all_devices(self) -> List[str]:
        return sorted(set(self._forward) | set(self._reverse))


def load_topology(path: str) -> DependencyGraph:
    """Read a JSON object mapping each upstream device to its downstream devices."""
    try:
        with open(path, encoding="utf-8") as fh:
            data = json.load(fh)
    except (OSError, ValueError) as exc:
        raise ConfigError(f"cannot read topology from {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigError(f"topology file {path} must contain a JSON object")
    graph = DependencyGraph.from_mapping(data)
    log.info("Loaded topology from %s (%d devices)", path, len(graph.all_devices()))
    return graph
