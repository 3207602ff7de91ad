"""Path-schema matching and the tree walker that applies per-leaf transforms.

A path is a dot-separated list of segments. A segment matches an object key
by name, ``$`` matches every element of an array, and a segment made only of
digits also matches that array index.

Locations are tuples of keys (``str``) and indices (``int``) from the document
root down to a leaf. Leaves are ``str``, ``int``, ``float``, ``bool`` and
``None`` values; empty objects and arrays are not leaves.
"""

from __future__ import annotations

import copy
import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Callable, Iterator, List, Optional, Sequence, Tuple, Union

from .exceptions import ConfigurationError
from .models import SelectionMode


logger = logging.getLogger(__name__)

WILDCARD = "$"

Location = Tuple[Union[str, int], ...]
Path = Tuple[str, ...]
LeafTransform = Callable[[str, Any], Any]


def parse_path(path: str) -> Path:
    """Split a dotted path into segments, rejecting empty segments."""
    if not isinstance(path, str):
        raise ConfigurationError("field paths must be strings")
    segments = tuple(path.split("."))
    if any(seg == "" for seg in segments):
        raise ConfigurationError(f"invalid field path: {path!r}")
    return segments


def parse_schema(paths: Sequence[str]) -> List[Path]:
    if isinstance(paths, str):
        raise ConfigurationError("field paths must be given as a list")
    return [parse_path(p) for p in paths]


def resolve_selection(
    include_fields: Optional[Sequence[str]],
    exclude_fields: Optional[Sequence[str]],
) -> Tuple[List[Path], SelectionMode]:
    """Pick the active path list and how it selects leaves.

    Exactly one of the two lists must be non-empty.
    """
    include_fields = include_fields or []
    exclude_fields = exclude_fields or []
    if include_fields and exclude_fields:
        raise ConfigurationError("include_fields and exclude_fields must not be provided simultaneously")
    if not include_fields and not exclude_fields:
        raise ConfigurationError("either include_fields or exclude_fields must be non-empty")

    if include_fields:
        return parse_schema(include_fields), SelectionMode.INCLUDE
    return parse_schema(exclude_fields), SelectionMode.EXCLUDE


def is_leaf(value: Any) -> bool:
    return not isinstance(value, (dict, list))


def format_location(location: Location) -> str:
    return ".".join(str(part) for part in location)


def iter_leaves(node: Any, prefix: Location = ()) -> Iterator[Tuple[Location, Any]]:
    """Yield (location, value) for every leaf below ``node`` in document order."""
    if isinstance(node, dict):
        for key, child in node.items():
            yield from iter_leaves(child, prefix + (key,))
    elif isinstance(node, list):
        for index, child in enumerate(node):
            yield from iter_leaves(child, prefix + (index,))
    else:
        yield prefix, node


def _segment_matches(segment: str, part: Union[str, int]) -> bool:
    if isinstance(part, int):
        return segment == WILDCARD or (segment.isdigit() and int(segment) == part)
    return segment == part


def _covers(path: Path, location: Location) -> bool:
    # True when ``path`` addresses ``location`` or one of its ancestors
    if len(path) > len(location):
        return False
    return all(_segment_matches(seg, part) for seg, part in zip(path, location))


def _match_nodes(node: Any, path: Path, prefix: Location = ()) -> Iterator[Tuple[Location, Any]]:
    if not path:
        yield prefix, node
        return
    segment, rest = path[0], path[1:]
    if isinstance(node, dict):
        if segment in node:
            yield from _match_nodes(node[segment], rest, prefix + (segment,))
    elif isinstance(node, list):
        if segment == WILDCARD:
            for index, child in enumerate(node):
                yield from _match_nodes(child, rest, prefix + (index,))
        elif segment.isdigit() and int(segment) < len(node):
            index = int(segment)
            yield from _match_nodes(node[index], rest, prefix + (index,))


def resolve_targets(document: Any, schema: Sequence[Path], mode: SelectionMode) -> List[Location]:
    """Return the locations of every leaf selected by ``schema`` under ``mode``.

    INCLUDE selects the leaves at (or below) each listed path. EXCLUDE selects
    every leaf that is not at or below any listed path. Paths that do not exist
    in the document select nothing. The result is duplicate free and ordered
    by first match.
    """
    if mode is SelectionMode.INCLUDE:
        seen = set()
        targets: List[Location] = []
        for path in schema:
            for location, node in _match_nodes(document, path):
                for leaf_location, _ in iter_leaves(node, location):
                    if leaf_location not in seen:
                        seen.add(leaf_location)
                        targets.append(leaf_location)
        return targets

    return [
        location
        for location, _ in iter_leaves(document)
        if not any(_covers(path, location) for path in schema)
    ]


def get_at(document: Any, location: Location) -> Any:
    node = document
    for part in location:
        node = node[part]
    return node


def set_at(document: Any, location: Location, value: Any) -> Any:
    """Replace the value at ``location``; returns the (possibly new) root."""
    if not location:
        return value
    parent = get_at(document, location[:-1])
    parent[location[-1]] = value
    return document


def walk(
    document: Any,
    schema: Sequence[Path],
    transform: LeafTransform,
    mode: SelectionMode,
    max_workers: Optional[int] = None,
) -> Any:
    """Apply ``transform(path_key, value)`` to every selected leaf.

    Leaves are transformed concurrently on a thread pool; the first failure
    propagates and no document is returned. The input document is left
    untouched and a transformed copy is returned.
    """
    targets = resolve_targets(document, schema, mode)
    logger.debug("selected %d leaf value(s) in %s mode", len(targets), mode.value)
    if not targets:
        return copy.deepcopy(document)

    values = [get_at(document, location) for location in targets]
    keys = [format_location(location) for location in targets]

    if max_workers == 1 or len(targets) == 1:
        results = [transform(key, value) for key, value in zip(keys, values)]
    else:
        with ThreadPoolExecutor(max_workers=max_workers) as executor:
            results = list(executor.map(transform, keys, values))

    result = copy.deepcopy(document)
    for location, value in zip(targets, results):
        result = set_at(result, location, value)
    return result
