# confenv/codec.py
"""
confenv.codec
-------------

Key transcoding between dotted configuration paths and flat environment
variable names, plus flatten/unflatten/merge helpers for nested values.

Paths are lowercase and dot-separated (``db.1.user``). Environment keys are
uppercase, underscore-separated and always start with the domain
(``MYAPP_DB_1_USER``). Integer segments address sequence elements and are
1-based in both spellings; sequences are plain Python lists once unflattened.
"""

import copy
import logging
from typing import Any, Dict, List, Mapping, Optional, Union

log = logging.getLogger(__name__)

# A configuration value: a scalar string, a list of values, or a dict of values.
Value = Union[str, List[Any], Dict[str, Any]]


def normalize_domain(domain: str) -> str:
    """Return the canonical uppercase spelling of a domain prefix (no trailing '_')."""
    return domain.strip().rstrip("_").upper()


def join_path(*parts: Optional[str]) -> str:
    """Join path fragments with dots, skipping empty fragments."""
    return ".".join(part for part in parts if part)


def decode(env_key: str, domain: str) -> Optional[str]:
    """
    Convert an environment variable name into a dotted path under `domain`.

    Returns None when `env_key` does not start with ``DOMAIN_`` (compared
    case-insensitively) or when nothing follows the prefix.

    Examples:
        >>> decode("MYAPP_DB_1_USER", "myapp")
        'db.1.user'
        >>> decode("OTHER_DB_USER", "myapp") is None
        True
    """
    target = normalize_domain(domain)
    if not env_key.upper().startswith(target + "_"):
        return None
    # Uppercasing can change the length ('ß' -> 'SS'), so find the original-case boundary.
    for end in range(1, len(env_key)):
        if env_key[end] == "_" and env_key[:end].upper() == target:
            rest = env_key[end + 1:]
            return rest.lower().replace("_", ".") if rest else None
    return None


def encode(path: str, domain: str) -> str:
    """
    Convert a dotted path into the environment variable name under `domain`.

    Examples:
        >>> encode("server.node.1", "myapp")
        'MYAPP_SERVER_NODE_1'
    """
    segments = [normalize_domain(domain)]
    if path:
        segments.extend(path.split("."))
    return "_".join(segments).upper()


def is_index(segment: str) -> bool:
    """True for canonical positive integers ('1', '12'), False for '0', '01', 'a1'."""
    return segment.isascii() and segment.isdigit() and segment[0] != "0"


def render_scalar(value: Any) -> str:
    """Render a leaf value the way it is stored in the environment."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def flatten(value: Any, prefix: str = "") -> Dict[str, str]:
    """
    Flatten a nested value into ``{dotted_path: scalar}`` leaves.

    - Mapping keys are lowercased and become path segments.
    - Sequence elements become 1-based integer segments, renumbered
      contiguously in iteration order.
    - A scalar yields a single entry keyed by `prefix`.
    - Empty containers yield nothing.

    Args:
        value: Scalar, list/tuple, or mapping to flatten.
        prefix: Dotted path to prepend to every produced key.

    Returns:
        A new dict with one entry per leaf scalar, in traversal order.
    """
    leaves: Dict[str, str] = {}
    _flatten_into(leaves, value, prefix)
    return leaves


def _flatten_into(leaves: Dict[str, str], value: Any, prefix: str) -> None:
    if isinstance(value, Mapping):
        for key, item in value.items():
            _flatten_into(leaves, item, join_path(prefix, str(key).lower()))
    elif isinstance(value, (list, tuple)):
        for index, item in enumerate(value, start=1):
            _flatten_into(leaves, item, join_path(prefix, str(index)))
    else:
        leaves[prefix] = render_scalar(value)


def unflatten(leaves: Mapping[str, Any], sequences: bool = True) -> Value:
    """
    Rebuild a nested value from ``{dotted_path: scalar}`` leaves.

    Entries are applied in iteration order, so a later entry wins when two
    paths collide. A scalar standing where a container is needed is replaced
    by a dict (with a warning), and vice versa.

    Any dict whose keys are exactly ``'1'..'n'`` becomes a list in index
    order. Sibling sets with gaps, a ``'0'`` or non-numeric names stay dicts.

    Args:
        leaves: Flat mapping as produced by `flatten`.
        sequences: If False, skip list materialization and return plain
            nested dicts keyed by index strings (see `materialize`).

    Returns:
        The reconstructed dict or list.
    """
    root: Dict[str, Any] = {}
    for path, value in leaves.items():
        parts = path.lower().split(".")
        node = root
        for part in parts[:-1]:
            child = node.get(part)
            if not isinstance(child, dict):
                if part in node:
                    log.warning(f"Replacing scalar at '{part}' with a mapping while unflattening '{path}'.")
                child = node[part] = {}
            node = child
        last = parts[-1]
        if isinstance(node.get(last), dict):
            log.warning(f"Replacing mapping at '{last}' with a scalar while unflattening '{path}'.")
        node[last] = value
    return materialize(root) if sequences else root


def materialize(node: Any) -> Any:
    """
    Return a copy of `node` with every index-keyed dict turned into a list.

    Dicts keyed ``'1'..'n'`` become lists; all other dicts are copied with
    their children materialized. Scalars are returned unchanged.
    """
    if not isinstance(node, dict):
        return node
    items = {key: materialize(child) for key, child in node.items()}
    if items and all(is_index(key) for key in items):
        indexes = sorted(int(key) for key in items)
        if indexes == list(range(1, len(indexes) + 1)):
            return [items[str(index)] for index in indexes]
    return items


def sequence_paths(value: Any, prefix: str = "") -> List[str]:
    """
    List the dotted paths of every list/tuple inside `value` (outermost first).

    Examples:
        >>> sequence_paths({"node": ["a", "b"]}, "server")
        ['server.node']
    """
    found: List[str] = []
    if isinstance(value, Mapping):
        for key, item in value.items():
            found.extend(sequence_paths(item, join_path(prefix, str(key).lower())))
    elif isinstance(value, (list, tuple)):
        found.append(prefix)
        for index, item in enumerate(value, start=1):
            found.extend(sequence_paths(item, join_path(prefix, str(index))))
    return found


def deep_merge(base: Any, overlay: Any) -> Any:
    """
    Merge `overlay` onto `base` and return the result.

    - If both values are dicts, keys are merged recursively.
    - Otherwise (scalar, list, or a type mismatch) `overlay` replaces `base`
      entirely. Two lists are not concatenated: the newer list wins.

    Neither input is modified; replaced values are deep-copied from `overlay`.
    """
    if not (isinstance(base, dict) and isinstance(overlay, dict)):
        return copy.deepcopy(overlay)

    merged = dict(base)
    for key, value in overlay.items():
        if key in merged:
            merged[key] = deep_merge(merged[key], value)
        else:
            merged[key] = copy.deepcopy(value)
    return merged
