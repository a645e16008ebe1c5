"""
Handle Value Store — materialized values of node handles.

Values are keyed by a structured ``HandleKey`` (direction, node id,
handle id), so removing a node compares the node-id field directly
instead of matching substrings. The string form
``"<direction>_node_<nodeId>_<handleId>"`` is only used on the wire
and in the local cache.
"""

from __future__ import annotations

import copy
from logging import getLogger
from typing import (
    Any,
    Dict,
    Iterable,
    Iterator,
    List,
    Mapping,
    NamedTuple,
    Optional,
    Set,
    Tuple,
    Union,
)

from flowcanvas.workflow.workflow_model import CanvasNode

logger = getLogger(__name__)

DIRECTIONS = ("input", "output")


class _Unset:
    """Marker for "no value": patching a key with it deletes the key."""

    _instance: Optional["_Unset"] = None

    def __new__(cls) -> "_Unset":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "UNSET"

    def __bool__(self) -> bool:
        return False


UNSET = _Unset()


class HandleKey(NamedTuple):
    """Composite key of one handle value."""

    direction: str
    node_id: str
    handle_id: str

    def encode(self) -> str:
        return f"{self.direction}_node_{self.node_id}_{self.handle_id}"

    @classmethod
    def decode(cls, key: str, node_ids: Optional[Iterable[str]] = None) -> "HandleKey":
        """Parse an encoded key.

        The node id ends at the first ``_`` after ``_node_`` unless
        ``node_ids`` is given, in which case the longest known id that
        fits is used (lets ids containing ``_`` round-trip).

        Raises:
            ValueError: If the key does not follow the encoded format.
        """
        direction, sep, rest = key.partition("_node_")
        if not sep or direction not in DIRECTIONS:
            raise ValueError(f"Not a handle key: {key!r}")
        if node_ids is not None:
            candidates = [nid for nid in node_ids if rest.startswith(f"{nid}_")]
            if candidates:
                node_id = max(candidates, key=len)
                return cls(direction, node_id, rest[len(node_id) + 1:])
        node_id, sep, handle_id = rest.partition("_")
        if not sep or not node_id:
            raise ValueError(f"Not a handle key: {key!r}")
        return cls(direction, node_id, handle_id)


KeyLike = Union[HandleKey, str, Tuple[str, str, str]]


def to_handle_key(key: KeyLike, node_ids: Optional[Iterable[str]] = None) -> HandleKey:
    if isinstance(key, HandleKey):
        return key
    if isinstance(key, str):
        return HandleKey.decode(key, node_ids)
    return HandleKey(*key)


class HandleValueStore:
    """Mapping of ``HandleKey`` → value with seed/prune/patch rules.

    String keys that do not follow the encoded format are kept verbatim
    as opaque entries, so a graph loaded from the backend or the cache
    serializes back to exactly the values it was loaded with.
    """

    def __init__(
        self,
        values: Optional[Mapping[HandleKey, Any]] = None,
        opaque: Optional[Mapping[str, Any]] = None,
    ) -> None:
        self._values: Dict[HandleKey, Any] = dict(values or {})
        self._opaque: Dict[str, Any] = dict(opaque or {})

    def _resolve(self, key: KeyLike, node_ids: Optional[Iterable[str]] = None) -> Union[HandleKey, str]:
        """Structured key for ``key``, or the raw string if it is opaque."""
        if isinstance(key, str):
            known = self.node_ids()
            if node_ids is not None:
                known.update(node_ids)
            try:
                return HandleKey.decode(key, known)
            except ValueError:
                return key
        return to_handle_key(key)

    # ── Mapping access ──

    def get(self, key: KeyLike, default: Any = None) -> Any:
        try:
            return self[key]
        except KeyError:
            return default

    def __getitem__(self, key: KeyLike) -> Any:
        resolved = self._resolve(key)
        if isinstance(resolved, HandleKey):
            return self._values[resolved]
        return self._opaque[resolved]

    def __contains__(self, key: object) -> bool:
        try:
            resolved = self._resolve(key)  # type: ignore[arg-type]
        except TypeError:
            return False
        if isinstance(resolved, HandleKey):
            return resolved in self._values
        return resolved in self._opaque

    def __iter__(self) -> Iterator[Union[HandleKey, str]]:
        yield from self._values
        yield from self._opaque

    def __len__(self) -> int:
        return len(self._values) + len(self._opaque)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, HandleValueStore):
            return self._values == other._values and self._opaque == other._opaque
        return NotImplemented

    def items(self) -> List[Tuple[Union[HandleKey, str], Any]]:
        return list(self._values.items()) + list(self._opaque.items())

    def node_ids(self) -> Set[str]:
        return {k.node_id for k in self._values}

    @property
    def opaque(self) -> Dict[str, Any]:
        """Entries whose key is not an encoded handle key."""
        return dict(self._opaque)

    # ── Mutations ──

    def seed(self, node: CanvasNode) -> None:
        """Write default-or-None for every input handle of ``node``."""
        for handle in node.data.input:
            self._values[HandleKey("input", node.id, handle.id)] = copy.deepcopy(handle.default)

    def prune(self, node_id: str) -> int:
        """Remove every entry of ``node_id``; returns how many were removed.

        Opaque keys are removed when they contain ``_node_<node_id>_``.
        """
        stale = [k for k in self._values if k.node_id == node_id]
        for k in stale:
            del self._values[k]
        marker = f"_node_{node_id}_"
        stale_opaque = [k for k in self._opaque if marker in k]
        for k in stale_opaque:
            del self._opaque[k]
        return len(stale) + len(stale_opaque)

    def patch(
        self,
        changes: Mapping[KeyLike, Any],
        node_ids: Optional[Iterable[str]] = None,
    ) -> None:
        """Upsert values; a value of ``UNSET`` deletes its key.

        String keys are decoded against ``node_ids`` plus the node ids
        already present, so ids containing ``_`` resolve to the right node.
        """
        known = list(node_ids) if node_ids is not None else None
        for raw_key, value in changes.items():
            key = self._resolve(raw_key, known)
            target = self._values if isinstance(key, HandleKey) else self._opaque
            if value is UNSET:
                target.pop(key, None)
            else:
                target[key] = value

    # ── Serialization ──

    def to_wire(self) -> Dict[str, Any]:
        wire = {k.encode(): copy.deepcopy(v) for k, v in self._values.items()}
        wire.update(copy.deepcopy(self._opaque))
        return wire

    @classmethod
    def from_wire(
        cls,
        values: Mapping[str, Any],
        node_ids: Optional[Iterable[str]] = None,
    ) -> "HandleValueStore":
        """Build a store from encoded keys; undecodable keys stay opaque."""
        known = list(node_ids) if node_ids is not None else None
        decoded: Dict[HandleKey, Any] = {}
        opaque: Dict[str, Any] = {}
        for raw_key, value in values.items():
            try:
                decoded[HandleKey.decode(raw_key, known)] = copy.deepcopy(value)
            except ValueError:
                logger.debug(f"Keeping value with non-handle key as-is: {raw_key!r}")
                opaque[raw_key] = copy.deepcopy(value)
        return cls(decoded, opaque)

    def copy(self) -> "HandleValueStore":
        return HandleValueStore(copy.deepcopy(self._values), copy.deepcopy(self._opaque))
