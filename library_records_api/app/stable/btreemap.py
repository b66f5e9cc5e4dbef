"""
Ordered map from u64 keys to bounded values, stored in one memory region.

The map is a B-tree of minimum degree ``B`` (each node holds between
``B - 1`` and ``2B - 1`` entries, the root excepted).  Nodes live in
fixed-size chunks handed out by a free-list allocator embedded in the
same region, so removing entries makes room that later inserts reuse.

Layout of the region (integers little endian)::

    [0..64)     map header:  magic b"BTR", version, max key size (u32),
                max value size (u32), root address (u64), length (u64)
    [64..128)   allocator header: magic b"BTA", version, chunk size (u64),
                live chunks (u64), chunks carved so far (u64),
                free list head (u64)
    [128..)     chunks

A node chunk starts with magic b"BTN", version, node type and entry
count, followed by ``CAPACITY`` entry slots (key, value length, value
bytes padded to the maximum value size) and ``CAPACITY + 1`` child
addresses.  A free chunk holds the address of the next free chunk in its
first eight bytes.  Address 0 is the null address.
"""

from __future__ import annotations

import logging
import struct
from bisect import bisect_left
from typing import Generic, Iterator, List, Optional, Tuple, TypeVar

from .errors import CorruptedStoreError, GrowFailedError
from .memory import WASM_PAGE_SIZE, Memory
from .storable import U64_MAX, RecordCodec


B = 6
CAPACITY = 2 * B - 1

NULL = 0
KEY_SIZE = 8

MAGIC = b"BTR"
ALLOCATOR_MAGIC = b"BTA"
NODE_MAGIC = b"BTN"
LAYOUT_VERSION = 1

LEAF = 0
INTERNAL = 1

_HEADER = struct.Struct("<3sBIIQQ")
_ALLOCATOR_HEADER = struct.Struct("<3sB4xQQQQ")
_NODE_HEADER = struct.Struct("<3sBBH")
_ENTRY_HEADER = struct.Struct("<QI")
_ADDRESS = struct.Struct("<Q")

ALLOCATOR_OFFSET = 64
DATA_OFFSET = 128

V = TypeVar("V")

logger = logging.getLogger(__name__)


def _ensure_capacity(memory: Memory, end: int) -> None:
    """Grow ``memory`` so that byte ``end - 1`` is addressable."""
    capacity = memory.size() * WASM_PAGE_SIZE
    if end <= capacity:
        return
    pages = -(-(end - capacity) // WASM_PAGE_SIZE)
    if memory.grow(pages) == -1:
        raise GrowFailedError(memory.size(), pages)


class ChunkAllocator:
    """Fixed-size chunk allocator with an on-memory free list."""

    def __init__(self, memory: Memory, offset: int, chunk_size: int) -> None:
        self.memory = memory
        self.offset = offset
        self.chunk_size = chunk_size
        self.num_allocated_chunks = 0
        self.num_carved_chunks = 0
        self.free_list_head = NULL

    @classmethod
    def new(cls, memory: Memory, offset: int, chunk_size: int) -> "ChunkAllocator":
        allocator = cls(memory, offset, chunk_size)
        allocator._save()
        return allocator

    @classmethod
    def load(cls, memory: Memory, offset: int) -> "ChunkAllocator":
        magic, version, chunk_size, allocated, carved, free_head = _ALLOCATOR_HEADER.unpack(
            memory.read(offset, _ALLOCATOR_HEADER.size)
        )
        if magic != ALLOCATOR_MAGIC:
            raise CorruptedStoreError(f"Bad allocator magic: {magic!r}")
        if version != LAYOUT_VERSION:
            raise CorruptedStoreError(f"Unsupported allocator layout version: {version}")
        allocator = cls(memory, offset, chunk_size)
        allocator.num_allocated_chunks = allocated
        allocator.num_carved_chunks = carved
        allocator.free_list_head = free_head
        return allocator

    def _save(self) -> None:
        self.memory.write(
            self.offset,
            _ALLOCATOR_HEADER.pack(
                ALLOCATOR_MAGIC,
                LAYOUT_VERSION,
                self.chunk_size,
                self.num_allocated_chunks,
                self.num_carved_chunks,
                self.free_list_head,
            ),
        )

    def allocate(self) -> int:
        if self.free_list_head != NULL:
            address = self.free_list_head
            self.free_list_head = _ADDRESS.unpack(self.memory.read(address, _ADDRESS.size))[0]
        else:
            address = DATA_OFFSET + self.num_carved_chunks * self.chunk_size
            _ensure_capacity(self.memory, address + self.chunk_size)
            self.num_carved_chunks += 1
        self.num_allocated_chunks += 1
        self._save()
        return address

    def deallocate(self, address: int) -> None:
        self.memory.write(address, _ADDRESS.pack(self.free_list_head))
        self.free_list_head = address
        self.num_allocated_chunks -= 1
        self._save()


class Node:
    __slots__ = ("address", "is_leaf", "keys", "values", "children")

    def __init__(self, address: int, is_leaf: bool) -> None:
        self.address = address
        self.is_leaf = is_leaf
        self.keys: List[int] = []
        self.values: List[bytes] = []
        self.children: List[int] = []


class StableBTreeMap(Generic[V]):
    """Durable ordered mapping of u64 keys to values encoded by ``codec``.

    Opening a map over a region that already holds one loads it;
    opening it over an empty region creates a new, empty map.
    """

    def __init__(self, memory: Memory, codec: RecordCodec[V]) -> None:
        self.memory = memory
        self.codec = codec
        self.max_value_size = codec.max_size
        self._entry_size = _ENTRY_HEADER.size + self.max_value_size
        self._children_offset = _NODE_HEADER.size + CAPACITY * self._entry_size
        self.node_size = self._children_offset + (CAPACITY + 1) * _ADDRESS.size
        if memory.size() == 0:
            _ensure_capacity(memory, DATA_OFFSET)
            self._root = NULL
            self._length = 0
            self._save_header()
            self.allocator = ChunkAllocator.new(memory, ALLOCATOR_OFFSET, self.node_size)
        else:
            self._load_header()
            self.allocator = ChunkAllocator.load(memory, ALLOCATOR_OFFSET)
            if self.allocator.chunk_size != self.node_size:
                raise CorruptedStoreError(
                    f"Node size mismatch: stored {self.allocator.chunk_size}, expected {self.node_size}"
                )

    # ------------------------------------------------------------------
    # Header
    # ------------------------------------------------------------------
    def _load_header(self) -> None:
        magic, version, key_size, value_size, root, length = _HEADER.unpack(
            self.memory.read(0, _HEADER.size)
        )
        if magic != MAGIC:
            raise CorruptedStoreError(f"Bad B-tree magic: {magic!r}")
        if version != LAYOUT_VERSION:
            raise CorruptedStoreError(f"Unsupported B-tree layout version: {version}")
        if key_size != KEY_SIZE or value_size != self.max_value_size:
            raise CorruptedStoreError(
                f"Map was created for values of up to {value_size} bytes, not {self.max_value_size}"
            )
        self._root = root
        self._length = length

    def _save_header(self) -> None:
        self.memory.write(
            0,
            _HEADER.pack(MAGIC, LAYOUT_VERSION, KEY_SIZE, self.max_value_size, self._root, self._length),
        )

    # ------------------------------------------------------------------
    # Node I/O
    # ------------------------------------------------------------------
    def _load_node(self, address: int) -> Node:
        raw = self.memory.read(address, self.node_size)
        magic, version, node_type, count = _NODE_HEADER.unpack_from(raw, 0)
        if magic != NODE_MAGIC or version != LAYOUT_VERSION:
            raise CorruptedStoreError(f"Bad node header at address {address}")
        node = Node(address, node_type == LEAF)
        offset = _NODE_HEADER.size
        for _ in range(count):
            key, length = _ENTRY_HEADER.unpack_from(raw, offset)
            start = offset + _ENTRY_HEADER.size
            node.keys.append(key)
            node.values.append(raw[start:start + length])
            offset += self._entry_size
        if not node.is_leaf:
            node.children = [
                _ADDRESS.unpack_from(raw, self._children_offset + i * _ADDRESS.size)[0]
                for i in range(count + 1)
            ]
        return node

    def _save_node(self, node: Node) -> None:
        parts = [_NODE_HEADER.pack(NODE_MAGIC, LAYOUT_VERSION, LEAF if node.is_leaf else INTERNAL, len(node.keys))]
        for key, value in zip(node.keys, node.values):
            parts.append(_ENTRY_HEADER.pack(key, len(value)))
            parts.append(value)
            parts.append(bytes(self.max_value_size - len(value)))
        self.memory.write(node.address, b"".join(parts))
        if not node.is_leaf:
            self.memory.write(
                node.address + self._children_offset,
                b"".join(_ADDRESS.pack(child) for child in node.children),
            )

    def _new_node(self, is_leaf: bool) -> Node:
        return Node(self.allocator.allocate(), is_leaf)

    def _free_node(self, node: Node) -> None:
        self.allocator.deallocate(node.address)

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------
    @staticmethod
    def _check_key(key: int) -> None:
        if not 0 <= key <= U64_MAX:
            raise ValueError(f"Key {key} is not an unsigned 64-bit integer")

    def _find(self, key: int) -> Optional[bytes]:
        address = self._root
        while address != NULL:
            node = self._load_node(address)
            index = bisect_left(node.keys, key)
            if index < len(node.keys) and node.keys[index] == key:
                return node.values[index]
            if node.is_leaf:
                return None
            address = node.children[index]
        return None

    def get(self, key: int) -> Optional[V]:
        """Return the value stored under ``key`` or ``None``."""
        self._check_key(key)
        data = self._find(key)
        return None if data is None else self.codec.decode(data)

    def __contains__(self, key: int) -> bool:
        return 0 <= key <= U64_MAX and self._find(key) is not None

    def __len__(self) -> int:
        return self._length

    def is_empty(self) -> bool:
        return self._length == 0

    # ------------------------------------------------------------------
    # Insertion
    # ------------------------------------------------------------------
    def insert(self, key: int, value: V) -> Optional[V]:
        """Store ``value`` under ``key``; return the value it replaced."""
        self._check_key(key)
        data = self.codec.encode(value)

        if self._root == NULL:
            root = self._new_node(is_leaf=True)
            root.keys.append(key)
            root.values.append(data)
            self._save_node(root)
            self._root = root.address
            self._length = 1
            self._save_header()
            return None

        previous = self._replace(key, data)
        if previous is not None:
            return self.codec.decode(previous)

        root = self._load_node(self._root)
        if len(root.keys) == CAPACITY:
            new_root = self._new_node(is_leaf=False)
            new_root.children.append(root.address)
            self._split_child(new_root, 0, root)
            self._root = new_root.address
            root = new_root
        self._insert_nonfull(root, key, data)
        self._length += 1
        self._save_header()
        return None

    def _replace(self, key: int, data: bytes) -> Optional[bytes]:
        address = self._root
        while address != NULL:
            node = self._load_node(address)
            index = bisect_left(node.keys, key)
            if index < len(node.keys) and node.keys[index] == key:
                previous = node.values[index]
                node.values[index] = data
                self._save_node(node)
                return previous
            if node.is_leaf:
                return None
            address = node.children[index]
        return None

    def _insert_nonfull(self, node: Node, key: int, data: bytes) -> None:
        while True:
            index = bisect_left(node.keys, key)
            if node.is_leaf:
                node.keys.insert(index, key)
                node.values.insert(index, data)
                self._save_node(node)
                return
            child = self._load_node(node.children[index])
            if len(child.keys) == CAPACITY:
                self._split_child(node, index, child)
                if key > node.keys[index]:
                    index += 1
                child = self._load_node(node.children[index])
            node = child

    def _split_child(self, parent: Node, index: int, child: Node) -> None:
        sibling = self._new_node(child.is_leaf)
        median_key = child.keys[B - 1]
        median_value = child.values[B - 1]
        sibling.keys = child.keys[B:]
        sibling.values = child.values[B:]
        if not child.is_leaf:
            sibling.children = child.children[B:]
            child.children = child.children[:B]
        child.keys = child.keys[:B - 1]
        child.values = child.values[:B - 1]
        parent.keys.insert(index, median_key)
        parent.values.insert(index, median_value)
        parent.children.insert(index + 1, sibling.address)
        self._save_node(sibling)
        self._save_node(child)
        self._save_node(parent)

    # ------------------------------------------------------------------
    # Removal
    # ------------------------------------------------------------------
    def remove(self, key: int) -> Optional[V]:
        """Remove ``key``; return the removed value or ``None`` if absent."""
        self._check_key(key)
        if self._root == NULL:
            return None
        root = self._load_node(self._root)
        removed = self._remove(root, key)
        # Merging the root's last two children leaves it without entries
        if not root.keys:
            self._root = NULL if root.is_leaf else root.children[0]
            self._free_node(root)
            self._save_header()
        if removed is None:
            return None
        self._length -= 1
        self._save_header()
        return self.codec.decode(removed)

    def _remove(self, node: Node, key: int) -> Optional[bytes]:
        index = bisect_left(node.keys, key)
        found = index < len(node.keys) and node.keys[index] == key

        if node.is_leaf:
            if not found:
                return None
            node.keys.pop(index)
            value = node.values.pop(index)
            self._save_node(node)
            return value

        if found:
            value = node.values[index]
            left = self._load_node(node.children[index])
            if len(left.keys) >= B:
                pred_key, pred_value = self._max_entry(left)
                node.keys[index] = pred_key
                node.values[index] = pred_value
                self._save_node(node)
                self._remove(left, pred_key)
                return value
            right = self._load_node(node.children[index + 1])
            if len(right.keys) >= B:
                succ_key, succ_value = self._min_entry(right)
                node.keys[index] = succ_key
                node.values[index] = succ_value
                self._save_node(node)
                self._remove(right, succ_key)
                return value
            self._merge(node, index, left, right)
            return self._remove(left, key)

        child = self._load_node(node.children[index])
        if len(child.keys) < B:
            child = self._fill_child(node, index, child)
        return self._remove(child, key)

    def _fill_child(self, node: Node, index: int, child: Node) -> Node:
        """Make sure ``child`` has at least ``B`` entries before descending."""
        left: Optional[Node] = None
        if index > 0:
            left = self._load_node(node.children[index - 1])
            if len(left.keys) >= B:
                child.keys.insert(0, node.keys[index - 1])
                child.values.insert(0, node.values[index - 1])
                node.keys[index - 1] = left.keys.pop()
                node.values[index - 1] = left.values.pop()
                if not child.is_leaf:
                    child.children.insert(0, left.children.pop())
                self._save_node(left)
                self._save_node(child)
                self._save_node(node)
                return child
        if index < len(node.keys):
            right = self._load_node(node.children[index + 1])
            if len(right.keys) >= B:
                child.keys.append(node.keys[index])
                child.values.append(node.values[index])
                node.keys[index] = right.keys.pop(0)
                node.values[index] = right.values.pop(0)
                if not child.is_leaf:
                    child.children.append(right.children.pop(0))
                self._save_node(right)
                self._save_node(child)
                self._save_node(node)
                return child
            self._merge(node, index, child, right)
            return child
        assert left is not None
        self._merge(node, index - 1, left, child)
        return left

    def _merge(self, node: Node, index: int, left: Node, right: Node) -> None:
        """Fold ``node.keys[index]`` and ``right`` into ``left``."""
        left.keys.append(node.keys.pop(index))
        left.values.append(node.values.pop(index))
        left.keys.extend(right.keys)
        left.values.extend(right.values)
        left.children.extend(right.children)
        node.children.pop(index + 1)
        self._save_node(left)
        self._save_node(node)
        self._free_node(right)

    def _max_entry(self, node: Node) -> Tuple[int, bytes]:
        while not node.is_leaf:
            node = self._load_node(node.children[-1])
        return node.keys[-1], node.values[-1]

    def _min_entry(self, node: Node) -> Tuple[int, bytes]:
        while not node.is_leaf:
            node = self._load_node(node.children[0])
        return node.keys[0], node.values[0]

    # ------------------------------------------------------------------
    # Iteration
    # ------------------------------------------------------------------
    def _collect(self, address: int, out: List[Tuple[int, bytes]]) -> None:
        if address == NULL:
            return
        node = self._load_node(address)
        if node.is_leaf:
            out.extend(zip(node.keys, node.values))
            return
        for i, child in enumerate(node.children):
            self._collect(child, out)
            if i < len(node.keys):
                out.append((node.keys[i], node.values[i]))

    def iter(self) -> Iterator[Tuple[int, V]]:
        """Return ``(key, value)`` pairs in ascending key order.

        The entries are captured when this method is called; later
        mutations of the map do not affect an iterator already handed out.
        """
        entries: List[Tuple[int, bytes]] = []
        self._collect(self._root, entries)
        return ((key, self.codec.decode(data)) for key, data in entries)

    def keys(self) -> List[int]:
        entries: List[Tuple[int, bytes]] = []
        self._collect(self._root, entries)
        return [key for key, _ in entries]

    def values(self) -> List[V]:
        return [value for _, value in self.iter()]

    def __iter__(self) -> Iterator[int]:
        return iter(self.keys())

    def __repr__(self) -> str:
        return f"StableBTreeMap(len={self._length}, codec={self.codec!r})"
