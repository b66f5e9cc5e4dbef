import pytest

from library_records_api.app.stable import (
    WASM_PAGE_SIZE,
    BoundsError,
    CorruptedStoreError,
    MemoryManager,
    VectorMemory,
)
from library_records_api.app.stable.memory_manager import MEMORY_SIZES_OFFSET


def test_fresh_memory_is_formatted() -> None:
    memory = VectorMemory()
    manager = MemoryManager.init(memory, bucket_size_in_pages=1)
    assert memory.size() == 1
    assert memory.read(0, 3) == b"MGR"
    assert manager.num_allocated_buckets == 0
    assert manager.regions() == {}


def test_regions_are_independent() -> None:
    manager = MemoryManager.init(VectorMemory(), bucket_size_in_pages=1)
    first, second = manager.get(0), manager.get(1)
    assert first.grow(1) == 0
    assert second.grow(1) == 0
    first.write(0, b"first")
    second.write(0, b"second")
    assert first.read(0, 5) == b"first"
    assert second.read(0, 6) == b"second"


def test_region_spanning_interleaved_buckets() -> None:
    manager = MemoryManager.init(VectorMemory(), bucket_size_in_pages=1)
    books, members = manager.get(1), manager.get(2)
    books.grow(1)
    members.grow(1)
    books.grow(1)
    assert manager.memory_buckets[1] == [0, 2]
    assert manager.memory_buckets[2] == [1]

    data = bytes(range(20))
    books.write(WASM_PAGE_SIZE - 10, data)
    members.write(0, b"\xff" * 16)
    assert books.read(WASM_PAGE_SIZE - 10, 20) == data
    assert members.read(0, 16) == b"\xff" * 16


def test_reload_restores_mapping_and_contents() -> None:
    memory = VectorMemory()
    manager = MemoryManager.init(memory, bucket_size_in_pages=2)
    region = manager.get(3)
    region.grow(3)
    region.write(2 * WASM_PAGE_SIZE + 7, b"persisted")

    reloaded = MemoryManager.init(memory, bucket_size_in_pages=8)
    assert reloaded.bucket_size_in_pages == 2
    assert reloaded.memory_size(3) == 3
    assert reloaded.memory_buckets == manager.memory_buckets
    assert reloaded.get(3).read(2 * WASM_PAGE_SIZE + 7, 9) == b"persisted"


def test_grow_fails_when_backing_memory_is_full() -> None:
    manager = MemoryManager.init(VectorMemory(max_pages=2), bucket_size_in_pages=1)
    assert manager.get(0).grow(1) == 0
    assert manager.get(1).grow(1) == -1
    assert manager.get(1).size() == 0


def test_grow_within_an_owned_bucket_needs_no_new_bucket() -> None:
    manager = MemoryManager.init(VectorMemory(), bucket_size_in_pages=4)
    region = manager.get(0)
    region.grow(1)
    region.grow(2)
    assert manager.num_allocated_buckets == 1
    assert region.size() == 3


def test_access_outside_region_is_rejected() -> None:
    manager = MemoryManager.init(VectorMemory(), bucket_size_in_pages=4)
    region = manager.get(0)
    region.grow(1)
    # The bucket holds 4 pages but only 1 belongs to the region so far
    with pytest.raises(BoundsError):
        region.read(WASM_PAGE_SIZE, 1)


def test_bad_magic_is_reported() -> None:
    memory = VectorMemory()
    memory.grow(1)
    memory.write(0, b"XYZ")
    with pytest.raises(CorruptedStoreError):
        MemoryManager.init(memory)


def test_invalid_handle() -> None:
    manager = MemoryManager.init(VectorMemory(), bucket_size_in_pages=1)
    with pytest.raises(ValueError):
        manager.get(255)


class InterruptedMemory(VectorMemory):
    """Fails the first write at ``fail_at`` as if the process died there."""

    def __init__(self) -> None:
        super().__init__()
        self.fail_at = None

    def write(self, offset: int, data: bytes) -> None:
        if offset == self.fail_at:
            self.fail_at = None
            raise RuntimeError(f"write at offset {offset} interrupted")
        super().write(offset, data)

    def snapshot(self) -> VectorMemory:
        copy = VectorMemory()
        copy.grow(self.size())
        copy.write(0, self.read(0, self.size() * WASM_PAGE_SIZE))
        return copy


@pytest.mark.parametrize(
    "fail_at,owned_after_reload",
    [
        # Header counting the new bucket never written
        (0, [0]),
        # Header written, region size never written
        (MEMORY_SIZES_OFFSET + 1 * 8, [0, 1]),
    ],
)
def test_interrupted_bucket_allocation_leaves_a_loadable_store(fail_at: int, owned_after_reload: list) -> None:
    memory = InterruptedMemory()
    manager = MemoryManager.init(memory, bucket_size_in_pages=1)
    region = manager.get(1)
    region.grow(1)
    region.write(0, b"kept")

    memory.fail_at = fail_at
    with pytest.raises(RuntimeError):
        region.grow(1)

    reloaded = MemoryManager.init(memory.snapshot())
    assert reloaded.memory_size(1) == 1
    assert reloaded.memory_buckets[1] == owned_after_reload
    assert reloaded.get(1).read(0, 4) == b"kept"

    # The region can still grow past the interrupted allocation
    assert reloaded.get(1).grow(1) == 1
    assert reloaded.memory_size(1) == 2
    assert reloaded.num_allocated_buckets == 2
