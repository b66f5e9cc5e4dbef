import pytest

from library_records_api.app.stable import (
    CorruptedStoreError,
    GrowFailedError,
    MemoryManager,
    StableCell,
    U64Codec,
    VectorMemory,
)


def test_cell_starts_with_default_and_returns_old_value_on_set() -> None:
    memory = VectorMemory()
    cell = StableCell(memory, U64Codec(), 0)
    assert cell.get() == 0
    assert cell.set(41) == 0
    assert cell.set(42) == 41
    assert cell.get() == 42


def test_cell_reloads_last_persisted_value() -> None:
    memory = VectorMemory()
    manager = MemoryManager.init(memory, bucket_size_in_pages=1)
    StableCell(manager.get(0), U64Codec(), 0).set(7)

    reloaded = MemoryManager.init(memory)
    # The default is ignored once the region holds a value
    assert StableCell(reloaded.get(0), U64Codec(), 100).get() == 7


def test_cell_init_fails_when_region_cannot_grow() -> None:
    with pytest.raises(GrowFailedError):
        StableCell(VectorMemory(max_pages=0), U64Codec(), 0)


def test_cell_detects_foreign_content() -> None:
    memory = VectorMemory()
    memory.grow(1)
    memory.write(0, b"BTR")
    with pytest.raises(CorruptedStoreError):
        StableCell(memory, U64Codec(), 0)


def test_cell_rejects_values_outside_u64() -> None:
    cell = StableCell(VectorMemory(), U64Codec(), 0)
    with pytest.raises(OverflowError):
        cell.set(2**64)
    assert cell.get() == 0
