"""Tests for multipart chunk planning."""

import math

import pytest

from fotofi.storage.chunking import CHUNK_SIZE, InvalidChunkPlanError, plan_chunks

MIB = 1024 * 1024


def test_default_chunk_size_is_ten_mib():
    assert CHUNK_SIZE == 10 * MIB


def test_plan_25_mib_file():
    """A 25 MiB file splits into 10 + 10 + 5 MiB parts."""
    plan = plan_chunks(25 * MIB)

    assert [chunk.part_number for chunk in plan] == [1, 2, 3]
    assert [chunk.length for chunk in plan] == [10 * MIB, 10 * MIB, 5 * MIB]
    assert plan[0].start == 0
    assert plan[-1].end == 25 * MIB


def test_plan_small_file_is_single_part():
    plan = plan_chunks(1234)

    assert len(plan) == 1
    assert plan[0].part_number == 1
    assert (plan[0].start, plan[0].end) == (0, 1234)


def test_plan_exact_multiple_has_no_empty_tail():
    plan = plan_chunks(20 * MIB)

    assert len(plan) == 2
    assert all(chunk.length == 10 * MIB for chunk in plan)


@pytest.mark.parametrize("file_size", [1, 999, 1000, 1001, 4096, 10_000])
def test_plan_covers_file_contiguously(file_size):
    plan = plan_chunks(file_size, chunk_size=1000)

    assert len(plan) == math.ceil(file_size / 1000)
    assert sum(chunk.length for chunk in plan) == file_size
    for previous, current in zip(plan, plan[1:]):
        assert current.start == previous.end
        assert current.part_number == previous.part_number + 1


@pytest.mark.parametrize("file_size", [0, -1])
def test_plan_rejects_empty_file(file_size):
    with pytest.raises(InvalidChunkPlanError):
        plan_chunks(file_size)


def test_plan_rejects_non_positive_chunk_size():
    with pytest.raises(ValueError):
        plan_chunks(100, chunk_size=0)
