"""Unit tests for chunk planning."""

import pytest
from cloudfiles.client.exceptions import ChunkPlanError, MultipartNotApplicable
from cloudfiles.client.planner import ChunkPlan, ChunkRange, UploadSource, plan_chunks
from cloudfiles.utils.constants import MIB


def test_plan_splits_remainder_into_final_part():
    """12 MiB at 5 MiB per chunk is 5 + 5 + 2."""
    plan = plan_chunks(12 * MIB, 5 * MIB)

    assert plan.total_parts == 3
    assert [chunk.length for chunk in plan.ranges] == [5 * MIB, 5 * MIB, 2 * MIB]
    assert [chunk.part_number for chunk in plan.ranges] == [1, 2, 3]
    assert sum(chunk.length for chunk in plan.ranges) == 12 * MIB


def test_plan_exact_multiple_has_full_final_part():
    plan = plan_chunks(10 * MIB, 5 * MIB)

    assert plan.total_parts == 2
    assert plan.ranges[-1].length == 5 * MIB


def test_plan_single_part_when_file_equals_chunk():
    plan = plan_chunks(5 * MIB, 5 * MIB)

    assert plan.total_parts == 1
    assert plan.is_final(plan.ranges[0])


def test_plan_ranges_are_contiguous():
    plan = plan_chunks(23 * MIB + 17, 6 * MIB)

    assert plan.ranges[0].start == 0
    for previous, current in zip(plan.ranges, plan.ranges[1:]):
        assert current.start == previous.end
    assert plan.ranges[-1].end == 23 * MIB + 17


def test_small_file_is_not_multipart():
    """Files under one chunk go through single-shot upload."""
    with pytest.raises(MultipartNotApplicable) as exc_info:
        plan_chunks(3 * MIB, 5 * MIB)

    assert exc_info.value.file_size == 3 * MIB
    assert exc_info.value.chunk_size == 5 * MIB


@pytest.mark.parametrize("file_size", [0, -1])
def test_empty_file_rejected(file_size):
    with pytest.raises(ValueError):
        plan_chunks(file_size, 5 * MIB)


def test_chunk_below_backend_minimum_rejected():
    with pytest.raises(ValueError, match="minimum part size"):
        plan_chunks(20 * MIB, 4 * MIB)


def test_too_many_parts_rejected():
    with pytest.raises(ValueError, match="at most 10000"):
        plan_chunks(5 * MIB * 10000 + 1, 5 * MIB)


def test_validate_rejects_short_non_final_part():
    plan = ChunkPlan(
        file_size=9 * MIB,
        chunk_size=5 * MIB,
        ranges=(
            ChunkRange(part_number=1, start=0, end=4 * MIB),
            ChunkRange(part_number=2, start=4 * MIB, end=9 * MIB),
        ),
    )

    with pytest.raises(ChunkPlanError, match="non-final"):
        plan.validate()


def test_validate_rejects_gap():
    plan = ChunkPlan(
        file_size=10 * MIB,
        chunk_size=5 * MIB,
        ranges=(
            ChunkRange(part_number=1, start=0, end=5 * MIB),
            ChunkRange(part_number=2, start=5 * MIB + 1, end=10 * MIB),
        ),
    )

    with pytest.raises(ChunkPlanError, match="starts at"):
        plan.validate()


def test_upload_source_reads_ranges_from_disk(tmp_path):
    path = tmp_path / "video.mp4"
    path.write_bytes(b"0123456789")
    source = UploadSource.coerce(path)

    try:
        assert source.name == "video.mp4"
        assert source.size == 10
        assert source.read(2, 5) == b"234"
        assert source.read_all() == b"0123456789"
    finally:
        source.close()


def test_upload_source_from_bytes():
    source = UploadSource.coerce(b"abcdef")

    assert source.size == 6
    assert source.read(4, 6) == b"ef"
    assert UploadSource.coerce(source) is source


def test_upload_source_requires_exactly_one_input():
    with pytest.raises(ValueError):
        UploadSource()
    with pytest.raises(ValueError):
        UploadSource(data=b"x", path="x.bin")
