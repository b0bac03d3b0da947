import json

import pytest
from polarion_client.core.batching import (
    ENVELOPE_OVERHEAD,
    OversizedItem,
    partition,
    plan_batches,
)
from polarion_client.core.codec import dumps, encode_document
from polarion_client.core.resource import Resource
from polarion_client.core.schema import ResourceSchema, attr

SCHEMA = ResourceSchema(resource_type="workitems", attributes=(attr("title"),))


def _sized(items):
    return lambda item: items[item]


def test_envelope_overhead_is_empty_data_array():
    assert ENVELOPE_OVERHEAD == len(dumps({"data": []})) == 11


def test_two_items_that_do_not_fit_together_split():
    sizes = {"a": 40, "b": 70}

    batches = partition(["a", "b"], 10, 100, size_of=_sized(sizes), overhead=10)

    assert [b.items for b in batches] == [["a"], ["b"]]
    assert [b.size for b in batches] == [50, 80]


def test_items_that_fit_share_a_batch_with_separator():
    sizes = {"a": 40, "b": 49}

    batches = partition(["a", "b"], 10, 100, size_of=_sized(sizes), overhead=10)

    assert [b.items for b in batches] == [["a", "b"]]
    assert batches[0].size == 100


def test_count_limit_starts_new_batch():
    items = list(range(7))

    batches = partition(items, 3, 10_000, size_of=lambda _: 5)

    assert [len(b) for b in batches] == [3, 3, 1]


def test_oversized_items_are_skipped_by_partition():
    sizes = {"a": 10, "huge": 95, "b": 10}

    batches = partition(
        ["a", "huge", "b"], 10, 100, size_of=_sized(sizes), overhead=10
    )

    assert [item for b in batches for item in b.items] == ["a", "b"]


def test_plan_batches_reports_oversized_items():
    sizes = {"a": 10, "huge": 95, "b": 10, "huger": 500}

    plan = plan_batches(
        ["a", "huge", "b", "huger"], 10, 100, size_of=_sized(sizes), overhead=10
    )

    assert plan.oversized == [OversizedItem(index=1, size=95), OversizedItem(index=3, size=500)]
    assert plan.item_count == 2


def test_empty_input_yields_no_batches():
    plan = plan_batches([], 5, 100, size_of=len)

    assert plan.batches == []
    assert plan.oversized == []


@pytest.mark.parametrize("max_count,max_bytes", [(0, 100), (5, 0)])
def test_limits_must_be_positive(max_count, max_bytes):
    with pytest.raises(ValueError):
        partition(["a"], max_count, max_bytes, size_of=len)


def test_partition_invariants_on_real_resources():
    titles = [("x" * (i * 37 % 300)) + str(i) for i in range(60)]
    items = [Resource.new(SCHEMA, title=t) for t in titles]
    max_count, max_bytes = 7, 1200

    batches = partition(items, max_count, max_bytes)

    for batch in batches:
        body = dumps(encode_document(batch.items))
        assert len(batch) <= max_count
        assert len(body) == batch.size
        assert batch.size <= max_bytes

    flattened = [r.attributes.get("title") for b in batches for r in b.items]
    assert flattened == titles


def test_batch_size_matches_posted_body():
    items = [Resource.new(SCHEMA, title="tést"), Resource.new(SCHEMA, title="b")]

    (batch,) = partition(items, 10, 1000)

    body = dumps(encode_document(batch.items))
    assert batch.size == len(body)
    assert json.loads(body)["data"][0]["attributes"]["title"] == "tést"
