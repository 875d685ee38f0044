"""Tests for tablesink.sorting module."""

from tablesink.sorting import bucket_sort


class TestBucketSort:
    """Tests for bucket_sort()."""

    def test_groups_by_key(self):
        buckets = bucket_sort(["apple", "avocado", "banana", "blueberry", "cherry"], lambda s: s[0])
        assert buckets == {
            "a": ["apple", "avocado"],
            "b": ["banana", "blueberry"],
            "c": ["cherry"],
        }

    def test_preserves_relative_order_per_bucket(self):
        items = [(i, i % 3) for i in range(30)]
        buckets = bucket_sort(items, lambda item: item[1])
        for key, bucket in buckets.items():
            assert [i for i, _ in bucket] == [i for i, k in items if k == key]

    def test_covers_every_item_exactly_once(self):
        items = list(range(100))
        buckets = bucket_sort(items, lambda i: i % 7)
        flattened = sorted(i for bucket in buckets.values() for i in bucket)
        assert flattened == items

    def test_does_not_mutate_input(self):
        items = [3, 1, 2, 1]
        bucket_sort(items, lambda i: i)
        assert items == [3, 1, 2, 1]

    def test_empty_input(self):
        assert bucket_sort([], lambda i: i) == {}

    def test_accepts_iterators(self):
        buckets = bucket_sort(iter(["x1", "y1", "x2"]), lambda s: s[0])
        assert buckets == {"x": ["x1", "x2"], "y": ["y1"]}

    def test_key_function_called_once_per_item(self):
        calls = []

        def key_of(item):
            calls.append(item)
            return item % 2

        bucket_sort([1, 2, 3, 4], key_of)
        assert calls == [1, 2, 3, 4]
