"""Tests for ReactiveSet: set facades."""

from dataclasses import dataclass

import pytest

from sapwood import Computed, ReactiveObject, reactive, to_raw


@dataclass(eq=False)
class Tag:
    label: str


class TestSet:
    def test_membership_depends_on_element(self):
        tags = reactive({"a"})
        has_x = Computed(lambda: "x" in tags)
        assert has_x.value is False

        tags.add("y")
        assert not has_x.dirty
        tags.add("x")
        assert has_x.value is True

    def test_size_tracks_key_set(self):
        tags = reactive({"a"})
        size = Computed(lambda: len(tags))
        assert size.value == 1
        tags.add("b")
        assert size.value == 2
        tags.discard("a")
        assert size.value == 1

    def test_idempotent_add_and_discard(self):
        tags = reactive({"a"})
        size = Computed(lambda: len(tags))
        size.value
        tags.add("a")
        tags.discard("missing")
        assert not size.dirty

    def test_clear_notifies_every_element(self):
        tags = reactive({"a", "b"})
        has_a = Computed(lambda: "a" in tags)
        has_a.value
        tags.clear()
        assert has_a.value is False

    def test_iteration_wraps_elements(self):
        tag = Tag("urgent")
        tags = reactive({tag})
        (item,) = list(tags)
        assert isinstance(item, ReactiveObject)
        assert to_raw(item) is tag
        assert item in tags

        label = Computed(lambda: [t.label for t in tags])
        assert label.value == ["urgent"]
        item.label = "later"
        assert label.value == ["later"]

    def test_set_algebra_returns_plain_sets(self):
        tags = reactive({"a", "b"})
        assert tags | {"c"} == {"a", "b", "c"}
        assert type(tags & {"a"}) is set
        assert tags - {"a"} == {"b"}

    def test_remove_missing_raises(self):
        tags = reactive(set())
        with pytest.raises(KeyError):
            tags.remove("nope")


class TestSetApi:
    def test_update(self):
        tags = reactive({"a"})
        has_b = Computed(lambda: "b" in tags)
        has_b.value
        tags.update({"b"}, ["c"])
        assert has_b.value is True
        assert to_raw(tags) == {"a", "b", "c"}

    def test_algebra_methods(self):
        tags = reactive({"a", "b"})
        assert tags.union({"c"}) == {"a", "b", "c"}
        assert tags.intersection({"b", "z"}) == {"b"}
        assert tags.difference({"a"}) == {"b"}
        assert tags.symmetric_difference({"b", "c"}) == {"a", "c"}
        assert tags.issubset({"a", "b", "c"})
        assert tags.issuperset({"a"})
        assert type(tags.copy()) is set

    def test_algebra_is_tracked(self):
        tags = reactive({"a"})
        merged = Computed(lambda: tags.union({"z"}))
        merged.value
        tags.add("b")
        assert merged.value == {"a", "b", "z"}

    def test_in_place_updates(self):
        tags = reactive({"a", "b", "c"})
        size = Computed(lambda: len(tags))
        size.value

        tags.intersection_update({"a", "b"})
        assert size.value == 2
        tags.difference_update({"a"})
        assert to_raw(tags) == {"b"}
        tags.symmetric_difference_update({"b", "d"})
        assert to_raw(tags) == {"d"}
        assert size.value == 1
