"""Unit tests for processing order resolution."""

from app.models.record import Candidate, OrderState, SortKey
from app.pipeline.intake import intake
from app.pipeline.order import resolve
from app.pipeline.store import ImageStore


def build(*specs):
    """specs: (name, size, last_modified)"""
    cands = [Candidate(name=n, size=s, source=b"x", last_modified=t) for n, s, t in specs]
    return intake(ImageStore(), cands).store


def names(records):
    return [r.name for r in records]


class TestSortedOrder:
    def test_natural_is_insertion(self):
        store = build(("b.jpg", 1, None), ("a.png", 2, None), ("c.heic", 3, None))
        assert names(resolve(store)) == ["b.jpg", "a.png", "c.heic"]

    def test_by_name(self):
        store = build(("b.jpg", 1, None), ("a.png", 2, None), ("c.heic", 3, None))
        store = store.with_sort_key(SortKey.NAME)
        assert names(resolve(store)) == ["a.png", "b.jpg", "c.heic"]

    def test_by_name_ignores_case(self):
        store = build(("B.jpg", 1, None), ("a.jpg", 2, None), ("C.jpg", 3, None))
        assert names(resolve(store, OrderState(sort_key=SortKey.NAME))) == ["a.jpg", "B.jpg", "C.jpg"]

    def test_by_name_ties_keep_insertion(self):
        store = build(("A.jpg", 1, None), ("a.jpg", 2, None))
        resolved = resolve(store, OrderState(sort_key=SortKey.NAME))
        assert [r.size for r in resolved] == [1, 2]

    def test_by_name_non_ascii(self):
        store = build(
            ("ж.jpg", 1, None), ("ё.jpg", 2, None), ("е.jpg", 3, None),
            ("Élan.jpg", 4, None), ("zeta.jpg", 5, None), ("apple.jpg", 6, None),
        )
        assert names(resolve(store, OrderState(sort_key=SortKey.NAME))) == [
            "apple.jpg", "Élan.jpg", "zeta.jpg", "е.jpg", "ё.jpg", "ж.jpg",
        ]

    def test_by_name_cyrillic_ignores_case(self):
        store = build(("Б.jpg", 1, None), ("а.jpg", 2, None), ("В.jpg", 3, None))
        assert names(resolve(store, OrderState(sort_key=SortKey.NAME))) == ["а.jpg", "Б.jpg", "В.jpg"]

    def test_by_date(self):
        store = build(("x.jpg", 1, 300), ("y.jpg", 2, 100), ("z.jpg", 3, 200))
        assert names(resolve(store, OrderState(sort_key=SortKey.DATE))) == ["y.jpg", "z.jpg", "x.jpg"]

    def test_missing_date_sorts_first(self):
        store = build(("x.jpg", 1, 300), ("y.jpg", 2, None), ("z.jpg", 3, 0))
        assert names(resolve(store, OrderState(sort_key=SortKey.DATE))) == ["y.jpg", "z.jpg", "x.jpg"]


class TestExplicitOrder:
    def test_explicit_wins_over_sort(self):
        store = build(("a.jpg", 1, None), ("b.jpg", 2, None), ("c.jpg", 3, None))
        store = store.with_sort_key(SortKey.NAME)
        ids = store.identities
        store = store.reorder([ids[2], ids[0], ids[1]])
        assert names(resolve(store)) == ["c.jpg", "a.jpg", "b.jpg"]

    def test_not_honored_after_remove(self):
        store = build(("a.jpg", 1, None), ("b.jpg", 2, None), ("c.jpg", 3, None))
        ids = store.identities
        store = store.reorder([ids[2], ids[1], ids[0]]).remove(ids[1])
        assert names(resolve(store)) == ["a.jpg", "c.jpg"]

    def test_not_honored_after_remove_falls_back_to_sort(self):
        store = build(("c.jpg", 1, None), ("a.jpg", 2, None), ("b.jpg", 3, None))
        store = store.with_sort_key(SortKey.NAME)
        ids = store.identities
        store = store.reorder([ids[2], ids[0], ids[1]]).remove(ids[0])
        assert names(resolve(store)) == ["a.jpg", "b.jpg"]

    def test_wrong_cardinality_ignored(self):
        store = build(("a.jpg", 1, None), ("b.jpg", 2, None))
        state = OrderState().with_explicit((store.identities[1],))
        assert names(resolve(store, state)) == ["a.jpg", "b.jpg"]

    def test_unknown_identity_falls_back(self):
        store = build(("b.jpg", 1, None), ("a.jpg", 2, None))
        state = OrderState(sort_key=SortKey.NAME).with_explicit((store.identities[0], "ghost"))
        assert names(resolve(store, state)) == ["a.jpg", "b.jpg"]

    def test_repeated_identity_falls_back(self):
        store = build(("b.jpg", 1, None), ("a.jpg", 2, None))
        ident = store.identities[1]
        state = OrderState().with_explicit((ident, ident))
        assert names(resolve(store, state)) == ["b.jpg", "a.jpg"]
