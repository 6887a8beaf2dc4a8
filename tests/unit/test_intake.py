"""Unit tests for intake validation, de-duplication and the record store."""

import pytest

from app.errors import EmptyFileError, InvalidRotationError, RecordNotFoundError, UnsupportedTypeError
from app.models.record import Candidate, SortKey
from app.pipeline.intake import intake, validate_candidate
from app.pipeline.store import ImageStore


def cand(name, size=10, last_modified=None):
    return Candidate(name=name, size=size, source=b"x" * size, last_modified=last_modified)


class TestValidateCandidate:
    @pytest.mark.parametrize("name", ["a.jpg", "b.JPEG", "c.png", "d.HEIC", "e.heif", ".jpg", "scan.v2.png"])
    def test_allowed_extensions(self, name):
        validate_candidate(cand(name))

    @pytest.mark.parametrize("name", ["notes.txt", "anim.gif", "noext", "jpg", ""])
    def test_unsupported_type(self, name):
        with pytest.raises(UnsupportedTypeError):
            validate_candidate(cand(name))

    def test_empty_file(self):
        with pytest.raises(EmptyFileError):
            validate_candidate(Candidate(name="blank.jpg", size=0, source=b""))

    def test_type_checked_before_size(self):
        with pytest.raises(UnsupportedTypeError):
            validate_candidate(Candidate(name="blank.txt", size=0, source=b""))


class TestIntake:
    def test_accepts_in_arrival_order(self):
        report = intake(ImageStore(), [cand("b.jpg"), cand("a.png"), cand("c.heic")])
        assert [r.name for r in report.store] == ["b.jpg", "a.png", "c.heic"]
        assert [r.sequence for r in report.store] == [0, 1, 2]
        assert all(r.rotation == 0 for r in report.store)

    def test_same_pair_twice_yields_one_record(self):
        report = intake(ImageStore(), [cand("a.jpg", 10), cand("a.jpg", 10)])
        assert len(report.store) == 1
        assert report.duplicates == ["a.jpg"]
        assert report.rejected == []

    def test_duplicate_against_existing_store(self):
        first = intake(ImageStore(), [cand("a.jpg", 10)]).store
        second = intake(first, [cand("a.jpg", 10), cand("a.jpg", 11)])
        assert len(second.store) == 2
        assert second.duplicates == ["a.jpg"]

    def test_rejections_do_not_abort_batch(self):
        report = intake(
            ImageStore(),
            [cand("x.txt"), Candidate(name="empty.jpg", size=0, source=b""), cand("ok.png")],
        )
        assert [r.name for r in report.store] == ["ok.png"]
        codes = [err.code for _, err in report.rejected]
        assert codes == ["UNSUPPORTED_TYPE", "EMPTY_FILE"]
        assert [r.error_code for r in report.rejections()] == codes

    def test_input_store_untouched(self):
        store = ImageStore()
        intake(store, [cand("a.jpg")])
        assert len(store) == 0

    def test_keeps_timestamp(self):
        report = intake(ImageStore(), [cand("a.jpg", last_modified=1234)])
        assert report.accepted[0].last_modified == 1234


class TestImageStore:
    @pytest.fixture
    def store(self):
        return intake(ImageStore(), [cand("a.jpg", 1), cand("b.jpg", 2), cand("c.jpg", 3)]).store

    def test_remove(self, store):
        target = store.records[1].identity
        smaller = store.remove(target)
        assert [r.name for r in smaller] == ["a.jpg", "c.jpg"]
        assert target not in smaller

    def test_remove_unknown(self, store):
        with pytest.raises(RecordNotFoundError):
            store.remove("nope")

    def test_sequence_keeps_growing_after_remove(self, store):
        store = store.remove(store.records[2].identity)
        store = store.add(cand("d.jpg", 4))
        assert store.records[-1].sequence == 3

    def test_rotate_advances_by_90(self, store):
        ident = store.records[0].identity
        for expected in (90, 180, 270, 0):
            store = store.rotate(ident)
            assert store.get(ident).rotation == expected

    def test_rotate_explicit_value(self, store):
        ident = store.records[0].identity
        assert store.rotate(ident, 270).get(ident).rotation == 270

    def test_rotate_invalid(self, store):
        with pytest.raises(InvalidRotationError):
            store.rotate(store.records[0].identity, 45)

    def test_add_and_remove_clear_explicit_order(self, store):
        ordered = store.reorder(reversed(store.identities))
        assert ordered.order.is_explicit
        assert not ordered.add(cand("d.jpg", 4)).order.is_explicit
        assert not ordered.remove(store.records[0].identity).order.is_explicit

    def test_rotate_keeps_explicit_order(self, store):
        ordered = store.reorder(reversed(store.identities))
        assert ordered.rotate(store.records[0].identity).order.is_explicit

    def test_with_sort_key(self, store):
        s = store.reorder(store.identities).with_sort_key(SortKey.NAME)
        assert s.order.sort_key == SortKey.NAME
        assert not s.order.is_explicit
