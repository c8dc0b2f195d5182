"""
Tests for selection admission and the entry store.
"""
import unittest

from iptc_writer.dedup_guard import (
    admit_files, filter_supported, ALL_ADMITTED, PARTIALLY_ADMITTED, NONE_DUPLICATE, NONE_CAPACITY,
    NOTHING_SELECTED,
)
from iptc_writer.entry_store import EntryStore
from iptc_writer.models import RawFile, FileEntry, get_file_signature


def make_file(name, size=100, mtime=1000, mime_type="image/jpeg"):
    return RawFile(name=name, data=b"x" * size, size=size, last_modified=mtime, mime_type=mime_type)


class TestDedupGuard(unittest.TestCase):
    """Test cases for admit_files."""

    def test_signature_format(self):
        self.assertEqual(get_file_signature(make_file("a.jpg", 10, 5)), "a.jpg-10-5")
        self.assertEqual(get_file_signature(make_file("", 10, 5)), "image-10-5")

    def test_filter_supported(self):
        files = [
            make_file("a.jpg"),
            make_file("b.PNG", mime_type=None),
            make_file("c.webp", mime_type="image/x-webp"),
            make_file("d.gif", mime_type="image/gif"),
            make_file("noext", mime_type=None),
            make_file("e.bin", mime_type="image/png"),
        ]
        supported, unsupported = filter_supported(files)
        self.assertEqual([f.name for f in supported], ["a.jpg", "b.PNG", "c.webp", "e.bin"])
        self.assertEqual([f.name for f in unsupported], ["d.gif", "noext"])

    def test_all_admitted(self):
        result = admit_files([make_file("a.jpg"), make_file("b.jpg")], [], capacity=5)
        self.assertEqual(len(result.admitted), 2)
        self.assertEqual(result.outcome, ALL_ADMITTED)

    def test_duplicate_within_one_selection(self):
        files = [make_file("a.jpg"), make_file("b.jpg"), make_file("c.jpg"), make_file("a.jpg")]
        result = admit_files(files, [], capacity=10)
        self.assertEqual([f.name for f in result.admitted], ["a.jpg", "b.jpg", "c.jpg"])
        self.assertEqual(len(result.duplicates), 1)
        self.assertEqual(result.outcome, PARTIALLY_ADMITTED)

    def test_duplicate_across_selections(self):
        existing = [FileEntry.create(make_file("a.jpg"))]
        result = admit_files([make_file("a.jpg")], existing, capacity=10)
        self.assertEqual(result.admitted, [])
        self.assertEqual(result.outcome, NONE_DUPLICATE)

    def test_same_name_different_size_is_not_duplicate(self):
        existing = [FileEntry.create(make_file("a.jpg", size=100))]
        result = admit_files([make_file("a.jpg", size=101)], existing, capacity=10)
        self.assertEqual(len(result.admitted), 1)

    def test_capacity_caps_admission(self):
        existing = [FileEntry.create(make_file(f"e{i}.jpg")) for i in range(3)]
        files = [make_file(f"n{i}.jpg") for i in range(4)]
        result = admit_files(files, existing, capacity=5)
        self.assertEqual([f.name for f in result.admitted], ["n0.jpg", "n1.jpg"])
        self.assertEqual(len(result.over_capacity), 2)
        self.assertEqual(result.outcome, PARTIALLY_ADMITTED)

    def test_store_full(self):
        existing = [FileEntry.create(make_file(f"e{i}.jpg")) for i in range(2)]
        result = admit_files([make_file("n.jpg")], existing, capacity=2)
        self.assertTrue(result.store_full)
        self.assertEqual(result.outcome, NONE_CAPACITY)

    def test_only_unsupported(self):
        result = admit_files([make_file("a.gif", mime_type="image/gif")], [], capacity=2)
        self.assertTrue(result.format_rejected)
        self.assertEqual(result.outcome, NOTHING_SELECTED)

    def test_never_exceeds_capacity(self):
        for current in range(0, 6):
            for selected in range(0, 8):
                existing = [FileEntry.create(make_file(f"e{i}.jpg")) for i in range(current)]
                files = [make_file(f"n{i}.jpg") for i in range(selected)]
                result = admit_files(files, existing, capacity=5)
                self.assertLessEqual(current + len(result.admitted), max(5, current))
                self.assertEqual(len(result.admitted), min(selected, max(0, 5 - current)))


class TestEntryStore(unittest.TestCase):
    """Test cases for the EntryStore class."""

    def setUp(self):
        self.store = EntryStore()
        self.entries = [FileEntry.create(make_file(f"{n}.jpg")) for n in "abc"]
        self.store.add(self.entries)

    def test_insertion_order(self):
        self.assertEqual(self.store.ids(), [e.id for e in self.entries])
        self.assertEqual([e.name for e in self.store], ["a.jpg", "b.jpg", "c.jpg"])

    def test_update_only_target(self):
        target = self.entries[1]
        updated = self.store.update(target.id, lambda e: e.with_title("New"))
        self.assertEqual(updated.title, "New")
        self.assertEqual(self.store.get(self.entries[0].id).title, "")
        self.assertEqual(self.store.get(self.entries[2].id).title, "")

    def test_update_missing_is_noop(self):
        self.assertIsNone(self.store.update("missing", lambda e: e.with_title("x")))
        self.assertEqual(len(self.store), 3)

    def test_update_cannot_change_id(self):
        from dataclasses import replace
        with self.assertRaises(ValueError):
            self.store.update(self.entries[0].id, lambda e: replace(e, id="other"))

    def test_remove_releases_preview(self):
        target = self.entries[0]
        self.assertTrue(self.store.remove(target.id))
        self.assertTrue(target.preview.released)
        self.assertFalse(self.store.remove(target.id))
        self.assertEqual(len(self.store), 2)

    def test_clear_releases_all_previews_once(self):
        self.assertEqual(self.store.clear(), 3)
        self.assertEqual(len(self.store), 0)
        for entry in self.entries:
            self.assertTrue(entry.preview.released)
        self.assertEqual(self.store.clear(), 0)

    def test_edits_reset_write_status(self):
        from iptc_writer.status import StatusState
        for status in (StatusState.success("done"), StatusState.error("bad"), StatusState.loading("...")):
            entry_id = self.entries[0].id
            self.store.update(entry_id, lambda e, s=status: e.with_status(s))
            self.store.update(entry_id, lambda e: e.with_title("t"))
            self.assertTrue(self.store.get(entry_id).write_status.is_idle)

            self.store.update(entry_id, lambda e, s=status: e.with_status(s))
            self.store.update(entry_id, lambda e: e.with_tags("x, y"))
            self.assertTrue(self.store.get(entry_id).write_status.is_idle)


if __name__ == '__main__':
    unittest.main()
