"""
Tests for the AI annotation client.
"""
import json
import unittest
from unittest.mock import MagicMock, patch

import requests

from iptc_writer.annotation_client import (
    AnnotationClient, AnnotationResult, apply_annotations, merge_annotation,
    MSG_NO_ENTRIES, MSG_NO_RESULTS, MSG_MALFORMED, MSG_TRANSPORT, MSG_REQUEST_FAILED, MSG_SUCCESS,
)
from iptc_writer.config import AppConfig
from iptc_writer.entry_store import EntryStore
from iptc_writer.models import RawFile, FileEntry
from iptc_writer.status import StatusState
from iptc_writer.tags import normalize_tags


def make_entry(name, title="", tags=""):
    raw = RawFile(name=name, data=name.encode(), size=len(name), last_modified=1, mime_type="image/jpeg")
    entry = FileEntry.create(raw)
    return entry.with_title(title).with_tags(tags)


def make_response(status_code=200, body=None, json_error=False):
    response = MagicMock()
    response.status_code = status_code
    response.ok = 200 <= status_code < 300
    if json_error:
        response.json.side_effect = ValueError("not json")
    else:
        response.json.return_value = body
    return response


class TestNormalizeTags(unittest.TestCase):
    """Test cases for tag normalization."""

    def test_list(self):
        self.assertEqual(normalize_tags([" sea ", "", 3, "sky"]), ["sea", "sky"])

    def test_string(self):
        self.assertEqual(normalize_tags("sea, sky\nsun ,, "), ["sea", "sky", "sun"])

    def test_cap(self):
        self.assertEqual(normalize_tags(list("abcdefg"), max_tags=5), list("abcde"))

    def test_other_types(self):
        self.assertEqual(normalize_tags(None), [])
        self.assertEqual(normalize_tags({"a": 1}), [])


class TestAnnotationClient(unittest.TestCase):
    """Test cases for the AnnotationClient class."""

    def setUp(self):
        self.config = AppConfig()
        self.config.annotation.max_batch_files = 3
        self.client = AnnotationClient(self.config)
        self.entries = [make_entry("a.jpg"), make_entry("b.png"), make_entry("c.webp")]

        self.post_patcher = patch('iptc_writer.annotation_client.requests.post')
        self.mock_post = self.post_patcher.start()

    def tearDown(self):
        self.post_patcher.stop()

    def test_empty_selection_is_not_sent(self):
        outcome = self.client.annotate([])
        self.assertTrue(outcome.status.is_error)
        self.assertEqual(outcome.status.message, MSG_NO_ENTRIES)
        self.mock_post.assert_not_called()

    def test_over_batch_limit_is_not_sent(self):
        outcome = self.client.annotate(self.entries + [make_entry("d.jpg")])
        self.assertTrue(outcome.status.is_error)
        self.assertIn("3", outcome.status.message)
        self.mock_post.assert_not_called()

    def test_request_carries_manifest_and_files_in_order(self):
        self.mock_post.return_value = make_response(body={"results": [
            {"id": e.id, "title": "t", "tags": ["x"]} for e in self.entries
        ]})

        self.client.annotate(self.entries)

        self.mock_post.assert_called_once()
        args, kwargs = self.mock_post.call_args
        self.assertEqual(args[0], self.config.annotation.api_url)
        manifest = json.loads(kwargs['data']['meta'])
        self.assertEqual(manifest, [{"id": e.id, "name": e.name} for e in self.entries])
        self.assertEqual([part[0] for part in kwargs['files']], ["files"] * 3)
        self.assertEqual([part[1][0] for part in kwargs['files']], ["a.jpg", "b.png", "c.webp"])
        self.assertEqual([part[1][2] for part in kwargs['files']], ["image/jpeg"] * 3)

    def test_full_coverage(self):
        self.mock_post.return_value = make_response(body={"results": [
            {"id": e.id, "title": f"Title {i}", "tags": "a, b"} for i, e in enumerate(self.entries)
        ]})

        outcome = self.client.annotate(self.entries)

        self.assertTrue(outcome.success)
        self.assertEqual(outcome.status.message, MSG_SUCCESS)
        self.assertEqual(outcome.missing, 0)
        self.assertEqual(outcome.results[self.entries[1].id].title, "Title 1")
        self.assertEqual(outcome.results[self.entries[1].id].tags, ["a", "b"])

    def test_partial_coverage_is_success_with_missing_count(self):
        a, b, c = self.entries
        self.mock_post.return_value = make_response(body={"results": [
            {"id": a.id, "title": "A", "tags": ["x"]},
            {"id": c.id, "title": "C", "tags": ["y"]},
        ]})

        outcome = self.client.annotate(self.entries)

        self.assertTrue(outcome.success)
        self.assertEqual(outcome.missing, 1)
        self.assertTrue(outcome.status.has_warning)
        self.assertIn("1 missing", outcome.status.message)
        self.assertNotIn(b.id, outcome.results)

    def test_provider_error_message(self):
        self.mock_post.return_value = make_response(400, {"error": "Too many files"})
        outcome = self.client.annotate(self.entries)
        self.assertTrue(outcome.status.is_error)
        self.assertEqual(outcome.status.message, "Too many files")

    def test_provider_error_without_body(self):
        self.mock_post.return_value = make_response(500, json_error=True)
        outcome = self.client.annotate(self.entries)
        self.assertEqual(outcome.status.message, MSG_REQUEST_FAILED)

    def test_empty_results(self):
        self.mock_post.return_value = make_response(body={"results": []})
        outcome = self.client.annotate(self.entries)
        self.assertEqual(outcome.status, StatusState.error(MSG_NO_RESULTS))

    def test_unparseable_success_body(self):
        self.mock_post.return_value = make_response(200, json_error=True)
        outcome = self.client.annotate(self.entries)
        self.assertEqual(outcome.status, StatusState.error(MSG_NO_RESULTS))

    def test_results_without_usable_ids(self):
        self.mock_post.return_value = make_response(body={"results": [
            {"id": 5, "title": "x"}, {"id": "unknown", "title": "y"}, "junk",
        ]})
        outcome = self.client.annotate(self.entries)
        self.assertEqual(outcome.status, StatusState.error(MSG_MALFORMED))

    def test_missing_ids_fall_back_to_manifest_position(self):
        a, b, c = self.entries
        self.mock_post.return_value = make_response(body={"results": [
            {"title": "First", "tags": ["x"]},
            {"id": c.id, "title": "Third", "tags": ["z"]},
        ]})

        outcome = self.client.annotate(self.entries)

        self.assertEqual(outcome.results[a.id].title, "First")
        self.assertEqual(outcome.results[c.id].title, "Third")
        self.assertEqual(outcome.missing, 1)

    def test_transport_failure(self):
        self.mock_post.side_effect = requests.ConnectionError("down")
        outcome = self.client.annotate(self.entries)
        self.assertEqual(outcome.status, StatusState.error(MSG_TRANSPORT))


class TestMerge(unittest.TestCase):
    """Test cases for merging annotation results."""

    def setUp(self):
        self.store = EntryStore()
        self.a = make_entry("a.jpg", "Old A", "old, a")
        self.b = make_entry("b.jpg", "Old B", "old, b")
        self.store.add([self.a, self.b])

    def test_merge_replaces_non_empty_values(self):
        merged = merge_annotation(self.a, AnnotationResult(self.a.id, "New", ["n1", "n2"]))
        self.assertEqual(merged.title, "New")
        self.assertEqual(merged.tags, "n1, n2")

    def test_merge_never_clears(self):
        entry = self.a.with_status(StatusState.success("done"))
        merged = merge_annotation(entry, AnnotationResult(self.a.id, "", []))
        self.assertEqual(merged.title, "Old A")
        self.assertEqual(merged.tags, "old, a")
        self.assertTrue(merged.write_status.is_idle)

    def test_unmatched_entry_untouched(self):
        self.store.update(self.b.id, lambda e: e.with_status(StatusState.success("done")))
        applied = apply_annotations(self.store, {self.a.id: AnnotationResult(self.a.id, "New", ["x"])})

        self.assertEqual(applied, 1)
        b = self.store.get(self.b.id)
        self.assertEqual((b.title, b.tags), ("Old B", "old, b"))
        self.assertTrue(b.write_status.is_success)

    def test_removed_entry_is_skipped(self):
        self.store.remove(self.a.id)
        applied = apply_annotations(self.store, {self.a.id: AnnotationResult(self.a.id, "New", ["x"])})
        self.assertEqual(applied, 0)


if __name__ == '__main__':
    unittest.main()
