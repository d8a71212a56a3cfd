import tempfile
import unittest
from pathlib import Path

from agent_pulse.storage.paths import PathGuardError, assert_allowed_path
from agent_pulse.storage.record_store import FileRecordStore
from agent_pulse.storage.records import (
    RecordRead,
    StoredMessage,
    StoredPart,
    StoredSession,
    iter_valid,
)
from agent_pulse.tests.storage_fixtures import StorageTestCase


class RecordShapeTests(unittest.TestCase):
    def test_message_requires_string_id(self) -> None:
        self.assertIsNone(StoredMessage.from_raw({"id": 7}))
        self.assertIsNone(StoredMessage.from_raw({"sessionID": "ses_1"}))
        message = StoredMessage.from_raw({"id": "msg_1", "agent": "Atlas", "time": {"created": 1500}})
        assert message is not None
        self.assertEqual(message.created, 1500)
        self.assertEqual(message.agent, "Atlas")

    def test_message_non_numeric_created_is_treated_as_missing(self) -> None:
        for time_block in ({"created": "bad"}, {"created": True}, "yesterday", None):
            message = StoredMessage.from_raw({"id": "msg_1", "time": time_block})
            assert message is not None
            self.assertIsNone(message.created)
            self.assertEqual(message.created_sort_key, float("-inf"))

    def test_non_finite_times_are_treated_as_missing(self) -> None:
        for value in (float("nan"), float("inf"), float("-inf")):
            message = StoredMessage.from_raw({"id": "msg_1", "time": {"created": value}})
            session = StoredSession.from_raw({"id": "ses_1", "time": {"updated": value}})
            assert message is not None and session is not None
            self.assertIsNone(message.created)
            self.assertIsNone(session.updated)

    def test_session_keeps_string_parent_and_numeric_updated(self) -> None:
        session = StoredSession.from_raw({"id": "ses_c", "parentID": "ses_main", "time": {"updated": 9000}})
        assert session is not None
        self.assertEqual(session.parent_id, "ses_main")
        self.assertEqual(session.updated, 9000)

        orphan = StoredSession.from_raw({"id": "ses_d", "parentID": 12})
        assert orphan is not None
        self.assertIsNone(orphan.parent_id)
        self.assertIsNone(orphan.updated)

    def test_part_tool_call_requires_call_id_and_tool(self) -> None:
        full = StoredPart.from_raw({"type": "tool", "callID": "call_1", "tool": "bash"})
        no_call = StoredPart.from_raw({"type": "tool", "tool": "bash"})
        text = StoredPart.from_raw({"type": "text"})
        assert full is not None and no_call is not None and text is not None
        self.assertTrue(full.is_tool_call)
        self.assertTrue(no_call.is_tool)
        self.assertFalse(no_call.is_tool_call)
        self.assertFalse(text.is_tool)

    def test_part_ignores_non_dict_state(self) -> None:
        part = StoredPart.from_raw({"type": "tool", "callID": "c", "tool": "t", "state": "done"})
        assert part is not None
        self.assertEqual(part.state, {})

    def test_iter_valid_skips_failed_and_invalid_reads(self) -> None:
        reads = [
            RecordRead.success("a", {"id": "a"}),
            RecordRead.failure("b", "invalid json"),
            RecordRead.success("c", {"id": 3}),
            RecordRead.success("d", {"id": "d"}),
        ]
        skipped: list[RecordRead] = []
        messages = list(iter_valid(reads, StoredMessage.from_raw, on_skip=skipped.append))
        self.assertEqual([message.id for message in messages], ["a", "d"])
        self.assertEqual([read.record_id for read in skipped], ["b", "c"])
        self.assertFalse(skipped[0].ok)
        self.assertEqual(skipped[0].error, "invalid json")


class FileRecordStoreTests(StorageTestCase):
    def test_absent_collection_lists_empty(self) -> None:
        self.assertFalse(self.store.has_collection("message", "ses_missing"))
        self.assertEqual(self.store.list_entries("message", "ses_missing"), [])
        self.assertEqual(self.store.list_entries("nope", "anything"), [])

    def test_lists_only_json_entries_sorted(self) -> None:
        self.write_message("ses_1", "msg_b", created=1)
        self.write_message("ses_1", "msg_a", created=2)
        (self.root / "message" / "ses_1" / "notes.txt").write_text("x", encoding="utf-8")
        self.assertEqual(self.store.list_entries("message", "ses_1"), ["msg_a", "msg_b"])

    def test_read_record_reports_failures_without_raising(self) -> None:
        self.write_part("msg_1", "part_ok", {"type": "tool"})
        self.write_part("msg_1", "part_bad", "{not json")
        self.write_part("msg_1", "part_list", [1, 2])

        self.assertTrue(self.store.read_record("part", "msg_1", "part_ok").ok)
        bad = self.store.read_record("part", "msg_1", "part_bad")
        self.assertFalse(bad.ok)
        self.assertIn("invalid json", bad.error)
        self.assertFalse(self.store.read_record("part", "msg_1", "part_list").ok)
        self.assertFalse(self.store.read_record("part", "msg_1", "part_missing").ok)

    def test_read_record_rejects_non_finite_literals(self) -> None:
        self.write_part("msg_1", "part_nan", '{"id": "p", "time": {"created": NaN}}')
        self.write_part("msg_1", "part_inf", '{"id": "p", "time": {"created": -Infinity}}')
        for record_id in ("part_nan", "part_inf"):
            read = self.store.read_record("part", "msg_1", record_id)
            self.assertFalse(read.ok)
            self.assertIn("invalid json", read.error)

    def test_modified_time_uses_mtime_and_zero_sentinel(self) -> None:
        self.write_message("ses_1", "msg_1", created=1, mtime_s=1_700_000_000)
        self.assertEqual(self.store.modified_time("message", "ses_1", "msg_1"), 1_700_000_000_000.0)
        self.assertEqual(self.store.modified_time("message", "ses_1", "msg_missing"), 0.0)

    def test_message_collection_falls_back_to_nested_layout(self) -> None:
        self._write(self.root / "message" / "proj" / "ses_nested" / "msg_1.json", {"id": "msg_1"})
        self.assertTrue(self.store.has_collection("message", "ses_nested"))
        self.assertEqual(self.store.list_entries("message", "ses_nested"), ["msg_1"])
        self.assertEqual(
            self.store.collection_path("message", "ses_nested"),
            self.root / "message" / "proj" / "ses_nested",
        )

    def test_nested_message_collection_is_resolved_once_per_store(self) -> None:
        nested = self.root / "message" / "proj" / "ses_nested"
        self._write(nested / "msg_1.json", {"id": "msg_1"})
        self.assertEqual(self.store.collection_path("message", "ses_nested"), nested)

        # A later sibling that would sort first is not picked up by the same store.
        self._write(self.root / "message" / "aaa" / "ses_nested" / "msg_2.json", {"id": "msg_2"})
        self.assertEqual(self.store.collection_path("message", "ses_nested"), nested)
        self.assertEqual(self.store.list_entries("message", "ses_nested"), ["msg_1"])

        fresh = FileRecordStore(self.root)
        self.assertEqual(fresh.list_entries("message", "ses_nested"), ["msg_2"])

    def test_list_collections(self) -> None:
        self.write_session("ses_a", project_id="proj_a")
        self.write_session("ses_b", project_id="proj_b")
        self.assertEqual(self.store.list_collections("session"), ["proj_a", "proj_b"])


class PathGuardTests(unittest.TestCase):
    def setUp(self) -> None:
        tmpdir = tempfile.TemporaryDirectory()
        self.addCleanup(tmpdir.cleanup)
        self.root = Path(tmpdir.name) / "storage"
        self.root.mkdir()

    def test_accepts_paths_inside_a_root(self) -> None:
        resolved = assert_allowed_path(self.root / "part" / "msg_1", [str(self.root)])
        self.assertEqual(resolved, (self.root / "part" / "msg_1").resolve())

    def test_rejects_traversal_outside_roots(self) -> None:
        with self.assertRaises(PathGuardError) as ctx:
            assert_allowed_path(self.root / "part" / ".." / ".." / "etc", [str(self.root)])
        self.assertIsInstance(ctx.exception, ValueError)
        self.assertIn("escapes allowed roots", str(ctx.exception))

    def test_empty_roots_disable_the_guard(self) -> None:
        assert_allowed_path("/definitely/elsewhere", [])
        assert_allowed_path("/definitely/elsewhere", ["", "  "])


if __name__ == "__main__":
    unittest.main()
