"""Tests for session log segmentation and the Claude Code log reader."""

import os
from datetime import timezone

import pytest

from intentlog.errors import LogSourceError, SessionNotFoundError
from intentlog.parser import ClaudeCodeLogReader, get_project_hash, segment, strip_system_reminders
from intentlog.schema import OtherBlock, RawLogRecord, TextBlock, ToolUseBlock


class TestRawLogRecord:
    """Schema validation of individual transcript lines."""

    def test_user_record_with_string_content(self):
        record = RawLogRecord.model_validate(
            {"type": "user", "message": {"role": "user", "content": "hello"}, "uuid": "x"}
        )
        assert record.message.content == "hello"
        assert record.isSidechain is None

    def test_unknown_block_type_parses_as_other(self):
        record = RawLogRecord.model_validate({
            "type": "assistant",
            "message": {"role": "assistant", "content": [
                {"type": "image", "source": {}},
                {"type": "text", "text": "hi"},
            ]},
        })
        assert isinstance(record.message.content[0], OtherBlock)
        assert isinstance(record.message.content[1], TextBlock)

    def test_malformed_known_block_falls_back_to_other(self):
        """A tool_use block without a name must not fail the whole record."""
        record = RawLogRecord.model_validate({
            "type": "assistant",
            "message": {"role": "assistant", "content": [{"type": "tool_use"}]},
        })
        block = record.message.content[0]
        assert isinstance(block, OtherBlock)
        assert not isinstance(block, ToolUseBlock)

    def test_record_without_message(self):
        record = RawLogRecord.model_validate({"type": "summary", "summary": "x"})
        assert record.message is None


class TestSegment:
    """Turn segmentation of raw transcripts."""

    def test_string_user_content_opens_turns(self, log):
        log.user("最初の指示です").assistant(log.text_block("了解"))
        log.user("次の指示です")

        turns = segment(log.text())

        assert [t.user_prompt for t in turns] == ["最初の指示です", "次の指示です"]
        assert turns[0].assistant_text == ["了解"]
        assert turns[1].assistant_text == []

    def test_tool_result_does_not_open_turn(self, log):
        log.user("ファイルを読んで")
        log.assistant(log.tool_use("Read", {"file_path": "/a.py"}))
        log.tool_result("print('hi')")
        log.assistant(log.text_block("読みました"))

        turns = segment(log.text())

        assert len(turns) == 1
        assert turns[0].tool_uses == ["Read"]
        assert turns[0].tool_results == ["print('hi')"]
        assert turns[0].assistant_text == ["読みました"]

    def test_tool_result_list_content_is_flattened(self, log):
        log.user("テストを実行して")
        log.tool_result([
            {"type": "text", "text": "line one"},
            {"type": "image", "source": {}},
            {"type": "text", "text": "line two"},
        ])

        turns = segment(log.text())

        assert turns[0].tool_results == ["line one", "line two"]

    def test_sidechain_records_are_dropped_regardless_of_role(self, log):
        log.user("メインの指示")
        log.user("サブエージェントへの指示", isSidechain=True)
        log.assistant(log.text_block("サブの応答"), isSidechain=True)
        log.assistant(log.text_block("メインの応答"), isSidechain=False)

        turns = segment(log.text())

        assert len(turns) == 1
        assert turns[0].user_prompt == "メインの指示"
        assert turns[0].assistant_text == ["メインの応答"]

    def test_assistant_blocks_are_sorted_into_fields(self, log):
        log.user("実装して")
        log.assistant(
            log.thinking_block("考え中"),
            log.text_block("実装します"),
            log.tool_use("Edit"),
            log.tool_use("Edit"),
            {"type": "server_tool_use", "name": "web"},
        )

        turn = segment(log.text())[0]

        assert turn.assistant_thinking == ["考え中"]
        assert turn.assistant_text == ["実装します"]
        assert turn.tool_uses == ["Edit", "Edit"]

    def test_skill_invocations_are_collected(self, log):
        log.user("レビューして")
        log.assistant(log.skill_use("code-review:code-review"))
        log.assistant(log.tool_use("Skill", {"skill": 42}))

        turn = segment(log.text())[0]

        assert turn.tool_uses == ["Skill", "Skill"]
        assert turn.skills == ["code-review:code-review"]

    def test_noise_lines_are_skipped(self, log):
        log.raw("")
        log.raw("not json at all")
        log.raw('{"type": 5}')
        log.raw("   ")
        log.user("有効な指示です")
        log.raw('{"type": "user", "message": {"role": "user"}}')

        turns = segment(log.text())

        assert [t.user_prompt for t in turns] == ["有効な指示です"]

    def test_records_without_message_are_skipped(self, log):
        log.record({"type": "file-history-snapshot", "snapshot": {}})
        log.user("指示")

        assert len(segment(log.text())) == 1

    def test_no_opening_prompt_yields_no_turns(self, log):
        log.assistant(log.text_block("orphan"))
        log.tool_result("result")

        assert segment(log.text()) == []

    def test_empty_log_yields_no_turns(self):
        assert segment("") == []

    def test_last_prompt_without_reply_still_yields_turn(self, log):
        log.user("first").assistant(log.text_block("ok")).user("last")

        turns = segment(log.text())

        assert turns[-1].user_prompt == "last"
        assert turns[-1].assistant_text == []
        assert turns[-1].tool_uses == []

    def test_system_reminders_are_stripped_from_prompt(self, log):
        log.user(
            "<system-reminder>\nctx one\n</system-reminder>\n  本当の指示  "
            "<system-reminder>ctx two</system-reminder>\n"
        )

        assert segment(log.text())[0].user_prompt == "本当の指示"


class TestStripSystemReminders:
    """System-reminder removal."""

    def test_removes_non_adjacent_spans(self):
        text = "a <system-reminder>x</system-reminder> b <system-reminder>y\nz</system-reminder> c"
        assert strip_system_reminders(text) == "a  b  c"

    def test_leaves_plain_text_alone(self):
        assert strip_system_reminders("  plain  ") == "plain"


class TestClaudeCodeLogReader:
    """Locating and reading session files."""

    @pytest.fixture
    def project_dir(self, tmp_path):
        projects = tmp_path / "projects"
        project_dir = projects / get_project_hash("/work/app")
        project_dir.mkdir(parents=True)
        return project_dir

    def test_project_hash_replaces_separators(self):
        assert get_project_hash(os.path.join(os.sep, "work", "app")) == "-work-app"

    def test_for_project_finds_directory(self, project_dir):
        reader = ClaudeCodeLogReader.for_project("/work/app", projects_dir=project_dir.parent)
        assert reader.project_dir == project_dir

    def test_for_project_raises_when_missing(self, tmp_path):
        with pytest.raises(LogSourceError):
            ClaudeCodeLogReader.for_project("/nowhere", projects_dir=tmp_path)

    def test_list_sessions_oldest_first(self, project_dir):
        for name, mtime in [("b", 200), ("a", 300), ("c", 100)]:
            path = project_dir / f"{name}.jsonl"
            path.write_text("")
            os.utime(path, (mtime, mtime))
        (project_dir / "notes.txt").write_text("")

        sessions = ClaudeCodeLogReader(project_dir).list_sessions()

        assert sorted(sessions) == ["a", "b", "c"]
        if not hasattr(os.stat(project_dir / "a.jsonl"), "st_birthtime"):
            assert sessions == ["c", "b", "a"]

    def test_read_session_returns_text(self, project_dir):
        (project_dir / "s1.jsonl").write_text('{"type":"user"}\n', encoding="utf-8")

        assert ClaudeCodeLogReader(project_dir).read_session("s1") == '{"type":"user"}\n'

    def test_missing_session_raises(self, project_dir):
        with pytest.raises(SessionNotFoundError):
            ClaudeCodeLogReader(project_dir).read_session("missing")

    @pytest.mark.parametrize("session_id", ["../etc", "a/b", "a\\b"])
    def test_path_like_session_ids_are_rejected(self, project_dir, session_id):
        with pytest.raises(LogSourceError):
            ClaudeCodeLogReader(project_dir).read_session(session_id)

    def test_session_timestamp_is_utc(self, project_dir):
        (project_dir / "s1.jsonl").write_text("")

        ts = ClaudeCodeLogReader(project_dir).get_session_timestamp("s1")

        assert ts.tzinfo == timezone.utc
