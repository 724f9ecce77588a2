from mams.shared.utils.notes import append_note


class TestAppendNote:
    def test_first_note(self):
        result = append_note(None, "Issued for exercise")
        assert result.startswith("[")
        assert result.endswith("] Issued for exercise")

    def test_appends_line_with_author(self):
        result = append_note("first", "second", "cmd_one")
        lines = result.split("\n")
        assert lines[0] == "first"
        assert lines[1].endswith("cmd_one: second")

    def test_blank_note_keeps_existing(self):
        assert append_note("kept", "   ") == "kept"
        assert append_note(None, None) is None
