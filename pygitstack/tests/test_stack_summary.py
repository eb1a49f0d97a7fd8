"""Unit tests for the stack table kept in pull request bodies."""

from pygitstack import stack_summary

URL_A = "https://github.com/acme/widgets/pull/11"
URL_B = "https://github.com/acme/widgets/pull/12"
URL_C = "https://github.com/acme/widgets/pull/13"


class TestTable:
    """Tests for rendering the table block."""

    def test_newest_first_with_selection(self) -> None:
        """Test that rows are newest first and only the selected one is marked."""
        block = stack_summary.table([URL_A, URL_B, URL_C], URL_B)
        lines = block.splitlines()

        assert lines[0] == stack_summary.BLOCK_START
        assert lines[1] == stack_summary.HEADING
        assert lines[2:5] == [f"- ⏳ {URL_C}", f"- 👉 {URL_B}", f"- ⏳ {URL_A}"]
        assert lines[-1] == stack_summary.BLOCK_END

    def test_missing_entries_are_skipped(self) -> None:
        """Test that None entries for unpublished groups are left out."""
        block = stack_summary.table([None, URL_A, URL_B], URL_A)
        rows = [line for line in block.splitlines() if line.startswith("- ")]
        assert rows == [f"- ⏳ {URL_B}", f"- 👉 {URL_A}"]
        assert "None" not in block


class TestWrite:
    """Tests for inserting and replacing the table in a body."""

    def test_append_after_description(self) -> None:
        """Test that a body without a table gets the table appended."""
        body = stack_summary.write("Adds the parser.\n", [URL_A, URL_B], URL_A)
        assert body.startswith("Adds the parser.\n\n" + stack_summary.BLOCK_START)
        assert body.endswith(stack_summary.BLOCK_END)

    def test_empty_body(self) -> None:
        """Test that an empty body becomes just the table."""
        assert stack_summary.write("", [URL_A], URL_A) == stack_summary.table([URL_A], URL_A)
        assert stack_summary.write(None, [URL_A], URL_A) == stack_summary.table([URL_A], URL_A)

    def test_replace_in_place(self) -> None:
        """Test that an existing table is replaced and surrounding text kept."""
        first = stack_summary.write("Intro", [URL_A], URL_A)
        edited = first + "\n\nReviewer notes below the table."

        updated = stack_summary.write(edited, [URL_A, URL_B], URL_A)

        assert updated.startswith("Intro\n\n")
        assert updated.endswith("Reviewer notes below the table.")
        assert updated.count(stack_summary.BLOCK_START) == 1
        assert URL_B in updated

    def test_write_is_idempotent(self) -> None:
        """Test that writing the same table twice changes nothing."""
        once = stack_summary.write("Intro", [URL_A, URL_B], URL_B)
        assert stack_summary.write(once, [URL_A, URL_B], URL_B) == once

    def test_same_list_is_detectable_as_no_change(self) -> None:
        """Test that an unchanged url list leaves the body equal, a changed one does not."""
        body = stack_summary.write("Intro", [URL_A, URL_B], URL_A)
        assert stack_summary.write(body, [URL_A, URL_B], URL_A) == body
        assert stack_summary.write(body, [URL_A, URL_C], URL_A) != body

    def test_body_with_regex_characters(self) -> None:
        """Test that backslashes in the url list are inserted literally."""
        body = stack_summary.write("Intro", ["B"], "B")
        updated = stack_summary.write(body, [r"weird\1url"], r"weird\1url")
        assert r"weird\1url" in updated
