"""Tests for PR diff delta computation."""

from issuebot.agent.delta import NO_CHANGES, compute_delta, parse_into_files


def section(path, body):
    return (
        f"diff --git a/{path} b/{path}\n"
        f"--- a/{path}\n"
        f"+++ b/{path}\n"
        f"@@ -1 +1 @@\n"
        f"{body}\n"
    )


A_V1 = section("src/a.py", "+x = 1")
A_V2 = section("src/a.py", "+x = 2")
B = section("src/b.py", "+y = 1")
C = section("src/c.py", "+z = 1")


class TestParseIntoFiles:
    def test_splits_by_file(self):
        files = parse_into_files(A_V1 + B)
        assert list(files) == ["src/a.py", "src/b.py"]
        assert files["src/a.py"].startswith("diff --git a/src/a.py b/src/a.py")
        assert "+x = 1" in files["src/a.py"]
        assert "+y = 1" not in files["src/a.py"]

    def test_preamble_ignored(self):
        files = parse_into_files("Some header text\n" + B)
        assert list(files) == ["src/b.py"]

    def test_empty_text(self):
        assert parse_into_files("") == {}

    def test_renamed_file_keyed_by_new_path(self):
        diff = "diff --git a/old.py b/new.py\nsimilarity index 100%\n"
        assert list(parse_into_files(diff)) == ["new.py"]

    def test_trailing_newline_does_not_matter(self):
        assert parse_into_files(B) == parse_into_files(B.rstrip("\n"))


class TestComputeDelta:
    def test_identical_diffs(self):
        assert compute_delta(A_V1 + B, A_V1 + B) == NO_CHANGES

    def test_identical_empty(self):
        assert compute_delta("", "") == NO_CHANGES

    def test_new_file_tagged(self):
        delta = compute_delta(A_V1, A_V1 + C)
        assert "NEW FILE: src/c.py" in delta
        assert "+z = 1" in delta

    def test_changed_file_tagged(self):
        delta = compute_delta(A_V1 + B, A_V2 + B)
        assert "CHANGED: src/a.py" in delta
        assert "+x = 2" in delta
        assert "+x = 1" not in delta

    def test_unchanged_listed_once_and_omitted(self):
        delta = compute_delta(A_V1 + B, A_V2 + B)
        assert delta.count("src/b.py") == 1
        assert "Unchanged (omitted): src/b.py" in delta
        assert "+y = 1" not in delta

    def test_order_follows_current(self):
        delta = compute_delta(B, C + A_V1 + B)
        assert delta.index("src/c.py ===") < delta.index("src/a.py ===")

    def test_deleted_files_not_reported(self):
        delta = compute_delta(A_V1 + B, A_V1)
        assert delta == NO_CHANGES

    def test_only_unchanged_after_reorder(self):
        assert compute_delta(A_V1 + B, B + A_V1) == NO_CHANGES

    def test_header_counts(self):
        delta = compute_delta(A_V1 + B, A_V2 + B + C)
        assert delta.startswith("[Diff delta since last review: 1 new, 1 changed, 1 unchanged file(s)]")

    def test_all_files_reverted(self):
        assert compute_delta(A_V1 + B, "") == NO_CHANGES

    def test_non_diff_current_after_real_diff(self):
        assert compute_delta(A_V1, "PR #7 has no file changes") == NO_CHANGES

    def test_non_diff_text_on_both_sides_returned_whole(self):
        assert compute_delta("no diff yet", "still no diff") == "still no diff"
