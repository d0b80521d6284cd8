"""Tests for reason normalization."""

from pathlib import Path

from extwatch_core.models import ChangeEvent, ChangeKind
from extwatch_core.reasons import (
    MAX_REASON_LENGTH,
    describe_reasons,
    normalize_reason,
    reason_for,
    shorten_reason,
)


class TestShortenReason:
    """Tests for shorten_reason."""

    def test_short_reason_unchanged(self):
        assert shorten_reason("modify:src/a.js") == "modify:src/a.js"

    def test_exactly_max_length_unchanged(self):
        reason = "x" * MAX_REASON_LENGTH
        assert shorten_reason(reason) == reason

    def test_long_reason_truncated(self):
        reason = "modify:" + "a" * 200
        shortened = shorten_reason(reason)
        assert len(shortened) == 140
        assert shortened.endswith("...")
        assert shortened[:137] == reason[:137]


class TestNormalizeReason:
    """Tests for normalize_reason."""

    def test_relative_to_base(self, tmp_path):
        reason = normalize_reason(tmp_path / "src", ChangeKind.MODIFY, "popup/main.js", tmp_path)
        assert reason == "modify:src/popup/main.js"

    def test_accepts_plain_kind_string(self, tmp_path):
        assert normalize_reason(tmp_path / "extension", "rename", "icon.png", tmp_path) == "rename:extension/icon.png"

    def test_missing_relative_path(self, tmp_path):
        assert normalize_reason(tmp_path / "src", ChangeKind.UNKNOWN, "", tmp_path) == "unknown:src/(unknown)"

    def test_root_outside_base(self, tmp_path):
        reason = normalize_reason(tmp_path / "other", ChangeKind.CREATE, "a.js", tmp_path / "project")
        assert reason == "create:../other/a.js"

    def test_long_path_is_shortened(self, tmp_path):
        reason = normalize_reason(tmp_path, ChangeKind.DELETE, "d/" * 100 + "file.js", tmp_path)
        assert len(reason) == 140
        assert reason.startswith("delete:d/d/")

    def test_reason_for_event(self, tmp_path):
        event = ChangeEvent(root=tmp_path / "src", kind=ChangeKind.CREATE, relative_path="new.ts")
        assert reason_for(event, tmp_path) == "create:src/new.ts"


class TestDescribeReasons:
    """Tests for describe_reasons."""

    def test_empty_is_manual_trigger(self):
        assert describe_reasons(frozenset()) == "manual trigger"

    def test_joined_sorted(self):
        assert describe_reasons({"modify:b.js", "modify:a.js"}) == "modify:a.js, modify:b.js"

    def test_path_type_root(self):
        assert normalize_reason(Path("/p/src"), ChangeKind.MODIFY, "x.js", Path("/p")) == "modify:src/x.js"
