"""Tests for workspace path helpers."""

import pytest

from agrippa.utils.paths import DOTFILE, find_workspace_root, slugify, strip_slug


class TestSlugify:
    def test_spaces_and_case(self):
        assert slugify("Lead Intake") == "lead-intake"

    def test_accents_folded(self):
        assert slugify("Révision Équipe") == "revision-equipe"

    def test_punctuation_collapses(self):
        assert slugify("  Check: e-mail / phone!! ") == "check-e-mail-phone"

    def test_underscores_kept(self):
        assert slugify("compute_total") == "compute_total"

    def test_empty_raises(self):
        with pytest.raises(ValueError):
            slugify("!!!")

    def test_empty_uses_default(self):
        assert slugify("!!!", default="phase-4") == "phase-4"
        assert slugify("\u0417\u0430\u044f\u0432\u043a\u0430", default="workflow-2") == "workflow-2"

    def test_default_ignored_when_slug_exists(self):
        assert slugify("Lead", default="workflow-2") == "lead"


def test_strip_slug():
    assert strip_slug("lead-intake/") == "lead-intake"
    assert strip_slug("lead-intake") == "lead-intake"
    assert strip_slug(None) is None


def test_find_workspace_root(tmp_path):
    (tmp_path / DOTFILE).write_text("{}")
    nested = tmp_path / "lead-intake" / "deeper"
    nested.mkdir(parents=True)
    assert find_workspace_root(nested) == tmp_path.resolve()


def test_find_workspace_root_none(tmp_path):
    assert find_workspace_root(tmp_path) is None
