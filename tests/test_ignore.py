"""Tests for gitignore-style ignore rules."""

from pycodeai.sync.ignore import IgnoreRules, load_ignore_rules


class TestIgnoreRules:
    """Tests for IgnoreRules matching."""

    def test_empty_rules_ignore_nothing(self):
        rules = IgnoreRules()
        assert len(rules) == 0
        assert rules.ignores("src/app.ts") is False

    def test_simple_glob(self):
        rules = IgnoreRules(["*.log"])
        assert rules.ignores("debug.log") is True
        assert rules.ignores("logs/debug.log") is True
        assert rules.ignores("debug.txt") is False

    def test_negation(self):
        rules = IgnoreRules(["*.log", "!keep.log"])
        assert rules.ignores("debug.log") is True
        assert rules.ignores("keep.log") is False

    def test_directory_only_pattern(self):
        rules = IgnoreRules(["generated/"])
        assert rules.ignores("generated/") is True
        assert rules.ignores("generated/file.ts") is True
        assert rules.ignores("src/generated/file.ts") is True
        assert rules.ignores("generated") is False

    def test_anchored_pattern(self):
        rules = IgnoreRules(["/config.json"])
        assert rules.ignores("config.json") is True
        assert rules.ignores("src/config.json") is False

    def test_double_star(self):
        rules = IgnoreRules(["src/**/fixtures"])
        assert rules.ignores("src/a/b/fixtures/data.json") is True
        assert rules.ignores("lib/fixtures/data.json") is False

    def test_comments_and_blank_lines_skipped(self):
        rules = IgnoreRules()
        rules.add("# comment\n\n*.tmp\n   \n")
        assert rules.patterns == ["*.tmp"]
        assert rules.ignores("x.tmp") is True

    def test_leading_dot_slash_and_backslashes(self):
        rules = IgnoreRules(["secrets/"])
        assert rules.ignores("./secrets/key.txt") is True
        assert rules.ignores("secrets\\key.txt") is True

    def test_filter_preserves_order(self):
        rules = IgnoreRules(["*.log"])
        assert rules.filter(["b.ts", "a.log", "a.ts"]) == ["b.ts", "a.ts"]


class TestLoadIgnoreRules:
    """Tests for load_ignore_rules."""

    def test_missing_file_yields_empty_rules(self, tmp_path):
        rules = load_ignore_rules(tmp_path)
        assert len(rules) == 0
        assert rules.ignores("anything.ts") is False

    def test_reads_gitignore(self, tmp_path):
        (tmp_path / ".gitignore").write_text("secret.ts\nbuild-output/\n")

        rules = load_ignore_rules(tmp_path)

        assert len(rules) == 2
        assert rules.ignores("secret.ts") is True
        assert rules.ignores("build-output/x.ts") is True
        assert rules.ignores("src/app.ts") is False

    def test_directory_in_place_of_file_yields_empty_rules(self, tmp_path):
        (tmp_path / ".gitignore").mkdir()

        rules = load_ignore_rules(tmp_path)

        assert len(rules) == 0
