from pathlib import Path

import pytest

from mab2erb.config import CONFIG_FILE_NAME, load_config, parse_config
from mab2erb.errors import ConfigError

from tests.infrastructure import write


def _config(root: Path, text: str) -> Path:
    return write(root / CONFIG_FILE_NAME, text)


class TestLoadConfig:
    """Locating and reading mab2erb.yaml."""

    def test_defaults_without_file(self, tmp_path):
        cfg = load_config(cwd=tmp_path)
        assert cfg.path is None
        assert cfg.exclude == []
        assert not cfg.options.validate_output
        assert cfg.options.vocabulary.is_tag("div")

    def test_explicit_path_must_exist(self, tmp_path):
        with pytest.raises(ConfigError, match="Config file not found"):
            load_config(tmp_path / "missing.yaml")

    def test_found_in_working_directory(self, tmp_path):
        path = _config(tmp_path, "options:\n  preserve_comments: true\n")
        cfg = load_config(cwd=tmp_path)
        assert cfg.path == path
        assert cfg.options.preserve_comments

    def test_empty_file(self, tmp_path):
        _config(tmp_path, "")
        cfg = load_config(cwd=tmp_path)
        assert cfg.exclude == []

    def test_invalid_yaml(self, tmp_path):
        _config(tmp_path, "options: [unclosed\n")
        with pytest.raises(ConfigError, match="Invalid YAML"):
            load_config(cwd=tmp_path)

    def test_document_must_be_a_mapping(self, tmp_path):
        _config(tmp_path, "- a\n- b\n")
        with pytest.raises(ConfigError, match="must be a mapping"):
            load_config(cwd=tmp_path)


class TestParseConfig:
    """Validation of the configuration mapping."""

    def test_options(self):
        cfg = parse_config({"options": {"validate_output": True, "default_to_instance_scope": True}})
        assert cfg.options.validate_output
        assert cfg.options.default_to_instance_scope
        assert not cfg.options.preserve_comments

    def test_option_must_be_bool(self):
        with pytest.raises(ConfigError, match="options.validate_output must be true or false"):
            parse_config({"options": {"validate_output": "yes"}})

    def test_unknown_top_level_key(self):
        with pytest.raises(ConfigError, match="Unknown keys"):
            parse_config({"optoins": {}})

    def test_unknown_option(self):
        with pytest.raises(ConfigError, match="Unknown keys in options: strict"):
            parse_config({"options": {"strict": True}})

    def test_vocabulary_list_adds_names(self):
        cfg = parse_config({"vocabulary": {"helpers": ["javascript_tag", "t"]}})
        vocab = cfg.options.vocabulary
        assert vocab.is_helper("javascript_tag")
        assert vocab.is_helper("t")
        assert vocab.is_helper("link_to")

    def test_vocabulary_mapping_adds_and_removes(self):
        cfg = parse_config({"vocabulary": {"tags": {"add": ["picture"], "remove": ["b"]}}})
        vocab = cfg.options.vocabulary
        assert vocab.is_tag("picture")
        assert not vocab.is_tag("b")

    def test_unknown_vocabulary_category(self):
        with pytest.raises(ConfigError, match="Unknown keys in vocabulary: widgets"):
            parse_config({"vocabulary": {"widgets": ["x"]}})

    def test_vocabulary_names_must_be_strings(self):
        with pytest.raises(ConfigError, match="must be a list of names"):
            parse_config({"vocabulary": {"tags": {"add": [1, 2]}}})

    def test_exclude_patterns(self):
        cfg = parse_config({"exclude": ["legacy/", "*.old.mab"]})
        assert cfg.exclude == ["legacy/", "*.old.mab"]

    def test_options_keep_custom_vocabulary(self):
        cfg = parse_config({
            "vocabulary": {"iterators": ["each_row"]},
            "options": {"preserve_comments": True},
        })
        assert cfg.options.vocabulary.is_iterator("each_row")
        assert cfg.options.preserve_comments
