"""Unit tests for cli.config module."""

import pytest

from src.cli.config import ConfigLoader
from src.cli.errors import ConfigError, FilesystemError


@pytest.fixture
def workdir(tmp_path, monkeypatch):
    (tmp_path / "docs").mkdir()
    monkeypatch.chdir(tmp_path)
    return tmp_path


class TestConfigLoader:
    """Test cases for ConfigLoader.load."""

    def test_defaults_without_file(self, workdir):
        """Without mdspace.yaml the command line alone configures the run."""
        config = ConfigLoader.load(overrides={"space_key": "DOCS", "source_dir": "docs"})

        assert config.space_key == "DOCS"
        assert config.source_dir == "docs"
        assert config.index_name == "index.md"
        assert config.macro_dir == "_tera"
        assert config.single_editor is False
        assert config.max_workers >= 1

    def test_default_file_is_read(self, workdir):
        """mdspace.yaml in the working directory is picked up."""
        (workdir / "mdspace.yaml").write_text(
            "space_key: DOCS\nsource_dir: docs\nsingle_editor: true\nmax_workers: 3\nmacro_dir: ''\n"
        )

        config = ConfigLoader.load()

        assert config.single_editor is True
        assert config.max_workers == 3
        assert config.macro_dir == ""
        assert config.macro_path is None

    def test_overrides_win(self, workdir):
        """Command line values replace file values; None values are ignored."""
        (workdir / "site.yaml").write_text("space_key: DOCS\nsource_dir: docs\n")

        config = ConfigLoader.load("site.yaml", overrides={"space_key": "TEAM", "source_dir": None})

        assert config.space_key == "TEAM"
        assert config.source_dir == "docs"

    def test_explicit_missing_file(self, workdir):
        """A named configuration file must exist."""
        with pytest.raises(FilesystemError, match="Configuration file not found"):
            ConfigLoader.load("nope.yaml")

    def test_missing_space_key(self, workdir):
        """A space key is required."""
        with pytest.raises(ConfigError, match="space_key"):
            ConfigLoader.load(overrides={"source_dir": "docs"})

    def test_invalid_yaml(self, workdir):
        """Malformed YAML is a configuration error."""
        (workdir / "mdspace.yaml").write_text("space_key: [DOCS\n")

        with pytest.raises(ConfigError, match="Invalid YAML syntax"):
            ConfigLoader.load()

    def test_not_a_mapping(self, workdir):
        """The file must hold a mapping."""
        (workdir / "mdspace.yaml").write_text("- DOCS\n")

        with pytest.raises(ConfigError, match="dictionary"):
            ConfigLoader.load()

    @pytest.mark.parametrize("content,field", [
        ("space_key: DOCS\nspace: X\n", None),
        ("space_key: DOCS\nsingle_editor: 'yes'\n", "single_editor"),
        ("space_key: DOCS\nmax_workers: 0\n", "max_workers"),
        ("space_key: DOCS\nmax_workers: many\n", "max_workers"),
        ("space_key: 12\n", "space_key"),
    ])
    def test_invalid_fields(self, workdir, content, field):
        """Unknown fields and values of the wrong type are rejected."""
        (workdir / "mdspace.yaml").write_text(content)

        with pytest.raises(ConfigError) as exc_info:
            ConfigLoader.load()

        assert exc_info.value.config_field == field

    def test_missing_source_dir(self, workdir):
        """The source directory must exist."""
        with pytest.raises(FilesystemError, match="Source directory does not exist"):
            ConfigLoader.load(overrides={"space_key": "DOCS", "source_dir": "missing"})
