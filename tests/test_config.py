"""Tests for podsite.config."""

from __future__ import annotations

from pathlib import Path

import pytest

from podsite.config import CONFIG_FILENAME, HeadingPattern, PodSiteConfig, load_config
from podsite.errors import ConfigError
from podsite.models import DocKind


def test_load_config_returns_defaults_when_missing(tmp_path: Path) -> None:
    config = load_config(tmp_path)

    assert isinstance(config, PodSiteConfig)
    assert config.root == tmp_path.resolve()
    assert config.source.suffixes == [".rakudoc", ".pod6", ".pod"]
    assert config.source.exclude_paths == []
    assert config.output.format == "html"
    assert config.output.site_title == "Documentation"
    assert config.build.jobs is None
    assert config.classify.heading_patterns == []


def test_load_config_parses_expected_fields(tmp_path: Path) -> None:
    config_file = tmp_path / CONFIG_FILENAME
    config_file.write_text(
        """
source:
  suffixes: [rakudoc, ".POD6"]
  exclude_paths:
    - "drafts/"
exclude_paths:
  - "sandbox/"
output:
  format: markdown
  site_title: "Raku Docs"
build:
  jobs: 4
classify:
  heading_patterns:
    - pattern: "^(?P<name>\\\\w+) command$"
      kind: program
      subkind: command
  categories:
    Tools: program
  listing_sections:
    Commands: program
  section_titles: [Caveats]
  index_categories:
    Variable: syntax
""",
        encoding="utf-8",
    )

    config = load_config(config_file)

    assert config.source.suffixes == [".rakudoc", ".pod6"]
    assert config.source.exclude_paths == ["drafts/", "sandbox/"]
    assert config.output.format == "markdown"
    assert config.output.site_title == "Raku Docs"
    assert config.build.jobs == 4
    assert config.classify.heading_patterns == [
        HeadingPattern(pattern=r"^(?P<name>\w+) command$", kind=DocKind.PROGRAM, subkind="command")
    ]
    assert config.classify.categories == {"Tools": DocKind.PROGRAM}
    assert config.classify.listing_sections == {"Commands": DocKind.PROGRAM}
    assert config.classify.section_titles == ["Caveats"]
    assert config.classify.index_categories == {"Variable": DocKind.SYNTAX}


def test_load_config_accepts_directory_path(tmp_path: Path) -> None:
    (tmp_path / CONFIG_FILENAME).write_text("output:\n  site_title: Here\n", encoding="utf-8")
    assert load_config(tmp_path).output.site_title == "Here"


@pytest.mark.parametrize(
    "content",
    [
        "source: [unclosed\n",
        "- just\n- a list\n",
        "build:\n  jobs: 0\n",
        "classify:\n  heading_patterns:\n    - pattern: '(unclosed'\n      kind: routine\n",
        "classify:\n  heading_patterns:\n    - pattern: '^method (.+)$'\n      kind: routine\n",
        "classify:\n  heading_patterns:\n    - pattern: '^(?P<name>.+)$'\n      kind: gadget\n",
        "classify:\n  categories: [Type]\n",
    ],
)
def test_invalid_config_raises(tmp_path: Path, content: str) -> None:
    (tmp_path / CONFIG_FILENAME).write_text(content, encoding="utf-8")
    with pytest.raises(ConfigError):
        load_config(tmp_path)


def test_empty_config_file_uses_defaults(tmp_path: Path) -> None:
    (tmp_path / CONFIG_FILENAME).write_text("\n", encoding="utf-8")
    assert load_config(tmp_path).output.format == "html"
