import pytest

from sitewright.errors import ConfigError
from sitewright.options import DEFAULT_OPTIONS, SiteOptions, load_options, write_default_options


def test_defaults_without_file(tmp_path):
    options = load_options(tmp_path)
    assert options == SiteOptions()
    assert options.server_flags == ["-D", "-F"]
    assert options.subdir == "post"


def test_load_options_from_yaml(tmp_path):
    (tmp_path / "sitewright.yaml").write_text(
        "author: Ada\nserver_flags: -D --navigateToChanged\nthemes_dir: ../themes\n",
        encoding="utf-8",
    )
    options = load_options(tmp_path)
    assert options.author == "Ada"
    assert options.server_flags == ["-D", "--navigateToChanged"]
    assert options.themes_dir == "../themes"


@pytest.mark.parametrize("text", ["- a\n- b\n", "colour: blue\n", "author: [unclosed\n"])
def test_invalid_options(tmp_path, text):
    (tmp_path / "sitewright.yaml").write_text(text, encoding="utf-8")
    with pytest.raises(ConfigError):
        load_options(tmp_path)


def test_override_ignores_none():
    options = SiteOptions(author="Ada").override(author=None, subdir="notes")
    assert options.author == "Ada"
    assert options.subdir == "notes"


def test_write_default_options_keeps_existing(tmp_path):
    path = write_default_options(tmp_path)
    assert load_options(tmp_path) == SiteOptions(**DEFAULT_OPTIONS)
    path.write_text("author: Me\n", encoding="utf-8")
    write_default_options(tmp_path)
    assert load_options(tmp_path).author == "Me"


def test_undecodable_options_file(tmp_path):
    (tmp_path / "sitewright.yaml").write_bytes(b"author: \xff\n")
    with pytest.raises(ConfigError) as excinfo:
        load_options(tmp_path)
    assert excinfo.value.path == tmp_path / "sitewright.yaml"
