import pytest

from sitewright.config import find_config, format_value, load_config, set_config_field
from sitewright.errors import ConfigError


def test_load_config_toml_takes_precedence(tmp_path):
    (tmp_path / "config.toml").write_text('title = "T"\n', encoding="utf-8")
    (tmp_path / "config.yaml").write_text("title: Y\n", encoding="utf-8")
    config = load_config(tmp_path)
    assert config.dialect == "toml"
    assert config.get("title") == "T"


def test_load_config_yaml_defaults(tmp_path):
    (tmp_path / "config.yml").write_text("baseURL: https://example.com/\n", encoding="utf-8")
    config = load_config(tmp_path)
    assert config.dialect == "yaml"
    assert config.base_url == "https://example.com/"
    assert config.publish_dir == "public"
    assert config.content_dir == "content"
    assert config.themes_dir == "themes"
    assert config.theme is None


def test_missing_config_is_an_error(tmp_path):
    with pytest.raises(ConfigError):
        find_config(tmp_path)


@pytest.mark.parametrize(
    "name,text",
    [
        ("config.toml", 'theme = "a"\ntheme = "b"\n'),
        ("config.yaml", "theme: a\ntheme: b\n"),
    ],
)
def test_duplicate_keys_are_rejected(tmp_path, name, text):
    (tmp_path / name).write_text(text, encoding="utf-8")
    with pytest.raises(ConfigError) as excinfo:
        load_config(tmp_path)
    assert name in str(excinfo.value)
    assert excinfo.value.key == "theme"
    assert excinfo.value.path == tmp_path / name


def test_repeated_key_inside_table_is_a_parse_error(tmp_path):
    (tmp_path / "config.toml").write_text(
        'title = "a"\n[params]\ntitle = "b"\ntitle = "c"\n', encoding="utf-8"
    )
    with pytest.raises(ConfigError) as excinfo:
        load_config(tmp_path)
    assert excinfo.value.key is None
    assert "Cannot parse" in str(excinfo.value)


def test_undecodable_config(tmp_path):
    (tmp_path / "config.toml").write_bytes(b'title = "\xff"\n')
    with pytest.raises(ConfigError) as excinfo:
        load_config(tmp_path)
    assert excinfo.value.path == tmp_path / "config.toml"


def test_unparseable_config(tmp_path):
    (tmp_path / "config.toml").write_text("title = \n", encoding="utf-8")
    with pytest.raises(ConfigError):
        load_config(tmp_path)


def test_set_config_field_is_idempotent(tmp_path):
    config = tmp_path / "config.toml"
    config.write_text('baseurl = "/"\ntitle = "Site"\n', encoding="utf-8")

    first = set_config_field(tmp_path, "theme", "lithium")
    once = config.read_text(encoding="utf-8")
    second = set_config_field(tmp_path, "theme", "lithium")

    assert first.changed
    assert not second.changed
    assert config.read_text(encoding="utf-8") == once
    assert once == 'theme = "lithium"\nbaseurl = "/"\ntitle = "Site"\n'


def test_set_config_field_replaces_first_match_in_place(tmp_path):
    config = tmp_path / "config.yaml"
    config.write_text("title: Site\ntheme: old\nparams:\n  theme: nested\n", encoding="utf-8")
    set_config_field(tmp_path, "theme", "new")
    assert config.read_text(encoding="utf-8") == 'title: Site\ntheme: "new"\nparams:\n  theme: nested\n'


def test_set_config_field_deletes_with_none(tmp_path):
    config = tmp_path / "config.toml"
    config.write_text('themesDir = "../.."\ntitle = "Site"\n', encoding="utf-8")
    set_config_field(tmp_path, "themesDir", None)
    assert config.read_text(encoding="utf-8") == 'title = "Site"\n'
    # deleting a missing field is a no-op
    assert not set_config_field(tmp_path, "themesDir", None).changed


def test_set_config_field_refuses_duplicates(tmp_path):
    config = tmp_path / "config.toml"
    text = 'theme = "a"\ntheme = "b"\n'
    config.write_text(text, encoding="utf-8")
    with pytest.raises(ConfigError):
        set_config_field(tmp_path, "theme", "c")
    assert config.read_text(encoding="utf-8") == text


def test_format_value():
    assert format_value(True, "toml") == "true"
    assert format_value(3, "yaml") == "3"
    assert format_value(["a", 1], "toml") == '["a", 1]'
    assert format_value('say "hi"', "yaml") == '"say \\"hi\\""'
