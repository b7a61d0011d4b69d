import os
from datetime import date, datetime
from pathlib import Path

import pytest

from sitewright import utils
from sitewright.errors import FilesystemError


def test_title_case_keeps_small_words():
    assert utils.title_case("the lord of the rings") == "The Lord of the Rings"
    assert utils.title_case("using HTML in posts") == "Using HTML in Posts"


def test_dash_filename():
    assert utils.dash_filename("Hello, World!") == "hello-world"
    assert utils.dash_filename("  Déjà vu  ") == "déjà-vu"


def test_dates():
    assert utils.has_date_prefix("2024-01-15-cool")
    assert not utils.has_date_prefix("cool-2024-01-15")
    assert utils.format_date(date(2024, 1, 2)) == "2024-01-02"
    assert utils.format_date(datetime(2024, 1, 2, 13, 0)) == "2024-01-02"


def test_strip_source_suffixes():
    assert utils.strip_source_suffixes("post/a.md.jinja") == "a"
    assert utils.strip_source_suffixes(".hidden") == ".hidden"


def test_atomic_write_text_replaces_and_keeps_mode(tmp_path):
    target = tmp_path / "nested" / "config.toml"
    utils.atomic_write_text(target, "one\n")
    target.chmod(0o600)
    utils.atomic_write_text(target, "two\n")
    assert target.read_text(encoding="utf-8") == "two\n"
    assert target.stat().st_mode & 0o777 == 0o600
    assert sorted(p.name for p in target.parent.iterdir()) == ["config.toml"]


def test_atomic_write_text_failure_leaves_original(monkeypatch, tmp_path):
    target = tmp_path / "config.toml"
    target.write_text("original", encoding="utf-8")

    def fail_replace(src, dst):
        raise OSError(13, "Permission denied")

    monkeypatch.setattr(utils.os, "replace", fail_replace)
    with pytest.raises(FilesystemError) as excinfo:
        utils.atomic_write_text(target, "new")
    assert excinfo.value.operation == "write"
    assert target.read_text(encoding="utf-8") == "original"
    assert [p.name for p in tmp_path.iterdir()] == ["config.toml"]


def test_clean_empty_dir(tmp_path):
    empty = tmp_path / "resources"
    (empty / "_gen" / "images").mkdir(parents=True)
    assert utils.clean_empty_dir(empty)
    assert not empty.exists()

    full = tmp_path / "static"
    (full / "css").mkdir(parents=True)
    (full / "css" / "site.css").write_text("body {}", encoding="utf-8")
    assert not utils.clean_empty_dir(full)
    assert (full / "css" / "site.css").exists()
    assert not utils.clean_empty_dir(tmp_path / "missing")


def test_hidden_and_internal_paths():
    assert utils.is_hidden(Path(".git/config"))
    assert utils.is_hidden(Path("content/.a.md.tmp"))
    assert not utils.is_hidden(Path("content/a.md"))
    assert utils.is_internal_path(Path("_partials/header.md.jinja"))
    assert not utils.is_internal_path(Path("post/_index.md"))


@pytest.mark.skipif(os.name == "nt", reason="POSIX permissions")
def test_atomic_write_new_file_is_world_readable(tmp_path):
    target = tmp_path / "new.txt"
    utils.atomic_write_text(target, "x")
    assert target.read_text(encoding="utf-8") == "x"
    assert target.stat().st_mode & 0o777 == utils.NEW_FILE_MODE
