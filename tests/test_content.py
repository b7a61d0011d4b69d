from datetime import date

import pytest

import sitewright.content as content_mod
from sitewright.content import (
    default_kind,
    markdown_path,
    new_content,
    new_post,
    new_site,
    post_filename,
    post_slug,
)
from sitewright.errors import GeneratorExecError
from sitewright.frontmatter import read_front_matter
from sitewright.options import SiteOptions, load_options


def test_new_site_tidies_hugo_skeleton(tmp_path, fake_hugo):
    root = new_site(tmp_path / "blog", theme=None, runner=fake_hugo)

    args, _ = fake_hugo.calls[0]
    assert args == ["new", "site", str(root), "--force", "-f", "toml"]
    assert not (root / "archetypes").exists()
    assert not (root / "layouts").exists()
    assert (root / "content" / "post" / content_mod.SAMPLE_POST).exists()
    assert (root / "sitewright.yaml").exists()
    assert load_options(root) == SiteOptions()
    config = (root / "config.toml").read_text(encoding="utf-8")
    assert config.startswith('ignoreFiles = ["\\\\.jinja$"]\n')


def test_new_site_in_non_empty_directory(tmp_path, fake_hugo):
    (tmp_path / "notes.txt").write_text("x", encoding="utf-8")
    (tmp_path / "README.md").write_text("x", encoding="utf-8")
    new_site(tmp_path, theme=None, sample=False, format="yaml", runner=fake_hugo)
    args, _ = fake_hugo.calls[0]
    assert "--force" not in args
    assert args[-2:] == ["-f", "yaml"]
    assert not (tmp_path / "content").exists()


def test_new_site_readme_only_counts_as_empty(tmp_path, fake_hugo):
    (tmp_path / "LICENSE").write_text("x", encoding="utf-8")
    (tmp_path / ".git").mkdir()
    new_site(tmp_path, theme=None, sample=False, runner=fake_hugo)
    assert "--force" in fake_hugo.calls[0][0]


def test_new_site_installs_theme(monkeypatch, tmp_path, fake_hugo):
    installed = {}

    def fake_install(root, theme, hostname, theme_example):
        installed.update(root=root, theme=theme, hostname=hostname, example=theme_example)
        return "hugo-lithium"

    monkeypatch.setattr(content_mod, "install_theme", fake_install)
    root = new_site(tmp_path / "s", theme_example=False, runner=fake_hugo)
    assert installed == {
        "root": root,
        "theme": "yihui/hugo-lithium",
        "hostname": "github.com",
        "example": False,
    }


def test_new_site_removes_ignore_everything_gitignore(monkeypatch, tmp_path, fake_hugo):
    def fake_install(root, theme, hostname, theme_example):
        (root / "static").mkdir(exist_ok=True)
        (root / "static" / ".gitignore").write_text("*\n", encoding="utf-8")
        return "x"

    monkeypatch.setattr(content_mod, "install_theme", fake_install)
    root = new_site(tmp_path / "s", sample=False, runner=fake_hugo)
    assert not (root / "static" / ".gitignore").exists()


def test_new_site_failure_propagates(tmp_path, fake_hugo):
    fake_hugo.exit_code = 1
    with pytest.raises(GeneratorExecError):
        new_site(tmp_path / "s", theme=None, runner=fake_hugo)


def test_default_kind(tmp_path):
    (tmp_path / "archetypes").mkdir()
    (tmp_path / "archetypes" / "post.md").write_text("---\n---\n", encoding="utf-8")
    assert default_kind(tmp_path, "post/2024-01-01-a.md") == "post"
    assert default_kind(tmp_path, "notes/a.md") == "default"
    assert default_kind(tmp_path, "about.md") == "default"


def test_markdown_path():
    assert markdown_path("post/a.md.jinja") == "post/a.md"
    assert markdown_path("post/a.markdown") == "post/a.md"
    assert markdown_path("post/a.md") == "post/a.md"


def test_new_content_has_yaml_front_matter(site, fake_hugo):
    path = new_content(site, "post/hello-world.md.jinja", runner=fake_hugo)
    assert path == site / "content" / "post" / "hello-world.md.jinja"
    assert not (site / "content" / "post" / "hello-world.md").exists()
    assert path.read_text(encoding="utf-8").startswith("---\n")
    assert read_front_matter(path) == {"title": "Hello World", "draft": True}
    assert fake_hugo.calls[0][0] == ["new", "post/hello-world.md", "-k", "default"]
    assert fake_hugo.calls[1][0] == ["convert", "toYAML", "--unsafe"]


def test_new_content_without_kind(site, fake_hugo):
    new_content(site, "about.md", kind="", runner=fake_hugo)
    assert fake_hugo.calls[0][0] == ["new", "about.md"]


def test_post_filename_and_slug():
    assert post_filename("Hello World!", "post", ".md", date(2016, 12, 28)) == "post/2016-12-28-hello-world.md"
    assert post_filename("2020-01-01-dated", "", ".md", date(2016, 12, 28)) == "2020-01-01-dated.md"
    assert post_filename("Nested", "post/joe/", ".md.jinja", "2021-02-03") == "post/joe/2021-02-03-nested.md.jinja"
    assert post_slug("post/2015-07-23-hi-there.md") == "hi-there"
    assert post_slug("post/2015-07-23-hi-there.md.jinja") == "hi-there"


def test_new_post_sets_front_matter(site, fake_hugo):
    options = SiteOptions(author="Ada", ext=".md.jinja", title_case=True)
    path = new_post(
        site,
        "a post about python",
        categories=["code"],
        tags=["python", "jinja"],
        date=date(2024, 3, 1),
        options=options,
        runner=fake_hugo,
    )
    assert path == site / "content" / "post" / "2024-03-01-a-post-about-python.md.jinja"
    assert read_front_matter(path) == {
        "title": "A Post About Python",
        "author": "Ada",
        "date": "2024-03-01",
        "slug": "a-post-about-python",
        "categories": ["code"],
        "tags": ["python", "jinja"],
    }


def test_new_post_keeps_draft_with_default_archetype(site, fake_hugo):
    (site / "archetypes").mkdir()
    (site / "archetypes" / "default.md").write_text("+++\ndraft = true\n+++\n", encoding="utf-8")
    path = new_post(site, "Draft", slug="", date=date(2024, 3, 1), options=SiteOptions(), runner=fake_hugo)
    data = read_front_matter(path)
    assert data["draft"] is True
    assert "slug" not in data
    assert "author" not in data
