from sitewright.frontmatter import (
    dump_front_matter,
    front_matter_dialect,
    modify_front_matter,
    read_front_matter,
    split_front_matter,
)


def test_front_matter_dialect():
    assert front_matter_dialect("---\ntitle: a\n---\n") == "yaml"
    assert front_matter_dialect("+++\ntitle = 'a'\n+++\n") == "toml"
    assert front_matter_dialect('{\n"title": "a"\n}\n') == "json"
    assert front_matter_dialect("# Heading\n") is None


def test_split_front_matter():
    data, body = split_front_matter("---\ntitle: Hello\ntags: [a, b]\n---\nBody --- text\n")
    assert data == {"title": "Hello", "tags": ["a", "b"]}
    assert body == "Body --- text\n"

    data, body = split_front_matter('+++\ntitle = "Hello"\n+++\nBody\n')
    assert data == {"title": "Hello"}
    assert body == "Body\n"

    assert split_front_matter("---\n---\nBody\n") == ({}, "Body\n")
    assert split_front_matter("No metadata\n") == ({}, "No metadata\n")
    assert split_front_matter("---\n: [bad\n---\nBody\n")[0] == {}


def test_dump_front_matter_keeps_order():
    text = dump_front_matter({"title": "T", "author": "A"}, "Body\n")
    assert text == "---\ntitle: T\nauthor: A\n---\nBody\n"


def test_modify_front_matter(tmp_path):
    path = tmp_path / "post.md"
    path.write_text("---\ntitle: Old\ndraft: true\n---\n\nBody\n", encoding="utf-8")
    data = modify_front_matter(path, title="New", draft=None, tags=["x"])
    assert data == {"title": "New", "tags": ["x"]}
    assert path.read_text(encoding="utf-8") == "---\ntitle: New\ntags:\n- x\n---\n\nBody\n"
    assert read_front_matter(path) == data
