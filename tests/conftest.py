import tomllib
from pathlib import Path

import pytest
import yaml

from sitewright.errors import BuildCancelled
from sitewright.hugo import Hugo, ProcessResult


class FakeHugo(Hugo):
    """Stands in for the hugo binary.

    Records every call and imitates what the real binary does to the filesystem
    for the subcommands sitewright uses.
    """

    def __init__(self):
        super().__init__(binary="hugo")
        self.calls = []
        self.exit_code = 0
        self.output = "Total in 12 ms\n"
        self.side_effects = True

    def invoke(self, args, cwd=None, cancel=None):
        if cancel is not None and cancel.is_set():
            raise BuildCancelled("Cancelled before starting hugo")
        args = list(args)
        self.calls.append((args, Path(cwd) if cwd else None))
        rendering = not args or args[0].startswith("-")
        if rendering and self.side_effects:
            # hugo creates its resource cache before it can fail
            (Path(cwd) / "resources" / "_gen" / "images").mkdir(parents=True, exist_ok=True)
        if self.exit_code != 0:
            return ProcessResult(tuple(args), self.exit_code, "Error: boom\n")
        if args[:2] == ["new", "site"]:
            self._new_site(Path(args[2]), args)
        elif args[:1] == ["new"]:
            self._new_content(Path(cwd), args[1])
        elif args[:1] == ["convert"]:
            self._convert(Path(cwd))
        elif rendering:
            self._render(Path(cwd), args)
        return ProcessResult(tuple(args), 0, self.output)

    @property
    def render_calls(self):
        return [args for args, _ in self.calls if not args or args[0].startswith("-")]

    def _new_site(self, root, args):
        root.mkdir(parents=True, exist_ok=True)
        dialect = args[args.index("-f") + 1] if "-f" in args else "toml"
        if dialect == "toml":
            (root / "config.toml").write_text(
                'baseURL = "http://example.org/"\nlanguageCode = "en-us"\ntitle = "My New Hugo Site"\n',
                encoding="utf-8",
            )
        else:
            (root / "config.yaml").write_text(
                'baseURL: "http://example.org/"\nlanguageCode: "en-us"\ntitle: "My New Hugo Site"\n',
                encoding="utf-8",
            )
        for name in ("archetypes", "content", "data", "layouts", "static", "themes"):
            (root / name).mkdir(exist_ok=True)
        (root / "archetypes" / "default.md").write_text(
            '+++\ntitle = "{{ replace .Name "-" " " | title }}"\ndraft = true\n+++\n',
            encoding="utf-8",
        )

    def _new_content(self, root, rel):
        target = root / "content" / rel
        target.parent.mkdir(parents=True, exist_ok=True)
        title = target.stem.replace("-", " ").title()
        target.write_text(f'+++\ntitle = "{title}"\ndraft = true\n+++\n', encoding="utf-8")

    def _convert(self, root):
        for path in (root / "content").rglob("*"):
            if not path.is_file():
                continue
            text = path.read_text(encoding="utf-8")
            if not text.startswith("+++"):
                continue
            _, block, body = text.split("+++", 2)
            data = tomllib.loads(block)
            dumped = yaml.safe_dump(data, sort_keys=False)
            path.write_text(f"---\n{dumped}---{body}", encoding="utf-8")

    def _render(self, root, args):
        output = root / (args[args.index("-d") + 1] if "-d" in args else "public")
        output.mkdir(parents=True, exist_ok=True)
        (output / "index.html").write_text("<html></html>", encoding="utf-8")


@pytest.fixture
def fake_hugo():
    return FakeHugo()


@pytest.fixture
def site(tmp_path):
    """A minimal project with a TOML config and an empty content directory."""
    root = tmp_path / "site"
    (root / "content" / "post").mkdir(parents=True)
    (root / "config.toml").write_text(
        'baseurl = "https://example.com/blog/"\ntitle = "Example"\ntheme = "lithium"\n',
        encoding="utf-8",
    )
    return root
