from __future__ import annotations

from pathlib import Path
from textwrap import dedent

import pytest

from modrun.sources import DirectoryFileLoader


class CountingFileLoader(DirectoryFileLoader):
    """Directory loader that records every physical read."""

    def __init__(self, directory: Path) -> None:
        super().__init__(directory)
        self.reads: list[str] = []

    async def load_file(self, location: str) -> str:
        self.reads.append(location)
        return await super().load_file(location)


def write_module(root: Path, relative: str, body: str) -> Path:
    """Write a module body below ``root``, creating parent directories."""

    target = root / relative
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_text(dedent(body).lstrip("\n"), encoding="utf-8")
    return target


CONFIG_TEMPLATE = """
root: {root}
packages:
  lib/text:
    path: vendor/text
    main: core
    src_dir: src
    dist_dir: dist
  app:
    path: app
    main: main
"""


@pytest.fixture()
def module_tree(tmp_path: Path) -> Path:
    """A small module tree with a vendored library and an application package."""

    root = tmp_path / "modules"
    write_module(
        root,
        "vendor/text/src/core.py",
        """
        exports.shout = lambda text: text.upper() + "!"
        """,
    )
    write_module(
        root,
        "vendor/text/src/greet.py",
        """
        core = require("lib/text")
        exports.greet = lambda name: core.shout(f"hello {name}")
        """,
    )
    write_module(
        root,
        "app/main.py",
        """
        target = "lib/text/" + "greet"
        greet = require(target).greet
        exports.message = greet("world")
        """,
    )
    write_module(
        root,
        "app/factory.py",
        """
        exports.ignored = True
        define(["lib/text", "app/settings"], lambda core, settings: {
            "banner": core.shout(settings.name),
        })
        """,
    )
    write_module(
        root,
        "app/settings.py",
        """
        exports.name = "modrun"
        """,
    )
    write_module(
        root,
        "app/lazy.py",
        """
        greet = await import("lib/text/greet")
        exports.message = greet.greet("async")
        """,
    )
    (tmp_path / "config.yaml").write_text(CONFIG_TEMPLATE.format(root=root), encoding="utf-8")
    return root
