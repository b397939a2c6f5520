"""Shared fixtures: a scriptable stand-in for the ``typst`` binary."""

from __future__ import annotations

import os
import sys
import textwrap
import typing as typ
from pathlib import Path

import pytest

FAKE_SVG = '<svg xmlns="http://www.w3.org/2000/svg" width="10" height="10"></svg>'

FAKE_TYPST_SCRIPTS = {
    # Arguments: compile <input> <output>
    "ok": f"""
        cp "$2" "$(dirname "$0")/last-input.typ"
        printf '%s' '{FAKE_SVG}' > "$3"
    """,
    "fail": """
        echo "error: unknown variable: foo" >&2
        echo "  ┌─ input.typ:1:2" >&2
        exit 1
    """,
    "silent": """
        exit 0
    """,
    "empty": """
        : > "$3"
    """,
    "slow": """
        exec sleep 30
    """,
}


class FakeTypst(typ.NamedTuple):
    """Handle on an installed fake compiler."""

    bin_dir: Path
    log: Path

    @property
    def svg(self) -> str:
        """Document the ``ok`` mode writes as compiler output."""
        return FAKE_SVG

    @property
    def last_input(self) -> str:
        return (self.bin_dir / "last-input.typ").read_text(encoding="utf-8")

    def work_dirs(self) -> list[Path]:
        """Temporary directories the compiler was invoked in."""
        if not self.log.exists():
            return []
        return [Path(line) for line in self.log.read_text(encoding="utf-8").split()]


@pytest.fixture
def fake_typst(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> typ.Callable[[str], FakeTypst]:
    """Install a fake ``typst`` executable on ``PATH`` behaving like ``mode``."""
    if sys.platform == "win32":  # pragma: no cover - POSIX shell scripts only
        pytest.skip("fake typst relies on /bin/sh")

    def _install(mode: str) -> FakeTypst:
        bin_dir = tmp_path / "bin"
        bin_dir.mkdir(exist_ok=True)
        log = tmp_path / "typst-invocations.log"
        script = bin_dir / "typst"
        body = textwrap.dedent(FAKE_TYPST_SCRIPTS[mode])
        script.write_text(
            "#!/bin/sh\n"
            f'dirname "$2" >> "{log}"\n'
            f"{body}",
            encoding="utf-8",
        )
        script.chmod(0o755)
        monkeypatch.setenv("PATH", f"{bin_dir}{os.pathsep}{os.environ.get('PATH', '')}")
        return FakeTypst(bin_dir=bin_dir, log=log)

    return _install


@pytest.fixture
def chapter_book() -> typ.Callable[..., dict[str, typ.Any]]:
    """Build an mdBook ``book`` mapping from chapter contents."""

    def _build(*contents: str) -> dict[str, typ.Any]:
        sections = [
            {
                "Chapter": {
                    "name": f"Chapter {idx + 1}",
                    "content": content,
                    "number": [idx + 1],
                    "sub_items": [],
                    "path": f"chapter_{idx + 1}.md",
                    "source_path": f"chapter_{idx + 1}.md",
                    "parent_names": [],
                }
            }
            for idx, content in enumerate(contents)
        ]
        return {"sections": sections, "__non_exhaustive": None}

    return _build
