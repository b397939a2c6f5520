"""Cyclopts CLI entrypoint for the typst-highlight mdBook preprocessor.

mdBook invokes the ``typst-highlight`` console script twice per build: first
as ``typst-highlight supports html`` to check renderer support, then without
arguments, feeding ``[context, book]`` JSON on stdin and reading the
transformed book from stdout. Diagnostics go to stderr through ``logging``.

The ``process`` command runs the same transformation over one markdown file,
which is handy when tuning a theme or checking a single chapter.

Examples
--------
Register the preprocessor in ``book.toml``::

    [preprocessor.typst-highlight]
    render = true

Check a chapter by hand:

>>> from typst_highlight.cli import app
>>> app(["process", "src/chapter.md", "--output", "out.md"])  # doctest: +SKIP
"""

from __future__ import annotations

import dataclasses as dc
import logging
import os
import signal
import sys
import typing as typ
from pathlib import Path

import cyclopts
from cyclopts import App, Parameter

from .book import BookFormatError, supports_renderer
from .config import ConfigurationError, PreprocessorConfig, load_book_config
from .preprocessor import TypstHighlight, run_preprocessor
from .theme import available_themes

LOG_LEVEL_ENV = "TYPST_HIGHLIGHT_LOG"
LOG_FORMAT = "%(levelname)s [%(name)s] %(message)s"

logger = logging.getLogger(__name__)

app = App(
    name="typst-highlight",
    help="Highlight and render Typst code in mdBook chapters.",
    config=cyclopts.config.Env("TYPST_HIGHLIGHT_", command=False),  # type: ignore[unknown-argument]
)


@app.default
def preprocess() -> None:
    """Read ``[context, book]`` from stdin and write the transformed book to stdout.

    Raises
    ------
    SystemExit
        With status 1 when the input or the configuration is invalid.
    """
    try:
        output = run_preprocessor(sys.stdin.buffer.read())
    except (BookFormatError, ConfigurationError) as exc:
        logger.error("%s", exc)
        raise SystemExit(1) from exc
    sys.stdout.write(output)
    sys.stdout.flush()


@app.command(help="Report whether a renderer is supported (exit status 0 or 1).")
def supports(renderer: str) -> None:
    """Exit with status 0 when ``renderer`` is supported, 1 otherwise."""
    raise SystemExit(0 if supports_renderer(renderer) else 1)


@app.command(help="Transform a single markdown file.")
def process(
    source: Path,
    *,
    config: typ.Annotated[
        Path | None, Parameter(help="book.toml to read [preprocessor.typst-highlight] from")
    ] = None,
    output: typ.Annotated[
        Path | None, Parameter(help="Write here instead of stdout")
    ] = None,
    render: typ.Annotated[
        bool | None, Parameter(help="Override the 'render' option")
    ] = None,
    theme: typ.Annotated[str | None, Parameter(help="Override the 'theme' option")] = None,
) -> None:
    """Highlight the Typst code of ``source``.

    Parameters
    ----------
    source : Path
        Markdown file to transform.
    config : Path or None, optional
        ``book.toml`` holding the preprocessor table; defaults apply when
        omitted.
    output : Path or None, optional
        Destination file; the result is printed when ``None``.
    render : bool or None, optional
        Force rendering on or off regardless of the configuration.
    theme : str or None, optional
        Theme name overriding the configuration.
    """
    try:
        settings = load_book_config(config) if config else PreprocessorConfig()
        overrides: dict[str, typ.Any] = {}
        if render is not None:
            overrides["render"] = render
        if theme is not None:
            overrides["theme"] = theme
        if overrides:
            settings = dc.replace(settings, **overrides)
        text = source.read_text(encoding="utf-8")
        result = TypstHighlight().process_markdown(text, config=settings, source=source)
    except ConfigurationError as exc:
        logger.error("%s", exc)
        raise SystemExit(1) from exc

    if output is None:
        sys.stdout.write(result)
        return
    output.write_text(result, encoding="utf-8")
    print(f"wrote {output}", file=sys.stderr)


@app.command(help="List the bundled themes.")
def themes() -> None:
    for name in available_themes():
        print(name)
    print("(any Pygments style name is accepted as well)")


def _raise_on_sigterm(signum: int, _frame: object) -> None:
    raise SystemExit(128 + signum)


def configure_logging() -> None:
    """Send log records to stderr; stdout is reserved for the book JSON."""
    level_name = os.getenv(LOG_LEVEL_ENV, "WARNING").upper()
    level = logging.getLevelNamesMapping().get(level_name, logging.WARNING)
    logging.basicConfig(level=level, format=LOG_FORMAT, stream=sys.stderr)


def main() -> None:
    """Invoke the Cyclopts application behind the ``typst-highlight`` command.

    ``SIGTERM`` is turned into :class:`SystemExit` so running compilers are
    killed and temporary files removed, exactly as on ``Ctrl-C``.
    """
    configure_logging()
    signal.signal(signal.SIGTERM, _raise_on_sigterm)
    app()


if __name__ == "__main__":  # pragma: no cover - manual invocation helper
    main()
