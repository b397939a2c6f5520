"""Rewrite Typst code in chapter markdown as highlighted (and rendered) HTML.

:class:`BookTransformer` scans every chapter for fenced blocks and inline
spans, resolves a :class:`~typst_highlight.policy.Policy` for each, and runs
the highlight and render steps on a bounded thread pool. Results are joined
back in source order and each chapter is rebuilt in a single splice, so a
construct is either fully replaced or left exactly as written.

Example
-------
>>> from typst_highlight.config import PreprocessorConfig
>>> from typst_highlight.transformer import BookTransformer
>>> transformer = BookTransformer(PreprocessorConfig())
>>> text, _ = transformer.transform_content("```python\\nprint(1)\\n```\\n")
>>> text
'```python\\nprint(1)\\n```\\n'
"""

from __future__ import annotations

import base64
import dataclasses as dc
import enum
import logging
import typing as typ
from concurrent.futures import ThreadPoolExecutor

from .book import chapter_id, iter_chapters
from .grammar import Grammar, default_grammar
from .markdown_scanner import CodeConstruct, FencedBlock, IndentedBlock, InlineSpan, scan
from .policy import Policy, resolve_policy
from .render import RenderFailure, RenderSuccess, TypstRenderer
from .styler import highlight_html
from .theme import Theme, load_theme

if typ.TYPE_CHECKING:
    from .config import PreprocessorConfig

logger = logging.getLogger(__name__)

BLOCK_OPEN = '<pre style="margin: 0"><code class="language-typ hljs">'
BLOCK_CLOSE = "</code></pre>"
INLINE_OPEN = '<code class="hljs">'
INLINE_CLOSE = "</code>"
RENDER_TEMPLATE = (
    '<div class="typst-render">'
    '<img src="data:{mime};base64,{payload}" alt="Rendered Typst">'
    "</div>"
)
MIME_TYPES = {"svg": "image/svg+xml", "png": "image/png"}


class BlockState(enum.Enum):
    """Terminal state of one code construct."""

    UNCHANGED = "unchanged"
    HIGHLIGHTED = "highlighted-only"
    RENDERED = "highlighted-and-rendered"
    RENDER_FAILED = "highlighted-render-failed"


@dc.dataclass(frozen=True, slots=True)
class BlockOutcome:
    """What happened to a construct and the text that replaces it.

    ``replacement`` is ``None`` for :attr:`BlockState.UNCHANGED`.
    """

    construct: CodeConstruct
    policy: Policy
    state: BlockState
    replacement: str | None = None
    reason: str | None = None


@dc.dataclass(slots=True)
class TransformReport:
    """Outcomes of a whole book run, in source order."""

    outcomes: list[BlockOutcome] = dc.field(default_factory=list)

    def count(self, state: BlockState) -> int:
        return sum(1 for outcome in self.outcomes if outcome.state is state)

    @property
    def failures(self) -> list[BlockOutcome]:
        return [o for o in self.outcomes if o.state is BlockState.RENDER_FAILED]


class BookTransformer:
    """Apply highlighting and rendering to chapter markdown."""

    def __init__(
        self,
        config: PreprocessorConfig,
        *,
        grammar: Grammar | None = None,
        theme: Theme | None = None,
        renderer: TypstRenderer | None = None,
    ) -> None:
        """Bind the read-only grammar and theme and the shared renderer.

        Parameters
        ----------
        config : PreprocessorConfig
            Global options; also supplies the renderer settings and pool size.
        grammar : Grammar, optional
            Grammar used for tokenizing; the bundled Typst grammar by default.
        theme : Theme, optional
            Theme used for styling; ``config.theme`` by default.
        renderer : TypstRenderer, optional
            Render invoker; one built from ``config`` by default.
        """
        self.config = config
        self.grammar = grammar or default_grammar()
        self.theme = theme or load_theme(config.theme)
        self.renderer = renderer or TypstRenderer(
            binary=config.typst_binary,
            timeout=config.timeout,
            prelude=config.prelude,
        )

    def policy_for(self, construct: CodeConstruct) -> Policy:
        match construct:
            case FencedBlock(tag=tag):
                return resolve_policy(self.config, tag)
            case IndentedBlock():
                return resolve_policy(self.config, None)
            case InlineSpan():
                return resolve_policy(self.config, None, inline=True)
            case _:
                typ.assert_never(construct)

    def highlight(self, code: str, *, inline: bool) -> str:
        """Return ``code`` as a highlighted ``<pre>`` block or inline ``<code>``."""
        if code.endswith("\n"):
            code = code[:-1]
        body = highlight_html(self.grammar.tokenize(code), self.theme)
        if inline:
            return f"{INLINE_OPEN}{body}{INLINE_CLOSE}"
        return f"{BLOCK_OPEN}{body}{BLOCK_CLOSE}"

    def process_construct(self, construct: CodeConstruct) -> BlockOutcome:
        """Compute the outcome of a single construct.

        Highlighting is pure; rendering is the only step with side effects and
        its failures come back as :class:`RenderFailure` values.
        """
        policy = self.policy_for(construct)
        if not policy.highlight:
            return BlockOutcome(construct, policy, BlockState.UNCHANGED)

        match construct:
            case InlineSpan(code=code):
                html = self.highlight(code, inline=True)
                return BlockOutcome(construct, policy, BlockState.HIGHLIGHTED, html)
            case (
                FencedBlock(code=code, prefix=prefix)
                | IndentedBlock(code=code, prefix=prefix)
            ):
                html = prefix + self.highlight(code, inline=False)
            case _:
                typ.assert_never(construct)

        if not policy.render:
            return BlockOutcome(construct, policy, BlockState.HIGHLIGHTED, html)

        result = self.renderer.render_external(code, policy.use_prelude)
        match result:
            case RenderSuccess(data=data, format=fmt):
                mime = MIME_TYPES.get(fmt, f"image/{fmt}")
                payload = base64.b64encode(data).decode("ascii")
                image = RENDER_TEMPLATE.format(mime=mime, payload=payload)
                return BlockOutcome(construct, policy, BlockState.RENDERED, html + image)
            case RenderFailure(reason=reason):
                return BlockOutcome(
                    construct, policy, BlockState.RENDER_FAILED, html, reason=reason
                )
            case _:
                typ.assert_never(result)

    def process_all(self, constructs: typ.Sequence[CodeConstruct]) -> list[BlockOutcome]:
        """Process ``constructs`` on the worker pool; results keep input order.

        On interruption every running compiler is killed, pending work is
        cancelled, and the call waits for workers to release their temporary
        files before re-raising.
        """
        if not constructs:
            return []
        pool = ThreadPoolExecutor(
            max_workers=self.config.jobs, thread_name_prefix="typst-highlight"
        )
        try:
            futures = [pool.submit(self.process_construct, c) for c in constructs]
            outcomes = [future.result() for future in futures]
        except BaseException:
            killed = self.renderer.registry.terminate_all()
            if killed:
                logger.warning("Interrupted; killed %d running typst process(es)", killed)
            pool.shutdown(wait=True, cancel_futures=True)
            raise
        pool.shutdown(wait=True)
        return outcomes

    def transform_content(
        self, content: str, chapter: str = ""
    ) -> tuple[str, list[BlockOutcome]]:
        """Transform a single markdown document.

        Returns
        -------
        tuple[str, list[BlockOutcome]]
            The new text and one outcome per construct in source order.
        """
        outcomes = self.process_all(scan(content, chapter))
        self._report(content, outcomes)
        return splice(content, outcomes), outcomes

    def transform_book(self, book: dict[str, typ.Any]) -> TransformReport:
        """Transform every chapter of an mdBook ``book`` mapping in place.

        All constructs of the book share one pool so rendering overlaps across
        chapters; each chapter's content is then replaced in one assignment.
        """
        chapters = list(iter_chapters(book))
        per_chapter: list[list[CodeConstruct]] = []
        for position, chapter in enumerate(chapters):
            content = chapter.get("content") or ""
            per_chapter.append(scan(content, chapter_id(chapter, position)))

        flat = [construct for constructs in per_chapter for construct in constructs]
        outcomes = iter(self.process_all(flat))

        report = TransformReport()
        for chapter, constructs in zip(chapters, per_chapter, strict=True):
            if not constructs:
                continue
            chapter_outcomes = [next(outcomes) for _ in constructs]
            content = chapter.get("content") or ""
            self._report(content, chapter_outcomes)
            chapter["content"] = splice(content, chapter_outcomes)
            report.outcomes.extend(chapter_outcomes)
        return report

    @staticmethod
    def _report(content: str, outcomes: typ.Iterable[BlockOutcome]) -> None:
        for outcome in outcomes:
            if outcome.state is not BlockState.RENDER_FAILED:
                continue
            construct = outcome.construct
            line = content.count("\n", 0, construct.start) + 1
            logger.warning(
                "Failed to render Typst block in %s at line %d: %s",
                construct.chapter or "<input>",
                line,
                outcome.reason,
            )


def splice(content: str, outcomes: typ.Iterable[BlockOutcome]) -> str:
    """Rebuild ``content`` with every replacement applied at once.

    ``outcomes`` must be sorted by construct offset and non-overlapping, as
    :func:`~typst_highlight.markdown_scanner.scan` guarantees.
    """
    pieces: list[str] = []
    cursor = 0
    for outcome in outcomes:
        if outcome.replacement is None:
            continue
        pieces.append(content[cursor : outcome.construct.start])
        pieces.append(outcome.replacement)
        cursor = outcome.construct.end
    if not pieces:
        return content
    pieces.append(content[cursor:])
    return "".join(pieces)


__all__ = [
    "BlockOutcome",
    "BlockState",
    "BookTransformer",
    "TransformReport",
    "splice",
]
