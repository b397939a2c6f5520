"""Decide, per code construct, whether to highlight, render, and add the prelude.

Decision table (``config`` flags ``disable_inline``, ``typst_default`` and
``render``; tag suffixes ``-noprelude`` and ``-norender``):

=====================================  =========  ======================  ===========
construct                              highlight  render                  use_prelude
=====================================  =========  ======================  ===========
fenced, tag ``typ``/``typst``          yes        ``render`` and not      not
                                                  ``-norender``           ``-noprelude``
fenced, no tag, ``typst_default``      yes        as above                as above
fenced, no tag, not ``typst_default``  no         no                      no
indented, ``typst_default``            yes        ``render``              yes
indented, not ``typst_default``        no         no                      no
fenced, any other tag                  no         no                      no
inline, ``disable_inline``             no         no                      no
inline, not ``disable_inline``         yes        no                      no
=====================================  =========  ======================  ===========

Suffixes are independent flags and compose in any order. A tag made only of
suffixes, such as ``-norender``, is treated as no tag with those flags set.
"""

from __future__ import annotations

import dataclasses as dc
import re
import typing as typ

from ._constants import NO_PRELUDE_SUFFIX, NO_RENDER_SUFFIX, TARGET_TAGS

if typ.TYPE_CHECKING:
    from .config import PreprocessorConfig

TAG_SPLIT_PATTERN = re.compile(r"[\s,{]")
SUFFIX_FLAGS = {NO_PRELUDE_SUFFIX: "no_prelude", NO_RENDER_SUFFIX: "no_render"}


@dc.dataclass(frozen=True, slots=True)
class BlockTag:
    """A parsed fence language tag.

    Attributes
    ----------
    raw : str
        The tag word as written, suffixes included.
    base : str
        The tag with every recognised suffix removed.
    no_prelude : bool
        ``-noprelude`` was present.
    no_render : bool
        ``-norender`` was present.
    """

    raw: str
    base: str
    no_prelude: bool = False
    no_render: bool = False

    @property
    def is_target(self) -> bool:
        return self.base in TARGET_TAGS


@dc.dataclass(frozen=True, slots=True)
class Policy:
    """What to do with one code construct."""

    highlight: bool
    render: bool
    use_prelude: bool


SKIP = Policy(highlight=False, render=False, use_prelude=False)
INLINE = Policy(highlight=True, render=False, use_prelude=False)


def parse_tag(info: str | None) -> BlockTag | None:
    """Parse a fence info string into a :class:`BlockTag`.

    Only the first word counts; attributes after whitespace, a comma or a
    brace are ignored. Returns ``None`` when no tag is present.

    Examples
    --------
    >>> parse_tag("typst-norender-noprelude")
    BlockTag(raw='typst-norender-noprelude', base='typst', no_prelude=True, no_render=True)
    >>> parse_tag("   ") is None
    True
    """
    if info is None:
        return None
    word = TAG_SPLIT_PATTERN.split(info.strip(), maxsplit=1)[0]
    if not word:
        return None

    base = word
    flags = dict.fromkeys(SUFFIX_FLAGS.values(), False)
    stripped = True
    while stripped:
        stripped = False
        for suffix, flag in SUFFIX_FLAGS.items():
            if base.endswith(suffix):
                base = base[: -len(suffix)]
                flags[flag] = True
                stripped = True
    return BlockTag(raw=word, base=base, **flags)


def resolve_policy(
    config: PreprocessorConfig, tag: str | BlockTag | None, *, inline: bool = False
) -> Policy:
    """Return the :class:`Policy` for a construct.

    Parameters
    ----------
    config : PreprocessorConfig
        Global preprocessor options.
    tag : str, BlockTag or None
        The fence info string (or its parsed form); ``None`` when absent.
        Ignored for inline spans.
    inline : bool, optional
        ``True`` for inline code spans.

    Returns
    -------
    Policy
        A frozen decision record; identical inputs give equal results.
    """
    if inline:
        return SKIP if config.disable_inline else INLINE

    parsed = tag if isinstance(tag, BlockTag) or tag is None else parse_tag(tag)
    if parsed is None or not parsed.base:
        # Untagged, or suffixes only: the suffix flags still apply.
        if not config.typst_default:
            return SKIP
    elif not parsed.is_target:
        return SKIP
    if parsed is None:
        return Policy(highlight=True, render=config.render, use_prelude=True)
    return Policy(
        highlight=True,
        render=config.render and not parsed.no_render,
        use_prelude=not parsed.no_prelude,
    )


__all__ = ["INLINE", "SKIP", "BlockTag", "Policy", "parse_tag", "resolve_policy"]
