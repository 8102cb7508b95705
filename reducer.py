from __future__ import annotations

import re
from typing import Callable, Optional, Sequence, Tuple

PASSTHROUGH_MEDIA_TYPES = frozenset({"application/json", "text/plain", "text/csv"})

_DOCTYPE = re.compile(r"<!DOCTYPE[^>]*>", re.IGNORECASE)
_COMMENT = re.compile(r"<!--.*?-->", re.DOTALL)
_SCRIPT_STYLE = re.compile(r"<(script|style)\b.*?</\1\s*>", re.IGNORECASE | re.DOTALL)
_PRESENTATION_ATTRS = re.compile(
    r"\b(?:style|class|id)\s*=\s*(?:\"[^\"]*\"|'[^']*')", re.IGNORECASE
)
_BOILERPLATE_BLOCKS = re.compile(
    r"<(head|nav|header|footer|form)\b[^>]*>.*?</\1\s*>", re.IGNORECASE | re.DOTALL
)
_BLOCK_TAG = re.compile(
    r"</?(?:p|div|br|hr|li|ul|ol|dl|dt|dd|h[1-6]|tr|td|th|table|section|article"
    r"|aside|main|blockquote|pre|figcaption)\b[^>]*>",
    re.IGNORECASE,
)
_ANY_TAG = re.compile(r"<[^>]*>")
_BREAK_RUN = re.compile(r"\s*(?:\x1e\s*)+")
_WHITESPACE = re.compile(r"\s+")
_NON_WORD_ONLY = re.compile(r"[\s\d\W]+")

_ENTITIES: Tuple[Tuple[str, str], ...] = (
    ("&nbsp;", " "),
    ("&lt;", "<"),
    ("&gt;", ">"),
    ("&amp;", "&"),
    ("&quot;", '"'),
)

_BREAK_MARK = "\x1e"
_SENTENCE_END = ".!?:;"
FRAGMENT_SEPARATOR = ". "


def remove_doctype(text: str) -> str:
    return _DOCTYPE.sub("", text)


def remove_comments(text: str) -> str:
    return _COMMENT.sub("", text)


def remove_scripts_and_styles(text: str) -> str:
    return _SCRIPT_STYLE.sub("", text)


def strip_presentation_attributes(text: str) -> str:
    return _PRESENTATION_ATTRS.sub("", text)


def remove_boilerplate_blocks(text: str) -> str:
    return _BOILERPLATE_BLOCKS.sub("", text)


def strip_tags(text: str) -> str:
    """Drop all tags, keeping their text.

    Block-level tags end the current sentence so that separate paragraphs
    become separate fragments; inline tags vanish without a trace.
    """
    text = _BLOCK_TAG.sub(_BREAK_MARK, text)
    text = _ANY_TAG.sub("", text)
    return _BREAK_RUN.sub(_sentence_break, text)


def _sentence_break(match: "re.Match[str]") -> str:
    start = match.start()
    if start == 0 or match.string[start - 1] in _SENTENCE_END:
        return " "
    return FRAGMENT_SEPARATOR


def decode_entities(text: str) -> str:
    for entity, literal in _ENTITIES:
        text = text.replace(entity, literal)
    return text


def collapse_whitespace(text: str) -> str:
    return _WHITESPACE.sub(" ", text).strip()


def is_meaningful(fragment: str) -> bool:
    """Keep fragments longer than three characters with at least one word."""
    fragment = fragment.strip()
    return len(fragment) > 3 and not _NON_WORD_ONLY.fullmatch(fragment)


def drop_meaningless_fragments(text: str) -> str:
    fragments = [fragment.strip() for fragment in text.split(FRAGMENT_SEPARATOR)]
    kept = [fragment for fragment in fragments if is_meaningful(fragment)]
    result = FRAGMENT_SEPARATOR.join(kept).strip()
    if result and result[-1] not in _SENTENCE_END:
        result += "."
    return result


# Order matters: later steps assume whole blocks are already gone.
REDUCTION_STEPS: Sequence[Callable[[str], str]] = (
    remove_doctype,
    remove_comments,
    remove_scripts_and_styles,
    strip_presentation_attributes,
    remove_boilerplate_blocks,
    strip_tags,
    decode_entities,
    collapse_whitespace,
    drop_meaningless_fragments,
)


def reduce_html(body: str) -> str:
    """Reduce an HTML document to denoised plain text."""
    for step in REDUCTION_STEPS:
        body = step(body)
    return body


def is_passthrough(content_type: Optional[str]) -> bool:
    if not content_type:
        return False
    media_type = content_type.split(";", 1)[0].strip().lower()
    return media_type in PASSTHROUGH_MEDIA_TYPES or media_type.endswith("+json")


def reduce_content(body: str, content_type: Optional[str]) -> str:
    """Return structured payloads untouched and reduce everything else."""
    if is_passthrough(content_type):
        return body
    return reduce_html(body)
