"""Markdown to chat-webhook mrkdwn rendering."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional

import mistune

logger = logging.getLogger(__name__)

DEFAULT_PLUGINS = ("strikethrough", "insert", "mark", "superscript")

_AMPERSAND_RE = re.compile(r"&(?!#?[0-9A-Za-z]+;)")
_MENTION_RE = re.compile(r"<([@!]|users).+>")
_LIST_LINE_RE = re.compile(r"^(\S.*)$", re.MULTILINE)
_NON_EMPTY_LINE_RE = re.compile(r"^(.+)$", re.MULTILINE)
_NEST_INDENT = "   "

# Token types whose renderer output is not the plain pass-through of their content.
_HANDLERS = {
    "strikethrough": "strikethrough",
    "insert": "underline",
    "emphasis": "emphasis",
    "strong": "double_emphasis",
    "block_code": "block_code",
    "block_quote": "block_quote",
    "codespan": "codespan",
    "link": "link",
    "image": "image",
    "paragraph": "paragraph",
    "heading": "header",
    "linebreak": "linebreak",
    "softbreak": "linebreak",
    "block_text": "block_text",
}


class ListStyle(Enum):
    ORDERED = "ordered"
    UNORDERED = "unordered"


@dataclass
class RendererState:
    """Memory carried between tokens of a single render call.

    ``last_list`` holds the formatted text of the most recently closed list
    until a paragraph is rendered or a list item embeds it.
    """

    last_list: Optional[str] = None


def escape_mrkdwn(text: str) -> str:
    """Escape characters reserved by mrkdwn, keeping user and group mentions.

    Args:
        text: Raw Markdown text

    Returns:
        Text with ``&``, ``<`` and ``>`` turned into entities
    """
    text = _AMPERSAND_RE.sub("&amp;", text)
    # Split on spaces only so newlines survive the round trip
    words = text.split(" ")
    return " ".join(
        word if _MENTION_RE.search(word) else word.replace("<", "&lt;").replace(">", "&gt;")
        for word in words
    )


def format_list(entries: str, style: ListStyle) -> str:
    """Prefix every top-level line with a dash or a running number."""
    if style is ListStyle.ORDERED:
        count = 0

        def number(match: re.Match) -> str:
            nonlocal count
            count += 1
            return f"{count}. {match.group(1)}"

        return _LIST_LINE_RE.sub(number, entries)
    return _LIST_LINE_RE.sub(r"- \1", entries)


def nest_list(entries: str) -> str:
    """Indent a rendered list by one nesting level."""
    return _NON_EMPTY_LINE_RE.sub(_NEST_INDENT + r"\1", entries)


class MrkdwnRenderer(mistune.BaseRenderer):
    """Render mistune AST tokens into mrkdwn.

    Every handler receives the render call's ``RendererState`` followed by
    the token's already rendered content and its attributes. Token types
    without a handler pass their content through unchanged.

    Nested lists are detected by checking whether a list item ends with the
    text of the list rendered just before it. Two lists that render to the
    same text can therefore be mistaken for parent and child. Passing
    ``structural_nesting=True`` indents child lists found in the token tree
    instead, which avoids that but may differ from the textual output.
    """

    NAME = "mrkdwn"

    def __init__(self, structural_nesting: bool = False):
        super().__init__()
        self.structural_nesting = structural_nesting

    def render(self, tokens: Iterable[Dict[str, Any]], state: RendererState) -> str:
        return self.render_tokens(tokens, state)

    def render_token(self, token: Dict[str, Any], state: RendererState) -> str:
        kind = token.get("type")
        attrs = token.get("attrs") or {}

        if kind == "list":
            return self._render_list(token, attrs, state)

        if kind in ("emphasis", "strong"):
            inner = _sole_child(token, "strong" if kind == "emphasis" else "emphasis")
            if inner is not None:
                return self.triple_emphasis(state, self._render_content(inner, state))

        text = self._render_content(token, state)
        name = _HANDLERS.get(kind)
        if name is None:
            return self.passthrough(state, text, **attrs)
        return getattr(self, name)(state, text, **attrs)

    def _render_content(self, token: Dict[str, Any], state: RendererState) -> str:
        if "raw" in token:
            return token["raw"] or ""
        children = token.get("children")
        if children:
            return self.render_tokens(children, state)
        return ""

    def _render_list(self, token: Dict[str, Any], attrs: Dict[str, Any], state: RendererState) -> str:
        style = ListStyle.ORDERED if attrs.get("ordered") else ListStyle.UNORDERED
        entries = "".join(
            self._render_list_item(item, style, state)
            for item in token.get("children") or []
        )
        return self.list(state, entries, style)

    def _render_list_item(self, token: Dict[str, Any], style: ListStyle, state: RendererState) -> str:
        if not self.structural_nesting:
            return self.list_item(state, self._render_content(token, state), style)

        parts: List[str] = []
        for child in token.get("children") or []:
            rendered = self.render_token(child, state)
            if child.get("type") == "list":
                rendered = nest_list(rendered)
                state.last_list = None
            parts.append(rendered)
        return "".join(parts)

    # Handlers

    def passthrough(self, state: RendererState, text: str = "", **attrs: Any) -> str:
        return text

    def strikethrough(self, state: RendererState, text: str, **attrs: Any) -> str:
        return f"~{text}~"

    def underline(self, state: RendererState, text: str, **attrs: Any) -> str:
        # mrkdwn has no underline, italics is the closest match
        return f"_{text}_"

    def emphasis(self, state: RendererState, text: str, **attrs: Any) -> str:
        return f"_{text}_"

    def double_emphasis(self, state: RendererState, text: str, **attrs: Any) -> str:
        return f"*{text}*"

    def triple_emphasis(self, state: RendererState, text: str, **attrs: Any) -> str:
        return f"*_{text}_*"

    def block_code(self, state: RendererState, text: str, **attrs: Any) -> str:
        if not text.endswith("\n"):
            text += "\n"
        return f"```\n{text}```\n\n"

    def block_quote(self, state: RendererState, text: str, **attrs: Any) -> str:
        return f"&gt; {text}"

    def codespan(self, state: RendererState, text: str, **attrs: Any) -> str:
        return f"`{text}`"

    def link(self, state: RendererState, text: str, url: str = "", title: Optional[str] = None, **attrs: Any) -> str:
        return f"<{url}|{text}>"

    def image(self, state: RendererState, text: str, url: str = "", title: Optional[str] = None, **attrs: Any) -> str:
        return url

    def header(self, state: RendererState, text: str, level: int = 1, **attrs: Any) -> str:
        return f"*{text}*\n"

    def linebreak(self, state: RendererState, text: str = "", **attrs: Any) -> str:
        return "\n"

    def block_text(self, state: RendererState, text: str, **attrs: Any) -> str:
        return f"{text}\n"

    def paragraph(self, state: RendererState, text: str, **attrs: Any) -> str:
        spacing = "\n" if state.last_list else ""
        state.last_list = None
        return f"{spacing}{text}\n\n"

    def list(self, state: RendererState, entries: str, style: ListStyle) -> str:
        entries = format_list(entries, style)
        state.last_list = entries
        return entries

    def list_item(self, state: RendererState, entry: str, style: ListStyle) -> str:
        last_list = state.last_list
        if last_list and entry.endswith(last_list):
            entry = entry.replace(last_list, nest_list(last_list))
            state.last_list = None
        return entry


def _sole_child(token: Dict[str, Any], kind: str) -> Optional[Dict[str, Any]]:
    children = token.get("children") or []
    if len(children) == 1 and children[0].get("type") == kind:
        return children[0]
    return None


def render_mrkdwn(
    markdown: Optional[str],
    *,
    plugins: Optional[Iterable[str]] = None,
    structural_nesting: bool = False,
) -> str:
    """Convert Markdown into mrkdwn text for chat webhooks.

    Args:
        markdown: Markdown source
        plugins: mistune plugin names (defaults to DEFAULT_PLUGINS)
        structural_nesting: Indent nested lists from the token tree instead of
            matching the previous list's text

    Returns:
        mrkdwn text with trailing whitespace removed
    """
    if not markdown:
        return ""

    parser = mistune.create_markdown(
        renderer="ast",
        plugins=list(DEFAULT_PLUGINS if plugins is None else plugins),
    )
    tokens = parser(escape_mrkdwn(markdown))
    renderer = MrkdwnRenderer(structural_nesting=structural_nesting)
    output = renderer.render(tokens, RendererState())
    logger.debug(f"Rendered {len(markdown)} Markdown characters into {len(output)} mrkdwn characters")
    return output.rstrip()
