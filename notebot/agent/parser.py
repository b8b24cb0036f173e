"""Extract tool calls from model output.

The model calls tools by writing blocks such as::

    <invoke name="saveNote">
      <parameter name="title">Groceries</parameter>
      <parameter name="tags">shopping,food</parameter>
    </invoke>

Anything outside ``<invoke>`` blocks is ignored. Blocks are matched with
regexes rather than an XML parser, so prose inside values (``5 < 6``,
``Tom & Jerry``, ``&nbsp;``) never breaks a call; entities are unescaped.
"""

import html
import re
from dataclasses import dataclass, field

from loguru import logger

from notebot.agent.errors import ErrorCategory, ErrorLogger
from notebot.errors import ParseError

# A block never spans another opener, so an unclosed <invoke> can't swallow the next call
_INVOKE_RE = re.compile(
    r"<invoke\b[^>]*/>|<invoke\b(?:(?!<invoke\b).)*?</invoke>",
    re.DOTALL | re.IGNORECASE,
)
_OPEN_TAG_RE = re.compile(r"<invoke\b([^>]*?)/?>", re.IGNORECASE)
_NAME_ATTR_RE = re.compile(r"\bname\s*=\s*(?:\"([^\"]*)\"|'([^']*)')", re.IGNORECASE)
_PARAM_RE = re.compile(
    r"<parameter\b([^>]*?)/>|<parameter\b([^>]*)>(.*?)</parameter\s*>",
    re.DOTALL | re.IGNORECASE,
)
_PARAM_OPEN_RE = re.compile(r"<parameter\b", re.IGNORECASE)


@dataclass
class ToolCall:
    """One tool invocation requested by the model."""

    tool_name: str
    params: dict[str, str | list[str]] = field(default_factory=dict)


def _name_attr(attrs: str) -> str:
    match = _NAME_ATTR_RE.search(attrs)
    if not match:
        return ""
    return html.unescape(match.group(1) if match.group(1) is not None else match.group(2)).strip()


def _parse_block(block: str) -> ToolCall:
    opener = _OPEN_TAG_RE.match(block)
    name = _name_attr(opener.group(1)) if opener else ""
    if not name:
        raise ParseError("Invoke block without a tool name")

    body = block[opener.end() :]
    params: dict[str, str | list[str]] = {}
    for match in _PARAM_RE.finditer(body):
        self_closing, attrs, raw = match.group(1), match.group(2), match.group(3)
        key = _name_attr(self_closing if self_closing is not None else attrs)
        if not key:
            continue
        value = html.unescape(raw or "").strip()
        existing = params.get(key)
        if existing is None:
            params[key] = value
        elif isinstance(existing, list):
            existing.append(value)
        else:
            params[key] = [existing, value]

    if _PARAM_OPEN_RE.search(_PARAM_RE.sub("", body)):
        raise ParseError(f"Unclosed parameter in '{name}' call")

    return ToolCall(tool_name=name, params=params)


def parse_tool_calls(text: str, error_logger: ErrorLogger | None = None) -> list[ToolCall]:
    """
    Parse every ``<invoke>`` block in ``text``, in document order.

    Never raises: a block that cannot be parsed is dropped and reported,
    and the remaining blocks are still returned.
    """
    if not text or not isinstance(text, str):
        return []

    calls: list[ToolCall] = []
    for match in _INVOKE_RE.finditer(text):
        block = match.group(0)
        try:
            calls.append(_parse_block(block))
        except ParseError as e:
            snippet = block if len(block) <= 200 else block[:200] + "..."
            if error_logger:
                error_logger.log_exception(
                    e,
                    category=ErrorCategory.PARSE,
                    context={"block": snippet},
                    severity="warning",
                    recovered=True,
                )
            else:
                logger.warning(f"Dropping tool call block: {e} ({snippet!r})")

    return calls


class ToolCallParser:
    """Parser bound to an error logger."""

    def __init__(self, error_logger: ErrorLogger | None = None):
        self.error_logger = error_logger

    def parse(self, text: str) -> list[ToolCall]:
        return parse_tool_calls(text, self.error_logger)
