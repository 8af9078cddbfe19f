"""Text parsing: censoring, forum code, and client HTML clean-up.

Everything that reaches storage as post text passes through here, so
the output is always safe to render: user text is escaped with
markupsafe and only a small set of formatting tags survives.
"""

from __future__ import annotations

import re
from collections.abc import Iterable
from html.parser import HTMLParser

from markupsafe import escape

ALLOWED_TAGS: frozenset[str] = frozenset(
    {
        "a",
        "b",
        "blockquote",
        "br",
        "code",
        "em",
        "i",
        "li",
        "ol",
        "p",
        "pre",
        "s",
        "strike",
        "strong",
        "sub",
        "sup",
        "u",
        "ul",
    }
)
VOID_TAGS: frozenset[str] = frozenset({"br"})
SAFE_URL_SCHEMES: tuple[str, ...] = ("http://", "https://", "mailto:")

# [tag]...[/tag] pairs and their HTML replacements, applied after escaping.
_SIMPLE_CODES: tuple[tuple[str, str, str], ...] = (
    ("b", "<b>", "</b>"),
    ("i", "<i>", "</i>"),
    ("u", "<u>", "</u>"),
    ("quote", "<blockquote>", "</blockquote>"),
    ("code", "<pre>", "</pre>"),
)
_URL_WITH_LABEL = re.compile(r"\[url=([^\]\s]+)\](.*?)\[/url\]", re.IGNORECASE | re.DOTALL)
_BARE_URL = re.compile(r"\[url\]([^\[\s]+)\[/url\]", re.IGNORECASE)


def is_safe_url(url: str) -> bool:
    return url.strip().lower().startswith(SAFE_URL_SCHEMES)


class TextParsingService:
    """Stateless text transformations configured with a censor list.

    Parameters:
        censor_words: Words replaced whole-word and case-insensitively.
        censor_char: Replacement character, repeated to the word's length.
    """

    def __init__(self, censor_words: Iterable[str] = (), censor_char: str = "*") -> None:
        words = [w.strip() for w in censor_words if w.strip()]
        self._censor_char = censor_char or "*"
        self._censor_pattern: re.Pattern[str] | None = None
        if words:
            alternation = "|".join(re.escape(w) for w in sorted(words, key=len, reverse=True))
            self._censor_pattern = re.compile(rf"\b(?:{alternation})\b", re.IGNORECASE)

    def censor(self, text: str) -> str:
        """Mask configured words in *text*.

        Examples:
            >>> TextParsingService(["darn"]).censor("Darn it")
            '**** it'
        """
        if self._censor_pattern is None or not text:
            return text
        return self._censor_pattern.sub(lambda m: self._censor_char * len(m.group(0)), text)

    def forum_code_to_html(self, text: str) -> str:
        """Render plain text with forum codes into safe HTML."""
        html = str(escape(self.censor(text).replace("\r\n", "\n")))
        for code, open_tag, close_tag in _SIMPLE_CODES:
            pattern = re.compile(rf"\[{code}\](.*?)\[/{code}\]", re.IGNORECASE | re.DOTALL)
            html = pattern.sub(lambda m, o=open_tag, c=close_tag: f"{o}{m.group(1)}{c}", html)
        html = _URL_WITH_LABEL.sub(_render_link, html)
        html = _BARE_URL.sub(lambda m: _render_link_parts(m.group(1), m.group(1), m.group(0)), html)
        return html.replace("\n", "<br />")

    def client_html_to_html(self, text: str) -> str:
        """Reduce client-supplied HTML to the allowed tag set."""
        cleaner = _HtmlCleaner()
        cleaner.feed(self.censor(text))
        cleaner.close()
        return cleaner.result()


def _render_link(match: re.Match[str]) -> str:
    return _render_link_parts(match.group(1), match.group(2), match.group(0))


def _render_link_parts(url: str, label: str, original: str) -> str:
    # url is already escaped; unsafe schemes stay as literal forum code
    if not is_safe_url(url):
        return original
    return f'<a href="{url}">{label}</a>'


class _HtmlCleaner(HTMLParser):
    """Re-emits allowed tags; escapes everything else as text."""

    def __init__(self) -> None:
        super().__init__(convert_charrefs=True)
        self._out: list[str] = []
        self._open: list[str] = []

    def handle_starttag(self, tag: str, attrs: list[tuple[str, str | None]]) -> None:
        if tag not in ALLOWED_TAGS:
            self._out.append(str(escape(self.get_starttag_text() or "")))
            return
        if tag in VOID_TAGS:
            self._out.append(f"<{tag} />")
            return
        if tag == "a":
            href = dict(attrs).get("href") or ""
            if is_safe_url(href):
                self._out.append(f'<a href="{escape(href.strip())}">')
            else:
                self._out.append("<a>")
        else:
            self._out.append(f"<{tag}>")
        self._open.append(tag)

    def handle_startendtag(self, tag: str, attrs: list[tuple[str, str | None]]) -> None:
        if tag in VOID_TAGS:
            self._out.append(f"<{tag} />")
        else:
            self._out.append(str(escape(self.get_starttag_text() or "")))

    def handle_endtag(self, tag: str) -> None:
        if tag in VOID_TAGS:
            return
        if tag not in ALLOWED_TAGS or tag not in self._open:
            self._out.append(str(escape(f"</{tag}>")))
            return
        while self._open:
            current = self._open.pop()
            self._out.append(f"</{current}>")
            if current == tag:
                break

    def handle_data(self, data: str) -> None:
        self._out.append(str(escape(data)))

    def result(self) -> str:
        closing = [f"</{tag}>" for tag in reversed(self._open)]
        return "".join(self._out + closing)
