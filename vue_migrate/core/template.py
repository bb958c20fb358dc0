"""
Template usage scanner and rewriter.

``MarkupRewriter`` is a streaming markup consumer built on
``html.parser.HTMLParser``. It reports elements, end tags and text nodes to
registered handlers, lets them change attribute values, tag names and text,
and otherwise reproduces the input exactly (attribute case, quoting,
entities and whitespace included).

``TemplateProcessor`` drives one pass over a template with it: it records
what the markup uses (tags, directives, identifiers, i18n calls, refs, store
state, emitted events) and applies the configured renames plus a few expression
normalizations.
"""

import logging
import re
from dataclasses import dataclass, field
from html.parser import HTMLParser
from typing import Callable, List, Optional, Tuple

from vue_migrate.core.config import MigrateConfig, StoreRegistry
from vue_migrate.core.models import TemplateUsage
from vue_migrate.core.utils import kebab_case, normalize_alias, normalize_emit

_TAG_NAME_RE = re.compile(r"<\s*([^\s/>]+)")
_END_TAG_NAME_RE = re.compile(r"</\s*([^\s/>]+)")
_ATTR_RE = re.compile(r"""([^\s"'<>/=]+)(?:(\s*=\s*)("[^"]*"|'[^']*'|[^\s"'=<>`]+))?""")
_MUSTACHE_RE = re.compile(r"\{\{(.*?)\}\}", re.S)
_IDENTIFIER_RE = re.compile(r"(?<![\w$.'\"])([A-Za-z_$][\w$]*)")
_STRING_LITERAL_RE = re.compile(r"""'(?:\\.|[^'\\])*'|"(?:\\.|[^"\\])*"|`(?:\\.|[^`\\])*`""")
_I18N_CALL_RE = re.compile(r"(?<![\w.])\$?([tnd])\(")
_LOCALE_RE = re.compile(r"\$i18n\.locale\b")
_LOCALE_PROPERTIES_RE = re.compile(r"\$i18n\.localeProperties\b")
_LOCALE_HELPER_RE = re.compile(r"\b(localePath|localeRoute|localeProperties)\b")
_CONFIG_RE = re.compile(r"\$config\b")
_STORE_STATE_RE = re.compile(r"\$store\.state\.([A-Za-z_$][\w$]*)\b")
_EMIT_RE = re.compile(r"""((?<![\w.])\$emit\(\s*)(['"])([^'"]*)\2""")

JS_KEYWORDS = {
    "true", "false", "null", "undefined", "this", "typeof", "instanceof", "in", "of",
    "new", "void", "delete", "if", "else", "return", "function", "let", "const", "var",
    "await", "async", "NaN", "Infinity",
}

BOUND_ATTR_PREFIXES = ("v-", ":", "@", "#")


class Element:
    """A start tag whose name and attribute values can be changed in place."""

    def __init__(self, raw: str):
        self.raw = raw
        match = _TAG_NAME_RE.match(raw)
        self._name_span = match.span(1) if match else (1, 1)
        self._original_name = raw[self._name_span[0]:self._name_span[1]]
        self.tag_name = self._original_name
        self._attributes: List[Tuple[str, Optional[str], Tuple[int, int], str]] = []
        self._changes = {}
        self._parse_attributes()

    def _parse_attributes(self) -> None:
        end = len(self.raw) - (2 if self.raw.endswith("/>") else 1)
        for match in _ATTR_RE.finditer(self.raw, self._name_span[1], end):
            value = match.group(3)
            if value is None:
                self._attributes.append((match.group(1), None, (match.end(1), match.end(1)), ""))
                continue
            quote = value[0] if value[0] in ("'", '"') else ""
            inner = value[1:-1] if quote else value
            self._attributes.append((match.group(1), inner, match.span(3), quote))

    @property
    def original_tag_name(self) -> str:
        return self._original_name

    @property
    def attributes(self) -> List[Tuple[str, Optional[str]]]:
        return [(name, self._changes.get(index, value))
                for index, (name, value, _, _) in enumerate(self._attributes)]

    def get_attribute(self, name: str) -> Optional[str]:
        for attr_name, value in self.attributes:
            if attr_name == name:
                return value
        return None

    def set_attribute(self, name: str, value: str) -> None:
        for index, (attr_name, _, _, _) in enumerate(self._attributes):
            if attr_name == name:
                self._changes[index] = value
                return
        raise KeyError(name)

    def serialize(self) -> str:
        edits = []
        if self.tag_name != self._original_name:
            edits.append((self._name_span[0], self._name_span[1], self.tag_name))
        for index, value in self._changes.items():
            name, original, span, quote = self._attributes[index]
            if value == original:
                continue
            if original is None:
                edits.append((span[0], span[1], f'="{value}"'))
                continue
            if not quote:
                quote = "'" if '"' in value else '"'
            edits.append((span[0], span[1], f"{quote}{value}{quote}"))
        raw = self.raw
        for start, end, replacement in sorted(edits, reverse=True):
            raw = raw[:start] + replacement + raw[end:]
        return raw


class EndTag:
    """A closing tag whose name can be changed."""

    def __init__(self, raw: str):
        self.raw = raw
        match = _END_TAG_NAME_RE.match(raw)
        self._name_span = match.span(1) if match else (2, 2)
        self._original_name = raw[self._name_span[0]:self._name_span[1]]
        self.tag_name = self._original_name

    def serialize(self) -> str:
        if self.tag_name == self._original_name:
            return self.raw
        return self.raw[:self._name_span[0]] + self.tag_name + self.raw[self._name_span[1]:]


class TextChunk:
    """Contiguous text between two tags, entities left encoded."""

    def __init__(self, text: str):
        self.text = text
        self.replaced: Optional[str] = None

    def replace(self, content: str) -> None:
        self.replaced = content

    def serialize(self) -> str:
        return self.text if self.replaced is None else self.replaced


class MarkupRewriter(HTMLParser):
    """
    Streaming rewriter: ``on_element``/``on_end_tag``/``on_text`` register
    handlers, ``write`` feeds markup, ``end`` finalizes and returns the output,
    ``free`` releases buffers and handlers.
    """

    def __init__(self):
        super().__init__(convert_charrefs=False)
        self._element_handlers: List[Callable[[Element], None]] = []
        self._end_tag_handlers: List[Callable[[EndTag], None]] = []
        self._text_handlers: List[Callable[[TextChunk], None]] = []
        self._out: List[str] = []
        self._text: List[str] = []
        self._end_tag_seen = False

    def on_element(self, handler: Callable[[Element], None]) -> "MarkupRewriter":
        self._element_handlers.append(handler)
        return self

    def on_end_tag(self, handler: Callable[[EndTag], None]) -> "MarkupRewriter":
        self._end_tag_handlers.append(handler)
        return self

    def on_text(self, handler: Callable[[TextChunk], None]) -> "MarkupRewriter":
        self._text_handlers.append(handler)
        return self

    def write(self, chunk: str) -> None:
        self.feed(chunk)

    def end(self) -> str:
        self.close()
        self._flush_text()
        return "".join(self._out)

    def free(self) -> None:
        self.reset()
        self._element_handlers.clear()
        self._end_tag_handlers.clear()
        self._text_handlers.clear()
        self._out = []
        self._text = []

    # -- HTMLParser callbacks ---------------------------------------------

    def handle_starttag(self, tag, attrs):
        self._emit_element(self.get_starttag_text())

    def handle_startendtag(self, tag, attrs):
        self._emit_element(self.get_starttag_text())

    def handle_endtag(self, tag):
        self._end_tag_seen = True

    def parse_endtag(self, i):
        self._end_tag_seen = False
        rawdata = self.rawdata
        j = super().parse_endtag(i)
        if j > i and self._end_tag_seen:
            self._flush_text()
            end_tag = EndTag(rawdata[i:j])
            for handler in self._end_tag_handlers:
                handler(end_tag)
            self._out.append(end_tag.serialize())
        return j

    def handle_data(self, data):
        self._text.append(data)

    def handle_entityref(self, name):
        self._text.append(f"&{name};")

    def handle_charref(self, name):
        self._text.append(f"&#{name};")

    def handle_comment(self, data):
        self._flush_text()
        self._out.append(f"<!--{data}-->")

    def handle_decl(self, decl):
        self._flush_text()
        self._out.append(f"<!{decl}>")

    def handle_pi(self, data):
        self._flush_text()
        self._out.append(f"<?{data}>")

    def unknown_decl(self, data):
        self._flush_text()
        self._out.append(f"<![{data}]>")

    def _emit_element(self, raw: Optional[str]) -> None:
        self._flush_text()
        if raw is None:
            return
        element = Element(raw)
        for handler in self._element_handlers:
            handler(element)
        self._out.append(element.serialize())

    def _flush_text(self) -> None:
        if not self._text:
            return
        chunk = TextChunk("".join(self._text))
        self._text = []
        for handler in self._text_handlers:
            handler(chunk)
        self._out.append(chunk.serialize())


@dataclass
class TemplateResult:
    content: str
    usage: TemplateUsage = field(default_factory=TemplateUsage)


class TemplateProcessor:
    """Scans and rewrites one template in a single streaming pass."""

    def __init__(self, config: MigrateConfig, registry: StoreRegistry):
        self.config = config
        self.registry = registry
        self.usage = TemplateUsage()
        self._renames = self._build_renames()

    def _build_renames(self):
        renames = {}
        for component, rule in self.config.component_renames().items():
            if rule.rewrite_to:
                renames[component] = rule.rewrite_to
                renames[kebab_case(component)] = kebab_case(rule.rewrite_to)
        for rule in self.config.imports_rewrite.values():
            for old, new in rule.component_rewrite.items():
                renames[old] = new
                renames[kebab_case(old)] = kebab_case(new)
        return renames

    def process(self, content: str, lang: Optional[str] = None) -> TemplateResult:
        if lang and lang != "html":
            logging.info(f"Template lang '{lang}' is passed through unchanged")
            return TemplateResult(content, self.usage)
        rewriter = MarkupRewriter()
        try:
            rewriter.on_element(self._element).on_end_tag(self._end_tag).on_text(self._text)
            rewriter.write(content)
            output = rewriter.end()
        finally:
            rewriter.free()
        return TemplateResult(output, self.usage)

    # -- handlers ---------------------------------------------------------

    def _element(self, element: Element) -> None:
        name = element.original_tag_name
        self.usage.tags.add(name)
        if name in self._renames:
            element.tag_name = self._renames[name]

        for attr_name, value in element.attributes:
            if attr_name == "ref" and value:
                if value not in self.usage.refs:
                    self.usage.refs.append(value)
            elif attr_name.startswith(BOUND_ATTR_PREFIXES):
                if attr_name.startswith("v-"):
                    self.usage.directives.add(re.split(r"[:.]", attr_name, 1)[0])
                if value:
                    self._scan_expression(value)
                    normalized = self._normalize(value)
                    if normalized != value:
                        element.set_attribute(attr_name, normalized)
            elif attr_name == "src" and value and value.startswith("~/") and name.lower() == "img":
                element.set_attribute(attr_name, normalize_alias(value))

    def _end_tag(self, end_tag: EndTag) -> None:
        if end_tag.tag_name in self._renames:
            end_tag.tag_name = self._renames[end_tag.tag_name]

    def _text(self, chunk: TextChunk) -> None:
        if "{{" not in chunk.text:
            return
        for match in _MUSTACHE_RE.finditer(chunk.text):
            self._scan_expression(match.group(1))
        normalized = _MUSTACHE_RE.sub(lambda m: "{{" + self._normalize(m.group(1)) + "}}", chunk.text)
        if normalized != chunk.text:
            chunk.replace(normalized)

    # -- expressions ------------------------------------------------------

    def _scan_expression(self, expression: str) -> None:
        usage = self.usage
        for match in _I18N_CALL_RE.finditer(expression):
            usage.i18n_methods.add(match.group(1))
        if _LOCALE_RE.search(expression):
            usage.i18n_methods.add("locale")
        for match in _LOCALE_HELPER_RE.finditer(expression):
            usage.i18n_methods.add(match.group(1))
        if _CONFIG_RE.search(expression):
            usage.uses_config = True
        for match in _EMIT_RE.finditer(expression):
            event = normalize_emit(match.group(3))
            if event and event not in usage.emits:
                usage.emits.append(event)
        for match in _STORE_STATE_RE.finditer(expression):
            namespace = match.group(1)
            if namespace in self.registry and namespace not in usage.store_namespaces:
                usage.store_namespaces.append(namespace)
        without_strings = _STRING_LITERAL_RE.sub(" ", expression)
        for match in _IDENTIFIER_RE.finditer(without_strings):
            identifier = match.group(1)
            if identifier not in JS_KEYWORDS:
                usage.identifiers.add(identifier)

    def _normalize(self, expression: str) -> str:
        expression = _LOCALE_PROPERTIES_RE.sub("localeProperties", expression)
        expression = _LOCALE_RE.sub("locale", expression)
        expression = re.sub(r"(?<![\w.])\$([tnd])\(", r"\1(", expression)
        expression = _CONFIG_RE.sub("config", expression)
        expression = _EMIT_RE.sub(
            lambda m: f"{m.group(1)}{m.group(2)}{normalize_emit(m.group(3))}{m.group(2)}", expression
        )

        def _store(match: re.Match) -> str:
            instance = self.registry.instance_name(match.group(1))
            return instance if instance else match.group(0)

        return _STORE_STATE_RE.sub(_store, expression)


def process_template(content: str, config: MigrateConfig, registry: StoreRegistry,
                     lang: Optional[str] = None) -> TemplateResult:
    return TemplateProcessor(config, registry).process(content, lang)
