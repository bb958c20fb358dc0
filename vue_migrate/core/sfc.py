"""
Single-file component splitter.

Separates a ``.vue`` file into its top-level ``<template>``, ``<script>``,
``<style>`` and custom blocks. Nested ``<template>`` tags inside the template
block are balanced; everything inside a block is kept verbatim.
"""

import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Union

_BLOCK_OPEN_RE = re.compile(r"<([A-Za-z][\w-]*)((?:\s+[^>]*?)?)\s*(/?)>")
_COMMENT_RE = re.compile(r"<!--.*?-->", re.S)
_ATTR_RE = re.compile(r"""([^\s=/>]+)(?:\s*=\s*(?:"([^"]*)"|'([^']*)'|([^\s"'>]+)))?""")

AttrValue = Union[str, bool]


@dataclass
class SfcBlock:
    type: str
    content: str
    attrs: Dict[str, AttrValue] = field(default_factory=dict)
    raw_attrs: str = ""
    start: int = 0
    end: int = 0

    @property
    def lang(self) -> Optional[str]:
        value = self.attrs.get("lang")
        return value if isinstance(value, str) else None

    @property
    def is_setup(self) -> bool:
        return "setup" in self.attrs


@dataclass
class SfcDescriptor:
    template: Optional[SfcBlock] = None
    script: Optional[SfcBlock] = None
    script_setup: Optional[SfcBlock] = None
    styles: List[SfcBlock] = field(default_factory=list)
    custom_blocks: List[SfcBlock] = field(default_factory=list)


def parse_attrs(raw: str) -> Dict[str, AttrValue]:
    attrs: Dict[str, AttrValue] = {}
    for match in _ATTR_RE.finditer(raw):
        name = match.group(1)
        values = [v for v in match.group(2, 3, 4) if v is not None]
        attrs[name] = values[0] if values else True
    return attrs


def _find_block_end(source: str, tag: str, content_start: int) -> Optional[re.Match]:
    """Match for the closing tag of ``tag``, balancing nested tags of the same name."""
    if tag != "template":
        return re.compile(rf"</{tag}\s*>", re.I).search(source, content_start)
    depth = 1
    token_re = re.compile(r"<template(?=[\s>/])[^>]*?(/?)>|</template\s*>", re.I)
    for match in token_re.finditer(source, content_start):
        text = match.group(0)
        if text.startswith("</"):
            depth -= 1
            if depth == 0:
                return match
        elif not match.group(1):
            depth += 1
    return None


def parse_sfc(source: str) -> SfcDescriptor:
    """Split ``source`` into its top-level blocks."""
    descriptor = SfcDescriptor()
    pos = 0
    while pos < len(source):
        open_match = _BLOCK_OPEN_RE.search(source, pos)
        if open_match is None:
            break
        comment_start = source.find("<!--", pos, open_match.start() + 1)
        if comment_start != -1:
            comment = _COMMENT_RE.match(source, comment_start)
            if comment is None:
                break
            pos = comment.end()
            continue

        tag = open_match.group(1).lower()
        raw_attrs = open_match.group(2) or ""
        if open_match.group(3):
            # self-closing top-level tag, e.g. <style src="..." />
            block = SfcBlock(tag, "", parse_attrs(raw_attrs), raw_attrs.strip(), open_match.start(), open_match.end())
            _attach(descriptor, block)
            pos = open_match.end()
            continue

        close = _find_block_end(source, tag, open_match.end())
        if close is None:
            break
        block = SfcBlock(
            type=tag,
            content=source[open_match.end():close.start()],
            attrs=parse_attrs(raw_attrs),
            raw_attrs=raw_attrs.strip(),
            start=open_match.start(),
            end=close.end(),
        )
        _attach(descriptor, block)
        pos = close.end()
    return descriptor


def _attach(descriptor: SfcDescriptor, block: SfcBlock) -> None:
    if block.type == "template" and descriptor.template is None:
        descriptor.template = block
    elif block.type == "script":
        if block.is_setup:
            descriptor.script_setup = block
        elif descriptor.script is None:
            descriptor.script = block
        else:
            descriptor.custom_blocks.append(block)
    elif block.type == "style":
        descriptor.styles.append(block)
    else:
        descriptor.custom_blocks.append(block)


def render_block(tag: str, content: str, raw_attrs: str = "") -> str:
    attrs = f" {raw_attrs}" if raw_attrs else ""
    return f"<{tag}{attrs}>{content}</{tag}>"
