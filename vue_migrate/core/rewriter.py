"""
Reference classifier and body rewriter.

Every method, computed, watcher and lifecycle body is rewritten so that its
``this.<name>`` references point at the Composition API bindings the
assembler declares. Rewriting happens in three passes over the same text:

1. structural special calls (``$emit``, ``$set``/``$delete``, direct store
   ``commit``/``dispatch``/``state``/``getters`` access), repeated until
   nothing changes so nested forms are handled;
2. anchored text patterns for framework-prefixed accessors (``$refs``,
   ``$t``, ``$route``, ``$nuxt``...);
3. a structural pass over ``this.<name>`` member accesses, classified
   against the ComponentModel.

A reference that cannot be classified is left as written and a FIXME
marker naming it is inserted on the line above, or above the enclosing
statement when that line starts inside a string or template literal.
A fragment that does not parse cleanly only gets the text patterns and a
single FIXME marker saying so.

Classification assumes component-wide scoping: a local variable that
shadows a component member is not detected.
"""

import logging
import re
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional, Tuple

from tree_sitter import Node

from vue_migrate.core.edits import Edit, apply_edits, insert
from vue_migrate.core.errors import ScriptParseError
from vue_migrate.core.models import ComponentModel
from vue_migrate.core.store_mapping import resolve_namespace
from vue_migrate.core.treesitter.nodes import (
    call_arguments,
    is_this,
    member_chain,
    node_text,
    string_value,
    walk,
)
from vue_migrate.core.treesitter.parser import parse_source
from vue_migrate.core.utils import is_identifier, normalize_emit, ref_variable_name

UNDEFINED_MARKER = "// FIXME: undefined variable '{name}'"
UNPARSED_MARKER = "// FIXME: this block could not be parsed, references were not converted"
DYNAMIC_EMIT_MARKER = "// FIXME: event name is not a literal, add it to defineEmits"

_BLOCK_PREFIX = "async function __fragment__() "
_BLOCK_SUFFIX = ""
_EXPRESSION_PREFIX = "async () => ("
_EXPRESSION_SUFFIX = "\n)"

_MAX_SPECIAL_PASSES = 8

# markers go above the line of the nearest enclosing node of these kinds
_STATEMENT_SUFFIXES = ("_statement", "_declaration")
# a line starting inside one of these cannot take a marker
_LITERAL_TYPES = {"string", "template_string", "comment", "regex"}


def _refs_replacement(match: re.Match) -> str:
    return f"{ref_variable_name(match.group('name'))}.value"


# Order matters: longer accessors before their prefixes.
TEXT_PATTERNS: List[Tuple[re.Pattern, object]] = [
    (re.compile(r"\bthis\.\$refs\??\.(?P<name>[A-Za-z_$][\w$]*)"), _refs_replacement),
    (re.compile(r"""\bthis\.\$refs\[(['"])(?P<name>[^'"]+)\1\]"""), _refs_replacement),
    (re.compile(r"\bthis\.\$([tnd])\("), r"\1("),
    (re.compile(r"\bthis\.\$i18n\.localeProperties\b"), "localeProperties"),
    (re.compile(r"\bthis\.\$i18n\.locale\b"), "locale.value"),
    (re.compile(r"\bthis\.(localePath|localeRoute)\b"), r"\1"),
    (re.compile(r"\bthis\.\$nuxt\.\$(on|off|emit)\b"), r"eventBus.\1"),
    (re.compile(r"\bthis\.\$nuxt\.refresh\b"), "refresh"),
    (re.compile(r"\bthis\.\$nuxt\.context\.redirect\b"), "redirect"),
    (re.compile(r"\bthis\.\$options\.filters\.([A-Za-z_$][\w$]*)"), r"\1"),
    (re.compile(r"\bthis\.\$route\b"), "route"),
    (re.compile(r"\bthis\.\$router\b"), "router"),
    (re.compile(r"\bthis\.\$config\b"), "config"),
    (re.compile(r"\bthis\.\$nextTick\b"), "nextTick"),
    (re.compile(r"\bthis\.\$fetch\b"), "fetch"),
    (re.compile(r"\bthis\.\$axios\b"), "http"),
    (re.compile(r"""\brequire\((['"])([^'"]+)\1\)"""), r"new URL(\1\2\1, import.meta.url).href"),
]


class ReferenceKind(Enum):
    METHOD = "method"
    STORE = "store"
    REACTIVE = "reactive"
    PROP = "prop"
    MIXIN = "mixin"
    UNRESOLVED = "unresolved"


@dataclass(frozen=True)
class Resolution:
    kind: ReferenceKind
    replacement: Optional[str] = None


class ReferenceClassifier:
    """
    Resolves a ``this.<name>`` member name against a ComponentModel.

    Precedence, first match wins: methods, store action/mutation bindings,
    reactive values (data, computed, asyncData results, mapped state and
    getters), props, mixin-provided symbols.
    """

    def __init__(self, model: ComponentModel):
        self.model = model
        self.methods = model.method_names()
        self.reactive = model.reactive_names()
        self.mixin_symbols = model.mixin_symbols()
        self.store_actions = {
            name: binding for name, binding in model.store_bindings.items() if binding.kind.is_callable
        }

    def classify(self, name: str) -> Resolution:
        if name.startswith("$"):
            return Resolution(ReferenceKind.UNRESOLVED)
        if name in self.methods:
            return Resolution(ReferenceKind.METHOD, name)
        binding = self.store_actions.get(name)
        if binding is not None:
            instance = self.model.store_registry.instance_name(binding.namespace)
            if instance is not None:
                return Resolution(ReferenceKind.STORE, f"{instance}.{binding.remote_name}")
        if name in self.reactive:
            return Resolution(ReferenceKind.REACTIVE, f"{name}.value")
        if self.model.props is not None and name in self.model.props:
            return Resolution(ReferenceKind.PROP, f"props.{name}")
        if name in self.mixin_symbols:
            return Resolution(ReferenceKind.MIXIN, name)
        return Resolution(ReferenceKind.UNRESOLVED)


class _Fragment:
    """A body or expression wrapped so it parses as a complete program."""

    def __init__(self, text: str, mode: str, language_id: str):
        if mode == "block":
            prefix, suffix = _BLOCK_PREFIX, _BLOCK_SUFFIX
        else:
            prefix, suffix = _EXPRESSION_PREFIX, _EXPRESSION_SUFFIX
        self.mode = mode
        self.prefix = prefix.encode("utf-8")
        self.suffix = suffix.encode("utf-8")
        self.data = self.prefix + text.encode("utf-8") + self.suffix
        self.root = parse_source(self.data.decode("utf-8"), language_id).root_node
        if self.root.has_error:
            raise ScriptParseError(f"{mode} fragment contains syntax errors")

    @property
    def start(self) -> int:
        return len(self.prefix)

    def unwrap(self, data: bytes) -> str:
        end = len(data) - len(self.suffix)
        return data[len(self.prefix):end].decode("utf-8")


class BodyRewriter:
    """Rewrites bodies and expressions of one component."""

    def __init__(self, model: ComponentModel, language_id: str = "javascript"):
        self.model = model
        self.language_id = language_id
        self.classifier = ReferenceClassifier(model)
        self.unresolved: Dict[str, int] = {}

    def rewrite_block(self, text: str) -> str:
        """Rewrite a ``{...}`` statement block."""
        return self._rewrite(text, "block")

    def rewrite_expression(self, text: str) -> str:
        """Rewrite a single expression, e.g. a data initializer."""
        return self._rewrite(text, "expression")

    def _rewrite(self, text: str, mode: str) -> str:
        if "this" not in text and "require" not in text:
            return text
        try:
            text = self._special_calls(text, mode)
            text = self._text_patterns(text)
            return self._member_accesses(text, mode)
        except ScriptParseError as e:
            logging.warning(f"Falling back to text-only rewriting: {e}")
            return self._fallback(text, mode)

    # -- pass 1 -------------------------------------------------------------

    def _special_calls(self, text: str, mode: str) -> str:
        for _ in range(_MAX_SPECIAL_PASSES):
            fragment = _Fragment(text, mode, self.language_id)
            edits = list(self._special_call_edits(fragment))
            if not edits:
                break
            text = fragment.unwrap(apply_edits(fragment.data, edits))
        return text

    def _special_call_edits(self, fragment: _Fragment):
        data = fragment.data
        registry = self.model.store_registry
        for node in walk(fragment.root):
            if node.type == "call_expression":
                function = node.child_by_field_name("function")
                chain = member_chain(data, function) if function is not None else None
                if chain is None:
                    continue
                replacement = self._special_call(data, node, chain)
                if replacement is None:
                    continue
                yield Edit(node.start_byte, node.end_byte, replacement)
                args = call_arguments(node)
                if chain == ["this", "$emit"] and (not args or args[0].type != "string"):
                    marker = self._marker_edit(fragment, self._anchor_line(fragment, node), [DYNAMIC_EMIT_MARKER])
                    if marker is not None:
                        yield marker
            elif node.type == "member_expression":
                chain = member_chain(data, node)
                if chain is not None and len(chain) == 4 and chain[1:3] == ["$store", "state"] \
                        and chain[3] in registry:
                    yield Edit(node.start_byte, node.end_byte, registry.instance_name(chain[3]))
            elif node.type == "subscript_expression":
                obj = node.child_by_field_name("object")
                if obj is None or member_chain(data, obj) != ["this", "$store", "getters"]:
                    continue
                target = self._store_member(string_value(data, node.child_by_field_name("index")))
                if target is not None:
                    yield Edit(node.start_byte, node.end_byte, target)

    def _store_member(self, path: Optional[str]) -> Optional[str]:
        """``'user/profile/name'`` -> ``userStore.name`` when the module maps to a known store."""
        if not path or "/" not in path:
            return None
        module, name = path.rsplit("/", 1)
        registry = self.model.store_registry
        namespace = resolve_namespace(module, registry)
        instance = registry.instance_name(namespace) if namespace else None
        return f"{instance}.{name}" if instance else None

    def _special_call(self, data: bytes, call: Node, chain: List[str]) -> Optional[str]:
        args = call_arguments(call)
        args_node = call.child_by_field_name("arguments")
        if chain == ["this", "$emit"]:
            if args and args[0].type == "string":
                raw = node_text(data, args[0])
                quote = raw[0]
                event = f"{quote}{normalize_emit(raw[1:-1])}{quote}"
                rest = data[args[0].end_byte:args_node.end_byte].decode("utf-8")
                return f"emit({event}{rest}"
            return f"emit{node_text(data, args_node)}"
        if chain == ["this", "$set"] and len(args) == 3:
            target = node_text(data, args[0])
            return f"{target}{_key_accessor(data, args[1])} = {node_text(data, args[2])}"
        if chain == ["this", "$delete"] and len(args) == 2:
            target = node_text(data, args[0])
            return f"delete {target}{_key_accessor(data, args[1])}"
        if len(chain) == 3 and chain[1] == "$store" and chain[2] in ("commit", "dispatch") and args:
            member = self._store_member(string_value(data, args[0]))
            if member is None:
                return None
            rest = ""
            if len(args) > 1:
                rest = data[args[1].start_byte:args_node.end_byte - 1].decode("utf-8")
            return f"{member}({rest})"
        return None

    # -- pass 2 -------------------------------------------------------------

    @staticmethod
    def _text_patterns(text: str) -> str:
        for pattern, replacement in TEXT_PATTERNS:
            text = pattern.sub(replacement, text)
        return text

    # -- pass 3 -------------------------------------------------------------

    def _member_accesses(self, text: str, mode: str) -> str:
        if "this" not in text:
            return text
        fragment = _Fragment(text, mode, self.language_id)
        data = fragment.data
        edits: List[Edit] = []
        unresolved_lines: Dict[int, List[str]] = {}

        for node in walk(fragment.root):
            if not is_this(node):
                continue
            parent = node.parent
            name: Optional[str] = None
            target = node
            if parent is not None and parent.type == "member_expression" \
                    and parent.child_by_field_name("object") == node:
                prop = parent.child_by_field_name("property")
                if prop is not None and prop.type in ("property_identifier", "private_property_identifier"):
                    name = node_text(data, prop)
                    target = parent
            elif parent is not None and parent.type == "subscript_expression" \
                    and parent.child_by_field_name("object") == node:
                key = string_value(data, parent.child_by_field_name("index"))
                if key is not None and is_identifier(key):
                    name = key
                    target = parent

            resolution = self.classifier.classify(name) if name else Resolution(ReferenceKind.UNRESOLVED)
            if resolution.replacement is not None:
                edits.append(Edit(target.start_byte, target.end_byte, resolution.replacement))
                continue
            label = name or "this"
            self.unresolved[label] = self.unresolved.get(label, 0) + 1
            line_start = self._anchor_line(fragment, target)
            names = unresolved_lines.setdefault(line_start, [])
            if label not in names:
                names.append(label)

        for line_start, names in unresolved_lines.items():
            marker_edit = self._marker_edit(fragment, line_start, [UNDEFINED_MARKER.format(name=n) for n in names])
            if marker_edit is not None:
                edits.append(marker_edit)
        return fragment.unwrap(apply_edits(data, edits))

    def _marker_edit(self, fragment: _Fragment, line_start: int, markers: List[str]) -> Optional[Edit]:
        data = fragment.data
        existing = _markers_above(data, line_start, fragment.start)
        markers = [m for m in markers if m not in existing]
        if not markers:
            return None
        if line_start < fragment.start:
            # anchored on the fragment's first line
            if fragment.mode == "block":
                brace_end = fragment.start + 1
                code_start = brace_end + len(re.match(rb"[ \t]*", data[brace_end:]).group(0))
                indent = _next_line_indent(fragment, code_start)
                separator = "\n" + indent if data[code_start:code_start + 1] not in (b"\n", b"") else ""
                return Edit(brace_end, code_start, "".join(f"\n{indent}{m}" for m in markers) + separator)
            return insert(fragment.start, "".join(f"{m}\n" for m in markers))
        indent = re.match(rb"[ \t]*", data[line_start:]).group(0).decode("utf-8")
        return insert(line_start, "".join(f"{indent}{m}\n" for m in markers))

    def _anchor_line(self, fragment: _Fragment, node: Node) -> int:
        """
        Start of the line a marker for ``node`` goes above.

        That is the node's own line unless the line begins inside a string,
        template literal or comment; then the nearest enclosing statement
        whose line is safe is used.
        """
        data = fragment.data
        candidate = node
        while candidate is not None:
            line_start = data.rfind(b"\n", 0, candidate.start_byte) + 1
            if line_start < fragment.start or not _inside_literal(fragment.root, line_start):
                return line_start
            candidate = candidate.parent
            while candidate is not None and not candidate.type.endswith(_STATEMENT_SUFFIXES):
                candidate = candidate.parent
        return 0

    # -- fallback -----------------------------------------------------------

    def _fallback(self, text: str, mode: str) -> str:
        text = self._text_patterns(text)
        if UNPARSED_MARKER in text:
            return text
        if mode == "block" and text.startswith("{"):
            return "{\n" + UNPARSED_MARKER + "\n" + text[1:].lstrip("\n")
        return f"{UNPARSED_MARKER}\n{text}"


def _key_accessor(data: bytes, key: Node) -> str:
    """``.name`` for a string key holding an identifier, ``[key]`` otherwise."""
    value = string_value(data, key)
    if value is not None and is_identifier(value):
        return f".{value}"
    return f"[{node_text(data, key)}]"


def _markers_above(data: bytes, line_start: int, floor: int) -> List[str]:
    """FIXME marker lines directly above ``line_start``."""
    markers: List[str] = []
    end = line_start - 1
    while end >= floor:
        start = max(data.rfind(b"\n", 0, end) + 1, floor)
        line = data[start:end].decode("utf-8", errors="replace").strip()
        if not line.startswith("// FIXME:"):
            break
        markers.append(line)
        if start == floor:
            break
        end = start - 1
    return markers


def _inside_literal(root: Node, position: int) -> bool:
    """True when ``position`` falls strictly inside a string, template literal or comment."""
    node = root.descendant_for_byte_range(position, position)
    while node is not None:
        if node.type in _LITERAL_TYPES and node.start_byte < position < node.end_byte:
            return True
        node = node.parent
    return False


def _next_line_indent(fragment: _Fragment, position: int) -> str:
    """Indentation of the line after ``position``, empty when there is none or it continues a literal."""
    data = fragment.data
    newline = data.find(b"\n", position)
    if newline == -1 or _inside_literal(fragment.root, newline + 1):
        return ""
    return re.match(rb"[ \t]*", data[newline + 1:]).group(0).decode("utf-8")
