"""
Code assembler: emits the ``<script setup>`` body for one component.

Sections are emitted in a fixed order:

1. imports, followed by the script's own top-level code
2. composable instantiations
3. props, emits, reactive data and template refs
4. computed values, store-derived ones first
5. asyncData and head wiring
6. methods, then ``fetch``
7. watchers
8. ``created`` code and lifecycle hook registrations
9. the trailing ``fetch()`` call

Bodies are run through the BodyRewriter before being placed. Imports are
computed last so that only what the emitted code needs is imported.
"""

import logging
import re
import textwrap
from typing import Dict, List, Optional, Set, Tuple

from vue_migrate.core.config import MigrateConfig
from vue_migrate.core.models import ComponentModel, ImportStatement, MixinUsage, StoreBindingKind, TemplateUsage
from vue_migrate.core.rewriter import BodyRewriter
from vue_migrate.core.utils import (
    composable_path_for_mixin,
    is_identifier,
    normalize_alias,
    ref_variable_name,
    unique,
)

INDENT = "  "

# (target hook, source hooks merged into it)
LIFECYCLE_TARGETS: List[Tuple[str, Tuple[str, ...]]] = [
    ("onBeforeMount", ("beforeMount",)),
    ("onMounted", ("mounted",)),
    ("onBeforeUpdate", ("beforeUpdate",)),
    ("onUpdated", ("updated",)),
    ("onBeforeUnmount", ("beforeDestroy", "beforeUnmount")),
    ("onUnmounted", ("destroyed", "unmounted")),
    ("onActivated", ("activated",)),
    ("onDeactivated", ("deactivated",)),
]
INLINED_HOOKS = ("beforeCreate", "created")

VUE_IMPORT_ORDER = ["ref", "computed", "watch", "nextTick", "useTemplateRef"] + [t for t, _ in LIFECYCLE_TARGETS]
I18N_METHODS = ["t", "n", "d", "locale"]
I18N_UTILS = ["localePath", "localeProperties", "localeRoute"]
COMPAT_HELPERS = ["refresh", "redirect"]
DROPPED_VUE_IMPORTS = {"defineComponent"}
DROPPED_SOURCES = {"vuex"}


def block_body(block: str, indent: str = INDENT) -> str:
    """
    Strip the braces of a ``{...}`` block and re-indent its statements.

    Lines that continue a multi-line template literal are kept exactly as
    written so the literal's content is not altered.
    """
    inner = block.strip()
    if inner.startswith("{") and inner.endswith("}"):
        inner = inner[1:-1]
    lines = inner.split("\n")
    while lines and not lines[0].strip():
        lines.pop(0)
    while lines and not lines[-1].strip():
        lines.pop()
    if not lines:
        return ""
    continued = template_continuations(lines)

    def trimmed(index: int, line: str) -> str:
        return line if index + 1 in continued else line.rstrip()

    out: List[str] = []
    start = 0
    if inner.split("\n")[0].strip():
        # statement written on the same line as the opening brace
        out.append(indent + trimmed(0, lines[0].lstrip()))
        start = 1
    code = [i for i in range(start, len(lines)) if i not in continued and lines[i].strip()]
    margin = min((len(lines[i]) - len(lines[i].lstrip()) for i in code), default=0)
    for index in range(start, len(lines)):
        line = lines[index]
        if index in continued:
            out.append(trimmed(index, line))
        elif not line.strip():
            out.append("")
        else:
            out.append(indent + trimmed(index, line[margin:]))
    return "\n".join(out)


def template_continuations(lines: List[str]) -> Set[int]:
    """Indexes of the lines that begin inside a multi-line template literal."""
    continued: Set[int] = set()
    # "`" for an open template literal, "{" for a brace or ``${`` opened inside code
    stack: List[str] = []
    for index, line in enumerate(lines):
        if stack and stack[-1] == "`":
            continued.add(index)
        quote = None
        i = 0
        while i < len(line):
            char = line[i]
            in_template = bool(stack) and stack[-1] == "`"
            if char == "\\" and (in_template or quote):
                i += 2
                continue
            if in_template:
                if char == "`":
                    stack.pop()
                elif line.startswith("${", i):
                    stack.append("{")
                    i += 1
            elif quote:
                if char == quote:
                    quote = None
            elif char in ("'", '"'):
                quote = char
            elif line.startswith("//", i):
                break
            elif char == "`":
                stack.append("`")
            elif char == "{":
                stack.append("{")
            elif char == "}" and stack:
                stack.pop()
            i += 1
    return continued


def _dedent_tail(source: str) -> str:
    """Dedent a node's text whose first line was cut at the node start."""
    first, _, rest = source.partition("\n")
    if not rest:
        return first
    return first + "\n" + textwrap.dedent(rest)


def join_declarations(blocks: List[str]) -> str:
    """One-line declarations stay together; multi-line ones get a blank line around them."""
    out = ""
    previous_multiline = False
    for block in blocks:
        multiline = "\n" in block
        if out:
            out += "\n\n" if multiline or previous_multiline else "\n"
        out += block
        previous_multiline = multiline
    return out


def _function(params: str, body: str, is_async: bool) -> str:
    prefix = "async " if is_async else ""
    inner = block_body(body)
    if not inner:
        return f"{prefix}{params} => {{}}"
    return f"{prefix}{params} => {{\n{inner}\n}}"


class ScriptAssembler:
    """Builds the script body from a ComponentModel and the template's usage."""

    def __init__(self, model: ComponentModel, config: MigrateConfig, template: Optional[TemplateUsage] = None,
                 script_source: str = "", language_id: str = "javascript"):
        self.model = model
        self.config = config
        self.template = template or TemplateUsage()
        model.refs.template_refs = list(self.template.refs)
        self.script_source = script_source
        self.rewriter = BodyRewriter(model, language_id)
        self._vue: Dict[str, None] = {}

    def assemble(self) -> str:
        body_sections = [
            self._composables(),
            self._declarations(),
            self._computed(),
            self._async_data_and_head(),
            self._methods(),
            self._watchers(),
            self._lifecycle(),
            self._fetch_call(),
        ]
        body = "\n\n".join(s for s in body_sections if s)
        top_level = "\n\n".join(self.model.top_level_code)
        imports = self._imports(body + "\n" + top_level)
        sections = [imports, top_level, body]
        if self.rewriter.unresolved:
            logging.warning(
                "Unresolved references left with FIXME markers: "
                + ", ".join(sorted(self.rewriter.unresolved))
            )
        return "\n\n".join(s for s in sections if s)

    def _use(self, name: str) -> None:
        self._vue.setdefault(name, None)

    # -- 1. imports -------------------------------------------------------

    def _imports(self, emitted: str) -> str:
        model, config = self.model, self.config
        lines: List[str] = []

        vue_names = [name for name in VUE_IMPORT_ORDER if name in self._vue]
        kept: List[str] = []
        rewritten: List[str] = []
        keeplisted: List[str] = []
        for statement in model.imports:
            source = statement.source
            if source == "vue":
                for imported, local in statement.named:
                    if imported not in DROPPED_VUE_IMPORTS and local not in vue_names:
                        vue_names.append(local if imported == local else f"{imported} as {local}")
                continue
            if source in DROPPED_SOURCES:
                continue
            if statement.default and statement.default in model.mixins:
                continue
            if config.is_keeplisted(source):
                keeplisted.append(statement.text.replace(source, normalize_alias(source), 1))
                continue
            rule = config.imports_rewrite.get(source)
            if rule is not None:
                line = self._rewritten_import(statement, rule)
                if line:
                    rewritten.append(line)
                continue
            line = self._pruned_import(statement, emitted)
            if line:
                kept.append(line)
            else:
                logging.debug(f"Dropping unused import from '{source}'")

        if vue_names:
            lines.append(f"import {{ {', '.join(vue_names)} }} from 'vue';")
        i18n_methods, i18n_utils = self._i18n_names()
        if i18n_methods:
            lines.append("import { useI18n } from 'vue-i18n';")
        if i18n_utils:
            lines.append(self._composable_import("useI18nUtils"))
        if model.flags.uses_filters:
            lines.append(self._composable_import("useFilters"))
        if model.head is not None:
            lines.append("import { useHead } from '@unhead/vue';")
        if model.async_data is not None:
            lines.append(self._composable_import("useAsyncData"))
        if model.flags.uses_event_bus:
            lines.append(self._composable_import("useEventBus"))
        if self._compat_helpers():
            lines.append(self._composable_import("useNuxtCompat"))
        if self._uses_config():
            lines.append(self._composable_import("useRuntimeConfig"))
        router_names = [n for n, used in (("useRoute", model.flags.uses_route),
                                          ("useRouter", model.flags.uses_router)) if used]
        if router_names:
            lines.append(f"import {{ {', '.join(router_names)} }} from 'vue-router';")
        if model.flags.uses_http:
            lines.append(self._composable_import("useHttp"))
        for namespace in self._store_namespaces():
            store = model.store_registry.get(namespace)
            lines.append(f"import {{ {store.import_name} }} from '{config.store_path(store.name)}';")
        for mixin in self._used_mixins():
            path = composable_path_for_mixin(mixin.source_path, mixin.key, mixin.composable)
            lines.append(f"import {{ {mixin.composable} }} from '{path}';")
        lines.extend(rewritten)
        lines.extend(kept)
        lines.extend(self._additional_imports())
        lines.extend(keeplisted)
        lines.extend(model.keeplist_declarations)
        return "\n".join(unique(lines))

    def _composable_import(self, name: str) -> str:
        return f"import {{ {name} }} from '{self.config.composable_path(name)}';"

    def _rewritten_import(self, statement: ImportStatement, rule) -> Optional[str]:
        directive_exports = {value.lower(): value for value in rule.directives.values()}
        names: List[str] = []
        for imported, local in statement.named:
            if imported in rule.component_rewrite:
                names.append(rule.component_rewrite[imported])
            elif imported.lower() in directive_exports:
                continue
            else:
                names.append(imported if imported == local else f"{imported} as {local}")
        for directive, export in rule.directives.items():
            if directive in self.template.directives:
                names.append(export)
        names = unique(names)
        if statement.default and not names:
            return f"import {statement.default} from '{rule.name}';"
        if not names:
            return None
        default = f"{statement.default}, " if statement.default else ""
        return f"import {default}{{ {', '.join(names)} }} from '{rule.name}';"

    def _pruned_import(self, statement: ImportStatement, emitted: str) -> Optional[str]:
        """``statement`` restricted to the bindings the emitted component uses, None if it uses none."""
        if statement.is_side_effect:
            return statement.text
        default = statement.default if statement.default and self._is_used(statement.default, emitted) else None
        namespace = statement.namespace \
            if statement.namespace and self._is_used(statement.namespace, emitted) else None
        named = [(imported, local) for imported, local in statement.named if self._is_used(local, emitted)]
        if default == statement.default and namespace == statement.namespace and named == statement.named:
            return statement.text
        clauses = []
        if default:
            clauses.append(default)
        if namespace:
            clauses.append(f"* as {namespace}")
        if named:
            specifiers = ", ".join(i if i == local else f"{i} as {local}" for i, local in named)
            clauses.append(f"{{ {specifiers} }}")
        if not clauses:
            return None
        quote = '"' if f'"{statement.source}"' in statement.text else "'"
        return f"import {', '.join(clauses)} from {quote}{statement.source}{quote};"

    def _is_used(self, local: str, emitted: str) -> bool:
        if self.template.uses_component(local) or local in self.template.identifiers:
            return True
        if any(self.template.uses_component(registered)
               for registered, binding in self.model.components.items() if binding == local):
            return True
        return bool(re.search(rf"(?<![\w$.]){re.escape(local)}(?![\w$])", emitted))

    def _additional_imports(self) -> List[str]:
        lines = []
        for component, rule in self.config.component_renames().items():
            if rule.import_path and self.template.uses_component(component):
                lines.append(rule.import_path.strip())
        return lines

    # -- 2. composables -----------------------------------------------------

    def _i18n_names(self) -> Tuple[List[str], List[str]]:
        used = self.model.flags.i18n_methods | self.template.i18n_methods
        return [n for n in I18N_METHODS if n in used], [n for n in I18N_UTILS if n in used]

    def _compat_helpers(self) -> List[str]:
        return [n for n in COMPAT_HELPERS if n in self.model.flags.compat_helpers]

    def _uses_config(self) -> bool:
        return self.model.flags.uses_config or self.template.uses_config

    def _store_namespaces(self) -> List[str]:
        namespaces = unique(self.model.used_store_namespaces + self.template.store_namespaces)
        return [ns for ns in namespaces if ns in self.model.store_registry]

    def _used_mixins(self) -> List[MixinUsage]:
        return [mixin for mixin in self.model.mixins.values() if self._mixin_symbols(mixin)]

    def _mixin_symbols(self, mixin: MixinUsage) -> List[str]:
        used = []
        for symbol in mixin.symbols:
            in_script = re.search(rf"\bthis\.{re.escape(symbol)}(?![\w$])", self.script_source)
            if symbol in self.template.identifiers or in_script:
                used.append(symbol)
        return used

    def _composables(self) -> str:
        model = self.model
        lines: List[str] = []
        i18n_methods, i18n_utils = self._i18n_names()
        if i18n_methods:
            lines.append(f"const {{ {', '.join(i18n_methods)} }} = useI18n();")
        if i18n_utils:
            lines.append(f"const {{ {', '.join(i18n_utils)} }} = useI18nUtils();")
        if model.flags.uses_filters:
            lines.append(f"const {{ {', '.join(model.flags.filter_names)} }} = useFilters();")
        for mixin in model.mixins.values():
            symbols = self._mixin_symbols(mixin)
            if symbols:
                lines.append(f"const {{ {', '.join(symbols)} }} = {mixin.composable}();")
            else:
                logging.info(f"Mixin '{mixin.local_name}' exposes nothing this component uses; not imported")
        if model.flags.uses_http:
            lines.append("const http = useHttp();")
        if model.flags.uses_event_bus:
            lines.append("const eventBus = useEventBus();")
        compat = self._compat_helpers()
        if compat:
            lines.append(f"const {{ {', '.join(compat)} }} = useNuxtCompat();")
        if model.flags.uses_route:
            lines.append("const route = useRoute();")
        if model.flags.uses_router:
            lines.append("const router = useRouter();")
        if self._uses_config():
            lines.append("const config = useRuntimeConfig();")
        for namespace in self._store_namespaces():
            store = model.store_registry.get(namespace)
            instance = model.store_registry.instance_name(namespace)
            lines.append(f"const {instance} = {store.import_name}();")
        if model.flags.uses_next_tick:
            self._use("nextTick")
        return "\n".join(lines)

    # -- 3. declarations ----------------------------------------------------

    def _declarations(self) -> str:
        model = self.model
        lines: List[str] = []
        if model.props is not None:
            lines.append(f"const props = defineProps({model.props.source});")
        emits = unique(model.emits + self.template.emits)
        if emits or model.flags.uses_emit:
            names = ", ".join(f"'{name}'" for name in emits)
            lines.append(f"const emit = defineEmits([{names}]);")
        async_names = set(model.async_data_names)
        for name, prop in model.data.items():
            if name in async_names:
                continue
            self._use("ref")
            lines.append(f"const {name} = ref({self.rewriter.rewrite_expression(prop.initializer)});")
        for ref_name in model.refs.all_refs():
            self._use("useTemplateRef")
            lines.append(f"const {ref_variable_name(ref_name)} = useTemplateRef('{ref_name}');")
        return "\n".join(lines)

    # -- 4. computed --------------------------------------------------------

    def _computed(self) -> str:
        model = self.model
        blocks: List[str] = []
        for binding in model.store_bindings.values():
            if binding.kind.is_callable:
                continue
            instance = model.store_registry.instance_name(binding.namespace)
            if instance is None:
                continue
            self._use("computed")
            if binding.accessor:
                value = f"({binding.accessor})({instance})"
            elif binding.kind is StoreBindingKind.GETTER and binding.remote_name.startswith("get"):
                # getters named getX are function-style accessors in the target stores
                value = f"{instance}.{binding.remote_name}()"
            else:
                value = f"{instance}.{binding.remote_name}"
            blocks.append(f"const {binding.local_name} = computed(() => {value});")

        for name, computed in model.computed.items():
            self._use("computed")
            getter = self.rewriter.rewrite_block(computed.getter or "{}")
            if computed.kind == "get_set":
                setter = self.rewriter.rewrite_block(computed.setter or "{}")
                blocks.append(
                    f"const {name} = computed({{\n"
                    f"{INDENT}get() {{\n{block_body(getter, INDENT * 2)}\n{INDENT}}},\n"
                    f"{INDENT}set{computed.setter_params} {{\n{block_body(setter, INDENT * 2)}\n{INDENT}}},\n"
                    f"}});"
                )
            else:
                blocks.append(f"const {name} = computed({_function('()', getter, False)});")
        return join_declarations(blocks)

    # -- 5. asyncData and head ------------------------------------------------

    def _async_data_and_head(self) -> str:
        model = self.model
        parts: List[str] = []
        if model.async_data is not None:
            block = model.async_data
            self._use("ref")
            lines = [f"const asyncDataResult = await useAsyncData({_function(block.parameters, block.body, True)});"]
            lines.extend(f"const {name} = ref(asyncDataResult.{name});" for name in block.returned)
            parts.append("\n".join(lines))
        if model.head is not None:
            if model.head.kind == "simple":
                parts.append(f"useHead({self.rewriter.rewrite_expression(model.head.content)});")
            else:
                body = self.rewriter.rewrite_block(model.head.content)
                parts.append(f"useHead({_function('()', body, False)});")
        return "\n\n".join(parts)

    # -- 6. methods -----------------------------------------------------------

    def _methods(self) -> str:
        parts: List[str] = []
        for name, method in self.model.methods.items():
            body = self.rewriter.rewrite_block(method.body)
            parts.append(f"const {name} = {_function(method.parameters, body, method.is_async)};")
        if self.model.fetch is not None:
            body = self.rewriter.rewrite_block(self.model.fetch.body)
            parts.append(f"const fetch = {_function('()', body, True)};")
        return "\n\n".join(parts)

    # -- 7. watchers ----------------------------------------------------------

    def _watchers(self) -> str:
        parts: List[str] = []
        for target, watcher in self.model.watchers.items():
            if watcher.kind != "function":
                commented = "\n".join(f"// {line}".rstrip() for line in _dedent_tail(watcher.source).split("\n"))
                parts.append(f"// FIXME: watcher '{target}' uses the options form and was not converted\n{commented}")
                continue
            self._use("watch")
            body = self.rewriter.rewrite_block(watcher.body)
            parts.append(
                f"watch({self._watch_source(target)}, {_function(watcher.parameters, body, watcher.is_async)});"
            )
        return "\n\n".join(parts)

    def _watch_source(self, target: str) -> str:
        model = self.model
        if target in model.reactive_names():
            return target
        if model.props is not None and target in model.props:
            return f"() => props.{target}"
        path = target.split(".")
        if not all(is_identifier(part) for part in path):
            return f"() => {target}"
        expression = self.rewriter.rewrite_expression(f"this.{target}")
        if is_identifier(expression):
            return expression
        return f"() => {expression}"

    # -- 8. lifecycle ---------------------------------------------------------

    def _lifecycle(self) -> str:
        lifecycle = self.model.lifecycle
        parts: List[str] = []
        for name in INLINED_HOOKS:
            hook = lifecycle.get(name)
            if hook is not None:
                inline = block_body(self.rewriter.rewrite_block(hook.body), indent="")
                if inline:
                    parts.append(inline)
        for target, sources in LIFECYCLE_TARGETS:
            hooks = [lifecycle[s] for s in sources if s in lifecycle]
            if not hooks:
                continue
            self._use(target)
            bodies = [block_body(self.rewriter.rewrite_block(h.body)) for h in hooks]
            body = "{\n" + "\n".join(b for b in bodies if b) + "\n}"
            is_async = any(h.is_async for h in hooks)
            parts.append(f"{target}({_function('()', body, is_async)});")
        return "\n\n".join(parts)

    # -- 9. trailing fetch ----------------------------------------------------

    def _fetch_call(self) -> str:
        return "fetch();" if self.model.fetch is not None else ""
