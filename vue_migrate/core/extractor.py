"""
Semantic model extractor.

Walks the script's syntax tree once and records every Options API idiom it
recognizes into a ComponentModel. Recognition is keyed on node shape and on
the option a member sits in ("a pair whose key is ``computed`` and whose value
is an object"), never on a full grammar of the options object, so unrelated
surrounding code is simply ignored.

When a name is declared twice the later declaration in document order wins.
"""

import logging
import re
from typing import Dict, List, Optional, Tuple

from tree_sitter import Node, Tree

from vue_migrate.core.config import MigrateConfig, build_store_registry, default_store_config
from vue_migrate.core.models import (
    LIFECYCLE_HOOKS,
    AsyncDataBlock,
    ComponentModel,
    ComputedProperty,
    DataProperty,
    HeadBlock,
    ImportStatement,
    LifecycleHook,
    Method,
    MixinUsage,
    PropSet,
    Watcher,
)
from vue_migrate.core.store_mapping import (
    binding_module_path,
    extract_store_bindings,
    map_helper_kind,
    resolve_namespace,
)
from vue_migrate.core.treesitter.nodes import (
    FUNCTION_NODE_TYPES,
    call_arguments,
    find_returned_object,
    function_parts,
    member_chain,
    node_text,
    object_members,
    property_key,
    return_statements,
    returned_value,
    string_value,
    strip_quotes,
    unwrap_parens,
    walk,
)
from vue_migrate.core.utils import kebab_case, mixin_key, normalize_alias, normalize_emit, unique

# Options that are neither data nor behaviour and are dropped from the output
IGNORED_OPTIONS = {
    "name", "layout", "middleware", "validate", "transition", "scrollToTop",
    "key", "watchQuery", "loading", "inheritAttrs", "filters", "directives",
}

# Options whose value is an object handled member by member
SECTION_OPTIONS = {"computed", "methods", "watch"}

_I18N_PATTERNS = (
    (re.compile(r"\$t\("), "t"),
    (re.compile(r"\$n\("), "n"),
    (re.compile(r"\$d\("), "d"),
    (re.compile(r"\$i18n\.locale\b"), "locale"),
    (re.compile(r"\$i18n\.localeProperties\b"), "localeProperties"),
    (re.compile(r"\blocalePath\b"), "localePath"),
    (re.compile(r"\blocaleRoute\b"), "localeRoute"),
)
_FILTER_RE = re.compile(r"\$options\.filters\.([A-Za-z_$][\w$]*)")
_EVENT_BUS_RE = re.compile(r"\$nuxt\.\$(?:on|off|emit)\b")
_REFS_DOT_RE = re.compile(r"\$refs\??\.([A-Za-z_$][\w$]*)")
_REFS_BRACKET_RE = re.compile(r"""\$refs\[(['"])([^'"]+)\1\]""")
_AWAIT_RE = re.compile(r"\bawait\b")


class ComponentExtractor:
    """
    Builds a ComponentModel from a parsed script.

    The extractor never raises for missing sections: anything it does not
    find simply stays empty on the model.
    """

    def __init__(self, config: Optional[MigrateConfig] = None):
        self.config = config or MigrateConfig()

    def extract(self, source: str, tree: Tree) -> ComponentModel:
        data = source.encode("utf-8")
        root = tree.root_node
        model = ComponentModel()
        state = _ExtractionState(data=data, component=find_component_object(data, root))
        model.has_component = state.component is not None

        for node in walk(root):
            handler = self._HANDLERS.get(node.type)
            if handler is not None:
                handler(self, node, model, state)

        self._collect_top_level(root, model, state)
        self._resolve_mixins(model, state)
        self._drop_claimed_methods(model)
        self._collect_flags(data, model, state)

        model.store_registry = build_store_registry(self.config, model.discovered_stores)
        for namespace in state.state_namespaces:
            if namespace in model.store_registry:
                model.mark_store_used(namespace)
            else:
                logging.debug(f"$store.state.{namespace} is not a known store namespace")
        model.emits = unique(model.emits)
        return model

    def _visit_member(self, node: Node, model: ComponentModel, state: "_ExtractionState") -> None:
        section = state.section_of(node)
        if section is None:
            return
        key = property_key(state.data, node)
        if section == "component":
            self._visit_option(key, node, model, state)
        elif section == "computed":
            self._visit_computed(key, node, model, state)
        elif section == "methods":
            self._visit_method(key, node, model, state)
        elif section == "watch":
            self._visit_watcher(key, node, model, state)

    # -- component-level options ------------------------------------------

    def _visit_option(self, key: str, node: Node, model: ComponentModel, state: "_ExtractionState") -> None:
        data = state.data
        value = _function_node(node)
        if key == "data" and value is not None:
            self._extract_data(value, model, state)
        elif key in LIFECYCLE_HOOKS and value is not None:
            _, body, is_async = function_parts(data, value)
            model.lifecycle[key] = LifecycleHook(key, body, is_async or bool(_AWAIT_RE.search(body)))
        elif key == "asyncData" and value is not None:
            self._extract_async_data(value, model, state)
        elif key == "fetch" and value is not None:
            params, body, is_async = function_parts(data, value)
            model.fetch = Method("fetch", params, body, True)
        elif key == "head":
            self._extract_head(node, value, model, state)
        elif key == "props" and node.type == "pair":
            model.props = _extract_props(data, node.child_by_field_name("value"))
        elif key == "emits" and node.type == "pair":
            array = unwrap_parens(node.child_by_field_name("value"))
            if array is not None and array.type == "array":
                model.emits.extend(
                    normalize_emit(v) for v in (string_value(data, e) for e in array.named_children) if v
                )
        elif key == "mixins" and node.type == "pair":
            array = unwrap_parens(node.child_by_field_name("value"))
            if array is not None and array.type == "array":
                state.mixin_names.extend(
                    node_text(data, e) for e in array.named_children if e.type == "identifier"
                )
        elif key == "components" and node.type == "pair":
            for member in object_members(node.child_by_field_name("value")):
                self._register_component(data, member, model)
        elif key == "nuxtI18n" and node.type == "pair":
            for member in object_members(node.child_by_field_name("value")):
                if member.type == "pair" and property_key(data, member) == "paths":
                    model.nuxt_i18n_paths = node_text(data, member.child_by_field_name("value"))
        elif key in SECTION_OPTIONS or key in IGNORED_OPTIONS:
            return
        elif value is not None:
            logging.debug(f"Treating component option '{key}' as a method")
            self._visit_method(key, node, model, state)
        else:
            logging.debug(f"Ignoring unsupported component option '{key}'")

    def _extract_data(self, function: Node, model: ComponentModel, state: "_ExtractionState") -> None:
        body = function.child_by_field_name("body")
        if body is None:
            return
        returned = unwrap_parens(body) if body.type != "statement_block" else find_returned_object(body)
        if returned is None or returned.type != "object":
            logging.debug("data() does not return an object literal")
            return
        for member in object_members(returned):
            if member.type == "pair":
                name = property_key(state.data, member)
                model.data[name] = DataProperty(name, node_text(state.data, member.child_by_field_name("value")))
            elif member.type == "shorthand_property_identifier":
                name = node_text(state.data, member)
                model.data[name] = DataProperty(name, name)

    def _extract_async_data(self, function: Node, model: ComponentModel, state: "_ExtractionState") -> None:
        params, body, is_async = function_parts(state.data, function)
        returned: List[str] = []
        body_node = function.child_by_field_name("body")
        if body_node is not None and body_node.type == "statement_block":
            for statement in return_statements(body_node):
                value = returned_value(statement)
                for member in object_members(value):
                    if member.type in ("pair", "shorthand_property_identifier"):
                        returned.append(property_key(state.data, member))
        elif body_node is not None:
            for member in object_members(body_node):
                if member.type in ("pair", "shorthand_property_identifier"):
                    returned.append(property_key(state.data, member))
        model.async_data = AsyncDataBlock(params, body, is_async, unique(returned))
        state.async_data_range = (function.start_byte, function.end_byte)

    def _extract_head(self, node: Node, function: Optional[Node], model: ComponentModel,
                      state: "_ExtractionState") -> None:
        data = state.data
        if function is None:
            value = unwrap_parens(node.child_by_field_name("value")) if node.type == "pair" else None
            if value is not None and value.type == "object":
                model.head = HeadBlock("simple", node_text(data, value))
            return
        body_node = function.child_by_field_name("body")
        if body_node is None:
            return
        if body_node.type != "statement_block":
            model.head = HeadBlock("simple", node_text(data, unwrap_parens(body_node)))
            return
        first_return = next(iter(return_statements(body_node)), None)
        value = returned_value(first_return) if first_return is not None else None
        statements = [c for c in body_node.named_children if c.type != "comment"]
        if value is not None and value.type == "object" and len(statements) == 1:
            model.head = HeadBlock("simple", node_text(data, value))
        else:
            model.head = HeadBlock("complex", node_text(data, body_node))

    # -- sections ----------------------------------------------------------

    def _visit_computed(self, key: str, node: Node, model: ComponentModel, state: "_ExtractionState") -> None:
        data = state.data
        function = _function_node(node)
        if function is not None:
            _, body, _ = function_parts(data, function)
            model.computed[key] = ComputedProperty(key, "plain", getter=body)
            return
        value = unwrap_parens(node.child_by_field_name("value")) if node.type == "pair" else None
        if value is None or value.type != "object":
            return
        computed = ComputedProperty(key, "get_set")
        for member in object_members(value):
            accessor = property_key(data, member)
            member_function = _function_node(member)
            if member_function is None:
                continue
            params, body, _ = function_parts(data, member_function)
            if accessor == "get":
                computed.getter = body
            elif accessor == "set":
                computed.setter = body
                computed.setter_params = params
        if computed.setter is None:
            computed.kind = "plain"
        model.computed[key] = computed

    def _visit_method(self, key: str, node: Node, model: ComponentModel, state: "_ExtractionState") -> None:
        function = _function_node(node)
        if function is None:
            return
        params, body, is_async = function_parts(state.data, function)
        model.methods[key] = Method(key, params, body, is_async)

    def _visit_watcher(self, key: str, node: Node, model: ComponentModel, state: "_ExtractionState") -> None:
        data = state.data
        function = _function_node(node)
        if function is not None:
            params, body, is_async = function_parts(data, function)
            model.watchers[key] = Watcher(key, "function", params, body, is_async, node_text(data, node))
        else:
            model.watchers[key] = Watcher(key, "options", source=node_text(data, node))

    # -- calls and member accesses ------------------------------------------

    def _visit_call(self, node: Node, model: ComponentModel, state: "_ExtractionState") -> None:
        data = state.data
        if map_helper_kind(data, node) is not None:
            for binding in extract_store_bindings(data, node):
                binding.namespace = self._register_namespace(binding_module_path(binding), model)
                if binding.namespace is not None:
                    model.store_bindings[binding.local_name] = binding
            return
        function = node.child_by_field_name("function")
        chain = member_chain(data, function) if function is not None else None
        if chain is None:
            return
        args = call_arguments(node)
        if chain == ["this", "$emit"]:
            model.flags.uses_emit = True
            event = string_value(data, args[0]) if args else None
            if event:
                model.emits.append(normalize_emit(event))
            else:
                logging.info("$emit with a non-literal event name; emits must be completed by hand")
        elif chain[:2] == ["this", "$store"] and len(chain) == 3 and chain[2] in ("commit", "dispatch") and args:
            path = string_value(data, args[0])
            if path and "/" in path:
                self._register_namespace(path.rsplit("/", 1)[0], model)

    def _visit_member_expression(self, node: Node, model: ComponentModel, state: "_ExtractionState") -> None:
        chain = member_chain(state.data, node)
        if chain is not None and len(chain) == 4 and chain[1:3] == ["$store", "state"]:
            state.state_namespaces.append(chain[3])

    def _visit_subscript(self, node: Node, model: ComponentModel, state: "_ExtractionState") -> None:
        obj = node.child_by_field_name("object")
        chain = member_chain(state.data, obj) if obj is not None else None
        if chain == ["this", "$store", "getters"]:
            path = string_value(state.data, node.child_by_field_name("index"))
            if path and "/" in path:
                self._register_namespace(path.rsplit("/", 1)[0], model)

    def _register_namespace(self, module_path: Optional[str], model: ComponentModel) -> Optional[str]:
        """Resolve a Vuex module path to a store namespace and record it as used."""
        namespace = resolve_namespace(module_path, self.config.stores) if module_path else None
        if namespace is None:
            return None
        if namespace not in self.config.stores and namespace not in model.discovered_stores:
            store = default_store_config(namespace)
            if store is None:
                logging.warning(f"Store namespace '{namespace}' does not map to a valid store name; not converted")
                return None
            model.discovered_stores[namespace] = store
        model.mark_store_used(namespace)
        return namespace

    @staticmethod
    def _register_component(data: bytes, member: Node, model: ComponentModel) -> None:
        entry = _registered_component(data, member)
        if entry is None:
            return
        registered, local = entry
        model.components[registered] = local
        if kebab_case(registered) != kebab_case(local):
            logging.warning(f"Component '{local}' is registered as '{registered}'; rename its tags to match the import")

    # -- imports and top-level code -------------------------------------------

    def _visit_import(self, node: Node, model: ComponentModel, state: "_ExtractionState") -> None:
        model.imports.append(parse_import(state.data, node))

    def _collect_top_level(self, root: Node, model: ComponentModel, state: "_ExtractionState") -> None:
        data = state.data
        for child in root.named_children:
            if child.type == "import_statement":
                continue
            if child.type == "export_statement" and state.component is not None \
                    and child.start_byte <= state.component.start_byte < child.end_byte:
                continue
            text = node_text(data, child)
            dynamic_path = _dynamic_import_path(data, child)
            if dynamic_path is not None and self.config.is_keeplisted(dynamic_path):
                model.keeplist_declarations.append(text.replace(dynamic_path, normalize_alias(dynamic_path)))
            else:
                model.top_level_code.append(text)

    def _resolve_mixins(self, model: ComponentModel, state: "_ExtractionState") -> None:
        imports_by_local = {imp.default: imp for imp in model.imports if imp.default}
        for local_name in state.mixin_names:
            imp = imports_by_local.get(local_name)
            key = mixin_key(imp.source) if imp else None
            mixin_config = self.config.mixins.get(key) if key else None
            if imp is None or mixin_config is None:
                logging.warning(f"Mixin '{local_name}' has no configured composable and is not converted")
                continue
            model.mixins[local_name] = MixinUsage(
                local_name=local_name,
                source_path=imp.source,
                key=key,
                composable=mixin_config.name,
                symbols=list(mixin_config.imports),
            )

    @staticmethod
    def _drop_claimed_methods(model: ComponentModel) -> None:
        for name in list(model.methods):
            if name in model.computed or name in model.watchers:
                logging.debug(f"Method '{name}' collides with a computed property or watcher; dropped")
                del model.methods[name]

    @staticmethod
    def _collect_flags(data: bytes, model: ComponentModel, state: "_ExtractionState") -> None:
        text = data
        if state.async_data_range is not None:
            start, end = state.async_data_range
            text = data[:start] + data[end:]
        source = text.decode("utf-8", errors="replace")
        flags = model.flags
        for pattern, name in _I18N_PATTERNS:
            if pattern.search(source):
                flags.i18n_methods.add(name)
        flags.filter_names = unique(_FILTER_RE.findall(source))
        flags.uses_http = bool(re.search(r"\$axios\b", source))
        flags.uses_event_bus = bool(_EVENT_BUS_RE.search(source))
        if re.search(r"\$nuxt\.refresh\b", source):
            flags.compat_helpers.add("refresh")
        if re.search(r"\$nuxt\.context\.redirect\b", source):
            flags.compat_helpers.add("redirect")
        flags.uses_config = bool(re.search(r"\$config\b", source))
        flags.uses_next_tick = bool(re.search(r"\$nextTick\b", source))
        flags.uses_route = bool(re.search(r"\$route\b", source))
        flags.uses_router = bool(re.search(r"\$router\b", source))
        model.refs.script_refs = unique(
            _REFS_DOT_RE.findall(source) + [m[1] for m in _REFS_BRACKET_RE.findall(source)]
        )

    _HANDLERS = {
        "import_statement": _visit_import,
        "pair": _visit_member,
        "method_definition": _visit_member,
        "call_expression": _visit_call,
        "member_expression": _visit_member_expression,
        "subscript_expression": _visit_subscript,
    }


class _ExtractionState:
    """Scratch state for one extraction pass."""

    def __init__(self, data: bytes, component: Optional[Node]):
        self.data = data
        self.component = component
        self.mixin_names: List[str] = []
        self.state_namespaces: List[str] = []
        self.async_data_range: Optional[Tuple[int, int]] = None
        self._sections: Dict[int, Optional[str]] = {}

    def section_of(self, member: Node) -> Optional[str]:
        """
        ``"component"`` for members of the options object, the option name
        (``"computed"``, ``"methods"``...) for members of a section object,
        None for anything else.
        """
        if self.component is None:
            return None
        owner = member.parent
        if owner is None or owner.type != "object":
            return None
        if owner == self.component:
            return "component"
        pair = owner.parent
        if pair is not None and pair.type == "pair" and pair.parent == self.component:
            return property_key(self.data, pair)
        return None


def find_component_object(data: bytes, root: Node) -> Optional[Node]:
    """The options object of ``export default {...}`` or ``export default defineComponent({...})``."""
    for child in root.named_children:
        if child.type != "export_statement":
            continue
        if not any(c.type == "default" for c in child.children):
            continue
        value = child.child_by_field_name("value")
        if value is None:
            named = [c for c in child.named_children if c.type != "comment"]
            value = named[-1] if named else None
        value = unwrap_parens(value)
        if value is None:
            continue
        if value.type == "object":
            return value
        if value.type == "call_expression":
            for arg in call_arguments(value):
                if arg.type == "object":
                    return arg
    return None


def parse_import(data: bytes, node: Node) -> ImportStatement:
    source = strip_quotes(node_text(data, node.child_by_field_name("source")))
    statement = ImportStatement(source=source, text=node_text(data, node))
    clause = next((c for c in node.named_children if c.type == "import_clause"), None)
    if clause is None:
        return statement
    for part in clause.named_children:
        if part.type == "identifier":
            statement.default = node_text(data, part)
        elif part.type == "namespace_import":
            identifier = next((c for c in part.named_children if c.type == "identifier"), None)
            statement.namespace = node_text(data, identifier)
        elif part.type == "named_imports":
            for specifier in part.named_children:
                if specifier.type != "import_specifier":
                    continue
                imported = node_text(data, specifier.child_by_field_name("name"))
                alias = specifier.child_by_field_name("alias")
                statement.named.append((imported, node_text(data, alias) if alias is not None else imported))
    return statement


def _function_node(member: Node) -> Optional[Node]:
    """The function carried by an object member: the method itself or a function-valued pair."""
    if member.type == "method_definition":
        return member
    if member.type == "pair":
        value = unwrap_parens(member.child_by_field_name("value"))
        if value is not None and value.type in FUNCTION_NODE_TYPES:
            return value
    return None


def _registered_component(data: bytes, member: Node) -> Optional[Tuple[str, str]]:
    """(registered name, local binding) for one ``components`` entry, None for non-identifier values."""
    if member.type == "shorthand_property_identifier":
        name = node_text(data, member)
        return name, name
    if member.type == "pair":
        value = unwrap_parens(member.child_by_field_name("value"))
        if value is not None and value.type == "identifier":
            return property_key(data, member), node_text(data, value)
    return None


def _extract_props(data: bytes, value: Optional[Node]) -> PropSet:
    value = unwrap_parens(value)
    props = PropSet(source=node_text(data, value))
    if value is None:
        return props
    if value.type == "array":
        props.names.update(v for v in (string_value(data, e) for e in value.named_children) if v)
    else:
        for member in object_members(value):
            if member.type in ("pair", "method_definition", "shorthand_property_identifier"):
                props.names.add(property_key(data, member))
    return props


def _dynamic_import_path(data: bytes, node: Node) -> Optional[str]:
    """Path of ``import('...')`` inside a top-level declaration, if any."""
    if node.type not in ("lexical_declaration", "variable_declaration"):
        return None
    for child in walk(node):
        if child.type == "call_expression":
            function = child.child_by_field_name("function")
            if function is not None and function.type == "import":
                args = call_arguments(child)
                if args:
                    return string_value(data, args[0])
    return None
