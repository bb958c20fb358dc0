"""
Component Model: the structured view of one Options API component.

Built once per file by the extractor and treated as read-only by the
rewriter and assembler.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Set, Tuple

from vue_migrate.core.config import StoreConfig, StoreRegistry
from vue_migrate.core.utils import kebab_case

LIFECYCLE_HOOKS = (
    "beforeCreate",
    "created",
    "beforeMount",
    "mounted",
    "beforeUpdate",
    "updated",
    "beforeDestroy",
    "destroyed",
    "beforeUnmount",
    "unmounted",
    "activated",
    "deactivated",
)


@dataclass
class DataProperty:
    name: str
    initializer: str


@dataclass
class ComputedProperty:
    name: str
    kind: str = "plain"  # plain | get_set
    getter: Optional[str] = None
    setter: Optional[str] = None
    setter_params: str = "(value)"


@dataclass
class Method:
    name: str
    parameters: str
    body: str
    is_async: bool = False


@dataclass
class Watcher:
    target: str
    kind: str = "function"  # function | options
    parameters: str = "()"
    body: str = "{}"
    is_async: bool = False
    source: str = ""


@dataclass
class LifecycleHook:
    name: str
    body: str
    is_async: bool = False


@dataclass
class PropSet:
    """Raw props declaration, parsed only far enough for membership tests."""
    source: str
    names: Set[str] = field(default_factory=set)

    def __contains__(self, name: str) -> bool:
        return name in self.names


@dataclass
class MixinUsage:
    local_name: str
    source_path: str
    key: str
    composable: str
    symbols: List[str] = field(default_factory=list)


class StoreBindingKind(Enum):
    STATE = "state"
    GETTER = "getter"
    ACTION = "action"
    MUTATION = "mutation"

    @property
    def is_callable(self) -> bool:
        return self in (StoreBindingKind.ACTION, StoreBindingKind.MUTATION)


@dataclass
class StoreBinding:
    namespace: Optional[str]
    kind: StoreBindingKind
    local_name: str
    remote_path: str
    accessor: Optional[str] = None  # mapState function value, e.g. "state => state.items"

    @property
    def remote_name(self) -> str:
        return self.remote_path.split("/")[-1]


@dataclass
class AsyncDataBlock:
    parameters: str
    body: str
    is_async: bool = True
    returned: List[str] = field(default_factory=list)


@dataclass
class HeadBlock:
    kind: str  # simple | complex
    content: str


@dataclass
class RefUsage:
    template_refs: List[str] = field(default_factory=list)
    script_refs: List[str] = field(default_factory=list)

    def all_refs(self) -> List[str]:
        seen: Dict[str, None] = {}
        for name in self.template_refs + self.script_refs:
            seen.setdefault(name, None)
        return list(seen)


@dataclass
class FlagSet:
    i18n_methods: Set[str] = field(default_factory=set)
    uses_http: bool = False
    filter_names: List[str] = field(default_factory=list)
    uses_event_bus: bool = False
    compat_helpers: Set[str] = field(default_factory=set)
    uses_config: bool = False
    uses_next_tick: bool = False
    uses_route: bool = False
    uses_router: bool = False
    uses_emit: bool = False

    @property
    def uses_filters(self) -> bool:
        return bool(self.filter_names)


@dataclass
class ImportStatement:
    source: str
    text: str
    default: Optional[str] = None
    namespace: Optional[str] = None
    named: List[Tuple[str, str]] = field(default_factory=list)  # (imported, local)

    @property
    def is_side_effect(self) -> bool:
        return self.default is None and self.namespace is None and not self.named


@dataclass
class TemplateUsage:
    """What the template pass observed in markup."""
    tags: Set[str] = field(default_factory=set)
    directives: Set[str] = field(default_factory=set)
    identifiers: Set[str] = field(default_factory=set)
    i18n_methods: Set[str] = field(default_factory=set)
    refs: List[str] = field(default_factory=list)
    uses_config: bool = False
    store_namespaces: List[str] = field(default_factory=list)
    emits: List[str] = field(default_factory=list)

    def uses_component(self, name: str) -> bool:
        return name in self.tags or name.lower() in self.tags or kebab_case(name) in self.tags


@dataclass
class ComponentModel:
    """Everything the assembler needs to know about one component."""
    data: Dict[str, DataProperty] = field(default_factory=dict)
    computed: Dict[str, ComputedProperty] = field(default_factory=dict)
    methods: Dict[str, Method] = field(default_factory=dict)
    fetch: Optional[Method] = None
    watchers: Dict[str, Watcher] = field(default_factory=dict)
    lifecycle: Dict[str, LifecycleHook] = field(default_factory=dict)
    props: Optional[PropSet] = None
    emits: List[str] = field(default_factory=list)
    mixins: Dict[str, MixinUsage] = field(default_factory=dict)
    store_bindings: Dict[str, StoreBinding] = field(default_factory=dict)
    async_data: Optional[AsyncDataBlock] = None
    head: Optional[HeadBlock] = None
    refs: RefUsage = field(default_factory=RefUsage)
    flags: FlagSet = field(default_factory=FlagSet)
    components: Dict[str, str] = field(default_factory=dict)  # registered name -> local binding
    imports: List[ImportStatement] = field(default_factory=list)
    keeplist_declarations: List[str] = field(default_factory=list)
    top_level_code: List[str] = field(default_factory=list)
    nuxt_i18n_paths: Optional[str] = None
    used_store_namespaces: List[str] = field(default_factory=list)
    discovered_stores: Dict[str, StoreConfig] = field(default_factory=dict)
    store_registry: StoreRegistry = field(default_factory=StoreRegistry)
    has_component: bool = False

    @property
    def async_data_names(self) -> List[str]:
        return self.async_data.returned if self.async_data else []

    def reactive_names(self) -> Set[str]:
        """Names read through ``.value``: data, computed, asyncData results and mapped state/getters."""
        names = set(self.data) | set(self.computed) | set(self.async_data_names)
        names.update(
            binding.local_name for binding in self.store_bindings.values()
            if not binding.kind.is_callable
        )
        return names

    def method_names(self) -> Set[str]:
        names = set(self.methods)
        if self.fetch is not None:
            names.add("fetch")
        return names

    def mixin_symbols(self) -> Set[str]:
        return {symbol for mixin in self.mixins.values() for symbol in mixin.symbols}

    def mark_store_used(self, namespace: str) -> None:
        if namespace and namespace not in self.used_store_namespaces:
            self.used_store_namespaces.append(namespace)
