"""
Recognition of Vuex bulk-mapping helpers.

Handles ``mapState``, ``mapGetters``, ``mapActions`` and ``mapMutations`` in
list form (``['a', 'b']``) and renaming-object form (``{local: 'remote'}``),
with or without a leading namespace argument::

    ...mapState('user', ['name'])
    ...mapGetters({ total: 'cart/total' })
    ...mapActions(['user/fetchUser'])

Each binding records its own namespace. When no namespace argument is given
it is read from the ``'namespace/name'`` shape of the remote path.
"""

import logging
from typing import Container, List, Optional, Tuple

from tree_sitter import Node

from vue_migrate.core.models import StoreBinding, StoreBindingKind
from vue_migrate.core.treesitter.nodes import (
    FUNCTION_NODE_TYPES,
    call_arguments,
    node_text,
    property_key,
    string_value,
    strip_quotes,
)
from vue_migrate.core.utils import lcfirst

MAP_HELPERS = {
    "mapState": StoreBindingKind.STATE,
    "mapGetters": StoreBindingKind.GETTER,
    "mapActions": StoreBindingKind.ACTION,
    "mapMutations": StoreBindingKind.MUTATION,
}


def map_helper_kind(data: bytes, call: Node) -> Optional[StoreBindingKind]:
    """Kind of mapping helper ``call`` invokes, or None if it is not one."""
    if call.type != "call_expression":
        return None
    function = call.child_by_field_name("function")
    if function is None:
        return None
    name = node_text(data, function)
    if function.type == "member_expression":
        name = node_text(data, function.child_by_field_name("property"))
    return MAP_HELPERS.get(name)


def split_remote_path(path: str, namespace: Optional[str]) -> Tuple[Optional[str], str]:
    """``'user/fetchUser'`` -> ``('user', 'user/fetchUser')``; explicit namespaces are prefixed."""
    if namespace:
        return namespace, f"{namespace}/{path}"
    if "/" in path:
        return path.split("/", 1)[0], path
    return None, path


def list_local_name(kind: StoreBindingKind, remote: str) -> str:
    """
    Local name bound by a list-form entry.

    List-form getters following the ``getX`` accessor convention are exposed
    as ``x`` (``'getUser'`` -> ``user``).
    """
    name = remote.split("/")[-1]
    if kind is StoreBindingKind.GETTER and name.startswith("get") and len(name) > 3 and name[3].isupper():
        return lcfirst(name[3:])
    return name


def extract_store_bindings(data: bytes, call: Node) -> List[StoreBinding]:
    """Expand one mapping-helper call into its individual bindings."""
    kind = map_helper_kind(data, call)
    if kind is None:
        return []
    args = call_arguments(call)
    namespace: Optional[str] = None
    if len(args) >= 2:
        namespace = string_value(data, args[0])
        mapping = args[1]
    elif args:
        mapping = args[0]
    else:
        return []

    bindings: List[StoreBinding] = []
    if mapping.type == "array":
        for element in mapping.named_children:
            remote = string_value(data, element)
            if remote is None:
                continue
            ns, path = split_remote_path(remote, namespace)
            bindings.append(StoreBinding(ns, kind, list_local_name(kind, remote), path))
    elif mapping.type == "object":
        for member in mapping.named_children:
            if member.type == "pair":
                local = property_key(data, member)
                value = member.child_by_field_name("value")
                remote = string_value(data, value)
                if remote is not None:
                    ns, path = split_remote_path(remote, namespace)
                    bindings.append(StoreBinding(ns, kind, local, path))
                elif value is not None and value.type in FUNCTION_NODE_TYPES and kind is StoreBindingKind.STATE:
                    bindings.append(StoreBinding(namespace, kind, local, local, accessor=node_text(data, value)))
                else:
                    logging.debug(f"Unsupported {kind.value} mapping for '{local}'")
            elif member.type == "method_definition" and kind is StoreBindingKind.STATE:
                local = property_key(data, member)
                params = node_text(data, member.child_by_field_name("parameters"))
                body = node_text(data, member.child_by_field_name("body"))
                bindings.append(StoreBinding(namespace, kind, local, local, accessor=f"{params} => {body}"))
            elif member.type == "shorthand_property_identifier":
                name = strip_quotes(node_text(data, member))
                ns, path = split_remote_path(name, namespace)
                bindings.append(StoreBinding(ns, kind, name, path))
    else:
        logging.debug(f"Unsupported mapping argument of type {mapping.type}")

    for binding in bindings:
        if binding.namespace is None:
            logging.warning(
                f"Store binding '{binding.local_name}' has no namespace; root store bindings are not converted"
            )
    return [b for b in bindings if b.namespace is not None]


def resolve_namespace(module_path: str, known: Container[str]) -> Optional[str]:
    """
    Store namespace for a Vuex module path such as ``'user/profile'``.

    The longest prefix found in ``known`` wins; otherwise nested modules
    belong to the store named by their first segment.
    """
    segments = [s for s in module_path.split("/") if s]
    for end in range(len(segments), 0, -1):
        candidate = "/".join(segments[:end])
        if candidate in known:
            return candidate
    return segments[0] if segments else None


def binding_module_path(binding: StoreBinding) -> Optional[str]:
    """Module part of a binding's remote path, ``'user/profile'`` for ``'user/profile/load'``."""
    if "/" in binding.remote_path:
        return binding.remote_path.rsplit("/", 1)[0]
    return binding.namespace
