"""
Unit tests for Vuex mapping-helper recognition.
"""

import pytest

from vue_migrate.core.models import StoreBinding, StoreBindingKind
from vue_migrate.core.store_mapping import (
    binding_module_path,
    extract_store_bindings,
    list_local_name,
    map_helper_kind,
    resolve_namespace,
    split_remote_path,
)
from vue_migrate.core.treesitter import parse_source
from vue_migrate.core.treesitter.nodes import walk


def _bindings(expression):
    source = f"const x = {{ ...{expression} }};"
    data = source.encode("utf-8")
    tree = parse_source(source)
    call = next(n for n in walk(tree.root_node) if n.type == "call_expression")
    return {b.local_name: b for b in extract_store_bindings(data, call)}


class TestExtractStoreBindings:
    """Test cases for extract_store_bindings."""

    def test_namespaced_list_form(self):
        bindings = _bindings("mapState('user', ['name', 'email'])")

        assert set(bindings) == {"name", "email"}
        assert bindings["name"].namespace == "user"
        assert bindings["name"].kind is StoreBindingKind.STATE
        assert bindings["name"].remote_path == "user/name"

    def test_slash_paths_carry_their_namespace(self):
        bindings = _bindings("mapActions(['user/fetchUser', 'cart/addItem'])")

        assert bindings["fetchUser"].namespace == "user"
        assert bindings["addItem"].namespace == "cart"
        assert bindings["addItem"].remote_name == "addItem"

    def test_object_form_renames(self):
        bindings = _bindings("mapGetters({ total: 'cart/totalPrice' })")

        assert bindings["total"].namespace == "cart"
        assert bindings["total"].remote_name == "totalPrice"

    def test_getter_list_form_drops_get_prefix(self):
        bindings = _bindings("mapGetters('user', ['getUser', 'isLoggedIn'])")

        assert set(bindings) == {"user", "isLoggedIn"}
        assert bindings["user"].remote_name == "getUser"

    def test_map_state_function_accessor(self):
        bindings = _bindings("mapState('cart', { count: state => state.items.length })")

        assert bindings["count"].accessor == "state => state.items.length"

    def test_root_bindings_are_dropped(self):
        assert _bindings("mapMutations(['increment'])") == {}

    def test_not_a_helper(self):
        source = "foo('user', ['a'])"
        tree = parse_source(source)
        call = next(n for n in walk(tree.root_node) if n.type == "call_expression")

        assert map_helper_kind(source.encode("utf-8"), call) is None
        assert extract_store_bindings(source.encode("utf-8"), call) == []


class TestHelpers:
    """Test cases for path helpers."""

    def test_split_remote_path(self):
        assert split_remote_path("fetch", "user") == ("user", "user/fetch")
        assert split_remote_path("user/fetch", None) == ("user", "user/fetch")
        assert split_remote_path("fetch", None) == (None, "fetch")

    @pytest.mark.parametrize("kind, remote, expected", [
        (StoreBindingKind.GETTER, "getUser", "user"),
        (StoreBindingKind.GETTER, "getter", "getter"),
        (StoreBindingKind.ACTION, "getUser", "getUser"),
        (StoreBindingKind.GETTER, "user/getItems", "items"),
    ])
    def test_list_local_name(self, kind, remote, expected):
        assert list_local_name(kind, remote) == expected

    @pytest.mark.parametrize("path, known, expected", [
        ("user", set(), "user"),
        ("user/profile", set(), "user"),
        ("user/profile", {"user"}, "user"),
        ("user/profile", {"user", "user/profile"}, "user/profile"),
        ("user/profile/address", {"user/profile"}, "user/profile"),
        ("", set(), None),
    ])
    def test_resolve_namespace(self, path, known, expected):
        assert resolve_namespace(path, known) == expected

    def test_binding_module_path(self):
        nested = StoreBinding("user/profile", StoreBindingKind.ACTION, "load", "user/profile/load")
        root = StoreBinding(None, StoreBindingKind.ACTION, "load", "load")

        assert binding_module_path(nested) == "user/profile"
        assert binding_module_path(root) is None
