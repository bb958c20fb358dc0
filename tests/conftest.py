"""
Pytest configuration and fixtures for vue-migrate tests.
"""

import pytest
import tempfile
import shutil
from pathlib import Path

from vue_migrate.core.config import MigrateConfig, StoreConfig, MixinConfig, ImportRewriteRule, AdditionalImport
from vue_migrate.core.extractor import ComponentExtractor
from vue_migrate.core.treesitter import parse_source


@pytest.fixture
def temp_dir():
    """Create a temporary directory for testing."""
    temp_path = Path(tempfile.mkdtemp())
    yield temp_path
    shutil.rmtree(temp_path)


@pytest.fixture
def config():
    """Configuration with the external formatter disabled."""
    return MigrateConfig(format_output=False)


@pytest.fixture
def project_config():
    """Configuration resembling a real project's vuemigrate.config.yaml."""
    return MigrateConfig(
        format_output=False,
        stores={
            "user": StoreConfig(name="user", import_name="useUserStore"),
            "cart": StoreConfig(name="shoppingCart", import_name="useShoppingCartStore"),
        },
        mixins={
            "price": MixinConfig(name="usePrice", imports=["formatPrice", "currency"]),
        },
        imports_rewrite={
            "bootstrap-vue": ImportRewriteRule(
                name="bootstrap-vue-next",
                component_rewrite={"BSidebar": "BOffcanvas"},
                directives={"v-b-tooltip": "vBTooltip"},
            ),
        },
        additional_imports={
            "ClientOnly": AdditionalImport(import_path="import ClientOnly from '@/components/ClientOnly.vue';"),
        },
        import_keeplist=["^~/utils/", "@/constants"],
    )


@pytest.fixture
def extract():
    """Parse a script and return its ComponentModel."""
    def _extract(source, config=None, language_id="javascript"):
        tree = parse_source(source, language_id)
        return ComponentExtractor(config or MigrateConfig(format_output=False)).extract(source, tree)
    return _extract


@pytest.fixture
def sfc():
    """Wrap script (and optional template) text into a single-file component."""
    def _sfc(script, template="<div></div>", style=None, script_attrs=""):
        parts = [f"<template>\n  {template}\n</template>\n", f"<script{script_attrs}>\n{script}\n</script>\n"]
        if style is not None:
            parts.append(f"<style scoped>\n{style}\n</style>\n")
        return "\n".join(parts)
    return _sfc
