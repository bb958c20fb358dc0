import re
import yaml
import logging
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import List, Optional, Dict, Any, Mapping
from pathlib import Path
from pydantic import BaseModel, Field

from vue_migrate.core.utils import default_store_import_name, is_identifier, store_instance_name

# Default configuration values
DEFAULT_CONFIG_PATH = "vuemigrate.config.yaml"
DEFAULT_IGNORED_PATTERNS = ["node_modules", ".git", ".nuxt", ".output", "dist"]
DEFAULT_COMPOSABLES_ROOT = "@/composables"
DEFAULT_STORES_ROOT = "@/stores"
DEFAULT_FORMAT_OUTPUT = True
DEFAULT_FORMATTER_COMMAND = [
    "npx", "--no-install", "prettier",
    "--parser", "vue",
    "--single-quote",
    "--print-width", "120",
    "--tab-width", "2",
]
DEFAULT_FORMATTER_TIMEOUT = 60

# Component renames that apply even when the config file does not mention them
DEFAULT_ADDITIONAL_IMPORTS: Dict[str, Dict[str, str]] = {
    "NuxtLink": {"rewrite_to": "router-link"},
}


class StoreConfig(BaseModel):
    """Target Pinia module for one Vuex namespace."""
    name: str
    import_name: str


class MixinConfig(BaseModel):
    """Composable replacing a mixin, and the symbols it exposes."""
    name: str
    imports: List[str] = Field(default_factory=list)


class ImportRewriteRule(BaseModel):
    """Replacement package for a third-party import, with component/directive renames."""
    name: str
    component_rewrite: Dict[str, str] = Field(default_factory=dict)
    directives: Dict[str, str] = Field(default_factory=dict)


class AdditionalImport(BaseModel):
    """Either a tag rename (``rewrite_to``) or an import added when the component is used."""
    rewrite_to: Optional[str] = None
    import_path: Optional[str] = None


class MigrateConfig(BaseModel):
    """
    Central configuration model for vue-migrate.
    """
    stores: Dict[str, StoreConfig] = Field(default_factory=dict)
    mixins: Dict[str, MixinConfig] = Field(default_factory=dict)
    imports_rewrite: Dict[str, ImportRewriteRule] = Field(default_factory=dict)
    additional_imports: Dict[str, AdditionalImport] = Field(default_factory=dict)
    import_keeplist: List[str] = Field(default_factory=list)

    composables_root: str = Field(default=DEFAULT_COMPOSABLES_ROOT)
    stores_root: str = Field(default=DEFAULT_STORES_ROOT)

    # Formatting
    format_output: bool = DEFAULT_FORMAT_OUTPUT
    formatter_command: List[str] = Field(default_factory=lambda: list(DEFAULT_FORMATTER_COMMAND))
    formatter_timeout: int = DEFAULT_FORMATTER_TIMEOUT

    # Batch traversal
    ignored_patterns: List[str] = Field(default_factory=lambda: list(DEFAULT_IGNORED_PATTERNS))

    # Allow extra fields for flexibility
    class Config:
        extra = "allow"

    def component_renames(self) -> Dict[str, AdditionalImport]:
        renames = {name: AdditionalImport(**value) for name, value in DEFAULT_ADDITIONAL_IMPORTS.items()}
        renames.update(self.additional_imports)
        return renames

    def composable_path(self, composable: str) -> str:
        return f"{self.composables_root.rstrip('/')}/{composable}"

    def store_path(self, store_name: str) -> str:
        return f"{self.stores_root.rstrip('/')}/{store_name}"

    def is_keeplisted(self, import_path: str) -> bool:
        for pattern in self.import_keeplist:
            if pattern == import_path:
                return True
            try:
                if re.search(pattern, import_path):
                    return True
            except re.error:
                logging.debug(f"Keeplist entry {pattern!r} is not a valid regex, compared literally")
        return False


@dataclass(frozen=True)
class StoreRegistry:
    """
    Immutable snapshot of configured plus discovered store namespaces.

    Built once per file after extraction, before any body is rewritten.
    """
    stores: Mapping[str, StoreConfig] = field(default_factory=lambda: MappingProxyType({}))

    def __contains__(self, namespace: str) -> bool:
        return namespace in self.stores

    def get(self, namespace: str) -> Optional[StoreConfig]:
        return self.stores.get(namespace)

    def instance_name(self, namespace: str) -> Optional[str]:
        store = self.stores.get(namespace)
        return store_instance_name(store.import_name) if store else None


def default_store_config(namespace: str) -> Optional[StoreConfig]:
    """Store settings for an unconfigured namespace, None when its name gives no valid identifiers."""
    import_name = default_store_import_name(namespace)
    if not is_identifier(import_name):
        return None
    return StoreConfig(name=namespace, import_name=import_name)


def build_store_registry(config: MigrateConfig, discovered: Mapping[str, StoreConfig]) -> StoreRegistry:
    """Merge discovered namespaces under the configured ones; configured entries always win."""
    merged: Dict[str, StoreConfig] = {}
    for namespace, store in discovered.items():
        if namespace not in config.stores:
            logging.info(f"Auto-registering store namespace '{namespace}' as {store.import_name}")
        merged[namespace] = store
    merged.update(config.stores)
    return StoreRegistry(MappingProxyType(merged))


def load_config(
    config_path: Optional[str] = None,
    cli_args: Optional[Dict[str, Any]] = None
) -> MigrateConfig:
    """
    Load configuration from file and overrides.

    Priority:
    1. CLI Arguments (if provided and not None)
    2. Config File (if provided or found at default path)
    3. Default Values

    Args:
        config_path: Path to the YAML config file. If None, tries 'vuemigrate.config.yaml'.
        cli_args: Dictionary of CLI arguments to override config values.

    Returns:
        MigrateConfig: The resolved configuration object.
    """
    config_data: Dict[str, Any] = {}

    target_path = config_path if config_path else DEFAULT_CONFIG_PATH
    path_obj = Path(target_path)

    if path_obj.exists() and path_obj.is_file():
        try:
            with open(path_obj, 'r', encoding='utf-8') as f:
                file_data = yaml.safe_load(f)
                if file_data:
                    config_data.update(file_data)
            logging.info(f"Loaded configuration from {target_path}")
        except (OSError, yaml.YAMLError) as e:
            logging.warning(f"Failed to load config file {target_path}: {e}")
    elif config_path:
        logging.warning(f"Config file not found at explicit path: {config_path}")
    else:
        logging.info(f"No config file found at {DEFAULT_CONFIG_PATH}, using defaults.")

    if cli_args:
        for key, value in cli_args.items():
            if value is not None:
                config_data[key] = value

    return MigrateConfig(**config_data)
