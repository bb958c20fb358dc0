"""
Shared naming helpers used by the extractor, rewriter, assembler and template pass.
"""

import re
from typing import Dict, Iterable, List, Optional

_STORE_IMPORT_RE = re.compile(r"^use(\w+)Store$")
_MIXIN_PATH_RE = re.compile(r"/mixins/(\w+)$")
_KEBAB_BOUNDARY_RE = re.compile(r"([a-z0-9])([A-Z])")
_KEBAB_ACRONYM_RE = re.compile(r"([A-Z])([A-Z][a-z])")
_IDENTIFIER_RE = re.compile(r"^[A-Za-z_$][\w$]*$")

EMIT_INPUT_NORMALIZED = "update:value"


def lcfirst(value: str) -> str:
    return value[:1].lower() + value[1:]


def ucfirst(value: str) -> str:
    return value[:1].upper() + value[1:]


def kebab_case(name: str) -> str:
    """``BSidebar`` -> ``b-sidebar``, ``NuxtLink`` -> ``nuxt-link``."""
    value = _KEBAB_ACRONYM_RE.sub(r"\1-\2", name)
    value = _KEBAB_BOUNDARY_RE.sub(r"\1-\2", value)
    return value.replace("_", "-").lower()


def camelize(name: str) -> str:
    """``title-ref`` / ``title_ref`` -> ``titleRef``."""
    parts = re.split(r"[-_\s]+", name)
    return parts[0] + "".join(ucfirst(p) for p in parts[1:] if p)


def is_identifier(value: str) -> bool:
    return bool(_IDENTIFIER_RE.match(value))


def store_instance_name(import_name: str) -> str:
    """
    Derive the local store variable from its composable name.

    ``useUserStore`` -> ``userStore``. Names that do not follow the
    ``use<X>Store`` convention still get a distinct variable name.
    """
    match = _STORE_IMPORT_RE.match(import_name)
    if match:
        return lcfirst(match.group(1)) + "Store"
    if import_name.startswith("use") and len(import_name) > 3:
        return lcfirst(import_name[3:])
    return import_name + "Instance"


def default_store_import_name(namespace: str) -> str:
    return f"use{ucfirst(camelize(namespace))}Store"


def normalize_emit(name: str) -> str:
    """The Vue 2 ``v-model`` event ``input`` becomes ``update:value`` (bound with ``v-model:value``)."""
    return EMIT_INPUT_NORMALIZED if name == "input" else name


def ref_variable_name(ref_name: str) -> str:
    """Template ref ``title-ref`` -> ``titleRef``; ``title`` -> ``titleRef``."""
    name = camelize(ref_name)
    return name if name.endswith("Ref") else f"{name}Ref"


def mixin_key(import_path: str) -> Optional[str]:
    match = _MIXIN_PATH_RE.search(import_path)
    return match.group(1) if match else None


def composable_path_for_mixin(import_path: str, key: str, composable: str) -> str:
    """``~/mixins/price`` with composable ``usePrice`` -> ``@/composables/usePrice``."""
    path = normalize_alias(import_path).replace("/mixins/", "/composables/")
    return re.sub(rf"{re.escape(key)}$", composable, path)


def normalize_alias(path: str) -> str:
    """Nuxt ``~/`` aliases become ``@/``."""
    return re.sub(r"^~/", "@/", path)


def unique(values: Iterable[str]) -> List[str]:
    seen: Dict[str, None] = {}
    for value in values:
        seen.setdefault(value, None)
    return list(seen)
