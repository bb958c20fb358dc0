"""
End-to-end conversion of one component and batch migration of a directory.

``rewrite_sfc`` is the pure text-to-text entry point. ``ComponentMigrator``
wraps it with file discovery, writing and per-run statistics.
"""

import logging
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

from tqdm import tqdm

from vue_migrate.core.assembler import ScriptAssembler
from vue_migrate.core.config import MigrateConfig
from vue_migrate.core.errors import MigrationError, ScriptParseError
from vue_migrate.core.extractor import ComponentExtractor
from vue_migrate.core.formatter import format_sfc
from vue_migrate.core.models import TemplateUsage
from vue_migrate.core.sfc import SfcDescriptor, parse_sfc, render_block
from vue_migrate.core.template import process_template
from vue_migrate.core.treesitter import language_id_for, parse_source


def rewrite_sfc(source: str, config: Optional[MigrateConfig] = None) -> str:
    """
    Convert one Options API single-file component to ``<script setup>``.

    Components without a classic ``<script>`` block, or that already use
    ``<script setup>``, are returned unchanged. A script that cannot be parsed
    is also returned unchanged.
    """
    config = config or MigrateConfig()
    descriptor = parse_sfc(source)
    script = descriptor.script
    if script is None or descriptor.script_setup is not None:
        logging.info("No Options API script block found, leaving component unchanged")
        return source

    language_id = language_id_for(script.lang)
    try:
        tree = parse_source(script.content, language_id)
    except ScriptParseError as e:
        logging.error(f"Could not parse script block: {e}")
        return source

    model = ComponentExtractor(config).extract(script.content, tree)
    if not model.has_component:
        logging.warning("Script has no component options object, converting top-level code only")

    usage = TemplateUsage()
    template_content = None
    if descriptor.template is not None:
        result = process_template(descriptor.template.content, config, model.store_registry,
                                  descriptor.template.lang)
        template_content = result.content
        usage = result.usage

    body = ScriptAssembler(model, config, usage, script.content, language_id).assemble()
    output = _render(descriptor, template_content, body, model.nuxt_i18n_paths)
    return format_sfc(output, config)


def _render(descriptor: SfcDescriptor, template_content: Optional[str], body: str,
            i18n_paths: Optional[str]) -> str:
    blocks: List[str] = []
    if descriptor.template is not None and template_content is not None:
        blocks.append(render_block("template", template_content, descriptor.template.raw_attrs))

    script = descriptor.script
    lang = f' lang="{script.lang}"' if script.lang else ""
    blocks.append(f"<script setup{lang}>\n{body}\n</script>" if body else f"<script setup{lang}>\n</script>")

    if i18n_paths:
        blocks.append(f"<script>\nexport const i18n = {i18n_paths};\n</script>")

    for style in descriptor.styles:
        blocks.append(render_block("style", style.content, style.raw_attrs))
    for block in descriptor.custom_blocks:
        blocks.append(render_block(block.type, block.content, block.raw_attrs))
    return "\n\n".join(blocks) + "\n"


@dataclass
class MigrationResult:
    path: Path
    output_path: Optional[Path] = None
    changed: bool = False
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass
class MigrationReport:
    results: List[MigrationResult] = field(default_factory=list)
    total_time: float = 0.0

    @property
    def converted(self) -> int:
        return sum(1 for r in self.results if r.ok and r.changed)

    @property
    def unchanged(self) -> int:
        return sum(1 for r in self.results if r.ok and not r.changed)

    @property
    def failed(self) -> List[MigrationResult]:
        return [r for r in self.results if not r.ok]


class ComponentMigrator:
    """Runs ``rewrite_sfc`` over files, isolating failures per file."""

    def __init__(self, config: Optional[MigrateConfig] = None, dry_run: bool = False):
        self.config = config or MigrateConfig()
        self.dry_run = dry_run

    def discover(self, root: Path) -> List[Path]:
        """All ``.vue`` files under ``root`` not inside an ignored directory."""
        if root.is_file():
            return [root]
        files = []
        for path in sorted(root.rglob("*.vue")):
            relative = path.relative_to(root)
            if any(part in self.config.ignored_patterns for part in relative.parts[:-1]):
                continue
            files.append(path)
        logging.info(f"Found {len(files)} components to migrate under {root}")
        return files

    def migrate_file(self, path: Path, output_path: Optional[Path] = None) -> MigrationResult:
        """
        Convert one file.

        Args:
            path: Source component.
            output_path: Where to write the result. Defaults to overwriting ``path``.

        Returns:
            MigrationResult: never raises for conversion or I/O errors.
        """
        result = MigrationResult(path=path, output_path=output_path or path)
        try:
            source = path.read_text(encoding="utf-8")
            converted = rewrite_sfc(source, self.config)
        except (OSError, UnicodeDecodeError, MigrationError) as e:
            logging.error(f"Failed to migrate {path}: {e}")
            result.error = str(e)
            return result
        except Exception as e:
            logging.exception(f"Unexpected error while migrating {path}")
            result.error = f"{type(e).__name__}: {e}"
            return result

        result.changed = converted != source
        if self.dry_run:
            return result
        try:
            result.output_path.parent.mkdir(parents=True, exist_ok=True)
            result.output_path.write_text(converted, encoding="utf-8")
        except OSError as e:
            logging.error(f"Failed to write {result.output_path}: {e}")
            result.error = str(e)
        return result

    def migrate(self, root: Path, output_root: Optional[Path] = None,
                show_progress: bool = True) -> MigrationReport:
        """Convert a file or every component under a directory."""
        report = MigrationReport()
        start_time = time.time()
        files = self.discover(root)
        for path in tqdm(files, desc="Migrating", unit="file", disable=not show_progress or len(files) < 2):
            report.results.append(self.migrate_file(path, self._output_path(root, path, output_root)))
        report.total_time = time.time() - start_time
        return report

    @staticmethod
    def _output_path(root: Path, path: Path, output_root: Optional[Path]) -> Optional[Path]:
        if output_root is None:
            return None
        if root.is_file():
            return output_root / path.name if output_root.is_dir() else output_root
        return output_root / path.relative_to(root)
