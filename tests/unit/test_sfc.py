"""
Unit tests for the single-file component splitter.
"""

from vue_migrate.core.sfc import parse_sfc, parse_attrs, render_block


class TestParseSfc:
    """Test cases for parse_sfc."""

    def test_splits_top_level_blocks(self):
        """Test template, script and style blocks are separated."""
        source = (
            "<template>\n  <div>{{ msg }}</div>\n</template>\n\n"
            "<script>\nexport default {}\n</script>\n\n"
            "<style scoped lang=\"scss\">\n.a { color: red; }\n</style>\n"
        )
        descriptor = parse_sfc(source)

        assert descriptor.template.content == "\n  <div>{{ msg }}</div>\n"
        assert descriptor.script.content == "\nexport default {}\n"
        assert len(descriptor.styles) == 1
        assert descriptor.styles[0].attrs == {"scoped": True, "lang": "scss"}
        assert descriptor.styles[0].raw_attrs == 'scoped lang="scss"'

    def test_nested_templates_are_balanced(self):
        """Test nested <template> tags do not close the outer block."""
        source = (
            "<template>\n  <ul>\n    <template v-for=\"i in items\">\n      <li>{{ i }}</li>\n"
            "    </template>\n  </ul>\n</template>\n<script>\nexport default {}\n</script>\n"
        )
        descriptor = parse_sfc(source)

        assert "<template v-for" in descriptor.template.content
        assert "</template>" in descriptor.template.content
        assert descriptor.template.content.rstrip().endswith("</ul>")
        assert descriptor.script is not None

    def test_script_lang_and_setup(self):
        """Test lang attributes and <script setup> detection."""
        descriptor = parse_sfc('<script setup lang="ts">\nconst a = 1\n</script>')

        assert descriptor.script is None
        assert descriptor.script_setup is not None
        assert descriptor.script_setup.lang == "ts"
        assert descriptor.script_setup.is_setup

    def test_top_level_comments_are_skipped(self):
        """Test a commented-out block is not picked up."""
        source = "<!-- <script>old()</script> -->\n<script>\nexport default {}\n</script>"
        descriptor = parse_sfc(source)

        assert descriptor.script.content == "\nexport default {}\n"

    def test_custom_blocks_and_self_closing(self):
        """Test custom blocks are kept and self-closing blocks have no content."""
        source = '<i18n lang="json">\n{"en": {}}\n</i18n>\n<style src="./a.css" />\n'
        descriptor = parse_sfc(source)

        assert descriptor.custom_blocks[0].type == "i18n"
        assert descriptor.custom_blocks[0].content == '\n{"en": {}}\n'
        assert descriptor.styles[0].content == ""
        assert descriptor.styles[0].attrs["src"] == "./a.css"

    def test_empty_source(self):
        """Test an empty file has no blocks."""
        descriptor = parse_sfc("")

        assert descriptor.template is None
        assert descriptor.script is None
        assert descriptor.styles == []


class TestAttrsAndRender:
    """Test cases for attribute parsing and block rendering."""

    def test_parse_attrs(self):
        assert parse_attrs(' lang="ts" setup') == {"lang": "ts", "setup": True}
        assert parse_attrs(" lang='scss'") == {"lang": "scss"}

    def test_render_block(self):
        assert render_block("style", "\n.a {}\n", "scoped") == "<style scoped>\n.a {}\n</style>"
        assert render_block("template", "<div />") == "<template><div /></template>"
