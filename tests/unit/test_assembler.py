"""
Unit tests for the ScriptAssembler.
"""

from vue_migrate.core.assembler import ScriptAssembler, block_body, join_declarations, template_continuations
from vue_migrate.core.models import TemplateUsage
from vue_migrate.core.rewriter import DYNAMIC_EMIT_MARKER

STORE_COMPONENT = """
import { ref } from 'vue'
import { mapState, mapGetters, mapActions } from 'vuex'
import debounce from 'lodash/debounce'
import unused from 'some-lib'
import 'some-polyfill'
import priceMixin from '~/mixins/price'
import { BSidebar, VBTooltip, BButton } from 'bootstrap-vue'
import { API } from '@/constants'
import UserCard from '~/components/UserCard.vue'

export default {
  mixins: [priceMixin],
  props: { id: Number },
  data() {
    return { count: 0 }
  },
  computed: {
    ...mapState('user', ['profile']),
    ...mapGetters('user', ['getUser']),
    label() { return this.formatPrice(this.count) },
  },
  watch: {
    count(value) {
      this.save(value)
    },
    id: {
      handler() {},
      immediate: true,
    },
  },
  beforeDestroy() {
    this.stop()
  },
  destroyed() {},
  created() {
    this.count = 1
  },
  mounted() {
    this.$refs.box.focus()
  },
  methods: {
    ...mapActions('user', ['fetchUser']),
    save(value) {
      this.fetchUser(value)
    },
    stop() {
      debounce(this.save, 300)
    },
  },
}
"""

NUXT_COMPONENT = """
export default {
  async asyncData({ $axios, params }) {
    const post = await $axios.$get(`/posts/${params.id}`)
    return { post }
  },
  data() {
    return { post: null, items: [] }
  },
  head() {
    return { title: this.$t('title') }
  },
  async fetch() {
    this.items = await this.$axios.$get('/items')
  },
  methods: {
    go() {
      this.$nuxt.$emit('go')
      this.$nuxt.refresh()
      this.$router.push(this.localePath('/'))
      return this.$options.filters.currency(this.$config.rate) + this.$route.path
    },
    later() {
      this.$nextTick(() => {})
    },
  },
}
"""


def _assemble(extract, source, config, usage=None):
    model = extract(source, config)
    return ScriptAssembler(model, config, usage or TemplateUsage(), source).assemble()


class TestStoreComponent:
    """Test cases for a component using stores, mixins and rewritten imports."""

    def _output(self, extract, project_config):
        usage = TemplateUsage(tags={"BSidebar", "user-card", "div"}, directives={"v-b-tooltip"},
                              identifiers={"label", "API"})
        return _assemble(extract, STORE_COMPONENT, project_config, usage)

    def test_vue_import_is_merged(self, extract, project_config):
        output = self._output(extract, project_config)

        assert ("import { ref, computed, watch, useTemplateRef, onMounted, onBeforeUnmount, onUnmounted } "
                "from 'vue';") in output
        assert output.count("from 'vue'") == 1

    def test_import_policy(self, extract, project_config):
        output = self._output(extract, project_config)

        assert "vuex" not in output
        assert "some-lib" not in output
        assert "import 'some-polyfill'" in output
        assert "import debounce from 'lodash/debounce'" in output
        assert "import UserCard from '~/components/UserCard.vue'" in output
        assert "import { API } from '@/constants'" in output
        assert "~/mixins/price" not in output
        assert "import { usePrice } from '@/composables/usePrice';" in output
        assert "import { useUserStore } from '@/stores/user';" in output

    def test_rewritten_import_with_directive(self, extract, project_config):
        output = self._output(extract, project_config)

        assert "import { BOffcanvas, BButton, vBTooltip } from 'bootstrap-vue-next';" in output
        assert "bootstrap-vue'" not in output

    def test_directive_not_imported_when_unused(self, extract, project_config):
        usage = TemplateUsage(tags={"BSidebar"})
        output = _assemble(extract, STORE_COMPONENT, project_config, usage)

        assert "import { BOffcanvas, BButton } from 'bootstrap-vue-next';" in output

    def test_composables_and_declarations(self, extract, project_config):
        output = self._output(extract, project_config)

        assert "const { formatPrice } = usePrice();" in output
        assert "const userStore = useUserStore();" in output
        assert "const props = defineProps({ id: Number });" in output
        assert "const count = ref(0);" in output
        assert "const boxRef = useTemplateRef('box');" in output

    def test_computed(self, extract, project_config):
        output = self._output(extract, project_config)

        assert "const profile = computed(() => userStore.profile);" in output
        assert "const user = computed(() => userStore.getUser());" in output
        assert "const label = computed(() => {\n  return formatPrice(count.value)\n});" in output

    def test_methods_watchers_and_hooks(self, extract, project_config):
        output = self._output(extract, project_config)

        assert "const save = (value) => {\n  userStore.fetchUser(value)\n};" in output
        assert "debounce(save, 300)" in output
        assert "watch(count, (value) => {\n  save(value)\n});" in output
        assert "// FIXME: watcher 'id' uses the options form and was not converted" in output
        assert "//   immediate: true," in output
        assert "\ncount.value = 1\n" in output
        assert "onMounted(() => {\n  boxRef.value.focus()\n});" in output
        assert "onBeforeUnmount(() => {\n  stop()\n});" in output
        assert "onUnmounted(() => {});" in output

    def test_section_order(self, extract, project_config):
        output = self._output(extract, project_config)

        positions = [output.index(marker) for marker in (
            "import { ref",
            "const userStore",
            "const count = ref",
            "const label = computed",
            "const save =",
            "watch(count",
            "count.value = 1",
            "onMounted(",
        )]
        assert positions == sorted(positions)

    def test_no_this_left(self, extract, project_config):
        output = self._output(extract, project_config)

        assert "this." not in output


class TestNuxtComponent:
    """Test cases for asyncData, head, fetch and Nuxt accessors."""

    def test_async_data(self, extract, config):
        output = _assemble(extract, NUXT_COMPONENT, config)

        assert "import { useAsyncData } from '@/composables/useAsyncData';" in output
        assert "const asyncDataResult = await useAsyncData(async ({ $axios, params }) => {" in output
        assert "const post = ref(asyncDataResult.post);" in output
        assert "const post = ref(null);" not in output
        assert "const items = ref([]);" in output

    def test_head_and_fetch(self, extract, config):
        output = _assemble(extract, NUXT_COMPONENT, config)

        assert "import { useHead } from '@unhead/vue';" in output
        assert "useHead({ title: t('title') });" in output
        assert "const fetch = async () => {\n  items.value = await http.$get('/items')\n};" in output
        assert output.rstrip().endswith("fetch();")

    def test_composables_from_flags(self, extract, config):
        output = _assemble(extract, NUXT_COMPONENT, config)

        assert "import { useI18n } from 'vue-i18n';" in output
        assert "const { t } = useI18n();" in output
        assert "const { localePath } = useI18nUtils();" in output
        assert "const { currency } = useFilters();" in output
        assert "const http = useHttp();" in output
        assert "const eventBus = useEventBus();" in output
        assert "const { refresh } = useNuxtCompat();" in output
        assert "import { useRoute, useRouter } from 'vue-router';" in output
        assert "const route = useRoute();" in output
        assert "const router = useRouter();" in output
        assert "const config = useRuntimeConfig();" in output
        assert "import { ref, nextTick } from 'vue';" in output

    def test_method_bodies(self, extract, config):
        output = _assemble(extract, NUXT_COMPONENT, config)

        assert "eventBus.emit('go')" in output
        assert "refresh()" in output
        assert "router.push(localePath('/'))" in output
        assert "return currency(config.rate) + route.path" in output
        assert "nextTick(() => {})" in output
        assert "this." not in output


class TestAssemblerDetails:
    """Test cases for smaller assembly rules."""

    def test_empty_component(self, extract, config):
        assert _assemble(extract, "export default {}", config) == ""

    def test_get_set_computed_and_emits(self, extract, config):
        source = """
export default {
  props: ['value'],
  computed: {
    model: {
      get() {
        return this.value
      },
      set(v) {
        this.$emit('input', v)
      },
    },
  },
}
"""
        output = _assemble(extract, source, config)

        assert "const props = defineProps(['value']);" in output
        assert "const emit = defineEmits(['update:value']);" in output
        assert "get() {\n    return props.value\n  }," in output
        assert "set(v) {\n    emit('update:value', v)\n  }," in output

    def test_dynamic_emit_declares_emits(self, extract, config):
        source = "export default { props: ['eventName'], methods: { fire(payload) { this.$emit(this.eventName, payload) } } }"
        output = _assemble(extract, source, config)

        assert "const emit = defineEmits([]);" in output
        assert "const fire = (payload) => {\n  " + DYNAMIC_EMIT_MARKER + "\n  emit(props.eventName, payload)\n};" \
            in output

    def test_template_emits_are_declared(self, extract, config):
        source = "export default { methods: { save() { this.$emit('saved') } } }"
        usage = TemplateUsage(emits=["update:value", "saved", "close"])
        output = _assemble(extract, source, config, usage)

        assert "const emit = defineEmits(['saved', 'update:value', 'close']);" in output

    def test_first_line_marker_is_indented_like_the_body(self, extract, config):
        source = "export default { computed: { double() { return this.missing + 1 } } }"
        output = _assemble(extract, source, config)

        assert "const double = computed(() => {\n  // FIXME: undefined variable 'missing'\n  return this.missing + 1\n});" \
            in output

    def test_nested_store_module_identifiers(self, extract, config):
        source = "export default { methods: { ...mapActions('user/profile', ['load']), go() { this.load() } } }"
        output = _assemble(extract, source, config)

        assert "import { useUserStore } from '@/stores/user';" in output
        assert "const userStore = useUserStore();" in output
        assert "userStore.load()" in output
        assert "profileStore" not in output

    def test_aliased_component_import_is_kept(self, extract, config):
        source = (
            "import UserCard from '~/components/UserCard.vue'\n"
            "import Unused from '~/components/Unused.vue'\n"
            "export default { components: { 'my-card': UserCard, Unused } }"
        )
        output = _assemble(extract, source, config, TemplateUsage(tags={"my-card"}))

        assert "import UserCard from '~/components/UserCard.vue'" in output
        assert "Unused" not in output

    def test_template_refs_are_declared(self, extract, config):
        output = _assemble(extract, "export default {}", config, TemplateUsage(refs=["title-ref"]))

        assert "const titleRef = useTemplateRef('title-ref');" in output

    def test_map_state_accessor(self, extract, config):
        source = "export default { computed: { ...mapState('cart', { n: state => state.items.length }) } }"
        output = _assemble(extract, source, config)

        assert "import { useCartStore } from '@/stores/cart';" in output
        assert "const n = computed(() => (state => state.items.length)(cartStore));" in output

    def test_lifecycle_merge_is_async_if_any_hook_is(self, extract, config):
        source = """
export default {
  beforeDestroy() {
    this.a()
  },
  async beforeUnmount() {
    await this.b()
  },
  methods: { a() {}, b() {} },
}
"""
        output = _assemble(extract, source, config)

        assert output.count("onBeforeUnmount(") == 1
        assert "onBeforeUnmount(async () => {\n  a()\n  await b()\n});" in output

    def test_additional_import_when_component_used(self, extract, project_config):
        usage = TemplateUsage(tags={"client-only"})
        output = _assemble(extract, "export default {}", project_config, usage)

        assert "import ClientOnly from '@/components/ClientOnly.vue';" in output

    def test_watch_targets(self, extract, config):
        source = """
export default {
  props: ['id'],
  watch: {
    id() {},
    '$route.query'(q) {},
    'form.name'() {},
  },
  data() { return { form: {} } },
}
"""
        output = _assemble(extract, source, config)

        assert "watch(() => props.id, () => {});" in output
        assert "watch(() => route.query, (q) => {});" in output
        assert "watch(() => form.value.name, () => {});" in output

    def test_keeplisted_dynamic_import_is_placed_with_imports(self, extract, project_config):
        source = "const Chart = () => import('~/utils/chart')\nexport default {}"
        output = _assemble(extract, source, project_config)

        assert output == "const Chart = () => import('@/utils/chart')"


class TestBlockHelpers:
    """Test cases for body re-indentation helpers."""

    def test_block_body_dedents(self):
        assert block_body("{\n        a()\n        if (b) {\n          c()\n        }\n      }") == \
            "  a()\n  if (b) {\n    c()\n  }"

    def test_block_body_first_statement_on_brace_line(self):
        assert block_body("{ return 1 }") == "  return 1"

    def test_block_body_keeps_template_literals(self):
        body = "{\n    const s = `a\n  b`\n  }"

        assert block_body(body) == "  const s = `a\n  b`"

    def test_block_body_dedents_around_template_literal(self):
        body = "{\n        const s = `a\n  b ${ {x: 1}.x }\n`\n        return s\n      }"

        assert block_body(body) == "  const s = `a\n  b ${ {x: 1}.x }\n`\n  return s"

    def test_template_continuations(self):
        lines = ["const a = `x", "y ${ {a: 1}.a }", "z`", "b('`') // `", "c()"]

        assert template_continuations(lines) == {1, 2}

    def test_join_declarations(self):
        assert join_declarations(["a", "b", "c {\n}", "d"]) == "a\nb\n\nc {\n}\n\nd"
