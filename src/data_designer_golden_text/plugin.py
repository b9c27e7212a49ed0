from data_designer.plugins.plugin import Plugin, PluginType

golden_text_plugin = Plugin(
    config_qualified_name="data_designer_golden_text.config.GoldenTextColumnConfig",
    impl_qualified_name="data_designer_golden_text.generator.GoldenTextColumnGenerator",
    plugin_type=PluginType.COLUMN_GENERATOR,
)
