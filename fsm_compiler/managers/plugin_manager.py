# fsm_compiler/managers/plugin_manager.py
import os
import importlib
import inspect
import logging
from typing import List, Optional

from ..plugins.api import FsmExporterPlugin

logger = logging.getLogger(__name__)
PLUGIN_SUBDIR = "plugins"


class PluginManager:
    def __init__(self):
        self.exporter_plugins: List[FsmExporterPlugin] = []
        self.discover_plugins()

    def discover_plugins(self) -> None:
        """Dynamically discovers and loads all exporter plugins."""
        for plugin in self.exporter_plugins:
            plugin.teardown()
        self.exporter_plugins.clear()

        plugins_path = os.path.join(os.path.dirname(__file__), '..', PLUGIN_SUBDIR)
        if not os.path.isdir(plugins_path):
            logger.warning(f"Plugin directory not found at '{plugins_path}'. No plugins will be loaded.")
            return

        for filename in sorted(os.listdir(plugins_path)):
            if not filename.endswith(".py") or filename.startswith("_") or filename == "api.py":
                continue
            module_name = filename[:-3]
            try:
                module = importlib.import_module(f"..{PLUGIN_SUBDIR}.{module_name}", package=__package__)
            except ImportError as e:
                logger.error(f"Failed to import plugin module '{module_name}': {e}", exc_info=True)
                continue

            for name, obj in inspect.getmembers(module, inspect.isclass):
                if not issubclass(obj, FsmExporterPlugin) or inspect.isabstract(obj):
                    continue
                if obj.__module__ != module.__name__:
                    continue
                try:
                    plugin_instance = obj()
                    plugin_instance.setup()
                    self.exporter_plugins.append(plugin_instance)
                    logger.info(f"Successfully loaded exporter plugin: '{plugin_instance.name}'")
                except Exception as e:
                    logger.error(f"Failed to instantiate exporter plugin '{name}': {e}", exc_info=True)

        self.exporter_plugins.sort(key=lambda p: p.name)

    def get_exporter(self, name: str) -> Optional[FsmExporterPlugin]:
        for plugin in self.exporter_plugins:
            if plugin.name.lower() == name.lower():
                return plugin
        return None

    def exporter_names(self) -> List[str]:
        return [p.name for p in self.exporter_plugins]
