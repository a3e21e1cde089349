# fsm_compiler/plugins/api.py
from abc import ABC, abstractmethod
from typing import Dict

from ..core.fsm_ir import FsmModel


class FsmPluginBase(ABC):
    """
    A common base for all compiler plugins, providing optional lifecycle
    hooks and metadata.
    """

    @property
    def version(self) -> str:
        """
        The version of the plugin, e.g., "1.0.0".

        Returns:
            A version string. Defaults to "1.0.0".
        """
        return "1.0.0"

    def setup(self) -> None:
        """Optional method called once when the plugin is loaded by the PluginManager."""
        pass

    def teardown(self) -> None:
        """Optional method called once when the PluginManager releases the plugin."""
        pass


class FsmExporterPlugin(FsmPluginBase):
    """
    Abstract Base Class for all exporter plugins.

    To create a new exporter, create a new Python file in the 'plugins'
    package and define a class that inherits from this one. The
    PluginManager discovers it automatically.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """
        The name the exporter is selected by on the command line.
        Example: "json"
        """
        pass

    @property
    @abstractmethod
    def file_filter(self) -> str:
        """
        The file types this exporter creates.
        Example: "JSON Files (*.json)"
        """
        pass

    @abstractmethod
    def export(self, fsm: FsmModel, **kwargs) -> Dict[str, str]:
        """
        The core export logic.

        Args:
            fsm: The parsed (and usually validated) state machine.
            **kwargs: Exporter-specific arguments. A common one is
                      'base_filename', the base name of the output files.

        Returns:
            A dictionary where keys are suggested filenames and values are the
            file contents as strings.
        """
        pass
