# fsm_compiler/codegen/base_generator.py
"""
Plumbing shared by every backend: the jinja2 environment and the naming
helpers. A backend is an emitter driven by core.traversal; generate() walks
the model once and returns the generated files as a ``{file_name: content}``
mapping without touching the disk.
"""
import logging
from typing import Dict, Optional

from jinja2 import Environment, FileSystemLoader

from ..core.fsm_ir import SCOPE_SEPARATOR, FsmModel
from ..core.state_index import StateIndex, number_states
from ..core.target_language import TargetLanguage
from ..core.traversal import NullEmitter, traverse
from ..utils.config import TEMPLATES_DIR
from .options import GeneratorOptions

logger = logging.getLogger(__name__)


class CodeGenerationError(RuntimeError):
    """Raised when a backend is asked to generate code for an unusable model."""
    pass


def get_template_env(templates_dir: str = TEMPLATES_DIR) -> Environment:
    return Environment(
        loader=FileSystemLoader(templates_dir),
        trim_blocks=True,
        lstrip_blocks=True,
        keep_trailing_newline=True,
    )


def escape(text: str) -> str:
    """Escapes backslashes and double quotes for use inside a string literal."""
    return text.replace('\\', '\\\\').replace('"', '\\"')


def scoped_name(qualified_name: str, separator: str) -> str:
    """``Map::State`` written with the backend's own scope separator."""
    return qualified_name.replace(SCOPE_SEPARATOR, separator)


class CodeGenerator(NullEmitter):
    """Base class of the backends. Subclasses set ``language`` and implement render()."""

    language: TargetLanguage = None

    def __init__(self, options: Optional[GeneratorOptions] = None):
        self.options = options or GeneratorOptions()
        self.env = get_template_env()
        self.state_index: Optional[StateIndex] = None

    def generate(self, fsm: FsmModel, base_name: Optional[str] = None) -> Dict[str, str]:
        if not fsm.maps or not any(m.states for m in fsm.maps):
            raise CodeGenerationError(f"Cannot generate code: FSM '{fsm.name}' defines no states.")
        if fsm.find_start_state() is None:
            raise CodeGenerationError(f"Cannot generate code: start state '{fsm.start_state}' is undefined.")

        self.state_index = number_states(fsm)
        self.reset()
        traverse(fsm, self, self.state_index)
        content = self.render(fsm)

        file_name = self.target_file_name(base_name or fsm.name)
        logger.info(f"Generated {self.language.display_name} code for '{fsm.name}' -> {file_name}")
        return {file_name: content}

    def target_file_name(self, base_name: str) -> str:
        return self.language.file_name(base_name, self.options.suffix or None)

    def reset(self) -> None:
        """Clears per-run state before the traversal starts."""
        pass

    def render(self, fsm: FsmModel) -> str:
        raise NotImplementedError
