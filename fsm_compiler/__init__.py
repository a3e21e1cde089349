# fsm_compiler/__init__.py
"""
fsm_compiler: compiles finite state machine descriptions into source code.
"""
from .core.fsm_ir import Action, FsmModel, Guard, Map, Parameter, State, Transition, TransType
from .core.fsm_parser import FsmParseError, load_fsm_file, parse_diagram_to_ir
from .core.fsm_validator import Diagnostic, Severity, ValidationResult, validate
from .core.target_language import TargetLanguage
from .utils.config import APP_VERSION as __version__

__all__ = [
    "Action", "FsmModel", "Guard", "Map", "Parameter", "State", "Transition", "TransType",
    "FsmParseError", "load_fsm_file", "parse_diagram_to_ir",
    "Diagnostic", "Severity", "ValidationResult", "validate",
    "TargetLanguage", "__version__",
]
