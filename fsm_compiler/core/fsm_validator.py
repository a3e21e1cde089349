# fsm_compiler/core/fsm_validator.py
"""
Checks a parsed FsmModel for the consistency problems the loader lets
through. Every check runs on every node, so one pass reports all problems at
once; the validator never raises for a model it was able to walk.
"""
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Tuple

from .fsm_ir import (
    DEFAULT_NAME, NIL_STATE, FsmModel, Guard, Parameter, State, TransType,
)
from .target_language import TargetLanguage
from .traversal import NullEmitter, TraversalContext, traverse

logger = logging.getLogger(__name__)

TCL_VALUE_TYPE = "value"
TCL_REFERENCE_TYPE = "reference"


class Severity(Enum):
    WARNING = "warning"
    ERROR = "error"


@dataclass(frozen=True)
class Diagnostic:
    source: str
    line: int
    severity: Severity
    message: str

    def __str__(self) -> str:
        return f"{self.source}:{self.line}: {self.severity.value} - {self.message}"


@dataclass
class ValidationResult:
    valid: bool = True
    diagnostics: List[Diagnostic] = field(default_factory=list)

    @property
    def errors(self) -> List[Diagnostic]:
        return [d for d in self.diagnostics if d.severity == Severity.ERROR]

    @property
    def warnings(self) -> List[Diagnostic]:
        return [d for d in self.diagnostics if d.severity == Severity.WARNING]

    def __bool__(self) -> bool:
        return self.valid


class FsmValidator(NullEmitter):
    """Collects diagnostics while the traversal walks the model."""

    def __init__(self, target: Optional[TargetLanguage] = None, source_name: Optional[str] = None):
        self.target = target
        self.source_name = source_name
        self.result = ValidationResult()

    def validate(self, fsm: FsmModel) -> ValidationResult:
        self.result = ValidationResult()
        if self.source_name is None:
            self.source_name = fsm.name
        traverse(fsm, self)
        logger.debug(f"Validated '{fsm.name}': {len(self.result.errors)} error(s), "
                     f"{len(self.result.warnings)} warning(s).")
        return self.result

    def _error(self, line: int, message: str) -> None:
        self.result.diagnostics.append(Diagnostic(self.source_name, line, Severity.ERROR, message))
        self.result.valid = False

    def _warning(self, line: int, message: str) -> None:
        self.result.diagnostics.append(Diagnostic(self.source_name, line, Severity.WARNING, message))

    # --- FSM level ---

    def begin_fsm(self, fsm, ctx):
        if not fsm.start_state:
            self._error(0, '"%start" missing.')
        elif fsm.find_start_state() is None:
            self._error(fsm.line_number, f'Start state "{fsm.start_state}" is not a known state.')
        if not fsm.context:
            self._error(0, '"%class" missing.')
        if self.target is not None and self.target.requires_header and not fsm.header:
            self._error(0, '"%header" missing.')
        if not fsm.maps:
            self._warning(0, "State machine has no maps.")

    # --- State level: guard uniqueness ---

    def begin_state(self, state, ctx):
        by_signature: Dict[Tuple, List[Guard]] = {}
        for transition in state.transitions:
            by_signature.setdefault(transition.signature, []).extend(transition.guards)

        for (name, _), guards in by_signature.items():
            if len(guards) < 2:
                continue
            seen = set()
            for guard in guards:
                condition = guard.condition.strip()
                if condition in seen:
                    self._error(guard.line_number,
                                f'State {_state_label(state)} has multiple transitions with '
                                f'same name ("{name}") and guard ("{condition}").')
                seen.add(condition)

    # --- Guard level: end and push states ---

    def begin_guard(self, guard, ctx):
        state = ctx.state
        transition = ctx.transition
        prefix = f"State {_state_label(state)} has transition {transition.name}"

        if guard.trans_type != TransType.POP:
            end_state = guard.end_state
            if end_state.lower() == DEFAULT_NAME.lower():
                self._error(guard.line_number,
                            f'{prefix} with bad end state "{end_state}": '
                            f'may not transition to the default state.')
            elif end_state != NIL_STATE and not self._find_state(end_state, state, ctx.fsm):
                self._error(guard.line_number,
                            f'{prefix} with bad end state "{end_state}": '
                            f'no such state as "{end_state}".')

        if guard.trans_type == TransType.PUSH:
            push_state = guard.push_state
            if push_state == NIL_STATE:
                self._error(guard.line_number,
                            f'{prefix} with bad push state "{push_state}": '
                            f'may not push to nil state.')
            elif (push_state.lower() == DEFAULT_NAME.lower()
                  or not self._find_state(push_state, state, ctx.fsm)):
                self._error(guard.line_number,
                            f'{prefix} with bad push state "{push_state}": '
                            f'no such state as "{push_state}".')

    # --- Parameter level ---

    def visit_parameter(self, parameter: Parameter, ctx: TraversalContext) -> None:
        if self.target != TargetLanguage.TCL:
            return
        if parameter.type not in (TCL_VALUE_TYPE, TCL_REFERENCE_TYPE):
            self._error(parameter.line_number,
                        f'Tcl parameter type not "{TCL_VALUE_TYPE}" or '
                        f'"{TCL_REFERENCE_TYPE}" but "{parameter.type}".')

    @staticmethod
    def _find_state(name: str, state: State, fsm: FsmModel) -> bool:
        return fsm.find_state(name, state.map) is not None


def _state_label(state: State) -> str:
    return f"{state.map_name}::{state.name}"


def validate(fsm: FsmModel, target: Optional[TargetLanguage] = None,
             source_name: Optional[str] = None) -> ValidationResult:
    """Validates ``fsm`` for ``target``. See FsmValidator."""
    return FsmValidator(target, source_name).validate(fsm)
