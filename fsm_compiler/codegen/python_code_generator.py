# fsm_compiler/codegen/python_code_generator.py
"""
Generates a Python module from an FsmModel.

Layout of the generated module:

    class <Context>State(statemap.State)     one method per transition,
                                             each falling back to Default()
    class <Map>_Default(<Context>State)      the map's Default State
    class <Map>_<State>(<Map>_Default)       one class per state
    class <Map>                              one state instance per state
    class <FsmClass>(statemap.FSMContext)    one method per transition

A state method that finds no matching guard calls its parent class, so the
default chain is Python's method resolution order: the map Default State's
transition, then self.Default(), which a state or the map Default State may
override.

Transitions sharing a name share one method taking ``*args``. The method
picks the signature by the number of arguments; a call no signature accepts
falls through to the parent class like a failed guard.

The traversal only collects the classes, methods, signatures and guards as
template data; python_fsm.py.j2 lays out the code.
"""
import logging
from typing import Any, Dict, List, Optional

from ..core.fsm_ir import DEFAULT_NAME, Action, FsmModel, State
from ..core.target_language import TargetLanguage
from .base_generator import CodeGenerator, escape, scoped_name
from .options import DebugLevel

logger = logging.getLogger(__name__)

RUNTIME_MODULE = "fsm_compiler.runtime.statemap"

# Reflection codes of the per-state transition tables.
TRANSITION_UNDEFINED = 0
TRANSITION_DEFINED = 1
TRANSITION_DEFAULT = 2


def _format_action(action: Action) -> str:
    if action.is_empty_state_stack:
        return "fsm.empty_state_stack()"
    receiver = "" if action.is_static else "ctxt."
    if action.is_property:
        value = action.arguments[0] if action.arguments else "None"
        return f"{receiver}{action.name} = {value}"
    return f"{receiver}{action.name}({', '.join(action.arguments)})"


def _import_statement(name: str) -> str:
    name = name.strip()
    if name.startswith("import ") or name.startswith("from "):
        return name
    return f"import {name}"


class PythonCodeGenerator(CodeGenerator):
    language = TargetLanguage.PYTHON

    def reset(self) -> None:
        self._transition_names: List[str] = []
        self._maps: List[Dict[str, Any]] = []
        self._map: Optional[Dict[str, Any]] = None
        self._class: Optional[Dict[str, Any]] = None
        self._signature: Optional[Dict[str, Any]] = None
        self._guard: Optional[Dict[str, Any]] = None

    # --- Naming ---

    @staticmethod
    def _state_base_class(fsm: FsmModel) -> str:
        return f"{fsm.context}State"

    @staticmethod
    def _default_class(map_name: str) -> str:
        return f"{map_name}_{DEFAULT_NAME}"

    @staticmethod
    def _state_label(state: State) -> str:
        return f"{state.map_name}.{DEFAULT_NAME if state.is_default else state.name}"

    @staticmethod
    def _state_ref(qualified_name: str) -> str:
        return scoped_name(qualified_name, ".")

    # --- Template data ---

    def _reflection_table(self, state: State) -> Optional[Dict[str, int]]:
        if not self.options.reflect:
            return None
        default_state = state.map.default_state
        table = {}
        for name in self._transition_names + [DEFAULT_NAME]:
            if not state.is_default and state.find_transition(name) is not None:
                table[name] = TRANSITION_DEFINED
            elif default_state is not None and default_state.find_transition(name) is not None:
                table[name] = TRANSITION_DEFAULT
            else:
                table[name] = TRANSITION_UNDEFINED
        return table

    @staticmethod
    def _state_actions(actions: Optional[List[Action]]) -> Optional[Dict[str, Any]]:
        """Entry or exit block of a state; None when the state declares none."""
        if actions is None:
            return None
        return {
            "actions": [_format_action(a) for a in actions],
            "uses_ctxt": any(not a.is_empty_state_stack for a in actions),
        }

    def _new_class(self, name: str, parent: str) -> Dict[str, Any]:
        return {"name": name, "parent": parent, "reflection": None,
                "entry": None, "exit": None, "methods": []}

    def _find_method(self, name: str, ctx) -> Dict[str, Any]:
        for method in self._class["methods"]:
            if method["name"] == name:
                return method
        parent = self._state_base_class(ctx.fsm) if ctx.in_default_state else self._default_class(ctx.map.name)
        method = {"name": name, "parent": f"{parent}.{name}", "uses_ctxt": False, "signatures": []}
        self._class["methods"].append(method)
        return method

    # --- Traversal hooks ---

    def begin_fsm(self, fsm, ctx):
        names = []
        for transition in fsm.transitions:
            if transition.name != DEFAULT_NAME and transition.name not in names:
                names.append(transition.name)
        self._transition_names = names

    def begin_map(self, fsm_map, ctx):
        default_class = self._new_class(self._default_class(fsm_map.name), self._state_base_class(ctx.fsm))
        if fsm_map.default_state is None:
            default_class["reflection"] = self._reflection_table(State(name=DEFAULT_NAME, map=fsm_map))
        self._map = {"name": fsm_map.name, "classes": [default_class], "instances": []}
        self._maps.append(self._map)

    def begin_state(self, state, ctx):
        if state.is_default:
            self._class = self._map["classes"][0]
        else:
            self._class = self._new_class(f"{state.map_name}_{state.name}", self._default_class(state.map_name))
            self._map["classes"].append(self._class)
            self._map["instances"].append({
                "name": state.name,
                "class_name": self._class["name"],
                "label": self._state_label(state),
                "id": ctx.state_id,
            })
        self._class["reflection"] = self._reflection_table(state)
        self._class["entry"] = self._state_actions(state.entry_actions)
        self._class["exit"] = self._state_actions(state.exit_actions)

    def begin_transition(self, transition, ctx):
        method = self._find_method(transition.name, ctx)
        method["uses_ctxt"] = method["uses_ctxt"] or transition.has_ctxt_reference()
        parameters = [p.name for p in transition.parameters]
        self._signature = {
            "arity": len(parameters),
            "parameters": parameters,
            "fallthrough": ctx.needs_default_fallthrough,
            "guards": [],
        }
        method["signatures"].append(self._signature)

    def begin_guard(self, guard, ctx):
        plan = ctx.plan
        if guard.has_condition:
            keyword = "if" if ctx.is_first_guard else "elif"
        elif ctx.is_else_guard:
            keyword = "else"
        else:
            keyword = None
        label = f"{self._state_label(ctx.state)}.{ctx.transition.name}({', '.join(self._signature['parameters'])})"
        self._guard = {
            "keyword": keyword,
            "condition": guard.condition.strip(),
            "plan": plan,
            "label": escape(label),
            "protected": plan.has_actions and not self.options.no_catch,
            "actions": [],
            "end_state": "endState" if plan.is_loopback else self._state_ref(plan.end_state),
            "push_state": self._state_ref(plan.push_state),
        }
        self._signature["guards"].append(self._guard)

    def visit_action(self, action, ctx):
        self._guard["actions"].append(_format_action(action))

    # --- Rendering ---

    def render(self, fsm: FsmModel) -> str:
        template = self.env.get_template("python_fsm.py.j2")
        for fsm_map in self._maps:
            for cls in fsm_map["classes"]:
                cls["is_empty"] = not (cls["reflection"] is not None or cls["entry"] is not None
                                       or cls["exit"] is not None or cls["methods"])
        context: Dict[str, Any] = {
            "app_name": self.options.app_name,
            "app_version": self.options.app_version,
            "source_file": self.options.source_file_name,
            "source": fsm.source.strip("\n"),
            "imports": [_import_statement(name) for name in fsm.imports],
            "runtime_module": RUNTIME_MODULE,
            "trace": self.options.debug_level >= DebugLevel.LEVEL_0,
            "trace_entry_exit": self.options.debug_level >= DebugLevel.LEVEL_1,
            "reflect": self.options.reflect,
            "sync": self.options.sync,
            "state_base": self._state_base_class(fsm),
            "transitions": self._transition_names,
            "maps": self._maps,
            "fsm_class": fsm.fsm_class_name,
            "start_state": self._state_ref(fsm.find_start_state().qualified_name),
            "states": [self._state_ref(s.qualified_name) for s in self.state_index],
        }
        return template.render(context)
