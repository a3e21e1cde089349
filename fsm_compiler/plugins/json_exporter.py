# fsm_compiler/plugins/json_exporter.py
import json
from typing import Any, Dict, List, Optional

from ..core.fsm_ir import Action, FsmModel, State
from .api import FsmExporterPlugin


def _action_to_dict(action: Action) -> Dict[str, Any]:
    data: Dict[str, Any] = {"name": action.name, "arguments": list(action.arguments)}
    if action.is_property:
        data["property"] = True
    if action.is_static:
        data["static"] = True
    if action.line_number:
        data["line"] = action.line_number
    return data


def _actions_to_list(actions: Optional[List[Action]]) -> Optional[List[Dict[str, Any]]]:
    if actions is None:
        return None
    return [_action_to_dict(a) for a in actions]


def _state_to_dict(state: State) -> Dict[str, Any]:
    data: Dict[str, Any] = {"name": state.name}
    if state.entry_actions is not None:
        data["entry"] = _actions_to_list(state.entry_actions)
    if state.exit_actions is not None:
        data["exit"] = _actions_to_list(state.exit_actions)
    if state.line_number:
        data["line"] = state.line_number

    transitions = []
    for transition in state.transitions:
        for guard in transition.guards:
            entry: Dict[str, Any] = {
                "name": transition.name,
                "parameters": [{"name": p.name, "type": p.type} for p in transition.parameters],
                "type": guard.trans_type.value,
                "end_state": guard.end_state,
                "actions": _actions_to_list(guard.actions),
            }
            if guard.condition:
                entry["guard"] = guard.condition
            if guard.push_state:
                entry["push_state"] = guard.push_state
            if guard.pop_args:
                entry["pop_args"] = guard.pop_args
            if guard.line_number:
                entry["line"] = guard.line_number
            transitions.append(entry)
    data["transitions"] = transitions
    return data


def fsm_to_dict(fsm: FsmModel) -> Dict[str, Any]:
    """Converts a model back into the dictionary format read by parse_diagram_to_ir()."""
    data: Dict[str, Any] = {
        "name": fsm.name,
        "class": fsm.context,
        "start": fsm.start_state,
    }
    optional = {
        "fsmclass": fsm.fsm_class,
        "source": fsm.source,
        "header": fsm.header,
        "package": fsm.package,
        "imports": fsm.imports,
        "includes": fsm.includes,
        "access": fsm.access_level,
    }
    data.update({key: value for key, value in optional.items() if value})
    data["maps"] = [
        {"name": fsm_map.name, "states": [_state_to_dict(s) for s in fsm_map.all_states]}
        for fsm_map in fsm.maps
    ]
    return data


class JsonExporter(FsmExporterPlugin):
    @property
    def name(self) -> str:
        return "json"

    @property
    def file_filter(self) -> str:
        return "JSON Files (*.json)"

    def export(self, fsm: FsmModel, **kwargs) -> Dict[str, str]:
        content = json.dumps(fsm_to_dict(fsm), indent=4, ensure_ascii=False)
        base_filename = kwargs.get("base_filename", fsm.name or "fsm_model")
        return {f"{base_filename}.json": content}
