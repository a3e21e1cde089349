# fsm_compiler/core/fsm_parser.py
"""
Parses structured state machine data (a dictionary, usually loaded from a
JSON file) into the Intermediate Representation (IR) defined in fsm_ir.py.

Entries that lack the information needed to build a node are logged and
skipped, the same way every other loader in the tool chain treats them.
Input that cannot describe a state machine at all raises FsmParseError.
Semantic problems (dangling end states, duplicate guards, ...) are left for
the validator so that they are reported together with their line numbers.
"""
import json
import logging
import os
from typing import Any, Dict, List, Optional, Union

from .fsm_ir import (
    EMPTY_STATE_STACK, Action, FsmModel, Guard, Map, Parameter, State,
    Transition, TransType,
)

logger = logging.getLogger(__name__)


class FsmParseError(ValueError):
    """Raised when the input cannot be turned into an FsmModel."""
    pass


def parse_diagram_to_ir(diagram_data: Dict[str, Any], fsm_name: Optional[str] = None) -> FsmModel:
    """
    Parses a state machine dictionary into the FsmModel IR.

    Args:
        diagram_data: The raw dictionary, in the format written by JsonExporter.
        fsm_name: Overrides the ``name`` entry of the data.

    Returns:
        An FsmModel whose back references are fully wired.
    """
    if not isinstance(diagram_data, dict):
        raise FsmParseError(f"State machine data must be a mapping, got {type(diagram_data).__name__}.")

    name = fsm_name or diagram_data.get('name') or diagram_data.get('class') or "UntitledFSM"
    fsm = FsmModel(
        name=name,
        context=diagram_data.get('class', ''),
        start_state=diagram_data.get('start', ''),
        fsm_class=diagram_data.get('fsmclass', ''),
        source=diagram_data.get('source', ''),
        header=diagram_data.get('header', ''),
        package=diagram_data.get('package', ''),
        imports=list(diagram_data.get('imports', [])),
        includes=list(diagram_data.get('includes', [])),
        access_level=diagram_data.get('access', ''),
        line_number=diagram_data.get('line', 0),
    )

    # Maps, then their states, then one transition entry per guard.
    for map_data in diagram_data.get('maps', []):
        if not isinstance(map_data, dict) or not map_data.get('name'):
            logger.warning(f"Skipping invalid map data entry: {map_data}")
            continue
        fsm_map = Map(name=map_data['name'], line_number=map_data.get('line', 0))
        fsm.add_map(fsm_map)

        for state_data in map_data.get('states', []):
            if not isinstance(state_data, dict) or not state_data.get('name'):
                logger.warning(f"Skipping invalid state data entry in map '{fsm_map.name}': {state_data}")
                continue
            state = State(
                name=state_data['name'],
                entry_actions=_parse_action_list(state_data.get('entry')),
                exit_actions=_parse_action_list(state_data.get('exit')),
                line_number=state_data.get('line', 0),
            )
            fsm_map.add_state(state)

            # Entries sharing name and parameters are guards of one transition.
            for trans_data in state_data.get('transitions', []):
                if not isinstance(trans_data, dict) or not trans_data.get('name'):
                    logger.warning(f"Skipping invalid transition data entry in state "
                                   f"'{state.qualified_name}': {trans_data}")
                    continue
                state.add_transition(_parse_transition(trans_data))

    logger.debug(f"Parsed FSM '{fsm.name}' with {len(fsm.maps)} map(s).")
    return fsm


def load_fsm_file(file_path: str) -> FsmModel:
    """Loads a JSON state machine file. The file's base name is the default FSM name."""
    with open(file_path, 'r', encoding='utf-8') as f:
        try:
            data = json.load(f)
        except json.JSONDecodeError as e:
            raise FsmParseError(f"{file_path}: invalid JSON: {e}") from e
    if isinstance(data, dict) and not data.get('name'):
        data = dict(data, name=_base_name(file_path))
    return parse_diagram_to_ir(data)


def _base_name(file_path: str) -> str:
    base = os.path.basename(file_path)
    while '.' in base:
        base = base.rsplit('.', 1)[0]
    return base


def _parse_transition(trans_data: Dict[str, Any]) -> Transition:
    type_name = str(trans_data.get('type', 'set')).lower()
    try:
        trans_type = TransType(type_name)
    except ValueError:
        raise FsmParseError(f"Unknown transition type '{type_name}' for transition "
                            f"'{trans_data['name']}'.") from None

    line = trans_data.get('line', 0)
    parameters = []
    for param_data in trans_data.get('parameters', []):
        if isinstance(param_data, str):
            param_name, _, param_type = param_data.partition(':')
            parameters.append(Parameter(param_name.strip(), param_type.strip(), line))
        elif isinstance(param_data, dict) and param_data.get('name'):
            parameters.append(Parameter(param_data['name'], param_data.get('type', ''), line))
        else:
            logger.warning(f"Skipping invalid parameter entry: {param_data}")

    guard = Guard(
        condition=trans_data.get('guard', '') or '',
        trans_type=trans_type,
        end_state=trans_data.get('end_state', '') or '',
        push_state=trans_data.get('push_state', '') or '',
        actions=_parse_action_list(trans_data.get('actions')) or [],
        pop_args=trans_data.get('pop_args', '') or '',
        line_number=line,
    )
    transition = Transition(name=trans_data['name'], parameters=parameters, line_number=line)
    transition.add_guard(guard)
    return transition


def _parse_action_list(actions_data: Optional[List[Union[str, Dict[str, Any]]]]) -> Optional[List[Action]]:
    if actions_data is None:
        return None
    actions = []
    for action_data in actions_data:
        action = parse_action(action_data)
        if action is not None:
            actions.append(action)
    return actions


def parse_action(action_data: Union[str, Dict[str, Any]]) -> Optional[Action]:
    """
    Builds an Action from an object entry or from the shorthand forms
    ``name(arg, ...)``, ``name = value`` and ``::name(arg, ...)``.
    """
    if isinstance(action_data, dict):
        if not action_data.get('name'):
            logger.warning(f"Skipping invalid action entry: {action_data}")
            return None
        return Action(
            name=action_data['name'],
            arguments=[str(a) for a in action_data.get('arguments', [])],
            is_property=bool(action_data.get('property', False)),
            is_static=bool(action_data.get('static', False)),
            is_empty_state_stack=action_data['name'] == EMPTY_STATE_STACK,
            line_number=action_data.get('line', 0),
        )
    if not isinstance(action_data, str) or not action_data.strip():
        logger.warning(f"Skipping invalid action entry: {action_data!r}")
        return None

    text = action_data.strip().rstrip(';').strip()
    is_static = text.startswith('::')
    if is_static:
        text = text[2:]

    paren = text.find('(')
    equals = text.find('=')
    if equals > 0 and (paren < 0 or equals < paren):
        name, value = text[:equals].strip(), text[equals + 1:].strip()
        return Action(name=name, arguments=[value], is_property=True, is_static=is_static)

    if paren < 0:
        name, arguments = text, []
    else:
        if not text.endswith(')'):
            logger.warning(f"Skipping malformed action '{action_data}'.")
            return None
        name = text[:paren].strip()
        arguments = split_arguments(text[paren + 1:-1])
    return Action(
        name=name,
        arguments=arguments,
        is_static=is_static,
        is_empty_state_stack=name == EMPTY_STATE_STACK,
    )


def split_arguments(text: str) -> List[str]:
    """Splits an argument list at top-level commas, keeping strings and brackets intact."""
    arguments = []
    depth = 0
    quote = None
    current = []
    escaped = False
    for ch in text:
        if quote:
            current.append(ch)
            if escaped:
                escaped = False
            elif ch == '\\':
                escaped = True
            elif ch == quote:
                quote = None
            continue
        if ch in '"\'':
            quote = ch
        elif ch in '([{':
            depth += 1
        elif ch in ')]}':
            depth -= 1
        elif ch == ',' and depth == 0:
            arguments.append(''.join(current).strip())
            current = []
            continue
        current.append(ch)
    tail = ''.join(current).strip()
    if tail or arguments:
        arguments.append(tail)
    return arguments
