# fsm_compiler/core/state_index.py
"""
Numbers the states of a model once, before any emission begins. The ids are
the only stable identity of a state across backends (serialization,
reflection), so they must not depend on which emitter walks the tree.
"""

from typing import Dict, Iterator, List

from .fsm_ir import FsmModel, State

DEFAULT_STATE_ID = -1


class StateIndex:
    """Maps every real state to an id 0..N-1 in map order, then state order."""

    def __init__(self, states: List[State]):
        self._states = list(states)
        self._ids: Dict[str, int] = {
            state.qualified_name: state_id for state_id, state in enumerate(self._states)
        }

    def id_of(self, state: State) -> int:
        if state.is_default:
            return DEFAULT_STATE_ID
        try:
            return self._ids[state.qualified_name]
        except KeyError:
            raise KeyError(f"State '{state.qualified_name}' is not indexed.") from None

    def state_of(self, state_id: int) -> State:
        if state_id < 0 or state_id >= len(self._states):
            raise IndexError(f"No state with id {state_id}.")
        return self._states[state_id]

    def __len__(self) -> int:
        return len(self._states)

    def __iter__(self) -> Iterator[State]:
        return iter(self._states)


def number_states(fsm: FsmModel) -> StateIndex:
    return StateIndex([state for fsm_map in fsm.maps for state in fsm_map.states])
