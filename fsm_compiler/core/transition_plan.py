# fsm_compiler/core/transition_plan.py
"""
The backend-independent transition semantics.

A GuardPlan spells out, for one guard, which steps a backend has to emit and
in which order:

    save loopback state -> exit current -> clear state -> actions
    -> commit (set / push / pop) -> entry of the new state -> pop re-issue

The default chain lists where a transition falls through to when none of a
state's guards match. Both are computed here once, so the simulator and every
code generator agree on them.
"""

from dataclasses import dataclass
from enum import Enum
from typing import List, Optional

from .fsm_ir import (
    DEFAULT_NAME, NIL_STATE, Guard, Parameter, State, Transition, TransType,
    scope_state_name,
)


@dataclass(frozen=True)
class GuardPlan:
    guard: Guard
    trans_type: TransType
    is_loopback: bool
    has_actions: bool
    # Loopback with actions: remember the current state before it is cleared.
    save_loopback_state: bool
    exit_current: bool
    clear_state: bool
    set_state: bool
    push_set_end_state: bool
    push_entry_end_state: bool
    push: bool
    pop: bool
    enter_new_state: bool
    end_state: str
    push_state: str
    pop_transition: str
    pop_args: str

    @property
    def is_noop(self) -> bool:
        """A nil SET guard without actions changes nothing at all."""
        return (self.trans_type == TransType.SET and self.is_loopback
                and not self.has_actions)


def plan_guard(guard: Guard) -> GuardPlan:
    """Computes the emission steps for ``guard``."""
    trans_type = guard.trans_type
    loopback = guard.is_loopback
    has_actions = guard.has_actions
    map_name = _map_name(guard)

    end_state = ""
    if trans_type != TransType.POP and guard.end_state and guard.end_state != NIL_STATE:
        end_state = scope_state_name(guard.end_state, map_name)
    push_state = ""
    if trans_type == TransType.PUSH:
        push_state = scope_state_name(guard.push_state, map_name)

    return GuardPlan(
        guard=guard,
        trans_type=trans_type,
        is_loopback=loopback,
        has_actions=has_actions,
        save_loopback_state=loopback and has_actions,
        exit_current=not loopback,
        clear_state=has_actions,
        set_state=trans_type == TransType.SET and (has_actions or not loopback),
        push_set_end_state=(trans_type == TransType.PUSH
                            and (has_actions or not loopback)),
        push_entry_end_state=trans_type == TransType.PUSH and not loopback,
        push=trans_type == TransType.PUSH,
        pop=trans_type == TransType.POP,
        enter_new_state=((trans_type == TransType.SET and not loopback)
                         or trans_type == TransType.PUSH),
        end_state=end_state,
        push_state=push_state,
        pop_transition=guard.pop_transition,
        pop_args=guard.pop_args if guard.pop_transition else "",
    )


def is_loopback(trans_type: TransType, end_state: str) -> bool:
    return trans_type in (TransType.SET, TransType.PUSH) and end_state == NIL_STATE


def all_nil_end_states(guards: List[Guard]) -> bool:
    """True when every guard is a plain SET to ``nil``."""
    return all(g.trans_type == TransType.SET and g.end_state == NIL_STATE for g in guards)


def _map_name(guard: Guard) -> str:
    transition = guard.transition
    if transition is None or transition.state is None:
        return ""
    return transition.state.map_name


# ==============================================================================
# Default Resolution Chain
# ==============================================================================

class DefaultStep(Enum):
    MAP_DEFAULT_TRANSITION = "a"
    STATE_DEFAULT = "b"
    MAP_DEFAULT_DEFAULT = "c"
    SYSTEM_DEFAULT = "d"


@dataclass(frozen=True)
class DefaultLink:
    """One candidate of the default chain. ``transition`` is None for the system default."""
    step: DefaultStep
    transition: Optional[Transition] = None


def default_chain(state: State, name: str, parameters: Optional[List[Parameter]] = None,
                  from_default_state: bool = False, arity: Optional[int] = None) -> List[DefaultLink]:
    """
    Lists the transitions tried, in order, when transition ``name`` is not
    handled by ``state``:

        a. the map Default State's ``name`` with the same parameters,
        b. ``state``'s own ``Default`` transition,
        c. the map Default State's ``Default`` transition,
        d. the system default (undefined transition failure).

    Step a matches ``parameters`` when given, otherwise the number of
    arguments ``arity``, otherwise the name alone.

    ``from_default_state`` means the map Default State's definition of
    ``name`` was tried already and fell through. When ``name`` is ``Default``
    itself the chain continues below the Default that fell through.
    """
    default_state = state.map.default_state if state.map is not None else None
    links = []

    if name != DEFAULT_NAME:
        if not from_default_state and default_state is not None:
            if parameters is None and arity is not None:
                transition = default_state.find_transition_by_arity(name, arity)
            else:
                transition = default_state.find_transition(name, parameters)
            if transition is not None:
                links.append(DefaultLink(DefaultStep.MAP_DEFAULT_TRANSITION, transition))
        own_default = state.find_transition(DEFAULT_NAME, [])
        if own_default is not None:
            links.append(DefaultLink(DefaultStep.STATE_DEFAULT, own_default))

    if default_state is not None and not (name == DEFAULT_NAME and from_default_state):
        map_default = default_state.find_transition(DEFAULT_NAME, [])
        if map_default is not None:
            links.append(DefaultLink(DefaultStep.MAP_DEFAULT_DEFAULT, map_default))

    links.append(DefaultLink(DefaultStep.SYSTEM_DEFAULT))
    return links
