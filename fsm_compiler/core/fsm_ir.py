# fsm_compiler/core/fsm_ir.py
"""
Defines the Intermediate Representation (IR) for a compiled Finite State Machine.

These data classes are the single source of truth shared by the validator, the
reference simulator and every code generator. The tree is built once by the
loader, validated once, and then only read. Child-to-parent links are plain
back references kept out of ``repr`` so that dumping a node never recurses
through its owner.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Tuple

NIL_STATE = "nil"
DEFAULT_NAME = "Default"
DEFAULT_STATE_NAME = "DefaultState"
EMPTY_STATE_STACK = "emptyStateStack"
SCOPE_SEPARATOR = "::"


class TransType(Enum):
    """How a guard commits the next state."""
    SET = "set"
    PUSH = "push"
    POP = "pop"


# ==============================================================================
# Atomic IR Components
# ==============================================================================

@dataclass
class Parameter:
    """A transition parameter. The type string is opaque to the core."""
    name: str
    type: str = ""
    line_number: int = 0

    def key(self) -> Tuple[str, str]:
        return (self.name, self.type)

    def __str__(self) -> str:
        return f"{self.name}: {self.type}" if self.type else self.name


@dataclass
class Action:
    """
    A call into the owner's business logic, or into the runtime context for
    the ``emptyStateStack`` directive. Arguments are kept as expression text.
    """
    name: str
    arguments: List[str] = field(default_factory=list)
    is_property: bool = False
    is_static: bool = False
    is_empty_state_stack: bool = False
    line_number: int = 0

    def __str__(self) -> str:
        if self.is_property:
            value = self.arguments[0] if self.arguments else ""
            return f"{self.name} = {value}"
        return f"{self.name}({', '.join(self.arguments)})"


# ==============================================================================
# Structural IR Components
# ==============================================================================

@dataclass(eq=False)
class Guard:
    """One conditional branch of a transition."""
    condition: str = ""
    trans_type: TransType = TransType.SET
    # For POP guards this names the transition re-issued after popping.
    end_state: str = ""
    push_state: str = ""
    actions: List[Action] = field(default_factory=list)
    pop_args: str = ""
    line_number: int = 0
    transition: Optional['Transition'] = field(default=None, repr=False)

    @property
    def has_condition(self) -> bool:
        return bool(self.condition.strip())

    @property
    def has_actions(self) -> bool:
        return bool(self.actions)

    @property
    def is_loopback(self) -> bool:
        return (self.trans_type in (TransType.SET, TransType.PUSH)
                and self.end_state == NIL_STATE)

    @property
    def pop_transition(self) -> str:
        """The transition re-issued after a pop, or an empty string."""
        if self.trans_type != TransType.POP:
            return ""
        if not self.end_state or self.end_state == NIL_STATE:
            return ""
        return self.end_state


@dataclass(eq=False)
class Transition:
    """A named, parameterized transition defined by one state."""
    name: str
    parameters: List[Parameter] = field(default_factory=list)
    guards: List[Guard] = field(default_factory=list)
    line_number: int = 0
    state: Optional['State'] = field(default=None, repr=False)

    @property
    def signature(self) -> Tuple[str, Tuple[Tuple[str, str], ...]]:
        return (self.name, tuple(p.key() for p in self.parameters))

    @property
    def unconditional_guard(self) -> Optional[Guard]:
        for guard in self.guards:
            if not guard.has_condition:
                return guard
        return None

    def ordered_guards(self) -> List[Guard]:
        """Conditional guards in declaration order, the unconditional guard last."""
        conditional = [g for g in self.guards if g.has_condition]
        unconditional = [g for g in self.guards if not g.has_condition]
        return conditional + unconditional

    def add_guard(self, guard: Guard) -> None:
        guard.transition = self
        self.guards.append(guard)

    def has_ctxt_reference(self) -> bool:
        for guard in self.guards:
            if guard.actions or "ctxt" in guard.condition or "ctxt" in guard.pop_args:
                return True
        return False


@dataclass(eq=False)
class State:
    """A state of one map. The state named ``Default`` is the map's Default State."""
    name: str
    # None means the state declares no entry (exit) block at all.
    entry_actions: Optional[List[Action]] = None
    exit_actions: Optional[List[Action]] = None
    transitions: List[Transition] = field(default_factory=list)
    line_number: int = 0
    map: Optional['Map'] = field(default=None, repr=False)

    @property
    def is_default(self) -> bool:
        return self.name.lower() == DEFAULT_NAME.lower()

    @property
    def map_name(self) -> str:
        return self.map.name if self.map is not None else ""

    @property
    def qualified_name(self) -> str:
        return f"{self.map_name}{SCOPE_SEPARATOR}{self.name}"

    @property
    def class_name(self) -> str:
        return DEFAULT_STATE_NAME if self.is_default else self.name

    def add_transition(self, transition: Transition) -> Transition:
        """
        Adds a transition, merging its guards into an existing transition with
        the same signature. Returns the transition that owns the guards.
        """
        existing = self.find_transition(transition.name, transition.parameters)
        if existing is not None:
            for guard in transition.guards:
                existing.add_guard(guard)
            return existing
        transition.state = self
        for guard in transition.guards:
            guard.transition = transition
        self.transitions.append(transition)
        return transition

    def find_transition(self, name: str,
                        parameters: Optional[List[Parameter]] = None) -> Optional[Transition]:
        """Finds a transition by name, and by parameter list when one is given."""
        for transition in self.transitions:
            if transition.name != name:
                continue
            if parameters is None:
                return transition
            if [p.key() for p in transition.parameters] == [p.key() for p in parameters]:
                return transition
        return None

    def find_transition_by_arity(self, name: str, arity: int) -> Optional[Transition]:
        for transition in self.transitions:
            if transition.name == name and len(transition.parameters) == arity:
                return transition
        return None

    def effective_entry_actions(self) -> List[Action]:
        if self.entry_actions is not None:
            return self.entry_actions
        default_state = self.map.default_state if self.map is not None else None
        if default_state is not None and default_state is not self:
            return default_state.entry_actions or []
        return []

    def effective_exit_actions(self) -> List[Action]:
        if self.exit_actions is not None:
            return self.exit_actions
        default_state = self.map.default_state if self.map is not None else None
        if default_state is not None and default_state is not self:
            return default_state.exit_actions or []
        return []


@dataclass(eq=False)
class Map:
    """A named group of states sharing one Default State."""
    name: str
    states: List[State] = field(default_factory=list)
    default_state: Optional[State] = None
    line_number: int = 0
    fsm: Optional['FsmModel'] = field(default=None, repr=False)

    def add_state(self, state: State) -> None:
        state.map = self
        if state.is_default:
            self.default_state = state
        else:
            self.states.append(state)

    @property
    def all_states(self) -> List[State]:
        """The Default State (if any) followed by the real states."""
        if self.default_state is None:
            return list(self.states)
        return [self.default_state] + self.states

    def find_state(self, name: str) -> Optional[State]:
        for state in self.states:
            if state.name == name:
                return state
        return None

    @property
    def transitions(self) -> List[Transition]:
        return _union_transitions(self.all_states)

    def has_entry_actions(self) -> bool:
        return any(s.entry_actions for s in self.all_states)

    def has_exit_actions(self) -> bool:
        return any(s.exit_actions for s in self.all_states)


@dataclass(eq=False)
class FsmModel:
    """The root of the IR: one compiled state machine."""
    name: str
    context: str = ""
    start_state: str = ""
    maps: List[Map] = field(default_factory=list)
    fsm_class: str = ""
    source: str = ""
    header: str = ""
    package: str = ""
    imports: List[str] = field(default_factory=list)
    includes: List[str] = field(default_factory=list)
    access_level: str = ""
    line_number: int = 0

    @property
    def fsm_class_name(self) -> str:
        return self.fsm_class or f"{self.context}Context"

    def add_map(self, fsm_map: Map) -> None:
        fsm_map.fsm = self
        self.maps.append(fsm_map)

    def find_map(self, name: str) -> Optional[Map]:
        for fsm_map in self.maps:
            if fsm_map.name == name:
                return fsm_map
        return None

    @property
    def start_map_name(self) -> str:
        map_name, _, _ = self.start_state.rpartition(SCOPE_SEPARATOR)
        return map_name

    @property
    def start_state_name(self) -> str:
        return self.start_state.rpartition(SCOPE_SEPARATOR)[2]

    def find_state(self, name: str, current_map: Optional[Map] = None) -> Optional[State]:
        """
        Resolves ``name`` to a real state. Scoped names (``map::state``) are looked
        up in the named map, unscoped names in ``current_map``. The Default
        State is never returned.
        """
        if SCOPE_SEPARATOR in name:
            map_name, _, state_name = name.rpartition(SCOPE_SEPARATOR)
            fsm_map = self.find_map(map_name)
            return fsm_map.find_state(state_name) if fsm_map is not None else None
        if current_map is None:
            return None
        return current_map.find_state(name)

    def find_start_state(self) -> Optional[State]:
        if not self.start_state:
            return None
        if SCOPE_SEPARATOR in self.start_state:
            return self.find_state(self.start_state)
        for fsm_map in self.maps:
            state = fsm_map.find_state(self.start_state)
            if state is not None:
                return state
        return None

    @property
    def transitions(self) -> List[Transition]:
        """The sorted union of transition signatures across all maps."""
        states = [s for fsm_map in self.maps for s in fsm_map.all_states]
        return _union_transitions(states)

    def has_entry_actions(self) -> bool:
        return any(m.has_entry_actions() for m in self.maps)

    def has_exit_actions(self) -> bool:
        return any(m.has_exit_actions() for m in self.maps)


def scope_state_name(name: str, map_name: str) -> str:
    """Qualifies an unscoped state name with ``map_name``."""
    if SCOPE_SEPARATOR in name:
        return name
    return f"{map_name}{SCOPE_SEPARATOR}{name}"


def _union_transitions(states: List[State]) -> List[Transition]:
    seen = {}
    for state in states:
        for transition in state.transitions:
            seen.setdefault(transition.signature, transition)
    return [seen[key] for key in sorted(seen)]
