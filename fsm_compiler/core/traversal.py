# fsm_compiler/core/traversal.py
"""
The single walk over an FsmModel shared by the validator and every backend.

Order:
    FSM -> each Map -> its Default State first, then the real states
        -> each Transition -> its Parameters, then its Guards
           (conditional ones in declaration order, the unconditional one last)
        -> each Guard's Actions

An emitter only reacts to the hooks; guard ordering, guard plans and the
default-fallthrough flag are worked out here and handed over in the
TraversalContext.
"""

from dataclasses import dataclass
from typing import Optional, Protocol

from .fsm_ir import Action, FsmModel, Guard, Map, Parameter, State, Transition
from .state_index import StateIndex, number_states
from .transition_plan import GuardPlan, plan_guard


@dataclass
class TraversalContext:
    """Where the walk currently is. Emitters must treat it as read-only."""
    fsm: FsmModel
    state_index: StateIndex
    map: Optional[Map] = None
    state: Optional[State] = None
    transition: Optional[Transition] = None
    guard: Optional[Guard] = None
    guard_index: int = 0
    guard_count: int = 0
    plan: Optional[GuardPlan] = None

    @property
    def in_default_state(self) -> bool:
        return self.state is not None and self.state.is_default

    @property
    def is_first_guard(self) -> bool:
        return self.guard_index == 0

    @property
    def is_last_guard(self) -> bool:
        return self.guard_index == self.guard_count - 1

    @property
    def is_else_guard(self) -> bool:
        """The unconditional guard closing a chain of conditional ones."""
        return self.guard is not None and not self.guard.has_condition and self.guard_count > 1

    @property
    def needs_default_fallthrough(self) -> bool:
        """No unconditional guard: a failed chain must continue with the default chain."""
        return self.transition is not None and self.transition.unconditional_guard is None

    @property
    def state_id(self) -> int:
        return self.state_index.id_of(self.state)


class Emitter(Protocol):
    def begin_fsm(self, fsm: FsmModel, ctx: TraversalContext) -> None: ...
    def end_fsm(self, fsm: FsmModel, ctx: TraversalContext) -> None: ...
    def begin_map(self, fsm_map: Map, ctx: TraversalContext) -> None: ...
    def end_map(self, fsm_map: Map, ctx: TraversalContext) -> None: ...
    def begin_state(self, state: State, ctx: TraversalContext) -> None: ...
    def end_state(self, state: State, ctx: TraversalContext) -> None: ...
    def begin_transition(self, transition: Transition, ctx: TraversalContext) -> None: ...
    def end_transition(self, transition: Transition, ctx: TraversalContext) -> None: ...
    def visit_parameter(self, parameter: Parameter, ctx: TraversalContext) -> None: ...
    def begin_guard(self, guard: Guard, ctx: TraversalContext) -> None: ...
    def end_guard(self, guard: Guard, ctx: TraversalContext) -> None: ...
    def visit_action(self, action: Action, ctx: TraversalContext) -> None: ...


class NullEmitter:
    """Ignores every hook. Concrete emitters override the ones they need."""

    def begin_fsm(self, fsm, ctx): pass
    def end_fsm(self, fsm, ctx): pass
    def begin_map(self, fsm_map, ctx): pass
    def end_map(self, fsm_map, ctx): pass
    def begin_state(self, state, ctx): pass
    def end_state(self, state, ctx): pass
    def begin_transition(self, transition, ctx): pass
    def end_transition(self, transition, ctx): pass
    def visit_parameter(self, parameter, ctx): pass
    def begin_guard(self, guard, ctx): pass
    def end_guard(self, guard, ctx): pass
    def visit_action(self, action, ctx): pass


def traverse(fsm: FsmModel, emitter: Emitter,
             state_index: Optional[StateIndex] = None) -> TraversalContext:
    """Walks ``fsm`` and drives ``emitter``. Returns the final context."""
    ctx = TraversalContext(fsm=fsm, state_index=state_index or number_states(fsm))

    emitter.begin_fsm(fsm, ctx)
    for fsm_map in fsm.maps:
        ctx.map = fsm_map
        emitter.begin_map(fsm_map, ctx)
        for state in fsm_map.all_states:
            _traverse_state(state, emitter, ctx)
        ctx.state = None
        emitter.end_map(fsm_map, ctx)
    ctx.map = None
    emitter.end_fsm(fsm, ctx)
    return ctx


def _traverse_state(state: State, emitter: Emitter, ctx: TraversalContext) -> None:
    ctx.state = state
    emitter.begin_state(state, ctx)
    for transition in state.transitions:
        ctx.transition = transition
        ctx.guard = None
        ctx.plan = None
        emitter.begin_transition(transition, ctx)
        for parameter in transition.parameters:
            emitter.visit_parameter(parameter, ctx)

        guards = transition.ordered_guards()
        ctx.guard_count = len(guards)
        for index, guard in enumerate(guards):
            ctx.guard = guard
            ctx.guard_index = index
            ctx.plan = plan_guard(guard)
            emitter.begin_guard(guard, ctx)
            for action in guard.actions:
                emitter.visit_action(action, ctx)
            emitter.end_guard(guard, ctx)

        ctx.guard = None
        ctx.plan = None
        emitter.end_transition(transition, ctx)
    ctx.transition = None
    emitter.end_state(state, ctx)
