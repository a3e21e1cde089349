# fsm_compiler/core/fsm_simulator.py
"""
Reference interpreter for compiled state machines.

The simulator runs an FsmModel directly on the runtime library, following the
same guard plans and default chain the code generators emit. It is used to
check a machine's behavior before generating code, and by the test suite as
the executable definition of the transition semantics.

Guard conditions, action arguments and pop arguments are Python expressions.
They are evaluated with ``ctxt`` bound to the owner object and the
transition's parameters bound by name.
"""

import logging
import re
from typing import Any, Callable, Dict, List, Optional, Set, Tuple

from ..runtime import statemap
from .fsm_ir import Action, FsmModel, State, Transition
from .state_index import number_states
from .transition_plan import DefaultStep, GuardPlan, default_chain, plan_guard

logger = logging.getLogger(__name__)


class FSMError(Exception):
    """Custom exception for FSM simulation errors."""
    pass


def check_code_safety_basic(code_str: str, known_vars: Set[str]) -> Tuple[bool, str]:
    """
    A basic security check for Python expressions.
    This is not a sandbox, but prevents the most common dangerous operations.
    """
    if re.search(r'\bimport\s', code_str) or re.search(r'\bfrom\s+\w+\s+import\b', code_str):
        return False, "Imports are not allowed in FSM actions/conditions."
    match = re.search(r'\.[_]{2}([a-zA-Z_]+)', code_str)
    if match:
        return False, f"Access to the attribute '__{match.group(1)}' is restricted."
    disallowed_functions = ['open', 'eval', 'exec', 'exit', 'quit', 'input', 'compile', 'breakpoint', '__import__']
    for func in disallowed_functions:
        if func in known_vars:
            continue
        if re.search(rf'(?<![\w.]){func}\s*\(', code_str):
            return False, f"Calling the function '{func}' is not allowed for security reasons."
    return True, ""


class _SimulatedState(statemap.State):
    """Runtime state whose entry and exit run the model's actions."""

    def __init__(self, simulator: 'FSMSimulator', model_state: State, state_id: int):
        super().__init__(model_state.qualified_name, state_id)
        self.model_state = model_state
        self._simulator = simulator

    def entry(self, fsm):
        actions = self.model_state.effective_entry_actions()
        if actions:
            self._simulator.log_action(f"Entry of state: {self.get_name()}")
            self._simulator._execute_actions(actions, {})

    def exit(self, fsm):
        actions = self.model_state.effective_exit_actions()
        if actions:
            self._simulator.log_action(f"Exit of state: {self.get_name()}")
            self._simulator._execute_actions(actions, {})


class FSMSimulator:
    """
    Executes an FsmModel against an owner object.

    Args:
        fsm_model: A validated model.
        owner: The object ``ctxt`` refers to; actions are its methods.
        namespace: Extra names visible to expressions, and the functions
            static actions call.
        sync: Run every issued transition under the context lock.
        no_catch: Do not commit the next state when an action raises.
        state_stack_size: Fixed state stack size, 0 for unbounded.
        debug: Write the runtime debug trace to the context's debug stream.
    """

    def __init__(self, fsm_model: FsmModel, owner: Any, namespace: Optional[Dict[str, Any]] = None,
                 sync: bool = False, no_catch: bool = False, state_stack_size: int = 0,
                 debug: bool = False):
        self.model = fsm_model
        self.owner = owner
        self._namespace: Dict[str, Any] = dict(namespace or {})
        self._sync = sync
        self._no_catch = no_catch
        self._state_stack_size = state_stack_size
        self._debug = debug
        self._action_log: List[str] = []
        self._listeners: List[Callable] = []
        self.state_index = number_states(fsm_model)
        self._states: Dict[str, _SimulatedState] = {
            state.qualified_name: _SimulatedState(self, state, self.state_index.id_of(state))
            for state in self.state_index
        }
        self.context: Optional[statemap.FSMContext] = None
        self.reset()

    def reset(self) -> None:
        """Creates a fresh context and enters the start state."""
        self._action_log.clear()
        start_state = self.model.find_start_state()
        if start_state is None:
            raise FSMError(f"Start state '{self.model.start_state}' not found in FSM '{self.model.name}'.")

        self.context = statemap.FSMContext(self._states[start_state.qualified_name],
                                           name=self.model.fsm_class_name,
                                           stack_size=self._state_stack_size)
        self.context.set_debug_flag(self._debug)
        for listener in self._listeners:
            self.context.add_state_change_listener(listener)
        self.log_action(f"Entering start state: {start_state.qualified_name}")
        self.context.enter_start_state()

    # --- Public API ---

    def issue(self, transition_name: str, *args: Any) -> Tuple[str, List[str]]:
        """Issues a transition. Returns the new state name and the step's log."""
        self._action_log.clear()
        if self._sync:
            with self.context.get_lock():
                self._dispatch(transition_name, args)
        else:
            self._dispatch(transition_name, args)
        return self.get_current_state_name(), self.get_last_executed_actions_log()

    def get_current_state_name(self) -> str:
        if self.context.is_in_transition():
            return "InTransition"
        return self.context.get_state().get_name()

    def get_state_stack_depth(self) -> int:
        return self.context.get_state_stack_depth()

    def add_state_change_listener(self, listener: Callable) -> None:
        self._listeners.append(listener)
        self.context.add_state_change_listener(listener)

    def remove_state_change_listener(self, listener: Callable) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)
        self.context.remove_state_change_listener(listener)

    def log_action(self, msg: str) -> None:
        logger.debug(msg)
        self._action_log.append(msg)

    def get_last_executed_actions_log(self) -> List[str]:
        """Returns and clears the log of the most recent step."""
        log = self._action_log[:]
        self._action_log.clear()
        return log

    # --- Transition algorithm ---

    def _dispatch(self, name: str, args: Tuple[Any, ...]) -> None:
        context = self.context
        current = context.get_state()
        model_state = current.model_state
        context.set_transition(name)
        try:
            transition = model_state.find_transition_by_arity(name, len(args))
            if transition is not None and self._run_transition(transition, args):
                return
            self._run_default_chain(model_state, name, args)
        finally:
            context.set_transition(None)

    def _run_default_chain(self, state: State, name: str, args: Tuple[Any, ...]) -> DefaultStep:
        for link in default_chain(state, name, arity=len(args)):
            if link.step == DefaultStep.SYSTEM_DEFAULT:
                self.log_action(f"No default handles '{name}' in state {state.qualified_name}.")
                raise statemap.TransitionUndefinedException(
                    f"State: {state.qualified_name}, Transition: {name}")
            link_args = args if link.step == DefaultStep.MAP_DEFAULT_TRANSITION else ()
            if len(link.transition.parameters) != len(link_args):
                continue
            if self._run_transition(link.transition, link_args):
                self.log_action(f"Default chain step '{link.step.value}' handled '{name}'.")
                return link.step
        raise FSMError(f"Default chain of '{name}' ended without the system default.")

    def _run_transition(self, transition: Transition, args: Tuple[Any, ...]) -> bool:
        """Runs the first guard of ``transition`` that matches. False when none does."""
        bindings = {p.name: value for p, value in zip(transition.parameters, args)}
        for guard in transition.ordered_guards():
            if guard.has_condition and not self._evaluate(guard.condition, bindings):
                self.log_action(f"Guard [{guard.condition}] of '{transition.name}' is false.")
                continue
            self.log_action(f"Transition '{transition.name}' in {self.context.get_state().get_name()}"
                            + (f" [{guard.condition}]" if guard.has_condition else ""))
            self._execute_guard(plan_guard(guard), bindings)
            return True
        return False

    def _execute_guard(self, plan: GuardPlan, bindings: Dict[str, Any]) -> None:
        context = self.context
        saved_state = context.get_state() if plan.save_loopback_state else None

        if plan.exit_current:
            context.get_state().exit(context)
        if plan.clear_state:
            context.clear_state()

        if plan.has_actions and not self._no_catch:
            try:
                self._execute_actions(plan.guard.actions, bindings)
            finally:
                self._commit(plan, saved_state)
        else:
            self._execute_actions(plan.guard.actions, bindings)
            self._commit(plan, saved_state)

        if plan.pop_transition:
            pop_args = self._evaluate_arguments(plan.pop_args, bindings)
            self.log_action(f"Re-issuing '{plan.pop_transition}' after pop.")
            self._dispatch(plan.pop_transition, pop_args)

    def _commit(self, plan: GuardPlan, saved_state: Optional[_SimulatedState]) -> None:
        context = self.context
        if plan.set_state:
            context.set_state(saved_state or self._resolve(plan.end_state))
        elif plan.push:
            if plan.push_set_end_state:
                context.set_state(saved_state or self._resolve(plan.end_state))
            if plan.push_entry_end_state:
                context.get_state().entry(context)
            context.push_state(self._resolve(plan.push_state))
        elif plan.pop:
            context.pop_state()

        if plan.enter_new_state:
            context.get_state().entry(context)

    def _resolve(self, qualified_name: str) -> _SimulatedState:
        try:
            return self._states[qualified_name]
        except KeyError:
            raise FSMError(f"Target state '{qualified_name}' not found.") from None

    # --- Expressions and actions ---

    def _execute_actions(self, actions: List[Action], bindings: Dict[str, Any]) -> None:
        for action in actions:
            self._execute_action(action, bindings)

    def _execute_action(self, action: Action, bindings: Dict[str, Any]) -> None:
        self.log_action(f"Action: {action}")
        if action.is_empty_state_stack:
            self.context.empty_state_stack()
            return

        values = [self._evaluate(argument, bindings) for argument in action.arguments]
        if action.is_property:
            if not values:
                raise FSMError(f"Property action '{action.name}' has no value.")
            if action.is_static:
                self._namespace[action.name] = values[0]
            else:
                setattr(self.owner, action.name, values[0])
            return

        if action.is_static:
            func = self._namespace.get(action.name)
            if func is None:
                raise FSMError(f"Static action '{action.name}' is not defined in the namespace.")
        else:
            func = getattr(self.owner, action.name, None)
            if func is None:
                raise FSMError(f"Owner {type(self.owner).__name__} has no action '{action.name}'.")
        func(*values)

    def _evaluate(self, expression: str, bindings: Dict[str, Any]) -> Any:
        known_vars = set(bindings) | set(self._namespace)
        is_safe, msg = check_code_safety_basic(expression, known_vars)
        if not is_safe:
            raise FSMError(f"[SECURITY] Unsafe code blocked: {msg} in '{expression}'")
        scope = dict(self._namespace, ctxt=self.owner)
        try:
            return eval(expression, scope, dict(bindings))
        except Exception as e:
            raise FSMError(f"[CODE ERROR] In expression '{expression}': {type(e).__name__} - {e}") from e

    def _evaluate_arguments(self, text: str, bindings: Dict[str, Any]) -> Tuple[Any, ...]:
        if not text.strip():
            return ()
        return tuple(self._evaluate(f"({text},)", bindings))
