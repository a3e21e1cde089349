# fsm_compiler/runtime/statemap.py
"""
Runtime support library for state machines generated by fsm_compiler.

Generated code subclasses State once per compiled state and FSMContext once
per compiled machine. The context owns the current state, the state stack,
the debug output settings and the state change listeners.

A context is not thread-safe. Machines generated with the ``sync`` option
run every transition method while holding the context's re-entrant lock.
"""

import sys
import threading


class StateMachineError(Exception):
    """Base class of the errors a running state machine signals."""
    pass


class StateUndefinedException(StateMachineError):
    """The current state was queried while a transition is in progress."""
    pass


class TransitionUndefinedException(StateMachineError):
    """A transition was issued that neither the state nor any default handles."""
    pass


class EmptyStackException(StateMachineError):
    """pop_state() was called with nothing on the state stack."""
    pass


class StateStackOverflowException(StateMachineError):
    """push_state() was called on a full fixed-size state stack."""
    pass


class State(object):
    """Base class of every generated state."""

    # Reflection table filled in by generated subclasses.
    _transitions = {}

    def __init__(self, name, id):
        self._name = name
        self._id = id

    def get_name(self):
        return self._name

    def get_id(self):
        return self._id

    def entry(self, fsm):
        pass

    def exit(self, fsm):
        pass

    def get_transitions(self):
        return self._transitions

    def __str__(self):
        return self._name

    def __repr__(self):
        return f"<{type(self).__name__} {self._name} ({self._id})>"


class FSMContext(object):
    """The state machine context generated code is built on."""

    def __init__(self, state, name="FSMContext", stack_size=0):
        self._name = name
        self._state = state
        self._previous_state = None
        self._transition = None
        self._state_stack = []
        self._stack_size = stack_size
        self._debug_flag = False
        self._debug_stream = sys.stderr
        self._listeners = []
        self._lock = threading.RLock()

    def get_name(self):
        return self._name

    # --- Current state ---

    def get_state(self):
        if self._state is None:
            raise StateUndefinedException(
                f"{self._name}: state undefined while in transition '{self._transition}'.")
        return self._state

    def get_previous_state(self):
        if self._previous_state is None:
            raise StateUndefinedException(f"{self._name}: previous state not set.")
        return self._previous_state

    def is_in_transition(self):
        return self._state is None

    def get_transition(self):
        return self._transition

    def set_transition(self, name):
        self._transition = name

    def set_state(self, state):
        if self._debug_flag:
            self._debug_stream.write(f"ENTERING STATE  : {state.get_name()}\n")
        # clear_state() already saved the previous state when actions ran.
        if self._state is not None:
            self._previous_state = self._state
        self._state = state
        if self._previous_state is not state:
            self._fire_state_change(self._previous_state, state)

    def clear_state(self):
        self._previous_state = self._state
        self._state = None

    def enter_start_state(self):
        self.get_state().entry(self)

    # --- State stack ---

    def push_state(self, state):
        if self._state is None:
            raise StateUndefinedException(
                f"{self._name}: cannot push state '{state.get_name()}' while the state is undefined.")
        if self._stack_size and len(self._state_stack) >= self._stack_size:
            raise StateStackOverflowException(
                f"{self._name}: state stack of size {self._stack_size} is full.")
        if self._debug_flag:
            self._debug_stream.write(f"PUSH TO STATE   : {state.get_name()}\n")
        self._previous_state = self._state
        self._state_stack.append(self._state)
        self._state = state
        if self._previous_state is not state:
            self._fire_state_change(self._previous_state, state)

    def pop_state(self):
        if not self._state_stack:
            if self._debug_flag:
                self._debug_stream.write("POPPING ON EMPTY STATE STACK.\n")
            raise EmptyStackException(f"{self._name}: popping on an empty state stack.")
        # A pop guard with actions cleared the state; the previous state is already saved.
        if self._state is not None:
            self._previous_state = self._state
        self._state = self._state_stack.pop()
        if self._debug_flag:
            self._debug_stream.write(f"POP TO STATE    : {self._state.get_name()}\n")
        if self._previous_state is not self._state:
            self._fire_state_change(self._previous_state, self._state)

    def empty_state_stack(self):
        self._state_stack = []

    def get_state_stack_depth(self):
        return len(self._state_stack)

    # --- Debugging ---

    def get_debug_flag(self):
        return self._debug_flag

    def set_debug_flag(self, flag):
        self._debug_flag = flag

    def get_debug_stream(self):
        return self._debug_stream

    def set_debug_stream(self, stream):
        self._debug_stream = stream

    # --- Synchronization ---

    def get_lock(self):
        return self._lock

    # --- State change notification ---

    def add_state_change_listener(self, listener):
        """
        ``listener(context, previous_state, new_state)`` is called on every
        committed change of state. Committing the state the context already
        had notifies nobody.
        """
        if listener not in self._listeners:
            self._listeners.append(listener)

    def remove_state_change_listener(self, listener):
        if listener in self._listeners:
            self._listeners.remove(listener)

    def _fire_state_change(self, previous_state, new_state):
        for listener in list(self._listeners):
            listener(self, previous_state, new_state)
