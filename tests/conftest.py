# tests/conftest.py
import copy

import pytest

from fsm_compiler.core.fsm_parser import parse_diagram_to_ir


class Recorder:
    """Owner object for tests: every unknown method call is recorded in ``calls``."""

    def __init__(self, **attributes):
        self.calls = []
        for name, value in attributes.items():
            setattr(self, name, value)

    def __getattr__(self, name):
        if name.startswith('_'):
            raise AttributeError(name)

        def record(*args):
            self.calls.append((name,) + args)
        return record

    def logged(self):
        """The arguments of every ``log(...)`` call, in order."""
        return [call[1] for call in self.calls if call[0] == "log"]


def machine(states, start="M::A", name="Test", map_name="M", **extra):
    """Builds a one-map machine description."""
    data = {
        "name": name,
        "class": name,
        "start": start,
        "maps": [{"name": map_name, "states": states}],
    }
    data.update(extra)
    return data


def logging_state(name, transitions=None):
    """A state whose entry and exit log ``entry <name>`` and ``exit <name>``."""
    return {
        "name": name,
        "entry": [f'log("entry {name}")'],
        "exit": [f'log("exit {name}")'],
        "transitions": transitions or [],
    }


@pytest.fixture
def recorder():
    return Recorder()


@pytest.fixture
def go_machine_data():
    return machine([
        logging_state("A", [{"name": "Go", "end_state": "B", "actions": ['log("go")']}]),
        logging_state("B"),
    ], name="Go")


@pytest.fixture
def go_model(go_machine_data):
    return parse_diagram_to_ir(copy.deepcopy(go_machine_data))


@pytest.fixture
def turnstile_data():
    return {
        "name": "Turnstile",
        "class": "Turnstile",
        "start": "MainMap::Locked",
        "maps": [{
            "name": "MainMap",
            "states": [
                {"name": "Locked", "transitions": [
                    {"name": "coin", "parameters": ["amount: int"], "guard": "amount >= ctxt.fare",
                     "end_state": "Unlocked", "actions": ["unlock()"]},
                    {"name": "coin", "parameters": ["amount: int"], "end_state": "nil",
                     "actions": ["refund(amount)"]},
                    {"name": "pass_", "end_state": "nil", "actions": ["alarm()"]},
                ]},
                {"name": "Unlocked", "transitions": [
                    {"name": "pass_", "end_state": "Locked", "actions": ["lock()"]},
                    {"name": "coin", "parameters": ["amount: int"], "end_state": "nil",
                     "actions": ["thankyou()"]},
                ]},
                {"name": "Default", "transitions": [
                    {"name": "reset", "end_state": "Locked", "actions": ["lock()"]},
                ]},
            ],
        }],
    }


@pytest.fixture
def turnstile_model(turnstile_data):
    return parse_diagram_to_ir(copy.deepcopy(turnstile_data))


@pytest.fixture
def push_pop_data():
    return {
        "name": "Stack",
        "class": "Stack",
        "start": "Main::A",
        "maps": [
            {"name": "Main", "states": [
                logging_state("A", [
                    {"name": "call", "type": "push", "end_state": "A", "push_state": "Sub::B"},
                ]),
                logging_state("Done"),
                {"name": "Default", "transitions": [
                    {"name": "finished", "end_state": "Done"},
                ]},
            ]},
            {"name": "Sub", "states": [
                logging_state("B", [
                    {"name": "back", "type": "pop"},
                    {"name": "finish", "type": "pop", "end_state": "finished"},
                    {"name": "deeper", "type": "push", "end_state": "nil", "push_state": "C"},
                ]),
                logging_state("C", [
                    {"name": "back", "type": "pop"},
                ]),
            ]},
        ],
    }


@pytest.fixture
def push_pop_model(push_pop_data):
    return parse_diagram_to_ir(copy.deepcopy(push_pop_data))
