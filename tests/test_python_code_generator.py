# tests/test_python_code_generator.py
import io

import pytest

from conftest import Recorder, machine
from fsm_compiler.codegen import CodeGenerationError, DebugLevel, GeneratorOptions, PythonCodeGenerator
from fsm_compiler.core.fsm_parser import parse_diagram_to_ir
from fsm_compiler.runtime import statemap


def _generate(fsm, **options):
    files = PythonCodeGenerator(GeneratorOptions(**options)).generate(fsm)
    assert len(files) == 1
    return next(iter(files.items()))


def _load(fsm, namespace=None, **options):
    """Generates ``fsm`` and executes the module. Returns the module namespace."""
    file_name, code = _generate(fsm, **options)
    namespace = dict(namespace or {})
    exec(compile(code, file_name, "exec"), namespace)
    return namespace


def _start(fsm, owner, **options):
    namespace = _load(fsm, **options)
    context = namespace[fsm.fsm_class_name](owner)
    context.enter_start_state()
    owner.calls.clear()
    return context


def test_file_name_and_header(go_model):
    file_name, code = _generate(go_model, source_file_name="go.sm")
    assert file_name == "Go_sm.py"
    lines = code.splitlines()
    assert lines[:4] == [
        "# ex: set ro:",
        "# DO NOT EDIT.",
        "# generated by fsmc 1.0.0",
        "# from file : go.sm",
    ]
    assert "import fsm_compiler.runtime.statemap as statemap" in lines
    assert "class GoState(statemap.State):" in lines
    assert "class M_A(M_Default):" in lines
    assert "class GoContext(statemap.FSMContext):" in lines


def test_suffix_option_changes_file_name(go_model):
    file_name, _ = _generate(go_model, suffix="txt")
    assert file_name == "Go_sm.txt"


def test_source_and_imports_are_copied(go_machine_data):
    go_machine_data["source"] = "# user prologue"
    go_machine_data["imports"] = ["math", "from os import path"]
    _, code = _generate(parse_diagram_to_ir(go_machine_data))
    lines = code.splitlines()
    assert "# user prologue" in lines
    assert "import math" in lines
    assert "from os import path" in lines


def test_generation_requires_states_and_start():
    empty = parse_diagram_to_ir({"name": "X", "class": "X", "start": "M::A", "maps": [{"name": "M"}]})
    with pytest.raises(CodeGenerationError, match="defines no states"):
        _generate(empty)

    no_start = parse_diagram_to_ir(machine([{"name": "A"}], start="M::B"))
    with pytest.raises(CodeGenerationError, match="start state 'M::B' is undefined"):
        _generate(no_start)


def test_generated_go_scenario(go_model):
    owner = Recorder()
    namespace = _load(go_model)
    context = namespace["GoContext"](owner)
    context.enter_start_state()
    assert owner.logged() == ["entry A"]
    assert context.get_owner() is owner

    owner.calls.clear()
    events = []
    context.add_state_change_listener(
        lambda ctx, prev, new: events.append((prev.get_name(), new.get_name())))

    context.Go()

    assert context.get_state().get_name() == "M.B"
    assert context.get_state() is namespace["M"].B
    assert owner.logged() == ["exit A", "go", "entry B"]
    assert events == [("M.A", "M.B")]
    assert context.get_transition() is None


def test_generated_undefined_transition(go_model):
    context = _start(go_model, Recorder())
    context.Go()
    with pytest.raises(statemap.TransitionUndefinedException, match="State: M.B, Transition: Go"):
        context.Go()
    assert context.get_transition() is None


def test_generated_guards_and_parameters(turnstile_model):
    owner = Recorder(fare=25)
    context = _start(turnstile_model, owner)

    context.coin(10)
    assert context.get_state().get_name() == "MainMap.Locked"
    context.coin(30)
    assert context.get_state().get_name() == "MainMap.Unlocked"
    context.coin(5)
    context.pass_()
    assert context.get_state().get_name() == "MainMap.Locked"
    assert owner.calls == [("refund", 10), ("unlock",), ("thankyou",), ("lock",)]


def test_generated_default_state_transition(turnstile_model):
    owner = Recorder(fare=25)
    context = _start(turnstile_model, owner)
    context.coin(25)

    context.reset()

    assert context.get_state().get_name() == "MainMap.Locked"
    assert owner.calls[-1] == ("lock",)


def test_generated_guard_order(recorder):
    fsm = parse_diagram_to_ir(machine([
        {"name": "A", "transitions": [
            {"name": "go", "end_state": "D"},
            {"name": "go", "guard": "ctxt.c1", "end_state": "B"},
            {"name": "go", "guard": "ctxt.c2", "end_state": "C"},
        ]},
        {"name": "B"}, {"name": "C"}, {"name": "D"},
    ]))
    recorder.c1 = False
    recorder.c2 = True
    context = _start(fsm, recorder)

    context.go()

    assert context.get_state().get_name() == "M.C"


def test_generated_overloads_dispatch_on_argument_count(recorder):
    fsm = parse_diagram_to_ir(machine([
        {"name": "A", "transitions": [
            {"name": "Go", "end_state": "B"},
            {"name": "Go", "parameters": ["x"], "end_state": "C", "actions": ["got(x)"]},
        ]},
        {"name": "B"}, {"name": "C"},
    ]))
    _, code = _generate(fsm)
    state_class = code.split("class M_A(M_Default):")[1].split("\nclass ")[0]
    assert state_class.count("def Go(self, fsm, *args):") == 1

    context = _start(fsm, recorder)
    context.Go(7)
    assert context.get_state().get_name() == "M.C"
    assert recorder.calls == [("got", 7)]

    context = _start(fsm, Recorder())
    context.Go()
    assert context.get_state().get_name() == "M.B"


def test_generated_overload_without_matching_arity_is_undefined(recorder):
    fsm = parse_diagram_to_ir(machine([
        {"name": "A", "transitions": [{"name": "Go", "parameters": ["x"], "end_state": "B"}]},
        {"name": "B"},
    ]))
    context = _start(fsm, recorder)
    with pytest.raises(statemap.TransitionUndefinedException, match="State: M.A, Transition: Go"):
        context.Go()
    assert context.get_state().get_name() == "M.A"


# --- Default chain ---

def _chain_fsm(s_transitions=(), default_transitions=()):
    # "Other" makes sure transition T exists on the context.
    return parse_diagram_to_ir(machine([
        {"name": "S", "transitions": list(s_transitions)},
        {"name": "Other", "transitions": [{"name": "T", "end_state": "nil"}]},
        {"name": "Default", "transitions": list(default_transitions)},
    ], start="M::S"))


@pytest.mark.parametrize("s_transitions, default_transitions, expected", [
    ([{"name": "Default", "end_state": "nil", "actions": ['log("state default")']}],
     [{"name": "T", "end_state": "nil", "actions": ['log("map T")']}],
     ["map T"]),
    ([{"name": "Default", "end_state": "nil", "actions": ['log("state default")']}],
     [{"name": "Default", "end_state": "nil", "actions": ['log("map default")']}],
     ["state default"]),
    ([],
     [{"name": "Default", "end_state": "nil", "actions": ['log("map default")']}],
     ["map default"]),
    ([{"name": "T", "guard": "ctxt.ok", "end_state": "nil", "actions": ['log("own")']}],
     [{"name": "T", "guard": "ctxt.ok", "end_state": "nil", "actions": ['log("map T")']},
      {"name": "Default", "end_state": "nil", "actions": ['log("map default")']}],
     ["map default"]),
])
def test_generated_default_chain(s_transitions, default_transitions, expected):
    owner = Recorder(ok=False)
    context = _start(_chain_fsm(s_transitions, default_transitions), owner)

    context.T()

    assert owner.logged() == expected
    assert context.get_state().get_name() == "M.S"


def test_generated_default_chain_picks_overload_by_argument_count():
    fsm = parse_diagram_to_ir(machine([
        {"name": "S"},
        {"name": "B"},
        {"name": "Default", "transitions": [
            {"name": "T", "end_state": "S"},
            {"name": "T", "parameters": ["x"], "end_state": "B", "actions": ["got(x)"]},
        ]},
    ], start="M::S"))
    owner = Recorder()
    context = _start(fsm, owner)

    context.T(5)
    assert context.get_state().get_name() == "M.B"
    assert owner.calls == [("got", 5)]

    context.T()
    assert context.get_state().get_name() == "M.S"


def test_generated_default_chain_exhausted():
    context = _start(_chain_fsm(), Recorder())
    with pytest.raises(statemap.TransitionUndefinedException, match="State: M.S, Transition: T"):
        context.T()


# --- Push and pop ---

def test_generated_push_pop(push_pop_model, recorder):
    context = _start(push_pop_model, recorder)
    events = []
    context.add_state_change_listener(lambda ctx, prev, new: events.append((prev.get_name(), new.get_name())))

    context.call()
    assert context.get_state().get_name() == "Sub.B"
    assert context.get_state_stack_depth() == 1
    assert recorder.logged() == ["exit A", "entry A", "entry B"]

    recorder.calls.clear()
    context.back()
    assert context.get_state().get_name() == "Main.A"
    assert recorder.logged() == ["exit B"]
    assert ("Main.A", "Sub.B") in events
    assert events[-1] == ("Sub.B", "Main.A")


def test_generated_pop_with_actions_notifies_the_state_left(push_pop_data, recorder):
    push_pop_data["maps"][1]["states"][0]["transitions"][0]["actions"] = ['log("x")']
    context = _start(parse_diagram_to_ir(push_pop_data), recorder)
    context.call()
    events = []
    context.add_state_change_listener(lambda ctx, prev, new: events.append((prev.get_name(), new.get_name())))

    context.back()

    assert events == [("Sub.B", "Main.A")]
    assert context.get_previous_state().get_name() == "Sub.B"


def test_generated_loopback_with_actions_notifies_nobody(go_machine_data, recorder):
    go_machine_data["maps"][0]["states"][0]["transitions"].append(
        {"name": "Stay", "end_state": "nil", "actions": ['log("stay")']})
    context = _start(parse_diagram_to_ir(go_machine_data), recorder)
    events = []
    context.add_state_change_listener(lambda ctx, prev, new: events.append(new))

    context.Stay()

    assert recorder.logged() == ["stay"]
    assert events == []


def test_generated_pop_reissue(push_pop_model, recorder):
    context = _start(push_pop_model, recorder)
    context.call()
    recorder.calls.clear()

    context.finish()

    assert context.get_state().get_name() == "Main.Done"
    assert recorder.logged() == ["exit B", "exit A", "entry Done"]


def test_generated_push_loopback(push_pop_model, recorder):
    context = _start(push_pop_model, recorder)
    context.call()
    recorder.calls.clear()

    context.deeper()

    assert context.get_state().get_name() == "Sub.C"
    assert context.get_state_stack_depth() == 2
    assert recorder.logged() == ["entry C"]


# --- Actions ---

class _Failing(Recorder):
    def fail(self):
        raise RuntimeError("boom")


def _failing_fsm():
    return parse_diagram_to_ir(machine([
        {"name": "A", "transitions": [{"name": "go", "end_state": "B", "actions": ["fail()"]}]},
        {"name": "B"},
    ]))


def test_generated_failure_commits_state():
    context = _start(_failing_fsm(), _Failing())
    with pytest.raises(RuntimeError, match="boom"):
        context.go()
    assert context.get_state().get_name() == "M.B"


def test_generated_no_catch():
    fsm = _failing_fsm()
    _, code = _generate(fsm, no_catch=True)
    state_classes = code.split("class TestContext")[0]
    assert "try:" not in state_classes

    context = _start(fsm, _Failing(), no_catch=True)
    with pytest.raises(RuntimeError):
        context.go()
    assert context.is_in_transition()


def test_generated_property_static_and_empty_stack_actions(recorder):
    notified = []
    fsm = parse_diagram_to_ir(machine([
        {"name": "A", "transitions": [
            {"name": "count", "end_state": "nil",
             "actions": ["total = ctxt.total + 1", "::notify(ctxt.total)"]},
            {"name": "call", "type": "push", "end_state": "nil", "push_state": "B"},
        ]},
        {"name": "B", "transitions": [
            {"name": "abort", "end_state": "A", "actions": ["emptyStateStack()"]},
        ]},
    ]))
    recorder.total = 0
    namespace = _load(fsm, namespace={"notify": notified.append})
    context = namespace["TestContext"](recorder)
    context.enter_start_state()

    context.count()
    assert recorder.total == 1
    assert notified == [1]

    context.call()
    assert context.get_state_stack_depth() == 1
    context.abort()
    assert context.get_state_stack_depth() == 0
    assert context.get_state().get_name() == "M.A"


# --- Options ---

def test_sync_wraps_transitions_in_lock(go_model, recorder):
    _, code = _generate(go_model, sync=True)
    assert "with self.get_lock():" in code

    context = _start(go_model, recorder, sync=True)
    context.Go()
    assert context.get_state().get_name() == "M.B"


def test_reflection(turnstile_model):
    namespace = _load(turnstile_model, reflect=True)
    context = namespace["TurnstileContext"](Recorder(fare=1))

    assert [s.get_name() for s in context.get_states()] == ["MainMap.Locked", "MainMap.Unlocked"]
    assert [s.get_id() for s in context.get_states()] == [0, 1]
    locked = namespace["MainMap"].Locked.get_transitions()
    assert locked == {"coin": 1, "pass_": 1, "reset": 2, "Default": 0}
    assert namespace["MainMap"].Default.get_id() == -1


def test_reflection_is_off_by_default(go_model):
    _, code = _generate(go_model)
    assert "_transitions" not in code
    assert "def get_states" not in code


def test_debug_level_0(go_model, recorder):
    _, code = _generate(go_model, debug_level=DebugLevel.LEVEL_0)
    assert "BEFORE EXIT" not in code

    context = _start(go_model, recorder, debug_level=DebugLevel.LEVEL_0)
    stream = io.StringIO()
    context.set_debug_stream(stream)
    context.set_debug_flag(True)
    context.Go()

    trace = stream.getvalue().splitlines()
    assert trace == [
        "LEAVING STATE   : M.A",
        "ENTER TRANSITION: M.A.Go()",
        "EXIT TRANSITION : M.A.Go()",
        "ENTERING STATE  : M.B",
    ]


def test_debug_level_1_traces_entry_and_exit(go_model, recorder):
    context = _start(go_model, recorder, debug_level=DebugLevel.LEVEL_1)
    stream = io.StringIO()
    context.set_debug_stream(stream)
    context.set_debug_flag(True)
    context.Go()

    trace = stream.getvalue()
    assert "BEFORE EXIT     : M.A" in trace
    assert "AFTER ENTRY     : M.B" in trace


def test_no_debug_code_without_debug_level(go_model):
    _, code = _generate(go_model)
    assert "get_debug_flag" not in code
