# tests/test_json_exporter.py
import json

from fsm_compiler.core.fsm_parser import parse_diagram_to_ir
from fsm_compiler.managers.plugin_manager import PluginManager
from fsm_compiler.plugins.json_exporter import JsonExporter, fsm_to_dict


def test_fsm_to_dict_is_read_back_unchanged(turnstile_model, push_pop_model):
    for fsm in (turnstile_model, push_pop_model):
        data = fsm_to_dict(fsm)
        assert fsm_to_dict(parse_diagram_to_ir(data)) == data


def test_fsm_to_dict_keeps_guard_details(push_pop_model):
    data = fsm_to_dict(push_pop_model)
    b_state = data["maps"][1]["states"][0]
    finish = next(t for t in b_state["transitions"] if t["name"] == "finish")
    assert finish["type"] == "pop"
    assert finish["end_state"] == "finished"
    assert b_state["entry"] == [{"name": "log", "arguments": ['"entry B"']}]


def test_fsm_to_dict_omits_empty_optional_fields(go_model):
    data = fsm_to_dict(go_model)
    assert set(data) == {"name", "class", "start", "maps"}


def test_json_exporter_output(turnstile_model):
    files = JsonExporter().export(turnstile_model, base_filename="turnstile")
    assert list(files) == ["turnstile.json"]
    data = json.loads(files["turnstile.json"])
    assert data["class"] == "Turnstile"
    assert [s["name"] for s in data["maps"][0]["states"]] == ["Default", "Locked", "Unlocked"]


def test_plugin_manager_discovers_exporters():
    manager = PluginManager()
    assert manager.exporter_names() == ["json"]
    exporter = manager.get_exporter("JSON")
    assert isinstance(exporter, JsonExporter)
    assert exporter.version == "1.0.0"
    assert exporter.file_filter == "JSON Files (*.json)"
    assert manager.get_exporter("yaml") is None
