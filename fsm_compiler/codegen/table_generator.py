# fsm_compiler/codegen/table_generator.py
"""
Generates an HTML page with one state transition table per map.

Columns are State, Entry, Exit, one column per transition of the map and a
final Default column. A cell lists the state's guards for that transition in
evaluation order.
"""
import logging
from typing import Any, Dict, List, Optional

from ..core.fsm_ir import DEFAULT_NAME, NIL_STATE, FsmModel, TransType
from ..core.target_language import TargetLanguage
from .base_generator import CodeGenerator

logger = logging.getLogger(__name__)


class TableGenerator(CodeGenerator):
    language = TargetLanguage.TABLE

    def reset(self) -> None:
        self._tables: List[Dict[str, Any]] = []
        self._table: Optional[Dict[str, Any]] = None
        self._row: Optional[Dict[str, Any]] = None
        self._guard: Optional[Dict[str, Any]] = None

    def begin_map(self, fsm_map, ctx):
        columns = []
        for transition in fsm_map.transitions:
            if transition.name != DEFAULT_NAME and transition.name not in columns:
                columns.append(transition.name)
        self._table = {"name": fsm_map.name, "columns": columns, "rows": [], "default_row": None}
        self._tables.append(self._table)

    def begin_state(self, state, ctx):
        self._row = {
            "name": DEFAULT_NAME if state.is_default else state.name,
            "entry": [str(a) for a in state.entry_actions or []],
            "exit": [str(a) for a in state.exit_actions or []],
            "cells": {},
        }
        if state.is_default:
            self._table["default_row"] = self._row
        else:
            self._table["rows"].append(self._row)

    def begin_transition(self, transition, ctx):
        self._row["cells"].setdefault(transition.name, [])

    def begin_guard(self, guard, ctx):
        if guard.trans_type == TransType.POP:
            pop_text = ", ".join(t for t in (guard.pop_transition, guard.pop_args.strip()) if t)
            target = f"pop({pop_text})"
        elif guard.trans_type == TransType.PUSH:
            target = f"push({guard.push_state})"
        elif guard.end_state == NIL_STATE:
            target = self._row["name"]
        else:
            target = guard.end_state
        parameters = ", ".join(str(p) for p in ctx.transition.parameters)
        self._guard = {
            "parameters": parameters,
            "condition": guard.condition.strip(),
            "target": target,
            "actions": [],
        }
        self._row["cells"][ctx.transition.name].append(self._guard)

    def visit_action(self, action, ctx):
        self._guard["actions"].append(str(action))

    def render(self, fsm: FsmModel) -> str:
        template = self.env.get_template("fsm_table.html.j2")
        tables = []
        for table in self._tables:
            rows = list(table["rows"])
            if table["default_row"] is not None:
                rows.append(table["default_row"])
            tables.append(dict(table, rows=rows))
        return template.render({
            "app_name": self.options.app_name,
            "app_version": self.options.app_version,
            "name": fsm.name,
            "tables": tables,
            "default_name": DEFAULT_NAME,
        })
