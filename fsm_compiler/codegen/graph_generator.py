# fsm_compiler/codegen/graph_generator.py
"""
Generates a GraphViz DOT diagram of an FsmModel.

Each map becomes a cluster, each state a record node named ``Map::State``.
The graph level controls the amount of detail:
    0 - transition names only, loopbacks hidden
    1 - adds guard conditions, loopbacks, entry/exit actions, pop arguments
    2 - adds transition parameters and guard actions

A push leads to a composite node standing for the suspended state; a pop
leads to a pop node wired to the map's end node.
"""
import logging
from typing import Any, Dict, List, Optional, Tuple

from ..core.fsm_ir import SCOPE_SEPARATOR, FsmModel, Guard, State, Transition, TransType
from ..core.target_language import TargetLanguage
from ..core.transition_plan import GuardPlan
from .base_generator import CodeGenerator, escape
from .options import GraphLevel

logger = logging.getLogger(__name__)

_RECORD_SPECIALS = "{}|<>"


def _record_escape(text: str) -> str:
    """Escapes text for use inside a record label."""
    text = escape(text)
    for ch in _RECORD_SPECIALS:
        text = text.replace(ch, f"\\{ch}")
    return text


class GraphGenerator(CodeGenerator):
    language = TargetLanguage.GRAPH

    def reset(self) -> None:
        self._clusters: List[Dict[str, Any]] = []
        self._cluster: Optional[Dict[str, Any]] = None
        self._default_edges: List[Tuple[Guard, GuardPlan, str]] = []
        self._push_entries: List[str] = []

    @property
    def level(self) -> GraphLevel:
        return self.options.graph_level

    # --- Labels ---

    def _state_label(self, state: State) -> str:
        name = _record_escape(state.name)
        if self.level < GraphLevel.GUARDS:
            return name
        sections = [name]
        for title, actions in (("Entry", state.effective_entry_actions()),
                               ("Exit", state.effective_exit_actions())):
            if actions:
                body = "".join(f"{_record_escape(str(a))};\\l" for a in actions)
                sections.append(f"{title}/\\l{body}")
        if len(sections) == 1:
            return name
        return "{" + "|".join(sections) + "}"

    def _transition_label(self, transition: Transition, guard: Guard) -> str:
        label = escape(transition.name)
        if self.level >= GraphLevel.DETAILED and transition.parameters:
            label += "(" + ", ".join(escape(str(p)) for p in transition.parameters) + ")"
        if self.level >= GraphLevel.GUARDS and guard.has_condition:
            label += f"\\l[{escape(guard.condition.strip())}]"
        if guard.trans_type == TransType.PUSH:
            label += f"/\\lpush({escape(guard.push_state)})"
        elif guard.trans_type == TransType.POP:
            pop_text = escape(guard.pop_transition)
            if self.level >= GraphLevel.GUARDS and guard.pop_args:
                pop_text += f", {escape(guard.pop_args)}"
            label += f"/\\lpop({pop_text})"
        if self.level >= GraphLevel.DETAILED and guard.actions:
            label += "/\\l" + "".join(f"{escape(str(a))};\\l" for a in guard.actions)
        return label + "\\l"

    # --- Extra nodes ---

    @staticmethod
    def _add_node(cluster: Dict[str, Any], node_id: str, attributes: str) -> bool:
        """Adds a node outside the state nodes. False if the cluster already has it."""
        if any(node["id"] == node_id for node in cluster["extra_nodes"]):
            return False
        cluster["extra_nodes"].append({"id": node_id, "attributes": attributes})
        return True

    def _pop_node(self, guard: Guard) -> str:
        text = escape(guard.pop_transition)
        if self.level >= GraphLevel.GUARDS and guard.pop_args:
            text += f", {escape(' '.join(guard.pop_args.split()))}"
        map_name = self._cluster["name"]
        node_id = f"{map_name}{SCOPE_SEPARATOR}pop({text})"
        if self._add_node(self._cluster, node_id, 'label="" width=1'):
            end_id = f"{map_name}{SCOPE_SEPARATOR}%end"
            self._add_node(self._cluster, end_id,
                           'label="" shape=doublecircle style=filled fillcolor=black width=0.15')
            self._cluster["extra_edges"].append(
                {"source": node_id, "target": end_id, "attributes": f'label="pop({text});\\l"'})
        return node_id

    def _composite_node(self, end_state: str, push_state: str) -> str:
        """``end_state`` suspended while the pushed map runs; popping returns to it."""
        push_map = push_state.split(SCOPE_SEPARATOR)[0]
        node_id = f"{end_state}{SCOPE_SEPARATOR}{push_map}"
        if self._add_node(self._cluster, node_id, f'label="{{{push_map}|O-O\\r}}"'):
            self._cluster["extra_edges"].append(
                {"source": node_id, "target": end_state, "attributes": 'label="pop/"'})
        if push_state not in self._push_entries:
            self._push_entries.append(push_state)
        return node_id

    def _add_edge(self, state: State, guard: Guard, plan: GuardPlan, label: str) -> None:
        end_state = state.qualified_name if plan.is_loopback else plan.end_state
        if guard.trans_type == TransType.POP:
            target = self._pop_node(guard)
        elif guard.trans_type == TransType.PUSH:
            target = self._composite_node(end_state, plan.push_state)
        else:
            target = end_state
        self._cluster["edges"].append({"source": state.qualified_name, "target": target, "label": label})

    # --- Traversal hooks ---

    def begin_map(self, fsm_map, ctx):
        self._cluster = {"name": fsm_map.name, "nodes": [], "extra_nodes": [], "edges": [], "extra_edges": []}
        self._default_edges = []
        self._clusters.append(self._cluster)

    def begin_state(self, state, ctx):
        if state.is_default:
            return
        self._cluster["nodes"].append({"id": state.qualified_name, "label": self._state_label(state)})

    def begin_guard(self, guard, ctx):
        plan = ctx.plan
        if plan.is_loopback and guard.trans_type == TransType.SET and self.level < GraphLevel.GUARDS:
            return
        label = self._transition_label(ctx.transition, guard)
        if ctx.in_default_state:
            self._default_edges.append((guard, plan, label))
        else:
            self._add_edge(ctx.state, guard, plan, label)

    def end_map(self, fsm_map, ctx):
        # Default State transitions apply to every state not defining them.
        for state in fsm_map.states:
            for guard, plan, label in self._default_edges:
                if state.find_transition(guard.transition.name) is None:
                    self._add_edge(state, guard, plan, label)

    def end_fsm(self, fsm, ctx):
        # A pushed state gets an entry arrow inside its own map.
        for push_state in self._push_entries:
            map_name = push_state.split(SCOPE_SEPARATOR)[0]
            for cluster in self._clusters:
                if cluster["name"] != map_name:
                    continue
                node_id = f"push({push_state})"
                self._add_node(cluster, node_id, 'label="" shape=plaintext')
                cluster["extra_edges"].append(
                    {"source": node_id, "target": push_state, "attributes": "arrowtail=odot"})

    def render(self, fsm: FsmModel) -> str:
        template = self.env.get_template("fsm_graph.dot.j2")
        return template.render({
            "app_name": self.options.app_name,
            "app_version": self.options.app_version,
            "name": fsm.name,
            "start": fsm.find_start_state().qualified_name,
            "clusters": self._clusters,
        })
