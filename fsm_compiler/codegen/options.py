# fsm_compiler/codegen/options.py
"""
Code generation options and the per-language capability table.

Options are checked against the table before any generation work starts;
an option the chosen target cannot honor is a configuration error, never a
silently ignored flag.
"""
import json
import logging
from dataclasses import dataclass, fields
from enum import IntEnum
from typing import Any, Dict, FrozenSet, List

from ..core.target_language import TargetLanguage
from ..utils.config import APP_NAME, APP_VERSION, DEFAULT_CAST_TYPE, DEFAULT_HEADER_SUFFIX

logger = logging.getLogger(__name__)

L = TargetLanguage


class ConfigurationError(ValueError):
    """Raised when an option is not supported by the target language."""
    pass


class DebugLevel(IntEnum):
    NONE = -1
    # State and transition tracing.
    LEVEL_0 = 0
    # Adds entry and exit tracing.
    LEVEL_1 = 1


class GraphLevel(IntEnum):
    NAMES = 0
    GUARDS = 1
    DETAILED = 2


ACCESS_LEVELS = ("public", "protected", "package", "private")
CAST_TYPES = ("dynamic_cast", "static_cast", "reinterpret_cast")

# ==============================================================================
# Capability Table
# ==============================================================================
# Options every target accepts (debug_level, no_catch, target_directory,
# suffix) are not listed.

_ALL = frozenset(TargetLanguage)

OPTION_CAPABILITIES: Dict[str, FrozenSet[TargetLanguage]] = {
    "cast_type": frozenset({L.C_PLUS_PLUS}),
    "no_exceptions": frozenset({L.C_PLUS_PLUS}),
    "no_streams": frozenset({L.C_PLUS_PLUS}),
    "crtp": frozenset({L.C_PLUS_PLUS}),
    "state_stack_size": frozenset({L.C_PLUS_PLUS}),
    "access_level": frozenset({L.JAVA, L.JAVA7}),
    "header_directory": frozenset({L.C, L.C_PLUS_PLUS, L.OBJECTIVE_C}),
    "header_suffix": frozenset({L.C, L.C_PLUS_PLUS, L.OBJECTIVE_C}),
    "sync": frozenset({L.C_SHARP, L.JAVA, L.JAVA7, L.VB, L.GROOVY, L.SCALA, L.PYTHON}),
    "reflect": frozenset({L.C_SHARP, L.JAVA, L.JAVA7, L.JS, L.VB, L.TCL, L.LUA, L.PERL,
                          L.PHP, L.PYTHON, L.RUBY, L.GROOVY, L.SCALA}),
    "serial": frozenset({L.C_SHARP, L.JAVA, L.JAVA7, L.VB, L.TCL, L.C_PLUS_PLUS,
                         L.GROOVY, L.SCALA}),
    "graph_level": frozenset({L.GRAPH}),
    "generic": frozenset({L.C_SHARP, L.JAVA, L.JAVA7, L.VB}),
    "generic7": frozenset({L.JAVA, L.JAVA7}),
    "use_protocol": frozenset({L.OBJECTIVE_C}),
}

ACCESS_LEVELS_BY_LANGUAGE: Dict[TargetLanguage, tuple] = {
    L.JAVA: ACCESS_LEVELS,
    L.JAVA7: ACCESS_LEVELS,
}


@dataclass(frozen=True)
class GeneratorOptions:
    """Everything a backend needs to know besides the model itself."""
    source_file_name: str = ""
    target_directory: str = ""
    suffix: str = ""
    debug_level: DebugLevel = DebugLevel.NONE
    no_catch: bool = False
    serial: bool = False
    reflect: bool = False
    sync: bool = False
    generic: bool = False
    generic7: bool = False
    no_exceptions: bool = False
    no_streams: bool = False
    crtp: bool = False
    use_protocol: bool = False
    state_stack_size: int = 0
    access_level: str = ""
    cast_type: str = DEFAULT_CAST_TYPE
    header_directory: str = ""
    header_suffix: str = DEFAULT_HEADER_SUFFIX
    graph_level: GraphLevel = GraphLevel.NAMES
    app_name: str = APP_NAME
    app_version: str = APP_VERSION

    def requested_options(self) -> List[str]:
        """Names of the options that differ from their defaults."""
        defaults = GeneratorOptions()
        return [f.name for f in fields(self)
                if f.name in OPTION_CAPABILITIES and getattr(self, f.name) != getattr(defaults, f.name)]

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'GeneratorOptions':
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ConfigurationError(f"Unknown option(s): {', '.join(unknown)}.")
        values = dict(data)
        if 'debug_level' in values:
            values['debug_level'] = DebugLevel(int(values['debug_level']))
        if 'graph_level' in values:
            values['graph_level'] = _graph_level(values['graph_level'])
        return cls(**values)

    @classmethod
    def from_file(cls, file_path: str) -> 'GeneratorOptions':
        with open(file_path, 'r', encoding='utf-8') as f:
            try:
                data = json.load(f)
            except json.JSONDecodeError as e:
                raise ConfigurationError(f"{file_path}: invalid JSON: {e}") from e
        if not isinstance(data, dict):
            raise ConfigurationError(f"{file_path}: options must be a JSON object.")
        return cls.from_dict(data)


def _graph_level(value: Any) -> GraphLevel:
    try:
        return GraphLevel(int(value))
    except ValueError:
        raise ConfigurationError(f"Graph level must be 0, 1 or 2, not {value!r}.") from None


def supports_option(option: str, language: TargetLanguage) -> bool:
    return language in OPTION_CAPABILITIES.get(option, _ALL)


def check_options(options: GeneratorOptions, language: TargetLanguage) -> None:
    """
    Raises ConfigurationError naming every option ``language`` cannot honor,
    and every option value outside its allowed set.
    """
    problems = []
    for option in options.requested_options():
        if not supports_option(option, language):
            problems.append(f"{option} is not supported by {language.display_name}")

    if options.access_level and language in ACCESS_LEVELS_BY_LANGUAGE:
        if options.access_level not in ACCESS_LEVELS_BY_LANGUAGE[language]:
            problems.append(f"access level '{options.access_level}' must be one of "
                            f"{', '.join(ACCESS_LEVELS_BY_LANGUAGE[language])}")
    if options.cast_type not in CAST_TYPES:
        problems.append(f"cast type '{options.cast_type}' must be one of {', '.join(CAST_TYPES)}")
    if options.state_stack_size < 0:
        problems.append("state stack size must not be negative")

    if problems:
        raise ConfigurationError("; ".join(problems) + ".")
    logger.debug(f"Options accepted for {language.display_name}: {options.requested_options()}")
