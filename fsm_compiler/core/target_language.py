# fsm_compiler/core/target_language.py
"""
The languages a state machine can be compiled to. Each entry knows its
command-line flag, how the generated file is named and whether the target
needs a companion header.
"""

from enum import Enum
from typing import Optional


class TargetLanguage(Enum):
    C = ("c", "C", "{0}_sm", "c", True)
    C_PLUS_PLUS = ("c++", "C++", "{0}_sm", "cpp", True)
    C_SHARP = ("csharp", "C#", "{0}_sm", "cs", False)
    GRAPH = ("graph", "-graph", "{0}_sm", "dot", False)
    GROOVY = ("groovy", "Groovy", "{0}Context", "groovy", False)
    JAVA = ("java", "Java", "{0}Context", "java", False)
    JAVA7 = ("java7", "Java7", "{0}Context", "java", False)
    JS = ("js", "JavaScript", "{0}_sm", "js", False)
    LUA = ("lua", "Lua", "{0}_sm", "lua", False)
    OBJECTIVE_C = ("objc", "Objective-C", "{0}_sm", "m", True)
    PERL = ("perl", "Perl", "{0}_sm", "pm", False)
    PHP = ("php", "PHP", "{0}_sm", "php", False)
    PYTHON = ("python", "Python", "{0}_sm", "py", False)
    RUBY = ("ruby", "Ruby", "{0}_sm", "rb", False)
    SCALA = ("scala", "Scala", "{0}Context", "scala", False)
    TABLE = ("table", "-table", "{0}_sm", "html", False)
    TCL = ("tcl", "[incr Tcl]", "{0}_sm", "tcl", False)
    VB = ("vb", "VB.net", "{0}_sm", "vb", False)

    def __init__(self, option: str, display_name: str, name_format: str,
                 suffix: str, requires_header: bool):
        self.option = option
        self.display_name = display_name
        self.name_format = name_format
        self.suffix = suffix
        self.requires_header = requires_header

    def file_name(self, base_name: str, suffix: Optional[str] = None) -> str:
        """The generated file name for an FSM named ``base_name``."""
        return f"{self.name_format.format(base_name)}.{suffix or self.suffix}"

    @classmethod
    def from_option(cls, option: str) -> 'TargetLanguage':
        key = option.lower().lstrip("-")
        for language in cls:
            if language.option == key:
                return language
        raise ValueError(f"Unknown target language '{option}'.")
