# fsm_compiler/codegen/__init__.py
from typing import Dict, Optional, Type

from ..core.target_language import TargetLanguage
from .base_generator import CodeGenerationError, CodeGenerator
from .graph_generator import GraphGenerator
from .options import ConfigurationError, DebugLevel, GeneratorOptions, GraphLevel, check_options
from .python_code_generator import PythonCodeGenerator
from .table_generator import TableGenerator

GENERATORS: Dict[TargetLanguage, Type[CodeGenerator]] = {
    TargetLanguage.PYTHON: PythonCodeGenerator,
    TargetLanguage.GRAPH: GraphGenerator,
    TargetLanguage.TABLE: TableGenerator,
}


def get_generator(language: TargetLanguage, options: Optional[GeneratorOptions] = None) -> CodeGenerator:
    """Returns the backend for ``language``, after checking ``options`` against it."""
    options = options or GeneratorOptions()
    check_options(options, language)
    generator_class = GENERATORS.get(language)
    if generator_class is None:
        raise CodeGenerationError(f"Code generation for {language.display_name} is not available.")
    return generator_class(options)


__all__ = [
    "GENERATORS", "get_generator", "CodeGenerator", "CodeGenerationError",
    "ConfigurationError", "DebugLevel", "GeneratorOptions", "GraphLevel", "check_options",
    "PythonCodeGenerator", "GraphGenerator", "TableGenerator",
]
