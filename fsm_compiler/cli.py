# fsm_compiler/cli.py
"""
Command-line front end: ``fsmc [options] FILE...``

Each file is loaded, validated for the chosen target and, when valid,
handed to the target's backend. Diagnostics go to stderr; the exit code is
non-zero when any file failed.
"""
import argparse
import dataclasses
import logging
import os
import sys
from typing import List, Optional

from .codegen import GENERATORS, CodeGenerationError, ConfigurationError, DebugLevel, GeneratorOptions, \
    GraphLevel, check_options, get_generator
from .core.fsm_parser import FsmParseError, load_fsm_file
from .core.fsm_validator import validate
from .core.target_language import TargetLanguage
from .managers.plugin_manager import PluginManager
from .utils.config import APP_DESCRIPTION, APP_NAME, APP_VERSION, DEFAULT_TARGET, SM_FILE_EXTENSION
from .utils.logging_setup import LogLevel, setup_logging

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog=APP_NAME, description=APP_DESCRIPTION)
    parser.add_argument('files', nargs='+', metavar='FILE', help=f'State machine description files (*{SM_FILE_EXTENSION})')
    parser.add_argument('-t', '--target', default=DEFAULT_TARGET,
                        help=f"Target language ({', '.join(lang.option for lang in TargetLanguage)})")
    parser.add_argument('-d', '--directory', dest='target_directory', default=None,
                        help='Directory the generated files are written to')
    parser.add_argument('--suffix', default=None, help='Suffix of the generated file')
    parser.add_argument('-g', dest='debug_level', action='store_const', const=DebugLevel.LEVEL_0,
                        help='Add state and transition debug output')
    parser.add_argument('-g0', dest='debug_level', action='store_const', const=DebugLevel.LEVEL_0,
                        help='Same as -g')
    parser.add_argument('-g1', dest='debug_level', action='store_const', const=DebugLevel.LEVEL_1,
                        help='Also trace entry and exit actions')
    parser.add_argument('--nocatch', dest='no_catch', action='store_true', default=None,
                        help='Do not restore the state when an action raises')
    parser.add_argument('--reflect', action='store_true', default=None,
                        help='Generate state and transition reflection')
    parser.add_argument('--sync', action='store_true', default=None,
                        help='Serialize transitions with a lock')
    parser.add_argument('--serial', action='store_true', default=None,
                        help='Generate serialization support')
    parser.add_argument('--generic', action='store_true', default=None,
                        help='Use generic collections for reflection')
    parser.add_argument('--noex', dest='no_exceptions', action='store_true', default=None,
                        help='Do not raise exceptions from the generated code')
    parser.add_argument('--nostreams', dest='no_streams', action='store_true', default=None,
                        help='Do not use streams for debug output')
    parser.add_argument('--crtp', action='store_true', default=None,
                        help='Use the curiously recurring template pattern')
    parser.add_argument('--protocol', dest='use_protocol', action='store_true', default=None,
                        help='Use a protocol instead of the context class')
    parser.add_argument('--glevel', dest='graph_level', type=int, choices=[int(g) for g in GraphLevel],
                        default=None, help='Graph detail level')
    parser.add_argument('--access', dest='access_level', default=None, help='Access level of generated classes')
    parser.add_argument('--cast', dest='cast_type', default=None, help='Cast operator used by the C++ target')
    parser.add_argument('--stack', dest='state_stack_size', type=int, default=None,
                        help='Fixed state stack size')
    parser.add_argument('--headerd', dest='header_directory', default=None, help='Header file directory')
    parser.add_argument('--hsuffix', dest='header_suffix', default=None, help='Header file suffix')
    parser.add_argument('--options', dest='options_file', default=None, metavar='FILE',
                        help='JSON file with default options; command-line flags take precedence')
    parser.add_argument('--export', default=None, metavar='NAME',
                        help='Export the model with an exporter plugin instead of generating code')
    parser.add_argument('-v', '--verbose', action='count', default=0,
                        help='Increase log output (-v info, -vv debug)')
    parser.add_argument('--version', action='version', version=f"{APP_NAME} {APP_VERSION}")
    return parser


_OPTION_FIELDS = {f.name for f in dataclasses.fields(GeneratorOptions)}


def options_from_args(args: argparse.Namespace) -> GeneratorOptions:
    """Merges the options file, if any, with the flags given on the command line."""
    options = GeneratorOptions.from_file(args.options_file) if args.options_file else GeneratorOptions()
    overrides = {name: value for name, value in vars(args).items()
                 if name in _OPTION_FIELDS and value is not None}
    if 'graph_level' in overrides:
        overrides['graph_level'] = GraphLevel(overrides['graph_level'])
    return dataclasses.replace(options, **overrides)


def _log_level(verbosity: int) -> LogLevel:
    if verbosity >= 2:
        return LogLevel.DEBUG
    if verbosity == 1:
        return LogLevel.INFO
    return LogLevel.WARNING


def _write_files(files, directory: str) -> None:
    if directory:
        os.makedirs(directory, exist_ok=True)
    for file_name, content in files.items():
        path = os.path.join(directory, file_name) if directory else file_name
        with open(path, 'w', encoding='utf-8') as f:
            f.write(content)
        print(f"[Wrote {path}]")


def compile_file(path: str, language: TargetLanguage, options: GeneratorOptions,
                 exporter=None) -> bool:
    """Compiles one file. Returns False if it could not be compiled."""
    if not os.path.isfile(path):
        print(f"Error: file not found: {path}", file=sys.stderr)
        return False
    try:
        fsm = load_fsm_file(path)
    except FsmParseError as e:
        print(f"Error: {e}", file=sys.stderr)
        return False
    except OSError as e:
        print(f"Error: cannot read {path}: {e}", file=sys.stderr)
        return False

    result = validate(fsm, language, source_name=path)
    for diagnostic in result.diagnostics:
        print(diagnostic, file=sys.stderr)
    if not result.valid:
        logger.info(f"'{path}' has {len(result.errors)} error(s); no code generated.")
        return False

    if exporter is not None:
        files = exporter.export(fsm, base_filename=fsm.name)
    else:
        file_options = dataclasses.replace(options, source_file_name=os.path.basename(path))
        try:
            files = get_generator(language, file_options).generate(fsm)
        except CodeGenerationError as e:
            print(f"Error: {e}", file=sys.stderr)
            return False
    try:
        _write_files(files, options.target_directory)
    except OSError as e:
        print(f"Error: cannot write output: {e}", file=sys.stderr)
        return False
    return True


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    setup_logging(_log_level(args.verbose))

    try:
        language = TargetLanguage.from_option(args.target)
        options = options_from_args(args)
        check_options(options, language)
    except ConfigurationError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except (ValueError, TypeError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except OSError as e:
        print(f"Error: cannot read options file: {e}", file=sys.stderr)
        return 1

    exporter = None
    if args.export:
        manager = PluginManager()
        exporter = manager.get_exporter(args.export)
        if exporter is None:
            print(f"Error: unknown exporter '{args.export}'. Available: {', '.join(manager.exporter_names())}",
                  file=sys.stderr)
            return 1
    elif language not in GENERATORS:
        print(f"Error: code generation for {language.display_name} is not available.", file=sys.stderr)
        return 1

    rc = 0
    for path in args.files:
        if not compile_file(path, language, options, exporter):
            rc = 1
    return rc


if __name__ == '__main__':
    sys.exit(main())
