# fsm_compiler/utils/config.py
"""
Central configuration file for the FSM compiler.

Contains the static settings that define the tool's identity, file naming and
default code generation behavior. Per-run settings live in
codegen.options.GeneratorOptions.
"""
import os

# ==============================================================================
# STATIC APPLICATION CONFIGURATION
# ==============================================================================
# These values are constant and define the application's identity.

APP_VERSION = "1.0.0"
APP_NAME = "fsmc"
APP_DESCRIPTION = "Compiles finite state machine descriptions into source code."
SM_FILE_EXTENSION = ".json"

# ==============================================================================
# CODE GENERATION DEFAULTS
# ==============================================================================

DEFAULT_TARGET = "python"
DEFAULT_HEADER_SUFFIX = "h"
DEFAULT_CAST_TYPE = "dynamic_cast"

# Jinja2 templates shipped with the package.
TEMPLATES_DIR = os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))),
                             'assets', 'templates')
