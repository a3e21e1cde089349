# fsm_compiler/runtime/__init__.py
"""Runtime support library imported by generated state machines."""
