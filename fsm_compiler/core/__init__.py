# fsm_compiler/core/__init__.py
