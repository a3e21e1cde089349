# fsm_compiler/managers/__init__.py
