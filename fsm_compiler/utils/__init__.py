# fsm_compiler/utils/__init__.py
