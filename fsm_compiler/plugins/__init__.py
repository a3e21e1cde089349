# fsm_compiler/plugins/__init__.py
