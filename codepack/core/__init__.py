"""Core transformation, accounting, and orchestration modules.

WHY: The core package contains the stable heart of codepack: the
request/response dataclasses, the tiered transformation pipeline, the
token accountant, the progress reporter, and the orchestrator that ties
them together. Formatters, the worker, the HTTP API, and the CLI all
build on these.

HOW: ir.py defines the data structures, pipeline.py tiers the external
transformers, tokens.py counts tokens, progress.py decides when to
report, orchestrator.py drives one request end to end. budget.py maps
token totals onto model context windows.

RULES:
- IR dataclasses are the contract; change with care
- Core modules never render, persist, or select files
- Structural and textual transforms are injected, never implemented here
"""
