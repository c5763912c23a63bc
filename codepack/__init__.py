"""codepack — budget-aware source bundling for language-model context.

WHY: Feeding a codebase to a language model means concatenating many
files into one document while keeping the token bill under control.
This package reduces each file (comment stripping, signature extraction,
minification), measures the token cost before and after, and assembles a
single delimited document with a live progress stream.

HOW: Three-stage pipeline per file: transform (tiered structural →
textual → passthrough), account (shared tiktoken encoding), format
(pluggable output styles). An orchestrator drives the stages and emits
progress and one terminal result; a worker runs it in a dedicated
execution context.

RULES:
- The structural and textual transformers are collaborators, never
  implemented here; hosts plug them in
- Adding a new output style = one new formatter class, no core changes
- Every request yields progress* followed by exactly one terminal response
"""

__version__ = "0.1.0"
