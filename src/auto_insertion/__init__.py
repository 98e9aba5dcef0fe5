# CTA Auto-Insertion Engine
"""
Auto-insertion of call-to-action blocks into rendered articles:
- conditions: client-storage predicates compiled to an expression tree
- targeting: content-type, taxonomy and opt-out eligibility
- chain: cycle-safe fallback chain builder and its JSON payload
- inserter: content element parsing, position math, build-time insertion
- orchestrator: view-time candidate selection and one-shot insertion
- manager: SQLite record repository and render-time façade
- template_engine: Jinja2 wrapper and payload markup
"""
