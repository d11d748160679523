"""
sttbench.core

Core primitives: records, config, errors, registry, normalization, metrics, scoring.
Do not auto-import provider modules here; `sttbench.providers` registers them.
"""
