"""
Core data types: discovered files, probe results, decisions, per-file state and the
exception hierarchy.
"""
