"""
Utilities: rich-backed logging and LibCST node rendering.
"""
