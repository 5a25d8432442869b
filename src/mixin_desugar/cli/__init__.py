"""
Command-line wrapper around the desugaring engine.
"""
