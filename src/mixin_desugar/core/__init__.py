"""
Core Package.

Contains the transform pipeline:
- Grammar Extension (token-level `mixin` / `with` recognition)
- Syntax Tree Model and Collector
- Resolver (operand and composition-chain validation)
- Desugaring Transformer and Runtime Import Injection
- Engine and Trace Logger
"""
