"""
Orchestration Engine for mixin desugaring.

The `DesugarEngine` drives one source unit through the pipeline:

1.  **Grammar Extension**: `MixinGrammar` rewrites `mixin` declarations,
    mixin expressions and `with` lists into sentinel Python.
2.  **Parsing**: LibCST parses the sentinel source.
3.  **Collection**: `MixinCollector` builds the `DesugarPlan` (definitions,
    applications, scope bindings) with source positions.
4.  **Resolution**: `MixinResolver` rejects non-mixin operands and circular
    composition before any code is generated.
5.  **Rewriting**: `MixinDesugarer` emits factory functions and nested
    application calls.
6.  **Import Injection**: `RuntimeImportInjector` adds the runtime import.

`transform` raises the typed `MixinError` subclasses; `run` captures them into
a `ConversionResult`.
"""

from typing import List, Optional

import libcst as cst
from libcst.metadata import MetadataWrapper

from mixin_desugar.config import RuntimeConfig
from mixin_desugar.core.collector import MixinCollector
from mixin_desugar.core.conversion_result import ConversionResult, MixinSummary
from mixin_desugar.core.grammar import parse_extended
from mixin_desugar.core.imports import RuntimeImportInjector
from mixin_desugar.core.nodes import DesugarPlan
from mixin_desugar.core.resolver import MixinResolver
from mixin_desugar.core.tracer import get_tracer, reset_tracer
from mixin_desugar.core.transformer import MixinDesugarer
from mixin_desugar.errors import MixinError
from mixin_desugar.markers import MarkerRegistry
from mixin_desugar.utils.node_diff import capture_node_source


class DesugarEngine:
  """
  The main compilation unit.

  Stateless between calls apart from `last_plan`, `last_deferred` and
  `last_summaries`, which describe the most recent `transform`.
  """

  def __init__(self, config: Optional[RuntimeConfig] = None, registry: Optional[MarkerRegistry] = None):
    """
    Initializes the Engine.

    Args:
        config (RuntimeConfig, optional): The runtime configuration object.
            Loaded from pyproject.toml if None.
        registry (MarkerRegistry, optional): Registry for transform-time marker
            keys. Defaults to the process-wide registry.
    """
    self.config = config or RuntimeConfig.load()
    self.registry = registry
    self.last_plan: Optional[DesugarPlan] = None
    self.last_deferred: List[str] = []
    self.last_summaries: List[MixinSummary] = []
    self.last_applications = 0

  def parse(self, code: str) -> MetadataWrapper:
    """
    Rewrites extended syntax and parses the result.

    Args:
        code (str): Source possibly using the mixin grammar.

    Returns:
        MetadataWrapper: Wrapper around the sentinel LibCST module.

    Raises:
        MixinSyntaxError: On malformed mixin grammar or invalid Python.
    """
    with get_tracer().phase("Grammar Extension", "mixin / with -> sentinel Python -> LibCST"):
      module = parse_extended(code)

    return MetadataWrapper(module)

  def collect(self, wrapper: MetadataWrapper) -> DesugarPlan:
    collector = MixinCollector()
    wrapper.visit(collector)
    return collector.plan

  def transform(self, code: str) -> cst.Module:
    """
    Desugars a source unit.

    Args:
        code (str): The input source string.

    Returns:
        cst.Module: Tree expressed in plain Python.

    Raises:
        MixinSyntaxError: Malformed grammar.
        ResolutionError: An operand cannot be a mixin.
        CircularCompositionError: A composition chain revisits itself.
    """
    tracer = get_tracer()
    wrapper = self.parse(code)

    with tracer.phase("Collection", "Building the mixin plan"):
      plan = self.collect(wrapper)
    self.last_plan = plan
    self.last_summaries = []
    self.last_applications = 0

    resolver = MixinResolver(plan, strict=self.config.strict_resolution)
    with tracer.phase("Resolution", "Checking operands and composition chains"):
      resolver.resolve()
    self.last_deferred = list(resolver.deferred)

    if plan.is_empty:
      return wrapper.module

    desugarer = MixinDesugarer(plan, self.config, self.registry)
    with tracer.phase("Rewrite", "Emitting factories and applications"):
      tree = wrapper.module.visit(desugarer)

    self.last_applications = len(desugarer.applied)
    self.last_summaries = [
      MixinSummary(
        name=d.name,
        display_name=d.display_name,
        line=d.position.line,
        extends=None if d.super_mixin is None else capture_node_source(d.super_mixin),
        marker=repr(d.marker(self.registry)),
      )
      for d in plan.definitions
    ]

    if self.config.inject_import:
      with tracer.phase("Import Injection", self.config.runtime_module):
        tree = tree.visit(RuntimeImportInjector(self.config.runtime_module, self.config.runtime_alias))

    return tree

  def to_source(self, tree: cst.Module) -> str:
    return tree.code

  def run(self, code: str) -> ConversionResult:
    """
    Executes the full pipeline, capturing errors.

    Args:
        code (str): The input source string.

    Returns:
        ConversionResult: Object containing transformed code and error logs.
    """
    reset_tracer()
    tracer = get_tracer()
    tracer.start_phase("Desugaring Pipeline", f"runtime: {self.config.runtime_module}")

    try:
      tree = self.transform(code)
    except MixinError as e:
      tracer.log_warning(str(e))
      tracer.end_phase()
      return ConversionResult(
        code=code,
        errors=[f"{type(e).__name__}: {e}"],
        success=False,
        trace_events=tracer.export(),
      )

    tracer.end_phase()
    return ConversionResult(
      code=self.to_source(tree),
      success=True,
      mixins=self.last_summaries,
      applications=self.last_applications,
      deferred=self.last_deferred,
      trace_events=tracer.export(),
    )
