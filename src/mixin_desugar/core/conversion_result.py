"""
Data structures representing the output of the desugaring pipeline.

This module defines the `ConversionResult` and `MixinSummary` Pydantic models,
which encapsulate the generated code, any errors encountered, what was
desugared, and the execution trace logs.
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class MixinSummary(BaseModel):
  """
  Report entry for one desugared mixin definition.
  """

  name: Optional[str] = Field(None, description="Declared name, None for anonymous mixin expressions.")
  display_name: str = Field(..., description="Name used in messages.")
  line: int = Field(..., description="Line of the declaration in the original source.")
  extends: Optional[str] = Field(None, description="Source of the `extends` operand, if any.")
  marker: str = Field(..., description="Representation of the transform-time marker key.")


class ConversionResult(BaseModel):
  """
  Container for the results of a desugaring job.
  """

  code: str = Field(default="", description="The generated source code.")
  errors: List[str] = Field(default_factory=list, description="List of error messages encountered.")
  success: bool = Field(
    default=True,
    description="True if the pipeline completed without fatal errors.",
  )
  mixins: List[MixinSummary] = Field(default_factory=list, description="Mixin definitions that were desugared.")
  applications: int = Field(default=0, description="Number of `with` applications rewritten.")
  deferred: List[str] = Field(default_factory=list, description="Operands left for the runtime to validate.")
  trace_events: List[Dict[str, Any]] = Field(default_factory=list, description="Execution trace log data.")

  @property
  def has_errors(self) -> bool:
    """
    Check if the result contains any error messages.

    Returns:
        True if one or more errors are present.
    """
    return len(self.errors) > 0
