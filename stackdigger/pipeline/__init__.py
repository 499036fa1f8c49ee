"""Stack-build orchestration."""

from stackdigger.pipeline.stack_builder import StackBuilder

__all__ = ["StackBuilder"]
