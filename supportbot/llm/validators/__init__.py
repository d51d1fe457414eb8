"""Output validators."""

from supportbot.llm.validators.basic import validate_non_empty_output

__all__ = ["validate_non_empty_output"]
