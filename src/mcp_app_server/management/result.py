"""Result of a management operation."""
import json
from typing import Any, Optional


class ModelNodeResult:
    """Wrapper around a management response.

    Responses look like ``{"outcome": "success", "result": ...}`` or
    ``{"outcome": "failed", "failure-description": ...}``. Composite
    responses carry one ``step-N`` entry per step in ``result``.
    """

    def __init__(self, response: dict[str, Any]):
        self.response = response

    @classmethod
    def success(cls, value: Any = None) -> "ModelNodeResult":
        return cls({"outcome": "success", "result": value})

    @classmethod
    def failure(cls, description: Any) -> "ModelNodeResult":
        return cls({"outcome": "failed", "failure-description": description})

    @property
    def is_success(self) -> bool:
        return self.response.get("outcome") == "success"

    @property
    def is_failed(self) -> bool:
        return not self.is_success

    @property
    def value(self) -> Any:
        return self.response.get("result")

    @property
    def is_defined(self) -> bool:
        return self.value is not None

    @property
    def failure_description(self) -> Optional[str]:
        """Server-reported cause as text (composite descriptions are flattened)."""
        description = self.response.get("failure-description")
        if description is None:
            return None
        if isinstance(description, str):
            return description
        return json.dumps(description)

    def failed_step(self) -> Optional[tuple[int, str]]:
        """For composite results, the first failed step as (1-based index, cause)."""
        result = self.value
        if not isinstance(result, dict):
            return None

        for key, step in result.items():
            if not key.startswith("step-") or not isinstance(step, dict):
                continue
            if step.get("outcome") == "failed":
                description = ModelNodeResult(step).failure_description or "unknown failure"
                return int(key[len("step-"):]), description
        return None

    # --- Typed accessors ---

    def string_value(self, default: Optional[str] = None) -> Optional[str]:
        return default if self.value is None else str(self.value)

    def int_value(self, default: Optional[int] = None) -> Optional[int]:
        return default if self.value is None else int(self.value)

    def float_value(self, default: Optional[float] = None) -> Optional[float]:
        return default if self.value is None else float(self.value)

    def bool_value(self, default: Optional[bool] = None) -> Optional[bool]:
        value = self.value
        if value is None:
            return default
        if isinstance(value, str):
            return value.lower() == "true"
        return bool(value)

    def list_value(self) -> list[Any]:
        return list(self.value or [])

    def assert_success(self, message: str = "Operation failed") -> "ModelNodeResult":
        if self.is_failed:
            raise AssertionError(f"{message}: {self.failure_description}")
        return self

    def to_dict(self) -> dict:
        return dict(self.response)

    def __repr__(self) -> str:
        status = "OK" if self.is_success else "FAILED"
        return f"ModelNodeResult({status})"
