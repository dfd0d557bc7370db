from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Dict, Type

from pydantic import BaseModel


class ToolInput(BaseModel):
    """
    Base class for tool input models.

    Each concrete tool defines its own subclass describing its parameters.
    The model validates the arguments the LLM sends and doubles as the
    JSON schema advertised to it.
    """


ToolFunc = Callable[[Any], Any]


@dataclass(frozen=True)
class ToolDefinition:
    """
    Static description of one callable tool.

    - name: identifier the model uses in tool calls
    - description: natural language description shown to the model
    - input_model: pydantic model used for validation and schema export
    - func: sync callable receiving a validated input_model instance
    """

    name: str
    description: str
    input_model: Type[ToolInput]
    func: ToolFunc

    def json_schema(self) -> Dict[str, Any]:
        """Return the JSON schema for the tool's input model."""
        return self.input_model.model_json_schema()

    def descriptor(self) -> Dict[str, Any]:
        """OpenAI function-calling descriptor."""
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": self.json_schema(),
            },
        }
