"""Model configuration — provider, model name, credentials."""

from typing import Any

from pydantic import BaseModel, Field


class ModelConfig(BaseModel):
    """Configuration for a specific model/provider combination.

    The ``model`` field uses LiteLLM's naming convention:
    ``provider/model_name`` (e.g. ``openai/gpt-4o``, ``deepseek/deepseek-reasoner``).
    """

    model: str
    api_key: str | None = None
    api_base: str | None = None
    extra: dict[str, Any] = Field(default_factory=lambda: dict[str, Any]())

    @property
    def provider(self) -> str:
        """Extract the provider prefix from the model string."""
        if "/" in self.model:
            return self.model.split("/", 1)[0]
        return "openai"

    def completion_kwargs(self) -> dict[str, Any]:
        """Keyword arguments for ``litellm.acompletion`` derived from this config."""
        kwargs: dict[str, Any] = {"model": self.model, **self.extra}
        if self.api_key:
            kwargs["api_key"] = self.api_key
        if self.api_base:
            kwargs["api_base"] = self.api_base
        return kwargs
