from typing import Any

from pydantic.dataclasses import dataclass

# https://github.com/ollama/ollama/blob/main/docs/api.md#generate-embedding


@dataclass(frozen=True)
class EmbeddingsRequest:
    model: str
    prompt: str

    def serialize(self) -> dict[str, Any]:
        return {"model": self.model, "prompt": self.prompt}


@dataclass
class EmbeddingsResponse:
    embedding: list[float]
