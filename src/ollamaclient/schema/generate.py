from datetime import datetime
from typing import Any

from pydantic.dataclasses import dataclass

# https://github.com/ollama/ollama/blob/main/docs/api.md#generate-a-completion


@dataclass(frozen=True)
class GenerateRequest:
    model: str
    prompt: str
    stream: bool | None = None

    def serialize(self) -> dict[str, Any]:
        data: dict[str, Any] = {"model": self.model, "prompt": self.prompt}
        if self.stream is not None:
            data["stream"] = self.stream
        return data


@dataclass
class GenerateResponse:
    model: str = ""
    created_at: str | datetime | None = None
    response: str = ""
    done: bool = False
    done_reason: str | None = None
    context: list[int] | None = None
    total_duration: int | None = None
    load_duration: int | None = None
    prompt_eval_count: int | None = None
    prompt_eval_duration: int | None = None
    eval_count: int | None = None
    eval_duration: int | None = None
