from typing import Annotated, Any

from pydantic import Field
from pydantic.dataclasses import dataclass

# https://github.com/ollama/ollama/blob/main/docs/api.md#pull-a-model


@dataclass(frozen=True)
class PullRequest:
    name: str
    stream: bool = True
    insecure: bool | None = None

    def serialize(self) -> dict[str, Any]:
        data: dict[str, Any] = {"name": self.name, "stream": self.stream}
        if self.insecure is not None:
            data["insecure"] = self.insecure
        return data


@dataclass
class PullRecord:
    status: str = ""
    digest: str | None = None
    total: Annotated[int, Field(ge=0)] = 0
    completed: Annotated[int, Field(ge=0)] = 0
    error: str | None = None

    @property
    def is_success(self) -> bool:
        return self.status == "success"

    @property
    def has_size(self) -> bool:
        return self.total > 0
