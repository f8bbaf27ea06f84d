from pydantic.dataclasses import dataclass

from ollamaclient.schema.base import TagModel

# https://github.com/ollama/ollama/blob/main/docs/api.md#list-local-models


@dataclass
class TagsResponse:
    models: list[TagModel]

    def names(self) -> list[str]:
        return [m.name for m in self.models]

    def find(self, name: str) -> TagModel | None:
        for model in self.models:
            if model.name == name:
                return model
        return None
