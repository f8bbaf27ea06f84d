from datetime import datetime

from pydantic.dataclasses import dataclass


@dataclass
class ModelDetails:
    format: str | None = None
    family: str | None = None
    families: list[str] | None = None
    parameter_size: str | None = None
    quantization_level: str | None = None
    parent_model: str | None = None


@dataclass
class TagModel:
    name: str
    modified_at: str | datetime
    size: int
    digest: str
    model: str | None = None
    details: ModelDetails | None = None