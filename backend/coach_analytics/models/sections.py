# section models: derived chunks of client profile content
# mirrors frontend ClientProfile SectionItem

from typing import Any

from pydantic import BaseModel, Field


class SectionItem(BaseModel):
    """a named, presentable chunk of dashboard content"""
    id: str
    title: str
    visible: bool = True
    payload: dict[str, Any] = Field(default_factory=dict)

    model_config = {"populate_by_name": True, "frozen": True}
