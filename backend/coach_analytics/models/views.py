# view state models: what the presentation boundary reads
# loading and not-found are states, never exceptions

from enum import Enum
from typing import Generic, Optional, TypeVar

from pydantic import BaseModel, Field

T = TypeVar("T")


class ViewStatus(str, Enum):
    LOADING = "loading"
    READY = "ready"
    NOT_FOUND = "not_found"


class ViewState(BaseModel, Generic[T]):
    """a derived value plus its availability status"""
    status: ViewStatus
    value: Optional[T] = None

    model_config = {"populate_by_name": True, "frozen": True}

    @property
    def is_loading(self) -> bool:
        return self.status is ViewStatus.LOADING

    @property
    def is_ready(self) -> bool:
        return self.status is ViewStatus.READY

    @property
    def is_not_found(self) -> bool:
        return self.status is ViewStatus.NOT_FOUND


class ViewResponse(BaseModel, Generic[T]):
    """http rendering of a view state"""
    status: ViewStatus
    is_loading: bool = Field(False, alias="isLoading")
    value: Optional[T] = None

    model_config = {"populate_by_name": True}
