"""Data models for hook options, event channels and patch records."""

from enum import Enum
from typing import Any, Optional, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

DEFAULT_PRIORITY = -1_000_000

# Event names used by the "immutable-events" variant of the hook
NAMED_EVENTS = {
    "insertEvent": "inserted",
    "updateEvent": "updated",
    "deleteEvent": "deleted",
}


class PatchOp(str, Enum):
    ADD = "add"
    REMOVE = "remove"
    REPLACE = "replace"


class Patch(BaseModel):
    op: PatchOp
    path: list[Union[str, int]]
    value: Any = None

    def to_dict(self) -> dict:
        data = {"op": self.op.value, "path": list(self.path)}
        if self.op != PatchOp.REMOVE:
            data["value"] = self.value
        return data


class PatchRecord(BaseModel):
    """Forward and reverse patches produced for one document."""

    patches: list[Patch] = Field(default_factory=list)
    reverse_patches: list[Patch] = Field(default_factory=list, alias="reversePatches")

    model_config = {"populate_by_name": True}

    def to_dict(self) -> dict:
        return {
            "patches": [p.to_dict() for p in self.patches],
            "reversePatches": [p.to_dict() for p in self.reverse_patches],
        }


class EventChannel(BaseModel):
    """An event the hook may emit. An empty name disables the channel."""

    name: str = ""

    model_config = ConfigDict(frozen=True)

    @classmethod
    def disabled(cls) -> "EventChannel":
        return cls()

    @classmethod
    def named(cls, name: str) -> "EventChannel":
        return cls(name=name)

    @property
    def enabled(self) -> bool:
        return bool(self.name)

    def emit(self, emitter: Any, *args: Any) -> None:
        if self.enabled:
            emitter.emit(self.name, *args)


class ImmutableOptions(BaseModel):
    """Options fixed when the immutable hook is attached to a collection."""

    priority: float = DEFAULT_PRIORITY
    patches: bool = False
    production: bool = False
    insert_event: str = Field(default="", validation_alias=AliasChoices("insertEvent", "insert_event"))
    update_event: str = Field(default="", validation_alias=AliasChoices("updateEvent", "update_event"))
    delete_event: str = Field(
        default="",
        validation_alias=AliasChoices("deleteEvent", "removeEvent", "delete_event"),
    )
    # Draft engine; None selects the process-wide default engine
    engine: Optional[Any] = Field(default=None, exclude=True)

    model_config = ConfigDict(frozen=True, extra="ignore")

    @classmethod
    def from_config(cls, options: Union["ImmutableOptions", dict, None], defaults: Optional[dict] = None) -> "ImmutableOptions":
        if isinstance(options, cls):
            parsed = options
        else:
            parsed = cls.model_validate(options or {})
        if not defaults:
            return parsed
        merged = cls.model_validate(defaults).model_dump()
        merged.update(parsed.model_dump(exclude_unset=True))
        merged["engine"] = parsed.engine
        return cls.model_validate(merged)

    @property
    def insert_channel(self) -> EventChannel:
        return _channel(self.insert_event)

    @property
    def update_channel(self) -> EventChannel:
        return _channel(self.update_event)

    @property
    def delete_channel(self) -> EventChannel:
        return _channel(self.delete_event)


def _channel(name: str) -> EventChannel:
    return EventChannel.named(name) if name else EventChannel.disabled()
