# model/pod.py
from datetime import datetime
from typing import Optional, Union
from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator
from util.constants import UNKNOWN
from util.enums import WatchEventType


class PodRef(BaseModel):
    model_config = ConfigDict(frozen=True)

    namespace: str
    name: str

    @classmethod
    def unknown(cls) -> "PodRef":
        return cls(namespace=UNKNOWN, name=UNKNOWN)

    @property
    def is_unknown(self) -> bool:
        return self.namespace == UNKNOWN and self.name == UNKNOWN

    def __str__(self) -> str:
        return f"{self.namespace}/{self.name}"


# Accept both the API's camelCase JSON and the client's to_dict() snake_case.
class PodMetadata(BaseModel):
    name: str = Field(min_length=1)
    namespace: str = Field(min_length=1)
    deletion_timestamp: Optional[datetime] = Field(
        default=None,
        validation_alias=AliasChoices("deletionTimestamp", "deletion_timestamp"),
    )
    resource_version: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("resourceVersion", "resource_version"),
    )


class PodStatus(BaseModel):
    phase: Optional[str] = None


class PodObject(BaseModel):
    kind: Optional[str] = None
    metadata: PodMetadata
    status: Optional[PodStatus] = None

    @field_validator("kind")
    @classmethod
    def _only_pods(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and v != "Pod":
            raise ValueError(f"not a Pod: {v}")
        return v


class PodEvent(BaseModel):
    type: WatchEventType
    pod: PodObject

    @property
    def ref(self) -> PodRef:
        return PodRef(namespace=self.pod.metadata.namespace, name=self.pod.metadata.name)

    @property
    def phase(self) -> Optional[str]:
        return self.pod.status.phase if self.pod.status else None

    @property
    def is_termination(self) -> bool:
        return (
            self.type == WatchEventType.DELETED
            or self.pod.metadata.deletion_timestamp is not None
        )


class Unrecognized(BaseModel):
    """Watch event whose object did not decode as a Pod (ERROR status, junk, ...)."""

    type: Optional[str] = None
    reason: str
    code: Optional[int] = None


DecodedEvent = Union[PodEvent, Unrecognized]
