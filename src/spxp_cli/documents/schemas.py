"""SPXP document schemas (protocol v0.3)."""

from __future__ import annotations

from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict

PROTOCOL_VERSION = "0.3"

BINDING_STATES = ("service_bound", "device_registered", "endpoints_known", "bound")
BindingStateName = Literal["service_bound", "device_registered", "endpoints_known", "bound"]


class DocumentSignature(BaseModel):
    model_config = ConfigDict(extra="forbid")

    key: str
    sig: str


class ObjectReference(BaseModel):
    """Pointer to another SPXP profile, optionally pinning its public key."""

    model_config = ConfigDict(extra="forbid")

    uri: str
    publicKey: Optional[Dict[str, str]] = None


class Profile(BaseModel):
    model_config = ConfigDict(extra="forbid")

    ver: Literal["0.3"] = PROTOCOL_VERSION
    name: str
    shortInfo: Optional[str] = None
    about: Optional[str] = None
    gender: Optional[str] = None
    website: Optional[str] = None
    email: Optional[str] = None
    birthDayAndMonth: Optional[str] = None
    birthYear: Optional[str] = None
    profilePhoto: Optional[str] = None
    hometown: Optional[ObjectReference] = None
    location: Optional[ObjectReference] = None
    friendsEndpoint: Optional[str] = None
    postsEndpoint: Optional[str] = None
    keysEndpoint: Optional[str] = None
    publicKey: Dict[str, str]
    signature: Optional[DocumentSignature] = None


class RemoteProfile(BaseModel):
    """Minimal view of a profile fetched from somebody else's service."""

    model_config = ConfigDict(extra="allow")

    ver: Literal["0.3"]
    name: str
    publicKey: Optional[Dict[str, str]] = None


class FriendsList(BaseModel):
    model_config = ConfigDict(extra="forbid")

    data: List[ObjectReference] = []
    signature: Optional[DocumentSignature] = None


class BindingRecord(BaseModel):
    model_config = ConfigDict(extra="forbid")

    state: BindingStateName = "service_bound"
    domain: Optional[str] = None
    profileUri: str
    managementEndpoint: str
    deviceId: Optional[str] = None
    deviceToken: Optional[str] = None
    friendsEndpoint: Optional[str] = None
    postsEndpoint: Optional[str] = None
    keysEndpoint: Optional[str] = None
    connectEndpoint: Optional[str] = None
    connectResponseEndpoint: Optional[str] = None

    def reached(self, state: str) -> bool:
        return BINDING_STATES.index(self.state) >= BINDING_STATES.index(state)


class Post(BaseModel):
    model_config = ConfigDict(extra="forbid")

    type: Literal["text", "web", "photo", "video"]
    createts: Optional[str] = None
    message: Optional[str] = None
    link: Optional[str] = None
    small: Optional[str] = None
    full: Optional[str] = None
    preview: Optional[str] = None
    media: Optional[str] = None
    place: Optional[ObjectReference] = None
    signature: Optional[DocumentSignature] = None


class Group(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: str
    key: Dict[str, str]


def dump_document(model: BaseModel) -> dict:
    return model.model_dump(exclude_none=True)
