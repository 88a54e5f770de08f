from spxp_cli.documents.schemas import (
    BINDING_STATES,
    PROTOCOL_VERSION,
    BindingRecord,
    DocumentSignature,
    FriendsList,
    Group,
    ObjectReference,
    Post,
    Profile,
    RemoteProfile,
    dump_document,
)
from spxp_cli.documents.wire import (
    AccessTokenResponse,
    BindResponse,
    DeviceRegistrationResponse,
    DiscoveryDocument,
    MediaUploadResponse,
    ServiceEndpoints,
    ServiceInfo,
)

__all__ = [
    "PROTOCOL_VERSION",
    "BINDING_STATES",
    "DocumentSignature",
    "ObjectReference",
    "Profile",
    "RemoteProfile",
    "FriendsList",
    "BindingRecord",
    "Post",
    "Group",
    "dump_document",
    "DiscoveryDocument",
    "BindResponse",
    "DeviceRegistrationResponse",
    "ServiceEndpoints",
    "ServiceInfo",
    "AccessTokenResponse",
    "MediaUploadResponse",
]
