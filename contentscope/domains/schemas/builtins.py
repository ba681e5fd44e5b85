"""Schemas that every deployment carries regardless of user-defined content types."""

from typing import Any, Dict

ADMIN_USER_UID = "admin::user"
MEDIA_FILE_UID = "plugin::upload.file"

BUILTIN_DEFINITIONS: Dict[str, Dict[str, Any]] = {
    ADMIN_USER_UID: {
        "displayName": "User",
        "creatorFields": False,
        "attributes": {
            "firstname": {"type": "string"},
            "lastname": {"type": "string"},
            "username": {"type": "string"},
            "email": {"type": "email"},
            "password": {"type": "password", "private": True},
            "resetPasswordToken": {"type": "string", "private": True},
            "isActive": {"type": "boolean"},
            "preferedLanguage": {"type": "string"},
        },
    },
    MEDIA_FILE_UID: {
        "displayName": "File",
        "attributes": {
            "name": {"type": "string"},
            "alternativeText": {"type": "string"},
            "caption": {"type": "string"},
            "width": {"type": "integer"},
            "height": {"type": "integer"},
            "formats": {"type": "json"},
            "hash": {"type": "string"},
            "ext": {"type": "string"},
            "mime": {"type": "string"},
            "size": {"type": "decimal"},
            "url": {"type": "string"},
            "previewUrl": {"type": "string"},
            "provider": {"type": "string"},
            "provider_metadata": {"type": "json", "private": True},
        },
    },
}
