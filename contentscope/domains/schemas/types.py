"""Content-type schema model.

A content type is an ordered mapping of attribute name to descriptor. The
attribute kind is a closed set; code that dispatches on it matches every
member so that adding a kind is caught by the type checker.
"""

from enum import Enum
from typing import Dict, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field

PRIMARY_KEY = "id"

# Dynamic-zone entries name their component with this key.
COMPONENT_KEY = "__component"
# Polymorphic relation values name their target type with this key.
MORPH_TYPE_KEY = "__type"


class AttributeKind(str, Enum):
    """Kind of a schema attribute."""

    SCALAR = "scalar"
    RELATION = "relation"
    MEDIA = "media"
    COMPONENT = "component"
    DYNAMIC_ZONE = "dynamiczone"


class AttributeDescriptor(BaseModel):
    """Metadata for one attribute of a content type."""

    model_config = ConfigDict(frozen=True)

    name: str
    kind: AttributeKind
    scalar_type: Optional[str] = None
    relation: Optional[str] = None
    polymorphic: bool = False
    target: Optional[str] = None
    repeatable: bool = False
    components: Tuple[str, ...] = ()
    private: bool = False
    writable: bool = True

    @property
    def has_static_target(self) -> bool:
        """Whether the target schema is known without looking at a record."""
        match self.kind:
            case AttributeKind.SCALAR | AttributeKind.DYNAMIC_ZONE:
                return False
            case AttributeKind.RELATION:
                return not self.polymorphic and self.target is not None
            case AttributeKind.MEDIA | AttributeKind.COMPONENT:
                return self.target is not None


class ContentTypeSchema(BaseModel):
    """Immutable schema of a single content type or component."""

    model_config = ConfigDict(frozen=True)

    uid: str
    display_name: str = ""
    is_component: bool = False
    draft_and_publish: bool = False
    attributes: Dict[str, AttributeDescriptor] = Field(default_factory=dict)

    def attribute(self, name: str) -> Optional[AttributeDescriptor]:
        """Return the descriptor for ``name`` or None when the type has no such attribute."""
        return self.attributes.get(name)

    def writable_attributes(self) -> list[str]:
        """Names of attributes a caller may ever write, in declaration order."""
        return [name for name, attr in self.attributes.items() if attr.writable]

    def private_attributes(self) -> set[str]:
        """Names of attributes that are never returned to callers."""
        return {name for name, attr in self.attributes.items() if attr.private}
