"""Domain exceptions for content-type schemas."""


class SchemaNotFoundError(Exception):
    """Raised when a content type is not registered."""

    def __init__(self, uid: str):
        """Initialize with the unknown uid."""
        self.uid = uid
        super().__init__(f"Content type '{uid}' not found")
