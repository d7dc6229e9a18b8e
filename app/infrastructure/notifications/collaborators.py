"""Protocols for the template resolver and attachment store.

Concrete implementations live outside the pipeline and are passed in by
constructor.
"""

from typing import Any, Dict, Optional, Protocol


class TemplateResolver(Protocol):
    """Renders named templates."""

    def resolve(
        self,
        name: str,
        variables: Dict[str, Any],
        channel: Optional[str] = None,
    ) -> str:
        """Render a template.

        Args:
            name: Template name
            variables: Values substituted into the template
            channel: Channel the template is rendered for

        Returns:
            Rendered body

        Raises:
            TemplateNotFoundError: Template is missing or inactive
        """
        ...


class AttachmentStore(Protocol):
    """Binary storage for attachment content."""

    provider_name: str

    def upload(self, path: str, content: bytes, content_type: str) -> str:
        """Store content and return the storage path.

        Raises:
            AttachmentStorageError: Upload failed
        """
        ...

    def download(self, path: str) -> bytes:
        """Load content.

        Raises:
            AttachmentStorageError: Download failed
        """
        ...

    def delete(self, path: str) -> None:
        ...
