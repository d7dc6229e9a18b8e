"""Content fingerprint for duplicate detection."""

import hashlib
import json
from typing import Any, Dict, Iterable, Optional


class ContentFingerprintBuilder:
    """Build deterministic fingerprints of notification content.

    Two notifications with the same recipient set (in any order), subject
    and body share a fingerprint. Template-based notifications without a
    literal body also hash the template name and variables so different
    renderings never collide. The store indexes the fingerprint so duplicate
    lookups only compare full content for a handful of candidate rows.

    Example:
        >>> builder = ContentFingerprintBuilder()
        >>> builder.build(["b@example.com", "a@example.com"], "Hi", "Body")
        'notification:deliver:...'
    """

    def __init__(self, namespace: str = "notification", operation: str = "deliver"):
        self.namespace = namespace
        self.operation = operation

    def build(
        self,
        recipients: Iterable[str],
        subject: Optional[str],
        body: Optional[str],
        template_name: Optional[str] = None,
        template_variables: Optional[Dict[str, Any]] = None,
    ) -> str:
        """Build the fingerprint.

        Args:
            recipients: Primary recipients
            subject: Subject line, None when absent
            body: Body text, None when absent
            template_name: Template reference, only hashed without a body
            template_variables: Template variables, only hashed without a body

        Returns:
            Fingerprint string
        """
        components = {
            "body": body or "",
            "recipients": ",".join(sorted(recipients)),
            "subject": subject or "",
        }
        if not body and template_name:
            components["template"] = template_name
            components["variables"] = json.dumps(
                template_variables or {}, sort_keys=True, default=str
            )

        key_parts = [self.namespace, self.operation]
        key_parts.extend(f"{k}={v}" for k, v in sorted(components.items()))
        key_string = "|".join(key_parts)

        key_hash = hashlib.sha256(key_string.encode()).hexdigest()[:16]

        return f"{self.namespace}:{self.operation}:{key_hash}"


content_fingerprint = ContentFingerprintBuilder().build
