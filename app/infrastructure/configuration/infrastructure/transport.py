"""Delivery transport settings."""

from pydantic import Field, field_validator

from infrastructure.configuration.base import InfrastructureSettings

DELIVERY_MODES = ("queue", "inline", "broker")


class TransportSettings(InfrastructureSettings):
    """Delivery mode selection for the whole deployment.

    Environment Variables:
        NOTIFICATION_DELIVERY_MODE: 'queue', 'inline' or 'broker' (default: queue)
        NOTIFICATION_INLINE_POOL_SIZE: Worker threads for inline dispatch (default: 4)
        NOTIFICATION_INLINE_PERSIST: Persist records in inline mode (default: True)

    Modes:
        - queue: persist PENDING, the queue scheduler delivers
        - inline: persist then dispatch on a background thread pool
        - broker: persist then publish to the message broker
    """

    mode: str = Field(
        default="queue",
        alias="NOTIFICATION_DELIVERY_MODE",
        description="Delivery mode: 'queue', 'inline' or 'broker'",
    )
    inline_pool_size: int = Field(
        default=4,
        alias="NOTIFICATION_INLINE_POOL_SIZE",
        description="Thread pool size for inline dispatch",
    )
    inline_persist: bool = Field(
        default=True,
        alias="NOTIFICATION_INLINE_PERSIST",
        description="Persist notifications dispatched inline",
    )

    @field_validator("mode")
    @classmethod
    def validate_mode(cls, v: str) -> str:
        """Normalize and validate the delivery mode."""
        mode = v.strip().lower()
        if mode not in DELIVERY_MODES:
            raise ValueError(
                f"Unknown delivery mode '{v}'. Expected one of {', '.join(DELIVERY_MODES)}"
            )
        return mode
