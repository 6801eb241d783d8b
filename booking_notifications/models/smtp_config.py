"""SMTP configuration model.

Defines Pydantic models for SMTP server configuration and for the optional
per-business credentials used when a salon sends with its own mailbox.

Author: Odiseo
Created: 2026-03-02
Version: 1.0.0
"""

from pydantic import BaseModel, EmailStr, Field, field_validator


class SMTPConfig(BaseModel):
    """SMTP server configuration model.

    Attributes:
        host: SMTP server hostname.
        port: SMTP server port (1-65535).
        username: SMTP authentication username (optional).
        password: SMTP authentication password.
        from_email: Default sender email address.
        from_name: Default sender display name.
        use_tls: Whether to use TLS encryption.
        timeout: Connection timeout in seconds.
    """

    host: str = Field(..., min_length=1, description="SMTP server hostname")
    port: int = Field(..., ge=1, le=65535, description="SMTP server port")
    username: str = Field(default="", description="SMTP authentication username")
    password: str = Field(..., description="SMTP authentication password")
    from_email: EmailStr = Field(..., description="Sender email address")
    from_name: str = Field(default="Appointend", description="Sender display name")
    use_tls: bool = Field(default=True, description="Use TLS encryption")
    timeout: int = Field(
        default=30, ge=5, le=120, description="Connection timeout (seconds)"
    )

    @field_validator("password")
    @classmethod
    def validate_password(cls, v: str) -> str:
        """Validate password is not empty.

        Raises:
            ValueError: If password is empty or whitespace.
        """
        if not v or not v.strip():
            raise ValueError("SMTP password cannot be empty")
        return v


class SMTPCredentials(BaseModel):
    """Mailbox credentials overriding the platform login for one message."""

    username: str = Field(..., min_length=1, description="Mailbox login")
    password: str = Field(..., min_length=1, description="Mailbox password")
