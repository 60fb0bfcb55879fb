# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Access token verification with python-jose.

The records core never issues tokens. It checks the signature, expiry and,
when configured, issuer and audience of tokens minted by the identity
service, then exposes the claims the tenant scope resolver needs: the
caller's user type and the school they act for.
"""

import logging
from typing import Literal

from jose import ExpiredSignatureError, JWTError as JoseJWTError, jwt
from pydantic import BaseModel, Field
from pydantic import ValidationError as PydanticValidationError

from src.core.config.settings import JWTSettings

logger = logging.getLogger(__name__)

TokenType = Literal["access", "refresh"]


class TokenPayload(BaseModel):
    """Claims of a verified token.

    Attributes:
        sub: User id.
        type: access or refresh.
        user_type: super_admin, system_admin, school_admin, teacher, ...
        school_id: School the user acts for; absent for platform staff.
        roles: Role codes granted within the school.
    """

    sub: str
    type: TokenType
    user_type: str | None = None
    school_id: str | None = None
    roles: list[str] = Field(default_factory=list)
    exp: int
    iat: int | None = None


class JWTError(Exception):
    """Token rejected."""


class TokenExpiredError(JWTError):
    """Token is past its exp claim."""


class InvalidTokenError(JWTError):
    """Token signature, shape or claims are wrong."""


class JWTManager:
    """Verifies tokens against one JWTSettings."""

    def __init__(self, settings: JWTSettings) -> None:
        self._settings = settings

    def decode_token(self, token: str, expected_type: TokenType | None = None) -> TokenPayload:
        """Verify token and return its claims.

        Args:
            token: Encoded JWT.
            expected_type: Reject tokens of the other type when given.

        Raises:
            TokenExpiredError: If the token has expired.
            InvalidTokenError: For any other verification failure.
        """
        settings = self._settings
        try:
            claims = jwt.decode(
                token,
                settings.secret_key.get_secret_value(),
                algorithms=[settings.algorithm],
                audience=settings.audience,
                issuer=settings.issuer,
                options={
                    "verify_aud": settings.audience is not None,
                    "leeway": settings.leeway_seconds,
                },
            )
        except ExpiredSignatureError as e:
            raise TokenExpiredError("Token has expired") from e
        except JoseJWTError as e:
            logger.warning("Token rejected: %s", e)
            raise InvalidTokenError(f"Invalid token: {e}") from e

        try:
            payload = TokenPayload.model_validate(claims)
        except PydanticValidationError as e:
            logger.warning("Token claims rejected: %s", e.errors(include_url=False))
            raise InvalidTokenError("Invalid token claims") from e

        if expected_type and payload.type != expected_type:
            raise InvalidTokenError(f"Expected {expected_type} token, got {payload.type}")
        return payload

    def verify_token(self, token: str, expected_type: TokenType | None = None) -> bool:
        """True when decode_token() would succeed."""
        try:
            self.decode_token(token, expected_type)
        except JWTError:
            return False
        return True
