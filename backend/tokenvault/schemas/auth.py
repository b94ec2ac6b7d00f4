"""Authentication-related Marshmallow schemas."""

from __future__ import annotations

from marshmallow import Schema, fields, validate

# Opaque refresh values are 86 url-safe chars; leave headroom, reject junk early
REFRESH_TOKEN_FIELD = {"required": True, "validate": validate.Length(min=1, max=256)}


class LoginSchema(Schema):
    """Input payload for authenticating a user."""

    email = fields.Email(required=True, validate=validate.Length(max=254))
    password = fields.String(required=True, validate=validate.Length(min=1, max=128))


class RefreshSchema(Schema):
    """Input payload for rotating a refresh token."""

    refresh_token = fields.String(**REFRESH_TOKEN_FIELD)


class LogoutSchema(Schema):
    """Input payload for logout; an empty body logs out every session."""

    refresh_token = fields.String(load_default=None, validate=validate.Length(min=1, max=256))
    all_sessions = fields.Boolean(load_default=False)


class RevokeTokenSchema(Schema):
    """Input payload for revoking one of the caller's refresh tokens."""

    refresh_token = fields.String(**REFRESH_TOKEN_FIELD)


class WhoAmISchema(Schema):
    """Response payload exposing identity details for the authenticated user."""

    id = fields.String(required=True, attribute="subject_id")
    name = fields.String(required=True)
    email = fields.Email(required=True)


class TokenPairSchema(Schema):
    """Response payload for login and refresh."""

    access_token = fields.String(required=True)
    refresh_token = fields.String(required=True)
    token_type = fields.String(dump_default="bearer")
    expires_in = fields.Integer(required=True)
    refresh_expires_at = fields.AwareDateTime(required=True)
    user = fields.Nested(WhoAmISchema, required=True)


class RevokedSchema(Schema):
    """Response payload for logout and revoke-token."""

    revoked = fields.Integer(required=True)
