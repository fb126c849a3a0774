from marshmallow import EXCLUDE, Schema, ValidationError, fields, pre_load, validate, validates, validates_schema

from models.schemas.common import norm_email, norm_text, validate_password_strength
from models.user import Role


class _Input(Schema):
    class Meta:
        unknown = EXCLUDE


class RegisterSchema(_Input):
    name = fields.String(required=True, validate=validate.Length(min=1, max=255))
    email = fields.Email(required=True, validate=validate.Length(max=255))
    password = fields.String(required=True, load_only=True)

    @pre_load
    def normalize(self, data, **kwargs):
        if isinstance(data, dict):
            data = dict(data)
            if "email" in data:
                data["email"] = norm_email(data["email"])
            if "name" in data:
                data["name"] = norm_text(data["name"])
        return data

    @validates("password")
    def validate_password(self, value, **kwargs):
        validate_password_strength(value)


class LoginSchema(_Input):
    email = fields.Email(required=True)
    password = fields.String(required=True, load_only=True, validate=validate.Length(min=1))

    @pre_load
    def normalize(self, data, **kwargs):
        if isinstance(data, dict) and "email" in data:
            data = dict(data)
            data["email"] = norm_email(data["email"])
        return data


class RefreshTokenSchema(_Input):
    refresh_token = fields.String(
        required=True,
        data_key="refreshToken",
        validate=validate.Length(min=1, error="Refresh token is required"),
    )


class UserOutSchema(Schema):
    """Public view of a user; never includes the password hash."""

    id = fields.Integer()
    name = fields.String()
    email = fields.String()
    role = fields.Enum(Role, by_value=True)
    is_active = fields.Boolean(data_key="isActive")
    created_at = fields.DateTime(data_key="createdAt")
    updated_at = fields.DateTime(data_key="updatedAt")


class UserCreateSchema(RegisterSchema):
    """Admin-side creation; the role defaults to a plain user."""

    role = fields.Enum(Role, by_value=True, load_default=Role.USER)


class UserUpdateSchema(_Input):
    name = fields.String(validate=validate.Length(min=1, max=255))
    email = fields.Email(validate=validate.Length(max=255))
    is_active = fields.Boolean(data_key="isActive")
    role = fields.Enum(Role, by_value=True)

    @pre_load
    def normalize(self, data, **kwargs):
        if isinstance(data, dict):
            data = dict(data)
            if "email" in data:
                data["email"] = norm_email(data["email"])
            if "name" in data:
                data["name"] = norm_text(data["name"])
        return data

    @validates_schema
    def not_empty(self, data, **kwargs):
        if not data:
            raise ValidationError("Provide at least one of name, email, isActive, role.")


class UserQuerySchema(_Input):
    search = fields.String(validate=validate.Length(max=100))
    is_active = fields.Boolean(data_key="isActive")
