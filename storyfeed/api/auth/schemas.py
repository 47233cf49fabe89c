# storyfeed/api/auth/schemas.py
from marshmallow import Schema, fields, validate


class SignUpSchema(Schema):
    email = fields.Str(required=True)
    password = fields.Str(required=True, load_only=True)
    username = fields.Str(required=True, validate=validate.Length(min=1, max=50))


class SignInSchema(Schema):
    email = fields.Str(required=True)
    password = fields.Str(required=True, load_only=True)


class PasswordResetSchema(Schema):
    email = fields.Str(required=True, error_messages={"required": "Please enter your email address"})


class ViewerSchema(Schema):
    uid = fields.Str()
    email = fields.Str(allow_none=True)
    displayName = fields.Str(attribute='display_name', allow_none=True)
    photoURL = fields.Str(attribute='photo_url', allow_none=True)
