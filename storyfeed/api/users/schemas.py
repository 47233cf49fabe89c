# storyfeed/api/users/schemas.py
from marshmallow import Schema, fields, validate, validates_schema, ValidationError


class ProfileUpdateSchema(Schema):
    """PATCH /api/users/me/profile 요청. 전달된 필드만 병합 저장됩니다."""
    displayName = fields.Str(validate=validate.Length(min=1, max=50))
    bio = fields.Str(validate=validate.Length(max=300))
    photoURL = fields.URL(allow_none=True)

    @validates_schema
    def validate_not_empty(self, data, **kwargs):
        if not data:
            raise ValidationError("수정할 필드가 없습니다.")
