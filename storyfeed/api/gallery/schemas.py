# storyfeed/api/gallery/schemas.py
from marshmallow import Schema, fields


class GalleryImageSchema(Schema):
    """갤러리 이미지 응답 형식. 프론트엔드가 쓰던 필드 이름을 그대로 사용합니다."""
    id = fields.Str(attribute='image_id')
    url = fields.Str()
    category = fields.Str()
    title = fields.Str()
    uploadedBy = fields.Str(attribute='uploaded_by')
    uploaderName = fields.Str(attribute='uploader_name', allow_none=True)
    createdAt = fields.DateTime(attribute='created_at', allow_none=True)
