# storyfeed/models/gallery.py
from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Dict, Any

from storyfeed.utils.datetime_utils import DateTimeUtils

@dataclass(frozen=True)
class GalleryImage:
    """
    Firestore 'gallery' 컬렉션의 문서 구조를 정의하는 데이터클래스.
    """
    image_id: str
    url: str
    uploaded_by: str
    uploader_name: Optional[str] = None
    category: str = 'uploaded'
    title: str = 'My Upload'
    created_at: Optional[datetime] = None

    @classmethod
    def from_firestore(cls, image_id: str, data: Dict[str, Any]) -> "GalleryImage":
        return cls(
            image_id=image_id,
            url=data.get('url') or '',
            uploaded_by=data.get('uploadedBy') or '',
            uploader_name=data.get('uploaderName'),
            category=data.get('category') or 'uploaded',
            title=data.get('title') or 'My Upload',
            created_at=DateTimeUtils.coerce_datetime(data.get('createdAt')),
        )
