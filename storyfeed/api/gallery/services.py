# storyfeed/api/gallery/services.py
import logging
from typing import Any, Callable, Dict, List, Optional
from firebase_admin import firestore

from storyfeed.models.gallery import GalleryImage
from storyfeed.utils.datetime_utils import DateTimeUtils


class GalleryService:
    """
    갤러리 이미지 Firestore 접근을 담당하는 서비스 클래스.
    실제 이미지 파일은 StorageService가 업로드하고, 여기에는 공개 URL과 메타데이터만 저장합니다.
    """
    def __init__(self, db=None):
        self.db = db or firestore.client()
        self.gallery_ref = self.db.collection('gallery')

    def add_image(self, image_data: Dict[str, Any]) -> str:
        doc_ref = self.gallery_ref.document()
        doc_ref.set(DateTimeUtils.for_firestore({**image_data, 'createdAt': firestore.SERVER_TIMESTAMP}))
        logging.info(f"갤러리 이미지 등록 완료 (image_id: {doc_ref.id}, owner: {image_data.get('uploadedBy')})")
        return doc_ref.id

    def register_upload(self, url: str, owner_id: str, owner_name: Optional[str]) -> str:
        """업로드된 이미지를 'uploaded' 카테고리로 갤러리에 등록합니다."""
        return self.add_image({
            'url': url,
            'category': 'uploaded',
            'title': 'My Upload',
            'uploadedBy': owner_id,
            'uploaderName': owner_name,
        })

    def get_image(self, image_id: str) -> Optional[GalleryImage]:
        doc = self.gallery_ref.document(image_id).get()
        if not doc.exists:
            return None
        return GalleryImage.from_firestore(doc.id, doc.to_dict() or {})

    def delete_image(self, image_id: str, owner_id: Optional[str] = None) -> bool:
        """
        갤러리 이미지를 삭제합니다.
        owner_id가 주어지면 업로더 본인인지 확인하고, 아니면 False를 반환합니다.
        """
        if owner_id is not None:
            image = self.get_image(image_id)
            if image is None or image.uploaded_by != owner_id:
                return False
        self.gallery_ref.document(image_id).delete()
        logging.info(f"갤러리 이미지 삭제 완료 (image_id: {image_id})")
        return True

    def subscribe_to_gallery(self, owner_id: str, callback: Callable[[List[GalleryImage], Any], None]) -> Callable[[], None]:
        """특정 사용자가 업로드한 이미지 목록을 최신 순으로 실시간 전달합니다."""
        query = (
            self.gallery_ref
            .where('uploadedBy', '==', owner_id)
            .order_by('createdAt', direction=firestore.Query.DESCENDING)
        )

        def on_snapshot(docs, changes, read_time):
            images = [GalleryImage.from_firestore(doc.id, doc.to_dict() or {}) for doc in docs]
            callback(images, read_time)

        watch = query.on_snapshot(on_snapshot)
        return watch.unsubscribe
