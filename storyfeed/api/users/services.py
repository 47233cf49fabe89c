# storyfeed/api/users/services.py
import logging
from typing import Any, Dict, Optional
from firebase_admin import firestore

from storyfeed.utils.datetime_utils import DateTimeUtils


class ProfileService:
    """사용자 프로필(Firestore 'users' 컬렉션) 조회/수정을 담당합니다."""

    def __init__(self, db=None):
        self.db = db or firestore.client()
        self.users_ref = self.db.collection('users')

    def get_profile(self, uid: str) -> Optional[Dict[str, Any]]:
        doc = self.users_ref.document(uid).get()
        return doc.to_dict() if doc.exists else None

    def update_profile(self, uid: str, data: Dict[str, Any]) -> None:
        """전달된 필드만 병합하여 저장합니다 (문서가 없으면 생성)."""
        try:
            self.users_ref.document(uid).set(DateTimeUtils.for_firestore({**data, 'updatedAt': DateTimeUtils.now()}), merge=True)
            logging.info(f"프로필 업데이트 완료 (uid: {uid}, fields: {sorted(data.keys())})")
        except Exception as e:
            logging.error(f"프로필 업데이트 실패 (uid: {uid}): {e}", exc_info=True)
            raise

    def get_photo_urls(self, uids) -> Dict[str, Optional[str]]:
        """작성자 아바타 표시용: 여러 사용자의 photoURL을 한 번에 조회합니다."""
        photos = {}
        for uid in set(uids):
            profile = self.get_profile(uid)
            photos[uid] = (profile or {}).get('photoURL')
        return photos
