# storyfeed/models/user.py
from dataclasses import dataclass
from typing import Optional

@dataclass(frozen=True)
class Viewer:
    """
    현재 로그인한 사용자(viewer) 정보.
    Firebase Auth 계정에서 가져온 값으로, Firestore에는 저장되지 않습니다.
    """
    uid: str
    email: Optional[str] = None
    display_name: Optional[str] = None
    photo_url: Optional[str] = None

    @property
    def name(self) -> str:
        """게시글/댓글 작성자 표시 이름. displayName -> email -> 'User' 순서로 사용합니다."""
        return self.display_name or self.email or 'User'

    def to_dict(self) -> dict:
        return {
            'uid': self.uid,
            'email': self.email,
            'displayName': self.display_name,
            'photoURL': self.photo_url,
        }
