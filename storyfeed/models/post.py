# storyfeed/models/post.py
import logging
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Optional, Tuple, Dict, Any, Iterable

from storyfeed.utils.datetime_utils import DateTimeUtils


def _unique_ids(values: Optional[Iterable[str]]) -> Tuple[str, ...]:
    """순서를 유지하면서 중복된 user id를 제거합니다."""
    seen = []
    for value in values or ():
        if value not in seen:
            seen.append(value)
    return tuple(seen)


def _normalized_likes(entity_kind: str, entity_id: str, stored: Any, liked_by: Tuple[str, ...]) -> int:
    """
    likes 카운터는 항상 likedBy 크기와 같아야 합니다.
    저장된 값이 어긋나 있으면 경고를 남기고 likedBy 기준으로 맞춥니다.
    """
    if stored is not None and int(stored) != len(liked_by):
        logging.warning(
            f"{entity_kind} likes 불일치 (id: {entity_id}, likes: {stored}, likedBy: {len(liked_by)}) - likedBy 기준으로 보정"
        )
    return len(liked_by)


@dataclass(frozen=True)
class LikeState:
    """좋아요 대상(게시글/댓글/답글)의 영속 필드 묶음. 낙관적 변경의 pre-image로 사용됩니다."""
    likes: int = 0
    liked_by: Tuple[str, ...] = ()

    def toggled(self, user_id: str) -> "LikeState":
        if user_id in self.liked_by:
            liked_by = tuple(uid for uid in self.liked_by if uid != user_id)
        else:
            liked_by = self.liked_by + (user_id,)
        return LikeState(likes=len(liked_by), liked_by=liked_by)


@dataclass(frozen=True)
class Author:
    """Post 문서에 비정규화되어 저장되는 작성자 정보."""
    user_id: Optional[str]
    name: str
    avatar: Optional[str] = None    # 이니셜 또는 이미지 URL
    username: Optional[str] = None  # '@handle'


@dataclass(frozen=True)
class Reply:
    reply_id: str
    author: str
    text: str
    author_id: Optional[str] = None
    time: Optional[datetime] = None
    likes: int = 0
    liked_by: Tuple[str, ...] = ()

    @property
    def like_state(self) -> LikeState:
        return LikeState(self.likes, self.liked_by)

    def with_like_state(self, state: LikeState) -> "Reply":
        return replace(self, likes=state.likes, liked_by=state.liked_by)

    @classmethod
    def from_firestore(cls, data: Dict[str, Any]) -> "Reply":
        reply_id = str(data.get('id'))
        liked_by = _unique_ids(data.get('likedBy'))
        return cls(
            reply_id=reply_id,
            author=data.get('author') or 'Anonymous',
            text=data.get('text') or '',
            author_id=data.get('authorId'),
            time=DateTimeUtils.coerce_datetime(data.get('time')),
            likes=_normalized_likes('reply', reply_id, data.get('likes'), liked_by),
            liked_by=liked_by,
        )

    def to_firestore(self) -> Dict[str, Any]:
        return {
            'id': self.reply_id,
            'author': self.author,
            'authorId': self.author_id,
            'text': self.text,
            'time': DateTimeUtils.to_iso_string(self.time) if self.time else None,
            'likes': len(self.liked_by),
            'likedBy': list(self.liked_by),
        }


@dataclass(frozen=True)
class Comment:
    comment_id: str
    author: str
    text: str
    author_id: Optional[str] = None
    time: Optional[datetime] = None
    likes: int = 0
    liked_by: Tuple[str, ...] = ()
    replies: Tuple[Reply, ...] = ()

    @property
    def like_state(self) -> LikeState:
        return LikeState(self.likes, self.liked_by)

    def with_like_state(self, state: LikeState) -> "Comment":
        return replace(self, likes=state.likes, liked_by=state.liked_by)

    def find_reply(self, reply_id: str) -> Optional[Reply]:
        return next((r for r in self.replies if r.reply_id == reply_id), None)

    def replace_reply(self, updated: Reply) -> "Comment":
        replies = tuple(updated if r.reply_id == updated.reply_id else r for r in self.replies)
        return replace(self, replies=replies)

    @classmethod
    def from_firestore(cls, data: Dict[str, Any]) -> "Comment":
        comment_id = str(data.get('id'))
        liked_by = _unique_ids(data.get('likedBy'))
        return cls(
            comment_id=comment_id,
            author=data.get('author') or 'Anonymous',
            text=data.get('text') or '',
            author_id=data.get('authorId'),
            time=DateTimeUtils.coerce_datetime(data.get('time')),
            likes=_normalized_likes('comment', comment_id, data.get('likes'), liked_by),
            liked_by=liked_by,
            replies=tuple(Reply.from_firestore(r) for r in data.get('replies') or []),
        )

    def to_firestore(self) -> Dict[str, Any]:
        return {
            'id': self.comment_id,
            'author': self.author,
            'authorId': self.author_id,
            'text': self.text,
            'time': DateTimeUtils.to_iso_string(self.time) if self.time else None,
            'likes': len(self.liked_by),
            'likedBy': list(self.liked_by),
            'replies': [r.to_firestore() for r in self.replies],
        }


@dataclass(frozen=True)
class Post:
    """
    Firestore 'posts' 컬렉션의 문서 구조를 정의하는 데이터클래스.
    liked / showComments 같은 화면 전용 필드는 여기에 두지 않습니다 (PostView 참고).
    """
    post_id: str
    author: Author
    image: str
    content: str
    created_at: Optional[datetime] = None
    likes: int = 0
    liked_by: Tuple[str, ...] = ()
    comments: Tuple[Comment, ...] = ()

    @property
    def like_state(self) -> LikeState:
        return LikeState(self.likes, self.liked_by)

    def with_like_state(self, state: LikeState) -> "Post":
        return replace(self, likes=state.likes, liked_by=state.liked_by)

    def find_comment(self, comment_id: str) -> Optional[Comment]:
        return next((c for c in self.comments if c.comment_id == comment_id), None)

    def replace_comment(self, updated: Comment) -> "Post":
        comments = tuple(updated if c.comment_id == updated.comment_id else c for c in self.comments)
        return replace(self, comments=comments)

    @classmethod
    def from_firestore(cls, post_id: str, data: Dict[str, Any]) -> "Post":
        liked_by = _unique_ids(data.get('likedBy'))
        return cls(
            post_id=post_id,
            author=Author(
                user_id=data.get('authorId'),
                name=data.get('authorName') or 'User',
                avatar=data.get('authorAvatar'),
                username=data.get('authorUsername'),
            ),
            image=data.get('image') or '',
            content=data.get('content') or '',
            created_at=DateTimeUtils.coerce_datetime(data.get('createdAt')),
            likes=_normalized_likes('post', post_id, data.get('likes'), liked_by),
            liked_by=liked_by,
            comments=tuple(Comment.from_firestore(c) for c in data.get('comments') or []),
        )


@dataclass(frozen=True)
class PostDraft:
    """새 게시글 작성 요청. 작성자 정보는 현재 viewer로부터 채워집니다."""
    image: Optional[str]
    content: str


@dataclass(frozen=True)
class PostView:
    """
    화면에 전달되는 읽기 전용 게시글 뷰.
    - liked: 현재 viewer가 likedBy에 포함되어 있는지 (매번 계산)
    - show_comments / error: 로컬 전용 필드, 스냅샷 병합 후에도 post id 기준으로 유지
    """
    post: Post
    liked: bool = False
    show_comments: bool = False
    error: Optional[str] = None

    @property
    def post_id(self) -> str:
        return self.post.post_id

    @property
    def likes(self) -> int:
        return self.post.likes


@dataclass(frozen=True)
class MutationResult:
    """스토어 변경 작업의 결과. 실패 시 error에 사용자에게 보여줄 메시지가 담깁니다."""
    success: bool
    error: Optional[str] = None
    skipped: bool = False
    post_id: Optional[str] = field(default=None, compare=False)

    @classmethod
    def ok(cls, post_id: Optional[str] = None) -> "MutationResult":
        return cls(success=True, post_id=post_id)

    @classmethod
    def failed(cls, error: str, post_id: Optional[str] = None) -> "MutationResult":
        return cls(success=False, error=error, post_id=post_id)

    @classmethod
    def noop(cls, post_id: Optional[str] = None) -> "MutationResult":
        return cls(success=False, skipped=True, post_id=post_id)
