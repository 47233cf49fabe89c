# storyfeed/services/feed_store.py
"""
게시글 피드의 로컬 상태를 관리하는 Reconciling Store.

- 사용자 액션(좋아요, 댓글, 답글, 삭제 등)을 받아 필요한 경우 로컬 상태를 즉시(낙관적으로) 변경하고,
  실제 Firestore 호출은 단일 워커 executor에서 호출 순서대로 실행합니다.
- Firestore 실시간 구독으로 전달되는 전체 스냅샷을 받아 로컬 상태를 통째로 교체하되,
  화면 전용 필드(show_comments, error)는 post id 기준으로 유지합니다.
- 모든 낙관적 좋아요 변경(게시글/댓글/답글)은 대상 엔티티의 pre-image(LikeState)를 기록해 두었다가
  백엔드 호출이 실패하면 그 pre-image로 되돌립니다.
"""
import logging
import threading
from concurrent.futures import Executor, Future, ThreadPoolExecutor
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from storyfeed.models.post import LikeState, MutationResult, Post, PostDraft, PostView
from storyfeed.models.user import Viewer
from storyfeed.utils.text_utils import POST_WORD_LIMIT, author_handle, author_initials, is_blank, is_over_limit

logger = logging.getLogger(__name__)

LOGIN_REQUIRED = "Please login to continue"
POST_UNAVAILABLE = "This post is no longer available"
NOT_POST_AUTHOR = "You can only delete your own posts"
LIKE_FAILED = "Failed to update like. Please try again."
COMMENT_FAILED = "Failed to add comment"
REPLY_FAILED = "Failed to add reply"
DELETE_FAILED = "Failed to delete post"
PUBLISH_FAILED = "Failed to publish your post. Please try again."

Listener = Callable[[Tuple[PostView, ...]], None]


@dataclass
class _LocalState:
    """스냅샷에 의해 덮어써지지 않는 화면 전용 필드 (post id 기준 side table)."""
    show_comments: bool = False
    error: Optional[str] = None


@dataclass(frozen=True)
class _LikeTarget:
    """좋아요 토글 대상 경로. comment_id/reply_id 유무로 게시글/댓글/답글을 구분합니다."""
    post_id: str
    comment_id: Optional[str] = None
    reply_id: Optional[str] = None

    def read(self, post: Post) -> Optional[LikeState]:
        if self.comment_id is None:
            return post.like_state
        comment = post.find_comment(self.comment_id)
        if comment is None:
            return None
        if self.reply_id is None:
            return comment.like_state
        reply = comment.find_reply(self.reply_id)
        return reply.like_state if reply else None

    def write(self, post: Post, state: LikeState) -> Post:
        if self.comment_id is None:
            return post.with_like_state(state)
        comment = post.find_comment(self.comment_id)
        if self.reply_id is None:
            return post.replace_comment(comment.with_like_state(state))
        reply = comment.find_reply(self.reply_id)
        return post.replace_comment(comment.replace_reply(reply.with_like_state(state)))


@dataclass(frozen=True)
class _PendingLike:
    target: _LikeTarget
    user_id: str
    before: LikeState
    after: LikeState
    generation: int  # 낙관적 변경 시점의 스냅샷 세대


class FeedStore:
    """
    게시글 컬렉션의 유일한 소유자.
    읽기 측(화면, API)은 불변 PostView 튜플만 받으며, 모든 변경은 이 클래스의 메서드를 거쳐야 합니다.
    """

    def __init__(self, post_service, executor: Optional[Executor] = None, word_limit: int = POST_WORD_LIMIT):
        self._post_service = post_service
        self._executor = executor or ThreadPoolExecutor(max_workers=1, thread_name_prefix='storyfeed-mutation')
        self._word_limit = word_limit
        self._lock = threading.RLock()
        self._posts: Dict[str, Post] = {}  # 삽입 순서 = 스냅샷 순서 (최신 글 먼저)
        self._local: Dict[str, _LocalState] = {}
        self._viewer: Optional[Viewer] = None
        self._last_read_time: Optional[datetime] = None
        self._generation = 0  # 스냅샷이 반영될 때마다 증가
        self._loaded = False
        self._listeners: List[Listener] = []

    # ------------------------------------------------------------------
    # 읽기
    # ------------------------------------------------------------------
    @property
    def viewer(self) -> Optional[Viewer]:
        return self._viewer

    @property
    def loading(self) -> bool:
        """첫 스냅샷을 받기 전까지 True."""
        return not self._loaded

    @property
    def posts(self) -> Tuple[PostView, ...]:
        with self._lock:
            return tuple(self._view(post) for post in self._posts.values())

    def get_post(self, post_id: str) -> Optional[PostView]:
        with self._lock:
            post = self._posts.get(post_id)
            return self._view(post) if post else None

    def search(self, query: str) -> Tuple[PostView, ...]:
        """본문 또는 작성자 이름에 검색어가 포함된 게시글 (대소문자 무시). 빈 검색어는 결과 없음."""
        if is_blank(query):
            return ()
        needle = query.strip().lower()
        return tuple(
            view for view in self.posts
            if needle in view.post.content.lower() or needle in view.post.author.name.lower()
        )

    def posts_by_author(self, author_id: Optional[str] = None, username: Optional[str] = None) -> Tuple[PostView, ...]:
        """
        프로필 화면용 필터.
        - author_id가 주어지면 authorId로만 비교 (본인 프로필)
        - 아니면 '@username' 핸들 또는 작성자 이름으로 비교
        """
        def matches(post: Post) -> bool:
            if author_id is not None:
                return post.author.user_id == author_id
            return post.author.username == f"@{username}" or post.author.name == username

        return tuple(view for view in self.posts if matches(view.post))

    def _view(self, post: Post) -> PostView:
        local = self._local.get(post.post_id) or _LocalState()
        liked = self._viewer is not None and self._viewer.uid in post.liked_by
        return PostView(post=post, liked=liked, show_comments=local.show_comments, error=local.error)

    # ------------------------------------------------------------------
    # 구독자 알림
    # ------------------------------------------------------------------
    def add_listener(self, listener: Listener) -> Callable[[], None]:
        with self._lock:
            self._listeners.append(listener)

        def remove():
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)
        return remove

    def _notify(self):
        with self._lock:
            views = tuple(self._view(post) for post in self._posts.values())
            listeners = list(self._listeners)
        for listener in listeners:
            try:
                listener(views)
            except Exception as e:
                logger.error(f"피드 리스너 호출 중 오류 발생: {e}", exc_info=True)

    # ------------------------------------------------------------------
    # viewer / 스냅샷 병합
    # ------------------------------------------------------------------
    def set_viewer(self, viewer: Optional[Viewer]):
        """viewer가 바뀌면 liked는 다음 읽기부터 새 viewer 기준으로 계산됩니다."""
        with self._lock:
            self._viewer = viewer
            for local in self._local.values():
                local.error = None
        self._notify()

    def apply_snapshot(self, posts: Sequence[Post], read_time: Optional[datetime] = None) -> bool:
        """
        Firestore가 전달한 전체 게시글 컬렉션으로 로컬 상태를 교체합니다.
        - 영속 필드(likes, likedBy, comments 등)는 항상 스냅샷 값이 이깁니다.
        - show_comments/error는 post id 기준으로 유지되며, 사라진 게시글의 로컬 상태는 함께 제거됩니다.
        - read_time이 마지막으로 반영한 스냅샷보다 오래된 경우 무시합니다.
        """
        with self._lock:
            if read_time is not None and self._last_read_time is not None and read_time < self._last_read_time:
                logger.warning(f"오래된 스냅샷을 무시합니다 (read_time: {read_time}, last: {self._last_read_time})")
                return False

            incoming: Dict[str, Post] = {}
            for post in posts:
                if post.likes != len(post.liked_by):
                    post = post.with_like_state(LikeState(len(post.liked_by), post.liked_by))
                incoming[post.post_id] = post

            self._posts = incoming
            self._local = {post_id: local for post_id, local in self._local.items() if post_id in incoming}
            if read_time is not None:
                self._last_read_time = read_time
            self._loaded = True
            self._generation += 1

        logger.debug(f"스냅샷 반영 완료: {len(incoming)}개 게시글")
        self._notify()
        return True

    def reset(self):
        """구독이 교체될 때 호출됩니다. 다음 스냅샷까지 loading 상태로 돌아갑니다."""
        with self._lock:
            self._posts = {}
            self._local = {}
            self._last_read_time = None
            self._loaded = False
            self._generation += 1
        self._notify()

    # ------------------------------------------------------------------
    # 로컬 전용 변경
    # ------------------------------------------------------------------
    def toggle_comments(self, post_id: str) -> bool:
        """댓글 영역 펼침 상태를 토글합니다. 백엔드 호출 없음. 알 수 없는 게시글이면 False."""
        with self._lock:
            if post_id not in self._posts:
                return False
            local = self._local.setdefault(post_id, _LocalState())
            local.show_comments = not local.show_comments
            shown = local.show_comments
        self._notify()
        return shown

    def _set_error(self, post_id: str, message: Optional[str]) -> bool:
        """게시글의 인라인 오류 메시지를 설정/해제합니다. 값이 바뀌었으면 True."""
        with self._lock:
            if post_id not in self._posts:
                return False
            local = self._local.get(post_id)
            if message is None:
                if local is None or local.error is None:
                    return False
                local.error = None
                return True
            self._local.setdefault(post_id, _LocalState()).error = message
            return True

    def _clear_error(self, post_id: str):
        if self._set_error(post_id, None):
            self._notify()

    # ------------------------------------------------------------------
    # 낙관적 좋아요 변경 (게시글/댓글/답글 공통)
    # ------------------------------------------------------------------
    def _apply_like(self, target: _LikeTarget, user_id: str) -> Optional[_PendingLike]:
        with self._lock:
            post = self._posts.get(target.post_id)
            if post is None:
                return None
            before = target.read(post)
            if before is None:
                return None
            after = before.toggled(user_id)
            self._posts[target.post_id] = target.write(post, after)
            self._set_error(target.post_id, None)
            pending = _PendingLike(target=target, user_id=user_id, before=before, after=after,
                                   generation=self._generation)
        self._notify()
        return pending

    def _rollback(self, pending: _PendingLike) -> bool:
        """
        실패한 낙관적 변경을 되돌립니다.
        - 그 사이 스냅샷이 반영됐다면 서버 값이 이미 기준이므로 되돌리지 않습니다.
        - 대상이 낙관적으로 적용한 값 그대로면 pre-image를 그대로 복원합니다.
        - 같은 대상에 대한 이후 로컬 토글이 값을 바꿨다면 이 호출의 토글만 한 번 더 뒤집습니다.
          (연속 토글이 모두 실패해도 원래 상태로 돌아감)
        """
        with self._lock:
            if self._generation != pending.generation:
                logger.info(f"롤백 생략: 이후 스냅샷이 대상을 교체함 ({pending.target})")
                return False
            post = self._posts.get(pending.target.post_id)
            current = pending.target.read(post) if post else None
            if current is None:
                return False
            if current == pending.after:
                restored = pending.before
            else:
                restored = current.toggled(pending.user_id)
            self._posts[pending.target.post_id] = pending.target.write(post, restored)
        logger.info(f"낙관적 좋아요 변경 롤백 완료 ({pending.target})")
        return True

    def _toggle_like(self, target: _LikeTarget, call: Callable[[str], Any]) -> Future:
        viewer = self._viewer
        if viewer is None:
            return _completed(MutationResult.failed(LOGIN_REQUIRED, target.post_id))
        pending = self._apply_like(target, viewer.uid)
        if pending is None:
            return _completed(MutationResult.failed(POST_UNAVAILABLE, target.post_id))
        return self._submit(target.post_id, lambda: call(viewer.uid), LIKE_FAILED, pending)

    def toggle_like(self, post_id: str) -> Future:
        return self._toggle_like(
            _LikeTarget(post_id),
            lambda uid: self._post_service.toggle_like(post_id, uid),
        )

    def toggle_comment_like(self, post_id: str, comment_id: str) -> Future:
        return self._toggle_like(
            _LikeTarget(post_id, comment_id),
            lambda uid: self._post_service.toggle_comment_like(post_id, comment_id, uid),
        )

    def toggle_reply_like(self, post_id: str, comment_id: str, reply_id: str) -> Future:
        return self._toggle_like(
            _LikeTarget(post_id, comment_id, reply_id),
            lambda uid: self._post_service.toggle_reply_like(post_id, comment_id, reply_id, uid),
        )

    # ------------------------------------------------------------------
    # 낙관적 변경이 없는 작업 (다음 스냅샷에서 반영됨)
    # ------------------------------------------------------------------
    def _author_name(self, author: Optional[str]) -> str:
        if author:
            return author
        return self._viewer.name if self._viewer else 'Anonymous'

    def add_comment(self, post_id: str, text: str, author: Optional[str] = None) -> Future:
        if is_blank(text):
            return _completed(MutationResult.noop(post_id))
        comment = {
            'author': self._author_name(author),
            'text': text.strip(),
            'authorId': self._viewer.uid if self._viewer else None,
        }
        self._clear_error(post_id)
        return self._submit(post_id, lambda: self._post_service.add_comment(post_id, comment), COMMENT_FAILED)

    def add_reply(self, post_id: str, comment_id: str, text: str, author: Optional[str] = None) -> Future:
        if is_blank(text):
            return _completed(MutationResult.noop(post_id))
        reply = {
            'author': self._author_name(author),
            'text': text.strip(),
            'authorId': self._viewer.uid if self._viewer else None,
        }
        self._clear_error(post_id)
        return self._submit(post_id, lambda: self._post_service.add_reply(post_id, comment_id, reply), REPLY_FAILED)

    def delete_post(self, post_id: str) -> Future:
        viewer = self._viewer
        if viewer is None:
            return _completed(MutationResult.failed(LOGIN_REQUIRED, post_id))
        with self._lock:
            post = self._posts.get(post_id)
        if post is None:
            return _completed(MutationResult.failed(POST_UNAVAILABLE, post_id))
        if post.author.user_id != viewer.uid:
            return _completed(MutationResult.failed(NOT_POST_AUTHOR, post_id))
        self._clear_error(post_id)
        return self._submit(post_id, lambda: self._post_service.delete_post(post_id), DELETE_FAILED)

    def validate_draft(self, draft: PostDraft) -> Optional[str]:
        """게시 불가 사유를 반환합니다. 게시 가능하면 None."""
        if self._viewer is None:
            return "Please login to create posts"
        if not draft.image:
            return "Please select an image"
        if is_blank(draft.content):
            return "Please write something about your image"
        if is_over_limit(draft.content, self._word_limit):
            return f"Posts are limited to {self._word_limit} words"
        return None

    def create_post(self, draft: PostDraft) -> Future:
        """
        새 게시글을 생성합니다. 로컬에 미리 삽입하지 않으며, 다음 스냅샷에서 나타납니다.
        성공 결과의 post_id에는 Firestore가 발급한 문서 ID가 담깁니다.
        """
        problem = self.validate_draft(draft)
        if problem:
            return _completed(MutationResult.failed(problem))

        viewer = self._viewer
        data = {
            'authorName': viewer.name,
            'authorAvatar': author_initials(viewer.name),
            'authorUsername': author_handle(viewer.email),
            'authorId': viewer.uid,
            'image': draft.image,
            'content': draft.content,
        }

        def _run() -> MutationResult:
            try:
                new_id = self._post_service.create_post(data)
            except Exception as e:
                logger.error(f"게시글 생성 실패 (author: {viewer.uid}): {e}", exc_info=True)
                return MutationResult.failed(PUBLISH_FAILED)
            logger.info(f"게시글 생성 완료 (post_id: {new_id})")
            return MutationResult.ok(new_id)

        return self._executor.submit(_run)

    # ------------------------------------------------------------------
    # 백엔드 호출
    # ------------------------------------------------------------------
    def _submit(self, post_id: str, call: Callable[[], Any], failure_message: str,
                pending: Optional[_PendingLike] = None) -> Future:
        """
        백엔드 호출을 executor에 넘기고 즉시 Future를 반환합니다.
        실패는 여기서 모두 잡아 MutationResult로 변환하며, 낙관적 변경이 있으면 롤백합니다.
        """
        def _run() -> MutationResult:
            try:
                call()
            except Exception as e:
                logger.error(f"피드 변경 요청 실패 (post_id: {post_id}): {e}", exc_info=True)
                if pending is not None:
                    self._rollback(pending)
                self._set_error(post_id, failure_message)
                self._notify()
                return MutationResult.failed(failure_message, post_id)
            return MutationResult.ok(post_id)

        return self._executor.submit(_run)

    def close(self):
        self._executor.shutdown(wait=True)


def _completed(result: MutationResult) -> Future:
    future: Future = Future()
    future.set_result(result)
    return future
