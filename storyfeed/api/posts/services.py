# storyfeed/api/posts/services.py
import logging
import uuid
from typing import Optional, Dict, Any, Callable, List
from firebase_admin import firestore

from storyfeed.models.post import Post, Comment, Reply
from storyfeed.utils.datetime_utils import DateTimeUtils

PostsCallback = Callable[[List[Post], Any], None]


class PostService:
    """
    게시글 Firestore 접근을 담당하는 서비스 클래스.
    댓글/답글은 별도 컬렉션 없이 게시글 문서의 'comments' 배열에 저장됩니다.
    """
    def __init__(self, db=None):
        self.db = db or firestore.client()
        self.posts_ref = self.db.collection('posts')

    def create_post(self, post_data: Dict[str, Any]) -> str:
        """새 게시글 문서를 생성하고 문서 ID를 반환합니다. 생성 시각은 서버 타임스탬프를 사용합니다."""
        try:
            doc_ref = self.posts_ref.document()
            doc_ref.set(DateTimeUtils.for_firestore({
                **post_data,
                'likes': 0,
                'likedBy': [],
                'comments': [],
                'createdAt': firestore.SERVER_TIMESTAMP,
            }))
            logging.info(f"게시글 생성 성공 (post_id: {doc_ref.id}, author: {post_data.get('authorId')})")
            return doc_ref.id
        except Exception as e:
            logging.error(f"게시글 생성 실패 (author: {post_data.get('authorId')}): {e}", exc_info=True)
            raise

    def subscribe_to_posts(self, callback: PostsCallback) -> Callable[[], None]:
        """
        최신 글 순서의 전체 게시글 컬렉션을 변경될 때마다 callback(posts, read_time)으로 전달합니다.
        반환값은 구독 해제 함수입니다.
        """
        query = self.posts_ref.order_by('createdAt', direction=firestore.Query.DESCENDING)

        def on_snapshot(docs, changes, read_time):
            posts = []
            for doc in docs:
                try:
                    posts.append(Post.from_firestore(doc.id, doc.to_dict() or {}))
                except Exception as e:
                    logging.error(f"게시글 문서 변환 실패 (post_id: {doc.id}): {e}", exc_info=True)
            callback(posts, read_time)

        watch = query.on_snapshot(on_snapshot)
        return watch.unsubscribe

    def delete_post(self, post_id: str) -> None:
        self.posts_ref.document(post_id).delete()
        logging.info(f"게시글 삭제 완료 (post_id: {post_id})")

    # ------------------------------------------------------------------
    # 좋아요 (트랜잭션 내에서 likedBy를 다시 쓰고 likes = len(likedBy)로 맞춤)
    # ------------------------------------------------------------------
    def _run_in_transaction(self, post_id: str, mutate: Callable[[Dict[str, Any]], Dict[str, Any]]) -> None:
        """게시글 문서를 트랜잭션으로 읽고, mutate가 돌려준 필드로 갱신합니다."""
        transaction = self.db.transaction()
        post_ref = self.posts_ref.document(post_id)

        @firestore.transactional
        def _update_in_transaction(transaction):
            snapshot = post_ref.get(transaction=transaction)
            if not snapshot.exists:
                raise ValueError(f"게시글을 찾을 수 없습니다: {post_id}")
            transaction.update(post_ref, mutate(snapshot.to_dict() or {}))

        _update_in_transaction(transaction)

    @staticmethod
    def _toggle_member(liked_by: Optional[List[str]], user_id: str) -> List[str]:
        liked_by = list(liked_by or [])
        if user_id in liked_by:
            return [uid for uid in liked_by if uid != user_id]
        return liked_by + [user_id]

    def toggle_like(self, post_id: str, user_id: str) -> None:
        def mutate(data):
            liked_by = self._toggle_member(data.get('likedBy'), user_id)
            return {'likedBy': liked_by, 'likes': len(liked_by)}

        self._run_in_transaction(post_id, mutate)

    def toggle_comment_like(self, post_id: str, comment_id: str, user_id: str) -> None:
        def mutate(data):
            comments = []
            for comment in data.get('comments') or []:
                if comment.get('id') == comment_id:
                    liked_by = self._toggle_member(comment.get('likedBy'), user_id)
                    comment = {**comment, 'likedBy': liked_by, 'likes': len(liked_by)}
                comments.append(comment)
            return {'comments': comments}

        self._run_in_transaction(post_id, mutate)

    def toggle_reply_like(self, post_id: str, comment_id: str, reply_id: str, user_id: str) -> None:
        def mutate(data):
            comments = []
            for comment in data.get('comments') or []:
                if comment.get('id') == comment_id:
                    replies = []
                    for reply in comment.get('replies') or []:
                        if reply.get('id') == reply_id:
                            liked_by = self._toggle_member(reply.get('likedBy'), user_id)
                            reply = {**reply, 'likedBy': liked_by, 'likes': len(liked_by)}
                        replies.append(reply)
                    comment = {**comment, 'replies': replies}
                comments.append(comment)
            return {'comments': comments}

        self._run_in_transaction(post_id, mutate)

    # ------------------------------------------------------------------
    # 댓글 / 답글
    # ------------------------------------------------------------------
    def add_comment(self, post_id: str, comment: Dict[str, Any]) -> str:
        """댓글을 게시글의 comments 배열 끝에 추가하고 생성된 댓글 ID를 반환합니다."""
        new_comment = Comment(
            comment_id=str(uuid.uuid4()),
            author=comment.get('author') or 'Anonymous',
            text=comment['text'],
            author_id=comment.get('authorId'),
            time=DateTimeUtils.now(),
        )
        self.posts_ref.document(post_id).update({
            'comments': firestore.ArrayUnion([new_comment.to_firestore()])
        })
        logging.info(f"댓글 추가 완료 (post_id: {post_id}, comment_id: {new_comment.comment_id})")
        return new_comment.comment_id

    def add_reply(self, post_id: str, comment_id: str, reply: Dict[str, Any]) -> str:
        """답글을 해당 댓글의 replies 배열 끝에 추가하고 생성된 답글 ID를 반환합니다."""
        new_reply = Reply(
            reply_id=str(uuid.uuid4()),
            author=reply.get('author') or 'Anonymous',
            text=reply['text'],
            author_id=reply.get('authorId'),
            time=DateTimeUtils.now(),
        )

        def mutate(data):
            comments = []
            found = False
            for existing in data.get('comments') or []:
                if existing.get('id') == comment_id:
                    found = True
                    existing = {**existing, 'replies': list(existing.get('replies') or []) + [new_reply.to_firestore()]}
                comments.append(existing)
            if not found:
                raise ValueError(f"답글을 달 댓글을 찾을 수 없습니다: {comment_id}")
            return {'comments': comments}

        self._run_in_transaction(post_id, mutate)
        logging.info(f"답글 추가 완료 (post_id: {post_id}, comment_id: {comment_id}, reply_id: {new_reply.reply_id})")
        return new_reply.reply_id
