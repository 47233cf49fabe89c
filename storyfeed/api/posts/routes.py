# storyfeed/api/posts/routes.py
import logging
from flask import Blueprint, request, jsonify, current_app

from storyfeed.api.posts.schemas import (
    PostCreateSchema, CommentCreateSchema, PostViewSchema, MutationResultSchema
)
from storyfeed.models.post import PostDraft

posts_bp = Blueprint('posts_bp', __name__)

MUTATION_TIMEOUT = 30  # seconds


def _store():
    return current_app.services['feed_store']


def _mutation_response(future, post_id=None):
    """
    스토어가 돌려준 Future를 기다려 결과와 현재 게시글 상태를 함께 반환합니다.
    - 실패: 422 (error에 사용자용 메시지)
    - 공백 입력 등으로 아무 것도 하지 않은 경우: 200, skipped=True
    """
    result = future.result(timeout=MUTATION_TIMEOUT)
    body = MutationResultSchema().dump(result)
    view = _store().get_post(post_id or result.post_id) if (post_id or result.post_id) else None
    body['post'] = PostViewSchema().dump(view) if view else None
    return jsonify(body), (200 if result.success or result.skipped else 422)


@posts_bp.route('', methods=['GET'])
def list_posts():
    """
    현재 피드 상태를 반환합니다.
    - ?q= 가 있으면 본문/작성자 이름 검색 결과
    - ?author_id= 또는 ?username= 이 있으면 해당 작성자의 글만
    """
    store = _store()
    query = request.args.get('q')
    author_id = request.args.get('author_id')
    username = request.args.get('username')
    if query is not None:
        views = store.search(query)
    elif author_id or username:
        views = store.posts_by_author(author_id=author_id, username=username)
    else:
        views = store.posts
    return jsonify({
        "posts": PostViewSchema(many=True).dump(views),
        "loading": store.loading,
    }), 200


@posts_bp.route('/<string:post_id>', methods=['GET'])
def get_post(post_id: str):
    view = _store().get_post(post_id)
    if not view:
        return jsonify({"error_code": "POST_NOT_FOUND", "message": "게시글을 찾을 수 없습니다."}), 404
    return jsonify(PostViewSchema().dump(view)), 200


@posts_bp.route('', methods=['POST'])
def create_post():
    """새 게시글을 작성합니다. 게시글은 다음 실시간 스냅샷에서 피드에 나타납니다."""
    data = PostCreateSchema(word_limit=current_app.config['POST_WORD_LIMIT']).load(request.get_json() or {})
    future = _store().create_post(PostDraft(image=data['image'], content=data['content']))
    result = future.result(timeout=MUTATION_TIMEOUT)
    body = MutationResultSchema().dump(result)
    body['post_id'] = result.post_id
    return jsonify(body), (201 if result.success else 422)


@posts_bp.route('/<string:post_id>', methods=['DELETE'])
def delete_post(post_id: str):
    return _mutation_response(_store().delete_post(post_id), post_id)


@posts_bp.route('/<string:post_id>/like', methods=['POST'])
def toggle_like(post_id: str):
    return _mutation_response(_store().toggle_like(post_id), post_id)


@posts_bp.route('/<string:post_id>/comments/visibility', methods=['POST'])
def toggle_comments(post_id: str):
    """댓글 영역 펼침 상태(로컬 전용)를 토글합니다."""
    store = _store()
    if not store.get_post(post_id):
        return jsonify({"error_code": "POST_NOT_FOUND", "message": "게시글을 찾을 수 없습니다."}), 404
    shown = store.toggle_comments(post_id)
    return jsonify({"showComments": shown}), 200


@posts_bp.route('/<string:post_id>/comments', methods=['POST'])
def add_comment(post_id: str):
    data = CommentCreateSchema().load(request.get_json() or {})
    return _mutation_response(_store().add_comment(post_id, data['text'], data.get('author')), post_id)


@posts_bp.route('/<string:post_id>/comments/<string:comment_id>/like', methods=['POST'])
def toggle_comment_like(post_id: str, comment_id: str):
    return _mutation_response(_store().toggle_comment_like(post_id, comment_id), post_id)


@posts_bp.route('/<string:post_id>/comments/<string:comment_id>/replies', methods=['POST'])
def add_reply(post_id: str, comment_id: str):
    data = CommentCreateSchema().load(request.get_json() or {})
    future = _store().add_reply(post_id, comment_id, data['text'], data.get('author'))
    return _mutation_response(future, post_id)


@posts_bp.route('/<string:post_id>/comments/<string:comment_id>/replies/<string:reply_id>/like', methods=['POST'])
def toggle_reply_like(post_id: str, comment_id: str, reply_id: str):
    logging.debug(f"답글 좋아요 요청 (post: {post_id}, comment: {comment_id}, reply: {reply_id})")
    return _mutation_response(_store().toggle_reply_like(post_id, comment_id, reply_id), post_id)
