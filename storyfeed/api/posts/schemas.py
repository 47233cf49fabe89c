# storyfeed/api/posts/schemas.py
from marshmallow import Schema, fields, validate, validates, ValidationError

from storyfeed.utils.datetime_utils import format_time_ago
from storyfeed.utils.text_utils import POST_WORD_LIMIT, is_blank, is_over_limit


def _not_blank(value: str):
    if is_blank(value):
        raise ValidationError("내용을 입력해주세요.")


# --- API 요청 스키마 ---

class PostCreateSchema(Schema):
    """POST /api/posts 요청 본문의 유효성을 검사합니다."""
    image = fields.Str(required=True, validate=validate.Length(min=1))
    content = fields.Str(required=True, validate=_not_blank)

    def __init__(self, *args, word_limit: int = POST_WORD_LIMIT, **kwargs):
        super().__init__(*args, **kwargs)
        self.word_limit = word_limit

    @validates('content')
    def validate_word_limit(self, value, **kwargs):
        if is_over_limit(value, self.word_limit):
            raise ValidationError(f"게시글은 최대 {self.word_limit}단어까지 작성할 수 있습니다.")


class CommentCreateSchema(Schema):
    """댓글/답글 작성 요청. 공백만 있는 텍스트는 스토어에서 no-op으로 처리되므로 여기서는 존재 여부만 검사합니다."""
    text = fields.Str(required=True)
    author = fields.Str(load_default=None, allow_none=True)


# --- 응답 스키마 ---

class AuthorSchema(Schema):
    user_id = fields.Str(data_key='authorId', allow_none=True)
    name = fields.Str(data_key='authorName')
    avatar = fields.Str(data_key='authorAvatar', allow_none=True)
    username = fields.Str(data_key='authorUsername', allow_none=True)


class ReplyResponseSchema(Schema):
    reply_id = fields.Str(data_key='id')
    author = fields.Str()
    author_id = fields.Str(data_key='authorId', allow_none=True)
    text = fields.Str()
    time = fields.DateTime(allow_none=True)
    timeAgo = fields.Function(lambda entity: format_time_ago(entity.time))
    likes = fields.Int()
    liked_by = fields.List(fields.Str(), data_key='likedBy')


class CommentResponseSchema(Schema):
    comment_id = fields.Str(data_key='id')
    author = fields.Str()
    author_id = fields.Str(data_key='authorId', allow_none=True)
    text = fields.Str()
    time = fields.DateTime(allow_none=True)
    timeAgo = fields.Function(lambda entity: format_time_ago(entity.time))
    likes = fields.Int()
    liked_by = fields.List(fields.Str(), data_key='likedBy')
    replies = fields.List(fields.Nested(ReplyResponseSchema))


class PostViewSchema(Schema):
    """PostView(게시글 + 로컬 전용 필드)를 프론트엔드가 쓰던 JSON 형태로 변환합니다."""
    id = fields.Function(lambda view: view.post.post_id)
    author = fields.Function(lambda view: AuthorSchema().dump(view.post.author))
    image = fields.Function(lambda view: view.post.image)
    content = fields.Function(lambda view: view.post.content)
    createdAt = fields.Function(lambda view: view.post.created_at.isoformat() if view.post.created_at else None)
    timeAgo = fields.Function(lambda view: format_time_ago(view.post.created_at))
    likes = fields.Function(lambda view: view.post.likes)
    likedBy = fields.Function(lambda view: list(view.post.liked_by))
    comments = fields.Function(lambda view: CommentResponseSchema(many=True).dump(view.post.comments))
    liked = fields.Bool()
    showComments = fields.Bool(attribute='show_comments')
    error = fields.Str(allow_none=True)


class MutationResultSchema(Schema):
    success = fields.Bool()
    error = fields.Str(allow_none=True)
    skipped = fields.Bool()
