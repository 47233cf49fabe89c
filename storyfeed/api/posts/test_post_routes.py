# storyfeed/api/posts/test_post_routes.py
"""
/api/posts 라우트 테스트 (Flask test client + 가짜 협력 서비스)
"""
from storyfeed.services.feed_store import LIKE_FAILED, NOT_POST_AUTHOR


def test_list_posts_reflects_snapshot(client, post_service, make_post):
    response = client.get('/api/posts')
    assert response.get_json() == {"posts": [], "loading": True}

    post_service.emit([make_post("P1", liked_by=["u4"]), make_post("P2", content="coffee time")])

    body = client.get('/api/posts').get_json()
    assert body['loading'] is False
    assert [post['id'] for post in body['posts']] == ["P1", "P2"]
    assert body['posts'][0]['liked'] is True

    body = client.get('/api/posts?q=COFFEE').get_json()
    assert [post['id'] for post in body['posts']] == ["P2"]


def test_get_unknown_post_returns_404(client):
    assert client.get('/api/posts/nope').status_code == 404


def test_like_success_and_failure(client, post_service, make_post):
    post_service.emit([make_post("P1", liked_by=["u1"])])

    response = client.post('/api/posts/P1/like')
    assert response.status_code == 200
    assert response.get_json()['post']['likes'] == 2

    post_service.fail.add('toggle_like')
    response = client.post('/api/posts/P1/like')
    body = response.get_json()
    assert response.status_code == 422
    assert body['error'] == LIKE_FAILED
    # 실패한 unlike는 롤백되어 좋아요 상태 유지
    assert body['post']['liked'] is True
    assert body['post']['likes'] == 2
    assert body['post']['error'] == LIKE_FAILED


def test_toggle_comment_visibility(client, post_service, make_post):
    post_service.emit([make_post("P1")])

    assert client.post('/api/posts/P1/comments/visibility').get_json() == {"showComments": True}
    assert client.post('/api/posts/missing/comments/visibility').status_code == 404


def test_blank_comment_is_skipped(client, post_service, make_post):
    post_service.emit([make_post("P1")])

    response = client.post('/api/posts/P1/comments', json={'text': '   '})

    assert response.status_code == 200
    assert response.get_json()['skipped'] is True
    assert post_service.calls == []


def test_add_comment_and_reply(client, post_service, make_post, make_comment):
    post_service.emit([make_post("P1", comments=[make_comment("c1")])])

    assert client.post('/api/posts/P1/comments', json={'text': 'nice!'}).status_code == 200
    assert client.post('/api/posts/P1/comments/c1/replies', json={'text': 'thanks'}).status_code == 200
    assert [call[0] for call in post_service.calls] == ['add_comment', 'add_reply']


def test_comment_requires_text(client):
    response = client.post('/api/posts/P1/comments', json={})
    assert response.status_code == 400
    assert response.get_json()['error_code'] == "VALIDATION_ERROR"


def test_delete_someone_elses_post(client, post_service, make_post):
    post_service.emit([make_post("P1", author_id="someone")])

    response = client.delete('/api/posts/P1')

    assert response.status_code == 422
    assert response.get_json()['error'] == NOT_POST_AUTHOR
    assert post_service.calls == []


def test_create_post(client, post_service):
    response = client.post('/api/posts', json={'image': 'https://img/1.jpg', 'content': 'hello there'})

    assert response.status_code == 201
    assert response.get_json()['post_id'] == "new-1"

    too_long = ' '.join(['word'] * 151)
    response = client.post('/api/posts', json={'image': 'https://img/1.jpg', 'content': too_long})
    assert response.status_code == 400
    assert len(post_service.calls) == 1


def test_signed_out_viewer_cannot_like(client, auth_service, post_service, make_post):
    auth_service.switch_user(None)
    post_service.emit([make_post("P1")])

    response = client.post('/api/posts/P1/like')

    assert response.status_code == 422
    assert response.get_json()['error'] == "Please login to continue"


def test_unexpected_error_returns_generic_message(app, client, app_services):
    def explode(*args, **kwargs):
        raise RuntimeError("boom")

    app_services['feed_store'].search = explode
    response = client.get('/api/posts?q=x')

    assert response.status_code == 500
    assert response.get_json()['message'] == "Something went wrong. Please reload the page."


def test_create_post_uses_configured_word_limit(app, client, post_service):
    app.config['POST_WORD_LIMIT'] = 3

    response = client.post('/api/posts', json={'image': 'https://img/1.jpg', 'content': 'one two three four'})

    assert response.status_code == 400
    assert post_service.calls == []
