# storyfeed/api/posts/test_post_service.py
"""
PostService 테스트 (Firestore 클라이언트는 MagicMock으로 대체)
트랜잭션은 메모리 dict에 mutate 결과를 반영하는 방식으로 흉내냅니다.
"""
from unittest.mock import MagicMock

import pytest
from firebase_admin import firestore

from storyfeed.api.posts.services import PostService


@pytest.fixture
def documents():
    return {
        "P1": {
            'likedBy': ['u1'],
            'likes': 1,
            'comments': [
                {'id': 'c1', 'author': 'Bob', 'text': 'nice', 'likedBy': [], 'likes': 0,
                 'replies': [{'id': 'r1', 'author': 'Carol', 'text': 'yes', 'likedBy': ['u4'], 'likes': 1}]},
                {'id': 'c2', 'author': 'Eve', 'text': 'wow', 'likedBy': [], 'likes': 0, 'replies': []},
            ],
        }
    }


@pytest.fixture
def service(documents, monkeypatch):
    post_service = PostService(db=MagicMock())

    def fake_transaction(post_id, mutate):
        if post_id not in documents:
            raise ValueError(post_id)
        documents[post_id].update(mutate(dict(documents[post_id])))

    monkeypatch.setattr(post_service, '_run_in_transaction', fake_transaction)
    return post_service


def test_toggle_like_keeps_count_in_sync(service, documents):
    service.toggle_like("P1", "u4")
    assert documents["P1"]['likedBy'] == ['u1', 'u4']
    assert documents["P1"]['likes'] == 2

    service.toggle_like("P1", "u1")
    assert documents["P1"]['likedBy'] == ['u4']
    assert documents["P1"]['likes'] == 1


def test_toggle_comment_like_touches_only_target(service, documents):
    service.toggle_comment_like("P1", "c2", "u4")

    c1, c2 = documents["P1"]['comments']
    assert c2['likedBy'] == ['u4'] and c2['likes'] == 1
    assert c1['likedBy'] == [] and c1['likes'] == 0


def test_toggle_reply_like(service, documents):
    service.toggle_reply_like("P1", "c1", "r1", "u4")

    reply = documents["P1"]['comments'][0]['replies'][0]
    assert reply['likedBy'] == []
    assert reply['likes'] == 0


def test_add_reply_appends_with_new_id(service, documents):
    reply_id = service.add_reply("P1", "c2", {'author': 'Dana', 'text': 'hi', 'authorId': 'u4'})

    [reply] = documents["P1"]['comments'][1]['replies']
    assert reply['id'] == reply_id
    assert reply['likes'] == 0
    assert reply['likedBy'] == []
    assert reply['time'].endswith('Z')


def test_add_reply_to_missing_comment_fails(service):
    with pytest.raises(ValueError):
        service.add_reply("P1", "nope", {'text': 'hi'})


def test_missing_post_fails(service):
    with pytest.raises(ValueError):
        service.toggle_like("gone", "u4")


def test_add_comment_uses_array_union():
    db = MagicMock()
    post_service = PostService(db=db)

    comment_id = post_service.add_comment("P1", {'author': 'Dana', 'text': 'hello', 'authorId': 'u4'})

    doc_ref = db.collection.return_value.document.return_value
    update = doc_ref.update.call_args.args[0]
    assert isinstance(update['comments'], firestore.ArrayUnion)
    assert len(comment_id) == 36


def test_subscribe_converts_snapshot_documents():
    db = MagicMock()
    post_service = PostService(db=db)
    received = []

    unsubscribe = post_service.subscribe_to_posts(lambda posts, read_time: received.append((posts, read_time)))

    query = db.collection.return_value.order_by.return_value
    on_snapshot = query.on_snapshot.call_args.args[0]
    doc = MagicMock()
    doc.id = "P9"
    doc.to_dict.return_value = {'authorName': 'Jane', 'content': 'hi', 'likedBy': ['u1'], 'likes': 3}
    on_snapshot([doc], [], "t1")

    [(posts, read_time)] = received
    assert read_time == "t1"
    assert posts[0].post_id == "P9"
    assert posts[0].likes == 1
    assert unsubscribe is query.on_snapshot.return_value.unsubscribe


def test_create_post_starts_with_empty_likes_and_server_timestamp():
    db = MagicMock()
    post_service = PostService(db=db)
    doc_ref = db.collection.return_value.document.return_value
    doc_ref.id = "P42"

    assert post_service.create_post({'authorId': 'u4', 'content': 'hi'}) == "P42"

    data = doc_ref.set.call_args.args[0]
    assert data['likes'] == 0
    assert data['likedBy'] == []
    assert data['createdAt'] is firestore.SERVER_TIMESTAMP
