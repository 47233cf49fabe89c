# storyfeed/conftest.py
"""
테스트 공용 fixture.
Firestore/Identity Toolkit 대신 메모리 기반 가짜 협력 서비스를 사용합니다.
"""
from concurrent.futures import Executor, Future
from datetime import datetime, timedelta, timezone

import pytest

from storyfeed.models.post import Author, Comment, Post, Reply
from storyfeed.models.user import Viewer
from storyfeed.services.feed_store import FeedStore


class ManualExecutor(Executor):
    """submit된 작업을 run_pending()을 호출할 때까지 보류합니다. 낙관적 상태를 검사할 때 사용."""

    def __init__(self):
        self.pending = []

    def submit(self, fn, *args, **kwargs):
        future = Future()
        self.pending.append((future, fn, args, kwargs))
        return future

    def run_pending(self):
        while self.pending:
            future, fn, args, kwargs = self.pending.pop(0)
            try:
                future.set_result(fn(*args, **kwargs))
            except Exception as e:
                future.set_exception(e)


class ImmediateExecutor(Executor):
    """submit 즉시 같은 스레드에서 실행합니다. 라우트 테스트용."""

    def submit(self, fn, *args, **kwargs):
        future = Future()
        try:
            future.set_result(fn(*args, **kwargs))
        except Exception as e:
            future.set_exception(e)
        return future


class FakePostService:
    def __init__(self):
        self.calls = []
        self.fail = set()  # 실패시킬 메서드 이름
        self.subscribers = []
        self.unsubscribe_count = 0
        self.next_id = 1

    def _record(self, name, *args):
        self.calls.append((name,) + args)
        if name in self.fail:
            raise RuntimeError(f"{name} failed")

    def create_post(self, data):
        self._record('create_post', data)
        post_id = f"new-{self.next_id}"
        self.next_id += 1
        return post_id

    def subscribe_to_posts(self, callback):
        self.subscribers.append(callback)

        def unsubscribe():
            self.unsubscribe_count += 1
        return unsubscribe

    def emit(self, posts, read_time=None):
        for callback in list(self.subscribers):
            callback(posts, read_time)

    def delete_post(self, post_id):
        self._record('delete_post', post_id)

    def toggle_like(self, post_id, user_id):
        self._record('toggle_like', post_id, user_id)

    def add_comment(self, post_id, comment):
        self._record('add_comment', post_id, comment)

    def toggle_comment_like(self, post_id, comment_id, user_id):
        self._record('toggle_comment_like', post_id, comment_id, user_id)

    def add_reply(self, post_id, comment_id, reply):
        self._record('add_reply', post_id, comment_id, reply)

    def toggle_reply_like(self, post_id, comment_id, reply_id, user_id):
        self._record('toggle_reply_like', post_id, comment_id, reply_id, user_id)


class FakeGalleryService:
    def __init__(self):
        self.subscribers = {}
        self.unsubscribed = []
        self.images = {}
        self.deleted = []

    def subscribe_to_gallery(self, owner_id, callback):
        self.subscribers.setdefault(owner_id, []).append(callback)

        def unsubscribe():
            self.unsubscribed.append(owner_id)
        return unsubscribe

    def emit(self, owner_id, images):
        for callback in self.subscribers.get(owner_id, []):
            callback(images, None)

    def register_upload(self, url, owner_id, owner_name):
        image_id = f"img-{len(self.images) + 1}"
        self.images[image_id] = {'url': url, 'uploadedBy': owner_id, 'uploaderName': owner_name}
        return image_id

    def delete_image(self, image_id, owner_id=None):
        image = self.images.get(image_id)
        if image is None or (owner_id is not None and image['uploadedBy'] != owner_id):
            return False
        del self.images[image_id]
        self.deleted.append(image_id)
        return True


class FakeProfileService:
    def __init__(self):
        self.profiles = {}

    def get_profile(self, uid):
        return self.profiles.get(uid)

    def update_profile(self, uid, data):
        self.profiles.setdefault(uid, {}).update(data)

    def get_photo_urls(self, uids):
        return {uid: (self.profiles.get(uid) or {}).get('photoURL') for uid in set(uids)}


class FakeAuthService:
    def __init__(self, user=None):
        self.current_user = user
        self._listeners = []

    def add_listener(self, listener):
        self._listeners.append(listener)
        return lambda: self._listeners.remove(listener)

    def switch_user(self, user):
        self.current_user = user
        for listener in list(self._listeners):
            listener(user)

    def update_display_profile(self, display_name=None, photo_url=None):
        pass


class FakeBlob:
    def __init__(self, bucket, name):
        self.bucket = bucket
        self.name = name
        self.public = False
        self.content_type = None

    def upload_from_string(self, data, content_type=None):
        if self.bucket.fail_uploads:
            raise RuntimeError("storage unavailable")
        self.content_type = content_type
        self.bucket.uploaded[self.name] = data

    def make_public(self):
        self.public = True

    @property
    def public_url(self):
        return f"https://storage.example.com/{self.name}"


class FakeBucket:
    def __init__(self):
        self.uploaded = {}
        self.fail_uploads = False

    def blob(self, name):
        return FakeBlob(self, name)


T0 = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def make_post():
    def _make(post_id, liked_by=(), author_id="author-1", author_name="Jane Doe", content="hello world",
              comments=(), minutes_ago=0):
        return Post(
            post_id=post_id,
            author=Author(user_id=author_id, name=author_name, avatar="JD", username="@jane"),
            image=f"https://img.example.com/{post_id}.jpg",
            content=content,
            created_at=T0 - timedelta(minutes=minutes_ago),
            likes=len(liked_by),
            liked_by=tuple(liked_by),
            comments=tuple(comments),
        )
    return _make


@pytest.fixture
def make_comment():
    def _make(comment_id, liked_by=(), replies=()):
        return Comment(
            comment_id=comment_id, author="Bob", text="nice", author_id="bob",
            time=T0, likes=len(liked_by), liked_by=tuple(liked_by), replies=tuple(replies),
        )
    return _make


@pytest.fixture
def make_reply():
    def _make(reply_id, liked_by=()):
        return Reply(
            reply_id=reply_id, author="Carol", text="agreed", author_id="carol",
            time=T0, likes=len(liked_by), liked_by=tuple(liked_by),
        )
    return _make


@pytest.fixture
def viewer():
    return Viewer(uid="u4", email="dana@example.com", display_name="Dana Scully")


@pytest.fixture
def post_service():
    return FakePostService()


@pytest.fixture
def auth_service(viewer):
    return FakeAuthService(user=viewer)


@pytest.fixture
def gallery_service():
    return FakeGalleryService()


@pytest.fixture
def executor():
    return ManualExecutor()


@pytest.fixture
def store(post_service, executor, viewer):
    feed_store = FeedStore(post_service, executor=executor)
    feed_store.set_viewer(viewer)
    return feed_store


@pytest.fixture
def fake_bucket():
    return FakeBucket()


@pytest.fixture
def app_services(auth_service, post_service, gallery_service, fake_bucket):
    from storyfeed.services.storage_service import StorageService

    return {
        'auth': auth_service,
        'posts': post_service,
        'gallery': gallery_service,
        'profiles': FakeProfileService(),
        'storage': StorageService(bucket=fake_bucket),
        'feed_store': FeedStore(post_service, executor=ImmediateExecutor()),
    }


@pytest.fixture
def app(app_services):
    from storyfeed import create_app

    return create_app('testing', services=app_services)


@pytest.fixture
def client(app):
    return app.test_client()
