# storyfeed/services/feed_session.py
import logging
import threading
from typing import Callable, List, Optional, Tuple

from storyfeed.models.gallery import GalleryImage
from storyfeed.models.user import Viewer
from storyfeed.services.feed_store import FeedStore


class Subscription:
    """
    Firestore 구독 해제 핸들을 감싸 정확히 한 번만 해제되도록 보장합니다.
    해제 이후 도착한 콜백은 active 플래그로 걸러냅니다.
    """
    def __init__(self, name: str):
        self.name = name
        self._unsubscribe: Optional[Callable[[], None]] = None
        self._active = True
        self._lock = threading.Lock()

    @property
    def active(self) -> bool:
        return self._active

    def attach(self, unsubscribe: Callable[[], None]):
        with self._lock:
            if self._active:
                self._unsubscribe = unsubscribe
                return
        # attach 전에 이미 해제된 경우
        unsubscribe()

    def close(self) -> bool:
        with self._lock:
            if not self._active:
                return False
            self._active = False
            unsubscribe, self._unsubscribe = self._unsubscribe, None
        if unsubscribe is not None:
            try:
                unsubscribe()
            except Exception as e:
                logging.error(f"구독 해제 중 오류 발생 ({self.name}): {e}", exc_info=True)
        logging.info(f"구독 해제 완료: {self.name}")
        return True


class FeedSession:
    """
    현재 viewer에 묶인 실시간 구독을 관리하는 세션 클래스.
    - viewer가 바뀔 때마다 이전 게시글/갤러리 구독을 정확히 한 번 해제하고 새 구독을 시작합니다.
    - 게시글 스냅샷은 FeedStore로, 갤러리 스냅샷은 세션 내부 캐시로 전달됩니다.
    """
    def __init__(self, auth_service, post_service, gallery_service, store: FeedStore):
        self.auth_service = auth_service
        self.post_service = post_service
        self.gallery_service = gallery_service
        self.store = store
        self._lock = threading.RLock()
        self._posts_subscription: Optional[Subscription] = None
        self._gallery_subscription: Optional[Subscription] = None
        self._gallery: Tuple[GalleryImage, ...] = ()
        self._viewer_key: Optional[str] = None
        self._started = False
        self._remove_auth_listener: Optional[Callable[[], None]] = None

    @property
    def viewer(self) -> Optional[Viewer]:
        return self.store.viewer

    @property
    def gallery(self) -> Tuple[GalleryImage, ...]:
        return self._gallery

    def start(self):
        """인증 상태 변경 알림을 받기 시작하고, 현재 viewer 기준으로 구독을 엽니다."""
        with self._lock:
            if self._started:
                return
            self._started = True
        self._remove_auth_listener = self.auth_service.add_listener(self.on_viewer_changed)
        self._resubscribe(self.auth_service.current_user)

    def stop(self):
        with self._lock:
            if not self._started:
                return
            self._started = False
        if self._remove_auth_listener:
            self._remove_auth_listener()
            self._remove_auth_listener = None
        self._teardown()

    def on_viewer_changed(self, viewer: Optional[Viewer]):
        key = viewer.uid if viewer else None
        with self._lock:
            if not self._started:
                return
            if key == self._viewer_key and self._posts_subscription is not None:
                # 같은 사용자의 프로필 정보만 바뀐 경우 (예: displayName 업데이트)
                self.store.set_viewer(viewer)
                return
        self._resubscribe(viewer)

    def _teardown(self):
        with self._lock:
            posts_sub, self._posts_subscription = self._posts_subscription, None
            gallery_sub, self._gallery_subscription = self._gallery_subscription, None
            self._gallery = ()
        for sub in (posts_sub, gallery_sub):
            if sub is not None:
                sub.close()

    def _resubscribe(self, viewer: Optional[Viewer]):
        with self._lock:
            self._teardown()
            self._viewer_key = viewer.uid if viewer else None
            self.store.reset()
            self.store.set_viewer(viewer)

            posts_sub = Subscription(f"posts[{self._viewer_key or 'anonymous'}]")
            self._posts_subscription = posts_sub

            def on_posts(posts, read_time=None):
                if not posts_sub.active:
                    logging.debug(f"해제된 구독의 스냅샷 무시: {posts_sub.name}")
                    return
                self.store.apply_snapshot(posts, read_time)

            gallery_sub = None
            if viewer is not None:
                gallery_sub = Subscription(f"gallery[{viewer.uid}]")
                self._gallery_subscription = gallery_sub

        try:
            posts_sub.attach(self.post_service.subscribe_to_posts(on_posts))
        except Exception as e:
            logging.error(f"게시글 구독 시작 실패: {e}", exc_info=True)
            posts_sub.close()

        if gallery_sub is not None:
            def on_gallery(images: List[GalleryImage], read_time=None):
                if not gallery_sub.active:
                    return
                self._gallery = tuple(images)

            try:
                gallery_sub.attach(self.gallery_service.subscribe_to_gallery(viewer.uid, on_gallery))
            except Exception as e:
                logging.error(f"갤러리 구독 시작 실패 (uid: {viewer.uid}): {e}", exc_info=True)
                gallery_sub.close()
        logging.info(f"피드 세션 구독 갱신 완료 (viewer: {self._viewer_key})")
