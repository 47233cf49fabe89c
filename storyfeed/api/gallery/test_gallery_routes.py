# storyfeed/api/gallery/test_gallery_routes.py
import io

from storyfeed.models.gallery import GalleryImage


def test_gallery_requires_login(client, auth_service):
    auth_service.switch_user(None)
    response = client.get('/api/gallery')
    assert response.status_code == 401
    assert response.get_json()['message'] == "Please login to continue"


def test_gallery_lists_cached_images(client, gallery_service):
    gallery_service.emit("u4", [GalleryImage(image_id="g1", url="https://img/g1.jpg", uploaded_by="u4")])

    body = client.get('/api/gallery').get_json()

    assert [image['id'] for image in body['images']] == ["g1"]


def test_upload_registers_gallery_image(client, gallery_service, fake_bucket):
    data = {'file': (io.BytesIO(b"png-bytes"), 'cat.png', 'image/png')}

    response = client.post('/api/gallery', data=data, content_type='multipart/form-data')

    assert response.status_code == 201
    body = response.get_json()
    assert gallery_service.images[body['id']]['uploadedBy'] == "u4"
    assert gallery_service.images[body['id']]['uploaderName'] == "Dana Scully"
    assert len(fake_bucket.uploaded) == 1


def test_upload_rejects_non_image(client, fake_bucket):
    data = {'file': (io.BytesIO(b"hello"), 'notes.txt', 'text/plain')}

    response = client.post('/api/gallery', data=data, content_type='multipart/form-data')

    assert response.status_code == 400
    assert response.get_json()['message'] == "Please select an image file"
    assert fake_bucket.uploaded == {}


def test_delete_only_own_images(client, gallery_service):
    mine = gallery_service.register_upload("https://img/1.jpg", "u4", "Dana")
    theirs = gallery_service.register_upload("https://img/2.jpg", "u1", "Other")

    assert client.delete(f'/api/gallery/{theirs}').status_code == 403
    assert client.delete(f'/api/gallery/{mine}').status_code == 200
    assert gallery_service.deleted == [mine]
