import re

from fastapi import status
from fastapi.testclient import TestClient

from tests.consts import ALLOWED_REFERER, TEST_PNG_CONTENT
from tests.fixtures.app_fixtures import stored_files

UUID_PNG = re.compile(r"^[0-9a-f]{8}-[0-9a-f]{4}-4[0-9a-f]{3}-[89ab][0-9a-f]{3}-[0-9a-f]{12}\.png$")


def upload_png(client: TestClient, auth_headers: dict, name: str = "photo.png") -> str:
    response = client.post(
        "/upload",
        headers=auth_headers,
        files={"image": (name, TEST_PNG_CONTENT, "image/png")},
    )
    assert response.status_code == status.HTTP_200_OK
    return response.json()["data"]


def test__upload_image__happy_path(client: TestClient, auth_headers, storage_dir):
    response = client.post(
        "/upload",
        headers=auth_headers,
        files={"image": ("photo.png", TEST_PNG_CONTENT, "image/png")},
    )

    assert response.status_code == status.HTTP_200_OK
    body = response.json()
    assert list(body) == ["data"]
    assert UUID_PNG.match(body["data"])
    assert stored_files(storage_dir) == [body["data"]]
    assert (storage_dir / body["data"]).read_bytes() == TEST_PNG_CONTENT


def test__upload_then_fetch__round_trip(client: TestClient, auth_headers):
    filename = upload_png(client, auth_headers)

    response = client.get(f"/images/{filename}", headers={"Referer": ALLOWED_REFERER})

    assert response.status_code == status.HTTP_200_OK
    assert response.content == TEST_PNG_CONTENT
    assert response.headers["Cache-Control"] == "public, max-age=86400"
    assert response.headers["Content-Type"] == "image/png"


def test__fetch_without_referer__is_served(client: TestClient, auth_headers):
    filename = upload_png(client, auth_headers)

    response = client.get(f"/images/{filename}")

    assert response.status_code == status.HTTP_200_OK
    assert response.content == TEST_PNG_CONTENT


def test__fetch_from_second_allowed_origin(client: TestClient, auth_headers):
    filename = upload_png(client, auth_headers)

    response = client.get(f"/images/{filename}", headers={"Referer": "https://sub.example.com/"})

    assert response.status_code == status.HTTP_200_OK


def test__head_image__returns_headers(client: TestClient, auth_headers):
    filename = upload_png(client, auth_headers)

    response = client.head(f"/images/{filename}")

    assert response.status_code == status.HTTP_200_OK
    assert response.headers["Content-Length"] == str(len(TEST_PNG_CONTENT))
    assert response.headers["Cache-Control"] == "public, max-age=86400"
    assert response.content == b""


def test__revalidation__not_modified_keeps_cache_policy(client: TestClient, auth_headers):
    filename = upload_png(client, auth_headers)
    etag = client.get(f"/images/{filename}").headers["ETag"]

    response = client.get(f"/images/{filename}", headers={"If-None-Match": etag})

    assert response.status_code == status.HTTP_304_NOT_MODIFIED
    assert response.headers["Cache-Control"] == "public, max-age=86400"
    assert response.content == b""


def test__uploads_get_distinct_names(client: TestClient, auth_headers, storage_dir):
    names = {upload_png(client, auth_headers) for _ in range(5)}

    assert len(names) == 5
    assert stored_files(storage_dir) == sorted(names)


def test__upload_keeps_original_extension(client: TestClient, auth_headers):
    response = client.post(
        "/upload",
        headers=auth_headers,
        files={"image": ("holiday.photo.JPEG", b"\xff\xd8\xff\xe0jpeg", "image/jpeg")},
    )

    assert response.status_code == status.HTTP_200_OK
    assert response.json()["data"].endswith(".JPEG")


def test__upload_without_extension(client: TestClient, auth_headers, storage_dir):
    response = client.post(
        "/upload",
        headers=auth_headers,
        files={"image": ("snapshot", b"RIFF\x00\x00\x00\x00WEBP", "image/webp")},
    )

    assert response.status_code == status.HTTP_200_OK
    filename = response.json()["data"]
    assert "." not in filename
    assert (storage_dir / filename).exists()


def test__text_fields_are_ignored(client: TestClient, auth_headers):
    response = client.post(
        "/upload",
        headers=auth_headers,
        data={"caption": "sunset"},
        files={"image": ("photo.png", TEST_PNG_CONTENT, "image/png")},
    )

    assert response.status_code == status.HTTP_200_OK


def test__health(client: TestClient):
    response = client.get("/health")

    assert response.status_code == status.HTTP_200_OK
    assert response.json() == {
        "status": "ok",
        "components": {"api": "ready", "storage": "ready"},
        "ready": True,
    }
