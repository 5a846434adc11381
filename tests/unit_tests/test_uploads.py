import asyncio

import pytest
from starlette.requests import Request

from images_api.errors import FileTooLargeError, MalformedMultipartError
from images_api.uploads import (
    MULTIPART_OVERHEAD,
    body_limit,
    limited_stream,
    media_type,
    parse_upload_form,
)

CHUNK = b"\x00" * 1024


def make_request(chunks, headers=None):
    """Build a Request whose body arrives in ``chunks``; also return the list of chunks handed out."""
    handed_out = []

    async def receive():
        index = len(handed_out)
        body = chunks[index] if index < len(chunks) else b""
        handed_out.append(body)
        return {"type": "http.request", "body": body, "more_body": index < len(chunks) - 1}

    scope = {
        "type": "http",
        "method": "POST",
        "path": "/upload",
        "query_string": b"",
        "headers": [(k.lower().encode(), v.encode()) for k, v in (headers or {}).items()],
    }
    return Request(scope, receive), handed_out


async def drain(stream):
    return [chunk async for chunk in stream]


@pytest.mark.parametrize(
    "content_type, expected",
    [
        ("image/png", "image/png"),
        ("IMAGE/PNG", "image/png"),
        ("image/png; name=a.png", "image/png"),
        ("  Image/WebP ;charset=binary", "image/webp"),
        ("", ""),
        (None, ""),
    ],
)
def test_media_type(content_type, expected):
    assert media_type(content_type) == expected


def test_body_limit():
    assert body_limit(1024) == 1024 + MULTIPART_OVERHEAD


def test_limited_stream__under_limit():
    request, _ = make_request([CHUNK, CHUNK])

    assert asyncio.run(drain(limited_stream(request, 4096))) == [CHUNK, CHUNK]


def test_limited_stream__stops_reading_once_over_limit():
    request, handed_out = make_request([CHUNK] * 100)

    with pytest.raises(FileTooLargeError):
        asyncio.run(drain(limited_stream(request, 3 * 1024)))

    assert len(handed_out) == 4


def test_parse_upload_form__refuses_large_content_length_without_reading():
    limit = 1024
    request, handed_out = make_request(
        [CHUNK] * 100,
        headers={
            "Content-Type": "multipart/form-data; boundary=xyz",
            "Content-Length": str(body_limit(limit) + 1),
        },
    )

    with pytest.raises(FileTooLargeError):
        asyncio.run(parse_upload_form(request, limit))

    assert handed_out == []


def test_parse_upload_form__chunked_body_is_cut_off(tmp_path):
    limit = 1024
    boundary = "xyz"
    head = (
        f"--{boundary}\r\n"
        'Content-Disposition: form-data; name="image"; filename="big.png"\r\n'
        "Content-Type: image/png\r\n\r\n"
    ).encode()
    chunks = [head] + [CHUNK * 16] * 64
    request, handed_out = make_request(
        chunks,
        headers={"Content-Type": f"multipart/form-data; boundary={boundary}"},
    )

    with pytest.raises(FileTooLargeError):
        asyncio.run(parse_upload_form(request, limit))

    assert len(handed_out) < len(chunks)


def test_parse_upload_form__missing_boundary():
    request, _ = make_request([b"garbage"], headers={"Content-Type": "multipart/form-data"})

    with pytest.raises(MalformedMultipartError):
        asyncio.run(parse_upload_form(request, 1024))


def test_parse_upload_form__other_content_types_give_empty_form():
    request, handed_out = make_request([b'{"image": "x"}'], headers={"Content-Type": "application/json"})

    form = asyncio.run(parse_upload_form(request, 1024))

    assert list(form.multi_items()) == []
    assert handed_out == []
