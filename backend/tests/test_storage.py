import io
import threading

import pytest
from botocore.response import StreamingBody
from botocore.stub import Stubber

from asset_gateway.core.errors import BackingStoreError, ObjectNotFound, UploadFailure
from asset_gateway.services.storage import StorageService, StoredObject


@pytest.fixture
def s3_storage(settings):
    return StorageService(settings)


@pytest.mark.asyncio
async def test_missing_object_maps_to_object_not_found(s3_storage):
    with Stubber(s3_storage.client) as stubber:
        stubber.add_client_error(
            "get_object",
            service_error_code="NoSuchKey",
            service_message="The specified key does not exist.",
            http_status_code=404,
            expected_params={"Bucket": "test-bucket", "Key": "agents/missing.png"},
        )
        with pytest.raises(ObjectNotFound) as exc_info:
            await s3_storage.fetch_object("agents/missing.png")

    assert exc_info.value.code == "NoSuchKey"
    assert exc_info.value.message == "Object not found: The specified key does not exist."


@pytest.mark.asyncio
async def test_access_denied_maps_to_backing_store_error(s3_storage):
    with Stubber(s3_storage.client) as stubber:
        stubber.add_client_error(
            "get_object",
            service_error_code="AccessDenied",
            service_message="Access Denied",
            http_status_code=403,
        )
        with pytest.raises(BackingStoreError) as exc_info:
            await s3_storage.fetch_object("agents/private.png")

    assert exc_info.value.code == "AccessDenied"
    assert exc_info.value.message == "Access Denied"


@pytest.mark.asyncio
async def test_put_object_sends_bytes_and_content_type(s3_storage):
    with Stubber(s3_storage.client) as stubber:
        stubber.add_response(
            "put_object",
            {"ETag": '"abc123"'},
            expected_params={
                "Bucket": "test-bucket",
                "Key": "agents/x.png",
                "Body": b"\x89PNG",
                "ContentType": "image/png",
            },
        )
        etag = await s3_storage.put_object("agents/x.png", b"\x89PNG", "image/png")
        stubber.assert_no_pending_responses()

    assert etag == '"abc123"'


@pytest.mark.asyncio
async def test_put_object_failure_carries_provider_code(s3_storage):
    with Stubber(s3_storage.client) as stubber:
        stubber.add_client_error(
            "put_object",
            service_error_code="AccessDenied",
            service_message="Access Denied",
            http_status_code=403,
        )
        with pytest.raises(UploadFailure) as exc_info:
            await s3_storage.put_object("agents/x.png", b"data", "image/png")

    assert exc_info.value.code == "AccessDenied"
    assert exc_info.value.message == "S3 upload failed: Access Denied"


def test_object_url_uses_virtual_hosted_style(s3_storage):
    assert s3_storage.object_url("agents/a b.png") == (
        "https://test-bucket.s3.eu-north-1.amazonaws.com/agents/a%20b.png"
    )


def test_object_url_with_custom_endpoint(settings):
    storage = StorageService(settings.model_copy(update={"s3_endpoint": "http://localhost:9000/"}))
    assert storage.object_url("agents/x.png") == "http://localhost:9000/test-bucket/agents/x.png"


@pytest.mark.asyncio
async def test_body_is_read_in_chunks_and_closed():
    data = b"x" * 200_000
    raw = io.BytesIO(data)
    stored = StoredObject(key="k", body=StreamingBody(raw, len(data)))

    chunks = [chunk async for chunk in stored.iter_chunks(65536)]

    assert [len(c) for c in chunks] == [65536, 65536, 65536, 200_000 - 3 * 65536]
    assert b"".join(chunks) == data
    assert raw.closed


@pytest.mark.asyncio
async def test_body_is_closed_when_consumer_stops_early():
    data = b"y" * 10_000
    raw = io.BytesIO(data)
    stored = StoredObject(key="k", body=StreamingBody(raw, len(data)))

    chunks = stored.iter_chunks(1024)
    first = await chunks.__anext__()
    await chunks.aclose()

    assert first == b"y" * 1024
    assert raw.closed


class ThreadRecordingBody(StreamingBody):
    def __init__(self, data: bytes) -> None:
        super().__init__(io.BytesIO(data), len(data))
        self.closed_on: int | None = None

    def close(self) -> None:
        self.closed_on = threading.get_ident()
        super().close()


@pytest.mark.asyncio
async def test_body_is_closed_off_the_event_loop_thread():
    body = ThreadRecordingBody(b"z" * 4096)
    stored = StoredObject(key="k", body=body)

    chunks = stored.iter_chunks(1024)
    await chunks.__anext__()
    await chunks.aclose()

    assert body.closed_on is not None
    assert body.closed_on != threading.get_ident()


@pytest.mark.asyncio
async def test_non_stream_body_is_sent_whole():
    stored = StoredObject(key="k", body=b"plain bytes")
    assert [chunk async for chunk in stored.iter_chunks(4)] == [b"plain bytes"]
