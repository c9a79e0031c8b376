"""Unit tests for the S3 storage adapter, stubbed with botocore's Stubber."""

from unittest.mock import Mock

import boto3
import pytest
from botocore.config import Config
from botocore.stub import Stubber

from chatline.core.exceptions import ServiceUnavailableError
from chatline.storage import S3Storage, get_storage


@pytest.fixture
def s3_client():
    return boto3.client(
        "s3",
        region_name="us-east-1",
        aws_access_key_id="testing",
        aws_secret_access_key="testing",
        config=Config(signature_version="s3v4"),
    )


@pytest.fixture
def storage(s3_client):
    return S3Storage(bucket="chatline-test", region="us-east-1", client=s3_client)


def test_public_url_defaults_to_bucket_host(storage):
    assert storage.public_url("avatars/a.png") == (
        "https://chatline-test.s3.us-east-1.amazonaws.com/avatars/a.png"
    )


def test_public_url_prefers_cloudfront(s3_client):
    storage = S3Storage(bucket="b", cloudfront_domain="d111.cloudfront.net", client=s3_client)
    assert storage.public_url("k.png") == "https://d111.cloudfront.net/k.png"


def test_public_url_with_custom_endpoint(s3_client):
    storage = S3Storage(bucket="b", endpoint_url="http://minio:9000/", client=s3_client)
    assert storage.public_url("k.png") == "http://minio:9000/b/k.png"


def test_presigned_put_is_signed_offline():
    storage = S3Storage(
        bucket="chatline-test",
        access_key_id="testing",
        secret_access_key="testing",
    )
    url = storage.generate_presigned_put("avatars/u/x.png", "image/png", 60)

    assert "avatars/u/x.png" in url
    assert "X-Amz-Signature=" in url
    assert "X-Amz-Expires=60" in url


def test_put_object():
    client = Mock()
    S3Storage(bucket="chatline-test", client=client).put_object("avatars/u/x.png", b"data", "image/png")

    client.put_object.assert_called_once_with(
        Bucket="chatline-test",
        Key="avatars/u/x.png",
        Body=b"data",
        ContentType="image/png",
    )


def test_delete_objects_request():
    client = Mock()
    client.delete_objects.return_value = {}
    S3Storage(bucket="chatline-test", client=client).delete_objects(["a", "b", ""])

    client.delete_objects.assert_called_once_with(
        Bucket="chatline-test",
        Delete={"Objects": [{"Key": "a"}, {"Key": "b"}], "Quiet": True},
    )


def test_delete_objects_reports_failures(storage, s3_client):
    with Stubber(s3_client) as stub:
        stub.add_response(
            "delete_objects",
            {"Errors": [{"Key": "b", "Code": "AccessDenied", "Message": "denied"}]},
        )
        assert storage.delete_objects(["a", "b"]) == ["b"]


def test_delete_objects_batches():
    client = Mock()
    client.delete_objects.return_value = {}
    keys = [f"k{i}" for i in range(1001)]

    assert S3Storage(bucket="chatline-test", client=client).delete_objects(keys) == []
    assert client.delete_objects.call_count == 2
    last_batch = client.delete_objects.call_args.kwargs["Delete"]["Objects"]
    assert last_batch == [{"Key": "k1000"}]


def test_delete_nothing_makes_no_calls(storage, s3_client):
    with Stubber(s3_client) as stub:
        assert storage.delete_objects([]) == []
        stub.assert_no_pending_responses()


async def test_async_twins(storage, s3_client):
    with Stubber(s3_client) as stub:
        stub.add_response("put_object", {})
        stub.add_response("delete_objects", {})
        await storage.aput_object("k", b"x", "image/png")
        assert await storage.adelete_objects(["k"]) == []

    url = await storage.agenerate_presigned_put("k", "image/png", 30)
    assert "X-Amz-Expires=30" in url


def test_get_storage_requires_bucket():
    with pytest.raises(ServiceUnavailableError):
        get_storage()
