from __future__ import annotations

import asyncio
import io
from unittest.mock import MagicMock

import pytest
from botocore.exceptions import ClientError

from s3_lambda import ErrorKind, ObjectStore, S3Lambda, StoreError
from s3_lambda.providers.memory import MemoryProvider
from s3_lambda.providers.s3 import S3Credentials, S3Params, S3Provider


def _client_error(code: str, operation: str = "GetObject") -> ClientError:
    return ClientError({"Error": {"Code": code, "Message": code}}, operation)


def test_list_objects_maps_response_to_page() -> None:
    client = MagicMock()
    client.list_objects.return_value = {
        "Contents": [{"Key": "a/1", "Size": 3}, {"Key": "a/2", "Size": 0}],
        "IsTruncated": True,
    }
    provider = S3Provider(client, S3Params(page_size=2))

    page = asyncio.run(provider.list_objects("bucket", "a/"))

    client.list_objects.assert_called_once_with(Bucket="bucket", Prefix="a/", MaxKeys=2)
    assert [(e.key, e.size) for e in page.entries] == [("a/1", 3), ("a/2", 0)]
    assert page.truncated
    assert page.continuation == "a/2"


def test_list_objects_passes_marker() -> None:
    client = MagicMock()
    client.list_objects.return_value = {"IsTruncated": False}
    provider = S3Provider(client)

    page = asyncio.run(provider.list_objects("bucket", "a/", "a/5"))

    client.list_objects.assert_called_once_with(Bucket="bucket", Prefix="a/", Marker="a/5", MaxKeys=1000)
    assert page.entries == []
    assert not page.truncated


def test_get_object_reads_body() -> None:
    client = MagicMock()
    client.get_object.return_value = {"Body": io.BytesIO(b"hello")}

    assert asyncio.run(S3Provider(client).get_object("bucket", "k")) == b"hello"
    client.get_object.assert_called_once_with(Bucket="bucket", Key="k")


def test_missing_object_is_not_found() -> None:
    client = MagicMock()
    error = _client_error("NoSuchKey")
    client.get_object.side_effect = error

    with pytest.raises(StoreError) as excinfo:
        asyncio.run(S3Provider(client).get_object("bucket", "gone"))

    assert excinfo.value.kind == ErrorKind.NOT_FOUND
    assert (excinfo.value.bucket, excinfo.value.key) == ("bucket", "gone")
    assert excinfo.value.source is error


def test_other_client_errors_are_store_errors() -> None:
    client = MagicMock()
    client.put_object.side_effect = _client_error("AccessDenied", "PutObject")

    with pytest.raises(StoreError) as excinfo:
        asyncio.run(S3Provider(client).put_object("bucket", "k", b"x"))

    assert excinfo.value.kind == ErrorKind.STORE


def test_copy_object_uses_copy_source() -> None:
    client = MagicMock()

    asyncio.run(S3Provider(client).copy_object("src", "a/1", "dst", "b/1"))

    client.copy_object.assert_called_once_with(
        Bucket="dst",
        Key="b/1",
        CopySource={"Bucket": "src", "Key": "a/1"},
    )


def test_delete_objects_is_chunked() -> None:
    client = MagicMock()
    client.delete_objects.return_value = {}
    keys = [f"k{i:04d}" for i in range(2500)]

    asyncio.run(S3Provider(client).delete_objects("bucket", keys))

    chunks = [c.kwargs["Delete"]["Objects"] for c in client.delete_objects.call_args_list]
    assert [len(chunk) for chunk in chunks] == [1000, 1000, 500]
    assert chunks[2][-1] == {"Key": "k2499"}


def test_delete_objects_reports_per_key_errors() -> None:
    client = MagicMock()
    client.delete_objects.return_value = {"Errors": [{"Key": "k1", "Message": "Access Denied"}]}

    with pytest.raises(StoreError, match="k1: Access Denied") as excinfo:
        asyncio.run(S3Provider(client).delete_objects("bucket", ["k1", "k2"]))

    assert excinfo.value.key == "k1"


def test_credentials_from_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("AWS_ACCESS_KEY_ID", "AKIA")
    monkeypatch.setenv("AWS_SECRET_ACCESS_KEY", "secret")
    monkeypatch.setenv("AWS_REGION", " eu-west-1 ")
    monkeypatch.setenv("S3_ENDPOINT_URL", "")
    monkeypatch.delenv("AWS_SESSION_TOKEN", raising=False)

    credentials = S3Credentials.from_env()

    assert credentials.access_key_id == "AKIA"
    assert credentials.region == "eu-west-1"
    assert credentials.endpoint_url is None


def test_batch_request_over_paginated_s3_listing() -> None:
    client = MagicMock()
    client.list_objects.side_effect = [
        {"Contents": [{"Key": "p/", "Size": 0}, {"Key": "p/a", "Size": 2}], "IsTruncated": True},
        {"Contents": [{"Key": "p/b", "Size": 2}], "IsTruncated": False},
    ]
    bodies = {"p/a": b"aa", "p/b": b"bbb"}
    client.get_object.side_effect = lambda Bucket, Key: {"Body": io.BytesIO(bodies[Key])}  # noqa: N803
    lam = S3Lambda(S3Provider(client))

    total = asyncio.run(lam.context("s3://bucket/p/").reduce(lambda acc, cur, key: acc + len(cur), 0))

    assert total == 5
    second_call = client.list_objects.call_args_list[1]
    assert second_call.kwargs["Marker"] == "p/a"


def test_delete_object() -> None:
    client = MagicMock()

    asyncio.run(S3Provider(client).delete_object("bucket", "k"))

    client.delete_object.assert_called_once_with(Bucket="bucket", Key="k")


def test_connect_builds_a_client_without_network_calls() -> None:
    credentials = S3Credentials(access_key_id="a", secret_access_key="b", region="eu-west-1")

    lam = asyncio.run(S3Lambda.connect(credentials, S3Params(page_size=5, addressing_style="path")))

    assert isinstance(lam.store, S3Provider)
    assert isinstance(lam.store, ObjectStore)
    asyncio.run(lam.disconnect())


def test_memory_provider_satisfies_store_protocol() -> None:
    assert isinstance(MemoryProvider(), ObjectStore)
