from __future__ import annotations

import asyncio
import logging

import pytest

from s3_lambda import ConfigurationError, ContextSpec, ObjectRef, S3Lambda, S3LambdaConfig, SourceSet
from s3_lambda.client import parse_s3_uri
from s3_lambda.params import RequestOptions
from s3_lambda.providers.memory import MemoryProvider


def test_context_accepts_specs_mappings_and_uris(store: MemoryProvider) -> None:
    store.buckets["c"] = {"x/1": b"one"}
    client = S3Lambda(store)
    request = client.context(
        [
            "s3://c/x/",
            {"bucket": "b", "prefix": "files/", "limit": 1},
            ContextSpec(bucket="b", prefix="files/file4"),
        ]
    )

    assert asyncio.run(request.join("|")) == "one|file1|file4"


def test_context_rejects_bad_input(client: S3Lambda) -> None:
    with pytest.raises(ConfigurationError):
        client.context({"prefix": "no-bucket"})
    with pytest.raises(ConfigurationError, match="Invalid S3 URI"):
        client.context("https://example.com/x")
    with pytest.raises(ConfigurationError):
        client.context(42)  # type: ignore[arg-type]


def test_parse_s3_uri() -> None:
    assert parse_s3_uri("s3://bucket/a/b/") == ContextSpec(bucket="bucket", prefix="a/b/")
    assert parse_s3_uri("s3://bucket") == ContextSpec(bucket="bucket", prefix="")


def test_config_sets_request_defaults(store: MemoryProvider) -> None:
    client = S3Lambda(store, S3LambdaConfig(encoding="latin-1", show_progress=True))

    request = client.context({"bucket": "b"})

    assert request.options.encoding == "latin-1"
    assert asyncio.run(request.reduce(lambda acc, cur, key: acc + 1, 0)) == 4


def test_resolution_is_logged(client: S3Lambda, caplog: pytest.LogCaptureFixture) -> None:
    caplog.set_level(logging.INFO, logger="s3_lambda")

    asyncio.run(client.context({"bucket": "b", "prefix": "files/"}).each(lambda value, key: None))

    messages = [record.getMessage() for record in caplog.records]
    assert "resolved context bucket=b prefix=files/ keys=4" in messages
    assert any(message.startswith("each finished items=4") for message in messages)


def test_source_set_applies_exclude_then_reverse_then_limit() -> None:
    refs = [ObjectRef(bucket="b", prefix="", key=f"k{i}") for i in range(6)]
    options = RequestOptions().replace(exclude=lambda key: key == "k5", reverse=True, limit=3)

    source_set = SourceSet.derive(refs, options)

    assert source_set.keys == ["k4", "k3", "k2"]
    assert source_set.last == refs[2]
    assert len(source_set) == 3
    assert list(source_set) == [refs[4], refs[3], refs[2]]


def test_object_ref_name_strips_context_prefix() -> None:
    assert ObjectRef(bucket="b", prefix="in/", key="in/a/b.txt").name == "a/b.txt"
    assert ObjectRef(bucket="b", prefix="other/", key="in/a.txt").name == "in/a.txt"
    assert str(ObjectRef(bucket="b", prefix="", key="k")) == "s3://b/k"


def test_request_options_replace_validates() -> None:
    options = RequestOptions()

    assert options.replace(concurrency=4).concurrency == 4
    assert options.concurrency is None
    with pytest.raises(ConfigurationError, match="Invalid request options"):
        options.replace(concurrency=0)
