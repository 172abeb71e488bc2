"""Batch map, reduce and filter over prefixes of an object store."""

from s3_lambda.client import S3Lambda, S3LambdaConfig
from s3_lambda.contexts import ContextSpec, ObjectRef
from s3_lambda.errors import BatchError, CallbackError, ConfigurationError, ErrorKind, StoreError
from s3_lambda.protocols import ObjectStore
from s3_lambda.request import Request
from s3_lambda.sources import SourceSet

__all__ = [
    "BatchError",
    "CallbackError",
    "ConfigurationError",
    "ContextSpec",
    "ErrorKind",
    "ObjectRef",
    "ObjectStore",
    "Request",
    "S3Lambda",
    "S3LambdaConfig",
    "SourceSet",
    "StoreError",
]
